# backend/modules/punchcards/services/customer_service.py

from typing import List
import logging

from pydantic import ValidationError
from sqlalchemy.orm import Session, joinedload

from ..models.punch_models import PunchCard, PunchEvent, PunchReward
from ..schemas.punch_schemas import (
    CardSummary,
    EstablishmentRef,
    EventRef,
    EventRules,
    RewardSummary,
)

logger = logging.getLogger(__name__)

# shown when a campaign's stored rules cannot be read
FALLBACK_TARGET_PUNCHES = 10


class CustomerService:
    """Read-only views of a customer's cards and rewards"""

    def __init__(self, db: Session):
        self.db = db

    def list_cards(self, user_id: str) -> List[CardSummary]:
        cards = (
            self.db.query(PunchCard)
            .options(joinedload(PunchCard.event).joinedload(PunchEvent.establishment))
            .filter(PunchCard.user_id == user_id)
            .order_by(PunchCard.created_at.desc(), PunchCard.id.desc())
            .all()
        )

        return [
            CardSummary(
                id=card.id,
                currentPunches=card.progress,
                targetPunches=self._target_punches(card.event),
                status=card.status.value,
                createdAt=card.created_at,
                completedAt=card.completed_at,
                event=EventRef(
                    id=card.event.id,
                    name=card.event.name,
                    description=card.event.description,
                ),
                establishment=EstablishmentRef(
                    id=card.event.establishment.id,
                    name=card.event.establishment.name,
                ),
            )
            for card in cards
        ]

    def list_rewards(self, user_id: str) -> List[RewardSummary]:
        rewards = (
            self.db.query(PunchReward)
            .options(joinedload(PunchReward.event).joinedload(PunchEvent.establishment))
            .filter(PunchReward.user_id == user_id)
            .order_by(PunchReward.issued_at.desc(), PunchReward.id.desc())
            .all()
        )

        return [
            RewardSummary(
                id=reward.id,
                code=reward.code,
                redeemed=reward.is_redeemed,
                createdAt=reward.issued_at,
                redeemedAt=reward.redeemed_at,
                event=EventRef(id=reward.event.id, name=reward.event.name),
                establishment=EstablishmentRef(
                    id=reward.event.establishment.id,
                    name=reward.event.establishment.name,
                ),
            )
            for reward in rewards
        ]

    def _target_punches(self, event: PunchEvent) -> int:
        try:
            return EventRules.model_validate(event.rules or {}).target_punches
        except ValidationError:
            logger.warning(f"Event {event.id} has unreadable rules; using default target")
            return FALLBACK_TARGET_PUNCHES
