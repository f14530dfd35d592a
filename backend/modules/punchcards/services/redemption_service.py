# backend/modules/punchcards/services/redemption_service.py

from typing import Optional
import logging

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from core.exceptions import NotFoundError
from ..exceptions import StoreFailure
from ..models.punch_models import Establishment, PunchReward
from ..schemas.punch_schemas import RedeemedRewardDetails, RewardValidationResponse
from .clock import Clock

logger = logging.getLogger(__name__)


class RedemptionService:
    """Validates and redeems reward codes presented at a business"""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or Clock()

    def get_owned_establishment(self, owner_user_id: str) -> Establishment:
        establishment = (
            self.db.query(Establishment)
            .filter(Establishment.owner_user_id == owner_user_id)
            .first()
        )
        if not establishment:
            raise NotFoundError("No business account found", error_code="NO_BUSINESS")
        return establishment

    def redeem(self, establishment: Establishment, code: str) -> RewardValidationResponse:
        reward = (
            self.db.query(PunchReward)
            .options(joinedload(PunchReward.event), joinedload(PunchReward.user))
            .filter(PunchReward.code == code)
            .first()
        )

        if not reward:
            return RewardValidationResponse(valid=False, message="Invalid reward code")

        if reward.event.establishment_id != establishment.id:
            logger.warning(
                f"Establishment {establishment.id} tried to redeem reward {reward.id} "
                f"of establishment {reward.event.establishment_id}"
            )
            return RewardValidationResponse(
                valid=False, message="This reward code is not for your business"
            )

        if reward.redeemed_at is not None:
            return self._already_redeemed(reward)

        now = self.clock.now()
        try:
            result = self.db.execute(
                update(PunchReward)
                .where(PunchReward.id == reward.id, PunchReward.redeemed_at.is_(None))
                .values(redeemed_at=now)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreFailure("redeem reward", e) from e

        self.db.refresh(reward)
        if result.rowcount == 0:
            # redeemed by a concurrent request
            return self._already_redeemed(reward)

        logger.info(f"Reward {reward.code} redeemed at establishment {establishment.id}")
        return RewardValidationResponse(
            valid=True,
            message="Reward is valid! Marked as redeemed.",
            reward=RedeemedRewardDetails(
                code=reward.code,
                event_name=reward.event.name,
                customer_email=reward.user.email if reward.user else None,
                customer_name=reward.user.name if reward.user else None,
                issued_at=reward.issued_at,
            ),
        )

    def _already_redeemed(self, reward: PunchReward) -> RewardValidationResponse:
        return RewardValidationResponse(
            valid=False,
            message="This reward has already been redeemed",
            redeemed_at=reward.redeemed_at,
        )
