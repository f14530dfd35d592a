# backend/modules/punchcards/services/card_lifecycle.py

from dataclasses import dataclass
from typing import Union
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import AlreadyCompleted, StoreFailure
from ..models.punch_models import CardStatus, PunchCard
from ..schemas.punch_schemas import EventRules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CardFound:
    card: PunchCard


@dataclass(frozen=True)
class CardNotFound:
    pass


@dataclass(frozen=True)
class CardStoreError:
    cause: Exception


CardLookup = Union[CardFound, CardNotFound, CardStoreError]


class CardLifecycleManager:
    """Finds or creates a customer's card and handles completed cards"""

    def __init__(self, db: Session):
        self.db = db

    def lookup(self, user_id: str, event_id: int) -> CardLookup:
        try:
            card = (
                self.db.query(PunchCard)
                .filter(PunchCard.user_id == user_id, PunchCard.event_id == event_id)
                .one_or_none()
            )
        except SQLAlchemyError as e:
            return CardStoreError(e)

        if card is None:
            return CardNotFound()
        return CardFound(card)

    def get_usable_card(self, user_id: str, event_id: int, rules: EventRules) -> PunchCard:
        """
        Return an active card for (user, event), ready for rule evaluation.

        A completed card is reset in place when the event allows repeats,
        otherwise the tap is rejected with AlreadyCompleted.
        """
        card = self._find_or_create(user_id, event_id)

        if card.status == CardStatus.COMPLETED:
            if not rules.allow_repeat:
                raise AlreadyCompleted()
            card = self._reset(card)

        return card

    def _find_or_create(self, user_id: str, event_id: int) -> PunchCard:
        result = self.lookup(user_id, event_id)

        if isinstance(result, CardFound):
            return result.card
        if isinstance(result, CardStoreError):
            raise StoreFailure("load card", result.cause) from result.cause

        card = PunchCard(
            user_id=user_id, event_id=event_id, progress=0, status=CardStatus.ACTIVE
        )
        try:
            self.db.add(card)
            self.db.commit()
        except IntegrityError:
            # a concurrent tap created the card first
            self.db.rollback()
            result = self.lookup(user_id, event_id)
            if isinstance(result, CardFound):
                return result.card
            cause = result.cause if isinstance(result, CardStoreError) else None
            raise StoreFailure("create card", cause)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreFailure("create card", e) from e

        self.db.refresh(card)
        logger.info(f"Created card {card.id} for user {user_id} on event {event_id}")
        return card

    def _reset(self, card: PunchCard) -> PunchCard:
        """Start a new round on a completed card."""
        try:
            self.db.execute(
                update(PunchCard)
                .where(PunchCard.id == card.id, PunchCard.status == CardStatus.COMPLETED)
                .values(progress=0, status=CardStatus.ACTIVE, completed_at=None)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
            # zero rows means a concurrent tap already reset it; either way re-read
            self.db.refresh(card)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreFailure("reset card", e) from e

        logger.info(f"Reset completed card {card.id} for a new round")
        return card
