# backend/modules/punchcards/services/punch_engine.py

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple
import logging

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.auth import CurrentUser
from core.config import get_settings
from ..exceptions import ConcurrentTapConflict, RuleViolation, StoreFailure
from ..models.punch_models import CardStatus, Punch, PunchCard, PunchUser
from ..schemas.punch_schemas import (
    CompletedResponse,
    EventRules,
    PunchLocation,
    PunchedResponse,
    PunchResponse,
    RewardCode,
)
from .card_lifecycle import CardLifecycleManager
from .clock import Clock, resolve_timezone
from .reward_issuer import RewardIssuer
from .rule_evaluator import PunchHistory, RuleEvaluator
from .tag_resolver import ResolvedTag, TagResolver

logger = logging.getLogger(__name__)

# attempts at the progress compare-and-swap before reporting a conflict
MAX_PROGRESS_ATTEMPTS = 3


@dataclass(frozen=True)
class ProgressUpdate:
    progress: int
    completed: bool


class PunchEngine:
    """Turns a tag tap into a punch, card progress and possibly a reward"""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or Clock()
        self.resolver = TagResolver(db)
        self.cards = CardLifecycleManager(db)
        self.rules = RuleEvaluator(
            PunchHistory(db), resolve_timezone(get_settings().punch_timezone)
        )
        self.rewards = RewardIssuer(db)

    def punch(
        self,
        user: CurrentUser,
        token: str,
        location: Optional[PunchLocation] = None,
    ) -> PunchResponse:
        """
        Process one tap for an authenticated customer.

        Side effects happen in order (punch row, card progress, reward) and
        are committed step by step; a failure later on does not undo the
        punch already recorded.
        """
        resolved = self.resolver.resolve(token)
        self._ensure_user(user)

        card = self.cards.get_usable_card(user.id, resolved.event_id, resolved.rules)

        now = self.clock.now()
        self.rules.check(resolved.rules, user.id, resolved.event_id, now)

        punch = self._record_punch(card, resolved, user.id, now, location)
        result = self._advance_progress(card, punch, resolved.rules, now)

        if result.completed:
            code = self.rewards.issue(card.id, resolved.event_id, user.id, now)
            logger.info(
                f"Card {card.id} completed for user {user.id} on event {resolved.event_id}"
            )
            return CompletedResponse(reward=RewardCode(code=code))

        logger.info(
            f"Punch accepted for user {user.id} on event {resolved.event_id}: "
            f"{result.progress}/{resolved.rules.target_punches}"
        )
        return PunchedResponse(
            progress=result.progress,
            remaining=resolved.rules.target_punches - result.progress,
        )

    def _ensure_user(self, user: CurrentUser) -> None:
        """Mirror the identity locally; failures are logged, not fatal."""
        try:
            existing = self.db.get(PunchUser, user.id)
            if existing is None:
                self.db.add(PunchUser(id=user.id, email=user.email, name=user.name or "User"))
            else:
                existing.email = user.email
                if user.name:
                    existing.name = user.name
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"User upsert failed for {user.id}: {e}")

    def _record_punch(
        self,
        card: PunchCard,
        resolved: ResolvedTag,
        user_id: str,
        now: datetime,
        location: Optional[PunchLocation],
    ) -> Punch:
        punch = Punch(
            card_id=card.id,
            tag_id=resolved.tag_id,
            user_id=user_id,
            event_id=resolved.event_id,
            timestamp=now,
            latitude=location.latitude if location else None,
            longitude=location.longitude if location else None,
        )
        try:
            self.db.add(punch)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreFailure("record punch", e) from e
        return punch

    def _advance_progress(
        self, card: PunchCard, punch: Punch, rules: EventRules, now: datetime
    ) -> ProgressUpdate:
        """
        Increment card progress with a compare-and-swap on the current value.

        Only the request whose update moves the card to completed sees
        ``completed=True``, so a threshold crossing issues one reward even
        under concurrent taps. When another tap changed the card first, the
        earning rules are checked again against that tap's punch before
        retrying; a violation discards this punch and is raised.
        """
        expected, status = card.progress, card.status

        for _ in range(MAX_PROGRESS_ATTEMPTS):
            if status != CardStatus.ACTIVE:
                break

            new_progress = expected + 1
            is_completed = new_progress >= rules.target_punches
            try:
                result = self.db.execute(
                    update(PunchCard)
                    .where(
                        PunchCard.id == card.id,
                        PunchCard.status == CardStatus.ACTIVE,
                        PunchCard.progress == expected,
                    )
                    .values(
                        progress=new_progress,
                        status=CardStatus.COMPLETED if is_completed else CardStatus.ACTIVE,
                        completed_at=now if is_completed else None,
                    )
                    .execution_options(synchronize_session=False)
                )
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                raise StoreFailure("update card progress", e) from e

            if result.rowcount == 1:
                self.db.expire(card)
                return ProgressUpdate(progress=new_progress, completed=is_completed)

            expected, status = self._reload_progress(card.id)
            if status == CardStatus.ACTIVE:
                self._recheck_rules(punch, rules, now)
            logger.info(f"Card {card.id} changed concurrently, retrying progress update")

        logger.warning(f"Giving up on progress update for card {card.id} after concurrent taps")
        raise ConcurrentTapConflict()

    def _recheck_rules(self, punch: Punch, rules: EventRules, now: datetime) -> None:
        try:
            self.rules.check(
                rules, punch.user_id, punch.event_id, now, exclude_punch_id=punch.id
            )
        except RuleViolation:
            self._discard_punch(punch)
            raise

    def _discard_punch(self, punch: Punch) -> None:
        """Remove the punch of a tap rejected after it was recorded."""
        try:
            self.db.delete(punch)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreFailure("discard punch", e) from e

    def _reload_progress(self, card_id: int) -> Tuple[int, CardStatus]:
        try:
            row = (
                self.db.query(PunchCard.progress, PunchCard.status)
                .filter(PunchCard.id == card_id)
                .one()
            )
        except SQLAlchemyError as e:
            raise StoreFailure("reload card", e) from e
        return row.progress, row.status
