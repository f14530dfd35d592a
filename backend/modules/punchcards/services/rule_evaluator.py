# backend/modules/punchcards/services/rule_evaluator.py

"""
Earning-rule checks for a tap.

Rules are evaluated in a fixed order and the first violation is raised;
later rules are not consulted once one fails.

1. Cooldown (``cooldown_hours > 0``): the last punch for this user and
   event must be at least ``cooldown_hours`` old.
2. Daily limit (``max_punches_per_day > 0``): fewer than
   ``max_punches_per_day`` punches since the start of the current calendar
   day in the configured timezone.
"""

from datetime import datetime, timedelta, tzinfo
from typing import Optional
import logging
import math

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import CooldownActive, DailyLimitReached, StoreFailure
from ..models.punch_models import Punch
from ..schemas.punch_schemas import EventRules
from .clock import local_day_bounds

logger = logging.getLogger(__name__)


class PunchHistory:
    """Punch queries backing the rule checks"""

    def __init__(self, db: Session):
        self.db = db

    def _for(self, query, user_id: str, event_id: int, exclude_punch_id: Optional[int]):
        query = query.filter(Punch.user_id == user_id, Punch.event_id == event_id)
        if exclude_punch_id is not None:
            query = query.filter(Punch.id != exclude_punch_id)
        return query

    def last_punch_time(
        self, user_id: str, event_id: int, exclude_punch_id: Optional[int] = None
    ) -> Optional[datetime]:
        try:
            return self._for(
                self.db.query(func.max(Punch.timestamp)), user_id, event_id, exclude_punch_id
            ).scalar()
        except SQLAlchemyError as e:
            raise StoreFailure("load last punch", e) from e

    def count_since(
        self,
        user_id: str,
        event_id: int,
        since: datetime,
        exclude_punch_id: Optional[int] = None,
    ) -> int:
        try:
            return (
                self._for(
                    self.db.query(func.count(Punch.id)), user_id, event_id, exclude_punch_id
                )
                .filter(Punch.timestamp >= since)
                .scalar()
            ) or 0
        except SQLAlchemyError as e:
            raise StoreFailure("count daily punches", e) from e


class RuleEvaluator:
    def __init__(self, history: PunchHistory, tz: Optional[tzinfo] = None):
        self.history = history
        self.tz = tz

    def check(
        self,
        rules: EventRules,
        user_id: str,
        event_id: int,
        now: datetime,
        exclude_punch_id: Optional[int] = None,
    ) -> None:
        """
        Raise the first violated rule, or return if the tap may proceed.

        ``exclude_punch_id`` leaves the caller's own, already recorded punch
        out of the history when a tap is re-checked.
        """
        if rules.cooldown_hours > 0:
            self._check_cooldown(rules, user_id, event_id, now, exclude_punch_id)

        if rules.max_punches_per_day > 0:
            self._check_daily_limit(rules, user_id, event_id, now, exclude_punch_id)

    def _check_cooldown(
        self,
        rules: EventRules,
        user_id: str,
        event_id: int,
        now: datetime,
        exclude_punch_id: Optional[int],
    ) -> None:
        last_punch = self.history.last_punch_time(user_id, event_id, exclude_punch_id)
        if last_punch is None:
            return

        cooldown_end = last_punch + timedelta(hours=rules.cooldown_hours)
        if now < cooldown_end:
            minutes_left = math.ceil((cooldown_end - now).total_seconds() / 60)
            logger.info(
                f"Cooldown active for user {user_id} on event {event_id} "
                f"until {cooldown_end.isoformat()}"
            )
            raise CooldownActive(cooldown_end, minutes_left)

    def _check_daily_limit(
        self,
        rules: EventRules,
        user_id: str,
        event_id: int,
        now: datetime,
        exclude_punch_id: Optional[int],
    ) -> None:
        day_start, next_day_start = local_day_bounds(now, self.tz)
        punches_today = self.history.count_since(
            user_id, event_id, day_start, exclude_punch_id
        )

        if punches_today >= rules.max_punches_per_day:
            logger.info(
                f"Daily limit reached for user {user_id} on event {event_id} "
                f"({punches_today}/{rules.max_punches_per_day})"
            )
            raise DailyLimitReached(next_day_start, rules.max_punches_per_day)
