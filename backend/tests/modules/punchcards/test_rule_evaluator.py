# backend/tests/modules/punchcards/test_rule_evaluator.py

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from modules.punchcards.exceptions import CooldownActive, DailyLimitReached
from modules.punchcards.schemas.punch_schemas import EventRules
from modules.punchcards.services.clock import local_day_bounds
from modules.punchcards.services.rule_evaluator import PunchHistory, RuleEvaluator
from tests.factories import PunchCardFactory, PunchFactory

T = datetime(2026, 3, 10, 9, 0)


@pytest.fixture
def card(db_session):
    return PunchCardFactory()


@pytest.fixture
def evaluator(db_session):
    return RuleEvaluator(PunchHistory(db_session), timezone.utc)


def punch_at(card, moment):
    return PunchFactory(card=card, timestamp=moment)


class TestCooldown:
    RULES = EventRules(target_punches=5, cooldown_hours=1)

    def test_first_punch_is_never_in_cooldown(self, evaluator, card):
        evaluator.check(self.RULES, card.user_id, card.event_id, T)

    def test_rejected_inside_window(self, evaluator, card):
        punch_at(card, T)

        with pytest.raises(CooldownActive) as exc_info:
            evaluator.check(
                self.RULES, card.user_id, card.event_id, datetime(2026, 3, 10, 9, 59)
            )

        error = exc_info.value
        assert error.next_eligible_at == datetime(2026, 3, 10, 10, 0)
        assert error.minutes_remaining == 1
        assert error.message == "You can punch again in 1 minutes"
        assert error.status_code == 400

    def test_minutes_are_rounded_up(self, evaluator, card):
        punch_at(card, T)

        with pytest.raises(CooldownActive) as exc_info:
            evaluator.check(
                self.RULES, card.user_id, card.event_id, datetime(2026, 3, 10, 9, 0, 30)
            )
        assert exc_info.value.minutes_remaining == 60

    def test_allowed_after_window(self, evaluator, card):
        punch_at(card, T)

        evaluator.check(self.RULES, card.user_id, card.event_id, datetime(2026, 3, 10, 10, 1))

    def test_allowed_exactly_at_window_end(self, evaluator, card):
        punch_at(card, T)

        evaluator.check(self.RULES, card.user_id, card.event_id, datetime(2026, 3, 10, 10, 0))

    def test_uses_latest_punch(self, evaluator, card):
        punch_at(card, datetime(2026, 3, 10, 7, 0))
        punch_at(card, datetime(2026, 3, 10, 8, 30))

        with pytest.raises(CooldownActive) as exc_info:
            evaluator.check(self.RULES, card.user_id, card.event_id, T)
        assert exc_info.value.next_eligible_at == datetime(2026, 3, 10, 9, 30)

    def test_other_events_do_not_count(self, evaluator, card):
        other_card = PunchCardFactory(user_id=card.user_id)
        punch_at(other_card, T)

        evaluator.check(self.RULES, card.user_id, card.event_id, T)

    def test_own_punch_can_be_excluded(self, evaluator, card):
        own = punch_at(card, T)

        evaluator.check(self.RULES, card.user_id, card.event_id, T, exclude_punch_id=own.id)

    def test_excluding_own_punch_still_sees_concurrent_tap(self, evaluator, card):
        punch_at(card, T)
        own = punch_at(card, T)

        with pytest.raises(CooldownActive):
            evaluator.check(
                self.RULES, card.user_id, card.event_id, T, exclude_punch_id=own.id
            )

    def test_disabled_when_zero(self, evaluator, card):
        punch_at(card, T)

        evaluator.check(EventRules(target_punches=5), card.user_id, card.event_id, T)


class TestDailyLimit:
    RULES = EventRules(target_punches=10, max_punches_per_day=2)

    def test_allowed_below_limit(self, evaluator, card):
        punch_at(card, datetime(2026, 3, 10, 8, 0))

        evaluator.check(self.RULES, card.user_id, card.event_id, T)

    def test_rejected_at_limit(self, evaluator, card):
        punch_at(card, datetime(2026, 3, 10, 7, 0))
        punch_at(card, datetime(2026, 3, 10, 8, 0))

        with pytest.raises(DailyLimitReached) as exc_info:
            evaluator.check(self.RULES, card.user_id, card.event_id, T)

        error = exc_info.value
        assert error.next_eligible_at == datetime(2026, 3, 11, 0, 0)
        assert error.message == "Daily limit reached (2 punches per day)"

    def test_yesterday_does_not_count(self, evaluator, card):
        punch_at(card, datetime(2026, 3, 9, 23, 59))
        punch_at(card, datetime(2026, 3, 9, 23, 58))

        evaluator.check(self.RULES, card.user_id, card.event_id, datetime(2026, 3, 10, 0, 1))

    def test_own_punch_not_counted_when_excluded(self, evaluator, card):
        punch_at(card, datetime(2026, 3, 10, 8, 0))
        own = punch_at(card, T)

        evaluator.check(self.RULES, card.user_id, card.event_id, T, exclude_punch_id=own.id)

    def test_midnight_belongs_to_new_day(self, evaluator, card):
        punch_at(card, datetime(2026, 3, 10, 0, 0))
        punch_at(card, datetime(2026, 3, 10, 0, 0, 1))

        with pytest.raises(DailyLimitReached):
            evaluator.check(self.RULES, card.user_id, card.event_id, T)

    def test_cooldown_checked_first(self, evaluator, card):
        punch_at(card, datetime(2026, 3, 10, 8, 0))
        punch_at(card, datetime(2026, 3, 10, 8, 30))
        rules = EventRules(target_punches=10, cooldown_hours=1, max_punches_per_day=2)

        with pytest.raises(CooldownActive):
            evaluator.check(rules, card.user_id, card.event_id, T)

    def test_local_day_in_configured_timezone(self, db_session, card):
        # 03:00 UTC on 10 March is still 9 March (23:00) in New York
        new_york = ZoneInfo("America/New_York")
        evaluator = RuleEvaluator(PunchHistory(db_session), new_york)
        punch_at(card, datetime(2026, 3, 9, 5, 0))
        punch_at(card, datetime(2026, 3, 9, 20, 0))

        with pytest.raises(DailyLimitReached) as exc_info:
            evaluator.check(
                self.RULES, card.user_id, card.event_id, datetime(2026, 3, 10, 3, 0)
            )
        assert exc_info.value.next_eligible_at == datetime(2026, 3, 10, 4, 0)


class TestLocalDayBounds:
    def test_utc(self):
        assert local_day_bounds(T, timezone.utc) == (
            datetime(2026, 3, 10),
            datetime(2026, 3, 11),
        )

    def test_spring_forward_day_is_23_hours(self):
        # US clocks go forward on 8 March 2026
        start, end = local_day_bounds(
            datetime(2026, 3, 8, 12, 0), ZoneInfo("America/New_York")
        )
        assert start == datetime(2026, 3, 8, 5, 0)
        assert end == datetime(2026, 3, 9, 4, 0)
