# backend/tests/modules/punchcards/test_card_lifecycle.py

import pytest
from unittest.mock import Mock
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from modules.punchcards.exceptions import AlreadyCompleted, StoreFailure
from modules.punchcards.models.punch_models import CardStatus, PunchCard
from modules.punchcards.schemas.punch_schemas import EventRules
from modules.punchcards.services.card_lifecycle import (
    CardFound,
    CardLifecycleManager,
    CardNotFound,
    CardStoreError,
)
from tests.factories import PunchCardFactory, PunchEventFactory, PunchUserFactory

REPEAT = EventRules(target_punches=3, allow_repeat=True)
NO_REPEAT = EventRules(target_punches=3, allow_repeat=False)


class TestCardLookup:
    def test_found(self, db_session):
        card = PunchCardFactory()

        result = CardLifecycleManager(db_session).lookup(card.user_id, card.event_id)

        assert isinstance(result, CardFound)
        assert result.card.id == card.id

    def test_not_found(self, db_session):
        event = PunchEventFactory()

        result = CardLifecycleManager(db_session).lookup("nobody", event.id)

        assert isinstance(result, CardNotFound)

    def test_store_error(self):
        db = Mock(spec=Session)
        db.query.side_effect = OperationalError("SELECT", {}, Exception("timeout"))

        result = CardLifecycleManager(db).lookup("user-1", 1)

        assert isinstance(result, CardStoreError)
        assert isinstance(result.cause, OperationalError)


class TestGetUsableCard:
    def test_creates_card_on_first_tap(self, db_session):
        user = PunchUserFactory()
        event = PunchEventFactory()

        card = CardLifecycleManager(db_session).get_usable_card(user.id, event.id, REPEAT)

        assert card.id is not None
        assert card.progress == 0
        assert card.status == CardStatus.ACTIVE
        assert db_session.query(PunchCard).count() == 1

    def test_returns_existing_active_card(self, db_session):
        existing = PunchCardFactory(progress=2)

        card = CardLifecycleManager(db_session).get_usable_card(
            existing.user_id, existing.event_id, REPEAT
        )

        assert card.id == existing.id
        assert card.progress == 2
        assert db_session.query(PunchCard).count() == 1

    def test_store_error_is_not_treated_as_missing(self):
        db = Mock(spec=Session)
        db.query.side_effect = OperationalError("SELECT", {}, Exception("timeout"))

        with pytest.raises(StoreFailure):
            CardLifecycleManager(db).get_usable_card("user-1", 1, REPEAT)

        db.add.assert_not_called()

    def test_completed_card_reset_when_repeat_allowed(self, db_session):
        existing = PunchCardFactory(completed=True, progress=3)

        card = CardLifecycleManager(db_session).get_usable_card(
            existing.user_id, existing.event_id, REPEAT
        )

        assert card.id == existing.id
        assert card.progress == 0
        assert card.status == CardStatus.ACTIVE
        assert card.completed_at is None

    def test_completed_card_rejected_without_repeat(self, db_session):
        existing = PunchCardFactory(completed=True, progress=3)

        with pytest.raises(AlreadyCompleted):
            CardLifecycleManager(db_session).get_usable_card(
                existing.user_id, existing.event_id, NO_REPEAT
            )

        db_session.refresh(existing)
        assert existing.status == CardStatus.COMPLETED
        assert existing.progress == 3

    def test_concurrently_created_card_is_reused(self, db_session):
        existing = PunchCardFactory(progress=1)
        manager = CardLifecycleManager(db_session)

        # first lookup misses (the other request has not committed yet),
        # the insert then hits the unique constraint
        original_lookup = manager.lookup
        calls = []

        def racing_lookup(user_id, event_id):
            calls.append((user_id, event_id))
            if len(calls) == 1:
                return CardNotFound()
            return original_lookup(user_id, event_id)

        manager.lookup = racing_lookup

        card = manager.get_usable_card(existing.user_id, existing.event_id, REPEAT)

        assert card.id == existing.id
        assert len(calls) == 2
        assert db_session.query(PunchCard).count() == 1
