# backend/tests/modules/punchcards/test_business_routes.py

from datetime import datetime

import pytest

from modules.punchcards.models.punch_models import PunchReward
from tests.factories import (
    EstablishmentFactory,
    PunchCardFactory,
    PunchEventFactory,
    PunchRewardFactory,
    PunchUserFactory,
    auth_headers_for,
)


@pytest.fixture
def shop():
    return EstablishmentFactory(owner_user_id="owner-shop", name="Corner Cafe")


@pytest.fixture
def reward(shop):
    customer = PunchUserFactory(email="jo@example.com", name="Jo")
    event = PunchEventFactory(establishment=shop, name="Free Muffin")
    card = PunchCardFactory(user=customer, event=event, completed=True)
    return PunchRewardFactory(card=card, code="MUFFIN42")


def validate(client, code, owner="owner-shop"):
    return client.post(
        "/business/validate-reward",
        json={"code": code},
        headers=auth_headers_for(owner),
    )


class TestValidateReward:
    def test_redeems_valid_code(self, client, db_session, shop, reward):
        response = validate(client, "MUFFIN42")

        assert response.status_code == 200
        assert response.json() == {
            "valid": True,
            "message": "Reward is valid! Marked as redeemed.",
            "reward": {
                "code": "MUFFIN42",
                "event_name": "Free Muffin",
                "customer_email": "jo@example.com",
                "customer_name": "Jo",
                "issued_at": "2026-03-10T09:00:00",
            },
        }
        db_session.expire_all()
        assert db_session.get(PunchReward, reward.id).redeemed_at == datetime(2026, 3, 10, 9, 0)

    def test_code_is_normalised(self, client, shop, reward):
        response = validate(client, "  muffin42 ")

        assert response.json()["valid"] is True

    def test_second_redemption_is_rejected(self, client, shop, reward):
        validate(client, "MUFFIN42")

        response = validate(client, "MUFFIN42")

        assert response.status_code == 200
        assert response.json() == {
            "valid": False,
            "message": "This reward has already been redeemed",
            "redeemed_at": "2026-03-10T09:00:00",
        }

    def test_unknown_code(self, client, shop):
        response = validate(client, "NOPE0000")

        assert response.json() == {"valid": False, "message": "Invalid reward code"}

    def test_code_of_another_business(self, client, db_session, shop):
        foreign = PunchRewardFactory(code="ELSEWHERE")

        response = validate(client, "ELSEWHERE")

        assert response.json() == {
            "valid": False,
            "message": "This reward code is not for your business",
        }
        db_session.expire_all()
        assert db_session.get(PunchReward, foreign.id).redeemed_at is None

    def test_caller_without_business(self, client, reward):
        response = validate(client, "MUFFIN42", owner="just-a-customer")

        assert response.status_code == 404
        assert response.json()["message"] == "No business account found"
        assert response.json()["error_code"] == "NO_BUSINESS"

    def test_blank_code(self, client, shop):
        response = validate(client, "  ")

        assert response.status_code == 400
        assert response.json()["message"] == "Reward code is required"

    def test_requires_authentication(self, client):
        response = client.post("/business/validate-reward", json={"code": "MUFFIN42"})

        assert response.status_code == 401

    def test_strict_rate_limit(self, client, shop):
        for _ in range(5):
            validate(client, "GUESS000")

        response = validate(client, "GUESS001")

        assert response.status_code == 429
        assert response.headers["X-RateLimit-Limit"] == "5"
