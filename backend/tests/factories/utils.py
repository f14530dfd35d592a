# backend/tests/factories/utils.py

from datetime import datetime, timedelta
from typing import Dict

from core.auth import create_access_token
from modules.punchcards.services.clock import Clock


class FrozenClock(Clock):
    """Clock pinned to a fixed naive-UTC instant; advance it explicitly."""

    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta) -> datetime:
        self.current = self.current + timedelta(**delta)
        return self.current


def rules(
    target_punches: int = 5,
    cooldown_hours: int = 0,
    max_punches_per_day: int = 0,
    allow_repeat: bool = True,
) -> Dict:
    """Stored rules JSON for an event."""
    return {
        "target_punches": target_punches,
        "cooldown_hours": cooldown_hours,
        "max_punches_per_day": max_punches_per_day,
        "allow_repeat": allow_repeat,
    }


def auth_headers_for(user_id: str, email: str = None, name: str = None) -> Dict[str, str]:
    token = create_access_token(
        subject=user_id, email=email or f"{user_id}@example.com", name=name
    )
    return {"Authorization": f"Bearer {token}"}
