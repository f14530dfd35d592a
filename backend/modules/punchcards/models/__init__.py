# backend/modules/punchcards/models/__init__.py

from .punch_models import (
    TagStatus,
    EventStatus,
    CardStatus,
    PunchUser,
    Establishment,
    PunchEvent,
    PunchTag,
    PunchCard,
    Punch,
    PunchReward,
)

__all__ = [
    "TagStatus",
    "EventStatus",
    "CardStatus",
    "PunchUser",
    "Establishment",
    "PunchEvent",
    "PunchTag",
    "PunchCard",
    "Punch",
    "PunchReward",
]
