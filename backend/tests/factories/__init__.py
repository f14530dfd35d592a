# backend/tests/factories/__init__.py

"""
Shared test factories for the punch card backend.
"""

from .base import BaseFactory
from .punchcards import (
    PunchUserFactory,
    EstablishmentFactory,
    PunchEventFactory,
    PunchTagFactory,
    PunchCardFactory,
    PunchFactory,
    PunchRewardFactory,
)
from .utils import FrozenClock, auth_headers_for, rules

__all__ = [
    'BaseFactory',
    'PunchUserFactory',
    'EstablishmentFactory',
    'PunchEventFactory',
    'PunchTagFactory',
    'PunchCardFactory',
    'PunchFactory',
    'PunchRewardFactory',
    'FrozenClock',
    'auth_headers_for',
    'rules',
]
