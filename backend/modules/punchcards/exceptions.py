# backend/modules/punchcards/exceptions.py

"""
Punch error taxonomy.

Every rejection of a tap is a ``PunchError`` carrying the HTTP status, a
machine-readable code and the message shown to the customer. Rule
violations also carry the time at which the next punch becomes eligible.
"""

from datetime import datetime, timezone
from typing import Optional
import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from core.exceptions import error_envelope

logger = logging.getLogger(__name__)


class PunchError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "PUNCH_REJECTED"
    default_message = "Punch rejected"

    def __init__(
        self,
        message: Optional[str] = None,
        next_eligible_at: Optional[datetime] = None,
    ):
        self.message = message or self.default_message
        self.next_eligible_at = next_eligible_at
        super().__init__(self.message)


class Unauthenticated(PunchError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHENTICATED"
    default_message = "Please sign in to continue"


class TagNotFound(PunchError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "TAG_NOT_FOUND"
    default_message = "Tag not found"


class TagInactive(PunchError):
    error_code = "TAG_INACTIVE"
    default_message = "This tag is no longer active"


class EventInactive(PunchError):
    error_code = "EVENT_INACTIVE"
    default_message = "This event has ended"


class AlreadyCompleted(PunchError):
    error_code = "ALREADY_COMPLETED"
    default_message = (
        "This punch card is already completed! "
        "Repeat cards are not allowed for this event."
    )


class RuleViolation(PunchError):
    """Expected business rejection; clients render a countdown from it"""


class CooldownActive(RuleViolation):
    error_code = "COOLDOWN_ACTIVE"

    def __init__(self, next_eligible_at: datetime, minutes_remaining: int):
        self.minutes_remaining = minutes_remaining
        super().__init__(
            f"You can punch again in {minutes_remaining} minutes", next_eligible_at
        )


class DailyLimitReached(RuleViolation):
    error_code = "DAILY_LIMIT_REACHED"

    def __init__(self, next_eligible_at: datetime, max_punches_per_day: int):
        self.max_punches_per_day = max_punches_per_day
        super().__init__(
            f"Daily limit reached ({max_punches_per_day} punches per day)",
            next_eligible_at,
        )


class ConcurrentTapConflict(PunchError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONCURRENT_TAP"
    default_message = "This card was just updated by another tap. Please try again."


class StoreFailure(PunchError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "STORE_FAILURE"
    default_message = "Server error occurred"

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        super().__init__()


class EventMisconfigured(PunchError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "EVENT_MISCONFIGURED"
    default_message = "Server error occurred"

    def __init__(self, event_id: int, reason: str):
        self.event_id = event_id
        self.reason = reason
        super().__init__()


def to_utc_iso(moment: datetime) -> str:
    """Render a stored naive-UTC datetime as an ISO 8601 string with offset."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat()


async def handle_punch_error(request: Request, exc: PunchError) -> JSONResponse:
    """Render a PunchError in the punch response envelope"""
    if isinstance(exc, StoreFailure):
        logger.error(f"Store failure during {exc.operation} at {request.url.path}: {exc.cause!r}")
    elif isinstance(exc, EventMisconfigured):
        logger.error(f"Event {exc.event_id} has invalid rules: {exc.reason}")

    next_eligible_at = (
        to_utc_iso(exc.next_eligible_at) if exc.next_eligible_at is not None else None
    )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.message, next_eligible_at=next_eligible_at),
        headers=headers,
    )
