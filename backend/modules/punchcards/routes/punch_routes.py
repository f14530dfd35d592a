# backend/modules/punchcards/routes/punch_routes.py

from typing import Optional
from urllib.parse import quote
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from core.auth import CurrentUser, get_current_user_optional
from core.database import get_db
from core.rate_limiter import rate_limit
from ..exceptions import (
    EventInactive,
    PunchError,
    TagInactive,
    TagNotFound,
    Unauthenticated,
)
from ..schemas.punch_schemas import ErrorResponse, PunchRequest, PunchResponse
from ..services.clock import Clock, get_clock
from ..services.punch_engine import PunchEngine
from ..services.tag_resolver import TagResolver

logger = logging.getLogger(__name__)
router = APIRouter(tags=["punch"])


async def require_customer(
    user: Optional[CurrentUser] = Depends(get_current_user_optional),
) -> CurrentUser:
    if user is None:
        raise Unauthenticated()
    return user


@router.post(
    "/punch",
    response_model=PunchResponse,
    dependencies=[Depends(rate_limit("standard"))],
    responses={
        400: {"model": ErrorResponse, "description": "Tap rejected by a rule"},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse, "description": "Unknown tag"},
        409: {"model": ErrorResponse, "description": "Concurrent tap on the same card"},
        500: {"model": ErrorResponse},
    },
)
def punch(
    payload: PunchRequest,
    user: CurrentUser = Depends(require_customer),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Record a tag tap for the signed-in customer.

    Returns ``punched`` with the new progress, ``completed`` with a reward
    code, or an error envelope with ``next_eligible_at`` for cooldown and
    daily-limit rejections.
    """
    engine = PunchEngine(db, clock)
    return engine.punch(user, payload.token, payload.location)


@router.get("/t/{token}", include_in_schema=False)
def tap_landing(token: str, db: Session = Depends(get_db)):
    """Entry point encoded on the NFC tag; forwards to the tap page."""
    try:
        TagResolver(db).ensure_tappable(token)
    except (TagNotFound, TagInactive):
        return RedirectResponse("/?error=invalid_tag")
    except EventInactive:
        return RedirectResponse("/?error=event_ended")
    except PunchError as e:
        logger.error(f"NFC tap error for token {token[:6]}...: {e.message}")
        return RedirectResponse("/?error=server_error")

    return RedirectResponse(f"/tap?token={quote(token, safe='')}")
