# backend/modules/punchcards/routes/business_routes.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.auth import CurrentUser, get_current_user
from core.database import get_db
from core.rate_limiter import rate_limit
from ..schemas.punch_schemas import RewardValidationRequest, RewardValidationResponse
from ..services.clock import Clock, get_clock
from ..services.redemption_service import RedemptionService

router = APIRouter(prefix="/business", tags=["business"])


@router.post(
    "/validate-reward",
    response_model=RewardValidationResponse,
    response_model_exclude_none=True,
    # strict limit against code guessing
    dependencies=[Depends(rate_limit("strict"))],
)
def validate_reward(
    payload: RewardValidationRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """Check a customer's reward code and mark it redeemed"""
    service = RedemptionService(db, clock)
    establishment = service.get_owned_establishment(current_user.id)
    return service.redeem(establishment, payload.code)
