# backend/modules/punchcards/routes/customer_routes.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.auth import CurrentUser, get_current_user
from core.database import get_db
from ..schemas.punch_schemas import CardListResponse, RewardListResponse
from ..services.customer_service import CustomerService

router = APIRouter(prefix="/customer", tags=["customer"])


@router.get("/cards", response_model=CardListResponse)
def list_cards(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """All cards (active and completed) of the signed-in customer"""
    return CardListResponse(cards=CustomerService(db).list_cards(current_user.id))


@router.get("/rewards", response_model=RewardListResponse)
def list_rewards(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """All rewards (used and unused) of the signed-in customer"""
    return RewardListResponse(rewards=CustomerService(db).list_rewards(current_user.id))
