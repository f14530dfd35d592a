# backend/modules/punchcards/schemas/punch_schemas.py

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Literal, Union
from datetime import datetime


class EventRules(BaseModel):
    """Earning rules of a campaign, validated before any rule is applied"""

    model_config = ConfigDict(extra="ignore", frozen=True)

    target_punches: int = Field(..., ge=1, le=100)
    cooldown_hours: int = Field(0, ge=0, le=168)  # max one week
    max_punches_per_day: int = Field(0, ge=0, le=50)  # 0 means no limit
    allow_repeat: bool = False

    @field_validator("cooldown_hours", "max_punches_per_day", mode="before")
    @classmethod
    def none_means_disabled(cls, v):
        return 0 if v is None else v

    @field_validator("allow_repeat", mode="before")
    @classmethod
    def none_means_no_repeat(cls, v):
        return False if v is None else v


# Punch endpoint
class PunchLocation(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class PunchRequest(BaseModel):
    token: str
    location: Optional[PunchLocation] = None

    @field_validator("token")
    @classmethod
    def token_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Token is required")
        return v.strip()


class RewardCode(BaseModel):
    code: str


class PunchedResponse(BaseModel):
    status: Literal["punched"] = "punched"
    progress: int
    remaining: int


class CompletedResponse(BaseModel):
    status: Literal["completed"] = "completed"
    reward: RewardCode


PunchResponse = Union[CompletedResponse, PunchedResponse]


class ErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    message: str
    next_eligible_at: Optional[datetime] = None


# Customer views
class EventRef(BaseModel):
    id: int
    name: str
    description: Optional[str] = None


class EstablishmentRef(BaseModel):
    id: int
    name: str


class CardSummary(BaseModel):
    id: int
    currentPunches: int
    targetPunches: int
    status: str
    createdAt: datetime
    completedAt: Optional[datetime] = None
    event: EventRef
    establishment: EstablishmentRef


class CardListResponse(BaseModel):
    status: Literal["success"] = "success"
    cards: List[CardSummary]


class RewardSummary(BaseModel):
    id: int
    code: str
    redeemed: bool
    createdAt: datetime
    redeemedAt: Optional[datetime] = None
    event: EventRef
    establishment: EstablishmentRef


class RewardListResponse(BaseModel):
    status: Literal["success"] = "success"
    rewards: List[RewardSummary]


# Business reward validation
class RewardValidationRequest(BaseModel):
    code: str

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("Reward code is required")
        return v


class RedeemedRewardDetails(BaseModel):
    code: str
    event_name: str
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    issued_at: datetime


class RewardValidationResponse(BaseModel):
    valid: bool
    message: str
    redeemed_at: Optional[datetime] = None
    reward: Optional[RedeemedRewardDetails] = None
