# backend/modules/punchcards/services/reward_issuer.py

from datetime import datetime
import logging
import secrets
import string

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import get_settings
from ..exceptions import StoreFailure
from ..models.punch_models import PunchReward

logger = logging.getLogger(__name__)

REWARD_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_reward_code(length: int = 8) -> str:
    """Generate a random upper-case alphanumeric reward code"""
    return "".join(secrets.choice(REWARD_CODE_ALPHABET) for _ in range(length))


class RewardIssuer:
    """Mints the reward for a completed card"""

    def __init__(self, db: Session):
        self.db = db
        settings = get_settings()
        self.code_length = settings.reward_code_length
        self.max_attempts = max(1, settings.reward_code_max_attempts)
        self.strict = settings.strict_reward_issuance

    def issue(self, card_id: int, event_id: int, user_id: str, now: datetime) -> str:
        """
        Persist a reward and return its code.

        The card is already completed when this runs, so by default a failed
        insert is logged and the code is still returned to the customer.
        With ``strict_reward_issuance`` the failure raises StoreFailure.
        """
        code = generate_reward_code(self.code_length)
        last_error = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                self.db.add(
                    PunchReward(
                        card_id=card_id,
                        event_id=event_id,
                        user_id=user_id,
                        code=code,
                        issued_at=now,
                        redeemed_at=None,
                    )
                )
                self.db.commit()
                logger.info(f"Issued reward {code} for card {card_id} (event {event_id})")
                return code
            except IntegrityError as e:
                # code collision; try again with a fresh one
                self.db.rollback()
                last_error = e
                logger.warning(f"Reward code collision on attempt {attempt} for card {card_id}")
                code = generate_reward_code(self.code_length)
            except SQLAlchemyError as e:
                self.db.rollback()
                last_error = e
                break

        logger.error(
            f"Reward creation failed for card {card_id}, event {event_id}, "
            f"user {user_id}; returning unsaved code {code}: {last_error}"
        )
        if self.strict:
            raise StoreFailure("issue reward", last_error)
        return code
