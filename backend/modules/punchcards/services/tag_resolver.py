# backend/modules/punchcards/services/tag_resolver.py

from dataclasses import dataclass
import logging

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import (
    EventInactive,
    EventMisconfigured,
    StoreFailure,
    TagInactive,
    TagNotFound,
)
from ..models.punch_models import EventStatus, PunchEvent, PunchTag, TagStatus
from ..schemas.punch_schemas import EventRules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedTag:
    tag_id: int
    event_id: int
    rules: EventRules


class TagResolver:
    """Resolves a scanned token to its campaign and checks both are usable"""

    def __init__(self, db: Session):
        self.db = db

    def resolve(self, token: str) -> ResolvedTag:
        """
        Look up the tag, its event status and rules in one query.

        Checks run in a fixed order and the first failure is raised:
        unknown (or unbound) tag, inactive tag, inactive event, invalid rules.

        Raises:
            TagNotFound, TagInactive, EventInactive, EventMisconfigured,
            StoreFailure
        """
        row = self._find_usable(token)

        try:
            rules = EventRules.model_validate(row.rules or {})
        except ValidationError as e:
            raise EventMisconfigured(row.event_id, str(e)) from e

        return ResolvedTag(tag_id=row.id, event_id=row.event_id, rules=rules)

    def ensure_tappable(self, token: str) -> None:
        """Status checks only; stored rules are left to the punch itself."""
        self._find_usable(token)

    def _find_usable(self, token: str):
        try:
            row = (
                self.db.query(
                    PunchTag.id,
                    PunchTag.status,
                    PunchEvent.id.label("event_id"),
                    PunchEvent.status.label("event_status"),
                    PunchEvent.rules,
                )
                .join(PunchEvent, PunchTag.event_id == PunchEvent.id)
                .filter(PunchTag.token == token)
                .first()
            )
        except SQLAlchemyError as e:
            raise StoreFailure("resolve tag", e) from e

        if row is None:
            logger.warning(
                f"Unknown or unassigned tag token scanned "
                f"(possible misprogrammed tag): {token[:6]}..."
            )
            raise TagNotFound()

        if row.status != TagStatus.ACTIVE:
            raise TagInactive()

        if row.event_status != EventStatus.ACTIVE:
            raise EventInactive()

        return row
