# backend/modules/punchcards/models/punch_models.py

from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Float,
    Text,
    JSON,
    Enum as SQLEnum,
    Index,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from core.database import Base
from core.mixins import TimestampMixin
from enum import Enum


class TagStatus(str, Enum):
    """Lifecycle of a physical NFC tag"""
    INACTIVE = "inactive"    # Shipped or registered, not yet usable
    ACTIVE = "active"        # Accepts taps
    DISABLED = "disabled"    # Switched off by the business
    STOLEN = "stolen"        # Reported stolen, must never punch again


class EventStatus(str, Enum):
    """Status of a punch card campaign"""
    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"


class CardStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


def _value_enum(enum_class):
    # persist the lower-case values, not the member names
    return SQLEnum(enum_class, values_callable=lambda members: [m.value for m in members])


class PunchUser(Base, TimestampMixin):
    """Local mirror of an identity provider account"""
    __tablename__ = "punch_users"

    id = Column(String(64), primary_key=True)  # identity provider subject
    email = Column(String(255), nullable=False)
    name = Column(String(200), nullable=True)

    def __repr__(self):
        return f"<PunchUser(id='{self.id}', email='{self.email}')>"


class Establishment(Base, TimestampMixin):
    """Business tenant owning campaigns and tags"""
    __tablename__ = "establishments"

    id = Column(Integer, primary_key=True, index=True)
    owner_user_id = Column(String(64), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(String(500), nullable=True)

    events = relationship("PunchEvent", back_populates="establishment")

    def __repr__(self):
        return f"<Establishment(id={self.id}, name='{self.name}')>"


class PunchEvent(Base, TimestampMixin):
    """A loyalty campaign with its earning rules"""
    __tablename__ = "punch_events"

    id = Column(Integer, primary_key=True, index=True)
    establishment_id = Column(
        Integer, ForeignKey("establishments.id"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    # {target_punches, cooldown_hours, max_punches_per_day, allow_repeat};
    # validated into EventRules before use
    rules = Column(JSON, nullable=False, default=dict)
    status = Column(
        _value_enum(EventStatus), nullable=False, default=EventStatus.ACTIVE, index=True
    )

    establishment = relationship("Establishment", back_populates="events")
    tags = relationship("PunchTag", back_populates="event")

    def __repr__(self):
        return f"<PunchEvent(id={self.id}, name='{self.name}', status='{self.status}')>"


class PunchTag(Base, TimestampMixin):
    """Physical NFC credential; the token is a capability secret"""
    __tablename__ = "punch_tags"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(64), nullable=False, unique=True, index=True)
    activation_code = Column(String(32), nullable=True, unique=True)
    status = Column(
        _value_enum(TagStatus), nullable=False, default=TagStatus.INACTIVE, index=True
    )
    event_id = Column(Integer, ForeignKey("punch_events.id"), nullable=True, index=True)
    claimed_at = Column(DateTime, nullable=True)

    event = relationship("PunchEvent", back_populates="tags")

    def __repr__(self):
        return f"<PunchTag(id={self.id}, status='{self.status}', event_id={self.event_id})>"


class PunchCard(Base, TimestampMixin):
    """One customer's progress on one campaign"""
    __tablename__ = "punch_cards"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("punch_users.id"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("punch_events.id"), nullable=False, index=True)
    progress = Column(Integer, nullable=False, default=0)
    status = Column(_value_enum(CardStatus), nullable=False, default=CardStatus.ACTIVE)
    completed_at = Column(DateTime, nullable=True)

    event = relationship("PunchEvent")

    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="uq_punch_cards_user_event"),
        CheckConstraint("progress >= 0", name="progress_non_negative"),
    )

    def __repr__(self):
        return (
            f"<PunchCard(id={self.id}, user_id='{self.user_id}', "
            f"event_id={self.event_id}, progress={self.progress}, status='{self.status}')>"
        )


class Punch(Base, TimestampMixin):
    """Append-only record of one accepted tap"""
    __tablename__ = "punches"

    id = Column(Integer, primary_key=True, index=True)
    card_id = Column(Integer, ForeignKey("punch_cards.id"), nullable=False, index=True)
    tag_id = Column(Integer, ForeignKey("punch_tags.id"), nullable=False)
    user_id = Column(String(64), ForeignKey("punch_users.id"), nullable=False)
    event_id = Column(Integer, ForeignKey("punch_events.id"), nullable=False)
    timestamp = Column(DateTime, nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    __table_args__ = (
        # cooldown and daily-limit lookups
        Index("ix_punches_user_event_timestamp", "user_id", "event_id", "timestamp"),
    )

    def __repr__(self):
        return f"<Punch(id={self.id}, card_id={self.card_id}, timestamp={self.timestamp})>"


class PunchReward(Base, TimestampMixin):
    """Redeemable code issued when a card completes"""
    __tablename__ = "punch_rewards"

    id = Column(Integer, primary_key=True, index=True)
    card_id = Column(Integer, ForeignKey("punch_cards.id"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("punch_events.id"), nullable=False, index=True)
    user_id = Column(String(64), ForeignKey("punch_users.id"), nullable=False, index=True)
    code = Column(String(20), nullable=False, unique=True, index=True)
    issued_at = Column(DateTime, nullable=False)
    redeemed_at = Column(DateTime, nullable=True)  # NULL means available

    event = relationship("PunchEvent")
    user = relationship("PunchUser")

    @property
    def is_redeemed(self) -> bool:
        return self.redeemed_at is not None

    def __repr__(self):
        return f"<PunchReward(id={self.id}, code='{self.code}', redeemed={self.is_redeemed})>"
