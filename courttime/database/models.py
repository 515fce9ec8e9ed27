"""
SQLAlchemy ORM models for the CourtTime booking system.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Date,
    DateTime,
    Time,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from courttime.database.db import Base


class UserType(str, enum.Enum):
    """Account type enum."""

    PLAYER = "player"
    ADMIN = "admin"


class CourtStatus(str, enum.Enum):
    """Court availability status enum."""

    AVAILABLE = "available"
    MAINTENANCE = "maintenance"
    CLOSED = "closed"


class MembershipStatus(str, enum.Enum):
    """Facility membership status enum."""

    ACTIVE = "active"
    PENDING = "pending"
    EXPIRED = "expired"
    SUSPENDED = "suspended"


class BookingStatus(str, enum.Enum):
    """Booking status enum."""

    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class NotificationType(str, enum.Enum):
    """Notification type enum."""

    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_REMINDER = "booking_reminder"
    COURT_CHANGE = "court_change"
    ANNOUNCEMENT = "announcement"


def _in_clause(column: str, enum_cls) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values})"


class User(Base):
    """User accounts with email/password authentication."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    user_type = Column(String(20), nullable=False, default=UserType.PLAYER.value)
    phone = Column(String(30), nullable=True)
    street_address = Column(Text, nullable=True)  # Lookup key into address_whitelist
    city = Column(String(100), nullable=True)
    state = Column(String(50), nullable=True)
    zip_code = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    memberships = relationship(
        "FacilityMembership", back_populates="user", cascade="all, delete-orphan"
    )
    bookings = relationship("Booking", back_populates="user")
    notifications = relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(_in_clause("user_type", UserType), name="ck_users_user_type"),
        Index("idx_users_address", "street_address"),
    )


class Facility(Base):
    """Clubs and HOA venues that own courts and have members."""

    __tablename__ = "facilities"

    id = Column(String(50), primary_key=True)  # Slug-style identifier (e.g., "sunrise-valley")
    name = Column(String(255), nullable=False)
    type = Column(String(100), nullable=True)  # e.g., "HOA Tennis & Pickleball Courts"
    address = Column(Text, nullable=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    courts = relationship("Court", back_populates="facility", cascade="all, delete-orphan")
    memberships = relationship(
        "FacilityMembership", back_populates="facility", cascade="all, delete-orphan"
    )
    whitelist_entries = relationship(
        "AddressWhitelistEntry", back_populates="facility", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("idx_facilities_name", "name"),)


class Court(Base):
    """Individual courts within a facility."""

    __tablename__ = "courts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    facility_id = Column(
        String(50), ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False
    )
    name = Column(String(100), nullable=False)
    court_number = Column(Integer, nullable=True)
    surface_type = Column(String(50), nullable=True)  # e.g., "Hard", "Clay"
    court_type = Column(String(50), nullable=True)  # e.g., "Tennis", "Pickleball", "Dual"
    is_indoor = Column(Boolean, default=False, nullable=False)
    has_lights = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default=CourtStatus.AVAILABLE.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    facility = relationship("Facility", back_populates="courts")
    bookings = relationship("Booking", back_populates="court")

    __table_args__ = (
        CheckConstraint(_in_clause("status", CourtStatus), name="ck_courts_status"),
        Index("idx_courts_facility_id", "facility_id"),
    )


class FacilityMembership(Base):
    """A user's membership at one facility."""

    __tablename__ = "facility_memberships"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    facility_id = Column(
        String(50), ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False
    )
    membership_type = Column(String(50), nullable=True)  # e.g., "Full", "Social", "Junior"
    status = Column(String(20), default=MembershipStatus.PENDING.value, nullable=False)
    is_facility_admin = Column(Boolean, default=False, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="memberships")
    facility = relationship("Facility", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("user_id", "facility_id", name="uq_facility_memberships_user_facility"),
        CheckConstraint(
            _in_clause("status", MembershipStatus), name="ck_facility_memberships_status"
        ),
        Index("idx_facility_memberships_facility_status", "facility_id", "status"),
    )


class Booking(Base):
    """One reservation of one court for one user on one date/time range."""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    court_id = Column(Integer, ForeignKey("courts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    facility_id = Column(
        String(50), ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False
    )
    booking_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False)  # Caller-supplied, not derived
    status = Column(String(20), default=BookingStatus.CONFIRMED.value, nullable=False)
    booking_type = Column(String(50), nullable=True)  # e.g., "singles", "doubles", "lesson"
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    court = relationship("Court", back_populates="bookings")
    user = relationship("User", back_populates="bookings")
    facility = relationship("Facility")

    # The non-overlap exclusion constraint is PostgreSQL-only and lives in
    # alembic migration 002.
    __table_args__ = (
        CheckConstraint(_in_clause("status", BookingStatus), name="ck_bookings_status"),
        CheckConstraint("end_time > start_time", name="ck_bookings_time_order"),
        Index("idx_bookings_date", "booking_date"),
        Index("idx_bookings_court_date", "court_id", "booking_date"),
        Index("idx_bookings_user", "user_id"),
        Index("idx_bookings_facility_date", "facility_id", "booking_date"),
    )


class AddressWhitelistEntry(Base):
    """Pre-approved resident address for a facility, with a household account cap."""

    __tablename__ = "address_whitelist"

    id = Column(Integer, primary_key=True, autoincrement=True)
    facility_id = Column(
        String(50), ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False
    )
    address = Column(Text, nullable=False)
    accounts_limit = Column(Integer, default=4, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    facility = relationship("Facility", back_populates="whitelist_entries")

    __table_args__ = (
        UniqueConstraint("facility_id", "address", name="uq_address_whitelist_facility_address"),
        CheckConstraint("accounts_limit >= 1", name="ck_address_whitelist_accounts_limit"),
        Index("idx_whitelist_facility", "facility_id"),
    )


class Notification(Base):
    """In-app user notifications."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(50), nullable=False)
    priority = Column(String(10), default="low", nullable=False)  # low / medium / high
    is_read = Column(Boolean, default=False, nullable=False)
    action_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User", back_populates="notifications")

    __table_args__ = (
        Index("idx_notifications_user", "user_id"),
        Index("idx_notifications_user_read", "user_id", "is_read"),
    )


class Conversation(Base):
    """A two-person message thread within one facility."""

    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    facility_id = Column(
        String(50), ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False
    )
    # Stored lower id first, so one pair has one row per facility
    participant1_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    participant2_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )

    __table_args__ = (
        UniqueConstraint(
            "facility_id", "participant1_id", "participant2_id", name="uq_conversations_pair"
        ),
        CheckConstraint("participant1_id < participant2_id", name="ck_conversations_pair_order"),
        Index("idx_conversations_facility", "facility_id"),
    )


class Message(Base):
    """One message in a conversation."""

    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(
        Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    message_text = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    conversation = relationship("Conversation", back_populates="messages")

    __table_args__ = (
        Index("idx_messages_conversation", "conversation_id"),
        Index("idx_messages_sender", "sender_id"),
    )
