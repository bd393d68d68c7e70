"""
SQLAlchemy ORM models for the stadium booking system.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Float,
    Date,
    Time,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from backend.database.db import Base
from backend.utils.datetime_utils import utcnow


class RoomStatus(str, enum.Enum):
    """Individual room status enum."""

    OPEN = "OPEN"
    FULL = "FULL"
    CANCELLED = "CANCELLED"


class TeamStatus(str, enum.Enum):
    """Team status enum."""

    ACTIVE = "ACTIVE"
    DISBANDED = "DISBANDED"


class TeamRoomStatus(str, enum.Enum):
    """Team room status enum."""

    OPEN = "OPEN"
    MATCHED = "MATCHED"
    CANCELLED = "CANCELLED"


class NotificationType(str, enum.Enum):
    """Notification type enum."""

    ROOM_JOINED = "ROOM_JOINED"
    ROOM_FULL = "ROOM_FULL"
    TEAM_INVITATION = "TEAM_INVITATION"
    BOOKING_CONFIRMATION = "BOOKING_CONFIRMATION"
    MATCH_REMINDER = "MATCH_REMINDER"
    TEAM_UPDATE = "TEAM_UPDATE"


class User(Base):
    """User accounts. Managed by the profile/auth services; read-only here."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, nullable=False, unique=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    profile_picture_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Branch(Base):
    """Physical venue with operating hours. Soft-deleted via is_active."""

    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    address = Column(Text, nullable=False)
    google_maps_url = Column(Text, nullable=True)
    operating_hours_start = Column(Time, nullable=False)
    operating_hours_end = Column(Time, nullable=False)
    contact_phone = Column(String(50), nullable=True)
    contact_email = Column(String, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(
            "operating_hours_end > operating_hours_start", name="ck_branches_operating_hours"
        ),
        Index("idx_branches_active_name", "is_active", "name"),
    )


class IndividualRoom(Base):
    """Solo-joinable practice slot with an owner and a participant cap."""

    __tablename__ = "individual_rooms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    scheduled_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    total_slots = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String(20), default=RoomStatus.OPEN.value, nullable=False)
    # Bumped at the start of every membership change to serialize writers
    lock_version = Column(Integer, default=0, server_default="0", nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    branch = relationship("Branch")
    owner = relationship("User")
    participants = relationship("IndividualRoomParticipant", back_populates="room")

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_individual_rooms_time_range"),
        CheckConstraint("total_slots >= 2", name="ck_individual_rooms_total_slots"),
        Index("idx_individual_rooms_branch_date", "branch_id", "scheduled_date"),
        Index("idx_individual_rooms_date_status", "scheduled_date", "status"),
    )


class IndividualRoomParticipant(Base):
    """A user's seat in an individual room. The owner holds the first seat."""

    __tablename__ = "individual_room_participants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    room_id = Column(Integer, ForeignKey("individual_rooms.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    joined_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    room = relationship("IndividualRoom", back_populates="participants")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("room_id", "user_id", name="uq_individual_room_participant"),
        Index("idx_individual_room_participants_user", "user_id"),
    )


class Team(Base):
    """Team with a captain and a fixed roster size."""

    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    logo_url = Column(String(500), nullable=True)
    captain_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    roster_size = Column(Integer, nullable=False)
    status = Column(String(20), default=TeamStatus.ACTIVE.value, nullable=False)
    lock_version = Column(Integer, default=0, server_default="0", nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    captain = relationship("User")
    members = relationship("TeamMember", back_populates="team")

    __table_args__ = (
        CheckConstraint("roster_size >= 2", name="ck_teams_roster_size"),
        Index("idx_teams_status_name", "status", "name"),
        Index("idx_teams_captain", "captain_id"),
    )


class TeamMember(Base):
    """Team membership row. The captain's row is created with the team."""

    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    joined_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    team = relationship("Team", back_populates="members")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_member"),
        Index("idx_team_members_user", "user_id"),
    )


class TeamRoom(Base):
    """Head-to-head match slot created by one team and joined by an opponent."""

    __tablename__ = "team_rooms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False)
    creator_team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    opponent_team_id = Column(Integer, ForeignKey("teams.id"), nullable=True)
    scheduled_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    required_team_size = Column(Integer, nullable=False)  # Snapshot of creator roster_size
    status = Column(String(20), default=TeamRoomStatus.OPEN.value, nullable=False)
    lock_version = Column(Integer, default=0, server_default="0", nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    branch = relationship("Branch")
    creator_team = relationship("Team", foreign_keys=[creator_team_id])
    opponent_team = relationship("Team", foreign_keys=[opponent_team_id])

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_team_rooms_time_range"),
        Index("idx_team_rooms_creator_date", "creator_team_id", "scheduled_date"),
        Index("idx_team_rooms_opponent_date", "opponent_team_id", "scheduled_date"),
        Index("idx_team_rooms_date_status", "scheduled_date", "status"),
    )


class Notification(Base):
    """User notifications for in-app messaging."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    type = Column(String(50), nullable=False)  # NotificationType enum value
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    related_entity_type = Column(String(50), nullable=True)
    related_entity_id = Column(Integer, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    user = relationship("User", backref="notifications")

    __table_args__ = (
        Index("idx_notifications_user_unread", "user_id", "is_read", "created_at"),
    )
