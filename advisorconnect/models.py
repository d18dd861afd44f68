import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    image = Column(String(500), nullable=True)  # Avatar URL from the identity provider
    created_at = Column(DateTime, server_default=func.now())

    links = relationship(
        "SchedulingLink", back_populates="user", cascade="all, delete-orphan"
    )
    google_credential = relationship(
        "GoogleCredential", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )


class SchedulingLink(Base):
    __tablename__ = "scheduling_links"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    duration = Column(Integer, nullable=False)  # Minutes, >= 15
    max_advance_days = Column(Integer, nullable=True)  # null = unbounded
    max_uses = Column(Integer, nullable=True)  # null = unbounded
    uses_count = Column(Integer, default=0, nullable=False)  # Claimed atomically with each meeting insert
    expiration_date = Column(DateTime, nullable=True)  # naive UTC
    custom_questions = Column(JSON, default=list, nullable=False)  # [{"id": ..., "text": ...}]
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="links")
    meetings = relationship(
        "Meeting", back_populates="link", cascade="all, delete-orphan", passive_deletes=True
    )


class Meeting(Base):
    __tablename__ = "meetings"
    __table_args__ = (
        UniqueConstraint(
            "link_id", "client_email", "date", "time", name="uq_meetings_link_client_slot"
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_public_id)
    link_id = Column(
        String(36), ForeignKey("scheduling_links.id", ondelete="CASCADE"), nullable=False, index=True
    )
    client_name = Column(String(255), nullable=False)
    client_email = Column(String(255), nullable=False, index=True)
    profile_url = Column(String(500), nullable=True)  # LinkedIn or similar
    date = Column(Date, nullable=False)
    time = Column(String(8), nullable=False)  # 12-hour clock, e.g. "2:00 PM"
    duration = Column(Integer, nullable=False)  # Copied from the link at booking time
    notes = Column(Text, nullable=True)
    answers = Column(JSON, default=dict, nullable=False)  # {question_id: answer}
    created_at = Column(DateTime, server_default=func.now())

    link = relationship("SchedulingLink", back_populates="meetings")


class GoogleCredential(Base):
    __tablename__ = "google_credentials"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)

    # OAuth tokens (encrypted)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    token_expires_at = Column(DateTime, nullable=False)

    google_user_email = Column(String(255), nullable=True)
    google_calendar_id = Column(String(500), nullable=True)

    auto_sync_enabled = Column(Boolean, default=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="google_credential")
