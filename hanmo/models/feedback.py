"""Visitor feedback handled from the back office."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import EmailStr
from sqlmodel import Field, SQLModel

from .common import UTCDateTime, utcnow


class FeedbackType(str, Enum):
    BUG = "bug"
    FEATURE = "feature"
    IMPROVEMENT = "improvement"
    OTHER = "other"


class FeedbackPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FeedbackStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    RESOLVED = "resolved"
    CLOSED = "closed"


class FeedbackBase(SQLModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr | None = Field(default=None, max_length=255)
    type: FeedbackType
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1, max_length=5000)
    priority: FeedbackPriority = FeedbackPriority.MEDIUM


class FeedbackCreate(FeedbackBase):
    pass


class Feedback(FeedbackBase, table=True):
    __tablename__ = "feedback"

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID | None = Field(
        default=None, foreign_key="user.id", ondelete="SET NULL"
    )
    status: FeedbackStatus = Field(default=FeedbackStatus.PENDING, index=True)
    ip_address: str | None = Field(default=None, max_length=64)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class FeedbackStatusUpdate(SQLModel):
    status: FeedbackStatus


class FeedbackPublic(FeedbackBase):
    id: int
    user_id: uuid.UUID | None
    status: FeedbackStatus
    ip_address: str | None
    created_at: datetime
    updated_at: datetime
