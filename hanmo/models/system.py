"""Business audit trail."""

import uuid
from datetime import datetime
from enum import Enum

from sqlmodel import Field, SQLModel

from .common import UTCDateTime, utcnow


class LogLevel(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    DEBUG = "debug"


class SystemLog(SQLModel, table=True):
    __tablename__ = "system_logs"

    id: int | None = Field(default=None, primary_key=True)
    level: LogLevel = Field(default=LogLevel.INFO, index=True)
    module: str = Field(max_length=50, index=True)
    action: str = Field(max_length=100)
    description: str | None = None
    user_id: uuid.UUID | None = Field(
        default=None, foreign_key="user.id", ondelete="SET NULL"
    )
    ip: str | None = Field(default=None, max_length=64)
    user_agent: str | None = None
    language: str | None = Field(default=None, max_length=10)
    created_at: datetime = Field(
        default_factory=utcnow, sa_type=UTCDateTime, index=True
    )


class SystemLogPublic(SQLModel):
    id: int
    level: LogLevel
    module: str
    action: str
    description: str | None
    user_id: uuid.UUID | None
    ip: str | None
    user_agent: str | None
    language: str | None
    created_at: datetime
