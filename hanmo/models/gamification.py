"""Game sign-in, level summary and achievement models."""

import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from .common import UTCDateTime, utcnow


class AchievementConditionType(str, Enum):
    SIGNIN_STREAK = "signin_streak"
    COUPLETS_CREATED = "couplets_created"
    LIKES_RECEIVED = "likes_received"
    TOTAL_POINTS = "total_points"


class PointRecord(SQLModel, table=True):
    """One award of game points, summed into ``UserPointsSummary``."""

    __tablename__ = "user_point_records"

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    point_type: str = Field(max_length=30)  # signin, achievement
    points: int
    source: str | None = Field(default=None, max_length=50)
    source_id: int | None = None
    description: str | None = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class UserPointsSummary(SQLModel, table=True):
    __tablename__ = "user_points_summary"

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(
        foreign_key="user.id", ondelete="CASCADE", unique=True, index=True
    )
    total_points: int = 0
    available_points: int = 0
    used_points: int = 0
    level: int = 1
    level_progress: int = 0
    next_level_points: int = 100
    streak: int = 0
    longest_streak: int = 0
    last_signin_at: date | None = None
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class UserPointsSummaryPublic(SQLModel):
    total_points: int
    available_points: int
    used_points: int
    level: int
    level_progress: int
    next_level_points: int
    streak: int
    longest_streak: int
    last_signin_at: date | None


class DailySignin(SQLModel, table=True):
    __tablename__ = "daily_signins"
    __table_args__ = (UniqueConstraint("user_id", "signin_date"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    signin_date: date = Field(index=True)
    points: int = 10
    streak: int = 1
    bonus_points: int = 0
    bonus_reason: str | None = Field(default=None, max_length=100)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class DailySigninPublic(SQLModel):
    id: int
    signin_date: date
    points: int
    streak: int
    bonus_points: int
    bonus_reason: str | None


class AchievementBase(SQLModel):
    name: str = Field(max_length=100)
    description: str | None = None
    icon: str | None = Field(default=None, max_length=100)
    category: str = Field(default="general", max_length=30)
    type: str = Field(default="count", max_length=20)
    rarity: str = Field(default="common", max_length=20)
    is_hidden: bool = False
    is_active: bool = True
    order_index: int = 0
    language: str = Field(default="zh", max_length=10)


class Achievement(AchievementBase, table=True):
    __tablename__ = "achievements"

    id: int | None = Field(default=None, primary_key=True)
    # {"type": AchievementConditionType, "target": int}
    condition: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    # {"points": int}
    rewards: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class AchievementCondition(SQLModel):
    type: AchievementConditionType
    target: int = Field(ge=1)


class AchievementRewards(SQLModel):
    points: int = Field(default=0, ge=0)


class AchievementCreate(AchievementBase):
    condition: AchievementCondition
    rewards: AchievementRewards = AchievementRewards()


class AchievementUpdate(SQLModel):
    name: str | None = Field(default=None, max_length=100)
    description: str | None = None
    icon: str | None = Field(default=None, max_length=100)
    category: str | None = Field(default=None, max_length=30)
    rarity: str | None = Field(default=None, max_length=20)
    is_hidden: bool | None = None
    is_active: bool | None = None
    order_index: int | None = None
    condition: AchievementCondition | None = None
    rewards: AchievementRewards | None = None


class AchievementPublic(AchievementBase):
    id: int
    condition: dict[str, Any] | None
    rewards: dict[str, Any] | None


class UserAchievement(SQLModel, table=True):
    __tablename__ = "user_achievements"
    __table_args__ = (UniqueConstraint("user_id", "achievement_id"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    achievement_id: int = Field(
        foreign_key="achievements.id", ondelete="CASCADE", index=True
    )
    progress: int = 0
    max_progress: int = 1
    is_completed: bool = False
    completed_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    notified: bool = False
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class UserAchievementPublic(SQLModel):
    id: int
    achievement: AchievementPublic
    progress: int
    max_progress: int
    is_completed: bool
    completed_at: datetime | None
    notified: bool


class AchievementStats(SQLModel):
    total: int
    completed: int
    completion_rate: float
    recent: list[UserAchievementPublic]


class LevelInfo(SQLModel):
    level: int
    total_points: int
    level_progress: int
    next_level_points: int
    current_level_points: int


class SigninResult(SQLModel):
    message: str
    points: int
    bonus_points: int
    bonus_reason: str | None
    streak: int
    summary: UserPointsSummaryPublic
    new_achievements: list[AchievementPublic] = []


class SigninStatus(SQLModel):
    signed_in_today: bool
    summary: UserPointsSummaryPublic
    history: list[DailySigninPublic]


class GameProfile(SQLModel):
    summary: UserPointsSummaryPublic
    level: LevelInfo
    achievements: AchievementStats


class AchievementNotify(SQLModel):
    achievement_ids: list[int] | None = None
