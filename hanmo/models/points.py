"""Point balance, daily check-in and point-to-credit exchange models."""

import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from .common import UTCDateTime, utcnow
from .taxonomy import TaxonomyStatus


class PointTransactionType(str, Enum):
    EARN = "earn"
    SPEND = "spend"


class UserPoints(SQLModel, table=True):
    __tablename__ = "user_points"

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(
        foreign_key="user.id", ondelete="CASCADE", unique=True, index=True
    )
    balance: int = 0
    total_earned: int = 0
    total_spent: int = 0
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class UserPointsPublic(SQLModel):
    user_id: uuid.UUID
    balance: int
    total_earned: int
    total_spent: int


class PointTransaction(SQLModel, table=True):
    __tablename__ = "point_transactions"

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    type: PointTransactionType
    amount: int
    balance_before: int
    balance_after: int
    source: str = Field(max_length=50)  # check_in, exchange, admin, ...
    related_id: int | None = None
    related_type: str | None = Field(default=None, max_length=50)
    description: str | None = None
    operator_id: uuid.UUID | None = Field(
        default=None, foreign_key="user.id", ondelete="SET NULL"
    )
    created_at: datetime = Field(
        default_factory=utcnow, sa_type=UTCDateTime, index=True
    )


class PointTransactionPublic(SQLModel):
    id: int
    type: PointTransactionType
    amount: int
    balance_before: int
    balance_after: int
    source: str
    description: str | None
    created_at: datetime


class UserCheckIn(SQLModel, table=True):
    __tablename__ = "user_check_ins"
    __table_args__ = (UniqueConstraint("user_id", "check_in_date"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    check_in_date: date = Field(index=True)
    points: int
    consecutive_days: int = 1
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class UserCheckInPublic(SQLModel):
    id: int
    check_in_date: date
    points: int
    consecutive_days: int


class CheckInResult(SQLModel):
    message: str
    points: int
    consecutive_days: int
    balance: int


class CheckInStatus(SQLModel):
    has_checked_in_today: bool
    today_check_in: UserCheckInPublic | None
    consecutive_days: int
    month_check_in_days: int
    recent_check_ins: list[UserCheckInPublic]


class CheckInRuleBase(SQLModel):
    name: str = Field(max_length=100)
    consecutive_days: int = Field(ge=1)
    points: int = Field(ge=0)
    description: str | None = None
    status: TaxonomyStatus = TaxonomyStatus.ACTIVE
    sort_order: int = 0


class CheckInRule(CheckInRuleBase, table=True):
    __tablename__ = "check_in_rules"

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class CheckInRuleCreate(CheckInRuleBase):
    pass


class CheckInRuleUpdate(SQLModel):
    name: str | None = Field(default=None, max_length=100)
    consecutive_days: int | None = Field(default=None, ge=1)
    points: int | None = Field(default=None, ge=0)
    description: str | None = None
    status: TaxonomyStatus | None = None
    sort_order: int | None = None


class CheckInRulePublic(CheckInRuleBase):
    id: int


class PointExchangeRateBase(SQLModel):
    name: str = Field(max_length=100)
    points_required: int = Field(gt=0)
    credits_received: int = Field(gt=0)
    description: str | None = None
    status: TaxonomyStatus = TaxonomyStatus.ACTIVE
    sort_order: int = 0


class PointExchangeRate(PointExchangeRateBase, table=True):
    __tablename__ = "point_exchange_rates"

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class PointExchangeRateCreate(PointExchangeRateBase):
    pass


class PointExchangeRateUpdate(SQLModel):
    name: str | None = Field(default=None, max_length=100)
    points_required: int | None = Field(default=None, gt=0)
    credits_received: int | None = Field(default=None, gt=0)
    description: str | None = None
    status: TaxonomyStatus | None = None
    sort_order: int | None = None


class PointExchangeRatePublic(PointExchangeRateBase):
    id: int


class PointExchangeHistory(SQLModel, table=True):
    __tablename__ = "point_exchange_history"

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    points_spent: int
    credits_received: int
    exchange_rate: int  # points per credit
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class PointExchangeHistoryPublic(SQLModel):
    id: int
    points_spent: int
    credits_received: int
    exchange_rate: int
    created_at: datetime


class PointExchangeRequest(SQLModel):
    credits: int = Field(gt=0)
    rate_id: int | None = None


class PointExchangeResult(SQLModel):
    message: str
    points_spent: int
    credits_received: int
    points_balance: int
    credits_balance: int
