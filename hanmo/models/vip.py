"""VIP plans, orders, redeem codes and membership status."""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Column, Numeric
from sqlmodel import Field, SQLModel

from .common import UTCDateTime, utcnow
from .credits import RedeemCodeStatus, RedeemResultStatus


class VipOrderStatus(str, Enum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class VipCodeType(str, Enum):
    PLAN = "plan"  # grants the months of a plan
    DURATION = "duration"  # grants ``duration`` months
    DAYS = "days"  # grants ``days`` days


class VipPlanBase(SQLModel):
    name: str = Field(max_length=100)
    description: str | None = None
    price: Decimal = Field(
        ge=0, max_digits=10, decimal_places=2, sa_type=Numeric(10, 2)
    )
    original_price: Decimal | None = Field(
        default=None, ge=0, max_digits=10, decimal_places=2, sa_type=Numeric(10, 2)
    )
    duration: int = Field(ge=1, description="Length in months")
    status: bool = True
    sort_order: int = 0


class VipPlan(VipPlanBase, table=True):
    __tablename__ = "vip_plans"

    id: int | None = Field(default=None, primary_key=True)
    features: list[str] | None = Field(default=None, sa_column=Column(JSON))
    operator_id: uuid.UUID | None = Field(
        default=None, foreign_key="user.id", ondelete="SET NULL"
    )
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class VipPlanCreate(VipPlanBase):
    features: list[str] = []


class VipPlanUpdate(SQLModel):
    name: str | None = Field(default=None, max_length=100)
    description: str | None = None
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    original_price: Decimal | None = Field(
        default=None, ge=0, max_digits=10, decimal_places=2
    )
    duration: int | None = Field(default=None, ge=1)
    features: list[str] | None = None
    status: bool | None = None
    sort_order: int | None = None


class VipPlanPublic(VipPlanBase):
    id: int
    features: list[str] | None
    discount: int = 0
    daily_price: Decimal | None = None
    duration_label: str = ""


class VipOrder(SQLModel, table=True):
    __tablename__ = "vip_orders"

    id: int | None = Field(default=None, primary_key=True)
    order_no: str = Field(unique=True, index=True, max_length=50)
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    plan_id: int = Field(foreign_key="vip_plans.id", ondelete="RESTRICT")
    amount: Decimal = Field(max_digits=10, decimal_places=2, sa_type=Numeric(10, 2))
    status: VipOrderStatus = Field(default=VipOrderStatus.PENDING, index=True)
    payment_method: str | None = Field(default=None, max_length=50)
    user_submitted_transaction_id: str | None = Field(default=None, max_length=100)
    admin_notes: str | None = None
    auto_renew: bool = False
    paid_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    expire_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    reviewed_by: uuid.UUID | None = Field(
        default=None, foreign_key="user.id", ondelete="SET NULL"
    )
    reviewed_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class VipOrderCreate(SQLModel):
    plan_id: int
    payment_method: str | None = Field(default=None, max_length=50)
    auto_renew: bool = False


class VipPaymentSubmit(SQLModel):
    transaction_id: str = Field(min_length=1, max_length=100)
    payment_method: str | None = Field(default=None, max_length=50)


class VipOrderReview(SQLModel):
    admin_notes: str | None = None


class VipOrderPublic(SQLModel):
    id: int
    order_no: str
    user_id: uuid.UUID
    plan_id: int
    amount: Decimal
    status: VipOrderStatus
    payment_method: str | None
    user_submitted_transaction_id: str | None
    admin_notes: str | None
    paid_at: datetime | None
    expire_at: datetime | None
    reviewed_at: datetime | None
    created_at: datetime


class UserVipStatus(SQLModel, table=True):
    __tablename__ = "user_vip_status"

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(
        foreign_key="user.id", ondelete="CASCADE", unique=True, index=True
    )
    is_vip: bool = False
    vip_expire_date: datetime | None = Field(default=None, sa_type=UTCDateTime)
    auto_renew: bool = False
    last_renewal_date: datetime | None = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class UserVipStatusPublic(SQLModel):
    is_vip: bool
    vip_expire_date: datetime | None
    remaining_days: int
    is_expiring_soon: bool
    auto_renew: bool


class VipRedeemCodeBase(SQLModel):
    type: VipCodeType = VipCodeType.PLAN
    plan_id: int | None = Field(
        default=None, foreign_key="vip_plans.id", ondelete="SET NULL"
    )
    duration: int | None = Field(default=None, ge=1)  # months
    days: int | None = Field(default=None, ge=1)
    max_uses: int = Field(default=1, ge=1)
    expires_at: datetime | None = Field(default=None, sa_type=UTCDateTime)


class VipRedeemCode(VipRedeemCodeBase, table=True):
    __tablename__ = "vip_redeem_codes"

    id: int | None = Field(default=None, primary_key=True)
    code: str = Field(unique=True, index=True, max_length=50)
    used_count: int = 0
    status: RedeemCodeStatus = RedeemCodeStatus.ACTIVE
    created_by: uuid.UUID | None = Field(
        default=None, foreign_key="user.id", ondelete="SET NULL"
    )
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class VipRedeemCodeGenerate(VipRedeemCodeBase):
    count: int = Field(default=1, ge=1, le=100)
    prefix: str = Field(default="VIP", max_length=10)


class VipRedeemCodeUpdate(SQLModel):
    status: RedeemCodeStatus | None = None
    max_uses: int | None = Field(default=None, ge=1)
    expires_at: datetime | None = None


class VipRedeemCodePublic(VipRedeemCodeBase):
    id: int
    code: str
    used_count: int
    status: RedeemCodeStatus
    created_at: datetime


class VipRedeemHistory(SQLModel, table=True):
    __tablename__ = "vip_redeem_history"

    id: int | None = Field(default=None, primary_key=True)
    code_id: int = Field(
        foreign_key="vip_redeem_codes.id", ondelete="RESTRICT", index=True
    )
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    status: RedeemResultStatus
    message: str | None = None
    redeemed_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    snapshot: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))


class VipRedeemResult(SQLModel):
    message: str
    vip_expire_date: datetime
    added_months: int
    added_days: int
