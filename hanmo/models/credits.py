"""Credit balance, ledger and redeem code models."""

import uuid
from datetime import datetime
from enum import Enum

from sqlmodel import Field, SQLModel

from .common import UTCDateTime, utcnow


class CreditTransactionType(str, Enum):
    RECHARGE = "recharge"
    CONSUME = "consume"
    REDEEM = "redeem"
    ADMIN_ADJUST = "admin_adjust"
    EXCHANGE = "exchange"
    REFERRAL = "referral"


class RedeemCodeStatus(str, Enum):
    ACTIVE = "active"
    USED_UP = "used_up"
    EXPIRED = "expired"
    DISABLED = "disabled"


class RedeemResultStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class UserCredits(SQLModel, table=True):
    __tablename__ = "user_credits"

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(
        foreign_key="user.id", ondelete="CASCADE", unique=True, index=True
    )
    balance: int = 0
    total_recharged: int = 0
    total_consumed: int = 0
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class UserCreditsPublic(SQLModel):
    user_id: uuid.UUID
    balance: int
    total_recharged: int
    total_consumed: int


class CreditTransaction(SQLModel, table=True):
    """Ledger row; balance_after - balance_before == amount for every row."""

    __tablename__ = "credit_transactions"

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    type: CreditTransactionType
    amount: int
    balance_before: int
    balance_after: int
    related_id: int | None = None
    related_type: str | None = Field(default=None, max_length=50)
    description: str | None = None
    operator_id: uuid.UUID | None = Field(
        default=None, foreign_key="user.id", ondelete="SET NULL"
    )
    created_at: datetime = Field(
        default_factory=utcnow, sa_type=UTCDateTime, index=True
    )


class CreditTransactionPublic(SQLModel):
    id: int
    type: CreditTransactionType
    amount: int
    balance_before: int
    balance_after: int
    related_id: int | None
    related_type: str | None
    description: str | None
    created_at: datetime


class CreditAdjust(SQLModel):
    user_id: uuid.UUID
    amount: int = Field(description="Signed change, negative to deduct")
    description: str | None = Field(default=None, max_length=500)


class CreditConsume(SQLModel):
    amount: int = Field(gt=0)
    description: str | None = Field(default=None, max_length=500)


class RedeemCodeBase(SQLModel):
    credits: int = Field(gt=0)
    max_uses: int = Field(default=1, ge=1)
    expires_at: datetime | None = Field(default=None, sa_type=UTCDateTime)


class CreditRedeemCode(RedeemCodeBase, table=True):
    __tablename__ = "credit_redeem_codes"

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


class CreditRedeemCodeCreate(RedeemCodeBase):
    code: str = Field(min_length=4, max_length=50)


class CreditRedeemCodeGenerate(RedeemCodeBase):
    count: int = Field(default=1, ge=1, le=100)
    prefix: str = Field(default="", max_length=10)


class CreditRedeemCodeUpdate(SQLModel):
    status: RedeemCodeStatus | None = None
    max_uses: int | None = Field(default=None, ge=1)
    expires_at: datetime | None = None


class CreditRedeemCodePublic(RedeemCodeBase):
    id: int
    code: str
    used_count: int
    status: RedeemCodeStatus
    created_at: datetime


class CreditRedeemHistory(SQLModel, table=True):
    __tablename__ = "credit_redeem_history"

    id: int | None = Field(default=None, primary_key=True)
    code_id: int = Field(
        foreign_key="credit_redeem_codes.id", ondelete="RESTRICT", index=True
    )
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    credits: int
    status: RedeemResultStatus
    message: str | None = None
    redeemed_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class CreditRedeemHistoryPublic(SQLModel):
    id: int
    code_id: int
    credits: int
    status: RedeemResultStatus
    message: str | None
    redeemed_at: datetime


class RedeemRequest(SQLModel):
    code: str = Field(min_length=1, max_length=50)


class CreditRedeemResult(SQLModel):
    message: str
    credits: int
    balance: int
