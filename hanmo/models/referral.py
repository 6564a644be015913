"""Invite codes, inviter/invitee relations and campaign rewards."""

import uuid
from datetime import datetime
from enum import Enum

from sqlmodel import Field, SQLModel

from .common import UTCDateTime, utcnow


class ReferralStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class ReferralTask(str, Enum):
    REGISTER = "register"
    FIRST_COMIC = "first_comic"
    VERIFIED_EMAIL = "verified_email"


class UserReferralCode(SQLModel, table=True):
    __tablename__ = "user_referral_codes"

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(
        foreign_key="user.id", ondelete="CASCADE", unique=True, index=True
    )
    referral_code: str = Field(unique=True, index=True, max_length=20)
    total_invites: int = 0
    successful_invites: int = 0
    total_rewards: int = 0
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class ReferralRelation(SQLModel, table=True):
    __tablename__ = "referral_relations"

    id: int | None = Field(default=None, primary_key=True)
    inviter_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    # An account can be invited once
    invitee_id: uuid.UUID = Field(
        foreign_key="user.id", ondelete="CASCADE", unique=True, index=True
    )
    referral_code: str = Field(max_length=20)
    status: ReferralStatus = ReferralStatus.PENDING
    inviter_rewarded: bool = False
    invitee_rewarded: bool = False
    inviter_reward_amount: int = 0
    invitee_reward_amount: int = 0
    completed_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class ReferralReward(SQLModel, table=True):
    __tablename__ = "referral_rewards"

    id: int | None = Field(default=None, primary_key=True)
    relation_id: int = Field(
        foreign_key="referral_relations.id", ondelete="CASCADE", index=True
    )
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    reward_type: str = Field(max_length=20)  # inviter, invitee
    reward_amount: int
    status: str = Field(default="issued", max_length=20)
    issued_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class ReferralCampaign(SQLModel, table=True):
    __tablename__ = "referral_campaigns"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    description: str | None = None
    inviter_reward: int = 10
    invitee_reward: int = 5
    requirement_type: ReferralTask = ReferralTask.REGISTER
    max_invites_per_user: int | None = None
    start_date: datetime | None = Field(default=None, sa_type=UTCDateTime)
    end_date: datetime | None = Field(default=None, sa_type=UTCDateTime)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class ReferralInvitee(SQLModel):
    invitee_id: uuid.UUID
    email: str
    status: ReferralStatus
    inviter_reward_amount: int
    created_at: datetime
    completed_at: datetime | None


class ReferralStats(SQLModel):
    referral_code: str
    total_invites: int
    successful_invites: int
    total_rewards: int
    invitees: list[ReferralInvitee]


class ReferralApply(SQLModel):
    referral_code: str = Field(min_length=4, max_length=20)


class ReferralCampaignPublic(SQLModel):
    id: int
    name: str
    description: str | None
    inviter_reward: int
    invitee_reward: int
    requirement_type: ReferralTask
    max_invites_per_user: int | None
    start_date: datetime | None
    end_date: datetime | None
    is_active: bool
    created_at: datetime


class ReferralCampaignUpdate(SQLModel):
    name: str | None = Field(default=None, max_length=100)
    description: str | None = None
    inviter_reward: int | None = Field(default=None, ge=0)
    invitee_reward: int | None = Field(default=None, ge=0)
    requirement_type: ReferralTask | None = None
    max_invites_per_user: int | None = Field(default=None, ge=1)
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_active: bool | None = None


class ReferralTaskResult(SQLModel):
    completed: bool
    depth: int
    inviter_reward: int = 0
    invitee_reward: int = 0


class ReferralCodePublic(SQLModel):
    referral_code: str
    total_invites: int
    successful_invites: int
    total_rewards: int
