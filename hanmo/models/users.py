"""User account models."""

import uuid
from datetime import datetime

from pydantic import EmailStr
from sqlmodel import Field, SQLModel

from .common import UTCDateTime, utcnow


# Shared properties
class UserBase(SQLModel):
    email: EmailStr = Field(unique=True, index=True, max_length=255)
    is_active: bool = True
    is_superuser: bool = False
    full_name: str | None = Field(default=None, max_length=255)
    department: str | None = Field(default=None, max_length=100, index=True)
    locale: str = Field(default="zh", max_length=10)


# Properties to receive via API on creation
class UserCreate(UserBase):
    password: str = Field(min_length=8, max_length=40)


class UserRegister(SQLModel):
    email: EmailStr = Field(max_length=255)
    password: str = Field(min_length=8, max_length=40)
    full_name: str | None = Field(default=None, max_length=255)
    referral_code: str | None = Field(default=None, max_length=20)


# Properties to receive via API on update, all are optional
class UserUpdate(UserBase):
    email: EmailStr | None = Field(default=None, max_length=255)  # type: ignore
    password: str | None = Field(default=None, min_length=8, max_length=40)
    is_active: bool | None = None  # type: ignore
    is_superuser: bool | None = None  # type: ignore
    locale: str | None = Field(default=None, max_length=10)  # type: ignore


class UserUpdateMe(SQLModel):
    full_name: str | None = Field(default=None, max_length=255)
    email: EmailStr | None = Field(default=None, max_length=255)
    locale: str | None = Field(default=None, max_length=10)


class UpdatePassword(SQLModel):
    current_password: str = Field(min_length=8, max_length=40)
    new_password: str = Field(min_length=8, max_length=40)


# Database model, database table inferred from class name
class User(UserBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    hashed_password: str
    email_verified: bool = False

    # Account lock state
    is_locked: bool = False
    lock_reason: str | None = Field(default=None, max_length=255)
    locked_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    lock_expires_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    failed_login_attempts: int = 0
    last_failed_login_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    last_login_at: datetime | None = Field(default=None, sa_type=UTCDateTime)

    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


# Properties to return via API, id is always required
class UserPublic(UserBase):
    id: uuid.UUID
    email_verified: bool
    is_locked: bool
    created_at: datetime


class VerifyEmail(SQLModel):
    token: str
