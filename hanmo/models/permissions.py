"""Role-based access control models with audit fields."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from .common import UTCDateTime, utcnow


class PermissionType(str, Enum):
    PAGE = "page"
    DATA = "data"
    FIELD = "field"
    BUTTON = "button"


class UserPermissionType(str, Enum):
    DIRECT = "direct"  # grants the permission
    RESTRICTED = "restricted"  # removes it even when a role grants it


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DataScopeType(str, Enum):
    ALL = "all"
    DEPARTMENT = "department"
    SELF = "self"
    CUSTOM = "custom"


class RoleBase(SQLModel):
    name: str = Field(unique=True, index=True, max_length=100)
    display_name: str = Field(max_length=100)
    description: str | None = None


class RoleCreate(RoleBase):
    pass


class RoleUpdate(SQLModel):
    display_name: str | None = Field(default=None, max_length=100)
    description: str | None = None


class Role(RoleBase, table=True):
    __tablename__ = "roles"

    id: int | None = Field(default=None, primary_key=True)
    is_system: bool = False
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class RolePublic(RoleBase):
    id: int
    is_system: bool
    created_at: datetime


class PermissionBase(SQLModel):
    name: str = Field(unique=True, index=True, max_length=100)
    display_name: str = Field(max_length=100)
    description: str | None = None
    module: str = Field(max_length=50, index=True)
    action: str = Field(max_length=50)
    resource: str | None = Field(default=None, max_length=100)
    type: PermissionType = PermissionType.PAGE


class PermissionCreate(PermissionBase):
    pass


class PermissionUpdate(SQLModel):
    display_name: str | None = Field(default=None, max_length=100)
    description: str | None = None
    resource: str | None = Field(default=None, max_length=100)
    type: PermissionType | None = None


class Permission(PermissionBase, table=True):
    __tablename__ = "permissions"

    id: int | None = Field(default=None, primary_key=True)
    is_system: bool = False
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class PermissionPublic(PermissionBase):
    id: int
    is_system: bool


class RolePermission(SQLModel, table=True):
    __tablename__ = "role_permissions"
    __table_args__ = (UniqueConstraint("role_id", "permission_id"),)

    id: int | None = Field(default=None, primary_key=True)
    role_id: int = Field(foreign_key="roles.id", ondelete="CASCADE", index=True)
    permission_id: int = Field(
        foreign_key="permissions.id", ondelete="CASCADE", index=True
    )
    granted_by: uuid.UUID | None = Field(
        default=None, foreign_key="user.id", ondelete="SET NULL"
    )
    granted_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    is_active: bool = True


class UserRole(SQLModel, table=True):
    """Role assignment; inactive or expired rows grant nothing."""

    __tablename__ = "user_roles"

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    role_id: int = Field(foreign_key="roles.id", ondelete="CASCADE", index=True)
    assigned_by: uuid.UUID | None = Field(
        default=None, foreign_key="user.id", ondelete="SET NULL"
    )
    assigned_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    expires_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    is_active: bool = True
    priority: int = 0
    reason: str | None = None
    data_scope: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))


class UserRoleAssign(SQLModel):
    role_id: int
    expires_at: datetime | None = None
    priority: int = 0
    reason: str | None = None
    data_scope: dict[str, Any] | None = None


class UserRolePublic(SQLModel):
    id: int
    role_id: int
    role_name: str
    display_name: str
    assigned_at: datetime
    expires_at: datetime | None
    is_active: bool
    priority: int
    data_scope: dict[str, Any] | None


class UserPermission(SQLModel, table=True):
    __tablename__ = "user_permissions"

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    permission_id: int = Field(
        foreign_key="permissions.id", ondelete="CASCADE", index=True
    )
    type: UserPermissionType = UserPermissionType.DIRECT
    granted_by: uuid.UUID | None = Field(
        default=None, foreign_key="user.id", ondelete="SET NULL"
    )
    granted_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    expires_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    is_active: bool = True
    reason: str | None = None


class UserPermissionGrant(SQLModel):
    permission_id: int
    type: UserPermissionType = UserPermissionType.DIRECT
    expires_at: datetime | None = None
    reason: str | None = None


class PermissionRequestCreate(SQLModel):
    role_id: int
    reason: str = Field(min_length=1, max_length=1000)


class PermissionRequest(SQLModel, table=True):
    __tablename__ = "permission_requests"

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    role_id: int = Field(foreign_key="roles.id", ondelete="CASCADE")
    reason: str
    status: RequestStatus = Field(default=RequestStatus.PENDING, index=True)
    reviewed_by: uuid.UUID | None = Field(
        default=None, foreign_key="user.id", ondelete="SET NULL"
    )
    reviewed_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    review_comment: str | None = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class PermissionRequestReview(SQLModel):
    status: RequestStatus
    review_comment: str | None = None


class PermissionLog(SQLModel, table=True):
    __tablename__ = "permission_logs"

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID | None = Field(
        default=None, foreign_key="user.id", ondelete="SET NULL", index=True
    )
    action: str = Field(max_length=50)  # grant, revoke, request, approve, reject
    target_type: str = Field(max_length=20)  # role, permission
    target_id: str
    details: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    ip: str | None = Field(default=None, max_length=45)
    user_agent: str | None = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class UserPermissionsPublic(SQLModel):
    user_id: uuid.UUID
    permissions: list[str]
    roles: list[str]
    data_scope: dict[str, Any]


class PermissionRequestPublic(SQLModel):
    id: int
    user_id: uuid.UUID
    role_id: int
    reason: str
    status: RequestStatus
    reviewed_by: uuid.UUID | None
    reviewed_at: datetime | None
    review_comment: str | None
    created_at: datetime


class PermissionLogPublic(SQLModel):
    id: int
    user_id: uuid.UUID | None
    action: str
    target_type: str
    target_id: str
    details: dict[str, Any] | None
    ip: str | None
    created_at: datetime


class RolePermissionsSet(SQLModel):
    permission_ids: list[int]


class UserPermissionPublic(SQLModel):
    id: int
    user_id: uuid.UUID
    permission_id: int
    type: UserPermissionType
    granted_at: datetime
    expires_at: datetime | None
    is_active: bool
    reason: str | None
