"""
Role-Based Access Control (RBAC) Implementation

Permissions are stored as ``module.action`` names, granted to roles through
``RolePermission`` links and to users through ``UserRole`` assignments.
``UserPermission`` rows add (direct) or remove (restricted) single
permissions on top of the roles. Superusers and holders of ``*`` pass
every check.
"""

import uuid
from datetime import datetime
from typing import Any

from fastapi import HTTPException, Request, status
from sqlalchemy import or_
from sqlmodel import Session, col, select

from hanmo.core.exceptions import (
    BusinessRuleViolation,
    EntityAlreadyExistsError,
    EntityNotFoundError,
)
from hanmo.core.observability import get_logger
from hanmo.core.rate_limiter import get_client_ip
from hanmo.models import (
    DataScopeType,
    Permission,
    PermissionLog,
    PermissionRequest,
    PermissionRequestCreate,
    PermissionRequestReview,
    RequestStatus,
    Role,
    RolePermission,
    User,
    UserPermission,
    UserPermissionGrant,
    UserPermissionType,
    UserRole,
    UserRoleAssign,
    utcnow,
)

logger = get_logger(__name__)

WILDCARD = "*"

# module -> actions seeded as system permissions
PERMISSION_MODULES: dict[str, tuple[str, ...]] = {
    "user": ("read", "create", "update", "delete"),
    "role": ("read", "create", "update", "delete"),
    "permission": ("read", "create", "update", "delete"),
    "system": ("read",),
    "comic": ("read", "create", "update", "delete"),
    "comic-category": ("read", "create", "update", "delete"),
    "comic-tag": ("read", "create", "update", "delete"),
    "couplet": ("read", "create", "update", "delete"),
    "couplet-category": ("read", "create", "update", "delete"),
    "couplet-tag": ("read", "create", "update", "delete"),
    "credits": ("read", "update"),
    "credits-redeem": ("read", "create", "update", "delete"),
    "checkin-rule": ("read", "create", "update", "delete"),
    "exchange-rate": ("read", "create", "update", "delete"),
    "achievement": ("read", "create", "update", "delete"),
    "plan": ("read", "create", "update", "delete"),
    "order": ("read", "update"),
    "redeem": ("read", "create", "update", "delete"),
    "main-menu": ("read", "create", "update", "delete"),
    "referral-campaign": ("read", "update"),
    "feedback": ("read", "update", "delete"),
    "site-settings": ("read", "create", "update", "delete"),
    "admin-menu": ("read", "create", "update", "delete"),
}

CONTENT_MODULES = (
    "comic",
    "comic-category",
    "comic-tag",
    "couplet",
    "couplet-category",
    "couplet-tag",
)

# role name -> (display name, permission names); "*" grants everything
SYSTEM_ROLES: dict[str, tuple[str, list[str]]] = {
    "super_admin": ("Super administrator", [WILDCARD]),
    "admin": (
        "Administrator",
        [
            f"{module}.{action}"
            for module, actions in PERMISSION_MODULES.items()
            for action in actions
        ],
    ),
    "editor": (
        "Content editor",
        [
            f"{module}.{action}"
            for module in CONTENT_MODULES
            for action in PERMISSION_MODULES[module]
            if action != "delete"
        ],
    ),
    "user": ("User", []),
}


def _active_clause(model: Any, now: datetime) -> Any:
    return or_(col(model.expires_at).is_(None), col(model.expires_at) > now)


class PermissionService:
    """Resolves the effective permissions of a user."""

    def __init__(self, session: Session):
        self.session = session
        self._permission_cache: dict[uuid.UUID, set[str]] = {}

    def get_user_permissions(self, user: User) -> set[str]:
        if user.is_superuser:
            return {WILDCARD}
        if user.id in self._permission_cache:
            return self._permission_cache[user.id]

        now = utcnow()
        role_stmt = (
            select(Permission.name)
            .join(RolePermission, col(RolePermission.permission_id) == Permission.id)
            .join(UserRole, col(UserRole.role_id) == RolePermission.role_id)
            .where(
                UserRole.user_id == user.id,
                col(UserRole.is_active).is_(True),
                col(RolePermission.is_active).is_(True),
                _active_clause(UserRole, now),
            )
        )
        permissions = set(self.session.exec(role_stmt).all())

        override_stmt = (
            select(UserPermission.type, Permission.name)
            .join(Permission, col(UserPermission.permission_id) == Permission.id)
            .where(
                UserPermission.user_id == user.id,
                col(UserPermission.is_active).is_(True),
                _active_clause(UserPermission, now),
            )
        )
        overrides = self.session.exec(override_stmt).all()

        # Direct grants first, restrictions win over every grant
        for override_type, name in overrides:
            if override_type == UserPermissionType.DIRECT:
                permissions.add(name)
        for override_type, name in overrides:
            if override_type == UserPermissionType.RESTRICTED:
                permissions.discard(name)

        self._permission_cache[user.id] = permissions
        return permissions

    def has_permission(self, user: User, permission: str) -> bool:
        permissions = self.get_user_permissions(user)
        return WILDCARD in permissions or permission in permissions

    def has_any_permission(self, user: User, *permissions: str) -> bool:
        return any(self.has_permission(user, p) for p in permissions)

    def has_all_permissions(self, user: User, *permissions: str) -> bool:
        return all(self.has_permission(user, p) for p in permissions)

    def get_active_assignments(self, user_id: uuid.UUID) -> list[UserRole]:
        now = utcnow()
        return list(
            self.session.exec(
                select(UserRole)
                .where(
                    UserRole.user_id == user_id,
                    col(UserRole.is_active).is_(True),
                    _active_clause(UserRole, now),
                )
                .order_by(col(UserRole.priority).desc(), col(UserRole.id))
            ).all()
        )

    def get_user_roles(self, user: User) -> list[Role]:
        role_ids = [a.role_id for a in self.get_active_assignments(user.id)]
        if not role_ids:
            return []
        return list(
            self.session.exec(select(Role).where(col(Role.id).in_(role_ids))).all()
        )

    def get_data_scope(self, user: User) -> dict[str, Any]:
        """Scope of the highest priority assignment that carries one."""
        if user.is_superuser:
            return {"type": DataScopeType.ALL.value}
        for assignment in self.get_active_assignments(user.id):
            if assignment.data_scope:
                return assignment.data_scope
        return {"type": DataScopeType.SELF.value}

    def clear_cache(self, user_id: uuid.UUID | None = None) -> None:
        """Clear permission cache for user or all users."""
        if user_id:
            self._permission_cache.pop(user_id, None)
        else:
            self._permission_cache.clear()


def _client_details(request: Request | None) -> dict[str, Any]:
    if request is None:
        return {}
    return {
        "ip": get_client_ip(request),
        "user_agent": request.headers.get("User-Agent"),
    }


def _deny(user: User, required: str, request: Request) -> HTTPException:
    logger.warning(
        "Authorization failed",
        user_id=str(user.id),
        permission_required=required,
        method=request.method,
        path=request.url.path,
    )
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=f"Insufficient permissions. Required: {required}",
    )


# FastAPI dependency factories
def require_permission(permission: str):
    """FastAPI dependency requiring a single permission."""
    from hanmo.api.deps import CurrentUser, SessionDep

    def permission_checker(
        current_user: CurrentUser, session: SessionDep, request: Request
    ) -> User:
        if not PermissionService(session).has_permission(current_user, permission):
            raise _deny(current_user, permission, request)
        return current_user

    return permission_checker


def require_any_permission(*permissions: str):
    """Require user to have at least one of the specified permissions."""
    from hanmo.api.deps import CurrentUser, SessionDep

    def permission_checker(
        current_user: CurrentUser, session: SessionDep, request: Request
    ) -> User:
        if not PermissionService(session).has_any_permission(
            current_user, *permissions
        ):
            raise _deny(current_user, " or ".join(permissions), request)
        return current_user

    return permission_checker


def require_all_permissions(*permissions: str):
    """Require user to have all specified permissions."""
    from hanmo.api.deps import CurrentUser, SessionDep

    def permission_checker(
        current_user: CurrentUser, session: SessionDep, request: Request
    ) -> User:
        service = PermissionService(session)
        missing = [p for p in permissions if not service.has_permission(current_user, p)]
        if missing:
            raise _deny(current_user, ", ".join(missing), request)
        return current_user

    return permission_checker


class RoleManager:
    """
    Manages role assignments, permission overrides and permission requests.

    Every change writes a ``PermissionLog`` row. Methods flush, callers commit.
    """

    def __init__(self, session: Session, request: Request | None = None):
        self.session = session
        self.request = request

    def _log(
        self,
        user_id: uuid.UUID,
        action: str,
        target_type: str,
        target_id: Any,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.session.add(
            PermissionLog(
                user_id=user_id,
                action=action,
                target_type=target_type,
                target_id=str(target_id),
                details=details,
                **_client_details(self.request),
            )
        )
        logger.info(
            "Permission change",
            action=action,
            target_type=target_type,
            target_id=str(target_id),
            user_id=str(user_id),
        )

    def _get_role(self, role_id: int) -> Role:
        role = self.session.get(Role, role_id)
        if not role:
            raise EntityNotFoundError("Role", role_id)
        return role

    def delete_role(self, role_id: int) -> None:
        role = self._get_role(role_id)
        if role.is_system:
            raise BusinessRuleViolation(
                "System roles cannot be deleted", {"role": role.name}
            )
        for model in (RolePermission, UserRole, PermissionRequest):
            for row in self.session.exec(
                select(model).where(model.role_id == role_id)
            ).all():
                self.session.delete(row)
        self.session.flush()
        self.session.delete(role)
        self.session.flush()

    def set_role_permissions(
        self, role_id: int, permission_ids: list[int], granted_by: uuid.UUID
    ) -> list[Permission]:
        """Replace the permission links of a role."""
        role = self._get_role(role_id)
        permissions = list(
            self.session.exec(
                select(Permission).where(col(Permission.id).in_(permission_ids))
            ).all()
        )
        missing = set(permission_ids) - {p.id for p in permissions}
        if missing:
            raise EntityNotFoundError("Permission", sorted(missing)[0])

        for link in self.session.exec(
            select(RolePermission).where(RolePermission.role_id == role_id)
        ).all():
            self.session.delete(link)
        self.session.flush()
        for permission in permissions:
            self.session.add(
                RolePermission(
                    role_id=role_id, permission_id=permission.id, granted_by=granted_by
                )
            )
        self._log(
            granted_by,
            "grant",
            "role",
            role.id,
            {"role": role.name, "permissions": sorted(p.name for p in permissions)},
        )
        self.session.flush()
        return permissions

    def get_role_permissions(self, role_id: int) -> list[Permission]:
        self._get_role(role_id)
        return list(
            self.session.exec(
                select(Permission)
                .join(RolePermission, col(RolePermission.permission_id) == Permission.id)
                .where(
                    RolePermission.role_id == role_id,
                    col(RolePermission.is_active).is_(True),
                )
                .order_by(col(Permission.module), col(Permission.name))
            ).all()
        )

    def assign_role(
        self, user_id: uuid.UUID, assign: UserRoleAssign, assigned_by: uuid.UUID
    ) -> UserRole:
        role = self._get_role(assign.role_id)
        now = utcnow()
        existing = self.session.exec(
            select(UserRole).where(
                UserRole.user_id == user_id,
                UserRole.role_id == role.id,
                col(UserRole.is_active).is_(True),
                _active_clause(UserRole, now),
            )
        ).first()
        if existing:
            raise EntityAlreadyExistsError(
                f"User already has role '{role.name}'", {"role": role.name}
            )

        assignment = UserRole(
            user_id=user_id,
            role_id=role.id,
            assigned_by=assigned_by,
            expires_at=assign.expires_at,
            priority=assign.priority,
            reason=assign.reason,
            data_scope=assign.data_scope,
        )
        self.session.add(assignment)
        self._log(
            assigned_by,
            "grant",
            "role",
            role.id,
            {"role": role.name, "target_user_id": str(user_id)},
        )
        self.session.flush()
        return assignment

    def revoke_role(
        self, user_id: uuid.UUID, role_id: int, revoked_by: uuid.UUID
    ) -> None:
        role = self._get_role(role_id)
        assignments = self.session.exec(
            select(UserRole).where(
                UserRole.user_id == user_id,
                UserRole.role_id == role_id,
                col(UserRole.is_active).is_(True),
            )
        ).all()
        if not assignments:
            raise EntityNotFoundError("Role assignment", role_id)
        for assignment in assignments:
            assignment.is_active = False
            self.session.add(assignment)
        self._log(
            revoked_by,
            "revoke",
            "role",
            role.id,
            {"role": role.name, "target_user_id": str(user_id)},
        )
        self.session.flush()

    def grant_permission(
        self,
        user_id: uuid.UUID,
        grant: UserPermissionGrant,
        granted_by: uuid.UUID,
    ) -> UserPermission:
        """Direct grant or restriction; replaces an active override of the same permission."""
        permission = self.session.get(Permission, grant.permission_id)
        if not permission:
            raise EntityNotFoundError("Permission", grant.permission_id)

        for current in self.session.exec(
            select(UserPermission).where(
                UserPermission.user_id == user_id,
                UserPermission.permission_id == permission.id,
                col(UserPermission.is_active).is_(True),
            )
        ).all():
            current.is_active = False
            self.session.add(current)

        override = UserPermission(
            user_id=user_id,
            permission_id=permission.id,
            type=grant.type,
            granted_by=granted_by,
            expires_at=grant.expires_at,
            reason=grant.reason,
        )
        self.session.add(override)
        action = "grant" if grant.type == UserPermissionType.DIRECT else "restrict"
        self._log(
            granted_by,
            action,
            "permission",
            permission.id,
            {"permission": permission.name, "target_user_id": str(user_id)},
        )
        self.session.flush()
        return override

    def revoke_permission(
        self, user_id: uuid.UUID, permission_id: int, revoked_by: uuid.UUID
    ) -> None:
        overrides = self.session.exec(
            select(UserPermission).where(
                UserPermission.user_id == user_id,
                UserPermission.permission_id == permission_id,
                col(UserPermission.is_active).is_(True),
            )
        ).all()
        if not overrides:
            raise EntityNotFoundError("User permission", permission_id)
        for override in overrides:
            override.is_active = False
            self.session.add(override)
        self._log(
            revoked_by,
            "revoke",
            "permission",
            permission_id,
            {"target_user_id": str(user_id)},
        )
        self.session.flush()

    def submit_request(
        self, user_id: uuid.UUID, request_in: PermissionRequestCreate
    ) -> PermissionRequest:
        role = self._get_role(request_in.role_id)
        pending = self.session.exec(
            select(PermissionRequest).where(
                PermissionRequest.user_id == user_id,
                PermissionRequest.role_id == role.id,
                PermissionRequest.status == RequestStatus.PENDING,
            )
        ).first()
        if pending:
            raise EntityAlreadyExistsError(
                "A request for this role is already pending", {"role": role.name}
            )
        permission_request = PermissionRequest(
            user_id=user_id, role_id=role.id, reason=request_in.reason
        )
        self.session.add(permission_request)
        self._log(user_id, "request", "role", role.id, {"role": role.name})
        self.session.flush()
        return permission_request

    def review_request(
        self,
        request_id: int,
        review: PermissionRequestReview,
        reviewer_id: uuid.UUID,
    ) -> PermissionRequest:
        permission_request = self.session.get(PermissionRequest, request_id)
        if not permission_request:
            raise EntityNotFoundError("Permission request", request_id)
        if permission_request.status != RequestStatus.PENDING:
            raise BusinessRuleViolation(
                "Only pending requests can be reviewed",
                {"status": permission_request.status.value},
            )
        if review.status == RequestStatus.PENDING:
            raise BusinessRuleViolation(
                "Review status must be approved or rejected",
                {"status": review.status.value},
            )

        permission_request.status = review.status
        permission_request.reviewed_by = reviewer_id
        permission_request.reviewed_at = utcnow()
        permission_request.review_comment = review.review_comment
        self.session.add(permission_request)

        if review.status == RequestStatus.APPROVED:
            service = PermissionService(self.session)
            held = {a.role_id for a in service.get_active_assignments(permission_request.user_id)}
            if permission_request.role_id not in held:
                self.assign_role(
                    permission_request.user_id,
                    UserRoleAssign(
                        role_id=permission_request.role_id,
                        reason=permission_request.reason,
                    ),
                    reviewer_id,
                )
        self._log(
            reviewer_id,
            "approve" if review.status == RequestStatus.APPROVED else "reject",
            "role",
            permission_request.role_id,
            {"request_id": request_id, "target_user_id": str(permission_request.user_id)},
        )
        self.session.flush()
        return permission_request
