"""
Permission Administration Routes

Roles, permissions, role-permission links, per-user role assignments and
overrides, role requests and the permission audit log.
"""

import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlmodel import col, select

from hanmo.api.deps import CurrentUser, SessionDep
from hanmo.core.rbac import (
    PermissionService,
    RoleManager,
    require_all_permissions,
    require_any_permission,
    require_permission,
)
from hanmo.models import (
    Message,
    Page,
    Permission,
    PermissionCreate,
    PermissionLog,
    PermissionLogPublic,
    PermissionPublic,
    PermissionRequest,
    PermissionRequestCreate,
    PermissionRequestPublic,
    PermissionRequestReview,
    PermissionUpdate,
    RequestStatus,
    Role,
    RoleCreate,
    RolePermission,
    RolePermissionsSet,
    RolePublic,
    RoleUpdate,
    User,
    UserPermission,
    UserPermissionGrant,
    UserPermissionPublic,
    UserPermissionsPublic,
    UserRoleAssign,
    UserRolePublic,
)
from hanmo.utils.pagination import PageDep, fetch_page

router = APIRouter(prefix="/permissions", tags=["permissions"])


def _get_user(session: SessionDep, user_id: uuid.UUID) -> User:
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _effective(session: SessionDep, user: User) -> UserPermissionsPublic:
    service = PermissionService(session)
    return UserPermissionsPublic(
        user_id=user.id,
        permissions=sorted(service.get_user_permissions(user)),
        roles=[r.name for r in service.get_user_roles(user)],
        data_scope=service.get_data_scope(user),
    )


# Roles
@router.get(
    "/roles",
    dependencies=[Depends(require_permission("role.read"))],
    response_model=list[RolePublic],
)
def read_roles(session: SessionDep) -> Any:
    return session.exec(select(Role).order_by(col(Role.id))).all()


@router.post(
    "/roles",
    dependencies=[Depends(require_permission("role.create"))],
    response_model=RolePublic,
)
def create_role(session: SessionDep, role_in: RoleCreate) -> Any:
    if session.exec(select(Role).where(Role.name == role_in.name)).first():
        raise HTTPException(status_code=409, detail="Role name already exists")
    role = Role.model_validate(role_in)
    session.add(role)
    session.commit()
    session.refresh(role)
    return role


@router.get(
    "/roles/{role_id}",
    dependencies=[Depends(require_permission("role.read"))],
    response_model=RolePublic,
)
def read_role(session: SessionDep, role_id: int) -> Any:
    role = session.get(Role, role_id)
    if not role:
        raise HTTPException(status_code=404, detail="Role not found")
    return role


@router.patch(
    "/roles/{role_id}",
    dependencies=[Depends(require_permission("role.update"))],
    response_model=RolePublic,
)
def update_role(session: SessionDep, role_id: int, role_in: RoleUpdate) -> Any:
    role = session.get(Role, role_id)
    if not role:
        raise HTTPException(status_code=404, detail="Role not found")
    role.sqlmodel_update(role_in.model_dump(exclude_unset=True))
    session.add(role)
    session.commit()
    session.refresh(role)
    return role


@router.delete(
    "/roles/{role_id}", dependencies=[Depends(require_permission("role.delete"))]
)
def delete_role(session: SessionDep, request: Request, role_id: int) -> Message:
    RoleManager(session, request).delete_role(role_id)
    session.commit()
    return Message(message="Role deleted successfully")


@router.get(
    "/roles/{role_id}/permissions",
    dependencies=[Depends(require_permission("role.read"))],
    response_model=list[PermissionPublic],
)
def read_role_permissions(session: SessionDep, role_id: int) -> Any:
    return RoleManager(session).get_role_permissions(role_id)


@router.put(
    "/roles/{role_id}/permissions",
    dependencies=[Depends(require_all_permissions("role.update", "permission.read"))],
    response_model=list[PermissionPublic],
)
def set_role_permissions(
    session: SessionDep,
    request: Request,
    current_user: CurrentUser,
    role_id: int,
    body: RolePermissionsSet,
) -> Any:
    permissions = RoleManager(session, request).set_role_permissions(
        role_id, body.permission_ids, current_user.id
    )
    session.commit()
    return permissions


# Effective permissions
@router.get("/me", response_model=UserPermissionsPublic)
def read_my_permissions(session: SessionDep, current_user: CurrentUser) -> Any:
    return _effective(session, current_user)


@router.get(
    "/users/{user_id}",
    dependencies=[Depends(require_permission("permission.read"))],
    response_model=UserPermissionsPublic,
)
def read_user_permissions(session: SessionDep, user_id: uuid.UUID) -> Any:
    return _effective(session, _get_user(session, user_id))


@router.get(
    "/users/{user_id}/roles",
    dependencies=[Depends(require_permission("role.read"))],
    response_model=list[UserRolePublic],
)
def read_user_roles(session: SessionDep, user_id: uuid.UUID) -> Any:
    _get_user(session, user_id)
    assignments = PermissionService(session).get_active_assignments(user_id)
    roles = {
        r.id: r
        for r in session.exec(
            select(Role).where(col(Role.id).in_([a.role_id for a in assignments]))
        ).all()
    }
    return [
        UserRolePublic(
            id=a.id,
            role_id=a.role_id,
            role_name=roles[a.role_id].name,
            display_name=roles[a.role_id].display_name,
            assigned_at=a.assigned_at,
            expires_at=a.expires_at,
            is_active=a.is_active,
            priority=a.priority,
            data_scope=a.data_scope,
        )
        for a in assignments
        if a.role_id in roles
    ]


@router.post(
    "/users/{user_id}/roles",
    dependencies=[Depends(require_permission("role.update"))],
    response_model=Message,
)
def assign_user_role(
    session: SessionDep,
    request: Request,
    current_user: CurrentUser,
    user_id: uuid.UUID,
    assign: UserRoleAssign,
) -> Any:
    _get_user(session, user_id)
    RoleManager(session, request).assign_role(user_id, assign, current_user.id)
    session.commit()
    return Message(message="Role assigned successfully")


@router.delete(
    "/users/{user_id}/roles/{role_id}",
    dependencies=[Depends(require_permission("role.update"))],
)
def revoke_user_role(
    session: SessionDep,
    request: Request,
    current_user: CurrentUser,
    user_id: uuid.UUID,
    role_id: int,
) -> Message:
    RoleManager(session, request).revoke_role(user_id, role_id, current_user.id)
    session.commit()
    return Message(message="Role revoked successfully")


@router.get(
    "/users/{user_id}/overrides",
    dependencies=[Depends(require_permission("permission.read"))],
    response_model=list[UserPermissionPublic],
)
def read_user_overrides(session: SessionDep, user_id: uuid.UUID) -> Any:
    return session.exec(
        select(UserPermission)
        .where(UserPermission.user_id == user_id, col(UserPermission.is_active).is_(True))
        .order_by(col(UserPermission.granted_at).desc())
    ).all()


@router.post(
    "/users/{user_id}/overrides",
    dependencies=[Depends(require_permission("permission.update"))],
    response_model=UserPermissionPublic,
)
def grant_user_permission(
    session: SessionDep,
    request: Request,
    current_user: CurrentUser,
    user_id: uuid.UUID,
    grant: UserPermissionGrant,
) -> Any:
    _get_user(session, user_id)
    override = RoleManager(session, request).grant_permission(
        user_id, grant, current_user.id
    )
    session.commit()
    session.refresh(override)
    return override


@router.delete(
    "/users/{user_id}/overrides/{permission_id}",
    dependencies=[Depends(require_permission("permission.update"))],
)
def revoke_user_permission(
    session: SessionDep,
    request: Request,
    current_user: CurrentUser,
    user_id: uuid.UUID,
    permission_id: int,
) -> Message:
    RoleManager(session, request).revoke_permission(
        user_id, permission_id, current_user.id
    )
    session.commit()
    return Message(message="Permission override revoked")


# Role requests
@router.post("/requests", response_model=PermissionRequestPublic)
def submit_request(
    session: SessionDep,
    request: Request,
    current_user: CurrentUser,
    request_in: PermissionRequestCreate,
) -> Any:
    permission_request = RoleManager(session, request).submit_request(
        current_user.id, request_in
    )
    session.commit()
    session.refresh(permission_request)
    return permission_request


@router.get("/requests/me", response_model=list[PermissionRequestPublic])
def read_my_requests(session: SessionDep, current_user: CurrentUser) -> Any:
    return session.exec(
        select(PermissionRequest)
        .where(PermissionRequest.user_id == current_user.id)
        .order_by(col(PermissionRequest.created_at).desc())
    ).all()


@router.get(
    "/requests",
    dependencies=[Depends(require_permission("permission.read"))],
    response_model=Page[PermissionRequestPublic],
)
def read_requests(
    session: SessionDep, params: PageDep, status: RequestStatus | None = None
) -> Any:
    statement = select(PermissionRequest)
    if status:
        statement = statement.where(PermissionRequest.status == status)
    statement = statement.order_by(col(PermissionRequest.created_at).desc())
    items, pagination = fetch_page(session, statement, params)
    return Page(data=items, pagination=pagination)


@router.post(
    "/requests/{request_id}/review",
    dependencies=[Depends(require_permission("permission.update"))],
    response_model=PermissionRequestPublic,
)
def review_request(
    session: SessionDep,
    request: Request,
    current_user: CurrentUser,
    request_id: int,
    review: PermissionRequestReview,
) -> Any:
    permission_request = RoleManager(session, request).review_request(
        request_id, review, current_user.id
    )
    session.commit()
    session.refresh(permission_request)
    return permission_request


@router.get(
    "/logs",
    dependencies=[Depends(require_any_permission("permission.read", "system.read"))],
    response_model=Page[PermissionLogPublic],
)
def read_permission_logs(
    session: SessionDep,
    params: PageDep,
    user_id: uuid.UUID | None = None,
    action: str | None = Query(None, max_length=50),
) -> Any:
    statement = select(PermissionLog)
    if user_id:
        statement = statement.where(PermissionLog.user_id == user_id)
    if action:
        statement = statement.where(PermissionLog.action == action)
    statement = statement.order_by(
        col(PermissionLog.created_at).desc(), col(PermissionLog.id).desc()
    )
    items, pagination = fetch_page(session, statement, params)
    return Page(data=items, pagination=pagination)


# Permissions
@router.get(
    "/",
    dependencies=[Depends(require_permission("permission.read"))],
    response_model=list[PermissionPublic],
)
def read_permissions(session: SessionDep, module: str | None = None) -> Any:
    statement = select(Permission)
    if module:
        statement = statement.where(Permission.module == module)
    return session.exec(
        statement.order_by(col(Permission.module), col(Permission.action))
    ).all()


@router.post(
    "/",
    dependencies=[Depends(require_permission("permission.create"))],
    response_model=PermissionPublic,
)
def create_permission(session: SessionDep, permission_in: PermissionCreate) -> Any:
    if session.exec(
        select(Permission).where(Permission.name == permission_in.name)
    ).first():
        raise HTTPException(status_code=409, detail="Permission name already exists")
    permission = Permission.model_validate(permission_in)
    session.add(permission)
    session.commit()
    session.refresh(permission)
    return permission


@router.patch(
    "/{permission_id}",
    dependencies=[Depends(require_permission("permission.update"))],
    response_model=PermissionPublic,
)
def update_permission(
    session: SessionDep, permission_id: int, permission_in: PermissionUpdate
) -> Any:
    permission = session.get(Permission, permission_id)
    if not permission:
        raise HTTPException(status_code=404, detail="Permission not found")
    permission.sqlmodel_update(permission_in.model_dump(exclude_unset=True))
    session.add(permission)
    session.commit()
    session.refresh(permission)
    return permission


@router.delete(
    "/{permission_id}",
    dependencies=[Depends(require_permission("permission.delete"))],
)
def delete_permission(session: SessionDep, permission_id: int) -> Message:
    permission = session.get(Permission, permission_id)
    if not permission:
        raise HTTPException(status_code=404, detail="Permission not found")
    if permission.is_system:
        raise HTTPException(
            status_code=400, detail="System permissions cannot be deleted"
        )
    for model in (RolePermission, UserPermission):
        for row in session.exec(
            select(model).where(model.permission_id == permission_id)
        ).all():
            session.delete(row)
    session.flush()
    session.delete(permission)
    session.commit()
    return Message(message="Permission deleted successfully")
