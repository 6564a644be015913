from typing import Any

from sqlmodel import Session, select

from hanmo.core.config import settings
from hanmo.core.rbac import PERMISSION_MODULES, SYSTEM_ROLES, WILDCARD
from hanmo.core.security import get_password_hash, verify_password
from hanmo.models import (
    AdminMenu,
    CheckInRule,
    Permission,
    PointExchangeRate,
    ReferralCampaign,
    ReferralTask,
    Role,
    RolePermission,
    User,
    UserCreate,
    UserUpdate,
)

DEFAULT_CHECK_IN_RULES = [
    (1, 10, "Daily check-in"),
    (3, 20, "3 day streak"),
    (7, 30, "7 day streak"),
    (14, 50, "14 day streak"),
    (30, 100, "30 day streak"),
]

# key, label, path, permission
DEFAULT_ADMIN_MENUS = [
    ("dashboard", "Dashboard", "/admin", None),
    ("users", "Users", "/admin/users", "user.read"),
    ("comics", "Comics", "/admin/comics", "comic.read"),
    ("couplets", "Couplets", "/admin/couplets", "couplet.read"),
    ("feedback", "Feedback", "/admin/feedback", "feedback.read"),
    ("settings", "Settings", "/admin/settings", "site-settings.read"),
    ("logs", "System logs", "/admin/logs", "system.read"),
]


def create_user(*, session: Session, user_create: UserCreate) -> User:
    db_obj = User.model_validate(
        user_create, update={"hashed_password": get_password_hash(user_create.password)}
    )
    session.add(db_obj)
    session.commit()
    session.refresh(db_obj)
    return db_obj


def update_user(*, session: Session, db_user: User, user_in: UserUpdate) -> Any:
    user_data = user_in.model_dump(exclude_unset=True)
    extra_data = {}
    if "password" in user_data:
        password = user_data.pop("password")
        if password:
            extra_data["hashed_password"] = get_password_hash(password)
    db_user.sqlmodel_update(user_data, update=extra_data)
    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    return db_user


def get_user_by_email(*, session: Session, email: str) -> User | None:
    statement = select(User).where(User.email == email)
    session_user = session.exec(statement).first()
    return session_user


def authenticate(*, session: Session, email: str, password: str) -> User | None:
    db_user = get_user_by_email(session=session, email=email)
    if not db_user:
        return None
    if not verify_password(password, db_user.hashed_password):
        return None
    return db_user


def _seed_permissions(session: Session) -> dict[str, Permission]:
    existing = {p.name: p for p in session.exec(select(Permission)).all()}
    wanted = [(WILDCARD, "All permissions", "*", "*")]
    for module, actions in PERMISSION_MODULES.items():
        for action in actions:
            wanted.append(
                (f"{module}.{action}", f"{module} {action}", module, action)
            )
    for name, display_name, module, action in wanted:
        if name not in existing:
            permission = Permission(
                name=name,
                display_name=display_name,
                module=module,
                action=action,
                is_system=True,
            )
            session.add(permission)
            existing[name] = permission
    session.flush()
    return existing


def _seed_roles(session: Session, permissions: dict[str, Permission]) -> None:
    for name, (display_name, permission_names) in SYSTEM_ROLES.items():
        role = session.exec(select(Role).where(Role.name == name)).first()
        if role:
            continue
        role = Role(name=name, display_name=display_name, is_system=True)
        session.add(role)
        session.flush()
        for permission_name in permission_names:
            session.add(
                RolePermission(
                    role_id=role.id, permission_id=permissions[permission_name].id
                )
            )


def seed_defaults(*, session: Session) -> None:
    """Insert system roles, permissions and business defaults that are missing."""
    permissions = _seed_permissions(session)
    _seed_roles(session, permissions)

    if not session.exec(select(CheckInRule)).first():
        for order, (days, points, name) in enumerate(DEFAULT_CHECK_IN_RULES):
            session.add(
                CheckInRule(
                    name=name, consecutive_days=days, points=points, sort_order=order
                )
            )

    if not session.exec(select(PointExchangeRate)).first():
        session.add(
            PointExchangeRate(
                name="Standard",
                points_required=settings.POINTS_PER_CREDIT,
                credits_received=1,
            )
        )

    existing_menus = set(session.exec(select(AdminMenu.key)).all())
    for order, (key, label, path, permission) in enumerate(DEFAULT_ADMIN_MENUS):
        if key not in existing_menus:
            session.add(
                AdminMenu(
                    key=key,
                    label=label,
                    path=path,
                    permission=permission,
                    order=order,
                    is_system=True,
                )
            )

    if not session.exec(select(ReferralCampaign)).first():
        session.add(
            ReferralCampaign(
                name="Default",
                inviter_reward=settings.REFERRAL_INVITER_REWARD,
                invitee_reward=settings.REFERRAL_INVITEE_REWARD,
                requirement_type=ReferralTask.REGISTER,
            )
        )

    session.commit()
