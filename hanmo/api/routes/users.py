import uuid
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from sqlmodel import col, or_, select

from hanmo import crud
from hanmo.api.deps import CurrentUser, SessionDep
from hanmo.core.account_lock import get_lock_stats, unlock_account
from hanmo.core.config import settings
from hanmo.core.observability import get_logger
from hanmo.core.rate_limiter import (
    change_password_limiter,
    resend_verification_limiter,
    signup_limiter,
    verify_email_limiter,
)
from hanmo.core.rbac import PermissionService, require_permission
from hanmo.core.security import get_password_hash, verify_password
from hanmo.models import (
    Message,
    Page,
    ReferralTask,
    UpdatePassword,
    User,
    UserCreate,
    UserPublic,
    UserRegister,
    UserUpdate,
    UserUpdateMe,
    VerifyEmail,
)
from hanmo.services import audit, referral
from hanmo.utils.mail import (
    generate_email_verification_token,
    generate_new_account_email,
    generate_verification_email,
    send_email,
    verify_email_verification_token,
)
from hanmo.utils.pagination import PageDep, fetch_page

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _send_verification(background_tasks: BackgroundTasks, email: str) -> None:
    if not settings.emails_enabled:
        return
    email_data = generate_verification_email(
        email_to=email, token=generate_email_verification_token(email)
    )
    background_tasks.add_task(
        send_email,
        email_to=email,
        subject=email_data.subject,
        html_content=email_data.html_content,
    )


@router.get(
    "/",
    dependencies=[Depends(require_permission("user.read"))],
    response_model=Page[UserPublic],
)
def read_users(
    session: SessionDep,
    params: PageDep,
    search: str | None = Query(None, max_length=100),
) -> Any:
    """
    Retrieve users.
    """
    statement = select(User)
    if search:
        pattern = f"%{search}%"
        statement = statement.where(
            or_(col(User.email).ilike(pattern), col(User.full_name).ilike(pattern))
        )
    statement = statement.order_by(col(User.created_at).desc())
    users, pagination = fetch_page(session, statement, params)
    return Page(data=users, pagination=pagination)


@router.post(
    "/",
    dependencies=[Depends(require_permission("user.create"))],
    response_model=UserPublic,
)
def create_user(
    *,
    session: SessionDep,
    user_in: UserCreate,
    background_tasks: BackgroundTasks,
) -> Any:
    """
    Create new user.
    """
    user = crud.get_user_by_email(session=session, email=user_in.email)
    if user:
        raise HTTPException(
            status_code=400,
            detail="The user with this email already exists in the system.",
        )

    user = crud.create_user(session=session, user_create=user_in)
    if settings.emails_enabled and user_in.email:
        email_data = generate_new_account_email(
            email_to=user_in.email, username=user_in.email
        )
        background_tasks.add_task(
            send_email,
            email_to=user_in.email,
            subject=email_data.subject,
            html_content=email_data.html_content,
        )
    return user


@router.get(
    "/lock-stats",
    dependencies=[Depends(require_permission("user.read"))],
)
def read_lock_stats(session: SessionDep) -> dict[str, int]:
    """
    Number of locked accounts and accounts with failed logins.
    """
    return get_lock_stats(session)


@router.patch("/me", response_model=UserPublic)
def update_user_me(
    *, session: SessionDep, user_in: UserUpdateMe, current_user: CurrentUser
) -> Any:
    """
    Update own user.
    """
    if user_in.email:
        existing_user = crud.get_user_by_email(session=session, email=user_in.email)
        if existing_user and existing_user.id != current_user.id:
            raise HTTPException(
                status_code=409, detail="User with this email already exists"
            )
    user_data = user_in.model_dump(exclude_unset=True)
    if user_in.email and user_in.email != current_user.email:
        user_data["email_verified"] = False
    current_user.sqlmodel_update(user_data)
    session.add(current_user)
    session.commit()
    session.refresh(current_user)
    return current_user


@router.patch(
    "/me/password",
    dependencies=[Depends(change_password_limiter)],
    response_model=Message,
)
def update_password_me(
    *,
    session: SessionDep,
    body: UpdatePassword,
    current_user: CurrentUser,
    request: Request,
) -> Any:
    """
    Update own password.
    """
    if not verify_password(body.current_password, current_user.hashed_password):
        raise HTTPException(status_code=400, detail="Incorrect password")
    if body.current_password == body.new_password:
        raise HTTPException(
            status_code=400, detail="New password cannot be the same as the current one"
        )
    current_user.hashed_password = get_password_hash(body.new_password)
    session.add(current_user)
    session.commit()
    audit.log_event(
        session,
        module="user",
        action="change_password",
        user_id=current_user.id,
        request=request,
    )
    return Message(message="Password updated successfully")


@router.get("/me", response_model=UserPublic)
def read_user_me(current_user: CurrentUser) -> Any:
    """
    Get current user.
    """
    return current_user


@router.delete("/me", response_model=Message)
def delete_user_me(session: SessionDep, current_user: CurrentUser) -> Any:
    """
    Delete own user.
    """
    if current_user.is_superuser:
        raise HTTPException(
            status_code=403, detail="Super users are not allowed to delete themselves"
        )
    session.delete(current_user)
    session.commit()
    return Message(message="User deleted successfully")


@router.post(
    "/signup", dependencies=[Depends(signup_limiter)], response_model=UserPublic
)
def register_user(
    session: SessionDep,
    user_in: UserRegister,
    background_tasks: BackgroundTasks,
    request: Request,
) -> Any:
    """
    Create new user without the need to be logged in.
    """
    user = crud.get_user_by_email(session=session, email=user_in.email)
    if user:
        raise HTTPException(
            status_code=400,
            detail="The user with this email already exists in the system",
        )
    user_create = UserCreate.model_validate(
        user_in.model_dump(exclude={"referral_code"})
    )
    user = crud.create_user(session=session, user_create=user_create)
    if user_in.referral_code:
        referral.apply_signup_code(session, user.id, user_in.referral_code)
    audit.log_event(
        session,
        module="user",
        action="signup",
        description=f"User {user.email} registered",
        user_id=user.id,
        request=request,
    )
    _send_verification(background_tasks, user.email)
    session.refresh(user)
    return user


@router.post(
    "/verify-email",
    dependencies=[Depends(verify_email_limiter)],
    response_model=Message,
)
def verify_email(session: SessionDep, body: VerifyEmail) -> Message:
    """
    Confirm an email address with the token sent at signup.
    """
    email = verify_email_verification_token(body.token)
    if not email:
        raise HTTPException(status_code=400, detail="Invalid token")
    user = crud.get_user_by_email(session=session, email=email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.email_verified:
        return Message(message="Email already verified")
    user.email_verified = True
    session.add(user)
    session.commit()
    referral.complete_if_pending(session, user.id, ReferralTask.VERIFIED_EMAIL)
    return Message(message="Email verified successfully")


@router.post(
    "/resend-verification",
    dependencies=[Depends(resend_verification_limiter)],
    response_model=Message,
)
def resend_verification(
    current_user: CurrentUser, background_tasks: BackgroundTasks
) -> Message:
    """
    Send the verification email again.
    """
    if current_user.email_verified:
        raise HTTPException(status_code=400, detail="Email already verified")
    _send_verification(background_tasks, current_user.email)
    return Message(message="Verification email sent")


@router.get("/{user_id}", response_model=UserPublic)
def read_user_by_id(
    user_id: uuid.UUID, session: SessionDep, current_user: CurrentUser
) -> Any:
    """
    Get a specific user by id.
    """
    user = session.get(User, user_id)
    if user == current_user:
        return user
    if not PermissionService(session).has_permission(current_user, "user.read"):
        raise HTTPException(
            status_code=403,
            detail="The user doesn't have enough privileges",
        )
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.patch(
    "/{user_id}",
    dependencies=[Depends(require_permission("user.update"))],
    response_model=UserPublic,
)
def update_user(
    *,
    session: SessionDep,
    user_id: uuid.UUID,
    user_in: UserUpdate,
) -> Any:
    """
    Update a user.
    """
    db_user = session.get(User, user_id)
    if not db_user:
        raise HTTPException(
            status_code=404,
            detail="The user with this id does not exist in the system",
        )
    if user_in.email:
        existing_user = crud.get_user_by_email(session=session, email=user_in.email)
        if existing_user and existing_user.id != user_id:
            raise HTTPException(
                status_code=409, detail="User with this email already exists"
            )

    db_user = crud.update_user(session=session, db_user=db_user, user_in=user_in)
    return db_user


@router.post(
    "/{user_id}/unlock",
    dependencies=[Depends(require_permission("user.update"))],
    response_model=UserPublic,
)
def unlock_user(
    session: SessionDep, user_id: uuid.UUID, current_user: CurrentUser, request: Request
) -> Any:
    """
    Clear the login lock on an account.
    """
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    user = unlock_account(session, user)
    audit.log_event(
        session,
        module="user",
        action="unlock",
        description=f"Account {user.email} unlocked",
        user_id=current_user.id,
        request=request,
    )
    return user


@router.delete(
    "/{user_id}", dependencies=[Depends(require_permission("user.delete"))]
)
def delete_user(
    session: SessionDep, current_user: CurrentUser, user_id: uuid.UUID
) -> Message:
    """
    Delete a user.
    """
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user == current_user:
        raise HTTPException(
            status_code=403, detail="Super users are not allowed to delete themselves"
        )
    session.delete(user)
    session.commit()
    return Message(message="User deleted successfully")
