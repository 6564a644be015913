from datetime import timedelta
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordRequestForm

from hanmo import crud
from hanmo.api.deps import CurrentUser, SessionDep
from hanmo.core import security
from hanmo.core.account_lock import (
    check_account_lock,
    record_login_failure,
    record_login_success,
)
from hanmo.core.config import settings
from hanmo.core.observability import LOGIN_ATTEMPTS, get_logger
from hanmo.core.rate_limiter import get_client_ip, login_limiter
from hanmo.models import LogLevel, Token, UserPublic
from hanmo.services import audit

logger = get_logger(__name__)

router = APIRouter(tags=["login"])


def _locked(lock_expires_at: Any) -> HTTPException:
    until = lock_expires_at.isoformat() if lock_expires_at else None
    return HTTPException(
        status_code=423,
        detail=f"Account is locked until {until}" if until else "Account is locked",
    )


@router.post("/login/access-token", dependencies=[Depends(login_limiter)])
def login_access_token(
    session: SessionDep,
    request: Request,
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
) -> Token:
    """
    OAuth2 compatible token login, get an access token for future requests
    """
    db_user = crud.get_user_by_email(session=session, email=form_data.username)
    if db_user:
        lock = check_account_lock(session, db_user)
        if lock.is_locked:
            LOGIN_ATTEMPTS.labels(outcome="locked").inc()
            raise _locked(lock.lock_expires_at)

    user = crud.authenticate(
        session=session, email=form_data.username, password=form_data.password
    )
    if not user:
        LOGIN_ATTEMPTS.labels(outcome="failure").inc()
        logger.warning(
            "Login failed", email=form_data.username, client_ip=get_client_ip(request)
        )
        if db_user:
            lock = record_login_failure(session, db_user)
            if lock.is_locked:
                audit.log_event(
                    session,
                    module="auth",
                    action="lock",
                    description=f"Account {db_user.email} locked: {lock.reason}",
                    level=LogLevel.WARN,
                    user_id=db_user.id,
                    request=request,
                )
                raise _locked(lock.lock_expires_at)
        raise HTTPException(status_code=400, detail="Incorrect email or password")
    elif not user.is_active:
        LOGIN_ATTEMPTS.labels(outcome="inactive").inc()
        raise HTTPException(status_code=400, detail="Inactive user")

    record_login_success(session, user)
    LOGIN_ATTEMPTS.labels(outcome="success").inc()
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return Token(
        access_token=security.create_access_token(
            user.id, expires_delta=access_token_expires
        )
    )


@router.post("/login/test-token", response_model=UserPublic)
def test_token(current_user: CurrentUser) -> Any:
    """
    Test access token
    """
    return current_user
