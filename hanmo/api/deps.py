"""
API Dependencies

Database sessions, bearer-token authentication and the permission
dependency factories used by the routes.
"""

import uuid
from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jwt.exceptions import InvalidTokenError
from pydantic import ValidationError
from sqlmodel import Session

from hanmo.core import security
from hanmo.core.config import settings
from hanmo.core.db import engine
from hanmo.core.observability import get_logger, set_user_id
from hanmo.models import TokenPayload, User

logger = get_logger(__name__)

reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/login/access-token"
)
optional_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/login/access-token", auto_error=False
)


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_db)]
TokenDep = Annotated[str, Depends(reusable_oauth2)]


def _credentials_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_from_token(session: Session, token: str) -> User:
    try:
        payload = security.decode_token(token)
        if payload.get("type", "access") != "access":
            raise _credentials_error()
        token_data = TokenPayload(**payload)
        user_id = uuid.UUID(token_data.sub) if token_data.sub else None
    except (InvalidTokenError, ValidationError, ValueError) as e:
        logger.warning("Token validation failed", error=str(e))
        raise _credentials_error()

    user = session.get(User, user_id) if user_id else None
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")
    return user


def get_current_user(session: SessionDep, token: TokenDep, request: Request) -> User:
    user = _user_from_token(session, token)
    set_user_id(str(user.id))
    request.state.current_user_id = user.id
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def get_optional_user(
    session: SessionDep,
    request: Request,
    token: Annotated[str | None, Depends(optional_oauth2)],
) -> User | None:
    """Resolve the caller on public endpoints; anonymous callers get None."""
    if not token:
        return None
    user = _user_from_token(session, token)
    set_user_id(str(user.id))
    request.state.current_user_id = user.id
    return user


OptionalUser = Annotated[User | None, Depends(get_optional_user)]


def get_current_active_superuser(current_user: CurrentUser) -> User:
    if not current_user.is_superuser:
        raise HTTPException(
            status_code=403, detail="The user doesn't have enough privileges"
        )
    return current_user