import uuid
from collections.abc import Generator
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jwt.exceptions import InvalidTokenError
from pydantic import ValidationError
from sqlmodel import Session

from advo.core import security
from advo.core.config import settings
from advo.core.db import engine
from advo.models import TokenPayload, User, UserRole

reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/login/access-token", auto_error=False
)


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_db)]
TokenDep = Annotated[str | None, Depends(reusable_oauth2)]


def get_token(request: Request, token: TokenDep) -> str | None:
    """Bearer token first, then the session cookie set at login."""
    return token or request.cookies.get(settings.SESSION_COOKIE_NAME)


def _user_from_token(session: Session, token: str) -> User | None:
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[security.ALGORITHM]
        )
        token_data = TokenPayload(**payload)
        user_id = uuid.UUID(token_data.sub or "")
    except (InvalidTokenError, ValidationError, ValueError):
        return None
    return session.get(User, user_id)


def get_current_user(
    session: SessionDep, token: Annotated[str | None, Depends(get_token)]
) -> User:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = _user_from_token(session, token)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")
    return user


def get_optional_user(
    session: SessionDep, token: Annotated[str | None, Depends(get_token)]
) -> User | None:
    if not token:
        return None
    user = _user_from_token(session, token)
    if not user or not user.is_active:
        return None
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]


def get_current_active_admin(current_user: CurrentUser) -> User:
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=403, detail="The user doesn't have enough privileges"
        )
    return current_user


def get_admin_or_business_rep(current_user: CurrentUser) -> User:
    if current_user.role not in (UserRole.ADMIN, UserRole.BUSINESS_REP):
        raise HTTPException(
            status_code=403, detail="The user doesn't have enough privileges"
        )
    return current_user


AdminUser = Annotated[User, Depends(get_current_active_admin)]
AdminOrBusinessRep = Annotated[User, Depends(get_admin_or_business_rep)]


def has_business_access(user: User | None, resource_id: uuid.UUID) -> bool:
    if user is None:
        return False
    if user.role == UserRole.ADMIN:
        return True
    return (
        user.role == UserRole.BUSINESS_REP
        and user.managed_resource_id == resource_id
    )
