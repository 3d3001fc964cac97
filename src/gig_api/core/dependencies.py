"""Request-scoped dependencies: database session, caller identity, role gates."""

from collections.abc import AsyncGenerator, Callable
from typing import Annotated, Any

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gig_api.core.config import Settings, get_settings
from gig_api.core.database import get_session_factory
from gig_api.core.security import ACCESS_TOKEN_TYPE, decode_token
from gig_api.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/login")


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """One session per request, closed when the response is sent."""
    async with get_session_factory()() as session:
        yield session


async def get_user_by_username(session: AsyncSession, username: str) -> User | None:
    return (await session.execute(select(User).where(User.username == username))).scalar_one_or_none()


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    """Resolve the bearer token to an active user.

    Raises:
        HTTPException: 401 for a bad, expired or non-access token, or an
            unknown or deactivated user.
    """
    try:
        claims = decode_token(token, settings.jwt_secret_key, settings.jwt_algorithm)
    except jwt.InvalidTokenError as exc:
        raise _unauthorized() from exc
    if claims.get("type") != ACCESS_TOKEN_TYPE or not claims.get("sub"):
        raise _unauthorized()

    user = await get_user_by_username(session, claims["sub"])
    if user is None or not user.is_active:
        raise _unauthorized()
    return user


def require_role(*roles: str) -> Callable[..., Any]:
    """Build a dependency that admits only users holding one of ``roles``."""

    async def role_checker(current_user: Annotated[User, Depends(get_current_user)]) -> User:
        if current_user.role in roles:
            return current_user
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Role '{current_user.role}' may not use this endpoint",
        )

    return role_checker


def client_ip(request: Request) -> str | None:
    """Client IP resolved by the middleware stack, falling back to the socket peer."""
    resolved = getattr(request.state, "client_ip", None)
    if resolved:
        return resolved
    return request.client.host if request.client else None
