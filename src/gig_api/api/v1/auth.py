"""Health, login and account endpoints.

GET /health, POST /auth/login, GET /auth/me, GET /users, POST /users.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from gig_api import __version__
from gig_api.core.config import Settings, get_settings
from gig_api.core.dependencies import get_async_session, get_current_user, require_role
from gig_api.models.user import User
from gig_api.schemas.auth import PaginatedUserResponse, TokenResponse, UserCreateRequest, UserResponse
from gig_api.schemas.common import PaginationMeta, PaginationParams
from gig_api.services import auth_service
from gig_api.services.audit_service import AuditLogWriteError

router = APIRouter(tags=["auth"])

Session = Annotated[AsyncSession, Depends(get_async_session)]
AdminUser = Annotated[User, Depends(require_role("admin"))]


@router.get("/health", name="health")
async def health_check(settings: Annotated[Settings, Depends(get_settings)]) -> dict:
    return {"status": "healthy", "version": __version__, "environment": settings.environment}


@router.post("/auth/login", name="auth.login")
async def login(
    form: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: Session,
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenResponse:
    """Exchange username and password for an access/refresh token pair."""
    user = await auth_service.authenticate_user(session, form.username, form.password)
    if user is None:
        logger.info(f"Failed login for '{form.username}'")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown username or wrong password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth_service.generate_tokens(user, settings)


@router.get("/auth/me", response_model=UserResponse, name="auth.me")
async def get_me(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    return current_user


@router.get("/users", name="users.index")
async def list_users(
    _admin: AdminUser, session: Session, pagination: Annotated[PaginationParams, Depends()]
) -> PaginatedUserResponse:
    users, total = await auth_service.list_users(session, pagination.page, pagination.page_size)
    return PaginatedUserResponse(
        items=[UserResponse.model_validate(u) for u in users],
        pagination=PaginationMeta.from_counts(total, pagination.page, pagination.page_size),
    )


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED, name="users.store")
async def create_user(body: UserCreateRequest, admin: AdminUser, session: Session) -> User:
    """Open an account on someone's behalf (admin only)."""
    try:
        user = await auth_service.create_user(session, body, actor=admin)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except AuditLogWriteError as e:
        logger.error(f"Account creation rolled back, audit write failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="The account could not be recorded in the audit log and was not created.",
        ) from e
    logger.info(f"Admin {admin.username} created user {user.id} ({user.role})")
    return user
