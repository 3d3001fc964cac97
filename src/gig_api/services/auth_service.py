"""Accounts: credential checks, creation and token issuance.

New accounts are written to the audit log as CREATE entries on ``users``,
which the profile-change rule counts alongside later profile edits.
"""

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from gig_api.core.config import Settings
from gig_api.core.security import create_access_token, create_refresh_token, hash_password, verify_password
from gig_api.models.base import utcnow
from gig_api.models.user import User
from gig_api.schemas.auth import TokenResponse, UserCreateRequest
from gig_api.services import audit_service


async def authenticate_user(session: AsyncSession, username: str, password: str) -> User | None:
    """Return the active account matching the credentials and stamp its login time, else None."""
    user = (await session.execute(select(User).where(User.username == username))).scalar_one_or_none()
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    user.last_login_at = utcnow()
    await session.commit()
    return user


async def create_user(session: AsyncSession, request: UserCreateRequest, *, actor: User | None = None) -> User:
    """Create an account.

    Args:
        session: Database session; committed together with the audit entry.
        request: Validated account fields.
        actor: Admin creating the account, or None when created by the CLI.

    Raises:
        ValueError: If the username or email is taken.
        AuditLogWriteError: If the creation could not be audited; nothing is stored.
    """
    clash = await session.execute(
        select(User.id).where(or_(User.username == request.username, User.email == request.email))
    )
    if clash.first() is not None:
        msg = f"An account named '{request.username}' or using that email already exists"
        raise ValueError(msg)

    user = User(
        username=request.username,
        email=request.email,
        hashed_password=hash_password(request.password),
        role=request.role,
        id_verified=request.id_verified,
    )
    session.add(user)
    await session.flush()
    await audit_service.log_state_change(
        session,
        table_name="users",
        action="CREATE",
        record_id=user.id,
        user_id=actor.id if actor else None,
        user_type="admin" if actor else "system",
        new_values={"username": user.username, "email": user.email, "role": user.role},
    )
    await session.refresh(user)
    return user


async def list_users(session: AsyncSession, page: int = 1, page_size: int = 20) -> tuple[list[User], int]:
    """One page of accounts in creation order, plus the overall count."""
    total = (await session.execute(select(func.count(User.id)))).scalar_one()
    page_query = select(User).order_by(User.created_at).offset((page - 1) * page_size).limit(page_size)
    return list((await session.execute(page_query)).scalars().all()), total


def generate_tokens(user: User, settings: Settings) -> TokenResponse:
    lifetime = settings.jwt_access_token_expire_minutes
    return TokenResponse(
        access_token=create_access_token(
            user.username, user.role, settings.jwt_secret_key, settings.jwt_algorithm, expires_minutes=lifetime
        ),
        refresh_token=create_refresh_token(
            user.username,
            settings.jwt_secret_key,
            settings.jwt_algorithm,
            expires_days=settings.jwt_refresh_token_expire_days,
        ),
        expires_in=lifetime * 60,
    )
