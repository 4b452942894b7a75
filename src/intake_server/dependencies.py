"""FastAPI dependency injection — DB sessions, SDK components, admin identity.

Each request that touches the database gets a fresh ``AsyncSession`` via
``get_db()``.  The session is committed on success and rolled back on error,
matching the SDK convention where registry/repository call ``flush()`` but
never ``commit()``.
"""

import hmac
from typing import AsyncGenerator

from fastapi import Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from intake_db.engine import get_session_factory
from intake_db.models.enums import ActorRole
from intake_flow.listing import JobListing
from intake_flow.registry import QuestionSetRegistry

from intake_server.telegram import TelegramTransport


# ------------------------------------------------------------------
# Database session: transaction boundary lives here
# ------------------------------------------------------------------

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session; commit on success, rollback on error."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ------------------------------------------------------------------
# SDK components, stashed on app.state during lifespan
# ------------------------------------------------------------------

def get_registry(request: Request) -> QuestionSetRegistry:
    return request.app.state.registry


def get_listing(request: Request) -> JobListing:
    return request.app.state.listing


def get_transport(request: Request) -> TelegramTransport:
    return request.app.state.transport


# ------------------------------------------------------------------
# Admin identity (X-Admin-Key header)
# ------------------------------------------------------------------

async def require_admin_key(
    request: Request,
    x_admin_key: str | None = Header(None, alias="X-Admin-Key"),
) -> ActorRole:
    """Resolve the caller's role from the ``X-Admin-Key`` header.

    ``ADMIN_API_KEY`` grants the admin role, ``HR_API_KEY`` the HR role.
    Raises 401 if the header is missing, 403 if no key is configured or the
    key does not match.
    """
    settings = request.app.state.settings
    if not settings.admin_api_key and not settings.hr_api_key:
        raise HTTPException(
            status_code=403,
            detail="Admin endpoints are disabled (ADMIN_API_KEY not configured)",
        )
    if not x_admin_key:
        raise HTTPException(status_code=401, detail="X-Admin-Key header is required")

    # Constant-time comparison to prevent timing side-channels.
    if settings.admin_api_key and hmac.compare_digest(x_admin_key, settings.admin_api_key):
        return ActorRole.ADMIN
    if settings.hr_api_key and hmac.compare_digest(x_admin_key, settings.hr_api_key):
        return ActorRole.HR
    raise HTTPException(status_code=403, detail="Invalid admin key")
