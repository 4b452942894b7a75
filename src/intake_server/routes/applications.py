"""Application read endpoints for the hiring team.

Exposes the same summaries the listing component offers to other
consumers.  Requires an ``X-Admin-Key`` header (admin or HR key).
"""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from intake_db.models.enums import ActorRole
from intake_flow.listing import JobListing
from intake_flow.models.session import ApplicationStats, ApplicationSummary

from intake_server.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from intake_server.dependencies import get_db, get_listing, require_admin_key

router = APIRouter(prefix="/admin/applications", tags=["applications"])


@router.get("")
async def list_applications(
    question_set_id: uuid.UUID | None = Query(None),
    completed: bool | None = Query(None),
    role: ActorRole = Depends(require_admin_key),
    db: AsyncSession = Depends(get_db),
    listing: JobListing = Depends(get_listing),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
) -> list[ApplicationSummary]:
    """List applications, newest first."""
    return await listing.summaries(
        db,
        question_set_id=question_set_id,
        completed=completed,
        limit=limit,
        offset=offset,
    )


@router.get("/stats")
async def application_stats(
    question_set_id: uuid.UUID | None = Query(None),
    role: ActorRole = Depends(require_admin_key),
    db: AsyncSession = Depends(get_db),
    listing: JobListing = Depends(get_listing),
) -> ApplicationStats:
    return await listing.stats(db, question_set_id=question_set_id)
