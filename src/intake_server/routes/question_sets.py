"""Question-set admin endpoints — create, read, update, delete, duplicate.

Every endpoint requires an ``X-Admin-Key`` header.  Either the admin or the
HR key may manage sets; only the admin key may change which set is the
default.  ``X-Actor`` optionally names the person acting and is stored as
the owner of sets they create.
"""

import uuid

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from intake_db.models.enums import ActorRole
from intake_flow.errors import NotFoundError
from intake_flow.models.question import (
    QuestionSetInfo,
    QuestionSetPatch,
    QuestionSetSpec,
)
from intake_flow.registry import QuestionSetRegistry

from intake_server.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from intake_server.dependencies import get_db, get_registry, require_admin_key

router = APIRouter(prefix="/admin/question-sets", tags=["question-sets"])


@router.post("", status_code=201)
async def create_question_set(
    body: QuestionSetSpec,
    role: ActorRole = Depends(require_admin_key),
    actor: str | None = Header(None, alias="X-Actor"),
    db: AsyncSession = Depends(get_db),
    registry: QuestionSetRegistry = Depends(get_registry),
) -> QuestionSetInfo:
    """Create a question set.  Steps are re-numbered to 1..N.

    Only the admin key may create a set that is already the default; the
    HR key gets 403.
    """
    return await registry.create(db, body, owner=actor, actor_role=role)


@router.get("")
async def list_question_sets(
    owner: str | None = Query(None),
    role: ActorRole = Depends(require_admin_key),
    db: AsyncSession = Depends(get_db),
    registry: QuestionSetRegistry = Depends(get_registry),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
) -> list[QuestionSetInfo]:
    """List all sets (active or not), newest first."""
    return await registry.list_all(db, owner=owner, limit=limit, offset=offset)


@router.get("/{question_set_id}")
async def get_question_set(
    question_set_id: uuid.UUID,
    role: ActorRole = Depends(require_admin_key),
    db: AsyncSession = Depends(get_db),
    registry: QuestionSetRegistry = Depends(get_registry),
) -> QuestionSetInfo:
    info = await registry.get_by_id(db, question_set_id)
    if info is None:
        raise NotFoundError(f"Question set not found: {question_set_id}")
    return info


@router.patch("/{question_set_id}")
async def update_question_set(
    question_set_id: uuid.UUID,
    body: QuestionSetPatch,
    role: ActorRole = Depends(require_admin_key),
    db: AsyncSession = Depends(get_db),
    registry: QuestionSetRegistry = Depends(get_registry),
) -> QuestionSetInfo:
    """Partially update a set.

    Raises 409 if ``questions`` changes while applications are in progress.
    Setting ``is_default`` through PATCH requires the admin key (403 otherwise).
    """
    return await registry.update(db, question_set_id, body, actor_role=role)


@router.post("/{question_set_id}/default")
async def set_default_question_set(
    question_set_id: uuid.UUID,
    role: ActorRole = Depends(require_admin_key),
    db: AsyncSession = Depends(get_db),
    registry: QuestionSetRegistry = Depends(get_registry),
) -> QuestionSetInfo:
    """Make this set the only default (admin key only, 403 otherwise)."""
    return await registry.set_default(db, question_set_id, actor_role=role)


@router.post("/{question_set_id}/duplicate", status_code=201)
async def duplicate_question_set(
    question_set_id: uuid.UUID,
    role: ActorRole = Depends(require_admin_key),
    actor: str | None = Header(None, alias="X-Actor"),
    db: AsyncSession = Depends(get_db),
    registry: QuestionSetRegistry = Depends(get_registry),
) -> QuestionSetInfo:
    """Copy a set as an inactive "<title> (Copy)"."""
    return await registry.duplicate(db, question_set_id, owner=actor)


@router.delete("/{question_set_id}", status_code=204)
async def delete_question_set(
    question_set_id: uuid.UUID,
    role: ActorRole = Depends(require_admin_key),
    db: AsyncSession = Depends(get_db),
    registry: QuestionSetRegistry = Depends(get_registry),
) -> None:
    """Delete a set.  409 if it is the default or has open applications."""
    await registry.delete(db, question_set_id)
