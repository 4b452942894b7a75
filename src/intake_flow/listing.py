"""JobListing — what a subject can apply for, and where they stand.

Subject-facing views (``list_jobs``, ``list_applications``, ``status``)
return :class:`StepOutcome` like every other transition.  ``summaries`` and
``stats`` are the read-only view offered to consumers outside the
conversation (admin API, exports, ranking).
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from intake_db.repository import IntakeSessionRepository

from intake_flow.constants import STATUS_RESPONSE_LIMIT, STATUS_VALUE_MAX_CHARS
from intake_flow.errors import ConfigurationError, NotFoundError
from intake_flow.messages import MessageRenderer
from intake_flow.models.messages import (
    Button,
    OutboundKind,
    OutboundMessage,
    StepOutcome,
    Subject,
)
from intake_flow.models.question import QuestionSetInfo
from intake_flow.models.session import (
    ApplicationStats,
    ApplicationSummary,
    attachment_of,
    status_of,
)
from intake_flow.registry import QuestionSetRegistry

logger = logging.getLogger(__name__)

UNKNOWN_POSITION = "Unknown position"


def truncate(value: str, limit: int = STATUS_VALUE_MAX_CHARS) -> str:
    if len(value) <= limit:
        return value
    return value[: limit - 3] + "..."


def field_label(field_key: str) -> str:
    return field_key[:1].upper() + field_key[1:]


class JobListing:
    """Read-side views over question sets and sessions."""

    def __init__(
        self,
        registry: QuestionSetRegistry,
        renderer: MessageRenderer | None = None,
    ) -> None:
        self._registry = registry
        self._renderer = renderer or MessageRenderer()
        self._repo = IntakeSessionRepository()

    # ==================================================================
    # Subject-facing
    # ==================================================================

    async def list_jobs(self, db: AsyncSession, subject: Subject) -> StepOutcome:
        """Every active question set as a button, marked ⏳/✅ if started."""
        sets = await self._registry.get_active(db)
        if not sets:
            raise ConfigurationError(
                "No active question sets",
                user_message=(
                    "❌ No open positions available at the moment. "
                    "Please check back later or contact an administrator."
                ),
            )
        titles = await self._registry.display_titles(db, sets)
        sessions = {
            row.question_set_id: row
            for row in await self._repo.list_by_subject(db, subject.subject_id)
        }

        buttons: list[Button] = []
        for info in sets:
            label = titles[info.id]
            row = sessions.get(info.id)
            if row is not None:
                label += " ✅" if row.is_completed else " ⏳"
            buttons.append(Button(label=label, payload=f"/start {info.id}"))
        buttons.append(Button(label="📋 My Applications", payload="/applications"))

        text = self._renderer.render(
            "job_listing.jinja2",
            has_started=any(info.id in sessions for info in sets),
        )
        return StepOutcome(messages=[
            OutboundMessage(kind=OutboundKind.JOB_LISTING, text=text, buttons=buttons),
        ])

    async def list_applications(self, db: AsyncSession, subject: Subject) -> StepOutcome:
        """All of the subject's sessions, newest first."""
        rows = await self._repo.list_by_subject(db, subject.subject_id)
        if not rows:
            return StepOutcome(messages=[OutboundMessage(
                kind=OutboundKind.APPLICATIONS,
                text="📋 You haven't applied for any jobs yet.\n\nUse /jobs to see available positions!",
            )])

        infos = await self._infos_for(db, rows)
        titles = await self._registry.display_titles(db, list(infos.values()))
        applications = []
        for row in rows:
            info = infos.get(row.question_set_id)
            applications.append({
                "title": titles.get(row.question_set_id, UNKNOWN_POSITION),
                "completed": row.is_completed,
                "step": row.current_step,
                "total": info.question_count if info else 0,
                "created_at": row.created_at,
            })
        text = self._renderer.render("applications.jinja2", applications=applications)
        return StepOutcome(messages=[
            OutboundMessage(kind=OutboundKind.APPLICATIONS, text=text),
        ])

    async def status(self, db: AsyncSession, subject: Subject) -> StepOutcome:
        """Detail of the subject's most relevant session."""
        row = await self._repo.get_most_relevant(db, subject.subject_id)
        if row is None:
            return StepOutcome(messages=[OutboundMessage(
                kind=OutboundKind.STATUS,
                text="❌ No applications found. Use /jobs to see available positions and apply!",
            )])

        info = await self._registry.get_by_id(db, row.question_set_id)
        if info is None:
            raise NotFoundError(
                f"Session {row.id} references missing question set {row.question_set_id}",
                user_message="❌ Question set not found. Please restart your application.",
            )
        title = await self._registry.display_title(db, info)
        attachment = attachment_of(row)

        if row.is_completed:
            responses, more = self._response_lines(row, info)
            text = self._renderer.render(
                "status_completed.jinja2",
                title=title,
                attachment=attachment,
                responses=responses,
                more_responses=more,
                submitted_at=row.completed_at or row.updated_at,
            )
        else:
            total = info.question_count
            text = self._renderer.render(
                "status_in_progress.jinja2",
                title=title,
                step=row.current_step,
                total=total,
                percentage=round(row.current_step / total * 100) if total else 0,
                attachment=attachment,
                started_at=row.created_at,
            )
        return StepOutcome(messages=[OutboundMessage(kind=OutboundKind.STATUS, text=text)])

    # ==================================================================
    # Collaborator view
    # ==================================================================

    async def summaries(
        self,
        db: AsyncSession,
        *,
        question_set_id: uuid.UUID | None = None,
        completed: bool | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[ApplicationSummary]:
        rows = await self._repo.list_sessions(
            db,
            question_set_id=question_set_id,
            completed=completed,
            limit=limit,
            offset=offset,
        )
        infos = await self._infos_for(db, rows)
        titles = await self._registry.display_titles(db, list(infos.values()))
        result = []
        for row in rows:
            info = infos.get(row.question_set_id)
            result.append(ApplicationSummary(
                session_id=row.id,
                subject_id=row.subject_id,
                username=row.username,
                question_set_id=row.question_set_id,
                title=titles.get(row.question_set_id, UNKNOWN_POSITION),
                job_id=info.job_id if info else None,
                status=status_of(row),
                current_step=row.current_step,
                total_steps=info.question_count if info else 0,
                has_attachment=attachment_of(row) is not None,
                created_at=row.created_at,
                completed_at=row.completed_at,
            ))
        return result

    async def stats(
        self, db: AsyncSession, *, question_set_id: uuid.UUID | None = None
    ) -> ApplicationStats:
        counts = await self._repo.stats(db, question_set_id=question_set_id)
        return ApplicationStats(**counts)

    # ==================================================================
    # Internal helpers
    # ==================================================================

    async def _infos_for(
        self, db: AsyncSession, rows: list[Any]
    ) -> dict[uuid.UUID, QuestionSetInfo]:
        infos: dict[uuid.UUID, QuestionSetInfo] = {}
        for set_id in {row.question_set_id for row in rows}:
            info = await self._registry.get_by_id(db, set_id)
            if info is None:
                logger.warning("Sessions reference missing question set %s", set_id)
                continue
            infos[set_id] = info
        return infos

    @staticmethod
    def _response_lines(row: Any, info: QuestionSetInfo) -> tuple[list[tuple[str, str]], bool]:
        """Answered questions in order, capped at ``STATUS_RESPONSE_LIMIT``."""
        answered = [
            (field_label(q.field_key), truncate(row.responses[q.field_key]))
            for q in info.questions
            if (row.responses or {}).get(q.field_key)
        ]
        return answered[:STATUS_RESPONSE_LIMIT], len(answered) > STATUS_RESPONSE_LIMIT
