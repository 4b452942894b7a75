"""IntakeEngine — the per-subject conversation state machine.

Stateless engine pattern: each call loads session state from the database,
computes the transition, persists changes, and returns the result.  No
in-memory state is kept between calls.

The engine accepts an ``AsyncSession`` from the caller so that the caller
(the dispatcher, or a test) controls transaction boundaries.

States per (subject, question set):

    SELECTING     no session row yet
    ANSWERING(k)  row exists, ``current_step == k - 1``, not completed
    COMPLETED     ``current_step == N`` and ``is_completed``

Every public method returns a :class:`StepOutcome`: the ordered messages to
deliver plus, at most once per completion, a screening handoff.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from intake_db.models.intake_session import IntakeSession
from intake_db.repository import IntakeSessionRepository

from intake_flow.completion import CompletionTrigger
from intake_flow.errors import NotFoundError, StaleSessionError, StorageError
from intake_flow.interfaces import FileStorage
from intake_flow.messages import MessageRenderer
from intake_flow.models.messages import (
    OutboundKind,
    OutboundMessage,
    StepOutcome,
    Subject,
)
from intake_flow.models.question import QuestionSetInfo
from intake_flow.models.session import attachment_of
from intake_flow.registry import QuestionSetRegistry
from intake_flow.validation import compose_hint, normalize_answer, validate

logger = logging.getLogger(__name__)

NO_ACTIVE_APPLICATION = (
    "❌ No active application found. Use /jobs to start applying for positions."
)


class IntakeEngine:
    """Drives subjects through question sets one validated answer at a time.

    Args:
        registry: question-set lookups.
        storage: attachment storage, used to release files on reset.
        completion: builds handoffs when a session completes with a resume.
        renderer: message templates.
    """

    def __init__(
        self,
        registry: QuestionSetRegistry,
        storage: FileStorage,
        *,
        completion: CompletionTrigger | None = None,
        renderer: MessageRenderer | None = None,
    ) -> None:
        self._registry = registry
        self._storage = storage
        self._completion = completion or CompletionTrigger(registry)
        self._renderer = renderer or MessageRenderer()
        self._repo = IntakeSessionRepository()

    # ==================================================================
    # Selection
    # ==================================================================

    async def select(
        self, db: AsyncSession, subject: Subject, question_set_id: uuid.UUID
    ) -> StepOutcome:
        """Start, resume, or report on the subject's session for a set."""
        info = await self._registry.get_by_id(db, question_set_id)
        if info is None or not info.is_active:
            raise NotFoundError(
                f"Question set not found or inactive: {question_set_id}",
                user_message="❌ Invalid question set ID. Use /jobs to see available positions.",
            )
        title = await self._registry.display_title(db, info)

        row, created = await self._repo.get_or_create(
            db,
            subject_id=subject.subject_id,
            question_set_id=info.id,
            username=subject.username,
            first_name=subject.first_name,
            last_name=subject.last_name,
        )

        if not created:
            return await self._resume(db, row, info, title)

        logger.info(
            "Session %s created: subject=%s question_set=%s",
            row.id, subject.subject_id, info.id,
        )
        welcome = self._renderer.welcome(
            title=title,
            description=info.description,
            question_count=info.question_count,
        )
        return StepOutcome(messages=[
            OutboundMessage(kind=OutboundKind.INFO, text=welcome),
            self.current_prompt(row, info),
        ])

    async def select_job(
        self, db: AsyncSession, subject: Subject, job_id: uuid.UUID
    ) -> StepOutcome:
        """Resolve the active question set for ``job_id`` and select it."""
        info = await self._registry.get_by_job(db, job_id)
        if info is None:
            raise NotFoundError(
                f"No active question set for job {job_id}",
                user_message="❌ Application for this job is not available at the moment.",
            )
        return await self.select(db, subject, info.id)

    # ==================================================================
    # Answering
    # ==================================================================

    async def answer(self, db: AsyncSession, subject: Subject, text: str) -> StepOutcome:
        """Apply a free-text answer to the subject's active session.

        The answer goes to the most recently updated incomplete session; with
        none, the subject gets selection guidance and nothing is written.
        """
        row = await self._repo.get_latest_incomplete(db, subject.subject_id)
        if row is None:
            return StepOutcome(messages=[
                OutboundMessage(kind=OutboundKind.INFO, text=NO_ACTIVE_APPLICATION),
            ])

        info = await self._load_question_set(db, row)
        try:
            return await self._apply_answer(db, row, info, text)
        except StaleSessionError as exc:
            # Lost a race with a concurrent answer; show where the session is now
            logger.warning("%s", exc)
            message = (
                "✅ Your application is already complete."
                if row.is_completed
                else exc.user_message
            )
            messages = [OutboundMessage(kind=OutboundKind.INFO, text=message)]
            if not row.is_completed:
                messages.append(self.current_prompt(row, info))
            return StepOutcome(messages=messages)

    async def _apply_answer(
        self,
        db: AsyncSession,
        row: IntakeSession,
        info: QuestionSetInfo,
        text: str,
    ) -> StepOutcome:
        expected = row.current_step
        question = info.question_at(expected + 1)
        if question is None:
            raise NotFoundError(
                f"Session {row.id} is at step {expected} of a {info.question_count}-question set",
                user_message="❌ Question set not found. Please use /jobs to start a new application.",
            )

        result = validate(question, text)
        if not result.valid:
            logger.warning(
                "Session %s step %d (%s) rejected: %s",
                row.id, expected + 1, question.field_key, result.reason,
            )
            error = self._renderer.validation_error(
                reason=result.reason or "Invalid answer.", hint=compose_hint(question),
            )
            return StepOutcome(messages=[
                OutboundMessage(kind=OutboundKind.VALIDATION_ERROR, text=error),
            ])

        completes = expected + 1 == info.question_count
        advanced = await self._repo.advance_step(
            db,
            row,
            field_key=question.field_key,
            value=normalize_answer(question, text),
            expected_step=expected,
            completes=completes,
        )
        if not advanced:
            raise StaleSessionError(
                f"Session {row.id} moved past step {expected} before this answer"
            )

        if not completes:
            logger.info("Session %s advanced to step %d", row.id, row.current_step)
            return StepOutcome(messages=[self.current_prompt(row, info)])

        logger.info("Session %s completed (subject=%s)", row.id, row.subject_id)
        return await self._completion_outcome(db, row, info)

    async def _completion_outcome(
        self, db: AsyncSession, row: IntakeSession, info: QuestionSetInfo
    ) -> StepOutcome:
        title = await self._registry.display_title(db, info)
        attachment = attachment_of(row)
        handoff = None
        if self._completion.is_eligible(row):
            handoff = await self._completion.prepare(db, row, info)

        text = self._renderer.render(
            "completion.jinja2",
            title=title,
            has_attachment=attachment is not None,
            file_name=attachment.file_name if attachment else None,
        )
        return StepOutcome(
            messages=[OutboundMessage(kind=OutboundKind.COMPLETION, text=text)],
            handoff=handoff,
        )

    # ==================================================================
    # Reset
    # ==================================================================

    async def reset(self, db: AsyncSession, subject: Subject) -> StepOutcome:
        """Delete every session the subject holds and release their files."""
        rows = await self._repo.list_by_subject(db, subject.subject_id)
        if not rows:
            return StepOutcome(messages=[OutboundMessage(
                kind=OutboundKind.INFO,
                text="❌ No applications found to restart. Use /jobs to begin applying!",
            )])

        paths = [r.attachment_path for r in rows if r.attachment_path]
        try:
            deleted = await self._repo.delete_for_subject(db, subject.subject_id)
        finally:
            await self._release_files(paths)

        logger.info(
            "Reset subject %s: deleted %d sessions, %d files",
            subject.subject_id, deleted, len(paths),
        )
        return StepOutcome(messages=[OutboundMessage(
            kind=OutboundKind.INFO,
            text="🔄 All your applications have been deleted! Use /jobs to begin applying again.",
        )])

    # ==================================================================
    # Prompts
    # ==================================================================

    def current_prompt(self, row: IntakeSession, info: QuestionSetInfo) -> OutboundMessage:
        """Prompt for the question after ``row.current_step``."""
        question = info.question_at(row.current_step + 1)
        if question is None:
            raise NotFoundError(
                f"Session {row.id} has no question at step {row.current_step + 1}"
            )
        text = self._renderer.prompt(
            step=question.step or row.current_step + 1,
            total=info.question_count,
            prompt=question.prompt,
            hint=compose_hint(question),
        )
        return OutboundMessage(kind=OutboundKind.PROMPT, text=text)

    # ==================================================================
    # Internal helpers
    # ==================================================================

    async def _resume(
        self,
        db: AsyncSession,
        row: IntakeSession,
        info: QuestionSetInfo,
        title: str,
    ) -> StepOutcome:
        if row.is_completed:
            text = self._renderer.render(
                "already_submitted.jinja2",
                title=title,
                submitted_at=row.completed_at or row.created_at,
            )
            return StepOutcome(messages=[OutboundMessage(kind=OutboundKind.INFO, text=text)])

        # The prompt shown below must be the one the next answer is checked against
        await self._repo.touch(db, row)
        logger.info("Session %s resumed at step %d", row.id, row.current_step)

        text = self._renderer.render(
            "continue.jinja2",
            title=title,
            step=row.current_step,
            total=info.question_count,
            started_at=row.created_at,
        )
        return StepOutcome(messages=[
            OutboundMessage(kind=OutboundKind.INFO, text=text),
            self.current_prompt(row, info),
        ])

    async def _load_question_set(
        self, db: AsyncSession, row: IntakeSession
    ) -> QuestionSetInfo:
        info = await self._registry.get_by_id(db, row.question_set_id)
        if info is None:
            raise NotFoundError(
                f"Session {row.id} references missing question set {row.question_set_id}",
                user_message="❌ Question set not found. Please use /jobs to start a new application.",
            )
        return info

    async def _release_files(self, paths: list[str]) -> None:
        for path in paths:
            try:
                await self._storage.delete(path)
            except StorageError as exc:
                logger.warning("Could not delete %s: %s", path, exc)
