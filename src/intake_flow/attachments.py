"""AttachmentHandler — resume uploads, independent of question progress.

An upload attaches to the subject's *most relevant* session (incomplete
first, then most recently updated) whatever step it is on, and never moves
``current_step``.  Re-uploading replaces the attachment record; the previous
file is listed in the outcome for release once that record is committed, and
the new file for release if it is rolled back.  If the session is already
completed the outcome carries a screening handoff, once per upload.
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from intake_db.models.intake_session import IntakeSession
from intake_db.repository import IntakeSessionRepository

from intake_flow.completion import CompletionTrigger
from intake_flow.constants import (
    ALLOWED_EXTENSIONS,
    ALLOWED_MIME_TYPES,
    MAX_ATTACHMENT_BYTES,
)
from intake_flow.engine import IntakeEngine
from intake_flow.errors import StorageError, ValidationError
from intake_flow.interfaces import FileStorage
from intake_flow.messages import MessageRenderer, format_file_size
from intake_flow.models.messages import (
    DocumentEvent,
    OutboundKind,
    OutboundMessage,
    StepOutcome,
    Subject,
)
from intake_flow.registry import QuestionSetRegistry

logger = logging.getLogger(__name__)

Fetch = Callable[[str], Awaitable[bytes]]

APPLY_FIRST = "❌ Please apply for a job first using /jobs to begin your application."
UNKNOWN_POSITION = "Unknown position"


def extension_of(file_name: str) -> str:
    return PurePath(file_name or "").suffix.lower()


def storage_name(file_name: str) -> str:
    """Collision-free name: ``<uuid4 hex>-<epoch ms><original extension>``."""
    return f"{uuid.uuid4().hex}-{int(time.time() * 1000)}{extension_of(file_name)}"


def check_document(
    file_name: str,
    file_size: int,
    mime_type: str | None,
    *,
    max_bytes: int = MAX_ATTACHMENT_BYTES,
) -> None:
    """Raise :class:`ValidationError` unless the upload is an acceptable resume.

    The type check passes when either the extension or the declared MIME
    type is on the allow-list.
    """
    if (
        extension_of(file_name) not in ALLOWED_EXTENSIONS
        and (mime_type or "").lower() not in ALLOWED_MIME_TYPES
    ):
        raise ValidationError(
            f"Rejected upload {file_name!r} ({mime_type})",
            user_message="❌ Invalid file format. Please upload PDF, DOC, or DOCX files only.",
        )
    if file_size > max_bytes:
        raise ValidationError(
            f"Rejected upload {file_name!r}: {file_size} bytes",
            user_message=(
                "❌ File too large. Please upload a file smaller than "
                f"{format_file_size(max_bytes)}."
            ),
        )


class AttachmentHandler:
    """Stores uploaded resumes and records them on the owning session.

    Args:
        registry: question-set lookups (titles, completion handoff).
        storage: where file bytes go.
        engine: renders the current prompt after an upload mid-interview.
        completion: builds the handoff for uploads after completion.
        max_bytes: size ceiling; defaults to ``MAX_ATTACHMENT_BYTES``.
    """

    def __init__(
        self,
        registry: QuestionSetRegistry,
        storage: FileStorage,
        engine: IntakeEngine,
        *,
        completion: CompletionTrigger | None = None,
        renderer: MessageRenderer | None = None,
        max_bytes: int = MAX_ATTACHMENT_BYTES,
    ) -> None:
        self._registry = registry
        self._storage = storage
        self._engine = engine
        self._completion = completion or CompletionTrigger(registry)
        self._renderer = renderer or MessageRenderer()
        self._max_bytes = max_bytes
        self._repo = IntakeSessionRepository()

    async def handle(
        self, db: AsyncSession, event: DocumentEvent, fetch: Fetch
    ) -> StepOutcome:
        """Validate, store and record one uploaded document."""
        row = await self._repo.get_most_relevant(db, event.subject.subject_id)
        if row is None:
            return StepOutcome(messages=[
                OutboundMessage(kind=OutboundKind.INFO, text=APPLY_FIRST),
            ])

        check_document(
            event.file_name, event.file_size, event.mime_type, max_bytes=self._max_bytes,
        )

        try:
            data = await fetch(event.file_ref)
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(
                f"Download failed for {event.file_ref}: {exc}",
                user_message="❌ Failed to download your resume. Please try uploading again.",
            ) from exc
        # Declared sizes can be missing; enforce the ceiling on real bytes too
        check_document(
            event.file_name, len(data), event.mime_type, max_bytes=self._max_bytes,
        )

        path = await self._storage.save(storage_name(event.file_name), data)
        try:
            outcome = await self._record(db, row, event, path, len(data))
        except Exception:
            await self._release(path)
            raise

        logger.info(
            "Session %s: stored attachment %r at %s (completed=%s)",
            row.id, event.file_name, path, row.is_completed,
        )
        return outcome

    async def _record(
        self,
        db: AsyncSession,
        row: IntakeSession,
        event: DocumentEvent,
        path: str,
        size: int,
    ) -> StepOutcome:
        previous = row.attachment_path
        uploaded_at = datetime.now(timezone.utc)
        await self._repo.save_attachment(
            db, row, file_name=event.file_name, path=path, uploaded_at=uploaded_at,
        )

        info = await self._registry.get_by_id(db, row.question_set_id)
        title = await self._registry.display_title(db, info) if info else UNKNOWN_POSITION
        ack = self._renderer.render(
            "upload_ack.jinja2",
            title=title,
            file_name=event.file_name,
            size=size or event.file_size,
            uploaded_at=uploaded_at,
            completed=row.is_completed,
        )
        outcome = StepOutcome(
            messages=[OutboundMessage(kind=OutboundKind.UPLOAD_ACK, text=ack)],
            release_on_commit=[previous] if previous and previous != path else [],
            release_on_rollback=[path],
        )
        if info is None:
            return outcome

        if row.is_completed:
            outcome.handoff = await self._completion.prepare(db, row, info)
        elif row.current_step < info.question_count:
            reminder = self._renderer.render(
                "upload_reminder.jinja2", step=row.current_step, total=info.question_count,
            )
            outcome.messages.append(OutboundMessage(kind=OutboundKind.INFO, text=reminder))
            outcome.messages.append(self._engine.current_prompt(row, info))
        return outcome

    async def upload_instructions(self, db: AsyncSession, subject: Subject) -> StepOutcome:
        """Explain how to upload, naming the session the file will attach to."""
        row = await self._repo.get_most_relevant(db, subject.subject_id)
        if row is None:
            return StepOutcome(messages=[
                OutboundMessage(kind=OutboundKind.INFO, text=APPLY_FIRST),
            ])
        info = await self._registry.get_by_id(db, row.question_set_id)
        title = await self._registry.display_title(db, info) if info else UNKNOWN_POSITION
        text = self._renderer.render(
            "upload_instructions.jinja2", title=title, max_size=self._max_bytes,
        )
        return StepOutcome(messages=[OutboundMessage(kind=OutboundKind.INFO, text=text)])

    async def release(self, paths: list[str]) -> None:
        """Delete stored files no committed session refers to."""
        for path in paths:
            await self._release(path)

    async def _release(self, path: str) -> None:
        try:
            await self._storage.delete(path)
        except StorageError as exc:
            logger.warning("Could not release %s: %s", path, exc)
