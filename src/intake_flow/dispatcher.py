"""IntakeDispatcher — routes transport events into the intake flow.

One database unit of work per inbound event: the dispatcher opens a session
from the injected factory, runs the transition, commits on success and rolls
back on error.  Every failure is turned into a message for the subject; no
event's failure escapes to the transport or affects other subjects.

Completion handoffs run as tracked background tasks after the transition has
been committed and its messages delivered.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Awaitable, Callable, Coroutine

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from intake_flow.attachments import AttachmentHandler
from intake_flow.commands import Command, CommandName, parse_command
from intake_flow.completion import CompletionTrigger
from intake_flow.engine import IntakeEngine
from intake_flow.errors import IntakeError, ValidationError
from intake_flow.interfaces import MessageTransport
from intake_flow.listing import JobListing
from intake_flow.messages import MessageRenderer
from intake_flow.models.messages import (
    DocumentEvent,
    OutboundKind,
    OutboundMessage,
    StepOutcome,
    Subject,
    TextEvent,
)
from intake_flow.models.screening import ScreeningRequest

logger = logging.getLogger(__name__)

Work = Callable[[AsyncSession], Awaitable[StepOutcome]]

APOLOGY = "❌ An error occurred. Please try again."
HANDOFF_SENT = "📧 Your resume has been sent to our hiring team for review!"
HANDOFF_FAILED = (
    "⚠️ Your application and resume were saved, but we could not forward them "
    "automatically. Our hiring team will still review them."
)


def _info(text: str) -> StepOutcome:
    return StepOutcome(messages=[OutboundMessage(kind=OutboundKind.INFO, text=text)])


def _parse_uuid(value: str | None) -> uuid.UUID | None:
    if not value:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


class IntakeDispatcher:
    """Glue between a :class:`MessageTransport` and the intake components.

    Args:
        transport: channel to receive events from and send messages to.
        session_factory: produces one ``AsyncSession`` per event.
        engine: conversation state machine.
        attachments: upload handling.
        listing: jobs / status / applications views.
        completion: fires screening handoffs.
    """

    def __init__(
        self,
        transport: MessageTransport,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: IntakeEngine,
        attachments: AttachmentHandler,
        listing: JobListing,
        completion: CompletionTrigger,
        renderer: MessageRenderer | None = None,
    ) -> None:
        self._transport = transport
        self._session_factory = session_factory
        self._engine = engine
        self._attachments = attachments
        self._listing = listing
        self._completion = completion
        self._renderer = renderer or MessageRenderer()
        self._background: set[asyncio.Task] = set()

    def register(self) -> None:
        """Hook the dispatcher's handlers onto the transport."""
        self._transport.on_text_message(self.handle_text)
        self._transport.on_document_message(self.handle_document)

    # ==================================================================
    # Event handlers
    # ==================================================================

    async def handle_text(self, event: TextEvent) -> None:
        outcome = await self._run(
            event.subject, lambda db: self._route_text(db, event),
        )
        await self._deliver(event.subject, outcome)

    async def handle_document(self, event: DocumentEvent) -> None:
        outcome = await self._run(
            event.subject,
            lambda db: self._attachments.handle(db, event, self._transport.download),
        )
        await self._deliver(event.subject, outcome)

    async def drain(self) -> None:
        """Wait for all in-flight completion handoffs (shutdown / tests)."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ==================================================================
    # Routing
    # ==================================================================

    async def _route_text(self, db: AsyncSession, event: TextEvent) -> StepOutcome:
        command = parse_command(event.text)
        if command is None:
            return await self._engine.answer(db, event.subject, event.text)
        logger.info("Subject %s: command %s", event.subject.subject_id, command.name.value)
        return await self._run_command(db, event.subject, command)

    async def _run_command(
        self, db: AsyncSession, subject: Subject, command: Command
    ) -> StepOutcome:
        name = command.name
        if name == CommandName.LIST_JOBS:
            return await self._listing.list_jobs(db, subject)
        if name == CommandName.SHOW_STATUS:
            return await self._listing.status(db, subject)
        if name == CommandName.LIST_APPLICATIONS:
            return await self._listing.list_applications(db, subject)
        if name == CommandName.UPLOAD_NOW:
            return await self._attachments.upload_instructions(db, subject)
        if name == CommandName.RESET:
            return await self._engine.reset(db, subject)
        if name == CommandName.HELP:
            return _info(self._renderer.render("help.jinja2"))

        if name == CommandName.START:
            if command.argument is None:
                return await self._listing.list_jobs(db, subject)
            set_id = _parse_uuid(command.argument)
            if set_id is None:
                return _info(
                    "❌ Invalid question set ID format. Use /jobs to see available positions."
                )
            return await self._engine.select(db, subject, set_id)

        if name == CommandName.APPLY:
            job_id = _parse_uuid(command.argument)
            if job_id is None:
                return _info("❌ Usage: /apply <job-id>. Use /jobs to see available positions.")
            return await self._engine.select_job(db, subject, job_id)

        token = command.raw.split()[0]
        return _info(f"❓ Unknown command {token}. Use /help to see available commands.")

    # ==================================================================
    # Unit of work & delivery
    # ==================================================================

    async def _run(self, subject: Subject, work: Work) -> StepOutcome:
        """Run ``work`` in its own transaction and convert failures to messages.

        Stored files named by the outcome are released only once the
        transaction's fate is known: superseded files after a commit, files
        written for the transition after a rollback.
        """
        outcome: StepOutcome | None = None
        try:
            async with self._session_factory() as db:
                try:
                    outcome = await work(db)
                    await db.commit()
                except Exception:
                    try:
                        await db.rollback()
                    finally:
                        if outcome is not None:
                            await self._attachments.release(outcome.release_on_rollback)
                    raise
            await self._attachments.release(outcome.release_on_commit)
        except IntakeError as exc:
            logger.warning(
                "Subject %s: %s: %s", subject.subject_id, type(exc).__name__, exc,
            )
            return self._error_outcome(exc)
        except Exception:
            logger.exception("Subject %s: unhandled error", subject.subject_id)
            return StepOutcome(messages=[
                OutboundMessage(kind=OutboundKind.ERROR, text=APOLOGY),
            ])
        return outcome

    @staticmethod
    def _error_outcome(exc: IntakeError) -> StepOutcome:
        if isinstance(exc, ValidationError):
            text = exc.user_message
            if exc.hint:
                text += f"\n\n💡 {exc.hint}"
            kind = OutboundKind.VALIDATION_ERROR
        else:
            text = exc.user_message
            kind = OutboundKind.ERROR
        return StepOutcome(messages=[OutboundMessage(kind=kind, text=text)])

    async def _deliver(self, subject: Subject, outcome: StepOutcome) -> None:
        for message in outcome.messages:
            await self._send(subject.subject_id, message)
        if outcome.handoff is not None:
            self._spawn(self._complete(subject, outcome.handoff))

    async def _send(self, subject_id: str, message: OutboundMessage) -> None:
        try:
            await self._transport.send(subject_id, message)
        except Exception:
            logger.exception("Failed to send %s message to %s", message.kind.value, subject_id)

    async def _complete(self, subject: Subject, request: ScreeningRequest) -> None:
        accepted = await self._completion.fire(request)
        text = HANDOFF_SENT if accepted else HANDOFF_FAILED
        await self._send(
            subject.subject_id,
            OutboundMessage(kind=OutboundKind.COMPLETION if accepted else OutboundKind.INFO, text=text),
        )

    def _spawn(self, coro: Coroutine) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
