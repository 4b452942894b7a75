"""CompletionTrigger — hands finished applications to downstream screening.

A session is eligible once it is completed *and* carries an attachment.
The engine and the attachment handler only ``prepare`` a request; the
dispatcher ``fire``s it outside the subject's transaction so a slow or
failing screening service never blocks the conversation.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from intake_flow.errors import DownstreamServiceError
from intake_flow.interfaces import ScreeningHandoff
from intake_flow.models.question import QuestionSetInfo
from intake_flow.models.screening import ScreeningRequest
from intake_flow.models.session import attachment_of
from intake_flow.registry import QuestionSetRegistry

logger = logging.getLogger(__name__)


class CompletionTrigger:
    """Builds and submits screening handoffs.

    Args:
        registry: used to resolve the job bound to a question set.
        handoff: downstream collaborator; when None, ``fire`` is a no-op
            that reports failure.
    """

    def __init__(
        self,
        registry: QuestionSetRegistry,
        handoff: ScreeningHandoff | None = None,
    ) -> None:
        self._registry = registry
        self._handoff = handoff

    @staticmethod
    def is_eligible(session: Any) -> bool:
        return bool(session.is_completed) and attachment_of(session) is not None

    async def prepare(
        self, db: AsyncSession, session: Any, question_set: QuestionSetInfo
    ) -> ScreeningRequest:
        """Snapshot everything screening needs.  Never mutates the session."""
        attachment = attachment_of(session)
        if attachment is None:
            raise ValueError(f"Session {session.id} has no attachment to hand off")
        job = await self._registry.get_job(db, question_set.job_id)
        return ScreeningRequest(
            session_id=session.id,
            subject_id=session.subject_id,
            question_set_id=question_set.id,
            job=job,
            attachment_path=attachment.path,
            attachment_file_name=attachment.file_name,
            responses=dict(session.responses or {}),
        )

    async def fire(self, request: ScreeningRequest) -> bool:
        """Submit ``request`` downstream.  Returns whether it was accepted.

        Failures are logged and reported as ``False``; they never propagate.
        """
        if request.job is None:
            logger.warning(
                "Session %s: question set %s has no job, skipping screening",
                request.session_id, request.question_set_id,
            )
            return False
        if self._handoff is None:
            logger.warning(
                "Session %s: no screening handoff configured", request.session_id,
            )
            return False

        try:
            await self._handoff.submit(request)
        except DownstreamServiceError as exc:
            logger.warning("Session %s: screening handoff failed: %s", request.session_id, exc)
            return False
        except Exception:
            logger.exception("Session %s: unexpected screening failure", request.session_id)
            return False

        logger.info(
            "Session %s: handed off %s for %s",
            request.session_id, request.attachment_file_name, request.job.display_title,
        )
        return True
