"""Concrete :class:`ScreeningHandoff` implementations.

``ScreeningPipeline`` runs extraction, scoring and recording in-process
against injected collaborators.  ``HttpScreeningHandoff`` forwards the
request to an external screening service instead.
"""

from __future__ import annotations

import logging

import httpx

from intake_flow.errors import DownstreamServiceError
from intake_flow.interfaces import (
    ResumeScorer,
    ScoreRecorder,
    ScreeningHandoff,
    TextExtractor,
)
from intake_flow.models.screening import ScoringWeights, ScreeningRequest

logger = logging.getLogger(__name__)


class ScreeningPipeline(ScreeningHandoff):
    """extract -> score -> record, with failures wrapped in
    :class:`DownstreamServiceError`.

    Args:
        extractor: pulls plain text out of the stored resume.
        scorer: scores the text against the job.
        recorder: persists scores and notifies the hiring team.
        requirements: optional extra requirements passed to the scorer.
        weights: scoring weights; defaults to :class:`ScoringWeights`.
    """

    def __init__(
        self,
        extractor: TextExtractor,
        scorer: ResumeScorer,
        recorder: ScoreRecorder,
        *,
        requirements: str | None = None,
        weights: ScoringWeights | None = None,
    ) -> None:
        self._extractor = extractor
        self._scorer = scorer
        self._recorder = recorder
        self._requirements = requirements
        self._weights = weights or ScoringWeights()

    async def submit(self, request: ScreeningRequest) -> None:
        if request.job is None:
            raise DownstreamServiceError(
                f"Session {request.session_id} has no job to score against"
            )
        try:
            text = await self._extractor.extract(request.attachment_path)
            if not text.strip():
                raise DownstreamServiceError(
                    f"No text extracted from {request.attachment_path}"
                )
            scores = await self._scorer.score(
                text, request.job, self._requirements, self._weights,
            )
            await self._recorder.record(request, scores)
        except DownstreamServiceError:
            raise
        except Exception as exc:
            raise DownstreamServiceError(
                f"Screening failed for session {request.session_id}: {exc}"
            ) from exc
        logger.info(
            "Session %s scored %.1f overall", request.session_id, scores.overall,
        )


class HttpScreeningHandoff(ScreeningHandoff):
    """POSTs the request JSON to an external screening service.

    Args:
        url: endpoint receiving ``ScreeningRequest`` JSON.
        timeout: request timeout in seconds.
        client: optional shared ``httpx.AsyncClient`` (owned by the caller).
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._client = client

    async def submit(self, request: ScreeningRequest) -> None:
        payload = request.model_dump(mode="json")
        try:
            if self._client is not None:
                resp = await self._client.post(self._url, json=payload, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.post(self._url, json=payload)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DownstreamServiceError(
                f"Screening service returned {exc.response.status_code} "
                f"for session {request.session_id}"
            ) from exc
        except httpx.HTTPError as exc:
            raise DownstreamServiceError(
                f"Screening service unreachable for session {request.session_id}: {exc}"
            ) from exc
        logger.info("Session %s forwarded to %s", request.session_id, self._url)
