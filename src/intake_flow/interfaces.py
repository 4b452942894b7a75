"""Abstract interfaces for the intake flow's collaborators.

The SDK depends only on these contracts.  Concrete implementations live at
the edges: ``LocalFileStorage`` in :mod:`intake_flow.storage`, the screening
adapters in :mod:`intake_flow.screening`, and the Telegram transport in
``intake_server``.

Typical wiring::

    transport: MessageTransport = TelegramTransport(...)
    dispatcher = IntakeDispatcher(transport, session_factory, ...)
    dispatcher.register()   # hooks handle_text / handle_document
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from intake_flow.models.messages import DocumentEvent, OutboundMessage, TextEvent
from intake_flow.models.screening import (
    JobSpec,
    ScoringWeights,
    ScreeningRequest,
    ScreeningScores,
)

TextHandler = Callable[[TextEvent], Awaitable[None]]
DocumentHandler = Callable[[DocumentEvent], Awaitable[None]]


class MessageTransport(ABC):
    """Bidirectional messaging channel addressed by subject id."""

    @abstractmethod
    async def send(self, subject_id: str, message: OutboundMessage) -> None:
        """Deliver one message to the subject."""
        ...

    @abstractmethod
    def on_text_message(self, handler: TextHandler) -> None:
        """Register the coroutine called for every inbound text message."""
        ...

    @abstractmethod
    def on_document_message(self, handler: DocumentHandler) -> None:
        """Register the coroutine called for every inbound document."""
        ...

    @abstractmethod
    async def download(self, file_ref: str) -> bytes:
        """Fetch the content of an inbound document by its opaque reference."""
        ...


class FileStorage(ABC):
    """Byte storage for uploaded attachments.

    Implementations raise :class:`~intake_flow.errors.StorageError` on I/O
    failure.
    """

    @abstractmethod
    async def save(self, name: str, data: bytes) -> str:
        """Store ``data`` under ``name`` and return its storage path."""
        ...

    @abstractmethod
    async def exists(self, path: str) -> bool: ...

    @abstractmethod
    async def delete(self, path: str) -> bool:
        """Delete ``path`` if present.  Returns whether a file was removed."""
        ...

    @abstractmethod
    async def stat(self, path: str) -> int:
        """Return the stored size in bytes."""
        ...


class TextExtractor(ABC):
    """Extracts plain text from a stored resume (PDF/DOC/DOCX)."""

    @abstractmethod
    async def extract(self, path: str) -> str: ...


class ResumeScorer(ABC):
    """Scores resume text against a job description.

    The scoring algorithm itself is out of scope for this package; only the
    input/output contract is specified here.
    """

    @abstractmethod
    async def score(
        self,
        text: str,
        job: JobSpec,
        requirements: str | None = None,
        weights: ScoringWeights | None = None,
    ) -> ScreeningScores: ...


class ScoreRecorder(ABC):
    """Persists scores and notifies the hiring team."""

    @abstractmethod
    async def record(self, request: ScreeningRequest, scores: ScreeningScores) -> None: ...


class ScreeningHandoff(ABC):
    """Receives a completed application for downstream screening."""

    @abstractmethod
    async def submit(self, request: ScreeningRequest) -> None:
        """Hand off ``request``.  Raise ``DownstreamServiceError`` on failure."""
        ...
