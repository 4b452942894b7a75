"""Inbound event and outbound message models — the contract between the
transport adapter and the intake flow.

Every transition returns a :class:`StepOutcome`: an ordered list of
:class:`OutboundMessage` plus an optional completion handoff.  The transport
decides how to render kinds and buttons for its channel.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel

from intake_flow.models.screening import ScreeningRequest


class Subject(BaseModel):
    """The person on the other end of the channel."""

    subject_id: str
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class TextEvent(BaseModel):
    subject: Subject
    text: str


class DocumentEvent(BaseModel):
    """A file the subject sent.  ``file_ref`` is opaque to the flow."""

    subject: Subject
    file_name: str
    file_size: int = 0
    mime_type: Optional[str] = None
    file_ref: str


class OutboundKind(str, Enum):
    PROMPT = "prompt"
    VALIDATION_ERROR = "validation_error"
    UPLOAD_ACK = "upload_ack"
    COMPLETION = "completion"
    STATUS = "status"
    JOB_LISTING = "job_listing"
    APPLICATIONS = "applications"
    INFO = "info"
    ERROR = "error"


class Button(BaseModel):
    """An inline choice.  ``payload`` is command text, e.g. ``/start <id>``."""

    label: str
    payload: str


class OutboundMessage(BaseModel):
    kind: OutboundKind
    text: str
    buttons: list[Button] = []


class StepOutcome(BaseModel):
    """Result of one transition: messages to send, in order, an optional
    completion handoff for the screening trigger, and stored files whose
    fate depends on whether the transition's unit of work commits."""

    messages: list[OutboundMessage] = []
    handoff: Optional[ScreeningRequest] = None
    # Files no committed row points to any more once the transition commits
    release_on_commit: list[str] = []
    # Files only the uncommitted transition points to
    release_on_rollback: list[str] = []

    @property
    def texts(self) -> list[str]:
        return [m.text for m in self.messages]
