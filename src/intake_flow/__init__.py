"""intake_flow — conversational hiring intake SDK.

Public API:
    IntakeEngine        — per-subject conversation state machine
    QuestionSetRegistry — question-set CRUD with step/default invariants
    AttachmentHandler   — resume uploads, independent of question progress
    CompletionTrigger   — builds and fires screening handoffs
    JobListing          — job list, status, applications, summaries
    IntakeDispatcher    — routes transport events into the components above
    MessageRenderer     — Jinja2 templates for subject-facing text

Collaborator interfaces:
    MessageTransport    — channel adapter (send / on_text / on_document / download)
    FileStorage         — attachment byte storage (``LocalFileStorage`` on disk)
    TextExtractor, ResumeScorer, ScoreRecorder — screening stages
    ScreeningHandoff    — receives completed applications
                          (``ScreeningPipeline``, ``HttpScreeningHandoff``)
"""

from intake_flow.attachments import AttachmentHandler
from intake_flow.commands import Command, CommandName, parse_command
from intake_flow.completion import CompletionTrigger
from intake_flow.dispatcher import IntakeDispatcher
from intake_flow.engine import IntakeEngine
from intake_flow.errors import (
    ConfigurationError,
    DownstreamServiceError,
    IntakeError,
    NotFoundError,
    PermissionDeniedError,
    QuestionSetInUseError,
    StaleSessionError,
    StorageError,
    ValidationError,
)
from intake_flow.interfaces import (
    FileStorage,
    MessageTransport,
    ResumeScorer,
    ScoreRecorder,
    ScreeningHandoff,
    TextExtractor,
)
from intake_flow.listing import JobListing
from intake_flow.messages import MessageRenderer
from intake_flow.registry import QuestionSetRegistry
from intake_flow.screening import HttpScreeningHandoff, ScreeningPipeline
from intake_flow.storage import LocalFileStorage
from intake_flow.validation import ValidationResult, compose_hint, validate

__all__ = [
    # Components
    "AttachmentHandler",
    "CompletionTrigger",
    "IntakeDispatcher",
    "IntakeEngine",
    "JobListing",
    "MessageRenderer",
    "QuestionSetRegistry",
    # Validation & commands
    "Command",
    "CommandName",
    "ValidationResult",
    "compose_hint",
    "parse_command",
    "validate",
    # Interfaces & adapters
    "FileStorage",
    "HttpScreeningHandoff",
    "LocalFileStorage",
    "MessageTransport",
    "ResumeScorer",
    "ScoreRecorder",
    "ScreeningHandoff",
    "ScreeningPipeline",
    "TextExtractor",
    # Errors
    "ConfigurationError",
    "DownstreamServiceError",
    "IntakeError",
    "NotFoundError",
    "PermissionDeniedError",
    "QuestionSetInUseError",
    "StaleSessionError",
    "StorageError",
    "ValidationError",
]
