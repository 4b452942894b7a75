"""Typed models for the intake flow."""

from intake_flow.models.messages import (
    Button,
    DocumentEvent,
    OutboundKind,
    OutboundMessage,
    StepOutcome,
    Subject,
    TextEvent,
)
from intake_flow.models.question import (
    Question,
    QuestionSetInfo,
    QuestionSetPatch,
    QuestionSetSpec,
    QuestionValidation,
)
from intake_flow.models.screening import (
    JobSpec,
    ScoringWeights,
    ScreeningRequest,
    ScreeningScores,
)
from intake_flow.models.session import (
    ApplicationStats,
    ApplicationSummary,
    AttachmentMeta,
    attachment_of,
    status_of,
)

__all__ = [
    "ApplicationStats",
    "ApplicationSummary",
    "AttachmentMeta",
    "Button",
    "DocumentEvent",
    "JobSpec",
    "OutboundKind",
    "OutboundMessage",
    "Question",
    "QuestionSetInfo",
    "QuestionSetPatch",
    "QuestionSetSpec",
    "QuestionValidation",
    "ScoringWeights",
    "ScreeningRequest",
    "ScreeningScores",
    "StepOutcome",
    "Subject",
    "TextEvent",
    "attachment_of",
    "status_of",
]
