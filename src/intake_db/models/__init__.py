"""ORM models for intake_db."""

from intake_db.models.base import Base
from intake_db.models.enums import ActorRole, ApplicationStatus, ValidationType
from intake_db.models.intake_session import IntakeSession
from intake_db.models.job_posting import JobPosting
from intake_db.models.question_set import QuestionSet

__all__ = [
    "Base",
    "ActorRole",
    "ApplicationStatus",
    "ValidationType",
    "IntakeSession",
    "JobPosting",
    "QuestionSet",
]
