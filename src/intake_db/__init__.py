"""intake_db — PostgreSQL persistence layer for conversational intake.

This package provides the ORM models, async engine factory, and repositories
for question sets, per-subject intake sessions and (read-only) job postings.
It is consumed by the ``intake_flow`` SDK and the FastAPI server.
"""

from intake_db.engine import get_engine, get_session_factory
from intake_db.models.enums import ApplicationStatus, ValidationType
from intake_db.models.intake_session import IntakeSession
from intake_db.models.job_posting import JobPosting
from intake_db.models.question_set import QuestionSet
from intake_db.repository import (
    IntakeSessionRepository,
    JobRepository,
    QuestionSetRepository,
)

__all__ = [
    "ApplicationStatus",
    "IntakeSession",
    "IntakeSessionRepository",
    "JobPosting",
    "JobRepository",
    "QuestionSet",
    "QuestionSetRepository",
    "ValidationType",
    "get_engine",
    "get_session_factory",
]
