"""Session-facing models: attachment metadata and application summaries.

These are intentionally decoupled from the ORM models in ``intake_db`` so
API consumers never see database internals.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from intake_db.models.enums import ApplicationStatus


class AttachmentMeta(BaseModel):
    """The uploaded resume recorded on a session."""

    file_name: str
    path: str
    uploaded_at: Optional[datetime] = None


def attachment_of(row: Any) -> AttachmentMeta | None:
    """Extract the attachment record from a session row, if one is present."""
    if not row.attachment_path or not row.attachment_file_name:
        return None
    return AttachmentMeta(
        file_name=row.attachment_file_name,
        path=row.attachment_path,
        uploaded_at=row.attachment_uploaded_at,
    )


def status_of(row: Any) -> ApplicationStatus:
    if row is None:
        return ApplicationStatus.NOT_STARTED
    if row.is_completed:
        return ApplicationStatus.COMPLETED
    return ApplicationStatus.IN_PROGRESS


class ApplicationSummary(BaseModel):
    """One subject's application, as exposed to downstream consumers."""

    session_id: uuid.UUID
    subject_id: str
    username: Optional[str] = None
    question_set_id: uuid.UUID
    title: str
    job_id: Optional[uuid.UUID] = None
    status: ApplicationStatus
    current_step: int
    total_steps: int
    has_attachment: bool
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ApplicationStats(BaseModel):
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    with_attachment: int = 0
