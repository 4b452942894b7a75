"""IntakeSession ORM model — one row per subject per question set.

A subject (messaging-channel user) may hold several sessions at once, one
for each question set they selected.  Answers live in the ``responses``
JSONB keyed by the question's declared ``field_key``; the uploaded resume is
tracked in dedicated attachment columns so it can never collide with an
answer key.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Index,
    SmallInteger,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from intake_db.models.base import Base, Timestamps, UUIDPrimaryKey


class IntakeSession(UUIDPrimaryKey, Timestamps, Base):
    """Progress of one subject through one question set."""

    __tablename__ = "intake_sessions"

    # --- Identity ---
    # External subject ID (e.g. Telegram user id)
    subject_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    username: Mapped[str | None] = mapped_column(Text, nullable=True)
    first_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    question_set_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )

    # --- Progress ---
    # Number of questions answered so far (0..N)
    current_step: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)
    # {field_key: trimmed answer}
    responses: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # --- Attachment ---
    attachment_file_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    attachment_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    attachment_uploaded_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    # --- Timestamps (created_at / updated_at from Timestamps) ---
    completed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    __table_args__ = (
        # One session per subject per question set
        UniqueConstraint(
            "subject_id", "question_set_id", name="uq_subject_question_set"
        ),
        CheckConstraint("current_step >= 0", name="ck_step_non_negative"),
        CheckConstraint(
            "NOT is_completed OR completed_at IS NOT NULL",
            name="ck_completed_has_timestamp",
        ),
        # Attachment columns are written together
        CheckConstraint(
            "(attachment_path IS NULL) = (attachment_file_name IS NULL)",
            name="ck_attachment_complete",
        ),
        # Routing lookups: latest incomplete session per subject
        Index(
            "ix_subject_incomplete_updated",
            "subject_id",
            "updated_at",
            postgresql_where=text("NOT is_completed"),
        ),
        Index("ix_question_set_completed", "question_set_id", "is_completed"),
    )

    @property
    def has_attachment(self) -> bool:
        return bool(self.attachment_path and self.attachment_file_name)

    def __repr__(self) -> str:
        return (
            f"<IntakeSession(id={self.id!s}, subject={self.subject_id!r}, "
            f"question_set={self.question_set_id!s}, step={self.current_step}, "
            f"completed={self.is_completed})>"
        )
