"""QuestionSet ORM model — one row per configured interview script.

The ordered question list lives in a single JSONB column so a whole set can
be read (and re-sequenced) in one round trip.  Each element has the shape::

    {"step": 1, "field_key": "email", "prompt": "...",
     "validation": {"type": "email", "min_length": null, ...},
     "required": true}
"""

import uuid

from sqlalchemy import Boolean, Index, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from intake_db.models.base import Base, Timestamps, UUIDPrimaryKey


class QuestionSet(UUIDPrimaryKey, Timestamps, Base):
    """An ordered, validated list of prompts, optionally bound to a job."""

    __tablename__ = "question_sets"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Optional job posting this set collects applications for
    job_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True, index=True
    )

    # Steps are always contiguous 1..N in list order (see registry)
    questions: Mapped[list] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'[]'::jsonb"),
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Free-form identifier of the administrator who created the set
    owner: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        # At most one active default set
        Index(
            "ux_single_default_question_set",
            "is_default",
            unique=True,
            postgresql_where=text("is_default AND is_active"),
        ),
        Index("ix_question_sets_active_title", "is_active", "title"),
    )

    def __repr__(self) -> str:
        return (
            f"<QuestionSet(id={self.id!s}, title={self.title!r}, "
            f"active={self.is_active}, default={self.is_default})>"
        )
