"""JobPosting ORM model — read-only from the intake core's perspective.

Job postings are managed elsewhere; the intake flow only reads them to
label question sets ("Title at Company") and to hand a job spec to the
screening collaborator.
"""

import uuid

from sqlalchemy import Text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from intake_db.models.base import Base, CreatedAt, UUIDPrimaryKey


class JobPosting(UUIDPrimaryKey, CreatedAt, Base):
    """An open position applicants can be interviewed for."""

    __tablename__ = "job_postings"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    company: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    required_skills: Mapped[list[str]] = mapped_column(
        ARRAY(Text), nullable=False, default=list
    )
    preferred_skills: Mapped[list[str] | None] = mapped_column(
        ARRAY(Text), nullable=True
    )
    experience: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    job_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Where screening results for this job are sent
    hr_email: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def display_title(self) -> str:
        return f"{self.title} at {self.company}"

    def __repr__(self) -> str:
        return f"<JobPosting(id={self.id!s}, title={self.title!r}, company={self.company!r})>"
