"""Create question_sets, intake_sessions and job_postings tables.

``job_postings`` is owned by the job-management service; it is created here
so a fresh database is usable on its own, and is only read by the intake flow.

Revision ID: 20261017_initial
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, TIMESTAMP, UUID

# revision identifiers, used by Alembic.
revision = "20261017_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- job_postings (read-only from the intake flow) ---
    op.create_table(
        "job_postings",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("company", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=sa.text("''")),
        sa.Column(
            "required_skills",
            ARRAY(sa.Text),
            nullable=False,
            server_default=sa.text("'{}'::text[]"),
        ),
        sa.Column("preferred_skills", ARRAY(sa.Text), nullable=True),
        sa.Column("experience", sa.Text, nullable=True),
        sa.Column("location", sa.Text, nullable=True),
        sa.Column("job_type", sa.Text, nullable=True),
        sa.Column("hr_email", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )

    # --- question_sets ---
    op.create_table(
        "question_sets",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("job_id", UUID(as_uuid=True), nullable=True),
        sa.Column(
            "questions",
            JSONB,
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "is_active", sa.Boolean, nullable=False, server_default=sa.text("true")
        ),
        sa.Column(
            "is_default", sa.Boolean, nullable=False, server_default=sa.text("false")
        ),
        sa.Column("owner", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index("ix_question_sets_job_id", "question_sets", ["job_id"])
    op.create_index(
        "ix_question_sets_active_title", "question_sets", ["is_active", "title"]
    )
    op.create_index(
        "ux_single_default_question_set",
        "question_sets",
        ["is_default"],
        unique=True,
        postgresql_where=sa.text("is_default AND is_active"),
    )

    # --- intake_sessions ---
    op.create_table(
        "intake_sessions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        # Identity
        sa.Column("subject_id", sa.Text, nullable=False),
        sa.Column("username", sa.Text, nullable=True),
        sa.Column("first_name", sa.Text, nullable=True),
        sa.Column("last_name", sa.Text, nullable=True),
        sa.Column("question_set_id", UUID(as_uuid=True), nullable=False),
        # Progress
        sa.Column(
            "current_step",
            sa.SmallInteger,
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "responses",
            JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "is_completed", sa.Boolean, nullable=False, server_default=sa.text("false")
        ),
        # Attachment
        sa.Column("attachment_file_name", sa.Text, nullable=True),
        sa.Column("attachment_path", sa.Text, nullable=True),
        sa.Column("attachment_uploaded_at", TIMESTAMP(timezone=True), nullable=True),
        # Timestamps
        sa.Column(
            "created_at",
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("completed_at", TIMESTAMP(timezone=True), nullable=True),
        # Constraints
        sa.UniqueConstraint(
            "subject_id", "question_set_id", name="uq_subject_question_set"
        ),
        sa.CheckConstraint("current_step >= 0", name="ck_step_non_negative"),
        sa.CheckConstraint(
            "NOT is_completed OR completed_at IS NOT NULL",
            name="ck_completed_has_timestamp",
        ),
        sa.CheckConstraint(
            "(attachment_path IS NULL) = (attachment_file_name IS NULL)",
            name="ck_attachment_complete",
        ),
    )
    op.create_index("ix_intake_sessions_subject_id", "intake_sessions", ["subject_id"])
    op.create_index(
        "ix_intake_sessions_question_set_id", "intake_sessions", ["question_set_id"]
    )
    op.create_index(
        "ix_subject_incomplete_updated",
        "intake_sessions",
        ["subject_id", "updated_at"],
        postgresql_where=sa.text("NOT is_completed"),
    )
    op.create_index(
        "ix_question_set_completed",
        "intake_sessions",
        ["question_set_id", "is_completed"],
    )


def downgrade() -> None:
    op.drop_index("ix_question_set_completed", table_name="intake_sessions")
    op.drop_index("ix_subject_incomplete_updated", table_name="intake_sessions")
    op.drop_index("ix_intake_sessions_question_set_id", table_name="intake_sessions")
    op.drop_index("ix_intake_sessions_subject_id", table_name="intake_sessions")
    op.drop_table("intake_sessions")

    op.drop_index("ux_single_default_question_set", table_name="question_sets")
    op.drop_index("ix_question_sets_active_title", table_name="question_sets")
    op.drop_index("ix_question_sets_job_id", table_name="question_sets")
    op.drop_table("question_sets")

    op.drop_table("job_postings")
