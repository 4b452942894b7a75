"""Async CRUD repositories for question sets, intake sessions and jobs.

All public methods accept an ``AsyncSession`` so the caller controls
transaction boundaries.  Methods ``flush()`` but never ``commit()``.

Business-logic validation lives in ``intake_flow``.  The repositories
provide the atomic primitives the flow relies on: the compare-and-set step
advance and the get-or-create that tolerates the ``(subject_id,
question_set_id)`` unique constraint.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from intake_db.models.base import utcnow
from intake_db.models.intake_session import IntakeSession
from intake_db.models.job_posting import JobPosting
from intake_db.models.question_set import QuestionSet


class QuestionSetRepository:
    """Async read/write operations on the ``question_sets`` table."""

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create(
        self,
        db: AsyncSession,
        *,
        title: str,
        questions: list[dict[str, Any]],
        description: str | None = None,
        job_id: uuid.UUID | None = None,
        is_active: bool = True,
        is_default: bool = False,
        owner: str | None = None,
    ) -> QuestionSet:
        """Insert a new question set and return it.

        Callers that pass ``is_default=True`` must clear the previous
        default first (see :meth:`clear_default`).
        """
        row = QuestionSet(
            title=title,
            description=description,
            job_id=job_id,
            questions=questions,
            is_active=is_active,
            is_default=is_default,
            owner=owner,
        )
        db.add(row)
        await db.flush()
        return row

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_by_id(
        self, db: AsyncSession, question_set_id: uuid.UUID
    ) -> QuestionSet | None:
        return await db.get(QuestionSet, question_set_id)

    async def get_active_by_job(
        self, db: AsyncSession, job_id: uuid.UUID
    ) -> QuestionSet | None:
        """Return the active set bound to ``job_id`` (default set preferred)."""
        stmt = (
            select(QuestionSet)
            .where(QuestionSet.job_id == job_id, QuestionSet.is_active.is_(True))
            .order_by(QuestionSet.is_default.desc(), QuestionSet.updated_at.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_active(self, db: AsyncSession) -> list[QuestionSet]:
        """Active sets, default first, then alphabetically by title."""
        stmt = (
            select(QuestionSet)
            .where(QuestionSet.is_active.is_(True))
            .order_by(QuestionSet.is_default.desc(), QuestionSet.title.asc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def list_all(
        self,
        db: AsyncSession,
        *,
        owner: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[QuestionSet]:
        """All sets (optionally one owner's), newest first."""
        stmt = select(QuestionSet)
        if owner is not None:
            stmt = stmt.where(QuestionSet.owner == owner)
        stmt = stmt.order_by(QuestionSet.created_at.desc()).limit(limit).offset(offset)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def get_default(self, db: AsyncSession) -> QuestionSet | None:
        stmt = select(QuestionSet).where(
            QuestionSet.is_default.is_(True),
            QuestionSet.is_active.is_(True),
        )
        result = await db.execute(stmt)
        return result.scalars().first()

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def clear_default(
        self, db: AsyncSession, *, except_id: uuid.UUID | None = None
    ) -> int:
        """Unset ``is_default`` on every set other than ``except_id``.

        Runs as a single UPDATE so the partial unique index on the default
        flag never sees two defaults at once.
        """
        stmt = update(QuestionSet).where(QuestionSet.is_default.is_(True))
        if except_id is not None:
            stmt = stmt.where(QuestionSet.id != except_id)
        stmt = stmt.values(
            is_default=False, updated_at=utcnow()
        ).execution_options(synchronize_session="fetch")
        result = await db.execute(stmt)
        return result.rowcount or 0

    async def update_fields(
        self, db: AsyncSession, row: QuestionSet, **fields: Any
    ) -> QuestionSet:
        """Assign the given column values and flush."""
        for name, value in fields.items():
            setattr(row, name, value)
        row.updated_at = utcnow()
        await db.flush()
        return row

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete(self, db: AsyncSession, row: QuestionSet) -> None:
        await db.delete(row)
        await db.flush()


class IntakeSessionRepository:
    """Async read/write operations on the ``intake_sessions`` table."""

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def get_or_create(
        self,
        db: AsyncSession,
        *,
        subject_id: str,
        question_set_id: uuid.UUID,
        username: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> tuple[IntakeSession, bool]:
        """Return ``(session, created)`` for the (subject, set) pair.

        The insert runs inside a SAVEPOINT; if a concurrent request won the
        race the unique constraint fires and the existing row is returned.
        """
        existing = await self.get_for_subject_and_set(db, subject_id, question_set_id)
        if existing is not None:
            return existing, False

        row = IntakeSession(
            subject_id=subject_id,
            question_set_id=question_set_id,
            username=username,
            first_name=first_name,
            last_name=last_name,
            current_step=0,
            responses={},
            is_completed=False,
        )
        try:
            async with db.begin_nested():
                db.add(row)
                await db.flush()
        except IntegrityError:
            existing = await self.get_for_subject_and_set(
                db, subject_id, question_set_id
            )
            if existing is None:
                raise
            return existing, False
        return row, True

    # ------------------------------------------------------------------
    # Read: single row
    # ------------------------------------------------------------------

    async def get_by_id(
        self, db: AsyncSession, session_pk: uuid.UUID
    ) -> IntakeSession | None:
        return await db.get(IntakeSession, session_pk)

    async def get_for_subject_and_set(
        self, db: AsyncSession, subject_id: str, question_set_id: uuid.UUID
    ) -> IntakeSession | None:
        """Fetch a session by the unique (subject_id, question_set_id) pair."""
        stmt = select(IntakeSession).where(
            IntakeSession.subject_id == subject_id,
            IntakeSession.question_set_id == question_set_id,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_latest_incomplete(
        self, db: AsyncSession, subject_id: str
    ) -> IntakeSession | None:
        """Most recently updated session that is still being answered."""
        stmt = (
            select(IntakeSession)
            .where(
                IntakeSession.subject_id == subject_id,
                IntakeSession.is_completed.is_(False),
            )
            .order_by(IntakeSession.updated_at.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_most_relevant(
        self, db: AsyncSession, subject_id: str
    ) -> IntakeSession | None:
        """Incomplete sessions first, then the most recently updated one."""
        stmt = (
            select(IntakeSession)
            .where(IntakeSession.subject_id == subject_id)
            .order_by(
                IntakeSession.is_completed.asc(),
                IntakeSession.updated_at.desc(),
            )
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Read: multiple rows
    # ------------------------------------------------------------------

    async def list_by_subject(
        self, db: AsyncSession, subject_id: str
    ) -> list[IntakeSession]:
        """All of a subject's sessions, most recently created first."""
        stmt = (
            select(IntakeSession)
            .where(IntakeSession.subject_id == subject_id)
            .order_by(IntakeSession.created_at.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def list_sessions(
        self,
        db: AsyncSession,
        *,
        question_set_id: uuid.UUID | None = None,
        completed: bool | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[IntakeSession]:
        """Sessions across subjects, newest first, optionally filtered."""
        stmt = select(IntakeSession)
        if question_set_id is not None:
            stmt = stmt.where(IntakeSession.question_set_id == question_set_id)
        if completed is not None:
            stmt = stmt.where(IntakeSession.is_completed.is_(completed))
        stmt = stmt.order_by(IntakeSession.created_at.desc()).limit(limit).offset(offset)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def count_incomplete_for_set(
        self, db: AsyncSession, question_set_id: uuid.UUID
    ) -> int:
        stmt = select(func.count()).select_from(IntakeSession).where(
            IntakeSession.question_set_id == question_set_id,
            IntakeSession.is_completed.is_(False),
        )
        result = await db.execute(stmt)
        return int(result.scalar_one())

    async def stats(
        self, db: AsyncSession, *, question_set_id: uuid.UUID | None = None
    ) -> dict[str, int]:
        """Counts of total / completed / in-progress / with-attachment sessions."""
        stmt = select(
            func.count().label("total"),
            func.count().filter(IntakeSession.is_completed.is_(True)).label("completed"),
            func.count().filter(IntakeSession.is_completed.is_(False)).label("in_progress"),
            func.count()
            .filter(IntakeSession.attachment_path.is_not(None))
            .label("with_attachment"),
        ).select_from(IntakeSession)
        if question_set_id is not None:
            stmt = stmt.where(IntakeSession.question_set_id == question_set_id)
        row = (await db.execute(stmt)).one()
        return {
            "total": row.total,
            "completed": row.completed,
            "in_progress": row.in_progress,
            "with_attachment": row.with_attachment,
        }

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def touch(self, db: AsyncSession, session: IntakeSession) -> IntakeSession:
        """Bump ``updated_at`` so the session receives the next free-text answer."""
        session.updated_at = utcnow()
        await db.flush()
        return session

    async def advance_step(
        self,
        db: AsyncSession,
        session: IntakeSession,
        *,
        field_key: str,
        value: str,
        expected_step: int,
        completes: bool,
    ) -> bool:
        """Record one answer and move ``current_step`` forward by one.

        Compare-and-set on ``current_step``: the UPDATE only matches while
        the row is still at ``expected_step`` and not completed.  Returns
        ``False`` when another writer advanced the row first; the in-memory
        row is refreshed either way.
        """
        now = utcnow()
        values: dict[str, Any] = {
            "responses": {**(session.responses or {}), field_key: value},
            "current_step": expected_step + 1,
            "updated_at": now,
        }
        if completes:
            values["is_completed"] = True
            values["completed_at"] = now

        stmt = (
            update(IntakeSession)
            .where(
                IntakeSession.id == session.id,
                IntakeSession.current_step == expected_step,
                IntakeSession.is_completed.is_(False),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        await db.refresh(session)
        return result.rowcount == 1

    async def save_attachment(
        self,
        db: AsyncSession,
        session: IntakeSession,
        *,
        file_name: str,
        path: str,
        uploaded_at: datetime,
    ) -> IntakeSession:
        """Replace the session's attachment record.  Never touches progress."""
        session.attachment_file_name = file_name
        session.attachment_path = path
        session.attachment_uploaded_at = uploaded_at
        session.updated_at = utcnow()
        await db.flush()
        return session

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete_for_subject(self, db: AsyncSession, subject_id: str) -> int:
        """Delete every session belonging to ``subject_id``; return row count."""
        stmt = delete(IntakeSession).where(IntakeSession.subject_id == subject_id)
        result = await db.execute(stmt)
        return result.rowcount or 0


class JobRepository:
    """Read-only lookups on the ``job_postings`` table."""

    async def get_by_id(
        self, db: AsyncSession, job_id: uuid.UUID
    ) -> JobPosting | None:
        return await db.get(JobPosting, job_id)

    async def list_by_ids(
        self, db: AsyncSession, job_ids: list[uuid.UUID]
    ) -> dict[uuid.UUID, JobPosting]:
        if not job_ids:
            return {}
        stmt = select(JobPosting).where(JobPosting.id.in_(job_ids))
        result = await db.execute(stmt)
        return {job.id: job for job in result.scalars().all()}
