"""QuestionSetRegistry — CRUD and invariants for question sets.

Two invariants are enforced here rather than left to callers:

* steps are re-numbered to a contiguous 1..N on every create/update, in
  declared order (ascending caller-supplied ``step``; ties and questions
  without a step keep their list position);
* at most one active set is the default: every operation that sets
  ``is_default`` first clears the flag on all other sets, inside the
  caller's transaction.

The registry also seeds the bundled "Standard Hiring Questions" set at
startup when no active default exists.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any

import yaml
from sqlalchemy.ext.asyncio import AsyncSession

from intake_db.models.enums import ActorRole
from intake_db.models.job_posting import JobPosting
from intake_db.models.question_set import QuestionSet
from intake_db.repository import (
    IntakeSessionRepository,
    JobRepository,
    QuestionSetRepository,
)

from intake_flow.errors import (
    NotFoundError,
    PermissionDeniedError,
    QuestionSetInUseError,
)
from intake_flow.models.question import (
    Question,
    QuestionSetInfo,
    QuestionSetPatch,
    QuestionSetSpec,
)
from intake_flow.models.screening import JobSpec

logger = logging.getLogger(__name__)

DEFAULT_SET_PATH = Path(__file__).parent / "defaults" / "standard_questions.yaml"

# Columns that may legitimately be cleared to NULL by a patch
_NULLABLE_FIELDS = {"description", "job_id"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def resequence(questions: list[Question]) -> list[Question]:
    """Return ``questions`` in declared order with steps set to 1..N.

    A question without a step sorts at its own list position; ``sorted`` is
    stable so equal keys keep list order.
    """
    indexed = list(enumerate(questions, start=1))
    ordered = sorted(
        indexed,
        key=lambda pair: pair[1].step if pair[1].step is not None else pair[0],
    )
    return [
        q.model_copy(update={"step": position})
        for position, (_, q) in enumerate(ordered, start=1)
    ]


def _dump_questions(questions: list[Question]) -> list[dict[str, Any]]:
    return [q.model_dump(mode="json") for q in questions]


def _require_admin(actor_role: ActorRole | str, action: str) -> None:
    if actor_role != ActorRole.ADMIN:
        raise PermissionDeniedError(f"Role {actor_role!r} cannot {action}")


def job_to_spec(job: JobPosting) -> JobSpec:
    return JobSpec(
        id=job.id,
        title=job.title,
        company=job.company,
        description=job.description or "",
        required_skills=list(job.required_skills or []),
        preferred_skills=list(job.preferred_skills or []),
        experience=job.experience,
        location=job.location,
        job_type=job.job_type,
        hr_email=job.hr_email,
    )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class QuestionSetRegistry:
    """Create, read, update and delete question sets.

    Every method takes the caller's ``AsyncSession``; nothing is committed
    here.

    Args:
        default_set_path: YAML file used by :meth:`ensure_default`.
    """

    def __init__(self, default_set_path: Path | None = None) -> None:
        self._repo = QuestionSetRepository()
        self._sessions = IntakeSessionRepository()
        self._jobs = JobRepository()
        self._default_set_path = default_set_path or DEFAULT_SET_PATH

    # ==================================================================
    # Create
    # ==================================================================

    async def create(
        self,
        db: AsyncSession,
        spec: QuestionSetSpec,
        *,
        owner: str | None = None,
        actor_role: ActorRole | str = ActorRole.ADMIN,
    ) -> QuestionSetInfo:
        """Persist a new question set with steps re-numbered to 1..N.

        Creating a set as the default requires the admin role.
        """
        if spec.is_default:
            _require_admin(actor_role, "create a default question set")
        questions = resequence(spec.questions)
        is_default = spec.is_default and spec.is_active
        if is_default:
            await self._repo.clear_default(db)

        row = await self._repo.create(
            db,
            title=spec.title,
            description=spec.description,
            job_id=spec.job_id,
            questions=_dump_questions(questions),
            is_active=spec.is_active,
            is_default=is_default,
            owner=owner,
        )
        logger.info(
            "Created question set %s (%r, %d questions, default=%s)",
            row.id, row.title, len(questions), is_default,
        )
        return self._to_info(row)

    async def duplicate(
        self,
        db: AsyncSession,
        question_set_id: uuid.UUID,
        *,
        owner: str | None = None,
    ) -> QuestionSetInfo:
        """Copy a set as "<title> (Copy)", inactive and not default."""
        original = await self._get_row(db, question_set_id)
        row = await self._repo.create(
            db,
            title=f"{original.title} (Copy)",
            description=original.description,
            questions=list(original.questions),
            is_active=False,
            is_default=False,
            owner=owner,
        )
        logger.info("Duplicated question set %s as %s", original.id, row.id)
        return self._to_info(row)

    async def ensure_default(
        self, db: AsyncSession, *, owner: str | None = "system"
    ) -> QuestionSetInfo | None:
        """Seed the bundled default set if no active default exists.

        Returns the created set, or None when a default was already present.
        """
        if await self._repo.get_default(db) is not None:
            return None
        data = load_yaml(self._default_set_path)
        spec = QuestionSetSpec.model_validate({**data, "is_default": True})
        info = await self.create(db, spec, owner=owner)
        logger.info("Seeded default question set %s", info.id)
        return info

    # ==================================================================
    # Read
    # ==================================================================

    async def get_by_id(
        self, db: AsyncSession, question_set_id: uuid.UUID
    ) -> QuestionSetInfo | None:
        row = await self._repo.get_by_id(db, question_set_id)
        return self._to_info(row) if row is not None else None

    async def get_by_job(
        self, db: AsyncSession, job_id: uuid.UUID
    ) -> QuestionSetInfo | None:
        """Active set bound to ``job_id``, or None."""
        row = await self._repo.get_active_by_job(db, job_id)
        return self._to_info(row) if row is not None else None

    async def get_active(self, db: AsyncSession) -> list[QuestionSetInfo]:
        """Active sets, default first, then by title."""
        rows = await self._repo.list_active(db)
        return [self._to_info(r) for r in rows]

    async def get_default(self, db: AsyncSession) -> QuestionSetInfo | None:
        row = await self._repo.get_default(db)
        return self._to_info(row) if row is not None else None

    async def list_all(
        self,
        db: AsyncSession,
        *,
        owner: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[QuestionSetInfo]:
        rows = await self._repo.list_all(db, owner=owner, limit=limit, offset=offset)
        return [self._to_info(r) for r in rows]

    async def get_job(self, db: AsyncSession, job_id: uuid.UUID | None) -> JobSpec | None:
        if job_id is None:
            return None
        job = await self._jobs.get_by_id(db, job_id)
        return job_to_spec(job) if job is not None else None

    async def display_title(self, db: AsyncSession, info: QuestionSetInfo) -> str:
        """"Title at Company" for job-bound sets, otherwise the set title."""
        job = await self.get_job(db, info.job_id)
        return job.display_title if job is not None else info.title

    async def display_titles(
        self, db: AsyncSession, infos: list[QuestionSetInfo]
    ) -> dict[uuid.UUID, str]:
        """Batch form of :meth:`display_title`, keyed by question set id."""
        job_ids = list({i.job_id for i in infos if i.job_id is not None})
        jobs = await self._jobs.list_by_ids(db, job_ids)
        titles: dict[uuid.UUID, str] = {}
        for info in infos:
            job = jobs.get(info.job_id) if info.job_id is not None else None
            titles[info.id] = (
                f"{job.title} at {job.company}" if job is not None else info.title
            )
        return titles

    # ==================================================================
    # Update
    # ==================================================================

    async def update(
        self,
        db: AsyncSession,
        question_set_id: uuid.UUID,
        patch: QuestionSetPatch,
        *,
        actor_role: ActorRole | str = ActorRole.ADMIN,
    ) -> QuestionSetInfo:
        """Apply a partial update.

        Raises:
            NotFoundError: no such set.
            PermissionDeniedError: a non-admin set ``is_default``.
            QuestionSetInUseError: ``questions`` changed while incomplete
                sessions still follow the current list.
        """
        if patch.is_default is not None:
            _require_admin(actor_role, "change the default question set")
        row = await self._get_row(db, question_set_id)
        fields = {
            name: value
            for name, value in patch.model_dump(exclude_unset=True).items()
            if value is not None or name in _NULLABLE_FIELDS
        }

        if patch.questions is not None:
            open_sessions = await self._sessions.count_incomplete_for_set(db, row.id)
            if open_sessions:
                raise QuestionSetInUseError(
                    f"Question set {row.id} has {open_sessions} incomplete sessions",
                    user_message=(
                        "Questions cannot be edited while applications are in progress. "
                        "Duplicate the set and edit the copy instead."
                    ),
                )
            fields["questions"] = _dump_questions(resequence(patch.questions))

        is_active = fields.get("is_active", row.is_active)
        if fields.get("is_default") and is_active:
            await self._repo.clear_default(db, except_id=row.id)
        elif fields.get("is_default"):
            # An inactive set is never the default
            fields["is_default"] = False

        row = await self._repo.update_fields(db, row, **fields)
        logger.info("Updated question set %s (%s)", row.id, ", ".join(sorted(fields)))
        return self._to_info(row)

    async def set_default(
        self,
        db: AsyncSession,
        question_set_id: uuid.UUID,
        *,
        actor_role: ActorRole | str,
    ) -> QuestionSetInfo:
        """Make ``question_set_id`` the only default (admin only).

        The target is reactivated if needed.
        """
        _require_admin(actor_role, "change the default question set")
        row = await self._get_row(db, question_set_id)
        cleared = await self._repo.clear_default(db, except_id=row.id)
        row = await self._repo.update_fields(db, row, is_default=True, is_active=True)
        logger.info("Question set %s is now the default (cleared %d)", row.id, cleared)
        return self._to_info(row)

    # ==================================================================
    # Delete
    # ==================================================================

    async def delete(self, db: AsyncSession, question_set_id: uuid.UUID) -> None:
        row = await self._get_row(db, question_set_id)
        if row.is_default:
            raise QuestionSetInUseError(
                f"Question set {row.id} is the default",
                user_message="The default question set cannot be deleted.",
            )
        open_sessions = await self._sessions.count_incomplete_for_set(db, row.id)
        if open_sessions:
            raise QuestionSetInUseError(
                f"Question set {row.id} has {open_sessions} incomplete sessions",
                user_message="This question set has applications in progress.",
            )
        await self._repo.delete(db, row)
        logger.info("Deleted question set %s", question_set_id)

    # ==================================================================
    # Internal helpers
    # ==================================================================

    async def _get_row(self, db: AsyncSession, question_set_id: uuid.UUID) -> QuestionSet:
        row = await self._repo.get_by_id(db, question_set_id)
        if row is None:
            raise NotFoundError(f"Question set not found: {question_set_id}")
        return row

    @staticmethod
    def _to_info(row: QuestionSet) -> QuestionSetInfo:
        return QuestionSetInfo(
            id=row.id,
            title=row.title,
            description=row.description,
            job_id=row.job_id,
            questions=[Question.model_validate(q) for q in row.questions or []],
            is_active=row.is_active,
            is_default=row.is_default,
            owner=row.owner,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
