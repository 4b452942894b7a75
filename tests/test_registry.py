"""QuestionSetRegistry tests with in-memory repositories.

Covers step re-numbering, the single-default invariant, admin-only
set_default, edit/delete guards while sessions are open, duplication and
default seeding.
"""

import uuid

import pytest

from intake_db.models.enums import ActorRole
from intake_flow.errors import (
    NotFoundError,
    PermissionDeniedError,
    QuestionSetInUseError,
)
from intake_flow.models.question import Question, QuestionSetPatch, QuestionSetSpec
from intake_flow.registry import resequence

from helpers.mocks import (
    MockJobRow,
    MockQuestionSetRow,
    MockSessionRow,
    SHORT_SET,
    question,
)


def spec(**overrides) -> QuestionSetSpec:
    data = {"title": "Designer", "questions": [question("name"), question("email", "email")]}
    data.update(overrides)
    return QuestionSetSpec.model_validate(data)


def defaults(qs_repo):
    return [r for r in qs_repo.rows.values() if r.is_default]


# =====================================================================
# resequence
# =====================================================================


class TestResequence:

    def test_sorts_by_step_and_renumbers(self):
        qs = [
            Question.model_validate({**question("c"), "step": 30}),
            Question.model_validate({**question("a"), "step": 10}),
            Question.model_validate({**question("b"), "step": 20}),
        ]
        out = resequence(qs)
        assert [q.field_key for q in out] == ["a", "b", "c"]
        assert [q.step for q in out] == [1, 2, 3]

    def test_missing_steps_keep_list_position(self):
        qs = [Question.model_validate(question(k)) for k in ("x", "y", "z")]
        out = resequence(qs)
        assert [q.field_key for q in out] == ["x", "y", "z"]
        assert [q.step for q in out] == [1, 2, 3]

    def test_ties_keep_list_order(self):
        qs = [
            Question.model_validate({**question("first"), "step": 2}),
            Question.model_validate({**question("second"), "step": 2}),
            Question.model_validate({**question("zero"), "step": 1}),
        ]
        assert [q.field_key for q in resequence(qs)] == ["zero", "first", "second"]


# =====================================================================
# Create / duplicate / seed
# =====================================================================


@pytest.mark.asyncio
class TestCreate:

    async def test_create_renumbers_steps(self, registry, db):
        questions = [{**question("b"), "step": 7}, {**question("a"), "step": 3}]
        info = await registry.create(db, spec(questions=questions), owner="alice")
        assert [q.field_key for q in info.questions] == ["a", "b"]
        assert [q.step for q in info.questions] == [1, 2]
        assert info.owner == "alice"

    async def test_duplicate_field_keys_rejected(self):
        with pytest.raises(ValueError):
            spec(questions=[question("name"), question("name")])

    async def test_new_default_clears_previous(self, registry, qs_repo, db):
        first = await registry.create(db, spec(title="One", is_default=True))
        second = await registry.create(db, spec(title="Two", is_default=True))
        assert [r.id for r in defaults(qs_repo)] == [second.id]
        assert not qs_repo.rows[first.id].is_default

    async def test_inactive_set_is_never_default(self, registry, qs_repo, db):
        info = await registry.create(db, spec(is_default=True, is_active=False))
        assert not info.is_default
        assert defaults(qs_repo) == []

    async def test_hr_cannot_create_default(self, registry, qs_repo, db):
        with pytest.raises(PermissionDeniedError):
            await registry.create(db, spec(is_default=True), owner="hr-bob", actor_role=ActorRole.HR)
        assert qs_repo.rows == {}

    async def test_hr_creates_regular_set(self, registry, db):
        info = await registry.create(db, spec(), owner="hr-bob", actor_role=ActorRole.HR)
        assert not info.is_default
        assert info.owner == "hr-bob"

    async def test_duplicate_copies_questions_not_job(self, registry, qs_repo, db):
        job_id = uuid.uuid4()
        original = qs_repo.add(MockQuestionSetRow(
            title="Backend", questions=list(SHORT_SET), job_id=job_id, is_default=True,
        ))
        copy = await registry.duplicate(db, original.id, owner="bob")
        assert copy.title == "Backend (Copy)"
        assert copy.job_id is None
        assert not copy.is_active
        assert not copy.is_default
        assert copy.field_keys == {"name", "email", "portfolio"}
        assert qs_repo.rows[original.id].is_default, "original must stay default"

    async def test_ensure_default_seeds_standard_set(self, registry, qs_repo, db):
        info = await registry.ensure_default(db)
        assert info is not None
        assert info.title == "Standard Hiring Questions"
        assert info.question_count == 10
        assert info.is_default and info.is_active
        assert [q.step for q in info.questions] == list(range(1, 11))
        assert info.questions[8].field_key == "portfolio"
        assert not info.questions[8].required

    async def test_ensure_default_is_idempotent(self, registry, qs_repo, db):
        await registry.ensure_default(db)
        assert await registry.ensure_default(db) is None
        assert len(qs_repo.rows) == 1


# =====================================================================
# Read
# =====================================================================


@pytest.mark.asyncio
class TestRead:

    async def test_get_active_default_first(self, registry, qs_repo, db):
        qs_repo.add(MockQuestionSetRow(title="Alpha", questions=list(SHORT_SET)))
        qs_repo.add(MockQuestionSetRow(title="Zulu", questions=list(SHORT_SET), is_default=True))
        qs_repo.add(MockQuestionSetRow(title="Hidden", questions=list(SHORT_SET), is_active=False))
        titles = [i.title for i in await registry.get_active(db)]
        assert titles == ["Zulu", "Alpha"]

    async def test_get_by_job_only_active(self, registry, qs_repo, db):
        job_id = uuid.uuid4()
        qs_repo.add(MockQuestionSetRow(questions=list(SHORT_SET), job_id=job_id, is_active=False))
        assert await registry.get_by_job(db, job_id) is None
        active = qs_repo.add(MockQuestionSetRow(questions=list(SHORT_SET), job_id=job_id))
        assert (await registry.get_by_job(db, job_id)).id == active.id

    async def test_display_title_uses_job(self, registry, qs_repo, job_repo, db):
        job = job_repo.add(MockJobRow(title="Data Engineer", company="Globex"))
        bound = qs_repo.add(MockQuestionSetRow(title="DE form", questions=list(SHORT_SET), job_id=job.id))
        plain = qs_repo.add(MockQuestionSetRow(title="General", questions=list(SHORT_SET)))
        infos = [await registry.get_by_id(db, bound.id), await registry.get_by_id(db, plain.id)]
        assert await registry.display_title(db, infos[0]) == "Data Engineer at Globex"
        titles = await registry.display_titles(db, infos)
        assert titles == {bound.id: "Data Engineer at Globex", plain.id: "General"}


# =====================================================================
# Update / default / delete
# =====================================================================


@pytest.mark.asyncio
class TestUpdate:

    async def test_update_title_only(self, registry, short_set, db):
        info = await registry.update(db, short_set.id, QuestionSetPatch(title="Renamed"))
        assert info.title == "Renamed"
        assert info.question_count == 3

    async def test_update_clears_description(self, registry, qs_repo, db):
        row = qs_repo.add(MockQuestionSetRow(questions=list(SHORT_SET), description="old"))
        info = await registry.update(db, row.id, QuestionSetPatch(description=None))
        assert info.description is None

    async def test_questions_locked_while_sessions_open(self, registry, short_set, session_repo, db):
        session_repo.add(MockSessionRow(question_set_id=short_set.id, current_step=1))
        patch = QuestionSetPatch(questions=[Question.model_validate(question("only"))])
        with pytest.raises(QuestionSetInUseError):
            await registry.update(db, short_set.id, patch)

    async def test_questions_editable_once_sessions_complete(self, registry, short_set, session_repo, db):
        session_repo.add(MockSessionRow(question_set_id=short_set.id, current_step=3, is_completed=True))
        patch = QuestionSetPatch(questions=[Question.model_validate(question("only"))])
        info = await registry.update(db, short_set.id, patch)
        assert [q.field_key for q in info.questions] == ["only"]
        assert info.questions[0].step == 1

    async def test_update_to_default_clears_others(self, registry, qs_repo, short_set, db):
        other = qs_repo.add(MockQuestionSetRow(questions=list(SHORT_SET), is_default=True))
        await registry.update(db, short_set.id, QuestionSetPatch(is_default=True))
        assert [r.id for r in defaults(qs_repo)] == [short_set.id]
        assert not other.is_default

    async def test_hr_cannot_update_default(self, registry, short_set, db):
        patch = QuestionSetPatch(title="Renamed", is_default=True)
        with pytest.raises(PermissionDeniedError):
            await registry.update(db, short_set.id, patch, actor_role=ActorRole.HR)
        assert short_set.title == "Short Form"
        assert not short_set.is_default

    async def test_hr_updates_other_fields(self, registry, short_set, db):
        info = await registry.update(
            db, short_set.id, QuestionSetPatch(title="Renamed"), actor_role=ActorRole.HR,
        )
        assert info.title == "Renamed"

    async def test_update_missing_set(self, registry, db):
        with pytest.raises(NotFoundError):
            await registry.update(db, uuid.uuid4(), QuestionSetPatch(title="x"))


@pytest.mark.asyncio
class TestSetDefault:

    async def test_admin_sets_default(self, registry, qs_repo, short_set, db):
        old = qs_repo.add(MockQuestionSetRow(questions=list(SHORT_SET), is_default=True))
        short_set.is_active = False
        info = await registry.set_default(db, short_set.id, actor_role=ActorRole.ADMIN)
        assert info.is_default and info.is_active
        assert not old.is_default
        assert len(defaults(qs_repo)) == 1

    async def test_hr_cannot_set_default(self, registry, qs_repo, short_set, db):
        with pytest.raises(PermissionDeniedError):
            await registry.set_default(db, short_set.id, actor_role=ActorRole.HR)
        assert not short_set.is_default

    async def test_set_default_is_idempotent(self, registry, short_set, db):
        await registry.set_default(db, short_set.id, actor_role=ActorRole.ADMIN)
        info = await registry.set_default(db, short_set.id, actor_role="admin")
        assert info.is_default


@pytest.mark.asyncio
class TestDelete:

    async def test_delete(self, registry, qs_repo, short_set, db):
        await registry.delete(db, short_set.id)
        assert short_set.id not in qs_repo.rows

    async def test_default_cannot_be_deleted(self, registry, short_set, db):
        short_set.is_default = True
        with pytest.raises(QuestionSetInUseError):
            await registry.delete(db, short_set.id)

    async def test_open_sessions_block_delete(self, registry, short_set, session_repo, db):
        session_repo.add(MockSessionRow(question_set_id=short_set.id))
        with pytest.raises(QuestionSetInUseError):
            await registry.delete(db, short_set.id)
