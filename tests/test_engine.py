"""IntakeEngine tests with mocked DB layer.

Uses the in-memory repositories from ``helpers.mocks``; the engine's
``_repo`` and the registry's repositories are swapped for them in
``conftest.py``.  An AsyncMock stands in for AsyncSession.

Scenarios:
  - selection: start, resume in progress (which re-targets free text),
    already submitted, bad set
  - answering: validation failure leaves state untouched, advance,
    completion with and without attachment, stale double-submit
  - commands never count as answers (dispatcher routes them)
  - reset deletes sessions and releases files, even when the delete fails
"""

import uuid

import pytest

from intake_flow.engine import NO_ACTIVE_APPLICATION
from intake_flow.errors import NotFoundError
from intake_flow.models.messages import OutboundKind, Subject

from helpers.mocks import (
    MockQuestionSetRow,
    MockSessionRepository,
    MockSessionRow,
    numbered,
    question,
)


async def answer_all(engine, db, subject, answers):
    outcome = None
    for text in answers:
        outcome = await engine.answer(db, subject, text)
    return outcome


# =====================================================================
# Selection
# =====================================================================


@pytest.mark.asyncio
class TestSelect:

    async def test_new_session_welcome_then_first_prompt(self, engine, short_set, session_repo, subject, db):
        outcome = await engine.select(db, subject, short_set.id)

        kinds = [m.kind for m in outcome.messages]
        assert kinds == [OutboundKind.INFO, OutboundKind.PROMPT]
        assert "Short Form" in outcome.texts[0]
        assert "3 questions" in outcome.texts[0]
        assert "about 2 minutes" in outcome.texts[0]
        assert outcome.texts[1].startswith("[1/3] What is your name?")

        row = session_repo.for_subject("1001")[0]
        assert row.current_step == 0
        assert row.username == "jdoe"
        assert outcome.handoff is None

    async def test_reselect_in_progress_resumes(self, engine, short_set, subject, db):
        await engine.select(db, subject, short_set.id)
        await engine.answer(db, subject, "Jane Doe")

        outcome = await engine.select(db, subject, short_set.id)
        assert "Continue Your Application" in outcome.texts[0]
        assert "Progress: 1/3" in outcome.texts[0]
        assert outcome.texts[1].startswith("[2/3] What is your email?")

    async def test_reselect_completed_reports_submitted(self, engine, short_set, session_repo, subject, db):
        await engine.select(db, subject, short_set.id)
        await answer_all(engine, db, subject, ["Jane Doe", "jane@example.com", "none"])

        outcome = await engine.select(db, subject, short_set.id)
        assert len(outcome.messages) == 1
        assert "Already Submitted" in outcome.texts[0]
        assert len(session_repo.rows) == 1, "re-selecting must not create a second session"

    async def test_unknown_set(self, engine, subject, db):
        with pytest.raises(NotFoundError) as exc_info:
            await engine.select(db, subject, uuid.uuid4())
        assert "Invalid question set ID" in exc_info.value.user_message

    async def test_inactive_set(self, engine, short_set, subject, db):
        short_set.is_active = False
        with pytest.raises(NotFoundError):
            await engine.select(db, subject, short_set.id)

    async def test_select_job_resolves_active_set(self, engine, qs_repo, short_set, subject, db):
        job_id = uuid.uuid4()
        short_set.job_id = job_id
        outcome = await engine.select_job(db, subject, job_id)
        assert outcome.messages[-1].kind == OutboundKind.PROMPT

    async def test_select_job_without_set(self, engine, subject, db):
        with pytest.raises(NotFoundError) as exc_info:
            await engine.select_job(db, subject, uuid.uuid4())
        assert "not available" in exc_info.value.user_message


# =====================================================================
# Answering
# =====================================================================


@pytest.mark.asyncio
class TestAnswer:

    async def test_no_active_session(self, engine, session_repo, subject, db):
        outcome = await engine.answer(db, subject, "hello")
        assert outcome.texts == [NO_ACTIVE_APPLICATION]
        assert session_repo.rows == {}

    async def test_invalid_answer_keeps_state(self, engine, short_set, session_repo, subject, db):
        await engine.select(db, subject, short_set.id)
        row = session_repo.for_subject("1001")[0]
        before = row.updated_at

        outcome = await engine.answer(db, subject, "J")

        assert outcome.messages[0].kind == OutboundKind.VALIDATION_ERROR
        assert "at least 2 characters" in outcome.texts[0]
        assert "💡 Required." in outcome.texts[0]
        assert row.current_step == 0
        assert row.responses == {}
        assert row.updated_at == before

    async def test_valid_answer_advances(self, engine, short_set, session_repo, subject, db):
        await engine.select(db, subject, short_set.id)
        outcome = await engine.answer(db, subject, "  Jane Doe  ")

        row = session_repo.for_subject("1001")[0]
        assert row.current_step == 1
        assert row.responses == {"name": "Jane Doe"}
        assert outcome.texts[0].startswith("[2/3] What is your email?")

    async def test_completion_without_attachment(self, engine, short_set, session_repo, handoff, subject, db):
        await engine.select(db, subject, short_set.id)
        outcome = await answer_all(engine, db, subject, ["Jane Doe", "jane@example.com", "none"])

        row = session_repo.for_subject("1001")[0]
        assert row.is_completed
        assert row.current_step == 3
        assert row.completed_at is not None
        assert row.responses["portfolio"] == "none"
        assert outcome.messages[0].kind == OutboundKind.COMPLETION
        assert "Upload it using /upload" in outcome.texts[0]
        assert outcome.handoff is None, "no handoff without an attachment"

    async def test_optional_skip_stored_blank(self, engine, short_set, session_repo, subject, db):
        await engine.select(db, subject, short_set.id)
        await answer_all(engine, db, subject, ["Jane Doe", "jane@example.com", "skip"])
        row = session_repo.for_subject("1001")[0]
        assert row.is_completed
        assert row.responses["portfolio"] == ""

    async def test_completion_with_attachment_carries_handoff(self, engine, short_set, session_repo, subject, db):
        await engine.select(db, subject, short_set.id)
        row = session_repo.for_subject("1001")[0]
        row.attachment_file_name = "cv.pdf"
        row.attachment_path = "/uploads/abc.pdf"

        outcome = await answer_all(engine, db, subject, ["Jane Doe", "jane@example.com", "none"])

        assert "cv.pdf" in outcome.texts[0]
        assert outcome.handoff is not None
        assert outcome.handoff.session_id == row.id
        assert outcome.handoff.responses == {
            "name": "Jane Doe", "email": "jane@example.com", "portfolio": "none",
        }

    async def test_answer_goes_to_most_recent_incomplete(self, engine, qs_repo, short_set, session_repo, subject, db):
        other = qs_repo.add(MockQuestionSetRow(title="Other", questions=list(short_set.questions)))
        await engine.select(db, subject, short_set.id)
        await engine.select(db, subject, other.id)

        await engine.answer(db, subject, "Jane Doe")

        first = await session_repo.get_for_subject_and_set(db, "1001", short_set.id)
        second = await session_repo.get_for_subject_and_set(db, "1001", other.id)
        assert first.current_step == 0
        assert second.current_step == 1

    async def test_reselected_session_takes_the_next_answer(self, engine, qs_repo, session_repo, subject, db):
        contact = qs_repo.add(MockQuestionSetRow(
            title="Contact", questions=numbered([question("email", "email"), question("city")]),
        ))
        experience = qs_repo.add(MockQuestionSetRow(
            title="Experience", questions=numbered([question("years", "number"), question("team")]),
        ))
        await engine.select(db, subject, contact.id)
        await engine.select(db, subject, experience.id)

        resumed = await engine.select(db, subject, contact.id)
        assert resumed.texts[-1].startswith("[1/2] What is your email?")

        reply = await engine.answer(db, subject, "jane@example.com")

        contact_row = await session_repo.get_for_subject_and_set(db, "1001", contact.id)
        experience_row = await session_repo.get_for_subject_and_set(db, "1001", experience.id)
        assert contact_row.current_step == 1
        assert contact_row.responses == {"email": "jane@example.com"}
        assert experience_row.current_step == 0
        assert len(reply.messages) == 1
        assert reply.texts[0].startswith("[2/2] What is your city?")

    async def test_completed_sessions_do_not_take_answers(self, engine, short_set, session_repo, subject, db):
        await engine.select(db, subject, short_set.id)
        await answer_all(engine, db, subject, ["Jane Doe", "jane@example.com", "none"])

        outcome = await engine.answer(db, subject, "one more thing")
        assert outcome.texts == [NO_ACTIVE_APPLICATION]

    async def test_other_subjects_unaffected(self, engine, short_set, session_repo, subject, db):
        other = Subject(subject_id="2002")
        await engine.select(db, subject, short_set.id)
        await engine.select(db, other, short_set.id)
        await engine.answer(db, subject, "Jane Doe")
        assert session_repo.for_subject("2002")[0].current_step == 0


class RacingRepository(MockSessionRepository):
    """advance_step loses to a concurrent writer that records the same step."""

    async def advance_step(self, db, session, *, field_key, value, expected_step, completes):
        await super().advance_step(
            db, session, field_key=field_key, value="first writer",
            expected_step=expected_step, completes=completes,
        )
        return False


@pytest.mark.asyncio
class TestStaleAnswer:

    async def test_double_submit_advances_once(self, engine, registry, short_set, subject, db):
        racing = RacingRepository()
        engine._repo = racing
        registry._sessions = racing
        await engine.select(db, subject, short_set.id)

        outcome = await engine.answer(db, subject, "Jane Doe")

        row = racing.for_subject("1001")[0]
        assert row.current_step == 1
        assert row.responses == {"name": "first writer"}
        assert "already recorded" in outcome.texts[0]
        assert outcome.texts[1].startswith("[2/3]")

    async def test_double_submit_on_last_step(self, engine, registry, short_set, subject, db):
        racing = RacingRepository()
        engine._repo = racing
        await engine.select(db, subject, short_set.id)
        row = racing.for_subject("1001")[0]
        row.current_step = 2
        row.responses = {"name": "Jane Doe", "email": "jane@example.com"}

        outcome = await engine.answer(db, subject, "none")

        assert row.is_completed
        assert outcome.texts == ["✅ Your application is already complete."]
        assert outcome.handoff is None


# =====================================================================
# Reset
# =====================================================================


@pytest.mark.asyncio
class TestReset:

    async def test_reset_deletes_sessions_and_files(self, engine, qs_repo, short_set, session_repo, storage, subject, db):
        path = await storage.save("abc.pdf", b"%PDF-1.4")
        session_repo.add(MockSessionRow(
            subject_id="1001", question_set_id=short_set.id,
            attachment_file_name="cv.pdf", attachment_path=path,
        ))
        other = qs_repo.add(MockQuestionSetRow(questions=list(short_set.questions)))
        session_repo.add(MockSessionRow(subject_id="1001", question_set_id=other.id))
        session_repo.add(MockSessionRow(subject_id="2002", question_set_id=other.id))

        outcome = await engine.reset(db, subject)

        assert "deleted" in outcome.texts[0]
        assert session_repo.for_subject("1001") == []
        assert len(session_repo.for_subject("2002")) == 1
        assert not await storage.exists(path)

    async def test_reset_then_select_starts_fresh(self, engine, short_set, session_repo, subject, db):
        await engine.select(db, subject, short_set.id)
        await engine.answer(db, subject, "Jane Doe")
        await engine.reset(db, subject)

        outcome = await engine.select(db, subject, short_set.id)
        assert outcome.texts[-1].startswith("[1/3]")
        assert session_repo.for_subject("1001")[0].current_step == 0

    async def test_reset_with_nothing(self, engine, subject, db):
        outcome = await engine.reset(db, subject)
        assert "No applications found" in outcome.texts[0]

    async def test_status_after_reset_reports_no_applications(self, engine, listing, short_set, subject, db):
        await engine.select(db, subject, short_set.id)
        await answer_all(engine, db, subject, ["Jane Doe", "jane@example.com", "none"])

        await engine.reset(db, subject)

        status = await listing.status(db, subject)
        assert "No applications found" in status.texts[0]
        applications = await listing.list_applications(db, subject)
        assert "haven't applied for any jobs yet" in applications.texts[0]


class FailingDeleteRepository(MockSessionRepository):
    """delete_for_subject fails after the sessions have been read."""

    async def delete_for_subject(self, db, subject_id):
        raise RuntimeError("connection lost")


@pytest.mark.asyncio
class TestResetFailure:

    async def test_files_released_when_delete_fails(self, engine, short_set, storage, subject, db):
        failing = FailingDeleteRepository()
        engine._repo = failing
        path = await storage.save("abc.pdf", b"%PDF-1.4")
        failing.add(MockSessionRow(
            subject_id="1001", question_set_id=short_set.id,
            attachment_file_name="cv.pdf", attachment_path=path,
        ))

        with pytest.raises(RuntimeError):
            await engine.reset(db, subject)

        assert not await storage.exists(path)
