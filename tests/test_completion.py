"""CompletionTrigger tests: eligibility, request snapshot, and fire()
never propagating downstream failures."""

import pytest
import pytest_asyncio

from intake_flow.completion import CompletionTrigger
from intake_flow.errors import DownstreamServiceError

from helpers.mocks import MockJobRow, MockSessionRow, RecordingHandoff


def completed_row(set_id, **overrides):
    data = dict(
        subject_id="1001",
        question_set_id=set_id,
        current_step=3,
        is_completed=True,
        responses={"name": "Jane Doe", "email": "jane@example.com", "portfolio": "none"},
        attachment_file_name="cv.pdf",
        attachment_path="/uploads/cv-1.pdf",
    )
    data.update(overrides)
    return MockSessionRow(**data)


@pytest_asyncio.fixture
async def bound_info(registry, short_set, job_repo, db):
    job = job_repo.add(MockJobRow(title="Backend Engineer", company="Acme"))
    short_set.job_id = job.id
    return await registry.get_by_id(db, short_set.id)


class TestEligibility:

    def test_needs_completion_and_attachment(self):
        assert CompletionTrigger.is_eligible(completed_row(None))
        assert not CompletionTrigger.is_eligible(completed_row(None, is_completed=False))
        assert not CompletionTrigger.is_eligible(completed_row(None, attachment_path=None))


@pytest.mark.asyncio
class TestPrepare:

    async def test_snapshot_includes_job_and_responses(self, completion, bound_info, db):
        row = completed_row(bound_info.id)
        request = await completion.prepare(db, row, bound_info)

        assert request.session_id == row.id
        assert request.subject_id == "1001"
        assert request.job.display_title == "Backend Engineer at Acme"
        assert request.job.required_skills == ["python", "sql"]
        assert request.attachment_path == "/uploads/cv-1.pdf"
        assert request.responses["email"] == "jane@example.com"

    async def test_prepare_does_not_mutate(self, completion, bound_info, db):
        row = completed_row(bound_info.id)
        before = (row.current_step, dict(row.responses), row.updated_at)
        await completion.prepare(db, row, bound_info)
        assert (row.current_step, row.responses, row.updated_at) == before

    async def test_prepare_requires_attachment(self, completion, bound_info, db):
        with pytest.raises(ValueError):
            await completion.prepare(db, completed_row(bound_info.id, attachment_path=None), bound_info)


@pytest.mark.asyncio
class TestFire:

    async def test_fire_submits(self, completion, handoff, bound_info, db):
        request = await completion.prepare(db, completed_row(bound_info.id), bound_info)
        assert await completion.fire(request) is True
        assert handoff.requests == [request]

    async def test_no_job_skips(self, completion, handoff, registry, short_set, db):
        info = await registry.get_by_id(db, short_set.id)
        request = await completion.prepare(db, completed_row(info.id), info)
        assert request.job is None
        assert await completion.fire(request) is False
        assert handoff.requests == []

    async def test_no_handoff_configured(self, registry, bound_info, db):
        trigger = CompletionTrigger(registry)
        request = await trigger.prepare(db, completed_row(bound_info.id), bound_info)
        assert await trigger.fire(request) is False

    async def test_downstream_error_swallowed(self, registry, bound_info, db):
        failing = RecordingHandoff(error=DownstreamServiceError("scorer timeout"))
        trigger = CompletionTrigger(registry, failing)
        request = await trigger.prepare(db, completed_row(bound_info.id), bound_info)
        assert await trigger.fire(request) is False
        assert len(failing.requests) == 1

    async def test_unexpected_error_swallowed(self, registry, bound_info, db):
        trigger = CompletionTrigger(registry, RecordingHandoff(error=RuntimeError("boom")))
        request = await trigger.prepare(db, completed_row(bound_info.id), bound_info)
        assert await trigger.fire(request) is False
