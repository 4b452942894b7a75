import pytest

from intake_flow.attachments import AttachmentHandler
from intake_flow.completion import CompletionTrigger
from intake_flow.engine import IntakeEngine
from intake_flow.listing import JobListing
from intake_flow.messages import MessageRenderer
from intake_flow.models.messages import Subject
from intake_flow.registry import QuestionSetRegistry
from intake_flow.storage import LocalFileStorage

from helpers.mocks import (
    SHORT_SET,
    MockJobRepository,
    MockQuestionSetRepository,
    MockQuestionSetRow,
    MockSessionRepository,
    RecordingHandoff,
    make_db,
)


@pytest.fixture
def db():
    return make_db()


@pytest.fixture
def subject():
    return Subject(subject_id="1001", username="jdoe", first_name="Jane", last_name="Doe")


@pytest.fixture
def qs_repo():
    return MockQuestionSetRepository()


@pytest.fixture
def session_repo():
    return MockSessionRepository()


@pytest.fixture
def job_repo():
    return MockJobRepository()


@pytest.fixture
def registry(qs_repo, session_repo, job_repo):
    """QuestionSetRegistry wired to the in-memory repositories."""
    reg = QuestionSetRegistry()
    reg._repo = qs_repo
    reg._sessions = session_repo
    reg._jobs = job_repo
    return reg


@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(tmp_path / "uploads")


@pytest.fixture
def renderer():
    return MessageRenderer()


@pytest.fixture
def handoff():
    return RecordingHandoff()


@pytest.fixture
def completion(registry, handoff):
    return CompletionTrigger(registry, handoff)


@pytest.fixture
def engine(registry, storage, completion, renderer, session_repo):
    eng = IntakeEngine(registry, storage, completion=completion, renderer=renderer)
    eng._repo = session_repo
    return eng


@pytest.fixture
def attachments(registry, storage, engine, completion, renderer, session_repo):
    handler = AttachmentHandler(
        registry, storage, engine, completion=completion, renderer=renderer,
        max_bytes=1024,
    )
    handler._repo = session_repo
    return handler


@pytest.fixture
def listing(registry, renderer, session_repo):
    view = JobListing(registry, renderer)
    view._repo = session_repo
    return view


@pytest.fixture
def short_set(qs_repo):
    """Active three-question set: name (text), email, portfolio (optional url)."""
    return qs_repo.add(MockQuestionSetRow(title="Short Form", questions=list(SHORT_SET)))
