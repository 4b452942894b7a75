#!/usr/bin/env python3
"""Simulate a full hiring interview end-to-end with a mocked DB and channel.

Seeds the bundled "Standard Hiring Questions" set, then drives one subject
through ``/jobs`` → ``/start`` → every question → resume upload, printing
each inbound event and every outbound message.  The completion handoff is
captured by a recording double instead of a real screening service.

By default a canned set of valid answers is used.  ``--with-errors`` slips
an invalid answer in before each valid one so the validation messages show
up too; ``--interactive`` reads answers from stdin instead.

Usage::

    # Default run (canned answers, upload after the last question)
    python scripts/simulate_interview.py

    # Show validation errors along the way
    python scripts/simulate_interview.py --with-errors

    # Upload the resume halfway through instead of at the end
    python scripts/simulate_interview.py --upload-at 5

    # Answer the questions yourself
    python scripts/simulate_interview.py --interactive
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import tempfile
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

# ---------------------------------------------------------------------------
# Ensure project root is on sys.path so we can import both the SDK and
# test mock infrastructure.
# ---------------------------------------------------------------------------
_SCRIPT_DIR = Path(__file__).resolve().parent
_REPO_ROOT = _SCRIPT_DIR.parent
sys.path.insert(0, str(_REPO_ROOT / "tests"))
sys.path.insert(0, str(_REPO_ROOT / "src"))

from helpers.mocks import (  # noqa: E402
    MockJobRepository,
    MockJobRow,
    MockQuestionSetRepository,
    MockSessionFactory,
    MockSessionRepository,
    RecordingHandoff,
)

from intake_flow import (  # noqa: E402
    AttachmentHandler,
    CompletionTrigger,
    IntakeDispatcher,
    IntakeEngine,
    JobListing,
    LocalFileStorage,
    MessageRenderer,
    MessageTransport,
    QuestionSetRegistry,
)
from intake_flow.models.messages import DocumentEvent, Subject, TextEvent  # noqa: E402

# ---------------------------------------------------------------------------
# Constants for the simulation
# ---------------------------------------------------------------------------

SUBJECT = Subject(subject_id="424242", username="sim_candidate", first_name="Sam")
RESUME = b"%PDF-1.4\n% simulated resume\n"

# One valid answer per question of the standard set, in order
CANNED_ANSWERS = [
    "Sam Candidate",
    "sam@example.com",
    "+1 555 010 2030",
    "Backend Engineer",
    "5 years",
    "Python, PostgreSQL, FastAPI, Docker",
    "2 weeks notice",
    "90k-110k USD",
    "none",
    "skip",
]

# Rejected answers used by --with-errors, keyed by field
INVALID_ANSWERS = {
    "name": "S",
    "email": "sam-at-example",
    "phone": "call me",
    "skills": "Python",
    "portfolio": "my website",
}

console = Console()
_quiet = False


def _print(*args, **kwargs) -> None:
    """Print wrapper that respects the --quiet flag."""
    if not _quiet:
        console.print(*args, **kwargs)


class ConsoleTransport(MessageTransport):
    """MessageTransport that prints outbound messages and serves one file."""

    def __init__(self) -> None:
        self.sent = []

    async def send(self, subject_id, message) -> None:
        self.sent.append(message)
        body = message.text
        if message.buttons:
            body += "\n\n" + "\n".join(f"[{b.label}] → {b.payload}" for b in message.buttons)
        _print(Panel(Text(body), title=f"bot → {subject_id} ({message.kind.value})", expand=False))

    def on_text_message(self, handler) -> None:
        self.text_handler = handler

    def on_document_message(self, handler) -> None:
        self.document_handler = handler

    async def download(self, file_ref: str) -> bytes:
        return RESUME


def log_inbound(text: str) -> None:
    _print(Text.assemble("\n", (f"{SUBJECT.username} → ", "bold cyan"), text))


async def run_simulation(upload_at: int | None, with_errors: bool, interactive: bool) -> int:
    qs_repo, session_repo, job_repo = (
        MockQuestionSetRepository(), MockSessionRepository(), MockJobRepository(),
    )
    registry = QuestionSetRegistry()
    registry._repo, registry._sessions, registry._jobs = qs_repo, session_repo, job_repo

    factory = MockSessionFactory()
    info = await registry.ensure_default(factory.db)
    # Bind the seeded set to a job so the completion handoff has something to score against
    job = job_repo.add(MockJobRow(title="Backend Engineer", company="Simulated Inc"))
    qs_repo.rows[info.id].job_id = job.id

    handoff = RecordingHandoff()
    completion = CompletionTrigger(registry, handoff)
    renderer = MessageRenderer()

    with tempfile.TemporaryDirectory() as upload_dir:
        storage = LocalFileStorage(upload_dir)
        engine = IntakeEngine(registry, storage, completion=completion, renderer=renderer)
        engine._repo = session_repo
        attachments = AttachmentHandler(
            registry, storage, engine, completion=completion, renderer=renderer,
        )
        attachments._repo = session_repo
        listing = JobListing(registry, renderer)
        listing._repo = session_repo

        transport = ConsoleTransport()
        dispatcher = IntakeDispatcher(
            transport, factory,
            engine=engine, attachments=attachments, listing=listing,
            completion=completion, renderer=renderer,
        )
        dispatcher.register()

        async def say(text: str) -> None:
            log_inbound(text)
            await dispatcher.handle_text(TextEvent(subject=SUBJECT, text=text))

        async def upload() -> None:
            log_inbound("📎 resume.pdf")
            await dispatcher.handle_document(DocumentEvent(
                subject=SUBJECT, file_name="resume.pdf", file_size=len(RESUME),
                mime_type="application/pdf", file_ref="sim-file",
            ))

        await say("/jobs")
        await say(f"/start {info.id}")

        for step, question in enumerate(info.questions, start=1):
            if upload_at == step:
                await upload()
            if interactive:
                answer = console.input(f"[bold]answer {step}/{info.question_count}> [/bold]")
            else:
                if with_errors and question.field_key in INVALID_ANSWERS:
                    await say(INVALID_ANSWERS[question.field_key])
                answer = CANNED_ANSWERS[step - 1]
            await say(answer)

        if upload_at is None or upload_at > info.question_count:
            await upload()

        await say("/status")
        await dispatcher.drain()

    session = session_repo.for_subject(SUBJECT.subject_id)[0]
    _print(f"\n[bold]Completed:[/bold] {session.is_completed}  "
           f"[bold]step:[/bold] {session.current_step}/{info.question_count}  "
           f"[bold]handoffs:[/bold] {len(handoff.requests)}")
    ok = session.is_completed and len(handoff.requests) == 1
    _print("[green]Simulation OK[/green]" if ok else "[red]Simulation FAILED[/red]")
    return 0 if ok else 1


def main() -> None:
    global _quiet
    parser = argparse.ArgumentParser(
        description="Simulate a hiring interview end-to-end with a mocked DB and channel.",
    )
    parser.add_argument(
        "--upload-at",
        type=int,
        default=None,
        help="Upload the resume just before question N (default: after the last question)",
    )
    parser.add_argument(
        "--with-errors",
        action="store_true",
        help="Send an invalid answer before the valid one where possible",
    )
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Read answers from stdin instead of using canned ones",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress all output (exit code still reflects success/failure)",
    )
    args = parser.parse_args()
    _quiet = args.quiet

    sys.exit(asyncio.run(run_simulation(args.upload_at, args.with_errors, args.interactive)))


if __name__ == "__main__":
    main()
