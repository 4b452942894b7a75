"""MessageRenderer — Jinja2-based renderer for subject-facing messages.

Loads templates from the ``template/`` directory.  Every template renders
plain text (no channel markup) so any transport can deliver it verbatim.
"""

from __future__ import annotations

import math
from datetime import datetime
from pathlib import Path

import jinja2

from intake_flow.constants import QUESTIONS_PER_MINUTE

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


def format_file_size(size: int) -> str:
    """Human-readable size: ``0 Bytes``, ``512 Bytes``, ``1.5 KB``, ``2 MB``."""
    if size <= 0:
        return "0 Bytes"
    exponent = 0
    while size >= 1024 ** (exponent + 1) and exponent < len(_SIZE_UNITS) - 1:
        exponent += 1
    text = f"{size / 1024 ** exponent:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[exponent]}"


def format_date(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d")


def estimate_minutes(question_count: int) -> int:
    return max(1, math.ceil(question_count / QUESTIONS_PER_MINUTE))


class MessageRenderer:
    """Renders named templates into message text.

    Args:
        template_dir: optional override for the template directory.
            Defaults to ``template/`` sibling of this module.
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        if template_dir is None:
            template_dir = Path(__file__).parent / "template"
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            # Plain-text output; nothing is HTML
            autoescape=False,
            undefined=jinja2.StrictUndefined,
        )
        self._env.filters["filesize"] = format_file_size
        self._env.filters["date"] = format_date

    def render(self, template_name: str, **context) -> str:
        """Render a named template with arbitrary context."""
        template = self._env.get_template(template_name)
        return template.render(**context).strip()

    # --- Shortcuts for the templates every transition uses ---

    def prompt(self, *, step: int, total: int, prompt: str, hint: str | None) -> str:
        return self.render("prompt.jinja2", step=step, total=total, prompt=prompt, hint=hint)

    def validation_error(self, *, reason: str, hint: str | None) -> str:
        return self.render("validation_error.jinja2", reason=reason, hint=hint)

    def welcome(self, *, title: str, description: str | None, question_count: int) -> str:
        return self.render(
            "welcome.jinja2",
            title=title,
            description=description,
            question_count=question_count,
            minutes=estimate_minutes(question_count),
        )
