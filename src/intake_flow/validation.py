"""Answer validation for intake questions.

Dispatches on ``question.validation.type``.  Every check runs against the
trimmed answer; ``required`` questions reject blank answers regardless of
type, while a blank answer to an optional question is always accepted.
Length bounds apply to ``text`` and ``custom`` questions only.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import urlsplit

from pydantic import BaseModel

from intake_db.models.enums import ValidationType

from intake_flow.constants import (
    MAX_PHONE_DIGITS,
    MIN_PHONE_DIGITS,
    SKIP_KEYWORD,
    URL_SENTINELS,
)
from intake_flow.models.question import Question

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# Digits with an optional leading "+", separated by spaces, dashes or parentheses
_PHONE_RE = re.compile(r"^\+?[\d\s\-()]+$")
# Finite decimal: 3, -2, 3.5, .5, 1e3 (no inf/nan, no words)
_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")

_LENGTH_BOUNDED = {ValidationType.TEXT, ValidationType.CUSTOM}


class ValidationResult(BaseModel):
    valid: bool
    reason: str | None = None


_OK = ValidationResult(valid=True)


def _fail(reason: str) -> ValidationResult:
    return ValidationResult(valid=False, reason=reason)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def normalize_answer(question: Question, raw: str) -> str:
    """Return the value that gets stored for ``raw``.

    Answers are trimmed.  For optional questions the skip keyword stands in
    for a blank answer, since most channels cannot deliver empty messages.
    """
    value = (raw or "").strip()
    if not question.required and value.lower() == SKIP_KEYWORD:
        return ""
    return value


def validate(question: Question, raw: str) -> ValidationResult:
    """Validate one answer against ``question``'s rule."""
    value = normalize_answer(question, raw)

    if not value:
        if question.required:
            return _fail("This question is required.")
        return _OK

    rule = question.validation
    vtype = rule.type

    if vtype == ValidationType.EMAIL:
        if not _EMAIL_RE.match(value):
            return _fail("Please enter a valid email address.")
    elif vtype == ValidationType.PHONE:
        if not _is_phone(value):
            return _fail("Please enter a valid phone number.")
    elif vtype == ValidationType.NUMBER:
        if not _NUMBER_RE.match(value):
            return _fail("Please enter a number.")
    elif vtype == ValidationType.URL:
        if not _is_url(value):
            return _fail('Please enter a valid link, or type "none".')
    elif vtype == ValidationType.CUSTOM:
        # Pattern compilability is enforced when the question set is saved
        if not re.search(rule.pattern or "", value):
            return _fail("Your answer is not in the expected format.")

    if vtype in _LENGTH_BOUNDED:
        if rule.min_length is not None and len(value) < rule.min_length:
            return _fail(f"Your answer must be at least {rule.min_length} characters long.")
        if rule.max_length is not None and len(value) > rule.max_length:
            return _fail(f"Your answer must be at most {rule.max_length} characters long.")

    return _OK


def compose_hint(question: Question) -> str:
    """Render the question's constraints as a one-line hint for prompts."""
    rule = question.validation
    parts: list[str] = []

    if rule.type == ValidationType.EMAIL:
        parts.append("Enter a valid email address (e.g. name@example.com)")
    elif rule.type == ValidationType.PHONE:
        parts.append(
            f"Enter a phone number with {MIN_PHONE_DIGITS}-{MAX_PHONE_DIGITS} digits "
            "(e.g. +1 555 123 4567)"
        )
    elif rule.type == ValidationType.NUMBER:
        parts.append("Enter a number (e.g. 3 or 3.5)")
    elif rule.type == ValidationType.URL:
        parts.append('Enter a link (e.g. https://example.com) or type "none"')
    elif rule.type == ValidationType.CUSTOM:
        parts.append("Answer in the requested format")
    else:
        parts.append("Enter your answer as text")

    if rule.type in _LENGTH_BOUNDED:
        lo, hi = rule.min_length, rule.max_length
        if lo is not None and hi is not None:
            parts.append(f"{lo}-{hi} characters")
        elif lo is not None:
            parts.append(f"at least {lo} characters")
        elif hi is not None:
            parts.append(f"at most {hi} characters")

    hint = ", ".join(parts) + "."
    if question.required:
        return f"Required. {hint}"
    return f'Optional. {hint} Reply "{SKIP_KEYWORD}" to leave it blank.'


# ---------------------------------------------------------------------------
# Type checks
# ---------------------------------------------------------------------------

def _is_phone(value: str) -> bool:
    if not _PHONE_RE.match(value):
        return False
    digits = sum(ch.isdigit() for ch in value)
    return MIN_PHONE_DIGITS <= digits <= MAX_PHONE_DIGITS


def _is_url(value: str) -> bool:
    if value.lower() in URL_SENTINELS:
        return True
    if any(ch.isspace() for ch in value):
        return False
    candidate = value if _SCHEME_RE.match(value) else f"http://{value}"
    try:
        parts = urlsplit(candidate)
        host = parts.hostname
    except ValueError:
        logger.debug("Unparseable URL answer: %r", value)
        return False
    if parts.scheme.lower() not in ("http", "https") or not host:
        return False
    labels = host.split(".")
    return len(labels) >= 2 and all(labels)
