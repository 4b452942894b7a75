"""Intake constants shared across the SDK.

These values are referenced by the validation engine, attachment handler and
listing helpers.  Several can be overridden via environment variables so
deployments can adjust limits without code changes.
"""

import os

# Largest accepted attachment, in bytes (20 MiB).
# Overridable via MAX_ATTACHMENT_BYTES env var.
MAX_ATTACHMENT_BYTES = int(os.getenv("MAX_ATTACHMENT_BYTES", str(20 * 1024 * 1024)))

# An upload is accepted when either its extension or its MIME type is listed.
ALLOWED_EXTENSIONS: frozenset[str] = frozenset({".pdf", ".doc", ".docx"})
ALLOWED_MIME_TYPES: frozenset[str] = frozenset({
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
})

# Effective digit bounds for ``phone`` answers.
MIN_PHONE_DIGITS = int(os.getenv("MIN_PHONE_DIGITS", "7"))
MAX_PHONE_DIGITS = 15

# Case-insensitive answers that satisfy a ``url`` question without a link.
URL_SENTINELS: frozenset[str] = frozenset({"none", "n/a", "not applicable"})

# How many answers ``status`` shows for a completed application, and how
# long each may be before it is truncated with "...".
STATUS_RESPONSE_LIMIT = int(os.getenv("STATUS_RESPONSE_LIMIT", "8"))
STATUS_VALUE_MAX_CHARS = 50

# Pacing used for the estimate in the welcome message ("about N minutes").
QUESTIONS_PER_MINUTE = 2

# Title given to the bundled question set seeded at startup.
DEFAULT_SET_TITLE = "Standard Hiring Questions"

# Default weighting handed to the resume scorer (percent, sums to 100).
DEFAULT_SCORING_WEIGHTS: dict[str, int] = {
    "skills": 30,
    "experience": 25,
    "education": 20,
    "keywords": 25,
}

# Reply that leaves an optional question blank.
SKIP_KEYWORD = "skip"
