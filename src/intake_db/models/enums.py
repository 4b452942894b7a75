"""Database-level enumerations for intake sessions and question sets."""

import enum


class ApplicationStatus(str, enum.Enum):
    """Per-subject status of a question set, derived from stored sessions.

    Transitions:
        not_started -> in_progress  (subject selects the question set)
        in_progress -> completed    (final question answered)
        any         -> not_started  (subject resets, session row deleted)
    """

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ValidationType(str, enum.Enum):
    """Answer validation kinds a question can declare."""

    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    URL = "url"
    CUSTOM = "custom"


class ActorRole(str, enum.Enum):
    """Roles recognised by administrative registry operations."""

    ADMIN = "admin"
    HR = "hr"
