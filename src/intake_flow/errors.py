"""Error taxonomy for the intake flow.

Every error the SDK raises on purpose derives from :class:`IntakeError`.
Each subclass carries a ``user_message`` that is safe to show to a subject
and an ``http_status`` used by the server's exception handlers; the
exception's ``str()`` holds the detail meant for logs.
"""


class IntakeError(Exception):
    """Base class for expected intake failures."""

    http_status = 400
    user_message = "❌ Something went wrong with your request. Please try again."

    def __init__(self, detail: str = "", *, user_message: str | None = None) -> None:
        super().__init__(detail or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class ValidationError(IntakeError):
    """Input failed validation.  ``hint`` describes what is expected."""

    http_status = 422
    user_message = "❌ That input is not valid."

    def __init__(
        self,
        detail: str = "",
        *,
        hint: str | None = None,
        user_message: str | None = None,
    ) -> None:
        super().__init__(detail, user_message=user_message or detail or None)
        self.hint = hint


class NotFoundError(IntakeError):
    http_status = 404
    user_message = "❌ That item could not be found. Use /jobs to see open positions."


class StorageError(IntakeError):
    """Saving, reading or deleting an attachment failed."""

    http_status = 503
    user_message = "❌ We could not store your file. Please try uploading it again."


class DownstreamServiceError(IntakeError):
    """A screening collaborator (extraction, scoring, notification) failed."""

    http_status = 502
    user_message = (
        "⚠️ Your application was saved, but automatic screening is delayed. "
        "The hiring team will still review it."
    )


class ConfigurationError(IntakeError):
    """No usable question set is configured."""

    http_status = 503
    user_message = (
        "❌ No positions are available right now. Please contact an administrator."
    )


class PermissionDeniedError(IntakeError):
    http_status = 403
    user_message = "❌ You are not allowed to perform this action."


class QuestionSetInUseError(IntakeError):
    """A question set cannot be edited or deleted in its current state."""

    http_status = 409
    user_message = "❌ This question set is in use and cannot be changed."


class StaleSessionError(IntakeError):
    """Another request advanced the session first (lost compare-and-set)."""

    http_status = 409
    user_message = "ℹ️ Your previous answer was already recorded."
