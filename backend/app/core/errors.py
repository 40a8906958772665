"""Error taxonomy shared by the draft pipeline, ingestion and API routes.

Every error carries a stable ``code`` and the HTTP status it maps to, so
routes can surface ``{"error", "code", "details"}`` without re-deciding
status codes at each call site.
"""


class HostOpsError(Exception):
    """Base class for user-visible failures."""

    code = "internal_error"
    status_code = 500

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationError(HostOpsError):
    """Bad or missing input. Not retried."""

    code = "validation_error"
    status_code = 400


class NotFoundError(HostOpsError):
    """Referenced entity does not exist. Not retried."""

    code = "not_found"
    status_code = 404


class PersistenceError(HostOpsError):
    """A write could not complete; nothing was committed."""

    code = "persistence_error"
    status_code = 500


class DeadlineExceededError(HostOpsError):
    """The caller's request budget ran out before the draft was persisted."""

    code = "deadline_exceeded"
    status_code = 504


class RetrievalDegradation(HostOpsError):
    """A knowledge scope lookup failed.

    Raised and caught inside the retriever only; the failing scope contributes
    no snippets and the pipeline continues.
    """

    code = "retrieval_degraded"
    status_code = 500

    def __init__(self, scope: str, message: str, details: str | None = None):
        super().__init__(message, details)
        self.scope = scope
