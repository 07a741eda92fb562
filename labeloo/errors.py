"""Error taxonomy shared by services and the HTTP layer.

Every error carries a stable ``kind`` string and an HTTP status code.
The application exception handler renders them as
``{"error": kind, "detail": message}``.
"""

from __future__ import annotations


class LabelooError(Exception):
    """Base class for all domain errors."""

    kind: str = "internal"
    status_code: int = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(LabelooError):
    """A project, task, annotation, or file does not exist."""

    kind = "not_found"
    status_code = 404


class ValidationError(LabelooError):
    """A required parameter is missing or malformed."""

    kind = "validation"
    status_code = 400


class InvalidTransitionError(LabelooError):
    """A lifecycle change would break the status/assignee invariant."""

    kind = "conflict"
    status_code = 409


class ExhaustedInputError(LabelooError):
    """There is nothing to export for the requested project."""

    kind = "exhausted_input"
    status_code = 422


class ExternalToolError(LabelooError):
    """An external process (frame extraction) failed."""

    kind = "external_tool"
    status_code = 502


class PermissionDeniedError(LabelooError):
    """The authorization gate refused the caller."""

    kind = "forbidden"
    status_code = 403
