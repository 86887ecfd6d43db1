"""Exception hierarchy for console operations.

Each class carries the HTTP status the web layer answers with.
"""


class ConsoleError(Exception):
    """Base class for errors reported back to the operator."""

    status_code = 500


class ValidationError(ConsoleError):
    """Required-field or date-rule violation; the submission is rejected whole."""

    status_code = 400


class PermissionDenied(ConsoleError):
    """Role-gated action attempted by a role that may not perform it."""

    status_code = 403


class AuthenticationError(ConsoleError):
    """Bad credentials or no session."""

    status_code = 401


class ReferencedRecordError(ConsoleError):
    """Customer/equipment is still referenced by maintenance records."""

    status_code = 409


class StoreError(ConsoleError):
    """A record store operation failed."""

    status_code = 500


class RecordNotFound(StoreError):
    status_code = 404


class SessionExpired(StoreError):
    """The session lapsed; callers must log out and clear state."""

    status_code = 401
