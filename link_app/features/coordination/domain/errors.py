"""
Coordination error kinds.

Callers map these to their own transport: HTTP routes to status codes, the
realtime hub to ``error``/``auth_error`` events. ``OracleUnavailableError``
never leaves the matching engine.
"""


class CoordinationError(Exception):
    """Base exception for coordination failures."""

    code = "coordination_error"

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class ValidationError(CoordinationError):
    """Malformed input: bad date, unknown time slot, missing field."""

    code = "validation_error"


class ForbiddenError(CoordinationError):
    """Membership or role check failed."""

    code = "forbidden"


class NotFoundError(CoordinationError):
    """Referenced user, group or event does not exist."""

    code = "not_found"

    def __init__(self, resource: str, resource_id: object):
        super().__init__(f"{resource} {resource_id} not found")
        self.resource = resource
        self.resource_id = resource_id


class AuthError(CoordinationError):
    """Realtime authentication with an unknown user id."""

    code = "auth_error"


class OracleUnavailableError(CoordinationError):
    """External ranking oracle failed, timed out or is not configured."""

    code = "oracle_unavailable"

    def __init__(self, message: str, api_error: str | None = None):
        super().__init__(message, recoverable=True)
        self.api_error = api_error
