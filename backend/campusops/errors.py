"""Domain errors raised by the core rules and rendered as ``{"error": ...}``."""

PERMISSION_DENIED_MESSAGE = "You don't have permission to perform this action."


class CampusError(Exception):
    """Base domain error with an HTTP status and a user-safe message."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailed(CampusError):
    """Raised when input is missing or malformed."""

    status_code = 400


class InvalidTransition(CampusError):
    """Raised when a lifecycle action is attempted from the wrong state."""

    status_code = 400


class ResourceInactive(CampusError):
    """Raised when a booking targets a deactivated resource."""

    status_code = 400

    def __init__(self) -> None:
        super().__init__("Resource is inactive")


class PermissionDenied(CampusError):
    """Raised when the caller fails an authorization check.

    The message is always the same so a denial does not reveal whether the
    target entity exists.
    """

    status_code = 403

    def __init__(self) -> None:
        super().__init__(PERMISSION_DENIED_MESSAGE)


class NotFound(CampusError):
    status_code = 404

    def __init__(self, what: str) -> None:
        super().__init__(f"{what} not found")


class Conflict(CampusError):
    status_code = 409
