from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested voucher (or rolling voucher slot) is not found."""

    def __init__(self, message: str = "Voucher not found") -> None:
        super().__init__(message)


class PolicyViolationError(UserError):
    """Raised when a request is refused by voucher policy, e.g. an IP already rotated its rolling voucher."""


class ValidationError(UserError):
    """Raised when user input fails validation."""


class ControllerError(Exception):
    """Base class for failures talking to the network controller."""


class AuthError(ControllerError):
    """Raised when the controller rejects our credentials or session."""

    def __init__(self, message: str = "Controller authentication failed") -> None:
        super().__init__(message)


class TransportError(ControllerError):
    """Raised when the controller could not be reached (timeout, connection reset, ...)."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class RequestError(ControllerError):
    """Raised when the controller answers with a non-success status."""

    def __init__(self, status: int, message: str | None = None) -> None:
        super().__init__(message or f"Controller request failed with status {status}")
        self.status = status


class ProtocolError(ControllerError):
    """Raised when a controller response does not have the expected shape."""
