"""Custom application exceptions.

Every exception carries a stable ``kind`` that is rendered to clients together
with the message, and the HTTP status code it maps to.
"""


class AppException(Exception):
    """Base application exception."""

    kind = "InternalServerError"

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationException(AppException):
    """Missing or malformed input that the client can correct."""

    kind = "ValidationError"

    def __init__(self, message: str = "Validation error"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class InvalidInputException(ValidationException):
    """A value handed to a pure helper is outside its domain."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message)


class NotFoundException(AppException):
    """Resource not found exception."""

    kind = "NotFoundError"

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class ConflictException(AppException):
    """Slot unavailable or state changed underneath the request."""

    kind = "ConflictError"

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class DependencyException(AppException):
    """An external collaborator (store, payments, queue) failed or timed out."""

    kind = "DependencyError"

    def __init__(self, dependency: str, message: str = "Dependency unavailable"):
        """Initialize with 503 status code."""
        self.dependency = dependency
        super().__init__(f"{dependency}: {message}", status_code=503)


class SignatureException(AppException):
    """Webhook payload could not be verified."""

    kind = "SignatureError"

    def __init__(self, message: str = "Invalid webhook signature"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)
