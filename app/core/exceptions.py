"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class InvalidTransitionException(ConflictException):
    """Appointment status change not allowed from the current status."""

    def __init__(self, current_status: str, action: str):
        """Initialize with the rejected action and the status it was attempted from."""
        self.current_status = current_status
        self.action = action
        super().__init__(f"Cannot {action} an appointment that is {current_status}")


class CapacityExhaustedException(ConflictException):
    """No capacity left at a location for the requested day."""

    def __init__(self, message: str = "No available slots for the selected date"):
        """Initialize with 409 status code."""
        super().__init__(message)


class StaleAppointmentException(ConflictException):
    """Appointment was modified by another request."""

    def __init__(self, message: str = "Appointment was modified concurrently, please retry"):
        """Initialize with 409 status code."""
        super().__init__(message)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class PaymentVerificationException(AppException):
    """Payment signature did not match the gateway's HMAC."""

    def __init__(self, message: str = "Payment verification failed"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class PaymentGatewayException(AppException):
    """Payment gateway unreachable, timed out, or rejected the call."""

    def __init__(self, message: str = "Payment gateway unavailable"):
        """Initialize with 502 status code."""
        super().__init__(message, status_code=502)
