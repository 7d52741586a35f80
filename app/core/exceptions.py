"""Custom exception classes for standardized error handling."""

from typing import Any


class BaseAPIException(Exception):
    """Base exception class for all API exceptions."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(BaseAPIException):
    """Exception for validation errors."""

    def __init__(
        self,
        message: str = "Validation failed",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=422,
            details=details,
        )


class NotFoundException(BaseAPIException):
    """Exception for resource not found errors."""

    def __init__(self, resource: str = "Resource", resource_id: str | None = None):
        message = f"{resource} not found"
        if resource_id:
            message += f" with ID: {resource_id}"

        super().__init__(message=message, error_code="NOT_FOUND", status_code=404)


class ConflictException(BaseAPIException):
    """Exception for resource conflict errors (e.g., a checkout already running)."""

    def __init__(
        self,
        message: str = "Resource already exists",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message, error_code="CONFLICT", status_code=409, details=details
        )


class UnauthorizedException(BaseAPIException):
    """Missing, invalid or revoked bearer credential."""

    def __init__(self, message: str = "Unauthorized access"):
        super().__init__(message=message, error_code="UNAUTHORIZED", status_code=401)


class AuthorizationException(BaseAPIException):
    """Exception for authorization errors."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(
            message=message, error_code="AUTHORIZATION_ERROR", status_code=403
        )


class PreconditionException(BaseAPIException):
    """A required piece of session state (e.g. the user profile) is absent."""

    def __init__(
        self,
        message: str = "User profile is required",
        error_code: str = "PROFILE_REQUIRED",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=428,
            details=details,
        )


class BusinessLogicException(BaseAPIException):
    """Exception for business logic errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "BUSINESS_LOGIC_ERROR",
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status_code,
            details=details,
        )


class ExternalServiceException(BaseAPIException):
    """Transport or upstream HTTP failure; the user may retry the action."""

    def __init__(
        self,
        service_name: str,
        message: str = "External service error",
        details: dict[str, Any] | None = None,
    ):
        details = dict(details or {})
        details.setdefault("service", service_name)
        details.setdefault("retryable", True)
        super().__init__(
            message=f"{service_name}: {message}",
            error_code="EXTERNAL_SERVICE_ERROR",
            status_code=502,
            details=details,
        )


class PaymentConfigurationException(BaseAPIException):
    """The payment backend did not return a usable order (id or amount)."""

    def __init__(
        self,
        message: str = "Unable to confirm payment amount with server",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            error_code="PAYMENT_CONFIGURATION_ERROR",
            status_code=502,
            details=details,
        )


class AmountMismatchException(BaseAPIException):
    """Server-confirmed order amount differs from the amount we computed."""

    def __init__(self, requested_paise: int, confirmed_paise: int):
        super().__init__(
            message=(
                "Payment amount mismatch. Server created order for "
                f"{confirmed_paise / 100:.2f} but the amount to pay is "
                f"{requested_paise / 100:.2f}"
            ),
            error_code="AMOUNT_MISMATCH",
            status_code=409,
            details={
                "requestedAmountPaise": requested_paise,
                "confirmedAmountPaise": confirmed_paise,
                "requestedAmount": f"{requested_paise / 100:.2f}",
                "confirmedAmount": f"{confirmed_paise / 100:.2f}",
            },
        )


class VerificationRejectedException(BaseAPIException):
    """Gateway callback was not confirmed as a successful, assignable payment."""

    def __init__(
        self,
        message: str = "Payment not eligible for assignment",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            error_code="PAYMENT_VERIFICATION_REJECTED",
            status_code=402,
            details=details,
        )


class AssignmentFailedException(BaseAPIException):
    """Order-side assignment failed; nothing was granted."""

    def __init__(
        self,
        message: str = "Order assignment failed",
        details: dict[str, Any] | None = None,
    ):
        details = dict(details or {})
        details.setdefault("orderAssigned", False)
        details.setdefault("subscriptionAssigned", False)
        super().__init__(
            message=message,
            error_code="ORDER_ASSIGNMENT_FAILED",
            status_code=502,
            details=details,
        )


class PartialAssignmentException(BaseAPIException):
    """Order assigned but subscription assignment failed; needs manual reconciliation."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        details = dict(details or {})
        details["orderAssigned"] = True
        details["subscriptionAssigned"] = False
        super().__init__(
            message=message,
            error_code="PARTIAL_ASSIGNMENT",
            status_code=502,
            details=details,
        )
