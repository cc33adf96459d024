"""
Order lifecycle errors.

Every error is an HTTPException so services can raise them directly and
FastAPI turns them into responses. The class name is sent back to the
client in the "error" field so the frontend can pick a message per case.
"""

from fastapi import HTTPException, status


class FreshCartError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed"

    def __init__(self, detail: str | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class ValidationError(FreshCartError):
    """Malformed or inconsistent request (missing fields, price mismatch)."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Invalid order data"


class NotFoundError(FreshCartError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Order not found"


class PermissionDeniedError(FreshCartError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not allowed to act on this resource"


class StateConflictError(FreshCartError):
    """Transition is not legal from the order's current state."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Order is not in a state that allows this action"


class DeadlinePassedError(FreshCartError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Approval deadline has passed"


class CancellationWindowExpiredError(FreshCartError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Order cannot be cancelled. Cancellation window has expired (6 minutes)."


class OTPMismatchError(FreshCartError):
    default_detail = "Invalid OTP"


class PaymentVerificationError(FreshCartError):
    default_detail = "Payment verification failed"


class PaymentGatewayError(FreshCartError):
    """The gateway could not be reached or refused the request. Safe to retry."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Payment gateway unavailable"
