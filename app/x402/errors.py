# app/x402/errors.py
"""
Error taxonomy for the x402 payment gate.

Every error carries the HTTP status it resolves to. The route guard turns
them into a single JSON response with an ``error`` field.
"""
from typing import Optional

from starlette.responses import JSONResponse


class GateError(Exception):
    """Base class for payment gate errors."""

    status_code = 500
    default_message = "Internal server error"
    kind = "gate_error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ClientInputError(GateError):
    """Request is structurally empty."""

    status_code = 400
    default_message = "Invalid request"
    kind = "client_input"


class PaymentRequiredError(GateError):
    """No X-PAYMENT header was supplied."""

    status_code = 402
    default_message = "Payment required"
    kind = "payment_required"


class InvalidPaymentError(GateError):
    """Facilitator explicitly rejected the proof."""

    status_code = 402
    default_message = "Invalid payment"
    kind = "invalid_payment"


class VerificationFailureError(GateError):
    """The facilitator round trip failed.

    Rendered exactly like an invalid payment; only logs and the audit
    trail tell the two apart.
    """

    status_code = 402
    default_message = "Payment verification failed"
    kind = "verification_failed"


class UpstreamIntegrityError(GateError):
    """Facilitator answered without a usable body."""

    status_code = 500
    default_message = "Payment verification service returned empty response"
    kind = "upstream_integrity"


class ContentNotFoundError(GateError):
    """Protected content resolved empty after a successful payment."""

    status_code = 404
    default_message = "Protected content is empty or not found"
    kind = "content_not_found"


class ContentProviderError(GateError):
    """Content provider raised while fetching protected content."""

    status_code = 500
    default_message = "Failed to load protected content"
    kind = "content_provider"


def error_response(error: GateError) -> JSONResponse:
    """Render a gate error as its terminal JSON response."""
    return JSONResponse(
        status_code=error.status_code,
        content={"error": error.message}
    )
