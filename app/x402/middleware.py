# app/x402/middleware.py
"""
FastAPI middleware for x402 payment gating.

This module provides HTTP middleware that:
1. Intercepts requests to protected endpoints
2. Rejects structurally empty requests with 400
3. Returns 402 Payment Required when no X-PAYMENT header is present
4. Verifies the X-PAYMENT header via the facilitator
5. Hands verified requests to the route handler

The decision logic lives in PaymentGate, which returns an explicit
GateDecision; the middleware only turns that decision into a response.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import Settings, get_settings
from app.x402 import audit
from app.x402.challenge import create_402_response, create_challenge, create_requirement_terms
from app.x402.errors import (
    GateError,
    InvalidPaymentError,
    UpstreamIntegrityError,
    VerificationFailureError,
    error_response,
)
from app.x402.facilitator import FacilitatorClient, VerificationStatus, verify_payment
from app.x402.models import ChallengeResponse, RequestShape
from app.x402.validator import build_request_shape, validate_request_shape

logger = logging.getLogger(__name__)

X_PAYMENT_HEADER = "X-PAYMENT"

# These endpoints require x402 payment when X402_ENABLED=true
PROTECTED_ENDPOINTS = [
    ("GET", "/api/protected-endpoint"),
]


def is_protected_endpoint(method: str, path: str) -> bool:
    """Check if the request matches a protected endpoint."""
    for protected_method, protected_path in PROTECTED_ENDPOINTS:
        if method == protected_method and path.rstrip("/") == protected_path.rstrip("/"):
            return True
    return False


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP in the chain
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"


class GateState(Enum):
    """States of the payment gate for a single request."""
    AWAITING_REQUEST = "awaiting_request"
    AWAITING_PROOF = "awaiting_proof"
    CHALLENGE_ISSUED = "challenge_issued"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    REJECTED = "rejected"
    UPSTREAM_ERROR = "upstream_error"


@dataclass(frozen=True)
class GateDecision:
    """Where a request ended up in the gate, and what to answer with."""
    state: GateState
    error: Optional[GateError] = None
    challenge: Optional[ChallengeResponse] = None


class PaymentGate:
    """
    Payment gate state machine.

    Holds only static configuration, so one instance serves every request.
    """

    def __init__(self, settings: Settings, facilitator_client: FacilitatorClient):
        self.settings = settings
        self.facilitator_client = facilitator_client

    async def evaluate(self, shape: RequestShape) -> GateDecision:
        """
        Run one request through the gate.

        Flow:
        1. AWAITING_REQUEST: reject malformed requests (400)
        2. AWAITING_PROOF: no X-PAYMENT header -> CHALLENGE_ISSUED (402)
        3. VERIFYING: facilitator round trip
        4. VERIFIED, REJECTED or UPSTREAM_ERROR depending on the verdict
        """
        client_error = validate_request_shape(shape)
        if client_error is not None:
            return GateDecision(GateState.AWAITING_REQUEST, error=client_error)

        payment_header = self._get_payment_header(shape)
        if not payment_header:
            challenge = create_challenge(resource=shape.url, settings=self.settings)
            return GateDecision(GateState.CHALLENGE_ISSUED, challenge=challenge)

        terms = create_requirement_terms(self.settings)
        outcome = await run_in_threadpool(
            verify_payment, self.facilitator_client, payment_header, terms
        )

        if outcome.status is VerificationStatus.VERIFIED:
            return GateDecision(GateState.VERIFIED)

        if outcome.status is VerificationStatus.REJECTED:
            return GateDecision(GateState.REJECTED, error=InvalidPaymentError(outcome.reason))

        if outcome.status is VerificationStatus.UPSTREAM_ERROR:
            return GateDecision(GateState.UPSTREAM_ERROR, error=UpstreamIntegrityError())

        return GateDecision(GateState.UPSTREAM_ERROR, error=VerificationFailureError())

    @staticmethod
    def _get_payment_header(shape: RequestShape) -> Optional[str]:
        # Starlette lower-cases header names
        return shape.headers.get(X_PAYMENT_HEADER.lower())


class X402Middleware(BaseHTTPMiddleware):
    """
    x402 payment gate middleware for FastAPI.

    When X402_ENABLED=true, this middleware:
    - Checks if the endpoint requires payment
    - Returns HTTP 400 for structurally empty requests
    - Returns HTTP 402 with payment requirements if no X-PAYMENT header
    - Verifies the X-PAYMENT header with the configured facilitator

    When X402_ENABLED=false, all requests pass through unchanged.
    """

    def __init__(
        self,
        app,
        settings: Optional[Settings] = None,
        facilitator_client: Optional[FacilitatorClient] = None
    ):
        super().__init__(app)
        self.settings = settings or get_settings()
        if facilitator_client is None:
            facilitator_client = FacilitatorClient(
                base_url=str(self.settings.FACILITATOR_URL),
                timeout=self.settings.X402_MAX_TIMEOUT_SECONDS
            )
        self.gate = PaymentGate(self.settings, facilitator_client)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response]
    ) -> Response:
        if not self.settings.X402_ENABLED:
            return await call_next(request)

        if not is_protected_endpoint(request.method, request.url.path):
            return await call_next(request)

        client_ip = get_client_ip(request)
        audit_path = self.settings.X402_AUDIT_LOG_PATH
        request_id = audit.generate_request_id()
        request.state.request_id = request_id

        logger.info(f"x402: Processing protected request from {client_ip}: {request.method} {request.url.path}")
        await audit.record_event_async(
            audit_path, audit.AuditEventType.REQUEST_RECEIVED, request_id, client_ip,
            method=request.method, path=request.url.path
        )

        shape = await build_request_shape(request)
        decision = await self.gate.evaluate(shape)

        if decision.state is GateState.VERIFIED:
            logger.info(f"x402: Payment verified for {client_ip}")
            await audit.record_event_async(
                audit_path, audit.AuditEventType.PAYMENT_VERIFIED, request_id, client_ip
            )
            return await call_next(request)

        if decision.state is GateState.CHALLENGE_ISSUED:
            requirement = decision.challenge.accepts[0]
            logger.info(f"x402: No X-PAYMENT header, returning 402 for {requirement.max_amount_required} on {requirement.network}")
            await audit.record_event_async(
                audit_path,
                audit.AuditEventType.PAYMENT_REQUIRED_SENT,
                request_id,
                client_ip,
                amount=requirement.max_amount_required,
                network=requirement.network,
                pay_to=requirement.pay_to,
                resource=requirement.resource
            )
            return create_402_response(decision.challenge)

        error = decision.error
        logger.warning(f"x402: {decision.state.value} ({error.kind}) for {client_ip}: {error.message}")
        await audit.record_event_async(
            audit_path,
            _audit_event_for(error),
            request_id,
            client_ip,
            reason=error.message,
            status_code=error.status_code
        )
        return error_response(error)


def _audit_event_for(error: GateError) -> audit.AuditEventType:
    if isinstance(error, InvalidPaymentError):
        return audit.AuditEventType.PAYMENT_REJECTED
    if isinstance(error, VerificationFailureError):
        return audit.AuditEventType.VERIFICATION_FAILED
    if isinstance(error, UpstreamIntegrityError):
        return audit.AuditEventType.UPSTREAM_ERROR
    return audit.AuditEventType.CLIENT_INPUT_REJECTED
