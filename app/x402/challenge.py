# app/x402/challenge.py
"""
Challenge issuance for the x402 payment gate.

Builds the PaymentRequirement advertised in a 402 response. Every field
except ``resource`` comes from Settings, so two challenges for the same URL
and configuration are identical.
"""
from starlette.responses import JSONResponse

from app.core.config import Settings
from app.x402.models import (
    ChallengeResponse,
    PaymentExtra,
    PaymentRequirement,
    RequirementTerms,
    X402_VERSION,
)


def create_payment_requirement(resource: str, settings: Settings) -> PaymentRequirement:
    """
    Create the PaymentRequirement for a protected resource.

    Args:
        resource: Absolute URL of the request being gated
        settings: Static gate configuration

    Returns:
        PaymentRequirement bound to the given resource
    """
    return PaymentRequirement(
        x402_version=X402_VERSION,
        scheme="exact",
        network=settings.X402_NETWORK,
        max_amount_required=settings.X402_PAYMENT_AMOUNT,
        resource=resource,
        description=settings.X402_RESOURCE_DESCRIPTION,
        mime_type="application/json",
        pay_to=settings.RECEIVER_ADDRESS,
        max_timeout_seconds=settings.X402_MAX_TIMEOUT_SECONDS,
        asset=settings.X402_ASSET_ADDRESS,
        extra=PaymentExtra(
            name=settings.X402_ASSET_NAME,
            version=settings.X402_ASSET_VERSION
        )
    )


def create_requirement_terms(settings: Settings) -> RequirementTerms:
    """Terms submitted to the facilitator, taken from the advertised requirement."""
    requirement = create_payment_requirement(resource="", settings=settings)
    return RequirementTerms.from_requirement(requirement)


def create_challenge(resource: str, settings: Settings) -> ChallengeResponse:
    """Wrap a single PaymentRequirement in a challenge envelope."""
    return ChallengeResponse(
        x402_version=X402_VERSION,
        accepts=[create_payment_requirement(resource, settings)],
        error="Payment required"
    )


def create_402_response(challenge: ChallengeResponse) -> JSONResponse:
    """
    Create an HTTP 402 Payment Required response.

    Args:
        challenge: The challenge envelope to send

    Returns:
        JSONResponse with 402 status and payment details
    """
    return JSONResponse(
        status_code=402,
        content=challenge.model_dump(by_alias=True)
    )
