# app/x402/facilitator.py
"""
Payment verification against an x402 facilitator.

The facilitator is called once per request with no retries. The HTTP
timeout is the requirement's ``maxTimeoutSeconds``, so a hung facilitator
cannot hold a request open past the advertised deadline.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import requests
from pydantic import ValidationError
from requests.exceptions import RequestException

from app.x402.models import RequirementTerms, VerificationResult, VerifyRequest, X402_VERSION

logger = logging.getLogger(__name__)

DEFAULT_INVALID_REASON = "Invalid payment"


class VerificationStatus(Enum):
    """Outcome of one verification round trip."""
    VERIFIED = "verified"
    REJECTED = "rejected"
    UPSTREAM_ERROR = "upstream_error"
    FAILED = "failed"


@dataclass(frozen=True)
class VerificationOutcome:
    status: VerificationStatus
    reason: Optional[str] = None


class FacilitatorClient:
    """Thin HTTP client for the facilitator's /verify endpoint."""

    def __init__(self, base_url: str, timeout: float = 30):
        self.base_url = str(base_url).rstrip("/")
        self.timeout = timeout

    @property
    def verify_url(self) -> str:
        return f"{self.base_url}/verify"

    def verify(self, payment_header: str, terms: RequirementTerms) -> Optional[VerificationResult]:
        """
        Submit a proof token to the facilitator.

        Args:
            payment_header: X-PAYMENT header value, forwarded verbatim
            terms: The requirement terms the proof must satisfy

        Returns:
            The facilitator's verdict, or None if it answered with an empty body

        Raises:
            RequestException: On network errors, timeouts, or non-2xx responses
            ValueError: If the body is not valid JSON or not a valid verdict
        """
        request_body = VerifyRequest(
            x402_version=X402_VERSION,
            payment_header=payment_header,
            payment_requirements=terms
        )

        response = requests.post(
            self.verify_url,
            json=request_body.model_dump(by_alias=True),
            timeout=self.timeout
        )
        response.raise_for_status()

        if not response.content or not response.content.strip():
            return None

        data = response.json()
        # null, false, "" and 0 carry no verdict
        if data is None or data is False or data == "" or data == 0:
            return None
        if not isinstance(data, dict):
            logger.warning(f"Unexpected data structure from facilitator: {type(data)}")
            return VerificationResult(is_valid=False)

        return VerificationResult.model_validate(data)


def verify_payment(
    client: FacilitatorClient,
    payment_header: str,
    terms: RequirementTerms
) -> VerificationOutcome:
    """
    Verify a proof token and classify the result.

    Blocking; the route guard runs it in a worker thread.

    Returns:
        VerificationOutcome with one of the VerificationStatus values
    """
    try:
        result = client.verify(payment_header, terms)
    except RequestException as e:
        logger.error(f"Facilitator request failed ({client.verify_url}): {e}")
        return VerificationOutcome(VerificationStatus.FAILED)
    except (ValueError, ValidationError) as e:
        logger.error(f"Invalid response from facilitator: {e}")
        return VerificationOutcome(VerificationStatus.FAILED)

    if result is None:
        logger.error("Facilitator returned an empty response")
        return VerificationOutcome(VerificationStatus.UPSTREAM_ERROR)

    if not result.is_valid:
        return VerificationOutcome(
            VerificationStatus.REJECTED,
            reason=result.invalid_reason or DEFAULT_INVALID_REASON
        )

    return VerificationOutcome(VerificationStatus.VERIFIED)
