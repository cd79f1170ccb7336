# app/x402/models.py
"""
Pydantic models for the x402 payment gate.

Field names are snake_case in Python and camelCase on the wire, so every
model is dumped with ``by_alias=True`` before it leaves the process.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

X402_VERSION = 1


class PaymentExtra(BaseModel):
    """EIP-712 domain hints for the payment asset."""
    model_config = ConfigDict(frozen=True)

    name: str
    version: str


class PaymentRequirement(BaseModel):
    """Payment terms a client must satisfy to access one resource."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    x402_version: int = Field(default=X402_VERSION, alias="x402Version")
    scheme: str = Field(default="exact", description="Payment scheme, only 'exact' is issued")
    network: str = Field(..., description="Chain identifier, e.g. eip155:1")
    max_amount_required: str = Field(
        ...,
        alias="maxAmountRequired",
        description="Amount in the asset's smallest unit, as a decimal string",
        examples=["1000000000"]
    )
    resource: str = Field(..., description="Absolute URL of the protected resource")
    description: str
    mime_type: str = Field(default="application/json", alias="mimeType")
    pay_to: str = Field(..., alias="payTo", description="Receiver address")
    max_timeout_seconds: int = Field(..., alias="maxTimeoutSeconds")
    asset: str = Field(..., description="Token contract address")
    extra: PaymentExtra


class ChallengeResponse(BaseModel):
    """Body of a 402 challenge."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    x402_version: int = Field(default=X402_VERSION, alias="x402Version")
    accepts: List[PaymentRequirement]
    error: str = "Payment required"


class RequirementTerms(BaseModel):
    """The subset of a PaymentRequirement the facilitator verifies against."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    scheme: str
    network: str
    max_amount_required: str = Field(..., alias="maxAmountRequired")
    asset: str
    pay_to: str = Field(..., alias="payTo")

    @classmethod
    def from_requirement(cls, requirement: PaymentRequirement) -> "RequirementTerms":
        return cls(
            scheme=requirement.scheme,
            network=requirement.network,
            max_amount_required=requirement.max_amount_required,
            asset=requirement.asset,
            pay_to=requirement.pay_to,
        )


class VerifyRequest(BaseModel):
    """Request body for the facilitator's /verify endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    x402_version: int = Field(default=X402_VERSION, alias="x402Version")
    payment_header: str = Field(..., alias="paymentHeader")
    payment_requirements: RequirementTerms = Field(..., alias="paymentRequirements")


class VerificationResult(BaseModel):
    """Facilitator verdict for one proof token."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    is_valid: bool = Field(default=False, alias="isValid")
    invalid_reason: Optional[str] = Field(default=None, alias="invalidReason")

    @field_validator("invalid_reason", mode="before")
    @classmethod
    def coerce_reason(cls, value):
        # Only a rejection reads the reason; never fail a verdict over it
        if value is None or isinstance(value, str):
            return value
        return str(value) if value else None


@dataclass(frozen=True)
class RequestShape:
    """Typed snapshot of an inbound request, built once at the boundary."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
