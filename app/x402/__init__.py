# app/x402/__init__.py
"""
x402 Payment Protocol Integration Module.

This module gates protected endpoints behind the x402 pay-per-request
protocol: requests without an X-PAYMENT header receive a 402 challenge,
and requests with one are verified against an external facilitator.

Key components:
- validator: Request-shape checks that run before any payment logic
- challenge: PaymentRequirement and 402 challenge construction
- facilitator: Facilitator client and verification outcomes
- middleware: FastAPI middleware and the PaymentGate state machine
- audit: Gate decision audit logging
- errors: Error taxonomy mapped to HTTP responses

Configuration is loaded from environment variables via app.core.config.
"""

__version__ = "0.1.0"
