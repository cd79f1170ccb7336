# app/x402/validator.py
"""
Request-shape validation for the payment gate.

Structurally empty requests are rejected with a 400 before any payment
logic runs. The checks never look at the X-PAYMENT header.
"""
import json
from typing import Optional

from fastapi import Request

from app.x402.errors import ClientInputError
from app.x402.models import RequestShape


async def build_request_shape(request: Request) -> RequestShape:
    """Snapshot the parts of a Starlette request the gate inspects."""
    body = b""
    if request.method not in ("GET", "HEAD"):
        body = await request.body()

    return RequestShape(
        method=request.method.upper(),
        url=str(request.url),
        headers=dict(request.headers),
        query_params=dict(request.query_params),
        body=body
    )


def is_empty_body(body: bytes) -> bool:
    """
    Check whether a request body carries no data.

    Whitespace-only bodies and empty JSON containers ("{}", "[]") count as empty.
    """
    if not body or not body.strip():
        return True

    try:
        parsed = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        # Opaque payloads are not inspected further
        return False

    return isinstance(parsed, (dict, list)) and len(parsed) == 0


def validate_request_shape(shape: RequestShape) -> Optional[ClientInputError]:
    """
    Check that a request is well formed before payment handling.

    Args:
        shape: The request snapshot

    Returns:
        None if the request may proceed, otherwise the ClientInputError
        describing the first failed check
    """
    if not shape.headers:
        return ClientInputError("Request headers cannot be empty")

    if not shape.url or not shape.url.strip():
        return ClientInputError("Request URL cannot be empty")

    if shape.method == "GET" and not shape.query_params:
        return ClientInputError("Request query parameters cannot be empty")

    if shape.method == "POST" and is_empty_body(shape.body):
        return ClientInputError("Request body cannot be empty")

    return None
