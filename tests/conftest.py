# tests/conftest.py
import json
from typing import Optional
from unittest.mock import MagicMock

import pytest

from app.core.config import Settings

RECEIVER = "0x1234567890abcdef1234567890abcdef12345678"
FACILITATOR = "https://facilitator.test"


@pytest.fixture
def settings() -> Settings:
    """Gate settings independent of the process environment."""
    return Settings(
        RECEIVER_ADDRESS=RECEIVER,
        FACILITATOR_URL=FACILITATOR,
        PROTECTED_CONTENT="Secret report",
        X402_ENABLED=True,
        X402_AUDIT_LOG_PATH=None,
    )


def make_facilitator_response(body, raw: Optional[bytes] = None) -> MagicMock:
    """Build a fake requests.Response carrying the given JSON body."""
    response = MagicMock()
    response.raise_for_status.return_value = None
    if raw is not None:
        response.content = raw
    elif body is None:
        response.content = b""
    else:
        response.content = json.dumps(body).encode()
    response.json.return_value = body
    return response


@pytest.fixture
def facilitator_response():
    """Factory for fake facilitator responses."""
    return make_facilitator_response
