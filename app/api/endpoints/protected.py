# app/api/endpoints/protected.py
from fastapi import APIRouter, Depends, Request
import logging

from app.services.content import get_content_provider
from app.api.models.protected import ProtectedResourceResponse
from app.x402 import audit
from app.x402.errors import ContentNotFoundError, ContentProviderError
from app.x402.middleware import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/protected-endpoint", response_model=ProtectedResourceResponse)
async def get_protected_resource(
    request: Request,
    content_provider=Depends(get_content_provider)
) -> ProtectedResourceResponse:
    """
    Return the protected content. Only reachable once X402Middleware has verified payment.

    Returns:
        ProtectedResourceResponse: Success message and the protected content

    Raises:
        ContentProviderError: 500 if the content provider fails
        ContentNotFoundError: 404 if the content is empty
    """
    try:
        content = content_provider.get_content()
    except Exception as e:
        logger.error(f"Failed to load protected content: {e}")
        raise ContentProviderError()

    if not content or not content.strip():
        settings = request.app.state.settings
        await audit.record_event_async(
            settings.X402_AUDIT_LOG_PATH,
            audit.AuditEventType.CONTENT_NOT_FOUND,
            getattr(request.state, "request_id", None) or audit.generate_request_id(),
            get_client_ip(request),
            reason=ContentNotFoundError.default_message,
            status_code=ContentNotFoundError.status_code
        )
        logger.warning("Protected content is empty")
        raise ContentNotFoundError()

    logger.info("Protected content served")
    return ProtectedResourceResponse(content=content)
