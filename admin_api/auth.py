import hmac
import logging
from typing import Optional

from fastapi import Depends, Header, Request

from .config import Settings, get_settings
from .errors import Unauthorized

logger = logging.getLogger(__name__)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer "):]
    return None


def credential_matches(candidate: Optional[str], secret: str) -> bool:
    # exact, case-sensitive; no trimming
    if not candidate or not secret:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), secret.encode("utf-8"))


async def require_admin_key(
    request: Request,
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    request_id = getattr(request.state, "request_id", "-")
    if not settings.admin_api_key:
        logger.error("[%s] ADMIN_API_KEY is not configured; rejecting request", request_id)

    candidate = x_api_key if x_api_key is not None else _bearer_token(authorization)
    if not credential_matches(candidate, settings.admin_api_key):
        logger.info("[%s] Authentication failed: invalid API key", request_id)
        raise Unauthorized("Unauthorized - invalid API key")
    logger.info("[%s] Authenticated successfully", request_id)
