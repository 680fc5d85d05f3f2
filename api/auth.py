"""
API authentication for the client ranking service.

Single shared bearer token taken from WEALTH_RM_API_TOKEN. Without that
env var, auth is disabled (development mode) and a warning is logged.

Token extraction order:
1. Authorization: Bearer <token> header
2. X-API-Token header

Usage:
    from api.auth import require_auth

    router = APIRouter(dependencies=[Depends(require_auth)])
"""

import logging
import os
import secrets

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from wealth_rm import config

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI docs
security = HTTPBearer(auto_error=False)


def _get_token_from_env() -> str | None:
    return os.environ.get(config.API_TOKEN_ENV)


def _get_token_from_request(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]

    x_token = request.headers.get("X-API-Token")
    if x_token:
        return x_token

    return None


def is_auth_enabled() -> bool:
    return bool(_get_token_from_env())


async def require_auth(
    request: Request, credentials: HTTPAuthorizationCredentials | None = Depends(security)
) -> str:
    """
    Dependency that requires the configured bearer token.

    Raises HTTPException 401 on a missing or wrong token. Allows the
    request when no token is configured.
    """
    expected_token = _get_token_from_env()
    if not expected_token:
        logger.warning(
            "%s not set - authentication disabled! Set it in production.", config.API_TOKEN_ENV
        )
        return "auth_disabled"

    provided_token = _get_token_from_request(request)
    if not provided_token:
        logger.warning("Auth failed: no token provided for %s", request.url.path)
        raise HTTPException(
            status_code=401,
            detail="Authentication required. Provide Bearer token in Authorization header.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not secrets.compare_digest(provided_token, expected_token):
        logger.warning("Auth failed: invalid token for %s", request.url.path)
        raise HTTPException(
            status_code=401,
            detail="Invalid authentication token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return provided_token
