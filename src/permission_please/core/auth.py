"""
Cron Trigger Authentication

The reminder endpoint is called by a periodic job runner that presents a
shared secret as ``Authorization: Bearer <CRON_SECRET>``.

SECURITY NOTE:
- When CRON_SECRET is set, the bearer token must match it exactly
- When CRON_SECRET is not set, requests are accepted ONLY when the process
  environment has PYTHON_ENV=development; an unset PYTHON_ENV counts as
  production and rejects them
"""

import logging
import os
import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from permission_please.core.config import settings

logger = logging.getLogger(__name__)

# auto_error=False so a missing header yields our own 401 payload
cron_bearer = HTTPBearer(
    auto_error=False,
    description="Shared secret of the cron job runner",
)


def _is_dev_mode_safe() -> bool:
    """
    Check whether unauthenticated trigger calls may be accepted.

    All of these must hold:
    1. settings.is_development is True
    2. settings.is_production is False
    3. The PYTHON_ENV environment variable is explicitly "development"
    """
    env_var = os.getenv("PYTHON_ENV", "").lower()

    return settings.is_development and not settings.is_production and env_var == "development"


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "error": "UNAUTHORIZED",
            "message": "Missing or invalid cron credentials.",
        },
        headers={"WWW-Authenticate": "Bearer"},
    )


async def verify_cron_secret(
    credentials: HTTPAuthorizationCredentials | None = Depends(cron_bearer),
) -> None:
    """
    FastAPI dependency that rejects unauthenticated trigger calls.

    Raises:
        HTTPException 401: If the credential is missing or does not match
    """
    expected = settings.cron_secret

    if not expected:
        if _is_dev_mode_safe():
            logger.warning("CRON_SECRET not set - accepting cron call in development mode")
            return
        logger.error("CRON_SECRET not set - rejecting cron call outside development")
        raise _unauthorized()

    if credentials is None:
        logger.warning("Cron call rejected: no credentials supplied")
        raise _unauthorized()

    if not secrets.compare_digest(credentials.credentials.encode(), expected.encode()):
        logger.warning("Cron call rejected: invalid credentials")
        raise _unauthorized()


__all__ = ["verify_cron_secret"]
