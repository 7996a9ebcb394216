"""Rate limiting configuration for the operations API."""

import logging
import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from guestdesk.core.config import settings

logger = logging.getLogger(__name__)

REDIS_URL = os.getenv("REDIS_URL", "")
IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")
DEFAULT_LIMITS = (
    []
    if IS_TESTING or settings.RATE_LIMIT_API <= 0
    else [f"{settings.RATE_LIMIT_API}/minute"]
)


def _storage_uri() -> str:
    # Shared storage only when explicitly configured; tests and single-process dev use memory
    if IS_TESTING or not REDIS_URL:
        return "memory://"
    return REDIS_URL


limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=_storage_uri(),
    default_limits=DEFAULT_LIMITS,
)
if not IS_TESTING and not REDIS_URL:
    logger.info("REDIS_URL not set, rate limiting uses in-memory storage")
