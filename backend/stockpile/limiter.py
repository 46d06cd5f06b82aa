"""Rate limiting.

Every app built by ``create_app`` gets its own slowapi ``Limiter``, enabled and
sized from the settings that app was given. Routes opt in per endpoint with
the ``auth_limit`` or ``default_limit`` dependency.
"""
import logging
import math
import time

from fastapi import Request
from limits import parse
from slowapi import Limiter
from slowapi.util import get_remote_address

from stockpile.config import Settings
from stockpile.errors import RateLimitedError

logger = logging.getLogger(__name__)


def build_limiter(settings: Settings) -> Limiter:
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[],  # No default limits - apply explicitly per endpoint
        storage_uri="memory://",
    )
    # slowapi also reads RATELIMIT_ENABLED from the environment; settings win
    limiter.enabled = settings.rate_limit_enabled
    return limiter


class RateLimit:
    """Dependency counting a request against the limit named by ``setting``."""

    def __init__(self, scope: str, setting: str) -> None:
        self.scope = scope
        self.setting = setting

    def __call__(self, request: Request) -> None:
        limiter: Limiter = request.app.state.limiter
        if not limiter.enabled:
            return

        limit = parse(getattr(request.app.state.settings, self.setting))
        client = get_remote_address(request)
        if limiter.limiter.hit(limit, self.scope, client):
            return

        reset_at = limiter.limiter.get_window_stats(limit, self.scope, client)[0]
        retry_after = max(1, math.ceil(reset_at - time.time()))
        logger.warning(f"Rate limit exceeded for {client} on {request.url.path}")
        raise RateLimitedError(retry_after=retry_after)


# Stricter limit for sign-in endpoints (brute force, SMS pumping)
auth_limit = RateLimit("auth", "rate_limit_auth")
default_limit = RateLimit("default", "rate_limit_default")
