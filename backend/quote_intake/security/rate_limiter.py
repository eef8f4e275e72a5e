"""
Sliding-window rate limiting for the public quote form.

In-memory and per process; counters are lost on restart.
"""
from datetime import datetime, timedelta
from threading import Lock
from typing import Dict, List
import logging

from fastapi import Request

from quote_intake.core.config import settings
from quote_intake.core.errors import ApiError, ErrorKind

logger = logging.getLogger(__name__)


class RateLimiter:
    """Simple in-memory rate limiter keyed by client and operation."""

    def __init__(self):
        self._attempts: Dict[str, List[datetime]] = {}
        self._lock = Lock()
        self._last_sweep = datetime.utcnow()

    def is_allowed(
        self,
        client: str,
        operation: str,
        max_attempts: int = 10,
        window_seconds: int = 60
    ) -> bool:
        """
        Check if client can perform operation within rate limit.

        Args:
            client: Client key (remote address)
            operation: Operation name (e.g. 'submit_quote')
            max_attempts: Max attempts allowed in window
            window_seconds: Time window in seconds

        Returns:
            True if allowed (and the attempt is counted), False if rate limited
        """
        key = f"{client}:{operation}"
        now = datetime.utcnow()
        window_start = now - timedelta(seconds=window_seconds)

        with self._lock:
            # At most once per window, forget clients with nothing left in it
            if now - self._last_sweep >= timedelta(seconds=window_seconds):
                self._evict_before(window_start)
                self._last_sweep = now

            attempts = [a for a in self._attempts.get(key, []) if a > window_start]

            if len(attempts) < max_attempts:
                attempts.append(now)
                self._attempts[key] = attempts
                return True

            self._attempts[key] = attempts
            return False

    def _evict_before(self, cutoff: datetime) -> None:
        # Caller holds the lock
        for key in list(self._attempts):
            recent = [a for a in self._attempts[key] if a > cutoff]
            if recent:
                self._attempts[key] = recent
            else:
                del self._attempts[key]

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._attempts)

    def reset(self) -> None:
        with self._lock:
            self._attempts.clear()


# Global rate limiter instance
_rate_limiter = RateLimiter()


def get_rate_limiter() -> RateLimiter:
    """Get global rate limiter instance."""
    return _rate_limiter


def limit_quote_submissions(request: Request) -> None:
    """Dependency: QUOTE_RATE_LIMIT submissions per QUOTE_RATE_WINDOW_SECONDS per client."""
    client = request.client.host if request.client else "unknown"
    limiter = get_rate_limiter()
    allowed = limiter.is_allowed(
        client,
        "submit_quote",
        max_attempts=settings.QUOTE_RATE_LIMIT,
        window_seconds=settings.QUOTE_RATE_WINDOW_SECONDS,
    )
    if not allowed:
        logger.warning("Quote submission rate limit hit for %s", client)
        raise ApiError(ErrorKind.RATE_LIMITED)
