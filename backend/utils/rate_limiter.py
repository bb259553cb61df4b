"""Rate limiting for OTP and password reset requests"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(self):
        # Per-process sliding window keyed by caller-supplied strings
        self.attempts = {}

    async def check_rate_limit(
        self,
        key: str,
        max_attempts: int,
        window_minutes: int
    ) -> tuple[bool, Optional[str]]:
        """
        Check if rate limit is exceeded.

        Returns:
            (allowed: bool, error_message: Optional[str])
        """
        now = datetime.now(timezone.utc)
        window = timedelta(minutes=window_minutes)

        recent = [t for t in self.attempts.get(key, []) if now - t < window]
        self.attempts[key] = recent

        if len(recent) >= max_attempts:
            wait_seconds = int((min(recent) + window - now).total_seconds())
            logger.warning(f"Rate limit hit for {key}")
            return False, f"Too many requests. Try again in {wait_seconds} seconds"

        recent.append(now)
        return True, None

    def reset(self, key: Optional[str] = None):
        if key is None:
            self.attempts.clear()
        else:
            self.attempts.pop(key, None)


rate_limiter = RateLimiter()
