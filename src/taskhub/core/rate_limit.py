"""Fixed-window request rate limiting on top of ``slowapi``."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass

from limits import RateLimitItem, RateLimitItemPerSecond
from limits.errors import StorageError
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..errors import TooManyRequestsError
from .config import Settings

logger = logging.getLogger(__name__)

GENERAL = "api"
LOGIN = "login"
REGISTER = "register"

STORAGE_KEY_PREFIX = "taskhub:ratelimit"


@dataclass(frozen=True, slots=True)
class RateLimitRule:
    """At most ``limit`` requests per ``window_seconds`` for one identity."""

    name: str
    limit: int
    window_seconds: int

    @property
    def item(self) -> RateLimitItem:
        return RateLimitItemPerSecond(self.limit, self.window_seconds)


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int


def rules_from_settings(settings: Settings) -> dict[str, RateLimitRule]:
    return {
        GENERAL: RateLimitRule(GENERAL, settings.rate_limit_max_requests, settings.rate_limit_window_seconds),
        LOGIN: RateLimitRule(
            LOGIN,
            settings.login_rate_limit_max_requests,
            settings.login_rate_limit_window_seconds,
        ),
        REGISTER: RateLimitRule(
            REGISTER,
            settings.register_rate_limit_max_requests,
            settings.register_rate_limit_window_seconds,
        ),
    }


class RateLimiter:
    """Apply named rules to an identity using a ``slowapi`` limiter's storage.

    When the storage backend is unreachable requests are let through and a
    warning is logged once until a call succeeds again.
    """

    def __init__(self, limiter: Limiter, *, rules: dict[str, RateLimitRule]) -> None:
        self._limiter = limiter
        self._rules = dict(rules)
        self._storage_error_logged = False

    @classmethod
    def from_settings(cls, settings: Settings, *, storage_uri: str | None = None) -> "RateLimiter":
        limiter = Limiter(
            key_func=get_remote_address,
            storage_uri=storage_uri or settings.rate_limit_storage_uri,
            storage_options={"wrap_exceptions": True, "key_prefix": STORAGE_KEY_PREFIX},
            enabled=settings.rate_limit_enabled,
        )
        return cls(limiter, rules=rules_from_settings(settings))

    @property
    def enabled(self) -> bool:
        return self._limiter.enabled

    def rule(self, name: str) -> RateLimitRule:
        return self._rules[name]

    def hit(self, rule_name: str, identity: str) -> RateLimitResult:
        """Count one request and report whether it is within the limit."""

        rule = self._rules[rule_name]
        if not self.enabled:
            return RateLimitResult(allowed=True, limit=rule.limit, remaining=rule.limit, retry_after=0)

        item = rule.item
        strategy = self._limiter.limiter
        try:
            allowed = strategy.hit(item, rule.name, identity)
            reset_at, remaining = strategy.get_window_stats(item, rule.name, identity)
        except StorageError:
            if not self._storage_error_logged:
                logger.warning("Rate limit storage unavailable; rate limiting bypassed.", exc_info=True)
                self._storage_error_logged = True
            return RateLimitResult(allowed=True, limit=rule.limit, remaining=rule.limit, retry_after=0)

        self._storage_error_logged = False
        return RateLimitResult(
            allowed=allowed,
            limit=rule.limit,
            remaining=remaining,
            retry_after=max(math.ceil(reset_at - time.time()), 1),
        )

    def check(self, rule_name: str, identity: str) -> RateLimitResult:
        """Like :meth:`hit` but raise ``TooManyRequestsError`` over the limit."""

        result = self.hit(rule_name, identity)
        if not result.allowed:
            logger.warning(
                "Rate limit exceeded",
                extra={"rule": rule_name, "identity": identity, "retry_after": result.retry_after},
            )
            raise TooManyRequestsError(
                headers={
                    "Retry-After": str(result.retry_after),
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )
        return result

    def reset(self) -> None:
        self._limiter.reset()


__all__ = [
    "GENERAL",
    "LOGIN",
    "REGISTER",
    "RateLimitResult",
    "RateLimitRule",
    "RateLimiter",
    "rules_from_settings",
]
