from __future__ import annotations

import logging
import time
from collections import OrderedDict, deque
from dataclasses import dataclass
from threading import Lock
from typing import NamedTuple

from fastapi import Depends, HTTPException, Request, Response, status

from reviewhub.core.security import token_subject

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateRule:
    """How often one caller may perform one kind of action."""

    action: str
    limit: int
    window_seconds: int


# Login is limited per address: the caller has no identity yet.
LOGIN = RateRule("login", limit=10, window_seconds=60)
# Writes that trigger an aggregate recompute share one budget per user.
REVIEW_WRITE = RateRule("review_write", limit=30, window_seconds=60)
REVIEW_LIKE = RateRule("review_like", limit=60, window_seconds=60)


class RateDecision(NamedTuple):
    allowed: bool
    remaining: int
    retry_after: int


class SlidingWindowLimiter:
    """In-process sliding-window counter per (action, caller).

    State lives in one process; several workers each keep their own windows.
    The least recently used callers are dropped once ``max_callers`` is exceeded.
    """

    def __init__(self, *, max_callers: int = 20_000) -> None:
        self._max_callers = max_callers
        self._lock = Lock()
        self._hits: OrderedDict[tuple[str, str], deque[float]] = OrderedDict()

    def hit(self, rule: RateRule, caller: str) -> RateDecision:
        now = time.monotonic()
        key = (rule.action, caller)

        with self._lock:
            hits = self._hits.pop(key, None) or deque()
            self._hits[key] = hits
            while len(self._hits) > self._max_callers:
                self._hits.popitem(last=False)

            while hits and hits[0] <= now - rule.window_seconds:
                hits.popleft()

            if len(hits) >= rule.limit:
                retry_after = int(rule.window_seconds - (now - hits[0])) + 1
                return RateDecision(allowed=False, remaining=0, retry_after=max(1, retry_after))

            hits.append(now)
            return RateDecision(allowed=True, remaining=rule.limit - len(hits), retry_after=0)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


limiter = SlidingWindowLimiter()


def caller_key(request: Request) -> str:
    """``user:<id>`` for a valid bearer token, else ``ip:<address>``."""
    auth = request.headers.get("authorization", "")
    scheme, _, token = auth.partition(" ")
    if scheme.lower() == "bearer" and token:
        user_id = token_subject(token.strip())
        if user_id:
            return f"user:{user_id}"

    xff = request.headers.get("x-forwarded-for")
    if xff:
        return "ip:" + (xff.split(",")[0].strip() or "unknown")
    if request.client:
        return f"ip:{request.client.host}"
    return "ip:unknown"


def rate_limit(rule: RateRule):
    """Dependency enforcing ``rule`` for the calling user or address."""

    def _dep(request: Request, response: Response) -> None:
        caller = caller_key(request)
        decision = limiter.hit(rule, caller)
        if not decision.allowed:
            logger.warning("Rate limit hit: %s by %s", rule.action, caller)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Too many {rule.action.replace('_', ' ')} requests",
                headers={"Retry-After": str(decision.retry_after)},
            )
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)

    return Depends(_dep)
