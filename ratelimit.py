"""
In-memory rate limiting keyed by an identifier such as "order:<ip>".

Each key gets a fixed window; exceeding the limit inside the window blocks the key for
`block_seconds` when that is set. State is per process and is lost on restart.
"""
import math
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional

from fastapi import HTTPException, Request


@dataclass
class RateLimitRule:
    max_attempts: int
    window_seconds: int
    block_seconds: Optional[int] = None


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float
    blocked: bool = False
    message: Optional[str] = None


@dataclass
class _Entry:
    count: int
    reset_at: float
    blocked_until: Optional[float] = None


ORDER_RULE = RateLimitRule(max_attempts=10, window_seconds=15 * 60, block_seconds=30 * 60)
PAYMENT_RULE = RateLimitRule(max_attempts=5, window_seconds=15 * 60, block_seconds=30 * 60)
LOGIN_RULE = RateLimitRule(max_attempts=5, window_seconds=15 * 60, block_seconds=30 * 60)
CONTACT_RULE = RateLimitRule(max_attempts=5, window_seconds=15 * 60, block_seconds=30 * 60)

_store: Dict[str, _Entry] = {}
_lock = threading.Lock()


def _minutes(seconds: float) -> int:
    return max(1, math.ceil(seconds / 60))


def check(key: str, rule: RateLimitRule, now: Optional[float] = None) -> RateLimitResult:
    now = time.time() if now is None else now
    with _lock:
        entry = _store.get(key)
        if entry and entry.blocked_until and entry.blocked_until > now:
            return RateLimitResult(
                allowed=False, remaining=0, reset_at=entry.blocked_until, blocked=True,
                message=f"Çok fazla deneme yapıldı. Lütfen {_minutes(entry.blocked_until - now)} dakika sonra tekrar deneyin.",
            )
        if entry is None or entry.reset_at < now:
            entry = _Entry(count=1, reset_at=now + rule.window_seconds)
            _store[key] = entry
            return RateLimitResult(allowed=True, remaining=rule.max_attempts - 1, reset_at=entry.reset_at)
        if entry.count >= rule.max_attempts:
            if rule.block_seconds:
                entry.blocked_until = now + rule.block_seconds
                entry.count = 0
                message = f"Çok fazla deneme yapıldı. Lütfen {_minutes(rule.block_seconds)} dakika sonra tekrar deneyin."
            else:
                message = "Çok fazla deneme yapıldı. Lütfen daha sonra tekrar deneyin."
            return RateLimitResult(allowed=False, remaining=0, reset_at=entry.blocked_until or entry.reset_at,
                                   blocked=bool(rule.block_seconds), message=message)
        entry.count += 1
        return RateLimitResult(allowed=True, remaining=rule.max_attempts - entry.count, reset_at=entry.reset_at)


def reset(key: str) -> None:
    with _lock:
        _store.pop(key, None)


def clear() -> None:
    with _lock:
        _store.clear()


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


def headers(rule: RateLimitRule, result: RateLimitResult) -> Dict[str, str]:
    return {
        "X-RateLimit-Limit": str(rule.max_attempts),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(int(result.reset_at)),
    }


def enforce(request: Request, scope: str, rule: RateLimitRule) -> RateLimitResult:
    """Count one attempt for the caller's IP in `scope`, raising 429 when the limit is hit."""
    result = check(f"{scope}:{client_ip(request)}", rule)
    if not result.allowed:
        retry_after = max(0, math.ceil(result.reset_at - time.time()))
        raise HTTPException(
            status_code=429,
            detail=result.message,
            headers={"Retry-After": str(retry_after), **headers(rule, result)},
        )
    return result
