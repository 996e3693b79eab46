"""
Security utilities and authentication
"""

import hashlib
import hmac
import secrets
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from fastapi import Depends, Query, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from allocator.api.deps import get_repository
from allocator.core.exceptions import Unauthenticated, Forbidden, RateLimited
from allocator.models.records import EventRecord
from allocator.services.repositories import Repository

security = HTTPBearer(auto_error=False)


def issue_admin_token() -> Tuple[str, str]:
    """Return (plaintext, digest). Only the digest is ever stored."""
    plaintext = secrets.token_hex(32)
    return plaintext, hash_token(plaintext)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def verify_token(token: str, digest: str) -> bool:
    return hmac.compare_digest(hash_token(token), digest)


def resolve_token(
    query_token: Optional[str],
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    """Pick the admin credential from the request; the query parameter wins"""
    if query_token:
        return query_token
    if credentials and credentials.credentials:
        return credentials.credentials
    return None


def require_admin(
    event_id: str,
    token: Optional[str] = Query(None),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    repo: Repository = Depends(get_repository),
) -> EventRecord:
    """Resolve the event addressed by the path and check its admin token"""
    supplied = resolve_token(token, credentials)
    if not supplied:
        raise Unauthenticated()

    # Unknown events and wrong tokens look the same to the caller
    event = repo.get_event(event_id)
    if event is None or not verify_token(supplied, event.admin_token_hash):
        raise Forbidden("Invalid token")
    return event


class RateLimiter:
    """Simple in-memory sliding-window limiter keyed by client IP"""

    WINDOW_SECONDS = 60

    def __init__(self, limit_per_minute: int, clock: Callable[[], float] = time.time):
        self.limit = limit_per_minute
        self.clock = clock
        self.requests: Dict[str, List[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def check(self, client_ip: str) -> bool:
        current_time = self.clock()
        window_start = current_time - self.WINDOW_SECONDS

        # Called from FastAPI's threadpool
        with self._lock:
            if current_time - self._last_sweep >= self.WINDOW_SECONDS:
                self._sweep(window_start)
                self._last_sweep = current_time

            # Clean old requests
            recent = [
                req_time for req_time in self.requests.get(client_ip, [])
                if req_time > window_start
            ]

            if len(recent) >= self.limit:
                self.requests[client_ip] = recent
                return False

            recent.append(current_time)
            self.requests[client_ip] = recent
            return True

    def _sweep(self, window_start: float) -> None:
        """Forget clients with no requests inside the window"""
        for client_ip in list(self.requests):
            if not any(req_time > window_start for req_time in self.requests[client_ip]):
                del self.requests[client_ip]


def get_client_ip(request: Request) -> str:
    """Extract client IP from request"""
    # Check for forwarded IP first (for reverse proxy setups)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


def rate_limit(request: Request) -> None:
    """Dependency applying the app's rate limiter to a public route"""
    limiter: RateLimiter = request.app.state.rate_limiter
    if not limiter.check(get_client_ip(request)):
        raise RateLimited()
