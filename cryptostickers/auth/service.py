from datetime import datetime, timezone
from typing import Any, Dict, Optional
import hmac
import logging
from fastapi import Request
from pydantic import BaseModel
from redis.exceptions import RedisError

from cryptostickers.settings import settings
from cryptostickers.storage.ratelimit import RedisRateLimiter
from cryptostickers.exceptions import (
    InvalidCredentialsException,
    RateLimitExceededException,
    RateLimiterUnavailableException,
)

log = logging.getLogger(__name__)

SESSION_KEY = "user"

class LoginRequest(BaseModel):
    email: str
    password: str

class SessionInfo(BaseModel):
    authenticated: bool
    email: Optional[str] = None
    signed_in_at: Optional[datetime] = None

def client_ip(request: Request) -> str:
    """Caller's IP: first X-Forwarded-For hop, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"

def check_rate_limit(limiter: Optional[RedisRateLimiter], identifier: str):
    if limiter is None:
        return
    try:
        result = limiter.limit(identifier)
    except RedisError as e:
        log.error(f"Rate limiter check failed: {e}")
        raise RateLimiterUnavailableException(f"Rate limiter unavailable: {e}")
    if not result.success:
        raise RateLimitExceededException(result.retry_after())

class AuthService:
    """Single admin account configured through settings, kept in the signed session cookie."""

    def __init__(self, email: Optional[str] = None, password: Optional[str] = None):
        self.email = email or settings.admin_email
        self.password = password or settings.admin_password

    def sign_in(self, session: Dict[str, Any], email: str, password: str) -> SessionInfo:
        email_ok = hmac.compare_digest(email.strip().lower().encode(), self.email.lower().encode())
        password_ok = hmac.compare_digest(password.encode(), self.password.encode())
        if not (email_ok and password_ok):
            log.warning("Failed sign-in for %s", email)
            raise InvalidCredentialsException()
        signed_in_at = datetime.now(timezone.utc)
        session[SESSION_KEY] = {"email": self.email, "signed_in_at": signed_in_at.isoformat()}
        log.info("Signed in %s", self.email)
        return SessionInfo(authenticated=True, email=self.email, signed_in_at=signed_in_at)

    def sign_out(self, session: Dict[str, Any]):
        user = session.pop(SESSION_KEY, None)
        if user:
            log.info("Signed out %s", user.get("email"))

    def get_session(self, session: Dict[str, Any]) -> SessionInfo:
        user = session.get(SESSION_KEY)
        if not user:
            return SessionInfo(authenticated=False)
        return SessionInfo(
            authenticated=True,
            email=user.get("email"),
            signed_in_at=datetime.fromisoformat(user["signed_in_at"]) if user.get("signed_in_at") else None,
        )
