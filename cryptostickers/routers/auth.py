from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import PlainTextResponse
from typing import Optional
import logging

from cryptostickers.storage.ratelimit import RedisRateLimiter
from cryptostickers.dependencies.dependencies import get_auth_service, get_rate_limiter
from cryptostickers.auth.service import AuthService, LoginRequest, SessionInfo, check_rate_limit, client_ip

log = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

@router.post("/login", response_model=SessionInfo)
def login(
    credentials: LoginRequest,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
    limiter: Optional[RedisRateLimiter] = Depends(get_rate_limiter),
):
    """Signs the admin in. Attempts are rate limited per client IP."""
    check_rate_limit(limiter, client_ip(request))
    return auth.sign_in(request.session, credentials.email, credentials.password)

@router.post("/logout", status_code=204)
def logout(request: Request, auth: AuthService = Depends(get_auth_service)):
    auth.sign_out(request.session)
    return Response(status_code=204)

@router.get("/session", response_model=SessionInfo)
def current_session(request: Request, auth: AuthService = Depends(get_auth_service)):
    return auth.get_session(request.session)

@router.get("/api/get-ip", response_class=PlainTextResponse)
def get_ip(request: Request):
    """Caller's IP address as plain text, the key for login rate limiting."""
    return client_ip(request)
