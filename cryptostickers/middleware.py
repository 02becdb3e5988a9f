"""
    Admin session gate and security headers.
"""
import base64
import logging
import re
import uuid
from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from cryptostickers.auth.service import SESSION_KEY

log = logging.getLogger(__name__)

STATIC_PATH = re.compile(r"\.(ico|png|jpg|jpeg|svg|webmanifest)$")

SECURITY_HEADERS = {
    "X-DNS-Prefetch-Control": "on",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "X-Permitted-Cross-Domain-Policies": "none",
}

def new_nonce() -> str:
    return base64.b64encode(str(uuid.uuid4()).encode()).decode()

def content_security_policy(nonce: str, storage_origin: str) -> str:
    directives = [
        "default-src 'self'",
        f"script-src 'self' 'nonce-{nonce}'",
        "style-src 'self' 'unsafe-inline'",
        f"img-src 'self' blob: data: {storage_origin}",
        "font-src 'self'",
        "object-src 'none'",
        "base-uri 'self'",
        "form-action 'self'",
        "frame-ancestors 'none'",
        f"connect-src 'self' {storage_origin}",
    ]
    return "; ".join(directives) + ";"

def is_admin_path(path: str) -> bool:
    return path == "/admin" or path.startswith("/admin/")

class SecurityMiddleware(BaseHTTPMiddleware):
    """Redirects anonymous /admin requests to /login and sets security headers."""

    def __init__(self, app, storage_origin: str, login_path: str = "/login"):
        super().__init__(app)
        self.storage_origin = storage_origin
        self.login_path = login_path

    async def dispatch(self, request: Request, call_next):
        if STATIC_PATH.search(request.url.path):
            return await call_next(request)

        if is_admin_path(request.url.path) and not request.session.get(SESSION_KEY):
            log.info("Redirecting anonymous request for %s", request.url.path)
            return RedirectResponse(self.login_path, status_code=307)

        nonce = new_nonce()
        request.state.csp_nonce = nonce
        response = await call_next(request)

        for name, value in SECURITY_HEADERS.items():
            response.headers[name] = value
        response.headers["Content-Security-Policy"] = content_security_policy(nonce, self.storage_origin)
        return response
