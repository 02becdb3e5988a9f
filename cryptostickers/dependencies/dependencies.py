from typing import Optional
from fastapi import Depends, Request
from cryptostickers.storage.dynamodb import DynamoDBService
from cryptostickers.storage.s3 import S3Service
from cryptostickers.storage.ratelimit import RedisRateLimiter
from cryptostickers.auth.service import AuthService, SessionInfo
from cryptostickers.exceptions import NotAuthenticatedException

def get_s3_service(request: Request) -> S3Service:
    """Dependency provider for S3Service"""
    return request.app.state.s3

def get_dynamodb_service(request: Request) -> DynamoDBService:
    """Dependency provider for DynamoDBService"""
    return request.app.state.db

def get_rate_limiter(request: Request) -> Optional[RedisRateLimiter]:
    """Dependency provider for the login rate limiter, None when disabled"""
    return getattr(request.app.state, "rate_limiter", None)

def get_auth_service() -> AuthService:
    return AuthService()

def require_admin(request: Request, auth: AuthService = Depends(get_auth_service)) -> SessionInfo:
    """Current admin session; 401 when there is none"""
    session = auth.get_session(request.session)
    if not session.authenticated:
        raise NotAuthenticatedException()
    return session
