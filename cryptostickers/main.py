from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
from contextlib import asynccontextmanager
import uvicorn
import logging

from cryptostickers.storage.dynamodb import DynamoDBService
from cryptostickers.storage.s3 import S3Service, public_origin
from cryptostickers.storage.ratelimit import build_rate_limiter
from cryptostickers.settings import settings
from cryptostickers.middleware import SecurityMiddleware
from cryptostickers.routers.gallery import router as gallery_router
from cryptostickers.routers.admin import router as admin_router
from cryptostickers.routers.auth import router as auth_router
from cryptostickers.exceptions import add_exception_handlers

logging.basicConfig(level=logging.INFO)
log = logging.getLogger("cryptostickers")

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
        Async context manager for FastAPI application lifecycle events.
        Initializes and closes resources (S3, DynamoDB, Redis) for the application.
    """
    # Initialize resources
    app.state.s3 = S3Service()
    app.state.db = DynamoDBService()
    app.state.rate_limiter = build_rate_limiter()
    yield
    # Cleanup resources
    app.state.s3.close()
    app.state.db.close()
    if app.state.rate_limiter:
        app.state.rate_limiter.close()

# Initialize App
app = FastAPI(
    title=settings.app_title,
    lifespan=lifespan,
    description="Sticker gallery with tag filtering and an admin editor",
)

# Add exception handlers
add_exception_handlers(app)

# Middleware: the last one added runs first, so sessions are loaded
# before the admin gate reads them
app.add_middleware(SecurityMiddleware, storage_origin=public_origin())
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    max_age=settings.session_max_age,
    https_only=settings.session_https_only,
    same_site="lax",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add the routers
app.include_router(gallery_router)
app.include_router(admin_router)
app.include_router(auth_router)

# Check Health
@app.get("/")
def read_root():
    """
        Default end point

    """
    return "CryptoStickers is running."

if __name__ == "__main__":
    uvicorn.run("cryptostickers.main:app", host="0.0.0.0", port=8000, reload=True)
