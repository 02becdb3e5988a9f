from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="allow")

    aws_region: str = Field("us-east-1", env="AWS_REGION")
    s3_bucket: str = Field("stickers", env="S3_BUCKET")
    images_table: str = Field("images", env="IMAGES_TABLE")
    tags_table: str = Field("tags", env="TAGS_TABLE")
    aws_endpoint_url: Optional[str] = Field(None, env="AWS_ENDPOINT_URL")
    # Base URL the bucket is publicly served from (CDN, website endpoint...)
    storage_public_url: Optional[str] = Field(None, env="STORAGE_PUBLIC_URL")
    storage_cache_control: str = Field("max-age=3600", env="STORAGE_CACHE_CONTROL")

    aws_access_key_id: str = Field("test", env="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str = Field("test", env="AWS_SECRET_ACCESS_KEY")

    admin_email: str = Field("admin@cryptostickers.fun", env="ADMIN_EMAIL")
    admin_password: str = Field("change-me", env="ADMIN_PASSWORD")
    session_secret: str = Field("change-me", env="SESSION_SECRET")
    session_max_age: int = Field(60 * 60 * 24 * 7, env="SESSION_MAX_AGE")
    session_https_only: bool = Field(False, env="SESSION_HTTPS_ONLY")

    redis_url: Optional[str] = Field(None, env="REDIS_URL")
    login_rate_limit: int = Field(5, env="LOGIN_RATE_LIMIT")
    login_rate_window_seconds: int = Field(300, env="LOGIN_RATE_WINDOW_SECONDS")

    max_upload_bytes: int = Field(5 * 1024 * 1024, env="MAX_UPLOAD_BYTES")
    download_expire_seconds: int = Field(900, env="DOWNLOAD_EXPIRE_SECONDS")
    download_filename: str = Field("crypto-sticker.png", env="DOWNLOAD_FILENAME")

    app_title: str = Field("CryptoStickers", env="APP_TITLE")

settings = Settings()
