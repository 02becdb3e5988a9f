import boto3
from botocore.exceptions import ClientError
from typing import Optional
from cryptostickers.settings import settings
import logging

log = logging.getLogger(__name__)

def public_url(key: str) -> str:
    """Public URL an object is served from once uploaded."""
    if settings.storage_public_url:
        return f"{settings.storage_public_url.rstrip('/')}/{key}"
    if settings.aws_endpoint_url:
        return f"{settings.aws_endpoint_url.rstrip('/')}/{settings.s3_bucket}/{key}"
    return f"https://{settings.s3_bucket}.s3.{settings.aws_region}.amazonaws.com/{key}"

def public_origin() -> str:
    """Scheme and host of the public storage URL."""
    scheme, _, rest = public_url("").partition("://")
    return f"{scheme}://{rest.split('/', 1)[0]}"

def object_name_from_url(url: str) -> str:
    return url.split("/")[-1] if url else ""

# -------------------------
# S3 Service
# -------------------------
class S3Service:
    def __init__(self):
        session = boto3.session.Session(region_name=settings.aws_region)
        kwargs = {
            "aws_access_key_id": settings.aws_access_key_id,
            "aws_secret_access_key": settings.aws_secret_access_key,
        }
        if settings.aws_endpoint_url:
            kwargs["endpoint_url"] = settings.aws_endpoint_url

        self.client = session.client("s3", **kwargs)
        log.info("Initialized S3 client")

        # Ensure bucket exists at initialization
        self.ensure_bucket()

    def ensure_bucket(self):
        try:
            self.client.head_bucket(Bucket=settings.s3_bucket)
            log.debug("Bucket %s already exists", settings.s3_bucket)
        except ClientError as e:
            error_code = int(e.response["Error"]["Code"])
            if error_code == 404:
                self.client.create_bucket(Bucket=settings.s3_bucket)
                log.info("Created bucket %s", settings.s3_bucket)
            else:
                log.error("Failed to check/create bucket: %s", e)
                raise

    def upload(self, fileobj, key: str, content_type: str):
        self.client.upload_fileobj(
            Fileobj=fileobj,
            Bucket=settings.s3_bucket,
            Key=key,
            ExtraArgs={
                "ContentType": content_type,
                "CacheControl": settings.storage_cache_control,
            },
        )
        log.debug("Uploaded %s to s3://%s/%s", key, settings.s3_bucket, key)

    def public_url(self, key: str) -> str:
        return public_url(key)

    def generate_download_url(self, key: str, expires_in: Optional[int] = None) -> str:
        """Presigned GET that makes browsers save the object instead of showing it."""
        return self.client.generate_presigned_url(
            "get_object",
            Params={
                "Bucket": settings.s3_bucket,
                "Key": key,
                "ResponseContentDisposition": f"attachment; filename={settings.download_filename}",
            },
            ExpiresIn=expires_in or settings.download_expire_seconds,
        )

    def delete(self, key: str):
        self.client.delete_object(Bucket=settings.s3_bucket, Key=key)
        log.debug("Deleted s3://%s/%s", settings.s3_bucket, key)

    def close(self):
        log.info("Closed S3 client")
