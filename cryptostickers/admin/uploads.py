from io import BytesIO
from dataclasses import dataclass, field
from typing import List, Optional
import logging
import os
import uuid
from PIL import Image as PILImage, UnidentifiedImageError
from botocore.exceptions import BotoCoreError, ClientError

from cryptostickers.storage.dynamodb import DynamoDBService
from cryptostickers.storage.s3 import S3Service
from cryptostickers.gallery.models import Image
from cryptostickers.exceptions import InvalidImageException
from cryptostickers.settings import settings

log = logging.getLogger(__name__)

# Allowed content types, mapped to the Pillow format that must back them
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/gif": "GIF",
    "image/webp": "WEBP",
}

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}

@dataclass
class UploadCandidate:
    filename: str
    content_type: str
    data: bytes = b""
    # Request size of a file whose body was not read because it is over the limit
    declared_size: Optional[int] = None

    @property
    def size(self) -> int:
        if self.declared_size is not None:
            return self.declared_size
        return len(self.data)

@dataclass
class UploadFailure:
    filename: str
    detail: str

@dataclass
class UploadOutcome:
    uploaded: List[Image] = field(default_factory=list)
    failed: Optional[UploadFailure] = None

def _format_size(num_bytes: int) -> str:
    return f"{num_bytes / (1024 * 1024):g} MB"

def check_image_bytes(data: bytes, content_type: str) -> Optional[str]:
    """Returns why the bytes are not an image of the declared type, or None."""
    try:
        img = PILImage.open(BytesIO(data))
        img.verify()
    except PILImage.DecompressionBombError:
        return "image dimensions too large"
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
        return "not a valid image file"
    expected = ALLOWED_IMAGE_TYPES[content_type]
    if (img.format or "").upper() != expected:
        return f"content is {img.format}, not {content_type}"
    return None

def validate_upload_batch(candidates: List[UploadCandidate], max_bytes: Optional[int] = None):
    """
        Checks type, size and content of every file before anything is uploaded.
        One bad file rejects the whole batch; the message lists every problem.
    """
    max_bytes = max_bytes or settings.max_upload_bytes
    if not candidates:
        raise InvalidImageException("No files selected")

    problems = []
    for candidate in candidates:
        if candidate.content_type not in ALLOWED_IMAGE_TYPES:
            problems.append(f"{candidate.filename}: invalid file type {candidate.content_type}")
            continue
        if candidate.size > max_bytes:
            problems.append(f"{candidate.filename}: file too large (maximum {_format_size(max_bytes)})")
            continue
        reason = check_image_bytes(candidate.data, candidate.content_type)
        if reason:
            problems.append(f"{candidate.filename}: {reason}")

    if problems:
        raise InvalidImageException("Invalid files detected. " + "; ".join(problems))

def random_object_name(filename: str, content_type: str) -> str:
    """Random storage name keeping the original extension."""
    ext = os.path.splitext(filename or "")[1].lstrip(".").lower()
    if not ext or not ext.isalnum():
        ext = EXTENSIONS.get(content_type, "bin")
    return f"{uuid.uuid4()}.{ext}"

def upload_images(
    db: DynamoDBService,
    s3: S3Service,
    candidates: List[UploadCandidate],
    tags: Optional[List[str]] = None,
) -> UploadOutcome:
    """
        Uploads validated files one after another.

        The first failure stops the batch. Files before it stay uploaded and
        are returned in `uploaded` next to the failure.
    """
    outcome = UploadOutcome()
    for candidate in candidates:
        key = random_object_name(candidate.filename, candidate.content_type)
        try:
            s3.upload(fileobj=BytesIO(candidate.data), key=key, content_type=candidate.content_type)
        except (BotoCoreError, ClientError) as e:
            log.error(f"S3 upload failed for {candidate.filename}: {e}")
            outcome.failed = UploadFailure(candidate.filename, f"Upload error: {e}")
            break

        image = Image(url=s3.public_url(key), tags=tags or None)
        try:
            db.put_image(image.to_item())
        except (BotoCoreError, ClientError) as e:
            log.error(f"DynamoDB put_image failed for {candidate.filename}: {e}")
            outcome.failed = UploadFailure(candidate.filename, f"Database error: {e}")
            break

        log.info("Uploaded %s as %s", candidate.filename, image.id)
        outcome.uploaded.append(image)
    return outcome
