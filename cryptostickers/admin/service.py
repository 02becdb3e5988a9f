from typing import List, Optional
import logging
from botocore.exceptions import BotoCoreError, ClientError

from cryptostickers.storage.dynamodb import DynamoDBService
from cryptostickers.storage.s3 import S3Service, object_name_from_url
from cryptostickers.gallery.models import Image, SortOrder, Tag
from cryptostickers.gallery.service import fetch_images, fetch_tags
from cryptostickers.admin import tags as tag_service
from cryptostickers.admin.models import AdminState
from cryptostickers.admin.uploads import UploadCandidate, UploadOutcome, upload_images, validate_upload_batch
from cryptostickers.exceptions import (
    DynamoDBException,
    ImageNotFoundException,
    InvalidImageException,
    StorageException,
)

log = logging.getLogger(__name__)

def get_image(db: DynamoDBService, image_id: str) -> Image:
    """Gets one image record from DynamoDB."""
    try:
        item = db.get_image(image_id)
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB get_image failed: {e}")
        raise DynamoDBException(f"Failed to get image: {e}")
    if not item:
        raise ImageNotFoundException(image_id)
    return Image.from_item(item)

def update_image(
    db: DynamoDBService,
    image_id: str,
    tags: Optional[List[str]],
    description: Optional[str],
) -> Image:
    """Replaces the tags and description of an image. An empty tag list is stored as null."""
    try:
        item = db.update_image(image_id, {"tags": tags or None, "description": description})
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB update_image failed: {e}")
        raise DynamoDBException(f"Failed to update image: {e}")
    if not item:
        raise ImageNotFoundException(image_id)
    log.info("Updated image %s", image_id)
    return Image.from_item(item)

def remove_image(db: DynamoDBService, s3: S3Service, image_id: str) -> Image:
    """Removes the stored object, then the image record."""
    image = get_image(db, image_id)
    key = object_name_from_url(image.url)
    if not key:
        raise InvalidImageException("Invalid file URL")
    try:
        s3.delete(key)
    except (BotoCoreError, ClientError) as e:
        log.error(f"S3 delete failed: {e}")
        raise StorageException(f"Failed to delete image from storage: {e}")
    try:
        db.delete_image(image_id)
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB delete_image failed: {e}")
        raise DynamoDBException(f"Failed to delete image record: {e}")
    log.info("Deleted image %s", image_id)
    return image


class AdminEditor:
    """
        Images and tags for the admin page, fetched on first use.

        Each mutation writes to the store first and only then updates the
        cached collections, so a failed call leaves them as they were.
    """

    def __init__(self, db: DynamoDBService, s3: S3Service,
                 images: Optional[List[Image]] = None, tags: Optional[List[Tag]] = None):
        self.db = db
        self.s3 = s3
        self._images = images
        self._tags = tags

    @property
    def images(self) -> List[Image]:
        if self._images is None:
            self._images = fetch_images(self.db, SortOrder.recent)
        return self._images

    @property
    def tags(self) -> List[Tag]:
        if self._tags is None:
            self._tags = fetch_tags(self.db)
        return self._tags

    @property
    def tag_names(self) -> List[str]:
        return [t.name for t in self.tags]

    def state(self) -> AdminState:
        return AdminState(images=self.images, tags=self.tags)

    def add_tag(self, raw: str) -> Tag:
        # Empty and over-long names are rejected before the tag list is fetched
        tag_service.validate_new_tag(raw, [])
        tag = tag_service.add_tag(self.db, raw, existing=self.tags)
        self._tags = sorted([*self.tags, tag], key=lambda t: t.name)
        return tag

    def delete_tag(self, name: str) -> List[str]:
        updated = tag_service.delete_tag(self.db, name)
        if self._tags is not None:
            self._tags = [t for t in self._tags if t.name != name]
        if self._images is not None:
            self._images = [
                img.model_copy(update={"tags": [t for t in img.tags if t != name] or None}) if img.tags else img
                for img in self._images
            ]
        return updated

    def save_edit(self, image_id: str, tags: Optional[List[str]], description: Optional[str]) -> Image:
        selected = tag_service.normalize_image_tags(tags, self.tag_names)
        image = update_image(self.db, image_id, selected, description)
        if self._images is not None:
            self._images = [image if img.id == image_id else img for img in self._images]
        return image

    def delete_image(self, image_id: str) -> Image:
        image = remove_image(self.db, self.s3, image_id)
        if self._images is not None:
            self._images = [img for img in self._images if img.id != image_id]
        return image

    def upload(self, candidates: List[UploadCandidate], tags: Optional[List[str]] = None) -> UploadOutcome:
        validate_upload_batch(candidates)
        selected = tag_service.normalize_image_tags(tags, self.tag_names) if tags else None
        outcome = upload_images(self.db, self.s3, candidates, selected)
        if self._images is not None:
            # Newest first, like fetch_images(recent)
            self._images = [*reversed(outcome.uploaded), *self._images]
        return outcome
