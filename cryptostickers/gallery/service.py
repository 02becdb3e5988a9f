from typing import List, Optional
import logging
from botocore.exceptions import BotoCoreError, ClientError

from cryptostickers.storage.dynamodb import DynamoDBService
from cryptostickers.storage.s3 import S3Service, object_name_from_url
from cryptostickers.settings import settings
from cryptostickers.gallery.models import (
    DownloadLink,
    FilterState,
    GalleryStatus,
    GalleryView,
    Image,
    SortOrder,
    Tag,
)
from cryptostickers.exceptions import (
    APIException,
    DynamoDBException,
    ImageNotFoundException,
    InvalidImageException,
    StorageException,
)

log = logging.getLogger(__name__)

# ------------------------------
# Pure derivation
# ------------------------------

def matches_tag(image: Image, tag: Optional[str]) -> bool:
    if not tag:
        return True
    return image.tags is not None and tag in image.tags

def matches_query(image: Image, query: Optional[str]) -> bool:
    """Case-insensitive substring of the description, or a case-insensitive tag name match."""
    needle = (query or "").strip().lower()
    if not needle:
        return True
    if image.description and needle in image.description.lower():
        return True
    return any(needle == name.lower() for name in image.tags or [])

def filter_images(images: List[Image], tag: Optional[str] = None, query: Optional[str] = None) -> List[Image]:
    return [img for img in images if matches_tag(img, tag) and matches_query(img, query)]

def sort_images(images: List[Image], order: SortOrder) -> List[Image]:
    by_recent = sorted(images, key=lambda img: img.created_at, reverse=True)
    if order == SortOrder.popular:
        # sorted() is stable, so equal view counts stay newest first
        return sorted(by_recent, key=lambda img: img.views, reverse=True)
    return by_recent

def derive_gallery(
    images: Optional[List[Image]],
    tags: Optional[List[Tag]],
    filter_state: FilterState,
    selected_image: Optional[Image] = None,
) -> GalleryView:
    """Projects the cached collections and the filter onto what the gallery shows."""
    if images is None:
        return GalleryView(images=[], tags=tags or [], filter=filter_state, status=GalleryStatus.loading)
    displayed = filter_images(images, filter_state.tag, filter_state.query)
    return GalleryView(
        images=displayed,
        tags=tags or [],
        filter=filter_state,
        status=GalleryStatus.ok if displayed else GalleryStatus.no_results,
        selected_image=selected_image,
    )

# ------------------------------
# Remote reads
# ------------------------------

def fetch_images(db: DynamoDBService, sort: SortOrder = SortOrder.recent) -> List[Image]:
    """Fetches every image, ordered for display."""
    try:
        items = db.scan_images()
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB fetch_images failed: {e}")
        raise DynamoDBException(f"Failed to fetch images: {e}")
    return sort_images([Image.from_item(it) for it in items], sort)

def fetch_tags(db: DynamoDBService) -> List[Tag]:
    """Fetches every tag, ordered by name."""
    try:
        items = db.scan_tags()
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB fetch_tags failed: {e}")
        raise DynamoDBException(f"Failed to fetch tags: {e}")
    return sorted((Tag.from_item(it) for it in items), key=lambda t: t.name)

def increment_views(db: DynamoDBService, image_id: str) -> Image:
    try:
        item = db.increment_views(image_id)
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB increment_views failed: {e}")
        raise DynamoDBException(f"Failed to increment views: {e}")
    if not item:
        raise ImageNotFoundException(image_id)
    return Image.from_item(item)

def download_link(db: DynamoDBService, s3: S3Service, image_id: str, expires_in: Optional[int] = None) -> DownloadLink:
    """
        Builds a time-limited link that downloads the image as an attachment.
    """
    try:
        item = db.get_image(image_id)
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB get_image failed: {e}")
        raise DynamoDBException(f"Failed to get image: {e}")
    if not item:
        raise ImageNotFoundException(image_id)

    key = object_name_from_url(item.get("url", ""))
    if not key:
        raise InvalidImageException("Invalid file URL")
    expires = expires_in or settings.download_expire_seconds
    try:
        url = s3.generate_download_url(key, expires_in=expires)
    except (BotoCoreError, ClientError) as e:
        log.error(f"Failed to generate presigned URL: {e}")
        raise StorageException(f"Failed to generate download URL: {e}")
    return DownloadLink(image_id=image_id, download_url=url, expires_in=expires)

# ------------------------------
# Gallery state
# ------------------------------

class GalleryState:
    """
        Cached collections plus the visitor's filter.

        Every change goes through one of the methods below and the displayed
        list is always recomputed by `view()` from scratch.
    """

    def __init__(self, db: DynamoDBService, filter_state: Optional[FilterState] = None):
        self.db = db
        self.filter = filter_state or FilterState()
        self.images: Optional[List[Image]] = None
        self.tags: Optional[List[Tag]] = None
        self.selected_image: Optional[Image] = None

    def refresh(self):
        self.images = fetch_images(self.db, self.filter.sort)
        self.tags = fetch_tags(self.db)

    def select_tag(self, name: Optional[str]):
        """Selects a tag, or clears it when it is already selected. Closes the open image."""
        tag = None if name == self.filter.tag else name
        self.filter = self.filter.model_copy(update={"tag": tag})
        self.selected_image = None

    def set_query(self, query: Optional[str]):
        self.filter = self.filter.model_copy(update={"query": query or ""})

    def set_sort(self, order: SortOrder):
        if order == self.filter.sort and self.images is not None:
            return
        self.filter = self.filter.model_copy(update={"sort": order})
        self.images = fetch_images(self.db, order)

    def reset(self):
        self.filter = FilterState(sort=self.filter.sort)
        self.selected_image = None
        self.refresh()

    def open_image(self, image_id: str) -> Optional[Image]:
        image = next((img for img in self.images or [] if img.id == image_id), None)
        if image is None:
            return None
        try:
            image = increment_views(self.db, image_id)
            self.images = [image if img.id == image_id else img for img in self.images]
        except APIException as e:
            log.error(f"Error incrementing views for {image_id}: {e.detail}")
        self.selected_image = image
        return image

    def view(self) -> GalleryView:
        return derive_gallery(self.images, self.tags, self.filter, self.selected_image)
