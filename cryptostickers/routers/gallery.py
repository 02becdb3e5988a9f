from fastapi import APIRouter, Depends, Query
from typing import List, Optional
import logging

from cryptostickers.storage.dynamodb import DynamoDBService
from cryptostickers.storage.s3 import S3Service
from cryptostickers.dependencies.dependencies import get_dynamodb_service, get_s3_service
from cryptostickers.gallery.models import DownloadLink, FilterState, GalleryView, Image, SortOrder, Tag
from cryptostickers.gallery.service import GalleryState, download_link, fetch_tags, increment_views

log = logging.getLogger(__name__)

router = APIRouter(tags=["gallery"])

@router.get("/images", response_model=GalleryView)
def list_images(
    tag: Optional[str] = Query(None),
    q: Optional[str] = Query(None, max_length=200),
    sort: SortOrder = Query(SortOrder.recent),
    db: DynamoDBService = Depends(get_dynamodb_service),
):
    """Gallery images filtered by tag and search text, in the requested order."""
    state = GalleryState(db, FilterState(tag=tag or None, query=q or "", sort=sort))
    state.refresh()
    return state.view()

@router.get("/tags", response_model=List[Tag])
def list_tags(db: DynamoDBService = Depends(get_dynamodb_service)):
    return fetch_tags(db)

@router.post("/images/{image_id}/views", response_model=Image)
def count_view(image_id: str, db: DynamoDBService = Depends(get_dynamodb_service)):
    """Counts one view of an image, called when its detail view opens."""
    return increment_views(db, image_id)

@router.get("/images/{image_id}/download", response_model=DownloadLink)
def get_download_link(
    image_id: str,
    expires_in: Optional[int] = Query(None, ge=60, le=86400, description="Expiration time in seconds (60-86400)"),
    db: DynamoDBService = Depends(get_dynamodb_service),
    s3: S3Service = Depends(get_s3_service),
):
    """
    Generates a presigned URL that downloads the image as crypto-sticker.png.

    The URL is valid for a limited time (default 15 minutes, max 24 hours).
    """
    return download_link(db, s3, image_id, expires_in)
