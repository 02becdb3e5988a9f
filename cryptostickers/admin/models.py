from typing import List, Optional
from pydantic import BaseModel

from cryptostickers.gallery.models import Image, Tag

class AdminState(BaseModel):
    images: List[Image]
    tags: List[Tag]

class ImageEdit(BaseModel):
    tags: Optional[List[str]] = None
    description: Optional[str] = None

class NewTag(BaseModel):
    name: str

class UploadError(BaseModel):
    filename: str
    detail: str

class UploadResponse(BaseModel):
    images: List[Image]
    error: Optional[UploadError] = None
