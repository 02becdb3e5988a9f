from enum import Enum
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, Field
from uuid import uuid4

def new_id() -> str:
    """Generates a new unique record ID."""
    return str(uuid4())

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class Image(BaseModel):
    id: str = Field(default_factory=new_id)
    url: str
    tags: Optional[List[str]] = None
    views: int = Field(0, ge=0)
    created_at: datetime = Field(default_factory=utcnow)
    description: Optional[str] = None

    def to_item(self) -> Dict[str, Any]:
        item = self.model_dump()
        # Dynamo needs created_at as ISO string
        item["created_at"] = item["created_at"].isoformat()
        return item

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Image":
        return cls(
            id=item["id"],
            url=item["url"],
            tags=list(item["tags"]) if item.get("tags") else None,
            views=int(item.get("views", 0)),
            created_at=datetime.fromisoformat(item["created_at"]),
            description=item.get("description"),
        )

class Tag(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    created_at: datetime = Field(default_factory=utcnow)

    def to_item(self) -> Dict[str, Any]:
        item = self.model_dump()
        item["created_at"] = item["created_at"].isoformat()
        return item

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Tag":
        created_at = item.get("created_at")
        return cls(
            id=item["id"],
            name=item["name"],
            created_at=datetime.fromisoformat(created_at) if created_at else utcnow(),
        )

class SortOrder(str, Enum):
    recent = "recent"
    popular = "popular"

class GalleryStatus(str, Enum):
    loading = "loading"
    no_results = "no_results"
    ok = "ok"

class FilterState(BaseModel):
    tag: Optional[str] = None
    query: str = ""
    sort: SortOrder = SortOrder.recent

class GalleryView(BaseModel):
    images: List[Image]
    tags: List[Tag]
    filter: FilterState
    status: GalleryStatus
    selected_image: Optional[Image] = None

class DownloadLink(BaseModel):
    image_id: str
    download_url: str
    expires_in: int
