import re
import logging
from typing import Iterable, List, Optional
from botocore.exceptions import BotoCoreError, ClientError

from cryptostickers.storage.dynamodb import DynamoDBService
from cryptostickers.gallery.models import Tag
from cryptostickers.gallery.service import fetch_tags
from cryptostickers.exceptions import (
    DuplicateTagException,
    DynamoDBException,
    InvalidTagException,
    TagCascadeException,
    TagNotFoundException,
)

log = logging.getLogger(__name__)

MAX_TAG_LENGTH = 50

_INVALID_CHARS = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUNS = re.compile(r"-+")

def sanitize_tag_name(raw: str) -> str:
    """Canonical tag name: lowercase letters, digits and single inner hyphens."""
    name = (raw or "").strip().lower()
    name = _INVALID_CHARS.sub("-", name)
    name = _HYPHEN_RUNS.sub("-", name)
    return name.strip("-")

def validate_new_tag(raw: str, existing: Iterable[str]) -> str:
    name = sanitize_tag_name(raw)
    if not name:
        raise InvalidTagException("Please enter a valid tag name using letters, numbers, and hyphens")
    if len(name) > MAX_TAG_LENGTH:
        raise InvalidTagException(f"Tag name is too long (maximum {MAX_TAG_LENGTH} characters)")
    if name in set(existing):
        raise DuplicateTagException(name)
    return name

def normalize_image_tags(names: Optional[Iterable[str]], known: Iterable[str]) -> Optional[List[str]]:
    """
        Tag list as stored on an image: known names only, no duplicates,
        and None instead of an empty list.
    """
    known = set(known)
    selected = []
    for name in names or []:
        if name not in known:
            raise InvalidTagException(f"Unknown tag: {name}")
        if name not in selected:
            selected.append(name)
    return selected or None

def add_tag(db: DynamoDBService, raw: str, existing: Optional[List[Tag]] = None) -> Tag:
    """Creates a tag from user input. Validation happens before any write."""
    if existing is None:
        existing = fetch_tags(db)
    tag = Tag(name=validate_new_tag(raw, (t.name for t in existing)))
    try:
        db.put_tag(tag.to_item())
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB put_tag failed: {e}")
        raise DynamoDBException(f"Failed to add tag: {e}")
    log.info("Added tag %s", tag.name)
    return tag

def delete_tag(db: DynamoDBService, name: str) -> List[str]:
    """
        Removes a tag from every image that carries it, then deletes the tag itself.

        Images are rewritten one at a time with no transaction. If a write fails
        the tag record is kept and the images rewritten so far stay rewritten;
        TagCascadeException lists them. Returns the ids of the rewritten images.
    """
    try:
        items = db.scan_images(tag=name)
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB scan_images failed: {e}")
        raise DynamoDBException(f"Failed to fetch images for tag '{name}': {e}")

    updated: List[str] = []
    for item in items:
        remaining = [t for t in (item.get("tags") or []) if t != name]
        try:
            db.update_image(item["id"], {"tags": remaining or None})
        except (BotoCoreError, ClientError) as e:
            log.error(f"Tag cascade for '{name}' failed on image {item['id']} after updating {updated}: {e}")
            raise TagCascadeException(name, updated, str(e))
        updated.append(item["id"])

    try:
        deleted = db.delete_tags_by_name(name)
    except (BotoCoreError, ClientError) as e:
        log.error(f"Tag cascade for '{name}' failed deleting the tag after updating {updated}: {e}")
        raise TagCascadeException(name, updated, str(e))

    if not deleted and not updated:
        raise TagNotFoundException(name)
    log.info("Deleted tag %s (removed from %d image(s))", name, len(updated))
    return updated
