from fastapi import APIRouter, Depends, UploadFile, File, Form
from fastapi.responses import JSONResponse
from typing import List, Optional
import logging

from cryptostickers.storage.dynamodb import DynamoDBService
from cryptostickers.storage.s3 import S3Service
from cryptostickers.dependencies.dependencies import get_s3_service, get_dynamodb_service, require_admin
from cryptostickers.admin.models import AdminState, ImageEdit, NewTag, UploadError, UploadResponse
from cryptostickers.admin.service import AdminEditor
from cryptostickers.admin.uploads import UploadCandidate
from cryptostickers.settings import settings

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)

def get_editor(
    db: DynamoDBService = Depends(get_dynamodb_service),
    s3: S3Service = Depends(get_s3_service),
) -> AdminEditor:
    return AdminEditor(db, s3)

async def read_candidate(file: UploadFile) -> UploadCandidate:
    """Reads an uploaded file, skipping the body when its size is already over the limit."""
    filename = file.filename or ""
    content_type = file.content_type or ""
    if file.size is not None and file.size > settings.max_upload_bytes:
        return UploadCandidate(filename=filename, content_type=content_type, declared_size=file.size)
    return UploadCandidate(filename=filename, content_type=content_type, data=await file.read())

@router.get("", response_model=AdminState)
def admin_state(editor: AdminEditor = Depends(get_editor)):
    """All images, newest first, and all tags."""
    return editor.state()

@router.post("/images", response_model=UploadResponse, status_code=201)
async def upload_images(
    files: List[UploadFile] = File(...),
    tags: Optional[str] = Form(None),  # Comma Separated Values
    editor: AdminEditor = Depends(get_editor),
):
    """
    Uploads a batch of images with the selected tags.

    The whole batch is validated first. Files are then stored one at a time;
    if one fails, the response is 502 and still lists the images stored before it.
    """
    tags_list = [t.strip() for t in tags.split(",") if t.strip()] if tags else []
    candidates = [await read_candidate(f) for f in files]
    outcome = editor.upload(candidates, tags_list)
    body = UploadResponse(
        images=outcome.uploaded,
        error=UploadError(filename=outcome.failed.filename, detail=outcome.failed.detail) if outcome.failed else None,
    )
    if outcome.failed:
        return JSONResponse(status_code=502, content=body.model_dump(mode="json"))
    return body

@router.put("/images/{image_id}", response_model=AdminState)
def edit_image(image_id: str, edit: ImageEdit, editor: AdminEditor = Depends(get_editor)):
    """Replaces the tags and description of an image."""
    editor.save_edit(image_id, edit.tags, edit.description)
    return editor.state()

@router.delete("/images/{image_id}", response_model=AdminState)
def delete_image(image_id: str, editor: AdminEditor = Depends(get_editor)):
    """Deletes the stored file and the image record."""
    editor.delete_image(image_id)
    return editor.state()

@router.post("/tags", response_model=AdminState, status_code=201)
def add_tag(new_tag: NewTag, editor: AdminEditor = Depends(get_editor)):
    editor.add_tag(new_tag.name)
    return editor.state()

@router.delete("/tags/{name}", response_model=AdminState)
def delete_tag(name: str, editor: AdminEditor = Depends(get_editor)):
    """Deletes a tag after removing it from every image."""
    editor.delete_tag(name)
    return editor.state()
