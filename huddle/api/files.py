"""File upload and retrieval endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File as FileParam, Form, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from huddle.api.deps import PageParams, get_current_user
from huddle.api.serializers import serialize_file
from huddle.core.storage import remove_stored, resolve_path, store_upload
from huddle.core.errors import ChatError
from huddle.core.ids import MAX_ENTITY_ID, PathId
from huddle.database import get_db
from huddle.models import User
from huddle.schemas import FilePage, FileRead
from huddle.services import files as file_service

router = APIRouter(prefix="/files", tags=["files"])


@router.post("", response_model=FileRead, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = FileParam(...),
    message_id: int | None = Form(default=None, ge=1, le=MAX_ENTITY_ID),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FileRead:
    stored = await store_upload(current_user.id, file)
    try:
        record = file_service.register_upload(db, current_user.id, stored, message_id)
    except ChatError:
        remove_stored(stored.relative_path)
        raise
    return serialize_file(record)


@router.get("", response_model=FilePage)
def list_my_files(
    page: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FilePage:
    result = file_service.list_files(db, current_user.id, limit=page.limit, cursor=page.cursor)
    return FilePage(
        files=[serialize_file(record) for record in result.items],
        has_more=result.has_more,
        next_cursor=result.next_cursor,
    )


@router.get("/{file_id}", response_model=FileRead)
def read_file(
    file_id: PathId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FileRead:
    return serialize_file(file_service.get_file(db, file_id, current_user.id))


@router.get("/{file_id}/download")
def download_file(
    file_id: PathId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FileResponse:
    record = file_service.get_file(db, file_id, current_user.id)
    path = resolve_path(record.storage_path)
    return FileResponse(path, media_type=record.content_type, filename=record.file_name)


@router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_file(
    file_id: PathId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> None:
    file_service.delete_file(db, file_id, current_user.id)
