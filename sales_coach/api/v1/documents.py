"""
Documents API
Upload, list, download and delete raw training files in the storage bucket.
"""
import logging
import re
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile

from sales_coach.dependencies import get_documents
from sales_coach.errors import ValidationFailed
from sales_coach.models.document import StoredDocument, UploadedDocument
from sales_coach.utils.parser import ALLOWED_FILE_TYPES, MAX_FILE_SIZE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"])

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_TIMESTAMP_PREFIX = re.compile(r"^\d+_")


def storage_key(file_name: str, timestamp_ms: Optional[int] = None) -> str:
    """Bucket key for an upload: `{epoch ms}_{name with unsafe chars replaced}`."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{timestamp_ms}_{_UNSAFE_NAME_CHARS.sub('_', file_name)}"


def display_name(key: str) -> str:
    return _TIMESTAMP_PREFIX.sub("", key, count=1)


def to_stored_document(file: Dict[str, Any], url: Optional[str] = None) -> StoredDocument:
    metadata = file.get("metadata") or {}
    return StoredDocument(
        id=str(file.get("id") or file.get("name")),
        name=display_name(file["name"]),
        size=int(metadata.get("size") or 0),
        type=metadata.get("mimetype") or "application/octet-stream",
        created_at=str(file.get("created_at") or ""),
        url=url,
        bucket_path=file["name"],
    )


@router.get("")
async def list_documents(
    search: str = Query("", description="Filter by file name"),
    limit: int = Query(100, ge=1, le=1000),
    documents=Depends(get_documents),
):
    files = await documents.list(search=search, limit=limit)
    data = [to_stored_document(f, documents.public_url(f["name"])) for f in files]
    return {"status": "success", "data": data}


@router.post("/upload", status_code=201)
async def upload_document(
    file: UploadFile = File(..., description="Markdown, text, PDF or Word file"),
    documents=Depends(get_documents),
):
    """
    Store a training document.

    Accepts the types in ALLOWED_FILE_TYPES up to 10MB; the stored key is
    prefixed with the upload time so repeated names do not collide.
    """
    if file.content_type not in ALLOWED_FILE_TYPES:
        raise ValidationFailed(
            "Invalid file type. Allowed types: " + ", ".join(sorted(set(ALLOWED_FILE_TYPES.values())))
        )

    data = await file.read()
    if len(data) > MAX_FILE_SIZE:
        raise ValidationFailed("File size exceeds 10MB limit")
    if not data:
        raise ValidationFailed("File is empty")

    key = storage_key(file.filename or "document")
    stored = await documents.upload(key, data, file.content_type)

    uploaded = UploadedDocument(
        name=file.filename or key,
        size=len(data),
        type=file.content_type,
        path=stored["path"],
        url=documents.public_url(stored["path"]),
    )
    return {"status": "success", "data": uploaded}


@router.get("/{path}")
async def get_document(path: str, documents=Depends(get_documents)):
    file = await documents.get(path)
    return {"status": "success", "data": to_stored_document(file, documents.public_url(path))}


@router.get("/{path}/download")
async def download_document(path: str, documents=Depends(get_documents)):
    file = await documents.get(path)
    content = await documents.download(path)
    content_type = (file.get("metadata") or {}).get("mimetype") or "application/octet-stream"
    return Response(
        content=content,
        media_type=content_type,
        headers={"Content-Disposition": f'attachment; filename="{display_name(path)}"'},
    )


@router.delete("/{path}")
async def delete_document(path: str, documents=Depends(get_documents)):
    await documents.get(path)
    await documents.remove([path])
    return {"status": "success", "data": "Document deleted successfully"}
