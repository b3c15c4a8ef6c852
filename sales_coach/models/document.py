"""
Stored document models
"""
from typing import Optional

from pydantic import BaseModel


class StoredDocument(BaseModel):
    """A file in the documents bucket."""

    id: str
    name: str
    size: int
    type: str
    created_at: str
    url: Optional[str] = None
    bucket_path: str


class UploadedDocument(BaseModel):
    id: Optional[str] = None
    name: str
    size: int
    type: str
    path: str
    url: str
