"""
Topic models
"""
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class TopicCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None


class TopicUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None


class TopicContentUpload(BaseModel):
    content: str = Field(min_length=1)
    concurrency: Optional[int] = Field(default=None, ge=1, le=16)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be blank")
        return value


class TopicDocumentIngest(BaseModel):
    bucket_path: str
    concurrency: Optional[int] = Field(default=None, ge=1, le=16)


class TopicQuery(BaseModel):
    query: str = Field(min_length=1)
    limit: int = Field(default=5, ge=1, le=20)
