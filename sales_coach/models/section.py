"""
Topic section models
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


class TextChunk(BaseModel):
    """One piece of a chunked document, in source order."""

    model_config = ConfigDict(frozen=True)

    text: str
    chunk_index: int
    word_count: int


class SectionMetadata(BaseModel):
    """Metadata stored beside each topic section (JSON keys are camelCase)."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    chunk_index: int = Field(alias="chunkIndex")
    total_chunks: int = Field(alias="totalChunks")
    word_count: int = Field(alias="wordCount")

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class TopicSummary(BaseModel):
    title: str
    description: Optional[str] = None


class SearchResult(BaseModel):
    """A stored section returned by the similarity search."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    content: str
    content_markdown: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    topic_id: str
    similarity: float
    topics: Optional[TopicSummary] = None


class ChunkIngestResult(BaseModel):
    chunk_index: int
    status: Literal["inserted", "failed", "skipped"]
    section_id: Optional[str] = None
    error: Optional[str] = None


class IngestionReport(BaseModel):
    """Per-chunk outcome of one ingestion request."""

    topic_id: str
    title: str
    total_chunks: int
    results: List[ChunkIngestResult]

    @computed_field
    @property
    def succeeded(self) -> bool:
        return all(result.status == "inserted" for result in self.results)

    @computed_field
    @property
    def inserted_count(self) -> int:
        return sum(1 for result in self.results if result.status == "inserted")
