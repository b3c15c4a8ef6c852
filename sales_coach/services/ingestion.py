"""
Ingestion pipeline
Chunk → embed → store for topic content. Chunks are stored one by one; a
failure does not roll back chunks that were already stored, and every chunk
reports its own outcome.
"""
import asyncio
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional

from tqdm import tqdm

from sales_coach.errors import ValidationFailed
from sales_coach.models.section import ChunkIngestResult, IngestionReport
from sales_coach.services.chunking import DocumentChunker, PreparedSection
from sales_coach.utils.parser import DocumentParser

logger = logging.getLogger(__name__)

SECTIONS_TABLE = "topic_sections"
SUPPORTED_SUFFIXES = (".md", ".txt", ".pdf", ".docx")


class IngestionPipeline:
    """Stores topic content as embedded sections."""

    def __init__(
        self,
        chunker: DocumentChunker,
        embedding_service,
        database,
        document_store=None,
        parser: Optional[DocumentParser] = None,
        concurrency: int = 1,
    ):
        """
        Args:
            chunker: Chunker with the configured window sizes
            embedding_service: anything with ``async embed_query(text)``
            database: anything with ``async insert_one(table, row)``
            document_store: bucket wrapper, needed by :meth:`ingest_document`
            parser: file-to-text parser
            concurrency: default worker count; 1 keeps chunks sequential
        """
        self.chunker = chunker
        self.embedding_service = embedding_service
        self.database = database
        self.document_store = document_store
        self.parser = parser or DocumentParser()
        self.concurrency = max(1, concurrency)

    async def _store_section(self, topic_id: str, section: PreparedSection) -> ChunkIngestResult:
        embedding = await self.embedding_service.embed_query(section.content_markdown)
        row = await self.database.insert_one(
            SECTIONS_TABLE,
            {
                "topic_id": topic_id,
                "content": section.content,
                "content_markdown": section.content_markdown,
                "content_embedding": embedding,
                "metadata": section.metadata.to_row(),
            },
        )
        section_id = row.get("id")
        return ChunkIngestResult(
            chunk_index=section.chunk.chunk_index,
            status="inserted",
            section_id=str(section_id) if section_id is not None else None,
        )

    async def _ingest_sequential(self, topic_id: str, sections: List[PreparedSection]) -> List[ChunkIngestResult]:
        results: List[ChunkIngestResult] = []
        for position, section in enumerate(sections):
            try:
                results.append(await self._store_section(topic_id, section))
            except Exception as e:
                logger.error(f"[Ingest] chunk {section.chunk.chunk_index} of topic {topic_id} failed: {e}")
                results.append(
                    ChunkIngestResult(chunk_index=section.chunk.chunk_index, status="failed", error=str(e))
                )
                results.extend(
                    ChunkIngestResult(chunk_index=rest.chunk.chunk_index, status="skipped")
                    for rest in sections[position + 1:]
                )
                break
        return results

    async def _ingest_pooled(
        self, topic_id: str, sections: List[PreparedSection], concurrency: int
    ) -> List[ChunkIngestResult]:
        semaphore = asyncio.Semaphore(concurrency)

        async def worker(section: PreparedSection) -> ChunkIngestResult:
            async with semaphore:
                try:
                    return await self._store_section(topic_id, section)
                except Exception as e:
                    logger.error(f"[Ingest] chunk {section.chunk.chunk_index} of topic {topic_id} failed: {e}")
                    return ChunkIngestResult(
                        chunk_index=section.chunk.chunk_index, status="failed", error=str(e)
                    )

        return list(await asyncio.gather(*(worker(section) for section in sections)))

    async def ingest(
        self,
        topic_id: str,
        content: str,
        concurrency: Optional[int] = None,
        title: Optional[str] = None,
    ) -> IngestionReport:
        """
        Chunk, embed and store Markdown content under a topic.

        Sequentially (the default) the first failing chunk stops the run and
        the remaining chunks are reported as skipped. With a worker pool
        (``concurrency > 1``) every chunk is attempted.

        Args:
            topic_id: Owning topic
            content: Markdown source
            concurrency: Worker count for this call
            title: Section title; defaults to the first heading of the content

        Returns:
            Per-chunk results in chunk order

        Raises:
            ValidationFailed: if the content is blank
        """
        if not content.strip():
            raise ValidationFailed("No content to ingest")

        start = time.time()
        workers = max(1, concurrency or self.concurrency)
        section_title, sections = self.chunker.prepare_sections(content, title=title)
        logger.info(
            f"[Ingest] topic {topic_id}: {len(sections)} chunks titled '{section_title}' (workers: {workers})"
        )

        if workers == 1:
            results = await self._ingest_sequential(topic_id, sections)
        else:
            results = await self._ingest_pooled(topic_id, sections, workers)

        report = IngestionReport(
            topic_id=topic_id,
            title=section_title,
            total_chunks=len(sections),
            results=results,
        )
        logger.info(
            f"[Ingest] topic {topic_id}: {report.inserted_count}/{report.total_chunks} chunks stored "
            f"({time.time() - start:.2f}s)"
        )
        return report

    async def ingest_document(
        self, topic_id: str, bucket_path: str, concurrency: Optional[int] = None
    ) -> IngestionReport:
        """Download a stored file, extract its text and ingest it."""
        if self.document_store is None:
            raise RuntimeError("IngestionPipeline has no document store")

        info = await self.document_store.get(bucket_path)
        data = await self.document_store.download(bucket_path)
        content_type = (info.get("metadata") or {}).get("mimetype")
        text = self.parser.parse(data, bucket_path, content_type)
        return await self.ingest(topic_id, text, concurrency=concurrency)

    async def ingest_directory(self, topic_id: str, directory_path: str) -> Dict[str, IngestionReport]:
        """
        Ingest every supported file of a local directory into one topic.

        Returns:
            file name -> report; a file that fails to parse is logged and left out
        """
        files = sorted(
            p for p in Path(directory_path).rglob("*") if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES
        )
        reports: Dict[str, IngestionReport] = {}
        for path in tqdm(files, desc="Ingesting documents"):
            try:
                text = self.parser.parse(path.read_bytes(), path.name)
            except Exception as e:
                logger.error(f"[Ingest] could not read {path}: {e}")
                continue
            try:
                reports[path.name] = await self.ingest(topic_id, text)
            except ValidationFailed:
                logger.warning(f"[Ingest] {path.name} has no text, skipped")
        return reports
