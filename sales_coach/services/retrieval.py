"""
Retrieval service
Embeds a question, finds the nearest stored sections and asks the LLM for an
answer grounded only in those sections.
"""
import logging
import time
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from sales_coach.errors import SearchError
from sales_coach.models.section import SearchResult

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.5
DEFAULT_LIMIT = 5
ANSWER_TEMPERATURE = 0.3

FALLBACK_ANSWER = "I don't have enough information to answer that question about this learning path."

SYSTEM_PROMPT = """You are a helpful AI assistant that answers questions about learning materials.
You are given sections from a learning path titled "{title}".
Your task is to answer the user's question based ONLY on the provided sections.
If the provided sections don't contain enough information to answer the question, admit that you don't know rather than making up information.
Be concise and accurate. Format your answers in markdown when appropriate."""

USER_PROMPT = """I have a question about {title}: {query}

Here are relevant sections from the learning material:

{sections}"""


def format_sections(results: List[SearchResult]) -> str:
    """Join result contents, each under a ``SECTION:`` marker."""
    return "\n\n".join(f"SECTION:\n{result.content}" for result in results)


def build_answer_messages(query: str, scope_title: str, results: List[SearchResult]) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT.format(title=scope_title)},
        {
            "role": "user",
            "content": USER_PROMPT.format(title=scope_title, query=query, sections=format_sections(results)),
        },
    ]


class RetrievalService:
    """Similarity search plus grounded answer generation."""

    def __init__(self, embedding_service, database, llm_service):
        """
        Args:
            embedding_service: anything with ``async embed_query(text)``
            database: anything with ``async match_sections(...)``
            llm_service: anything with ``async complete(messages, temperature)``
        """
        self.embedding_service = embedding_service
        self.database = database
        self.llm_service = llm_service

    async def search_sections(
        self,
        query: str,
        scope_id: Optional[str] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> List[SearchResult]:
        """
        Find stored sections similar to the query.

        Args:
            query: Question text
            scope_id: Restrict the search to one topic
            limit: Maximum results

        Returns:
            Sections above the similarity threshold, best first; [] if none

        Raises:
            EmbeddingError: if the query cannot be embedded
            SearchError: if the similarity search fails
        """
        search_start = time.time()
        embedding = await self.embedding_service.embed_query(query)
        logger.debug(f"[Retrieval] query embedded (dim {len(embedding)})")

        rows = await self.database.match_sections(
            query_embedding=embedding,
            match_threshold=SIMILARITY_THRESHOLD,
            match_count=limit,
            scope_filter=scope_id,
        )
        try:
            results = [SearchResult.model_validate(row) for row in rows or []]
        except ValidationError as e:
            logger.error(f"[Retrieval] malformed search row: {e.error_count()} errors")
            raise SearchError("Similarity search returned malformed rows") from e

        logger.info(
            f"[Retrieval] {len(results)} sections for scope={scope_id or 'all'} "
            f"({time.time() - search_start:.2f}s)"
        )
        if results:
            logger.debug(f"[Retrieval] top similarity: {results[0].similarity:.4f}")
        return results

    async def generate_answer(self, query: str, scope_title: str, results: List[SearchResult]) -> str:
        """
        Answer the query from the given sections only.

        With no sections the fixed fallback answer is returned and the LLM is
        not called.

        Raises:
            CompletionError: if the completion call fails
        """
        if not results:
            logger.info("[Retrieval] no sections, returning fallback answer")
            return FALLBACK_ANSWER

        messages = build_answer_messages(query, scope_title, results)
        return await self.llm_service.complete(messages, temperature=ANSWER_TEMPERATURE)

    async def answer(
        self,
        query: str,
        scope_id: Optional[str],
        scope_title: str,
        limit: int = DEFAULT_LIMIT,
    ) -> Dict[str, Any]:
        """
        Search and answer in one step.

        Returns:
            {"answer": str, "context": [{id, content, metadata, similarity}]}
        """
        results = await self.search_sections(query, scope_id, limit)
        answer = await self.generate_answer(query, scope_title, results)
        return {
            "answer": answer,
            "context": [
                {
                    "id": result.id,
                    "content": result.content_markdown,
                    "metadata": result.metadata,
                    "similarity": result.similarity,
                }
                for result in results
            ],
        }
