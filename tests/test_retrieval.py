"""Tests for similarity search and grounded answers."""

import asyncio

import pytest

from fakes import section_row
from sales_coach.errors import CompletionError, EmbeddingError, SearchError
from sales_coach.models.section import SearchResult
from sales_coach.services.retrieval import (
    FALLBACK_ANSWER,
    SIMILARITY_THRESHOLD,
    RetrievalService,
    format_sections,
)


@pytest.fixture
def retrieval(embedding, database, llm):
    return RetrievalService(embedding, database, llm)


class TestSearchSections:
    def test_passes_embedding_threshold_and_scope(self, retrieval, database, embedding):
        database.match_rows = [section_row("s1"), section_row("s2", similarity=0.7)]

        results = asyncio.run(retrieval.search_sections("How do I handle price objections?", "t1", limit=3))

        assert [r.id for r in results] == ["s1", "s2"]
        assert embedding.calls == ["How do I handle price objections?"]
        call = database.match_calls[0]
        assert call["query_embedding"] == embedding.vector
        assert call["match_threshold"] == SIMILARITY_THRESHOLD
        assert call["match_count"] == 3
        assert call["scope_filter"] == "t1"

    def test_no_matches_returns_empty_list(self, retrieval, database):
        database.match_rows = []
        assert asyncio.run(retrieval.search_sections("anything")) == []

    def test_numeric_ids_are_accepted(self, retrieval, database):
        row = section_row()
        row["id"] = 42
        database.match_rows = [row]
        assert asyncio.run(retrieval.search_sections("q"))[0].id == "42"

    def test_embedding_failure_propagates(self, retrieval, embedding, database):
        embedding.error = EmbeddingError("Failed to generate embedding")
        with pytest.raises(EmbeddingError):
            asyncio.run(retrieval.search_sections("q"))
        assert database.match_calls == []

    def test_search_failure_propagates(self, retrieval, database):
        database.search_error = SearchError("Similarity search failed")
        with pytest.raises(SearchError):
            asyncio.run(retrieval.search_sections("q"))


    def test_malformed_row_is_search_error(self, retrieval, database):
        row = section_row()
        row["content_markdown"] = None
        database.match_rows = [row]
        with pytest.raises(SearchError):
            asyncio.run(retrieval.search_sections("q"))


class TestGenerateAnswer:
    def test_no_sections_returns_fallback_without_llm_call(self, retrieval, llm):
        answer = asyncio.run(retrieval.generate_answer("q", "Pricing", []))
        assert answer == FALLBACK_ANSWER
        assert llm.calls == []

    def test_prompt_contains_sections_and_title(self, retrieval, llm):
        results = [SearchResult.model_validate(section_row("s1", content="Discounts need approval."))]

        answer = asyncio.run(retrieval.generate_answer("Can I discount?", "Pricing Basics", results))

        assert answer == llm.default_reply
        call = llm.calls[0]
        assert call["temperature"] == 0.3
        system, user = call["messages"]
        assert system["role"] == "system" and "Pricing Basics" in system["content"]
        assert "ONLY" in system["content"]
        assert "Can I discount?" in user["content"]
        assert "SECTION:\nDiscounts need approval." in user["content"]

    def test_completion_failure_propagates(self, retrieval, llm):
        llm.error = CompletionError("Failed to generate completion")
        results = [SearchResult.model_validate(section_row())]
        with pytest.raises(CompletionError):
            asyncio.run(retrieval.generate_answer("q", "Pricing", results))


class TestAnswer:
    def test_context_uses_markdown_content(self, retrieval, database):
        database.match_rows = [section_row("s1", content="plain", markdown="**rich**", similarity=0.8)]

        result = asyncio.run(retrieval.answer("q", "t1", "Pricing"))

        assert result["answer"] == "A grounded answer."
        assert result["context"] == [
            {
                "id": "s1",
                "content": "**rich**",
                "metadata": {"title": "Pricing", "chunkIndex": 0, "totalChunks": 1, "wordCount": 2},
                "similarity": 0.8,
            }
        ]

    def test_empty_search_answers_with_fallback(self, retrieval, database, llm):
        result = asyncio.run(retrieval.answer("q", "t1", "Pricing"))
        assert result == {"answer": FALLBACK_ANSWER, "context": []}
        assert llm.calls == []


def test_format_sections_separates_blocks():
    results = [
        SearchResult.model_validate(section_row("a", content="first")),
        SearchResult.model_validate(section_row("b", content="second")),
    ]
    assert format_sections(results) == "SECTION:\nfirst\n\nSECTION:\nsecond"
