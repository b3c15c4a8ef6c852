"""
Service wiring
Clients are built once from settings and handed to the services explicitly;
routers reach them through FastAPI dependencies, which tests override.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends

from sales_coach.config import Settings, get_settings
from sales_coach.errors import ConfigError
from sales_coach.services.activities import ActivityGenerator
from sales_coach.services.chunking import DocumentChunker
from sales_coach.services.embedding import EmbeddingService
from sales_coach.services.feedback import FeedbackEngine
from sales_coach.services.ingestion import IngestionPipeline
from sales_coach.services.llm import LLMService
from sales_coach.services.retrieval import RetrievalService
from sales_coach.storage.database import Database
from sales_coach.storage.documents import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    database: Database
    documents: DocumentStore
    embedding: EmbeddingService
    llm: LLMService
    retrieval: RetrievalService
    ingestion: IngestionPipeline
    activities: ActivityGenerator
    feedback: FeedbackEngine


def build_services(
    settings: Settings,
    database,
    documents,
    embedding,
    llm,
) -> ServiceContainer:
    """Assemble the services around already-constructed collaborators."""
    chunker = DocumentChunker(settings.max_chunk_length, settings.chunk_overlap)
    return ServiceContainer(
        database=database,
        documents=documents,
        embedding=embedding,
        llm=llm,
        retrieval=RetrievalService(embedding, database, llm),
        ingestion=IngestionPipeline(
            chunker,
            embedding,
            database,
            document_store=documents,
            concurrency=settings.ingest_concurrency,
        ),
        activities=ActivityGenerator(llm, database, fetch_timeout=settings.request_timeout_seconds),
        feedback=FeedbackEngine(llm),
    )


def build_container(settings: Settings) -> ServiceContainer:
    """
    Construct the OpenAI and Supabase clients and every service.

    Raises:
        ConfigError: if credentials are missing
    """
    from openai import AsyncOpenAI
    from supabase import create_client

    if not settings.openai_api_key:
        raise ConfigError("OPENAI_API_KEY is not set")
    if not settings.supabase_url or not settings.supabase_key:
        raise ConfigError("SUPABASE_URL and SUPABASE_KEY must be set")

    openai_client = AsyncOpenAI(api_key=settings.openai_api_key)
    supabase_client = create_client(settings.supabase_url, settings.supabase_key)

    logger.info(f"[Services] chat model: {settings.chat_model}, embeddings: {settings.embedding_model}")
    return build_services(
        settings,
        database=Database(supabase_client),
        documents=DocumentStore(supabase_client, settings.documents_bucket),
        embedding=EmbeddingService(
            openai_client,
            model=settings.embedding_model,
            timeout=settings.llm_timeout_seconds,
        ),
        llm=LLMService(
            openai_client,
            model=settings.chat_model,
            fast_model=settings.fast_model,
            tts_model=settings.tts_model,
            tts_voice=settings.tts_voice,
            timeout=settings.llm_timeout_seconds,
        ),
    )


_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    global _container
    if _container is None:
        _container = build_container(get_settings())
    return _container


def get_database(container: ServiceContainer = Depends(get_container)):
    return container.database


def get_documents(container: ServiceContainer = Depends(get_container)):
    return container.documents


def get_llm(container: ServiceContainer = Depends(get_container)):
    return container.llm


def get_retrieval(container: ServiceContainer = Depends(get_container)):
    return container.retrieval


def get_ingestion(container: ServiceContainer = Depends(get_container)):
    return container.ingestion


def get_activities(container: ServiceContainer = Depends(get_container)):
    return container.activities


def get_feedback(container: ServiceContainer = Depends(get_container)):
    return container.feedback
