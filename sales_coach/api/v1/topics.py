"""
Topic API
Topic CRUD, content upload (chunk + embed), grounded Q&A and learning-path
generation.
"""
import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from sales_coach.dependencies import get_activities, get_database, get_ingestion, get_retrieval
from sales_coach.errors import ValidationFailed
from sales_coach.models.topic import (
    TopicContentUpload,
    TopicCreate,
    TopicDocumentIngest,
    TopicQuery,
    TopicUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/topics", tags=["topics"])

TOPICS_TABLE = "topics"
LEARNING_PATHS_TABLE = "learning_paths"
TOPIC_WITH_SECTIONS = "*, topic_sections(*)"
DEFAULT_DURATION_HOURS = 2


async def _get_topic(database, topic_id: str, columns: str = "*"):
    return await database.select_one(TOPICS_TABLE, {"id": topic_id}, columns=columns, not_found="Topic not found")


@router.get("")
async def list_topics(database=Depends(get_database)):
    topics = await database.select(TOPICS_TABLE, order_by="created_at", descending=True)
    return {"status": "success", "data": topics}


@router.post("", status_code=201)
async def create_topic(body: TopicCreate, database=Depends(get_database)):
    topic = await database.insert_one(TOPICS_TABLE, body.model_dump())
    return {"status": "success", "data": topic}


@router.get("/{topic_id}")
async def get_topic(topic_id: str, database=Depends(get_database)):
    topic = await _get_topic(database, topic_id, TOPIC_WITH_SECTIONS)
    return {"status": "success", "data": topic}


@router.patch("/{topic_id}")
async def update_topic(topic_id: str, body: TopicUpdate, database=Depends(get_database)):
    values = body.model_dump(exclude_unset=True)
    if not values:
        raise ValidationFailed("Nothing to update")
    rows = await database.update(TOPICS_TABLE, values, {"id": topic_id})
    if not rows:
        await _get_topic(database, topic_id)
    return {"status": "success", "data": rows[0] if rows else None}


@router.delete("/{topic_id}")
async def delete_topic(topic_id: str, database=Depends(get_database)):
    await database.delete(TOPICS_TABLE, {"id": topic_id})
    return {"status": "success", "data": "Topic deleted successfully"}


@router.post("/{topic_id}/upload")
async def upload_topic_content(
    topic_id: str,
    body: TopicContentUpload,
    ingestion=Depends(get_ingestion),
):
    """
    Chunk, embed and store Markdown content as topic sections.

    Answers 201 when every chunk was stored, otherwise 400 with the per-chunk
    report (chunks stored before a failure are kept).
    """
    report = await ingestion.ingest(topic_id, body.content, concurrency=body.concurrency)
    if not report.succeeded:
        return JSONResponse(
            status_code=400,
            content={
                "status": "error",
                "message": "Failed to insert section",
                "data": jsonable_encoder(report),
            },
        )
    return JSONResponse(status_code=201, content={"status": "success", "data": jsonable_encoder(report)})


@router.post("/{topic_id}/ingest-document")
async def ingest_topic_document(
    topic_id: str,
    body: TopicDocumentIngest,
    database=Depends(get_database),
    ingestion=Depends(get_ingestion),
):
    """Ingest a file that was uploaded to the documents bucket."""
    await _get_topic(database, topic_id)
    report = await ingestion.ingest_document(topic_id, body.bucket_path, concurrency=body.concurrency)
    status_code = 201 if report.succeeded else 400
    payload = {"status": "success" if report.succeeded else "error", "data": jsonable_encoder(report)}
    if not report.succeeded:
        payload["message"] = "Failed to insert section"
    return JSONResponse(status_code=status_code, content=payload)


@router.post("/{topic_id}/query")
async def query_topic(
    topic_id: str,
    body: TopicQuery,
    database=Depends(get_database),
    retrieval=Depends(get_retrieval),
):
    start_time = time.time()
    topic = await _get_topic(database, topic_id)
    result = await retrieval.answer(body.query, topic_id, topic.get("title") or "", limit=body.limit)
    logger.info(
        f"[Topics] query on {topic_id} answered with {len(result['context'])} sections "
        f"({time.time() - start_time:.2f}s)"
    )
    return {"status": "success", "data": result}


@router.post("/{topic_id}/generate")
async def generate_learning_path(
    topic_id: str,
    database=Depends(get_database),
    activities=Depends(get_activities),
):
    """Create a learning path for the topic and fill it with generated activities."""
    topic = await _get_topic(database, topic_id, TOPIC_WITH_SECTIONS)
    learning_path = await database.insert_one(
        LEARNING_PATHS_TABLE,
        {
            "title": topic.get("title"),
            "description": topic.get("description"),
            "duration_estimate_hours": DEFAULT_DURATION_HOURS,
            "topic_id": topic.get("id", topic_id),
        },
    )
    activity_ids = await activities.generate_for_topic(learning_path["id"], topic.get("topic_sections") or [])
    return {"status": "success", "data": {**learning_path, "activity_ids": activity_ids}}
