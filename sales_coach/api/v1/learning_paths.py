"""
Learning path API
"""
import logging

from fastapi import APIRouter, Depends

from sales_coach.dependencies import get_activities, get_database
from sales_coach.errors import ValidationFailed
from sales_coach.models.learning_path import (
    ActivitiesCreate,
    EmbedActivityCreate,
    GenerateActivitiesRequest,
    GeneratedActivities,
    LearningPathCreate,
    LearningPathUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/learning-paths", tags=["learning-paths"])

LEARNING_PATHS_TABLE = "learning_paths"
ACTIVITIES_TABLE = "activities"
PATH_WITH_ACTIVITIES = "*, activities(*)"


@router.get("")
async def list_learning_paths(database=Depends(get_database)):
    paths = await database.select(LEARNING_PATHS_TABLE, columns=PATH_WITH_ACTIVITIES)
    return {"status": "success", "data": paths}


@router.post("", status_code=201)
async def create_learning_path(body: LearningPathCreate, database=Depends(get_database)):
    path = await database.insert_one(LEARNING_PATHS_TABLE, body.model_dump(exclude_none=True))
    return {"status": "success", "data": path}


@router.get("/{path_id}")
async def get_learning_path(path_id: str, database=Depends(get_database)):
    path = await database.select_one(
        LEARNING_PATHS_TABLE,
        {"id": path_id},
        columns=PATH_WITH_ACTIVITIES,
        not_found="Learning path not found",
    )
    return {"status": "success", "data": path}


@router.put("/{path_id}")
async def update_learning_path(path_id: str, body: LearningPathUpdate, database=Depends(get_database)):
    values = body.model_dump(exclude_unset=True)
    if not values:
        raise ValidationFailed("Nothing to update")
    rows = await database.update(LEARNING_PATHS_TABLE, values, {"id": path_id})
    return {"status": "success", "data": rows}


@router.delete("/{path_id}")
async def delete_learning_path(path_id: str, database=Depends(get_database)):
    rows = await database.delete(LEARNING_PATHS_TABLE, {"id": path_id})
    return {"status": "success", "data": rows}


@router.post("/{path_id}/activities", status_code=201)
async def create_activities(path_id: str, body: ActivitiesCreate, database=Depends(get_database)):
    """Store activities (already validated against their type's config) under a path."""
    rows = [
        {**activity.model_dump(exclude_none=True, exclude={"id"}), "learning_path_id": path_id}
        for activity in body.activities
    ]
    if not rows:
        raise ValidationFailed("No activities provided")
    stored = await database.insert(ACTIVITIES_TABLE, rows)
    return {"status": "success", "data": stored}


@router.post("/{path_id}/activities/embed", status_code=201)
async def create_embed_activity(
    path_id: str,
    body: EmbedActivityCreate,
    activities=Depends(get_activities),
):
    """Attach a video or article link to a path."""
    activity_id = await activities.create_embed_activity(path_id, body.title, body.url, body.embed_type)
    return {"status": "success", "data": {"id": activity_id}}


@router.post("/{path_id}/activities/generate")
async def generate_activities(
    path_id: str,
    body: GenerateActivitiesRequest,
    activities=Depends(get_activities),
):
    """Draft activities from a document URL; the caller reviews and stores them."""
    drafted = await activities.generate_from_document(body.document_url)
    logger.info(f"[LearningPaths] drafted {len(drafted)} activities for path {path_id}")
    return {"status": "success", "data": GeneratedActivities(activities=drafted)}
