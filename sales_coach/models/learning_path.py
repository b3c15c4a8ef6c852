"""
Learning path and activity models
An activity's ``config`` payload is selected by its ``type``.
"""
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


class SlideConfig(BaseModel):
    content: str
    title: Optional[str] = None
    media_url: Optional[str] = None
    media_type: Optional[Literal["image", "video"]] = None
    narration: Optional[str] = None


class QuizConfig(BaseModel):
    question: str
    options: List[str] = Field(min_length=2)
    correct_answer: int = Field(ge=0)
    explanation: Optional[str] = None
    narration: Optional[str] = None


class FlashcardData(BaseModel):
    front: str
    back: str
    tags: Optional[List[str]] = None


class FlashcardConfig(BaseModel):
    cards: List[FlashcardData]
    narration: Optional[str] = None


class FillBlank(BaseModel):
    position: int
    correct_answers: List[str]
    feedback: Optional[str] = None


class FillBlanksConfig(BaseModel):
    instruction: str
    text_with_blanks: str
    blanks: List[FillBlank]
    success_message: Optional[str] = None
    narration: Optional[str] = None


class MatchingPair(BaseModel):
    left: str
    right: str


class MatchingConfig(BaseModel):
    instruction: str
    pairs: List[MatchingPair]
    success_message: Optional[str] = None
    narration: Optional[str] = None


class EmbedConfig(BaseModel):
    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    embed_type: Literal["video", "article"]


class _ActivityBase(BaseModel):
    id: Optional[str] = None
    title: str
    description: Optional[str] = None
    learning_path_id: Optional[str] = None


class SlideActivity(_ActivityBase):
    type: Literal["slide"]
    config: SlideConfig


class QuizActivity(_ActivityBase):
    type: Literal["quiz"]
    config: QuizConfig


class FlashcardActivity(_ActivityBase):
    type: Literal["flashcard"]
    config: FlashcardConfig


class FillBlanksActivity(_ActivityBase):
    type: Literal["fill_blanks"]
    config: FillBlanksConfig


class MatchingActivity(_ActivityBase):
    type: Literal["matching"]
    config: MatchingConfig


class EmbedActivity(_ActivityBase):
    type: Literal["embed"]
    config: EmbedConfig


Activity = Annotated[
    Union[
        SlideActivity,
        QuizActivity,
        FlashcardActivity,
        FillBlanksActivity,
        MatchingActivity,
        EmbedActivity,
    ],
    Field(discriminator="type"),
]

ActivityType = Literal["slide", "quiz", "flashcard", "fill_blanks", "matching", "embed"]

_activity_adapter = TypeAdapter(Activity)


def parse_activity(data: Dict[str, Any]) -> Activity:
    """Validate a raw activity dict into its typed variant."""
    return _activity_adapter.validate_python(data)


class LearningPathCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    duration_estimate_hours: Optional[float] = None
    topic_id: Optional[str] = None


class LearningPathUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    duration_estimate_hours: Optional[float] = None


class ActivitiesCreate(BaseModel):
    activities: List[Activity]


class EmbedActivityCreate(BaseModel):
    title: str = Field(min_length=1)
    url: str = Field(min_length=1)
    embed_type: Literal["video", "article"]


class GenerateActivitiesRequest(BaseModel):
    document_url: str = Field(min_length=1)


class GeneratedActivities(BaseModel):
    activities: List[Activity]
