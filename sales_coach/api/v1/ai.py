"""
AI API
Coaching chat, role-play feedback and text-to-speech.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from sales_coach.dependencies import get_feedback, get_llm
from sales_coach.models.feedback import FeedbackRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ai"])

CHAT_SYSTEM_PROMPT = (
    "You are a sales coach helping a rep prepare for customer conversations. "
    "No yapping, one paragraph, answer the question directly."
)


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    topic: Optional[str] = None


class SpeechRequest(BaseModel):
    text: str = Field(min_length=1)
    voice: Optional[str] = None


def chat_system_prompt(topic: Optional[str]) -> str:
    if not topic:
        return CHAT_SYSTEM_PROMPT
    return f"{CHAT_SYSTEM_PROMPT} Stay on the topic of {topic}."


@router.post("/api/ai/chat")
async def chat(body: ChatRequest, llm=Depends(get_llm)):
    reply = await llm.generate(
        body.message,
        system_prompt=chat_system_prompt(body.topic),
        model=llm.fast_model,
    )
    return {"status": "success", "data": {"response": reply}}


@router.post("/api/ai/feedback")
async def session_feedback(body: FeedbackRequest, feedback=Depends(get_feedback)):
    """Score a practice-call transcript and return readiness and coaching notes."""
    result = await feedback.evaluate_session(
        body.transcript,
        body.scenario_context,
        learning_outcomes=body.learning_outcomes,
        scenario_performance=body.scenario_performance,
    )
    return {"status": "success", "data": result}


@router.post("/api/tts")
async def text_to_speech(body: SpeechRequest, llm=Depends(get_llm)):
    audio = await llm.text_to_speech(body.text, voice=body.voice)
    return Response(content=audio, media_type="audio/mpeg")
