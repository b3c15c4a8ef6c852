"""
Role-play feedback models
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

ReadinessStatus = Literal["Exceeds Ready", "Ready", "Mostly Ready", "Developing", "Needs Work"]
ConfidenceLevel = Literal["High", "Medium", "Low"]


class PerformanceScores(BaseModel):
    """Scores (0-100) for the four core sales competencies."""

    product_knowledge: float = 0
    communication: float = 0
    discovery: float = 0
    objection_handling: float = 0
    core_average: float = 0
    explanations: Dict[str, str] = Field(default_factory=dict)

    def core_scores(self) -> List[float]:
        return [self.product_knowledge, self.communication, self.discovery, self.objection_handling]


class ReadinessCalculation(BaseModel):
    core_component: float
    scenario_component: float
    threshold_component: float
    final_score: float
    status: ReadinessStatus
    confidence_level: ConfidenceLevel


class TalkingPoint(BaseModel):
    point: str
    context: str = ""
    why_effective: str = ""


class KeyInsight(BaseModel):
    primary_finding: str
    improvement_area: str
    next_session_focus: str


class FeedbackRequest(BaseModel):
    transcript: str = Field(min_length=1)
    scenario_context: Dict[str, Any]
    learning_outcomes: Optional[Dict[str, Any]] = None
    scenario_performance: Dict[str, float] = Field(default_factory=dict)


class SessionFeedback(BaseModel):
    performance_scores: PerformanceScores
    readiness: ReadinessCalculation
    winning_talking_points: List[TalkingPoint]
    key_insight: KeyInsight
