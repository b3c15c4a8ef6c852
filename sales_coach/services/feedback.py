"""
Role-play feedback service
Scores a practice-call transcript, computes the readiness score and drafts
coaching notes.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from sales_coach.errors import CompletionError
from sales_coach.models.feedback import (
    KeyInsight,
    PerformanceScores,
    ReadinessCalculation,
    SessionFeedback,
    TalkingPoint,
)

logger = logging.getLogger(__name__)

CORE_WEIGHT = 0.4
SCENARIO_WEIGHT = 0.3
THRESHOLD_WEIGHT = 0.3
CRITICAL_THRESHOLD = 60

# (minimum final score, status, confidence), checked top down
READINESS_BANDS = [
    (90, "Exceeds Ready", "High"),
    (80, "Ready", "High"),
    (70, "Mostly Ready", "Medium"),
    (60, "Developing", "Medium"),
]

DEFAULT_INSIGHT = KeyInsight(
    primary_finding="Performance analysis completed",
    improvement_area="Continue practicing core skills",
    next_session_focus="Reinforce fundamentals",
)

SCORING_PROMPT = """
Analyze this sales call transcript and score the performance across these core competencies:

Transcript:
{transcript}

Scenario Context:
{scenario}

Learning Outcomes:
{outcomes}

Score each competency from 0-100 based on the success criteria:
1. Product Knowledge & Application
2. Communication & Confidence
3. Discovery & Active Listening
4. Objection Handling & Follow-up

Return a JSON object with scores and brief explanations:
{{
  "product_knowledge": 85,
  "communication": 78,
  "discovery": 82,
  "objection_handling": 71,
  "explanations": {{
    "product_knowledge": "Strong feature knowledge, good use case mapping",
    "communication": "Professional tone, minor hesitations",
    "discovery": "Good questioning, could dig deeper on pain points",
    "objection_handling": "Addressed concerns but didn't fully overcome price objection"
  }}
}}
"""

TALKING_POINTS_PROMPT = """
Based on this sales call transcript and performance, identify 2-3 winning talking points that were most effective:

Transcript:
{transcript}

Scenario Context:
{scenario}

Performance Scores:
{scores}

Return a JSON object:
{{
  "winning_talking_points": [
    {{
      "point": "Specific talking point or approach used",
      "context": "When/how it was used in the conversation",
      "why_effective": "Why this worked well for this scenario"
    }}
  ]
}}
"""

INSIGHT_PROMPT = """
Generate a key insight for this sales practice session:

Transcript:
{transcript}

Learning Outcomes:
{outcomes}

Performance Scores:
{scores}

Readiness Score:
{readiness}

Return a JSON object with actionable insights:
{{
  "primary_finding": "Main strength or breakthrough observed",
  "improvement_area": "Specific area needing attention",
  "next_session_focus": "Recommended focus for next practice session"
}}
"""


def calculate_readiness_score(
    core_scores: PerformanceScores,
    scenario_performance: Optional[Dict[str, float]] = None,
) -> ReadinessCalculation:
    """
    Combine competency scores into a readiness score.

    - core: 40% of the core average
    - scenario: 30% of the mean scenario score (the core average when there
      are no scenario scores)
    - threshold: 30% of the weakest competency when it is below 60,
      otherwise 30% of the core average

    Args:
        core_scores: Scores for the four core competencies
        scenario_performance: Scenario outcome -> score (0-100)

    Returns:
        Components, final score, status and confidence level
    """
    core_average = core_scores.core_average
    core_component = core_average * CORE_WEIGHT

    scenario_values = list((scenario_performance or {}).values())
    scenario_average = sum(scenario_values) / len(scenario_values) if scenario_values else core_average
    scenario_component = scenario_average * SCENARIO_WEIGHT

    min_score = min(core_scores.core_scores())
    if min_score < CRITICAL_THRESHOLD:
        threshold_component = min_score * THRESHOLD_WEIGHT
    else:
        threshold_component = core_average * THRESHOLD_WEIGHT

    final_score = core_component + scenario_component + threshold_component

    status, confidence = "Needs Work", "Low"
    for floor, band_status, band_confidence in READINESS_BANDS:
        if final_score >= floor:
            status, confidence = band_status, band_confidence
            break

    return ReadinessCalculation(
        core_component=core_component,
        scenario_component=scenario_component,
        threshold_component=threshold_component,
        final_score=final_score,
        status=status,
        confidence_level=confidence,
    )


def _to_score(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class FeedbackEngine:
    """LLM-backed scoring and coaching for practice sessions."""

    def __init__(self, llm_service):
        self.llm = llm_service

    async def _ask_json(self, system: str, prompt: str, temperature: float, max_tokens: int) -> Any:
        return await self.llm.complete_json(
            [{"role": "system", "content": system}, {"role": "user", "content": prompt}],
            temperature=temperature,
            model=self.llm.fast_model,
            json_mode=True,
            max_tokens=max_tokens,
        )

    async def analyze_transcript(
        self,
        transcript: str,
        learning_outcomes: Optional[Dict[str, Any]],
        scenario_context: Dict[str, Any],
    ) -> PerformanceScores:
        """
        Score the four core competencies.

        Raises:
            CompletionError: if the model call fails or returns no JSON object
        """
        result = await self._ask_json(
            "You are an expert sales performance analyst. Analyze call transcripts objectively "
            "and provide specific, actionable feedback with numerical scores.",
            SCORING_PROMPT.format(
                transcript=transcript,
                scenario=json.dumps(scenario_context),
                outcomes=json.dumps(learning_outcomes or {}),
            ),
            temperature=0.3,
            max_tokens=800,
        )
        if not isinstance(result, dict):
            raise CompletionError("Failed to analyze transcript")

        scores = PerformanceScores(
            product_knowledge=_to_score(result.get("product_knowledge")),
            communication=_to_score(result.get("communication")),
            discovery=_to_score(result.get("discovery")),
            objection_handling=_to_score(result.get("objection_handling")),
            explanations={k: str(v) for k, v in (result.get("explanations") or {}).items()},
        )
        scores.core_average = sum(scores.core_scores()) / 4
        return scores

    async def generate_winning_talking_points(
        self,
        transcript: str,
        scenario_context: Dict[str, Any],
        performance_scores: PerformanceScores,
    ) -> List[TalkingPoint]:
        """Empty list when the model call fails."""
        try:
            result = await self._ask_json(
                "You are a sales performance analyst. Identify the most effective talking points "
                "from sales call transcripts.",
                TALKING_POINTS_PROMPT.format(
                    transcript=transcript,
                    scenario=json.dumps(scenario_context),
                    scores=performance_scores.model_dump_json(),
                ),
                temperature=0.7,
                max_tokens=600,
            )
            points = result.get("winning_talking_points", []) if isinstance(result, dict) else []
            return [TalkingPoint.model_validate(p) for p in points]
        except (CompletionError, ValidationError) as e:
            logger.error(f"[Feedback] talking points failed: {e}")
            return []

    async def generate_key_insight(
        self,
        transcript: str,
        learning_outcomes: Optional[Dict[str, Any]],
        performance_scores: PerformanceScores,
        readiness: ReadinessCalculation,
    ) -> KeyInsight:
        """Generic insight when the model call fails."""
        try:
            result = await self._ask_json(
                "You are a sales coach providing personalized insights. Focus on actionable, specific feedback.",
                INSIGHT_PROMPT.format(
                    transcript=transcript,
                    outcomes=json.dumps(learning_outcomes or {}),
                    scores=performance_scores.model_dump_json(),
                    readiness=readiness.model_dump_json(),
                ),
                temperature=0.7,
                max_tokens=400,
            )
            return KeyInsight.model_validate(result)
        except (CompletionError, ValidationError) as e:
            logger.error(f"[Feedback] key insight failed: {e}")
            return DEFAULT_INSIGHT.model_copy()

    async def evaluate_session(
        self,
        transcript: str,
        scenario_context: Dict[str, Any],
        learning_outcomes: Optional[Dict[str, Any]] = None,
        scenario_performance: Optional[Dict[str, float]] = None,
    ) -> SessionFeedback:
        scores = await self.analyze_transcript(transcript, learning_outcomes, scenario_context)
        readiness = calculate_readiness_score(scores, scenario_performance)
        logger.info(f"[Feedback] readiness {readiness.final_score:.1f} ({readiness.status})")

        talking_points = await self.generate_winning_talking_points(transcript, scenario_context, scores)
        insight = await self.generate_key_insight(transcript, learning_outcomes, scores, readiness)
        return SessionFeedback(
            performance_scores=scores,
            readiness=readiness,
            winning_talking_points=talking_points,
            key_insight=insight,
        )
