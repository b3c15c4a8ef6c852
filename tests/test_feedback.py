"""Tests for readiness scoring and session feedback."""

import asyncio

import pytest

from sales_coach.errors import CompletionError
from sales_coach.models.feedback import PerformanceScores
from sales_coach.services.feedback import DEFAULT_INSIGHT, FeedbackEngine, calculate_readiness_score


def _scores(pk, comm, disc, obj):
    return PerformanceScores(
        product_knowledge=pk,
        communication=comm,
        discovery=disc,
        objection_handling=obj,
        core_average=(pk + comm + disc + obj) / 4,
    )


class TestReadinessScore:
    def test_strong_session_without_scenario_scores(self):
        readiness = calculate_readiness_score(_scores(92, 92, 92, 92))

        assert readiness.core_component == pytest.approx(36.8)
        assert readiness.scenario_component == pytest.approx(27.6)
        assert readiness.threshold_component == pytest.approx(27.6)
        assert readiness.final_score == pytest.approx(92)
        assert (readiness.status, readiness.confidence_level) == ("Exceeds Ready", "High")

    def test_weak_competency_pulls_threshold_down(self):
        readiness = calculate_readiness_score(_scores(50, 80, 80, 90), {"demo": 80, "close": 60})

        assert readiness.core_component == pytest.approx(30)
        assert readiness.scenario_component == pytest.approx(21)
        assert readiness.threshold_component == pytest.approx(15)
        assert readiness.final_score == pytest.approx(66)
        assert (readiness.status, readiness.confidence_level) == ("Developing", "Medium")

    @pytest.mark.parametrize(
        "score,status,confidence",
        [
            (95, "Exceeds Ready", "High"),
            (85, "Ready", "High"),
            (75, "Mostly Ready", "Medium"),
            (65, "Developing", "Medium"),
        ],
    )
    def test_bands(self, score, status, confidence):
        readiness = calculate_readiness_score(_scores(score, score, score, score))
        assert readiness.final_score == pytest.approx(score)
        assert (readiness.status, readiness.confidence_level) == (status, confidence)

    def test_everything_below_sixty_needs_work(self):
        readiness = calculate_readiness_score(_scores(40, 50, 30, 20))
        assert (readiness.status, readiness.confidence_level) == ("Needs Work", "Low")


SCORING_REPLY = {
    "product_knowledge": 85,
    "communication": "78",
    "discovery": 82,
    "objection_handling": 71,
    "explanations": {"communication": "Professional tone"},
}


class TestFeedbackEngine:
    def test_evaluate_session(self, llm):
        llm.json_replies = [
            SCORING_REPLY,
            {"winning_talking_points": [{"point": "ROI story", "context": "after pricing", "why_effective": "concrete"}]},
            {"primary_finding": "Clear value", "improvement_area": "Pricing", "next_session_focus": "Objections"},
        ]

        feedback = asyncio.run(
            FeedbackEngine(llm).evaluate_session("Rep: Hi...", {"product": "CRM"}, scenario_performance={"demo": 80})
        )

        assert feedback.performance_scores.communication == 78
        assert feedback.performance_scores.core_average == pytest.approx(79)
        assert feedback.readiness.scenario_component == pytest.approx(24)
        assert [p.point for p in feedback.winning_talking_points] == ["ROI story"]
        assert feedback.key_insight.primary_finding == "Clear value"
        assert all(call["model"] == llm.fast_model and call["json_mode"] for call in llm.calls)

    def test_coaching_notes_fall_back_on_bad_replies(self, llm):
        llm.json_replies = [SCORING_REPLY, "not an object", {"primary_finding": "only one field"}]

        feedback = asyncio.run(FeedbackEngine(llm).evaluate_session("transcript", {}))

        assert feedback.winning_talking_points == []
        assert feedback.key_insight == DEFAULT_INSIGHT

    def test_unparseable_scores_raise(self, llm):
        llm.json_replies = [None]
        with pytest.raises(CompletionError):
            asyncio.run(FeedbackEngine(llm).evaluate_session("transcript", {}))
