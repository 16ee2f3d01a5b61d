# debrief/reporter.py
import logging
from typing import Iterable, List, Sequence

from debrief.models.case import Sentiment, SessionCapture
from debrief.models.aggregation import (
    CalibrationPoint,
    CalibrationSummary,
    CoverageResult,
    DashboardReport,
    FlaggedQuestion,
    SentimentSummary,
)

logger = logging.getLogger(__name__)

# confidence at or above this counts as "confident" on the calibration badges
HIGH_CONFIDENCE = 4


def summarize_sentiments(sentiments: Iterable[Sentiment]) -> SentimentSummary:
    counts = {"confident": 0, "uncertain": 0, "lost": 0}
    for s in sentiments:
        if s.sentiment in counts:
            counts[s.sentiment] += 1
    return SentimentSummary(**counts)


def summarize_calibration(points: Iterable[CalibrationPoint]) -> CalibrationSummary:
    summary = CalibrationSummary()
    for p in points:
        high = p.confidence >= HIGH_CONFIDENCE
        if p.was_correct and high:
            summary.well_calibrated += 1
        elif p.was_correct:
            summary.underconfident += 1
        elif high:
            summary.overconfident += 1
        else:
            summary.appropriately_uncertain += 1
    return summary


def anonymized_takeaways(captures: Iterable[SessionCapture]) -> List[str]:
    return [c.takeaway.strip() for c in captures if c.takeaway and c.takeaway.strip()]


def assemble_report(
    coverage: CoverageResult,
    total_students: int,
    sentiments: Iterable[Sentiment],
    captures: Iterable[SessionCapture],
    suggested_focus: Sequence[str],
    flagged_questions: Sequence[FlaggedQuestion],
    topic_votes: dict,
) -> DashboardReport:
    """Package the pipeline outputs into the dashboard payload."""
    report = DashboardReport(
        submission_count=coverage.submission_count,
        total_students=total_students,
        diagnosis_frequency=coverage.diagnosis_frequency,
        vindicate_coverage=coverage.vindicate_coverage,
        cant_miss_rate=coverage.cant_miss_rate,
        cant_miss_details=coverage.cant_miss_details,
        vindicate_gaps=coverage.vindicate_gaps,
        diagnosis_by_tier=coverage.diagnosis_by_tier,
        sentiment_summary=summarize_sentiments(sentiments),
        suggested_focus=list(suggested_focus),
        session_captures=anonymized_takeaways(captures),
        flagged_questions=list(flagged_questions),
        topic_votes=dict(topic_votes),
        confidence_calibration=coverage.confidence_calibration,
        calibration_summary=summarize_calibration(coverage.confidence_calibration),
        unconsidered_diagnoses=coverage.unconsidered_diagnoses,
    )
    logger.debug(
        f"[Dashboard] Report assembled: {report.submission_count}/{report.total_students} "
        f"submitted, {len(report.suggested_focus)} focus items"
    )
    return report
