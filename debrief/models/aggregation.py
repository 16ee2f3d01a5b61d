"""
Pydantic models for the cohort dashboard report.

Defines the per-submission match result handed from the matcher to the
aggregator, the intermediate coverage structures, and the final report
payload consumed by the instructor dashboard.
"""

from typing import Any, Dict, List, Optional, Set
from pydantic import BaseModel, ConfigDict, Field


# ========== MATCHING ==========

class CalibrationPoint(BaseModel):
    """One (confidence, correctness) pair from a rated diagnosis."""
    label: str = Field(..., description="Diagnosis text as the student wrote it")
    confidence: int = Field(..., description="Self-rated confidence, 1-5")
    was_correct: bool = Field(
        ...,
        serialization_alias="wasCorrect",
        description="TRUE if the diagnosis matches any answer-key name or alias"
    )


class SubmissionMatch(BaseModel):
    """Matcher output for a single eligible submission."""
    student_id: str
    diagnoses: List[str] = Field(
        default_factory=list,
        description="Distinct normalized diagnosis names, in the student's order"
    )
    hit_positions: List[int] = Field(
        default_factory=list,
        description="Answer-key positions of the entries the student hit, in key order"
    )
    categories: Set[str] = Field(
        default_factory=set,
        description="VINDICATE symbols the student tagged at least once"
    )
    calibration: List[CalibrationPoint] = Field(default_factory=list)


# ========== COVERAGE ==========

class DiagnosisCount(BaseModel):
    diagnosis: str
    count: int


class HitCount(BaseModel):
    """How many students reached an answer-key diagnosis."""
    diagnosis: str
    hit_count: int
    total: int


class CoverageResult(BaseModel):
    """Everything the aggregator folds out of the submitted cohort."""
    submission_count: int = 0
    diagnosis_frequency: List[DiagnosisCount] = Field(default_factory=list)
    vindicate_coverage: Dict[str, int] = Field(default_factory=dict)
    vindicate_gaps: List[str] = Field(default_factory=list)
    diagnosis_by_tier: Dict[str, List[HitCount]] = Field(default_factory=dict)
    cant_miss_details: List[HitCount] = Field(default_factory=list)
    cant_miss_rate: Optional[int] = Field(
        default=None,
        description="Integer percent of cached can't-miss hits; None when there is no data"
    )
    unconsidered_diagnoses: List[str] = Field(
        default_factory=list,
        description="Answer-key diagnoses no student reached"
    )
    confidence_calibration: List[CalibrationPoint] = Field(default_factory=list)


# ========== REPORT ==========

class CalibrationSummary(BaseModel):
    """Counts behind the calibration badges on the dashboard."""
    well_calibrated: int = 0
    overconfident: int = 0
    underconfident: int = 0
    appropriately_uncertain: int = 0


class SentimentSummary(BaseModel):
    confident: int = 0
    uncertain: int = 0
    lost: int = 0


class FlaggedQuestion(BaseModel):
    content: str
    student: str = "Anonymous"


class DashboardReport(BaseModel):
    """
    Complete aggregate for one case.
    This is what the dashboard and presenter views render.
    """
    model_config = ConfigDict(populate_by_name=True)

    submission_count: int = Field(..., description="Eligible (submitted/resubmitted) submissions")
    total_students: int = Field(..., description="Enrolled students with the student role")
    diagnosis_frequency: List[DiagnosisCount] = Field(default_factory=list)
    vindicate_coverage: Dict[str, int] = Field(default_factory=dict)
    cant_miss_rate: Optional[int] = None
    cant_miss_details: List[HitCount] = Field(default_factory=list)
    vindicate_gaps: List[str] = Field(default_factory=list)
    diagnosis_by_tier: Dict[str, List[HitCount]] = Field(default_factory=dict)
    sentiment_summary: SentimentSummary = Field(default_factory=SentimentSummary)
    suggested_focus: List[str] = Field(default_factory=list)
    session_captures: List[str] = Field(default_factory=list)
    flagged_questions: List[FlaggedQuestion] = Field(default_factory=list)
    topic_votes: Dict[str, int] = Field(default_factory=dict)
    confidence_calibration: List[CalibrationPoint] = Field(default_factory=list)
    calibration_summary: CalibrationSummary = Field(default_factory=CalibrationSummary)
    unconsidered_diagnoses: List[str] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict with the dashboard's field names."""
        return self.model_dump(mode="json", by_alias=True)
