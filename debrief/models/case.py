"""
Pydantic models for the rows the dashboard engine consumes.

These mirror the records the data-access layer returns for one case:
the case with its answer key, student submissions, instructor-flagged
notes, end-of-session sentiments and session takeaways.

All input models are frozen; the engine only reads them.
"""

import logging
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class Vindicate(str, Enum):
    """The nine VINDICATE etiologic categories, in mnemonic order."""
    V = "V"
    I = "I"
    N = "N"
    D = "D"
    I2 = "I2"
    C = "C"
    A = "A"
    T = "T"
    E = "E"


VINDICATE_ORDER: List[str] = [c.value for c in Vindicate]

VINDICATE_LABELS: Dict[str, str] = {
    "V": "Vascular",
    "I": "Infectious",
    "N": "Neoplastic",
    "D": "Degenerative",
    "I2": "Iatrogenic/Intoxication",
    "C": "Congenital",
    "A": "Autoimmune/Allergic",
    "T": "Traumatic",
    "E": "Endocrine/Metabolic",
}

Tier = Literal["most_likely", "moderate", "less_likely", "unlikely_important"]

TIER_ORDER: List[str] = ["most_likely", "moderate", "less_likely", "unlikely_important"]

SubmissionStatus = Literal["draft", "submitted", "resubmitted"]

ELIGIBLE_STATUSES = frozenset({"submitted", "resubmitted"})


class _Row(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


def _none_to_list(v):
    return [] if v is None else v


# ========== SUBMISSIONS ==========

class DiagnosisEntry(_Row):
    """One line of a student's differential."""
    diagnosis: str = Field(default="", description="Free-text diagnosis as typed by the student")
    vindicate_categories: Optional[List[str]] = Field(
        default=None,
        description="VINDICATE symbols tagged on this diagnosis"
    )
    vindicate_category: Optional[str] = Field(
        default=None,
        description="Legacy single-category field, used when vindicate_categories is absent"
    )
    confidence: Optional[int] = Field(default=None, description="Self-rated confidence, 1-5")
    reasoning: Optional[str] = None
    sort_order: Optional[int] = None

    @field_validator('diagnosis', mode='before')
    @classmethod
    def coerce_missing_diagnosis(cls, v):
        return "" if v is None else v

    @field_validator('confidence', mode='before')
    @classmethod
    def lenient_confidence(cls, v):
        """Keep whole-number ratings; anything else counts as unrated."""
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, int):
            return v
        if isinstance(v, float) and v.is_integer():
            return int(v)
        if isinstance(v, str) and v.strip().isdigit():
            return int(v.strip())
        logger.debug(f"Dropping unusable confidence value {v!r}")
        return None

    @field_validator('vindicate_categories', mode='before')
    @classmethod
    def lenient_categories(cls, v):
        if v is None:
            return None
        if not isinstance(v, (list, tuple)):
            logger.debug(f"Dropping non-list vindicate_categories {v!r}")
            return None
        kept = [c for c in v if isinstance(c, str)]
        if len(kept) != len(v):
            logger.debug(f"Dropped {len(v) - len(kept)} non-string VINDICATE tags")
        return kept

    @field_validator('vindicate_category', mode='before')
    @classmethod
    def lenient_legacy_category(cls, v):
        return v if isinstance(v, str) else None

    def categories(self) -> List[str]:
        """Category tags, falling back to the legacy single field."""
        if self.vindicate_categories is not None:
            return list(self.vindicate_categories)
        if self.vindicate_category:
            return [self.vindicate_category]
        return []


class CachedFeedback(_Row):
    """The part of a previously generated feedback record the dashboard reads."""
    cant_miss_hit: List[str] = Field(default_factory=list)
    cant_miss_missed: List[str] = Field(default_factory=list)

    @field_validator('cant_miss_hit', 'cant_miss_missed', mode='before')
    @classmethod
    def coerce_lists(cls, v):
        return _none_to_list(v)


class Submission(_Row):
    """A student's differential for one case."""
    user_id: str
    diagnoses: List[DiagnosisEntry] = Field(default_factory=list)
    status: SubmissionStatus
    feedback: Optional[CachedFeedback] = None

    @field_validator('user_id', mode='before')
    @classmethod
    def stringify_user_id(cls, v):
        # asyncpg hands back uuid.UUID for uuid columns
        return v if isinstance(v, str) else str(v)

    @field_validator('diagnoses', mode='before')
    @classmethod
    def coerce_diagnoses(cls, v):
        """Validate lines one by one so a single bad line doesn't sink the submission."""
        v = _none_to_list(v)
        if not isinstance(v, (list, tuple)):
            return v
        entries = []
        for raw in v:
            try:
                entries.append(DiagnosisEntry.model_validate(raw))
            except ValidationError as e:
                logger.debug(f"Skipping malformed diagnosis line: {e.error_count()} validation errors")
        return entries

    @property
    def is_eligible(self) -> bool:
        return self.status in ELIGIBLE_STATUSES


# ========== CASE / ANSWER KEY ==========

class AnswerKeyEntry(_Row):
    """One expected diagnosis in a case's answer key."""
    diagnosis: str = Field(..., description="Canonical diagnosis name")
    aliases: List[str] = Field(default_factory=list, description="Accepted synonyms, case-insensitive")
    tier: Tier
    vindicate_category: str = Field(
        default="",
        validation_alias=AliasChoices("vindicate_category", "category"),
    )
    is_cant_miss: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_cant_miss", "cant_miss"),
    )
    is_common: bool = False
    likelihood: Optional[str] = None

    @field_validator('aliases', mode='before')
    @classmethod
    def coerce_aliases(cls, v):
        return _none_to_list(v)


class CaseRecord(_Row):
    id: str
    differential_answer_key: List[AnswerKeyEntry] = Field(default_factory=list)

    @field_validator('id', mode='before')
    @classmethod
    def stringify_id(cls, v):
        return v if isinstance(v, str) else str(v)

    @field_validator('differential_answer_key', mode='before')
    @classmethod
    def coerce_answer_key(cls, v):
        return _none_to_list(v)


# ========== NOTES, SENTIMENTS, CAPTURES ==========

class Note(_Row):
    """Raw note row as stored."""
    content: Optional[str] = None
    is_sent_to_instructor: bool = True


class TopicVoteNote(_Row):
    """A note that carries a student's vote for debrief discussion topics."""
    kind: Literal["topic_vote"] = "topic_vote"
    topics: List[str] = Field(default_factory=list)
    free_text: Optional[str] = None


class QuestionNote(_Row):
    """An ordinary question or comment sent to the instructor."""
    kind: Literal["question"] = "question"
    text: str = ""


DecodedNote = Annotated[Union[TopicVoteNote, QuestionNote], Field(discriminator="kind")]


class Sentiment(_Row):
    sentiment: Optional[str] = None


class SessionCapture(_Row):
    takeaway: Optional[str] = None
