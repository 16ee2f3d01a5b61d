import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from debrief.models.case import AnswerKeyEntry, CaseRecord, DiagnosisEntry, Submission

FIXTURES = Path(__file__).parent / "fixtures"
CASE_ID = "6b1f8c0e-2d4a-4e5b-9c7d-1a2b3c4d5e6f"


def key_entry(diagnosis, tier="most_likely", category="V", cant_miss=False, aliases=()):
    return AnswerKeyEntry(
        diagnosis=diagnosis,
        aliases=list(aliases),
        tier=tier,
        vindicate_category=category,
        is_cant_miss=cant_miss,
    )


def submission(user_id, *diagnoses, status="submitted", feedback=None):
    """diagnoses are names or (name, categories, confidence) tuples."""
    entries = []
    for d in diagnoses:
        if isinstance(d, str):
            entries.append(DiagnosisEntry(diagnosis=d))
        else:
            name, categories, confidence = d
            entries.append(
                DiagnosisEntry(diagnosis=name, vindicate_categories=list(categories), confidence=confidence)
            )
    return Submission(user_id=user_id, diagnoses=entries, status=status, feedback=feedback)


@pytest.fixture
def chest_pain_key():
    return [
        key_entry("Acute Coronary Syndrome", aliases=["ACS"], cant_miss=True),
        key_entry("Pulmonary Embolism", tier="moderate", aliases=["PE"], cant_miss=True),
        key_entry("GERD", tier="moderate", category="I2"),
        key_entry("Pneumothorax", tier="unlikely_important", category="T", cant_miss=True),
    ]


@pytest.fixture
def chest_pain_case(chest_pain_key):
    return CaseRecord(id=CASE_ID, differential_answer_key=chest_pain_key)
