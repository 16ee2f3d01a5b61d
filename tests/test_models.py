import uuid

from debrief.models.case import AnswerKeyEntry, CachedFeedback, DiagnosisEntry, Submission


def test_submission_tolerates_nulls_and_uuid_ids():
    user = uuid.uuid4()
    sub = Submission.model_validate({
        "user_id": user,
        "status": "resubmitted",
        "diagnoses": None,
        "feedback": {"cant_miss_hit": None, "cant_miss_missed": ["PE"], "ai_narrative": "..."},
    })
    assert sub.user_id == str(user)
    assert sub.diagnoses == []
    assert sub.feedback == CachedFeedback(cant_miss_hit=[], cant_miss_missed=["PE"])
    assert sub.is_eligible


def test_draft_is_not_eligible():
    assert not Submission(user_id="s1", status="draft").is_eligible


def test_answer_key_shorthand_fields():
    entry = AnswerKeyEntry.model_validate(
        {"diagnosis": "MI", "aliases": None, "tier": "most_likely", "cant_miss": True, "category": "V"}
    )
    assert entry.is_cant_miss
    assert entry.vindicate_category == "V"
    assert entry.aliases == []


def test_categories_prefer_list_over_legacy_field():
    entry = DiagnosisEntry(diagnosis="x", vindicate_categories=["A"], vindicate_category="V")
    assert entry.categories() == ["A"]
    assert DiagnosisEntry(diagnosis="x", vindicate_categories=[], vindicate_category="V").categories() == []
    assert DiagnosisEntry(diagnosis=None).diagnosis == ""


def test_unusable_confidence_is_treated_as_unrated():
    assert DiagnosisEntry(diagnosis="x", confidence=3.5).confidence is None
    assert DiagnosisEntry(diagnosis="x", confidence="high").confidence is None
    assert DiagnosisEntry(diagnosis="x", confidence=True).confidence is None
    assert DiagnosisEntry(diagnosis="x", confidence=4.0).confidence == 4
    assert DiagnosisEntry(diagnosis="x", confidence=" 2 ").confidence == 2


def test_non_string_category_tags_are_dropped():
    entry = DiagnosisEntry.model_validate(
        {"diagnosis": "x", "vindicate_categories": ["V", None, 7, "I"], "vindicate_category": 3}
    )
    assert entry.categories() == ["V", "I"]
    assert DiagnosisEntry(diagnosis="x", vindicate_categories="V").categories() == []


def test_malformed_line_is_dropped_not_the_submission():
    sub = Submission.model_validate({
        "user_id": "s1",
        "status": "submitted",
        "diagnoses": [{"diagnosis": {"nested": True}}, "GERD", {"diagnosis": "PE", "confidence": 5}],
    })
    assert [d.diagnosis for d in sub.diagnoses] == ["PE"]
    assert sub.diagnoses[0].confidence == 5
