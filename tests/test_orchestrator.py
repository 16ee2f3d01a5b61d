import json

import pytest

from conftest import CASE_ID, FIXTURES, submission
from debrief.errors import CaseNotFoundError, DataSourceError, InvalidCaseIdError
from debrief.models.case import CaseRecord, DiagnosisEntry, Note, Sentiment, SessionCapture, Submission
from debrief.orchestrator import DebriefEngine, generate_dashboard, validate_case_id
from debrief.topic_votes import decode_note


class FakeCohortTools:
    """In-memory stand-in for CohortTools."""

    def __init__(self, case=None, submissions=(), total_students=0, notes=(),
                 sentiments=(), captures=(), fail_on=None):
        self.case = case
        self.submissions = list(submissions)
        self.total_students = total_students
        self.notes = list(notes)
        self.sentiments = list(sentiments)
        self.captures = list(captures)
        self.fail_on = fail_on
        self.calls = []

    def _record(self, name):
        self.calls.append(name)
        if name == self.fail_on:
            raise DataSourceError(name, "connection refused")

    async def get_case(self, case_id):
        self._record("get_case")
        return self.case

    async def get_eligible_submissions(self, case_id):
        self._record("get_eligible_submissions")
        return self.submissions

    async def count_students(self):
        self._record("count_students")
        return self.total_students

    async def get_instructor_notes(self, case_id):
        self._record("get_instructor_notes")
        return self.notes

    async def get_sentiments(self, case_id):
        self._record("get_sentiments")
        return self.sentiments

    async def get_session_captures(self, case_id):
        self._record("get_session_captures")
        return self.captures


def test_myocardial_infarction_scenario():
    case = CaseRecord.model_validate({
        "id": CASE_ID,
        "differential_answer_key": [{
            "diagnosis": "MI",
            "aliases": ["myocardial infarction"],
            "tier": "most_likely",
            "cant_miss": True,
            "category": "V",
        }],
    })
    submissions = [
        Submission(
            user_id="s1",
            status="submitted",
            diagnoses=[DiagnosisEntry(diagnosis="Myocardial Infarction", vindicate_categories=["V"], confidence=4)],
        ),
        Submission(user_id="s2", status="submitted", diagnoses=[]),
    ]

    payload = DebriefEngine().build_report(case, submissions, total_students=10).to_payload()

    assert payload["diagnosis_frequency"] == [{"diagnosis": "myocardial infarction", "count": 1}]
    assert payload["cant_miss_details"] == [{"diagnosis": "MI", "hit_count": 1, "total": 2}]
    assert payload["vindicate_coverage"] == {"V": 1}
    assert payload["vindicate_gaps"] == ["I", "N", "D", "I2", "C", "A", "T", "E"]
    assert payload["submission_count"] == 2
    assert payload["total_students"] == 10
    assert payload["confidence_calibration"] == [
        {"label": "Myocardial Infarction", "confidence": 4, "wasCorrect": True}
    ]
    assert payload["cant_miss_rate"] is None


def test_unflagged_notes_do_not_reach_the_report(chest_pain_case):
    notes = [
        Note(content="[TOPIC VOTE] Renal"),
        Note(content="[TOPIC VOTE] Renal", is_sent_to_instructor=False),
        Note(content="private scratch work", is_sent_to_instructor=False),
        Note(content="What about sepsis?"),
    ]
    report = DebriefEngine().build_report(chest_pain_case, [], total_students=5, notes=notes)

    assert report.topic_votes == {"Renal": 1}
    assert [q.content for q in report.flagged_questions] == ["What about sepsis?"]


def test_payload_has_dashboard_fields(chest_pain_case):
    payload = DebriefEngine().build_report(chest_pain_case, [], total_students=0).to_payload()

    assert set(payload) >= {
        "submission_count", "total_students", "diagnosis_frequency", "vindicate_coverage",
        "cant_miss_rate", "cant_miss_details", "vindicate_gaps", "diagnosis_by_tier",
        "sentiment_summary", "suggested_focus", "session_captures", "flagged_questions",
        "topic_votes", "confidence_calibration",
    }
    assert payload["sentiment_summary"] == {"confident": 0, "uncertain": 0, "lost": 0}
    assert payload["submission_count"] == 0
    assert payload["cant_miss_rate"] is None
    assert payload["suggested_focus"] == [
        "No one considered Vascular causes",
        "No one considered Infectious causes",
        "No one considered Neoplastic causes",
    ]
    json.dumps(payload)


def test_inputs_are_not_mutated(chest_pain_case):
    sub = submission("s1", ("ACS", ["V"], 5), "GERD")
    before = sub.model_dump()
    DebriefEngine().build_report(chest_pain_case, [sub], total_students=3)
    assert sub.model_dump() == before


def test_fixture_report():
    from cli.run_dashboard import load_fixture

    report = load_fixture(FIXTURES / "chest_pain_case.json", DebriefEngine())

    assert report.submission_count == 3
    assert report.total_students == 12
    assert [(d.diagnosis, d.count) for d in report.diagnosis_frequency] == [
        ("gerd", 2),
        ("panic attack", 2),
        ("acs", 1),
        ("myocardial infarction", 1),
        ("pulmonary embolism", 1),
        ("costochondritis", 1),
    ]
    assert report.vindicate_coverage == {"V": 2, "D": 2, "I2": 2, "A": 1, "T": 1}
    assert report.vindicate_gaps == ["I", "N", "C", "E"]
    assert [(h.diagnosis, h.hit_count) for h in report.cant_miss_details] == [
        ("Acute Coronary Syndrome", 2),
        ("Pulmonary Embolism", 1),
        ("Aortic Dissection", 0),
        ("Pneumothorax", 0),
    ]
    assert report.cant_miss_rate == 38
    assert report.suggested_focus == [
        "Review Pulmonary Embolism — missed by 2 of 3 students",
        "Review Aortic Dissection — missed by 3 of 3 students",
        "Review Pneumothorax — missed by 3 of 3 students",
    ]
    assert report.unconsidered_diagnoses == ["Aortic Dissection", "Pneumothorax"]
    assert report.topic_votes == {"ECG interpretation": 2, "Troponin kinetics": 1}
    assert [q.content for q in report.flagged_questions] == [
        "Why is GERD a moderate-likelihood diagnosis here?"
    ]
    assert report.sentiment_summary.model_dump() == {"confident": 1, "uncertain": 2, "lost": 0}
    assert report.session_captures == ["Always rule out the deadly causes of chest pain first."]
    assert len(report.confidence_calibration) == 7
    assert report.calibration_summary.model_dump() == {
        "well_calibrated": 3,
        "overconfident": 1,
        "underconfident": 2,
        "appropriately_uncertain": 1,
    }


class TestValidateCaseId:

    def test_accepts_uuid(self):
        assert validate_case_id(CASE_ID.upper()) == CASE_ID

    @pytest.mark.parametrize("bad", [None, "", "42", "not-a-uuid"])
    def test_rejects_malformed(self, bad):
        with pytest.raises(InvalidCaseIdError) as exc:
            validate_case_id(bad)
        assert exc.value.status_code == 400
        assert exc.value.is_client_error


class TestGenerateDashboard:

    @pytest.mark.asyncio
    async def test_builds_report_from_tools(self, chest_pain_case):
        tools = FakeCohortTools(
            case=chest_pain_case,
            submissions=[submission("s1", "ACS"), submission("s2", "PE")],
            total_students=5,
            notes=[decode_note("[TOPIC VOTE] ECG"), decode_note("[TOPIC VOTE] ECG")],
            sentiments=[Sentiment(sentiment="lost")],
            captures=[SessionCapture(takeaway="Think PE")],
        )
        report = await generate_dashboard(tools, CASE_ID)

        assert report.submission_count == 2
        assert report.total_students == 5
        assert report.topic_votes == {"ECG": 2}
        assert report.sentiment_summary.lost == 1
        assert report.session_captures == ["Think PE"]

    @pytest.mark.asyncio
    async def test_bad_case_id_rejected_before_data_access(self):
        tools = FakeCohortTools()
        with pytest.raises(InvalidCaseIdError):
            await generate_dashboard(tools, "drop table")
        assert tools.calls == []

    @pytest.mark.asyncio
    async def test_unknown_case(self):
        with pytest.raises(CaseNotFoundError) as exc:
            await generate_dashboard(FakeCohortTools(case=None), CASE_ID)
        assert exc.value.status_code == 404

    @pytest.mark.asyncio
    async def test_data_source_failure_is_server_error(self, chest_pain_case):
        tools = FakeCohortTools(case=chest_pain_case, fail_on="get_eligible_submissions")
        with pytest.raises(DataSourceError) as exc:
            await generate_dashboard(tools, CASE_ID)
        assert exc.value.status_code == 500
        assert not exc.value.is_client_error
