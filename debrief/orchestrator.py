"""Dashboard orchestrator.

Run this file directly:
    python -m debrief.orchestrator --case-id 3f1c...

Responsibilities (this file only):
1) Validate the case id before touching the database.
2) Fetch the case's rows through CohortTools.
3) Chain the engine components (matcher -> aggregator -> topic votes ->
   focus -> reporter) into one DashboardReport.

Component logic lives in separate modules:
    - debrief/matcher.py     → AnswerKeyIndex, SubmissionMatcher
    - debrief/aggregator.py  → CoverageAggregator
    - debrief/topic_votes.py → tally_topic_votes
    - debrief/focus.py       → suggest_focus
    - debrief/reporter.py    → assemble_report
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import uuid
from typing import Any, Iterable, Optional

import asyncpg

from debrief.aggregator import CoverageAggregator
from debrief.config.settings import DebriefConfig, load_config
from debrief.errors import CaseNotFoundError, DebriefError, InvalidCaseIdError
from debrief.focus import suggest_focus
from debrief.matcher import AnswerKeyIndex
from debrief.models.aggregation import DashboardReport
from debrief.models.case import CaseRecord, Sentiment, SessionCapture, Submission
from debrief.reporter import assemble_report
from debrief.tools.cohort import CohortTools
from debrief.topic_votes import as_decoded, tally_topic_votes

logger = logging.getLogger(__name__)


class DebriefEngine:
    """Pure, synchronous pipeline from fetched rows to a DashboardReport.

    Holds only configuration, so one instance is safe to share across
    concurrent requests. Without an explicit config it reads DEBRIEF_*
    settings from the environment at construction time.
    """

    def __init__(self, config: Optional[DebriefConfig] = None) -> None:
        self.config = config or load_config()

    def build_report(
        self,
        case: CaseRecord,
        submissions: Iterable[Submission],
        total_students: int,
        notes: Iterable[Any] = (),
        sentiments: Iterable[Sentiment] = (),
        captures: Iterable[SessionCapture] = (),
    ) -> DashboardReport:
        logger.info(f"[Dashboard] Building report for case {case.id}")

        index = AnswerKeyIndex(case.differential_answer_key)
        if index.collisions:
            logger.warning(
                f"[Dashboard] Case {case.id} answer key has "
                f"{len(index.collisions)} name collisions"
            )

        coverage = CoverageAggregator(index).process(submissions)
        decoded = [d for d in map(as_decoded, notes) if d is not None]
        topic_votes, questions = tally_topic_votes(decoded)
        focus = suggest_focus(
            coverage.cant_miss_details,
            coverage.vindicate_gaps,
            topic_votes,
            self.config,
        )

        return assemble_report(
            coverage=coverage,
            total_students=total_students,
            sentiments=sentiments,
            captures=captures,
            suggested_focus=focus,
            flagged_questions=questions,
            topic_votes=topic_votes,
        )


def validate_case_id(case_id: Optional[str]) -> str:
    """Return the canonical UUID string or raise InvalidCaseIdError."""
    if not case_id or not isinstance(case_id, str):
        raise InvalidCaseIdError(case_id)
    try:
        return str(uuid.UUID(case_id.strip()))
    except ValueError:
        raise InvalidCaseIdError(case_id)


async def generate_dashboard(
    tools: CohortTools,
    case_id: Optional[str],
    engine: Optional[DebriefEngine] = None,
) -> DashboardReport:
    """Request-level entry point: validate, fetch, aggregate.

    Raises:
        InvalidCaseIdError: malformed or missing case id (client error)
        CaseNotFoundError: no such case
        DataSourceError: the database failed (server error)
    """
    case_id = validate_case_id(case_id)
    engine = engine or DebriefEngine()

    case = await tools.get_case(case_id)
    if case is None:
        raise CaseNotFoundError(case_id)

    submissions = await tools.get_eligible_submissions(case_id)
    total_students = await tools.count_students()
    notes = await tools.get_instructor_notes(case_id)
    sentiments = await tools.get_sentiments(case_id)
    captures = await tools.get_session_captures(case_id)

    return engine.build_report(
        case=case,
        submissions=submissions,
        total_students=total_students,
        notes=notes,
        sentiments=sentiments,
        captures=captures,
    )


async def main() -> int:
    parser = argparse.ArgumentParser(description="Build the cohort dashboard for a case")
    parser.add_argument("--case-id", required=True)
    args = parser.parse_args()

    config = load_config()
    logging.basicConfig(
        level=config.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    if not config.database_url:
        raise SystemExit("DATABASE_URL not set in environment or .env")

    pool = await asyncpg.create_pool(dsn=config.database_url, min_size=1, max_size=5)
    try:
        report = await generate_dashboard(CohortTools(pool), args.case_id, DebriefEngine(config))
    except DebriefError as e:
        print(json.dumps(e.to_dict()))
        return 2 if e.is_client_error else 1
    finally:
        await pool.close()

    print(json.dumps(report.to_payload(), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
