"""
Data access for the cohort dashboard.

Fetches everything the engine needs for one case and hands back
validated models. Notes are decoded into topic votes / questions here,
so the engine never parses the note text convention itself.

Schema:
- fcm_cases (id, differential_answer_key jsonb, ...)
- fcm_submissions (user_id, case_id, diagnoses jsonb, status, feedback jsonb, ...)
- fcm_users (id, role, ...)
- fcm_notes (user_id, case_id, content, is_sent_to_instructor, ...)
- fcm_sentiments (user_id, case_id, sentiment)
- fcm_session_captures (user_id, case_id, takeaway)
"""

import json
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

import asyncpg
from pydantic import BaseModel, ValidationError

from debrief.errors import DataSourceError
from debrief.models.case import (
    AnswerKeyEntry,
    CaseRecord,
    QuestionNote,
    SessionCapture,
    Sentiment,
    Submission,
    TopicVoteNote,
)
from debrief.topic_votes import decode_note

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


def _json_value(value: Any) -> Any:
    """asyncpg returns json/jsonb columns as text unless a codec is set."""
    if isinstance(value, (str, bytes)):
        try:
            return json.loads(value)
        except ValueError:
            logger.warning("Unparseable JSON column value; treating as empty")
            return None
    return value


def _parse_rows(model: Type[M], rows: List[Dict[str, Any]], what: str) -> List[M]:
    """Validate rows one by one, skipping (and logging) any that don't fit."""
    parsed: List[M] = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as e:
            logger.warning(f"Skipping malformed {what} row: {e.error_count()} validation errors")
    return parsed


class CohortTools:
    """
    Reads one case's dashboard inputs from Postgres.

    Any database failure is raised as DataSourceError so the caller can
    answer with a server error instead of an empty dashboard.
    """

    def __init__(self, db_pool: asyncpg.Pool):
        """
        Args:
            db_pool: AsyncPG connection pool for database access
        """
        self.pool = db_pool

    async def _fetch(self, operation: str, query: str, *args) -> List[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(query, *args)
        except _DB_ERRORS as e:
            logger.error(f"{operation} failed: {e}")
            raise DataSourceError(operation, str(e)) from e
        return [dict(r) for r in rows]

    async def get_case(self, case_id: str) -> Optional[CaseRecord]:
        """Case with its answer key, or None if it doesn't exist."""
        rows = await self._fetch(
            "get_case",
            """
            SELECT id, differential_answer_key
            FROM fcm_cases
            WHERE id = $1::uuid
            """,
            case_id,
        )
        if not rows:
            return None

        row = rows[0]
        raw_key = _json_value(row.get("differential_answer_key")) or []
        answer_key = _parse_rows(AnswerKeyEntry, raw_key, "answer key")
        return CaseRecord(id=row["id"], differential_answer_key=answer_key)

    async def get_eligible_submissions(self, case_id: str) -> List[Submission]:
        """Submitted and resubmitted differentials for the case."""
        rows = await self._fetch(
            "get_eligible_submissions",
            """
            SELECT user_id, diagnoses, status, feedback
            FROM fcm_submissions
            WHERE case_id = $1::uuid
              AND status IN ('submitted', 'resubmitted')
            ORDER BY submitted_at NULLS LAST, id
            """,
            case_id,
        )
        for row in rows:
            row["diagnoses"] = _json_value(row.get("diagnoses"))
            row["feedback"] = _json_value(row.get("feedback"))
        submissions = _parse_rows(Submission, rows, "submission")
        logger.info(f"Retrieved {len(submissions)} eligible submissions for case {case_id}")
        return submissions

    async def count_students(self) -> int:
        rows = await self._fetch(
            "count_students",
            "SELECT COUNT(*) AS n FROM fcm_users WHERE role = 'student'",
        )
        return int(rows[0]["n"]) if rows else 0

    async def get_instructor_notes(self, case_id: str) -> List[Union[TopicVoteNote, QuestionNote]]:
        """Notes sent to the instructor, decoded. Authors are not selected."""
        rows = await self._fetch(
            "get_instructor_notes",
            """
            SELECT content
            FROM fcm_notes
            WHERE case_id = $1::uuid
              AND is_sent_to_instructor = true
            ORDER BY created_at
            """,
            case_id,
        )
        return [decode_note(row.get("content")) for row in rows]

    async def get_sentiments(self, case_id: str) -> List[Sentiment]:
        rows = await self._fetch(
            "get_sentiments",
            "SELECT sentiment FROM fcm_sentiments WHERE case_id = $1::uuid",
            case_id,
        )
        return _parse_rows(Sentiment, rows, "sentiment")

    async def get_session_captures(self, case_id: str) -> List[SessionCapture]:
        rows = await self._fetch(
            "get_session_captures",
            """
            SELECT takeaway
            FROM fcm_session_captures
            WHERE case_id = $1::uuid
            ORDER BY created_at
            """,
            case_id,
        )
        return _parse_rows(SessionCapture, rows, "session capture")
