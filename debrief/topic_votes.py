"""
Topic votes carried in instructor-flagged notes.

Students vote for debrief topics through the ordinary notes feature; a
vote is stored as note text of the form

    [TOPIC VOTE] Cardiology, Renal | Free text: "ECG basics"

Notes are decoded once, right after fetch, into TopicVoteNote or
QuestionNote. Only the literal prefix decides which: content is never
sniffed for anything else.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import TypeAdapter

from debrief.models.case import DecodedNote, Note, QuestionNote, TopicVoteNote
from debrief.models.aggregation import FlaggedQuestion

logger = logging.getLogger(__name__)

TOPIC_VOTE_PREFIX = "[TOPIC VOTE]"
FREE_TEXT_MARKER = "| Free text:"

_decoded_note = TypeAdapter(DecodedNote)


def decode_note(content: Optional[str]) -> Union[TopicVoteNote, QuestionNote]:
    """Decode raw note text into a topic vote or a regular question."""
    text = content or ""
    if not text.startswith(TOPIC_VOTE_PREFIX):
        return QuestionNote(text=text)

    body = text[len(TOPIC_VOTE_PREFIX):]
    free_text: Optional[str] = None
    marker_at = body.find(FREE_TEXT_MARKER)
    if marker_at >= 0:
        free_text = body[marker_at + len(FREE_TEXT_MARKER):].strip()
        if len(free_text) >= 2 and free_text.startswith('"') and free_text.endswith('"'):
            free_text = free_text[1:-1]
        free_text = free_text or None
        body = body[:marker_at]

    topics = [t.strip() for t in body.split(",")]
    return TopicVoteNote(topics=[t for t in topics if t], free_text=free_text)


def encode_topic_vote(topics: Sequence[str], free_text: Optional[str] = None) -> str:
    """Inverse of decode_note for topic votes."""
    content = f"{TOPIC_VOTE_PREFIX} {', '.join(topics)}"
    if free_text:
        content += f' {FREE_TEXT_MARKER} "{free_text}"'
    return content


def as_decoded(note) -> Optional[Union[TopicVoteNote, QuestionNote]]:
    """
    Accept a decoded note, a raw Note row, a plain string, or a dict.

    Lets callers that still hold undecoded rows use the engine directly.
    Raw rows not sent to the instructor decode to None and must be
    skipped; already-decoded notes and strings are taken as flagged.
    """
    if isinstance(note, (TopicVoteNote, QuestionNote)):
        return note
    if isinstance(note, dict) and "kind" not in note:
        note = Note.model_validate(note)
    if isinstance(note, Note):
        if not note.is_sent_to_instructor:
            return None
        return decode_note(note.content)
    if isinstance(note, str):
        return decode_note(note)
    if isinstance(note, dict):
        return _decoded_note.validate_python(note)
    raise TypeError(f"Cannot decode note of type {type(note).__name__}")


def tally_topic_votes(
    notes: Iterable[Union[TopicVoteNote, QuestionNote]],
) -> Tuple[Dict[str, int], List[FlaggedQuestion]]:
    """
    Count topic votes and collect the regular questions.

    Returns:
        (topic -> vote count in first-seen order,
         anonymized regular questions in note order)
    """
    votes: Dict[str, int] = {}
    questions: List[FlaggedQuestion] = []
    vote_notes = 0

    for note in notes:
        if isinstance(note, TopicVoteNote):
            vote_notes += 1
            for topic in note.topics:
                votes[topic] = votes.get(topic, 0) + 1
        else:
            questions.append(FlaggedQuestion(content=note.text))

    logger.info(
        f"[Topic Votes] {vote_notes} vote notes over {len(votes)} topics, "
        f"{len(questions)} regular questions"
    )
    return votes, questions
