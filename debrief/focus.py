"""
Suggested focus for the debrief session.

Candidates are taken in fixed priority order and the list is cut at the
configured limit (3 by default):
1. Can't-miss diagnoses most of the class missed, in answer-key order
2. VINDICATE categories nobody considered, in mnemonic order
3. The most-voted discussion topic, if it has enough votes
"""

import logging
from typing import Dict, List, Optional, Sequence

from debrief.config.settings import DebriefConfig, load_config
from debrief.models.case import VINDICATE_LABELS
from debrief.models.aggregation import HitCount

logger = logging.getLogger(__name__)


def _weak_cant_miss(details: Sequence[HitCount], threshold: float) -> List[str]:
    items = []
    for d in details:
        if d.total > 0 and d.hit_count / d.total < threshold:
            missed = d.total - d.hit_count
            items.append(f"Review {d.diagnosis} — missed by {missed} of {d.total} students")
    return items


def _top_topic(topic_votes: Dict[str, int]) -> Optional[tuple]:
    top = None
    for topic, count in topic_votes.items():
        # strict > keeps the first-seen topic on ties
        if top is None or count > top[1]:
            top = (topic, count)
    return top


def suggest_focus(
    cant_miss_details: Sequence[HitCount],
    vindicate_gaps: Sequence[str],
    topic_votes: Dict[str, int],
    config: Optional[DebriefConfig] = None,
) -> List[str]:
    """
    Rank discussion topics for the instructor.

    Args:
        cant_miss_details: Can't-miss hit counts in answer-key order
        vindicate_gaps: Categories with zero coverage, in mnemonic order
        topic_votes: Topic -> vote count
        config: Threshold, minimum votes and cap (read from the environment
            when omitted)

    Returns:
        At most `config.focus_limit` focus lines
    """
    config = config or load_config()
    focus = _weak_cant_miss(cant_miss_details, config.cant_miss_threshold)

    for cat in vindicate_gaps:
        focus.append(f"No one considered {VINDICATE_LABELS.get(cat, cat)} causes")

    top = _top_topic(topic_votes)
    if top is not None and top[1] >= config.topic_vote_min:
        focus.append(f"Students want to discuss {top[0]}")

    logger.info(f"[Focus] {len(focus)} candidates, keeping {min(len(focus), config.focus_limit)}")
    return focus[:config.focus_limit]
