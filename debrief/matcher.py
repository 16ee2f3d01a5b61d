"""
Diagnosis matching against a case's answer key.

FLOW:
1. Normalize every diagnosis string (lowercase, trimmed)
2. Index the answer key: canonical name + every alias -> owning entry
3. For each submission, find which answer-key entries the student hit,
   which VINDICATE categories they tagged, and their calibration points

Matching is exact on normalized keys. Aliases always credit the
canonical diagnosis name, never the alias text.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from debrief.models.case import AnswerKeyEntry, Submission, VINDICATE_ORDER
from debrief.models.aggregation import CalibrationPoint, SubmissionMatch

logger = logging.getLogger(__name__)

_KNOWN_CATEGORIES = frozenset(VINDICATE_ORDER)


def normalize_diagnosis(name: Optional[str]) -> str:
    """Comparison key for a diagnosis: lowercase with outer whitespace removed."""
    if name is None:
        return ""
    return name.strip().lower()


class AnswerKeyIndex:
    """
    Lookup from every accepted name to its answer-key entry.

    When two entries claim the same normalized name the later entry in
    answer-key order wins. Each such collision is logged and kept in
    `collisions` as (key, previous canonical name, new canonical name).
    """

    def __init__(self, answer_key: Iterable[AnswerKeyEntry]):
        self.entries: List[AnswerKeyEntry] = list(answer_key)
        self._by_name: Dict[str, AnswerKeyEntry] = {}
        self._names: List[Set[str]] = []
        self.collisions: List[Tuple[str, str, str]] = []

        for entry in self.entries:
            names = {normalize_diagnosis(n) for n in [entry.diagnosis, *entry.aliases]}
            names.discard("")
            self._names.append(names)

            for key in sorted(names):
                previous = self._by_name.get(key)
                if previous is not None and previous is not entry:
                    self.collisions.append((key, previous.diagnosis, entry.diagnosis))
                    logger.warning(
                        f"[Answer Key] '{key}' claimed by both '{previous.diagnosis}' "
                        f"and '{entry.diagnosis}'; using '{entry.diagnosis}'"
                    )
                self._by_name[key] = entry

        logger.debug(
            f"[Answer Key] Indexed {len(self._by_name)} names "
            f"for {len(self.entries)} entries"
        )

    def __contains__(self, name: str) -> bool:
        return normalize_diagnosis(name) in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def lookup(self, name: str) -> Optional[AnswerKeyEntry]:
        return self._by_name.get(normalize_diagnosis(name))

    def names_for(self, position: int) -> Set[str]:
        """Normalized names (canonical + aliases) of the entry at `position`."""
        return self._names[position]


class SubmissionMatcher:
    """Matches one submission at a time against a prebuilt index."""

    def __init__(self, index: AnswerKeyIndex):
        self.index = index

    def match(self, submission: Submission) -> SubmissionMatch:
        diagnoses: List[str] = []
        for d in submission.diagnoses:
            key = normalize_diagnosis(d.diagnosis)
            if key and key not in diagnoses:
                diagnoses.append(key)
        present = set(diagnoses)

        hit_positions = [
            position
            for position in range(len(self.index.entries))
            if self.index.names_for(position) & present
        ]

        categories: Set[str] = set()
        for d in submission.diagnoses:
            for cat in d.categories():
                if cat in _KNOWN_CATEGORIES:
                    categories.add(cat)
                else:
                    logger.debug(
                        f"Ignoring unknown VINDICATE tag '{cat}' from student {submission.user_id}"
                    )

        calibration = [
            CalibrationPoint(
                label=d.diagnosis,
                confidence=d.confidence,
                was_correct=d.diagnosis in self.index,
            )
            for d in submission.diagnoses
            if d.confidence is not None and d.confidence >= 1
        ]

        return SubmissionMatch(
            student_id=submission.user_id,
            diagnoses=diagnoses,
            hit_positions=hit_positions,
            categories=categories,
            calibration=calibration,
        )
