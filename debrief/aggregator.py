"""
Coverage Aggregator: folds matched submissions into class-wide coverage.

FLOW:
1. Keep only submitted/resubmitted submissions
2. Match each one against the answer-key index
3. Tally diagnosis frequency and VINDICATE coverage by distinct student
4. Build tier and can't-miss tables in answer-key order
5. Compute the can't-miss rate from each submission's cached feedback

Every count here is a count of students, not of diagnosis lines: a
student listing three vascular diagnoses adds 1 to Vascular coverage.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set

from debrief.matcher import AnswerKeyIndex, SubmissionMatcher
from debrief.models.case import Submission, TIER_ORDER, VINDICATE_ORDER
from debrief.models.aggregation import (
    CalibrationPoint,
    CoverageResult,
    DiagnosisCount,
    HitCount,
    SubmissionMatch,
)

logger = logging.getLogger(__name__)


def percent(numerator: int, denominator: int) -> Optional[int]:
    """
    Whole-number percentage, rounding halves up.

    Returns None when the denominator is zero: no data is not 0%.
    """
    if denominator <= 0:
        return None
    # integer arithmetic so 0.5 always rounds up
    return (200 * numerator + denominator) // (2 * denominator)


class CoverageAggregator:
    """
    Builds the coverage structures of the dashboard for one case.

    Stateless between calls; one instance can serve many cases as long as
    each call gets its own answer-key index.
    """

    def __init__(self, index: AnswerKeyIndex):
        self.index = index
        self.matcher = SubmissionMatcher(index)

    def process(self, submissions: Iterable[Submission]) -> CoverageResult:
        """
        Main entry point.

        Args:
            submissions: Submission rows for the case, filtered or not

        Returns:
            CoverageResult with frequency, coverage, gaps, tier and
            can't-miss tables, can't-miss rate and calibration points
        """
        eligible = [s for s in submissions if s.is_eligible]
        total = len(eligible)
        logger.info(f"[Coverage] Aggregating {total} eligible submissions")

        if total == 0:
            logger.warning("[Coverage] No submitted differentials for this case")

        matches = [self.matcher.match(s) for s in eligible]

        frequency = self._diagnosis_frequency(matches)
        coverage = self._vindicate_coverage(matches)
        gaps = [cat for cat in VINDICATE_ORDER if coverage.get(cat, 0) == 0]
        hit_students = self._hit_students(matches)

        by_tier = self._diagnosis_by_tier(hit_students, total)
        cant_miss = [
            HitCount(diagnosis=e.diagnosis, hit_count=len(hit_students[pos]), total=total)
            for pos, e in enumerate(self.index.entries)
            if e.is_cant_miss
        ]
        unconsidered = [
            e.diagnosis
            for pos, e in enumerate(self.index.entries)
            if not hit_students[pos]
        ]

        calibration: List[CalibrationPoint] = []
        for m in matches:
            calibration.extend(m.calibration)

        rate = self._cant_miss_rate(eligible)

        logger.info(
            f"[Coverage] ✓ {len(frequency)} distinct diagnoses, "
            f"{len(coverage)} categories covered, {len(gaps)} gaps, "
            f"can't-miss rate={rate}"
        )

        return CoverageResult(
            submission_count=total,
            diagnosis_frequency=frequency,
            vindicate_coverage=coverage,
            vindicate_gaps=gaps,
            diagnosis_by_tier=by_tier,
            cant_miss_details=cant_miss,
            cant_miss_rate=rate,
            unconsidered_diagnoses=unconsidered,
            confidence_calibration=calibration,
        )

    def _diagnosis_frequency(self, matches: List[SubmissionMatch]) -> List[DiagnosisCount]:
        """Students per normalized diagnosis, most common first, ties in first-seen order."""
        students: Dict[str, Set[str]] = {}
        for m in matches:
            for name in m.diagnoses:
                students.setdefault(name, set()).add(m.student_id)

        # sorted() is stable, so equal counts keep first-seen order
        ranked = sorted(
            ((name, len(ids)) for name, ids in students.items()),
            key=lambda kv: kv[1],
            reverse=True,
        )
        return [DiagnosisCount(diagnosis=name, count=count) for name, count in ranked]

    @staticmethod
    def _vindicate_coverage(matches: List[SubmissionMatch]) -> Dict[str, int]:
        students: Dict[str, Set[str]] = {}
        for m in matches:
            for cat in m.categories:
                students.setdefault(cat, set()).add(m.student_id)
        # report in mnemonic order rather than first-seen order
        return {cat: len(students[cat]) for cat in VINDICATE_ORDER if cat in students}

    def _hit_students(self, matches: List[SubmissionMatch]) -> List[Set[str]]:
        """For each answer-key position, the students who hit it."""
        hit_students: List[Set[str]] = [set() for _ in self.index.entries]
        for m in matches:
            for pos in m.hit_positions:
                hit_students[pos].add(m.student_id)
        return hit_students

    def _diagnosis_by_tier(self, hit_students: List[Set[str]], total: int) -> Dict[str, List[HitCount]]:
        by_tier: Dict[str, List[HitCount]] = {tier: [] for tier in TIER_ORDER}
        for pos, entry in enumerate(self.index.entries):
            by_tier[entry.tier].append(
                HitCount(diagnosis=entry.diagnosis, hit_count=len(hit_students[pos]), total=total)
            )
        return by_tier

    @staticmethod
    def _cant_miss_rate(eligible: List[Submission]) -> Optional[int]:
        """Share of can't-miss diagnoses hit, from each submission's cached feedback."""
        hit = 0
        checked = 0
        for s in eligible:
            if s.feedback is None:
                continue
            hit += len(s.feedback.cant_miss_hit)
            checked += len(s.feedback.cant_miss_hit) + len(s.feedback.cant_miss_missed)
        return percent(hit, checked)
