"""
flows/assessment.py — PHQ-9 + GAD-7 Assessment Engine

Sixteen items administered in order: nine PHQ-9 items, then seven GAD-7
items. Every answer is 0..3; -1 marks an unanswered slot. Both scores are
computed only when every slot in both sequences is filled.

The engine is synchronous and owns no persistence: advance() returns the
final AssessmentScores and the session commits them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from exceptions import AssessmentIndexError, InvalidAnswerError
from observability.logger import get_logger

log = get_logger(__name__)

UNANSWERED = -1

PHQ9_QUESTIONS: tuple[str, ...] = (
    "Little interest or pleasure in doing things",
    "Feeling down, depressed, or hopeless",
    "Trouble falling or staying asleep, or sleeping too much",
    "Feeling tired or having little energy",
    "Poor appetite or overeating",
    "Feeling bad about yourself - or that you are a failure",
    "Trouble concentrating on things",
    "Moving or speaking slowly, or being fidgety or restless",
    "Thoughts that you would be better off dead, or of hurting yourself",
)

GAD7_QUESTIONS: tuple[str, ...] = (
    "Feeling nervous, anxious, or on edge",
    "Not being able to stop or control worrying",
    "Worrying too much about different things",
    "Trouble relaxing",
    "Being so restless that it is hard to sit still",
    "Becoming easily annoyed or irritable",
    "Feeling afraid, as if something awful might happen",
)

ANSWER_OPTIONS: tuple[tuple[str, int], ...] = (
    ("Not at all", 0),
    ("Several days", 1),
    ("More than half the days", 2),
    ("Nearly every day", 3),
)

_VALID_VALUES = frozenset(v for _, v in ANSWER_OPTIONS)

TOTAL_ITEMS = len(PHQ9_QUESTIONS) + len(GAD7_QUESTIONS)


@dataclass(frozen=True)
class AssessmentScores:
    phq9: int
    gad7: int


class AssessmentEngine:
    def __init__(self) -> None:
        self.index = 0
        self.phq9_answers: list[int] = [UNANSWERED] * len(PHQ9_QUESTIONS)
        self.gad7_answers: list[int] = [UNANSWERED] * len(GAD7_QUESTIONS)
        self.scores: Optional[AssessmentScores] = None

    # ── Slot addressing ───────────────────────────────────────────────────────

    def _slot(self, index: int) -> tuple[list[int], int]:
        if not 0 <= index < TOTAL_ITEMS:
            raise AssessmentIndexError(index, TOTAL_ITEMS)
        split = len(PHQ9_QUESTIONS)
        if index < split:
            return self.phq9_answers, index
        return self.gad7_answers, index - split

    # ── Display helpers ───────────────────────────────────────────────────────

    @property
    def section(self) -> str:
        return "PHQ-9" if self.index < len(PHQ9_QUESTIONS) else "GAD-7"

    @property
    def current_question(self) -> str:
        answers, i = self._slot(self.index)
        return (PHQ9_QUESTIONS if answers is self.phq9_answers else GAD7_QUESTIONS)[i]

    @property
    def current_answer(self) -> int:
        answers, i = self._slot(self.index)
        return answers[i]

    @property
    def can_advance(self) -> bool:
        return self.current_answer != UNANSWERED

    @property
    def is_last(self) -> bool:
        return self.index == TOTAL_ITEMS - 1

    @property
    def progress_percent(self) -> float:
        return self.index / TOTAL_ITEMS * 100

    @property
    def complete(self) -> bool:
        return self.scores is not None

    # ── Operations ────────────────────────────────────────────────────────────

    def answer(self, value: int, index: Optional[int] = None) -> None:
        """Record value (0..3) at the current item, or at `index` if given."""
        if isinstance(value, bool) or value not in _VALID_VALUES:
            raise InvalidAnswerError(value)
        answers, i = self._slot(self.index if index is None else index)
        answers[i] = value

    def advance(self) -> Optional[AssessmentScores]:
        """
        Move to the next item. Returns the scores when the final item is
        advanced past; None otherwise (including the blocked no-op case).
        """
        if not self.can_advance:
            log.debug("assessment.advance_blocked", index=self.index)
            return None
        if not self.is_last:
            self.index += 1
            return None
        return self._finalize()

    def retreat(self) -> None:
        if self.index > 0:
            self.index -= 1

    def _finalize(self) -> Optional[AssessmentScores]:
        missing = [i for i, v in enumerate(self.phq9_answers + self.gad7_answers)
                   if v == UNANSWERED]
        if missing:
            log.debug("assessment.finalize_blocked", missing=missing)
            return None
        self.scores = AssessmentScores(
            phq9=sum(self.phq9_answers),
            gad7=sum(self.gad7_answers),
        )
        log.info("assessment.completed", phq9=self.scores.phq9, gad7=self.scores.gad7)
        return self.scores
