"""
flows/tasks.py — Task Recommendation & Verification Flow

Stages:

    idle ─► listing ─► detail ─► evidence_pending ─► verifying ─► resolved
                         ▲              ▲                 │
                         │              └── rejected ─────┘
                         └──────────── leave() ◄── resolved (auto after ack)

Only an "approved" verdict rewards the user, and the reward is one atomic
ProgressStore update: points and the completed task change together or not
at all. Upload failures and non-approved verdicts keep the evidence attached
so the user can resubmit. Nothing here is retried automatically.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from flows import verdicts
from flows.guard import BusyGuard
from gateway.dispatch import AgentDispatcher
from gateway.protocol import AgentRole, EvidenceFile
from observability.logger import get_logger
from state.progress import ProgressStore

log = get_logger(__name__)


class TaskStage(str, Enum):
    IDLE             = "idle"
    LISTING          = "listing"
    DETAIL           = "detail"
    EVIDENCE_PENDING = "evidence_pending"
    VERIFYING        = "verifying"
    RESOLVED         = "resolved"


class Difficulty(str, Enum):
    EASY   = "easy"
    MEDIUM = "medium"
    HARD   = "hard"


@dataclass(frozen=True)
class TaskCandidate:
    title: str
    description: str = ""
    category: str = ""
    difficulty: Difficulty = Difficulty.EASY
    estimated_time: str = ""
    points_value: int = 0
    verification_method: str = ""
    expected_benefit: str = ""
    personalization_reason: str = ""

    @classmethod
    def from_verdict(cls, raw: Any) -> Optional["TaskCandidate"]:
        """Build from one recommended_tasks entry; None if unusable."""
        if not isinstance(raw, dict):
            return None
        title = raw.get("task_title")
        if not isinstance(title, str) or not title.strip():
            return None
        try:
            difficulty = Difficulty(str(raw.get("difficulty", "easy")).lower())
        except ValueError:
            difficulty = Difficulty.EASY
        points = raw.get("points_value")
        if isinstance(points, bool) or not isinstance(points, (int, float)):
            points = 0
        return cls(
            title=title.strip(),
            description=str(raw.get("task_description") or ""),
            category=str(raw.get("category") or ""),
            difficulty=difficulty,
            estimated_time=str(raw.get("estimated_time") or ""),
            points_value=max(int(points), 0),
            verification_method=str(raw.get("verification_method") or ""),
            expected_benefit=str(raw.get("expected_benefit") or ""),
            personalization_reason=str(raw.get("personalization_reason") or ""),
        )


@dataclass(frozen=True)
class TaskSuccess:
    points: int
    message: str


def recommendation_prompt(phq9: Optional[int], gad7: Optional[int]) -> str:
    return (
        f"PHQ-9 score: {phq9 or 0}, GAD-7 score: {gad7 or 0}, "
        f"user profile: student experiencing stress"
    )


def verification_prompt(task: TaskCandidate) -> str:
    return f"Task: {task.title}. Verify completion from uploaded image."


class TaskFlow:
    def __init__(
        self,
        dispatcher: AgentDispatcher,
        progress: ProgressStore,
        ack_seconds: float = 3.0,
    ):
        self._dispatcher = dispatcher
        self._progress = progress
        self._ack_seconds = ack_seconds
        self._loading = BusyGuard("tasks.recommend")
        self._submitting = BusyGuard("tasks.submit")
        self._ack_task: Optional[asyncio.Task] = None

        self.stage = TaskStage.IDLE
        self.candidates: list[TaskCandidate] = []
        self.encouragement: Optional[str] = None
        self.priority_focus: Optional[str] = None
        self.selected: Optional[TaskCandidate] = None
        self.evidence: Optional[EvidenceFile] = None
        self.preview: Optional[str] = None
        self.success: Optional[TaskSuccess] = None
        self.rejection_reason: Optional[str] = None

    @property
    def loading(self) -> bool:
        return self._loading.busy

    @property
    def submitting(self) -> bool:
        return self._submitting.busy

    # ── Recommendations ───────────────────────────────────────────────────────

    async def request_recommendations(self) -> list[TaskCandidate]:
        if self._loading.reject_if_busy():
            return self.candidates

        record = self._progress.current
        async with self._loading:
            result = await self._dispatcher.invoke(
                AgentRole.TASK_RECOMMENDER,
                recommendation_prompt(record.phq9_score, record.gad7_score),
            )
            raw_tasks = verdicts.TASK_LIST.read(result.verdict)
            parsed = [c for c in map(TaskCandidate.from_verdict, raw_tasks or []) if c]
            if parsed:
                self.candidates = parsed
                self.encouragement = verdicts.TASK_ENCOURAGEMENT.read(result.verdict)
                self.priority_focus = verdicts.TASK_FOCUS.read(result.verdict)
                log.info("tasks.recommend.done", count=len(parsed))
            else:
                log.info("tasks.recommend.kept_previous", kind=result.kind.value,
                         kept=len(self.candidates))

        if self.stage == TaskStage.IDLE:
            self.stage = TaskStage.LISTING
        return self.candidates

    # ── Selection + evidence ──────────────────────────────────────────────────

    def select_task(self, candidate: TaskCandidate) -> None:
        self._clear_attempt()
        self.selected = candidate
        self.stage = TaskStage.DETAIL

    def attach_evidence(self, file: EvidenceFile) -> str:
        """Store the file locally and return its preview URL. No upload yet."""
        self.evidence = file
        self.preview = file.preview_url()
        self.rejection_reason = None
        if self.selected is not None:
            self.stage = TaskStage.EVIDENCE_PENDING
        return self.preview

    # ── Verification ──────────────────────────────────────────────────────────

    async def submit_evidence(self) -> Optional[TaskSuccess]:
        """Upload, verify, reward. Returns TaskSuccess only on approval."""
        if self.evidence is None or self.selected is None:
            return None
        if self.stage == TaskStage.RESOLVED:
            return None
        if self._submitting.reject_if_busy():
            return None

        task, file = self.selected, self.evidence
        async with self._submitting:
            upload = await self._dispatcher.upload(file)
            if not upload.success:
                log.info("tasks.submit.upload_aborted", task=task.title, error=upload.error)
                return None

            self.stage = TaskStage.VERIFYING
            result = await self._dispatcher.invoke(
                AgentRole.EVIDENCE_VERIFIER,
                verification_prompt(task),
                assets=upload.asset_ids,
            )

            if not verdicts.VERIFY_STATUS.equals(result.verdict, verdicts.APPROVED):
                self.rejection_reason = verdicts.VERIFY_REJECTION.read(result.verdict)
                self.stage = TaskStage.EVIDENCE_PENDING
                log.info("tasks.verify.not_approved", task=task.title,
                         kind=result.kind.value,
                         status=verdicts.VERIFY_STATUS.read(result.verdict))
                return None

            awarded = verdicts.VERIFY_POINTS.read(result.verdict)
            points = round(awarded) if awarded else task.points_value
            await self._progress.update(lambda rec: rec.with_reward(points, task.title))

            self.success = TaskSuccess(
                points=points,
                message=verdicts.VERIFY_FEEDBACK.read(result.verdict),
            )
            self.stage = TaskStage.RESOLVED
            log.info("tasks.verify.approved", task=task.title, points=points)

        self._schedule_leave()
        return self.success

    # ── Leaving ───────────────────────────────────────────────────────────────

    def leave(self) -> None:
        """Drop the attempt in progress. Candidates survive until the next request."""
        if self._ack_task is not None and self._ack_task is not asyncio.current_task():
            self._ack_task.cancel()
        self._ack_task = None
        self._clear_attempt()
        self.selected = None
        self.stage = TaskStage.LISTING if self.candidates else TaskStage.IDLE

    def _clear_attempt(self) -> None:
        self.evidence = None
        self.preview = None
        self.success = None
        self.rejection_reason = None

    def _schedule_leave(self) -> None:
        async def _after_ack() -> None:
            await asyncio.sleep(self._ack_seconds)
            if self.stage == TaskStage.RESOLVED:
                self.leave()

        self._ack_task = asyncio.create_task(_after_ack())

    async def close(self) -> None:
        if self._ack_task is not None:
            self._ack_task.cancel()
            try:
                await self._ack_task
            except asyncio.CancelledError:
                pass
            self._ack_task = None
