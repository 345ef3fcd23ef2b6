"""
state/session.py — Session State Machine

The top-level controller. Holds the current screen, the ProgressStore and
one instance of every flow, and decides which screen comes next.

    login ─► home ─► onboarding ─► dashboard ─► {chat, tasks, challenges,
                                       ▲          pods, leaderboard}
                                       └──────────────┘

Startup: a restored record with both assessment scores opens on the
dashboard; anything else opens on login.
"""

from __future__ import annotations

import asyncio
import hmac
from enum import Enum
from typing import Optional

from config.settings import AuthConfig
from flows.assessment import AssessmentEngine, AssessmentScores
from flows.challenges import ChallengeBoard
from flows.community import CommunityFlow
from flows.conversation import ConversationRouter
from flows.leaderboard import Leaderboard
from flows.tasks import TaskFlow
from gateway.dispatch import AgentDispatcher
from observability.logger import bind_user, clear_context, get_logger
from state.progress import DEFAULT_USERNAME, ProgressRecord, ProgressStore

log = get_logger(__name__)


class Screen(str, Enum):
    LOGIN       = "login"
    HOME        = "home"
    ONBOARDING  = "onboarding"
    DASHBOARD   = "dashboard"
    CHAT        = "chat"
    TASKS       = "tasks"
    CHALLENGES  = "challenges"
    PODS        = "pods"
    LEADERBOARD = "leaderboard"


LEAF_SCREENS = frozenset({
    Screen.CHAT, Screen.TASKS, Screen.CHALLENGES, Screen.PODS, Screen.LEADERBOARD,
})


class Session:
    """All runtime state for one user of the app."""

    def __init__(
        self,
        dispatcher: AgentDispatcher,
        progress: ProgressStore,
        auth: Optional[AuthConfig] = None,
        celebration_seconds: float = 3.0,
        success_ack_seconds: float = 3.0,
    ):
        self._dispatcher = dispatcher
        self._auth = auth or AuthConfig()
        self._celebration_seconds = celebration_seconds
        self._celebration: Optional[asyncio.Task] = None

        self.progress = progress
        self.assessment = AssessmentEngine()
        self.chat = ConversationRouter(dispatcher)
        self.tasks = TaskFlow(dispatcher, progress, ack_seconds=success_ack_seconds)
        self.community = CommunityFlow(dispatcher, author=lambda: self.progress.current.username)
        self.challenges = ChallengeBoard(progress)
        self.leaderboard = Leaderboard()

        self.screen = Screen.DASHBOARD if progress.current.assessment_complete else Screen.LOGIN
        log.info("session.started", screen=self.screen.value)

    @property
    def record(self) -> ProgressRecord:
        return self.progress.current

    @property
    def celebrating(self) -> bool:
        return self._celebration is not None and not self._celebration.done()

    # ── Screen transitions ────────────────────────────────────────────────────

    def _go(self, screen: Screen) -> Screen:
        if screen != self.screen:
            log.info("session.screen", frm=self.screen.value, to=screen.value)
            if self.screen == Screen.TASKS:
                self.tasks.leave()
            elif self.screen == Screen.PODS:
                self.community.close_pod()
        self.screen = screen
        bind_user(self.record.username, screen=screen.value)
        return screen

    async def login(self, username: str, password: str) -> bool:
        """Single-credential stub. Success moves to home."""
        if self.screen != Screen.LOGIN:
            return False
        ok = (hmac.compare_digest(username.strip().encode(), self._auth.username.encode())
              and hmac.compare_digest(password.encode(), self._auth.password.encode()))
        if not ok:
            log.info("session.login_rejected")
            return False
        if self.record.username == DEFAULT_USERNAME:
            await self.progress.update(lambda rec: rec.with_username(username.strip()))
        self._go(Screen.HOME)
        return True

    def start_assessment(self) -> Screen:
        if self.screen == Screen.HOME:
            self._go(Screen.ONBOARDING)
        return self.screen

    def navigate(self, target: Screen | str) -> Screen:
        """
        Move between dashboard and leaf screens. Unknown targets, and any
        target before the assessment is complete, resolve to the dashboard
        (or stay put while the assessment is still running).
        """
        if not self.record.assessment_complete:
            log.debug("session.navigate_blocked", target=str(target))
            return self.screen
        try:
            screen = Screen(target)
        except ValueError:
            screen = Screen.DASHBOARD
        if screen not in LEAF_SCREENS:
            screen = Screen.DASHBOARD
        return self._go(screen)

    # ── Assessment ────────────────────────────────────────────────────────────

    def answer(self, value: int, index: Optional[int] = None) -> None:
        self.assessment.answer(value, index=index)

    def retreat_assessment(self) -> None:
        self.assessment.retreat()

    async def advance_assessment(self) -> Optional[AssessmentScores]:
        """Advance; on completion commit scores and schedule the dashboard."""
        if self.screen != Screen.ONBOARDING or self.assessment.complete:
            return None
        scores = self.assessment.advance()
        if scores is None:
            return None

        await self.progress.update(lambda rec: rec.with_scores(scores.phq9, scores.gad7))
        self._celebration = asyncio.create_task(self._finish_onboarding())
        return scores

    async def _finish_onboarding(self) -> None:
        await asyncio.sleep(self._celebration_seconds)
        if self.screen == Screen.ONBOARDING:
            self._go(Screen.DASHBOARD)

    # ── Challenges ────────────────────────────────────────────────────────────

    async def join_challenge(self, challenge_id: str) -> bool:
        return await self.challenges.join(challenge_id)

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def shutdown(self) -> None:
        if self._celebration is not None and not self._celebration.done():
            self._celebration.cancel()
            try:
                await self._celebration
            except asyncio.CancelledError:
                pass
        await self.community.drain()
        await self.tasks.close()
        await self._dispatcher.close()
        log.info("session.shutdown", points=self.record.points)
        clear_context()

    def status_summary(self) -> dict:
        rec = self.record
        return {
            "screen": self.screen.value,
            "username": rec.username,
            "points": rec.points,
            "streak": rec.streak,
            "level": rec.level,
            "phq9_score": rec.phq9_score,
            "gad7_score": rec.gad7_score,
            "completed_tasks": len(rec.completed_tasks),
            "active_challenges": len(rec.active_challenges),
            "rank": self.leaderboard.rank_for(rec.points),
            "progress_version": self.progress.version,
            "last_save_ok": self.progress.last_save_ok,
        }

    def __repr__(self) -> str:
        return (f"<Session user={self.record.username!r} screen={self.screen.value} "
                f"points={self.record.points}>")
