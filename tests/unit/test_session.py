"""
tests/unit/test_session.py — Session State Machine Tests

Test groups:
  - Startup screen from the restored record
  - Login stub
  - Onboarding: answers → scores committed → dashboard after the celebration
  - Navigation: blocked before assessment, fallbacks to dashboard
  - Leaving a screen resets its flow
  - Shutdown and wiring through main.build_session
"""

from __future__ import annotations

import asyncio

import pytest

from config.settings import AuthConfig, Settings
from flows.tasks import TaskCandidate, TaskStage
from gateway.protocol import AgentRole, EvidenceFile
from main import build_session
from state.progress import ProgressStore
from state.session import Screen, Session

from fakes import ScriptedGateway, make_dispatcher, make_store


def _session(gw: ScriptedGateway | None = None, celebration: float = 0.01, **record):
    return Session(
        make_dispatcher(gw or ScriptedGateway()),
        make_store(**record),
        auth=AuthConfig(username="demo", password="demo"),
        celebration_seconds=celebration,
        success_ack_seconds=60.0,
    )


def _assessed(gw: ScriptedGateway | None = None) -> Session:
    session = _session(gw, phq9_score=8, gad7_score=6)
    assert session.screen == Screen.DASHBOARD
    return session


# ─────────────────────────────────────────────────────────────────────────────
# Startup + login
# ─────────────────────────────────────────────────────────────────────────────

class TestStartup:
    def test_fresh_record_opens_login(self):
        assert _session().screen == Screen.LOGIN

    def test_partial_scores_open_login(self):
        assert _session(phq9_score=4).screen == Screen.LOGIN

    def test_assessed_record_opens_dashboard(self):
        assert _assessed().screen == Screen.DASHBOARD


class TestLogin:
    async def test_correct_credentials_go_home(self):
        session = _session()
        assert await session.login("demo", "demo") is True
        assert session.screen == Screen.HOME
        assert session.record.username == "demo"

    @pytest.mark.parametrize("username,password", [
        ("demo", "wrong"), ("someone", "demo"), ("", ""), ("démo", "demo"),
    ])
    async def test_wrong_credentials_stay(self, username, password):
        session = _session()
        assert await session.login(username, password) is False
        assert session.screen == Screen.LOGIN

    async def test_existing_username_kept(self):
        session = _session(username="Riya")
        await session.login("demo", "demo")
        assert session.record.username == "Riya"

    async def test_login_only_from_login_screen(self):
        session = _assessed()
        assert await session.login("demo", "demo") is False
        assert session.screen == Screen.DASHBOARD


# ─────────────────────────────────────────────────────────────────────────────
# Onboarding
# ─────────────────────────────────────────────────────────────────────────────

class TestOnboarding:
    async def _onboard(self, session: Session, values: list[int]):
        await session.login("demo", "demo")
        assert session.start_assessment() == Screen.ONBOARDING
        scores = None
        for value in values:
            session.answer(value)
            scores = await session.advance_assessment()
        return scores

    async def test_scores_committed_then_dashboard(self):
        session = _session()
        scores = await self._onboard(session, [2] * 9 + [1] * 7)

        assert (scores.phq9, scores.gad7) == (18, 7)
        assert session.record.phq9_score == 18
        assert session.record.gad7_score == 7
        assert session.screen == Screen.ONBOARDING
        assert session.celebrating

        await asyncio.sleep(0.05)
        assert session.screen == Screen.DASHBOARD
        assert not session.celebrating

    async def test_advance_blocked_until_answered(self):
        session = _session()
        await session.login("demo", "demo")
        session.start_assessment()
        assert await session.advance_assessment() is None
        assert session.assessment.index == 0

    async def test_cannot_finish_twice(self):
        session = _session(celebration=60.0)
        await self._onboard(session, [0] * 16)
        assert await session.advance_assessment() is None
        assert session.progress.version == 2
        await session.shutdown()

    async def test_lone_restored_score_does_not_block_onboarding(self):
        session = _session(phq9_score=5)
        assert session.screen == Screen.LOGIN
        assert session.record.phq9_score is None

        scores = await self._onboard(session, [1] * 16)
        assert (scores.phq9, scores.gad7) == (9, 7)
        assert (session.record.phq9_score, session.record.gad7_score) == (9, 7)

        await asyncio.sleep(0.05)
        assert session.screen == Screen.DASHBOARD
        assert session.navigate("chat") == Screen.CHAT

    def test_start_assessment_only_from_home(self):
        session = _session()
        assert session.start_assessment() == Screen.LOGIN


# ─────────────────────────────────────────────────────────────────────────────
# Navigation
# ─────────────────────────────────────────────────────────────────────────────

class TestNavigation:
    async def test_blocked_before_assessment(self):
        session = _session()
        await session.login("demo", "demo")
        assert session.navigate("tasks") == Screen.HOME

    @pytest.mark.parametrize("target", list(Screen.__members__.values()))
    def test_only_leaf_screens_reachable(self, target):
        session = _assessed()
        expected = target if target in {
            Screen.CHAT, Screen.TASKS, Screen.CHALLENGES, Screen.PODS, Screen.LEADERBOARD,
        } else Screen.DASHBOARD
        assert session.navigate(target) == expected

    @pytest.mark.parametrize("target", ["settings", "", "TASKS"])
    def test_unknown_target_goes_to_dashboard(self, target):
        session = _assessed()
        session.navigate("chat")
        assert session.navigate(target) == Screen.DASHBOARD

    def test_leaving_tasks_drops_attempt(self):
        session = _assessed()
        session.navigate(Screen.TASKS)
        session.tasks.select_task(TaskCandidate("Walk"))
        session.tasks.attach_evidence(EvidenceFile("a.png", b"a"))

        session.navigate(Screen.DASHBOARD)
        assert session.tasks.selected is None
        assert session.tasks.evidence is None
        assert session.tasks.stage == TaskStage.IDLE

    def test_leaving_pods_closes_pod(self):
        session = _assessed()
        session.navigate(Screen.PODS)
        session.community.open_pod("1")
        session.navigate(Screen.LEADERBOARD)
        assert session.community.active is None


# ─────────────────────────────────────────────────────────────────────────────
# Cross-flow + lifecycle
# ─────────────────────────────────────────────────────────────────────────────

class TestLifecycle:
    async def test_pod_messages_use_record_username(self):
        gw = ScriptedGateway().script(AgentRole.MODERATOR, {"severity_level": "low"})
        session = _session(gw, username="Riya", phq9_score=1, gad7_score=1)
        session.navigate(Screen.PODS)
        session.community.open_pod("1")
        message = session.community.post_message("hi all")
        assert message.username == "Riya"
        await session.shutdown()

    async def test_join_challenge_updates_record(self):
        session = _assessed()
        assert await session.join_challenge("1") is True
        assert session.record.active_challenges == ("1",)

    async def test_shutdown_closes_gateway(self):
        gw = ScriptedGateway()
        session = _session(gw)
        await session.shutdown()
        assert gw.closed

    def test_status_summary(self):
        session = _session(points=1300, phq9_score=3, gad7_score=2)
        summary = session.status_summary()
        assert summary["screen"] == "dashboard"
        assert summary["points"] == 1300
        assert summary["rank"] == 7
        assert summary["last_save_ok"] is True


class TestBuildSession:
    async def test_wires_settings_and_restores_progress(self, tmp_path):
        settings = Settings(persistence={"data_dir": str(tmp_path), "namespace": "ns"})
        seeded = ProgressStore.open(settings.snapshot_path)
        await seeded.update(lambda r: r.with_scores(5, 5).with_reward(40, "Walk"))

        gw = ScriptedGateway()
        session = build_session(settings, gateway=gw)
        assert session.screen == Screen.DASHBOARD
        assert session.record.points == 40
        assert session.tasks._ack_seconds == settings.app.success_ack_seconds

        await session.shutdown()
        assert gw.closed
