"""
tests/unit/test_challenges.py — Challenge Board & Leaderboard Tests
"""

from __future__ import annotations

import asyncio

import pytest

from exceptions import ChallengeNotFoundError
from flows.challenges import Challenge, ChallengeBoard, default_challenges
from flows.leaderboard import DEFAULT_STANDINGS, Leaderboard, LeaderboardEntry

from fakes import make_store


# ─────────────────────────────────────────────────────────────────────────────
# Challenges
# ─────────────────────────────────────────────────────────────────────────────

class TestChallengeBoard:
    def test_seeded_challenges_start_inactive(self):
        board = ChallengeBoard(make_store())
        assert [c.id for c in board.challenges] == ["1", "2", "3"]
        assert not any(c.active for c in board.challenges)

    async def test_join_marks_active_and_records(self):
        store = make_store()
        board = ChallengeBoard(store)
        before = board.get("2").participants

        assert await board.join("2") is True
        assert board.get("2").active
        assert board.get("2").participants == before + 1
        assert store.current.active_challenges == ("2",)

    async def test_second_join_changes_nothing(self):
        store = make_store()
        board = ChallengeBoard(store)
        await board.join("1")
        participants = board.get("1").participants
        version = store.version

        assert await board.join("1") is False
        assert board.get("1").participants == participants
        assert store.current.active_challenges == ("1",)
        assert store.version == version

    async def test_unknown_challenge(self):
        board = ChallengeBoard(make_store())
        with pytest.raises(ChallengeNotFoundError) as exc:
            await board.join("99")
        assert exc.value.challenge_id == "99"

    def test_restored_record_marks_active(self):
        board = ChallengeBoard(make_store(active_challenges=("3", "gone")))
        assert board.get("3").active
        assert not board.get("1").active

    async def test_restored_active_cannot_rejoin(self):
        store = make_store(active_challenges=("3",))
        board = ChallengeBoard(store)
        participants = board.get("3").participants
        assert await board.join("3") is False
        assert board.get("3").participants == participants

    async def test_concurrent_joins_count_once(self):
        store = make_store()
        board = ChallengeBoard(store,
                               challenges=[Challenge("c", "Walk", "", 10, 0, "1 day", "")])
        results = await asyncio.gather(*(board.join("c") for _ in range(5)))
        assert results.count(True) == 1
        assert board.get("c").participants == 1
        assert store.current.active_challenges == ("c",)

    def test_boards_do_not_share_seed_state(self):
        a = default_challenges()
        a[0].participants = 0
        assert default_challenges()[0].participants == 156


# ─────────────────────────────────────────────────────────────────────────────
# Leaderboard
# ─────────────────────────────────────────────────────────────────────────────

class TestLeaderboard:
    def test_default_standings(self):
        board = Leaderboard()
        assert len(board.entries) == 8
        assert [e.username for e in board.podium] == [
            "MindfulWarrior", "ZenMaster99", "PeacefulSoul",
        ]

    @pytest.mark.parametrize("points,rank", [
        (5000, 1),
        (2200, 2),
        (1200, 8),
        (1150, None),
        (0, None),
    ])
    def test_rank_for(self, points, rank):
        assert Leaderboard().rank_for(points) == rank

    def test_entries_sorted_by_rank(self):
        shuffled = tuple(reversed(DEFAULT_STANDINGS))
        assert Leaderboard(shuffled).entries[0].rank == 1

    def test_custom_entries(self):
        board = Leaderboard((LeaderboardEntry(1, "solo", 10, 0),))
        assert board.rank_for(11) == 1
        assert board.rank_for(10) is None
