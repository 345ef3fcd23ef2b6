"""
flows/leaderboard.py — Seeded standings

Other users are simulated locally. The current user is ranked by where
their points would place them; ties go to the existing entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    username: str
    points: int
    badges: int


DEFAULT_STANDINGS: tuple[LeaderboardEntry, ...] = (
    LeaderboardEntry(1, "MindfulWarrior", 2450, 12),
    LeaderboardEntry(2, "ZenMaster99", 2180, 10),
    LeaderboardEntry(3, "PeacefulSoul", 1950, 9),
    LeaderboardEntry(4, "CalmSeeker", 1720, 8),
    LeaderboardEntry(5, "WellnessJourney", 1590, 7),
    LeaderboardEntry(6, "BalancedLife", 1420, 6),
    LeaderboardEntry(7, "HappyVibes", 1280, 5),
    LeaderboardEntry(8, "InnerPeace", 1150, 5),
)


class Leaderboard:
    def __init__(self, entries: Optional[tuple[LeaderboardEntry, ...]] = None):
        self.entries = tuple(sorted(entries or DEFAULT_STANDINGS, key=lambda e: e.rank))

    @property
    def podium(self) -> tuple[LeaderboardEntry, ...]:
        return self.entries[:3]

    def rank_for(self, points: int) -> Optional[int]:
        """1-based rank the user would hold, or None if below every entry."""
        for entry in self.entries:
            if points > entry.points:
                return entry.rank
        return None
