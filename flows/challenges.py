"""
flows/challenges.py — Challenge Board

Joining is idempotent: the active flag guards both the participant counter
and the Progress Record entry, so a second join changes nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from exceptions import ChallengeNotFoundError
from observability.logger import get_logger
from state.progress import ProgressStore

log = get_logger(__name__)


@dataclass
class Challenge:
    id: str
    name: str
    description: str
    points: int
    participants: int
    duration: str
    deadline: str
    progress: int = 0
    active: bool = False


def default_challenges() -> list[Challenge]:
    return [
        Challenge("1", "7-Day Meditation Sprint",
                  "Meditate for at least 10 minutes every day for a week",
                  points=200, participants=156, duration="7 days", deadline="2026-02-13"),
        Challenge("2", "Gratitude Journal Challenge",
                  "Write 3 things you're grateful for each day",
                  points=150, participants=243, duration="5 days", deadline="2026-02-11"),
        Challenge("3", "Social Connection Week",
                  "Reach out to someone different each day",
                  points=180, participants=189, duration="7 days", deadline="2026-02-13"),
    ]


class ChallengeBoard:
    def __init__(self, progress: ProgressStore,
                 challenges: Optional[list[Challenge]] = None):
        self._progress = progress
        self._challenges = {
            c.id: c for c in (challenges if challenges is not None else default_challenges())
        }
        # A restored record may already hold joined challenges.
        for cid in progress.current.active_challenges:
            if cid in self._challenges:
                self._challenges[cid].active = True

    @property
    def challenges(self) -> list[Challenge]:
        return list(self._challenges.values())

    def get(self, challenge_id: str) -> Challenge:
        challenge = self._challenges.get(challenge_id)
        if challenge is None:
            raise ChallengeNotFoundError(challenge_id)
        return challenge

    async def join(self, challenge_id: str) -> bool:
        """Join once. Returns False when already active."""
        challenge = self.get(challenge_id)
        if challenge.active:
            log.debug("challenges.join.already_active", challenge_id=challenge_id)
            return False

        challenge.active = True
        challenge.participants += 1
        await self._progress.update(lambda rec: rec.with_challenge(challenge_id))
        log.info("challenges.joined", challenge_id=challenge_id,
                 participants=challenge.participants)
        return True
