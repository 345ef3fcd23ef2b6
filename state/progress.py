"""
state/progress.py — Progress Record + Versioned Store

The Progress Record is the single persisted per-user object. It is never
mutated in place: every change goes through ProgressStore.update(fn), which

    1. serialises writers on an asyncio.Lock,
    2. applies fn to the *latest* snapshot (never a cached copy),
    3. checks the record invariants,
    4. bumps the version and saves the whole record to disk.

Invariants:
    - points never decrease
    - phq9_score / gad7_score, once set, never change

A restored record holding only one of the two scores is treated as not yet
assessed: the lone score is dropped when the store is created.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from exceptions import PersistenceError, ProgressInvariantError, StaleProgressError
from observability.logger import get_logger

log = get_logger(__name__)

DEFAULT_USERNAME = "Anonymous User"
POINTS_PER_LEVEL = 500


def level_for_points(points: int) -> int:
    """Level 1 at 0 points, +1 for every POINTS_PER_LEVEL earned."""
    return 1 + max(points, 0) // POINTS_PER_LEVEL


class ProgressRecord(BaseModel):
    """Flat, JSON-serialisable user progress. Keys match the stored snapshot."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    username: str = DEFAULT_USERNAME
    points: int = Field(default=0, ge=0)
    streak: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    phq9_score: Optional[int] = Field(default=None, alias="phq9Score", ge=0, le=27)
    gad7_score: Optional[int] = Field(default=None, alias="gad7Score", ge=0, le=21)
    completed_tasks: tuple[str, ...] = Field(default=(), alias="completedTasks")
    active_challenges: tuple[str, ...] = Field(default=(), alias="activeChallenges")

    # ── Derived ───────────────────────────────────────────────────────────────

    @property
    def assessment_complete(self) -> bool:
        return self.phq9_score is not None and self.gad7_score is not None

    # ── Pure transitions (return a new record) ────────────────────────────────

    def with_reward(self, points: int, task_title: str) -> "ProgressRecord":
        """Points and completed task move together in one new snapshot."""
        total = self.points + max(points, 0)
        completed = self.completed_tasks
        if task_title not in completed:
            completed = completed + (task_title,)
        return self.model_copy(update={
            "points": total,
            "level": max(self.level, level_for_points(total)),
            "completed_tasks": completed,
        })

    def with_scores(self, phq9: int, gad7: int) -> "ProgressRecord":
        return self.model_copy(update={"phq9_score": phq9, "gad7_score": gad7})

    def without_partial_scores(self) -> "ProgressRecord":
        """Drop a lone score. Only a complete pair counts as a finished assessment."""
        if self.assessment_complete or (self.phq9_score is None and self.gad7_score is None):
            return self
        return self.model_copy(update={"phq9_score": None, "gad7_score": None})

    def with_challenge(self, challenge_id: str) -> "ProgressRecord":
        if challenge_id in self.active_challenges:
            return self
        return self.model_copy(
            update={"active_challenges": self.active_challenges + (challenge_id,)}
        )

    def with_username(self, username: str) -> "ProgressRecord":
        return self.model_copy(update={"username": username})

    # ── Serialisation ─────────────────────────────────────────────────────────

    def to_snapshot(self) -> dict:
        data = self.model_dump(by_alias=True, exclude_none=True)
        data["completedTasks"] = list(self.completed_tasks)
        data["activeChallenges"] = list(self.active_challenges)
        return data

    @classmethod
    def from_snapshot(cls, data: dict) -> "ProgressRecord":
        return cls.model_validate(data)


def check_transition(old: ProgressRecord, new: ProgressRecord) -> None:
    """Raise ProgressInvariantError if old → new breaks a record invariant."""
    if new.points < old.points:
        raise ProgressInvariantError(
            f"points may not decrease ({old.points} → {new.points})"
        )
    for name in ("phq9_score", "gad7_score"):
        before, after = getattr(old, name), getattr(new, name)
        if before is not None and after != before:
            raise ProgressInvariantError(f"{name} is already set and immutable")


# ─────────────────────────────────────────────────────────────────────────────
# Persistence
# ─────────────────────────────────────────────────────────────────────────────

class SnapshotFile:
    """One JSON file holding the whole record. Writes are atomic renames."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> Optional[ProgressRecord]:
        """Return the stored record, or None if absent or unreadable."""
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return ProgressRecord.from_snapshot(data)
        except (OSError, ValueError, ValidationError) as e:
            log.warning("progress.load_failed", path=str(self.path),
                        error=str(e), error_type=type(e).__name__)
            return None

    def save(self, record: ProgressRecord) -> None:
        payload = json.dumps(record.to_snapshot(), indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp, self.path)
            except OSError:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError(f"Could not write {self.path}: {e}") from e


# ─────────────────────────────────────────────────────────────────────────────
# Store
# ─────────────────────────────────────────────────────────────────────────────

class ProgressStore:
    """
    Owner of the Progress Record. Flows read `current` freely but write only
    through update() / compare_and_set().
    """

    def __init__(self, snapshot: Optional[SnapshotFile] = None,
                 initial: Optional[ProgressRecord] = None):
        self._snapshot = snapshot
        record = initial or ProgressRecord()
        restored = record.without_partial_scores()
        if restored is not record:
            log.warning("progress.partial_scores_dropped",
                        phq9_score=record.phq9_score, gad7_score=record.gad7_score)
        self._record = restored
        self._version = 0
        self._lock = asyncio.Lock()
        self.last_save_ok: bool = True

    @classmethod
    def open(cls, path: str | Path) -> "ProgressStore":
        """Load the persisted record once at startup (fresh record if none)."""
        snapshot = SnapshotFile(path)
        record = snapshot.load()
        log.info("progress.opened", path=str(snapshot.path), restored=record is not None)
        return cls(snapshot=snapshot, initial=record)

    @property
    def current(self) -> ProgressRecord:
        return self._record

    @property
    def version(self) -> int:
        return self._version

    async def update(self, fn: Callable[[ProgressRecord], ProgressRecord]) -> ProgressRecord:
        """Apply fn to the latest record atomically, then persist."""
        async with self._lock:
            old = self._record
            new = fn(old)
            if new == old:
                return old
            check_transition(old, new)
            self._commit(new)
            return new

    async def compare_and_set(self, expected_version: int,
                              record: ProgressRecord) -> ProgressRecord:
        """Replace the record only if nobody has written since expected_version."""
        async with self._lock:
            if expected_version != self._version:
                raise StaleProgressError(expected_version, self._version)
            check_transition(self._record, record)
            self._commit(record)
            return record

    def _commit(self, record: ProgressRecord) -> None:
        self._record = record
        self._version += 1
        self._save()

    def _save(self) -> None:
        if self._snapshot is None:
            return
        try:
            self._snapshot.save(self._record)
            self.last_save_ok = True
        except PersistenceError as e:
            # In-memory state stays authoritative; the next commit retries the write.
            self.last_save_ok = False
            log.warning("progress.save_failed", path=str(self._snapshot.path),
                        error=str(e), version=self._version)
