"""
exceptions.py — MindX Unified Error Hierarchy

All MindX-specific exceptions live here. Every layer of the stack raises
typed subclasses of MindXError — never bare Exception.

Import from here, not from individual modules:
    from exceptions import GatewayError, AssessmentIndexError

Hierarchy:
    MindXError
    ├── GatewayError
    │   ├── AgentTimeoutError
    │   └── UploadError
    ├── FlowError
    │   ├── AssessmentError
    │   │   ├── AssessmentIndexError
    │   │   └── InvalidAnswerError
    │   ├── ChallengeNotFoundError
    │   └── PodNotFoundError
    └── ProgressError
        ├── ProgressInvariantError
        ├── StaleProgressError
        └── PersistenceError
"""

from __future__ import annotations

from typing import Optional


# ─────────────────────────────────────────────────────────────────────────────
# Root
# ─────────────────────────────────────────────────────────────────────────────

class MindXError(Exception):
    """Base class for all MindX exceptions."""


# ─────────────────────────────────────────────────────────────────────────────
# Gateway layer
# ─────────────────────────────────────────────────────────────────────────────

class GatewayError(MindXError):
    """An agent invocation failed or returned a non-success envelope."""

    def __init__(self, message: str = "", agent_id: Optional[str] = None) -> None:
        self.agent_id = agent_id
        super().__init__(message or "Agent invocation failed")


class AgentTimeoutError(GatewayError):
    """The bounded wait for an agent (or upload) expired."""

    def __init__(self, timeout_seconds: float, agent_id: Optional[str] = None) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"No reply within {timeout_seconds:g}s", agent_id=agent_id,
        )


class UploadError(GatewayError):
    """Evidence could not be stored, or no asset ids came back."""


# ─────────────────────────────────────────────────────────────────────────────
# Flow layer
# ─────────────────────────────────────────────────────────────────────────────

class FlowError(MindXError):
    """Base for interaction-flow errors."""


class AssessmentError(FlowError):
    """Base for questionnaire errors. These indicate caller bugs."""


class AssessmentIndexError(AssessmentError):
    """Questionnaire item index outside 0..15."""

    def __init__(self, index: int, total: int) -> None:
        self.index = index
        super().__init__(f"Assessment item {index} out of range (0..{total - 1})")


class InvalidAnswerError(AssessmentError):
    """Answer value is not one of the four severity levels."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Answer must be one of 0, 1, 2, 3 — got {value!r}")


class ChallengeNotFoundError(FlowError):
    """Requested challenge id is not on the board."""

    def __init__(self, challenge_id: str) -> None:
        self.challenge_id = challenge_id
        super().__init__(f"Unknown challenge '{challenge_id}'")


class PodNotFoundError(FlowError):
    """Requested pod id does not exist."""

    def __init__(self, pod_id: str) -> None:
        self.pod_id = pod_id
        super().__init__(f"Unknown pod '{pod_id}'")


# ─────────────────────────────────────────────────────────────────────────────
# Progress layer
# ─────────────────────────────────────────────────────────────────────────────

class ProgressError(MindXError):
    """Base for Progress Record errors."""


class ProgressInvariantError(ProgressError):
    """An update would decrease points or overwrite assessment scores."""


class StaleProgressError(ProgressError):
    """compare_and_set() was given a version that is no longer current."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Progress version {expected} is stale (current {actual})")


class PersistenceError(ProgressError):
    """The progress snapshot could not be written."""


# ─────────────────────────────────────────────────────────────────────────────
# Convenience: all public names
# ─────────────────────────────────────────────────────────────────────────────

__all__ = [
    "MindXError",
    # Gateway
    "GatewayError",
    "AgentTimeoutError",
    "UploadError",
    # Flow
    "FlowError",
    "AssessmentError",
    "AssessmentIndexError",
    "InvalidAnswerError",
    "ChallengeNotFoundError",
    "PodNotFoundError",
    # Progress
    "ProgressError",
    "ProgressInvariantError",
    "StaleProgressError",
    "PersistenceError",
]
