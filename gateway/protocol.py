"""
gateway/protocol.py — Agent Gateway Types

Typed values exchanged between the flows and the agent gateway:
  - AgentRole      — the four decision services
  - EvidenceFile   — one attachment awaiting upload
  - AgentResult    — outcome of one agent invocation (never raises)
  - UploadResult   — outcome of one evidence upload (never raises)
"""

from __future__ import annotations

import base64
import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


# ─────────────────────────────────────────────────────────────────────────────
# Agents
# ─────────────────────────────────────────────────────────────────────────────

class AgentRole(str, Enum):
    """Logical name of each agent. Opaque ids come from AgentsConfig."""

    ORCHESTRATOR      = "orchestrator"
    TASK_RECOMMENDER  = "task_recommender"
    EVIDENCE_VERIFIER = "evidence_verifier"
    MODERATOR         = "moderator"


class ResultKind(str, Enum):
    SUCCESS       = "success"
    GATEWAY_ERROR = "gateway_error"
    TIMEOUT       = "timeout"
    MALFORMED     = "malformed"


# ─────────────────────────────────────────────────────────────────────────────
# Evidence
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class EvidenceFile:
    """A user-picked file bound for upload. Bytes are held in memory."""

    filename: str
    content: bytes
    content_type: str = ""

    def __post_init__(self) -> None:
        if not self.content_type:
            guessed, _ = mimetypes.guess_type(self.filename)
            object.__setattr__(self, "content_type", guessed or "application/octet-stream")

    @property
    def size(self) -> int:
        return len(self.content)

    def preview_url(self) -> str:
        """data: URL suitable for an <img src> preview."""
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.content_type};base64,{encoded}"

    def __repr__(self) -> str:
        return f"<EvidenceFile {self.filename!r} {self.content_type} {self.size}B>"


# ─────────────────────────────────────────────────────────────────────────────
# Results
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class AgentResult:
    """
    The result of one agent invocation.

    Rules:
      - kind=SUCCESS means the agent replied with a JSON object in `verdict`.
      - kind=MALFORMED means the envelope succeeded but the payload was not
        an object; `verdict` is {} so every per-field fallback applies.
      - kind=GATEWAY_ERROR / TIMEOUT carry `error`; `verdict` is {}.
      - Callers never see the raw exception.
    """
    kind: ResultKind
    role: AgentRole
    verdict: dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    error_type: Optional[str] = None
    duration_ms: float = 0.0

    @classmethod
    def ok(cls, role: AgentRole, payload: Any, duration_ms: float = 0.0) -> "AgentResult":
        if isinstance(payload, dict):
            return cls(kind=ResultKind.SUCCESS, role=role, verdict=payload,
                       duration_ms=duration_ms)
        return cls(
            kind=ResultKind.MALFORMED,
            role=role,
            error=f"Expected a JSON object, got {type(payload).__name__}",
            error_type="MalformedVerdict",
            duration_ms=duration_ms,
        )

    @classmethod
    def fail(
        cls,
        role: AgentRole,
        error: str,
        error_type: str = "GatewayError",
        timed_out: bool = False,
        duration_ms: float = 0.0,
    ) -> "AgentResult":
        return cls(
            kind=ResultKind.TIMEOUT if timed_out else ResultKind.GATEWAY_ERROR,
            role=role,
            error=error,
            error_type=error_type,
            duration_ms=duration_ms,
        )

    @property
    def reached_agent(self) -> bool:
        """True when the agent answered, even with an unusable payload."""
        return self.kind in (ResultKind.SUCCESS, ResultKind.MALFORMED)

    @property
    def failed(self) -> bool:
        return not self.reached_agent


@dataclass
class UploadResult:
    asset_ids: list[str] = field(default_factory=list)
    error: Optional[str] = None
    error_type: Optional[str] = None

    @classmethod
    def ok(cls, asset_ids: list[str]) -> "UploadResult":
        if not asset_ids:
            return cls(error="Upload returned no asset ids", error_type="UploadError")
        return cls(asset_ids=list(asset_ids))

    @classmethod
    def fail(cls, error: str, error_type: str = "UploadError") -> "UploadResult":
        return cls(error=error, error_type=error_type)

    @property
    def success(self) -> bool:
        return self.error is None and bool(self.asset_ids)
