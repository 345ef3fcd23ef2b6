"""
flows/verdicts.py — Declarative verdict field fallbacks

Every agent verdict is an untyped JSON object and every field in it is
optional. Each field a flow reads is declared once here as a FieldRule:
the keys to try in priority order, what counts as a usable value, and the
fallback when nothing matches. Reading a rule never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping


def _truthy(value: Any) -> bool:
    return bool(value)


def _non_empty_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _exactly_true(value: Any) -> bool:
    return value is True


def _positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def _non_empty_list(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def _text_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


@dataclass(frozen=True)
class FieldRule:
    name: str
    keys: tuple[str, ...]
    default: Any = None
    accept: Callable[[Any], bool] = _truthy

    def read(self, verdict: Mapping[str, Any] | None) -> Any:
        if not verdict:
            return self.default
        for key in self.keys:
            value = verdict.get(key)
            if self.accept(value):
                return value
        return self.default

    def equals(self, verdict: Mapping[str, Any] | None, expected: Any) -> bool:
        return self.read(verdict) == expected


# ─────────────────────────────────────────────────────────────────────────────
# Orchestrator (chat)
# ─────────────────────────────────────────────────────────────────────────────

CHAT_DEFAULT_REPLY = "I understand. Let me help you with that."
CHAT_FAILURE_REPLY = "I'm here for you. Please tell me more about what you're experiencing."

CHAT_REPLY = FieldRule("reply", ("response_message", "context_summary"),
                       CHAT_DEFAULT_REPLY, _non_empty_text)
CHAT_CRISIS = FieldRule("crisis", ("crisis_detected",), False, _exactly_true)
CHAT_ROUTED_TO = FieldRule("routed_to", ("routed_to_agent",), None, _non_empty_text)
CHAT_STRESSOR = FieldRule("stressor", ("detected_stressor",), None, _non_empty_text)
CHAT_TECHNIQUES = FieldRule("techniques", ("suggested_techniques",), [], _text_list)

# ─────────────────────────────────────────────────────────────────────────────
# Task recommender
# ─────────────────────────────────────────────────────────────────────────────

TASK_LIST = FieldRule("tasks", ("recommended_tasks",), None, _non_empty_list)
TASK_ENCOURAGEMENT = FieldRule("encouragement", ("encouragement_message",), None, _non_empty_text)
TASK_FOCUS = FieldRule("focus", ("priority_focus",), None, _non_empty_text)

# ─────────────────────────────────────────────────────────────────────────────
# Evidence verifier
# ─────────────────────────────────────────────────────────────────────────────

APPROVED = "approved"
VERIFY_DEFAULT_FEEDBACK = "Great job!"

VERIFY_STATUS = FieldRule("status", ("verification_status",), None, _non_empty_text)
VERIFY_POINTS = FieldRule("points", ("points_awarded",), None, _positive_number)
VERIFY_FEEDBACK = FieldRule("feedback", ("feedback_message",),
                            VERIFY_DEFAULT_FEEDBACK, _non_empty_text)
VERIFY_REJECTION = FieldRule("rejection", ("rejection_reason",), None, _non_empty_text)

# ─────────────────────────────────────────────────────────────────────────────
# Moderator
# ─────────────────────────────────────────────────────────────────────────────

CRITICAL = "critical"

MODERATION_SEVERITY = FieldRule("severity", ("severity_level",), None, _non_empty_text)
