"""
flows/conversation.py — Conversation Router

Free-text chat with the orchestrator agent. Each send() appends exactly one
user entry and exactly one assistant entry, whatever the gateway does:

    user text ─► log (user) ─► orchestrator ─► FieldRule fallbacks ─► log (assistant)

The crisis flag on an assistant entry is a display instruction only. No
escalation call is made from here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

from flows import verdicts
from flows.guard import BusyGuard
from gateway.dispatch import AgentDispatcher
from gateway.protocol import AgentRole
from observability.logger import get_logger

log = get_logger(__name__)

CRISIS_NOTICE = (
    "If you're in crisis, please reach out: "
    "National Suicide Prevention Lifeline: 1-800-273-8255"
)


class ChatRole(str, Enum):
    USER      = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    role: ChatRole
    content: str
    crisis: bool = False
    routed_to: Optional[str] = None
    stressor: Optional[str] = None
    techniques: tuple[str, ...] = ()

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=ChatRole.USER, content=content)

    @property
    def notice(self) -> Optional[str]:
        return CRISIS_NOTICE if self.crisis else None


@dataclass
class ConversationLog:
    """Append-only. Entries are frozen, and there is no remove."""

    _entries: list[ChatMessage] = field(default_factory=list)

    def append(self, message: ChatMessage) -> None:
        self._entries.append(message)

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(tuple(self._entries))


class ConversationRouter:
    def __init__(self, dispatcher: AgentDispatcher):
        self._dispatcher = dispatcher
        self._guard = BusyGuard("chat")
        self.log = ConversationLog()

    @property
    def busy(self) -> bool:
        return self._guard.busy

    async def send(self, user_text: str) -> Optional[ChatMessage]:
        """Send one message. Returns the assistant entry, or None if rejected."""
        if not user_text or not user_text.strip() or self._guard.reject_if_busy():
            return None

        # Only surrounding whitespace is removed; the log and the agent see the same text.
        text = user_text.strip()
        async with self._guard:
            self.log.append(ChatMessage.user(text))
            result = await self._dispatcher.invoke(AgentRole.ORCHESTRATOR, text)
            reply = self._interpret(result.verdict) if result.reached_agent else None
            if reply is None:
                log.info("chat.send.fallback", kind=result.kind.value)
                reply = ChatMessage(role=ChatRole.ASSISTANT, content=verdicts.CHAT_FAILURE_REPLY)
            elif reply.crisis:
                log.warning("chat.crisis_detected", routed_to=reply.routed_to)
            self.log.append(reply)
        return reply

    @staticmethod
    def _interpret(verdict: dict) -> ChatMessage:
        return ChatMessage(
            role=ChatRole.ASSISTANT,
            content=verdicts.CHAT_REPLY.read(verdict),
            crisis=verdicts.CHAT_CRISIS.read(verdict),
            routed_to=verdicts.CHAT_ROUTED_TO.read(verdict),
            stressor=verdicts.CHAT_STRESSOR.read(verdict),
            techniques=tuple(verdicts.CHAT_TECHNIQUES.read(verdict)),
        )
