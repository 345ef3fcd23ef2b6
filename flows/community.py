"""
flows/community.py — Pods + Optimistic Moderation

Two-phase write per posted message:

    1. commit   — append to the pod immediately, flagged=False
    2. correct  — background moderation; a "critical" verdict flags the
                  message, located by its id (never by position)

Moderation failures are logged and swallowed: the author never sees them
and nothing is retried. A flagged message is never unflagged.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from exceptions import PodNotFoundError
from flows import verdicts
from gateway.dispatch import AgentDispatcher
from gateway.protocol import AgentRole
from observability.logger import get_logger

log = get_logger(__name__)


@dataclass
class PodMessage:
    id: str
    username: str
    content: str
    timestamp: str
    flagged: bool = False

    def flag(self) -> None:
        self.flagged = True


@dataclass
class Pod:
    id: str
    name: str
    topic: str
    participants: int
    tags: tuple[str, ...] = ()
    messages: list[PodMessage] = field(default_factory=list)

    def find(self, message_id: str) -> Optional[PodMessage]:
        for msg in self.messages:
            if msg.id == message_id:
                return msg
        return None


def default_pods() -> list[Pod]:
    return [
        Pod("1", "Exam Stress Support", "Academic Pressure", 45,
            ("JEE", "NEET", "Study Tips")),
        Pod("2", "Work-Life Balance", "Career & Life", 38,
            ("Career", "Balance", "Burnout")),
        Pod("3", "Anxiety Circle", "Mental Health", 62,
            ("Anxiety", "Coping", "Support")),
    ]


def moderation_prompt(text: str) -> str:
    return f"Pod message: '{text}'"


class CommunityFlow:
    def __init__(
        self,
        dispatcher: AgentDispatcher,
        author: Callable[[], str],
        pods: Optional[list[Pod]] = None,
    ):
        self._dispatcher = dispatcher
        self._author = author
        self._pods = {p.id: p for p in (pods if pods is not None else default_pods())}
        self._moderations: set[asyncio.Task] = set()
        self.active: Optional[Pod] = None

    @property
    def pods(self) -> list[Pod]:
        return list(self._pods.values())

    @property
    def pending_moderations(self) -> int:
        return len(self._moderations)

    def get(self, pod_id: str) -> Pod:
        pod = self._pods.get(pod_id)
        if pod is None:
            raise PodNotFoundError(pod_id)
        return pod

    def open_pod(self, pod_id: str) -> Pod:
        self.active = self.get(pod_id)
        return self.active

    def close_pod(self) -> None:
        self.active = None

    def post_message(self, text: str, pod_id: Optional[str] = None) -> Optional[PodMessage]:
        """
        Append now, moderate later. Returns the visible message, or None when
        the text is blank or there is no thread to post to (no active pod, or
        an unknown pod_id).
        """
        pod = self._pods.get(pod_id) if pod_id is not None else self.active
        if pod is None:
            log.debug("pods.message.no_thread", pod_id=pod_id)
            return None
        if not text or not text.strip():
            return None

        content = text.strip()
        message = PodMessage(
            id=uuid.uuid4().hex,
            username=self._author(),
            content=content,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        pod.messages.append(message)
        log.info("pods.message.posted", pod_id=pod.id, message_id=message.id)

        task = asyncio.create_task(self._moderate(pod.id, message.id, content))
        self._moderations.add(task)
        task.add_done_callback(self._moderations.discard)
        return message

    async def _moderate(self, pod_id: str, message_id: str, content: str) -> None:
        result = await self._dispatcher.invoke(AgentRole.MODERATOR, moderation_prompt(content))
        if result.failed:
            log.info("pods.moderation.skipped", message_id=message_id, kind=result.kind.value)
            return

        severity = verdicts.MODERATION_SEVERITY.read(result.verdict)
        if severity != verdicts.CRITICAL:
            log.debug("pods.moderation.clear", message_id=message_id, severity=severity)
            return

        message = self._pods[pod_id].find(message_id)
        if message is None:
            log.warning("pods.moderation.message_missing", pod_id=pod_id, message_id=message_id)
            return
        message.flag()
        log.warning("pods.message.flagged", pod_id=pod_id, message_id=message_id)

    async def drain(self) -> None:
        """Wait for every outstanding moderation call to finish."""
        while self._moderations:
            await asyncio.gather(*list(self._moderations), return_exceptions=True)
