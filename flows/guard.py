"""
flows/guard.py — Per-flow busy flag

At most one gateway call per logical action. A flow checks `busy` and
returns early, otherwise wraps the call in `async with guard:`. The flag is
released on every exit path, including errors and timeouts.
"""

from __future__ import annotations

from observability.logger import get_logger

log = get_logger(__name__)


class BusyGuard:
    def __init__(self, name: str):
        self.name = name
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def reject_if_busy(self) -> bool:
        """True (and a debug log) when a call is already in flight."""
        if self._busy:
            log.debug("flow.busy_rejected", flow=self.name)
        return self._busy

    async def __aenter__(self) -> "BusyGuard":
        if self._busy:
            raise RuntimeError(f"{self.name} is already busy")
        self._busy = True
        return self

    async def __aexit__(self, *exc) -> None:
        self._busy = False

    def __repr__(self) -> str:
        return f"<BusyGuard {self.name} busy={self._busy}>"
