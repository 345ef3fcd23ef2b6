"""
gateway/dispatch.py — Bounded Agent Dispatch

Wraps any AgentGateway so the flows get a result object instead of an
exception, and so no call can hang a flow forever:

  1. Resolves the AgentRole to its configured opaque id.
  2. Runs the call under asyncio.wait_for(timeout).
  3. Converts GatewayError / UploadError / timeout, or any other transport
     exception, into a failed result and logs it. Cancellation propagates.
     No retries: recovery is always user-initiated.

Usage:
    dispatcher = AgentDispatcher(gateway, settings.agents, timeout=30)
    result = await dispatcher.invoke(AgentRole.ORCHESTRATOR, "I feel stressed")
    if result.reached_agent:
        ...
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional

from config.settings import AgentsConfig
from exceptions import AgentTimeoutError, GatewayError
from gateway.agent_client import AgentGateway
from gateway.protocol import AgentResult, AgentRole, EvidenceFile, UploadResult
from observability.logger import get_logger

log = get_logger(__name__)


class AgentDispatcher:
    """Single call site for all four agents plus the evidence upload."""

    def __init__(
        self,
        gateway: AgentGateway,
        agents: Optional[AgentsConfig] = None,
        timeout: float = 30.0,
        upload_timeout: float = 60.0,
    ):
        self._gateway = gateway
        self._agents = agents or AgentsConfig()
        self._timeout = timeout
        self._upload_timeout = upload_timeout

    @property
    def gateway(self) -> AgentGateway:
        return self._gateway

    def agent_id(self, role: AgentRole) -> str:
        return getattr(self._agents, role.value)

    async def invoke(
        self,
        role: AgentRole,
        prompt: str,
        assets: Optional[list[str]] = None,
    ) -> AgentResult:
        agent_id = self.agent_id(role)
        t0 = time.monotonic()
        try:
            payload = await asyncio.wait_for(
                self._gateway.invoke(prompt, agent_id, assets=assets),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            err = AgentTimeoutError(self._timeout, agent_id=agent_id)
            log.warning("gateway.invoke.timeout", role=role.value, timeout_s=self._timeout)
            return AgentResult.fail(role, str(err), type(err).__name__, timed_out=True,
                                    duration_ms=_ms(t0))
        except asyncio.CancelledError:
            raise
        except GatewayError as e:
            log.warning("gateway.invoke.failed", role=role.value,
                        error=str(e), error_type=type(e).__name__)
            return AgentResult.fail(role, str(e), type(e).__name__, duration_ms=_ms(t0))
        except Exception as e:
            log.error("gateway.invoke.unexpected", role=role.value, error=str(e),
                      error_type=type(e).__name__, exc_info=True)
            return AgentResult.fail(role, f"{type(e).__name__}: {e}", type(e).__name__,
                                    duration_ms=_ms(t0))

        result = AgentResult.ok(role, payload, duration_ms=_ms(t0))
        if result.error:
            log.warning("gateway.invoke.malformed", role=role.value, error=result.error)
        else:
            log.info("gateway.invoke.done", role=role.value, ms=round(result.duration_ms))
        return result

    async def upload(self, file: EvidenceFile) -> UploadResult:
        try:
            asset_ids = await asyncio.wait_for(
                self._gateway.upload_evidence(file),
                timeout=self._upload_timeout,
            )
        except asyncio.TimeoutError:
            err = AgentTimeoutError(self._upload_timeout)
            log.warning("gateway.upload.timeout", filename=file.filename,
                        timeout_s=self._upload_timeout)
            return UploadResult.fail(str(err), type(err).__name__)
        except asyncio.CancelledError:
            raise
        except GatewayError as e:
            log.warning("gateway.upload.failed", filename=file.filename,
                        error=str(e), error_type=type(e).__name__)
            return UploadResult.fail(str(e), type(e).__name__)
        except Exception as e:
            log.error("gateway.upload.unexpected", filename=file.filename, error=str(e),
                      error_type=type(e).__name__, exc_info=True)
            return UploadResult.fail(f"{type(e).__name__}: {e}", type(e).__name__)

        result = UploadResult.ok(asset_ids)
        if not result.success:
            log.warning("gateway.upload.empty", filename=file.filename)
        return result

    async def close(self) -> None:
        await self._gateway.close()


def _ms(t0: float) -> float:
    return (time.monotonic() - t0) * 1000
