"""
gateway/agent_client.py — Agent Gateway Clients

All transports must subclass AgentGateway and implement invoke() and
upload_evidence(). Both raise typed GatewayError subclasses on failure;
turning those into AgentResult / UploadResult is the dispatcher's job.

HttpAgentGateway speaks the agent platform's JSON envelope:

    POST {base_url}/agent   {"message": ..., "agent_id": ..., "assets": [...]}
      → {"success": true, "response": {"result": {...verdict...}}}

    POST {base_url}/upload  multipart "files"
      → {"success": true, "asset_ids": ["..."]}
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from exceptions import GatewayError, UploadError
from gateway.protocol import EvidenceFile
from observability.logger import get_logger

log = get_logger(__name__)


class AgentGateway(ABC):
    """
    Abstract transport to the agent platform.

    Subclasses must implement:
      - invoke()          -> send text (+ asset ids) to one agent, return its verdict payload
      - upload_evidence() -> store one file, return its asset ids
    """

    @abstractmethod
    async def invoke(
        self,
        prompt: str,
        agent_id: str,
        assets: Optional[list[str]] = None,
    ) -> Any:
        """Return the agent's result payload or raise GatewayError."""
        ...

    @abstractmethod
    async def upload_evidence(self, file: EvidenceFile) -> list[str]:
        """Return asset ids or raise UploadError."""
        ...

    async def close(self) -> None:
        """Release transport resources. Default: nothing to release."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class HttpAgentGateway(AgentGateway):
    """httpx-backed gateway. One AsyncClient is shared across all flows."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._base_url = base_url.rstrip("/")
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        # Timeouts are enforced by the dispatcher, not the transport.
        self._client = client or httpx.AsyncClient(headers=headers, timeout=None)
        self._owns_client = client is None

    # ── Public API ────────────────────────────────────────────────────────────

    async def invoke(
        self,
        prompt: str,
        agent_id: str,
        assets: Optional[list[str]] = None,
    ) -> Any:
        body: dict[str, Any] = {"message": prompt, "agent_id": agent_id}
        if assets:
            body["assets"] = list(assets)

        log.debug("gateway.invoke.start", agent_id=agent_id, assets=len(assets or []))
        try:
            response = await self._client.post(f"{self._base_url}/agent", json=body)
            response.raise_for_status()
            envelope = response.json()
        except httpx.HTTPStatusError as e:
            raise GatewayError(
                f"Agent endpoint returned HTTP {e.response.status_code}", agent_id=agent_id,
            ) from e
        except httpx.HTTPError as e:
            raise GatewayError(f"{type(e).__name__}: {e}", agent_id=agent_id) from e
        except ValueError as e:
            raise GatewayError("Agent endpoint returned invalid JSON", agent_id=agent_id) from e

        if not isinstance(envelope, dict) or not envelope.get("success"):
            message = envelope.get("error") if isinstance(envelope, dict) else None
            raise GatewayError(message or "Agent reported failure", agent_id=agent_id)

        inner = envelope.get("response")
        if not isinstance(inner, dict) or inner.get("result") is None:
            raise GatewayError("Agent envelope has no result", agent_id=agent_id)
        return inner["result"]

    async def upload_evidence(self, file: EvidenceFile) -> list[str]:
        files = {"files": (file.filename, file.content, file.content_type)}
        log.debug("gateway.upload.start", filename=file.filename, size=file.size)
        try:
            response = await self._client.post(f"{self._base_url}/upload", files=files)
            response.raise_for_status()
            envelope = response.json()
        except httpx.HTTPStatusError as e:
            raise UploadError(f"Upload endpoint returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise UploadError(f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise UploadError("Upload endpoint returned invalid JSON") from e

        if not isinstance(envelope, dict) or not envelope.get("success"):
            raise UploadError("Upload reported failure")
        asset_ids = envelope.get("asset_ids") or []
        if not isinstance(asset_ids, list):
            raise UploadError("Upload returned malformed asset_ids")
        return [str(a) for a in asset_ids]

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def __repr__(self) -> str:
        return f"<HttpAgentGateway {self._base_url}>"
