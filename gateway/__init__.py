"""
gateway/ — Agent Gateway

The only path from the flows to the four external decision services.
Transports (AgentGateway subclasses) raise; the AgentDispatcher bounds every
call with a timeout and hands the flows an AgentResult / UploadResult.
"""

from gateway.protocol import AgentResult, AgentRole, EvidenceFile, ResultKind, UploadResult
from gateway.agent_client import AgentGateway, HttpAgentGateway
from gateway.dispatch import AgentDispatcher

__all__ = [
    "AgentRole",
    "ResultKind",
    "AgentResult",
    "UploadResult",
    "EvidenceFile",
    "AgentGateway",
    "HttpAgentGateway",
    "AgentDispatcher",
]
