"""Re-exports dos Protocolos de domínio para uso por Application."""

from __future__ import annotations

from zapdesk.domain.protocols.ai import AIAssistant, AIReply
from zapdesk.domain.protocols.broadcast import BroadcastPreferences
from zapdesk.domain.protocols.catalog import CommerceService
from zapdesk.domain.protocols.stores import CustomerStore, HandoffStore
from zapdesk.domain.protocols.transport import Transport

__all__ = [
    "AIAssistant",
    "AIReply",
    "BroadcastPreferences",
    "CommerceService",
    "CustomerStore",
    "HandoffStore",
    "Transport",
]
