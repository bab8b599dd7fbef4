"""Re-exports dos Protocolos de domínio para uso por Application."""

from __future__ import annotations

from remote_signer.domain.protocols.bus import (
    Event,
    EventHandler,
    MessageBusProtocol,
    Unsubscribe,
)
from remote_signer.domain.protocols.cipher import CipherProtocol
from remote_signer.domain.protocols.session_store import SessionStoreProtocol

__all__ = [
    "CipherProtocol",
    "Event",
    "EventHandler",
    "MessageBusProtocol",
    "SessionStoreProtocol",
    "Unsubscribe",
]
