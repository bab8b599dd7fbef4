"""Protocolo do barramento publish/subscribe (colaborador externo).

O barramento é público, com múltiplos escritores e entrega at-least-once.
O gerenciador só depende desta fronteira.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

Event = dict[str, Any]
EventHandler = Callable[[Event], Awaitable[None]]
Unsubscribe = Callable[[], None]


class MessageBusProtocol(ABC):
    """Contrato mínimo para publicar e assinar eventos em endpoints nomeados."""

    @abstractmethod
    async def publish(self, event: Event, relays: list[str]) -> None:
        """Publica `event` em todos os `relays`."""
        ...

    @abstractmethod
    async def subscribe(
        self,
        filters: list[dict[str, Any]],
        relays: list[str],
        on_event: EventHandler,
    ) -> Unsubscribe:
        """Assina eventos que casam com `filters` nos `relays`.

        Returns:
            Função que encerra a assinatura
        """
        ...

    def ensure_endpoints(self, relays: list[str]) -> None:  # noqa: B027
        """Garante conexão com os relays antes de assinar (opcional)."""
        return None
