"""Barramento publish/subscribe em memória (dev/testes).

Simula relays públicos: qualquer assinante de um relay recebe os eventos
publicados nele que casam com seus filtros. Com `deliver_per_relay=True`
um evento publicado em N relays compartilhados chega N vezes
(entrega at-least-once).
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any

from remote_signer.domain.protocols.bus import (
    Event,
    EventHandler,
    MessageBusProtocol,
    Unsubscribe,
)
from remote_signer.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


def event_matches(event: Event, flt: dict[str, Any]) -> bool:
    """Casa evento com um filtro (`kinds`, `authors`, `#<tag>`)."""

    kinds = flt.get("kinds")
    if kinds is not None and event.get("kind") not in kinds:
        return False

    authors = flt.get("authors")
    if authors is not None and event.get("pubkey") not in authors:
        return False

    for name, wanted in flt.items():
        if not name.startswith("#"):
            continue
        tag_name = name[1:]
        values = {
            tag[1]
            for tag in event.get("tags", [])
            if isinstance(tag, list | tuple) and len(tag) >= 2 and tag[0] == tag_name
        }
        if not values.intersection(wanted):
            return False

    return True


@dataclass
class _Subscription:
    sub_id: int
    filters: list[dict[str, Any]]
    relays: set[str]
    handler: EventHandler
    active: bool = True


@dataclass
class InMemoryMessageBus(MessageBusProtocol):
    """Implementação em memória.

    ⚠️ NÃO use em produção (sem rede, sem persistência).
    """

    deliver_per_relay: bool = False
    published: list[tuple[Event, list[str]]] = field(default_factory=list)
    connected_relays: set[str] = field(default_factory=set)
    _subs: dict[int, _Subscription] = field(default_factory=dict, init=False, repr=False)
    _counter: itertools.count = field(
        default_factory=lambda: itertools.count(1), init=False, repr=False
    )

    @property
    def subscription_count(self) -> int:
        return len(self._subs)

    def ensure_endpoints(self, relays: list[str]) -> None:
        self.connected_relays.update(relays)

    async def publish(self, event: Event, relays: list[str]) -> None:
        """Entrega `event` a todos os assinantes compatíveis."""
        self.published.append((event, list(relays)))
        logger.debug(
            "published_in_memory",
            extra={"event_kind": event.get("kind"), "relay_count": len(relays)},
        )

        targets = set(relays)
        for sub in list(self._subs.values()):
            shared = sub.relays & targets
            if not shared or not any(event_matches(event, f) for f in sub.filters):
                continue
            deliveries = len(shared) if self.deliver_per_relay else 1
            for _ in range(deliveries):
                if not sub.active:
                    break
                try:
                    await sub.handler(event)
                except Exception:
                    logger.exception("subscriber_handler_failed", extra={"sub_id": sub.sub_id})

    async def subscribe(
        self,
        filters: list[dict[str, Any]],
        relays: list[str],
        on_event: EventHandler,
    ) -> Unsubscribe:
        sub = _Subscription(
            sub_id=next(self._counter),
            filters=[dict(f) for f in filters],
            relays=set(relays),
            handler=on_event,
        )
        self._subs[sub.sub_id] = sub
        logger.debug("subscribed_in_memory", extra={"sub_id": sub.sub_id})

        def unsubscribe() -> None:
            sub.active = False
            self._subs.pop(sub.sub_id, None)

        return unsubscribe
