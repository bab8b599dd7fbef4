"""Adapter entre o correlator e o barramento publish/subscribe.

Inbound: filtra envelopes endereçados à chave efêmera da sessão, decifra,
valida `{id, result?, error?}` e encaminha ao correlator. Nada lança para
fora do caminho de recebimento: falhas viram DecodeError logado e descartado.

Outbound: serializa `{id, method, params}`, cifra para a chave remota, monta
o envelope e publica em todos os relays da sessão.
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from remote_signer.config.settings import NIP46_EVENT_KIND
from remote_signer.domain.errors import CipherError, DecodeError, RemoteSignerError
from remote_signer.domain.models import RpcRequest, RpcResponse
from remote_signer.observability.logging import get_logger, key_prefix
from remote_signer.utils.ids import compute_event_id, envelope_id_matches

if TYPE_CHECKING:
    from remote_signer.application.correlator import RequestCorrelator
    from remote_signer.domain.models import SignerSession
    from remote_signer.domain.protocols.bus import Event, MessageBusProtocol, Unsubscribe
    from remote_signer.domain.protocols.cipher import CipherProtocol

logger: logging.Logger = get_logger(__name__)


def build_envelope(
    cipher: CipherProtocol,
    sender_secret: str,
    sender_pubkey: str,
    recipient_pubkey: str,
    payload: dict[str, Any],
    kind: int = NIP46_EVENT_KIND,
) -> dict[str, Any]:
    """Cifra `payload` e monta o envelope publicado no barramento."""

    content = cipher.encrypt(sender_secret, recipient_pubkey, json.dumps(payload))
    created_at = int(time.time())
    tags = [["p", recipient_pubkey]]
    return {
        "id": compute_event_id(sender_pubkey, created_at, kind, tags, content),
        "kind": kind,
        "pubkey": sender_pubkey,
        "created_at": created_at,
        "tags": tags,
        "content": content,
    }


def recipient_tags(event: Event) -> list[str]:
    """Valores das tags `p` do envelope."""

    tags = event.get("tags")
    if not isinstance(tags, list):
        return []
    return [
        tag[1]
        for tag in tags
        if isinstance(tag, list) and len(tag) >= 2 and tag[0] == "p" and isinstance(tag[1], str)
    ]


class TransportAdapter:
    """Liga uma sessão ao barramento (uma instância por sessão ativa)."""

    def __init__(
        self,
        bus: MessageBusProtocol,
        cipher: CipherProtocol,
        correlator: RequestCorrelator,
        session: SignerSession,
    ) -> None:
        self._bus = bus
        self._cipher = cipher
        self._correlator = correlator
        self._session = session
        self._unsubscribe: Unsubscribe | None = None

    @property
    def is_active(self) -> bool:
        return self._unsubscribe is not None

    def subscription_filters(self) -> list[dict[str, Any]]:
        return [{"kinds": [NIP46_EVENT_KIND], "#p": [self._session.client_pubkey]}]

    async def start(self) -> None:
        """Ativa a assinatura filtrada pela chave efêmera da sessão."""
        await self.stop()
        self._bus.ensure_endpoints(self._session.relays)
        self._unsubscribe = await self._bus.subscribe(
            self.subscription_filters(),
            self._session.relays,
            self.handle_event,
        )
        logger.info(
            "transport_subscribed",
            extra={
                "client": key_prefix(self._session.client_pubkey),
                "relay_count": len(self._session.relays),
            },
        )

    async def stop(self) -> None:
        """Encerra a assinatura (idempotente)."""
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is None:
            return
        try:
            unsubscribe()
        except Exception as e:
            logger.warning("transport_unsubscribe_failed", extra={"error": str(e)})
        logger.info(
            "transport_unsubscribed",
            extra={"client": key_prefix(self._session.client_pubkey)},
        )

    async def send(self, request_id: str, method: str, params: list[Any]) -> None:
        """Cifra e publica a requisição em todos os relays da sessão."""
        request = RpcRequest(id=request_id, method=method, params=params)
        envelope = build_envelope(
            self._cipher,
            self._session.client_secret_key,
            self._session.client_pubkey,
            self._session.remote_pubkey,
            request.model_dump(),
        )
        await self._bus.publish(envelope, self._session.relays)
        logger.debug(
            "request_published",
            extra={"request_id": request_id, "method": method},
        )

    async def handle_event(self, event: Event) -> None:
        """Processa envelope recebido; nunca lança."""
        try:
            response = self._decode(event)
        except DecodeError as e:
            logger.warning("inbound_message_dropped", extra={"reason": str(e)})
            return
        except Exception as e:  # pragma: no cover - isolamento do caminho de recebimento
            logger.error("inbound_message_failed", extra={"error": type(e).__name__})
            return

        if response is None:
            return

        if response.error:
            self._correlator.reject(response.id, RemoteSignerError(response.error))
        else:
            self._correlator.resolve(response.id, response.result)

    def _decode(self, event: Any) -> RpcResponse | None:
        """Filtra e decifra; None para envelopes que não são desta sessão."""
        if not isinstance(event, dict):
            raise DecodeError("envelope is not an object")
        if event.get("kind") != NIP46_EVENT_KIND:
            return None
        if self._session.client_pubkey not in recipient_tags(event):
            return None
        if event.get("pubkey") != self._session.remote_pubkey:
            logger.debug(
                "inbound_from_unknown_sender",
                extra={"sender": key_prefix(event.get("pubkey"))},
            )
            return None
        if not envelope_id_matches(event):
            raise DecodeError("envelope id mismatch")

        try:
            plaintext = self._cipher.decrypt(
                self._session.client_secret_key,
                event["pubkey"],
                event.get("content", ""),
            )
        except CipherError as e:
            raise DecodeError(f"undecryptable content: {e}") from e

        try:
            data = json.loads(plaintext)
            return RpcResponse.model_validate(data)
        except (ValueError, ValidationError) as e:
            raise DecodeError(f"malformed response payload: {type(e).__name__}") from e
