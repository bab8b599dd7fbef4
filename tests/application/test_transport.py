"""Testes do TransportAdapter.

Valida:
- Assinatura filtrada pela chave efêmera da sessão
- Envelope de saída cifrado para a chave remota e publicado em todos os relays
- Respostas encaminhadas ao correlator (resultado e erro)
- Mensagens malformadas descartadas sem afetar pendentes
- Eventos de terceiros ignorados
"""

from __future__ import annotations

import json
import logging

import pytest

from remote_signer.application.correlator import RequestCorrelator
from remote_signer.application.transport import (
    TransportAdapter,
    build_envelope,
    recipient_tags,
)
from remote_signer.domain.errors import RemoteSignerError
from remote_signer.domain.models import SignerSession
from remote_signer.infra.bus_memory import InMemoryMessageBus
from remote_signer.infra.crypto import X25519AesGcmCipher
from remote_signer.utils.ids import compute_event_id

RELAYS = ["wss://r1", "wss://r2"]


class Harness:
    """Sessão + correlator + transporte, com o lado remoto simulado."""

    def __init__(self) -> None:
        self.cipher = X25519AesGcmCipher()
        self.bus = InMemoryMessageBus()
        self.remote_secret, self.remote_pubkey = self.cipher.generate_keypair()
        client_secret, client_pubkey = self.cipher.generate_keypair()
        self.session = SignerSession(
            remote_pubkey=self.remote_pubkey,
            relays=list(RELAYS),
            client_secret_key=client_secret,
            client_pubkey=client_pubkey,
        )
        self.correlator = RequestCorrelator()
        self.transport = TransportAdapter(self.bus, self.cipher, self.correlator, self.session)

    def remote_envelope(self, payload, *, secret: str | None = None, **overrides) -> dict:
        envelope = build_envelope(
            self.cipher,
            secret or self.remote_secret,
            self.remote_pubkey,
            self.session.client_pubkey,
            payload,
        )
        envelope.update(overrides)
        return envelope

    def raw_envelope(self, plaintext: str) -> dict:
        """Envelope válido com plaintext arbitrário (não necessariamente JSON)."""
        content = self.cipher.encrypt(self.remote_secret, self.session.client_pubkey, plaintext)
        tags = [["p", self.session.client_pubkey]]
        return {
            "id": compute_event_id(self.remote_pubkey, 1, 24133, tags, content),
            "kind": 24133,
            "pubkey": self.remote_pubkey,
            "created_at": 1,
            "tags": tags,
            "content": content,
        }


@pytest.fixture()
def harness() -> Harness:
    return Harness()


class TestSubscription:
    @pytest.mark.asyncio
    async def test_start_subscribes_on_session_relays(self, harness: Harness) -> None:
        """start assina os relays da sessão filtrando pela chave efêmera."""
        await harness.transport.start()

        assert harness.transport.is_active
        assert harness.bus.subscription_count == 1
        assert harness.bus.connected_relays == set(RELAYS)
        assert harness.transport.subscription_filters() == [
            {"kinds": [24133], "#p": [harness.session.client_pubkey]}
        ]

    @pytest.mark.asyncio
    async def test_restart_keeps_single_subscription(self, harness: Harness) -> None:
        """start repetido mantém uma única assinatura."""
        await harness.transport.start()
        await harness.transport.start()

        assert harness.bus.subscription_count == 1

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, harness: Harness) -> None:
        """stop pode ser chamado mais de uma vez."""
        await harness.transport.start()

        await harness.transport.stop()
        await harness.transport.stop()

        assert not harness.transport.is_active
        assert harness.bus.subscription_count == 0

    @pytest.mark.asyncio
    async def test_no_delivery_after_stop(self, harness: Harness) -> None:
        """Após stop, respostas não chegam ao correlator."""
        await harness.transport.start()
        request_id = harness.correlator.issue("ping")
        await harness.transport.stop()

        await harness.bus.publish(
            harness.remote_envelope({"id": request_id, "result": "pong"}), RELAYS
        )

        assert harness.correlator.is_pending(request_id)


class TestSend:
    @pytest.mark.asyncio
    async def test_envelope_addressed_to_remote(self, harness: Harness) -> None:
        """Envelope sai com kind, autor, tag p e id canônicos."""
        await harness.transport.send("req-1", "sign_event", [{"kind": 1}])

        [(envelope, relays)] = harness.bus.published
        assert relays == RELAYS
        assert envelope["kind"] == 24133
        assert envelope["pubkey"] == harness.session.client_pubkey
        assert recipient_tags(envelope) == [harness.remote_pubkey]
        assert envelope["id"] == compute_event_id(
            envelope["pubkey"],
            envelope["created_at"],
            envelope["kind"],
            envelope["tags"],
            envelope["content"],
        )

    @pytest.mark.asyncio
    async def test_payload_is_encrypted_for_remote(self, harness: Harness) -> None:
        """Payload só é legível pela chave remota."""
        await harness.transport.send("req-1", "sign_event", [{"kind": 1}])

        envelope, _ = harness.bus.published[0]
        assert "sign_event" not in envelope["content"]
        plaintext = harness.cipher.decrypt(
            harness.remote_secret, harness.session.client_pubkey, envelope["content"]
        )
        assert json.loads(plaintext) == {
            "id": "req-1",
            "method": "sign_event",
            "params": [{"kind": 1}],
        }


class TestInbound:
    @pytest.mark.asyncio
    async def test_result_resolves_pending(self, harness: Harness) -> None:
        """Resposta com result resolve a pendente."""
        await harness.transport.start()
        request_id = harness.correlator.issue("get_public_key")

        await harness.bus.publish(
            harness.remote_envelope({"id": request_id, "result": "ab" * 32}), RELAYS
        )

        assert await harness.correlator.wait(request_id, timeout=1.0) == "ab" * 32

    @pytest.mark.asyncio
    async def test_error_rejects_pending(self, harness: Harness) -> None:
        """Resposta com error rejeita com a mensagem remota."""
        await harness.transport.start()
        request_id = harness.correlator.issue("sign_event")

        await harness.bus.publish(
            harness.remote_envelope({"id": request_id, "error": "user declined"}), RELAYS
        )

        with pytest.raises(RemoteSignerError, match="user declined") as exc_info:
            await harness.correlator.wait(request_id, timeout=1.0)
        assert exc_info.value.remote_message == "user declined"

    @pytest.mark.asyncio
    async def test_duplicate_delivery_resolves_once(self) -> None:
        """Entrega duplicada resolve uma única vez."""
        harness = Harness()
        harness.bus.deliver_per_relay = True
        await harness.transport.start()
        request_id = harness.correlator.issue("ping")

        await harness.bus.publish(harness.remote_envelope({"id": request_id, "result": 1}), RELAYS)

        assert await harness.correlator.wait(request_id, timeout=1.0) == 1
        assert harness.correlator.pending_count == 0

    @pytest.mark.asyncio
    async def test_unknown_id_is_ignored(self, harness: Harness) -> None:
        """Resposta com id desconhecido não afeta pendentes."""
        await harness.transport.start()
        request_id = harness.correlator.issue("ping")

        await harness.bus.publish(harness.remote_envelope({"id": "other", "result": 1}), RELAYS)

        assert harness.correlator.is_pending(request_id)


class TestMalformedInbound:
    """Falha por mensagem: descartada e logada, pendentes intactas."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "plaintext",
        ["not json", "[1, 2]", '{"result": "missing id"}', '{"id": 7}'],
    )
    async def test_bad_payload_dropped(
        self, harness: Harness, plaintext: str, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Payload malformado é descartado e logado."""
        await harness.transport.start()
        first = harness.correlator.issue("a")
        second = harness.correlator.issue("b")

        with caplog.at_level(logging.WARNING):
            await harness.bus.publish(harness.raw_envelope(plaintext), RELAYS)

        assert harness.correlator.pending_count == 2
        assert harness.correlator.is_pending(first)
        assert harness.correlator.is_pending(second)
        assert any(r.getMessage() == "inbound_message_dropped" for r in caplog.records)

    @pytest.mark.asyncio
    async def test_undecryptable_content_dropped(self, harness: Harness) -> None:
        """Conteúdo que não decifra é descartado."""
        await harness.transport.start()
        request_id = harness.correlator.issue("a")
        intruder_secret, _ = harness.cipher.generate_keypair()

        await harness.bus.publish(
            harness.remote_envelope({"id": request_id, "result": 1}, secret=intruder_secret),
            RELAYS,
        )

        assert harness.correlator.is_pending(request_id)

    @pytest.mark.asyncio
    async def test_tampered_id_dropped(self, harness: Harness) -> None:
        """Envelope com id adulterado é descartado."""
        await harness.transport.start()
        request_id = harness.correlator.issue("a")

        await harness.bus.publish(
            harness.remote_envelope({"id": request_id, "result": 1}, id="0" * 64), RELAYS
        )

        assert harness.correlator.is_pending(request_id)

    @pytest.mark.asyncio
    async def test_non_dict_event_never_raises(self, harness: Harness) -> None:
        """Evento que não é objeto não lança."""
        await harness.transport.handle_event("garbage")  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_foreign_sender_ignored(self, harness: Harness) -> None:
        """Envelope de outro autor é ignorado."""
        await harness.transport.start()
        request_id = harness.correlator.issue("a")
        other_secret, other_pubkey = harness.cipher.generate_keypair()
        envelope = build_envelope(
            harness.cipher,
            other_secret,
            other_pubkey,
            harness.session.client_pubkey,
            {"id": request_id, "result": "forged"},
        )

        await harness.bus.publish(envelope, RELAYS)

        assert harness.correlator.is_pending(request_id)

    @pytest.mark.asyncio
    async def test_other_kind_ignored(self, harness: Harness) -> None:
        """Envelope de outro kind é ignorado."""
        request_id = harness.correlator.issue("a")

        await harness.transport.handle_event(
            harness.remote_envelope({"id": request_id, "result": 1}, kind=1)
        )

        assert harness.correlator.is_pending(request_id)
