"""Capability de assinatura exposta ao restante da aplicação.

Superfície equivalente a um signer local (NIP-07): identidade, assinatura
de eventos e criptografia para pares. Cada chamada exige sessão `ready`;
antes disso o chamador recebe NotPairedError e nada é publicado.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from remote_signer.domain.errors import RemoteSignerError

if TYPE_CHECKING:
    from remote_signer.application.lifecycle import RemoteSignerManager


class RemoteSignerCapability:
    """Handle injetável que delega ao RemoteSignerManager."""

    def __init__(self, manager: RemoteSignerManager) -> None:
        self._manager = manager

    @property
    def is_ready(self) -> bool:
        return self._manager.is_ready

    @property
    def relays(self) -> list[str]:
        """Relays da sessão atual (para exibição); vazio se não pareado."""
        return self._manager.relays

    endpoints = relays

    @property
    def user_npub(self) -> str | None:
        """Identidade do usuário em bech32 para exibição; None se não pareado."""
        return self._manager.user_npub

    async def get_identity(self) -> str:
        """Chave pública confirmada do usuário (sem round-trip)."""
        return self._manager.require_ready().user_pubkey

    async def sign_event(self, unsigned_event: dict[str, Any]) -> dict[str, Any]:
        """Pede ao signer remoto para assinar `unsigned_event`."""
        self._manager.require_ready()
        signed = await self._manager.request("sign_event", [unsigned_event])
        if isinstance(signed, str):
            try:
                signed = json.loads(signed)
            except ValueError as e:
                raise RemoteSignerError("Remote signer returned an invalid signed event") from e
        if not isinstance(signed, dict):
            raise RemoteSignerError("Remote signer returned an invalid signed event")
        return signed

    async def encrypt_for(self, peer_pubkey: str, plaintext: str) -> str:
        """Cifra `plaintext` para `peer_pubkey` com a chave do usuário."""
        return self._expect_str(
            await self._manager.request("nip04_encrypt", [peer_pubkey, plaintext]),
            "nip04_encrypt",
        )

    async def decrypt_from(self, peer_pubkey: str, ciphertext: str) -> str:
        """Decifra `ciphertext` recebido de `peer_pubkey`."""
        return self._expect_str(
            await self._manager.request("nip04_decrypt", [peer_pubkey, ciphertext]),
            "nip04_decrypt",
        )

    @staticmethod
    def _expect_str(value: Any, method: str) -> str:
        if not isinstance(value, str):
            raise RemoteSignerError(f"Remote signer returned a non-string result for {method}")
        return value
