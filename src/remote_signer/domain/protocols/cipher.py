"""Protocolo da capacidade de criptografia assimétrica de payloads.

Um único esquema por implementação; não há negociação entre esquemas.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class CipherProtocol(ABC):
    """Gera chaves efêmeras e cifra/decifra payloads entre dois pares."""

    @abstractmethod
    def generate_keypair(self) -> tuple[str, str]:
        """Retorna (secret_key_hex, public_key_hex)."""
        ...

    @abstractmethod
    def public_key(self, secret_key: str) -> str:
        """Deriva a chave pública hex a partir da privada hex."""
        ...

    @abstractmethod
    def encrypt(self, secret_key: str, peer_pubkey: str, plaintext: str) -> str: ...

    @abstractmethod
    def decrypt(self, secret_key: str, peer_pubkey: str, ciphertext: str) -> str: ...
