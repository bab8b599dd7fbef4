"""Codificação bech32 de chaves públicas (formato `npub1...`, NIP-19)."""

from __future__ import annotations

from bech32 import bech32_encode, convertbits

from remote_signer.domain.models import is_hex_key

NPUB_PREFIX = "npub"


def encode_npub(pubkey: str) -> str:
    """Converte chave pública hex (64 chars) em `npub1...`.

    Raises:
        ValueError: Se `pubkey` não for hex de 32 bytes
    """

    if not is_hex_key(pubkey):
        raise ValueError("pubkey must be 64 hex characters")
    data = convertbits(bytes.fromhex(pubkey), 8, 5)
    return bech32_encode(NPUB_PREFIX, data)
