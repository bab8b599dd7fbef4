"""Primitivas criptográficas de payload: X25519 + HKDF + AES-GCM.

Responsabilidades:
- Gerar par de chaves efêmero por sessão
- Derivar chave simétrica por par (ECDH X25519 → HKDF-SHA256)
- Cifrar/decifrar payloads RPC com AES-256-GCM
- Isolamento de cryptography.hazmat

Formato do ciphertext: ``base64(ct+tag)?iv=base64(nonce)``.
"""

from __future__ import annotations

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.hashes import SHA256
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from remote_signer.domain.errors import CipherError
from remote_signer.domain.protocols.cipher import CipherProtocol

AES_KEY_SIZE = 32  # 256 bits
IV_SIZE = 12  # 96 bits (recomendado para GCM)
HKDF_INFO = b"remote-signer/x25519-aesgcm/v1"

_RAW = serialization.Encoding.Raw


def _key_bytes(key_hex: str, what: str) -> bytes:
    try:
        raw = bytes.fromhex(key_hex)
    except (TypeError, ValueError) as e:
        raise CipherError(f"Invalid {what}: not hex") from e
    if len(raw) != 32:
        raise CipherError(f"Invalid {what}: expected 32 bytes, got {len(raw)}")
    return raw


def _load_private(secret_key: str) -> X25519PrivateKey:
    return X25519PrivateKey.from_private_bytes(_key_bytes(secret_key, "secret key"))


def _load_public(pubkey: str) -> X25519PublicKey:
    return X25519PublicKey.from_public_bytes(_key_bytes(pubkey, "public key"))


class X25519AesGcmCipher(CipherProtocol):
    """Implementação única de criptografia de payload usada pelo gerenciador."""

    def generate_keypair(self) -> tuple[str, str]:
        private_key = X25519PrivateKey.generate()
        secret = private_key.private_bytes(
            encoding=_RAW,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public = private_key.public_key().public_bytes(
            encoding=_RAW, format=serialization.PublicFormat.Raw
        )
        return secret.hex(), public.hex()

    def public_key(self, secret_key: str) -> str:
        public = _load_private(secret_key).public_key()
        return public.public_bytes(encoding=_RAW, format=serialization.PublicFormat.Raw).hex()

    def _shared_key(self, secret_key: str, peer_pubkey: str) -> bytes:
        try:
            shared = _load_private(secret_key).exchange(_load_public(peer_pubkey))
        except ValueError as e:
            # Ponto de baixa ordem: exchange resulta em zeros
            raise CipherError(f"Key exchange failed: {e}") from e
        return HKDF(
            algorithm=SHA256(),
            length=AES_KEY_SIZE,
            salt=None,
            info=HKDF_INFO,
        ).derive(shared)

    def encrypt(self, secret_key: str, peer_pubkey: str, plaintext: str) -> str:
        """Cifra `plaintext` para `peer_pubkey`.

        Raises:
            CipherError: Se chaves inválidas
        """
        key = self._shared_key(secret_key, peer_pubkey)
        nonce = os.urandom(IV_SIZE)
        ciphertext = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
        return (
            base64.b64encode(ciphertext).decode("ascii")
            + "?iv="
            + base64.b64encode(nonce).decode("ascii")
        )

    def decrypt(self, secret_key: str, peer_pubkey: str, ciphertext: str) -> str:
        """Decifra payload vindo de `peer_pubkey`.

        Raises:
            CipherError: Se formato inválido, autenticação falhar ou UTF-8 inválido
        """
        if not isinstance(ciphertext, str) or "?iv=" not in ciphertext:
            raise CipherError("Malformed ciphertext: missing iv")

        body, _, iv = ciphertext.partition("?iv=")
        try:
            data = base64.b64decode(body, validate=True)
            nonce = base64.b64decode(iv, validate=True)
        except (binascii.Error, ValueError) as e:
            raise CipherError(f"Malformed ciphertext: {e}") from e
        if len(nonce) != IV_SIZE:
            raise CipherError("Malformed ciphertext: bad iv length")

        key = self._shared_key(secret_key, peer_pubkey)
        try:
            plaintext = AESGCM(key).decrypt(nonce, data, None)
        except InvalidTag as e:
            raise CipherError("Decryption failed: authentication tag mismatch") from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CipherError("Decrypted payload is not valid UTF-8") from e


def create_cipher() -> CipherProtocol:
    """Factory do cipher padrão."""

    return X25519AesGcmCipher()
