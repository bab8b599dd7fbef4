"""Modelos de domínio: descritor de conexão, sessão e payloads RPC.

SignerSession é a unidade durável de estado:
- Exatamente uma sessão ativa por gerenciador
- Só é persistida após pareamento completo (user_pubkey confirmada)
- A chave efêmera privada nunca sai do gerenciador
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

KEY_HEX_LENGTH = 64
_HEX_KEY_RE = re.compile(r"^[0-9a-f]{64}$")


def is_hex_key(value: Any) -> bool:
    """True se `value` é uma chave hex canônica (64 chars, minúscula)."""

    return isinstance(value, str) and bool(_HEX_KEY_RE.match(value))


def _normalize_key(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


class ConnectionDescriptor(BaseModel):
    """Resultado do parser de URI de pareamento."""

    model_config = ConfigDict(frozen=True)

    scheme: Literal["bunker", "nostrconnect"]
    remote_pubkey: str
    relays: list[str] = Field(min_length=1)
    secret: str | None = None
    permissions: list[str] | None = None
    label: str | None = None

    @field_validator("remote_pubkey", mode="before")
    @classmethod
    def _check_remote_pubkey(cls, value: Any) -> Any:
        value = _normalize_key(value)
        if not is_hex_key(value):
            raise ValueError("remote_pubkey must be 64 hex chars")
        return value


class SignerSession(BaseModel):
    """Estado completo da sessão com o signer remoto.

    Responsabilidades:
    - Endereçar mensagens (relays, chaves efêmeras)
    - Guardar a identidade confirmada do usuário
    - Serializável para o slot único do SessionStore
    """

    remote_pubkey: str
    relays: list[str]
    client_secret_key: str
    client_pubkey: str
    user_pubkey: str = ""
    secret: str | None = None
    permissions: list[str] | None = None
    label: str | None = None
    last_connected: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))

    @field_validator("remote_pubkey", "client_pubkey", "user_pubkey", mode="before")
    @classmethod
    def _lower_keys(cls, value: Any) -> Any:
        return _normalize_key(value)

    @property
    def is_paired(self) -> bool:
        """True quando o signer remoto confirmou a chave do usuário."""
        return is_hex_key(self.user_pubkey)

    def touch(self) -> None:
        """Atualiza timestamp do último contato bem-sucedido."""
        self.last_connected = datetime.now(tz=UTC)


class RpcRequest(BaseModel):
    """Payload de requisição antes da criptografia."""

    id: str
    method: str
    params: list[Any] = Field(default_factory=list)


class RpcResponse(BaseModel):
    """Payload de resposta após decriptografia.

    `error` aparece como string ou como objeto com `message`; normalizado para str.
    """

    id: str
    result: Any = None
    error: str | None = None

    @field_validator("error", mode="before")
    @classmethod
    def _normalize_error(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value or None
        if isinstance(value, dict):
            message = value.get("message")
            return str(message) if message else "Remote signer error"
        return str(value)
