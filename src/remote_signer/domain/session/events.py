"""Eventos que disparam transições no ciclo de vida da sessão."""

from __future__ import annotations

from enum import StrEnum


class SignerEvent(StrEnum):
    """Eventos canônicos do gerenciador."""

    # === Pareamento ===
    CONNECT_REQUESTED = "CONNECT_REQUESTED"
    """connect(uri) chamado com URI válida."""

    PAIRING_SUCCEEDED = "PAIRING_SUCCEEDED"
    """connect + get_public_key concluídos; sessão persistida."""

    PAIRING_FAILED = "PAIRING_FAILED"
    """Timeout, erro remoto ou resposta malformada durante o handshake."""

    # === Restauração ===
    SESSION_RESTORED = "SESSION_RESTORED"
    """Sessão persistida reativada sem handshake."""

    RESTORE_FAILED = "RESTORE_FAILED"
    """Falha ao reativar sessão persistida."""

    # === Teardown ===
    DISCONNECT_REQUESTED = "DISCONNECT_REQUESTED"
    """disconnect() explícito."""
