"""Estados do ciclo de vida da sessão com o signer remoto.

- idle → connecting → ready (pareamento)
- error alcançável a partir de connecting ou ready (e de restauração falha)
- idle alcançável de qualquer estado via disconnect
"""

from __future__ import annotations

from enum import StrEnum


class SignerState(StrEnum):
    """4 estados canônicos do gerenciador."""

    IDLE = "idle"
    """Sem sessão; capability desabilitada."""

    CONNECTING = "connecting"
    """Handshake em andamento (connect + get_public_key)."""

    READY = "ready"
    """Sessão pareada; operações de assinatura permitidas."""

    ERROR = "error"
    """Pareamento ou restauração falhou; sessão descartada."""
