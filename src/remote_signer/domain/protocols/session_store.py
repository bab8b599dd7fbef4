"""Protocolo de domínio para persistência da sessão (slot único)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from remote_signer.domain.models import SignerSession


class SessionStoreProtocol(ABC):
    """Contrato mínimo síncrono: um único registro sob chave fixa."""

    @abstractmethod
    def save(self, session: SignerSession) -> None: ...

    @abstractmethod
    def load(self) -> SignerSession | None: ...

    @abstractmethod
    def clear(self) -> None: ...
