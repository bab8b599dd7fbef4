"""Taxonomia de erros do gerenciador de sessão remota.

Regras de propagação:
- Parser e store: erro síncrono para o chamador imediato
- Timeout e erro remoto: para a operação que emitiu a requisição
- DecodeError: isolado por mensagem, logado e descartado (nunca chega ao chamador)
"""

from __future__ import annotations


class RemoteSignerBaseError(Exception):
    """Raiz de todos os erros do pacote."""

    pass


class InvalidPairingUriError(RemoteSignerBaseError, ValueError):
    """URI de pareamento malformada ou com esquema desconhecido."""

    pass


class MissingEndpointError(InvalidPairingUriError):
    """URI de pareamento sem nenhum parâmetro `relay`."""

    pass


class AlreadyConnectingError(RemoteSignerBaseError):
    """Já existe um pareamento em andamento nesta instância."""

    pass


class NotPairedError(RemoteSignerBaseError):
    """Operação exige sessão no estado `ready`."""

    def __init__(self, message: str = "Remote signer not connected") -> None:
        super().__init__(message)


class RequestTimeoutError(RemoteSignerBaseError, TimeoutError):
    """Nenhuma resposta correlacionada dentro da janela de timeout."""

    def __init__(self, method: str, timeout: float) -> None:
        self.method = method
        self.timeout = timeout
        super().__init__(f"Request timeout: {method or 'request'} ({timeout:g}s)")


class RemoteSignerError(RemoteSignerBaseError):
    """Erro reportado explicitamente pelo signer remoto."""

    def __init__(self, message: str) -> None:
        self.remote_message = message
        super().__init__(message)


class DecodeError(RemoteSignerBaseError):
    """Mensagem recebida malformada ou indecifrável."""

    pass


class SessionDisconnectedError(RemoteSignerBaseError):
    """Motivo terminal das requisições canceladas no teardown da sessão."""

    def __init__(self, message: str = "Session disconnected") -> None:
        super().__init__(message)


class SessionStoreError(RemoteSignerBaseError):
    """Erro ao persistir ou recuperar sessão."""

    pass


class CipherError(RemoteSignerBaseError):
    """Erro em operação criptográfica de payload."""

    pass
