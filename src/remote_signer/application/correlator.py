"""Correlação de requisições RPC em voo com respostas assíncronas.

Responsabilidades:
- Registrar a requisição antes de publicar (nenhuma resposta chega antes do registro)
- Resolver/rejeitar por id; timeout por requisição no relógio monotônico do loop
- Remover cada entrada exatamente uma vez (resposta, rejeição, timeout ou cancel_all)
- Respostas tardias ou duplicadas (entrega at-least-once) são no-op
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from remote_signer.domain.errors import RequestTimeoutError, SessionDisconnectedError
from remote_signer.observability.logging import get_logger
from remote_signer.utils.ids import new_request_id

logger: logging.Logger = get_logger(__name__)


@dataclass
class PendingRequest:
    """Requisição em voo (par resolve/reject = future)."""

    request_id: str
    method: str
    future: asyncio.Future[Any]
    timer: asyncio.TimerHandle | None = None

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class RequestCorrelator:
    """Rastreia requisições pendentes por id (uma instância por sessão ativa)."""

    def __init__(self) -> None:
        self._pending: dict[str, PendingRequest] = {}
        # Futures ficam acessíveis a wait() mesmo se a resposta chegar antes
        self._futures: dict[str, asyncio.Future[Any]] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, request_id: str) -> bool:
        return request_id in self._pending

    def issue(self, method: str = "") -> str:
        """Registra nova requisição pendente e retorna seu id."""
        loop = asyncio.get_running_loop()
        request_id = new_request_id()
        while request_id in self._pending or request_id in self._futures:
            request_id = new_request_id()

        future: asyncio.Future[Any] = loop.create_future()
        self._pending[request_id] = PendingRequest(request_id, method, future)
        self._futures[request_id] = future
        return request_id

    async def wait(self, request_id: str, timeout: float) -> Any:
        """Aguarda o resultado da requisição.

        Raises:
            RequestTimeoutError: Sem resposta dentro de `timeout` segundos
            RemoteSignerError / SessionDisconnectedError: Conforme rejeição
            KeyError: id nunca emitido ou já aguardado
        """
        future = self._futures.get(request_id)
        if future is None:
            raise KeyError(f"Unknown request id: {request_id}")

        entry = self._pending.get(request_id)
        if entry is not None and entry.timer is None and not future.done():
            loop = asyncio.get_running_loop()
            entry.timer = loop.call_later(timeout, self._expire, request_id, timeout)

        try:
            return await future
        except asyncio.CancelledError:
            # Aguardador cancelado: entrada e timer saem junto
            self.discard(request_id)
            raise
        finally:
            self._futures.pop(request_id, None)

    def resolve(self, request_id: str, result: Any) -> bool:
        """Resolve a requisição; no-op se já removida."""
        entry = self._pending.pop(request_id, None)
        if entry is None:
            logger.debug("late_or_unknown_response", extra={"request_id": request_id})
            return False
        entry.cancel_timer()
        if not entry.future.done():
            entry.future.set_result(result)
        return True

    def reject(self, request_id: str, error: BaseException) -> bool:
        """Rejeita a requisição; no-op se já removida."""
        entry = self._pending.pop(request_id, None)
        if entry is None:
            logger.debug("late_or_unknown_rejection", extra={"request_id": request_id})
            return False
        entry.cancel_timer()
        if not entry.future.done():
            entry.future.set_exception(error)
        return True

    def discard(self, request_id: str) -> None:
        """Remove requisição que nunca chegou a ser publicada."""
        entry = self._pending.pop(request_id, None)
        future = self._futures.pop(request_id, None)
        if entry is not None:
            entry.cancel_timer()
        if future is not None and not future.done():
            future.cancel()

    def cancel_all(self, reason: BaseException | str | None = None) -> int:
        """Rejeita todas as pendentes com o mesmo motivo e esvazia o conjunto."""
        if reason is None:
            error: BaseException = SessionDisconnectedError()
        elif isinstance(reason, str):
            error = SessionDisconnectedError(reason)
        else:
            error = reason

        entries = list(self._pending.values())
        self._pending.clear()
        for entry in entries:
            entry.cancel_timer()
            if not entry.future.done():
                entry.future.set_exception(error)
                # Evita "exception was never retrieved" se ninguém aguardar; await ainda lança
                entry.future.exception()
        if entries:
            logger.info("pending_requests_cancelled", extra={"count": len(entries)})
        return len(entries)

    def _expire(self, request_id: str, timeout: float) -> None:
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return
        entry.timer = None
        logger.warning(
            "request_timeout",
            extra={"request_id": request_id, "method": entry.method, "timeout_s": timeout},
        )
        if not entry.future.done():
            entry.future.set_exception(RequestTimeoutError(entry.method, timeout))
