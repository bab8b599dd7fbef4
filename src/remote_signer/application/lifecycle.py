"""RemoteSignerManager: ciclo de vida da sessão com o signer remoto.

Orquestra pareamento, ativação, teardown e restauração usando o parser de URI,
o SessionStore, o RequestCorrelator e o TransportAdapter. Única fonte de
mutação da sessão.

Máquina de estados (ver domain/session/transitions.py):
    idle → connecting → ready; error a partir de connecting/ready/restauração;
    idle a partir de qualquer estado via disconnect().
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from remote_signer.application.capability import RemoteSignerCapability
from remote_signer.application.correlator import RequestCorrelator
from remote_signer.application.pairing_uri import parse_pairing_uri
from remote_signer.application.transport import TransportAdapter
from remote_signer.config.settings import get_settings
from remote_signer.domain.errors import (
    AlreadyConnectingError,
    NotPairedError,
    RemoteSignerError,
    SessionDisconnectedError,
)
from remote_signer.domain.models import SignerSession, is_hex_key
from remote_signer.domain.session import SignerEvent, SignerState, validate_transition
from remote_signer.infra.crypto import create_cipher
from remote_signer.observability.context import correlation_scope
from remote_signer.observability.logging import get_logger, key_prefix
from remote_signer.observability.timing import timed
from remote_signer.utils.npub import encode_npub

if TYPE_CHECKING:
    from remote_signer.config.settings import Settings
    from remote_signer.domain.protocols.bus import MessageBusProtocol
    from remote_signer.domain.protocols.cipher import CipherProtocol
    from remote_signer.domain.protocols.session_store import SessionStoreProtocol

StateObserver = Callable[[SignerState, SignerSession | None, str | None], None]


class RemoteSignerManager:
    """Gerencia pareamento e sessão com um signer remoto (NIP-46).

    Um gerenciador = no máximo uma sessão ativa e um pareamento em voo.
    A capability retornada por connect()/bootstrap_from_storage() é o ponto
    de entrada do restante da aplicação; `previous_capability` é devolvida
    por `active_capability` sempre que não houver sessão pronta.
    """

    def __init__(
        self,
        bus: MessageBusProtocol,
        store: SessionStoreProtocol,
        cipher: CipherProtocol | None = None,
        settings: Settings | None = None,
        previous_capability: Any | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._bus = bus
        self._store = store
        self._cipher = cipher or create_cipher()
        self._settings = settings or get_settings()
        self._previous_capability = previous_capability
        self._logger = logger or get_logger(__name__)

        self._state = SignerState.IDLE
        self._restoring = False
        self._last_error: str | None = None
        self._session: SignerSession | None = None
        self._correlator: RequestCorrelator | None = None
        self._transport: TransportAdapter | None = None
        self._observers: list[StateObserver] = []
        self._capability = RemoteSignerCapability(self)

    # ------------------------------------------------------------------
    # Leitura de estado
    # ------------------------------------------------------------------

    @property
    def state(self) -> SignerState:
        return self._state

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def session(self) -> SignerSession | None:
        """Cópia da sessão atual (a original só é mutada aqui)."""
        return self._session.model_copy(deep=True) if self._session else None

    @property
    def user_pubkey(self) -> str | None:
        if self._session is None or not self._session.is_paired:
            return None
        return self._session.user_pubkey

    @property
    def user_npub(self) -> str | None:
        """Identidade do usuário em bech32 (`npub1...`), None se não pareado."""
        pubkey = self.user_pubkey
        return encode_npub(pubkey) if pubkey else None

    @property
    def relays(self) -> list[str]:
        return list(self._session.relays) if self._session else []

    @property
    def is_ready(self) -> bool:
        return self._state == SignerState.READY and self._session is not None

    @property
    def pending_count(self) -> int:
        return self._correlator.pending_count if self._correlator else 0

    @property
    def capability(self) -> RemoteSignerCapability:
        return self._capability

    @property
    def active_capability(self) -> Any | None:
        """Capability remota se pronta; senão a capability anterior (ou None)."""
        return self._capability if self.is_ready else self._previous_capability

    def add_observer(self, observer: StateObserver) -> Callable[[], None]:
        """Registra observer de transições; retorna função para removê-lo."""
        self._observers.append(observer)

        def remove() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return remove

    # ------------------------------------------------------------------
    # Operações do ciclo de vida
    # ------------------------------------------------------------------

    async def connect(self, uri: str) -> RemoteSignerCapability:
        """Pareia com o signer remoto a partir de uma URI.

        Raises:
            AlreadyConnectingError: Se já há pareamento ou restauração em andamento
            InvalidPairingUriError / MissingEndpointError: URI inválida (estado inalterado)
            RequestTimeoutError / RemoteSignerError: Falha no handshake (estado → error)
            SessionDisconnectedError: disconnect() durante o pareamento
        """
        self._ensure_no_activation_in_flight()

        descriptor = parse_pairing_uri(
            uri, require_permissions=self._settings.require_nostrconnect_permissions
        )

        if self._session is not None:
            # Nova sessão substitui a atual; storage só é limpo se o novo pareamento falhar
            await self._release_session(
                SessionDisconnectedError("Session replaced by new pairing"),
                clear_storage=False,
            )

        self._dispatch(SignerEvent.CONNECT_REQUESTED)

        client_secret, client_pubkey = self._cipher.generate_keypair()
        session = SignerSession(
            remote_pubkey=descriptor.remote_pubkey,
            relays=list(descriptor.relays),
            client_secret_key=client_secret,
            client_pubkey=client_pubkey,
            secret=descriptor.secret,
            permissions=descriptor.permissions,
            label=descriptor.label,
        )
        self._logger.info(
            "pairing_started",
            extra={
                "scheme": descriptor.scheme,
                "remote": key_prefix(session.remote_pubkey),
                "relay_count": len(session.relays),
            },
        )

        try:
            await self._attach(session)

            await self._call(
                "connect",
                self._connect_params(session),
                self._settings.connect_timeout_seconds,
            )
            user_pubkey = await self._call(
                "get_public_key", [], self._settings.request_timeout_seconds
            )
            if isinstance(user_pubkey, str):
                user_pubkey = user_pubkey.strip().lower()
            if not is_hex_key(user_pubkey):
                raise RemoteSignerError("Remote signer did not return a valid pubkey")

            if self._session is not session:
                raise SessionDisconnectedError("Pairing aborted")

            session.user_pubkey = user_pubkey
            session.touch()
            self._store.save(session)
        except (Exception, asyncio.CancelledError) as e:
            if self._session is session:
                self._logger.error(
                    "pairing_failed",
                    extra={
                        "error": type(e).__name__,
                        "remote": key_prefix(session.remote_pubkey),
                    },
                )
                await self._release_session(SessionDisconnectedError("Pairing failed"))
                self._dispatch(
                    SignerEvent.PAIRING_FAILED, str(e) or "Remote signer pairing failed"
                )
            raise

        self._dispatch(SignerEvent.PAIRING_SUCCEEDED)
        self._logger.info(
            "pairing_succeeded",
            extra={
                "user": key_prefix(session.user_pubkey),
                "remote": key_prefix(session.remote_pubkey),
            },
        )
        return self._capability

    async def bootstrap_from_storage(self) -> RemoteSignerCapability | None:
        """Restaura silenciosamente a sessão persistida (sem handshake).

        Returns:
            Capability se restaurada; None se não havia sessão, a restauração falhou
            (estado → error, observers notificados) ou disconnect() a interrompeu
        """
        self._ensure_no_activation_in_flight()
        if self.is_ready:
            return self._capability

        stored = self._store.load()
        if stored is None:
            self._logger.debug("no_stored_session")
            return None

        self._logger.info("restoring_session", extra={"remote": key_prefix(stored.remote_pubkey)})
        self._restoring = True
        try:
            await self._attach(stored)
            stored.touch()
            self._store.save(stored)
        except Exception as e:
            if self._session is not stored:
                # disconnect() durante a ativação: nada a salvar nem notificar
                self._logger.info("session_restore_aborted")
                return None
            self._logger.error("session_restore_failed", extra={"error": type(e).__name__})
            await self._release_session(SessionDisconnectedError("Session restore failed"))
            self._dispatch(
                SignerEvent.RESTORE_FAILED,
                str(e) or "Failed to resume remote signer session",
            )
            return None
        except asyncio.CancelledError:
            if self._session is stored:
                # Registro continua válido: só a ativação foi interrompida
                await self._release_session(
                    SessionDisconnectedError("Session restore cancelled"), clear_storage=False
                )
            raise
        finally:
            self._restoring = False

        self._dispatch(SignerEvent.SESSION_RESTORED)
        return self._capability

    async def disconnect(self) -> None:
        """Encerra a sessão: cancela pendentes, limpa storage e assinatura."""
        had_session = self._session is not None
        await self._release_session(SessionDisconnectedError())
        self._dispatch(SignerEvent.DISCONNECT_REQUESTED)
        self._logger.info("session_disconnected", extra={"had_session": had_session})

    async def request(self, method: str, params: list[Any]) -> Any:
        """Envia requisição RPC na sessão pronta e aguarda o resultado.

        O prazo é `request_timeout_seconds` das settings.

        Raises:
            NotPairedError: Se estado != ready (nada é publicado)
            RequestTimeoutError / RemoteSignerError / SessionDisconnectedError
        """
        session = self.require_ready()
        result = await self._call(method, params, self._settings.request_timeout_seconds)
        if self._session is session:
            session.touch()
        return result

    def require_ready(self) -> SignerSession:
        """Retorna a sessão pronta ou lança NotPairedError."""
        if self._state != SignerState.READY or self._session is None:
            raise NotPairedError()
        return self._session

    # ------------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------------

    def _ensure_no_activation_in_flight(self) -> None:
        if self._state == SignerState.CONNECTING or self._restoring:
            raise AlreadyConnectingError("Remote signer pairing already in progress")

    @staticmethod
    def _connect_params(session: SignerSession) -> list[str]:
        params = [session.remote_pubkey]
        if session.secret or session.permissions:
            # Posicional: perms sempre no índice 2
            params.append(session.secret or "")
        if session.permissions:
            params.append(",".join(session.permissions))
        return params

    async def _attach(self, session: SignerSession) -> None:
        """Torna `session` a sessão atual e ativa a assinatura do transporte."""
        correlator = RequestCorrelator()
        transport = TransportAdapter(self._bus, self._cipher, correlator, session)
        self._session = session
        self._correlator = correlator
        self._transport = transport
        await transport.start()
        if self._session is not session:
            # disconnect()/substituição enquanto o barramento assinava
            await transport.stop()
            raise SessionDisconnectedError("Session activation aborted")

    async def _release_session(
        self, reason: BaseException, clear_storage: bool = True
    ) -> None:
        """Cancela pendentes, encerra assinatura e descarta a sessão."""
        correlator, transport = self._correlator, self._transport
        self._session = None
        self._correlator = None
        self._transport = None

        if correlator is not None:
            correlator.cancel_all(reason)
        if clear_storage:
            self._store.clear()
        if transport is not None:
            await transport.stop()

    async def _call(self, method: str, params: list[Any], timeout: float) -> Any:
        correlator, transport = self._correlator, self._transport
        if correlator is None or transport is None:
            raise NotPairedError()

        request_id = correlator.issue(method)
        with correlation_scope(request_id):
            try:
                await transport.send(request_id, method, params)
            except BaseException:
                # Inclui CancelledError: a entrada não pode sobreviver à tarefa
                correlator.discard(request_id)
                raise
            with timed("rpc", rpc_method=method):
                return await correlator.wait(request_id, timeout)

    def _dispatch(self, event: SignerEvent, error: str | None = None) -> None:
        """Aplica a transição e notifica observers."""
        is_valid, next_state, reason = validate_transition(self._state, event)
        if not is_valid or next_state is None:
            self._logger.error(
                "invalid_state_transition",
                extra={"current_state": self._state, "event": event, "reason": reason},
            )
            return

        previous = self._state
        self._state = next_state
        self._last_error = error
        self._logger.info(
            "state_changed",
            extra={"from_state": previous, "to_state": next_state, "event": event},
        )

        snapshot = self.session
        for observer in list(self._observers):
            try:
                observer(next_state, snapshot, error)
            except Exception:
                self._logger.exception("state_observer_failed")
