"""Factory para construção do RemoteSignerManager.

Responsabilidades:
- Conhecer infra e settings
- Validar configuração antes de montar o gerenciador
- Retornar uma instância de `RemoteSignerManager` pronta para bootstrap

Não conter lógica de protocolo.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from remote_signer.application.lifecycle import RemoteSignerManager
from remote_signer.config.settings import Settings, get_settings
from remote_signer.observability.logging import configure_logging, get_logger

if TYPE_CHECKING:
    from remote_signer.domain.protocols.bus import MessageBusProtocol
    from remote_signer.domain.protocols.cipher import CipherProtocol
    from remote_signer.domain.protocols.session_store import SessionStoreProtocol

logger = get_logger(__name__)


def build_remote_signer_manager(
    bus: MessageBusProtocol,
    *,
    session_store: SessionStoreProtocol | None = None,
    cipher: CipherProtocol | None = None,
    redis_client: Any | None = None,
    previous_capability: Any | None = None,
    settings: Settings | None = None,
    configure_logs: bool = True,
) -> RemoteSignerManager:
    """Constrói `RemoteSignerManager` usando infra/settings.

    Parâmetros explícitos têm prioridade; quando ausentes, são resolvidos
    via `get_settings()` e factories de infra. Com `configure_logs=True` o
    logging raiz passa a seguir LOG_LEVEL, SERVICE_NAME e LOG_FORMAT.

    Raises:
        ValueError: Se timeouts, formato de log ou backend de sessão estiverem inválidos
    """
    settings = settings or get_settings()

    errors = settings.validate_timeouts() + settings.validate_logging_config()
    if errors:
        raise ValueError("; ".join(errors))

    if configure_logs:
        configure_logging(settings.log_level, settings.service_name, settings.log_format)

    # Import infra factories apenas aqui
    from remote_signer.infra import create_cipher, create_session_store_from_settings

    if cipher is None:
        cipher = create_cipher()

    if session_store is None:
        session_store = create_session_store_from_settings(
            settings, cipher=cipher, redis_client=redis_client
        )
        logger.debug(
            "factory: created session_store",
            extra={"backend": settings.session_store_backend},
        )

    return RemoteSignerManager(
        bus=bus,
        store=session_store,
        cipher=cipher,
        settings=settings,
        previous_capability=previous_capability,
    )
