"""Persistência da sessão remota: slot único sob chave fixa.

Contrato e implementações para guardar o único SignerSession pareado,
com validação na leitura: um registro corrompido é tratado como ausente.
"""

from __future__ import annotations

import logging
import os
import tempfile
from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

from remote_signer.config.settings import DEFAULT_STORAGE_KEY
from remote_signer.domain.errors import SessionStoreError
from remote_signer.domain.protocols.session_store import SessionStoreProtocol
from remote_signer.infra.session_validations import identity_problems, parse_session_record
from remote_signer.observability.logging import get_logger, key_prefix

if TYPE_CHECKING:
    from remote_signer.config.settings import Settings
    from remote_signer.domain.models import SignerSession
    from remote_signer.domain.protocols.cipher import CipherProtocol

logger: logging.Logger = get_logger(__name__)


class SessionStore(SessionStoreProtocol):
    """Contrato abstrato para o slot de SignerSession.

    Responsabilidades:
    - Persistir apenas sessões com pareamento completo
    - Validar o registro na leitura (None em vez de sessão parcial)
    - Remover o registro no disconnect ou restauração falha
    """

    def __init__(
        self, key: str = DEFAULT_STORAGE_KEY, cipher: CipherProtocol | None = None
    ) -> None:
        self._key = key
        self._cipher = cipher

    @property
    def key(self) -> str:
        return self._key

    def save(self, session: SignerSession) -> None:
        """Persiste a sessão.

        Raises:
            SessionStoreError: Se sessão incompleta ou backend falhar
        """
        problems = identity_problems(session)
        if problems:
            raise SessionStoreError(f"Refusing to persist incomplete session: {problems}")
        self._write(session.model_dump_json())
        logger.debug(
            "Session saved",
            extra={"store": type(self).__name__, "remote": key_prefix(session.remote_pubkey)},
        )

    def load(self) -> SignerSession | None:
        """Carrega e valida a sessão; None se ausente ou inválida."""
        try:
            raw = self._read()
        except SessionStoreError as e:
            logger.error(
                "Failed to load session",
                extra={"store": type(self).__name__, "error": str(e)},
            )
            return None

        if raw is None:
            logger.debug("Session not found", extra={"store": type(self).__name__})
            return None

        session = parse_session_record(raw, self._cipher)
        if session is None:
            logger.warning("Stored session discarded", extra={"store": type(self).__name__})
        return session

    def clear(self) -> None:
        """Remove o registro (best effort, erro apenas logado)."""
        try:
            self._delete()
            logger.debug("Session cleared", extra={"store": type(self).__name__})
        except SessionStoreError as e:
            logger.error(
                "Failed to clear session",
                extra={"store": type(self).__name__, "error": str(e)},
            )

    @abstractmethod
    def _write(self, payload: str) -> None: ...

    @abstractmethod
    def _read(self) -> str | bytes | None: ...

    @abstractmethod
    def _delete(self) -> None: ...


class InMemorySessionStore(SessionStore):
    """Armazenamento em memória para desenvolvimento e testes.

    ⚠️ Não restaura nada após restart do processo.
    Guarda o JSON serializado para que load passe pela mesma validação.
    """

    def __init__(
        self, key: str = DEFAULT_STORAGE_KEY, cipher: CipherProtocol | None = None
    ) -> None:
        super().__init__(key, cipher)
        self._records: dict[str, str] = {}

    def _write(self, payload: str) -> None:
        self._records[self._key] = payload

    def _read(self) -> str | None:
        return self._records.get(self._key)

    def _delete(self) -> None:
        self._records.pop(self._key, None)


class FileSessionStore(SessionStore):
    """Armazenamento em arquivo JSON local (o próprio arquivo é o slot).

    Escrita atômica: arquivo temporário no mesmo diretório + os.replace.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        key: str = DEFAULT_STORAGE_KEY,
        cipher: CipherProtocol | None = None,
    ) -> None:
        super().__init__(key, cipher)
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _write(self, payload: str) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=".session-")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                # Contém a chave efêmera privada
                os.chmod(tmp_name, 0o600)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error(
                "Failed to save session to file",
                extra={"path": str(self._path), "error": str(e)},
            )
            raise SessionStoreError(f"File save failed: {e}") from e

    def _read(self) -> str | None:
        try:
            return self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise SessionStoreError(f"File read failed: {e}") from e

    def _delete(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            raise SessionStoreError(f"File delete failed: {e}") from e


class RedisSessionStore(SessionStore):
    """Armazenamento em Redis (cliente redis-py injetado).

    Chave única; sem TTL (a sessão vive até disconnect explícito).
    """

    def __init__(
        self,
        redis_client: Any,
        key: str = DEFAULT_STORAGE_KEY,
        cipher: CipherProtocol | None = None,
    ) -> None:
        super().__init__(key, cipher)
        self._redis = redis_client

    def _write(self, payload: str) -> None:
        try:
            self._redis.set(self._key, payload)
        except Exception as e:  # pragma: no cover - log + wrap
            logger.error(
                "Failed to save session to Redis",
                extra={"error": str(e)},
            )
            raise SessionStoreError(f"Redis save failed: {e}") from e

    def _read(self) -> str | bytes | None:
        try:
            return self._redis.get(self._key)
        except Exception as e:
            raise SessionStoreError(f"Redis load failed: {e}") from e

    def _delete(self) -> None:
        try:
            self._redis.delete(self._key)
        except Exception as e:
            raise SessionStoreError(f"Redis delete failed: {e}") from e


def create_session_store(
    backend: str = "memory",
    *,
    key: str = DEFAULT_STORAGE_KEY,
    cipher: CipherProtocol | None = None,
    path: str | os.PathLike[str] | None = None,
    client: Any = None,
) -> SessionStore:
    """Factory para criar o store de sessão apropriado.

    - "memory": InMemorySessionStore (dev/testes)
    - "file": FileSessionStore (exige `path`)
    - "redis": RedisSessionStore (exige `client`)

    Raises:
        ValueError: Se backend não reconhecido ou dependência ausente
    """
    backend = backend.lower()
    if backend == "memory":
        logger.info("Usando InMemorySessionStore (apenas dev/testes)")
        return InMemorySessionStore(key=key, cipher=cipher)

    if backend == "file":
        if path is None:
            raise ValueError("session_store_backend=file requer path")
        return FileSessionStore(path, key=key, cipher=cipher)

    if backend == "redis":
        if client is None:
            raise ValueError("session_store_backend=redis requer client")
        return RedisSessionStore(client, key=key, cipher=cipher)

    raise ValueError(f"Backend de session store não reconhecido: {backend}")


def create_session_store_from_settings(
    settings: Settings | None = None,
    cipher: CipherProtocol | None = None,
    redis_client: Any = None,
) -> SessionStore:
    """Cria o store conforme settings.session_store_backend.

    Para redis, cria o cliente a partir de REDIS_URL quando não injetado.
    """
    if settings is None:
        from remote_signer.config.settings import get_settings

        settings = get_settings()

    errors = settings.validate_session_store_config()
    if errors:
        raise ValueError("; ".join(errors))

    backend = settings.session_store_backend.lower()
    if backend == "redis" and redis_client is None:
        import redis

        redis_client = redis.from_url(settings.redis_url, decode_responses=True)
        logger.info(
            "Auto-created Redis client for session store",
            extra={"url": (settings.redis_url or "").split("@")[-1]},  # Sem credenciais
        )

    return create_session_store(
        backend,
        key=settings.session_storage_key,
        cipher=cipher,
        path=settings.session_file_path,
        client=redis_client,
    )
