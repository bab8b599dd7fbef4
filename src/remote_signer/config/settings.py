"""Configurações do gerenciador de sessão via variáveis de ambiente.

Timeouts do protocolo, backend de persistência da sessão e flags de
compatibilidade de URI. Nunca colocar chaves ou secrets aqui.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

# -----------------------------------------------------------------------------
# Constantes do protocolo NIP-46
# Referência: https://nips.nostr.com/46
# -----------------------------------------------------------------------------
NIP46_EVENT_KIND: int = 24133
DEFAULT_STORAGE_KEY: str = "nostr:remote-signer-session"
CONNECT_TIMEOUT_SECONDS: float = 20.0
REQUEST_TIMEOUT_SECONDS: float = 15.0


class Settings(BaseSettings):
    """Configurações lidas do ambiente."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
    )

    # Aplicação
    service_name: str = "remote_signer"
    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = "json"  # json | text

    # Protocolo
    connect_timeout_seconds: float = CONNECT_TIMEOUT_SECONDS  # Pode exigir aprovação humana
    request_timeout_seconds: float = REQUEST_TIMEOUT_SECONDS  # Demais operações

    # nostrconnect:// sem `perms` é erro quando True (senão: sem capacidades extras)
    require_nostrconnect_permissions: bool = False

    # Persistência da sessão (slot único)
    session_storage_key: str = DEFAULT_STORAGE_KEY
    session_store_backend: str = "memory"  # memory | file | redis
    session_file_path: str | None = None  # Para session_store_backend=file
    redis_url: str | None = None  # Para session_store_backend=redis

    def validate_session_store_config(self) -> list[str]:
        """Valida backend de session store.

        Retorna lista de erros (vazia = tudo OK).
        """
        errors: list[str] = []
        backend = self.session_store_backend.lower()

        valid_backends = {"memory", "file", "redis"}
        if backend not in valid_backends:
            errors.append(
                f"SESSION_STORE_BACKEND '{backend}' inválido. Valores válidos: {valid_backends}"
            )

        # Memória perde o pareamento a cada restart
        if self.is_production and backend == "memory":
            errors.append(
                "SESSION_STORE_BACKEND=memory é proibido em produção. "
                "Use 'file' ou 'redis' para restaurar a sessão após restart."
            )

        if backend == "file" and not self.session_file_path:
            errors.append("SESSION_STORE_BACKEND=file requer SESSION_FILE_PATH configurado")

        if backend == "redis" and not self.redis_url:
            errors.append("SESSION_STORE_BACKEND=redis requer REDIS_URL configurado")

        if not self.session_storage_key:
            errors.append("SESSION_STORAGE_KEY não pode ser vazio")

        return errors

    def validate_timeouts(self) -> list[str]:
        """Valida timeouts do protocolo."""
        errors: list[str] = []
        if self.connect_timeout_seconds <= 0:
            errors.append("CONNECT_TIMEOUT_SECONDS deve ser > 0")
        if self.request_timeout_seconds <= 0:
            errors.append("REQUEST_TIMEOUT_SECONDS deve ser > 0")
        return errors

    def validate_logging_config(self) -> list[str]:
        """Valida formato de log."""
        errors: list[str] = []
        if self.log_format.lower() not in {"json", "text"}:
            errors.append("LOG_FORMAT inválido: use json | text")
        return errors

    @property
    def is_production(self) -> bool:
        """Retorna True se ambiente é produção."""
        return self.environment.lower() in ("production", "prod")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Retorna uma instância cacheada de Settings.

    A cache garante que mesmo múltiplas injeções não criam novos objetos.
    """
    return Settings()
