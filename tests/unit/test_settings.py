"""Testes de Settings (env vars e validações)."""

from __future__ import annotations

import pytest

from remote_signer.config.settings import (
    CONNECT_TIMEOUT_SECONDS,
    DEFAULT_STORAGE_KEY,
    REQUEST_TIMEOUT_SECONDS,
    Settings,
    get_settings,
)


class TestDefaults:
    def test_protocol_defaults(self) -> None:
        """Defaults seguem as constantes do protocolo."""
        settings = Settings()

        assert settings.connect_timeout_seconds == CONNECT_TIMEOUT_SECONDS == 20.0
        assert settings.request_timeout_seconds == REQUEST_TIMEOUT_SECONDS == 15.0
        assert settings.session_storage_key == DEFAULT_STORAGE_KEY
        assert settings.session_store_backend == "memory"
        assert settings.require_nostrconnect_permissions is False

    def test_get_settings_is_cached(self) -> None:
        """get_settings retorna a mesma instância."""
        assert get_settings() is get_settings()


class TestEnvironment:
    def test_reads_env_vars(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Variáveis de ambiente sobrescrevem defaults."""
        monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "3.5")
        monkeypatch.setenv("SESSION_STORE_BACKEND", "file")
        monkeypatch.setenv("SESSION_FILE_PATH", "/tmp/session.json")
        monkeypatch.setenv("REQUIRE_NOSTRCONNECT_PERMISSIONS", "true")

        settings = Settings()

        assert settings.request_timeout_seconds == 3.5
        assert settings.session_store_backend == "file"
        assert settings.session_file_path == "/tmp/session.json"
        assert settings.require_nostrconnect_permissions is True

    @pytest.mark.parametrize("env", ["production", "prod", "PROD"])
    def test_is_production(self, env: str) -> None:
        """Aliases de produção são reconhecidos."""
        settings = Settings(environment=env)

        assert settings.is_production

    @pytest.mark.parametrize("env", ["development", "staging", "local"])
    def test_other_environments_are_not_production(self, env: str) -> None:
        """Demais ambientes não são produção."""
        assert not Settings(environment=env).is_production


class TestValidations:
    def test_default_config_is_valid(self) -> None:
        """Configuração padrão passa nas validações."""
        settings = Settings()

        assert settings.validate_session_store_config() == []
        assert settings.validate_timeouts() == []
        assert settings.validate_logging_config() == []

    def test_unknown_backend(self) -> None:
        """Backend desconhecido gera erro."""
        errors = Settings(session_store_backend="mongo").validate_session_store_config()

        assert any("inválido" in e for e in errors)

    def test_memory_backend_forbidden_in_production(self) -> None:
        """Backend memory é proibido em produção."""
        errors = Settings(environment="production").validate_session_store_config()

        assert any("produção" in e for e in errors)

    def test_file_backend_requires_path(self) -> None:
        """Backend file exige SESSION_FILE_PATH."""
        errors = Settings(session_store_backend="file").validate_session_store_config()

        assert errors == ["SESSION_STORE_BACKEND=file requer SESSION_FILE_PATH configurado"]

    def test_redis_backend_requires_url(self) -> None:
        """Backend redis exige REDIS_URL."""
        errors = Settings(session_store_backend="redis").validate_session_store_config()

        assert errors == ["SESSION_STORE_BACKEND=redis requer REDIS_URL configurado"]

    def test_non_positive_timeouts(self) -> None:
        """Timeouts não positivos geram um erro cada."""
        errors = Settings(
            connect_timeout_seconds=0, request_timeout_seconds=-1
        ).validate_timeouts()

        assert len(errors) == 2

    def test_invalid_log_format(self) -> None:
        """LOG_FORMAT inválido gera erro."""
        assert Settings(log_format="xml").validate_logging_config()
