from __future__ import annotations

import logging

import pytest

from remote_signer.config.settings import Settings, get_settings
from remote_signer.infra.bus_memory import InMemoryMessageBus
from remote_signer.infra.crypto import X25519AesGcmCipher
from remote_signer.infra.session_store import InMemorySessionStore


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """configure_logging troca handlers do root; devolve o estado original."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture()
def settings() -> Settings:
    """Timeouts curtos para testes de timeout não demorarem."""
    return Settings(connect_timeout_seconds=0.2, request_timeout_seconds=0.2)


@pytest.fixture()
def cipher() -> X25519AesGcmCipher:
    return X25519AesGcmCipher()


@pytest.fixture()
def bus() -> InMemoryMessageBus:
    return InMemoryMessageBus()


@pytest.fixture()
def store(cipher: X25519AesGcmCipher) -> InMemorySessionStore:
    return InMemorySessionStore(cipher=cipher)
