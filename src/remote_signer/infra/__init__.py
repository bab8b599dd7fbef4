"""Camada de infraestrutura: adapters para serviços externos.

Este módulo exporta as factories principais para criação de
componentes de infraestrutura:

- Session: InMemorySessionStore, FileSessionStore, RedisSessionStore, create_session_store
- Crypto: X25519AesGcmCipher, create_cipher
- Bus: InMemoryMessageBus (dev/testes)

Uso típico:
    from remote_signer.infra import create_cipher, create_session_store

Regras:
- Infraestrutura não decide regra de negócio
- Logs estruturados sem material de chave
"""

from remote_signer.infra.bus_memory import InMemoryMessageBus, event_matches
from remote_signer.infra.crypto import X25519AesGcmCipher, create_cipher
from remote_signer.infra.session_store import (
    FileSessionStore,
    InMemorySessionStore,
    RedisSessionStore,
    SessionStore,
    create_session_store,
    create_session_store_from_settings,
)

__all__ = [
    "InMemoryMessageBus",
    "event_matches",
    "X25519AesGcmCipher",
    "create_cipher",
    "SessionStore",
    "InMemorySessionStore",
    "FileSessionStore",
    "RedisSessionStore",
    "create_session_store",
    "create_session_store_from_settings",
]
