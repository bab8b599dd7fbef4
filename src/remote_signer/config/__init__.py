"""Configurações centralizadas do remote_signer.

Este módulo exporta:
- Settings: classe de configuração via variáveis de ambiente
- get_settings: função cacheada para obter instância única
- Constantes do protocolo NIP-46 (NIP46_EVENT_KIND, timeouts padrão)

Uso típico:
    from remote_signer.config import get_settings, NIP46_EVENT_KIND
"""

from remote_signer.config.settings import (
    CONNECT_TIMEOUT_SECONDS,
    DEFAULT_STORAGE_KEY,
    NIP46_EVENT_KIND,
    REQUEST_TIMEOUT_SECONDS,
    Settings,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "NIP46_EVENT_KIND",
    "DEFAULT_STORAGE_KEY",
    "CONNECT_TIMEOUT_SECONDS",
    "REQUEST_TIMEOUT_SECONDS",
]
