"""Parser de URIs de pareamento (bunker:// e nostrconnect://).

Formatos aceitos:
    bunker://<remote-key>?relay=wss://a&relay=wss://b&secret=xyz&name=Meu%20Signer
    nostrconnect://<remote-key>?relay=wss://a&perms=sign_event,nip04_encrypt&name=App

Função pura: sem side effects.
"""

from __future__ import annotations

import re
from urllib.parse import parse_qsl

from pydantic import ValidationError

from remote_signer.domain.errors import InvalidPairingUriError, MissingEndpointError
from remote_signer.domain.models import ConnectionDescriptor, is_hex_key

_SCHEME_RE = re.compile(r"^(bunker|nostrconnect)://", re.IGNORECASE)


def _split_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _first(params: list[tuple[str, str]], *names: str) -> str | None:
    """Primeiro valor não vazio entre os nomes, na ordem de preferência."""
    for name in names:
        for key, value in params:
            if key == name and value:
                return value
    return None


def parse_pairing_uri(uri: str, *, require_permissions: bool = False) -> ConnectionDescriptor:
    """Converte uma URI de pareamento em ConnectionDescriptor.

    Args:
        uri: Texto informado pelo usuário (ex.: lido de QR code)
        require_permissions: Se True, nostrconnect:// sem `perms` é inválida;
            se False, ausência significa "nenhuma capacidade extra"

    Raises:
        InvalidPairingUriError: Esquema desconhecido, chave fora do tamanho canônico
        MissingEndpointError: Nenhum `relay` informado
    """
    if not uri or not isinstance(uri, str):
        raise InvalidPairingUriError("Remote signer token required")

    trimmed = uri.strip()
    match = _SCHEME_RE.match(trimmed)
    if not match:
        raise InvalidPairingUriError(
            "Unsupported remote signer URI. Use bunker:// or nostrconnect://"
        )
    scheme = match.group(1).lower()

    remainder = trimmed[match.end() :]
    key_part, _, query = remainder.partition("?")
    # bunker: chave como host; nostrconnect: primeiro componente do path
    key_part = key_part.strip("/") if scheme == "nostrconnect" else key_part.rstrip("/")
    remote_pubkey = key_part.lower()
    if not is_hex_key(remote_pubkey):
        raise InvalidPairingUriError(
            f"Invalid {scheme} URI: remote signer key must be 64 hex chars"
        )

    params = parse_qsl(query, keep_blank_values=True)
    relays = [value.strip() for key, value in params if key == "relay" and value.strip()]
    if not relays:
        raise MissingEndpointError(f"{scheme} URI missing relay query param")

    permissions = _split_list(_first(params, "perms"))
    if scheme == "nostrconnect" and not permissions and require_permissions:
        raise InvalidPairingUriError("nostrconnect URI missing perms")

    try:
        return ConnectionDescriptor(
            scheme=scheme,
            remote_pubkey=remote_pubkey,
            relays=relays,
            secret=_first(params, "secret"),
            permissions=permissions or None,
            label=_first(params, "name", "label"),
        )
    except ValidationError as e:  # pragma: no cover - validado acima
        raise InvalidPairingUriError(f"Invalid pairing URI: {e}") from e
