"""Validações do registro de sessão antes de expor ou persistir."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from remote_signer.domain.errors import CipherError
from remote_signer.domain.models import SignerSession, is_hex_key
from remote_signer.observability.logging import get_logger

if TYPE_CHECKING:
    from remote_signer.domain.protocols.cipher import CipherProtocol


logger = get_logger(__name__)

# Campos portadores de identidade: os três precisam estar presentes e bem formados
IDENTITY_FIELDS = ("remote_pubkey", "client_secret_key", "user_pubkey")


def identity_problems(session: SignerSession) -> list[str]:
    """Lista campos de identidade ausentes ou malformados (vazia = OK)."""

    problems = [name for name in IDENTITY_FIELDS if not is_hex_key(getattr(session, name))]
    if not is_hex_key(session.client_pubkey):
        problems.append("client_pubkey")
    if not session.relays:
        problems.append("relays")
    return problems


def parse_session_record(
    raw: str | bytes | None, cipher: CipherProtocol | None = None
) -> SignerSession | None:
    """Converte o registro persistido em sessão utilizável, ou None.

    Registro corrompido, truncado ou parcialmente válido nunca é exposto.
    Com `cipher`, confere também se client_pubkey deriva de client_secret_key.
    """

    if not raw:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")

    try:
        data: Any = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("session record is not an object")
        session = SignerSession.model_validate(data)
    except (ValueError, ValidationError) as e:
        logger.warning(
            "session_record_unparsable",
            extra={"error": type(e).__name__},
        )
        return None

    problems = identity_problems(session)
    if problems:
        logger.warning(
            "session_record_incomplete",
            extra={"invalid_fields": problems},
        )
        return None

    if cipher is not None:
        try:
            derived = cipher.public_key(session.client_secret_key)
        except CipherError:
            derived = None
        if derived != session.client_pubkey:
            logger.warning(
                "session_record_key_mismatch",
                extra={"invalid_fields": ["client_pubkey"]},
            )
            return None

    return session
