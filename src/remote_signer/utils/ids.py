"""Geradores de identificadores."""

from __future__ import annotations

import hashlib
import json
import uuid
from typing import Any


def new_request_id() -> str:
    """Gera um id único de requisição RPC."""

    return str(uuid.uuid4())


def compute_event_id(
    pubkey: str, created_at: int, kind: int, tags: list[list[str]], content: str
) -> str:
    """Hash canônico do envelope: sha256 de [0, pubkey, created_at, kind, tags, content].

    Serialização compacta, sem escape de unicode (mesmo formato do NIP-01).
    """

    serialized = json.dumps(
        [0, pubkey, created_at, kind, tags, content],
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def envelope_id_matches(event: dict[str, Any]) -> bool:
    """Confere se o `id` declarado do envelope corresponde ao conteúdo."""

    try:
        expected = compute_event_id(
            event["pubkey"], event["created_at"], event["kind"], event["tags"], event["content"]
        )
    except (KeyError, TypeError):
        return False
    return event.get("id") == expected
