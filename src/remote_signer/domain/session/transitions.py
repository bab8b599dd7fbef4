"""Tabela de transições do ciclo de vida.

- TRANSITIONS[(current_state, event)] = next_state
- DISCONNECT_REQUESTED leva a IDLE a partir de qualquer estado
- Validação pura: sem side effects
"""

from __future__ import annotations

from remote_signer.domain.session.events import SignerEvent
from remote_signer.domain.session.states import SignerState

TRANSITIONS: dict[tuple[SignerState, SignerEvent], SignerState] = {
    # === IDLE → ... ===
    (SignerState.IDLE, SignerEvent.CONNECT_REQUESTED): SignerState.CONNECTING,
    (SignerState.IDLE, SignerEvent.SESSION_RESTORED): SignerState.READY,
    (SignerState.IDLE, SignerEvent.RESTORE_FAILED): SignerState.ERROR,
    # === CONNECTING → ... ===
    (SignerState.CONNECTING, SignerEvent.PAIRING_SUCCEEDED): SignerState.READY,
    (SignerState.CONNECTING, SignerEvent.PAIRING_FAILED): SignerState.ERROR,
    # === READY → ... ===
    (SignerState.READY, SignerEvent.CONNECT_REQUESTED): SignerState.CONNECTING,
    # === ERROR → ... (nova tentativa é decisão do chamador) ===
    (SignerState.ERROR, SignerEvent.CONNECT_REQUESTED): SignerState.CONNECTING,
    (SignerState.ERROR, SignerEvent.SESSION_RESTORED): SignerState.READY,
    (SignerState.ERROR, SignerEvent.RESTORE_FAILED): SignerState.ERROR,
}

for _state in SignerState:
    TRANSITIONS[(_state, SignerEvent.DISCONNECT_REQUESTED)] = SignerState.IDLE
del _state


def validate_transition(
    current_state: SignerState, event: SignerEvent
) -> tuple[bool, SignerState | None, str]:
    """Valida se uma transição é permitida.

    Retorna:
    - (True, next_state, ""): transição válida
    - (False, None, motivo): transição inválida

    Nunca lança exceção; apenas valida.
    """
    key = (current_state, event)

    if key not in TRANSITIONS:
        return (
            False,
            None,
            f"No transition from {current_state} on event {event}",
        )

    return True, TRANSITIONS[key], ""
