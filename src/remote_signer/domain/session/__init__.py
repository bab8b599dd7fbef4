"""FSM da sessão remota: estados, eventos e transições.

Exporta:
- SignerState: 4 estados canônicos
- SignerEvent: eventos do ciclo de vida
- validate_transition: validador puro
"""

from remote_signer.domain.session.events import SignerEvent
from remote_signer.domain.session.states import SignerState
from remote_signer.domain.session.transitions import TRANSITIONS, validate_transition

__all__ = [
    "SignerState",
    "SignerEvent",
    "validate_transition",
    "TRANSITIONS",
]
