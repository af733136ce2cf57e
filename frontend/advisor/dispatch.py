from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .state import AdvisorSession


class ActionKind(str, Enum):
    TOGGLE_PRODUCT = "toggle_product"
    REMOVE_PRODUCT = "remove_product"
    CLEAR_SELECTIONS = "clear_selections"
    SELECT_CATEGORY = "select_category"
    GENERATE_ROUTINE = "generate_routine"
    SUBMIT_MESSAGE = "submit_message"
    RESET_CONVERSATION = "reset_conversation"


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    target: Any = None


def _select_category(session: AdvisorSession, target: Any) -> None:
    session.category = target or None


HANDLERS: Dict[ActionKind, Callable[[AdvisorSession, Any], Any]] = {
    ActionKind.TOGGLE_PRODUCT: lambda s, t: s.toggle_selection(int(t)),
    ActionKind.REMOVE_PRODUCT: lambda s, t: s.remove_selection(int(t)),
    ActionKind.CLEAR_SELECTIONS: lambda s, t: s.clear_selections(),
    ActionKind.SELECT_CATEGORY: _select_category,
    ActionKind.GENERATE_ROUTINE: lambda s, t: s.generate_routine(),
    ActionKind.SUBMIT_MESSAGE: lambda s, t: s.submit_message(str(t or "")),
    ActionKind.RESET_CONVERSATION: lambda s, t: s.reset_conversation(),
}


def dispatch(session: AdvisorSession, action: Action) -> Optional[Any]:
    """Apply one UI action to the session and return the handler's result."""
    try:
        handler = HANDLERS[ActionKind(action.kind)]
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Unsupported action: {action.kind!r}") from exc
    return handler(session, action.target)
