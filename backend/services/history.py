from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence, Union
import json

from pydantic import TypeAdapter, ValidationError

from schemas import AssistantTurn, ConversationTurn, UserTurn
from services.logger import get_logger

log = get_logger(__name__)

_turn_adapter: TypeAdapter = TypeAdapter(ConversationTurn)


def decode_history(raw: Optional[str]) -> List[Union[UserTurn, AssistantTurn]]:
    """
    Decode the client-held transcript sent with every request.
    A broken transcript never fails the request: bad JSON yields an empty
    history and individual malformed turns are dropped.
    """
    if raw is None or not raw.strip():
        return []
    try:
        data = json.loads(raw)
    except ValueError:
        log.warning("Ignoring history that is not valid JSON")
        return []
    if not isinstance(data, list):
        log.warning("Ignoring history that is not a list (got %s)", type(data).__name__)
        return []

    turns: List[Union[UserTurn, AssistantTurn]] = []
    for i, item in enumerate(data):
        try:
            turns.append(_turn_adapter.validate_python(item))
        except ValidationError as e:
            log.warning("Dropping history turn %d: %s", i, e.errors()[0].get("msg", "invalid"))
    return turns


def _turn_to_wire(turn: Union[UserTurn, AssistantTurn]) -> Dict[str, Any]:
    if isinstance(turn, UserTurn):
        out: Dict[str, Any] = {"role": "user", "hasImage": turn.has_image}
        if turn.text:
            out["text"] = turn.text
        return out
    out = {"role": "assistant", "matches": [m.model_dump() for m in turn.matches]}
    if turn.message:
        out["assistantMessage"] = turn.message
    return out


def encode_history(turns: Sequence[Union[UserTurn, AssistantTurn]]) -> str:
    return json.dumps([_turn_to_wire(t) for t in turns])
