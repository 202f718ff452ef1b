from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping
import json

from schemas import Match, MatchResponse
from services.errors import ParseError, SchemaError
from services.logger import get_logger

log = get_logger(__name__)

FENCE = "```"
JSON_FENCE = "```json"


def strip_fences(text: str) -> str:
    """Remove the markdown code fence the model likes to wrap its JSON in."""
    t = (text or "").strip()
    if t.startswith(JSON_FENCE):
        t = t[len(JSON_FENCE):]
    if t.startswith(FENCE):
        t = t[len(FENCE):]
    if t.endswith(FENCE):
        t = t[:-len(FENCE)]
    return t.strip()


@dataclass
class RawModelResponse:
    """Structurally valid model output; match entries are still untrusted."""
    message: str = ""
    matches: List[Dict[str, Any]] = field(default_factory=list)


def _reject_constant(name: str):
    raise ValueError(f"non-JSON constant {name}")


def parse_model_output(raw_text: str) -> RawModelResponse:
    text = strip_fences(raw_text)
    try:
        data = json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        log.error("Failed to parse model response: %.500s", text)
        raise ParseError("Failed to parse model response", raw_response=text)

    if not isinstance(data, dict) or not isinstance(data.get("matches"), list):
        log.error("Invalid response structure from model: %.500s", text)
        raise SchemaError("Invalid response structure from model", raw_response=text)

    message = data.get("message")
    return RawModelResponse(
        message=message if isinstance(message, str) else "",
        matches=[m if isinstance(m, dict) else {} for m in data["matches"]],
    )


def enrich_match(raw: Mapping[str, Any], metadata: Mapping[str, Mapping[str, str]]) -> Match:
    """Fill gaps from the catalog row; never fails, unknown filenames just get empty fields."""
    m = Match.from_loose(raw)
    meta = metadata.get(m.filename) or {}
    return m.model_copy(update={
        "title": m.title or meta.get("Title") or "",
        "brand": m.brand or meta.get("Brand") or "",
        "color": m.color or meta.get("VarDim_Color") or "",
    })


def normalize(raw_text: str, metadata: Mapping[str, Mapping[str, str]]) -> MatchResponse:
    """
    Turn raw model text into the client contract.
    Matches keep the model's order and count; only structure is enforced.
    """
    parsed = parse_model_output(raw_text)
    return MatchResponse(
        message=parsed.message,
        matches=[enrich_match(m, metadata) for m in parsed.matches],
    )
