from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union
import json

from schemas import AssistantTurn, UserTurn
from services.errors import InputError

DEFAULT_UPLOAD_MIME = "image/png"

USER_IMAGE_NOTE = "User uploaded an image of a faucet."
IMAGE_ONLY_PROMPT = "User: Find the best match for this faucet from the catalog."


@dataclass(frozen=True)
class TextPart:
    text: str

    def to_gemini(self) -> str:
        return self.text


@dataclass(frozen=True)
class ImagePart:
    data: bytes = field(repr=False)
    mime_type: str = DEFAULT_UPLOAD_MIME

    def to_gemini(self) -> Dict[str, Any]:
        return {"mime_type": self.mime_type, "data": self.data}


Part = Union[TextPart, ImagePart]


@dataclass(frozen=True)
class UploadedImage:
    data: bytes = field(repr=False)
    mime_type: Optional[str] = None


def history_parts(history: Sequence[Union[UserTurn, AssistantTurn]]) -> List[TextPart]:
    """Replay prior turns as text only; earlier uploads are mentioned, never re-sent."""
    out: List[TextPart] = []
    for turn in history:
        if isinstance(turn, UserTurn):
            if turn.text:
                out.append(TextPart(f"User: {turn.text}"))
            if turn.has_image:
                out.append(TextPart(USER_IMAGE_NOTE))
        else:
            if turn.message:
                out.append(TextPart(f"Assistant: {turn.message}"))
            if turn.matches:
                listing = json.dumps([m.model_dump() for m in turn.matches])
                out.append(TextPart(f"Assistant found matches: {listing}"))
    return out


def build_request(
    instruction: str,
    catalog_context: Sequence[Part],
    history: Sequence[Union[UserTurn, AssistantTurn]] = (),
    new_text: Optional[str] = None,
    new_image: Optional[UploadedImage] = None,
) -> List[Part]:
    """
    Assemble the model payload in its fixed order:
      instruction, catalog pairs, replayed history, the new turn's text, the new image.
    Rebuilt per request; only the catalog sub-sequence is shared.
    """
    if not new_text and new_image is None:
        raise InputError("Please provide a message or an image")

    parts: List[Part] = [TextPart(instruction)]
    parts.extend(catalog_context)
    parts.extend(history_parts(history))

    if new_text:
        parts.append(TextPart(f"User: {new_text}"))
    else:
        parts.append(TextPart(IMAGE_ONLY_PROMPT))

    if new_image is not None:
        parts.append(ImagePart(new_image.data, new_image.mime_type or DEFAULT_UPLOAD_MIME))
    return parts
