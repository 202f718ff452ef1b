from __future__ import annotations
from typing import Annotated, Any, List, Literal, Optional, Union
import math

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CatalogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    filename: str
    title: str = ""
    brand: str = ""
    color: str = ""
    color_code: str = ""
    mime_type: str = "image/jpeg"
    image_bytes: bytes = Field(default=b"", repr=False)


class CatalogItem(BaseModel):
    """Public view of a catalog entry (no image bytes)."""
    model_config = ConfigDict(populate_by_name=True)

    filename: str
    title: str = ""
    brand: str = ""
    color: str = ""
    color_code: str = Field(default="", serialization_alias="colorCode")


def _loose_text(v: Any) -> str:
    return v if isinstance(v, str) else ""


def _loose_confidence(v: Any) -> float:
    # bool is an int subclass; "true" is not a confidence
    if not isinstance(v, (int, float)) or isinstance(v, bool):
        return 0.0
    try:
        f = float(v)
    except OverflowError:
        return 0.0
    return f if math.isfinite(f) else 0.0


class Match(BaseModel):
    filename: str
    title: str = ""
    brand: str = ""
    color: str = ""
    confidence: float = 0.0
    reasoning: str = ""

    @classmethod
    def from_loose(cls, raw: Any) -> "Match":
        """Coerce an untrusted match object; never fails."""
        raw = raw if isinstance(raw, dict) else {}
        return cls(
            filename=_loose_text(raw.get("filename")),
            title=_loose_text(raw.get("title")),
            brand=_loose_text(raw.get("brand")),
            color=_loose_text(raw.get("color")),
            confidence=_loose_confidence(raw.get("confidence")),
            reasoning=_loose_text(raw.get("reasoning")),
        )


class MatchResponse(BaseModel):
    message: str = ""
    matches: List[Match] = Field(default_factory=list)


# ---- conversation transcript (client-held, replayed every turn) ----

class UserTurn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role: Literal["user"] = "user"
    text: Optional[str] = None
    has_image: bool = Field(default=False, alias="hasImage")

    @model_validator(mode="before")
    @classmethod
    def _image_url_means_image(cls, data: Any) -> Any:
        # the browser keeps an object URL for the preview; only its presence matters here
        if isinstance(data, dict) and "hasImage" not in data and "has_image" not in data:
            data = dict(data)
            data["hasImage"] = bool(data.get("imageUrl"))
        return data

    @model_validator(mode="after")
    def _has_content(self) -> "UserTurn":
        if not self.text and not self.has_image:
            raise ValueError("user turn carries neither text nor an image")
        return self


class AssistantTurn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role: Literal["assistant"] = "assistant"
    message: Optional[str] = Field(default=None, alias="assistantMessage")
    matches: List[Match] = Field(default_factory=list)

    @field_validator("matches", mode="before")
    @classmethod
    def _loose_matches(cls, v: Any) -> Any:
        # a replayed match with a bad field must not cost the turn its message
        if not isinstance(v, list):
            return []
        return [m if isinstance(m, Match) else Match.from_loose(m) for m in v]

    @model_validator(mode="after")
    def _has_content(self) -> "AssistantTurn":
        if not self.message and not self.matches:
            raise ValueError("assistant turn carries neither a message nor matches")
        return self


ConversationTurn = Annotated[Union[UserTurn, AssistantTurn], Field(discriminator="role")]


class LoginRequest(BaseModel):
    email: str
    password: str
