"""Unit tests for request payload assembly."""

import json

import pytest

from schemas import AssistantTurn, Match, UserTurn
from services.context_builder import (
    IMAGE_ONLY_PROMPT,
    USER_IMAGE_NOTE,
    ImagePart,
    TextPart,
    UploadedImage,
    build_request,
    history_parts,
)
from services.errors import InputError

CATALOG = (
    TextPart("Catalog Image: a.png\nMetadata: {}"),
    ImagePart(b"a-bytes", "image/png"),
    TextPart("Catalog Image: b.jpg\nMetadata: {}"),
    ImagePart(b"b-bytes", "image/jpeg"),
)


class TestBuildRequest:
    """Fixed ordering of the model payload."""

    def test_text_only_turn(self):
        parts = build_request("INSTRUCTIONS", CATALOG, [], new_text="chrome pull-down?")

        assert parts[0] == TextPart("INSTRUCTIONS")
        assert tuple(parts[1:5]) == CATALOG
        assert parts[5] == TextPart("User: chrome pull-down?")
        assert len(parts) == 6

    def test_image_only_turn_uses_fallback_prompt(self):
        img = UploadedImage(b"upload", "image/jpeg")
        parts = build_request("I", CATALOG, [], new_image=img)

        assert parts[-2] == TextPart(IMAGE_ONLY_PROMPT)
        assert parts[-1] == ImagePart(b"upload", "image/jpeg")

    def test_text_and_image(self):
        img = UploadedImage(b"upload", "image/webp")
        parts = build_request("I", CATALOG, [], new_text="like this", new_image=img)

        assert parts[-2] == TextPart("User: like this")
        assert parts[-1].mime_type == "image/webp"

    def test_undeclared_mime_defaults_to_png(self):
        parts = build_request("I", CATALOG, [], new_image=UploadedImage(b"upload"))
        assert parts[-1].mime_type == "image/png"

    def test_history_sits_between_catalog_and_new_turn(self):
        history = [UserTurn(text="first")]
        parts = build_request("I", CATALOG, history, new_text="second")

        assert parts[5] == TextPart("User: first")
        assert parts[6] == TextPart("User: second")

    def test_catalog_not_modified(self):
        catalog = list(CATALOG)
        build_request("I", catalog, [UserTurn(text="x")], new_text="y")
        assert tuple(catalog) == CATALOG

    def test_rejects_empty_turn(self):
        with pytest.raises(InputError):
            build_request("I", CATALOG, [], new_text=None, new_image=None)

    def test_deterministic(self):
        a = build_request("I", CATALOG, [UserTurn(text="x")], new_text="y")
        b = build_request("I", CATALOG, [UserTurn(text="x")], new_text="y")
        assert a == b


class TestHistoryParts:
    """Replay of prior turns as text."""

    def test_user_image_is_mentioned_not_replayed(self):
        parts = history_parts([UserTurn(text="this one", has_image=True)])

        assert parts == [TextPart("User: this one"), TextPart(USER_IMAGE_NOTE)]
        assert all(isinstance(p, TextPart) for p in parts)

    def test_assistant_message_and_matches(self):
        match = Match(filename="a.png", title="Arc", confidence=0.8, reasoning="arc")
        parts = history_parts([AssistantTurn(message="Found some", matches=[match])])

        assert parts[0] == TextPart("Assistant: Found some")
        assert parts[1].text.startswith("Assistant found matches: ")
        listed = json.loads(parts[1].text.split(": ", 1)[1])
        assert listed[0]["filename"] == "a.png"
        assert listed[0]["confidence"] == 0.8

    def test_assistant_without_matches_has_single_line(self):
        parts = history_parts([AssistantTurn(message="Which finish?")])
        assert parts == [TextPart("Assistant: Which finish?")]

    def test_order_preserved(self):
        turns = [
            UserTurn(text="one"),
            AssistantTurn(message="two"),
            UserTurn(has_image=True),
        ]
        assert [p.text for p in history_parts(turns)] == ["User: one", "Assistant: two", USER_IMAGE_NOTE]


def test_gemini_rendering():
    assert TextPart("hi").to_gemini() == "hi"
    assert ImagePart(b"x", "image/png").to_gemini() == {"mime_type": "image/png", "data": b"x"}
