"""Pytest fixtures for the faucet matching backend."""

import io
import json
from pathlib import Path

import pytest
from PIL import Image

from services.catalog_loader import CatalogLoader
from services.config import Settings
from fakes import FakeInvoker


def image_bytes(color=(200, 200, 200), fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (16, 16), color=color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def catalog_dir(tmp_path) -> Path:
    """Catalog with three images, plus files the loader must skip."""
    d = tmp_path / "catalog-images"
    d.mkdir()
    (d / "b_faucet.jpg").write_bytes(image_bytes((0, 0, 255), "JPEG"))
    (d / "a_faucet.png").write_bytes(image_bytes((255, 0, 0), "PNG"))
    (d / "c_faucet.JPEG").write_bytes(image_bytes((0, 255, 0), "JPEG"))
    (d / "notes.txt").write_text("not an image")
    (d / "folder.png").mkdir()
    return d


@pytest.fixture
def metadata_file(tmp_path) -> Path:
    path = tmp_path / "image_metadata.json"
    path.write_text(json.dumps({
        "a_faucet.png": {
            "Title": "Arc Kitchen Faucet",
            "Brand": "Delta",
            "VarDim_Color": "Chrome",
            "VarDim_ColorCode": "CH",
            "Price": 199,
        },
        "b_faucet.jpg": {"Title": "Bridge Faucet", "Brand": "Moen"},
    }))
    return path


@pytest.fixture
def loader(catalog_dir, metadata_file) -> CatalogLoader:
    return CatalogLoader(catalog_dir, metadata_file)


@pytest.fixture
def settings(catalog_dir, metadata_file) -> Settings:
    return Settings(
        google_api_key="test-key",
        catalog_dir=catalog_dir,
        metadata_file=metadata_file,
        log_level="DEBUG",
    )


@pytest.fixture
def fake_invoker() -> FakeInvoker:
    return FakeInvoker(reply=json.dumps({
        "message": "Here are the closest faucets.",
        "matches": [
            {"filename": "a_faucet.png", "confidence": 0.91, "reasoning": "same arc spout"},
            {"filename": "b_faucet.jpg", "title": "Model-given title", "confidence": 0.5},
            {"filename": "ghost.png", "confidence": "high"},
        ],
    }))
