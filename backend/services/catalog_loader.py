from __future__ import annotations
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import io, json, threading

from PIL import Image, UnidentifiedImageError

from schemas import CatalogEntry
from services.context_builder import ImagePart, Part, TextPart
from services.logger import get_logger

log = get_logger(__name__)

SUPPORTED_EXTS = (".png", ".jpg", ".jpeg")

# only these metadata columns reach the prompt; everything else in the table is dropped
METADATA_FIELDS = ("Title", "Brand", "VarDim_Color", "VarDim_ColorCode")

NO_METADATA = "No additional metadata provided."


def mime_type_for(filename: str) -> str:
    return "image/png" if Path(filename).suffix.lower() == ".png" else "image/jpeg"


def format_metadata(meta: Optional[Dict[str, str]]) -> str:
    if not meta:
        return NO_METADATA
    return json.dumps(meta, ensure_ascii=False, separators=(",", ":"))


def _is_readable_image(data: bytes) -> bool:
    try:
        with Image.open(io.BytesIO(data)) as im:
            im.verify()
        return True
    except (UnidentifiedImageError, OSError, SyntaxError):
        return False


class CatalogLoader:
    """
    Process-wide, read-only view of the reference catalog.

    The metadata table and the image directory are read at most once per
    successful load; the prebuilt (text, image) part sequence is shared by
    every request so images are never re-encoded. Empty results are not
    cached, so a catalog that appears after start-up is picked up later.
    """
    def __init__(self, catalog_dir: Path, metadata_file: Path):
        self.catalog_dir = Path(catalog_dir)
        self.metadata_file = Path(metadata_file)
        self._lock = threading.RLock()
        self._metadata: Optional[Dict[str, Dict[str, str]]] = None
        self._entries: Optional[Tuple[CatalogEntry, ...]] = None
        self._context: Optional[Tuple[Part, ...]] = None

    # ---------- metadata ----------
    def load_metadata(self) -> Dict[str, Dict[str, str]]:
        if self._metadata is not None:
            return self._metadata
        with self._lock:
            if self._metadata is None:
                loaded = self._read_metadata()
                if loaded is None:
                    return {}
                self._metadata = loaded
        return self._metadata

    def _read_metadata(self) -> Optional[Dict[str, Dict[str, str]]]:
        if not self.metadata_file.exists():
            log.warning("Metadata file not found: %s", self.metadata_file)
            return None
        try:
            raw = json.loads(self.metadata_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.error("Error loading metadata from %s: %s", self.metadata_file, e)
            return None
        if not isinstance(raw, dict):
            log.error("Metadata file %s is not a filename-keyed object", self.metadata_file)
            return None

        out: Dict[str, Dict[str, str]] = {}
        for filename, entry in raw.items():
            if not isinstance(entry, dict):
                continue
            out[filename] = {k: str(entry.get(k) or "") for k in METADATA_FIELDS}
        return out

    # ---------- images + prompt context ----------
    def load_context(self) -> Tuple[Part, ...]:
        if self._context is not None:
            return self._context
        with self._lock:
            if self._context is None:
                entries = self._scan()
                if not entries:
                    return ()
                self._entries = entries
                self._context = self._build_context(entries)
                log.info("Loaded %d catalog images", len(entries))
        return self._context

    def entries(self) -> Tuple[CatalogEntry, ...]:
        self.load_context()
        return self._entries or ()

    def _scan(self) -> Tuple[CatalogEntry, ...]:
        if not self.catalog_dir.is_dir():
            log.warning("Catalog directory not found: %s", self.catalog_dir)
            return ()

        metadata = self.load_metadata()

        found: List[CatalogEntry] = []
        for p in sorted(self.catalog_dir.iterdir(), key=lambda x: x.name):
            if p.suffix.lower() not in SUPPORTED_EXTS:
                continue
            if not p.is_file():
                continue
            data = p.read_bytes()
            if not _is_readable_image(data):
                log.warning("Skipping unreadable catalog image: %s", p.name)
                continue
            meta = metadata.get(p.name, {})
            found.append(CatalogEntry(
                filename=p.name,
                title=meta.get("Title", ""),
                brand=meta.get("Brand", ""),
                color=meta.get("VarDim_Color", ""),
                color_code=meta.get("VarDim_ColorCode", ""),
                mime_type=mime_type_for(p.name),
                image_bytes=data,
            ))
        if not found:
            log.warning("No catalog images in %s", self.catalog_dir)
        return tuple(found)

    def _build_context(self, entries: Tuple[CatalogEntry, ...]) -> Tuple[Part, ...]:
        metadata = self.load_metadata()
        parts: List[Part] = []
        for e in entries:
            meta_text = format_metadata(metadata.get(e.filename))
            parts.append(TextPart(f"Catalog Image: {e.filename}\nMetadata: {meta_text}"))
            parts.append(ImagePart(e.image_bytes, e.mime_type))
        return tuple(parts)

    # ---------- serving ----------
    def resolve_image(self, filename: str) -> Path:
        """Map a client-supplied name to a file inside the catalog dir, refusing traversal."""
        if not filename:
            raise ValueError("Filename required")
        root = self.catalog_dir.resolve()
        target = (root / filename).resolve()
        if root not in target.parents:
            raise ValueError("Invalid filename")
        if not target.is_file():
            raise FileNotFoundError(filename)
        return target
