"""
Quick validator: cross-checks the catalog image directory against the metadata table.
Reports images without metadata, metadata rows without images, files Pillow cannot read
and a metadata table that is not a JSON object.
Exit code is 1 when the catalog has no usable images.
"""
from pathlib import Path
from typing import Dict, List
import json, sys

from PIL import Image, UnidentifiedImageError

from services.catalog_loader import SUPPORTED_EXTS
from services.config import get_settings


def scan(catalog_dir: Path, metadata_file: Path) -> Dict[str, List[str]]:
    images = sorted(p.name for p in catalog_dir.glob("*")
                    if p.is_file() and p.suffix.lower() in SUPPORTED_EXTS) if catalog_dir.is_dir() else []
    meta, bad_metadata = {}, []
    if metadata_file.exists():
        try:
            meta = json.loads(metadata_file.read_text(encoding="utf-8"))
        except ValueError:
            bad_metadata.append(metadata_file.name)
        if not isinstance(meta, dict):
            meta = {}
            bad_metadata.append(metadata_file.name)

    unreadable = []
    for name in images:
        try:
            with Image.open(catalog_dir / name) as im:
                im.verify()
        except (UnidentifiedImageError, OSError, SyntaxError):
            unreadable.append(name)

    return {
        "images": images,
        "no_metadata": [n for n in images if n not in meta],
        "orphan_metadata": sorted(k for k in meta if k not in images),
        "unreadable": unreadable,
        "bad_metadata": bad_metadata,
    }


def main():
    s = get_settings()
    report = scan(s.catalog_dir, s.metadata_file)
    usable = len(report["images"]) - len(report["unreadable"])
    print(f"Catalog dir: {s.catalog_dir} ({len(report['images'])} images, {usable} usable)")
    for key, label in [("no_metadata", "Images without metadata"),
                       ("orphan_metadata", "Metadata rows without an image"),
                       ("unreadable", "Unreadable images"),
                       ("bad_metadata", "Unreadable metadata files")]:
        if report[key]:
            print(f"{label} ({len(report[key])}):")
            for n in report[key]:
                print(f"  - {n}")
    if usable == 0:
        sys.exit(1)


if __name__ == "__main__":
    main()
