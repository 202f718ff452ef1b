# Builds the catalog prompt context once so a broken catalog shows up before the first request
from services.catalog_loader import CatalogLoader
from services.config import get_settings


def main() -> int:
    s = get_settings()
    loader = CatalogLoader(s.catalog_dir, s.metadata_file)
    parts = loader.load_context()
    print(f"Catalog ready: {len(parts) // 2} images, {len(loader.load_metadata())} metadata rows.")
    return 0 if parts else 1


if __name__ == "__main__":
    raise SystemExit(main())
