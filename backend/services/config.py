from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import os

from dotenv import load_dotenv

APP_DIR = Path(__file__).resolve().parents[1]
DATA_DIR = APP_DIR / "data"

DEFAULT_MODEL = "gemini-2.0-flash-lite"


def _env_flag(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    google_api_key: str = ""
    model_name: str = DEFAULT_MODEL
    catalog_dir: Path = DATA_DIR / "catalog-images"
    metadata_file: Path = DATA_DIR / "image_metadata.json"
    auth_email: str = ""
    auth_password: str = ""
    cookie_secure: bool = False
    log_level: str = "INFO"

    @property
    def auth_configured(self) -> bool:
        return bool(self.auth_email and self.auth_password)


def get_settings() -> Settings:
    # .env next to the backend wins over nothing, but never over real env vars
    load_dotenv(dotenv_path=APP_DIR / ".env", override=False)
    return Settings(
        google_api_key=os.getenv("GOOGLE_API_KEY", ""),
        model_name=os.getenv("GEMINI_MODEL", DEFAULT_MODEL),
        catalog_dir=Path(os.getenv("CATALOG_DIR") or DATA_DIR / "catalog-images"),
        metadata_file=Path(os.getenv("METADATA_FILE") or DATA_DIR / "image_metadata.json"),
        auth_email=os.getenv("AUTH_EMAIL", ""),
        auth_password=os.getenv("AUTH_PASSWORD", ""),
        cookie_secure=_env_flag("COOKIE_SECURE"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
