import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parent

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def _env_path(name: str, default: Path) -> Path:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    # Allow Windows-style env var paths even on Linux.
    path = Path(raw.replace("\\", "/"))
    if not path.is_absolute():
        path = ROOT_DIR / path
    return path


def _env_float(name: str, default: float) -> float:
    raw = (os.environ.get(name) or "").strip()
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class Settings:
    fonts_dir: Path
    uploads_dir: Path
    certificates_dir: Path
    default_locale: str = "ar"
    debug_default_layout: bool = False
    force_default_layout: bool = False
    image_timeout: float = 30.0
    app_env: str = "development"
    jwt_secret: str = ""
    jwt_jwks_url: str = ""

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


def load_settings() -> Settings:
    load_dotenv()
    uploads_dir = _env_path("CERT_UPLOADS_DIR", ROOT_DIR / "uploads")
    locale = (os.environ.get("CERT_DEFAULT_LOCALE") or "ar").strip().lower()
    return Settings(
        fonts_dir=_env_path("CERT_FONTS_DIR", ROOT_DIR / "assets" / "fonts"),
        uploads_dir=uploads_dir,
        certificates_dir=_env_path("CERT_CERTIFICATES_DIR", uploads_dir / "certificates"),
        default_locale=locale if locale in ("ar", "en") else "ar",
        debug_default_layout=_env_flag("CERT_DEBUG_DEFAULT_LAYOUT"),
        force_default_layout=_env_flag("CERT_FORCE_DEFAULT_LAYOUT"),
        image_timeout=_env_float("CERT_IMAGE_TIMEOUT", 30.0),
        app_env=(os.environ.get("APP_ENV") or "development").strip().lower(),
        jwt_secret=os.environ.get("JWT_SECRET", ""),
        jwt_jwks_url=os.environ.get("JWT_JWKS_URL", "").strip(),
    )
