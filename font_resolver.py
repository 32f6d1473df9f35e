import io
import logging
import math
from pathlib import Path

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from byte_cache import ByteCache

logger = logging.getLogger(__name__)

DEFAULT_FAMILY = "Cairo"
STANDARD_FALLBACK_FONT = "Helvetica"

# Only regular-weight files are bundled; bold is simulated at draw time.
FONT_FILES = {
    "Cairo": "Cairo-Regular.ttf",
    "Amiri": "Amiri-Regular.ttf",
    "Tajawal": "Tajawal-Regular.ttf",
    "Almarai": "Almarai-Regular.ttf",
    "Noto Kufi Arabic": "NotoKufiArabic-Regular.ttf",
    # Signature fonts
    "Great Vibes": "GreatVibes-Regular.ttf",
    "Dancing Script": "DancingScript-Regular.ttf",
    "Pacifico": "Pacifico-Regular.ttf",
}

_NUMERIC_WEIGHTS = {
    "100": "thin",
    "200": "extralight",
    "300": "light",
    "400": "normal",
    "500": "medium",
    "600": "semibold",
    "700": "bold",
    "800": "extrabold",
    "900": "black",
}

_KEYWORD_WEIGHTS = {
    "thin": "thin",
    "hairline": "thin",
    "extralight": "extralight",
    "ultralight": "extralight",
    "light": "light",
    "normal": "normal",
    "regular": "normal",
    "book": "normal",
    "medium": "medium",
    "semibold": "semibold",
    "demibold": "semibold",
    "bold": "bold",
    "extrabold": "extrabold",
    "ultrabold": "extrabold",
    "black": "black",
    "heavy": "black",
}

BOLD_WEIGHTS = {"semibold", "bold", "extrabold", "black"}


def normalize_font_weight(weight) -> str:
    if weight is None or isinstance(weight, bool):
        return "normal"
    if isinstance(weight, (int, float)):
        if not math.isfinite(weight):
            return "normal"
        weight = str(int(weight))
    if not isinstance(weight, str):
        return "normal"
    key = "".join(ch for ch in weight.strip().lower() if ch.isalnum())
    return _NUMERIC_WEIGHTS.get(key) or _KEYWORD_WEIGHTS.get(key) or "normal"


def is_bold_weight(weight) -> bool:
    return normalize_font_weight(weight) in BOLD_WEIGHTS


def get_font_filename(family: str | None, weight=None) -> str:
    # weight is accepted for symmetry with load_font; bold and regular share a file.
    if isinstance(family, str) and family in FONT_FILES:
        return FONT_FILES[family]
    return FONT_FILES[DEFAULT_FAMILY]


class FontResolver:
    """Turns (family, weight) into a font name registered with reportlab."""

    def __init__(self, fonts_dir, cache: ByteCache | None = None) -> None:
        self.fonts_dir = Path(fonts_dir)
        self.cache = cache if cache is not None else ByteCache()

    def font_path(self, filename: str) -> Path:
        return (self.fonts_dir / filename).resolve()

    def load_font_bytes(self, path) -> bytes:
        key = str(Path(path).resolve())
        return self.cache.get_or_load(key, lambda p: Path(p).read_bytes())

    def _embed(self, filename: str) -> str:
        font_name = Path(filename).stem
        try:
            existing = pdfmetrics.getFont(font_name)
        except Exception:
            existing = None
        if isinstance(existing, TTFont):
            return font_name
        data = self.load_font_bytes(self.font_path(filename))
        pdfmetrics.registerFont(TTFont(font_name, io.BytesIO(data)))
        logger.debug("Registered font %s from %s", font_name, filename)
        return font_name

    def load_font(self, family: str | None, weight=None) -> str:
        """Return a usable reportlab font name, walking the fallback chain."""
        attempts = [
            (family, weight),
            (family, "normal"),
            (DEFAULT_FAMILY, "normal"),
        ]
        tried: set[str] = set()
        for attempt_family, attempt_weight in attempts:
            filename = get_font_filename(attempt_family, attempt_weight)
            if filename in tried:
                continue
            tried.add(filename)
            try:
                return self._embed(filename)
            except Exception as exc:
                logger.warning(
                    "Font '%s' (%s) unavailable: %s", attempt_family, filename, exc
                )
        logger.warning(
            "Font '%s' is unavailable. Falling back to '%s'.", family, STANDARD_FALLBACK_FONT
        )
        return STANDARD_FALLBACK_FONT

    def available_fonts(self) -> list[dict]:
        fonts = []
        for family, filename in sorted(FONT_FILES.items()):
            path = self.fonts_dir / filename
            fonts.append(
                {
                    "family": family,
                    "file": filename,
                    "available": path.exists(),
                    "size_kb": round(path.stat().st_size / 1024, 2) if path.exists() else None,
                }
            )
        return fonts
