"""Single place where template placeholders get their defaults.

Templates come from a web editor, so any attribute may be missing, mistyped
or out of range. Everything downstream relies on the values produced here
being concrete and inside the page.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

DEFAULT_FONT_SIZE = 24.0
DEFAULT_FONT_FAMILY = "Cairo"
DEFAULT_COLOR = "#000000"
DEFAULT_ALIGN = "center"
DEFAULT_FONT_WEIGHT = "normal"
ALIGNMENTS = ("left", "center", "right")

# Vertical slots (top-down) used when a standard field has no y of its own.
FIELD_DEFAULT_Y = {
    "studentName": 300.0,
    "courseName": 400.0,
    "issuedDate": 500.0,
    "certificateNumber": 600.0,
}


@dataclass(frozen=True)
class NormalizedPlaceholder:
    x: float
    y: float
    font_size: float
    font_family: str
    color: str
    align: str
    font_weight: str
    text: Optional[str] = None


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def normalize_placeholder(
    raw: Optional[Mapping[str, Any]],
    page_width: float,
    page_height: float,
    default_y: float,
    allow_null: bool = False,
) -> Optional[NormalizedPlaceholder]:
    """Fill in defaults for a raw placeholder and clamp it to the page.

    Returns None only when ``allow_null`` is set and ``raw`` is None, which
    means the field was removed from the template and must not be drawn.
    """
    if raw is None:
        if allow_null:
            return None
        raw = {}
    elif not isinstance(raw, Mapping):
        raw = {}

    x = _as_number(raw.get("x"))
    if x is None:
        x = page_width / 2
    y = _as_number(raw.get("y"))
    if y is None:
        y = default_y

    font_size = _as_number(_pick(raw, "fontSize", "font_size"))
    if font_size is None or font_size <= 0:
        font_size = DEFAULT_FONT_SIZE

    font_family = _pick(raw, "fontFamily", "font_family")
    if not isinstance(font_family, str) or not font_family.strip():
        font_family = DEFAULT_FONT_FAMILY

    color = raw.get("color")
    if not isinstance(color, str) or not color.strip():
        color = DEFAULT_COLOR

    align = raw.get("align")
    align = align.strip().lower() if isinstance(align, str) else DEFAULT_ALIGN
    if align not in ALIGNMENTS:
        align = DEFAULT_ALIGN

    font_weight = _pick(raw, "fontWeight", "font_weight")
    if isinstance(font_weight, (int, float)) and not isinstance(font_weight, bool):
        number = _as_number(font_weight)
        font_weight = str(int(number)) if number is not None else DEFAULT_FONT_WEIGHT
    if not isinstance(font_weight, str) or not font_weight.strip():
        font_weight = DEFAULT_FONT_WEIGHT

    text = raw.get("text")
    if text is not None and not isinstance(text, str):
        text = str(text)

    return NormalizedPlaceholder(
        x=clamp(x, 0.0, float(page_width)),
        y=clamp(y, 0.0, float(page_height)),
        font_size=font_size,
        font_family=font_family.strip(),
        color=color.strip(),
        align=align,
        font_weight=font_weight.strip(),
        text=text,
    )
