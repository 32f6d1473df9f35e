"""Arabic shaping and run reordering for left-to-right PDF painting.

reportlab draws glyphs at increasing X and performs no bidi reordering of its
own, so Arabic text has to be shaped and put into visual order before it
reaches the canvas.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import arabic_reshaper

logger = logging.getLogger(__name__)

_ARABIC_RE = re.compile(
    "[\u0600-\u06FF\u0750-\u077F\u08A0-\u08FF\uFB50-\uFDFF\uFE70-\uFEFF]"
)
_LATIN_RE = re.compile(r"[A-Za-z]")

RTL = "rtl"
LTR = "ltr"
NUMBER = "number"
NEUTRAL = "neutral"


@dataclass
class TextRun:
    text: str
    direction: str


def contains_arabic(text: str) -> bool:
    return bool(text) and _ARABIC_RE.search(text) is not None


def contains_latin(text: str) -> bool:
    return bool(text) and _LATIN_RE.search(text) is not None


def is_rtl_text(text: str) -> bool:
    """True when the first Arabic character comes before the first Latin letter."""
    if not text:
        return False
    arabic = _ARABIC_RE.search(text)
    if arabic is None:
        return False
    latin = _LATIN_RE.search(text)
    if latin is None:
        return True
    return arabic.start() < latin.start()


def get_text_direction(text: str) -> str:
    return RTL if is_rtl_text(text) else LTR


def reshape_arabic(text: str) -> str:
    if not contains_arabic(text):
        return text
    return arabic_reshaper.reshape(text)


def classify_char(ch: str) -> str:
    if _ARABIC_RE.match(ch):
        return RTL
    if _LATIN_RE.match(ch):
        return LTR
    if ch.isdigit():
        return NUMBER
    return NEUTRAL


def split_runs(text: str) -> list[TextRun]:
    """Partition text into maximal direction runs.

    Digits and neutral characters attach to the run they appear in. A run that
    holds only digits/neutrals takes the direction of the first strong
    character that joins it, so a leading "2024 " stays with what follows.
    """
    runs: list[TextRun] = []
    current: TextRun | None = None
    for ch in text:
        kind = classify_char(ch)
        if current is None:
            current = TextRun(ch, kind)
            continue
        if kind in (NUMBER, NEUTRAL) or kind == current.direction:
            current.text += ch
            continue
        if current.direction in (NUMBER, NEUTRAL):
            current.text += ch
            current.direction = kind
            continue
        runs.append(current)
        current = TextRun(ch, kind)
    if current is not None:
        runs.append(current)
    return runs


def _visual_rtl_run(text: str) -> str:
    try:
        shaped = reshape_arabic(text)
    except Exception as exc:
        logger.warning("Arabic shaping failed for %r, drawing unshaped: %s", text, exc)
        shaped = text
    # str iterates by code point, so surrogate pairs never split.
    return shaped[::-1]


def process_bidi_text(text: str) -> str:
    """Return text in the visual order reportlab should paint it."""
    if not text:
        return ""
    pieces = []
    for run in split_runs(text):
        if run.direction == RTL:
            pieces.append(_visual_rtl_run(run.text))
        else:
            pieces.append(run.text)
    if is_rtl_text(text):
        pieces.reverse()
    return "".join(pieces)
