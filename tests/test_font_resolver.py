import logging
import math

import pytest
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from byte_cache import ByteCache
from font_resolver import (
    FontResolver,
    get_font_filename,
    is_bold_weight,
    normalize_font_weight,
)


@pytest.mark.parametrize(
    "weight, expected",
    [
        ("700", "bold"),
        (700, "bold"),
        ("Bold", "bold"),
        ("100", "thin"),
        ("semi-bold", "semibold"),
        ("900", "black"),
        ("regular", "normal"),
        (None, "normal"),
        ("650", "normal"),
        ("heavyish", "normal"),
        (math.nan, "normal"),
        (math.inf, "normal"),
        (-math.inf, "normal"),
    ],
)
def test_normalize_font_weight(weight, expected):
    assert normalize_font_weight(weight) == expected


def test_is_bold_weight():
    assert is_bold_weight("700")
    assert is_bold_weight("semibold")
    assert is_bold_weight("black")
    assert not is_bold_weight("normal")
    assert not is_bold_weight("500")
    assert not is_bold_weight(None)


def test_font_filename_table():
    assert get_font_filename("Amiri", "normal") == "Amiri-Regular.ttf"
    assert get_font_filename("Great Vibes") == "GreatVibes-Regular.ttf"
    # bold is simulated, so it shares the regular file
    assert get_font_filename("Tajawal", "bold") == get_font_filename("Tajawal", "normal")


def test_unknown_family_resolves_to_cairo():
    assert get_font_filename("Comic Sans", "bold") == "Cairo-Regular.ttf"
    assert get_font_filename(None) == "Cairo-Regular.ttf"


def test_missing_fonts_fall_back_to_helvetica(tmp_path, caplog):
    resolver = FontResolver(tmp_path / "fonts")
    with caplog.at_level(logging.WARNING, logger="font_resolver"):
        assert resolver.load_font("Comic Sans", "bold") == "Helvetica"
    assert "Falling back to 'Helvetica'" in caplog.text


def test_fallback_chain_order(tmp_path, monkeypatch):
    resolver = FontResolver(tmp_path)
    attempts = []

    def fake_embed(filename):
        attempts.append(filename)
        if filename != "Cairo-Regular.ttf":
            raise FileNotFoundError(filename)
        return "Cairo-Regular"

    monkeypatch.setattr(resolver, "_embed", fake_embed)
    assert resolver.load_font("Amiri", "bold") == "Cairo-Regular"
    assert attempts == ["Amiri-Regular.ttf", "Cairo-Regular.ttf"]


def test_font_bytes_are_cached_by_absolute_path(tmp_path):
    font_file = tmp_path / "Fake-Regular.ttf"
    font_file.write_bytes(b"not really a font")
    cache = ByteCache()
    resolver = FontResolver(tmp_path, cache=cache)

    assert resolver.load_font_bytes(font_file) == b"not really a font"
    font_file.unlink()
    assert resolver.load_font_bytes(font_file) == b"not really a font"
    assert str(font_file.resolve()) in cache


def test_available_fonts_reports_missing_files(tmp_path):
    (tmp_path / "Cairo-Regular.ttf").write_bytes(b"x" * 2048)
    fonts = {f["family"]: f for f in FontResolver(tmp_path).available_fonts()}
    assert fonts["Cairo"]["available"] is True
    assert fonts["Cairo"]["size_kb"] == 2.0
    assert fonts["Amiri"]["available"] is False


def test_byte_cache_capacity():
    cache = ByteCache(capacity=2)
    assert cache.put("a", b"1")
    assert cache.put("b", b"2")
    assert not cache.put("c", b"3")
    assert len(cache) == 2
    assert cache.get("c") is None
    # existing keys can still be rewritten
    assert cache.put("a", b"1")
    assert cache.get_or_load("d", lambda key: b"4") == b"4"
    assert "d" not in cache


def test_embeds_truetype_from_fonts_dir(embedded_fonts):
    resolver = FontResolver(embedded_fonts)
    name = resolver.load_font("Cairo", "bold")

    assert name == "Cairo-Regular"
    assert isinstance(pdfmetrics.getFont(name), TTFont)
    assert str((embedded_fonts / "Cairo-Regular.ttf").resolve()) in resolver.cache
    # a second resolver reuses the registered face
    assert FontResolver(embedded_fonts).load_font("Amiri") == "Cairo-Regular"
