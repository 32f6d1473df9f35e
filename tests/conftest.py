import io
import shutil
from datetime import datetime
from pathlib import Path

import pytest
import reportlab
from PIL import Image
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from certificate_pdf import CertificateRenderer
from font_resolver import FontResolver
from image_loader import ImageLoader


@pytest.fixture
def uploads_dir(tmp_path):
    path = tmp_path / "uploads"
    (path / "certificates").mkdir(parents=True)
    return path


@pytest.fixture
def renderer(tmp_path, uploads_dir):
    # No fonts on disk: every lookup walks the chain down to Helvetica.
    fonts = FontResolver(tmp_path / "fonts")
    images = ImageLoader(uploads_dir, timeout=1)
    return CertificateRenderer(fonts, images, clock=lambda: datetime(2024, 1, 15))


@pytest.fixture
def embedded_fonts(tmp_path, monkeypatch):
    """Fonts dir holding reportlab's bundled Vera as the Cairo default font."""
    # registered fonts are process-wide; keep this test's registrations local
    monkeypatch.setattr(pdfmetrics, "_fonts", dict(pdfmetrics._fonts))
    monkeypatch.setattr(pdfmetrics, "_dynFaceNames", dict(pdfmetrics._dynFaceNames))
    path = tmp_path / "embedded-fonts"
    path.mkdir()
    shutil.copy(Path(reportlab.__file__).parent / "fonts" / "Vera.ttf", path / "Cairo-Regular.ttf")
    return path


@pytest.fixture
def embedded_renderer(embedded_fonts, uploads_dir):
    fonts = FontResolver(embedded_fonts)
    images = ImageLoader(uploads_dir, timeout=1)
    return CertificateRenderer(fonts, images, clock=lambda: datetime(2024, 1, 15))


@pytest.fixture
def draw_calls(monkeypatch):
    calls = []
    original = canvas.Canvas.drawString

    def spy(self, x, y, text, *args, **kwargs):
        calls.append({"text": text, "x": x, "y": y, "font": self._fontname, "size": self._fontsize})
        return original(self, x, y, text, *args, **kwargs)

    monkeypatch.setattr(canvas.Canvas, "drawString", spy)
    return calls


def png_bytes(size=(32, 32), color=(200, 180, 120)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color=color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def certificate():
    return {
        "certificateNumber": "CERT-2024-0001",
        "studentName": {"ar": "أحمد", "en": "Ahmed"},
        "courseName": {"ar": "التجويد", "en": "Tajweed"},
        "issuedAt": "2024-01-15T10:00:00Z",
    }
