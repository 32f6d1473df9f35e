import argparse
import io
import json
import logging
import re
from datetime import datetime
from pathlib import Path

from reportlab.lib.colors import Color
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from byte_cache import ByteCache
from certificate_records import (
    CertificateGenerationError,
    coerce_certificate,
    coerce_template,
    format_issued_date,
    get_bilingual_text,
)
from font_resolver import DEFAULT_FAMILY, FontResolver, is_bold_weight
from image_loader import LOCAL_IMAGE_CACHE_SIZE, ImageLoader
from layout_normalizer import (
    FIELD_DEFAULT_Y,
    NormalizedPlaceholder,
    clamp,
    normalize_placeholder,
)
from settings import Settings, load_settings
from text_direction import process_bidi_text

logger = logging.getLogger(__name__)

PAGE_MARGIN = 10.0
# Approximate ascent as a fraction of the font size; maps the top of the text
# box (web layout) onto the baseline (PDF).
ASCENT_RATIO = 0.75
BOLD_OFFSETS = ((0.0, 0.0), (0.5, 0.0), (0.0, 0.5), (0.5, 0.5))
DEFAULT_IMAGE_SIZE = 100.0

FIELD_DEFAULT_TEXT = {
    "studentName": ("الطالب", "Student"),
    "courseName": ("الدورة", "Course"),
}

DEFAULT_LAYOUT_LABELS = {
    "ar": {"issuedDate": "تاريخ الإصدار", "certificateNumber": "رقم الشهادة"},
    "en": {"issuedDate": "Issued on", "certificateNumber": "Certificate #"},
}

_NAMED_COLORS = {
    "black": (0.0, 0.0, 0.0),
    "white": (1.0, 1.0, 1.0),
    "red": (1.0, 0.0, 0.0),
    "green": (0.0, 0.5, 0.0),
    "blue": (0.0, 0.0, 1.0),
    "yellow": (1.0, 1.0, 0.0),
    "gray": (0.5, 0.5, 0.5),
    "grey": (0.5, 0.5, 0.5),
    "gold": (0.83, 0.69, 0.22),
}


def parse_css_color(value, fallback: tuple[float, float, float] = (0.0, 0.0, 0.0)) -> tuple[float, float, float]:
    if not isinstance(value, str):
        return fallback
    s = value.strip().lower()
    if s in _NAMED_COLORS:
        return _NAMED_COLORS[s]
    hexv = s[1:] if s.startswith("#") else s
    if len(hexv) == 3:
        hexv = "".join(ch * 2 for ch in hexv)
    if len(hexv) == 6 and all(ch in "0123456789abcdef" for ch in hexv):
        return (
            int(hexv[0:2], 16) / 255.0,
            int(hexv[2:4], 16) / 255.0,
            int(hexv[4:6], 16) / 255.0,
        )
    m = re.match(r"rgb\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*\)", s)
    if m:
        return (
            max(0, min(255, int(m.group(1)))) / 255.0,
            max(0, min(255, int(m.group(2)))) / 255.0,
            max(0, min(255, int(m.group(3)))) / 255.0,
        )
    return fallback


def effective_page_size(template: dict) -> tuple[float, float]:
    width = float(template["width"])
    height = float(template["height"])
    orientation = template.get("orientation")
    if orientation == "portrait" and width > height:
        width, height = height, width
    elif orientation == "landscape" and height > width:
        width, height = height, width
    return width, height


def draw_anchor(c: canvas.Canvas, x: float, y: float) -> None:
    c.saveState()
    c.setStrokeColor(Color(1, 0, 0, alpha=0.8))
    c.setLineWidth(0.7)
    c.line(x - 6, y, x + 6, y)
    c.line(x, y - 6, x, y + 6)
    c.restoreState()


class CertificatePage:
    """One page being painted: canvas, size and the fonts loaded for this render."""

    def __init__(self, c: canvas.Canvas, width: float, height: float, fonts: FontResolver, debug: bool = False) -> None:
        self.canvas = c
        self.width = width
        self.height = height
        self.font_resolver = fonts
        self.debug = debug
        self.default_font = fonts.load_font(DEFAULT_FAMILY, "normal")
        self.fonts: dict[tuple[str, str], str] = {(DEFAULT_FAMILY, "normal"): self.default_font}

    def font_for(self, family: str, weight: str) -> str:
        key = (family, weight)
        if key not in self.fonts:
            try:
                self.fonts[key] = self.font_resolver.load_font(family, weight)
            except Exception as exc:
                logger.warning("Font '%s' failed to load, using default: %s", family, exc)
                self.fonts[key] = self.default_font
        return self.fonts[key]

    def to_pdf_y(self, y: float, font_size: float) -> float:
        return clamp(self.height - y - font_size * ASCENT_RATIO, PAGE_MARGIN, self.height - PAGE_MARGIN)

    def text_origin_x(self, x: float, text_width: float, align: str) -> float:
        if align == "center":
            origin = x - text_width / 2.0
        elif align == "right":
            origin = x - text_width
        else:
            origin = x
        return max(PAGE_MARGIN, min(origin, self.width - PAGE_MARGIN - text_width))

    def draw_text(self, text: str | None, spec: NormalizedPlaceholder) -> bool:
        """Paint text at a normalized placeholder; returns False when there is nothing to draw."""
        if not text or not text.strip():
            return False
        x = clamp(float(spec.x), 0.0, self.width)
        y = clamp(float(spec.y), 0.0, self.height)
        size = spec.font_size

        font = self.font_for(spec.font_family, spec.font_weight)
        visual = process_bidi_text(text)
        text_width = pdfmetrics.stringWidth(visual, font, size)
        draw_x = self.text_origin_x(x, text_width, spec.align)
        draw_y = self.to_pdf_y(y, size)

        c = self.canvas
        c.setFont(font, size)
        c.setFillColor(Color(*parse_css_color(spec.color)))
        offsets = BOLD_OFFSETS if is_bold_weight(spec.font_weight) else BOLD_OFFSETS[:1]
        for dx, dy in offsets:
            c.drawString(draw_x + dx, draw_y + dy, visual)

        if self.debug:
            draw_anchor(c, x, self.height - y)
        return True

    def draw_image(self, data: bytes, x: float, y: float, width: float, height: float) -> None:
        self.canvas.drawImage(ImageReader(io.BytesIO(data)), x, y, width=width, height=height, mask="auto")

    def draw_programmatic_background(self) -> None:
        c = self.canvas
        w, h = self.width, self.height
        inset = min(50.0, w / 4.0, h / 4.0)
        c.saveState()
        c.setFillColor(Color(0.99, 0.98, 0.95))
        c.rect(0, 0, w, h, stroke=0, fill=1)
        c.setStrokeColor(Color(0.5, 0.7, 0.3))
        c.setLineWidth(5)
        c.rect(inset, inset, w - 2 * inset, h - 2 * inset, stroke=1, fill=0)
        c.setLineWidth(1)
        inner = inset + 10
        if w > 2 * inner and h > 2 * inner:
            c.rect(inner, inner, w - 2 * inner, h - 2 * inner, stroke=1, fill=0)
        c.restoreState()


class CertificateRenderer:
    """Builds certificate PDFs from a template and certificate data."""

    def __init__(
        self,
        font_resolver: FontResolver,
        image_loader: ImageLoader,
        default_locale: str = "ar",
        force_default_layout: bool = False,
        debug: bool = False,
        clock=datetime.now,
    ) -> None:
        self.font_resolver = font_resolver
        self.image_loader = image_loader
        self.default_locale = default_locale
        self.force_default_layout = force_default_layout
        self.debug = debug
        self.clock = clock

    def render(self, certificate_data, template_data, locale: str | None = None, force_default_layout: bool | None = None) -> bytes:
        certificate = coerce_certificate(certificate_data)
        template = coerce_template(template_data)

        width, height = effective_page_size(template)
        packet = io.BytesIO()
        try:
            c = canvas.Canvas(packet, pagesize=(width, height), invariant=1)
        except Exception as exc:
            raise CertificateGenerationError(f"Failed to create PDF document: {exc}") from exc
        page = CertificatePage(c, width, height, self.font_resolver, debug=self.debug)

        self._draw_background(page, template.get("backgroundImage"))

        locale = locale or self.default_locale
        texts = self._field_texts(certificate, locale)
        placeholders = template["placeholders"]

        drawn = False
        for field, default_y in FIELD_DEFAULT_Y.items():
            # A key present with None means the field was removed from the layout.
            spec = normalize_placeholder(
                placeholders.get(field), width, height, default_y, allow_null=field in placeholders
            )
            if spec is None:
                continue
            if page.draw_text(texts[field], spec):
                drawn = True

        if self._draw_custom_text(page, placeholders.get("customText")):
            drawn = True
        if self._draw_images(page, placeholders.get("images")):
            drawn = True

        force = self.force_default_layout if force_default_layout is None else force_default_layout
        if not drawn or force:
            self._draw_default_layout(page, texts, locale)

        try:
            c.showPage()
            c.save()
        except Exception as exc:
            raise CertificateGenerationError(f"Failed to generate certificate PDF: {exc}") from exc
        return packet.getvalue()

    def _field_texts(self, certificate, locale: str) -> dict[str, str]:
        issued_at = certificate.issued_at or self.clock()
        texts = {
            field: get_bilingual_text(getattr(certificate, attr), locale, *FIELD_DEFAULT_TEXT[field])
            for field, attr in (("studentName", "student_name"), ("courseName", "course_name"))
        }
        texts["issuedDate"] = format_issued_date(issued_at, locale)
        texts["certificateNumber"] = certificate.certificate_number
        return texts

    def _draw_background(self, page: CertificatePage, ref: str | None) -> None:
        if ref:
            try:
                data = self.image_loader.load(ref)
                page.draw_image(data, 0, 0, page.width, page.height)
                return
            except Exception as exc:
                logger.warning("Error loading background image %s: %s", ref, exc)
        page.draw_programmatic_background()

    def _draw_custom_text(self, page: CertificatePage, entries) -> bool:
        if not isinstance(entries, list):
            return False
        drawn = False
        for entry in entries:
            spec = normalize_placeholder(entry, page.width, page.height, page.height / 2, allow_null=True)
            if spec is None or not spec.text:
                continue
            if page.draw_text(spec.text, spec):
                drawn = True
        return drawn

    def _draw_images(self, page: CertificatePage, entries) -> bool:
        if not isinstance(entries, list):
            return False
        drawn = False
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            url = entry.get("url")
            try:
                x = float(entry.get("x") or 0)
                y = float(entry.get("y") or 0)
                w = float(entry.get("width") or DEFAULT_IMAGE_SIZE)
                h = float(entry.get("height") or DEFAULT_IMAGE_SIZE)
                data = self.image_loader.load(url)
                page.draw_image(data, x, page.height - y - h, w, h)
                drawn = True
            except Exception as exc:
                logger.warning("Error drawing additional image %s: %s", url, exc)
        return drawn

    def _draw_default_layout(self, page: CertificatePage, texts: dict[str, str], locale: str) -> None:
        w, h = page.width, page.height
        labels = DEFAULT_LAYOUT_LABELS.get(locale, DEFAULT_LAYOUT_LABELS["en"])

        def spec(x, y, size, color="#000000", weight="normal"):
            return normalize_placeholder(
                {"x": x, "y": y, "fontSize": size, "color": color, "fontWeight": weight},
                w,
                h,
                y,
            )

        page.draw_text("CERTIFICATE OF COMPLETION", spec(w / 2, h * 0.13, 36, "#336633", "bold"))
        page.draw_text("شهادة إتمام", spec(w / 2, h * 0.2, 32, "#336633", "bold"))
        page.draw_text(texts["studentName"], spec(w / 2, h * 0.37, 32, weight="bold"))
        page.draw_text(texts["courseName"], spec(w / 2, h * 0.48, 24))

        footer = (
            (w * 0.3, "issuedDate"),
            (w * 0.7, "certificateNumber"),
        )
        for x, field in footer:
            value = texts.get(field)
            if not value:
                continue
            page.draw_text(labels[field], spec(x, h * 0.72, 14, "#808080"))
            page.draw_text(value, spec(x, h * 0.77, 18, "#4d4d4d"))


def build_renderer(
    settings: Settings,
    font_cache: ByteCache | None = None,
    image_cache: ByteCache | None = None,
) -> CertificateRenderer:
    fonts = FontResolver(settings.fonts_dir, cache=font_cache or ByteCache())
    images = ImageLoader(
        settings.uploads_dir,
        timeout=settings.image_timeout,
        cache=image_cache or ByteCache(capacity=LOCAL_IMAGE_CACHE_SIZE),
    )
    return CertificateRenderer(
        fonts,
        images,
        default_locale=settings.default_locale,
        force_default_layout=settings.force_default_layout or settings.debug_default_layout,
        debug=settings.debug_default_layout,
    )


def generate_certificate_pdf(certificate_data, template_data, locale: str | None = None, settings: Settings | None = None) -> bytes:
    renderer = build_renderer(settings or load_settings())
    return renderer.render(certificate_data, template_data, locale=locale)


def save_pdf(pdf_bytes: bytes, file_name: str, certificates_dir) -> str:
    """Write the PDF under the certificates dir and return its public URL."""
    target_dir = Path(certificates_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    safe_name = Path(file_name).name
    (target_dir / safe_name).write_bytes(pdf_bytes)
    return f"/uploads/certificates/{safe_name}"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Render a certificate PDF from certificate data and a template."
    )
    parser.add_argument("--certificate", required=True, help="Path to certificate JSON.")
    parser.add_argument("--template", required=True, help="Path to template JSON.")
    parser.add_argument("--output", required=True, help="Output PDF path.")
    parser.add_argument("--locale", choices=["ar", "en"], help="Locale for bilingual fields.")
    parser.add_argument(
        "--force-default-layout",
        action="store_true",
        help="Also draw the built-in layout regardless of the template.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Draw anchors at each placeholder position.",
    )
    parser.add_argument("--fonts-dir", help="Directory with bundled TTF fonts.")
    parser.add_argument("--uploads-dir", help="Directory relative image paths resolve against.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(name)s: %(message)s")

    settings = load_settings()
    renderer = build_renderer(settings)
    if args.fonts_dir:
        renderer.font_resolver = FontResolver(args.fonts_dir)
    if args.uploads_dir:
        renderer.image_loader = ImageLoader(args.uploads_dir, timeout=settings.image_timeout)
    if args.debug:
        renderer.debug = True

    certificate = json.loads(Path(args.certificate).read_text(encoding="utf-8"))
    template = json.loads(Path(args.template).read_text(encoding="utf-8"))
    pdf_bytes = renderer.render(
        certificate,
        template,
        locale=args.locale,
        force_default_layout=True if args.force_default_layout else None,
    )

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(pdf_bytes)
    print(f"Wrote certificate: {output_path} ({len(pdf_bytes)} bytes)")


if __name__ == "__main__":
    main()
