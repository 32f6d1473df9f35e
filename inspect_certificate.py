import argparse
import io
import json
from pathlib import Path

import fitz
from pypdf import PdfReader


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Dump text placement from a rendered certificate PDF using PyMuPDF."
    )
    parser.add_argument("--pdf", required=True, help="Path to the rendered certificate PDF.")
    parser.add_argument("--page", type=int, default=0, help="Zero-based page index.")
    parser.add_argument(
        "--contains",
        help="Filter spans containing this text (case-insensitive).",
    )
    parser.add_argument(
        "--output-json",
        help="Optional JSON output path for extracted spans.",
    )
    parser.add_argument(
        "--annotate",
        help="Optional output PDF with boxes and labels drawn on top of the certificate.",
    )
    return parser.parse_args()


def to_bottom_left_bbox(bbox: list[float], page_h: float) -> list[float]:
    x0, y0, x1, y1 = bbox
    return [x0, page_h - y1, x1, page_h - y0]


def to_bottom_left_point(x: float, y: float, page_h: float) -> list[float]:
    return [x, page_h - y]


def page_sizes(pdf_bytes: bytes) -> list[tuple[float, float]]:
    reader = PdfReader(io.BytesIO(pdf_bytes))
    return [(float(p.mediabox.width), float(p.mediabox.height)) for p in reader.pages]


def iter_spans(page: fitz.Page):
    data = page.get_text("dict")
    for block in data.get("blocks", []):
        if block.get("type") != 0:
            continue
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                yield span


def collect_spans(doc: fitz.Document, page_index: int = 0, contains: str | None = None) -> list[dict]:
    if page_index < 0 or page_index >= len(doc):
        raise IndexError(f"Page {page_index} out of range. PDF has {len(doc)} page(s).")
    page = doc[page_index]
    page_h = float(page.rect.height)
    needle = contains.lower() if contains else None

    items: list[dict] = []
    for span in iter_spans(page):
        text = (span.get("text") or "").strip()
        if not text:
            continue
        if needle and needle not in text.lower():
            continue
        bbox_top_left = list(span.get("bbox", [0, 0, 0, 0]))
        origin = span.get("origin")
        items.append(
            {
                "text": text,
                "font": span.get("font"),
                "size": span.get("size"),
                "bbox_top_left": bbox_top_left,
                "bbox_bottom_left": to_bottom_left_bbox(bbox_top_left, page_h),
                "origin_bottom_left": (
                    to_bottom_left_point(origin[0], origin[1], page_h) if origin else None
                ),
            }
        )
    return items


def spans_from_bytes(pdf_bytes: bytes, page_index: int = 0, contains: str | None = None) -> list[dict]:
    with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
        return collect_spans(doc, page_index, contains)


def main() -> None:
    args = parse_args()
    pdf_path = Path(args.pdf)

    doc = fitz.open(pdf_path)
    items = collect_spans(doc, args.page, args.contains)
    page = doc[args.page]

    print(f"Certificate: {pdf_path}")
    print(f"Page: {args.page}  Size: {page.rect.width:.2f} x {page.rect.height:.2f} points")
    print(f"Spans: {len(items)}")
    for idx, item in enumerate(items, start=1):
        origin = item["origin_bottom_left"] or [0.0, 0.0]
        print(
            f"{idx:03d} | '{item['text']}' | font={item['font']} size={item['size']:.1f} | "
            f"baseline_bl=({origin[0]:.2f},{origin[1]:.2f})"
        )

    if args.output_json:
        output_path = Path(args.output_json)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "pdf": str(pdf_path),
            "page": args.page,
            "page_size_points": [float(page.rect.width), float(page.rect.height)],
            "items": items,
        }
        output_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        print(f"Wrote JSON: {output_path}")

    if args.annotate:
        annot_path = Path(args.annotate)
        annot_path.parent.mkdir(parents=True, exist_ok=True)
        for idx, item in enumerate(items, start=1):
            rect = fitz.Rect(item["bbox_top_left"])
            page.draw_rect(rect, color=(1, 0, 0), width=0.7)
            page.insert_text(
                rect.tl + fitz.Point(0, -2),
                f"{idx:03d}",
                fontsize=7,
                color=(1, 0, 0),
            )
        doc.save(annot_path)
        print(f"Wrote annotated PDF: {annot_path}")


if __name__ == "__main__":
    main()
