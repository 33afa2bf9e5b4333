import argparse
import json
from dataclasses import asdict, dataclass
from pathlib import Path

import fitz

from certificate_errors import file_not_found, template_error
from certificate_models import Position


@dataclass(frozen=True)
class TextAnchor:
    text: str
    font: str | None
    size: float
    bbox_bottom_left: tuple[float, float, float, float]
    origin_bottom_left: tuple[float, float] | None


@dataclass(frozen=True)
class TemplateScan:
    template: str
    page: int
    page_width: float
    page_height: float
    anchors: list[TextAnchor]

    def to_dict(self) -> dict:
        return asdict(self)


def normalize_text(value: str) -> str:
    return " ".join(value.strip().lower().split())


def to_bottom_left_bbox(bbox, page_h: float) -> tuple[float, float, float, float]:
    x0, y0, x1, y1 = bbox
    return (x0, page_h - y1, x1, page_h - y0)


def iter_spans(page: fitz.Page):
    data = page.get_text("dict")
    for block in data.get("blocks", []):
        if block.get("type") != 0:
            continue
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                yield span


def extract_text_anchors(
    template_path: Path,
    page_index: int = 0,
    contains: str | None = None,
    min_len: int = 1,
    max_items: int = 0,
) -> TemplateScan:
    """Collect text spans from one template page in bottom-left page space."""
    template_path = Path(template_path)
    if not template_path.is_file():
        raise file_not_found(str(template_path))

    with fitz.open(template_path) as doc:
        if page_index < 0 or page_index >= len(doc):
            raise template_error(f"Page {page_index} out of range. PDF has {len(doc)} page(s).")

        page = doc[page_index]
        page_w = float(page.rect.width)
        page_h = float(page.rect.height)
        needle = contains.lower() if contains else None

        anchors: list[TextAnchor] = []
        for span in iter_spans(page):
            text = (span.get("text") or "").strip()
            if len(text) < min_len:
                continue
            if needle and needle not in text.lower():
                continue

            origin = span.get("origin")
            anchors.append(
                TextAnchor(
                    text=text,
                    font=span.get("font"),
                    size=float(span.get("size", 0.0)),
                    bbox_bottom_left=to_bottom_left_bbox(span.get("bbox", (0, 0, 0, 0)), page_h),
                    origin_bottom_left=(origin[0], page_h - origin[1]) if origin else None,
                )
            )
            if max_items and len(anchors) >= max_items:
                break

    return TemplateScan(
        template=str(template_path),
        page=page_index,
        page_width=page_w,
        page_height=page_h,
        anchors=anchors,
    )


def find_anchor_position(template_path: Path, text: str, page_index: int = 0) -> Position:
    """Baseline origin of the first span reading ``text``, usable as an explicit position."""
    wanted = normalize_text(text)
    scan = extract_text_anchors(template_path, page_index=page_index)
    for anchor in scan.anchors:
        if normalize_text(anchor.text) != wanted:
            continue
        if anchor.origin_bottom_left:
            x, y = anchor.origin_bottom_left
        else:
            x, y = anchor.bbox_bottom_left[0], anchor.bbox_bottom_left[1]
        return Position(x=x, y=y)
    raise template_error(f"Text {text!r} not found on page {page_index} of {template_path}")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="List text spans of a certificate template to pick explicit name positions."
    )
    parser.add_argument("--template", required=True, help="Path to template PDF.")
    parser.add_argument("--page", type=int, default=0, help="Zero-based page index.")
    parser.add_argument(
        "--contains",
        help="Filter spans containing this text (case-insensitive).",
    )
    parser.add_argument(
        "--min-len",
        type=int,
        default=1,
        help="Minimum text length to include.",
    )
    parser.add_argument(
        "--max-items",
        type=int,
        default=0,
        help="Limit number of items (0 = no limit).",
    )
    parser.add_argument(
        "--output-json",
        help="Optional JSON output path for extracted spans.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    scan = extract_text_anchors(
        Path(args.template),
        page_index=args.page,
        contains=args.contains,
        min_len=args.min_len,
        max_items=args.max_items,
    )

    print(f"Template: {scan.template}")
    print(f"Page: {scan.page}  Size: {scan.page_width:.2f} x {scan.page_height:.2f} points")
    print(f"Matches: {len(scan.anchors)}")
    for idx, anchor in enumerate(scan.anchors, start=1):
        bbox = anchor.bbox_bottom_left
        print(
            f"{idx:03d} | '{anchor.text}' | font={anchor.font} size={anchor.size:.1f} | "
            f"bbox_bl=({bbox[0]:.2f},{bbox[1]:.2f},{bbox[2]:.2f},{bbox[3]:.2f})"
        )

    if args.output_json:
        output_path = Path(args.output_json)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(scan.to_dict(), indent=2), encoding="utf-8")
        print(f"Wrote JSON: {output_path}")


if __name__ == "__main__":
    main()
