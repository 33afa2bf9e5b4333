import re
from datetime import date, datetime, timezone
from pathlib import Path

from certificate_models import CertificateItem, Mode, Position

# Fixed glyph-width heuristic, not a font metric.
GLYPH_WIDTH_RATIO = 0.6

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9]")
_UNDERSCORE_RUNS = re.compile(r"_+")


def estimate_text_width(text: str, font_size: float) -> float:
    return len(text) * font_size * GLYPH_WIDTH_RATIO


def compute_placement(
    text: str,
    font_size: float,
    page_width: float,
    page_height: float,
    explicit_position: Position | None = None,
) -> Position:
    """Return the drawing anchor for ``text`` on a page.

    An explicit position always wins. Otherwise the text is roughly
    centred horizontally (clamped so x never goes negative) and placed at
    the vertical middle, lowered by half the font size.
    """
    if explicit_position is not None:
        return explicit_position

    text_width = estimate_text_width(text, font_size)
    return Position(
        x=max(0.0, (page_width - text_width) / 2),
        y=page_height / 2 - font_size / 2,
    )


def sanitize_filename(value: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", value).lower()
    return _UNDERSCORE_RUNS.sub("_", cleaned).strip("_")


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def resolve_output_path(
    item: CertificateItem,
    output_dir: Path,
    mode: Mode,
    today: date | None = None,
) -> Path:
    # Same name (and email in production) on the same UTC day resolves to
    # the same file; the later write replaces the earlier one.
    if item.output_path:
        return Path(item.output_path)

    filename = sanitize_filename(item.name)
    if item.email and mode == Mode.PRODUCTION:
        filename = f"{filename}_{sanitize_filename(item.email)}"

    stamp = (today or utc_today()).isoformat()
    return Path(output_dir) / f"{filename}_{stamp}.pdf"


def ensure_parent_dir(path: Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
