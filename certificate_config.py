import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from certificate_errors import CertificateError, invalid_config
from certificate_models import GenerationOptions, Mode, RGBColor

DEFAULT_FONT_SIZE = 54
DEFAULT_FONT_COLOR = "93,97,103"
DEFAULT_CONCURRENCY = 3

_NAMED_COLORS = {
    "black": (0, 0, 0),
    "white": (255, 255, 255),
    "red": (255, 0, 0),
    "green": (0, 128, 0),
    "blue": (0, 0, 255),
    "yellow": (255, 255, 0),
    "gray": (128, 128, 128),
    "grey": (128, 128, 128),
}
_RGB_FUNC = re.compile(r"rgb\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*\)")
_RGB_TRIPLE = re.compile(r"(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})")


def _rgb(r: int, g: int, b: int, source: str) -> RGBColor:
    try:
        return RGBColor(r, g, b)
    except CertificateError as exc:
        raise invalid_config(f"color out of range: {source!r}") from exc


def parse_color(value: str) -> RGBColor:
    """Parse ``r,g,b``, ``#rrggbb``, ``#rgb``, ``rgb(r,g,b)`` or a basic CSS name."""
    if not isinstance(value, str) or not value.strip():
        raise invalid_config(f"invalid color: {value!r}")
    s = value.strip().lower()

    if s in _NAMED_COLORS:
        return RGBColor(*_NAMED_COLORS[s])

    if s.startswith("#"):
        hexv = s[1:]
        if len(hexv) == 3:
            hexv = "".join(ch * 2 for ch in hexv)
        if len(hexv) == 6 and all(ch in "0123456789abcdef" for ch in hexv):
            return RGBColor(int(hexv[0:2], 16), int(hexv[2:4], 16), int(hexv[4:6], 16))
        raise invalid_config(f"invalid hex color: {value!r}")

    m = _RGB_FUNC.fullmatch(s) or _RGB_TRIPLE.fullmatch(s)
    if m:
        return _rgb(int(m.group(1)), int(m.group(2)), int(m.group(3)), value)

    raise invalid_config(f"invalid color: {value!r}")


def parse_mode(value: str) -> Mode:
    try:
        return Mode(value.strip().lower())
    except ValueError as exc:
        raise invalid_config(f"mode must be 'test' or 'production', got {value!r}") from exc


def _env_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise invalid_config(f"{key} must be an integer, got {raw!r}") from exc


def _env_float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise invalid_config(f"{key} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class AppConfig:
    mode: Mode
    font_size: float
    font_color: RGBColor
    concurrency: int
    test_name: str | None
    template_path: Path
    font_path: Path
    records_path: Path
    output_dir: Path

    def generation_options(self) -> GenerationOptions:
        return GenerationOptions(
            template_path=self.template_path,
            font_path=self.font_path,
            output_dir=self.output_dir,
            default_font_size=self.font_size,
            default_font_color=self.font_color,
            concurrency=self.concurrency,
            mode=self.mode,
            test_name=self.test_name,
        )


def _resolve_mode(environ: Mapping[str, str]) -> Mode:
    if environ.get("MODE"):
        return parse_mode(environ["MODE"])
    node_env = (environ.get("NODE_ENV") or "").strip().lower()
    if node_env in {m.value for m in Mode}:
        return Mode(node_env)
    return Mode.PRODUCTION


def load_config(environ: Mapping[str, str] | None = None, base_dir: Path | None = None) -> AppConfig:
    """Build the application config from environment variables.

    Call ``dotenv.load_dotenv()`` first so values from ``.env`` are seen.
    """
    environ = os.environ if environ is None else environ
    base = Path(base_dir) if base_dir else Path.cwd()

    records = environ.get("RECORDS_PATH") or environ.get("EMAILS_JSON_PATH")
    test_name = environ.get("TEST_NAME") or None

    return AppConfig(
        mode=_resolve_mode(environ),
        font_size=_env_float(environ, "FONT_SIZE", DEFAULT_FONT_SIZE),
        font_color=parse_color(environ.get("FONT_COLOR") or DEFAULT_FONT_COLOR),
        concurrency=_env_int(environ, "CONCURRENCY", DEFAULT_CONCURRENCY),
        test_name=test_name,
        template_path=Path(environ.get("TEMPLATE_PATH") or base / "assets" / "certificate-template.pdf"),
        font_path=Path(environ.get("FONT_PATH") or base / "assets" / "font.ttf"),
        records_path=Path(records) if records else base / "emails.json",
        output_dir=Path(environ.get("OUTPUT_DIR") or base / "output" / "certificates"),
    )
