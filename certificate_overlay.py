import hashlib
import io
import threading
from dataclasses import dataclass, field

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from reportlab.lib.colors import Color
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from certificate_errors import template_error
from certificate_models import RGBColor

_FONT_LOCK = threading.Lock()


def to_unit_rgb(color: RGBColor) -> tuple[float, float, float]:
    r, g, b = color.to_unit()
    return (
        max(0.0, min(1.0, r)),
        max(0.0, min(1.0, g)),
        max(0.0, min(1.0, b)),
    )


def register_font_bytes(font_bytes: bytes) -> str:
    """Register a TrueType font from memory and return its reportlab name.

    reportlab keeps registered fonts in a process-wide table, so the name
    is derived from the font content and registration happens once.
    """
    font_name = f"CertFont-{hashlib.sha1(font_bytes).hexdigest()[:12]}"
    with _FONT_LOCK:
        if font_name not in pdfmetrics.getRegisteredFontNames():
            pdfmetrics.registerFont(TTFont(font_name, io.BytesIO(font_bytes)))
    return font_name


@dataclass(frozen=True)
class OverlayFont:
    name: str


@dataclass(frozen=True)
class TextRun:
    text: str
    x: float
    y: float
    size: float
    font: OverlayFont
    color: tuple[float, float, float]


@dataclass
class TemplatePage:
    width: float
    height: float
    runs: list[TextRun] = field(default_factory=list)

    def draw_text(
        self,
        text: str,
        x: float,
        y: float,
        size: float,
        font: OverlayFont,
        color: tuple[float, float, float],
    ) -> None:
        self.runs.append(TextRun(text=text, x=x, y=y, size=size, font=font, color=color))


def draw_overlay(page: TemplatePage) -> bytes:
    packet = io.BytesIO()
    c = canvas.Canvas(packet, pagesize=(page.width, page.height))
    for run in page.runs:
        c.setFont(run.font.name, run.size)
        c.setFillColor(Color(*run.color))
        c.drawString(run.x, run.y, run.text)
    c.showPage()
    c.save()
    return packet.getvalue()


class TemplateDocument:
    """One independent working copy of the template.

    Text drawn on its pages is collected as runs and merged onto the
    template pages as a reportlab overlay when the document is serialized.
    """

    def __init__(self, reader: PdfReader) -> None:
        self._reader = reader
        self._pages = [
            TemplatePage(width=float(page.mediabox.width), height=float(page.mediabox.height))
            for page in reader.pages
        ]

    def pages(self) -> list[TemplatePage]:
        return self._pages

    def embed_font(self, font_bytes: bytes) -> OverlayFont:
        return OverlayFont(name=register_font_bytes(font_bytes))

    def serialize(self) -> bytes:
        writer = PdfWriter()
        for source, page in zip(self._reader.pages, self._pages):
            if page.runs:
                overlay_page = PdfReader(io.BytesIO(draw_overlay(page))).pages[0]
                source.merge_page(overlay_page)
            writer.add_page(source)

        out = io.BytesIO()
        writer.write(out)
        return out.getvalue()


def load_template(template_bytes: bytes) -> TemplateDocument:
    try:
        return TemplateDocument(PdfReader(io.BytesIO(template_bytes)))
    except PyPdfError as exc:
        raise template_error(f"Template PDF could not be parsed: {exc}", cause=exc) from exc
