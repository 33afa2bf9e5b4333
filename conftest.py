import io
from pathlib import Path

import pytest
import reportlab
from pypdf import PdfWriter
from reportlab.pdfgen import canvas

from certificate_models import GenerationOptions, Mode

LETTER = (612.0, 792.0)


def make_template_pdf(path: Path, placeholder: str | None = None, pages: int = 1) -> Path:
    c = canvas.Canvas(str(path), pagesize=LETTER)
    for _ in range(pages):
        if placeholder:
            c.setFont("Helvetica", 24)
            c.drawString(150, 400, placeholder)
        c.showPage()
    c.save()
    return path


def make_empty_pdf(path: Path) -> Path:
    buffer = io.BytesIO()
    PdfWriter().write(buffer)
    path.write_bytes(buffer.getvalue())
    return path


@pytest.fixture
def font_path() -> Path:
    path = Path(reportlab.__file__).parent / "fonts" / "Vera.ttf"
    assert path.is_file(), "reportlab ships Vera.ttf"
    return path


@pytest.fixture
def template_path(tmp_path) -> Path:
    return make_template_pdf(tmp_path / "template.pdf")


@pytest.fixture
def anchored_template_path(tmp_path) -> Path:
    return make_template_pdf(tmp_path / "anchored.pdf", placeholder="RECIPIENT NAME")


@pytest.fixture
def empty_template_path(tmp_path) -> Path:
    return make_empty_pdf(tmp_path / "empty.pdf")


@pytest.fixture
def output_dir(tmp_path) -> Path:
    return tmp_path / "out"


@pytest.fixture
def make_options(template_path, font_path, output_dir):
    def _make(**overrides) -> GenerationOptions:
        values = {
            "template_path": template_path,
            "font_path": font_path,
            "output_dir": output_dir,
            "default_font_size": 36,
            "concurrency": 2,
            "mode": Mode.PRODUCTION,
        }
        values.update(overrides)
        return GenerationOptions(**values)

    return _make


@pytest.fixture
def three_page_template_path(tmp_path) -> Path:
    return make_template_pdf(tmp_path / "three.pdf", pages=3)
