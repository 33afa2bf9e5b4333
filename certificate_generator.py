from __future__ import annotations

import asyncio
import logging
import zipfile
from collections.abc import Awaitable, Callable, Iterator, Sequence
from pathlib import Path

from certificate_errors import (
    CertificateError,
    file_not_found,
    generation_failed,
    invalid_config,
    template_error,
)
from certificate_layout import compute_placement, ensure_parent_dir, resolve_output_path
from certificate_models import (
    MAX_FONT_SIZE,
    MIN_FONT_SIZE,
    BatchResult,
    CertificateItem,
    GenerationOptions,
    Mode,
    RenderOutcome,
)
from certificate_overlay import TemplateDocument, load_template, to_unit_rgb

logger = logging.getLogger(__name__)

LoadDocument = Callable[[bytes], TemplateDocument]
RenderFn = Callable[[CertificateItem], Awaitable[Path]]


class AssetStore:
    """Template and font bytes, read once and shared read-only by all renders."""

    def __init__(self, template_bytes: bytes, font_bytes: bytes) -> None:
        self._template_bytes = bytes(template_bytes)
        self._font_bytes = bytes(font_bytes)

    @property
    def template_bytes(self) -> bytes:
        return self._template_bytes

    @property
    def font_bytes(self) -> bytes:
        return self._font_bytes

    @classmethod
    def from_paths(
        cls,
        template_path: Path,
        font_path: Path,
        log: logging.Logger | None = None,
    ) -> AssetStore:
        log = log or logger
        missing = [str(path) for path in (template_path, font_path) if not Path(path).is_file()]
        if missing:
            raise file_not_found(f"Missing required files: {', '.join(missing)}")

        try:
            store = cls(Path(template_path).read_bytes(), Path(font_path).read_bytes())
        except OSError as exc:
            raise file_not_found("Failed to load required assets", cause=exc) from exc

        log.info("[OK] Assets loaded successfully")
        return store


def validate_item(item: CertificateItem, options: GenerationOptions) -> None:
    if not item.name or not item.name.strip():
        raise invalid_config("Certificate name cannot be empty", item=item)

    if item.font_size is not None and not MIN_FONT_SIZE <= item.font_size <= MAX_FONT_SIZE:
        raise invalid_config(
            f"Font size must be between {MIN_FONT_SIZE} and {MAX_FONT_SIZE}", item=item
        )

    if options.mode == Mode.PRODUCTION and (not item.email or not item.email.strip()):
        raise invalid_config("Email is required in production mode", item=item)


class CertificateRenderer:
    def __init__(
        self,
        options: GenerationOptions,
        assets: AssetStore,
        log: logging.Logger | None = None,
        load_document: LoadDocument = load_template,
    ) -> None:
        self.options = options
        self.assets = assets
        self.log = log or logger
        self._load_document = load_document

    async def render(self, item: CertificateItem) -> Path:
        """Render one certificate and write it to its resolved path.

        Nothing is written unless the whole document was built and
        serialized. Classified errors keep their kind; anything else is
        reported as a generation failure for this item.
        """
        try:
            validate_item(item, self.options)
            output_path, pdf_bytes = await self._build(item)
            ensure_parent_dir(output_path)
            await asyncio.to_thread(output_path.write_bytes, pdf_bytes)
        except CertificateError as exc:
            if exc.item is None:
                exc.item = item
            self.log.error("[FAIL] Failed to generate certificate for: %s (%s)", item.name, exc)
            raise
        except Exception as exc:
            self.log.error("[FAIL] Failed to generate certificate for: %s (%s)", item.name, exc)
            raise generation_failed(item, exc) from exc

        self.log.info("[OK] Certificate generated: %s", item.label)
        return output_path

    async def _build(self, item: CertificateItem) -> tuple[Path, bytes]:
        document = await asyncio.to_thread(self._load_document, self.assets.template_bytes)

        pages = document.pages()
        if not pages:
            raise template_error("Template PDF has no pages", item=item)
        first_page = pages[0]

        font_size = item.font_size if item.font_size is not None else self.options.default_font_size
        font_color = item.font_color or self.options.default_font_color

        position = compute_placement(
            item.name,
            font_size,
            first_page.width,
            first_page.height,
            item.position,
        )

        font = await asyncio.to_thread(document.embed_font, self.assets.font_bytes)
        first_page.draw_text(
            item.name,
            x=position.x,
            y=position.y,
            size=font_size,
            font=font,
            color=to_unit_rgb(font_color),
        )

        output_path = resolve_output_path(item, self.options.output_dir, self.options.mode)
        pdf_bytes = await asyncio.to_thread(document.serialize)
        return output_path, pdf_bytes


def iter_groups(items: Sequence[CertificateItem], size: int) -> Iterator[Sequence[CertificateItem]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class BatchDriver:
    """Runs renders in consecutive groups of at most ``concurrency`` items.

    A group is fully drained before the next one starts. Outcomes are kept
    in the order they resolve, and a failing item never affects its
    siblings.
    """

    def __init__(self, render: RenderFn, concurrency: int, log: logging.Logger | None = None) -> None:
        if concurrency < 1:
            raise invalid_config("concurrency must be greater than 0")
        self._render = render
        self.concurrency = concurrency
        self.log = log or logger

    async def run(self, items: Sequence[CertificateItem]) -> BatchResult:
        items = list(items)
        total = len(items)
        slots = asyncio.Semaphore(self.concurrency)
        outcomes: list[RenderOutcome] = []
        processed = 0

        for group in iter_groups(items, self.concurrency):
            tasks = [asyncio.create_task(self._attempt(item, slots)) for item in group]
            for finished in asyncio.as_completed(tasks):
                outcomes.append(await finished)

            processed += len(group)
            self.log.info("Progress: %d/%d certificates processed", processed, total)

        return BatchResult.from_outcomes(outcomes)

    async def _attempt(self, item: CertificateItem, slots: asyncio.Semaphore) -> RenderOutcome:
        async with slots:
            try:
                output_path = await self._render(item)
            except Exception as exc:
                return RenderOutcome(item=item, error=exc)
        return RenderOutcome(item=item, output_path=output_path)


class CertificateGenerator:
    """Entry point used by the CLI and the HTTP service.

    Construction validates the options, loads the shared assets and
    creates the output directory; failures there abort before any item
    is touched.
    """

    def __init__(
        self,
        options: GenerationOptions,
        log: logging.Logger | None = None,
        load_document: LoadDocument = load_template,
    ) -> None:
        options.validate()
        self.options = options
        self.log = log or logger
        self.assets = AssetStore.from_paths(options.template_path, options.font_path, log=self.log)
        Path(options.output_dir).mkdir(parents=True, exist_ok=True)
        self.renderer = CertificateRenderer(options, self.assets, log=self.log, load_document=load_document)
        self.driver = BatchDriver(self.renderer.render, options.concurrency, log=self.log)

    async def generate_async(self, items: Sequence[CertificateItem]) -> BatchResult:
        mode = Mode(self.options.mode).value
        self.log.info("Starting %s mode batch generation of %d certificates", mode, len(items))
        return await self.driver.run(items)

    def generate(self, items: Sequence[CertificateItem]) -> BatchResult:
        return asyncio.run(self.generate_async(items))


def archive_certificates(paths: Sequence[Path], zip_path: Path) -> Path:
    zip_path = Path(zip_path)
    zip_path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(zip_path, "w", zipfile.ZIP_DEFLATED) as zipf:
        for pdf_file in paths:
            pdf_file = Path(pdf_file)
            zipf.write(pdf_file, pdf_file.name)
    return zip_path
