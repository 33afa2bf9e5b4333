from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable

from certificate_errors import invalid_config

MIN_FONT_SIZE = 1
MAX_FONT_SIZE = 200


class Mode(str, Enum):
    TEST = "test"
    PRODUCTION = "production"


@dataclass(frozen=True)
class RGBColor:
    r: int
    g: int
    b: int

    def __post_init__(self) -> None:
        for channel in (self.r, self.g, self.b):
            if isinstance(channel, bool) or not isinstance(channel, int) or not 0 <= channel <= 255:
                raise invalid_config(f"color channels must be integers in 0..255, got {channel!r}")

    def to_unit(self) -> tuple[float, float, float]:
        return (self.r / 255.0, self.g / 255.0, self.b / 255.0)

    def __str__(self) -> str:
        return f"RGB({self.r}, {self.g}, {self.b})"


@dataclass(frozen=True)
class Position:
    """Page-space anchor, origin at the bottom-left corner."""

    x: float
    y: float


DEFAULT_FONT_COLOR = RGBColor(93, 97, 103)


@dataclass(frozen=True)
class GenerationOptions:
    template_path: Path
    font_path: Path
    output_dir: Path
    default_font_size: float = 54
    default_font_color: RGBColor = DEFAULT_FONT_COLOR
    concurrency: int = 3
    mode: Mode = Mode.PRODUCTION
    test_name: str | None = None

    def validate(self) -> None:
        if not self.template_path or not self.font_path or not self.output_dir:
            raise invalid_config("template_path, font_path, and output_dir are required")
        if isinstance(self.concurrency, bool) or not isinstance(self.concurrency, int):
            raise invalid_config("concurrency must be an integer")
        if self.concurrency < 1:
            raise invalid_config("concurrency must be greater than 0")
        if not MIN_FONT_SIZE <= self.default_font_size <= MAX_FONT_SIZE:
            raise invalid_config(
                f"default font size must be between {MIN_FONT_SIZE} and {MAX_FONT_SIZE}"
            )
        if self.mode not in list(Mode):
            raise invalid_config(f"unknown mode: {self.mode!r}")
        if self.mode == Mode.TEST and (not self.test_name or not self.test_name.strip()):
            raise invalid_config('test_name is required when mode is "test"')


@dataclass(frozen=True)
class CertificateItem:
    name: str
    email: str | None = None
    font_size: float | None = None
    font_color: RGBColor | None = None
    position: Position | None = None
    output_path: Path | None = None

    @property
    def label(self) -> str:
        return f"{self.name} ({self.email})" if self.email else self.name


@dataclass(frozen=True)
class FailedItem:
    item: CertificateItem
    error: BaseException


@dataclass(frozen=True)
class RenderOutcome:
    item: CertificateItem
    output_path: Path | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.output_path is not None


@dataclass
class BatchResult:
    successful: list[Path] = field(default_factory=list)
    failed: list[FailedItem] = field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[RenderOutcome]) -> BatchResult:
        result = cls()
        for outcome in outcomes:
            if outcome.ok:
                result.successful.append(outcome.output_path)
            else:
                error = outcome.error or RuntimeError("Unknown error")
                result.failed.append(FailedItem(item=outcome.item, error=error))
        return result

    @property
    def total(self) -> int:
        return len(self.successful) + len(self.failed)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1
