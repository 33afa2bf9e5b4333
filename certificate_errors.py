from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from certificate_models import CertificateItem


class ErrorKind(str, Enum):
    INVALID_CONFIG = "invalid_config"
    FILE_NOT_FOUND = "file_not_found"
    DATA_VALIDATION = "data_validation"
    TEMPLATE = "template"
    GENERATION = "generation"


_PREFIXES = {
    ErrorKind.INVALID_CONFIG: "Invalid configuration",
    ErrorKind.FILE_NOT_FOUND: "File not found",
    ErrorKind.DATA_VALIDATION: "Data validation error",
    ErrorKind.TEMPLATE: "Template error",
    ErrorKind.GENERATION: "Certificate generation failed",
}


class CertificateError(Exception):
    """Every failure the pipeline classifies.

    Callers branch on ``kind`` rather than on subclasses. ``item`` is the
    certificate request the failure belongs to (None for run-wide errors)
    and ``cause`` the underlying exception, also chained as ``__cause__``.
    """

    def __init__(
        self,
        kind: ErrorKind,
        detail: str,
        *,
        item: CertificateItem | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(f"{_PREFIXES[kind]}: {detail}")
        self.kind = kind
        self.detail = detail
        self.item = item
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind.value, "message": str(self)}
        if self.item is not None:
            payload["name"] = self.item.name
            payload["email"] = self.item.email
        if self.cause is not None:
            payload["cause"] = str(self.cause)
        return payload


def invalid_config(detail: str, item: CertificateItem | None = None) -> CertificateError:
    return CertificateError(ErrorKind.INVALID_CONFIG, detail, item=item)


def file_not_found(detail: str, cause: BaseException | None = None) -> CertificateError:
    return CertificateError(ErrorKind.FILE_NOT_FOUND, detail, cause=cause)


def data_validation(detail: str, cause: BaseException | None = None) -> CertificateError:
    return CertificateError(ErrorKind.DATA_VALIDATION, detail, cause=cause)


def template_error(
    detail: str,
    item: CertificateItem | None = None,
    cause: BaseException | None = None,
) -> CertificateError:
    return CertificateError(ErrorKind.TEMPLATE, detail, item=item, cause=cause)


def generation_failed(item: CertificateItem, cause: BaseException) -> CertificateError:
    return CertificateError(
        ErrorKind.GENERATION,
        f"Failed to generate certificate for: {item.name}",
        item=item,
        cause=cause,
    )
