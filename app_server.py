import dataclasses
import tempfile
import uuid
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field

from certificate_config import load_config, parse_color
from certificate_data import load_person_records
from certificate_errors import CertificateError, ErrorKind
from certificate_generator import CertificateGenerator, archive_certificates
from certificate_models import BatchResult, CertificateItem, FailedItem, Position

app = FastAPI(title="Certificate Batch API")

# ── ERROR MAPPING ─────────────────────────────────────────────────────────────
_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_CONFIG: 400,
    ErrorKind.FILE_NOT_FOUND: 404,
    ErrorKind.DATA_VALIDATION: 422,
    ErrorKind.TEMPLATE: 500,
    ErrorKind.GENERATION: 500,
}


@app.exception_handler(CertificateError)
async def certificate_error_handler(request: Request, exc: CertificateError) -> JSONResponse:
    return JSONResponse(
        status_code=_STATUS_BY_KIND.get(exc.kind, 500),
        content={"message": str(exc), "kind": exc.kind.value},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "message": "Request validation failed.",
            "detail": exc.errors(),
        },
    )


# ── MODELS ────────────────────────────────────────────────────────────────────
class PositionPayload(BaseModel):
    x: float
    y: float


class ItemPayload(BaseModel):
    name: str
    email: str | None = None
    font_size: float | None = None
    font_color: str | None = None
    position: PositionPayload | None = None

    def to_item(self) -> CertificateItem:
        return CertificateItem(
            name=self.name,
            email=self.email,
            font_size=self.font_size,
            font_color=parse_color(self.font_color) if self.font_color else None,
            position=Position(x=self.position.x, y=self.position.y) if self.position else None,
        )


class GenerateRequest(BaseModel):
    items: list[ItemPayload] = Field(default_factory=list)


def summarize(result: BatchResult) -> dict[str, Any]:
    return {
        "message": f"Generated {len(result.successful)} of {result.total} certificates.",
        "successful": [str(path) for path in result.successful],
        "failed": [
            {
                "name": failure.item.name,
                "email": failure.item.email,
                "kind": failure.error.kind.value if isinstance(failure.error, CertificateError) else None,
                "error": str(failure.error),
            }
            for failure in result.failed
        ],
    }


# ── ROUTES ────────────────────────────────────────────────────────────────────
@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/generate")
def generate(request: GenerateRequest) -> dict[str, Any]:
    options = load_config().generation_options()
    generator = CertificateGenerator(options)

    items: list[CertificateItem] = []
    rejected: list[FailedItem] = []
    for payload in request.items:
        try:
            items.append(payload.to_item())
        except CertificateError as exc:
            item = CertificateItem(name=payload.name, email=payload.email)
            if exc.item is None:
                exc.item = item
            rejected.append(FailedItem(item=item, error=exc))

    result = generator.generate(items)
    result.failed.extend(rejected)
    return summarize(result)


def write_upload_to_temp(upload: UploadFile, suffix: str, temp_dir: Path) -> Path:
    temp_dir.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix, dir=temp_dir) as handle:
        handle.write(upload.file.read())
    return Path(handle.name)


@app.post("/api/generate-upload")
def generate_upload(records: UploadFile = File(...)) -> FileResponse:
    config = load_config()
    suffix = Path(records.filename or "records.json").suffix.lower()
    if suffix not in {".json", ".csv"}:
        raise HTTPException(status_code=400, detail="Records must be a .json or .csv file.")

    batch_dir = config.output_dir / f"batch_{uuid.uuid4().hex}"
    records_path = write_upload_to_temp(records, suffix=suffix, temp_dir=config.output_dir)
    try:
        people = load_person_records(records_path)
    finally:
        records_path.unlink(missing_ok=True)

    options = config.generation_options()
    options = dataclasses.replace(options, output_dir=batch_dir)
    generator = CertificateGenerator(options)
    result = generator.generate([CertificateItem(name=p.name, email=p.email) for p in people])

    if not result.successful:
        raise HTTPException(status_code=400, detail=summarize(result))

    zip_path = archive_certificates(result.successful, batch_dir.parent / f"{batch_dir.name}.zip")
    return FileResponse(
        zip_path,
        media_type="application/zip",
        filename="certificates.zip",
    )
