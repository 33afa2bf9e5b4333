import csv
import json
import logging
import re
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from certificate_config import AppConfig
from certificate_errors import data_validation, file_not_found, invalid_config
from certificate_models import CertificateItem, Mode

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class PersonRecord:
    name: str
    email: str


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def _read_json_rows(path: Path) -> list[Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise data_validation(f"Invalid JSON format: {exc}", cause=exc) from exc
    if not isinstance(data, list):
        raise data_validation("JSON file must contain an array")
    return data


def _read_csv_rows(path: Path) -> list[dict]:
    with path.open("r", newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        rows = []
        for row in reader:
            rows.append({(key or "").strip().lower(): value for key, value in row.items()})
    return rows


def validate_person_records(rows: list[Any]) -> list[PersonRecord]:
    records: list[PersonRecord] = []
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            raise data_validation(f"Item at index {index} is not a valid object")

        name = row.get("name")
        if not isinstance(name, str) or not name.strip():
            raise data_validation(f"Item at index {index} has invalid or missing name")

        email = row.get("email")
        if not isinstance(email, str) or not is_valid_email(email.strip()):
            raise data_validation(f"Item at index {index} has invalid or missing email: {email}")

        records.append(PersonRecord(name=name.strip(), email=email.strip().lower()))

    duplicates = [email for email, count in Counter(r.email for r in records).items() if count > 1]
    if duplicates:
        raise data_validation(f"Duplicate emails found: {', '.join(duplicates)}")

    return records


def load_person_records(path: Path) -> list[PersonRecord]:
    """Load recipients from a JSON array or a CSV file with name/email columns."""
    path = Path(path)
    if not path.is_file():
        raise file_not_found(str(path))

    suffix = path.suffix.lower()
    if suffix == ".json":
        rows = _read_json_rows(path)
    elif suffix == ".csv":
        rows = _read_csv_rows(path)
    else:
        raise data_validation(f"Unsupported records file type: {path.suffix or '(none)'}")

    return validate_person_records(rows)


def build_certificate_items(config: AppConfig, log: logging.Logger | None = None) -> list[CertificateItem]:
    log = log or logger

    if config.mode == Mode.TEST:
        if not config.test_name or not config.test_name.strip():
            raise invalid_config("TEST_NAME environment variable is required in test mode")
        log.info('Test mode: generating certificate for "%s"', config.test_name)
        return [CertificateItem(name=config.test_name)]

    log.info("Production mode: loading data from %s", config.records_path)
    records = load_person_records(config.records_path)
    if not records:
        log.warning("[WARN] No records found in %s", config.records_path)
    else:
        log.info("[OK] Loaded %d records from %s", len(records), config.records_path.name)
        log.info(
            "Statistics: %d unique names, %d total entries",
            len({r.name for r in records}),
            len(records),
        )

    return [CertificateItem(name=record.name, email=record.email) for record in records]
