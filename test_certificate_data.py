import json
import logging

import pytest

from certificate_config import load_config
from certificate_data import build_certificate_items, load_person_records
from certificate_errors import CertificateError, ErrorKind
from certificate_models import CertificateItem


def write_json(path, payload):
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_json_records_are_normalized(tmp_path):
    path = write_json(
        tmp_path / "people.json",
        [{"name": "  Ada Lovelace ", "email": " ADA@X.com "}, {"name": "Grace", "email": "grace@x.com"}],
    )
    records = load_person_records(path)
    assert [(r.name, r.email) for r in records] == [("Ada Lovelace", "ada@x.com"), ("Grace", "grace@x.com")]


def test_csv_records_with_bom_and_header_case(tmp_path):
    path = tmp_path / "people.csv"
    path.write_text("\ufeffName,Email,Team\nAda,ada@x.com,eng\nGrace,grace@x.com,navy\n", encoding="utf-8")
    records = load_person_records(path)
    assert [r.email for r in records] == ["ada@x.com", "grace@x.com"]


def test_missing_file(tmp_path):
    with pytest.raises(CertificateError) as excinfo:
        load_person_records(tmp_path / "missing.json")
    assert excinfo.value.kind is ErrorKind.FILE_NOT_FOUND


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"name": "Ada"}, "must contain an array"),
        (["Ada"], "index 0 is not a valid object"),
        ([{"name": " ", "email": "a@x.com"}], "index 0 has invalid or missing name"),
        ([{"name": "Ada"}], "index 0 has invalid or missing email"),
        ([{"name": "Ada", "email": "a@x.com"}, {"name": "B", "email": "not-an-email"}], "index 1"),
        ([{"name": "Ada", "email": "a@x.com"}, {"name": "Ada 2", "email": "A@x.com"}], "Duplicate emails found: a@x.com"),
    ],
)
def test_invalid_records(tmp_path, payload, message):
    path = write_json(tmp_path / "people.json", payload)
    with pytest.raises(CertificateError) as excinfo:
        load_person_records(path)
    assert excinfo.value.kind is ErrorKind.DATA_VALIDATION
    assert message in str(excinfo.value)


def test_malformed_json(tmp_path):
    path = tmp_path / "people.json"
    path.write_text("[{", encoding="utf-8")
    with pytest.raises(CertificateError) as excinfo:
        load_person_records(path)
    assert "Invalid JSON format" in str(excinfo.value)


def test_unsupported_extension(tmp_path):
    path = tmp_path / "people.xlsx"
    path.write_bytes(b"")
    with pytest.raises(CertificateError) as excinfo:
        load_person_records(path)
    assert excinfo.value.kind is ErrorKind.DATA_VALIDATION


def test_test_mode_builds_single_item(tmp_path):
    config = load_config(environ={"MODE": "test", "TEST_NAME": "Demo User"}, base_dir=tmp_path)
    assert build_certificate_items(config) == [CertificateItem(name="Demo User")]


def test_test_mode_requires_name(tmp_path):
    config = load_config(environ={"MODE": "test"}, base_dir=tmp_path)
    with pytest.raises(CertificateError) as excinfo:
        build_certificate_items(config)
    assert excinfo.value.kind is ErrorKind.INVALID_CONFIG


def test_production_mode_loads_records(tmp_path, caplog):
    path = write_json(
        tmp_path / "people.json",
        [{"name": "Ada", "email": "ada@x.com"}, {"name": "Ada", "email": "ada2@x.com"}],
    )
    config = load_config(environ={"RECORDS_PATH": str(path)}, base_dir=tmp_path)
    with caplog.at_level(logging.INFO):
        items = build_certificate_items(config)
    assert items == [CertificateItem(name="Ada", email="ada@x.com"), CertificateItem(name="Ada", email="ada2@x.com")]
    assert "Statistics: 1 unique names, 2 total entries" in caplog.text


def test_empty_record_list_warns(tmp_path, caplog):
    path = write_json(tmp_path / "people.json", [])
    config = load_config(environ={"RECORDS_PATH": str(path)}, base_dir=tmp_path)
    with caplog.at_level(logging.INFO):
        assert build_certificate_items(config) == []
    assert "[WARN] No records found" in caplog.text
