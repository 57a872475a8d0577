from pathlib import Path

import pytest
from openpyxl import Workbook

from gas_complaints.core.errors import ValidationFailed
from gas_complaints.core.models import Role
from gas_complaints.importer import read_workbook, rows_to_engineers


def test_rows_to_engineers():
    rows = [
        {"fullName": "Reza", "id": "1234567890", "role": "supervisor", "phoneNumber": "09121234567"},
        {"fullName": "Gas Co", "id": "0987654321", "role": "مجری", "email": "gas@example.com"},
    ]
    engineers = rows_to_engineers(rows)
    assert [e.role for e in engineers] == [Role.SUPERVISOR, Role.EXECUTOR]
    assert engineers[0].phone_number == "09121234567"
    assert engineers[1].email == "gas@example.com"
    assert engineers[1].phone_number is None
    assert all(e.password is None for e in engineers)


def test_invalid_role_rejects_batch():
    rows = [
        {"fullName": "Reza", "id": "1234567890", "role": "supervisor"},
        {"fullName": "Boss", "id": "1111111111", "role": "Manager"},
    ]
    with pytest.raises(ValidationFailed) as excinfo:
        rows_to_engineers(rows)
    assert excinfo.value.row == 3


def test_missing_column_rejects_batch():
    with pytest.raises(ValidationFailed) as excinfo:
        rows_to_engineers([{"fullName": "Reza", "role": "supervisor"}])
    assert excinfo.value.row == 2


def test_read_workbook_restores_leading_zeros(tmp_path: Path):
    wb = Workbook()
    ws = wb.active
    ws.append(["fullName", "id", "role", "email", "phoneNumber"])
    ws.append(["Reza", 12345678, "ناظر", None, 9121234567])
    ws.append([None, None, None, None, None])
    ws.append(["Gas Co", "0987654321", "executor", "gas@example.com", "09120000000"])
    path = tmp_path / "engineers.xlsx"
    wb.save(path)

    rows = read_workbook(path)
    assert len(rows) == 2
    engineers = rows_to_engineers(rows)
    assert engineers[0].id == "0012345678"
    assert engineers[0].phone_number == "09121234567"
    assert engineers[1].id == "0987654321"


def test_unreadable_workbook_is_a_validation_error(tmp_path: Path):
    with pytest.raises(ValidationFailed):
        read_workbook(tmp_path / "missing.xlsx")

    garbage = tmp_path / "roster.xlsx"
    garbage.write_bytes(b"not a zip archive")
    with pytest.raises(ValidationFailed):
        read_workbook(garbage)
