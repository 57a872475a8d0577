"""Engineer roster import from spreadsheets.

The first worksheet must have a header row naming the columns. ``fullName``,
``id`` and ``role`` are required; ``email`` and ``phoneNumber`` are
optional. Any bad row aborts the whole import.
"""

from __future__ import annotations

import os
import zipfile
from collections.abc import Iterable, Mapping
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .core.errors import ValidationFailed
from .core.models import Role, User

_ROLE_VALUES = {
    Role.SUPERVISOR.value: Role.SUPERVISOR,
    Role.EXECUTOR.value: Role.EXECUTOR,
    Role.SUPERVISOR.label: Role.SUPERVISOR,
    Role.EXECUTOR.label: Role.EXECUTOR,
}


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _numeric_text(value: Any, width: int) -> str:
    """Restore leading zeros that a numeric cell dropped."""
    text = _cell(value)
    if isinstance(value, (int, float)) and text.isdigit():
        return text.zfill(width)
    return text


def read_workbook(path: str | os.PathLike[str]) -> list[dict[str, Any]]:
    """Return the rows of the first sheet as dicts keyed by the header."""
    try:
        wb = load_workbook(path, read_only=True, data_only=True)
    except (OSError, zipfile.BadZipFile, InvalidFileException, KeyError) as exc:
        raise ValidationFailed(f"فایل اکسل قابل خواندن نیست: {path}") from exc
    try:
        sheet = wb.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        header = [_cell(h) for h in next(rows, ())]
        records = []
        for values in rows:
            if all(v is None for v in values):
                continue
            records.append(dict(zip(header, values)))
        return records
    finally:
        wb.close()


def rows_to_engineers(rows: Iterable[Mapping[str, Any]]) -> list[User]:
    """Validate spreadsheet rows and turn them into engineer accounts.

    Row numbers in errors count the header as row 1, matching what the
    user sees in the spreadsheet.
    """
    engineers: list[User] = []
    for index, row in enumerate(rows):
        number = index + 2
        full_name = _cell(row.get("fullName"))
        user_id = _numeric_text(row.get("id"), 10)
        role_value = _cell(row.get("role"))
        if not full_name or not user_id or not role_value:
            raise ValidationFailed(
                f"ردیف {number} در فایل اکسل ناقص است. "
                "ستون‌های fullName, id, و role الزامی هستند.",
                row=number,
            )
        role = _ROLE_VALUES.get(role_value)
        if role is None:
            raise ValidationFailed(
                f"مقدار نقش (role) در ردیف {number} نامعتبر است. "
                "فقط مقادیر 'ناظر' یا 'مجری' مجاز هستند.",
                row=number,
            )
        engineers.append(
            User(
                id=user_id,
                full_name=full_name,
                role=role,
                email=_cell(row.get("email")) or None,
                phone_number=_numeric_text(row.get("phoneNumber"), 11) or None,
            )
        )
    return engineers
