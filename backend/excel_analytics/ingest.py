# backend/excel_analytics/ingest.py
import io
import math
import datetime as dt
from typing import Any, Dict, List

import openpyxl
from fastapi import HTTPException, UploadFile

Row = Dict[str, Any]

EMPTY_HEADER = "__EMPTY"


class DecodeError(ValueError):
    """The upload is not a readable spreadsheet workbook."""


def ensure_small_file(upload: UploadFile, max_bytes: int) -> int:
    upload.file.seek(0, io.SEEK_END)
    size = upload.file.tell()
    upload.file.seek(0)
    if size > max_bytes:
        raise HTTPException(status_code=413, detail=f"File too large: {size} bytes")
    return size


def normalize_cell(value: Any) -> Any:
    """Map an openpyxl cell value onto number / text / boolean / None."""
    if isinstance(value, float) and not math.isfinite(value):
        # overflowed numbers have no JSON form
        return str(value)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    return str(value)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def header_names(cells: List[Any], width: int) -> List[str]:
    """Column names for a header row padded to ``width`` columns.

    Blank headers become ``__EMPTY``, ``__EMPTY_1``, ...; repeated names get
    a numeric suffix so every column keeps its own key.
    """
    names: List[str] = []
    used = set()
    suffixes: Dict[str, int] = {}
    for i in range(width):
        raw = cells[i] if i < len(cells) else None
        base = EMPTY_HEADER if _is_empty(raw) else str(normalize_cell(raw)).strip()
        name = base
        while name in used:
            suffixes[base] = suffixes.get(base, 0) + 1
            name = f"{base}_{suffixes[base]}"
        used.add(name)
        names.append(name)
    return names


def rows_from_values(values) -> List[Row]:
    """Turn raw sheet rows (first one is the header) into Row dicts."""
    grid = [list(r) for r in values if not all(_is_empty(v) for v in r)]
    if not grid:
        return []
    # drop leading and trailing columns that are empty everywhere, header included
    width = max(len(r) for r in grid)
    while width and all(len(r) < width or _is_empty(r[width - 1]) for r in grid):
        width -= 1
    start = 0
    while start < width and all(len(r) <= start or _is_empty(r[start]) for r in grid):
        start += 1
    grid = [r[start:width] for r in grid]
    width -= start
    names = header_names(grid[0], width)
    rows: List[Row] = []
    for cells in grid[1:]:
        rows.append({
            name: normalize_cell(cells[i]) if i < len(cells) else None
            for i, name in enumerate(names)
        })
    return rows


def decode(data: bytes) -> List[Row]:
    """Decode an .xlsx workbook into rows of its first worksheet.

    Raises DecodeError when the bytes are not a workbook or it has no sheets.
    A sheet with only a header row decodes to an empty list.
    """
    if not data:
        raise DecodeError("Empty file")
    try:
        wb = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except Exception as e:
        raise DecodeError(f"Not a readable spreadsheet: {e}") from e
    try:
        if not wb.worksheets:
            raise DecodeError("Workbook has no sheets")
        values = list(wb.worksheets[0].iter_rows(values_only=True))
    except DecodeError:
        raise
    except Exception as e:
        raise DecodeError(f"Failed to read first sheet: {e}") from e
    finally:
        wb.close()
    return rows_from_values(values)
