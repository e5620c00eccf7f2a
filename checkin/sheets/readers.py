# checkin/sheets/readers.py

from __future__ import annotations

from typing import Any

import gspread


def _cell_text(x: Any) -> str:
    return str(x).strip() if x is not None else ""


def next_free_row(ws: gspread.Worksheet, column: str, start_row: int) -> int:
    """
    Next writable row below the entries in `column`, counting from `start_row`.

    NOTE: read-count-then-write is not atomic. Two concurrent scans can compute the
    same row and overwrite each other.
    """
    values = ws.get(f"{column}{start_row}:{column}")
    return (start_row - 1) + len(values or []) + 1


def read_row_fields(ws: gspread.Worksheet, first_column: str, last_column: str, row_number: int) -> list[str] | None:
    """
    Reads one row slice. Returns None when the service returns no values at all,
    otherwise the cells as stripped strings (short rows are not padded).
    """
    values = ws.get(f"{first_column}{row_number}:{last_column}{row_number}")
    if not values or not values[0]:
        return None
    return [_cell_text(x) for x in values[0]]
