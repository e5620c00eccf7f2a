# checkin/sheets/writers.py

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Optional

import gspread
import requests
from google.auth.exceptions import GoogleAuthError

from checkin.clock import format_sheet_timestamp, now_local
from checkin.telegram import NotificationOutcome

from .client import SheetsConfig, open_worksheet, translate_sheets_error
from .readers import next_free_row, read_row_fields
from .schema import (
    CODE_COLUMN,
    MAX_ERROR_CELL_LENGTH,
    MESSAGE_COLUMN,
    NAME_COLUMN,
    RESULT_STATUS_COLUMN,
    RESULT_TEXT_COLUMN,
    STATUS_BLOCKED,
    STATUS_CHAT_NOT_FOUND,
    STATUS_FAILED,
    STATUS_NO_MESSAGE,
    STATUS_NOT_APPROVED,
    STATUS_SENT,
    TIMESTAMP_COLUMN,
    UNKNOWN_ERROR_TEXT,
    DirectoryRow,
    PersonalSheetTarget,
)

logger = logging.getLogger(__name__)

# Provider-side failures that get rewritten into user-facing text.
_PROVIDER_ERRORS = (gspread.exceptions.GSpreadException, GoogleAuthError, requests.RequestException)

DIRECTORY_FAILURE = "Google Sheet 처리 실패. 권한 또는 설정을 확인하세요."
PERSONAL_FAILURE = "Google Sheet 쓰기 실패. 권한, 시트 ID, 시트 이름을 확인하세요."


def append_code_and_read_row(cfg: SheetsConfig, code: str, now: Optional[datetime] = None) -> Optional[DirectoryRow]:
    """Writes code + timestamp into the next free directory row and reads C:E back.

    Uses a range update on A:B of that row rather than an append, so the
    formula columns of the row are left alone. After a short settle delay the
    name / chat id / message lookups are read from the same row.

    An empty read-back is not an error: the returned row simply has empty fields.
    """
    timestamp = format_sheet_timestamp(now or now_local())

    try:
        ws = open_worksheet(cfg)
        row_number = next_free_row(ws, CODE_COLUMN, cfg.start_row)

        ws.update(
            values=[[code, timestamp]],
            range_name=f"{CODE_COLUMN}{row_number}:{TIMESTAMP_COLUMN}{row_number}",
            value_input_option="USER_ENTERED",
        )

        if cfg.settle_seconds > 0:
            time.sleep(cfg.settle_seconds)

        fields = read_row_fields(ws, NAME_COLUMN, MESSAGE_COLUMN, row_number)
    except _PROVIDER_ERRORS as e:
        logger.error("Directory sheet write/read failed for code=%s: %s", code, e)
        raise translate_sheets_error(e, cfg.sheet_name, DIRECTORY_FAILURE) from e

    if fields is None:
        logger.warning("Could not read back values from row %s of %r, proceeding", row_number, cfg.sheet_name)
        return DirectoryRow(row_number=row_number, sheet_name=cfg.sheet_name)

    name, chat_id, message = (fields + ["", "", ""])[:3]
    return DirectoryRow(
        row_number=row_number,
        sheet_name=cfg.sheet_name,
        name=name,
        chat_id=chat_id,
        message=message,
    )


def result_cells(outcome: Optional[NotificationOutcome]) -> tuple[str, str]:
    """(result text, status text) for the F/G columns. None means nothing was sent."""
    if outcome is None:
        return STATUS_NO_MESSAGE
    if outcome.success:
        return STATUS_SENT
    if outcome.is_blocked:
        return STATUS_BLOCKED
    if outcome.is_not_approved:
        return STATUS_NOT_APPROVED
    if outcome.is_chat_not_found:
        return STATUS_CHAT_NOT_FOUND

    safe_error = (outcome.error or UNKNOWN_ERROR_TEXT)[:MAX_ERROR_CELL_LENGTH]
    return f"{STATUS_FAILED}: {safe_error}", STATUS_FAILED


def update_result_in_sheet(cfg: SheetsConfig, row_number: int, outcome: Optional[NotificationOutcome]) -> None:
    """
    Writes the delivery status into F/G of `row_number`.
    Best effort: failures are logged and never raised.
    """
    if row_number <= 0:
        logger.error("Invalid row number for delivery status update: %s", row_number)
        return

    try:
        result_text, status_text = result_cells(outcome)
        ws = open_worksheet(cfg)
        ws.update(
            values=[[result_text, status_text]],
            range_name=f"{RESULT_TEXT_COLUMN}{row_number}:{RESULT_STATUS_COLUMN}{row_number}",
            value_input_option="USER_ENTERED",
        )
    except Exception:
        logger.exception("Error updating delivery status in row %s of %r", row_number, cfg.sheet_name)


def write_to_sheet(cfg: SheetsConfig, target: PersonalSheetTarget) -> None:
    """Writes each {value, column} pair into the next free row of a caller-supplied sheet.

    The next free row is found on the first pair's column. Pairs with an empty
    value or column are skipped. There is no identity read-back on this path.
    """
    if not target.values:
        return

    primary_column = (target.values[0].column or "A").strip().upper()
    data = [
        (item.column.strip().upper(), item.value)
        for item in target.values
        if item.column and item.column.strip() and item.value
    ]

    try:
        ws = open_worksheet(cfg, sheet_name=target.sheet_name, spreadsheet_id=target.spreadsheet_id)
        next_row = next_free_row(ws, primary_column, target.start_row)

        if not data:
            return

        ws.batch_update(
            [{"range": f"{col}{next_row}", "values": [[value]]} for col, value in data],
            value_input_option="USER_ENTERED",
        )
    except _PROVIDER_ERRORS as e:
        logger.error("Personal sheet write failed for %r: %s", target.sheet_name, e)
        raise translate_sheets_error(e, target.sheet_name, PERSONAL_FAILURE) from e
