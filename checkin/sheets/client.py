# checkin/sheets/client.py

import logging
import os
from dataclasses import dataclass

import gspread
from dotenv import load_dotenv
from google.oauth2.service_account import Credentials

from .schema import DIRECTORY_SHEET_NAME_DEFAULT

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
DEFAULT_CREDENTIALS_PATH = "private_key.json"

_NOT_FOUND_MARKERS = ("Unable to parse range",)
_PERMISSION_MARKERS = ("permission to access", "does not have permission", "PERMISSION_DENIED")


class SheetsError(RuntimeError):
    """A spreadsheet failure rewritten into user-facing text."""


class SheetNotFoundError(SheetsError):
    pass


class SheetPermissionError(SheetsError):
    pass


@dataclass(frozen=True)
class SheetsConfig:
    spreadsheet_id: str = ""
    sheet_name: str = DIRECTORY_SHEET_NAME_DEFAULT
    start_row: int = 1
    credentials_path: str = DEFAULT_CREDENTIALS_PATH
    settle_seconds: float = 0.5


def _parse_start_row(raw: str) -> int:
    try:
        start_row = int(raw)
    except ValueError:
        raise RuntimeError(f"Invalid env var GOOGLE_SHEET_START_ROW: {raw!r}") from None
    if start_row < 1:
        raise RuntimeError(f"Invalid env var GOOGLE_SHEET_START_ROW: {raw!r} (must be >= 1)")
    return start_row


def load_sheets_config() -> SheetsConfig:
    load_dotenv()

    spreadsheet_id = os.getenv("GOOGLE_SPREADSHEET_ID", "").strip()
    sheet_name = os.getenv("GOOGLE_SHEET_NAME", "").strip() or DIRECTORY_SHEET_NAME_DEFAULT
    start_row = _parse_start_row(os.getenv("GOOGLE_SHEET_START_ROW", "1").strip() or "1")
    cred_path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS", "").strip() or DEFAULT_CREDENTIALS_PATH
    settle = os.getenv("CHECKIN_SETTLE_SECONDS", "0.5").strip() or "0.5"

    try:
        settle_seconds = max(float(settle), 0.0)
    except ValueError:
        raise RuntimeError(f"Invalid env var CHECKIN_SETTLE_SECONDS: {settle!r}") from None

    return SheetsConfig(
        spreadsheet_id=spreadsheet_id,
        sheet_name=sheet_name,
        start_row=start_row,
        credentials_path=cred_path,
        settle_seconds=settle_seconds,
    )


def _client_from_service_account(credentials_path: str) -> gspread.Client:
    """Authorizes with the bundled service-account key, spreadsheet scope only."""
    if not os.path.exists(credentials_path):
        raise RuntimeError(f"Service account credentials not found: {credentials_path}")

    creds = Credentials.from_service_account_file(credentials_path, scopes=SCOPES)
    return gspread.authorize(creds)


def open_worksheet(cfg: SheetsConfig, sheet_name: str = "", spreadsheet_id: str = "") -> gspread.Worksheet:
    """
    Returns the named tab (default: the directory sheet) of the target spreadsheet.
    `spreadsheet_id` overrides the configured one for caller-supplied targets.
    """
    target_id = spreadsheet_id or cfg.spreadsheet_id
    if not target_id:
        raise RuntimeError("Missing env var: GOOGLE_SPREADSHEET_ID")

    gc = _client_from_service_account(cfg.credentials_path)
    sh = gc.open_by_key(target_id)
    return sh.worksheet(sheet_name or cfg.sheet_name)


def translate_sheets_error(exc: Exception, sheet_name: str, generic_message: str) -> SheetsError:
    """Maps a provider failure onto not-found / permission / generic user-facing errors."""
    text = str(exc)

    if isinstance(exc, gspread.exceptions.WorksheetNotFound) or any(m in text for m in _NOT_FOUND_MARKERS):
        return SheetNotFoundError(
            f"'{sheet_name}' 시트를 찾을 수 없습니다. 시트가 존재하는지, 시트 이름이 올바른지 확인해주세요."
        )
    if any(m in text for m in _PERMISSION_MARKERS):
        return SheetPermissionError(
            "Google Sheet에 접근할 권한이 없습니다. 서비스 계정 이메일을 시트의 '편집자'로 공유했는지 확인하세요."
        )
    return SheetsError(f"{generic_message}\nOriginal error: {text}")
