# checkin/personal.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from checkin.clock import format_sheet_timestamp, now_local
from checkin.scan import EMPTY_CODE, UNKNOWN_FAILURE
from checkin.sheets.client import SheetsConfig
from checkin.sheets.schema import PersonalSheetTarget, ValueToInsert
from checkin.sheets.writers import write_to_sheet

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = "Sheet ID, Sheet Name, and at least one value to insert are required."
SETTINGS_REQUIRED = "Google Sheets 설정을 먼저 완료해주세요."
SUBMITTER_REQUIRED = "입력자 ID를 먼저 입력해주세요."
NO_COLUMNS = "기록할 열이 하나 이상 지정되어야 합니다. (예: 코드 열)"
SAVED = "'{sheet_name}' 시트에 코드가 저장되었습니다."
DUPLICATE = "중복된 코드입니다: {code}"


def save_to_personal_sheet(cfg: SheetsConfig, target: PersonalSheetTarget) -> Dict[str, Any]:
    """Writes to a user-specified sheet. Returns {success, error?, message?}."""
    if not target.spreadsheet_id or not target.sheet_name or not target.values:
        return {"success": False, "error": REQUIRED_FIELDS}

    try:
        write_to_sheet(cfg, target)
    except Exception as e:
        logger.exception("Failed to save to personal sheet %r", target.sheet_name)
        return {"success": False, "error": str(e) or UNKNOWN_FAILURE}

    return {"success": True, "message": SAVED.format(sheet_name=target.sheet_name)}


@dataclass(frozen=True)
class PersonalSettings:
    spreadsheet_id: str
    sheet_name: str
    start_row: int = 1
    code_column: str = "A"
    submitter_id: str = ""
    submitter_id_column: str = ""
    timestamp_column: str = ""
    duplicate_check: bool = True


class PersonalRecorder:
    """
    Self-service recording into a personal sheet.

    Duplicate suppression here is local to this recorder instance and only
    covers codes it saved successfully. Nothing is shared with the scan store.
    """

    def __init__(self, cfg: SheetsConfig, settings: PersonalSettings):
        self.cfg = cfg
        self.settings = settings
        self.scanned_codes: set[str] = set()

    def build_values(self, code: str, moment: datetime) -> list[ValueToInsert]:
        s = self.settings
        values: list[ValueToInsert] = []
        if s.code_column.strip() and code:
            values.append(ValueToInsert(value=code, column=s.code_column))
        if s.submitter_id.strip() and s.submitter_id_column.strip():
            values.append(ValueToInsert(value=s.submitter_id, column=s.submitter_id_column))
        if s.timestamp_column.strip():
            values.append(ValueToInsert(value=format_sheet_timestamp(moment), column=s.timestamp_column))
        return values

    def record(self, raw_code: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Returns {status: success|duplicate|error, message}."""
        code = (raw_code or "").strip()
        if not code:
            return {"status": "error", "message": EMPTY_CODE}

        if not self.settings.spreadsheet_id.strip() or not self.settings.sheet_name.strip():
            return {"status": "error", "message": SETTINGS_REQUIRED}

        if not self.settings.submitter_id.strip():
            return {"status": "error", "message": SUBMITTER_REQUIRED}

        if self.settings.duplicate_check and code in self.scanned_codes:
            return {"status": "duplicate", "message": DUPLICATE.format(code=code)}

        values = self.build_values(code, now or now_local())
        if not values:
            return {"status": "error", "message": NO_COLUMNS}

        target = PersonalSheetTarget(
            spreadsheet_id=self.settings.spreadsheet_id,
            sheet_name=self.settings.sheet_name,
            start_row=self.settings.start_row or 1,
            values=values,
        )
        result = save_to_personal_sheet(self.cfg, target)
        if not result["success"]:
            return {"status": "error", "message": result["error"]}

        if self.settings.duplicate_check:
            self.scanned_codes.add(code)
        return {"status": "success", "message": result["message"]}

    def clear_duplicates(self) -> None:
        self.scanned_codes.clear()
