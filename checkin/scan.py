# checkin/scan.py

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from checkin.sheets.client import SheetsConfig, load_sheets_config
from checkin.sheets.writers import append_code_and_read_row, update_result_in_sheet
from checkin.store import FirestoreScanStore, load_store_config
from checkin.telegram import NotificationOutcome, send_telegram_message

logger = logging.getLogger(__name__)

VISITOR_PLACEHOLDER = "방문자"
UNREGISTERED_NAME = "미등록 사용자"
DUPLICATE_SOURCE = "Firestore"

UNREGISTERED_CODE = "유효하지 않은 코드입니다. 등록된 사용자가 아닙니다."
EMPTY_CODE = "코드를 입력하세요."
IME_ARTEFACT_CODE = "유효하지 않은 코드입니다. 키보드의 한/영 키를 확인해주세요."
HANGUL_CODE = "영문으로 입력해주세요. 키보드의 한/영 키를 확인해주세요."
UNKNOWN_FAILURE = "An unknown error occurred."

SUMMARY_RECORDED = "출석이 기록되었습니다."
SUMMARY_SENT = "출석이 기록되었고, Telegram 메시지가 발송되었습니다."
SUMMARY_SEND_FAILED = "출석 기록 완료. Telegram 발송 실패: {error}"

# Keyboard-wedge scanners typing through a Korean IME produce these.
_IME_ARTEFACTS = {":", ": -"}
_HANGUL_RE = re.compile(r"[ㄱ-ㅎㅏ-ㅣ가-힣]")

Notifier = Callable[[str, str], NotificationOutcome]


@dataclass(frozen=True)
class ScanSuccess:
    name: str
    notification_summary: str
    sheet_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "name": self.name,
            "notificationResult": self.notification_summary,
            "sheetName": self.sheet_name,
        }


@dataclass(frozen=True)
class ScanDuplicate:
    name: str
    sheet_name: str = DUPLICATE_SOURCE

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "isDuplicate": True, "name": self.name, "sheetName": self.sheet_name}


@dataclass(frozen=True)
class ScanRejected:
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.reason}


ScanOutcome = Union[ScanSuccess, ScanDuplicate, ScanRejected]


def check_code_format(raw: str) -> Optional[str]:
    """Client-side input check. Returns the rejection reason, or None if the code may be submitted."""
    code = (raw or "").strip()
    if not code:
        return EMPTY_CODE
    if code in _IME_ARTEFACTS:
        return IME_ARTEFACT_CODE
    if _HANGUL_RE.search(code):
        return HANGUL_CODE
    return None


def notification_summary(outcome: Optional[NotificationOutcome]) -> str:
    if outcome is None:
        return SUMMARY_RECORDED
    if outcome.success:
        return SUMMARY_SENT
    return SUMMARY_SEND_FAILED.format(error=outcome.error)


class ScanProcessor:
    """
    Runs one scan through: duplicate check -> directory append/read -> record
    event -> notify -> status patch. Each step is awaited in order, once, with
    no retries.
    """

    def __init__(self, store, sheets_cfg: SheetsConfig, notifier: Notifier = send_telegram_message):
        self.store = store
        self.sheets_cfg = sheets_cfg
        self.notifier = notifier

    @classmethod
    def from_env(cls) -> "ScanProcessor":
        return cls(FirestoreScanStore.from_config(load_store_config()), load_sheets_config())

    def _notify(self, chat_id: str, message: str) -> NotificationOutcome:
        try:
            return self.notifier(chat_id, message)
        except Exception as e:
            logger.exception("Notifier raised for chat_id=%s", chat_id)
            return NotificationOutcome(success=False, error=f"Execution error: {e}")

    def process_scan(self, code: str) -> ScanOutcome:
        rejection = check_code_format(code)
        if rejection:
            return ScanRejected(rejection)
        code = code.strip()

        try:
            duplicate = self.store.check_duplicate(code)
            if duplicate.is_duplicate:
                return ScanDuplicate(name=duplicate.name or VISITOR_PLACEHOLDER)

            row = append_code_and_read_row(self.sheets_cfg, code)

            if row is None or not row.name:
                # keep the audit trail for unknown codes
                self.store.record_event(code, UNREGISTERED_NAME)
                return ScanRejected(UNREGISTERED_CODE)

            self.store.record_event(code, row.name)
        except Exception as e:
            logger.exception("Failed to save scan code=%s", code)
            return ScanRejected(str(e) or UNKNOWN_FAILURE)

        outcome: Optional[NotificationOutcome] = None
        if row.chat_id and row.message:
            outcome = self._notify(row.chat_id, row.message)

        update_result_in_sheet(self.sheets_cfg, row.row_number, outcome)

        return ScanSuccess(
            name=row.name,
            notification_summary=notification_summary(outcome),
            sheet_name=row.sheet_name,
        )


def process_scan(code: str, processor: Optional[ScanProcessor] = None) -> ScanOutcome:
    if processor is None:
        rejection = check_code_format(code)
        if rejection:
            return ScanRejected(rejection)
        try:
            processor = ScanProcessor.from_env()
        except Exception as e:
            logger.exception("Scan pipeline is not configured")
            return ScanRejected(str(e) or UNKNOWN_FAILURE)
    return processor.process_scan(code)


def clear_scans(store) -> Dict[str, Any]:
    """Deletes the whole scan history. Returns {success, error?}."""
    try:
        store.clear_all()
    except Exception as e:
        logger.exception("Failed to clear scans")
        return {"success": False, "error": str(e) or UNKNOWN_FAILURE}
    return {"success": True}
