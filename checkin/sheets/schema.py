# checkin/sheets/schema.py

from __future__ import annotations

from dataclasses import dataclass, field

DIRECTORY_SHEET_NAME_DEFAULT = "Users"

# Directory sheet layout. A/B are written on scan, C:E are formula-driven
# lookups read back from the same row, F/G receive the delivery status.
CODE_COLUMN = "A"
TIMESTAMP_COLUMN = "B"
NAME_COLUMN = "C"
CHAT_ID_COLUMN = "D"
MESSAGE_COLUMN = "E"
RESULT_TEXT_COLUMN = "F"
RESULT_STATUS_COLUMN = "G"

MAX_ERROR_CELL_LENGTH = 100

# (result text, status text) written to F/G.
STATUS_NO_MESSAGE = ("메시지 없음", "해당 없음")
STATUS_SENT = ("자동 발송됨", "발송성공")
STATUS_BLOCKED = ("봇을 차단함", "봇 차단됨")
STATUS_NOT_APPROVED = ("봇 미승인", "봇 미승인")
STATUS_CHAT_NOT_FOUND = ("계정 확인 필요", "계정 없음")
STATUS_FAILED = "발송실패"
UNKNOWN_ERROR_TEXT = "알수없는 오류"


@dataclass(frozen=True)
class DirectoryRow:
    """Identity fields read back from the row a scanned code was written to."""

    row_number: int
    sheet_name: str
    name: str = ""
    chat_id: str = ""
    message: str = ""


@dataclass(frozen=True)
class ValueToInsert:
    value: str
    column: str


@dataclass(frozen=True)
class PersonalSheetTarget:
    spreadsheet_id: str
    sheet_name: str
    start_row: int = 1
    values: list[ValueToInsert] = field(default_factory=list)
