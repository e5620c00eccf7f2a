from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, Iterable, Iterator

from checkin.logging_config import setup_logging
from checkin.personal import PersonalRecorder, PersonalSettings
from checkin.scan import ScanProcessor, clear_scans
from checkin.sheets.client import load_sheets_config


def _emit(result: Dict[str, Any]) -> None:
    print(json.dumps(result, ensure_ascii=False), flush=True)


def _iter_codes(codes: list[str], stream: Iterable[str]) -> Iterator[str]:
    # Keyboard-wedge scanners type the code followed by Enter.
    if codes:
        yield from codes
        return
    for line in stream:
        line = line.strip()
        if line:
            yield line


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="checkin", description="Attendance check-in scanner.")
    parser.add_argument("codes", nargs="*", help="Codes to scan. Reads one code per line from stdin when omitted.")
    parser.add_argument("--clear", action="store_true", help="Delete the whole scan history and exit.")

    personal = parser.add_argument_group("personal mode")
    personal.add_argument("--personal", action="store_true", help="Record into a personal sheet instead.")
    personal.add_argument("--spreadsheet-id", default="", help="Target spreadsheet id.")
    personal.add_argument("--sheet", default="", help="Target sheet (tab) name.")
    personal.add_argument("--start-row", type=int, default=1, help="First data row of the target sheet.")
    personal.add_argument("--code-column", default="A", help="Column for the scanned code.")
    personal.add_argument("--submitter-id", default="", help="Id of the person recording.")
    personal.add_argument("--submitter-id-column", default="", help="Column for the submitter id.")
    personal.add_argument("--timestamp-column", default="", help="Column for the scan time.")
    personal.add_argument("--allow-duplicates", action="store_true", help="Disable local duplicate suppression.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    try:
        sheets_cfg = load_sheets_config()
    except RuntimeError as e:
        _emit({"success": False, "error": str(e)})
        return 1

    failures = 0

    if args.personal:
        recorder = PersonalRecorder(
            sheets_cfg,
            PersonalSettings(
                spreadsheet_id=args.spreadsheet_id,
                sheet_name=args.sheet,
                start_row=args.start_row,
                code_column=args.code_column,
                submitter_id=args.submitter_id,
                submitter_id_column=args.submitter_id_column,
                timestamp_column=args.timestamp_column,
                duplicate_check=not args.allow_duplicates,
            ),
        )
        for code in _iter_codes(args.codes, sys.stdin):
            result = recorder.record(code)
            _emit({"code": code, **result})
            if result["status"] != "success":
                failures += 1
        return 1 if failures else 0

    try:
        processor = ScanProcessor.from_env()
    except Exception as e:
        _emit({"success": False, "error": str(e)})
        return 1

    if args.clear:
        result = clear_scans(processor.store)
        _emit(result)
        return 0 if result["success"] else 1

    for code in _iter_codes(args.codes, sys.stdin):
        outcome = processor.process_scan(code)
        _emit({"code": code, **outcome.to_dict()})
        if not outcome.to_dict()["success"]:
            failures += 1

    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
