import re
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from firebase_admin import firestore

from checkin.sheets.client import SheetsConfig
from checkin.store import DuplicateCheck

SEOUL = ZoneInfo("Asia/Seoul")

_A1_RE = re.compile(r"^([A-Z]+)(\d+)(?::([A-Z]+)(\d*))?$")


def _col(letters: str) -> int:
    n = 0
    for ch in letters:
        n = n * 26 + (ord(ch) - 64)
    return n


def _letters(n: int) -> str:
    out = ""
    while n:
        n, rem = divmod(n - 1, 26)
        out = chr(65 + rem) + out
    return out


class FakeWorksheet:
    """In-memory stand-in for gspread.Worksheet, cells keyed by A1 address."""

    def __init__(self, cells=None):
        self.cells = dict(cells or {})
        self.updates = []
        self.batch_updates = []

    def _bounds(self, a1):
        m = _A1_RE.match(a1)
        assert m, f"unexpected range {a1}"
        c1, r1, c2, r2 = m.groups()
        c2 = c2 or c1
        if r2 == "":
            last = max([int(re.sub(r"[A-Z]+", "", k)) for k in self.cells] or [int(r1)])
            r2 = last
        return _col(c1), int(r1), _col(c2), int(r2 or r1)

    def get(self, a1):
        c1, r1, c2, r2 = self._bounds(a1)
        rows = []
        for r in range(r1, r2 + 1):
            row = [self.cells.get(f"{_letters(c)}{r}", "") for c in range(c1, c2 + 1)]
            while row and row[-1] == "":
                row.pop()
            rows.append(row)
        while rows and not rows[-1]:
            rows.pop()
        return rows

    def _write(self, a1, values):
        c1, r1, _, _ = self._bounds(a1)
        for i, row in enumerate(values):
            for j, v in enumerate(row):
                self.cells[f"{_letters(c1 + j)}{r1 + i}"] = v

    def update(self, values=None, range_name=None, value_input_option=None):
        self.updates.append((range_name, values, value_input_option))
        self._write(range_name, values)

    def batch_update(self, data, value_input_option=None):
        self.batch_updates.append((data, value_input_option))
        for item in data:
            self._write(item["range"], item["values"])


class FakeDoc:
    def __init__(self, collection, data):
        self._collection = collection
        self._data = data
        self.reference = self

    def to_dict(self):
        return dict(self._data)


class FakeQuery:
    _OPS = {
        "==": lambda a, b: a == b,
        ">=": lambda a, b: a is not None and a >= b,
        "<": lambda a, b: a is not None and a < b,
    }

    def __init__(self, collection, filters=(), limit=None):
        self._collection = collection
        self._filters = list(filters)
        self._limit = limit

    def where(self, filter):
        return FakeQuery(self._collection, self._filters + [filter], self._limit)

    def limit(self, n):
        return FakeQuery(self._collection, self._filters, n)

    def stream(self):
        self._collection.queries.append(self._filters)
        hits = [
            d for d in self._collection.docs
            if all(self._OPS[f.op_string](d._data.get(f.field_path), f.value) for f in self._filters)
        ]
        return iter(hits[: self._limit] if self._limit else hits)


class FakeCollection(FakeQuery):
    def __init__(self, clock):
        self.docs = []
        self.queries = []
        self._clock = clock
        super().__init__(self)

    def add(self, data):
        data = dict(data)
        if data.get("timestamp") is firestore.SERVER_TIMESTAMP:
            data["timestamp"] = self._clock()
        self.docs.append(FakeDoc(self, data))


class FakeBatch:
    def __init__(self, client):
        self._client = client
        self._pending = []

    def delete(self, ref):
        self._pending.append(ref)

    def commit(self):
        self._client.commits.append(len(self._pending))
        for ref in self._pending:
            ref._collection.docs.remove(ref)
        self._pending = []


class FakeFirestore:
    def __init__(self, clock=None):
        self.now = datetime(2026, 10, 18, 9, 30, tzinfo=SEOUL)
        self._clock = clock or (lambda: self.now)
        self.collections = {}
        self.commits = []

    def collection(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(self._clock)
        return self.collections[name]

    def batch(self):
        return FakeBatch(self)


class MemoryStore:
    """Scan store double for the pipeline: every recorded code counts as today's."""

    def __init__(self):
        self.events = []
        self.fail_check = None

    def check_duplicate(self, code):
        if self.fail_check:
            raise self.fail_check
        for c, name in self.events:
            if c == code:
                return DuplicateCheck(is_duplicate=True, name=name)
        return DuplicateCheck(is_duplicate=False)

    def record_event(self, code, name):
        self.events.append((code, name))

    def clear_all(self):
        n = len(self.events)
        self.events = []
        return n


@pytest.fixture
def sheets_cfg():
    return SheetsConfig(spreadsheet_id="sheet-id", sheet_name="Users", start_row=1, settle_seconds=0)


@pytest.fixture
def worksheet(monkeypatch):
    ws = FakeWorksheet()
    monkeypatch.setattr("checkin.sheets.writers.open_worksheet", lambda cfg, sheet_name="", spreadsheet_id="": ws)
    return ws


@pytest.fixture
def seoul_morning():
    return datetime(2026, 10, 18, 9, 30, tzinfo=SEOUL)


@pytest.fixture
def yesterday(seoul_morning):
    return seoul_morning - timedelta(days=1)
