from datetime import timedelta

from firebase_admin import firestore

from checkin.store import BATCH_LIMIT, FirestoreScanStore, ScanEvent, load_store_config

from conftest import FakeFirestore


def test_record_event_uses_server_timestamp():
    assert ScanEvent("C-1", "Kim").to_document()["timestamp"] is firestore.SERVER_TIMESTAMP

    client = FakeFirestore()
    store = FirestoreScanStore(client)

    store.record_event("C-1", "Kim")

    docs = client.collection("scans").docs
    assert len(docs) == 1
    assert docs[0].to_dict() == {"code": "C-1", "name": "Kim", "timestamp": client.now}


def test_check_duplicate_same_day(seoul_morning):
    client = FakeFirestore()
    store = FirestoreScanStore(client)
    store.record_event("C-1", "Kim")

    result = store.check_duplicate("C-1", now=seoul_morning + timedelta(hours=10))

    assert result.is_duplicate is True
    assert result.name == "Kim"


def test_check_duplicate_other_day_or_code(seoul_morning):
    client = FakeFirestore()
    store = FirestoreScanStore(client)
    store.record_event("C-1", "Kim")

    assert store.check_duplicate("C-1", now=seoul_morning + timedelta(days=1)).is_duplicate is False
    assert store.check_duplicate("C-2", now=seoul_morning).is_duplicate is False


def test_check_duplicate_queries_today_window(seoul_morning):
    client = FakeFirestore()
    FirestoreScanStore(client).check_duplicate("C-1", now=seoul_morning)

    filters = client.collection("scans").queries[0]
    assert [(f.field_path, f.op_string) for f in filters] == [("code", "=="), ("timestamp", ">="), ("timestamp", "<")]
    assert filters[1].value == seoul_morning.replace(hour=0, minute=0)
    assert filters[2].value - filters[1].value == timedelta(days=1)


def test_clear_all_batches_deletes():
    client = FakeFirestore()
    store = FirestoreScanStore(client, collection="events")
    for i in range(BATCH_LIMIT + 3):
        store.record_event(f"C-{i}", "x")

    assert store.clear_all() == BATCH_LIMIT + 3
    assert client.collection("events").docs == []
    assert client.commits == [BATCH_LIMIT, 3]


def test_clear_all_empty_is_noop():
    client = FakeFirestore()
    assert FirestoreScanStore(client).clear_all() == 0
    assert client.commits == []


def test_load_store_config_falls_back_to_google_credentials(monkeypatch):
    monkeypatch.setattr("checkin.store.load_dotenv", lambda: None)
    monkeypatch.delenv("FIREBASE_CREDENTIALS", raising=False)
    monkeypatch.delenv("FIRESTORE_COLLECTION", raising=False)
    monkeypatch.setenv("GOOGLE_APPLICATION_CREDENTIALS", "/secrets/sa.json")

    cfg = load_store_config()

    assert cfg.credentials_path == "/secrets/sa.json"
    assert cfg.collection == "scans"
