"""History stores: in-memory, JSON file and Supabase key-value row."""
import json

import pytest

from engine import HISTORY_KEY
from examprep.config import Settings
from examprep.errors import StorageUnavailable
from examprep.storage import (
    InMemoryHistoryStore,
    JsonFileHistoryStore,
    SupabaseHistoryStore,
    build_history_store,
)


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Records the chained calls the Supabase client would send."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.filters = {}
        self.op = None
        self.payload = None

    def select(self, *columns):
        self.op = "select"
        return self

    def eq(self, column, value):
        self.filters[column] = value
        return self

    def limit(self, n):
        return self

    def upsert(self, row, on_conflict=None):
        self.op = "upsert"
        self.payload = row
        return self

    def execute(self):
        if self.client.fail:
            raise ConnectionError("network down")
        rows = self.client.tables.setdefault(self.table, {})
        if self.op == "upsert":
            rows[self.payload["key"]] = json.loads(json.dumps(self.payload["value"]))
            return FakeResponse([self.payload])
        key = self.filters.get("key")
        return FakeResponse([{"value": rows[key]}] if key in rows else [])


class FakeSupabase:
    def __init__(self, fail=False):
        self.fail = fail
        self.tables = {}

    def table(self, name):
        return FakeQuery(self, name)


def settings_for(backend, tmp_path):
    return Settings(
        question_bank_path=tmp_path / "questions.json",
        history_backend=backend,
        history_file=tmp_path / "history.json",
        supabase_url=None,
        supabase_key=None,
        supabase_kv_table="kv_store",
        log_level="INFO",
    )


def test_in_memory_store_round_trip():
    store = InMemoryHistoryStore()
    assert store.load() == {}
    store.save({"q1": {"attempts": 1}})
    assert store.load() == {"q1": {"attempts": 1}}


def test_file_store_missing_file_reads_empty(tmp_path):
    assert JsonFileHistoryStore(tmp_path / "missing.json").load() == {}


def test_file_store_keeps_other_namespaces(tmp_path):
    path = tmp_path / "history.json"
    path.write_text(json.dumps({"other_app": {"x": 1}}), encoding="utf-8")
    store = JsonFileHistoryStore(path)
    store.save({"q1": {"attempts": 2}})
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["other_app"] == {"x": 1}
    assert data[HISTORY_KEY] == {"q1": {"attempts": 2}}
    assert store.load() == {"q1": {"attempts": 2}}


def test_file_store_corrupt_file_raises(tmp_path):
    path = tmp_path / "history.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageUnavailable):
        JsonFileHistoryStore(path).load()


def test_file_store_non_mapping_value_raises(tmp_path):
    path = tmp_path / "history.json"
    path.write_text(json.dumps({HISTORY_KEY: ["q1"]}), encoding="utf-8")
    with pytest.raises(StorageUnavailable, match="not a mapping"):
        JsonFileHistoryStore(path).load()


def test_supabase_store_round_trip():
    client = FakeSupabase()
    store = SupabaseHistoryStore(client=client)
    assert store.load() == {}
    store.save({"q1": {"attempts": 3}})
    assert client.tables["kv_store"][HISTORY_KEY] == {"q1": {"attempts": 3}}
    assert store.load() == {"q1": {"attempts": 3}}


def test_supabase_store_wraps_failures():
    store = SupabaseHistoryStore(client=FakeSupabase(fail=True))
    with pytest.raises(StorageUnavailable):
        store.load()
    with pytest.raises(StorageUnavailable):
        store.save({})


def test_supabase_store_non_object_value_is_unavailable():
    client = FakeSupabase()
    client.tables["kv_store"] = {HISTORY_KEY: ["q1"]}
    with pytest.raises(StorageUnavailable, match="JSON object"):
        SupabaseHistoryStore(client=client).load()


def test_supabase_store_without_credentials_is_unavailable():
    def no_client():
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")

    store = SupabaseHistoryStore(client_factory=no_client)
    with pytest.raises(StorageUnavailable, match="SUPABASE_URL"):
        store.load()


def test_build_history_store(tmp_path):
    assert isinstance(build_history_store(settings_for("memory", tmp_path)), InMemoryHistoryStore)
    file_store = build_history_store(settings_for("file", tmp_path))
    assert isinstance(file_store, JsonFileHistoryStore)
    assert file_store.path == tmp_path / "history.json"
    client = FakeSupabase()
    supa = build_history_store(settings_for("supabase", tmp_path), client_factory=lambda: client)
    assert isinstance(supa, SupabaseHistoryStore)
    assert supa.client is client
