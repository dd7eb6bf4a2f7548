"""
History stores: load/save the whole {question_id: history} mapping under one namespaced key.

Every backend raises StorageUnavailable on failure; callers decide how to degrade.
"""
import json
import logging
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol

from db import get_kv_value, get_supabase_uncached, upsert_kv_value
from engine import HISTORY_KEY
from examprep.config import Settings
from examprep.errors import StorageUnavailable

logger = logging.getLogger(__name__)


class HistoryStore(Protocol):
    def load(self) -> Dict[str, Dict]: ...

    def save(self, mapping: Dict[str, Dict]) -> None: ...


class InMemoryHistoryStore:
    """Keeps the serialized mapping in a dict. Used by tests and as the degraded fallback."""

    def __init__(self, initial: Optional[Dict[str, Dict]] = None, key: str = HISTORY_KEY):
        self.key = key
        self.data: Dict[str, str] = {}
        if initial is not None:
            self.data[key] = json.dumps(initial)

    def load(self) -> Dict[str, Dict]:
        saved = self.data.get(self.key)
        return json.loads(saved) if saved else {}

    def save(self, mapping: Dict[str, Dict]) -> None:
        self.data[self.key] = json.dumps(mapping)


class JsonFileHistoryStore:
    """
    One JSON file holding {key: mapping}, so several namespaces can share a file.
    A missing file reads as an empty mapping (first run).
    """

    def __init__(self, path: Path, key: str = HISTORY_KEY):
        self.path = Path(path)
        self.key = key

    def _read_all(self) -> Dict:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageUnavailable(f"Cannot read {self.path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def load(self) -> Dict[str, Dict]:
        mapping = self._read_all().get(self.key) or {}
        if not isinstance(mapping, dict):
            raise StorageUnavailable(f"{self.path}: value under {self.key} is not a mapping")
        return mapping

    def save(self, mapping: Dict[str, Dict]) -> None:
        data = self._read_all()
        data[self.key] = mapping
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            tmp.replace(self.path)
        except OSError as e:
            raise StorageUnavailable(f"Cannot write {self.path}: {e}") from e


class SupabaseHistoryStore:
    """Stores the mapping as a JSONB value in a Supabase key-value table."""

    def __init__(
        self,
        client=None,
        table: str = "kv_store",
        key: str = HISTORY_KEY,
        client_factory: Callable = get_supabase_uncached,
    ):
        self._client = client
        self._client_factory = client_factory
        self.table = table
        self.key = key

    @property
    def client(self):
        if self._client is None:
            try:
                self._client = self._client_factory()
            except Exception as e:
                raise StorageUnavailable(f"Supabase client unavailable: {e}") from e
        return self._client

    def load(self) -> Dict[str, Dict]:
        client = self.client
        try:
            return get_kv_value(client, self.table, self.key)
        except Exception as e:
            logger.error(f"Error fetching {self.key} from {self.table}: {e}")
            raise StorageUnavailable(str(e)) from e

    def save(self, mapping: Dict[str, Dict]) -> None:
        client = self.client
        try:
            upsert_kv_value(client, self.table, self.key, mapping)
        except Exception as e:
            logger.error(f"Error saving {self.key} to {self.table}: {e}")
            raise StorageUnavailable(str(e)) from e


def build_history_store(settings: Settings, client_factory: Optional[Callable] = None) -> HistoryStore:
    """Pick the store named by settings.history_backend."""
    if settings.history_backend == "memory":
        return InMemoryHistoryStore()
    if settings.history_backend == "supabase":
        return SupabaseHistoryStore(
            table=settings.supabase_kv_table,
            client_factory=client_factory or get_supabase_uncached,
        )
    return JsonFileHistoryStore(settings.history_file)
