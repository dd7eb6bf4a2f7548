"""Runtime settings, read from the environment (and .env when present)."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parent.parent

QUESTION_BANK_PATH = os.getenv("QUESTION_BANK_PATH", str(PROJECT_ROOT / "data" / "questions.json"))
HISTORY_BACKEND = os.getenv("HISTORY_BACKEND", "file")  # memory | file | supabase
HISTORY_FILE = os.getenv("HISTORY_FILE", "question_history.json")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
SUPABASE_KV_TABLE = os.getenv("SUPABASE_KV_TABLE", "kv_store")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

HISTORY_BACKENDS = ("memory", "file", "supabase")


@dataclass
class Settings:
    question_bank_path: Path
    history_backend: str
    history_file: Path
    supabase_url: Optional[str]
    supabase_key: Optional[str]
    supabase_kv_table: str
    log_level: str


def get_settings() -> Settings:
    """Snapshot of the current environment. Unknown backends fall back to 'file'."""
    backend = (os.getenv("HISTORY_BACKEND", HISTORY_BACKEND) or "file").strip().lower()
    if backend not in HISTORY_BACKENDS:
        backend = "file"
    return Settings(
        question_bank_path=Path(os.getenv("QUESTION_BANK_PATH", QUESTION_BANK_PATH)),
        history_backend=backend,
        history_file=Path(os.getenv("HISTORY_FILE", HISTORY_FILE)),
        supabase_url=os.getenv("SUPABASE_URL", SUPABASE_URL),
        supabase_key=os.getenv("SUPABASE_KEY", SUPABASE_KEY),
        supabase_kv_table=os.getenv("SUPABASE_KV_TABLE", SUPABASE_KV_TABLE),
        log_level=os.getenv("LOG_LEVEL", LOG_LEVEL).upper(),
    )
