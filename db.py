"""Supabase key-value access for question history. Client is cached via Streamlit."""
import logging

import streamlit as st
from supabase import create_client, Client

from examprep.config import get_settings

logger = logging.getLogger(__name__)

# SQL to run once in the Supabase SQL editor
KV_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value JSONB NOT NULL DEFAULT '{}'::jsonb,
    updated_at TIMESTAMPTZ DEFAULT NOW()
);
"""


def _env_client() -> Client:
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
    return create_client(settings.supabase_url, settings.supabase_key)


@st.cache_resource
def get_supabase() -> Client:
    return _env_client()


def get_supabase_uncached() -> Client:
    """For CLI/scripts (no Streamlit context)."""
    return _env_client()


def get_kv_value(client: Client, table: str, key: str) -> dict:
    """Return the JSON value stored under key, or {} when the row does not exist."""
    r = client.table(table).select("value").eq("key", key).limit(1).execute()
    rows = r.data or []
    if not rows:
        return {}
    value = rows[0].get("value") or {}
    if not isinstance(value, dict):
        raise ValueError(f"{table}.{key} does not hold a JSON object")
    return value


def upsert_kv_value(client: Client, table: str, key: str, value: dict):
    """Overwrite the whole value stored under key."""
    logger.debug("Upserting %s.%s (%d entries)", table, key, len(value))
    return client.table(table).upsert({"key": key, "value": value}, on_conflict="key").execute()
