import logging
import os
from contextlib import contextmanager
from functools import lru_cache
from typing import Protocol

import streamlit as st
from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url

logger = logging.getLogger(__name__)


class DatabaseConfigError(RuntimeError):
    """Raised when the database connection string is missing."""


load_dotenv()


def _get_database_url() -> str:
    # 1) Streamlit Secrets: [db].url
    secrets_url = None
    try:
        if "db" in st.secrets:  # type: ignore[attr-defined]
            secrets_url = st.secrets["db"]["url"]
    except Exception:
        # st.secrets raises when no secrets.toml exists or outside the Streamlit runtime
        pass

    # 2) .env / environment for local runs
    env_url = os.getenv("DATABASE_URL")

    url = secrets_url or env_url
    if not url:
        raise DatabaseConfigError(
            "DATABASE_URL is not configured. Set it in a .env file for local "
            "development or in st.secrets['db']['url'] when deploying on "
            "Streamlit."
        )
    return url


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Return a cached SQLAlchemy engine."""
    raw_url = _get_database_url()
    normalized_url = _normalize_driver(raw_url)
    return create_engine(normalized_url, pool_pre_ping=True, future=True)


def _normalize_driver(url: str) -> str:
    """Ensure Postgres URLs use the psycopg driver; other backends pass through."""
    parsed = make_url(url)
    drivername = parsed.drivername or ""
    if drivername.startswith("postgresql") and "psycopg" not in drivername:
        parsed = parsed.set(drivername="postgresql+psycopg")
    return parsed.render_as_string(hide_password=False)


@contextmanager
def get_connection(engine: Engine | None = None):
    """Yield a transactional connection."""
    engine = engine or get_engine()
    with engine.begin() as conn:
        yield conn


def init_db(engine: Engine | None = None) -> None:
    """Ensure the key-value table exists."""
    with get_connection(engine) as conn:
        conn.execute(
            text(
                """
                CREATE TABLE IF NOT EXISTS meta (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
                """
            )
        )


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class SqlKeyValueStore:
    """Key-value store on top of the ``meta`` table."""

    def __init__(self, engine: Engine | None = None):
        self.engine = engine or get_engine()
        init_db(self.engine)

    def get(self, key: str) -> str | None:
        with self.engine.connect() as conn:
            row = (
                conn.execute(text("SELECT value FROM meta WHERE key = :key"), {"key": key})
                .mappings()
                .first()
            )
        if row is None:
            return None
        return row["value"]

    def set(self, key: str, value: str) -> None:
        with get_connection(self.engine) as conn:
            conn.execute(
                text(
                    """
                    INSERT INTO meta (key, value)
                    VALUES (:key, :value)
                    ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value
                    """
                ),
                {"key": key, "value": value},
            )


class MemoryKeyValueStore:
    """Dict-backed store for sessions without a configured database."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


def open_store() -> KeyValueStore:
    """Return the configured SQL store.

    Raises ``DatabaseConfigError`` when no database URL is available.
    """
    store = SqlKeyValueStore()
    logger.info("Using SQL plan store (%s)", store.engine.url.render_as_string(hide_password=True))
    return store
