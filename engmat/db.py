# engmat/db.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

import streamlit as st
from sqlalchemy.engine import Engine
from sqlmodel import Session, create_engine

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Engine factory
# ---------------------------------------------------------------------
def build_engine(db_url: str) -> Engine:
    """
    Create a SQLAlchemy/SQLModel engine for `db_url`.

    - For SQLite: check_same_thread off, journal_mode=WAL, busy_timeout,
      foreign_keys=ON.
    - Any other URL (e.g. postgresql+psycopg://user:pw@host:5432/engmat) is
      used as is.
    """
    is_sqlite = db_url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    engine = create_engine(db_url, connect_args=connect_args, pool_pre_ping=True)

    if is_sqlite and db_url not in ("sqlite://", "sqlite:///:memory:"):
        # WAL is persistent on the database file once set.
        with engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL;")
            conn.exec_driver_sql("PRAGMA synchronous=NORMAL;")
            conn.exec_driver_sql("PRAGMA busy_timeout=5000;")
            conn.exec_driver_sql("PRAGMA foreign_keys=ON;")

    logger.info("Database engine ready (%s)", engine.url.render_as_string(hide_password=True))
    return engine


@st.cache_resource(show_spinner=False)
def get_engine(db_url: str) -> Engine:
    """Engine shared across reruns & sessions."""
    return build_engine(db_url)


# ---------------------------------------------------------------------
# Schema creation (first run)
# ---------------------------------------------------------------------
def create_db_and_tables(engine: Engine) -> None:
    """Create all tables defined in SQLModel metadata (no-op for existing ones)."""
    from . import db_models  # noqa: F401  (registers the tables)

    db_models.SQLModel.metadata.create_all(engine)


# ---------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """
    Context-managed Session that commits on success:

        with get_session(engine) as s:
            s.add(obj)

    """
    with Session(engine) as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
