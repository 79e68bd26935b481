"""Application configuration helpers."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_DATA_DIR = ".engmat_store"
DEFAULT_COMMISSION_RATE = 3.0

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class AppConfig:
    """Hold runtime configuration options for the application."""

    data_dir: Path
    db_url: Optional[str]
    default_commission_rate: float
    log_level: str

    @property
    def uses_database(self) -> bool:
        return bool(self.db_url)


def load_config(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load settings from environment variables with sane defaults."""

    env = os.environ if environ is None else environ

    data_dir = Path(env.get("ENGMAT_DATA_DIR", DEFAULT_DATA_DIR)).expanduser()
    db_url = env.get("ENGMAT_DB_URL") or None
    rate = float(env.get("ENGMAT_DEFAULT_COMMISSION_RATE", DEFAULT_COMMISSION_RATE))
    log_level = env.get("ENGMAT_LOG_LEVEL", "INFO").upper()

    return AppConfig(
        data_dir=data_dir,
        db_url=db_url,
        default_commission_rate=rate,
        log_level=log_level,
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
