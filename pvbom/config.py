"""
Runtime settings.

Values come from the environment; a `.env` file in the working directory is
loaded first.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    catalog_path: Optional[str] = None
    defaults_path: Optional[str] = None
    log_level: str = "INFO"


def get_settings() -> Settings:
    return Settings(
        catalog_path=os.getenv("PVBOM_CATALOG_PATH") or None,
        defaults_path=os.getenv("PVBOM_DEFAULTS_PATH") or None,
        log_level=(os.getenv("PVBOM_LOG_LEVEL") or "INFO").upper(),
    )
