"""
Server settings, read from the environment.

A `.env` file in the working directory (or the project root) is loaded first
so settings can live next to the checkout:

    BLOCKFLOW_HOST=127.0.0.1
    BLOCKFLOW_PORT=3001
    BLOCKFLOW_LOG_LEVEL=DEBUG
    BLOCKFLOW_CORS_ORIGINS=http://localhost:3000,http://localhost:5173
    BLOCKFLOW_RELOAD=1
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from dotenv import find_dotenv, load_dotenv


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    reload: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        origins = [o.strip() for o in env.get("BLOCKFLOW_CORS_ORIGINS", "*").split(",") if o.strip()]
        return cls(
            host=env.get("BLOCKFLOW_HOST", "0.0.0.0"),
            port=int(env.get("BLOCKFLOW_PORT", "3001")),
            log_level=env.get("BLOCKFLOW_LOG_LEVEL", "INFO").upper(),
            cors_origins=origins or ["*"],
            reload=_flag(env.get("BLOCKFLOW_RELOAD")),
        )


def load_settings() -> Settings:
    load_dotenv(find_dotenv(usecwd=True))
    return Settings.from_env()
