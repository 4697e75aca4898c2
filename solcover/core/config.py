"""Core configuration for the solcover engine."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SOLCOVER_",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "solcover"
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # ── Compiler ─────────────────────────────────────────────────────────
    solc_version: str = ""  # empty = detect from pragma
    solc_default_version: str = "0.8.28"

    # ── Instrumentation ──────────────────────────────────────────────────
    instrument_workers: int = 1
    metadata_file: str = "coverage-metadata.json"

    # ── Collector ────────────────────────────────────────────────────────
    probe_opcode: str = "PUSH1"

    # ── Tracing (JSON-RPC) ───────────────────────────────────────────────
    rpc_url: str = "http://127.0.0.1:8545"
    rpc_timeout_seconds: float = 120.0


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
