"""
config.py — pydantic-settings Settings class.

All environment variables for the nocdata seeding platform are declared
here. Both the pipeline and the health API import `settings` from this
module.

Usage:
    from nocdata_shared.config import settings
    print(settings.batch_size, settings.db_connection_limit)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_dotenv() -> Path | None:
    """Walk up from CWD to find the nearest .env file."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / ".env"
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_dotenv() or ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Supabase
    # -------------------------------------------------------------------------
    supabase_url: str = Field(default="http://localhost:54321")
    supabase_service_key: str = Field(default="")
    supabase_paid_tier: bool = Field(default=False)
    db_query_timeout_s: float = Field(default=30.0, gt=0)

    # -------------------------------------------------------------------------
    # Seeding: batching and retry
    # -------------------------------------------------------------------------
    batch_size: int = Field(default=25, gt=0)
    parallel_batches: int = Field(default=2, gt=0)
    batch_delay_ms: int = Field(default=100, ge=0)
    link_batch_size: int = Field(default=50, gt=0)
    max_retries: int = Field(default=3, ge=1)
    retry_delay_ms: int = Field(default=1000, ge=0)

    # -------------------------------------------------------------------------
    # Seeding: per-entity switches
    # -------------------------------------------------------------------------
    seed_program_areas: bool = Field(default=True)
    seed_programs: bool = Field(default=True)
    seed_noc_unit_groups: bool = Field(default=True)
    seed_outlooks: bool = Field(default=True)
    seed_program_noc_links: bool = Field(default=True)

    # -------------------------------------------------------------------------
    # Source files
    # -------------------------------------------------------------------------
    data_dir: str = Field(default="data")
    viu_programs_file: str = Field(default="viu_programs.json")
    unit_groups_file: str = Field(default="unit_groups.json")
    outlooks_file: str = Field(default="2024-2026-3-year-outlooks.xlsx")

    # -------------------------------------------------------------------------
    # Checkpoints and side logs
    # -------------------------------------------------------------------------
    progress_file: str = Field(default="seeding-progress.json")
    log_errors: bool = Field(default=True)
    error_log_file: str = Field(default="logs/database-errors.log")
    show_progress_bar: bool = Field(default=True)

    # -------------------------------------------------------------------------
    # Health server
    # -------------------------------------------------------------------------
    health_host: str = Field(default="0.0.0.0")
    health_port: int = Field(default=3000)

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "console"] = Field(default="console")

    # -------------------------------------------------------------------------
    # Derived / computed
    # -------------------------------------------------------------------------
    @property
    def db_connection_limit(self) -> int:
        return 10 if self.supabase_paid_tier else 3

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    @property
    def viu_programs_path(self) -> Path:
        return self.data_path / self.viu_programs_file

    @property
    def unit_groups_path(self) -> Path:
        return self.data_path / self.unit_groups_file

    @property
    def outlooks_path(self) -> Path:
        return self.data_path / self.outlooks_file

    @property
    def seed_flags(self) -> dict[str, bool]:
        return {
            "program_areas": self.seed_program_areas,
            "programs": self.seed_programs,
            "noc_unit_groups": self.seed_noc_unit_groups,
            "outlooks": self.seed_outlooks,
            "program_noc_links": self.seed_program_noc_links,
        }

    @field_validator("supabase_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Module-level singleton: import this everywhere
# ---------------------------------------------------------------------------
settings = Settings()
