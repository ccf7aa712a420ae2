"""
Configuration settings for the Trip Sampler.

Uses Pydantic Settings to load environment variables (and `.env`) for file
locations, naming, sampling, parallelism, and logging. Settings are read once
and handed to the orchestrator explicitly; runners and tasks receive plain
values, never the settings object.
"""
from __future__ import annotations

from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Files
    source_dir: Path = Field(Path("data"), alias="SOURCE_DIR")
    output_dir: Path = Field(Path("samples"), alias="OUTPUT_DIR")
    source_prefix: str = Field("yellow_tripdata", alias="SOURCE_PREFIX")
    sample_prefix: str = Field("sample", alias="SAMPLE_PREFIX")
    combined_filename: str = Field("sample_combined.csv", alias="COMBINED_FILENAME")
    source_has_header: bool = Field(True, alias="SOURCE_HAS_HEADER")
    results_dir: Path = Field(Path("results"), alias="RESULTS_DIR")

    # Sampling
    reference_date: date = Field(date(2016, 7, 1), alias="REFERENCE_DATE")
    partition_count: int = Field(6, gt=0, alias="PARTITION_COUNT")
    sample_size: int = Field(1_000_000, gt=0, alias="SAMPLE_SIZE")
    sample_seed: Optional[int] = Field(None, alias="SAMPLE_SEED")
    row_policy: Literal["reject", "strict"] = Field("reject", alias="ROW_POLICY")

    # Execution
    worker_count: int = Field(1, gt=0, alias="WORKER_COUNT")
    runner: Literal["process", "thread"] = Field("process", alias="RUNNER")
    failure_policy: Literal["tolerant", "strict"] = Field("tolerant", alias="FAILURE_POLICY")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
