"""
Configuration for the Microrager service.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BUNDLED_SEED_DIR = Path(__file__).parent / "local-data"


class Settings(BaseSettings):
    """Environment-backed settings, built once per app and passed down."""

    model_config = SettingsConfigDict(
        env_prefix="MICRORAGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # "local" keeps documents in a scratch directory and merges the seed;
    # "s3" keeps one combined document per day in a bucket.
    storage_mode: Literal["local", "s3"] = Field(default="s3")

    bucket_name: str | None = Field(
        default=None, validation_alias=AliasChoices("BUCKET_NAME", "bucket_name")
    )
    aws_region: str | None = Field(
        default=None, validation_alias=AliasChoices("AWS_REGION", "aws_region")
    )
    s3_endpoint_url: str | None = Field(default=None)

    collection_name: str = Field(default="microrager")
    local_data_dir: Path = Field(default=Path("/tmp"))
    local_seed_dir: Path = Field(default=BUNDLED_SEED_DIR)
    local_seed_filename: str = Field(default="microrager.local.seed.json")

    max_message_length: int = Field(default=200, gt=0)
    # Unset means vote counts are not bounds-checked
    max_vote_count: int | None = Field(default=None, gt=0)

    trust_forwarded_for: bool = Field(default=False)
    log_level: str = Field(default="INFO")
