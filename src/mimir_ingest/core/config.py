from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LogFormat = Literal["json", "console"]
ErrorPolicyName = Literal["auto_reset", "halt"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MIMIR_INGEST_",
        env_file=".env",
        extra="ignore",
    )

    working_dir: Path = Field(default=Path("work"))
    handlers_dir: Path = Field(default=Path("mimirsbrunn"))
    cosmogony_dir: Path = Field(default=Path("cosmogony"))
    index_endpoint: str = Field(default="http://localhost:9200")

    topic: str = Field(default="state", min_length=1)
    publish_endpoint: str = Field(default="tcp://127.0.0.1:5555")
    subscribe_settle_s: float = Field(default=0.2, ge=0)

    error_policy: ErrorPolicyName = Field(default="auto_reset")
    validation_settle_s: float = Field(default=1.0, ge=0)
    validation_probe: bool = Field(default=False)

    http_max_attempts: int = Field(default=3, ge=1)
    http_timeout_s: float = Field(default=300.0, gt=0)

    country_code: str = Field(default="FR")
    osm_city_level: int = Field(default=8, ge=0)
    osm_base_url: str = Field(default="https://download.geofabrik.de/europe/france/")
    bano_base_url: str = Field(default="http://bano.openstreetmap.fr/data/")
    ntfs_portal_url: str = Field(default="https://navitia.opendatasoft.com/")

    log_level: str = Field(default="INFO")
    log_format: LogFormat = Field(default="console")


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    return Settings()
