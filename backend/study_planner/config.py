import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from .lessons import DEFAULT_BASE_URL

DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_STORAGE_KEY = "beato-study-lessons-v1"


class Settings(BaseSettings):
    database_url: Optional[str] = Field(None, alias="STUDY_PLANNER_DATABASE_URL")
    database_pool_size: int = Field(10, alias="STUDY_PLANNER_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="STUDY_PLANNER_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="STUDY_PLANNER_DATABASE_ECHO")
    persistence_mode: Literal["database", "legacy", "memory"] = Field(
        "legacy",
        alias="STUDY_PLANNER_PERSISTENCE_MODE",
    )
    legacy_store_path: Path = Field(DATA_DIR / "curriculum.json", alias="STUDY_PLANNER_LEGACY_STORE_PATH")
    storage_key: str = Field(DEFAULT_STORAGE_KEY, alias="STUDY_PLANNER_STORAGE_KEY", min_length=1)
    base_url: str = Field(DEFAULT_BASE_URL, alias="STUDY_PLANNER_BASE_URL", min_length=1)
    seed_demo: bool = Field(True, alias="STUDY_PLANNER_SEED_DEMO")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
