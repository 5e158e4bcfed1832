import os
from pathlib import Path
from functools import lru_cache

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SimulationSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SIM_", populate_by_name=True)

    workers: int = Field(default_factory=lambda: os.cpu_count() or 1, gt=0, alias="SIM_WORKERS")
    batch_size: int = Field(default=250, gt=0, alias="SIM_BATCH_SIZE")
    sample_cap: int = Field(default=25, ge=0, alias="SIM_SAMPLE_CAP")
    default_trades_per_year: float = Field(
        default=252.0, gt=0, alias="SIM_DEFAULT_TRADES_PER_YEAR"
    )


class JournalSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)

    journal_path: Path = Field(default=Path("db/journal.json"), alias="JOURNAL_PATH")


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)

    db_dir: Path = Field(default=Path("db"), alias="DB_DIR")

    @computed_field
    @property
    def sqlite_path(self) -> Path:
        return self.db_dir / "simulations.db"

    @computed_field
    @property
    def log_dir(self) -> Path:
        return self.db_dir / "logs"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    simulation: SimulationSettings = Field(default_factory=SimulationSettings)
    journal: JournalSettings = Field(default_factory=JournalSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)


@lru_cache
def get_settings() -> Settings:
    return Settings()
