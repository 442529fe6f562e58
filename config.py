import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        log_level: str,
        uncategorized_bucket: bool,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.log_level = log_level
        self.uncategorized_bucket = uncategorized_bucket


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("SPENDWISE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "spendwise.db"
    database_url = os.getenv("SPENDWISE_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("SPENDWISE_TIMEZONE", "Europe/Berlin")
    log_level = os.getenv("SPENDWISE_LOG_LEVEL", "INFO").upper()
    uncategorized_bucket = _env_flag("SPENDWISE_UNCATEGORIZED_BUCKET")
    return Settings(
        database_url=database_url,
        timezone=timezone,
        log_level=log_level,
        uncategorized_bucket=uncategorized_bucket,
    )
