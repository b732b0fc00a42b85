"""NDIS back-office configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class NDISSettings(BaseSettings):
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///ndis.db"
    echo_sql: bool = False
    app_title: str = "NDIS Back Office"
    log_level: str = "INFO"

    # File storage (documents, training certificates, photos)
    storage_dir: str = "data/storage"
    storage_public_base_url: str = "http://localhost:8030/storage"

    # Commit reconciliation
    # When true the whole save runs in one DB transaction and is rolled back on failure.
    commit_transactional: bool = False

    # Activity log
    activity_logging_enabled: bool = True
    activity_value_max_length: int = 50
    default_user_name: str = "Unknown user"

    model_config = {"env_prefix": "NDIS_", "env_file": ".env", "extra": "ignore"}

    @property
    def base_dir(self) -> Path:
        return Path(__file__).resolve().parent

    @property
    def project_dir(self) -> Path:
        return self.base_dir.parent

    @property
    def storage_root(self) -> Path:
        path = Path(self.storage_dir)
        if not path.is_absolute():
            path = self.project_dir / path
        return path

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}


settings = NDISSettings()
