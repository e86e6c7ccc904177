"""
Process configuration.

Settings are read once from the environment at start-up and passed into
the application factory. Nothing reads os.environ after that.
"""

import os
from dataclasses import dataclass, field
from typing import Tuple

STORAGE_BACKENDS = ("sqlite", "sqlite_async", "mongo", "jsonfile", "memory")

# Fallback only. The app logs a warning at start-up when this is in effect.
DEFAULT_ADMIN_KEY = "admin123"


@dataclass(frozen=True)
class Settings:
    storage_backend: str = "sqlite"
    database_url: str = "sqlite:///./students.db"
    async_database_url: str = "sqlite+aiosqlite:///./students.db"
    mongo_url: str = "mongodb://localhost:27017"
    mongo_database: str = "registrar"
    mongo_collection: str = "students"
    students_file: str = "./students.json"
    admin_key: str = DEFAULT_ADMIN_KEY
    storage_timeout_seconds: float = 5.0
    cors_origins: Tuple[str, ...] = field(default_factory=lambda: ("*",))
    log_level: str = "INFO"

    def __post_init__(self):
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                "Unknown STORAGE_BACKEND {!r}; expected one of {}".format(
                    self.storage_backend, ", ".join(STORAGE_BACKENDS)))
        if self.storage_timeout_seconds <= 0:
            raise ValueError("STORAGE_TIMEOUT_SECONDS must be positive")

    @property
    def uses_default_admin_key(self) -> bool:
        return self.admin_key == DEFAULT_ADMIN_KEY

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        defaults = cls()
        origins = os.getenv("CORS_ORIGINS")
        return cls(
            storage_backend=os.getenv("STORAGE_BACKEND", defaults.storage_backend).strip().lower(),
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            async_database_url=os.getenv("ASYNC_DATABASE_URL", defaults.async_database_url),
            mongo_url=os.getenv("MONGO_URL", defaults.mongo_url),
            mongo_database=os.getenv("MONGO_DATABASE", defaults.mongo_database),
            mongo_collection=os.getenv("MONGO_COLLECTION", defaults.mongo_collection),
            students_file=os.getenv("STUDENTS_FILE", defaults.students_file),
            admin_key=os.getenv("ADMIN_KEY", defaults.admin_key),
            storage_timeout_seconds=float(
                os.getenv("STORAGE_TIMEOUT_SECONDS", defaults.storage_timeout_seconds)),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip())
            if origins else defaults.cors_origins,
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )
