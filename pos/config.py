import os

from pydantic import BaseModel


def _env_flag(key: str, default: bool = False) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    database_url: str = "sqlite+aiosqlite:///./pos.db"
    db_pool_size: int = 5
    db_echo: bool = False
    app_env: str = "production"
    log_level: str = "INFO"
    seed_demo: bool = False

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() == "development"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./pos.db"),
            db_pool_size=int(os.getenv("DB_POOL_SIZE", 5)),
            db_echo=_env_flag("DB_ECHO"),
            app_env=os.getenv("APP_ENV", "production"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            seed_demo=_env_flag("POS_SEED_DEMO"),
        )
