# estore/config.py
import os
from functools import lru_cache
from typing import List

from pydantic import BaseModel

# Settings are read from ESTORE_* environment variables.

ENV_PREFIX = "ESTORE_"


def _env(name: str, default: str) -> str:
    return os.getenv(ENV_PREFIX + name, default)


class Settings(BaseModel):
    database_url: str = "sqlite:///./estore.db"
    jwt_secret: str = "devsecret"
    jwt_algorithm: str = "HS256"
    token_ttl_minutes: int = 60 * 24 * 7
    log_level: str = "INFO"
    log_json: bool = False
    cors_origins: List[str] = ["*"]

    @classmethod
    def from_env(cls) -> "Settings":
        origins = _env("CORS_ORIGINS", "*")
        return cls(
            database_url=_env("DATABASE_URL", "sqlite:///./estore.db"),
            jwt_secret=_env("JWT_SECRET", "devsecret"),
            jwt_algorithm=_env("JWT_ALGORITHM", "HS256"),
            token_ttl_minutes=int(_env("TOKEN_TTL_MINUTES", str(60 * 24 * 7))),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_json=_env("LOG_JSON", "false").lower() in ("1", "true", "yes"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
