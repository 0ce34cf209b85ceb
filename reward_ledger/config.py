import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv(encoding="utf-8")


@dataclass(frozen=True)
class Settings:
    authority: str
    log_level: str
    cors_origins: list[str]


def get_settings() -> Settings:
    origins = os.getenv("LEDGER_CORS_ORIGINS", "*")
    return Settings(
        authority=os.getenv("LEDGER_AUTHORITY", "authority"),
        log_level=os.getenv("LEDGER_LOG_LEVEL", "INFO").upper(),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
    )
