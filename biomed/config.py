"""Process configuration, read once from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional


@dataclass(frozen=True)
class Config:
    data_file: Path = Path("data/amc.yaml")
    secret_key: str = "dev-secret-key-change-in-prod"
    session_ttl_minutes: int = 60
    session_check_seconds: int = 60
    admin_email: Optional[str] = None
    admin_password: Optional[str] = None
    log_level: str = "INFO"
    page_size: int = 10
    reminder_days: int = 30

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        env = os.environ if environ is None else environ
        return cls(
            data_file=Path(env.get("AMC_DATA_FILE", "data/amc.yaml")),
            secret_key=env.get("SECRET_KEY", "dev-secret-key-change-in-prod"),
            session_ttl_minutes=int(env.get("AMC_SESSION_TTL_MINUTES", 60)),
            session_check_seconds=int(env.get("AMC_SESSION_CHECK_SECONDS", 60)),
            admin_email=env.get("AMC_ADMIN_EMAIL") or None,
            admin_password=env.get("AMC_ADMIN_PASSWORD") or None,
            log_level=env.get("AMC_LOG_LEVEL", "INFO").upper(),
            page_size=int(env.get("AMC_PAGE_SIZE", 10)),
            reminder_days=int(env.get("AMC_REMINDER_DAYS", 30)),
        )
