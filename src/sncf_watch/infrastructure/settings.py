from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from sncf_watch.infrastructure.sncf_client import BASE_URL, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"
    sncf_base_url: str = BASE_URL
    request_timeout: float = DEFAULT_TIMEOUT
    data_dir: Path = Path("data")
    poll_delay_seconds: float = 60.0
    idle_wait_seconds: float = 60.0
    fetch_timeout: float = 30.0
    notify_timeout: float = 30.0
    restart_on_crash: bool = True
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_ssl: bool = False
    email_from: str = ""

    @property
    def subscriptions_path(self) -> Path:
        return self.data_dir / "subscriptions.json"

    @property
    def snapshots_dir(self) -> Path:
        return self.data_dir / "snapshots"

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_username and self.smtp_password)


def _env(key: str, *aliases: str, default: str = "") -> str:
    for name in (key, *aliases):
        value = os.getenv(name)
        if value is not None and value.strip():
            return value.strip()
    return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _number_env(name: str, default: float, cast: type = float) -> float:
    raw = _env(name)
    if not raw:
        return cast(default)
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {raw!r}")
    return value


def load_settings() -> Settings:
    """Build Settings from the environment, reading an optional .env file first."""
    load_dotenv()

    smtp_username = _env("SMTP_USERNAME", "EMAIL_USER")
    smtp_password = _env("SMTP_PASSWORD", "EMAIL_PASS")
    settings = Settings(
        host=_env("HOST", default="0.0.0.0"),
        port=int(_number_env("PORT", 3001, int)),
        log_level=_env("LOG_LEVEL", default="INFO").upper(),
        sncf_base_url=_env("SNCF_BASE_URL", default=BASE_URL),
        request_timeout=_number_env("REQUEST_TIMEOUT", DEFAULT_TIMEOUT),
        data_dir=Path(_env("DATA_DIR", default="data")),
        poll_delay_seconds=_number_env("POLL_DELAY_SECONDS", 60.0),
        idle_wait_seconds=_number_env("IDLE_WAIT_SECONDS", 60.0),
        fetch_timeout=_number_env("FETCH_TIMEOUT", 30.0),
        notify_timeout=_number_env("NOTIFY_TIMEOUT", 30.0),
        restart_on_crash=_bool_env("RESTART_ON_CRASH", True),
        smtp_host=_env("SMTP_HOST", default="smtp.gmail.com"),
        smtp_port=int(_number_env("SMTP_PORT", 587, int)),
        smtp_username=smtp_username,
        smtp_password=smtp_password,
        smtp_use_ssl=_bool_env("SMTP_USE_SSL", False),
        email_from=_env("EMAIL_FROM", default=smtp_username),
    )
    if not settings.smtp_configured:
        logger.warning(
            "SMTP_USERNAME and SMTP_PASSWORD are not set; email notifications will fail"
        )
    return settings
