# config.py
# Settings read from the environment (and a .env file, if present).

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError

BASE_DIR = Path(__file__).resolve().parent.parent
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class DuplicatePolicy(str, Enum):
    ALLOW = "allow"
    DEDUPE = "dedupe"


@dataclass(frozen=True)
class Settings:
    data_dir: Path = BASE_DIR / "data"
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.7
    ai_timeout_seconds: float = 60.0
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.ALLOW
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    mail_from: str = "procurement@rfpflow.local"
    seed_demo_vendors: bool = False
    log_level: str = "INFO"


def _flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _number(name: str, default, cast):
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return cast(value)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {value!r}")


def load_settings() -> Settings:
    load_dotenv()

    openai_key = os.getenv("OPENAI_API_KEY")
    openrouter_key = os.getenv("OPENROUTER_API_KEY")
    base_url = os.getenv("OPENAI_BASE_URL")
    if not openai_key and openrouter_key and not base_url:
        base_url = OPENROUTER_BASE_URL

    policy = os.getenv("DUPLICATE_POLICY", DuplicatePolicy.ALLOW.value).strip().lower()
    try:
        duplicate_policy = DuplicatePolicy(policy)
    except ValueError:
        allowed = ", ".join(p.value for p in DuplicatePolicy)
        raise ConfigError(f"DUPLICATE_POLICY must be one of {allowed}, got {policy!r}")

    data_dir = os.getenv("RFPFLOW_DATA_DIR")

    return Settings(
        data_dir=Path(data_dir) if data_dir else BASE_DIR / "data",
        openai_api_key=openai_key or openrouter_key,
        openai_base_url=base_url,
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        openai_temperature=_number("OPENAI_TEMPERATURE", 0.7, float),
        ai_timeout_seconds=_number("AI_TIMEOUT_SECONDS", 60.0, float),
        duplicate_policy=duplicate_policy,
        smtp_host=os.getenv("SMTP_HOST") or None,
        smtp_port=_number("SMTP_PORT", 587, int),
        smtp_username=os.getenv("SMTP_USERNAME"),
        smtp_password=os.getenv("SMTP_PASSWORD"),
        smtp_use_tls=_flag("SMTP_USE_TLS", True),
        mail_from=os.getenv("MAIL_FROM", "procurement@rfpflow.local"),
        seed_demo_vendors=_flag("SEED_DEMO_VENDORS", False),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
