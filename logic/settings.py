"""Runtime configuration, read from the environment (and a local .env)."""
import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

STORE_KINDS = ("json", "mongo")


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _float_env(name: str) -> Optional[float]:
    raw = _env(name)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be a number of seconds, got {raw!r}") from e


@dataclass
class Settings:
    store: str = "json"
    data_dir: str = field(default_factory=lambda: os.path.join(os.getcwd(), ".radioarchive"))
    mongo_uri: Optional[str] = None
    mongo_db_name: str = "radioarchive"
    mongo_kv_collection: str = "kv"
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-3-flash-preview"
    relay_url: Optional[str] = None
    relay_timeout: Optional[float] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        defaults = cls()
        settings = cls(
            store=(_env("RADIO_STORE", defaults.store) or "").lower(),
            data_dir=_env("RADIO_DATA_DIR", defaults.data_dir),
            mongo_uri=_env("MONGO_URI"),
            mongo_db_name=_env("MONGO_DB_NAME", defaults.mongo_db_name),
            mongo_kv_collection=_env("MONGO_KV_COLLECTION", defaults.mongo_kv_collection),
            gemini_api_key=_env("GEMINI_API_KEY"),
            gemini_model=_env("GEMINI_MODEL", defaults.gemini_model),
            relay_url=_env("AI_RELAY_URL"),
            relay_timeout=_float_env("AI_RELAY_TIMEOUT"),
            log_level=(_env("RADIO_LOG_LEVEL", defaults.log_level) or "INFO").upper(),
        )
        settings.check()
        return settings

    def check(self) -> None:
        if self.store not in STORE_KINDS:
            raise RuntimeError(f"Unknown RADIO_STORE '{self.store}', expected one of {STORE_KINDS}")
        if self.store == "mongo" and not self.mongo_uri:
            raise RuntimeError("Missing MONGO_URI in environment or .env file")

    @property
    def ai_enabled(self) -> bool:
        return bool(self.relay_url or self.gemini_api_key)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
