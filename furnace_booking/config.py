"""Environment-driven settings for the booking services."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .remote_store import DEFAULT_TIMEOUT, RemoteBookingStore
from .store import BookingStore
from .yaml_store import DEFAULT_STORAGE_KEY, YamlBookingStore

# A deployment URL still carrying this marker has not been configured yet.
PLACEHOLDER_MARKER = "YOUR_ID_HERE"


@dataclass(frozen=True)
class Settings:
    api_url: str = ""
    data_dir: Path = Path("data")
    storage_key: str = DEFAULT_STORAGE_KEY
    http_timeout: float = DEFAULT_TIMEOUT
    log_level: str = "INFO"

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            api_url=os.environ.get("FURNACE_API_URL", "").strip(),
            data_dir=Path(os.environ.get("FURNACE_DATA_DIR", "data")),
            storage_key=os.environ.get("FURNACE_STORAGE_KEY", DEFAULT_STORAGE_KEY),
            http_timeout=float(os.environ.get("FURNACE_HTTP_TIMEOUT", DEFAULT_TIMEOUT)),
            log_level=os.environ.get("FURNACE_LOG_LEVEL", "INFO").upper(),
        )

    @property
    def is_mock_mode(self) -> bool:
        return not self.api_url or PLACEHOLDER_MARKER in self.api_url


def create_store(settings: Settings | None = None) -> BookingStore:
    settings = settings or Settings.from_env()
    if settings.is_mock_mode:
        return YamlBookingStore(settings.data_dir, storage_key=settings.storage_key)
    return RemoteBookingStore(settings.api_url, timeout=settings.http_timeout)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
