"""Configuration and environment handling for crmdesk."""

import os
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

BACKEND_MOCK = "mock"
BACKEND_REMOTE = "remote"


def _env_number(name: str, default: str, cast=int):
    """Read a numeric variable, naming it in the error if it does not parse."""
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError:
        kind = "an integer" if cast is int else "a number"
        raise ValueError(f"{name} must be {kind}, got {raw!r}") from None


class RecordServiceConfig:
    """Remote record-service configuration."""

    def __init__(self):
        self.base_url: str = os.getenv("CRM_RECORD_SERVICE_URL", "")
        self.project_id: str = os.getenv("CRM_PROJECT_ID", "")
        self.public_key: str = os.getenv("CRM_PUBLIC_KEY", "")
        self.page_size: int = _env_number("CRM_PAGE_SIZE", "100")
        self.max_retries: int = _env_number("CRM_MAX_RETRIES", "3")
        self.timeout_s: float = _env_number("CRM_TIMEOUT_S", "30", float)

    def missing(self) -> list:
        """Names of required settings that are empty."""
        required = {
            "CRM_RECORD_SERVICE_URL": self.base_url,
            "CRM_PROJECT_ID": self.project_id,
            "CRM_PUBLIC_KEY": self.public_key,
        }
        return [name for name, value in required.items() if not value]


class Config:
    """Central configuration object.

    Reads the environment at construction time; build a new instance to pick
    up changes. A ``.env`` file in the working directory (or ``env_file``) is
    loaded first without overriding variables that are already set.

    Raises:
        ValueError: If a numeric variable does not parse
    """

    def __init__(self, env_file: Optional[Path] = None):
        env_path = env_file or Path.cwd() / ".env"
        if env_path.exists():
            load_dotenv(env_path)

        # Backend selection
        self.backend: str = os.getenv("CRM_BACKEND", BACKEND_MOCK).strip().lower()

        # Mock store latency (milliseconds)
        self.mock_latency_min_ms: int = _env_number("CRM_MOCK_LATENCY_MIN_MS", "150")
        self.mock_latency_max_ms: int = _env_number("CRM_MOCK_LATENCY_MAX_MS", "400")

        # Logging
        self.log_level: str = os.getenv("CRM_LOG_LEVEL", "INFO")

        # Record service
        self.record_service = RecordServiceConfig()

    @property
    def mock_latency(self) -> Tuple[float, float]:
        """Mock latency range in seconds."""
        low = self.mock_latency_min_ms / 1000.0
        high = self.mock_latency_max_ms / 1000.0
        return (min(low, high), high)
