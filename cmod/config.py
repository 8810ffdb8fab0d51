"""Runtime configuration for cmod.

Configuration is read from the environment once, at the edges (CLI, web app),
and handed to the engine as small immutable objects.  Nothing inside the
decision logic reads ``os.environ`` directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

# Values shipped in sample .env files; treated as "not configured".
PLACEHOLDER_ENDPOINT = "your_azure_endpoint"
PLACEHOLDER_KEY = "your_azure_subscription_key"

DEFAULT_REGION = "francecentral"
DEFAULT_TIMEOUT = 5.0


@dataclass(frozen=True)
class ClassifierConfig:
    """Connection details for the remote classification service."""

    endpoint: str = ""
    subscription_key: str = ""
    region: str = DEFAULT_REGION
    timeout: float = DEFAULT_TIMEOUT

    @property
    def is_configured(self) -> bool:
        """Return *True* when the remote service may be called at all."""
        if not self.endpoint or not self.subscription_key:
            return False
        if self.endpoint == PLACEHOLDER_ENDPOINT or self.subscription_key == PLACEHOLDER_KEY:
            return False
        return self.endpoint.startswith("https://")

    @classmethod
    def from_env(cls) -> ClassifierConfig:
        timeout_raw = os.environ.get("CMOD_CLASSIFIER_TIMEOUT", "")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT
        except ValueError:
            timeout = DEFAULT_TIMEOUT
        return cls(
            endpoint=os.environ.get("AZURE_CONTENT_MODERATOR_ENDPOINT", "").rstrip("/"),
            subscription_key=os.environ.get("AZURE_CONTENT_MODERATOR_KEY", ""),
            region=os.environ.get("AZURE_REGION", DEFAULT_REGION),
            timeout=timeout,
        )

    def describe(self) -> dict:
        """Redacted view of the config, safe to log."""
        return {
            "has_endpoint": bool(self.endpoint),
            "has_key": bool(self.subscription_key),
            "region": self.region,
            "timeout": self.timeout,
            "configured": self.is_configured,
        }


@dataclass(frozen=True)
class Settings:
    """Filesystem locations used by the stores."""

    data_dir: Path

    @property
    def records_dir(self) -> Path:
        return self.data_dir / "moderation"

    @property
    def catalog_dir(self) -> Path:
        return self.data_dir / "catalog"

    @property
    def audit_dir(self) -> Path:
        return self.data_dir / "audit"

    @classmethod
    def from_env(cls, data_dir: str | Path | None = None) -> Settings:
        if data_dir is None:
            data_dir = os.environ.get("CMOD_HOME") or Path.home() / ".cmod"
        return cls(data_dir=Path(data_dir))
