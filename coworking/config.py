"""
Runtime configuration.
Read once at startup from COWORKING_* environment variables.
"""

import os
from typing import Literal, Optional

from pydantic import BaseModel

from coworking.errors import ConfigurationError
from coworking.schemas.status import Currency


DEFAULT_DATA_DIR = "./data"
DEFAULT_STORAGE_QUOTA_BYTES = 5 * 1024 * 1024  # browser local storage default


class Settings(BaseModel):
    backend: Literal["local", "remote"] = "local"
    data_dir: str = DEFAULT_DATA_DIR
    remote_url: Optional[str] = None
    remote_key: Optional[str] = None
    currency: Currency = Currency.EUR
    storage_quota_bytes: int = DEFAULT_STORAGE_QUOTA_BYTES
    # overrides every per-query staleness window when set
    cache_stale_seconds: Optional[float] = None
    realtime: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        try:
            settings = cls(
                backend=env.get("COWORKING_BACKEND", "local").strip().lower(),
                data_dir=env.get("COWORKING_DATA_DIR") or DEFAULT_DATA_DIR,
                remote_url=env.get("COWORKING_REMOTE_URL") or None,
                remote_key=env.get("COWORKING_REMOTE_KEY") or None,
                currency=env.get("COWORKING_CURRENCY", Currency.EUR.value).upper(),
                storage_quota_bytes=int(
                    env.get("COWORKING_STORAGE_QUOTA_BYTES", DEFAULT_STORAGE_QUOTA_BYTES)
                ),
                cache_stale_seconds=(
                    float(env["COWORKING_CACHE_STALE_SECONDS"])
                    if env.get("COWORKING_CACHE_STALE_SECONDS")
                    else None
                ),
                realtime=env.get("COWORKING_REALTIME", "true").lower() in ("1", "true", "yes"),
                log_level=env.get("COWORKING_LOG_LEVEL", "INFO").upper(),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
        settings.ensure_backend_configured()
        return settings

    def ensure_backend_configured(self):
        """Remote storage needs both an endpoint and a credential up front."""
        if self.backend == "remote" and not (self.remote_url and self.remote_key):
            raise ConfigurationError(
                "COWORKING_BACKEND=remote requires COWORKING_REMOTE_URL and COWORKING_REMOTE_KEY"
            )
