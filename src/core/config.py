"""
Client settings.

Defaults point at the public devnet deployment of the game program. Every field can be overridden with an
environment variable named TTT_<FIELD NAME IN UPPER CASE>, e.g. TTT_POLL_INTERVAL=0.5
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, field_validator

from src.core.exceptions import InvalidRequestError

ENV_PREFIX = "TTT_"


class ClientSettings(BaseModel):
    program_id: str = "7Y8kCjUujms2w26ruzHUpayKQMtzJcnVPJzVuVWgBio1"
    rpc_url: str = "https://api.devnet.solana.com"
    poll_interval: float = 2.0
    # None: keep polling until the game ends
    poll_timeout: Optional[float] = None
    ledger_db_url: str = "sqlite:///ledger.sqlite3"

    @field_validator("poll_interval")
    @classmethod
    def validate_poll_interval(cls, value: float) -> float:
        if value <= 0:
            raise InvalidRequestError(f"poll_interval must be positive, got {value}")
        return value

    @field_validator("poll_timeout")
    @classmethod
    def validate_poll_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise InvalidRequestError(f"poll_timeout must be positive, got {value}")
        return value

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "ClientSettings":
        """Pick up overrides from the environment. Empty values are ignored."""
        environ = os.environ if environ is None else environ
        overrides = {
            name: environ[f"{ENV_PREFIX}{name.upper()}"]
            for name in cls.model_fields
            if environ.get(f"{ENV_PREFIX}{name.upper()}")
        }
        return cls(**overrides)


@lru_cache
def get_settings() -> ClientSettings:
    return ClientSettings.from_env()
