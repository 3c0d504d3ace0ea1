"""
Client settings loaded from the environment.
"""

import base64
from typing import Optional

from pydantic import ValidationError as PydanticValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 9091
DEFAULT_PATH = "/transmission/rpc"


def build_url(host: str, port: int, path: str, ssl: bool = False) -> str:
    """Build the daemon's RPC endpoint URL."""
    protocol = "https" if ssl else "http"
    return f"{protocol}://{host}:{port}{path}"


def build_auth_header(username: Optional[str], password: Optional[str] = None) -> Optional[str]:
    """
    Build a Basic Authorization header value.
    The ":password" part is left out entirely when no password is given.
    """
    if not username:
        return None
    credentials = username + (f":{password}" if password else "")
    return "Basic " + base64.b64encode(credentials.encode("utf-8")).decode("ascii")


class ClientSettings(BaseSettings):
    """Connection and logging settings, read from TRANSMISSION_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="TRANSMISSION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Connection
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    path: str = DEFAULT_PATH
    ssl: bool = False
    verify_ssl: bool = True
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: float = 30.0

    # Polling
    poll_interval: float = 1.0

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_format: str = "text"  # "text" or "json"

    @field_validator("port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        if not 1 <= value <= 65535:
            raise ValueError(f"port out of range: {value}")
        return value

    @field_validator("path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("path must start with '/'")
        return value

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        if value not in ("text", "json"):
            raise ValueError("log_format must be 'text' or 'json'")
        return value

    @property
    def url(self) -> str:
        return build_url(self.host, self.port, self.path, self.ssl)

    @property
    def auth_header(self) -> Optional[str]:
        return build_auth_header(self.username, self.password)


def load_settings(**overrides) -> ClientSettings:
    """
    Load settings from the environment, applying explicit overrides.
    Overrides whose value is None are ignored.

    Raises:
        ConfigurationError: if any value fails validation
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return ClientSettings(**values)
    except PydanticValidationError as e:
        raise ConfigurationError("Invalid client settings", details=str(e)) from e
