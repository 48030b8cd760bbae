from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


# Environment variable names
ENV_BASE_URL = "DIRECTORY_BASE_URL"
ENV_API_KEY = "DIRECTORY_API_KEY"
ENV_TIMEOUT = "DIRECTORY_TIMEOUT"
ENV_SESSION_FILE = "DIRECTORY_SESSION_FILE"
ENV_SESSION_KEY = "DIRECTORY_SESSION_KEY"
ENV_NOTICE_TTL = "DIRECTORY_NOTICE_TTL"

DEFAULT_BASE_URL = "https://reqres.in"
DEFAULT_SESSION_FILE = ".cache/session.json"


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


def _getfloat(name: str, default: float) -> float:
    raw = _getenv(name)
    if raw is None:
        return default
    try:
        val = float(raw)
    except ValueError as ex:
        raise RuntimeError(f"Invalid value for {name}: {raw!r}") from ex
    if val <= 0:
        raise RuntimeError(f"{name} must be > 0, got {raw!r}")
    return val


@dataclass(frozen=True)
class DirectorySettings:
    """
    Runtime settings for the directory client.

    Environment variables (all optional)
    - `DIRECTORY_BASE_URL`:     API root, e.g. "https://reqres.in"
    - `DIRECTORY_API_KEY`:      sent as `x-api-key` when set
    - `DIRECTORY_TIMEOUT`:      per-request timeout in seconds
    - `DIRECTORY_SESSION_FILE`: where the session token is persisted
    - `DIRECTORY_SESSION_KEY`:  Fernet key; encrypts the token at rest when set
    - `DIRECTORY_NOTICE_TTL`:   seconds a success notice stays visible
    """

    base_url: str = DEFAULT_BASE_URL
    api_key: Optional[str] = None
    timeout: float = 15.0
    session_file: str = DEFAULT_SESSION_FILE
    session_key: Optional[str] = None
    notice_ttl: float = 3.0

    @classmethod
    def from_env(cls) -> "DirectorySettings":
        return cls(
            base_url=_getenv(ENV_BASE_URL, DEFAULT_BASE_URL) or DEFAULT_BASE_URL,
            api_key=_getenv(ENV_API_KEY),
            timeout=_getfloat(ENV_TIMEOUT, 15.0),
            session_file=_getenv(ENV_SESSION_FILE, DEFAULT_SESSION_FILE) or DEFAULT_SESSION_FILE,
            session_key=_getenv(ENV_SESSION_KEY),
            notice_ttl=_getfloat(ENV_NOTICE_TTL, 3.0),
        )
