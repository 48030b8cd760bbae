from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, Optional

from cryptography.fernet import Fernet, InvalidToken

from common.config import DirectorySettings


# Fixed storage key for the session token
TOKEN_KEY = "token"


def _to_fernet(key: str | bytes) -> Fernet:
    """Construct a Fernet instance from a user-provided key.

    The key must be a URL-safe base64-encoded 32-byte key (str or bytes),
    as returned by `cryptography.fernet.Fernet.generate_key()`.
    """
    if isinstance(key, str):
        key_bytes = key.encode("utf-8")
    else:
        key_bytes = key
    return Fernet(key_bytes)


class SessionStore:
    """
    File-backed persistence for the opaque session token.

    Usage
    - `read()` returns the token, or None when no session has been written.
    - `write(token)` stores it under the fixed `"token"` key.
    - `clear()` removes it (logout / expiry).

    The file holds a single JSON object. When a Fernet key is given the token
    value is encrypted at rest; otherwise it is stored as-is.
    """

    def __init__(self, path: os.PathLike[str] | str, *, fernet_key: Optional[str | bytes] = None) -> None:
        self._path = Path(path)
        self._fernet = _to_fernet(fernet_key) if fernet_key else None

    @classmethod
    def from_settings(cls, settings: DirectorySettings) -> "SessionStore":
        return cls(settings.session_file, fernet_key=settings.session_key)

    def _load(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as ex:
            raise ValueError(f"Failed to parse session file {self._path}") from ex
        if not isinstance(raw, dict):
            raise ValueError(f"Session file {self._path} is not a JSON object")
        return {str(k): str(v) for k, v in raw.items() if isinstance(v, str)}

    def _save(self, data: Dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)

    def read(self) -> Optional[str]:
        """Return the stored token or None.

        Raises:
        - ValueError if the file is corrupt or the token cannot be decrypted.
        """
        stored = self._load().get(TOKEN_KEY)
        if not stored:
            return None
        if self._fernet is None:
            return stored
        try:
            return self._fernet.decrypt(stored.encode("utf-8")).decode("utf-8")
        except InvalidToken as ex:
            raise ValueError("Failed to decrypt session token: invalid Fernet token") from ex

    def write(self, token: str) -> None:
        if not token:
            raise ValueError("token must be non-empty")
        value = token
        if self._fernet is not None:
            value = self._fernet.encrypt(token.encode("utf-8")).decode("utf-8")
        data = self._load()
        data[TOKEN_KEY] = value
        self._save(data)

    def clear(self) -> None:
        try:
            data = self._load()
        except ValueError:
            # Unreadable file cannot hold a usable session; drop it entirely
            self._path.unlink(missing_ok=True)
            return
        if data.pop(TOKEN_KEY, None) is not None:
            self._save(data)
