from __future__ import annotations

import time
from typing import Callable, Literal, Optional

from pydantic import BaseModel


NoticeKind = Literal["success", "error"]


class Notice(BaseModel):
    """
    A user-visible status message.

    Holds only the text and an absolute expiry on the `time.monotonic` scale;
    the rendering layer decides when to stop showing it via `is_active(now)`.
    `expires_at=None` means the notice stays until replaced.
    """

    kind: NoticeKind
    message: str
    expires_at: Optional[float] = None

    def is_active(self, now: float) -> bool:
        return self.expires_at is None or now < self.expires_at


class NoticeFactory:
    """Builds notices against an injectable clock (success ones expire after `ttl`)."""

    def __init__(self, *, ttl: float = 3.0, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be > 0")
        self._ttl = ttl
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def success(self, message: str) -> Notice:
        return Notice(kind="success", message=message, expires_at=self._clock() + self._ttl)

    def error(self, message: str) -> Notice:
        return Notice(kind="error", message=message)
