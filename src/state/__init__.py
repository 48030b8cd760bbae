"""
View state and session persistence for the user directory.

`ViewState` is the explicit per-session struct shared by the cache and the
mode controller; `SessionStore` keeps the login token between runs.
"""

from .models import Mode, ViewState
from .session_store import SessionStore

__all__ = ["Mode", "ViewState", "SessionStore"]
