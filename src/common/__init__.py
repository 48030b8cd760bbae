"""
Common utilities for the user directory client.

Modules:
- config: environment-driven settings
- directory: async API client, Record/Page models and error types
- notices: success/error notices with expiry
"""

__all__ = [
    "config",
    "directory",
    "notices",
]
