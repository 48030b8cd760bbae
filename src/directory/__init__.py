"""
Client-side synchronization for the paginated user directory.

Modules:
- cache: page/full/display views over one record store
- controller: paginated vs. searching mode machine
- sync: server-confirmed update/delete applied to every view
- guard: session-token gate in front of the directory
- handler: DirectoryView wiring one session together
"""

from .handler import DirectoryView, sign_in

__all__ = ["DirectoryView", "sign_in"]
