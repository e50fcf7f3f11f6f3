"""
mermaid-sync backend - Synchronization controller, editing operations and the API server.
"""

from .scheduling import AsyncioScheduler, Debouncer, Scheduler
from .sync_controller import SyncController, SyncState
from .diagram_manager import DiagramManager
from .autosave import AutoSaver

__all__ = [
    "AsyncioScheduler",
    "Debouncer",
    "Scheduler",
    "SyncController",
    "SyncState",
    "DiagramManager",
    "AutoSaver",
]
