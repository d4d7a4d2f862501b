"""Input/output handlers for arus."""

from .config_manager import ConfigManager
from .data_handler import DataHandler
from .snapshot_store import SnapshotStore, Snapshot, read_snapshots, read_metadata, read_grid

__all__ = [
    "ConfigManager",
    "DataHandler",
    "SnapshotStore",
    "Snapshot",
    "read_snapshots",
    "read_metadata",
    "read_grid",
]
