"""
FolderSync - One-way directory mirroring on a fixed interval.

Keeps a replica directory byte-identical to a source directory by
comparing SHA-256 digests and copying or deleting files every cycle.
"""

__version__ = "1.0.0"
__author__ = "FolderSync Team"

from foldersync.core.config import FolderSyncConfig, build_config
from foldersync.sync.engine import SyncEngine

__all__ = ["FolderSyncConfig", "SyncEngine", "build_config", "__version__"]
