"""
FolderSync sync module.

Provides tree scanning, digest comparison, replica actions and the
reconciliation engine.
"""

from foldersync.sync.comparator import ContentComparator, DigestCache
from foldersync.sync.engine import SyncEngine
from foldersync.sync.replicator import Replicator
from foldersync.sync.scanner import scan_tree

__all__ = ["ContentComparator", "DigestCache", "Replicator", "SyncEngine", "scan_tree"]
