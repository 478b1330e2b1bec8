"""
FolderSync Core - Configuration, logging and scheduling.

Contains the validated configuration, the sync journal, the data models
shared by the engine, and the scheduling loop.
"""

from foldersync.core.config import FolderSyncConfig, LoggingConfig, SyncSettings, build_config
from foldersync.core.logging import SyncLogger, get_logger, setup_logging
from foldersync.core.scheduler import CancellationToken, Scheduler, SchedulerState

__all__ = [
    "FolderSyncConfig",
    "LoggingConfig",
    "SyncSettings",
    "build_config",
    "SyncLogger",
    "get_logger",
    "setup_logging",
    "CancellationToken",
    "Scheduler",
    "SchedulerState",
]
