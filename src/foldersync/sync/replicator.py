"""
Applies reconciliation actions to the replica tree.
"""

from __future__ import annotations

import os
import shutil
import time
from collections.abc import Callable
from pathlib import Path

from foldersync.core.exceptions import CopyFailure, DeleteFailure
from foldersync.core.logging import SyncLogger, get_logger
from foldersync.core.models import ActionKind, ActionOutcome, SyncAction
from foldersync.sync.comparator import ContentComparator

logger = get_logger(__name__)

CopyFunc = Callable[[Path, Path], object]


class Replicator:
    """
    Copies files into the replica and deletes files from it.

    Every copy is verified by digest afterwards. I/O failures are logged
    and reported as failed outcomes; they never propagate to the caller.
    """

    def __init__(
        self,
        source_root: Path,
        replica_root: Path,
        comparator: ContentComparator,
        sync_logger: SyncLogger,
        *,
        verify_retries: int = 0,
        retry_backoff_seconds: float = 1.0,
        copy_func: CopyFunc = shutil.copyfile,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.source_root = source_root
        self.replica_root = replica_root
        self.comparator = comparator
        self.sync_logger = sync_logger
        self.verify_retries = verify_retries
        self.retry_backoff_seconds = retry_backoff_seconds
        self._copy_func = copy_func
        self._sleep = sleep

    def source_path(self, relative_path: str) -> Path:
        return self.source_root.joinpath(*relative_path.split("/"))

    def replica_path(self, relative_path: str) -> Path:
        return self.replica_root.joinpath(*relative_path.split("/"))

    def copy(
        self, relative_path: str, kind: ActionKind = ActionKind.COPY_NEW
    ) -> ActionOutcome:
        """Copy a source file over its replica path and verify the result."""
        action = SyncAction(kind, relative_path)
        source = self.source_path(relative_path)
        replica = self.replica_path(relative_path)
        attempts = 1 + self.verify_retries

        message = ""
        for attempt in range(1, attempts + 1):
            try:
                written = self._copy_bytes(source, replica)
            except CopyFailure as e:
                self.sync_logger.error(str(e))
                return ActionOutcome(action, success=False, message=str(e))

            result = self.comparator.are_identical(source, replica, use_cache=False)
            if result.is_identical:
                message = f"File copied successfully: {source} -> {replica}"
                self.sync_logger.info(message)
                return ActionOutcome(action, success=True, message=message, bytes_written=written)

            message = f"File copy verification failed: {source} -> {replica}"
            if result.error is not None:
                message = f"{message}: {result.error}"
            self.sync_logger.warning(message)

            if attempt < attempts:
                delay = self.retry_backoff_seconds * attempt
                logger.debug("Retrying copy", path=relative_path, attempt=attempt + 1, delay=delay)
                self.sync_logger.info(
                    f"Retrying copy of {relative_path} (attempt {attempt + 1} of {attempts})"
                )
                self._sleep(delay)

        return ActionOutcome(action, success=False, message=message, verification_failed=True)

    def delete(self, relative_path: str) -> ActionOutcome:
        """Remove a file from the replica."""
        action = SyncAction.delete(relative_path)
        replica = self.replica_path(relative_path)
        try:
            self._remove(replica)
        except DeleteFailure as e:
            self.sync_logger.error(str(e))
            return ActionOutcome(action, success=False, message=str(e))

        message = f"File removed: {replica}"
        self.sync_logger.info(message)
        self._prune_empty_parents(replica)
        return ActionOutcome(action, success=True, message=message)

    def _copy_bytes(self, source: Path, replica: Path) -> int:
        try:
            replica.parent.mkdir(parents=True, exist_ok=True)
            self._clear_destination(replica)
            self._copy_func(source, replica)
            written = replica.stat().st_size
        except OSError as e:
            raise CopyFailure(f"Error copying file {source} to {replica}: {e}") from e
        finally:
            self.comparator.forget(replica)
        return written

    def _clear_destination(self, replica: Path) -> None:
        """Remove a symlink or a directory tree without files standing at ``replica``."""
        if replica.is_symlink():
            replica.unlink()
            return
        if not replica.is_dir():
            return
        # rmdir fails on the first directory that still holds an entry.
        for dirpath, _, _ in os.walk(replica, topdown=False):
            os.rmdir(dirpath)
            self.sync_logger.info(f"Directory removed: {dirpath}")

    def _remove(self, replica: Path) -> None:
        try:
            os.remove(replica)
        except OSError as e:
            raise DeleteFailure(f"Error deleting file {replica}: {e}") from e
        finally:
            self.comparator.forget(replica)

    def _prune_empty_parents(self, replica: Path) -> None:
        """Remove emptied replica directories that have no source counterpart."""
        parent = replica.parent
        while parent != self.replica_root and self.replica_root in parent.parents:
            relative = parent.relative_to(self.replica_root)
            if self.source_root.joinpath(relative).is_dir():
                return
            try:
                parent.rmdir()
            except OSError:
                # Still holds files.
                return
            self.sync_logger.info(f"Directory removed: {parent}")
            parent = parent.parent
