"""
FolderSync reconciliation engine.

Implements one-way mirroring of a source tree into a replica tree. Each
cycle rescans both trees from scratch; nothing carries over between cycles
except an optional digest cache.
"""

from __future__ import annotations

from datetime import datetime

import humanize

from foldersync.core.config import FolderSyncConfig
from foldersync.core.exceptions import CycleCancelled, ScanFailure
from foldersync.core.logging import OperationLogger, SyncLogger, get_logger
from foldersync.core.models import (
    ActionKind,
    ActionOutcome,
    ComparisonStatus,
    SyncAction,
    SyncCycleOutcome,
)
from foldersync.core.scheduler import CancellationToken
from foldersync.sync.comparator import ContentComparator, DigestCache
from foldersync.sync.replicator import Replicator
from foldersync.sync.scanner import scan_tree

logger = get_logger(__name__)


class SyncEngine:
    """Runs scan-compare-reconcile passes between two directory trees."""

    def __init__(
        self,
        config: FolderSyncConfig,
        sync_logger: SyncLogger,
        token: CancellationToken | None = None,
        comparator: ContentComparator | None = None,
        replicator: Replicator | None = None,
    ) -> None:
        self.config = config
        self.source_root = config.source
        self.replica_root = config.replica
        self.exclude_patterns = list(config.settings.exclude_patterns)
        self.sync_logger = sync_logger
        self.token = token or CancellationToken()

        if comparator is None:
            cache = DigestCache() if config.settings.digest_cache else None
            comparator = ContentComparator(chunk_size=config.settings.chunk_size, cache=cache)
        self.comparator = comparator

        self.replicator = replicator or Replicator(
            self.source_root,
            self.replica_root,
            self.comparator,
            sync_logger,
            verify_retries=config.settings.verify_retries,
            retry_backoff_seconds=config.settings.retry_backoff_seconds,
        )

    def plan(self) -> list[SyncAction]:
        """
        Decide the actions needed to make the replica mirror the source.

        Raises ScanFailure if either tree cannot be enumerated completely.
        """
        actions, _ = self._plan()
        return actions

    def _plan(self) -> tuple[list[SyncAction], list[str]]:
        source_paths = set(scan_tree(self.source_root, self.exclude_patterns))
        replica_paths = set(scan_tree(self.replica_root, self.exclude_patterns))
        logger.debug(
            "Trees scanned",
            source_files=len(source_paths),
            replica_files=len(replica_paths),
        )
        self.comparator.retain(
            [self.replicator.source_path(p) for p in source_paths]
            + [self.replicator.replica_path(p) for p in replica_paths]
        )

        # Deletes run first so a path that turned from directory into file (or
        # back) can be copied in the same cycle.
        actions: list[SyncAction] = [
            SyncAction.delete(relative_path)
            for relative_path in sorted(replica_paths - source_paths)
        ]
        skipped: list[str] = []
        for relative_path in sorted(source_paths):
            if relative_path not in replica_paths:
                actions.append(SyncAction.copy_new(relative_path))
                continue
            action = self._decide(relative_path, skipped)
            if action is not None:
                actions.append(action)

        return actions, skipped

    def run_cycle(self) -> SyncCycleOutcome:
        """Run one reconciliation pass and log its outcome."""
        outcome = SyncCycleOutcome(started_at=datetime.now())

        with OperationLogger(
            "sync cycle",
            logger,
            source=str(self.source_root),
            replica=str(self.replica_root),
        ) as operation:
            try:
                actions, outcome.skipped = self._plan()
            except ScanFailure as e:
                outcome.error = str(e)
                outcome.ended_at = datetime.now()
                self.sync_logger.error(f"Error during synchronization: {e}")
                return outcome

            operation.update(actions=len(actions))
            try:
                for action in actions:
                    self.token.check_cancelled()
                    outcome.outcomes.append(self.execute(action))
            except CycleCancelled:
                outcome.cancelled = True
                self.sync_logger.warning(
                    "Synchronization cancelled; remaining actions skipped until next run."
                )

        outcome.ended_at = datetime.now()
        logger.debug("Cycle outcome", **outcome.to_dict()["summary"])  # type: ignore[arg-type]
        self.sync_logger.info(self.summarize(outcome))
        return outcome

    def execute(self, action: SyncAction) -> ActionOutcome:
        """Execute a single action through the replicator."""
        if action.kind is ActionKind.COPY_NEW:
            return self.replicator.copy(action.relative_path)
        if action.kind is ActionKind.COPY_OVERWRITE:
            # The stale copy goes first so a failed copy leaves the path absent.
            self.replicator.delete(action.relative_path)
            return self.replicator.copy(action.relative_path, ActionKind.COPY_OVERWRITE)
        return self.replicator.delete(action.relative_path)

    def dry_run(self) -> list[SyncAction]:
        """Plan a cycle and log the actions without executing them."""
        try:
            actions = self.plan()
        except ScanFailure as e:
            self.sync_logger.error(f"Error during synchronization: {e}")
            raise

        for action in actions:
            self.sync_logger.info(f"Would {action.describe()}")
        self.sync_logger.info(f"Dry run: {len(actions)} action(s) planned.")
        return actions

    def summarize(self, outcome: SyncCycleOutcome) -> str:
        duration = humanize.precisedelta(outcome.duration_seconds or 0, minimum_unit="milliseconds")
        summary = (
            f"Cycle finished in {duration}: {outcome.attempted} action(s), "
            f"{outcome.succeeded} succeeded, {outcome.failed} failed, "
            f"{humanize.naturalsize(outcome.bytes_written, binary=True)} written."
        )
        if outcome.cancelled:
            summary += " Cancelled before completion."
        return summary

    def _decide(self, relative_path: str, skipped: list[str]) -> SyncAction | None:
        """Compare a path present in both trees; record it in ``skipped`` if unreadable."""
        source = self.replicator.source_path(relative_path)
        replica = self.replicator.replica_path(relative_path)

        result = self.comparator.are_identical(source, replica)
        if result.status is ComparisonStatus.IDENTICAL:
            return None
        if result.status is ComparisonStatus.DIFFERENT:
            return SyncAction.copy_overwrite(relative_path)

        assert result.error is not None
        self.sync_logger.error(
            f"Error comparing files: {source} and {replica}: {result.error.cause}"
        )
        if result.error.path == source:
            # Source unreadable: copying cannot succeed, retry next cycle.
            skipped.append(relative_path)
            return None
        return SyncAction.copy_overwrite(relative_path)
