"""
FolderSync data models.

Everything here lives for one cycle at most; nothing is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto

from foldersync.core.exceptions import DigestFailure


class ComparisonStatus(Enum):
    """Outcome of comparing two files by digest."""

    IDENTICAL = auto()
    DIFFERENT = auto()
    FAILED = auto()


@dataclass(frozen=True)
class ComparisonResult:
    """Result of comparing a source file with its replica counterpart."""

    status: ComparisonStatus
    error: DigestFailure | None = None

    @classmethod
    def identical(cls) -> ComparisonResult:
        return cls(ComparisonStatus.IDENTICAL)

    @classmethod
    def different(cls) -> ComparisonResult:
        return cls(ComparisonStatus.DIFFERENT)

    @classmethod
    def failed(cls, error: DigestFailure) -> ComparisonResult:
        return cls(ComparisonStatus.FAILED, error)

    @property
    def is_identical(self) -> bool:
        return self.status is ComparisonStatus.IDENTICAL

    @property
    def is_failed(self) -> bool:
        return self.status is ComparisonStatus.FAILED


class ActionKind(Enum):
    """Kinds of reconciliation actions."""

    COPY_NEW = auto()
    COPY_OVERWRITE = auto()
    DELETE = auto()


@dataclass(frozen=True)
class SyncAction:
    """The reconciliation decision for one relative path."""

    kind: ActionKind
    relative_path: str

    @classmethod
    def copy_new(cls, relative_path: str) -> SyncAction:
        return cls(ActionKind.COPY_NEW, relative_path)

    @classmethod
    def copy_overwrite(cls, relative_path: str) -> SyncAction:
        return cls(ActionKind.COPY_OVERWRITE, relative_path)

    @classmethod
    def delete(cls, relative_path: str) -> SyncAction:
        return cls(ActionKind.DELETE, relative_path)

    def describe(self) -> str:
        verb = {
            ActionKind.COPY_NEW: "copy",
            ActionKind.COPY_OVERWRITE: "overwrite",
            ActionKind.DELETE: "delete",
        }[self.kind]
        return f"{verb} {self.relative_path}"


@dataclass
class ActionOutcome:
    """Result of executing one SyncAction."""

    action: SyncAction
    success: bool
    message: str
    bytes_written: int = 0
    verification_failed: bool = False


@dataclass
class SyncCycleOutcome:
    """Aggregate of one reconciliation pass, used for the summary line."""

    started_at: datetime
    ended_at: datetime | None = None
    outcomes: list[ActionOutcome] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    error: str | None = None
    cancelled: bool = False

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failed(self) -> int:
        # Paths left unsynchronized because their source could not be read count too.
        return sum(1 for outcome in self.outcomes if not outcome.success) + len(self.skipped)

    @property
    def aborted(self) -> bool:
        return self.error is not None

    @property
    def bytes_written(self) -> int:
        return sum(outcome.bytes_written for outcome in self.outcomes)

    @property
    def duration_seconds(self) -> float | None:
        if self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, object]:
        return {
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "summary": {
                "attempted": self.attempted,
                "succeeded": self.succeeded,
                "failed": self.failed,
                "bytes_written": self.bytes_written,
            },
            "actions": [
                {
                    "kind": outcome.action.kind.name,
                    "relative_path": outcome.action.relative_path,
                    "success": outcome.success,
                    "message": outcome.message,
                }
                for outcome in self.outcomes
            ],
            "skipped": list(self.skipped),
            "error": self.error,
            "cancelled": self.cancelled,
        }
