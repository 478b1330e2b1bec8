"""
Pytest configuration and fixtures for FolderSync tests.
"""

import io
import sys
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest
from rich.console import Console

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from foldersync.core.config import FolderSyncConfig, SyncSettings  # noqa: E402
from foldersync.core.logging import SyncLogger  # noqa: E402


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def source_dir(temp_dir: Path) -> Path:
    path = temp_dir / "source"
    path.mkdir()
    return path


@pytest.fixture
def replica_dir(temp_dir: Path) -> Path:
    path = temp_dir / "replica"
    path.mkdir()
    return path


@pytest.fixture
def log_file(temp_dir: Path) -> Path:
    return temp_dir / "logs" / "sync.log"


@pytest.fixture
def console_output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def sync_logger(log_file: Path, console_output: io.StringIO) -> Generator[SyncLogger, None, None]:
    """A SyncLogger whose console output is captured in ``console_output``."""
    console = Console(file=console_output, width=200, color_system=None)
    with SyncLogger(log_file, console=console) as logger:
        yield logger


@pytest.fixture
def make_config(
    source_dir: Path, replica_dir: Path, log_file: Path
) -> Callable[..., FolderSyncConfig]:
    """Build a FolderSyncConfig for the temporary trees."""

    def factory(**settings: object) -> FolderSyncConfig:
        return FolderSyncConfig(
            source=source_dir,
            replica=replica_dir,
            interval_seconds=1,
            log_file=log_file,
            settings=SyncSettings(**settings),
        )

    return factory


def _write_file(root: Path, relative_path: str, content: str | bytes) -> Path:
    path = root.joinpath(*relative_path.split("/"))
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, str):
        content = content.encode("utf-8")
    path.write_bytes(content)
    return path


@pytest.fixture
def write_file() -> Callable[[Path, str, str | bytes], Path]:
    """Create a file (and its parents) under a root."""
    return _write_file


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow running tests")
