"""
Directory tree enumeration.
"""

from __future__ import annotations

import fnmatch
import os
import stat
from pathlib import Path
from typing import Iterable, Iterator

from foldersync.core.exceptions import ScanFailure


def is_excluded(relative_path: str, patterns: Iterable[str]) -> bool:
    name = relative_path.rsplit("/", 1)[-1]
    return any(
        fnmatch.fnmatch(relative_path, pattern) or fnmatch.fnmatch(name, pattern)
        for pattern in patterns
    )


def scan_tree(root: Path, exclude_patterns: Iterable[str] = ()) -> Iterator[str]:
    """
    Yield the relative path of every regular file under ``root``.

    Paths use ``/`` as separator. Symbolic links are never followed or
    yielded. Any error listing a directory or inspecting an entry, the root
    included, raises ScanFailure: a partial listing would make present
    files look absent.
    """
    patterns = list(exclude_patterns)

    def on_error(error: OSError) -> None:
        raise ScanFailure(root, error)

    def entry_mode(path: Path) -> int | None:
        try:
            return path.lstat().st_mode
        except FileNotFoundError:
            # Removed between listing and inspection.
            return None
        except OSError as e:
            raise ScanFailure(root, e) from e

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error, followlinks=False):
        current = Path(dirpath)
        base = current.relative_to(root).as_posix()
        prefix = "" if base == "." else f"{base}/"

        kept_dirs = []
        for d in dirnames:
            if is_excluded(prefix + d, patterns):
                continue
            mode = entry_mode(current / d)
            if mode is not None and stat.S_ISDIR(mode):
                kept_dirs.append(d)
        dirnames[:] = kept_dirs

        for filename in filenames:
            relative_path = prefix + filename
            if is_excluded(relative_path, patterns):
                continue
            mode = entry_mode(current / filename)
            if mode is None or not stat.S_ISREG(mode):
                continue
            yield relative_path
