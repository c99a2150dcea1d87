"""Filesystem writers used by consolidation.

Every mutating step of a consolidation goes through a writer, so a dry run
can swap in ``DryRunWriter`` and get back the same paths without touching
the disk.
"""

import logging
import shutil
from pathlib import Path

from .exceptions import StoreError

LOGGER = logging.getLogger(__name__)


class FolderWriter:
    """Performs mkdir, write and copy, recording each operation."""

    dry_run = False

    def __init__(self) -> None:
        self.operations: list[str] = []

    def mkdir(self, path: Path) -> Path:
        self.operations.append(f"mkdir {path}")
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Failed to create directory: {e}", operation="mkdir", path=path) from e
        return path

    def write_text(self, path: Path, content: str) -> Path:
        self.operations.append(f"write {path} ({len(content)} chars)")
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Failed to write file: {e}", operation="write", path=path) from e
        return path

    def copy_file(self, source: Path, target: Path) -> Path:
        self.operations.append(f"copy {source} -> {target}")
        try:
            shutil.copy2(source, target)
        except OSError as e:
            raise StoreError(
                f"Failed to copy file: {e}", operation="copy", path=source, target=target
            ) from e
        return target


class DryRunWriter(FolderWriter):
    """Records the operations a ``FolderWriter`` would perform."""

    dry_run = True

    def mkdir(self, path: Path) -> Path:
        self.operations.append(f"mkdir {path}")
        LOGGER.info("DRY RUN: would create %s", path)
        return path

    def write_text(self, path: Path, content: str) -> Path:
        self.operations.append(f"write {path} ({len(content)} chars)")
        LOGGER.info("DRY RUN: would write %s (%d chars)", path, len(content))
        return path

    def copy_file(self, source: Path, target: Path) -> Path:
        self.operations.append(f"copy {source} -> {target}")
        LOGGER.debug("DRY RUN: would copy %s to %s", source, target)
        return target


def get_writer(dry_run: bool = False) -> FolderWriter:
    return DryRunWriter() if dry_run else FolderWriter()
