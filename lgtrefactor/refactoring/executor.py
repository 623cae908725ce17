"""
Edit application for lgtrefactor.

This module provides the FileEditTransaction class that applies a
WorkspaceEditSet to files on disk, including:

- Atomic write sessions with rollback capability
- Optional backup creation before modification
- Refusal to write files changed on disk since their snapshot was taken
- Dry run previews as unified diffs

Classes:
    FileEditTransaction: Applies multi-file edit sets all-or-nothing

Example:
    >>> transaction = FileEditTransaction(documents, backup_enabled=True)
    >>> if transaction.apply(edit_set):
    ...     print("refactoring applied")
    >>>
    >>> # Preview without writing
    >>> for path, diff in transaction.preview(edit_set).items():
    ...     print(diff)
"""

from __future__ import annotations

import difflib
import logging
import os
import shutil
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..document import TextDocument
from ..edits import WorkspaceEditSet, apply_edits
from ..interfaces import DocumentProvider
from .errors import TransactionFailed

logger = logging.getLogger(__name__)


class FileEditTransaction:
    """
    Applies edit sets to the file system, all files or none.

    Edits are applied in memory against the snapshots they were computed
    from, then written file by file inside an atomic write session. If any
    write fails, every file already written is restored to its original text
    and the transaction reports failure.

    Attributes:
        documents: Snapshot provider the edits were computed against
        backup_enabled: Whether to copy each file before modifying it
        backup_directory: Where backups go (relative paths are taken
            relative to each file's directory)
        encoding: Encoding used to write files
    """

    def __init__(
        self,
        documents: DocumentProvider,
        backup_enabled: bool = False,
        backup_directory: Optional[str] = None,
        encoding: str = "utf-8",
    ):
        self.documents = documents
        self.backup_enabled = backup_enabled
        self.backup_directory = backup_directory
        self.encoding = encoding

        self._written: List[Tuple[Path, str]] = []
        self.backups: List[Path] = []

    @contextmanager
    def atomic_write_session(self):
        """
        Context manager for atomic write operations with rollback.

        Raises:
            Exception: Re-raises any exception after rollback
        """
        self._written = []
        try:
            yield
        except Exception:
            self.rollback()
            raise
        finally:
            self._written = []

    def rollback(self) -> None:
        """Restore every file written during the session."""
        logger.warning("Rolling back changes...")
        for path, original in reversed(self._written):
            try:
                self._write(path, original)
                logger.info("Restored %s", path)
            except OSError as e:
                logger.error("Failed to restore %s: %s", path, e)

    def _read(self, path: Path) -> str:
        with open(path, "r", encoding=self.encoding, newline="") as f:
            return f.read()

    def _write(self, path: Path, text: str) -> None:
        """Write through a sibling temp file so ``path`` is never left truncated."""
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            with open(tmp_path, "w", encoding=self.encoding, newline="") as f:
                f.write(text)
            os.replace(tmp_path, path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

    def create_backup(self, path: Path) -> Optional[Path]:
        """Copy ``path`` next to itself (or into the backup directory)."""
        if not self.backup_enabled:
            return None

        directory = path.parent
        if self.backup_directory:
            directory = Path(self.backup_directory)
            if not directory.is_absolute():
                directory = path.parent / directory
            directory.mkdir(parents=True, exist_ok=True)

        backup_path = directory / f"{path.stem}.backup_{int(time.time())}{path.suffix}"
        shutil.copy2(path, backup_path)
        self.backups.append(backup_path)
        logger.info("Backup created: %s", backup_path)
        return backup_path

    def rewritten(self, edit_set: WorkspaceEditSet) -> Dict[str, Tuple[TextDocument, str]]:
        """New text per file, computed against the snapshots."""
        return {
            uri: (self.documents.open(uri), apply_edits(self.documents.open(uri), edits))
            for uri, edits in edit_set.entries()
        }

    def preview(self, edit_set: WorkspaceEditSet) -> Dict[str, str]:
        """Unified diff per file, nothing written."""
        diffs = {}
        for uri, (document, new_text) in self.rewritten(edit_set).items():
            diffs[uri] = "".join(
                difflib.unified_diff(
                    document.text.splitlines(keepends=True),
                    new_text.splitlines(keepends=True),
                    fromfile=f"a/{Path(uri).name}",
                    tofile=f"b/{Path(uri).name}",
                )
            )
        return diffs

    def write_all(self, edit_set: WorkspaceEditSet) -> List[str]:
        """
        Write every file of the edit set, raising TransactionFailed on error.

        Returns:
            The paths written
        """
        pending = self.rewritten(edit_set)
        for uri, (document, _) in pending.items():
            path = Path(uri)
            current = self._read(path) if path.exists() else None
            if current != document.text:
                raise TransactionFailed(f"{path} changed on disk since the edits were computed")

        written = []
        with self.atomic_write_session():
            for uri, (document, new_text) in pending.items():
                path = Path(uri)
                self.create_backup(path)
                self._write(path, new_text)
                self._written.append((path, document.text))
                written.append(str(path))
                logger.debug("Wrote %s", path)
        return written

    def apply(self, edit_set: WorkspaceEditSet) -> bool:
        """EditTransaction entry point: True when every file was written."""
        try:
            written = self.write_all(edit_set)
        except (OSError, TransactionFailed) as e:
            logger.error("Edit transaction failed: %s", e)
            return False
        logger.info("Applied edits to %d files", len(written))
        return True
