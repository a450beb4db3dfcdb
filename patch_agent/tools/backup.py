"""Backup and restore of the configuration directory.

Checking out the upstream branch removes tracked configuration files from
the working tree, so their contents are read into memory (and a temporary
file) beforehand and written back once the directory exists again.
"""

import tempfile
from pathlib import Path
from typing import List

from ..errors import BackupError
from ..models import BackupEntry
from ..utils import get_logger


class ConfigBackupStore:
    """Snapshots and restores the files directly inside one directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.logger = get_logger(__name__)

    def snapshot(self) -> List[BackupEntry]:
        """
        Capture every readable regular file directly inside the directory.

        Files that cannot be read as text are left out.

        Returns:
            Entries sorted by filename

        Raises:
            BackupError: If the directory itself cannot be listed
        """
        try:
            paths = sorted(p for p in self.directory.iterdir() if p.is_file())
        except OSError as e:
            raise BackupError(f"Could not read files in directory {self.directory}: {e}") from e

        entries = []
        for path in paths:
            try:
                with open(path, encoding="utf-8", newline="") as f:
                    content = f.read()
            except (OSError, UnicodeDecodeError) as e:
                self.logger.warning(f"Not backing up {path.name}: {e}")
                continue

            handle = tempfile.TemporaryFile(mode="w+", encoding="utf-8", newline="")
            handle.write(content)
            handle.flush()
            entries.append(BackupEntry(filename=path.name, content=content, temp_storage=handle))

        self.logger.debug(f"Backed up {len(entries)} files from {self.directory}")
        return entries

    def restore(self, entries: List[BackupEntry]) -> None:
        """
        Write every entry back into the directory, overwriting existing files.

        The directory must already exist.

        Raises:
            BackupError: On the first file that cannot be written
        """
        for entry in entries:
            self.restore_one(entry)

    def restore_one(self, entry: BackupEntry) -> Path:
        path = self.directory / entry.filename
        try:
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write(entry.content)
        except OSError as e:
            raise BackupError(f"Could not restore {entry.filename}: {e}") from e
        return path

    @staticmethod
    def discard(entries: List[BackupEntry]) -> None:
        """Close the temporary files held by ``entries``."""
        for entry in entries:
            if entry.temp_storage is not None:
                entry.temp_storage.close()
