"""
JSON File Storage Implementation

DESIGN DECISION: Local files are used as the on-device storage backend
because:
1. No database setup required
2. Users can inspect and back up their data by copying a folder
3. The whole-document persistence model maps directly onto one file per key

TRADEOFFS:
- Every write rewrites the whole document (fine for personal use)
- No transactions; a temp file + os.replace keeps each write atomic

The implementation follows the abstract interface, so we can swap
to SQLite or a platform key-value store later without changing business
logic.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_tracker.services.storage.interface import (
    KeyValueStorageInterface,
    StorageReadError,
    StorageWriteError,
)


_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStorage(KeyValueStorageInterface):
    """
    Key-value storage backed by one `<key>.json` file per key.

    Writes go to a temporary file in the same directory and are then moved
    into place, so a reader never sees a half-written document.
    Transient OS errors during a write are retried a few times before the
    write is reported as failed.
    """

    def __init__(
        self,
        data_dir: Path,
        write_attempts: int = 3,
        retry_wait_seconds: float = 0.5,
    ):
        self._data_dir = Path(data_dir)
        self._write_attempts = write_attempts
        self._retry_wait_seconds = retry_wait_seconds

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, key: str) -> Path:
        """File that holds the document for a key."""
        if not _KEY_PATTERN.match(key) or key in (".", ".."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._data_dir / f"{key}.json"

    async def get(self, key: str) -> Optional[str]:
        """Read a document; a missing file means the key was never written."""
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageReadError(f"Failed to read {path}: {e}")

    async def set(self, key: str, text: str) -> None:
        """Atomically replace the document for a key."""
        path = self.path_for(key)
        retrying = Retrying(
            stop=stop_after_attempt(self._write_attempts),
            wait=wait_exponential(
                multiplier=self._retry_wait_seconds,
                max=self._retry_wait_seconds * 8,
            ),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    self._write_atomic(path, text)
        except OSError as e:
            raise StorageWriteError(f"Failed to write {path}: {e}")

    def _write_atomic(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.stem}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            # Leave no stray temp files behind on failure
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
