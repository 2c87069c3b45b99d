"""Local JSON persistence for undelivered reports."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path

from paneltest_core.errors import PersistenceError
from paneltest_core.types.board import UploadFailureRecord

logger = logging.getLogger(__name__)


class JsonFailureStore:
    """Failure list stored as one JSON array.

    Every save rewrites the whole file through a temporary file and an
    atomic rename, so a crash mid-write leaves the previous complete array.

    Example:
        >>> store = JsonFailureStore("failed_reports.json")
        >>> records = store.load()
        >>> store.save(records + [UploadFailureRecord(board, "HTTP 500")])
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        """Return the file path."""
        return self._path

    def load(self) -> list[UploadFailureRecord]:
        """Load persisted records.

        A missing file means no failures. An unreadable or malformed file is
        logged and treated as empty.
        """
        if not self._path.exists():
            return []

        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, list):
                raise ValueError(f"expected a JSON array, got {type(data).__name__}")
            records = [UploadFailureRecord.from_dict(item) for item in data]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable failure file %s: %s", self._path, e)
            return []

        logger.info("Loaded %d failed report(s) from %s", len(records), self._path)
        return records

    def save(self, records: Sequence[UploadFailureRecord]) -> None:
        """Replace the file contents with ``records``.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        directory = self._path.parent
        tmp_name: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=directory,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                json.dump([r.to_dict() for r in records], f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Failed to write {self._path}: {e}") from e
