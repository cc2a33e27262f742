"""CSV snapshot persistence for cycle batches."""

from __future__ import annotations

import csv
import io
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol, Sequence

from quote_poller.data.clients import QuoteRecord

SNAPSHOT_COLUMNS = ("name", "timestamp", "open", "close", "adjclose", "high", "low", "volume")


class WriteError(Exception):
    """Base class for snapshot persistence failures. Always fatal to the poller."""

    def __init__(self, message: str, destination: str | Path, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.destination = str(destination)
        self.cause = cause


class SnapshotSerializationError(WriteError):
    """A batch could not be encoded as CSV."""


class SnapshotFilesystemError(WriteError):
    """The encoded snapshot could not be written to its destination."""


class SnapshotWriter(Protocol):
    """Protocol for snapshot writers."""

    def write(self, batch: Sequence[QuoteRecord], destination: str | Path) -> None:
        """Replace the destination with a snapshot of ``batch``."""


class CsvSnapshotWriter:
    """Write a batch as a complete CSV file, replacing any previous snapshot.

    The payload is rendered in memory and written to a sibling temporary file
    which is then moved over the destination, so readers only ever see the
    previous snapshot or the new one.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    def write(self, batch: Sequence[QuoteRecord], destination: str | Path) -> None:
        path = Path(destination)
        payload = self.render(batch, path)
        self._replace(path, payload)
        self.logger.info(
            "Wrote snapshot with %d rows to %s",
            len(batch),
            path,
            extra={"event": "snapshot_written", "rows": len(batch), "path": str(path)},
        )

    def render(self, batch: Sequence[QuoteRecord], destination: str | Path = "<memory>") -> str:
        """Return the CSV text for ``batch``, header included."""

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(SNAPSHOT_COLUMNS)
        for position, record in enumerate(batch):
            if not isinstance(record, QuoteRecord):
                raise SnapshotSerializationError(
                    f"row {position} is {type(record).__name__}, expected QuoteRecord",
                    destination,
                )
            try:
                writer.writerow(record.as_row())
            except csv.Error as exc:
                raise SnapshotSerializationError(
                    f"could not encode row {position} ({record.symbol})", destination, cause=exc
                ) from exc
        return buffer.getvalue()

    def _replace(self, path: Path, payload: str) -> None:
        temp_name: Optional[str] = None
        try:
            fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                handle.write(payload)
            os.replace(temp_name, path)
            temp_name = None
        except OSError as exc:
            raise SnapshotFilesystemError(f"could not write snapshot to {path}: {exc}", path, cause=exc) from exc
        finally:
            if temp_name is not None:
                try:
                    os.unlink(temp_name)
                except OSError:
                    self.logger.debug("Could not remove temporary snapshot %s", temp_name)


__all__ = [
    "SNAPSHOT_COLUMNS",
    "WriteError",
    "SnapshotSerializationError",
    "SnapshotFilesystemError",
    "SnapshotWriter",
    "CsvSnapshotWriter",
]
