"""Infrastructure utilities for configuration, logging, and snapshot persistence."""

from .config import ConfigError, PollerConfig, load_config
from .logging import configure_logging
from .persistence import (
    CsvSnapshotWriter,
    SnapshotFilesystemError,
    SnapshotSerializationError,
    SnapshotWriter,
    WriteError,
)

__all__ = [
    "ConfigError",
    "PollerConfig",
    "load_config",
    "configure_logging",
    "CsvSnapshotWriter",
    "SnapshotFilesystemError",
    "SnapshotSerializationError",
    "SnapshotWriter",
    "WriteError",
]
