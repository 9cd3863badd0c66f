"""
Observer hook for sync run events.

The reconciler reports what it sees and decides (scan window, leaf count,
publish decisions) through a SyncObserver. Observers never influence the run.
"""

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class SyncObserver(Protocol):
    """Receives structured events from a sync run."""

    def emit(self, event: str, **fields: Any) -> None: ...


class LoggingObserver:
    """Writes events as `event key=value ...` log lines."""

    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    def emit(self, event: str, **fields: Any) -> None:
        details = " ".join(f"{key}={value}" for key, value in fields.items())
        logger.log(self.level, f"{event} {details}".rstrip())
