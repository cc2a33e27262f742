"""Polling loop that fetches every configured symbol and writes one snapshot per cycle."""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Protocol, Sequence

from .clients import FetchError, QuoteFetcher, QuoteRecord

if TYPE_CHECKING:
    from quote_poller.infra.persistence import SnapshotWriter


class PollState(enum.Enum):
    RUNNING = "running"
    STOPPED = "stopped"


class Scheduler(Protocol):
    """Suspends the loop between cycles."""

    def sleep(self, seconds: float) -> None:
        """Block for ``seconds`` or until woken."""

    def wake(self) -> None:
        """Interrupt a pending sleep."""


class BlockingScheduler:
    """Wall-clock scheduler backed by a ``threading.Event`` so it can be interrupted."""

    def __init__(self) -> None:
        self._wakeup = threading.Event()

    def sleep(self, seconds: float) -> None:
        self._wakeup.wait(seconds)
        self._wakeup.clear()

    def wake(self) -> None:
        self._wakeup.set()


@dataclass
class CycleReport:
    """Summary of one completed cycle."""

    cycle: int
    records: List[QuoteRecord] = field(default_factory=list)
    failures: List[FetchError] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.records) + len(self.failures)


class PollLoop:
    """Fetch-normalize-persist loop with explicit running/stopped states.

    Each cycle fetches symbols sequentially in configured order, keeps the
    successful quotes, and hands the whole batch to the snapshot writer. A
    failed fetch only drops that symbol from the cycle. A writer failure is
    not caught here: it propagates and ends the loop.
    """

    def __init__(
        self,
        fetcher: QuoteFetcher,
        writer: SnapshotWriter,
        symbols: Sequence[str],
        destination: str | Path,
        delay: int,
        scheduler: Optional[Scheduler] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if delay < 0:
            raise ValueError(f"delay must be non-negative, got {delay}")
        self.fetcher = fetcher
        self.writer = writer
        self.symbols = tuple(symbols)
        self.destination = destination
        self.delay = delay
        self.scheduler = scheduler or BlockingScheduler()
        self.logger = logger or logging.getLogger(__name__)
        self.state = PollState.RUNNING
        self.cycles_completed = 0

    def run(self) -> int:
        """Run cycles until stopped and return how many completed."""

        while self.state is PollState.RUNNING:
            report = self.run_cycle()
            self.logger.info(
                "Cycle %d complete: %d/%d symbols fetched",
                report.cycle,
                len(report.records),
                report.attempted,
                extra={
                    "event": "cycle_complete",
                    "cycle": report.cycle,
                    "rows": len(report.records),
                    "failures": len(report.failures),
                },
            )
            if self.delay == 0:
                self.state = PollState.STOPPED
                break
            if self.state is PollState.RUNNING:
                self.scheduler.sleep(self.delay)

        self.logger.info(
            "Poller stopped after %d cycle(s)",
            self.cycles_completed,
            extra={"event": "poller_stopped", "cycles": self.cycles_completed},
        )
        return self.cycles_completed

    def run_cycle(self) -> CycleReport:
        """Fetch every symbol once and write the resulting snapshot."""

        report = CycleReport(cycle=self.cycles_completed + 1)
        for symbol in self.symbols:
            result = self.fetcher.fetch(symbol)
            if result.record is not None:
                self._record_success(report, symbol, result.record)
            elif result.error is not None:
                self._record_failure(report, symbol, result.error)

        self.writer.write(report.records, self.destination)
        self.cycles_completed += 1
        return report

    def stop(self) -> None:
        """Stop after the current cycle, interrupting any pending sleep."""

        self.state = PollState.STOPPED
        self.scheduler.wake()

    def _record_success(self, report: CycleReport, symbol: str, record: QuoteRecord) -> None:
        report.records.append(record)
        self.logger.info(
            'received data for stock "%s" at timestamp %s',
            symbol,
            record.timestamp,
            extra={"event": "quote_received", "symbol": symbol, "quote_timestamp": record.timestamp},
        )

    def _record_failure(self, report: CycleReport, symbol: str, error: FetchError) -> None:
        report.failures.append(error)
        self.logger.warning(
            'fetching data for stock "%s" failed: %s',
            symbol,
            error,
            extra={"event": "quote_failed", "symbol": symbol, "error_type": type(error).__name__},
        )


__all__ = ["PollLoop", "PollState", "Scheduler", "BlockingScheduler", "CycleReport"]
