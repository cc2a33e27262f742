"""Quote data shapes and the fetcher interface used by the poll loop."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Tuple


@dataclass(frozen=True)
class QuoteRecord:
    """Normalized latest quote for one symbol.

    Attributes:
        symbol: Ticker exactly as configured by the operator.
        timestamp: Epoch seconds reported by the provider.
        open/close/adjclose/high/low: Prices passed through unmodified.
        volume: Traded volume for the period.
    """

    symbol: str
    timestamp: int
    open: float
    close: float
    adjclose: float
    high: float
    low: float
    volume: int

    def __post_init__(self) -> None:
        if not self.symbol:
            raise ValueError("QuoteRecord.symbol must be non-empty")
        if self.volume < 0:
            raise ValueError(f"QuoteRecord.volume must be non-negative, got {self.volume}")

    def as_row(self) -> Tuple[str, int, float, float, float, float, float, int]:
        """Return field values in snapshot column order."""

        return (
            self.symbol,
            self.timestamp,
            self.open,
            self.close,
            self.adjclose,
            self.high,
            self.low,
            self.volume,
        )


class FetchError(Exception):
    """Base class for recoverable per-symbol fetch failures."""

    def __init__(self, symbol: str, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.symbol = symbol
        self.cause = cause


class ProviderUnavailableError(FetchError):
    """The provider could not be reached or answered with an error."""


class NoDataError(FetchError):
    """The provider answered but had no usable latest quote."""


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a single fetch: either a record or an error."""

    symbol: str
    record: Optional[QuoteRecord] = None
    error: Optional[FetchError] = None

    def __post_init__(self) -> None:
        if (self.record is None) == (self.error is None):
            raise ValueError("FetchResult requires exactly one of record or error")

    @property
    def ok(self) -> bool:
        return self.record is not None

    @classmethod
    def success(cls, record: QuoteRecord) -> "FetchResult":
        return cls(symbol=record.symbol, record=record)

    @classmethod
    def failure(cls, error: FetchError) -> "FetchResult":
        return cls(symbol=error.symbol, error=error)


class QuoteFetcher(Protocol):
    """Protocol describing required quote provider behavior."""

    def fetch(self, symbol: str) -> FetchResult:
        """Return the most recent quote for a symbol, or the reason it failed."""


__all__ = [
    "QuoteRecord",
    "FetchError",
    "ProviderUnavailableError",
    "NoDataError",
    "FetchResult",
    "QuoteFetcher",
]
