"""Data access layer: quote shapes, provider client, and the polling loop."""

from .clients import FetchError, FetchResult, NoDataError, ProviderUnavailableError, QuoteFetcher, QuoteRecord
from .polling import BlockingScheduler, CycleReport, PollLoop, PollState, Scheduler
from .yahoo_client import YahooQuoteClient

__all__ = [
    "QuoteRecord",
    "FetchError",
    "FetchResult",
    "NoDataError",
    "ProviderUnavailableError",
    "QuoteFetcher",
    "PollLoop",
    "PollState",
    "Scheduler",
    "BlockingScheduler",
    "CycleReport",
    "YahooQuoteClient",
]
