"""Yahoo Finance chart API client returning normalized latest quotes.

The client requests a short window of daily bars for a symbol and keeps only
the most recent complete bar. Network and HTTP failures are reported as
:class:`ProviderUnavailableError`; answers without a usable bar are reported as
:class:`NoDataError`. Neither is raised: both are wrapped in a
:class:`FetchResult` so a caller can skip the symbol and carry on.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from .clients import FetchError, FetchResult, NoDataError, ProviderUnavailableError, QuoteRecord

DEFAULT_BASE_URL = "https://query1.finance.yahoo.com"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0 Safari/537.36"
)


class YahooQuoteClient:
    """Fetch the latest daily quote for a ticker from the Yahoo chart endpoint."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        interval: str = "1d",
        lookback: str = "1mo",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.interval = interval
        self.lookback = lookback
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", DEFAULT_USER_AGENT)
        self.logger = logger or logging.getLogger(__name__)

    def fetch(self, symbol: str) -> FetchResult:
        """Return the most recent complete quote for ``symbol``."""

        try:
            payload = self._chart_get(symbol)
        except FetchError as exc:
            return FetchResult.failure(exc)

        chart = payload.get("chart")
        if not isinstance(chart, dict):
            return FetchResult.failure(NoDataError(symbol, "provider response has no chart object"))
        if chart.get("error"):
            return FetchResult.failure(NoDataError(symbol, self._describe_error(chart["error"])))

        results = chart.get("result")
        if not isinstance(results, list) or not results:
            return FetchResult.failure(NoDataError(symbol, "provider returned an empty result set"))
        if not isinstance(results[0], dict):
            return FetchResult.failure(NoDataError(symbol, "provider result is not an object"))

        record = self._latest_record(symbol, results[0])
        if record is None:
            return FetchResult.failure(NoDataError(symbol, "no complete quote in provider response"))
        return FetchResult.success(record)

    def close(self) -> None:
        self.session.close()

    def _chart_get(self, symbol: str) -> Dict[str, Any]:
        url = f"{self.base_url}/v8/finance/chart/{symbol}"
        params = {"interval": self.interval, "range": self.lookback}
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ProviderUnavailableError(symbol, f"request to {url} failed: {exc}", cause=exc) from exc

        if response.status_code == 404:
            raise NoDataError(symbol, self._not_found_message(response))
        try:
            response.raise_for_status()
            payload = response.json()
        except requests.HTTPError as exc:
            raise ProviderUnavailableError(symbol, f"provider returned HTTP {response.status_code}", cause=exc) from exc
        except ValueError as exc:
            raise ProviderUnavailableError(symbol, "provider returned malformed JSON", cause=exc) from exc
        if not isinstance(payload, dict):
            raise ProviderUnavailableError(symbol, f"unexpected {type(payload).__name__} payload from provider")
        return payload

    def _latest_record(self, symbol: str, result: Dict[str, Any]) -> Optional[QuoteRecord]:
        timestamps = self._as_list(result.get("timestamp"))
        indicators = result.get("indicators")
        if not isinstance(indicators, dict):
            return None
        quote = self._first_mapping(indicators.get("quote"))
        adjclose_series = self._first_mapping(indicators.get("adjclose")).get("adjclose")

        for index in range(len(timestamps) - 1, -1, -1):
            close = self._value_at(quote.get("close"), index)
            adjclose = self._value_at(adjclose_series, index) if adjclose_series is not None else close
            row = {
                "timestamp": self._safe_int(timestamps[index]),
                "open": self._safe_float(self._value_at(quote.get("open"), index)),
                "close": self._safe_float(close),
                "adjclose": self._safe_float(adjclose),
                "high": self._safe_float(self._value_at(quote.get("high"), index)),
                "low": self._safe_float(self._value_at(quote.get("low"), index)),
                "volume": self._safe_int(self._value_at(quote.get("volume"), index)),
            }
            if any(value is None for value in row.values()):
                continue
            if row["volume"] < 0:
                self.logger.debug("Skipping bar with negative volume for %s", symbol)
                continue
            return QuoteRecord(symbol=symbol, **row)
        return None

    def _not_found_message(self, response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        chart = body.get("chart") if isinstance(body, dict) else None
        error = chart.get("error") if isinstance(chart, dict) else None
        if error:
            return self._describe_error(error)
        return "provider has no data for symbol"

    def _describe_error(self, error: Any) -> str:
        if isinstance(error, dict):
            code = error.get("code") or "error"
            description = error.get("description") or ""
            return f"{code}: {description}" if description else str(code)
        return str(error)

    def _as_list(self, value: Any) -> List[Any]:
        return value if isinstance(value, list) else []

    def _first_mapping(self, value: Any) -> Dict[str, Any]:
        items = self._as_list(value)
        if items and isinstance(items[0], dict):
            return items[0]
        return {}

    def _value_at(self, series: Any, index: int) -> Any:
        if not isinstance(series, list) or index >= len(series):
            return None
        return series[index]

    def _safe_float(self, value: Any) -> Optional[float]:
        try:
            if value is None:
                return None
            return float(value)
        except (TypeError, ValueError):
            return None

    def _safe_int(self, value: Any) -> Optional[int]:
        try:
            if value is None:
                return None
            return int(value)
        except (TypeError, ValueError, OverflowError):
            return None


__all__ = ["YahooQuoteClient", "DEFAULT_BASE_URL"]
