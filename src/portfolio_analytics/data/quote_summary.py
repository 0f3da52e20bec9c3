import logging
import threading

import httpx

from portfolio_analytics.errors import DataUnavailableError
from portfolio_analytics.models.market import VendorStats

logger = logging.getLogger(__name__)

COOKIE_URL = "https://fc.yahoo.com"
CRUMB_URL = "https://query1.finance.yahoo.com/v1/test/getcrumb"
QUOTE_SUMMARY_URL = "https://query2.finance.yahoo.com/v10/finance/quoteSummary"

DEFAULT_TIMEOUT = 15.0
DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json,text/plain,*/*",
}

# Yahoo reports these in percent; everything else is already a ratio.
PERCENT_FIELDS = ("alpha", "stdDev", "rSquared", "treynorRatio", "meanAnnualReturn")


def _raw(entry: dict, key: str) -> float | None:
    value = entry.get(key)
    if isinstance(value, dict):
        value = value.get("raw")
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    if key in PERCENT_FIELDS:
        value /= 100
    return value


def parse_risk_statistics(
    symbol: str, payload: dict, preferred_period: str = "5y"
) -> VendorStats | None:
    """Pick the fund risk-statistics row for ``preferred_period``.

    Falls back to the longest other window that carries a beta. Returns None
    when the symbol publishes no fund performance module (e.g. stocks).
    """
    results = (payload.get("quoteSummary") or {}).get("result") or []
    if not results:
        return None
    risk = (
        (results[0].get("fundPerformance") or {})
        .get("riskOverviewStatistics", {})
        .get("riskStatistics")
        or []
    )
    if not risk:
        return None

    by_period = {row.get("year"): row for row in risk if row.get("year")}
    row = by_period.get(preferred_period)
    if row is None:
        for period in ("10y", "5y", "3y"):
            candidate = by_period.get(period)
            if candidate and _raw(candidate, "beta") is not None:
                row = candidate
                break
    if row is None:
        return None

    return VendorStats(
        symbol=symbol.upper(),
        period=row["year"],
        beta=_raw(row, "beta"),
        alpha=_raw(row, "alpha"),
        sharpe_ratio=_raw(row, "sharpeRatio"),
        treynor_ratio=_raw(row, "treynorRatio"),
        std_dev=_raw(row, "stdDev"),
        r_squared=_raw(row, "rSquared"),
        mean_annual_return=_raw(row, "meanAnnualReturn"),
    )


class QuoteSummaryClient:
    """Reads Yahoo's quoteSummary fund-performance module."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._timeout = timeout
        self._client: httpx.Client | None = None
        self._crumb: str | None = None
        self._lock = threading.RLock()

    @property
    def client(self) -> httpx.Client:
        with self._lock:
            if self._client is None:
                self._client = httpx.Client(
                    timeout=self._timeout,
                    headers=DEFAULT_HEADERS,
                    follow_redirects=True,
                )
        return self._client

    def _get_crumb(self) -> str:
        with self._lock:
            if self._crumb is None:
                # fc.yahoo.com answers 404 but sets the session cookie
                self.client.get(COOKIE_URL)
                resp = self.client.get(CRUMB_URL)
                resp.raise_for_status()
                self._crumb = resp.text.strip()
        return self._crumb

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._crumb = None

    def get_risk_statistics(self, symbol: str) -> VendorStats | None:
        try:
            resp = self.client.get(
                f"{QUOTE_SUMMARY_URL}/{symbol.upper()}",
                params={"modules": "fundPerformance", "crumb": self._get_crumb()},
            )
        except httpx.HTTPError as e:
            raise DataUnavailableError(symbol, f"quoteSummary request failed: {e}") from e

        if resp.status_code == 404:
            return None
        try:
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPStatusError, ValueError) as e:
            raise DataUnavailableError(symbol, f"quoteSummary unusable: {e}") from e

        stats = parse_risk_statistics(symbol, payload)
        if stats is None:
            logger.debug("No fund risk statistics for %s", symbol)
        return stats
