import logging
from datetime import date, timedelta

import pandas as pd
import yfinance as yf

from portfolio_analytics.errors import DataUnavailableError, SymbolNotFoundError
from portfolio_analytics.models.common import Interval

logger = logging.getLogger(__name__)


class YFinanceClient:
    def __init__(self, ticker: str) -> None:
        self.ticker_symbol = ticker.upper()
        self._ticker: yf.Ticker | None = None

    @property
    def ticker(self) -> yf.Ticker:
        if self._ticker is None:
            self._ticker = yf.Ticker(self.ticker_symbol)
        return self._ticker

    def get_info(self) -> dict:
        try:
            return dict(self.ticker.info)
        except Exception:
            logger.warning("Failed to fetch info for %s", self.ticker_symbol)
            return {}

    def get_history(
        self,
        start: date,
        end: date,
        interval: Interval = Interval.DAILY,
    ) -> pd.DataFrame:
        try:
            # yfinance treats ``end`` as exclusive
            df = self.ticker.history(
                start=start.isoformat(),
                end=(end + timedelta(days=1)).isoformat(),
                interval=interval.value,
            )
        except Exception as e:
            logger.warning("Failed to fetch history for %s", self.ticker_symbol)
            raise DataUnavailableError(self.ticker_symbol, str(e)) from e

        if df is None or df.empty or "Close" not in df:
            logger.warning("Empty history for %s", self.ticker_symbol)
            raise SymbolNotFoundError(
                self.ticker_symbol, "no price history (unknown or delisted symbol)"
            )
        return df

    def get_recent_close(self, period: str = "5d") -> float | None:
        try:
            df = self.ticker.history(period=period)
        except Exception:
            logger.warning("Failed to fetch recent close for %s", self.ticker_symbol)
            return None
        if df is None or df.empty:
            return None
        closes = df["Close"].dropna()
        if closes.empty:
            return None
        return float(closes.iloc[-1])

    def get_standalone_beta(self) -> tuple[float, str] | None:
        """Vendor beta from the quote profile: stock beta, else fund 3y beta."""
        info = self.get_info()
        beta = info.get("beta")
        if beta is not None:
            return float(beta), "info"
        beta_3y = info.get("beta3Year")
        if beta_3y is not None:
            return float(beta_3y), "3y"
        return None
