from datetime import date, datetime

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, model_validator

from portfolio_analytics.models.common import Interval


class PriceSeries(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    interval: Interval = Interval.DAILY
    dates: tuple[date, ...] = ()
    closes: tuple[float, ...] = ()

    @model_validator(mode="after")
    def _check_alignment(self) -> "PriceSeries":
        if len(self.dates) != len(self.closes):
            raise ValueError("dates and closes must have the same length")
        if any(b < a for a, b in zip(self.dates, self.dates[1:])):
            raise ValueError("dates must be ascending")
        return self

    def __len__(self) -> int:
        return len(self.closes)

    @property
    def start_date(self) -> date | None:
        return self.dates[0] if self.dates else None

    @property
    def end_date(self) -> date | None:
        return self.dates[-1] if self.dates else None

    @property
    def years_covered(self) -> float:
        if len(self.dates) < 2:
            return 0.0
        return (self.dates[-1] - self.dates[0]).days / 365.25

    @classmethod
    def from_history(
        cls,
        symbol: str,
        df: pd.DataFrame,
        interval: Interval = Interval.DAILY,
    ) -> "PriceSeries":
        close = df["Close"].dropna().sort_index()
        return cls(
            symbol=symbol.upper(),
            interval=interval,
            dates=tuple(pd.Timestamp(ts).date() for ts in close.index),
            closes=tuple(float(v) for v in close.values),
        )

    def to_series(self) -> pd.Series:
        return pd.Series(
            self.closes,
            index=pd.DatetimeIndex(self.dates),
            name=self.symbol,
        )


class VendorStats(BaseModel):
    """Pre-computed risk statistics published by the data vendor.

    All rates are decimals (0.12 for 12%). ``period`` is the trailing window
    the vendor computed them over, e.g. "5y" or "3y".
    """

    symbol: str
    period: str = "5y"
    beta: float | None = None
    alpha: float | None = None
    sharpe_ratio: float | None = None
    treynor_ratio: float | None = None
    std_dev: float | None = None
    r_squared: float | None = None
    mean_annual_return: float | None = None

    @property
    def is_complete(self) -> bool:
        return all(
            v is not None
            for v in (
                self.beta,
                self.alpha,
                self.sharpe_ratio,
                self.treynor_ratio,
                self.std_dev,
                self.r_squared,
            )
        )


class MarketContext(BaseModel):
    market_return: float
    risk_free_rate: float
    market_return_is_default: bool = False
    risk_free_is_default: bool = False
    market_proxy: str = "SPY"
    as_of: datetime = Field(default_factory=datetime.now)

    @property
    def uses_defaults(self) -> bool:
        return self.market_return_is_default or self.risk_free_is_default
