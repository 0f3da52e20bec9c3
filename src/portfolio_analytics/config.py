import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

TRADING_DAYS_PER_YEAR = 252
MONTHS_PER_YEAR = 12

BENCHMARK_FUNDS: dict[str, list[dict[str, str]]] = {
    "Ultra Conservative": [
        {
            "symbol": "VASIX",
            "name": "Vanguard LifeStrategy Income Fund",
            "allocation": "20% Equities, 80% Bonds",
        },
        {
            "symbol": "AOK",
            "name": "iShares Core Conservative Allocation ETF",
            "allocation": "30% Equities, 70% Bonds",
        },
    ],
    "Conservative": [
        {
            "symbol": "VSCGX",
            "name": "Vanguard LifeStrategy Conservative Growth Fund",
            "allocation": "40% Equities, 60% Bonds",
        },
        {
            "symbol": "AOM",
            "name": "iShares Core Moderate Allocation ETF",
            "allocation": "40% Equities, 60% Bonds",
        },
    ],
    "Moderate": [
        {
            "symbol": "VSMGX",
            "name": "Vanguard LifeStrategy Moderate Growth Fund",
            "allocation": "60% Equities, 40% Bonds",
        },
        {
            "symbol": "AOR",
            "name": "iShares Core Growth Allocation ETF",
            "allocation": "60% Equities, 40% Bonds",
        },
    ],
    "Aggressive": [
        {
            "symbol": "VASGX",
            "name": "Vanguard LifeStrategy Growth Fund",
            "allocation": "80% Equities, 20% Bonds",
        },
        {
            "symbol": "AOA",
            "name": "iShares Core Aggressive Allocation ETF",
            "allocation": "80% Equities, 20% Bonds",
        },
    ],
}


class MarketDefaults(BaseModel):
    default_market_return: float = 0.10
    default_risk_free_rate: float = 0.045
    default_beta: float = 1.0


class AnalysisConfig(BaseModel):
    market_proxy: str = "SPY"
    risk_free_symbol: str = "^IRX"

    history_years: int = Field(default=1, ge=1)
    beta_lookback_years: int = Field(default=5, ge=1)
    std_dev_lookback_years: int = Field(default=5, ge=1)
    min_beta_months: int = Field(default=12, ge=2)
    min_annualize_years: float = Field(default=1.0, gt=0)
    short_history_ratio: float = Field(default=0.9, gt=0, le=1)
    trading_days_per_year: int = TRADING_DAYS_PER_YEAR
    months_per_year: int = MONTHS_PER_YEAR

    weight_tolerance: float = 0.01
    correlation_tolerance: float = 1e-5
    renormalize_on_exclusion: bool = True

    max_workers: int = 8
    defaults: MarketDefaults = Field(default_factory=MarketDefaults)

    @classmethod
    def from_env(cls) -> "AnalysisConfig":
        load_dotenv()
        overrides: dict = {}
        env_map = {
            "PORTFOLIO_MARKET_PROXY": "market_proxy",
            "PORTFOLIO_RISK_FREE_SYMBOL": "risk_free_symbol",
            "PORTFOLIO_HISTORY_YEARS": "history_years",
            "PORTFOLIO_BETA_LOOKBACK_YEARS": "beta_lookback_years",
            "PORTFOLIO_STD_DEV_LOOKBACK_YEARS": "std_dev_lookback_years",
            "PORTFOLIO_MAX_WORKERS": "max_workers",
        }
        for env_key, field in env_map.items():
            value = os.environ.get(env_key)
            if value:
                overrides[field] = value

        defaults: dict = {}
        default_map = {
            "PORTFOLIO_DEFAULT_MARKET_RETURN": "default_market_return",
            "PORTFOLIO_DEFAULT_RISK_FREE_RATE": "default_risk_free_rate",
            "PORTFOLIO_DEFAULT_BETA": "default_beta",
        }
        for env_key, field in default_map.items():
            value = os.environ.get(env_key)
            if value:
                defaults[field] = value
        if defaults:
            overrides["defaults"] = MarketDefaults(**defaults)

        return cls(**overrides)
