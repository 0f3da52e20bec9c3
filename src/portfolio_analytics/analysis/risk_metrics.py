import logging
import math

from pydantic import BaseModel

from portfolio_analytics.errors import DivisionGuardError

logger = logging.getLogger(__name__)


def _guarded_ratio(numerator: float, denominator: float, label: str) -> float:
    if denominator == 0 or not math.isfinite(denominator):
        raise DivisionGuardError(f"{label} undefined: denominator is {denominator}")
    value = numerator / denominator
    if not math.isfinite(value):
        raise DivisionGuardError(f"{label} undefined: result is {value}")
    return value


def sharpe_ratio(portfolio_return: float, risk_free_rate: float, std_dev: float) -> float:
    """Excess return per unit of total risk."""
    return _guarded_ratio(portfolio_return - risk_free_rate, std_dev, "Sharpe ratio")


def treynor_ratio(portfolio_return: float, risk_free_rate: float, beta: float) -> float:
    """Excess return per unit of systematic risk."""
    return _guarded_ratio(portfolio_return - risk_free_rate, beta, "Treynor ratio")


def capm_expected_return(risk_free_rate: float, market_return: float, beta: float) -> float:
    return risk_free_rate + (market_return - risk_free_rate) * beta


def jensens_alpha(
    portfolio_return: float,
    risk_free_rate: float,
    market_return: float,
    beta: float,
) -> float:
    return portfolio_return - capm_expected_return(risk_free_rate, market_return, beta)


class RiskMetrics(BaseModel):
    sharpe_ratio: float | None
    treynor_ratio: float | None
    jensens_alpha: float
    warnings: list[str] = []


class RiskMetricsCalculator:
    def calculate(
        self,
        portfolio_return: float,
        risk_free_rate: float,
        market_return: float,
        beta: float,
        std_dev: float,
    ) -> RiskMetrics:
        warnings: list[str] = []

        try:
            sharpe = sharpe_ratio(portfolio_return, risk_free_rate, std_dev)
        except DivisionGuardError as e:
            logger.warning("%s", e)
            warnings.append(str(e))
            sharpe = None

        try:
            treynor = treynor_ratio(portfolio_return, risk_free_rate, beta)
        except DivisionGuardError as e:
            logger.warning("%s", e)
            warnings.append(str(e))
            treynor = None

        alpha = jensens_alpha(portfolio_return, risk_free_rate, market_return, beta)
        return RiskMetrics(
            sharpe_ratio=sharpe,
            treynor_ratio=treynor,
            jensens_alpha=alpha,
            warnings=warnings,
        )
