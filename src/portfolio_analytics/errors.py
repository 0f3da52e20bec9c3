class PortfolioAnalyticsError(Exception):
    """Base class for every error raised by the analytics engine."""


class InsufficientDataError(PortfolioAnalyticsError):
    pass


class EmptyPortfolioError(PortfolioAnalyticsError):
    pass


class WeightValidationError(PortfolioAnalyticsError):
    pass


class MissingHoldingDataError(PortfolioAnalyticsError):
    def __init__(self, symbols: list[str]) -> None:
        self.symbols = symbols
        super().__init__(f"No usable price data for: {', '.join(symbols)}")


class DivisionGuardError(PortfolioAnalyticsError):
    pass


class DataFetchError(PortfolioAnalyticsError):
    def __init__(self, symbol: str, message: str) -> None:
        self.symbol = symbol
        super().__init__(f"{symbol}: {message}")


class SymbolNotFoundError(DataFetchError):
    pass


class DataUnavailableError(DataFetchError):
    pass
