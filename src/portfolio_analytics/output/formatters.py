from portfolio_analytics.models.common import DataSource


def fmt_pct(value: float | None, decimals: int = 2) -> str:
    if value is None:
        return "N/A"
    return f"{value:+.{decimals}f}%"


def fmt_rate(value: float | None, decimals: int = 2) -> str:
    """Decimal rate (0.105) shown as a percentage (+10.50%)."""
    if value is None:
        return "N/A"
    return fmt_pct(value * 100, decimals)


def fmt_number(value: float | None, decimals: int = 2) -> str:
    if value is None:
        return "N/A"
    return f"{value:,.{decimals}f}"


def fmt_large_number(value: float | None) -> str:
    if value is None:
        return "N/A"
    abs_val = abs(value)
    sign = "-" if value < 0 else ""
    if abs_val >= 1e12:
        return f"{sign}${abs_val / 1e12:.2f}T"
    if abs_val >= 1e9:
        return f"{sign}${abs_val / 1e9:.2f}B"
    if abs_val >= 1e6:
        return f"{sign}${abs_val / 1e6:.2f}M"
    return f"{sign}${abs_val:,.0f}"


def fmt_ratio(value: float | None, decimals: int = 3) -> str:
    if value is None:
        return "undefined"
    return f"{value:.{decimals}f}"


def fmt_price(value: float | None) -> str:
    if value is None:
        return "N/A"
    return f"${value:,.2f}"


def data_source_color(source: DataSource) -> str:
    colors = {
        DataSource.VENDOR_5Y: "green",
        DataSource.VENDOR_BETA: "green3",
        DataSource.CALCULATED: "yellow",
        DataSource.DEFAULT: "red",
    }
    return colors.get(source, "white")


def weight_bar(weight: float, width: int = 10) -> str:
    filled = round(max(0.0, min(weight, 1.0)) * width)
    return "█" * filled + "░" * (width - filled)
