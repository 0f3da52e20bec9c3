from pydantic import BaseModel


class Feedback(BaseModel):
    rating: str
    message: str
    color: str


def sharpe_feedback(sharpe: float | None) -> Feedback | None:
    if sharpe is None:
        return None
    if sharpe < 0:
        return Feedback(
            rating="Poor",
            message=(
                "Your portfolio is underperforming the risk-free rate. "
                "Consider rebalancing or switching to benchmark funds."
            ),
            color="red",
        )
    if sharpe < 1:
        return Feedback(
            rating="Below Average",
            message=(
                "Your risk-adjusted returns are suboptimal. Review your asset "
                "allocation and consider benchmark alternatives."
            ),
            color="orange3",
        )
    if sharpe < 2:
        return Feedback(
            rating="Good",
            message=(
                "Your portfolio shows good risk-adjusted performance. "
                "Continue monitoring and consider minor optimizations."
            ),
            color="yellow",
        )
    if sharpe < 3:
        return Feedback(
            rating="Very Good",
            message="Excellent risk-adjusted returns, well above average.",
            color="green",
        )
    return Feedback(
        rating="Exceptional",
        message="Outstanding performance. Your risk-adjusted returns are exceptional.",
        color="bold green",
    )


def alpha_feedback(alpha: float) -> Feedback:
    alpha_pct = alpha * 100
    if alpha_pct < -2:
        return Feedback(
            rating="Underperforming",
            message=(
                "Significant negative alpha. Consider switching to passive "
                "index funds."
            ),
            color="red",
        )
    if alpha_pct < 0:
        return Feedback(
            rating="Below Market",
            message=(
                "Negative alpha indicates underperformance vs. the market. "
                "Benchmark funds may be a better option."
            ),
            color="orange3",
        )
    if alpha_pct < 1:
        return Feedback(
            rating="Market Performance",
            message=(
                "Alpha near zero: you are matching the market. Index funds "
                "might offer similar returns with lower fees."
            ),
            color="yellow",
        )
    if alpha_pct < 3:
        return Feedback(
            rating="Outperforming",
            message="Positive alpha shows value added through security selection.",
            color="green",
        )
    return Feedback(
        rating="Exceptional",
        message="Strong positive alpha indicates excellent security selection.",
        color="bold green",
    )
