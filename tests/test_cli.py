import argparse

import pytest

from portfolio_analytics.analysis.performance import CashFlow
from portfolio_analytics.cli import build_parser, main, parse_cash_flow, parse_holding


class TestParseHolding:
    def test_weight(self):
        h = parse_holding("aapl=0.6")
        assert h.symbol == "AAPL"
        assert h.weight == 0.6

    def test_dollar_value(self):
        h = parse_holding("MSFT=$12,500", by_value=True)
        assert h.total_value == 12500.0
        assert h.weight is None

    def test_missing_amount(self):
        with pytest.raises(ValueError):
            parse_holding("AAPL")

    def test_bad_amount(self):
        with pytest.raises(ValueError):
            parse_holding("AAPL=lots")


class TestParseCashFlow:
    def test_valid(self):
        cf = parse_cash_flow("2024-01-01=-1000")
        assert cf == CashFlow(date="2024-01-01", amount=-1000)

    def test_invalid(self):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_cash_flow("yesterday=5")


class TestParser:
    def test_analyze_flags(self):
        args = build_parser().parse_args(
            ["analyze", "AAPL=6000", "MSFT=4000", "--values", "--strict", "--years", "2"]
        )
        assert args.command == "analyze"
        assert args.holdings == ["AAPL=6000", "MSFT=4000"]
        assert args.values and args.strict
        assert args.years == 2


class TestMain:
    def test_no_command(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1

    def test_project(self, capsys):
        main(["project", "1000", "0.07", "10"])
        out = capsys.readouterr().out
        assert "$1,967.15" in out

    def test_irr(self, capsys):
        main(["irr", "2023-01-01=-1000", "2024-01-01=1100"])
        out = capsys.readouterr().out
        assert "Dollar-weighted return" in out

    def test_bad_holding_exits(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["analyze", "AAPL"])
        assert exc_info.value.code == 1
        assert "Error" in capsys.readouterr().out
