"""Tests for market data coercion and validation."""
import pytest

from models.enums import ExecutionRole, TradeDirection
from models.market_data import MarketSummary, Trade
from models.validation import (
    coerce_direction,
    coerce_float,
    coerce_int,
    coerce_role,
    parse_order_book,
    parse_trade,
    parse_trades,
    validate_hours,
    validate_side,
    validate_trade_size,
)
from utils.exceptions import ValidationError


@pytest.mark.unit
class TestCoercion:
    """Test field coercion."""

    @pytest.mark.parametrize("raw,expected", [
        ("1.5", 1.5),
        (2, 2.0),
        ("abc", 0.0),
        (None, 0.0),
        ("-5", 0.0),
        ("inf", 0.0),
        ("nan", 0.0),
        (True, 0.0),
        ({}, 0.0),
    ])
    def test_coerce_float(self, raw, expected):
        assert coerce_float(raw) == expected

    def test_coerce_float_default(self):
        assert coerce_float("bad", default=7.0) == 7.0

    def test_coerce_int(self):
        assert coerce_int("1700000000123") == 1700000000123
        assert coerce_int("x") == 0

    def test_coerce_direction(self):
        assert coerce_direction("SELL") == TradeDirection.SELL
        assert coerce_direction("buy") == TradeDirection.BUY
        assert coerce_direction("unknown") == TradeDirection.BUY
        assert coerce_direction(None) == TradeDirection.BUY

    def test_coerce_role(self):
        assert coerce_role("taker") == ExecutionRole.TAKER
        assert coerce_role("whatever") == ExecutionRole.MAKER


@pytest.mark.unit
class TestParsing:
    """Test payload parsing."""

    def test_order_book_wrapper(self):
        payload = {"orderbook": {
            "buys": [{"price": "100", "quantity": "2", "timestamp": 1700000000000}],
            "sells": [{"price": "101", "quantity": "bad"}],
        }}
        book = parse_order_book(payload, fetched_at=1.0)
        assert book.best_bid == 100.0
        assert book.buys[0].timestamp == 1700000000
        assert book.sells[0].quantity == 0.0
        assert book.fetched_at == 1.0

    def test_order_book_without_wrapper(self):
        book = parse_order_book({"buys": [], "sells": [{"price": 5, "quantity": 1}]}, fetched_at=0)
        assert book.best_ask == 5.0
        assert book.best_bid == 0.0

    def test_empty_order_book(self):
        book = parse_order_book(None, fetched_at=0)
        assert book.level_count == 0

    def test_nested_trade(self):
        trade = parse_trade({
            "price": {"price": "10.5", "quantity": "3"},
            "executedAt": 1700000000000,
            "tradeDirection": "sell",
            "executionSide": "taker",
        })
        assert trade == Trade(10.5, 3.0, 1700000000, TradeDirection.SELL, ExecutionRole.TAKER)

    def test_flat_trade(self):
        trade = parse_trade({"price": "2", "quantity": "4", "timestamp": 1700000000, "direction": "buy"})
        assert trade.price == 2.0
        assert trade.quantity == 4.0
        assert trade.timestamp == 1700000000
        assert trade.notional == 8.0

    def test_execution_fallbacks(self):
        trade = parse_trade({"executionPrice": "3", "executionQuantity": "5"})
        assert trade.price == 3.0
        assert trade.quantity == 5.0

    def test_malformed_trade_coerces_to_zero(self):
        trade = parse_trade({"price": "garbage", "quantity": -1})
        assert trade.price == 0.0
        assert trade.quantity == 0.0
        assert trade.direction == TradeDirection.BUY

    def test_parse_trades_keeps_order(self):
        trades = parse_trades({"trades": [{"price": "2", "timestamp": 2}, {"price": "1", "timestamp": 1}]})
        assert [t.price for t in trades] == [2.0, 1.0]
        assert parse_trades({}) == []
        assert parse_trades(None) == []


@pytest.mark.unit
class TestMarketSummary:
    """Test summary derivation from trades."""

    def test_from_trades(self):
        trades = [Trade(110.0, 1.0, 3), Trade(90.0, 2.0, 2), Trade(100.0, 1.0, 1)]
        summary = MarketSummary.from_trades(trades)
        assert summary.price == 110.0
        assert summary.open == 100.0
        assert summary.high == 110.0
        assert summary.low == 90.0
        assert summary.volume == 390.0
        assert summary.change == pytest.approx(10.0)

    def test_no_trades(self):
        assert MarketSummary.from_trades([]) == MarketSummary()


@pytest.mark.unit
class TestArgumentValidation:
    """Test analyzer argument validation."""

    def test_trade_size(self):
        assert validate_trade_size("1000") == 1000.0
        assert validate_trade_size(0) == 0.0
        with pytest.raises(ValidationError, match="non-negative"):
            validate_trade_size(-1)
        with pytest.raises(ValidationError, match="number"):
            validate_trade_size("lots")

    def test_side(self):
        assert validate_side("BUY") == TradeDirection.BUY
        assert validate_side(TradeDirection.SELL) == TradeDirection.SELL
        with pytest.raises(ValidationError, match="Invalid trade direction"):
            validate_side("hold")

    def test_hours(self):
        assert validate_hours(24) == 24.0
        with pytest.raises(ValidationError, match="positive"):
            validate_hours(0)
        with pytest.raises(ValidationError):
            validate_hours("soon")
