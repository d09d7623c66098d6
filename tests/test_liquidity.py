"""Tests for the liquidity analyzer."""
import pytest

from analyzers.liquidity import (
    LiquidityAnalyzer,
    depth_imbalance_pct,
    depth_profile,
    depth_usd,
    historical_spreads,
    mid_price,
    simulate_slippage,
    spread_bps,
)
from models.enums import LiquidityLabel, TradeDirection
from models.market_data import OrderBook, OrderBookLevel, Trade
from utils.exceptions import ValidationError

from conftest import StaticMetricsSource


@pytest.fixture
def analyzer(static_source, cache, mock_config, clock):
    return LiquidityAnalyzer(static_source, cache, mock_config, clock)


@pytest.mark.unit
class TestBookMetrics:
    """Test mid price, depth and spread."""

    def test_simple_book(self, simple_book):
        assert mid_price(simple_book) == 100.5
        assert depth_usd(simple_book.buys) == 1000.0
        assert depth_usd(simple_book.sells) == 1010.0
        assert spread_bps(simple_book) == pytest.approx(99.50, abs=0.01)

    def test_empty_book(self):
        book = OrderBook()
        assert mid_price(book) == 0.0
        assert depth_usd(book.buys) == 0.0
        assert spread_bps(book) == 0.0

    def test_one_sided_book(self):
        book = OrderBook(buys=[OrderBookLevel(price=100.0, quantity=1.0)])
        assert mid_price(book) == 100.0
        assert spread_bps(book) == pytest.approx(10_000.0)

    def test_depth_grows_as_levels_are_appended(self):
        quotes = [(101.0, 2.0), (101.5, 0.0), (102.0, 3.5), (105.0, 1.0)]
        levels = []
        totals = []
        for price, quantity in quotes:
            levels.append(OrderBookLevel(price=price, quantity=quantity))
            totals.append(depth_usd(levels))
        assert totals == sorted(totals)
        assert totals[-1] == pytest.approx(sum(p * q for p, q in quotes))

    def test_depth_imbalance(self):
        assert depth_imbalance_pct(300, 100) == pytest.approx(50.0)
        assert depth_imbalance_pct(0, 0) == 0.0


@pytest.mark.unit
class TestSlippage:
    """Test the book walk."""

    def test_partial_level_fill(self, simple_book):
        result = simulate_slippage(simple_book.sells, mid_price(simple_book), 500)
        assert result.avg_price == pytest.approx(101.0)
        assert result.slippage_bps == pytest.approx(49.75, abs=0.01)
        assert result.fillable is True

    def test_two_unit_book_small_buy(self):
        book = OrderBook(
            buys=[OrderBookLevel(price=100.0, quantity=2.0)],
            sells=[OrderBookLevel(price=101.0, quantity=2.0)],
        )
        assert mid_price(book) == 100.5
        assert spread_bps(book) == pytest.approx(99.50, abs=0.01)
        result = simulate_slippage(book.sells, mid_price(book), 100)
        assert result.avg_price == pytest.approx(101.0)
        assert result.slippage_bps == pytest.approx(49.75, abs=0.01)
        assert result.fillable is True

    def test_zero_size(self, simple_book):
        result = simulate_slippage(simple_book.sells, 100.5, 0)
        assert result.slippage_bps == 0.0
        assert result.avg_price == 100.5
        assert result.fillable is True

    def test_unfillable(self, simple_book):
        result = simulate_slippage(simple_book.sells, 100.5, 5000)
        assert result.fillable is False
        assert result.filled_notional == pytest.approx(1010.0)

    def test_empty_side(self):
        result = simulate_slippage([], 100.0, 1000)
        assert result.fillable is False
        assert result.slippage_bps == 0.0

    def test_monotone_in_size(self, deep_book):
        mid = mid_price(deep_book)
        slippages = [
            simulate_slippage(deep_book.sells, mid, size).slippage_bps
            for size in (100, 1_000, 60_000, 150_000, 250_000)
        ]
        assert slippages == sorted(slippages)

    def test_skips_unpriced_levels(self):
        levels = [OrderBookLevel(price=0.0, quantity=100.0), OrderBookLevel(price=101.0, quantity=10.0)]
        result = simulate_slippage(levels, 100.0, 101)
        assert result.avg_price == pytest.approx(101.0)


@pytest.mark.unit
class TestDepthProfile:
    """Test distance-band depth."""

    @pytest.fixture
    def banded_book(self):
        return OrderBook(
            buys=[
                OrderBookLevel(price=99.95, quantity=10.0),
                OrderBookLevel(price=98.8, quantity=10.0),
            ],
            sells=[
                OrderBookLevel(price=100.05, quantity=10.0),
                OrderBookLevel(price=103.0, quantity=10.0),
            ],
        )

    def test_rings_and_cumulative(self, banded_book):
        rows = {row[0]: row[1:] for row in depth_profile(banded_book, (0.1, 0.5, 1, 2, 5))}
        bid, ask, cum_bid, cum_ask = rows[0.1]
        assert bid == pytest.approx(999.5)
        assert ask == pytest.approx(1000.5)
        assert rows[0.5][0] == pytest.approx(0.0)
        assert rows[2][0] == pytest.approx(988.0)
        assert rows[2][2] == pytest.approx(999.5 + 988.0)
        assert rows[5][1] == pytest.approx(1030.0)

    def test_cumulative_is_monotone_and_reaches_total(self, banded_book):
        rows = depth_profile(banded_book, (5, 0.1, 1, 0.5, 2))
        assert [r[0] for r in rows] == [0.1, 0.5, 1, 2, 5]
        cum_bids = [r[3] for r in rows]
        cum_asks = [r[4] for r in rows]
        assert cum_bids == sorted(cum_bids)
        assert cum_asks == sorted(cum_asks)
        assert cum_bids[-1] == pytest.approx(depth_usd(banded_book.buys))
        assert cum_asks[-1] == pytest.approx(depth_usd(banded_book.sells))
        assert sum(r[1] for r in rows) == pytest.approx(cum_bids[-1])


@pytest.mark.unit
class TestHistoricalSpreads:
    """Test the direction-flip spread heuristic."""

    def test_default_sample(self):
        assert historical_spreads([]) == [5.0]

    def test_flips_only(self):
        trades = [
            Trade(price=101.0, quantity=1, timestamp=3, direction=TradeDirection.BUY),
            Trade(price=100.0, quantity=1, timestamp=2, direction=TradeDirection.SELL),
            Trade(price=100.0, quantity=1, timestamp=1, direction=TradeDirection.SELL),
        ]
        samples = historical_spreads(trades)
        assert len(samples) == 1
        assert samples[0] == pytest.approx(99.50, abs=0.01)


@pytest.mark.unit
@pytest.mark.asyncio
class TestLiquidityAnalyzer:
    """Test analyzer records."""

    async def test_score_record(self, analyzer, spot_market):
        result = await analyzer.get_score(spot_market)
        assert 0 <= result.liquidity_score <= 100
        assert result.score_label in [label.value for label in LiquidityLabel]
        assert result.metrics.bid_depth_usd == 1000.0
        assert result.metrics.ask_depth_usd == 1010.0
        assert result.metrics.spread_bps == 99.5
        assert result.market_id == spot_market.market_id
        assert result.market_type == "spot"
        assert result.data_source == "injective-mainnet"
        assert result.timestamp.endswith("Z")

    async def test_score_is_cached(self, analyzer, static_source, spot_market):
        await analyzer.get_score(spot_market)
        await analyzer.get_score(spot_market)
        assert static_source.book_calls == 1

    async def test_empty_book_scores_low(self, cache, mock_config, clock, spot_market):
        analyzer = LiquidityAnalyzer(StaticMetricsSource(), cache, mock_config, clock)
        result = await analyzer.get_score(spot_market)
        assert result.metrics.spread_bps == 0.0
        assert result.liquidity_score < 50

    async def test_depth_record(self, analyzer, spot_market):
        result = await analyzer.get_depth(spot_market)
        assert [lvl.distance_from_mid_pct for lvl in result.levels] == [0.1, 0.5, 1, 2, 5]
        assert result.total_bid_depth_usd == 1000.0
        assert result.levels[-1].cumulative_bid_usd == 1000.0

    async def test_slippage_record(self, analyzer, spot_market):
        result = await analyzer.get_slippage(spot_market, 500, "buy")
        assert result.mid_price == 100.5
        assert result.estimated_slippage_bps == pytest.approx(49.75, abs=0.1)
        assert result.fillable is True
        assert result.side == TradeDirection.BUY
        assert result.cache_ttl_seconds == analyzer.config.cache.orderbook_ttl

    async def test_sell_side_walks_bids(self, analyzer, spot_market):
        result = await analyzer.get_slippage(spot_market, 500, "sell")
        assert result.estimated_avg_price == pytest.approx(100.0)

    async def test_invalid_slippage_arguments(self, analyzer, spot_market):
        with pytest.raises(ValidationError):
            await analyzer.get_slippage(spot_market, -1)
        with pytest.raises(ValidationError):
            await analyzer.get_slippage(spot_market, 100, "hold")

    async def test_spread_record(self, analyzer, spot_market):
        result = await analyzer.get_spread(spot_market)
        assert result.best_bid == 100.0
        assert result.best_ask == 101.0
        assert result.current_spread_bps == 99.5
        # All rising trades are buys, so only the default sample exists
        assert result.average_spread_24h_bps == 5.0
        assert result.spread_stability_score == 100.0