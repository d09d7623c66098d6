"""Pytest configuration and shared fixtures."""
import uuid
from typing import Dict, List, Optional

import pytest

from config.settings import AppConfig, LogLevel
from models.enums import MarketType, TradeDirection
from models.market_data import MarketMeta, OrderBook, OrderBookLevel, Trade
from sources.base import MetricsSource
from utils.cache import ComputationCache

NOW = 1_700_000_000.0


class FakeClock:
    """Manually advanced clock usable wherever a ``Callable[[], float]`` is expected."""

    def __init__(self, start: float = NOW):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StaticMetricsSource(MetricsSource):
    """
    In-memory metrics source.

    Books and trades are looked up per market id, falling back to the
    defaults. Every fetch is counted so tests can assert on caching.
    """

    def __init__(
        self,
        book: Optional[OrderBook] = None,
        trades: Optional[List[Trade]] = None,
        books: Optional[Dict[str, OrderBook]] = None,
        trades_by_market: Optional[Dict[str, List[Trade]]] = None
    ):
        self.book = book or OrderBook()
        self.trades = trades or []
        self.books = books or {}
        self.trades_by_market = trades_by_market or {}
        self.book_calls = 0
        self.trade_calls = 0

    async def fetch_order_book(self, market: MarketMeta) -> OrderBook:
        self.book_calls += 1
        return self.books.get(market.market_id, self.book)

    async def fetch_trades(self, market: MarketMeta, limit: int = 100) -> List[Trade]:
        self.trade_calls += 1
        return self.trades_by_market.get(market.market_id, self.trades)[:limit]


def make_trades(prices, start: float = NOW, spacing: int = 10, direction=TradeDirection.BUY, quantity=1.0):
    """Newest-first trades: ``prices[0]`` is the latest, each older by ``spacing`` seconds."""
    return [
        Trade(price=p, quantity=quantity, timestamp=int(start - i * spacing), direction=direction)
        for i, p in enumerate(prices)
    ]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def spot_market() -> MarketMeta:
    return MarketMeta(market_id="0xspot", ticker="INJ/USDT", market_type=MarketType.SPOT)


@pytest.fixture
def perp_market() -> MarketMeta:
    return MarketMeta(market_id="0xperp", ticker="BTC/USDT PERP", market_type=MarketType.DERIVATIVE)


@pytest.fixture
def mock_config(spot_market, perp_market) -> AppConfig:
    """Create a configuration for testing."""
    return AppConfig(
        log_level=LogLevel.DEBUG,
        markets=[spot_market, perp_market],
    )


@pytest.fixture
def cache(clock) -> ComputationCache:
    return ComputationCache(default_ttl=30, clock=clock)


@pytest.fixture
def simple_book() -> OrderBook:
    """One bid at 100 and one ask at 101, ten units each."""
    return OrderBook(
        buys=[OrderBookLevel(price=100.0, quantity=10.0)],
        sells=[OrderBookLevel(price=101.0, quantity=10.0)],
    )


@pytest.fixture
def deep_book() -> OrderBook:
    """Five levels per side around a mid of 100."""
    return OrderBook(
        buys=[OrderBookLevel(price=100.0 - 0.05 * (i + 1), quantity=500.0) for i in range(5)],
        sells=[OrderBookLevel(price=100.0 + 0.05 * (i + 1), quantity=500.0) for i in range(5)],
    )


@pytest.fixture
def rising_trades() -> List[Trade]:
    """Ten buys over the last 90 seconds, rising from 100 to 101."""
    prices = [101.0 - i * (1.0 / 9) for i in range(10)]
    return make_trades(prices)


@pytest.fixture
def static_source(simple_book, rising_trades) -> StaticMetricsSource:
    return StaticMetricsSource(book=simple_book, trades=rising_trades)


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("NETWORK", "mainnet")
    monkeypatch.delenv("MARKETS", raising=False)


@pytest.fixture
def correlation_id() -> str:
    """Generate a test correlation ID."""
    return str(uuid.uuid4())
