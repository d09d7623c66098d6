"""Metrics source interface consumed by the analyzers."""
from abc import ABC, abstractmethod
from typing import List

from models.market_data import MarketMeta, MarketSummary, OrderBook, Trade


class MetricsSource(ABC):
    """
    Upstream provider of order books, trades and market summaries.

    Implementations must never raise on upstream failure: they degrade to an
    empty order book, an empty trade list or a zero summary.
    """

    @abstractmethod
    async def fetch_order_book(self, market: MarketMeta) -> OrderBook:
        """Fetch the current order book (buys descending, sells ascending)."""

    @abstractmethod
    async def fetch_trades(self, market: MarketMeta, limit: int = 100) -> List[Trade]:
        """Fetch up to ``limit`` recent trades, newest first."""

    async def fetch_market_summary(self, market: MarketMeta) -> MarketSummary:
        """Derive a price/volume summary from the latest 200 trades."""
        trades = await self.fetch_trades(market, 200)
        return MarketSummary.from_trades(trades)

    @property
    def name(self) -> str:
        return self.__class__.__name__

    async def close(self) -> None:
        """Release any held resources."""
