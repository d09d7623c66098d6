"""Market data models."""
from dataclasses import dataclass, field
from typing import List
import time

import numpy as np
import pandas as pd

from models.enums import ExecutionRole, MarketType, TradeDirection


@dataclass(frozen=True)
class MarketMeta:
    """Identity of a tradable market."""
    market_id: str
    ticker: str
    market_type: MarketType = MarketType.SPOT
    base_symbol: str = ""
    quote_symbol: str = ""
    base_decimals: int = 18
    quote_decimals: int = 6


@dataclass(frozen=True)
class OrderBookLevel:
    """Single price level of an order book."""
    price: float
    quantity: float
    timestamp: int = 0

    @property
    def notional(self) -> float:
        return self.price * self.quantity


@dataclass
class OrderBook:
    """
    Order book snapshot.

    ``buys`` are sorted best-first (descending price) and ``sells`` best-first
    (ascending price). Either side may be empty.
    """
    buys: List[OrderBookLevel] = field(default_factory=list)
    sells: List[OrderBookLevel] = field(default_factory=list)
    fetched_at: float = field(default_factory=time.time)

    @property
    def best_bid(self) -> float:
        return self.buys[0].price if self.buys else 0.0

    @property
    def best_ask(self) -> float:
        return self.sells[0].price if self.sells else 0.0

    @property
    def level_count(self) -> int:
        return len(self.buys) + len(self.sells)

    @classmethod
    def empty(cls) -> "OrderBook":
        return cls()


@dataclass(frozen=True)
class Trade:
    """Trade tick data."""
    price: float
    quantity: float
    timestamp: int  # epoch seconds
    direction: TradeDirection = TradeDirection.BUY
    execution_role: ExecutionRole = ExecutionRole.MAKER

    @property
    def notional(self) -> float:
        return self.price * self.quantity

    @property
    def is_buy(self) -> bool:
        return self.direction == TradeDirection.BUY


@dataclass(frozen=True)
class MarketSummary:
    """Price/volume summary derived upstream from a trade batch."""
    price: float = 0.0
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    volume: float = 0.0
    change: float = 0.0

    @classmethod
    def from_trades(cls, trades: List[Trade]) -> "MarketSummary":
        """
        Build a summary from a newest-first trade batch.

        Returns:
            MarketSummary with zero fields when there are no priced trades
        """
        prices = [t.price for t in trades if t.price > 0]
        if not prices:
            return cls()

        price = prices[0]
        open_price = prices[-1]
        volume = sum(t.notional for t in trades)
        change = ((price - open_price) / open_price) * 100 if open_price > 0 else 0.0
        return cls(
            price=price,
            open=open_price,
            high=max(prices),
            low=min(prices),
            volume=volume,
            change=change,
        )


def trades_to_dataframe(trades: List[Trade]) -> pd.DataFrame:
    """
    Convert trades to a pandas DataFrame for window analysis.

    Returns:
        DataFrame with price, quantity, notional, timestamp and is_buy columns,
        preserving the input (newest-first) order
    """
    return pd.DataFrame({
        "price": np.array([t.price for t in trades], dtype=float),
        "quantity": np.array([t.quantity for t in trades], dtype=float),
        "notional": np.array([t.notional for t in trades], dtype=float),
        "timestamp": np.array([t.timestamp for t in trades], dtype=np.int64),
        "is_buy": np.array([t.is_buy for t in trades], dtype=bool),
    })
