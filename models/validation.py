"""Validation and coercion utilities for market data records.

Upstream payloads are loosely typed (numbers arrive as strings, fields may be
missing). Everything is coerced here, once, so the analyzers only ever see
well-typed values.
"""
import logging
import math
from typing import Any, Dict, Iterable, List, Optional

from models.enums import ExecutionRole, TradeDirection
from models.market_data import OrderBook, OrderBookLevel, Trade
from utils.exceptions import ValidationError

logger = logging.getLogger(__name__)


def coerce_float(value: Any, default: float = 0.0) -> float:
    """
    Coerce a raw numeric field to a non-negative finite float.

    Args:
        value: Raw value (str, int, float, None, ...)
        default: Value used when the field is missing or malformed

    Returns:
        Parsed float, or ``default`` for malformed, negative or non-finite input
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number < 0:
        return default
    return number


def coerce_int(value: Any, default: int = 0) -> int:
    """Coerce a raw integer field (e.g. timestamps), defaulting on bad input."""
    number = coerce_float(value, float(default))
    return int(number)


def coerce_direction(value: Any) -> TradeDirection:
    return TradeDirection.SELL if str(value).lower() == "sell" else TradeDirection.BUY


def coerce_role(value: Any) -> ExecutionRole:
    return ExecutionRole.TAKER if str(value).lower() == "taker" else ExecutionRole.MAKER


def _epoch_seconds(raw: Any) -> int:
    # Indexer timestamps are in milliseconds
    ts = coerce_int(raw)
    return ts // 1000 if ts > 10_000_000_000 else ts


def parse_levels(raw_levels: Optional[Iterable[Dict[str, Any]]]) -> List[OrderBookLevel]:
    """Parse raw order book levels; malformed entries become zero-valued levels."""
    levels = []
    for raw in raw_levels or []:
        if not isinstance(raw, dict):
            raw = {}
        levels.append(OrderBookLevel(
            price=coerce_float(raw.get("price")),
            quantity=coerce_float(raw.get("quantity")),
            timestamp=_epoch_seconds(raw.get("timestamp")),
        ))
    return levels


def parse_order_book(payload: Optional[Dict[str, Any]], fetched_at: float) -> OrderBook:
    """
    Build an OrderBook from an indexer payload.

    Accepts either ``{"orderbook": {"buys": [...], "sells": [...]}}`` or the
    inner object directly.
    """
    payload = payload or {}
    book = payload.get("orderbook", payload) or {}
    return OrderBook(
        buys=parse_levels(book.get("buys")),
        sells=parse_levels(book.get("sells")),
        fetched_at=fetched_at,
    )


def parse_trade(raw: Dict[str, Any]) -> Trade:
    """Parse a single raw trade record."""
    if not isinstance(raw, dict):
        raw = {}
    nested = raw.get("price")
    if isinstance(nested, dict):
        price, quantity = nested.get("price"), nested.get("quantity")
    else:
        price, quantity = nested, raw.get("quantity")
    if not price:
        price = raw.get("executionPrice")
    if not quantity:
        quantity = raw.get("executionQuantity")

    return Trade(
        price=coerce_float(price),
        quantity=coerce_float(quantity),
        timestamp=_epoch_seconds(raw.get("executedAt", raw.get("timestamp"))),
        direction=coerce_direction(raw.get("tradeDirection", raw.get("direction"))),
        execution_role=coerce_role(raw.get("executionSide", raw.get("executionRole"))),
    )


def parse_trades(payload: Optional[Dict[str, Any]]) -> List[Trade]:
    """Parse an indexer trades payload, keeping upstream (newest-first) order."""
    payload = payload or {}
    raw_trades = payload.get("trades") or []
    trades = [parse_trade(raw) for raw in raw_trades]
    unpriced = sum(1 for t in trades if t.price <= 0)
    if unpriced:
        logger.debug(f"{unpriced} of {len(trades)} trades had no usable price")
    return trades


def validate_trade_size(size: float) -> float:
    """
    Validate a slippage simulation size in quote currency.

    Raises:
        ValidationError: If size is negative or not a number
    """
    try:
        size = float(size)
    except (TypeError, ValueError):
        raise ValidationError(f"Trade size must be a number, got {size!r}")
    if not math.isfinite(size) or size < 0:
        raise ValidationError(f"Trade size must be non-negative, got {size}")
    return size


def validate_side(side: Any) -> TradeDirection:
    """
    Validate and convert a trade side.

    Raises:
        ValidationError: If side is invalid
    """
    if isinstance(side, TradeDirection):
        return side
    try:
        return TradeDirection.from_string(side)
    except ValueError as e:
        raise ValidationError(str(e))


def validate_hours(hours: Any) -> float:
    """
    Validate a look-back window in hours.

    Raises:
        ValidationError: If hours is not a positive number
    """
    try:
        hours = float(hours)
    except (TypeError, ValueError):
        raise ValidationError(f"Hours must be a number, got {hours!r}")
    if not math.isfinite(hours) or hours <= 0:
        raise ValidationError(f"Hours must be positive, got {hours}")
    return hours
