"""Liquidity analyzer: depth, spread, slippage and composite liquidity score."""
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from analyzers.base import BaseAnalyzer
from core.indicators import basis_points, mean, percentile_rank, round_to
from core.scoring import (
    composite_liquidity_score,
    linear_score,
    liquidity_label,
    sigmoid_score,
)
from models.enums import TradeDirection
from models.market_data import MarketMeta, OrderBook, OrderBookLevel, Trade
from models.schemas import (
    DepthAnalysis,
    DepthLevel,
    LiquidityComponents,
    LiquidityMetrics,
    LiquidityScore,
    SlippageEstimate,
    SpreadAnalysis,
)
from models.validation import validate_side, validate_trade_size

DEFAULT_HISTORICAL_SPREAD_BPS = 5.0


@dataclass(frozen=True)
class SlippageResult:
    """Outcome of walking the book for a notional size."""
    avg_price: float
    slippage_bps: float
    fillable: bool
    filled_notional: float


def mid_price(book: OrderBook) -> float:
    """Mean of best bid and ask; the present side for a one-sided book; 0 if empty."""
    bid, ask = book.best_bid, book.best_ask
    if not bid and not ask:
        return 0.0
    if not bid:
        return ask
    if not ask:
        return bid
    return (bid + ask) / 2


def depth_usd(levels: Sequence[OrderBookLevel]) -> float:
    """Total notional resting on a side."""
    if not levels:
        return 0.0
    prices = np.fromiter((l.price for l in levels), dtype=float, count=len(levels))
    quantities = np.fromiter((l.quantity for l in levels), dtype=float, count=len(levels))
    return float(np.dot(prices, quantities))


def depth_imbalance_pct(bid_depth: float, ask_depth: float) -> float:
    total = bid_depth + ask_depth
    if total <= 0:
        return 0.0
    return (bid_depth - ask_depth) / total * 100


def spread_bps(book: OrderBook) -> float:
    """|best bid - best ask| in bps of the mid price (0 when mid is 0)."""
    mid = mid_price(book)
    if mid <= 0:
        return 0.0
    return abs(book.best_bid - book.best_ask) / mid * 10_000


def simulate_slippage(levels: Sequence[OrderBookLevel], mid: float, size: float) -> SlippageResult:
    """
    Walk book levels consuming ``size`` quote units of notional.

    Args:
        levels: Opposing side, best-first (asks for a buy, bids for a sell)
        mid: Reference mid price
        size: Notional to fill, in quote currency

    Returns:
        SlippageResult; the average price falls back to mid when nothing fills
    """
    remaining = size
    cost = 0.0
    quantity = 0.0
    for level in levels:
        if remaining <= 0:
            break
        if level.price <= 0:
            continue
        fill = min(remaining, level.notional)
        cost += fill
        quantity += fill / level.price
        remaining -= fill

    avg_price = cost / quantity if quantity > 0 else mid
    slippage = abs((avg_price - mid) / mid) * 10_000 if mid > 0 else 0.0
    return SlippageResult(
        avg_price=avg_price,
        slippage_bps=slippage,
        fillable=remaining <= 0,
        filled_notional=cost,
    )


def volume_within(levels: Sequence[OrderBookLevel], mid: float, distance_pct: float) -> float:
    """Notional of levels within ``distance_pct`` percent of mid."""
    if mid == 0:
        return 0.0
    return sum(
        l.notional for l in levels
        if abs(l.price - mid) / mid * 100 <= distance_pct
    )


def depth_profile(
    book: OrderBook,
    bands: Sequence[float]
) -> List[Tuple[float, float, float, float, float]]:
    """
    Bid/ask notional per distance band, evaluated in increasing distance.

    A band covers the ring between the previous band's distance (exclusive)
    and its own distance (inclusive); cumulative figures cover everything
    within the band's distance of mid.

    Returns:
        List of (distance_pct, bid, ask, cumulative_bid, cumulative_ask)
    """
    mid = mid_price(book)
    cumulative_bid = cumulative_ask = 0.0
    rows = []
    for distance in sorted(bands):
        within_bid = volume_within(book.buys, mid, distance)
        within_ask = volume_within(book.sells, mid, distance)
        rows.append((
            distance,
            within_bid - cumulative_bid,
            within_ask - cumulative_ask,
            within_bid,
            within_ask,
        ))
        cumulative_bid, cumulative_ask = within_bid, within_ask
    return rows


def resilience_score(book: OrderBook, trades: Sequence[Trade]) -> float:
    """Blend of book level count and recent trade frequency."""
    levels = sigmoid_score(book.level_count, 30, 2)
    frequency = sigmoid_score(len(trades), 50, 1.5)
    return round_to(levels * 0.6 + frequency * 0.4)


def historical_spreads(trades: Sequence[Trade]) -> List[float]:
    """
    Approximate historical bid-ask bounce from direction flips.

    Each consecutive pair of trades with opposite directions and positive
    prices contributes its bps distance. Falls back to a single 5 bps sample.
    """
    samples = [
        basis_points(curr.price, prev.price)
        for prev, curr in zip(trades, trades[1:])
        if curr.direction != prev.direction and curr.price > 0 and prev.price > 0
    ]
    return samples or [DEFAULT_HISTORICAL_SPREAD_BPS]


class LiquidityAnalyzer(BaseAnalyzer):
    """
    Analyzer for order book liquidity.

    Produces a composite 0-100 liquidity score from book depth, spread and
    resilience, plus depth profiles, slippage estimates and spread analytics.
    """

    REFERENCE_DEPTH_USD = 100_000
    SPREAD_RANGE_BPS = (1, 50)
    DEPTH_BANDS_PCT = (0.1, 0.5, 1, 2, 5)
    SLIPPAGE_PROBE_SIZES = (1_000, 10_000, 50_000)
    TRADE_LIMIT = 100
    RECENT_SPREAD_SAMPLES = 20

    async def get_score(self, market: MarketMeta) -> LiquidityScore:
        return await self.cache.get_or_compute(
            f"liq:score:{market.market_id}", lambda: self._score(market), self.computed_ttl
        )

    async def get_depth(self, market: MarketMeta) -> DepthAnalysis:
        return await self.cache.get_or_compute(
            f"liq:depth:{market.market_id}", lambda: self._depth(market), self.computed_ttl
        )

    async def get_slippage(self, market: MarketMeta, size_usd: float, side="buy") -> SlippageEstimate:
        """
        Estimate slippage for a notional trade size.

        Raises:
            ValidationError: If size is negative or side is invalid
        """
        size_usd = validate_trade_size(size_usd)
        direction = validate_side(side)
        return await self.cache.get_or_compute(
            f"liq:slip:{market.market_id}:{size_usd}:{direction.value}",
            lambda: self._slippage(market, size_usd, direction),
            self.config.cache.orderbook_ttl,
        )

    async def get_spread(self, market: MarketMeta) -> SpreadAnalysis:
        return await self.cache.get_or_compute(
            f"liq:spr:{market.market_id}", lambda: self._spread(market), self.computed_ttl
        )

    def score_book(self, market: MarketMeta, book: OrderBook, trades: Sequence[Trade]) -> LiquidityScore:
        """Compute the liquidity score record from already fetched data."""
        mid = mid_price(book)
        bid_depth = depth_usd(book.buys)
        ask_depth = depth_usd(book.sells)
        total_depth = bid_depth + ask_depth
        spread = spread_bps(book)
        slippages = [
            simulate_slippage(book.sells, mid, size).slippage_bps
            for size in self.SLIPPAGE_PROBE_SIZES
        ]

        depth_component = sigmoid_score(total_depth, self.REFERENCE_DEPTH_USD, 2)
        spread_component = linear_score(spread, *self.SPREAD_RANGE_BPS, invert=True)
        resilience_component = resilience_score(book, trades)
        score = composite_liquidity_score(depth_component, spread_component, resilience_component)
        spread_pct = percentile_rank(sorted(historical_spreads(trades)), spread)

        return LiquidityScore(
            **self.record_header(market, self.computed_ttl),
            liquidity_score=score,
            score_label=liquidity_label(score),
            components=LiquidityComponents(
                depth_score=depth_component,
                spread_score=spread_component,
                resilience_score=resilience_component,
            ),
            metrics=LiquidityMetrics(
                bid_depth_usd=round_to(bid_depth),
                ask_depth_usd=round_to(ask_depth),
                depth_imbalance_pct=round_to(depth_imbalance_pct(bid_depth, ask_depth)),
                spread_bps=round_to(spread, 1),
                spread_percentile_24h=round_to(spread_pct),
                estimated_slippage_1k_bps=round_to(slippages[0], 1),
                estimated_slippage_10k_bps=round_to(slippages[1], 1),
                estimated_slippage_50k_bps=round_to(slippages[2], 1),
            ),
        )

    async def _score(self, market: MarketMeta) -> LiquidityScore:
        book = await self.source.fetch_order_book(market)
        trades = await self.source.fetch_trades(market, self.TRADE_LIMIT)
        result = self.score_book(market, book, trades)
        self.log_debug(
            f"Liquidity score for {market.ticker}: {result.liquidity_score} ({result.score_label})",
            market_id=market.market_id
        )
        return result

    async def _depth(self, market: MarketMeta) -> DepthAnalysis:
        book = await self.source.fetch_order_book(market)
        levels = [
            DepthLevel(
                distance_from_mid_pct=distance,
                bid_volume_usd=round_to(bid),
                ask_volume_usd=round_to(ask),
                cumulative_bid_usd=round_to(cum_bid),
                cumulative_ask_usd=round_to(cum_ask),
            )
            for distance, bid, ask, cum_bid, cum_ask in depth_profile(book, self.DEPTH_BANDS_PCT)
        ]
        return DepthAnalysis(
            **self.record_header(market, self.computed_ttl),
            levels=levels,
            total_bid_depth_usd=round_to(depth_usd(book.buys)),
            total_ask_depth_usd=round_to(depth_usd(book.sells)),
        )

    async def _slippage(self, market: MarketMeta, size_usd: float, side: TradeDirection) -> SlippageEstimate:
        book = await self.source.fetch_order_book(market)
        mid = mid_price(book)
        levels = book.sells if side == TradeDirection.BUY else book.buys
        result = simulate_slippage(levels, mid, size_usd)
        if not result.fillable:
            self.log_warning(
                f"Book for {market.ticker} cannot fill {size_usd} on the {side.value} side "
                f"(filled {result.filled_notional:.2f})",
                market_id=market.market_id
            )
        return SlippageEstimate(
            **self.record_header(market, self.config.cache.orderbook_ttl),
            trade_size_usd=size_usd,
            side=side,
            estimated_slippage_bps=round_to(result.slippage_bps, 1),
            estimated_avg_price=round_to(result.avg_price, 6),
            mid_price=round_to(mid, 6),
            effective_price_impact_pct=round_to(result.slippage_bps / 100, 3),
            fillable=result.fillable,
        )

    async def _spread(self, market: MarketMeta) -> SpreadAnalysis:
        book = await self.source.fetch_order_book(market)
        trades = await self.source.fetch_trades(market, self.TRADE_LIMIT)
        samples = historical_spreads(trades)
        variation = max(samples) - min(samples)
        return SpreadAnalysis(
            **self.record_header(market, self.computed_ttl),
            current_spread_bps=round_to(spread_bps(book), 1),
            mid_price=round_to(mid_price(book), 6),
            best_bid=round_to(book.best_bid, 6),
            best_ask=round_to(book.best_ask, 6),
            average_spread_1h_bps=round_to(mean(samples[:self.RECENT_SPREAD_SAMPLES]), 1),
            average_spread_24h_bps=round_to(mean(samples), 1),
            spread_stability_score=linear_score(variation, 0, 50, invert=True),
        )
