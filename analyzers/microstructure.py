"""Microstructure analyzer: order flow, whale trades and momentum."""
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from analyzers.base import BaseAnalyzer, iso_timestamp
from core.indicators import mean, round_to
from core.scoring import momentum_label, momentum_score
from models.enums import FlowDirection, TradeDirection, VolumeTrend
from models.market_data import MarketMeta, Trade, trades_to_dataframe
from models.schemas import (
    FlowAnalysis,
    FlowWindow,
    FlowWindows,
    MomentumIndicators,
    MomentumReport,
    WhaleReport,
    WhaleTrade,
)
from models.validation import validate_hours

WHALE_MIN_USD = 5_000.0
WHALE_PERCENTILE = 0.95
VOLUME_TREND_THRESHOLD = 0.15


@dataclass(frozen=True)
class FlowStats:
    """Buy/sell flow over one window."""
    buy_volume: float
    sell_volume: float
    buy_count: int
    sell_count: int

    @property
    def net_flow(self) -> float:
        return self.buy_volume - self.sell_volume

    @property
    def imbalance_ratio(self) -> float:
        total = self.buy_volume + self.sell_volume
        return self.buy_volume / total if total > 0 else 0.5

    def to_window(self) -> FlowWindow:
        return FlowWindow(
            buy_volume_usd=round_to(self.buy_volume),
            sell_volume_usd=round_to(self.sell_volume),
            buy_count=self.buy_count,
            sell_count=self.sell_count,
            net_flow_usd=round_to(self.net_flow),
            imbalance_ratio=round_to(self.imbalance_ratio, 3),
        )


def window(frame: pd.DataFrame, now: float, seconds: Optional[float]) -> pd.DataFrame:
    """Trades no older than ``seconds`` before ``now`` (all trades if None)."""
    if seconds is None:
        return frame
    return frame[frame["timestamp"] >= now - seconds]


def flow_stats(frame: pd.DataFrame) -> FlowStats:
    buys = frame["is_buy"]
    return FlowStats(
        buy_volume=float(frame.loc[buys, "notional"].sum()),
        sell_volume=float(frame.loc[~buys, "notional"].sum()),
        buy_count=int(buys.sum()),
        sell_count=int((~buys).sum()),
    )


def flow_direction(score: float) -> FlowDirection:
    if score > 55:
        return FlowDirection.BUY_DOMINANT
    if score < 45:
        return FlowDirection.SELL_DOMINANT
    return FlowDirection.NEUTRAL


def whale_threshold(notionals: Sequence[float]) -> float:
    """
    Notional size above which a trade counts as a whale trade.

    The 95th percentile sample of the window, or 3x the mean when that sample
    is zero, never below WHALE_MIN_USD.
    """
    sizes = np.sort(np.asarray(notionals, dtype=float))
    if sizes.size == 0:
        return WHALE_MIN_USD
    index = int(np.floor(sizes.size * WHALE_PERCENTILE))
    p95 = sizes[index] if index < sizes.size else 0.0
    if p95 <= 0:
        p95 = float(sizes.mean()) * 3
    return max(float(p95), WHALE_MIN_USD)


def price_change_pct(reference: float, current: float) -> float:
    return (current - reference) / reference * 100 if reference > 0 else 0.0


def volume_trend(notionals_newest_first: Sequence[float]) -> VolumeTrend:
    """Compare notional of the newer half of a batch against the older half."""
    half = len(notionals_newest_first) // 2
    newer = float(sum(notionals_newest_first[:half]))
    older = float(sum(notionals_newest_first[half:]))
    if older <= 0:
        return VolumeTrend.STABLE
    change = (newer - older) / older
    if change > VOLUME_TREND_THRESHOLD:
        return VolumeTrend.INCREASING
    if change < -VOLUME_TREND_THRESHOLD:
        return VolumeTrend.DECREASING
    return VolumeTrend.STABLE


def flow_bias(frame: pd.DataFrame) -> float:
    """(buy trade ratio - 0.5) * 2, 0 for an empty window."""
    if frame.empty:
        return 0.0
    return (float(frame["is_buy"].mean()) - 0.5) * 2


class MicrostructureAnalyzer(BaseAnalyzer):
    """
    Analyzer for trade-level market microstructure.

    Trades arrive newest-first; windows are selected by trade age relative to
    the analyzer clock.
    """

    TRADE_LIMIT = 500
    WINDOW_5M = 5 * 60
    WINDOW_1H = 60 * 60
    MAX_REPORTED_WHALES = 20

    async def get_flow(self, market: MarketMeta) -> FlowAnalysis:
        return await self.cache.get_or_compute(
            f"ms:flow:{market.market_id}", lambda: self._flow(market), self.computed_ttl
        )

    async def get_whales(self, market: MarketMeta, hours: float = 24) -> WhaleReport:
        """
        Report whale trades over a look-back window.

        Raises:
            ValidationError: If hours is not positive
        """
        hours = validate_hours(hours)
        return await self.cache.get_or_compute(
            f"ms:whale:{market.market_id}:{hours}",
            lambda: self._whales(market, hours),
            self.computed_ttl,
        )

    async def get_momentum(self, market: MarketMeta) -> MomentumReport:
        return await self.cache.get_or_compute(
            f"ms:mom:{market.market_id}", lambda: self._momentum(market), self.computed_ttl
        )

    def analyze_flow(self, market: MarketMeta, trades: Sequence[Trade]) -> FlowAnalysis:
        """Compute the flow record from an already fetched trade batch."""
        now = self.clock()
        frame = trades_to_dataframe(list(trades))
        frame_5m = window(frame, now, self.WINDOW_5M)
        frame_1h = window(frame, now, self.WINDOW_1H)

        flow_5m, flow_1h, flow_all = flow_stats(frame_5m), flow_stats(frame_1h), flow_stats(frame)
        score = round_to(round_to(flow_1h.imbalance_ratio, 3) * 100)
        threshold = whale_threshold(frame_1h["notional"].to_numpy())
        whale_count = int((frame_1h["notional"] >= threshold).sum())

        return FlowAnalysis(
            **self.record_header(market, self.computed_ttl),
            flow_score=score,
            flow_direction=flow_direction(score),
            windows=FlowWindows(
                window_5m=flow_5m.to_window(),
                window_1h=flow_1h.to_window(),
                window_24h=flow_all.to_window(),
            ),
            whale_trades_1h=whale_count,
            whale_threshold_usd=round_to(threshold),
        )

    def analyze_whales(self, market: MarketMeta, trades: Sequence[Trade], hours: float) -> WhaleReport:
        """Compute the whale report from an already fetched trade batch."""
        cutoff = self.clock() - hours * 3600
        period = [t for t in trades if t.timestamp >= cutoff]
        threshold = whale_threshold([t.notional for t in period])
        whales = [t for t in period if t.notional >= threshold]
        average = mean([t.notional for t in period]) if period else 1.0
        average = average or 1.0

        buy_volume = sum(t.notional for t in whales if t.direction == TradeDirection.BUY)
        sell_volume = sum(t.notional for t in whales if t.direction == TradeDirection.SELL)

        return WhaleReport(
            **self.record_header(market, self.computed_ttl),
            whale_threshold_usd=round_to(threshold),
            period_hours=hours,
            total_whale_trades=len(whales),
            whale_buy_volume_usd=round_to(buy_volume),
            whale_sell_volume_usd=round_to(sell_volume),
            trades=[
                WhaleTrade(
                    timestamp=iso_timestamp(t.timestamp),
                    side=t.direction,
                    quantity=round_to(t.quantity, 4),
                    price=round_to(t.price, 4),
                    volume_usd=round_to(t.notional),
                    size_multiple=round_to(t.notional / average, 1),
                )
                for t in whales[:self.MAX_REPORTED_WHALES]
            ],
        )

    def analyze_momentum(
        self,
        market: MarketMeta,
        trades: Sequence[Trade],
        change_24h: float
    ) -> MomentumReport:
        """
        Compute the momentum record.

        Args:
            market: Market identity
            trades: Newest-first trade batch
            change_24h: 24h price change (%) from the market summary
        """
        now = self.clock()
        frame = trades_to_dataframe(list(trades))
        frame_5m = window(frame, now, self.WINDOW_5M)
        frame_1h = window(frame, now, self.WINDOW_1H)

        latest = float(frame["price"].iloc[0]) if not frame.empty else 0.0
        # Oldest in-window trade is the last row of a newest-first frame
        ref_5m = float(frame_5m["price"].iloc[-1]) if not frame_5m.empty else latest
        ref_1h = float(frame_1h["price"].iloc[-1]) if not frame_1h.empty else latest
        change_5m = price_change_pct(ref_5m, latest)
        change_1h = price_change_pct(ref_1h, latest)

        trend = volume_trend(frame["notional"].tolist())
        bias = flow_bias(frame_1h)
        score = momentum_score(change_5m, change_1h, change_24h, bias)

        return MomentumReport(
            **self.record_header(market, self.computed_ttl),
            momentum_score=score,
            momentum_label=momentum_label(score),
            indicators=MomentumIndicators(
                price_change_5m_pct=round_to(change_5m, 3),
                price_change_1h_pct=round_to(change_1h, 3),
                price_change_24h_pct=round_to(change_24h, 3),
                volume_trend=trend,
                trade_flow_bias=round_to(bias, 3),
            ),
        )

    async def _flow(self, market: MarketMeta) -> FlowAnalysis:
        trades = await self.source.fetch_trades(market, self.TRADE_LIMIT)
        return self.analyze_flow(market, trades)

    async def _whales(self, market: MarketMeta, hours: float) -> WhaleReport:
        trades = await self.source.fetch_trades(market, self.TRADE_LIMIT)
        report = self.analyze_whales(market, trades, hours)
        if report.total_whale_trades:
            self.log_info(
                f"{report.total_whale_trades} whale trades on {market.ticker} "
                f"in the last {hours:g}h (threshold {report.whale_threshold_usd})",
                market_id=market.market_id
            )
        return report

    async def _momentum(self, market: MarketMeta) -> MomentumReport:
        trades = await self.source.fetch_trades(market, self.TRADE_LIMIT)
        summary = await self.source.fetch_market_summary(market)
        return self.analyze_momentum(market, trades, summary.change or 0.0)
