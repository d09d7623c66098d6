"""Injective indexer metrics source over HTTP."""
import logging
import time
from typing import Any, Dict, List, Optional

import aiohttp

from config.settings import CacheConfig, IndexerConfig
from models.market_data import MarketMeta, MarketSummary, OrderBook, Trade
from models.validation import parse_order_book, parse_trades
from sources.base import MetricsSource
from utils.cache import ComputationCache
from utils.exceptions import MarketDataError
from utils.retry import RetryConfig, async_retry_with_backoff

logger = logging.getLogger(__name__)

ORDERBOOK_PATH = "/api/exchange/{market_type}/v2/orderbook/{market_id}"
TRADES_PATH = "/api/exchange/{market_type}/v1/trades"


class IndexerMetricsSource(MetricsSource):
    """
    Fetches order books and trades from the Injective indexer REST gateway.

    Responses are cached per metric class (order book / trades / summary TTLs).
    Transient failures are retried with backoff; once retries are exhausted
    the source degrades to empty data and logs the failure.
    """

    def __init__(
        self,
        indexer: IndexerConfig,
        cache: ComputationCache,
        cache_config: Optional[CacheConfig] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize the source.

        Args:
            indexer: Indexer connection settings
            cache: Shared computation cache
            cache_config: TTLs per metric class
            session: Optional externally managed aiohttp session
        """
        self.indexer = indexer
        self.cache = cache
        self.cache_config = cache_config or CacheConfig()
        self._session = session
        self._owns_session = session is None
        self._retry = RetryConfig(max_attempts=indexer.max_retries)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.indexer.timeout_seconds)
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the session if this source created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        @async_retry_with_backoff(self._retry)
        async def request() -> Dict[str, Any]:
            session = await self._get_session()
            url = f"{self.indexer.base_url.rstrip('/')}{path}"
            async with session.get(url, params=params) as response:
                if response.status >= 500 or response.status == 429:
                    raise MarketDataError(
                        f"Indexer returned {response.status} for {path}",
                        status_code=response.status
                    )
                if response.status != 200:
                    # Client errors are not retried
                    raise ValueError(f"Indexer returned {response.status} for {path}")
                return await response.json(content_type=None)

        return await request()

    async def fetch_order_book(self, market: MarketMeta) -> OrderBook:
        async def load() -> OrderBook:
            path = ORDERBOOK_PATH.format(
                market_type=market.market_type.value, market_id=market.market_id
            )
            try:
                payload = await self._get_json(path)
            except Exception as e:
                logger.error(
                    f"Order book fetch failed for {market.ticker}: {e}",
                    extra={"market_id": market.market_id}
                )
                return OrderBook(fetched_at=time.time())
            return parse_order_book(payload, fetched_at=time.time())

        return await self.cache.get_or_compute(
            f"ob:{market.market_id}", load, self.cache_config.orderbook_ttl
        )

    async def fetch_trades(self, market: MarketMeta, limit: int = 100) -> List[Trade]:
        async def load() -> List[Trade]:
            path = TRADES_PATH.format(market_type=market.market_type.value)
            params = {"marketId": market.market_id, "limit": limit}
            try:
                payload = await self._get_json(path, params)
            except Exception as e:
                logger.error(
                    f"Trades fetch failed for {market.ticker}: {e}",
                    extra={"market_id": market.market_id}
                )
                return []
            return parse_trades(payload)

        return await self.cache.get_or_compute(
            f"tr:{market.market_id}:{limit}", load, self.cache_config.trades_ttl
        )

    async def fetch_market_summary(self, market: MarketMeta) -> MarketSummary:
        return await self.cache.get_or_compute(
            f"sum:{market.market_id}",
            lambda: super(IndexerMetricsSource, self).fetch_market_summary(market),
            self.cache_config.computed_ttl,
        )
