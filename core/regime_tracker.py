"""
Regime Tracker - per-market volatility regime state machine.

Each tracked market holds exactly one current regime and at most one record of
the most recent transition. State lives for the process lifetime only.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from core.scoring import volatility_regime
from models.enums import VolatilityRegime

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True)
class RegimeTransition:
    """A regime that has ended."""
    regime: VolatilityRegime
    ended_at: float  # epoch seconds
    duration_hours: float


@dataclass(frozen=True)
class RegimeState:
    """
    Immutable regime state for one market.

    Attributes:
        current_regime: Regime in force
        since: Epoch seconds when current_regime started
        previous_transition: The last regime that ended, if any
    """
    current_regime: VolatilityRegime
    since: float
    previous_transition: Optional[RegimeTransition] = None

    def duration_hours(self, now: float) -> float:
        return max(0.0, (now - self.since) / SECONDS_PER_HOUR)


def next_regime_state(
    prior: Optional[RegimeState],
    regime: VolatilityRegime,
    now: float
) -> RegimeState:
    """
    Compute the next state from the prior state and a newly observed regime.

    Args:
        prior: Existing state, or None on first observation
        regime: Newly computed regime
        now: Observation time (epoch seconds)

    Returns:
        The prior state unchanged if the regime is the same, otherwise a new
        state whose previous_transition closes the prior regime
    """
    if prior is None:
        return RegimeState(current_regime=regime, since=now)

    if prior.current_regime == regime:
        return prior

    closed = RegimeTransition(
        regime=prior.current_regime,
        ended_at=now,
        duration_hours=prior.duration_hours(now),
    )
    return RegimeState(current_regime=regime, since=now, previous_transition=closed)


class RegimeTracker:
    """
    Tracks volatility regime transitions per market.

    Read-modify-write of a market's state is serialized with a per-market
    lock; different markets never contend.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        """
        Initialize tracker.

        Args:
            clock: Wall-clock time source (epoch seconds). Defaults to time.time.
        """
        self._clock = clock or time.time
        self._states: Dict[str, RegimeState] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, market_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(market_id)
            if lock is None:
                lock = self._locks[market_id] = threading.Lock()
            return lock

    def now(self) -> float:
        return self._clock()

    def observe(self, market_id: str, regime: VolatilityRegime) -> RegimeState:
        """
        Record a regime observation for a market.

        Returns:
            The market's state after the observation
        """
        with self._lock_for(market_id):
            prior = self._states.get(market_id)
            state = next_regime_state(prior, regime, self._clock())
            if state is not prior:
                self._states[market_id] = state
                if prior is None:
                    logger.debug(f"Tracking regime for {market_id}: {regime.value}")
                else:
                    logger.info(
                        f"Regime transition for {market_id}: "
                        f"{prior.current_regime.value} -> {regime.value} "
                        f"after {state.previous_transition.duration_hours:.2f}h",
                        extra={"market_id": market_id, "regime": regime.value}
                    )
            return state

    def observe_volatility(self, market_id: str, volatility: float) -> RegimeState:
        """Classify an annualized volatility and record the resulting regime."""
        return self.observe(market_id, volatility_regime(volatility))

    def get(self, market_id: str) -> Optional[RegimeState]:
        with self._lock_for(market_id):
            return self._states.get(market_id)

    def tracked_markets(self) -> List[str]:
        with self._locks_guard:
            return list(self._states.keys())

    def reset(self) -> None:
        """Forget all tracked state."""
        with self._locks_guard:
            self._states.clear()
            self._locks.clear()
