"""Tests for the volatility regime tracker."""
import threading

import pytest

from core.regime_tracker import RegimeState, RegimeTracker, next_regime_state
from models.enums import VolatilityRegime


@pytest.mark.unit
class TestNextRegimeState:
    """Test the pure transition function."""

    def test_first_observation(self):
        state = next_regime_state(None, VolatilityRegime.LOW, 100.0)
        assert state.current_regime == VolatilityRegime.LOW
        assert state.since == 100.0
        assert state.previous_transition is None

    def test_same_regime_keeps_state(self):
        prior = RegimeState(VolatilityRegime.LOW, since=100.0)
        assert next_regime_state(prior, VolatilityRegime.LOW, 5000.0) is prior

    def test_transition_records_previous(self):
        prior = RegimeState(VolatilityRegime.LOW, since=0.0)
        state = next_regime_state(prior, VolatilityRegime.HIGH, 7200.0)
        assert state.current_regime == VolatilityRegime.HIGH
        assert state.since == 7200.0
        assert state.previous_transition.regime == VolatilityRegime.LOW
        assert state.previous_transition.ended_at == 7200.0
        assert state.previous_transition.duration_hours == pytest.approx(2.0)

    def test_duration_never_negative(self):
        state = RegimeState(VolatilityRegime.LOW, since=100.0)
        assert state.duration_hours(50.0) == 0.0


@pytest.mark.unit
class TestRegimeTracker:
    """Test per-market tracking."""

    def test_volatility_sequence(self, clock):
        tracker = RegimeTracker(clock=clock)
        state = None
        for vol in [10, 10, 30, 30, 90]:
            state = tracker.observe_volatility("m", vol)
            clock.advance(3600)

        assert state.current_regime == VolatilityRegime.EXTREME
        previous = state.previous_transition
        assert previous.regime == VolatilityRegime.MEDIUM
        assert previous.duration_hours == pytest.approx(2.0)
        assert previous.duration_hours > 0

    def test_since_is_kept_while_regime_holds(self, clock):
        tracker = RegimeTracker(clock=clock)
        first = tracker.observe("m", VolatilityRegime.LOW)
        clock.advance(600)
        second = tracker.observe("m", VolatilityRegime.LOW)
        assert second.since == first.since
        assert second.duration_hours(tracker.now()) == pytest.approx(600 / 3600)

    def test_markets_are_independent(self, clock):
        tracker = RegimeTracker(clock=clock)
        tracker.observe("a", VolatilityRegime.LOW)
        tracker.observe("b", VolatilityRegime.HIGH)
        assert tracker.get("a").current_regime == VolatilityRegime.LOW
        assert tracker.get("b").current_regime == VolatilityRegime.HIGH
        assert sorted(tracker.tracked_markets()) == ["a", "b"]

    def test_unknown_market(self):
        assert RegimeTracker().get("missing") is None

    def test_reset(self, clock):
        tracker = RegimeTracker(clock=clock)
        tracker.observe("a", VolatilityRegime.LOW)
        tracker.reset()
        assert tracker.get("a") is None
        assert tracker.tracked_markets() == []

    def test_concurrent_observations(self, clock):
        tracker = RegimeTracker(clock=clock)
        regimes = [VolatilityRegime.LOW, VolatilityRegime.HIGH] * 50

        def worker():
            for regime in regimes:
                tracker.observe("m", regime)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        state = tracker.get("m")
        assert state.current_regime in (VolatilityRegime.LOW, VolatilityRegime.HIGH)
        assert state.previous_transition.regime != state.current_regime
