"""Debounced boolean state tracker."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class DebounceState:
    confirmed_value: Optional[bool] = None
    pending_value: Optional[bool] = None
    consecutive_count: int = 0
    threshold: int = 4


class DebouncedStateTracker:
    """Confirms a raw boolean only after it holds for ``threshold`` samples.

    ``sample()`` is called once per poll tick. It returns the new confirmed
    value when a transition fires and None otherwise. The first sample (or
    ``initial``) seeds the confirmed value without firing.
    """

    DEFAULT_POLL_INTERVAL = 0.25
    DEFAULT_THRESHOLD = 4

    def __init__(
        self,
        threshold: int = DEFAULT_THRESHOLD,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        initial: Optional[bool] = None,
    ) -> None:
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.poll_interval = poll_interval
        self._state = DebounceState(confirmed_value=initial, threshold=threshold)

    @property
    def state(self) -> DebounceState:
        return DebounceState(**vars(self._state))

    @property
    def confirmed_value(self) -> Optional[bool]:
        return self._state.confirmed_value

    @property
    def threshold(self) -> int:
        return self._state.threshold

    @property
    def detection_latency(self) -> float:
        """Upper bound, in seconds, between a stable change and its confirmation."""
        return self._state.threshold * self.poll_interval

    def sample(self, raw_value: bool) -> Optional[bool]:
        state = self._state
        raw_value = bool(raw_value)

        if state.confirmed_value is None:
            state.confirmed_value = raw_value
            return None

        if raw_value == state.confirmed_value:
            state.consecutive_count = 0
            state.pending_value = None
            return None

        state.pending_value = raw_value
        state.consecutive_count += 1
        if state.consecutive_count < state.threshold:
            return None

        state.confirmed_value = raw_value
        state.consecutive_count = 0
        state.pending_value = None
        return raw_value


__all__ = ["DebounceState", "DebouncedStateTracker"]
