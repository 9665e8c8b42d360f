"""
Temporal shapers: wrappers that reshape a controller's output stream in time.

- DiscontinuousController: recompute at most once per interval; in between
  hold the last value (STEP) or output zeros (IMPULSE)
- SmoothedController: move each cell's output toward the target at a bounded speed
- StepController: sample-and-hold every step_t while the inner controller keeps running
"""

import numpy as np
from enum import Enum
from typing import Optional

from .controllers import Controller
from .errors import InvalidConfiguration
from .grid import Grid
from .snapshots import Snapshot


class ShapeMode(Enum):
    IMPULSE = "impulse"
    STEP = "step"

    @classmethod
    def from_name(cls, name) -> 'ShapeMode':
        try:
            return cls(name)
        except ValueError:
            raise InvalidConfiguration(
                f"Unknown shaper mode: {name}. Available: {[m.value for m in cls]}"
            ) from None


def _check_positive(name: str, value: float) -> float:
    value = float(value)
    if not value > 0.0:
        raise InvalidConfiguration(f"{name} must be positive: {value} found")
    return value


class _Wrapper(Controller):
    """Delegates parameters, reset and snapshot to the inner controller."""

    def __init__(self, inner: Controller):
        self.inner = inner

    def reset(self) -> None:
        self.inner.reset()

    def get_params(self) -> np.ndarray:
        return self.inner.get_params()

    def set_params(self, params) -> None:
        self.inner.set_params(params)

    def snapshot(self) -> Snapshot:
        return Snapshot(None, type(self), [self.inner.snapshot()])


class DiscontinuousController(_Wrapper):
    """
    Args:
        inner: Wrapped controller
        interval: Minimum time between two recomputations
        mode: ShapeMode (or its name); what to output between recomputations
    """

    def __init__(self, inner: Controller, interval: float, mode=ShapeMode.STEP):
        super().__init__(inner)
        self.interval = _check_positive("Interval", interval)
        self.mode = ShapeMode.from_name(mode)
        self.last_t = -np.inf
        self.last_values: Optional[Grid] = None

    def control(self, t: float, inputs: Grid) -> Grid:
        if self.last_values is None or t - self.last_t >= self.interval:
            self.last_values = self.inner.control(t, inputs)
            self.last_t = t
            return self.last_values.copy()
        if self.mode is ShapeMode.IMPULSE:
            return self.last_values.map(lambda _: 0.0)
        return self.last_values.copy()

    def reset(self) -> None:
        super().reset()
        self.last_t = -np.inf
        self.last_values = None


class SmoothedController(_Wrapper):
    """
    Rate limiter: each output moves by at most speed * dt per call.

    Published values start from zero on the first call after construction
    or reset.
    """

    def __init__(self, inner: Controller, speed: float):
        super().__init__(inner)
        self.speed = _check_positive("Speed", speed)
        self.last_t = -np.inf
        self.current: Optional[Grid] = None

    def control(self, t: float, inputs: Grid) -> Grid:
        targets = self.inner.control(t, inputs)
        if self.current is None:
            self.current = targets.map(lambda _: 0.0)
            self.last_t = t
        max_delta = (t - self.last_t) * self.speed
        self.last_t = t
        for entry in targets.occupied():
            current = self.current.get(entry.x, entry.y) or 0.0
            delta = float(np.clip(entry.value - current, -max_delta, max_delta))
            self.current.set(entry.x, entry.y, current + delta)
        return self.current.copy()

    def reset(self) -> None:
        super().reset()
        self.last_t = -np.inf
        self.current = None


class StepController(_Wrapper):
    """
    Holds the last sampled outputs for step_t time units.

    The inner controller is called on every round so that its own state
    advances; only what is published is held.
    """

    def __init__(self, inner: Controller, step_t: float):
        super().__init__(inner)
        self.step_t = _check_positive("Step duration", step_t)
        self.last_t = -np.inf
        self.last_values: Optional[Grid] = None

    def control(self, t: float, inputs: Grid) -> Grid:
        values = self.inner.control(t, inputs)
        if self.last_values is None or t - self.last_t >= self.step_t:
            self.last_values = values.copy()
            self.last_t = t
        return self.last_values.copy()

    def reset(self) -> None:
        super().reset()
        self.last_t = -np.inf
        self.last_values = None
