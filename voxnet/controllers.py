"""
Controllers: map per-cell sensor readings to one actuation value per cell.

- Controller: base interface (control, reset, params, snapshot, shaper helpers)
- DistributedSensing: one NeuralFunction per cell plus neighbor message passing
- DistributedSensingNonDirectional: same, one broadcast vector per cell
- CentralizedSensing: a single NeuralFunction over the whole body
- TimeFunctions / PhaseSin: open-loop functions of time

A body is a Grid whose values are None (empty) or the number of sensor
readings the cell provides. control() receives a Grid of reading vectors of
the same shape and returns a Grid of floats (None where there is no cell).
"""

import logging
import numpy as np
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple

from .errors import DimensionMismatch, InvalidConfiguration, check_length
from .functions import NeuralFunction, TimedFunction, as_vector
from .grid import Direction, Grid
from .snapshots import CellState, Domain, ScopedReadings, Snapshot

logger = logging.getLogger(__name__)

N_DIRECTIONS = len(Direction)


def check_body(body: Grid) -> None:
    for entry in body.occupied():
        if int(entry.value) < 0:
            raise InvalidConfiguration(
                f"Cell ({entry.x},{entry.y}) declares {entry.value} sensor readings"
            )


def read_sensors(body: Grid, inputs: Grid, x: int, y: int) -> np.ndarray:
    """Sensor vector of cell (x, y), checked against the body's declared size."""
    n_sensors = int(body.get(x, y))
    readings = inputs.get(x, y)
    if readings is None:
        if n_sensors == 0:
            return np.zeros(0)
        raise DimensionMismatch(f"sensor readings at ({x},{y})", n_sensors, 0)
    return as_vector(readings, n_sensors, f"sensor readings at ({x},{y})")


def check_inputs_shape(body: Grid, inputs: Grid) -> None:
    if inputs.shape != body.shape:
        raise DimensionMismatch("grid cells", body.w * body.h, inputs.w * inputs.h)


class Controller(ABC):
    """Base class of everything that can drive a body."""

    @abstractmethod
    def control(self, t: float, inputs: Grid) -> Grid:
        """One control round at time t."""

    def reset(self) -> None:
        pass

    def get_params(self) -> np.ndarray:
        return np.zeros(0)

    def set_params(self, params) -> None:
        check_length("parameters", params, 0)

    def num_params(self) -> int:
        return len(self.get_params())

    def snapshot(self) -> Snapshot:
        return Snapshot(None, type(self))

    def step(self, step_t: float) -> 'Controller':
        from .shapers import StepController
        return StepController(self, step_t)

    def smoothed(self, speed: float) -> 'Controller':
        from .shapers import SmoothedController
        return SmoothedController(self, speed)

    def discontinuous(self, interval: float, mode='step') -> 'Controller':
        from .shapers import DiscontinuousController
        return DiscontinuousController(self, interval, mode)


class _GridParams:
    """Concatenate or share the parameters of the functions held in a grid."""

    def __init__(self, functions: Grid, homogeneous: bool):
        self.functions = functions
        self.homogeneous = homogeneous
        if homogeneous:
            sizes = {f.num_params() for f in self._functions()}
            if len(sizes) > 1:
                raise InvalidConfiguration(
                    f"Homogeneous parameters need equal-sized functions: sizes {sorted(sizes)}"
                )

    def _functions(self) -> List[NeuralFunction]:
        return [e.value for e in self.functions.occupied()]

    def get(self) -> np.ndarray:
        functions = self._functions()
        if not functions:
            return np.zeros(0)
        if self.homogeneous:
            return functions[0].get_params()
        return np.concatenate([f.get_params() for f in functions])

    def set(self, params) -> None:
        params = np.asarray(params, dtype=np.float64)
        functions = self._functions()
        if self.homogeneous:
            expected = functions[0].num_params() if functions else 0
            check_length("parameters", params, expected)
            for f in functions:
                f.set_params(params.copy())
            return
        sizes = [f.num_params() for f in functions]
        check_length("parameters", params, sum(sizes))
        c = 0
        for f, size in zip(functions, sizes):
            f.set_params(params[c:c + size])
            c += size


class DistributedSensing(Controller):
    """
    Per-cell neural controllers exchanging signals with their 4 neighbors.

    Each call is one synchronous round:
      1. gather: input = concat(sensor readings, neighbor signals N, E, S, W),
         the neighbor signals being those committed in the previous round
      2. compute: outputs = function.apply(t, input); outputs[0] is the
         actuation, outputs[1:] the outgoing signals, one block per direction
      3. commit: once every cell has computed, outgoing signals replace the
         committed ones

    A neighbor's block for direction D is what it sent toward opposite(D).
    Missing neighbors contribute zeros.

    Args:
        body: Grid of sensor-reading counts (None where there is no cell)
        signals: Signal width per direction
        functions: Grid of NeuralFunctions, one per cell (default: zero outputs)
        homogeneous: All cells share one parameter vector in get/set_params
    """

    def __init__(
        self,
        body: Grid,
        signals: int,
        functions: Optional[Grid] = None,
        homogeneous: bool = False,
    ):
        if signals < 0:
            raise InvalidConfiguration(f"Signal width must be non-negative: {signals}")
        check_body(body)
        self.body = body.copy()
        self.signals = int(signals)
        if functions is None:
            functions = Grid.create(
                body.w, body.h,
                lambda x, y: None if body.get(x, y) is None else TimedFunction.zeros(
                    self.n_inputs(x, y), self.n_outputs(x, y)
                ),
            )
        if functions.shape != body.shape:
            raise DimensionMismatch("function grid cells", body.w * body.h, functions.w * functions.h)
        for entry in body.occupied():
            f = functions.get(entry.x, entry.y)
            if f is None:
                continue
            check_length(f"inputs of function at ({entry.x},{entry.y})",
                         range(f.input_dim), self.n_inputs(entry.x, entry.y))
            check_length(f"outputs of function at ({entry.x},{entry.y})",
                         range(f.output_dim), self.n_outputs(entry.x, entry.y))
        self.functions = Grid.create(
            body.w, body.h,
            lambda x, y: functions.get(x, y) if body.get(x, y) is not None else None,
        )
        self._params = _GridParams(self.functions, homogeneous)
        self._last_states: Dict[Tuple[int, int], CellState] = {}
        self.reset()
        logger.debug(
            "%s over %d cells, %d signals per direction",
            type(self).__name__, body.count(), self.signals,
        )

    @property
    def outgoing_size(self) -> int:
        """Length of the signal vector a cell emits per round."""
        return self.signals * N_DIRECTIONS

    def n_inputs(self, x: int, y: int) -> int:
        n_sensors = self.body.get(x, y)
        if n_sensors is None:
            return 0
        return int(n_sensors) + self.signals * N_DIRECTIONS

    def n_outputs(self, x: int, y: int) -> int:
        if self.body.get(x, y) is None:
            return 0
        return 1 + self.outgoing_size

    def reset(self) -> None:
        self._committed: Grid = self.body.map(lambda _: np.zeros(self.outgoing_size))
        for entry in self.functions.occupied():
            entry.value.reset()
        self._last_states = {}

    def signals_of(self, x: int, y: int) -> Optional[np.ndarray]:
        """Copy of the outgoing signals committed by cell (x, y) in the last round."""
        committed = self._committed.get(x, y)
        return None if committed is None else committed.copy()

    def _neighbor_block(self, neighbor_signals: np.ndarray, direction: Direction) -> np.ndarray:
        start = direction.opposite().index * self.signals
        return neighbor_signals[start:start + self.signals]

    def neighbor_signals(self, x: int, y: int) -> np.ndarray:
        """Gather: what cell (x, y) receives from N, E, S, W this round."""
        values = np.zeros(self.signals * N_DIRECTIONS)
        if self.signals == 0:
            return values
        for direction in Direction:
            neighbor = self._committed.neighbor(x, y, direction)
            if neighbor is not None:
                start = direction.index * self.signals
                values[start:start + self.signals] = self._neighbor_block(neighbor, direction)
        return values

    def control(self, t: float, inputs: Grid) -> Grid:
        check_inputs_shape(self.body, inputs)
        actuations = Grid(self.body.w, self.body.h)
        staged = []
        states = {}
        for entry in self.body.occupied():
            x, y = entry.x, entry.y
            cell_input = np.concatenate([read_sensors(self.body, inputs, x, y), self.neighbor_signals(x, y)])
            function = self.functions.get(x, y)
            if function is None:
                outputs = np.zeros(self.n_outputs(x, y))
                domain = Domain.unbounded()
            else:
                outputs = np.asarray(function.apply(t, cell_input), dtype=np.float64)
                check_length(f"outputs of function at ({x},{y})", outputs, self.n_outputs(x, y))
                domain = function.output_domain
            actuations.set(x, y, float(outputs[0]))
            staged.append((x, y, outputs[1:].copy()))
            states[(x, y)] = CellState(
                x, y,
                ScopedReadings(cell_input, [Domain.unbounded()] * len(cell_input)),
                ScopedReadings(outputs, [domain] * len(outputs)),
            )
        # commit only after every cell has computed
        for x, y, outgoing in staged:
            self._committed.set(x, y, outgoing)
        self._last_states = states
        return actuations

    def apply_mask(self, masks: Grid) -> None:
        """Zero committed signals wherever the boolean mask of the cell is False."""
        for entry in masks.occupied():
            committed = self._committed.get(entry.x, entry.y)
            if committed is not None:
                committed[~entry.value] = 0.0

    def get_params(self) -> np.ndarray:
        return self._params.get()

    def set_params(self, params) -> None:
        self._params.set(params)

    def snapshot(self) -> Snapshot:
        children = []
        for entry in self.functions.occupied():
            cell_state = self._last_states.get((entry.x, entry.y))
            inner = entry.value.snapshot()
            children.append(Snapshot(cell_state, type(entry.value), [inner] if inner else []))
        return Snapshot(None, type(self), children)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(signals={self.signals}, body={self.body!r})"


class DistributedSensingNonDirectional(DistributedSensing):
    """
    Variant where each cell emits one signal vector of width `signals`.

    Every neighbor receives the same vector: the slot for direction D of a
    cell holds the whole vector broadcast by its neighbor in direction D.
    """

    @property
    def outgoing_size(self) -> int:
        return self.signals

    def _neighbor_block(self, neighbor_signals: np.ndarray, direction: Direction) -> np.ndarray:
        return neighbor_signals[:self.signals]


class CentralizedSensing(Controller):
    """
    One NeuralFunction over the readings of all cells.

    Inputs are the cells' readings concatenated in grid order; output i is
    the actuation of the i-th occupied cell.

    Args:
        body: Grid of sensor-reading counts
        function: NeuralFunction with matching dimensions (default: zero outputs)
    """

    def __init__(self, body: Grid, function: Optional[NeuralFunction] = None):
        check_body(body)
        self.body = body.copy()
        self.n_inputs = sum(int(e.value) for e in body.occupied())
        self.n_outputs = body.count()
        if function is None:
            function = TimedFunction.zeros(self.n_inputs, self.n_outputs)
        self.set_function(function)
        self._last_state: Optional[CellState] = None

    def set_function(self, function: NeuralFunction) -> None:
        check_length("function inputs", range(function.input_dim), self.n_inputs)
        check_length("function outputs", range(function.output_dim), self.n_outputs)
        self.function = function

    def control(self, t: float, inputs: Grid) -> Grid:
        check_inputs_shape(self.body, inputs)
        cells = list(self.body.occupied())
        readings = [read_sensors(self.body, inputs, e.x, e.y) for e in cells]
        flat_inputs = np.concatenate(readings) if readings else np.zeros(0)
        outputs = np.asarray(self.function.apply(t, flat_inputs), dtype=np.float64)
        check_length("function outputs", outputs, self.n_outputs)
        actuations = Grid(self.body.w, self.body.h)
        for entry, value in zip(cells, outputs):
            actuations.set(entry.x, entry.y, float(value))
        self._last_state = CellState(
            -1, -1,
            ScopedReadings(flat_inputs, [Domain.unbounded()] * len(flat_inputs)),
            ScopedReadings(outputs, [self.function.output_domain] * len(outputs)),
        )
        return actuations

    def reset(self) -> None:
        self.function.reset()
        self._last_state = None

    def get_params(self) -> np.ndarray:
        return self.function.get_params()

    def set_params(self, params) -> None:
        self.function.set_params(params)

    def snapshot(self) -> Snapshot:
        inner = self.function.snapshot()
        return Snapshot(self._last_state, type(self), [inner] if inner else [])


class TimeFunctions(Controller):
    """Open loop: each cell's actuation is a function of time only."""

    def __init__(self, functions: Grid):
        self.functions = functions
        self._outputs = np.zeros(0)

    def control(self, t: float, inputs: Grid) -> Grid:
        actuations = Grid(self.functions.w, self.functions.h)
        outputs = []
        for entry in self.functions.occupied():
            value = float(entry.value(t))
            actuations.set(entry.x, entry.y, value)
            outputs.append(value)
        self._outputs = np.array(outputs)
        return actuations

    def snapshot(self) -> Snapshot:
        return Snapshot(
            ScopedReadings(self._outputs, [Domain(-1.0, 1.0)] * len(self._outputs)),
            type(self),
        )


class PhaseSin(TimeFunctions):
    """
    Sinusoidal gait: amplitude * sin(2 pi f t + phase) with a phase per cell.

    The phases of the occupied cells (grid order) are the parameters.
    """

    def __init__(self, frequency: float, amplitude: float, phases: Grid):
        self.frequency = frequency
        self.amplitude = amplitude
        self.phases = phases.copy()
        super().__init__(self._build_functions())

    def _build_functions(self) -> Grid:
        def wave(phase: float) -> Callable[[float], float]:
            return lambda t: self.amplitude * np.sin(2.0 * np.pi * self.frequency * t + phase)
        return self.phases.map(wave)

    def get_params(self) -> np.ndarray:
        return np.array([e.value for e in self.phases.occupied()], dtype=np.float64)

    def set_params(self, params) -> None:
        params = np.asarray(params, dtype=np.float64)
        cells = list(self.phases.occupied())
        check_length("phases", params, len(cells))
        for entry, phase in zip(cells, params):
            self.phases.set(entry.x, entry.y, float(phase))
        self.functions = self._build_functions()

    def __repr__(self) -> str:
        return f"PhaseSin(frequency={self.frequency}, amplitude={self.amplitude})"
