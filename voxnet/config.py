"""
Configuration dataclasses and factories for whole controller stacks.

A stack is assembled bottom-up for a given body:

    NeuralFunction per cell (or one for the body)
      -> DistributedSensing / DistributedSensingNonDirectional / CentralizedSensing
      -> BrokenDistributedSensing (optional)
      -> temporal shapers (optional, innermost first)

Functions are looked up by name in FUNCTIONS, like:

    fn = get_function('hebbian', 6, 9, FunctionConfig(inner_layers=[8]), seed=0)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .attention import SelfAttentionNetwork
from .controllers import (
    CentralizedSensing,
    Controller,
    DistributedSensing,
    DistributedSensingNonDirectional,
)
from .errors import InvalidConfiguration
from .faults import BrokenDistributedSensing, FaultPattern
from .functions import Activation, NeuralFunction
from .grid import Grid
from .hebbian import HebbianNetwork
from .networks import FeedforwardNetwork, RecurrentNetwork, count_neurons
from .pruning import PruningNetwork
from .shapers import DiscontinuousController, ShapeMode, SmoothedController, StepController

logger = logging.getLogger(__name__)


@dataclass
class FunctionConfig:
    """Per-cell (or centralized) neural function."""
    name: str = 'mlp'
    inner_layers: List[int] = field(default_factory=list)
    activation: str = 'tanh'
    options: Dict[str, Any] = field(default_factory=dict)  # passed to the network class

    def __post_init__(self):
        if self.name not in FUNCTIONS:
            raise InvalidConfiguration(
                f"Unknown function: {self.name}. Available: {list(FUNCTIONS.keys())}"
            )
        self.activation = Activation.from_name(self.activation).value
        if any(int(n) <= 0 for n in self.inner_layers):
            raise InvalidConfiguration(f"Inner layer sizes must be positive: {self.inner_layers}")


@dataclass
class FaultConfig:
    breakage_time: float = 0.0
    rate: float = 0.0
    pattern: str = 'directional'
    seed: Optional[int] = None

    def __post_init__(self):
        if not 0.0 <= self.rate <= 1.0:
            raise InvalidConfiguration(f"Fault rate should be defined in [0,1]: {self.rate} found")
        FaultPattern.from_name(self.pattern)


SHAPER_KINDS = ('step', 'smoothed', 'discontinuous')


@dataclass
class ShaperConfig:
    """
    One temporal shaper.

    value is step_t for 'step', speed for 'smoothed' and the interval for
    'discontinuous'; mode only applies to 'discontinuous'.
    """
    kind: str
    value: float
    mode: str = 'step'

    def __post_init__(self):
        if self.kind not in SHAPER_KINDS:
            raise InvalidConfiguration(f"Unknown shaper: {self.kind}. Available: {list(SHAPER_KINDS)}")
        if not self.value > 0:
            raise InvalidConfiguration(f"Shaper {self.kind} needs a positive value: {self.value} found")
        ShapeMode.from_name(self.mode)


CONTROLLER_KINDS = ('distributed', 'non_directional', 'centralized')


@dataclass
class ControllerConfig:
    """Whole controller stack for one body."""
    kind: str = 'distributed'
    signals: int = 1
    function: FunctionConfig = field(default_factory=FunctionConfig)
    homogeneous: bool = False
    fault: Optional[FaultConfig] = None
    shapers: List[ShaperConfig] = field(default_factory=list)

    def __post_init__(self):
        if self.kind not in CONTROLLER_KINDS:
            raise InvalidConfiguration(
                f"Unknown controller: {self.kind}. Available: {list(CONTROLLER_KINDS)}"
            )
        if self.signals < 0:
            raise InvalidConfiguration(f"Signal width must be non-negative: {self.signals}")
        if self.fault is not None and self.kind == 'centralized':
            raise InvalidConfiguration("Faults only apply to distributed controllers")


# Function builders: (n_input, n_output, config, seed) -> NeuralFunction

def _build_mlp(n_input, n_output, config, seed):
    return FeedforwardNetwork.build(n_input, config.inner_layers, n_output, config.activation, **config.options)


def _build_hebbian(n_input, n_output, config, seed):
    options = dict(config.options)
    options.setdefault('seed', seed)
    return HebbianNetwork.build(n_input, config.inner_layers, n_output, config.activation, **options)


def _build_pruning(n_input, n_output, config, seed):
    options = dict(config.options)
    if seed is not None:
        options.setdefault('seed', seed)
    return PruningNetwork.build(n_input, config.inner_layers, n_output, config.activation, **options)


def _build_recurrent(n_input, n_output, config, seed):
    return RecurrentNetwork(
        count_neurons(n_input, config.inner_layers, n_output), config.activation, **config.options
    )


def _build_attention(n_input, n_output, config, seed):
    options = dict(config.options)
    try:
        n, din, dk = options.pop('n'), options.pop('din'), options.pop('dk')
    except KeyError as e:
        raise InvalidConfiguration(f"Attention needs n, din and dk options: {e} missing") from None
    if n * din != n_input:
        raise InvalidConfiguration(f"Attention tokens n*din={n * din} do not cover {n_input} inputs")
    downstream = FeedforwardNetwork.build(n * din, config.inner_layers, n_output, config.activation)
    return SelfAttentionNetwork(downstream, n, din, dk, **options)


FUNCTIONS: Dict[str, Callable[..., NeuralFunction]] = {
    'mlp': _build_mlp,
    'hebbian': _build_hebbian,
    'pruning': _build_pruning,
    'recurrent': _build_recurrent,
    'attention': _build_attention,
}


def get_function(
    name: str,
    n_input: int,
    n_output: int,
    config: Optional[FunctionConfig] = None,
    seed: Optional[int] = None,
) -> NeuralFunction:
    """Build a neural function by registry name for the given dimensions."""
    if name not in FUNCTIONS:
        raise InvalidConfiguration(f"Unknown function: {name}. Available: {list(FUNCTIONS.keys())}")
    if config is None:
        config = FunctionConfig(name=name)
    return FUNCTIONS[name](n_input, n_output, config, seed)


def _cell_seed(seed: Optional[int], index: int) -> Optional[int]:
    return None if seed is None else seed + index


def build_controller(body: Grid, config: ControllerConfig, seed: Optional[int] = None) -> Controller:
    """
    Assemble the controller stack described by config for body.

    Args:
        body: Grid of sensor-reading counts (None where there is no cell)
        config: Stack description
        seed: Base seed; cell c gets seed + c

    Returns:
        The outermost controller of the stack
    """
    fn_config = config.function
    if config.kind == 'centralized':
        layout = CentralizedSensing(body)
        function = get_function(fn_config.name, layout.n_inputs, layout.n_outputs, fn_config, seed)
        controller: Controller = CentralizedSensing(body, function)
    else:
        cls = DistributedSensing if config.kind == 'distributed' else DistributedSensingNonDirectional
        layout = cls(body, config.signals)
        index = {(e.x, e.y): c for c, e in enumerate(body.occupied())}
        functions = Grid.create(
            body.w, body.h,
            lambda x, y: None if body.get(x, y) is None else get_function(
                fn_config.name, layout.n_inputs(x, y), layout.n_outputs(x, y),
                fn_config, _cell_seed(seed, index[(x, y)]),
            ),
        )
        controller = cls(body, config.signals, functions, config.homogeneous)
        if config.fault is not None:
            fault = config.fault
            controller = BrokenDistributedSensing(
                controller, fault.breakage_time, fault.rate, FaultPattern.from_name(fault.pattern),
                fault.seed if fault.seed is not None else seed,
            )
    for shaper in config.shapers:
        if shaper.kind == 'step':
            controller = StepController(controller, shaper.value)
        elif shaper.kind == 'smoothed':
            controller = SmoothedController(controller, shaper.value)
        else:
            controller = DiscontinuousController(controller, shaper.value, ShapeMode.from_name(shaper.mode))
    logger.info(
        "Built %s controller (%s, %d params) for %d cells",
        config.kind, fn_config.name, controller.num_params(), body.count(),
    )
    return controller
