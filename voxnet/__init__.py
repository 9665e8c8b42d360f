"""
voxnet - distributed neuro-control for voxel-based modular robots

Core components:
- Neural functions: FeedforwardNetwork, HebbianNetwork, PruningNetwork,
  RecurrentNetwork, SelfAttentionNetwork
- DistributedSensing: per-cell controllers exchanging neighbor signals
- BrokenDistributedSensing: permanent communication faults
- Temporal shapers: Step, Smoothed, Discontinuous
- build_controller: assemble a full stack from config dataclasses
- train_cmaes / train_sa: optimize a controller's parameters
"""

from .errors import VoxnetError, DimensionMismatch, InvalidConfiguration
from .functions import Activation, NeuralFunction, RealFunction, TimedFunction
from .networks import FeedforwardNetwork, RecurrentNetwork, count_weights
from .hebbian import HebbianNetwork
from .pruning import PruningNetwork, PruningContext, PruningCriterion
from .attention import SelfAttentionNetwork
from .grid import Grid, Direction
from .controllers import (
    Controller,
    DistributedSensing,
    DistributedSensingNonDirectional,
    CentralizedSensing,
    TimeFunctions,
    PhaseSin,
)
from .faults import BrokenDistributedSensing, FaultPattern
from .shapers import DiscontinuousController, SmoothedController, StepController, ShapeMode
from .snapshots import Domain, ScopedReadings, NetworkState, CellState, Snapshot
from .config import (
    FunctionConfig,
    ControllerConfig,
    FaultConfig,
    ShaperConfig,
    FUNCTIONS,
    get_function,
    build_controller,
)
from .trainers import train_cmaes, train_sa, rollout

__version__ = "0.1.0"

__all__ = [
    # Errors
    "VoxnetError",
    "DimensionMismatch",
    "InvalidConfiguration",
    # Functions
    "Activation",
    "NeuralFunction",
    "RealFunction",
    "TimedFunction",
    "FeedforwardNetwork",
    "RecurrentNetwork",
    "HebbianNetwork",
    "PruningNetwork",
    "PruningContext",
    "PruningCriterion",
    "SelfAttentionNetwork",
    "count_weights",
    # Grid and controllers
    "Grid",
    "Direction",
    "Controller",
    "DistributedSensing",
    "DistributedSensingNonDirectional",
    "CentralizedSensing",
    "TimeFunctions",
    "PhaseSin",
    "BrokenDistributedSensing",
    "FaultPattern",
    "DiscontinuousController",
    "SmoothedController",
    "StepController",
    "ShapeMode",
    # Snapshots
    "Domain",
    "ScopedReadings",
    "NetworkState",
    "CellState",
    "Snapshot",
    # Config
    "FunctionConfig",
    "ControllerConfig",
    "FaultConfig",
    "ShaperConfig",
    "FUNCTIONS",
    "get_function",
    "build_controller",
    # Trainers
    "train_cmaes",
    "train_sa",
    "rollout",
]
