"""
Multi-layer perceptron that prunes itself once while running.

On every call each edge records running statistics of the signal it carries
(weight * upstream value): mean, mean of magnitude and variance (Welford).
The first call at or after pruning_time ranks the edges by a criterion within
a scope and zeroes the lowest `rate` fraction, permanently.

Criteria:
- WEIGHT: |weight|
- SIGNAL_MEAN: mean signal
- ABS_SIGNAL_MEAN: mean |signal|
- SIGNAL_VARIANCE: signal variance; a pruned weight is folded into the bias
- RANDOM: seeded random ranking
"""

import logging
import numpy as np
from enum import Enum
from typing import List, Optional, Sequence

from .errors import InvalidConfiguration
from .functions import Activation, as_vector
from .networks import FeedforwardNetwork
from .snapshots import NetworkState, Snapshot

logger = logging.getLogger(__name__)


class PruningContext(Enum):
    """Scope within which edges compete for pruning."""
    NETWORK = "network"
    LAYER = "layer"
    NEURON = "neuron"

    @classmethod
    def from_name(cls, name) -> 'PruningContext':
        try:
            return cls(name)
        except ValueError:
            raise InvalidConfiguration(
                f"Unknown pruning context: {name}. Available: {[c.value for c in cls]}"
            ) from None


class PruningCriterion(Enum):
    WEIGHT = "weight"
    SIGNAL_MEAN = "signal_mean"
    ABS_SIGNAL_MEAN = "abs_signal_mean"
    SIGNAL_VARIANCE = "signal_variance"
    RANDOM = "random"

    @classmethod
    def from_name(cls, name) -> 'PruningCriterion':
        try:
            return cls(name)
        except ValueError:
            raise InvalidConfiguration(
                f"Unknown pruning criterion: {name}. Available: {[c.value for c in cls]}"
            ) from None


def _round_half_up(x: float) -> int:
    return int(np.floor(x + 0.5))


class PruningNetwork(FeedforwardNetwork):
    """
    Feedforward network with one permanent, time-triggered pruning pass.

    self.weights keep the parameters as set by the optimizer; the forward
    pass runs on a working copy that pruning modifies.

    Args:
        neurons: Layer sizes, input first
        activation: Activation for every non-input layer
        weights: Flat weight vector (default zeros)
        pruning_time: Time at which the pruning pass happens
        context: Scope of the ranking
        criterion: What edges are ranked by
        rate: Fraction of edges pruned in each scope, in [0, 1]
        seed: Seed for the RANDOM criterion
    """

    def __init__(
        self,
        neurons: Sequence[int],
        activation=Activation.TANH,
        weights=None,
        pruning_time: float = 0.0,
        context=PruningContext.NETWORK,
        criterion=PruningCriterion.WEIGHT,
        rate: float = 0.5,
        seed: Optional[int] = 0,
    ):
        if not 0.0 <= rate <= 1.0:
            raise InvalidConfiguration(
                f"Pruning rate should be defined in [0,1]: {rate} found"
            )
        super().__init__(neurons, activation, weights)
        self.pruning_time = float(pruning_time)
        self.context = PruningContext.from_name(context)
        self.criterion = PruningCriterion.from_name(criterion)
        self.rate = float(rate)
        self.seed = seed
        self.reset()

    def reset(self) -> None:
        """Restore the unpruned weights and forget all statistics."""
        self.pruned = False
        self.counter = 0
        self.pruned_weights = [w.copy() for w in self.weights]
        self.means = [np.zeros_like(w) for w in self.weights]
        self.abs_means = [np.zeros_like(w) for w in self.weights]
        self.mean_diff_square_sums = [np.zeros_like(w) for w in self.weights]
        self.activation_values = [np.zeros(n) for n in self.neurons]

    def set_params(self, params) -> None:
        super().set_params(params)
        self.reset()

    def apply(self, t: float, inputs) -> np.ndarray:
        if not self.pruned and t >= self.pruning_time:
            self.prune()
        return self.forward(inputs)

    def forward(self, inputs) -> np.ndarray:
        x = as_vector(inputs, self.input_dim)
        values = [x]
        n = self.counter + 1.0
        for layer, w in enumerate(self.pruned_weights):
            pre = np.concatenate(([1.0], values[-1]))
            signal = w * pre[np.newaxis, :]
            delta = signal - self.means[layer]
            self.means[layer] += delta / n
            self.abs_means[layer] += (np.abs(signal) - self.abs_means[layer]) / n
            self.mean_diff_square_sums[layer] += delta * (signal - self.means[layer])
            values.append(self.activation(signal.sum(axis=1)))
        self.counter += 1
        self.activation_values = values
        return values[-1].copy()

    @property
    def variances(self) -> List[np.ndarray]:
        """Population variance of each edge's signal so far."""
        n = max(self.counter, 1)
        return [m2 / n for m2 in self.mean_diff_square_sums]

    def _ranking_values(self) -> List[np.ndarray]:
        if self.criterion is PruningCriterion.WEIGHT:
            return [np.abs(w) for w in self.pruned_weights]
        if self.criterion is PruningCriterion.SIGNAL_MEAN:
            return [m.copy() for m in self.means]
        if self.criterion is PruningCriterion.ABS_SIGNAL_MEAN:
            return [m.copy() for m in self.abs_means]
        if self.criterion is PruningCriterion.SIGNAL_VARIANCE:
            return self.variances
        rng = np.random.default_rng(self.seed)
        return [rng.random(w.shape) for w in self.pruned_weights]

    def _scopes(self):
        """Yield lists of (layer, dest, src) edges that compete together."""
        if self.context is PruningContext.NETWORK:
            yield [
                (layer, j, k)
                for layer, w in enumerate(self.pruned_weights)
                for j in range(w.shape[0])
                for k in range(w.shape[1])
            ]
        elif self.context is PruningContext.LAYER:
            for layer, w in enumerate(self.pruned_weights):
                yield [(layer, j, k) for j in range(w.shape[0]) for k in range(w.shape[1])]
        else:
            for layer, w in enumerate(self.pruned_weights):
                for j in range(w.shape[0]):
                    yield [(layer, j, k) for k in range(w.shape[1])]

    def prune(self) -> int:
        """Run the pruning pass now; returns the number of edges pruned."""
        self.pruned = True
        values = self._ranking_values()
        total = 0
        for edges in self._scopes():
            scores = np.array([values[layer][j, k] for layer, j, k in edges])
            order = np.argsort(scores, kind='stable')
            n_prune = _round_half_up(len(edges) * self.rate)
            for idx in order[:n_prune]:
                self._prune_edge(*edges[idx])
            total += n_prune
        logger.debug(
            "Pruned %d edges of %r by %s within %s",
            total, self, self.criterion.value, self.context.value,
        )
        return total

    def _prune_edge(self, layer: int, j: int, k: int) -> None:
        w = self.pruned_weights[layer]
        if self.criterion is PruningCriterion.SIGNAL_VARIANCE and k != 0:
            w[j, 0] += w[j, k]
        w[j, k] = 0.0

    def get_weights(self) -> List[np.ndarray]:
        return [w.copy() for w in self.pruned_weights]

    def snapshot(self) -> Snapshot:
        return Snapshot(
            NetworkState(
                self.activation_values,
                self.pruned_weights,
                self.activation.domain,
                statistics={
                    'signal_mean': self.means,
                    'abs_signal_mean': self.abs_means,
                    'signal_variance': self.variances,
                },
            ),
            type(self),
        )

    def __repr__(self) -> str:
        return f"pMLP.{self.activation.value}[{','.join(str(n) for n in self.neurons)}]"
