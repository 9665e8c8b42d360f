"""
Hebbian-plastic multi-layer perceptron.

Weights are runtime state: after every forward pass each edge moves by

    dw = eta * (A * post * pre + B * post + C * pre + D)

using the activations just produced (pre = 1 for the bias edge). What an
optimizer searches over is the set of per-edge coefficients A..D, not the
weights themselves.

After the update the weights can be normalized per destination neuron:
'minmax' rescales the incoming row into [-1, 1], a (lo, hi) pair clips
every weight into [lo, hi].
"""

import numpy as np
from typing import Iterable, List, Optional, Sequence

from .errors import InvalidConfiguration, check_length
from .functions import Activation
from .networks import FeedforwardNetwork, count_weights, flat, unflat
from .snapshots import NetworkState, Snapshot


N_COEFFICIENTS = 4  # A, B, C, D

MINMAX = 'minmax'


def count_hebbian_coefficients(neurons: Sequence[int]) -> int:
    return N_COEFFICIENTS * count_weights(neurons)


def unflat_coefficients(flat_coefficients, neurons: Sequence[int]) -> List[np.ndarray]:
    """Split into one (n_dest, 1 + n_src, 4) array per layer."""
    flat_coefficients = np.asarray(flat_coefficients, dtype=np.float64)
    check_length("hebbian coefficients", flat_coefficients, count_hebbian_coefficients(neurons))
    layers = []
    c = 0
    for i in range(len(neurons) - 1):
        shape = (neurons[i + 1], neurons[i] + 1, N_COEFFICIENTS)
        size = int(np.prod(shape))
        layers.append(flat_coefficients[c:c + size].reshape(shape).copy())
        c += size
    return layers


def _check_normalization(normalization):
    if normalization is None:
        return None
    if isinstance(normalization, str):
        if normalization != MINMAX:
            raise InvalidConfiguration(f"Unknown normalization: {normalization}")
        return MINMAX
    try:
        lo, hi = (float(v) for v in normalization)
    except (TypeError, ValueError):
        raise InvalidConfiguration(
            f"Normalization must be None, '{MINMAX}' or a (lo, hi) pair: {normalization!r} found"
        ) from None
    if not lo < hi:
        raise InvalidConfiguration(f"Normalization bounds need lo < hi: ({lo}, {hi}) found")
    return lo, hi


class HebbianNetwork(FeedforwardNetwork):
    """
    MLP with a local ABCD plasticity rule applied after every call.

    Args:
        neurons: Layer sizes, input first
        activation: Activation for every non-input layer
        coefficients: Flat A..D coefficients, 4 per edge (default zeros)
        eta: Learning rate, scalar or flat per-edge vector
        weights: Initial weights (default: uniform [-1, 1] if seed is given, else zeros)
        normalization: None, 'minmax' or (lo, hi) clipping bounds, applied after updates
        disabled: Input indices whose outgoing first-layer weights never learn
        seed: Seed for the random initial weights
    """

    def __init__(
        self,
        neurons: Sequence[int],
        activation=Activation.TANH,
        coefficients=None,
        eta=0.01,
        weights=None,
        normalization=None,
        disabled: Iterable[int] = (),
        seed: Optional[int] = None,
    ):
        neurons = [int(n) for n in neurons]
        if weights is None and seed is not None and len(neurons) >= 2:
            rng = np.random.default_rng(seed)
            weights = rng.uniform(-1.0, 1.0, size=count_weights(neurons))
        super().__init__(neurons, activation, weights)
        if coefficients is None:
            coefficients = np.zeros(count_hebbian_coefficients(self.neurons))
        self.coefficients = unflat_coefficients(coefficients, self.neurons)
        if np.ndim(eta) == 0:
            eta = np.full(count_weights(self.neurons), float(eta))
        self.eta = unflat(eta, self.neurons)
        self.normalization = _check_normalization(normalization)
        self.disabled = frozenset(int(i) for i in disabled)
        outside = sorted(i for i in self.disabled if not 0 <= i < self.input_dim)
        if outside:
            raise InvalidConfiguration(
                f"Disabled inputs {outside} outside [0, {self.input_dim})"
            )
        self._plastic = [np.ones(w.shape, dtype=bool) for w in self.weights]
        for i in self.disabled:
            self._plastic[0][:, i + 1] = False  # column 0 is the bias
        self.learning = True
        self._initial_weights = [w.copy() for w in self.weights]

    def forward(self, inputs) -> np.ndarray:
        out = super().forward(inputs)
        if self.learning:
            self._hebbian_update()
            if self.normalization is not None:
                self._normalize()
        return out

    def _hebbian_update(self) -> None:
        for layer, w in enumerate(self.weights):
            pre = np.concatenate(([1.0], self.activation_values[layer]))[np.newaxis, :]
            post = self.activation_values[layer + 1][:, np.newaxis]
            k = self.coefficients[layer]
            dw = self.eta[layer] * (
                k[..., 0] * post * pre
                + k[..., 1] * post
                + k[..., 2] * pre
                + k[..., 3]
            )
            w += np.where(self._plastic[layer], dw, 0.0)

    def _normalize(self) -> None:
        if isinstance(self.normalization, tuple):
            lo, hi = self.normalization
            for w in self.weights:
                np.clip(w, lo, hi, out=w)
            return
        for w in self.weights:
            lo = w.min(axis=1, keepdims=True)
            hi = w.max(axis=1, keepdims=True)
            span = hi - lo
            rows = (span > 0).ravel()
            # constant rows stay as they are
            w[rows] = 2.0 * (w[rows] - lo[rows]) / span[rows] - 1.0

    # Learning switch

    def start_learning(self) -> None:
        self.learning = True

    def stop_learning(self) -> None:
        self.learning = False

    def toggle_learning(self) -> bool:
        self.learning = not self.learning
        return self.learning

    # Parameters: the optimizer sees the coefficients

    def get_params(self) -> np.ndarray:
        return flat(self.coefficients)

    def set_params(self, params) -> None:
        new_coefficients = unflat_coefficients(params, self.neurons)
        for c, nc in zip(self.coefficients, new_coefficients):
            c[...] = nc

    def get_weights(self) -> List[np.ndarray]:
        return [w.copy() for w in self.weights]

    def set_weights(self, weights) -> None:
        """Overwrite the current (runtime) weights; the reset snapshot is untouched."""
        for w, nw in zip(self.weights, unflat(weights, self.neurons)):
            w[...] = nw

    def get_initial_weights(self) -> List[np.ndarray]:
        return [w.copy() for w in self._initial_weights]

    def set_initial_weights(self, weights) -> None:
        """Replace the snapshot restored by reset()."""
        self._initial_weights = unflat(weights, self.neurons)

    def get_eta(self) -> np.ndarray:
        return flat(self.eta)

    def set_eta(self, eta) -> None:
        for e, ne in zip(self.eta, unflat(eta, self.neurons)):
            e[...] = ne

    def reset(self) -> None:
        for w, w0 in zip(self.weights, self._initial_weights):
            w[...] = w0
        self.activation_values = [np.zeros(n) for n in self.neurons]

    def snapshot(self) -> Snapshot:
        return Snapshot(
            NetworkState(
                self.activation_values,
                self.weights,
                self.activation.domain,
                statistics={'initial_weights': self._initial_weights},
            ),
            type(self),
        )

    def __repr__(self) -> str:
        return f"hMLP.{self.activation.value}[{','.join(str(n) for n in self.neurons)}]"
