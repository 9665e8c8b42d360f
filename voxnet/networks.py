"""
Layered neural networks used as per-cell controllers.

FeedforwardNetwork: dense multi-layer perceptron with per-neuron bias
RecurrentNetwork: input -> hidden -> output with single-step hidden recurrence

Both are NumPy-based, work in float64 and expose their weights as one flat
parameter vector so that gradient-free optimizers can search over them.
"""

import numpy as np
from typing import List, Optional, Sequence

from .errors import InvalidConfiguration, check_length
from .functions import Activation, RealFunction, as_vector
from .snapshots import Domain, NetworkState, Snapshot


def count_neurons(n_input: int, inner_neurons: Sequence[int], n_output: int) -> List[int]:
    """Layer sizes from input size, inner layer sizes and output size."""
    return [int(n_input)] + [int(n) for n in inner_neurons] + [int(n_output)]


def count_weights(neurons: Sequence[int]) -> int:
    """
    Number of weights (biases included) of a dense network.

    Each destination neuron has one bias plus one weight per source neuron,
    e.g. [3, 4, 2] -> 4*(3+1) + 2*(4+1) = 26.
    """
    return sum(neurons[i + 1] * (neurons[i] + 1) for i in range(len(neurons) - 1))


def unflat(flat_weights, neurons: Sequence[int]) -> List[np.ndarray]:
    """
    Split a flat vector into one (n_dest, 1 + n_src) matrix per layer.

    Column 0 of each row holds the bias, columns 1.. the source weights.
    """
    flat_weights = np.asarray(flat_weights, dtype=np.float64)
    check_length("weights", flat_weights, count_weights(neurons))
    layers = []
    c = 0
    for i in range(len(neurons) - 1):
        size = neurons[i + 1] * (neurons[i] + 1)
        layers.append(flat_weights[c:c + size].reshape(neurons[i + 1], neurons[i] + 1).copy())
        c += size
    return layers


def flat(weights: Sequence[np.ndarray]) -> np.ndarray:
    """Inverse of unflat: layer, destination neuron, [bias, source weights...]."""
    if not weights:
        return np.zeros(0)
    return np.concatenate([np.asarray(w, dtype=np.float64).ravel() for w in weights])


def _check_neurons(neurons: Sequence[int]) -> List[int]:
    neurons = [int(n) for n in neurons]
    if len(neurons) < 2:
        raise InvalidConfiguration(f"At least 2 layers are required: {len(neurons)} found")
    if any(n <= 0 for n in neurons):
        raise InvalidConfiguration(f"Layer sizes must be positive: {neurons}")
    return neurons


class FeedforwardNetwork(RealFunction):
    """
    Dense multi-layer perceptron.

    Each neuron computes activation(bias + sum(weight * upstream_value)).

    Args:
        neurons: Layer sizes, input first, e.g. [3, 4, 2]
        activation: Activation applied to every non-input layer
        weights: Flat weight vector (default: all zeros)
    """

    def __init__(
        self,
        neurons: Sequence[int],
        activation=Activation.TANH,
        weights=None,
    ):
        self.neurons = _check_neurons(neurons)
        self.activation = Activation.from_name(activation)
        if weights is None:
            weights = np.zeros(count_weights(self.neurons))
        self.weights = unflat(weights, self.neurons)
        self.activation_values = [np.zeros(n) for n in self.neurons]

    @classmethod
    def build(
        cls,
        n_input: int,
        inner_neurons: Sequence[int],
        n_output: int,
        activation=Activation.TANH,
        weights=None,
        **kwargs
    ):
        """Build from input size, inner layer sizes and output size."""
        return cls(count_neurons(n_input, inner_neurons, n_output), activation, weights=weights, **kwargs)

    @property
    def input_dim(self) -> int:
        return self.neurons[0]

    @property
    def output_dim(self) -> int:
        return self.neurons[-1]

    @property
    def output_domain(self) -> Domain:
        return self.activation.domain

    def _propagate(self, x: np.ndarray, weights: Sequence[np.ndarray]) -> List[np.ndarray]:
        values = [x]
        for w in weights:
            values.append(self.activation(w[:, 0] + w[:, 1:] @ values[-1]))
        return values

    def forward(self, inputs) -> np.ndarray:
        x = as_vector(inputs, self.input_dim)
        self.activation_values = self._propagate(x, self.weights)
        return self.activation_values[-1].copy()

    def get_params(self) -> np.ndarray:
        return flat(self.weights)

    def set_params(self, params) -> None:
        new_weights = unflat(params, self.neurons)
        for w, nw in zip(self.weights, new_weights):
            w[...] = nw

    def get_weights(self) -> List[np.ndarray]:
        return [w.copy() for w in self.weights]

    def snapshot(self) -> Snapshot:
        return Snapshot(
            NetworkState(self.activation_values, self.weights, self.activation.domain),
            type(self),
        )

    def __repr__(self) -> str:
        return f"MLP.{self.activation.value}[{','.join(str(n) for n in self.neurons)}]"


class RecurrentNetwork(RealFunction):
    """
    Three-layer network whose hidden layer also sees its own previous value.

    hidden_t = act(x_t @ W_in + hidden_{t-1} @ W_rec + b_hidden)
    output_t = act(hidden_t @ W_out + b_output)

    The hidden state survives between calls and must be cleared with reset()
    between independent episodes.

    Args:
        neurons: Exactly [n_input, n_hidden, n_output]
        activation: Activation for hidden and output layers
        weights: Flat vector [W_in, W_rec, W_out, b_hidden, b_output] (default zeros)
    """

    def __init__(self, neurons: Sequence[int], activation=Activation.TANH, weights=None):
        if len(neurons) != 3:
            raise InvalidConfiguration(
                f"Wrong number of layers: 3 expected, {len(neurons)} found"
            )
        self.neurons = _check_neurons(neurons)
        self.activation = Activation.from_name(activation)
        n_in, n_h, n_out = self.neurons
        self.input_weights = np.zeros((n_in, n_h))
        self.recurrent_weights = np.zeros((n_h, n_h))
        self.output_weights = np.zeros((n_h, n_out))
        self.hidden_biases = np.zeros(n_h)
        self.output_biases = np.zeros(n_out)
        if weights is not None:
            self.set_params(weights)
        self.activation_values = [np.zeros(n) for n in self.neurons]

    @staticmethod
    def count_weights(neurons: Sequence[int]) -> int:
        n_in, n_h, n_out = neurons
        return n_in * n_h + n_h * n_h + n_h * n_out + n_h + n_out

    @property
    def input_dim(self) -> int:
        return self.neurons[0]

    @property
    def output_dim(self) -> int:
        return self.neurons[2]

    @property
    def output_domain(self) -> Domain:
        return self.activation.domain

    @property
    def hidden(self) -> np.ndarray:
        return self.activation_values[1].copy()

    def forward(self, inputs) -> np.ndarray:
        x = as_vector(inputs, self.input_dim)
        previous_hidden = self.activation_values[1]
        hidden = self.activation(
            x @ self.input_weights + previous_hidden @ self.recurrent_weights + self.hidden_biases
        )
        output = self.activation(hidden @ self.output_weights + self.output_biases)
        self.activation_values = [x, hidden, output]
        return output.copy()

    def _blocks(self) -> List[np.ndarray]:
        return [
            self.input_weights,
            self.recurrent_weights,
            self.output_weights,
            self.hidden_biases,
            self.output_biases,
        ]

    def get_params(self) -> np.ndarray:
        return np.concatenate([b.ravel() for b in self._blocks()])

    def set_params(self, params) -> None:
        params = np.asarray(params, dtype=np.float64)
        check_length("weights", params, self.count_weights(self.neurons))
        c = 0
        for block in self._blocks():
            block[...] = params[c:c + block.size].reshape(block.shape)
            c += block.size

    def reset(self) -> None:
        self.activation_values = [np.zeros(n) for n in self.neurons]

    def snapshot(self) -> Snapshot:
        # bias as column 0, matching the FeedforwardNetwork layout
        hidden_layer = np.column_stack([
            self.hidden_biases, self.input_weights.T, self.recurrent_weights.T
        ])
        output_layer = np.column_stack([self.output_biases, self.output_weights.T])
        return Snapshot(
            NetworkState(self.activation_values, [hidden_layer, output_layer], self.activation.domain),
            type(self),
        )

    def __repr__(self) -> str:
        return f"RNN.{self.activation.value}[{','.join(str(n) for n in self.neurons)}]"
