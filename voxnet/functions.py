"""
Neural function interface shared by every controller building block.

A NeuralFunction maps an input vector to an output vector of fixed,
declared sizes. It may depend on explicit time and on its own internal
state, never on anything global.

- Activation: RELU, SIGMOID, TANH, SIN (callable on floats and arrays)
- NeuralFunction: abstract base (apply, dims, params, reset, snapshot)
- RealFunction: time-independent base exposing forward(inputs)
- TimedFunction: wraps a plain callable and checks sizes on every call
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional

import numpy as np

from .errors import DimensionMismatch, InvalidConfiguration, check_length
from .snapshots import Domain, Snapshot


class Activation(Enum):
    """Activation functions, applied uniformly to every non-input layer."""
    RELU = "relu"
    SIGMOID = "sigmoid"
    TANH = "tanh"
    SIN = "sin"

    def __call__(self, x):
        return _ACTIVATION_FUNCTIONS[self](x)

    @property
    def domain(self) -> Domain:
        return _ACTIVATION_DOMAINS[self]

    @classmethod
    def from_name(cls, name) -> 'Activation':
        if isinstance(name, cls):
            return name
        try:
            return cls[str(name).upper()]
        except KeyError:
            raise InvalidConfiguration(
                f"Unknown activation: {name}. Available: {[a.name for a in cls]}"
            ) from None


def _sigmoid(x):
    # tanh form avoids overflow in exp for large |x|
    return 0.5 * (1.0 + np.tanh(0.5 * np.asarray(x, dtype=np.float64)))


_ACTIVATION_FUNCTIONS = {
    Activation.RELU: lambda x: np.maximum(np.asarray(x, dtype=np.float64), 0.0),
    Activation.SIGMOID: _sigmoid,
    Activation.TANH: lambda x: np.tanh(np.asarray(x, dtype=np.float64)),
    Activation.SIN: lambda x: np.sin(np.asarray(x, dtype=np.float64)),
}

_ACTIVATION_DOMAINS = {
    Activation.RELU: Domain(0.0, np.inf),
    Activation.SIGMOID: Domain(0.0, 1.0),
    Activation.TANH: Domain(-1.0, 1.0),
    Activation.SIN: Domain(-1.0, 1.0),
}


def as_vector(values, expected: int, what: str = "inputs") -> np.ndarray:
    """Copy values into a float64 vector, raising DimensionMismatch on a wrong length."""
    vec = np.array(values, dtype=np.float64)
    if vec.ndim > 1:
        raise DimensionMismatch(what, expected, int(vec.size))
    vec = vec.reshape(-1)
    check_length(what, vec, expected)
    return vec


class NeuralFunction(ABC):
    """
    Capability interface of every neural computation unit.

    Subclasses declare input_dim/output_dim and implement apply(t, inputs).
    Parametrized subclasses override get_params/set_params; stateful ones
    override reset.
    """

    @property
    @abstractmethod
    def input_dim(self) -> int:
        ...

    @property
    @abstractmethod
    def output_dim(self) -> int:
        ...

    @abstractmethod
    def apply(self, t: float, inputs) -> np.ndarray:
        """Compute outputs for the given time and input vector."""

    @property
    def output_domain(self) -> Domain:
        return Domain.unbounded()

    def get_params(self) -> np.ndarray:
        return np.zeros(0)

    def set_params(self, params) -> None:
        check_length("parameters", params, 0)

    def num_params(self) -> int:
        return len(self.get_params())

    def reset(self) -> None:
        pass

    def snapshot(self) -> Optional[Snapshot]:
        return None

    def __call__(self, t: float, inputs) -> np.ndarray:
        return self.apply(t, inputs)


class RealFunction(NeuralFunction):
    """A NeuralFunction that ignores time: apply(t, x) == forward(x)."""

    @abstractmethod
    def forward(self, inputs) -> np.ndarray:
        ...

    def apply(self, t: float, inputs) -> np.ndarray:
        return self.forward(inputs)


class TimedFunction(NeuralFunction):
    """
    Wrap a callable f(t, inputs) -> outputs with declared dimensions.

    Input and output sizes are checked on every call.

    Args:
        fn: Callable taking (t, inputs)
        input_dim: Expected input length
        output_dim: Expected output length
    """

    def __init__(self, fn: Callable[[float, np.ndarray], np.ndarray], input_dim: int, output_dim: int):
        if input_dim < 0 or output_dim < 0:
            raise InvalidConfiguration(
                f"Dimensions must be non-negative: R^{input_dim}->R^{output_dim}"
            )
        self.fn = fn
        self._input_dim = input_dim
        self._output_dim = output_dim

    @classmethod
    def from_real(cls, fn: Callable[[np.ndarray], np.ndarray], input_dim: int, output_dim: int) -> 'TimedFunction':
        """Build from a time-independent callable."""
        return cls(lambda t, x: fn(x), input_dim, output_dim)

    @classmethod
    def zeros(cls, input_dim: int, output_dim: int) -> 'TimedFunction':
        """A function that always outputs zeros."""
        return cls(lambda t, x: np.zeros(output_dim), input_dim, output_dim)

    @property
    def input_dim(self) -> int:
        return self._input_dim

    @property
    def output_dim(self) -> int:
        return self._output_dim

    def apply(self, t: float, inputs) -> np.ndarray:
        x = as_vector(inputs, self._input_dim)
        out = np.array(self.fn(t, x), dtype=np.float64).reshape(-1)
        check_length("outputs", out, self._output_dim)
        return out
