"""
Read-only state exports for renderers and recorders.

Every snapshot holds deep copies, so a consumer can keep it around while the
controller keeps running:
- Domain: numeric range a value is declared to live in
- ScopedReadings: a vector of values with one Domain per entry
- NetworkState: activations and weights of a layered network
- CellState: inputs and outputs of one grid cell in the last round
- Snapshot: tree node tying a state to the component that produced it
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Domain:
    """Closed numeric interval [min, max]."""
    min: float
    max: float

    @classmethod
    def of(cls, min_value: float, max_value: float, n: Optional[int] = None):
        if n is None:
            return cls(min_value, max_value)
        return [cls(min_value, max_value)] * n

    @classmethod
    def unbounded(cls) -> 'Domain':
        return cls(-np.inf, np.inf)

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max

    def __str__(self) -> str:
        return f"[{self.min:.1f};{self.max:.1f}]"


@dataclass
class ScopedReadings:
    """Values together with the domain each of them is declared in."""
    values: np.ndarray
    domains: List[Domain]

    def __post_init__(self):
        self.values = np.array(self.values, dtype=np.float64)
        if len(self.domains) != len(self.values):
            raise ValueError(
                f"Got {len(self.domains)} domains for {len(self.values)} values"
            )

    def normalized(self) -> np.ndarray:
        """Map each value into [0, 1] within its domain (unbounded domains pass through)."""
        out = self.values.copy()
        for i, d in enumerate(self.domains):
            if np.isfinite(d.min) and np.isfinite(d.max) and d.max > d.min:
                out[i] = (out[i] - d.min) / (d.max - d.min)
        return out


@dataclass
class NetworkState:
    """Activations and weight tensors of a layered network at one instant."""
    activation_values: List[np.ndarray]
    weights: List[np.ndarray]
    activation_domain: Domain
    statistics: Dict[str, List[np.ndarray]] = field(default_factory=dict)

    def __post_init__(self):
        self.activation_values = [np.array(a, dtype=np.float64) for a in self.activation_values]
        self.weights = [np.array(w, dtype=np.float64) for w in self.weights]
        self.statistics = {
            k: [np.array(a, dtype=np.float64) for a in v] for k, v in self.statistics.items()
        }


@dataclass
class CellState:
    """What one cell read and produced in the last round."""
    x: int
    y: int
    inputs: ScopedReadings
    outputs: ScopedReadings


@dataclass
class Snapshot:
    """
    A node in the introspection tree.

    Args:
        content: State object (NetworkState, CellState, ...) or None
        source: Class of the component that produced it
        children: Snapshots of wrapped/owned components
    """
    content: Any
    source: type
    children: List['Snapshot'] = field(default_factory=list)

    def find(self, content_type: type) -> List[Any]:
        """All contents of the given type in this subtree, depth first."""
        found = []
        if isinstance(self.content, content_type):
            found.append(self.content)
        for child in self.children:
            found.extend(child.find(content_type))
        return found
