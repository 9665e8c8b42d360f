"""
Permanent communication faults for distributed controllers.

BrokenDistributedSensing wraps a DistributedSensing controller. A keep-mask
over every cell's outgoing signal channels is drawn once, at construction.
From breakage_time on, after each round the wrapped controller's committed
signals are zeroed wherever the mask is False, so a broken channel reads 0
for the rest of the episode.
"""

import logging
import numpy as np
from enum import Enum
from typing import Optional

from .controllers import Controller, DistributedSensing
from .errors import InvalidConfiguration
from .grid import Grid
from .snapshots import Snapshot

logger = logging.getLogger(__name__)


class FaultPattern(Enum):
    """How broken channels are sampled."""
    RANDOM = "random"            # individual channels
    DIRECTIONAL = "directional"  # whole per-direction blocks of `signals` channels

    @classmethod
    def from_name(cls, name) -> 'FaultPattern':
        try:
            return cls(name)
        except ValueError:
            raise InvalidConfiguration(
                f"Unknown fault pattern: {name}. Available: {[p.value for p in cls]}"
            ) from None


def sample_fault_masks(
    network: DistributedSensing,
    rate: float,
    pattern: FaultPattern,
    rng: np.random.Generator,
) -> Grid:
    """
    Draw a boolean keep-mask per occupied cell.

    Occupied cells are laid out in grid order over one flat channel space;
    cell c owns indices [c * size, (c + 1) * size) where size is the cell's
    outgoing signal length, made of contiguous blocks of `signals` channels.
    """
    cells = list(network.body.occupied())
    size = network.outgoing_size
    keep = np.ones(len(cells) * size, dtype=bool)
    if keep.size > 0:
        if pattern is FaultPattern.RANDOM:
            n_removed = int(np.floor(rate * keep.size))
            removed = rng.choice(keep.size, size=n_removed, replace=False)
            keep[removed] = False
        else:
            signals = network.signals
            n_blocks = keep.size // signals
            n_removed = int(np.floor(rate * keep.size / signals))
            for block in rng.choice(n_blocks, size=n_removed, replace=False):
                keep[block * signals:(block + 1) * signals] = False
    masks = Grid(network.body.w, network.body.h)
    for c, entry in enumerate(cells):
        masks.set(entry.x, entry.y, keep[c * size:(c + 1) * size].copy())
    return masks


class BrokenDistributedSensing(Controller):
    """
    Fault injector around a distributed controller.

    Args:
        network: Wrapped DistributedSensing (directional or not)
        breakage_time: Time from which the faults are active
        rate: Fraction of channels (RANDOM) or direction blocks (DIRECTIONAL) removed
        pattern: FaultPattern or its name
        seed: Seed of the mask sampling
    """

    def __init__(
        self,
        network: DistributedSensing,
        breakage_time: float = 0.0,
        rate: float = 0.0,
        pattern=FaultPattern.DIRECTIONAL,
        seed: Optional[int] = None,
    ):
        if not 0.0 <= rate <= 1.0:
            raise InvalidConfiguration(f"Fault rate should be defined in [0,1]: {rate} found")
        self.network = network
        self.breakage_time = float(breakage_time)
        self.rate = float(rate)
        self.pattern = FaultPattern.from_name(pattern)
        self.seed = seed
        self.masks = sample_fault_masks(network, self.rate, self.pattern, np.random.default_rng(seed))
        self.broken = False

    @property
    def n_broken(self) -> int:
        """Number of masked channels over all cells."""
        return sum(int((~e.value).sum()) for e in self.masks.occupied())

    def control(self, t: float, inputs: Grid) -> Grid:
        outputs = self.network.control(t, inputs)
        if not self.broken and t >= self.breakage_time:
            self.broken = True
            logger.info(
                "Fault mask active at t=%.3f: %d channels broken (%s, rate=%.2f)",
                t, self.n_broken, self.pattern.value, self.rate,
            )
        if self.broken:
            self.network.apply_mask(self.masks)
        return outputs

    def reset(self) -> None:
        """Reset the wrapped controller; the masks themselves never change."""
        self.network.reset()
        self.broken = False

    def get_params(self) -> np.ndarray:
        return self.network.get_params()

    def set_params(self, params) -> None:
        self.network.set_params(params)

    def snapshot(self) -> Snapshot:
        return Snapshot(None, type(self), [self.network.snapshot()])
