"""
Tests for the single-step recurrent network.
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pytest

from voxnet import DimensionMismatch, InvalidConfiguration, RecurrentNetwork


def test_needs_three_layers():
    with pytest.raises(InvalidConfiguration):
        RecurrentNetwork([2, 3])
    with pytest.raises(InvalidConfiguration):
        RecurrentNetwork([2, 3, 3, 1])


def test_weight_count():
    net = RecurrentNetwork([2, 3, 1])
    # W_in 2x3, W_rec 3x3, W_out 3x1, b_hidden 3, b_output 1
    assert net.num_params() == 6 + 9 + 3 + 3 + 1 == 22
    with pytest.raises(DimensionMismatch):
        net.set_params(np.zeros(21))


def test_hidden_state_persists_until_reset():
    rng = np.random.default_rng(0)
    net = RecurrentNetwork([2, 3, 1], weights=rng.normal(size=22))
    x = np.array([0.5, -0.2])

    first = net.apply(0.0, x)
    second = net.apply(0.1, x)
    assert not np.allclose(first, second)

    net.reset()
    assert np.array_equal(net.hidden, np.zeros(3))
    assert np.array_equal(net.apply(0.0, x), first)


def test_manual_step():
    net = RecurrentNetwork([1, 1, 1])
    # W_in, W_rec, W_out, b_hidden, b_output
    net.set_params([1.0, 0.5, 2.0, 0.1, -0.1])
    h1 = np.tanh(1.0 * 0.3 + 0.1)
    assert np.isclose(net.apply(0.0, [0.3])[0], np.tanh(2.0 * h1 - 0.1))
    h2 = np.tanh(1.0 * 0.3 + 0.5 * h1 + 0.1)
    assert np.isclose(net.apply(0.0, [0.3])[0], np.tanh(2.0 * h2 - 0.1))


def test_params_round_trip():
    rng = np.random.default_rng(1)
    params = rng.normal(size=RecurrentNetwork.count_weights([3, 2, 2]))
    net = RecurrentNetwork([3, 2, 2], weights=params)
    assert np.array_equal(net.get_params(), params)


def test_snapshot_layout():
    net = RecurrentNetwork([2, 3, 1])
    state = net.snapshot().content
    assert [w.shape for w in state.weights] == [(3, 1 + 2 + 3), (1, 1 + 3)]
