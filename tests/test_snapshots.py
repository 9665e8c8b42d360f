"""
Tests for the read-only state exports.
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pytest

from voxnet import Domain, FeedforwardNetwork, HebbianNetwork, NetworkState, ScopedReadings, Snapshot, count_weights


def test_domain():
    d = Domain(-1.0, 1.0)
    assert d.contains(0.5)
    assert not d.contains(1.5)
    assert Domain.of(0.0, 1.0, 3) == [Domain(0.0, 1.0)] * 3
    assert Domain.unbounded().contains(1e300)
    assert str(d) == "[-1.0;1.0]"


def test_scoped_readings_normalized():
    readings = ScopedReadings([0.0, 0.5, 7.0], [Domain(-1.0, 1.0), Domain(0.0, 1.0), Domain.unbounded()])
    assert np.allclose(readings.normalized(), [0.5, 0.5, 7.0])
    with pytest.raises(ValueError):
        ScopedReadings([1.0, 2.0], [Domain(0.0, 1.0)])


def test_network_snapshot_is_a_copy():
    net = FeedforwardNetwork([2, 2])
    net.apply(0.0, [1.0, 1.0])
    snapshot = net.snapshot()
    net.set_params(np.ones(6))
    net.apply(0.0, [1.0, 1.0])
    assert np.array_equal(snapshot.content.weights[0], np.zeros((2, 3)))
    assert np.array_equal(snapshot.content.activation_values[1], np.zeros(2))


def test_hebbian_snapshot_keeps_initial_weights():
    net = HebbianNetwork([2, 1], coefficients=np.tile([0, 0, 0, 1.0], count_weights([2, 1])), seed=0)
    net.apply(0.0, [1.0, 1.0])
    state = net.snapshot().content
    assert not np.array_equal(state.weights[0], state.statistics['initial_weights'][0])


def test_find():
    leaf = Snapshot(NetworkState([np.zeros(1)], [], Domain(0.0, 1.0)), FeedforwardNetwork)
    tree = Snapshot(None, object, [Snapshot(None, object, [leaf]), leaf])
    assert len(tree.find(NetworkState)) == 2
    assert tree.find(ScopedReadings) == []
