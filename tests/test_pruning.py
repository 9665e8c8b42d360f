"""
Tests for the online-pruning network.
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pytest

from voxnet import FeedforwardNetwork, InvalidConfiguration, PruningContext, PruningCriterion, PruningNetwork
from voxnet.networks import flat


# [2, 2] layer rows: [b0, w00, w01], [b1, w10, w11]
WEIGHTS = [0.1, -0.5, 0.2, 0.9, -0.05, 0.3]


def test_rate_must_be_in_unit_interval():
    with pytest.raises(InvalidConfiguration):
        PruningNetwork([2, 2], rate=1.5)
    with pytest.raises(InvalidConfiguration):
        PruningNetwork([2, 2], rate=-0.1)


def test_context_and_criterion_names():
    net = PruningNetwork([2, 2], context='layer', criterion='signal_variance')
    assert net.context is PruningContext.LAYER
    assert net.criterion is PruningCriterion.SIGNAL_VARIANCE
    with pytest.raises(InvalidConfiguration):
        PruningNetwork([2, 2], context='cell')
    with pytest.raises(InvalidConfiguration):
        PruningNetwork([2, 2], criterion='gradient')


def test_output_uses_pruned_weights():
    """The bias and the 0.1 edge go; only the unit edge is left."""
    net = PruningNetwork([2, 1], weights=[0.0, 1.0, 0.1], rate=0.5)
    out = net.apply(0.0, [1.0, 1.0])
    assert np.array_equal(flat(net.get_weights()), [0.0, 1.0, 0.0])
    assert np.isclose(out[0], np.tanh(1.0))
    assert np.isclose(out[0], 0.7616, atol=1e-4)
    plain = FeedforwardNetwork([2, 1], weights=flat(net.get_weights()))
    assert np.array_equal(out, plain.apply(0.0, [1.0, 1.0]))
    assert not hasattr(net, 'predict')


def test_prunes_at_pruning_time_only():
    net = PruningNetwork([2, 2], weights=WEIGHTS, pruning_time=0.5, rate=0.5)
    net.apply(0.0, [1.0, 1.0])
    net.apply(0.4, [1.0, 1.0])
    assert not net.pruned
    assert np.array_equal(flat(net.get_weights()), WEIGHTS)

    net.apply(0.5, [1.0, 1.0])
    assert net.pruned
    # the three smallest |w| in the whole network are gone
    assert np.allclose(flat(net.get_weights()), [0.0, -0.5, 0.0, 0.9, 0.0, 0.3])


def test_pruning_is_permanent_and_once():
    net = PruningNetwork([2, 2], weights=WEIGHTS, rate=0.5)
    net.apply(0.0, [1.0, 1.0])
    after_first = flat(net.get_weights())
    for t in (1.0, 2.0, 3.0):
        net.apply(t, [0.5, -0.5])
    assert np.array_equal(flat(net.get_weights()), after_first)
    # the optimizer-facing parameters are untouched
    assert np.array_equal(net.get_params(), WEIGHTS)


def test_neuron_context():
    net = PruningNetwork([2, 2], weights=WEIGHTS, context=PruningContext.NEURON, rate=0.5)
    # 3 edges per neuron, round(1.5) = 2 pruned each
    assert net.prune() == 4
    assert np.allclose(flat(net.get_weights()), [0.0, -0.5, 0.0, 0.9, 0.0, 0.0])


def test_layer_context_counts():
    net = PruningNetwork([2, 3, 1], context='layer', rate=0.25)
    # layer sizes 9 and 4 edges: round(2.25) + round(1.0)
    assert net.prune() == 2 + 1


def test_variance_criterion_folds_into_bias():
    net = PruningNetwork(
        [2, 1],
        weights=[0.1, 0.4, 0.7],
        pruning_time=1.0,
        context=PruningContext.NEURON,
        criterion=PruningCriterion.SIGNAL_VARIANCE,
        rate=0.5,
    )
    # first input constant, second varying: bias and first edge have zero variance
    for t, x1 in ((0.0, 0.0), (0.1, 1.0), (0.2, -1.0)):
        net.apply(t, [1.0, x1])
    assert np.isclose(net.variances[0][0, 2], np.var([0.0, 0.7, -0.7]))
    net.apply(1.0, [1.0, 0.0])
    assert np.allclose(flat(net.get_weights()), [0.4, 0.0, 0.7])


def test_signal_statistics():
    net = PruningNetwork([1, 1], weights=[0.5, 2.0], pruning_time=10.0)
    for x in (1.0, -1.0, 3.0):
        net.apply(0.0, [x])
    # signals on the input edge: 2, -2, 6
    assert np.isclose(net.means[0][0, 1], 2.0)
    assert np.isclose(net.abs_means[0][0, 1], 10.0 / 3.0)
    assert np.isclose(net.variances[0][0, 1], np.var([2.0, -2.0, 6.0]))
    assert np.isclose(net.means[0][0, 0], 0.5)


def test_random_criterion_is_seeded():
    a = PruningNetwork([3, 2], weights=np.arange(1.0, 9.0), criterion='random', seed=7)
    b = PruningNetwork([3, 2], weights=np.arange(1.0, 9.0), criterion='random', seed=7)
    a.prune()
    b.prune()
    assert np.array_equal(flat(a.get_weights()), flat(b.get_weights()))
    assert np.count_nonzero(flat(a.get_weights())) == 4


def test_reset_and_set_params_restore():
    net = PruningNetwork([2, 2], weights=WEIGHTS, rate=0.5)
    net.apply(0.0, [1.0, 1.0])
    net.reset()
    assert not net.pruned
    assert net.counter == 0
    assert np.array_equal(flat(net.get_weights()), WEIGHTS)

    net.apply(0.0, [1.0, 1.0])
    net.set_params(np.ones(6))
    assert not net.pruned
    assert np.array_equal(flat(net.get_weights()), np.ones(6))


def test_snapshot_statistics():
    net = PruningNetwork([2, 2], weights=WEIGHTS, pruning_time=5.0)
    net.apply(0.0, [1.0, 2.0])
    state = net.snapshot().content
    assert set(state.statistics) == {'signal_mean', 'abs_signal_mean', 'signal_variance'}
    assert repr(net) == "pMLP.tanh[2,2]"
