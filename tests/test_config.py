"""
Tests for the configuration dataclasses and controller factory.
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pytest

from voxnet import (
    BrokenDistributedSensing,
    CentralizedSensing,
    ControllerConfig,
    DistributedSensing,
    DistributedSensingNonDirectional,
    FaultConfig,
    FeedforwardNetwork,
    FunctionConfig,
    FUNCTIONS,
    Grid,
    HebbianNetwork,
    InvalidConfiguration,
    PruningNetwork,
    RecurrentNetwork,
    SelfAttentionNetwork,
    ShaperConfig,
    SmoothedController,
    StepController,
    build_controller,
    count_weights,
    get_function,
)


BODY = Grid.from_rows([[3, 3], [3, None]])


def test_registry_builds_every_function():
    expected = {
        'mlp': FeedforwardNetwork,
        'hebbian': HebbianNetwork,
        'pruning': PruningNetwork,
        'recurrent': RecurrentNetwork,
    }
    for name, cls in expected.items():
        fn = get_function(name, 6, 2, FunctionConfig(name=name, inner_layers=[4]))
        assert isinstance(fn, cls)
        assert (fn.input_dim, fn.output_dim) == (6, 2)

    attention = get_function(
        'attention', 6, 2,
        FunctionConfig(name='attention', options={'n': 2, 'din': 3, 'dk': 2}),
    )
    assert isinstance(attention, SelfAttentionNetwork)
    assert attention.output_dim == 2
    assert set(FUNCTIONS) == {'mlp', 'hebbian', 'pruning', 'recurrent', 'attention'}


def test_unknown_names_rejected():
    with pytest.raises(InvalidConfiguration):
        FunctionConfig(name='transformer')
    with pytest.raises(InvalidConfiguration):
        get_function('transformer', 1, 1)
    with pytest.raises(InvalidConfiguration):
        FunctionConfig(activation='softplus')
    with pytest.raises(InvalidConfiguration):
        ControllerConfig(kind='swarm')
    with pytest.raises(InvalidConfiguration):
        ShaperConfig('hold', 1.0)
    with pytest.raises(InvalidConfiguration):
        FaultConfig(pattern='diagonal')
    with pytest.raises(InvalidConfiguration):
        ShaperConfig('discontinuous', 1.0, mode='hold')
    with pytest.raises(InvalidConfiguration):
        get_function('pruning', 2, 1, FunctionConfig(name='pruning', options={'criterion': 'gradient'}))


def test_recurrent_options_are_passed():
    weights = np.linspace(-1.0, 1.0, RecurrentNetwork.count_weights([2, 2, 1]))
    fn = get_function(
        'recurrent', 2, 1,
        FunctionConfig(name='recurrent', inner_layers=[2], options={'weights': weights}),
    )
    assert np.array_equal(fn.get_params(), weights)
    assert np.array_equal(fn.get_params(), RecurrentNetwork([2, 2, 1], weights=weights).get_params())


def test_invalid_values_rejected():
    with pytest.raises(InvalidConfiguration):
        ControllerConfig(signals=-1)
    with pytest.raises(InvalidConfiguration):
        FaultConfig(rate=2.0)
    with pytest.raises(InvalidConfiguration):
        ShaperConfig('step', 0.0)
    with pytest.raises(InvalidConfiguration):
        ControllerConfig(kind='centralized', fault=FaultConfig())
    with pytest.raises(InvalidConfiguration):
        get_function('recurrent', 3, 1, FunctionConfig(name='recurrent', inner_layers=[2, 2]))
    with pytest.raises(InvalidConfiguration):
        get_function('attention', 6, 1, FunctionConfig(name='attention', options={'n': 2, 'din': 2, 'dk': 1}))


def test_distributed_param_count():
    config = ControllerConfig(signals=1, function=FunctionConfig(inner_layers=[4]))
    controller = build_controller(BODY, config, seed=0)
    assert isinstance(controller, DistributedSensing)
    per_cell = count_weights([3 + 4, 4, 1 + 4])
    assert controller.num_params() == 3 * per_cell

    config.homogeneous = True
    assert build_controller(BODY, config).num_params() == per_cell


def test_non_directional_and_centralized():
    controller = build_controller(BODY, ControllerConfig(kind='non_directional', signals=2))
    assert isinstance(controller, DistributedSensingNonDirectional)
    assert controller.num_params() == 3 * count_weights([3 + 8, 1 + 2])

    controller = build_controller(BODY, ControllerConfig(kind='centralized'))
    assert isinstance(controller, CentralizedSensing)
    assert controller.num_params() == count_weights([9, 3])


def test_full_stack_wrapping_order():
    config = ControllerConfig(
        function=FunctionConfig(name='hebbian', inner_layers=[3]),
        fault=FaultConfig(breakage_time=5.0, rate=0.25, pattern='random'),
        shapers=[ShaperConfig('smoothed', 2.0), ShaperConfig('step', 0.5)],
    )
    controller = build_controller(BODY, config, seed=1)
    assert isinstance(controller, StepController)
    assert isinstance(controller.inner, SmoothedController)
    assert isinstance(controller.inner.inner, BrokenDistributedSensing)
    assert controller.inner.inner.rate == 0.25

    inputs = BODY.map(lambda n: np.ones(n))
    out = controller.control(0.0, inputs)
    assert out.shape == BODY.shape
    assert out.get(1, 1) is None


def test_seeded_builds_are_reproducible():
    config = ControllerConfig(function=FunctionConfig(name='hebbian', inner_layers=[3]))
    a = build_controller(BODY, config, seed=7)
    b = build_controller(BODY, config, seed=7)
    inputs = BODY.map(lambda n: np.full(n, 0.5))
    for t in (0.0, 0.1, 0.2):
        assert a.control(t, inputs) == b.control(t, inputs)
