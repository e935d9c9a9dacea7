import math
import numpy as np
import pytest
from PhyNetTraits.NetworkParser import read_topology
from PhyNetTraits.Shifts import ShiftNet
from PhyNetTraits.Simulation import *
from PhyNetTraits.test_network import NET1


################
#### TESTS #####
################

def test_params():
    params = ParamsBM(10, 1)
    assert params.mu == 10 and params.sigma2 == 1
    assert not params.random_root
    assert math.isnan(params.var_root)
    assert not params.any_shift()
    assert "Sigma2: 1" in str(params)

    with pytest.raises(SimulationError):
        ParamsBM(0, 0)
    with pytest.raises(SimulationError):
        ParamsBM(0, 1, random_root = True)

def test_expectations():
    net = read_topology(NET1)
    sim = simulate(net, ParamsBM(10, 1), np.random.default_rng(1))
    np.testing.assert_allclose(sim.get("Tips", "Exp"), np.full(4, 10.0))
    np.testing.assert_allclose(sim.get("InternalNodes", "Exp"),
                               np.full(5, 10.0))
    assert sim.get("Tips").shape == (4,)
    assert sim.tip_labels() == ["A", "B", "C", "D"]
    assert sim.model == "BM"

def test_expectations_with_shift():
    net = read_topology(NET1)
    z = net.has_node_numbered(-4)
    shift = ShiftNet.from_nodes(z, 2.0, net)
    params = ParamsBM(10, 1, shift = shift)
    assert params.any_shift()
    assert "There are 1 shifts" in params.params_table()

    sim = simulate(net, params, np.random.default_rng(1))
    # D inherits 0.9 of its mean through the shifted edge
    np.testing.assert_allclose(sim.get("Tips", "Exp"), [10, 10, 12, 11.8])

def test_seeded_simulation_is_reproducible():
    net = read_topology(NET1)
    params = ParamsBM(10, 1)
    sim1 = simulate(net, params, np.random.default_rng(2025))
    sim2 = simulate(net, params, np.random.default_rng(2025))
    np.testing.assert_array_equal(sim1.get("All"), sim2.get("All"))
    # fixed root
    assert sim1.get("All")[net.preorder().index(net.root())] == 10

def test_random_root():
    net = read_topology(NET1)
    params = ParamsBM(10, 1, random_root = True, var_root = 4.0)
    values = [simulate(net, params, np.random.default_rng(seed))
              .get("All")[0] for seed in range(5)]
    assert len(set(values)) == 5

def test_simulated_variance():
    """
    The empirical covariance of many simulations is close to the shared
    path matrix.
    """
    net = read_topology("((A:1,B:1):1,C:2);")
    rng = np.random.default_rng(7)
    params = ParamsBM(0, 2.0)
    draws = np.array([simulate(net, params, rng).get("Tips")
                      for _ in range(4000)])
    np.testing.assert_allclose(np.cov(draws.T),
                               2.0 * np.array([[2, 1, 0],
                                               [1, 2, 0],
                                               [0, 0, 2]]),
                               atol = 0.35)

def test_only_bm():
    with pytest.raises(SimulationError):
        simulate(read_topology(NET1), ParamsProcess())
    sim = simulate(read_topology(NET1), ParamsBM(0, 1))
    with pytest.raises(SimulationError):
        sim.get("Tips", "Mean")
