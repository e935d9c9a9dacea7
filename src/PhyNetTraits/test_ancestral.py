import numpy as np
import pandas as pd
import pytest
from scipy import stats
from PhyNetTraits.NetworkParser import read_topology
from PhyNetTraits.PathMatrix import shared_path_matrix
from PhyNetTraits.PhyloRegression import phylo_network_lm_df
from PhyNetTraits.Simulation import ParamsBM
from PhyNetTraits.Ancestral import *
from PhyNetTraits.test_network import NET1


################
### HELPERS ####
################

TRIPLE = "((A:1,B:1):1,C:2);"

def star_reconstruction():
    net = read_topology("(A:1,B:1);")
    df = pd.DataFrame({"trait" : [1.0, 3.0], "tipNames" : ["A", "B"]})
    with pytest.warns(UserWarning):
        states = ancestral_state_reconstruction_df(df, net)
    return net, states

def conditional_normal(net, Y, mu, sigma2):
    """
    Mean and covariance of the internal nodes given all tips, by inverting
    the tip covariance.
    """
    V = shared_path_matrix(net)
    Vy = V.get("Tips")
    Vz = V.get("InternalNodes")
    Vyz = V.get("TipsNodes")
    Vyinv = np.linalg.inv(Vy)
    mean = mu + Vyz.T @ Vyinv @ (np.asarray(Y) - mu)
    cov = sigma2 * (Vz - Vyz.T @ Vyinv @ Vyz)
    return V.internal_node_numbers, mean, cov

################
#### TESTS #####
################

def test_two_tip_star():
    """
    With two tips at the same distance, the root is predicted by the mean of
    the tips, and its variance is that of the estimated intercept.
    """
    net, states = star_reconstruction()
    assert states.node_numbers == [-1]
    assert states.tip_numbers == [1, 2]
    assert states.traits_nodes[0] == pytest.approx(2.0)
    assert states.variances_nodes[0, 0] == pytest.approx(1.0)
    assert states.variances_nodes[0, 0] == \
           pytest.approx(states.model.vcov()[0, 0])
    assert states.model.dof_residual() == 1

    pi = states.predint()
    q = stats.t.ppf(0.975, 1)
    np.testing.assert_allclose(pi[0], [2.0 - q, 2.0 + q])
    np.testing.assert_allclose(pi[1:], [[1.0, 1.0], [3.0, 3.0]])

def test_expectations_table():
    net, states = star_reconstruction()
    table = states.expectations()
    assert list(table.columns) == ["nodeNumber", "condExpectation"]
    assert list(table["nodeNumber"]) == [-1, 1, 2]
    np.testing.assert_allclose(table["condExpectation"], [2.0, 1.0, 3.0])

    intervals = states.predint_table(0.9)
    assert list(intervals.columns) == ["nodeNumber", "Lower", "Upper"]
    assert np.all(intervals["Lower"] <= intervals["Upper"])
    assert "Node index" in str(states)

def test_known_parameters():
    net = read_topology(TRIPLE)
    Y = [1.0, 3.0, 0.0]
    states = ancestral_state_reconstruction_params(net, Y, ParamsBM(0, 1))
    numbers, mean, cov = conditional_normal(net, Y, 0.0, 1.0)

    assert states.node_numbers == list(numbers)
    assert states.model is None
    np.testing.assert_allclose(states.traits_nodes, mean, atol = 1e-12)
    np.testing.assert_allclose(states.variances_nodes, cov, atol = 1e-12)

    # the root is fixed at mu
    root = states.node_numbers.index(net.root().get_number())
    assert states.traits_nodes[root] == pytest.approx(0.0)
    assert states.variances_nodes[root, root] == pytest.approx(0.0, abs = 1e-12)

    q = stats.norm.ppf(0.975)
    se = states.stderror()
    np.testing.assert_allclose(states.predint()[:len(numbers), 1],
                               states.traits_nodes + q * se)

    with pytest.raises(ReconstructionError):
        ancestral_state_reconstruction_params(net, [1.0, 2.0],
                                              ParamsBM(0, 1))

    zero = read_topology("(A:0,B:0);")
    with pytest.raises(ReconstructionError):
        ancestral_state_reconstruction_params(zero, [1.0, 2.0],
                                              ParamsBM(0, 1))

def test_known_parameters_on_a_network():
    net = read_topology(NET1)
    Y = [0.5, -1.0, 2.0, 1.5]
    states = ancestral_state_reconstruction_params(net, Y, ParamsBM(1, 2))
    numbers, mean, cov = conditional_normal(net, Y, 1.0, 2.0)
    np.testing.assert_allclose(states.traits_nodes, mean, atol = 1e-10)
    np.testing.assert_allclose(states.variances_nodes, cov, atol = 1e-10)
    assert np.all(np.diag(states.variances_nodes) > -1e-12)

def test_missing_tips_are_reconstructed():
    net = read_topology(NET1)
    df = pd.DataFrame({"trait" : [1.0, 2.0, np.nan, 4.0],
                       "tipNames" : ["A", "B", "C", "D"]})
    with pytest.warns(UserWarning):
        states = ancestral_state_reconstruction_df(df, net)

    V = shared_path_matrix(net)
    assert states.node_numbers == list(V.internal_node_numbers) + [4]
    assert states.tip_numbers == [1, 2, 5]
    assert len(states.traits_nodes) == 6
    assert states.variances_nodes.shape == (6, 6)

    pi = states.predint()
    assert pi.shape == (9, 2)
    np.testing.assert_allclose(pi[6:], [[1.0, 1.0], [2.0, 2.0], [4.0, 4.0]])
    # C is missing, so its interval has a positive width
    assert pi[5, 1] > pi[5, 0]

def test_reconstruction_errors():
    net = read_topology(TRIPLE)
    df = pd.DataFrame({"trait" : [1.0, 3.0, 0.0], "x" : [0.5, 1.0, -1.0],
                       "tipNames" : ["A", "B", "C"]})
    with pytest.raises(ReconstructionError):
        ancestral_state_reconstruction_df(df, net)

    fit = phylo_network_lm_df(df, "trait", "x", net)
    with pytest.raises(ReconstructionError):
        ancestral_state_reconstruction(fit)
    with pytest.raises(ReconstructionError):
        ancestral_state_reconstruction(fit, np.ones((2, 1)))
    with pytest.raises(ReconstructionError):
        ancestral_state_reconstruction(fit, np.ones((3, 2)))

    with pytest.warns(UserWarning):
        states = ancestral_state_reconstruction(fit, np.ones((2, 2)))
    assert len(states.traits_nodes) == 2
