import numpy as np
import pytest
from PhyNetTraits.NetworkParser import read_topology
from PhyNetTraits.Shifts import *
from PhyNetTraits.test_network import NET1


################
### HELPERS ####
################

def net1_nodes():
    net = read_topology(NET1)
    return net, {node.get_number() : node for node in net.get_nodes()}

################
#### TESTS #####
################

def test_shift_labels():
    assert shift_label(5) == "shift_5"
    assert shift_label(-5) == "shift_m5"

def test_regressor_shift():
    net, nodes = net1_nodes()
    df = regressor_shift([nodes[-4], nodes[4]], net)
    assert list(df.columns) == ["shift_m4", "shift_4", "tipNames"]
    assert list(df["tipNames"]) == ["A", "B", "C", "D"]
    np.testing.assert_allclose(df["shift_m4"], [0, 0, 1, 0.9])
    np.testing.assert_allclose(df["shift_4"], [0, 0, 1, 0])

    # An edge gives the column of its child
    edge = net.get_edge(nodes[-2], nodes[-3])
    np.testing.assert_allclose(regressor_shift(edge, net)["shift_m3"],
                               [0, 1, 0, 0.1])

def test_regressor_shift_rejects_hybrids():
    net, nodes = net1_nodes()
    with pytest.raises(ShiftError):
        regressor_shift(nodes[3], net)
    with pytest.raises(ShiftError):
        ShiftNet.from_nodes(nodes[3], 1.0, net)

def test_regressor_hybrid():
    net, nodes = net1_nodes()
    df = regressor_hybrid(net)
    assert list(df.columns) == ["shift_5", "tipNames", "sum"]
    np.testing.assert_allclose(df["shift_5"], [0, 0, 0, 1])
    np.testing.assert_allclose(df["sum"], df["shift_5"])

def test_shift_net():
    net, nodes = net1_nodes()
    sh = ShiftNet.from_nodes([nodes[-4], nodes[2]], [2.0, -1.0], net)
    assert len(sh.shift) == 9
    assert sh.nodes() == [nodes[2], nodes[-4]]
    np.testing.assert_allclose(sh.values(), [-1.0, 2.0])
    assert sh.edge_numbers() == [net.in_edges(nodes[2])[0].get_number(),
                                 net.in_edges(nodes[-4])[0].get_number()]

    table = sh.shift_table()
    assert list(table.columns) == ["Edge Number", "Shift Value"]
    assert len(table) == 2

    with pytest.raises(ShiftError):
        ShiftNet.from_nodes([nodes[-4], nodes[2]], [2.0], net)
    with pytest.raises(ShiftError):
        ShiftNet(np.zeros(3), net)

def test_shift_hybrid():
    net, nodes = net1_nodes()
    sh = shift_hybrid(3.0, net)
    assert sh.nodes() == [nodes[5]]
    np.testing.assert_allclose(sh.values(), [3.0])

def test_combine_shifts():
    net, nodes = net1_nodes()
    sh1 = ShiftNet.from_edges(net.in_edges(nodes[4]), 1.0, net)
    sh2 = ShiftNet.from_nodes([nodes[4], nodes[1]], [1.0, 2.0], net)
    combined = sh1 * sh2
    assert combined.nodes() == [nodes[1], nodes[4]]
    np.testing.assert_allclose(combined.values(), [2.0, 1.0])

    with pytest.raises(ShiftError):
        sh1 * ShiftNet.from_nodes(nodes[4], 5.0, net)
    with pytest.raises(ShiftError):
        sh1 * ShiftNet.zeros(read_topology(NET1))
