import numpy as np
import pytest
from PhyNetTraits.Network import *
from PhyNetTraits.NetworkParser import *


#######################
#### TEST NETWORKS ####
#######################

NET1 = "(A:2.5,((B:1,#H1:0.5::0.1):1,(C:1,(D:0.5)#H1:0.5::0.9):1):0.5);"

def numbers(nodes : list[Node]) -> list[int]:
    return [node.get_number() for node in nodes]

def build_three_parent_network() -> Network:
    """
    A root with three children that all lead into the same node.
    """
    root = Node(number = -1)
    a = Node(number = -2)
    b = Node(number = -3)
    c = Node(number = -4)
    h = Node(name = "#H1", is_reticulation = True, number = 1)
    x = Node(name = "X", number = 2)
    net = Network()
    net.add_nodes([root, a, b, c, h, x])
    net.add_edges([Edge(root, a, 1), Edge(root, b, 1), Edge(root, c, 1),
                   Edge(a, h, 1, 0.5, True, True),
                   Edge(b, h, 1, 0.25, True, False),
                   Edge(c, h, 1, 0.25, True, False),
                   Edge(h, x, 1)])
    return net

################
#### TESTS #####
################

def test_net1_numbering():
    """
    Named nodes are numbered in order of appearance, unnamed internal nodes
    with negative numbers in order of their left parenthesis.
    """
    net = read_topology(NET1)
    assert net.tip_labels() == ["A", "B", "C", "D"]
    assert numbers(net.get_leaves()) == [1, 2, 4, 5]
    assert net.root().get_number() == -1
    assert net.has_node_named("#H1").get_number() == 3
    assert sorted(numbers(net.get_nodes())) == [-4, -3, -2, -1, 1, 2, 3, 4, 5]
    assert numbers(net.preorder()) == [-1, 1, -2, -3, 2, -4, 4, 3, 5]

def test_net1_hybrid_edges():
    net = read_topology(NET1)
    hybrid = net.has_node_named("#H1")
    assert net.hybrid_nodes() == [hybrid]
    assert hybrid.attribute_value("eventType") == "Hybridization"
    assert hybrid.attribute_value("index") == 1

    major, minor = net.in_edges(hybrid)
    assert major.is_major() and not minor.is_major()
    assert major.is_hybrid() and minor.is_hybrid()
    assert major.get_gamma() == pytest.approx(0.9)
    assert minor.get_gamma() == pytest.approx(0.1)
    assert major.src.get_number() == -4
    assert minor.src.get_number() == -3
    assert net.get_parents(hybrid) == [major.src, minor.src]

    d = net.has_node_named("D")
    assert net.get_edge(hybrid, d).get_length() == 0.5
    assert net.edge_between(d, hybrid) is net.get_edge(hybrid, d)

def test_gammas_round_trip():
    net = read_topology(NET1)
    gammas = net.get_gammas()
    assert list(gammas) == pytest.approx([1, 1, 1, 1, 1, 1, 1, 0.9, 1])

    net.set_gammas(np.full(len(gammas), 0.6))
    hybrid = net.has_node_named("#H1")
    assert net.major_edge(hybrid).get_gamma() == pytest.approx(0.6)
    assert net.minor_edge(hybrid).get_gamma() == pytest.approx(0.4)

    net.set_gammas(gammas)
    assert list(net.get_gammas()) == pytest.approx(list(gammas))

def test_newick_round_trip():
    net = read_topology(NET1)
    text = net.newick()
    assert text.endswith(";")
    again = read_topology(text)
    assert again.newick() == text
    assert again.tip_labels() == net.tip_labels()
    assert numbers(again.preorder()) == numbers(net.preorder())

def test_default_gammas():
    """
    Missing gammas default to 0.9 on the occurrence that carries the
    subtree, and missing branch lengths default to 1.
    """
    with pytest.warns(UserWarning):
        net = read_topology("((A,(B)#H1),(#H1,C));")
    hybrid = net.has_node_named("#H1")
    major = net.major_edge(hybrid)
    assert major.get_gamma() == pytest.approx(0.9)
    assert net.minor_edge(hybrid).get_gamma() == pytest.approx(0.1)
    assert net.get_children(major.src)[0].get_name() == "A"
    for edge in net.get_edges():
        assert edge.get_length() == 1.0

def test_single_gamma_is_completed():
    with pytest.warns(UserWarning):
        net = read_topology("((A:1,(B:1)#H1:1::0.7):1,(#H1:1,C:1):1);")
    hybrid = net.has_node_named("#H1")
    assert net.major_edge(hybrid).get_gamma() == pytest.approx(0.7)
    assert net.minor_edge(hybrid).get_gamma() == pytest.approx(0.3)

def test_minor_defining_occurrence():
    """
    The major edge follows the gamma values, not the occurrence.
    """
    net = read_topology("((A:1,(B:1)#H1:1::0.2):1,(#H1:1::0.8,C:1):1);")
    hybrid = net.has_node_named("#H1")
    major = net.major_edge(hybrid)
    assert major.get_gamma() == pytest.approx(0.8)
    assert net.get_children(major.src)[-1].get_name() == "C"

def test_conflicting_gammas():
    with pytest.raises(NetworkParserError):
        read_topology("((A:1,(B:1)#H1:1::0.7):1,(#H1:1::0.7,C:1):1);")

def test_malformed_strings():
    with pytest.raises(NetworkParserError):
        read_topology("(A:1,B:1)")
    with pytest.raises(NetworkParserError):
        read_topology("A;")
    with pytest.raises(NetworkParserError):
        read_topology("(A:1,A:1);")
    with pytest.raises(NetworkParserError):
        read_topology("(A:1,(B:1,C:1):-1);")

def test_hybrid_with_one_edge():
    with pytest.raises(NetworkParserError):
        read_topology("(A:1,(B:1)#H1:1);")

def test_leaf_hybrid_gets_a_child():
    with pytest.warns(UserWarning):
        net = read_topology("((A:1,#H1:1::0.3):1,(B:1,#H1:1::0.7):1);")
    hybrid = net.has_node_named("#H1")
    children = net.get_children(hybrid)
    assert len(children) == 1
    assert children[0].get_name() == "H1"
    assert net.tip_labels() == ["A", "B", "H1"]
    assert net.get_edge(hybrid, children[0]).get_length() == 0.0

def test_degree_two_nodes_are_merged():
    net = read_topology("((A:1):1,B:1);")
    a = net.has_node_named("A")
    assert net.get_parents(a) == [net.root()]
    assert net.in_edges(a)[0].get_length() == 2.0
    assert len(net.get_nodes()) == 3

def test_polytomy_is_resolved():
    with pytest.warns(UserWarning):
        net = read_topology("(A:1,B:1,C:1,D:1);")
    root = net.root()
    assert net.out_degree(root) == 3
    assert net.tip_labels() == ["A", "B", "C", "D"]
    resolved = net.get_children(root)[-1]
    assert [child.get_name() for child in net.get_children(resolved)] == \
           ["C", "D"]
    assert net.get_edge(root, resolved).get_length() == 0.0

def test_tree_edge_gamma_is_ignored():
    with pytest.warns(UserWarning):
        net = read_topology("(A:1::0.4,B:1);")
    assert net.in_edges(net.has_node_named("A"))[0].get_gamma() == 1.0

def test_network_errors():
    net = build_three_parent_network()
    assert net.is_rooted()
    assert net.in_degree(net.has_node_named("#H1")) == 3

    two_roots = Network()
    a, b, c = Node("A", number = 1), Node("B", number = 2), Node(number = -1)
    two_roots.add_nodes([a, b, c])
    two_roots.add_edges(Edge(c, a, 1))
    with pytest.raises(NetworkError):
        two_roots.root()
    with pytest.raises(NetworkError):
        two_roots.preorder()
    with pytest.raises(NetworkError):
        two_roots.add_edges(Edge(c, Node("Z"), 1))
    with pytest.raises(EdgeError):
        Edge(a, b).set_length(-1)

def test_nexus_file(tmp_path):
    nexus = tmp_path / "nets.nex"
    nexus.write_text("#NEXUS\nbegin trees;\n"
                     f"tree net1 = {NET1}\n"
                     "tree net2 = ((A:1,B:1):1,C:2);\n"
                     "end;\n")
    parser = NetworkParser(str(nexus))
    nets = parser.get_all_networks()
    assert len(nets) == 2
    assert parser.get_network(0).tip_labels() == ["A", "B", "C", "D"]
    assert parser.name_of_network(nets[1]) == "net2"
    assert len(nets[1].hybrid_nodes()) == 0
