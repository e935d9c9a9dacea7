#! /usr/bin/env python
# -*- coding: utf-8 -*-

##############################################################################
##  -- PhyNetTraits --
##  Trait Evolution on Phylogenetic Networks
##
##  Copyright 2025 Mark Kessler, Luay Nakhleh.
##  All rights reserved.
##
##  See "LICENSE.txt" for terms and conditions of usage.
##
##  If you use this work or any portion thereof in published work,
##  please cite it as:
##
##     Mark Kessler, Luay Nakhleh. 2025.
##
##############################################################################

"""
Last Edit : 10/16/26
First Included in Version : 1.0.0

Docs   - [x]
Tests  - [x]
Design - [ ]
"""

from __future__ import annotations
from collections import defaultdict
from typing import Any
import warnings
import numpy as np
import networkx as nx


##########################
#### HELPER FUNCTIONS ####
##########################

def _format_float(value : float) -> str:
    """
    Write a branch length or inheritance probability.

    Args:
        value (float): a real number

    Returns:
        str: the shortest round-tripping representation of 'value'
    """
    return repr(float(value))

def newick_help(net : Network, node : Node,
                edge : Edge | None, processed_retics : set[Node]) -> str:
    """
    Helper function to "newick". Generates the extended newick string
    (sans ending semicolon) of the subnetwork defined by 'node', reached
    through 'edge'.

    The subtree below a reticulation is written once, on its major edge. The
    minor edge is written as a leaf occurrence of the reticulation name.

    Args:
        net (Network): A Network
        node (Node): a Node in 'net'
        edge (Edge | None): the edge that leads into 'node' (None for the root)
        processed_retics (set[Node]): reticulations whose subtree has
                                      already been written

    Returns:
        str: the newick string for the subnetwork rooted at 'node'
    """
    if node.is_reticulation():
        name = node.get_name()
        if name is None or name[0] != "#":
            name = "#H" + str(node.get_number())
    else:
        name = node.label()

    write_subtree = not (node.is_reticulation() and
                         (node in processed_retics or
                          (edge is not None and not edge.is_major())))

    if net.is_leaf(node) or not write_subtree:
        substr = name
    else:
        if node.is_reticulation():
            processed_retics.add(node)
        children = [newick_help(net, child, net.get_edge(node, child),
                                processed_retics)
                    for child in net.get_children(node)]
        substr = "(" + ",".join(children) + ")" + name

    if edge is not None:
        if edge.get_length() is not None:
            substr += ":" + _format_float(edge.get_length())
        if edge.is_hybrid():
            if edge.get_length() is None:
                substr += ":"
            substr += "::" + _format_float(edge.get_gamma())
    return substr

#############################
#### EXCEPTION SPECIFICS ####
#############################

class NetworkError(Exception):
    """
    This exception is raised when a network is malformed,
    or if a network operation fails.
    """
    def __init__(self, message = "Error with a Network Instance"):
        self.message = message
        super().__init__(self.message)

class NodeError(Exception):
    """
    This exception is raised when a Node operation fails.
    """
    def __init__(self, message = "Error in Node Class"):
        self.message = message
        super().__init__(self.message)

class EdgeError(Exception):
    """
    This exception is raised when an Edge operation fails.
    """
    def __init__(self, message = "Error in Edge Class"):
        self.message = message
        super().__init__(self.message)

##########################
#### NODES AND EDGES #####
##########################

class Node:
    """
    Node class that provides support for managing network constructs like
    reticulation nodes, as well as the integer numbering that trait matrices
    use to label their rows and columns.
    """

    def __init__(self,
                 name : str = None,
                 is_reticulation : bool = False,
                 attr : dict = None,
                 number : int = None) -> None:
        """
        Initialize a node with a name, attribute mapping, a hybrid flag, and
        a node number.

        Args:
            name (str, optional): A Node name. Defaults to None. Leaves should
                                  be named, internal tree nodes need not be.
            is_reticulation (bool, optional): Flag that marks a node as a
                                              reticulation node if set to True.
                                              Defaults to False.
            attr (dict, optional): Fill a mapping with any other user defined
                                   values. Defaults to an empty dictionary.
            number (int, optional): Integer identifier of this node. By
                                    convention, named nodes are positive and
                                    unnamed internal nodes are negative.
                                    Defaults to None.
        """
        self.attributes : dict = attr if attr is not None else {}
        self.is_retic : bool = is_reticulation
        self.name : str = name
        self.number : int = number

    def __repr__(self) -> str:
        return f"Node({self.name!r}, number={self.number})"

    def get_name(self) -> str:
        """
        Returns the name of the node

        Returns:
            str: Node label.
        """
        return self.name

    def label(self) -> str:
        """
        The label of this node, or an empty string if it has no name.

        Returns:
            str: Node label.
        """
        return self.name if self.name is not None else ""

    def get_number(self) -> int:
        """
        Returns:
            int: the node number.
        """
        return self.number

    def set_number(self, number : int) -> None:
        """
        Args:
            number (int): the new node number.
        """
        self.number = number

    def is_reticulation(self) -> bool:
        """
        Retrieves whether a node is a reticulation Node (or not)

        Returns:
            bool: True, if this node is a reticulation. False otherwise.
        """
        return self.is_retic

    def add_attribute(self, key : Any, value : Any) -> None:
        """
        Put a key and value pair into the node attribute dictionary.
        If the key is already present, it will overwrite the old value.

        Args:
            key (Any): Attribute key.
            value (Any): Attribute value for the key.
        """
        self.attributes[key] = value

    def attribute_value(self, key : Any) -> object:
        """
        If key is a key in the attributes mapping, then
        its value will be returned.

        Otherwise, returns None.

        Args:
           key (Any): A lookup key.

        Returns:
            object: The value of key, if key is present.
        """
        return self.attributes.get(key)

class NodeSet:
    """
    Data structure that is in charge of managing the nodes that are in a given
    Network. Insertion order is preserved, since the order of the leaves is
    the order of the rows of tip data.
    """

    def __init__(self) -> None:
        """
        Initialize an empty set of network nodes
        """
        self.nodes : dict[Node, None] = {}
        self.in_degree : dict[Node, int] = defaultdict(int)
        self.out_degree : dict[Node, int] = defaultdict(int)
        self.in_map : dict[Node, list[Edge]] = defaultdict(list)
        self.out_map : dict[Node, list[Edge]] = defaultdict(list)
        self.node_names : dict[str, Node] = {}

    def add(self, node : Node) -> None:
        """
        Add a node to the network node set.

        Args:
            node (Node): A new node to put in the network.
        """
        if node not in self.nodes:
            self.nodes[node] = None
            if node.get_name() is not None:
                self.node_names[node.get_name()] = node

    def ready(self, edge : Edge) -> bool:
        """
        Check if an edge is allowed to be added to the network (both nodes must
        be in the node set before an edge can be added)

        Args:
            edge (Edge): A potential new network edge.

        Returns:
            bool: True if edge can be safely added, False otherwise.
        """
        return edge.src in self.nodes and edge.dest in self.nodes

    def process(self, edge : Edge, removal : bool = False) -> None:
        """
        Keep track of network data (in/out degrees, in/out edge maps) upon
        the addition or removal of an edge for a network.

        Args:
            edge (Edge): The edge that is being added or removed
            removal (bool, optional): False if edge is being added, True if
                                      edge is being removed. Defaults to False.
        """
        if self.ready(edge):
            if not removal:
                self.out_degree[edge.src] += 1
                self.in_degree[edge.dest] += 1
                self.out_map[edge.src].append(edge)
                self.in_map[edge.dest].append(edge)
            else:
                self.out_degree[edge.src] -= 1
                self.in_degree[edge.dest] -= 1
                self.out_map[edge.src].remove(edge)
                self.in_map[edge.dest].remove(edge)

    def get_set(self) -> list[Node]:
        """
        Grab the nodes, in insertion order.

        Returns:
            list[Node]: V, the node set of a network.
        """
        return list(self.nodes)

    def remove(self, node : Node) -> None:
        """
        Remove a node from V, and update necessary mappings.

        Args:
            node (Node): Node to remove from the network.
        """
        if node in self.nodes:
            del self.nodes[node]
            del self.in_degree[node]
            del self.out_degree[node]
            del self.out_map[node]
            del self.in_map[node]
            if node.get_name() in self.node_names:
                del self.node_names[node.get_name()]

class Edge:
    """
    Class that encodes node to node relationships, as well as the branch
    length and inheritance probability that trait models need.
    """

    def __init__(self,
                 source : Node,
                 destination : Node,
                 length : float = None,
                 gamma : float = 1.0,
                 is_hybrid : bool = False,
                 is_major : bool = True) -> None:
        """
        An edge has a source (parent) and a destination (child). Edges in a
        phylogenetic context are always directed.

        Args:
            source (Node): Parent node.
            destination (Node): Child node.
            length (float, optional): Branch length. Defaults to None.
            gamma (float, optional): Inheritance probability. Tree edges carry
                                     a probability of 1. Defaults to 1.0.
            is_hybrid (bool, optional): True if this edge leads into a
                                        reticulation. Defaults to False.
            is_major (bool, optional): True if this is the major edge into a
                                       reticulation (or any tree edge).
                                       Defaults to True.
        """
        self.src : Node = source
        self.dest : Node = destination
        self.length : float = length
        self.gamma : float = gamma
        self.hybrid : bool = is_hybrid
        self.major : bool = is_major
        self.number : int = None

    def __repr__(self) -> str:
        return f"Edge({self.src.get_number()} -> {self.dest.get_number()})"

    def set_length(self, length : float) -> None:
        """
        Sets the branch length of this edge.

        Args:
            length (float): a branch length value (>=0).
        Raises:
            EdgeError: if the length is negative.
        """
        if length is not None and length < 0:
            raise EdgeError(f"Branch length must be non-negative, got \
                             {length}")
        self.length = length

    def get_length(self) -> float:
        """
        Gets the branch length of this edge.

        Returns:
            float: branch length.
        """
        return self.length

    def set_gamma(self, gamma : float) -> None:
        """
        Set the inheritance probability of this edge.

        Args:
            gamma (float): A probability (between 0 and 1).
        """
        self.gamma = gamma

    def get_gamma(self) -> float:
        """
        Gets the inheritance probability for this edge.

        Returns:
            float: A probability (between 0 and 1).
        """
        return self.gamma

    def is_hybrid(self) -> bool:
        """
        Returns:
            bool: True if this edge leads into a reticulation node.
        """
        return self.hybrid

    def is_major(self) -> bool:
        """
        Returns:
            bool: True if this edge is a tree edge or the major hybrid edge.
        """
        return self.major

    def set_is_major(self, is_major : bool) -> None:
        """
        Args:
            is_major (bool): the new major flag.
        """
        self.major = is_major

    def get_number(self) -> int:
        """
        Returns:
            int: the edge number.
        """
        return self.number

    def set_number(self, number : int) -> None:
        """
        Args:
            number (int): the new edge number.
        """
        self.number = number

class EdgeSet:
    """
    Data structure that serves the purpose of keeping track of edges that belong
    to a network. We call this set E.
    """

    def __init__(self) -> None:
        """
        Initialize the set of edges, E, for a network.
        """

        # Map (src, dest) tuples to a list of edges. this list will have 1
        # element for most, but in the case of bubbles will contain 2.
        self.hash : dict[tuple[Node], list[Edge]] = defaultdict(list)

        # Edge set, E, in insertion order
        self.edges : dict[Edge, None] = {}

    def add(self, edge : Edge) -> None:
        """
        Add an edge to E.

        Args:
            edge (Edge): A new edge to add to E.
        """
        if edge not in self.edges:
            self.hash[(edge.src, edge.dest)].append(edge)
            self.edges[edge] = None

    def remove(self, edge : Edge) -> None:
        """
        Remove an edge from E.

        Args:
            edge (Edge): An edge that is currently in E.
        """
        if edge in self.edges:
            self.hash[(edge.src, edge.dest)].remove(edge)
            del self.edges[edge]

    def get(self, source : Node, destination : Node) -> Edge:
        """
        Given a source node and destination node, get the edge in E that
        connects them.

        Args:
            source (Node): Parent node.
            destination (Node): Child node.

        Raises:
            EdgeError: If no edges in E satisfy the given data.

        Returns:
            Edge: The edge in E that matches the given data.
        """
        valid_edges : list[Edge] = self.hash.get((source, destination), [])

        if len(valid_edges) == 0:
            raise EdgeError("No edges found with the given source and \
                              destination")
        return valid_edges[0]

    def get_set(self) -> list[Edge]:
        """
        Get the set, E, for a network.

        Returns:
            list[Edge]: Edge set, E, in insertion order.
        """
        return list(self.edges)


#########################
#### NETWORK CLASSES ####
#########################

class Network():
    """
    This class represents a rooted phylogenetic network: a directed acyclic
    graph whose edges carry branch lengths and inheritance probabilities,
    and whose reticulation nodes have exactly two parents.

    Formulation:
    Network = (E, V), where E is the set of all edges [a,b], where a is
    b's parent, and a and b are elements of V, the set of all nodes.

    The trait machinery only reads from a Network. It asks for the nodes in
    topological order, parents and children of a node, the edge between two
    nodes, and its length, gamma, hybrid and major flags.
    """

    def __init__(self, edges : EdgeSet = None,
                 nodes : NodeSet = None) -> None:
        """
        Initialize a Network object.
        You may initialize with any combination of edges/nodes,
        or provide none at all.

        Args:
            edges (EdgeSet, optional): A set of Edges.
                                       Defaults to an empty EdgeSet.
            nodes (NodeSet, optional): A set of Nodes.
                                       Defaults to an empty NodeSet.
        """
        self.edges : EdgeSet = edges if edges is not None else EdgeSet()
        self.nodes : NodeSet = nodes if nodes is not None else NodeSet()

        # Cached topological order, reset by every mutation
        self._preorder : list[Node] = None

        for edge in self.edges.get_set():
            self.nodes.add(edge.src)
            self.nodes.add(edge.dest)
            self.nodes.process(edge)

    ###########################
    #### MUTATION METHODS #####
    ###########################

    def add_nodes(self, nodes : Node | list[Node]) -> None:
        """
        If nodes is a list of nodes, then add each node point to the list
        If nodes is simply a node, then just add the one node to the nodes list.

        Args:
            nodes (Node | list[Node]): any amount of nodes, either a singleton,
                                       or a list
        """
        if type(nodes) == list:
            for node in nodes:
                self.nodes.add(node)
        else:
            self.nodes.add(nodes)
        self._preorder = None

    def add_edges(self, edges : Edge | list[Edge]) -> None:
        """
        If edges is a list of Edges, then add each Edge to the list of edges.
        If edges is a singleton Edge then just add to the edge array.

        Note: Each edge that you attempt to add must be between two nodes that
        exist in the network. Otherwise, an error will be thrown.

        Args:
            edges (Edge | list[Edge]): a single edge, or multiple.

        Raises:
            NetworkError: if input edge/edges are malformed in any way
        """
        if type(edges) != list:
            edges = [edges]

        for edge in edges:
            if self.nodes.ready(edge):
                self.edges.add(edge)
                self.nodes.process(edge)
            else:
                raise NetworkError("Tried to add an edge between two nodes,\
                                    at least one of which does not belong\
                                    to this network.")
        self._preorder = None

    def remove_node(self, node : Node) -> None:
        """
        Removes node from the list of nodes.
        Also prunes all edges from the graph that are connected to the node.

        Has no effect if node is not in this network.

        Args:
            node (Node): a Node obj
        """
        if node in self.nodes.nodes:
            for edge in list(self.nodes.in_map[node]):
                self.remove_edge(edge)
            for edge in list(self.nodes.out_map[node]):
                self.remove_edge(edge)
            self.nodes.remove(node)
        self._preorder = None

    def remove_edge(self, edge : Edge) -> None:
        """
        Removes edge from the list of edges. Does not delete nodes with no edges
        Has no effect if 'edge' is not in the graph.

        Args:
            edge (Edge): an edge to remove from the graph
        """
        if edge in self.edges.edges:
            self.edges.remove(edge)
            self.nodes.process(edge, removal = True)
        self._preorder = None

    ########################
    #### ACCESS METHODS ####
    ########################

    def get_nodes(self) -> list[Node]:
        """
        Get all nodes in V.

        Returns:
            list[Node]: the set V, in list form (insertion order).
        """
        return self.nodes.get_set()

    def get_edges(self) -> list[Edge]:
        """
        Get the set E (in list form).

        Returns:
            list[Edge]: The list of all edges in the graph
        """
        return self.edges.get_set()

    def get_edge(self, src : Node, dest : Node) -> Edge:
        """
        Gets the edge in the graph with the given source and destination.

        Args:
            src (Node): parent node
            dest (Node): child node

        Returns:
            Edge: the edge from src to dest.
        """
        return self.edges.get(src, dest)

    def edge_between(self, node_a : Node, node_b : Node) -> Edge:
        """
        Gets the edge that connects two nodes, in either direction.

        Args:
            node_a (Node): a node in V
            node_b (Node): a node in V, adjacent to 'node_a'

        Raises:
            EdgeError: if the nodes are not adjacent.
        Returns:
            Edge: the connecting edge.
        """
        if (node_a, node_b) in self.edges.hash and \
           len(self.edges.hash[(node_a, node_b)]) > 0:
            return self.edges.get(node_a, node_b)
        return self.edges.get(node_b, node_a)

    def in_degree(self, node: Node) -> int:
        """
        Get the in-degree of a node

        Args:
            node (Node): A node in V

        Returns:
            int: the in degree count
        """
        if node in self.nodes.nodes:
            return self.nodes.in_degree[node]
        else:
            warnings.warn("Attempting to get the in-degree of a node that is \
                not in the graph-- returning 0")
            return 0

    def out_degree(self, node: Node) -> int:
        """
        Get the out-degree (number of edges where the given node is a parent)
        of a node in the graph.

        Args:
            node (Node): a node in V

        Returns:
            int: the out-degree count
        """
        if node in self.nodes.nodes:
            return self.nodes.out_degree[node]
        else:
            warnings.warn("Attempting to get the out-degree of a node that is\
                not in the graph-- returning 0")
            return 0

    def in_edges(self, node: Node) -> list[Edge]:
        """
        Get the in-edges of a node in V, major edge first.

        Args:
            node (Node): a node in V

        Returns:
            list[Edge]: the list of in-edges
        """
        if node in self.nodes.nodes:
            return sorted(self.nodes.in_map[node],
                          key = lambda e: not e.is_major())
        else:
            warnings.warn("Attempting to get the in-edges of a node that is\
                not in the graph-- returning an empty list")
            return []

    def out_edges(self, node: Node) -> list[Edge]:
        """
        Get the out-edges of a node in V.

        Args:
            node (Node): a node in V

        Returns:
            list[Edge]: the list of out-edges
        """
        if node in self.nodes.nodes:
            return list(self.nodes.out_map[node])
        else:
            warnings.warn("Attempting to get the out-edges of a node that is\
                not in the graph-- returning an empty list")
            return []

    def get_parents(self, node : Node) -> list[Node]:
        """
        Returns a list of the parents of a node, the parent through the
        major edge first.

        Args:
            node (Node): any node in V.
        Raises:
            NetworkError: if the node is not in the graph.
        """
        if node in self.nodes.nodes:
            return [edge.src for edge in self.in_edges(node)]
        else:
            raise NetworkError("Attempted to calculate parents of a node that \
                is not in the graph.")

    def get_children(self, node: Node) -> list[Node]:
        """
        Returns a list of the children of a node.

        Args:
            node (Node): any node in V.
        Raises:
            NetworkError: if the node is not in the graph.
        """
        if node in self.nodes.nodes:
            return [edge.dest for edge in self.nodes.out_map[node]]
        else:
            raise NetworkError("Attempted to calculate children of a node that \
                is not in the graph.")

    def roots(self) -> list[Node]:
        """
        Return every node with in-degree 0.

        Returns:
            list[Node]: the root(s) of this graph.
        """
        return [node for node in self.get_nodes()
                if self.nodes.in_degree[node] == 0]

    def root(self) -> Node:
        """
        Return the root of the network.

        Raises:
            NetworkError: if there is not exactly one root.
        Returns:
            Node: the root.
        """
        roots = self.roots()
        if len(roots) != 1:
            raise NetworkError(f"Network must have exactly one root, found \
                                {len(roots)}")
        return roots[0]

    def is_rooted(self) -> bool:
        """
        A network is rooted if it has a unique root and no directed cycle.

        Returns:
            bool: True if rooted.
        """
        return len(self.roots()) == 1 and self.is_acyclic()

    def get_leaves(self) -> list[Node]:
        """
        Returns the set X (a subset of V), the set of all leaves (nodes with
        out-degree 0 that are reachable from a parent), in insertion order.
        This is the order of the tips in every trait matrix.

        Returns:
            list[Node]: the elements of X, in list format.
        """
        return [node for node in self.get_nodes()
                if self.nodes.out_degree[node] == 0
                and self.nodes.in_degree[node] != 0]

    def is_leaf(self, node : Node) -> bool:
        """
        Args:
            node (Node): a node in V
        Returns:
            bool: True if 'node' has no children.
        """
        return self.nodes.out_degree[node] == 0

    def hybrid_nodes(self) -> list[Node]:
        """
        Returns:
            list[Node]: the reticulation nodes, in topological order.
        """
        return [node for node in self.preorder() if node.is_reticulation()]

    def tip_labels(self) -> list[str]:
        """
        Returns:
            list[str]: leaf names, in the order of get_leaves().
        """
        return [leaf.label() for leaf in self.get_leaves()]

    def has_node_named(self, name : str) -> Node:
        """
        Check whether the graph has a node with a certain name.
        Strings must be exactly equal (same white space, capitalization, etc.)

        Args:
            name (str): the name to search for

        Returns:
            Node: the node with the given name, None if there is none.
        """
        return self.nodes.node_names.get(name)

    def has_node_numbered(self, number : int) -> Node:
        """
        Args:
            number (int): a node number

        Returns:
            Node: the node with that number, None if there is none.
        """
        for node in self.get_nodes():
            if node.get_number() == number:
                return node
        return None

    ##############################
    #### TOPOLOGICAL ORDERING ####
    ##############################

    def preorder(self) -> list[Node]:
        """
        List the nodes in a topological order: every node appears after all of
        its parents. The order is a depth first search from the root that
        visits children in insertion order, and enters a reticulation only
        once both of its parents have been visited.

        The result is cached until the network is mutated.

        Raises:
            NetworkError: if the network is not rooted.
        Returns:
            list[Node]: nodes in topological order.
        """
        if self._preorder is not None:
            return self._preorder

        if not self.is_rooted():
            raise NetworkError("Network must be rooted (one root, no cycles) \
                                to be put in topological order")

        order : list[Node] = []
        visited : set[Node] = set()
        stack : list[Node] = [self.root()]

        while len(stack) != 0:
            cur = stack.pop()
            if cur in visited:
                continue
            visited.add(cur)
            order.append(cur)

            # Reversed, so the first child is popped first
            for child in reversed(self.get_children(cur)):
                if all(par in visited for par in self.get_parents(child)):
                    stack.append(child)

        self._preorder = order
        return order

    def is_acyclic(self) -> bool:
        """
        Checks if this graph has no directed cycle.

        Returns:
            bool: True if acyclic, False if cyclic.
        """
        return nx.is_directed_acyclic_graph(self.to_networkx())

    def to_networkx(self) -> nx.MultiDiGraph:
        """
        Returns:
            nx.MultiDiGraph: the same graph, with Node objects as vertices.
        """
        nx_network = nx.MultiDiGraph()
        nx_network.add_nodes_from(self.get_nodes())
        nx_network.add_edges_from([(edge.src, edge.dest)
                                   for edge in self.get_edges()])
        return nx_network

    ##############################
    #### INHERITANCE WEIGHTS #####
    ##############################

    def major_edge(self, node : Node) -> Edge:
        """
        Args:
            node (Node): a reticulation node
        Returns:
            Edge: the major in-edge of 'node'.
        """
        return self.in_edges(node)[0]

    def minor_edge(self, node : Node) -> Edge:
        """
        Args:
            node (Node): a reticulation node
        Returns:
            Edge: the minor in-edge of 'node'.
        """
        return self.in_edges(node)[1]

    def get_gammas(self) -> np.ndarray:
        """
        Major inheritance probability of every node, in topological order.
        Tree nodes (and the root) have a value of 1.

        Returns:
            np.ndarray: gamma vector, one entry per node of preorder().
        """
        gammas = np.ones(len(self.preorder()))
        for i, node in enumerate(self.preorder()):
            if node.is_reticulation() and self.in_degree(node) == 2:
                gammas[i] = self.major_edge(node).get_gamma()
        return gammas

    def set_gammas(self, gammas : np.ndarray) -> None:
        """
        Inverse of get_gammas. For each reticulation, the major edge gets the
        given value and the minor edge gets its complement.

        Args:
            gammas (np.ndarray): one value per node of preorder(). Values at
                                 tree nodes are ignored.
        """
        for i, node in enumerate(self.preorder()):
            if node.is_reticulation() and self.in_degree(node) == 2:
                major, minor = self.in_edges(node)
                major.set_gamma(float(gammas[i]))
                minor.set_gamma(1 - float(gammas[i]))

    #################
    #### WRITING ####
    #################

    def newick(self) -> str:
        """
        Write this network in extended newick format, with
        "name:length::gamma" on hybrid edges.

        Returns:
            str: a newick string, ending with a semicolon.
        """
        return newick_help(self, self.root(), None, set()) + ";"
