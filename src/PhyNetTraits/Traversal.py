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
Design - [x]

Generic pre-order and post-order recursions over a rooted network. The
recursion drivers hold no matrix semantics of their own: a visitor object
supplies the initial matrix and the update applied at each kind of node, and
the driver dispatches on the number of parents (pre-order) or on whether the
node has children (post-order).
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import numpy as np

from .Network import Network, Node, Edge


#########################
#### EXCEPTION CLASS ####
#########################

class TraversalError(Exception):
    """
    This exception is raised when a network cannot be traversed in
    topological order (it is not rooted, or a node has more than 2 parents),
    or when a sub-matrix that does not exist is requested.
    """
    def __init__(self, message : str = "Error traversing a network") -> None:
        self.message = message
        super().__init__(self.message)

###################################
#### TOPOLOGICALLY ORDERED DATA ###
###################################

INDEXATIONS : tuple[str] = ("r", "c", "b")

@dataclass
class MatrixTopologicalOrder:
    """
    A matrix whose rows ("r"), columns ("c") or both ("b") are indexed by the
    nodes of a network, listed in topological order.

    Attributes:
        V (np.ndarray): the matrix itself.
        nodes_changed (list[int]): node numbers in the topological order used
                                   for the matrix.
        internal_node_numbers (list[int]): numbers of the internal nodes, in
                                           network order.
        tip_numbers (list[int]): numbers of the tips, in network order.
        tip_names (list[str]): names of the tips, in network order.
        indexation (str): "r", "c" or "b".
    """
    V : np.ndarray
    nodes_changed : list[int]
    internal_node_numbers : list[int]
    tip_numbers : list[int]
    tip_names : list[str]
    indexation : str = "b"
    _position : dict[int, int] = field(init = False, repr = False)

    def __post_init__(self) -> None:
        if self.indexation not in INDEXATIONS:
            raise TraversalError(f"Unknown indexation '{self.indexation}',\
                                   expected one of {INDEXATIONS}")
        self._position = {num : i for i, num in enumerate(self.nodes_changed)}

    def __str__(self) -> str:
        return f"{type(self).__name__}:\n{self.V}"

    def tip_labels(self) -> list[str]:
        """
        Returns:
            list[str]: the tip names, in the order of the tip rows/columns.
        """
        return list(self.tip_names)

    def position(self, number : int) -> int:
        """
        Args:
            number (int): a node number.
        Returns:
            int: the row/column of that node in V.
        """
        return self._position[number]

    def _masks(self, ind : np.ndarray,
               msng : np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        # Tips with data, then internal nodes followed by the missing tips
        mask_tips = np.array([self._position[num] for num in self.tip_numbers],
                             dtype = int)
        if ind is not None:
            mask_tips = mask_tips[np.asarray(ind, dtype = int)]
        if msng is None:
            msng = np.ones(len(mask_tips), dtype = bool)
        msng = np.asarray(msng, dtype = bool)
        if len(msng) != len(mask_tips):
            raise TraversalError(f"Missing-tip mask has length {len(msng)},\
                                   expected {len(mask_tips)}")
        mask_nodes = np.array([self._position[num]
                               for num in self.internal_node_numbers],
                              dtype = int)
        mask_nodes = np.concatenate([mask_nodes, mask_tips[~msng]])
        return mask_tips[msng], mask_nodes

    def _slice(self, rows : np.ndarray, cols : np.ndarray = None) -> np.ndarray:
        if cols is None:
            cols = rows
        if self.indexation == "b":
            return self.V[np.ix_(rows, cols)]
        if self.indexation == "c":
            return self.V[:, rows]
        return self.V[rows, :]

    def get(self, which : str, ind : np.ndarray = None,
            msng : np.ndarray = None) -> np.ndarray:
        """
        Extract a sub-matrix, indexed by node numbers (not by topological
        position).

        Args:
            which (str): One of
                "Tips": rows and/or columns of the tips with data,
                "InternalNodes": rows and/or columns of the internal nodes,
                                 followed by those of the missing tips,
                "TipsNodes": tips (rows) against internal nodes and missing
                             tips (columns). Only defined for indexation "b".
                "All": the whole matrix.
            ind (np.ndarray, optional): reordering of the tips, as positions
                                        in tip_numbers. Defaults to None.
            msng (np.ndarray, optional): boolean mask, True for the tips that
                                         have data, after reordering.
                                         Defaults to None (all observed).
        Raises:
            TraversalError: if 'which' is unknown, or "TipsNodes" is asked of
                            a matrix that is not indexed on both sides.
        Returns:
            np.ndarray: the sub-matrix.
        """
        if which == "All":
            return self.V

        tips, nodes = self._masks(ind, msng)
        if which == "Tips":
            return self._slice(tips)
        if which == "InternalNodes":
            return self._slice(nodes)
        if which == "TipsNodes":
            if self.indexation != "b":
                raise TraversalError("Both rows and columns must be net \
                    ordered to take the submatrix tips vs internal nodes.")
            return self._slice(tips, nodes)
        raise TraversalError(f"Unknown sub-matrix '{which}'. Use Tips, \
                               InternalNodes, TipsNodes or All")

    def scale(self, lam : float) -> MatrixTopologicalOrder:
        """
        Multiply the matrix by a scalar, in place. Scaling by 1/lam afterwards
        restores the original matrix.

        Args:
            lam (float): a non-zero scalar.
        Returns:
            MatrixTopologicalOrder: this object.
        """
        self.V *= lam
        return self

    def copy(self, V : np.ndarray = None) -> MatrixTopologicalOrder:
        """
        Args:
            V (np.ndarray, optional): a replacement matrix of the same shape.
                                      Defaults to a copy of this matrix.
        Returns:
            MatrixTopologicalOrder: a new object with the same node labels.
        """
        return MatrixTopologicalOrder(self.V.copy() if V is None else V,
                                      list(self.nodes_changed),
                                      list(self.internal_node_numbers),
                                      list(self.tip_numbers),
                                      list(self.tip_names),
                                      self.indexation)

##################
#### VISITORS ####
##################

def _check_gammas(node : Node, g1 : float, g2 : float) -> None:
    """
    Raises:
        TraversalError: if the inheritance probabilities of the two edges
                        into a hybrid node are missing, outside [0, 1], or
                        do not sum to 1.
    """
    if g1 is None or g2 is None:
        raise TraversalError(f"Hybrid node {node.get_number()} has a hybrid \
                               edge without an inheritance probability")
    for g in (g1, g2):
        if g < -1e-8 or g > 1 + 1e-8:
            raise TraversalError(f"Hybrid node {node.get_number()} has an \
                                   inheritance probability {g} outside [0, 1]")
    if abs(g1 + g2 - 1) > 1e-8:
        raise TraversalError(f"Inheritance probabilities into hybrid node \
                               {node.get_number()} sum to {g1 + g2}, not 1")

class PreOrderVisitor(ABC):
    """
    Update rules for a pre-order (root to tips) recursion. Node 'i' is always
    visited after all of its parents.
    """

    @abstractmethod
    def init(self, nodes : list[Node]) -> np.ndarray:
        pass

    @abstractmethod
    def visit_root(self, M : np.ndarray, i : int) -> None:
        pass

    @abstractmethod
    def visit_tree_node(self, M : np.ndarray, i : int, parent_index : int,
                        edge : Edge) -> None:
        pass

    @abstractmethod
    def visit_hybrid_node(self, M : np.ndarray, i : int, parent_index1 : int,
                          parent_index2 : int, edge1 : Edge,
                          edge2 : Edge) -> None:
        pass

    def visit(self, M : np.ndarray, i : int, node : Node, net : Network,
              index : dict[Node, int]) -> None:
        """Dispatch to the correct visit method based on the parent count."""
        in_edges = net.in_edges(node)
        if len(in_edges) == 0:
            self.visit_root(M, i)
        elif len(in_edges) == 1:
            self.visit_tree_node(M, i, index[in_edges[0].src], in_edges[0])
        elif len(in_edges) == 2:
            edge1, edge2 = in_edges
            for edge in in_edges:
                if not edge.is_hybrid():
                    raise TraversalError(f"Connecting edge between node \
                        {node.get_number()} and {edge.src.get_number()} should\
                        be a hybrid edge")
            _check_gammas(node, edge1.get_gamma(), edge2.get_gamma())
            self.visit_hybrid_node(M, i, index[edge1.src], index[edge2.src],
                                   edge1, edge2)

class PostOrderVisitor(ABC):
    """
    Update rules for a post-order (tips to root) recursion. Node 'i' is always
    visited after all of its children.
    """

    @abstractmethod
    def init(self, nodes : list[Node]) -> np.ndarray:
        pass

    @abstractmethod
    def visit_tip(self, M : np.ndarray, i : int) -> None:
        pass

    @abstractmethod
    def visit_internal(self, M : np.ndarray, i : int,
                       children_index : list[int], edges : list[Edge]) -> None:
        pass

    def visit(self, M : np.ndarray, i : int, node : Node, net : Network,
              index : dict[Node, int]) -> None:
        """Dispatch to the correct visit method based on the child count."""
        out_edges = net.out_edges(node)
        if len(out_edges) == 0:
            self.visit_tip(M, i)
        else:
            self.visit_internal(M, i, [index[edge.dest] for edge in out_edges],
                                out_edges)

##########################
#### RECURSION DRIVERS ###
##########################

def _check_resolved(net : Network) -> list[Node]:
    """
    Make sure the network can be traversed, and return its topological order.

    Raises:
        TraversalError: if the network is not rooted, or if a node has more
                        than 2 parents.
    """
    if not net.is_rooted():
        raise TraversalError("Network needs to be rooted to get matrices in \
                              topological order")
    for node in net.get_nodes():
        if net.in_degree(node) > 2:
            raise TraversalError(f"Node {node.get_number()} has \
                {net.in_degree(node)} parents: network must be resolved \
                (binary) at hybrid nodes")
    return net.preorder()

def _wrap(net : Network, nodes : list[Node], M : np.ndarray,
          indexation : str) -> MatrixTopologicalOrder:
    leaves = net.get_leaves()
    leaf_set = set(leaves)
    return MatrixTopologicalOrder(
        M,
        [node.get_number() for node in nodes],
        [node.get_number() for node in net.get_nodes()
         if node not in leaf_set],
        [leaf.get_number() for leaf in leaves],
        [leaf.label() for leaf in leaves],
        indexation)

def recursion_preorder(net : Network,
                       visitor : PreOrderVisitor,
                       indexation : str = "b") -> MatrixTopologicalOrder:
    """
    Fill a matrix by visiting the nodes of 'net' from the root to the tips.

    Args:
        net (Network): a rooted network.
        visitor (PreOrderVisitor): the update rules.
        indexation (str, optional): "r", "c" or "b". Defaults to "b".
    Raises:
        TraversalError: if the network is not rooted or not resolved.
    Returns:
        MatrixTopologicalOrder: the filled matrix.
    """
    nodes = _check_resolved(net)
    index = {node : i for i, node in enumerate(nodes)}
    M = visitor.init(nodes)
    for i, node in enumerate(nodes):
        visitor.visit(M, i, node, net, index)
    return _wrap(net, nodes, M, indexation)

def recursion_postorder(net : Network,
                        visitor : PostOrderVisitor,
                        indexation : str = "b") -> MatrixTopologicalOrder:
    """
    Fill a matrix by visiting the nodes of 'net' from the tips to the root.

    Args:
        net (Network): a rooted network.
        visitor (PostOrderVisitor): the update rules.
        indexation (str, optional): "r", "c" or "b". Defaults to "b".
    Raises:
        TraversalError: if the network is not rooted or not resolved.
    Returns:
        MatrixTopologicalOrder: the filled matrix.
    """
    nodes = _check_resolved(net)
    index = {node : i for i, node in enumerate(nodes)}
    M = visitor.init(nodes)
    for i in range(len(nodes) - 1, -1, -1):
        visitor.visit(M, i, nodes[i], net, index)
    return _wrap(net, nodes, M, indexation)
