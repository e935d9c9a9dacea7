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

Shifts in the mean of a trait, placed on tree edges of a network, and the
regression columns that such shifts induce on the tips.
"""

from __future__ import annotations
from typing import Iterable
import numpy as np
import pandas as pd

from .Network import Network, Node, Edge
from .PathMatrix import incidence_matrix
from .Traversal import MatrixTopologicalOrder


#########################
#### EXCEPTION CLASS ####
#########################

class ShiftError(Exception):
    """
    Raised when a shift is placed on a hybrid edge, when nodes and values do
    not have the same length, or when two shift vectors conflict.
    """
    def __init__(self, message : str = "Error with a shift on a network"):
        self.message = message
        super().__init__(self.message)

##########################
#### HELPER FUNCTIONS ####
##########################

def _as_list(items : Node | Edge | Iterable) -> list:
    if isinstance(items, (Node, Edge)):
        return [items]
    return list(items)

def _as_nodes(items : Node | Edge | Iterable) -> list[Node]:
    """Child nodes of edges, nodes themselves."""
    return [item.dest if isinstance(item, Edge) else item
            for item in _as_list(items)]

def _check_not_hybrid(node : Node) -> None:
    if node.is_reticulation():
        raise ShiftError(f"Shifts on hybrid edges are not allowed (node \
                           {node.get_number()} is a hybrid)")

def shift_label(number : int) -> str:
    """
    Column name of the shift regressor on the edge above node 'number':
    shift_5 for node 5, shift_m5 for node -5.
    """
    if number < 0:
        return f"shift_m{abs(number)}"
    return f"shift_{number}"

###################
#### SHIFT NET ####
###################

class ShiftNet:
    """
    Shifts in the mean of a Brownian motion, one value per node of the
    network in topological order. A value at a node is a shift on the edge
    that leads to that node.
    """

    def __init__(self, shift : np.ndarray, net : Network) -> None:
        """
        Args:
            shift (np.ndarray): one value per node, in the order of
                                net.preorder().
            net (Network): the network the shifts live on.
        Raises:
            ShiftError: if the length of 'shift' is not the number of nodes.
        """
        shift = np.asarray(shift, dtype = float).ravel()
        if len(shift) != len(net.preorder()):
            raise ShiftError(f"Got {len(shift)} shift values for a network \
                               with {len(net.preorder())} nodes")
        self.shift : np.ndarray = shift
        self.net : Network = net

    @classmethod
    def zeros(cls, net : Network) -> ShiftNet:
        """No shift anywhere."""
        return cls(np.zeros(len(net.preorder())), net)

    @classmethod
    def from_nodes(cls, nodes : Node | Iterable[Node],
                   values : float | Iterable[float],
                   net : Network) -> ShiftNet:
        """
        Put a shift on the edge above each node.

        Args:
            nodes (Node | Iterable[Node]): the nodes below the shifted edges.
            values (float | Iterable[float]): one shift value per node.
            net (Network): the network.
        Raises:
            ShiftError: if a node is a hybrid, or if there are not as many
                        values as nodes.
        Returns:
            ShiftNet: the shifts.
        """
        nodes = _as_nodes(nodes)
        values = np.atleast_1d(np.asarray(values, dtype = float))
        if len(nodes) != len(values):
            raise ShiftError(f"Got {len(values)} shift values for \
                               {len(nodes)} nodes")
        position = {node : i for i, node in enumerate(net.preorder())}
        obj = cls.zeros(net)
        for node, value in zip(nodes, values):
            _check_not_hybrid(node)
            obj.shift[position[node]] = value
        return obj

    @classmethod
    def from_edges(cls, edges : Edge | Iterable[Edge],
                   values : float | Iterable[float],
                   net : Network) -> ShiftNet:
        """Put a shift on each edge. See from_nodes."""
        return cls.from_nodes(_as_nodes(edges), values, net)

    def __repr__(self) -> str:
        return f"ShiftNet:\n{self.shift_table()}"

    def __mul__(self, other : ShiftNet) -> ShiftNet:
        """
        Combine two shift vectors on the same network.

        Raises:
            ShiftError: if the networks differ, or if both give a different
                        non-zero shift to the same node.
        """
        if self.net is not other.net:
            raise ShiftError("Shifts to be combined must be defined on the \
                              same network")
        if len(self.shift) != len(other.shift):
            raise ShiftError("Shifts to be combined must have the same length")
        combined = np.zeros(len(self.shift))
        for i, (a, b) in enumerate(zip(self.shift, other.shift)):
            if a == 0:
                combined[i] = b
            elif b == 0 or a == b:
                combined[i] = a
            else:
                raise ShiftError(f"The two shifts affect node \
                    {self.net.preorder()[i].get_number()} differently \
                    ({a} and {b})")
        return ShiftNet(combined, self.net)

    def _shifted(self) -> list[int]:
        return [i for i, value in enumerate(self.shift) if value != 0]

    def nodes(self) -> list[Node]:
        """
        Returns:
            list[Node]: the nodes below a shifted edge, in topological order.
        """
        order = self.net.preorder()
        return [order[i] for i in self._shifted()]

    def edge_numbers(self) -> list[int]:
        """
        Returns:
            list[int]: numbers of the shifted edges, in topological order.
        """
        return [self.net.in_edges(node)[0].get_number()
                for node in self.nodes()]

    def values(self) -> np.ndarray:
        """
        Returns:
            np.ndarray: the non-zero shift values, in topological order.
        """
        return self.shift[self._shifted()]

    def shift_table(self) -> pd.DataFrame:
        """
        Returns:
            pd.DataFrame: one row per shifted edge, with columns
                          'Edge Number' and 'Shift Value'.
        """
        return pd.DataFrame({"Edge Number" : self.edge_numbers(),
                             "Shift Value" : self.values()})

def shift_hybrid(values : float | Iterable[float], net : Network) -> ShiftNet:
    """
    Put one shift below each hybrid node, on the edge to its (unique) child.

    Args:
        values (float | Iterable[float]): one value per hybrid node, in
                                          topological order.
        net (Network): the network.
    Raises:
        ShiftError: if a hybrid node does not have exactly one child.
    Returns:
        ShiftNet: the shifts.
    """
    return ShiftNet.from_nodes(_hybrid_children(net), values, net)

def _hybrid_children(net : Network) -> list[Node]:
    children = []
    for hybrid in net.hybrid_nodes():
        below = net.get_children(hybrid)
        if len(below) != 1:
            raise ShiftError(f"Hybrid node {hybrid.get_number()} has \
                               {len(below)} children, expected 1")
        children.append(below[0])
    return children

####################
#### REGRESSORS ####
####################

def regressor_shift(nodes_or_edges : Node | Edge | Iterable,
                    net : Network,
                    T : MatrixTopologicalOrder = None) -> pd.DataFrame:
    """
    Regression columns for shifts on the given edges (or the edges above the
    given nodes): the column of the incidence matrix at the shifted node,
    restricted to the tips.

    Args:
        nodes_or_edges (Node | Edge | Iterable): shifted edges, or the nodes
                                                 below them.
        net (Network): the network.
        T (MatrixTopologicalOrder, optional): the incidence matrix of 'net',
                                              computed if not given.
    Raises:
        ShiftError: if a shifted edge leads to a hybrid node.
    Returns:
        pd.DataFrame: one column per shift (shift_5, shift_m3, ...) and a
                      'tipNames' column, one row per tip in network order.
    """
    nodes = _as_nodes(nodes_or_edges)
    for node in nodes:
        _check_not_hybrid(node)
    if T is None:
        T = incidence_matrix(net)
    T_tips = T.get("Tips")
    df = pd.DataFrame({shift_label(node.get_number()) :
                       T_tips[:, T.position(node.get_number())]
                       for node in nodes})
    df["tipNames"] = T.tip_labels()
    return df

def regressor_hybrid(net : Network) -> pd.DataFrame:
    """
    Shift regressors below every hybrid node, plus a 'sum' column holding
    their row sums.

    Args:
        net (Network): the network.
    Returns:
        pd.DataFrame: the regressors, see regressor_shift.
    """
    children = _hybrid_children(net)
    df = regressor_shift(children, net)
    columns = [shift_label(child.get_number()) for child in children]
    df["sum"] = df[columns].sum(axis = 1)
    return df
