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

Matrices of a Brownian motion on a network: the shared path (variance)
matrix between all nodes, the incidence matrix of tips against nodes, and the
transformations of the variance matrix used by Pagel's lambda and by the
hybrid scaling model.
"""

from __future__ import annotations
import numpy as np

from .Network import Network, Node, Edge
from .Traversal import MatrixTopologicalOrder, PreOrderVisitor, \
                       PostOrderVisitor, recursion_preorder, \
                       recursion_postorder


##################
#### VISITORS ####
##################

class SharedPathVisitor(PreOrderVisitor):
    """
    V[i, j] is the expected length of the path shared by nodes i and j,
    for a unit rate Brownian motion started at the root.
    """

    def init(self, nodes : list[Node]) -> np.ndarray:
        return np.zeros((len(nodes), len(nodes)))

    def visit_root(self, M : np.ndarray, i : int) -> None:
        M[i, i] = 0.0

    def visit_tree_node(self, M : np.ndarray, i : int, parent_index : int,
                        edge : Edge) -> None:
        M[:i, i] = M[:i, parent_index]
        M[i, :i] = M[:i, parent_index]
        M[i, i] = M[parent_index, parent_index] + edge.get_length()

    def visit_hybrid_node(self, M : np.ndarray, i : int, parent_index1 : int,
                          parent_index2 : int, edge1 : Edge,
                          edge2 : Edge) -> None:
        g1 = edge1.get_gamma()
        g2 = edge2.get_gamma()
        p1 = parent_index1
        p2 = parent_index2
        shared = g1 * M[:i, p1] + g2 * M[:i, p2]
        M[:i, i] = shared
        M[i, :i] = shared
        M[i, i] = g1 * g1 * (M[p1, p1] + edge1.get_length()) \
                  + g2 * g2 * (M[p2, p2] + edge2.get_length()) \
                  + 2 * g1 * g2 * M[p1, p2]

class IncidenceVisitor(PostOrderVisitor):
    """
    T[k, i] is the fraction of the ancestry of node k that goes through
    node i, counting inheritance probabilities.
    """

    def init(self, nodes : list[Node]) -> np.ndarray:
        return np.eye(len(nodes))

    def visit_tip(self, M : np.ndarray, i : int) -> None:
        pass

    def visit_internal(self, M : np.ndarray, i : int,
                       children_index : list[int], edges : list[Edge]) -> None:
        for child, edge in zip(children_index, edges):
            M[:, i] += edge.get_gamma() * M[:, child]

#########################
#### MATRIX BUILDERS ####
#########################

def shared_path_matrix(net : Network) -> MatrixTopologicalOrder:
    """
    Compute the variance matrix of a unit rate Brownian motion between all
    the nodes of a network.

    Args:
        net (Network): a rooted network where every node has at most 2
                       parents.
    Raises:
        TraversalError: if the network is not rooted or not resolved.
    Returns:
        MatrixTopologicalOrder: the shared path matrix, indexed by nodes in
                                both rows and columns.
    """
    return recursion_preorder(net, SharedPathVisitor(), "b")

def incidence_matrix(net : Network) -> MatrixTopologicalOrder:
    """
    Compute the incidence matrix of a network. Row k, column i holds the
    sum, over all paths from i down to k, of the product of the gammas along
    the path.

    Args:
        net (Network): a rooted network where every node has at most 2
                       parents.
    Raises:
        TraversalError: if the network is not rooted or not resolved.
    Returns:
        MatrixTopologicalOrder: the incidence matrix, with its rows indexed
                                by nodes.
    """
    return recursion_postorder(net, IncidenceVisitor(), "r")

def get_heights(net : Network) -> np.ndarray:
    """
    Heights of all the nodes, in topological order, measured along major
    edges: the diagonal of the shared path matrix when every major edge has
    gamma 1. The gammas of the network are restored afterwards.

    Args:
        net (Network): a rooted network.
    Returns:
        np.ndarray: node heights, in topological order.
    """
    gammas = net.get_gammas()
    net.set_gammas(np.ones(len(gammas)))
    try:
        V = shared_path_matrix(net)
    finally:
        net.set_gammas(gammas)
    return np.diag(V.V).copy()

def max_lambda(heights : np.ndarray, V : MatrixTopologicalOrder) -> float:
    """
    Largest value of Pagel's lambda that keeps the transformed variance
    matrix a valid variance matrix.

    Args:
        heights (np.ndarray): node heights, in topological order.
        V (MatrixTopologicalOrder): the shared path matrix.
    Returns:
        float: max(tip heights) / max(internal node heights), or 1 when
               every internal node is at the root (a star), where lambda
               does not change the tip covariance.
    """
    tips = [V.position(num) for num in V.tip_numbers]
    internal = [V.position(num) for num in V.internal_node_numbers]
    top = np.max(heights[internal])
    if top <= 0:
        return 1.0
    return float(np.max(heights[tips]) / top)

######################
#### TRANSFORMS ######
######################

def _lambda_tip_terms(V : MatrixTopologicalOrder, gammas : np.ndarray,
                      heights : np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    tips = np.array([V.position(num) for num in V.tip_numbers], dtype = int)
    g = np.asarray(gammas, dtype = float)[tips]
    return tips, (g * g + (1 - g) * (1 - g)) * np.asarray(heights)[tips]

def transform_matrix_lambda(V : MatrixTopologicalOrder,
                            lam : float,
                            gammas : np.ndarray,
                            heights : np.ndarray) -> MatrixTopologicalOrder:
    """
    Pagel's lambda transform. Every entry is multiplied by lambda, and the
    tip variances get back (1 - lambda) * (g^2 + (1 - g)^2) * height, where
    g is the gamma of the tip's major parent edge. V is left untouched.

    Args:
        V (MatrixTopologicalOrder): the shared path matrix.
        lam (float): Pagel's lambda.
        gammas (np.ndarray): major edge gammas, in topological order.
        heights (np.ndarray): node heights, in topological order.
    Returns:
        MatrixTopologicalOrder: a transformed copy of V.
    """
    tips, terms = _lambda_tip_terms(V, gammas, heights)
    out = V.copy(lam * V.V)
    out.V[tips, tips] += (1 - lam) * terms
    return out

def transform_matrix_lambda_inplace(V : MatrixTopologicalOrder,
                                    lam : float,
                                    gammas : np.ndarray,
                                    heights : np.ndarray
                                    ) -> MatrixTopologicalOrder:
    """
    Same as transform_matrix_lambda, but modifies V. Applying the transform
    with 1 / lam afterwards restores V.

    Returns:
        MatrixTopologicalOrder: V.
    """
    tips, terms = _lambda_tip_terms(V, gammas, heights)
    V.scale(lam)
    V.V[tips, tips] += (1 - lam) * terms
    return V

def untransform_matrix_lambda_inplace(V : MatrixTopologicalOrder,
                                      lam : float,
                                      gammas : np.ndarray,
                                      heights : np.ndarray
                                      ) -> MatrixTopologicalOrder:
    """
    Undo transform_matrix_lambda_inplace(V, lam, gammas, heights).

    Returns:
        MatrixTopologicalOrder: V.
    """
    return transform_matrix_lambda_inplace(V, 1 / lam, gammas, heights)

def matrix_scaling_hybrid(net : Network,
                          lam : float,
                          gammas : np.ndarray) -> MatrixTopologicalOrder:
    """
    Shared path matrix after moving every major hybrid gamma towards 1:
    g' = 1 - lam * (1 - g). lam = 1 leaves the network unchanged, lam = 0
    gives the major tree. The gammas of the network are restored afterwards.

    Args:
        net (Network): a rooted network.
        lam (float): the scaling parameter.
        gammas (np.ndarray): major edge gammas, in topological order, as
                             given by net.get_gammas().
    Returns:
        MatrixTopologicalOrder: the shared path matrix of the scaled network.
    """
    gammas = np.asarray(gammas, dtype = float)
    net.set_gammas(1 - lam * (1 - gammas))
    try:
        V = shared_path_matrix(net)
    finally:
        net.set_gammas(gammas)
    return V
