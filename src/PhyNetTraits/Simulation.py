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

Forward simulation of a continuous trait on a network under a Brownian
motion, with optional shifts in the mean along tree edges.
"""

from __future__ import annotations
from typing import Union
import math
import numpy as np

from .Network import Network, Node, Edge
from .Shifts import ShiftNet
from .Traversal import MatrixTopologicalOrder, PreOrderVisitor, \
                       recursion_preorder


#########################
#### EXCEPTION CLASS ####
#########################

class SimulationError(Exception):
    """
    Raised when a trait cannot be simulated with the given parameters.
    """
    def __init__(self, message : str = "Something went wrong simulating a \
                                        trait"):
        self.message = message
        super().__init__(self.message)

####################
#### PARAMETERS ####
####################

class ParamsProcess:
    """
    Base class for the parameters of a trait evolution process.
    """

    def params_table(self) -> str:
        return ""

    def __str__(self) -> str:
        return f"{type(self).__name__}:\n{self.params_table()}"

class ParamsBM(ParamsProcess):
    """
    Parameters of a Brownian motion on a network.

    Attributes:
        mu (float): ancestral mean at the root.
        sigma2 (float): variance rate.
        random_root (bool): whether the root value is drawn, rather than
                            fixed at mu.
        var_root (float): variance of the root value, when random.
        shift (ShiftNet): shifts in the mean along edges, or None.
    """

    def __init__(self,
                 mu : float,
                 sigma2 : float,
                 random_root : bool = False,
                 var_root : float = math.nan,
                 shift : ShiftNet = None) -> None:
        """
        Raises:
            SimulationError: if sigma2 is not positive, or if the root is
                             random with an invalid variance.
        """
        if not sigma2 > 0:
            raise SimulationError(f"The variance rate sigma2 must be \
                                    positive, got {sigma2}")
        if random_root and not var_root >= 0:
            raise SimulationError(f"A random root needs a non-negative \
                                    variance, got {var_root}")
        self.mu : float = mu
        self.sigma2 : float = sigma2
        self.random_root : bool = random_root
        self.var_root : float = var_root
        self.shift : ShiftNet = shift

    def any_shift(self) -> bool:
        """
        Returns:
            bool: True if at least one edge has a non-zero shift.
        """
        return self.shift is not None and bool(np.any(self.shift.shift != 0))

    def params_table(self) -> str:
        disp = f"mu: {self.mu}\nSigma2: {self.sigma2}"
        if self.random_root:
            disp += f"\nRandom root variance: {self.var_root}"
        if self.any_shift():
            disp += f"\n\nThere are {len(self.shift.values())} shifts on the \
network:\n{self.shift.shift_table().to_string(index = False)}"
        return disp

####################
#### SIMULATION ####
####################

class SimulateBMVisitor(PreOrderVisitor):
    """
    Row 0 of the matrix holds the expected value at each node, row 1 the
    simulated value.
    """

    def __init__(self, params : ParamsBM, shift : np.ndarray,
                 rng : np.random.Generator) -> None:
        self.params : ParamsBM = params
        self.shift : np.ndarray = shift
        self.rng : np.random.Generator = rng

    def init(self, nodes : list[Node]) -> np.ndarray:
        return np.zeros((2, len(nodes)))

    def _step(self, length : float) -> float:
        return math.sqrt(self.params.sigma2 * length) \
               * self.rng.standard_normal()

    def visit_root(self, M : np.ndarray, i : int) -> None:
        M[0, i] = self.params.mu
        if self.params.random_root:
            M[1, i] = self.params.mu + math.sqrt(self.params.var_root) \
                      * self.rng.standard_normal()
        else:
            M[1, i] = self.params.mu

    def visit_tree_node(self, M : np.ndarray, i : int, parent_index : int,
                        edge : Edge) -> None:
        M[0, i] = M[0, parent_index] + self.shift[i]
        M[1, i] = M[1, parent_index] + self.shift[i] \
                  + self._step(edge.get_length())

    def visit_hybrid_node(self, M : np.ndarray, i : int, parent_index1 : int,
                          parent_index2 : int, edge1 : Edge,
                          edge2 : Edge) -> None:
        g1 = edge1.get_gamma()
        g2 = edge2.get_gamma()
        M[0, i] = g1 * M[0, parent_index1] + g2 * M[0, parent_index2]
        # One independent draw along each parent edge
        M[1, i] = g1 * (M[1, parent_index1] + self._step(edge1.get_length())) \
                  + g2 * (M[1, parent_index2] + self._step(edge2.get_length()))

class TraitSimulation:
    """
    The result of a simulation: expected and simulated values at every node.

    Attributes:
        M (MatrixTopologicalOrder): 2 x (number of nodes) matrix, indexed by
                                    nodes in its columns.
        params (ParamsProcess): the parameters used.
        model (str): the process, "BM".
    """

    def __init__(self, M : MatrixTopologicalOrder, params : ParamsProcess,
                 model : str) -> None:
        self.M : MatrixTopologicalOrder = M
        self.params : ParamsProcess = params
        self.model : str = model

    def __str__(self) -> str:
        return f"{type(self).__name__}:\nTrait simulation results on a \
network with {len(self.M.tip_numbers)} tips, using a {self.model} model, \
with parameters:\n{self.params.params_table()}"

    def get(self, which : str, kind : str = "Sim") -> np.ndarray:
        """
        Args:
            which (str): "Tips", "InternalNodes" or "All".
            kind (str, optional): "Sim" for simulated values, "Exp" for
                                  expected values. Defaults to "Sim".
        Raises:
            SimulationError: if 'kind' is neither "Sim" nor "Exp".
        Returns:
            np.ndarray: the values, tips in network order.
        """
        if kind not in ("Sim", "Exp"):
            raise SimulationError(f"Unknown kind '{kind}', use Sim or Exp")
        return self.M.get(which)[1 if kind == "Sim" else 0, :]

    def tip_labels(self) -> list[str]:
        return self.M.tip_labels()

def simulate(net : Network,
             params : ParamsProcess,
             rng : Union[np.random.Generator, None] = None
             ) -> TraitSimulation:
    """
    Simulate a continuous trait along a network.

    Args:
        net (Network): a rooted network with branch lengths and gammas.
        params (ParamsProcess): parameters of the process. Only ParamsBM is
                                supported.
        rng (Union[np.random.Generator, None], optional): A random number
                        generator. Pass a seeded generator for reproducible
                        draws. Defaults to np.random.default_rng().
    Raises:
        SimulationError: if the process is not a Brownian motion.
        TraversalError: if the network is not rooted or not resolved.
    Returns:
        TraitSimulation: expected and simulated values at all nodes.
    """
    if not isinstance(params, ParamsBM):
        raise SimulationError("Only a Brownian motion process (ParamsBM) can \
                               be simulated")
    if rng is None:
        rng = np.random.default_rng()

    shift = params.shift if params.shift is not None else ShiftNet.zeros(net)
    if len(shift.shift) != len(net.preorder()):
        raise SimulationError("The shifts were not defined on this network")
    visitor = SimulateBMVisitor(params, shift.shift, rng)
    M = recursion_preorder(net, visitor, "c")
    return TraitSimulation(M, params, "BM")
