#! /usr/bin/env python
# -*- coding: utf-8 -*-

##############################################################################
##  -- PhyNetTraits --
##  Trait Evolution on Phylogenetic Networks
##
##  Copyright 2025 Mark Kessler, Luay Nakhleh.
##  All rights reserved.
##############################################################################

"""
PhyNetTraits - Continuous Trait Evolution on Phylogenetic Networks

Brownian motion variance matrices, trait simulation, phylogenetic
regression (BM, Pagel's lambda, hybrid scaling) and ancestral state
reconstruction on rooted phylogenetic networks.
"""

# Core data structures
from .Network import Network, Node, Edge, NetworkError, NodeError, EdgeError

# Parsing and I/O
from .NetworkParser import NetworkParser, NetworkParserError, read_topology

# Matrices
from .Traversal import (
    MatrixTopologicalOrder,
    PreOrderVisitor,
    PostOrderVisitor,
    TraversalError,
    recursion_preorder,
    recursion_postorder
)
from .PathMatrix import (
    shared_path_matrix,
    incidence_matrix,
    get_heights,
    max_lambda,
    transform_matrix_lambda,
    transform_matrix_lambda_inplace,
    untransform_matrix_lambda_inplace,
    matrix_scaling_hybrid
)

# Shifts and simulation
from .Shifts import (
    ShiftNet,
    ShiftError,
    shift_hybrid,
    regressor_shift,
    regressor_hybrid
)
from .Simulation import (
    ParamsProcess,
    ParamsBM,
    TraitSimulation,
    SimulationError,
    simulate
)

# Regression
from .Settings import OptimizerSettings, DEFAULT_OPTIMIZER_SETTINGS
from .PhyloRegression import (
    PhyloNetworkLinearModel,
    RegressionError,
    phylo_network_lm,
    phylo_network_lm_bm,
    phylo_network_lm_lambda,
    phylo_network_lm_scaling_hybrid,
    phylo_network_lm_df,
    anova
)

# Ancestral states
from .Ancestral import (
    ReconstructedStates,
    ReconstructionError,
    ancestral_state_reconstruction,
    ancestral_state_reconstruction_params,
    ancestral_state_reconstruction_from_blocks,
    ancestral_state_reconstruction_df
)

__version__ = "1.0.0"
