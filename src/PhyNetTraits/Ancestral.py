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

Ancestral state reconstruction: best linear unbiased prediction of the trait
at the internal nodes (and at the tips with missing data), given the
observed tips, either from known process parameters or from a fitted
phylogenetic regression.
"""

from __future__ import annotations
import warnings
import numpy as np
import pandas as pd
from scipy import linalg, stats

from .Network import Network
from .PathMatrix import shared_path_matrix
from .PhyloRegression import PhyloNetworkLinearModel, phylo_network_lm_df
from .Simulation import ParamsBM


#########################
#### EXCEPTION CLASS ####
#########################

class ReconstructionError(Exception):
    """
    Raised when ancestral states cannot be reconstructed from a model: the
    model has predictors that are unknown at the nodes, or the node design
    matrix does not have the right shape.
    """
    def __init__(self, message : str = "Error reconstructing ancestral \
                                        states"):
        self.message = message
        super().__init__(self.message)

###########################
#### RECONSTRUCTED DATA ###
###########################

class ReconstructedStates:
    """
    Conditional expectations and variances of the trait at the nodes with
    no data, given the observed tips.

    Attributes:
        traits_nodes (np.ndarray): conditional means at the nodes.
        variances_nodes (np.ndarray): conditional covariance between nodes.
        node_numbers (list[int]): numbers of the reconstructed nodes: the
                                  internal nodes, then the missing tips.
        traits_tips (np.ndarray): observed values at the tips.
        tip_numbers (list[int]): numbers of the observed tips.
        model (PhyloNetworkLinearModel): the fitted model, None when the
                                         parameters were known.
    """

    def __init__(self,
                 traits_nodes : np.ndarray,
                 variances_nodes : np.ndarray,
                 node_numbers : list[int],
                 traits_tips : np.ndarray,
                 tip_numbers : list[int],
                 model : PhyloNetworkLinearModel = None) -> None:
        self.traits_nodes : np.ndarray = traits_nodes
        self.variances_nodes : np.ndarray = variances_nodes
        self.node_numbers : list[int] = list(node_numbers)
        self.traits_tips : np.ndarray = traits_tips
        self.tip_numbers : list[int] = list(tip_numbers)
        self.model : PhyloNetworkLinearModel = model

    def expectations(self) -> pd.DataFrame:
        """
        Returns:
            pd.DataFrame: columns 'nodeNumber' and 'condExpectation', the
                          reconstructed nodes first, then the observed tips.
        """
        return pd.DataFrame({
            "nodeNumber" : self.node_numbers + self.tip_numbers,
            "condExpectation" : np.concatenate([self.traits_nodes,
                                                self.traits_tips])})

    def stderror(self) -> np.ndarray:
        return np.sqrt(np.diag(self.variances_nodes))

    def predint(self, level : float = 0.95) -> np.ndarray:
        """
        Prediction intervals: a Student t quantile (residual degrees of
        freedom of the model) when the parameters were estimated, a normal
        quantile otherwise. Observed tips get [value, value].

        Args:
            level (float, optional): confidence level. Defaults to 0.95.
        Returns:
            np.ndarray: one row [lower, upper] per node, in the order of
                        expectations().
        """
        if self.model is None:
            q = stats.norm.ppf((1 + level) / 2)
        else:
            q = stats.t.ppf((1 + level) / 2, self.model.dof_residual())
        se = self.stderror()
        nodes = np.column_stack([self.traits_nodes - q * se,
                                 self.traits_nodes + q * se])
        tips = np.column_stack([self.traits_tips, self.traits_tips])
        return np.vstack([nodes, tips])

    def predint_table(self, level : float = 0.95) -> pd.DataFrame:
        """
        Returns:
            pd.DataFrame: 'nodeNumber', 'Lower' and 'Upper' columns.
        """
        pi = self.predint(level)
        return pd.DataFrame({"nodeNumber" : self.node_numbers
                                            + self.tip_numbers,
                             "Lower" : pi[:, 0],
                             "Upper" : pi[:, 1]})

    def __str__(self) -> str:
        pi = self.predint()
        table = pd.DataFrame({"Node index" : self.node_numbers,
                              "Pred." : self.traits_nodes,
                              "Min." : pi[:len(self.node_numbers), 0],
                              "Max. (95%)" : pi[:len(self.node_numbers), 1]})
        return f"{type(self).__name__}:\n{table.to_string(index = False)}"

########################
#### RECONSTRUCTION ####
########################

def ancestral_state_reconstruction_from_blocks(
        Vz : np.ndarray,
        VyzVyinvchol : np.ndarray,
        RL : np.ndarray,
        Y : np.ndarray,
        m_y : np.ndarray,
        m_z : np.ndarray,
        node_numbers : list[int],
        tip_numbers : list[int],
        sigma2 : float,
        add_var : np.ndarray = 0,
        model : PhyloNetworkLinearModel = None) -> ReconstructedStates:
    """
    Conditional distribution of Z given Y = y for jointly normal (Y, Z).

    Args:
        Vz (np.ndarray): covariance of Z, up to sigma2.
        VyzVyinvchol (np.ndarray): L^-1 Vyz, with Vy = L L^T.
        RL (np.ndarray): L.
        Y (np.ndarray): observed values.
        m_y (np.ndarray): mean of Y.
        m_z (np.ndarray): mean of Z.
        node_numbers (list[int]): numbers of the nodes in Z.
        tip_numbers (list[int]): numbers of the tips in Y.
        sigma2 (float): variance rate.
        add_var (np.ndarray, optional): added to the conditional covariance,
                                        for the uncertainty on m_z.
                                        Defaults to 0.
        model (PhyloNetworkLinearModel, optional): the fitted model, if any.
    Returns:
        ReconstructedStates: conditional means and covariance of Z.
    """
    m_z_cond_y = m_z + VyzVyinvchol.T @ linalg.solve_triangular(
        RL, Y - m_y, lower = True)
    V_z_cond_y = sigma2 * (Vz - VyzVyinvchol.T @ VyzVyinvchol)
    return ReconstructedStates(m_z_cond_y, V_z_cond_y + add_var, node_numbers,
                               np.asarray(Y, dtype = float), tip_numbers, model)

def ancestral_state_reconstruction_params(net : Network,
                                          Y : np.ndarray,
                                          params : ParamsBM
                                          ) -> ReconstructedStates:
    """
    Reconstruction at the internal nodes with known parameters: the mean is
    mu everywhere and no uncertainty is added for it.

    Args:
        net (Network): the network.
        Y (np.ndarray): values at all the tips, in network order.
        params (ParamsBM): mu and sigma2.
    Raises:
        ReconstructionError: if Y does not have one value per tip, or if
                             the tip covariance is not positive definite.
    Returns:
        ReconstructedStates: the reconstruction.
    """
    V = shared_path_matrix(net)
    Y = np.asarray(Y, dtype = float).ravel()
    if len(Y) != len(V.tip_numbers):
        raise ReconstructionError(f"Got {len(Y)} tip values for a network \
                                    with {len(V.tip_numbers)} tips")
    Vy = V.get("Tips")
    Vz = V.get("InternalNodes")
    Vyz = V.get("TipsNodes")
    try:
        RL = linalg.cholesky(Vy, lower = True)
    except linalg.LinAlgError as err:
        raise ReconstructionError("The tip covariance matrix is not positive \
                                   definite (are there tips at distance 0?)") \
                                   from err
    VyzVyinvchol = linalg.solve_triangular(RL, Vyz, lower = True)
    m_y = np.full(Vy.shape[0], params.mu, dtype = float)
    m_z = np.full(Vz.shape[0], params.mu, dtype = float)
    return ancestral_state_reconstruction_from_blocks(
        Vz, VyzVyinvchol, RL, Y, m_y, m_z, V.internal_node_numbers,
        V.tip_numbers, params.sigma2)

def ancestral_state_reconstruction(model : PhyloNetworkLinearModel,
                                   X_n : np.ndarray = None
                                   ) -> ReconstructedStates:
    """
    Reconstruction at the internal nodes and at the missing tips from a
    fitted model. The uncertainty of the estimated coefficients is added to
    the conditional variance; that of the estimated variance rate is not.

    Args:
        model (PhyloNetworkLinearModel): the fit.
        X_n (np.ndarray, optional): predictors at the internal nodes, then
                                    at the missing tips. Not needed if the
                                    model only has an intercept.
    Raises:
        ReconstructionError: if X_n is missing for a model with predictors,
                             or if X_n does not have the right shape.
    Returns:
        ReconstructedStates: the reconstruction.
    """
    V = model.V
    n_nodes = len(V.internal_node_numbers) + int(np.sum(~model.msng))
    if X_n is None:
        if model.X.shape[1] != 1 or not np.all(model.X == 1):
            raise ReconstructionError("Predictors other than a plain \
                intercept are used in this model. They are unobserved at \
                the ancestral nodes, so they cannot be used for the \
                reconstruction. If their values at the nodes are known, \
                give them as the X_n matrix")
        X_n = np.ones((n_nodes, 1))
    X_n = np.asarray(X_n, dtype = float)
    if X_n.ndim == 1:
        X_n = X_n.reshape(-1, 1)
    if X_n.shape[1] != len(model.coef()):
        raise ReconstructionError(f"X_n has {X_n.shape[1]} columns, but the \
                                    model has {len(model.coef())} predictors")
    if X_n.shape[0] != n_nodes:
        raise ReconstructionError(f"X_n has {X_n.shape[0]} rows, expected \
                                    the number of internal nodes plus the \
                                    number of missing tips: {n_nodes}")

    m_y = model.predict()
    m_z = X_n @ model.coef()
    if model.ind is None:
        warnings.warn("There is no indication of the position of the tips \
                       on the network: the data is assumed to be in the \
                       same order as the tips")
    Vyz = V.get("TipsNodes", model.ind, model.msng)
    VyzVyinvchol = linalg.solve_triangular(model.RL, Vyz, lower = True)
    U = X_n - VyzVyinvchol.T @ linalg.solve_triangular(model.RL, model.X,
                                                       lower = True)
    add_var = U @ model.vcov() @ U.T
    warnings.warn("These prediction intervals show uncertainty in ancestral \
                   values, assuming that the estimated variance rate of \
                   evolution is correct. Additional uncertainty in the \
                   estimation of this variance rate is ignored, so prediction\
                   intervals should be larger.")

    tips = np.asarray(V.tip_numbers)
    if model.ind is not None:
        tips = tips[model.ind]
    node_numbers = list(V.internal_node_numbers) \
                   + tips[~model.msng].tolist()
    return ancestral_state_reconstruction_from_blocks(
        V.get("InternalNodes", model.ind, model.msng), VyzVyinvchol,
        model.RL, model.Y, m_y, m_z, node_numbers,
        tips[model.msng].tolist(), model.sigma2_estim(), add_var, model)

def ancestral_state_reconstruction_df(df : pd.DataFrame,
                                      net : Network,
                                      response : str = None,
                                      **kwargs) -> ReconstructedStates:
    """
    Fit an intercept only Brownian motion to one column of a data frame,
    then reconstruct the ancestral states.

    Args:
        df (pd.DataFrame): a 'tipNames' column and the data.
        net (Network): the network.
        response (str, optional): the data column. Defaults to the only
                                  column that is not 'tipNames'.
        **kwargs: passed on to phylo_network_lm_df.
    Raises:
        ReconstructionError: if no data column is given and there is not
                             exactly one.
    Returns:
        ReconstructedStates: the reconstruction.
    """
    if response is None:
        data = [column for column in df.columns if column != "tipNames"]
        if len(data) != 1:
            raise ReconstructionError("Besides one column labelled \
                'tipNames', the data frame should have only one column, \
                with the data at the tips of the network")
        response = data[0]
    fit = phylo_network_lm_df(df, response, [], net, **kwargs)
    return ancestral_state_reconstruction(fit)
