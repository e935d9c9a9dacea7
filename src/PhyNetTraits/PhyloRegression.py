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

Phylogenetic regression on a network. The tip covariance of a Brownian
motion (optionally transformed by Pagel's lambda or by scaling the hybrid
gammas) is factored as L L^T, and the model is fitted by ordinary least
squares on L^-1 X and L^-1 Y. Every statistic of the fit is derived from that
whitened fit and from log|Vy|.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Iterable
import math
import warnings
import numpy as np
import pandas as pd
from scipy import linalg, optimize, stats

from .Network import Network
from .PathMatrix import shared_path_matrix, get_heights, max_lambda, \
                        transform_matrix_lambda, matrix_scaling_hybrid
from .Settings import OptimizerSettings, DEFAULT_OPTIMIZER_SETTINGS
from .Traversal import MatrixTopologicalOrder, TraversalError


#########################
#### EXCEPTION CLASS ####
#########################

class RegressionError(Exception):
    """
    Raised when a phylogenetic regression cannot be fitted: a covariance
    that is not positive definite, data that cannot be matched to the tips,
    an unknown model, or a statistic that the fit does not define.
    """
    def __init__(self, message : str = "Error fitting a phylogenetic \
                                        regression"):
        self.message = message
        super().__init__(self.message)

########################
### MODULE CONSTANTS ###
########################

MODELS : tuple[str] = ("BM", "lambda", "scalingHybrid")
INTERCEPT : str = "(Intercept)"

###########################
#### WHITENED OLS FIT #####
###########################

@dataclass
class WhitenedLM:
    """
    Ordinary least squares fit on the whitened data.

    Attributes:
        X (np.ndarray): whitened design matrix, L^-1 X.
        Y (np.ndarray): whitened response, L^-1 Y.
        coef (np.ndarray): estimated coefficients.
        fitted (np.ndarray): X coef.
        residuals (np.ndarray): Y - X coef.
        XtX_inv (np.ndarray): (X^T X)^-1.
    """
    X : np.ndarray
    Y : np.ndarray
    coef : np.ndarray
    fitted : np.ndarray
    residuals : np.ndarray
    XtX_inv : np.ndarray

    def deviance(self) -> float:
        return float(self.residuals @ self.residuals)

def whitened_ols(X : np.ndarray, Y : np.ndarray) -> WhitenedLM:
    """
    Least squares fit of Y on the columns of X. A design with no column is
    allowed: the fitted values are then all 0.

    Raises:
        RegressionError: if the columns of X are linearly dependent.
    """
    p = X.shape[1]
    if p == 0:
        return WhitenedLM(X, Y, np.zeros(0), np.zeros(len(Y)), Y.copy(),
                          np.zeros((0, 0)))
    if np.linalg.matrix_rank(X) < p:
        raise RegressionError(f"The design matrix has {p} columns but rank \
                                {np.linalg.matrix_rank(X)}")
    coef = np.linalg.lstsq(X, Y, rcond = None)[0]
    fitted = X @ coef
    return WhitenedLM(X, Y, coef, fitted, Y - fitted,
                      np.linalg.inv(X.T @ X))

##########################
#### HELPER FUNCTIONS ####
##########################

def _as_design(X : np.ndarray) -> np.ndarray:
    X = np.asarray(X, dtype = float)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    if X.ndim != 2:
        raise RegressionError(f"The design matrix must have 2 dimensions, \
                                got {X.ndim}")
    return X

def _check_masks(V : MatrixTopologicalOrder, msng : np.ndarray,
                 ind : np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    n_rows = len(V.tip_numbers) if ind is None else len(ind)
    if ind is not None:
        ind = np.asarray(ind, dtype = int)
        if np.any(ind < 0) or np.any(ind >= len(V.tip_numbers)):
            raise RegressionError("The tip reordering refers to tips that \
                                   are not in the network")
    if msng is None:
        msng = np.ones(n_rows, dtype = bool)
    msng = np.asarray(msng, dtype = bool)
    if len(msng) != n_rows:
        raise RegressionError(f"The missing data mask has length \
                                {len(msng)}, expected {n_rows}")
    return msng, ind

def _settings_with(settings : OptimizerSettings,
                   start_value : float,
                   tolerances : dict) -> OptimizerSettings:
    if settings is None:
        settings = DEFAULT_OPTIMIZER_SETTINGS
    return settings.replace(start_lambda = start_value, **tolerances)

def _maximize(loglik : Callable[[float], float],
              settings : OptimizerSettings,
              bounds : tuple[float, float] = None) -> tuple[float, int]:
    """
    Maximize a one dimensional log likelihood, with the bounded Brent method
    when bounds are given and with Brent's method otherwise.

    Returns:
        tuple[float, int]: the maximizer, and the number of evaluations.
    """
    history : list[float] = []

    def objective(value : float) -> float:
        ll = loglik(value)
        history.append(ll)
        return -ll

    if bounds is not None:
        xatol = max(settings.xtol_abs, settings.xtol_rel * abs(bounds[1]))
        res = optimize.minimize_scalar(objective, bounds = bounds,
                                       method = "bounded",
                                       options = {"xatol" : xatol,
                                                  "maxiter" :
                                                      settings.max_eval})
    else:
        start = settings.start_lambda
        res = optimize.minimize_scalar(objective,
                                       bracket = (start, start + 0.1),
                                       method = "brent",
                                       options = {"xtol" : settings.xtol_rel,
                                                  "maxiter" :
                                                      settings.max_eval})

    if not res.success and not settings.converged(history):
        warnings.warn(f"The optimizer stopped after {len(history)} \
                        evaluations without converging: {res.message}")
    return float(res.x), len(history)

####################
#### FITTED MODEL ##
####################

class PhyloNetworkLinearModel:
    """
    A fitted phylogenetic linear model.

    Attributes:
        lm (WhitenedLM): the least squares fit on whitened data.
        V (MatrixTopologicalOrder): the (transformed) shared path matrix.
        Vy (np.ndarray): tip covariance of the observed tips.
        RL (np.ndarray): lower Cholesky factor of Vy.
        Y (np.ndarray): observed response.
        X (np.ndarray): design matrix of the observed tips.
        logdetVy (float): log determinant of Vy.
        ind (np.ndarray): position in the network tips of each data row,
                          None if the rows are in network order.
        msng (np.ndarray): True for the data rows that are observed.
        model (str): "BM", "lambda" or "scalingHybrid".
        lambda_ (float): the transform parameter, 1 for BM.
        lambda_estimated (bool): whether lambda_ was estimated.
        coef_names (list[str]): names of the coefficients.
        nevals (int): number of likelihood evaluations of the optimizer.
        formula (str): "y ~ 1 + x" when fitted from a data frame.
        model_frame (pd.DataFrame): the data frame, when fitted from one.
    """

    def __init__(self,
                 lm : WhitenedLM,
                 V : MatrixTopologicalOrder,
                 Vy : np.ndarray,
                 RL : np.ndarray,
                 Y : np.ndarray,
                 X : np.ndarray,
                 logdetVy : float,
                 ind : np.ndarray,
                 msng : np.ndarray,
                 model : str = "BM",
                 lambda_ : float = 1.0) -> None:
        self.lm : WhitenedLM = lm
        self.V : MatrixTopologicalOrder = V
        self.Vy : np.ndarray = Vy
        self.RL : np.ndarray = RL
        self.Y : np.ndarray = Y
        self.X : np.ndarray = X
        self.logdetVy : float = logdetVy
        self.ind : np.ndarray = ind
        self.msng : np.ndarray = msng
        self.model : str = model
        self.lambda_ : float = lambda_
        self.lambda_estimated : bool = False
        self.coef_names : list[str] = [f"x{i + 1}" for i in range(X.shape[1])]
        self.nevals : int = 0
        self.formula : str = None
        self.model_frame : pd.DataFrame = None
        self.has_intercept : bool = None

    ##################
    #### ESTIMATES ###
    ##################

    def coef(self) -> np.ndarray:
        return self.lm.coef

    def nobs(self) -> int:
        return len(self.Y)

    def dof_residual(self) -> int:
        return self.nobs() - len(self.coef())

    def vcov(self) -> np.ndarray:
        """
        Returns:
            np.ndarray: covariance of the coefficients,
                        deviance / (n - p) * (X^T X)^-1 on the whitened
                        design.
        """
        return self.deviance() / self.dof_residual() * self.lm.XtX_inv

    def stderror(self) -> np.ndarray:
        return np.sqrt(np.diag(self.vcov()))

    def confint(self, level : float = 0.95) -> np.ndarray:
        """
        Args:
            level (float, optional): confidence level. Defaults to 0.95.
        Returns:
            np.ndarray: one row [lower, upper] per coefficient.
        """
        q = stats.t.ppf((1 + level) / 2, self.dof_residual())
        se = self.stderror()
        return np.column_stack([self.coef() - q * se, self.coef() + q * se])

    def coeftable(self, level : float = 0.95) -> pd.DataFrame:
        """
        Table of the coefficients, with t tests against 0 and confidence
        intervals. A model with no coefficient reports a fixed value of 0.

        Args:
            level (float, optional): confidence level. Defaults to 0.95.
        Returns:
            pd.DataFrame: one row per coefficient.
        """
        if len(self.coef()) == 0:
            return pd.DataFrame({"Fixed Value" : [0.0]}, index = [INTERCEPT])
        se = self.stderror()
        tval = self.coef() / se
        ci = self.confint(level)
        return pd.DataFrame({"Estimate" : self.coef(),
                             "Std. Error" : se,
                             "t value" : tval,
                             "Pr(>|t|)" : 2 * stats.t.sf(np.abs(tval),
                                                         self.dof_residual()),
                             "Lower" : ci[:, 0],
                             "Upper" : ci[:, 1]},
                            index = self.coef_names)

    def dof(self) -> int:
        """
        Number of parameters: the coefficients, the variance rate, and the
        transform parameter of the lambda and scalingHybrid models.
        """
        extra = 1 if self.model in ("lambda", "scalingHybrid") else 0
        return len(self.coef()) + 1 + extra

    ##################
    #### FIT VALUES ##
    ##################

    def deviance(self) -> float:
        return self.lm.deviance()

    def residuals(self) -> np.ndarray:
        return self.RL @ self.lm.residuals

    def response(self) -> np.ndarray:
        return self.Y

    def predict(self) -> np.ndarray:
        return self.RL @ self.lm.fitted

    def _loglik(self, dev : float) -> float:
        n = self.nobs()
        return -n / 2 * (math.log(2 * math.pi * dev / n) + 1) \
               - self.logdetVy / 2

    def loglikelihood(self) -> float:
        return self._loglik(self.deviance())

    def nulldeviance(self) -> float:
        """
        Deviance of the intercept only model, whitened by the same
        Cholesky factor.
        """
        ones = linalg.solve_triangular(self.RL, np.ones((self.nobs(), 1)),
                                       lower = True)
        return whitened_ols(ones, self.lm.Y).deviance()

    def nullloglikelihood(self) -> float:
        return self._loglik(self.nulldeviance())

    def r2(self) -> float:
        return 1 - self.deviance() / self.nulldeviance()

    def adjr2(self) -> float:
        n = self.nobs()
        p = self.dof() - 1
        return 1 - (1 - self.r2()) * (n - 1) / (n - p)

    def aic(self) -> float:
        return -2 * self.loglikelihood() + 2 * self.dof()

    def aicc(self) -> float:
        k = self.dof()
        n = self.nobs()
        return self.aic() + 2 * k * (k + 1) / (n - k - 1)

    def bic(self) -> float:
        return -2 * self.loglikelihood() + self.dof() * math.log(self.nobs())

    ##################
    #### PARAMETERS ##
    ##################

    def sigma2_estim(self) -> float:
        """Maximum likelihood estimate of the variance rate."""
        return self.deviance() / self.nobs()

    def mu_estim(self) -> float:
        """
        Estimate of the ancestral mean at the root: the intercept.

        A model fitted from a data frame knows whether it has an intercept.
        For a model fitted from a matrix, the first coefficient is used,
        with a warning. A model with no coefficient gives 0.

        Raises:
            RegressionError: if a data frame model has no intercept.
        """
        if self.formula is not None:
            if not self.has_intercept:
                raise RegressionError("The fit was done without intercept, \
                                       so the ancestral mean cannot be \
                                       estimated")
            return float(self.coef()[0])
        warnings.warn("The model was fitted against a custom matrix, so the \
                       first coefficient is used as the ancestral mean mu. \
                       This is only right if it is the intercept.")
        if len(self.coef()) == 0:
            return 0.0
        return float(self.coef()[0])

    def lambda_estim(self) -> float:
        return self.lambda_

    def params_table(self) -> str:
        disp = ""
        if self.model == "lambda":
            disp += f"Lambda: {self.lambda_}\n"
        elif self.model == "scalingHybrid":
            disp += f"Hybrid scaling parameter: {self.lambda_}\n"
        disp += f"Sigma2: {self.sigma2_estim()}"
        return disp

    def __str__(self) -> str:
        title = {"BM" : "Brownian motion",
                 "lambda" : "Pagel's lambda",
                 "scalingHybrid" : "scaling hybrid"}[self.model]
        formula = "" if self.formula is None else f"Formula: {self.formula}\n"
        return f"{type(self).__name__}:\n\n{formula}Model: {title}\n\n\
Parameter estimates:\n{self.params_table()}\n\n\
Coefficients:\n{self.coeftable().to_string()}\n\n\
Log Likelihood: {self.loglikelihood()}\nAIC: {self.aic()}"

#################
#### FITTING ####
#################

def phylo_network_lm_bm(X : np.ndarray,
                        Y : np.ndarray,
                        V : MatrixTopologicalOrder,
                        msng : np.ndarray = None,
                        ind : np.ndarray = None,
                        model : str = "BM",
                        lambda_ : float = 1.0) -> PhyloNetworkLinearModel:
    """
    Fit a linear model with a known tip covariance, up to the variance rate.

    Args:
        X (np.ndarray): design matrix, one row per observed tip. May have no
                        column.
        Y (np.ndarray): response of the observed tips.
        V (MatrixTopologicalOrder): shared path matrix (possibly
                                    transformed).
        msng (np.ndarray, optional): True for the observed data rows.
                                     Defaults to all observed.
        ind (np.ndarray, optional): position in the network tips of each
                                    data row. Defaults to network order.
        model (str, optional): recorded model name. Defaults to "BM".
        lambda_ (float, optional): recorded transform parameter.
    Raises:
        RegressionError: if the tip covariance is not positive definite, or
                         if the sizes do not match.
    Returns:
        PhyloNetworkLinearModel: the fit.
    """
    msng, ind = _check_masks(V, msng, ind)
    X = _as_design(X)
    Y = np.asarray(Y, dtype = float).ravel()
    n = int(np.sum(msng))
    if len(Y) != n or X.shape[0] != n:
        raise RegressionError(f"Got a response of length {len(Y)} and a \
                                design matrix with {X.shape[0]} rows for \
                                {n} observed tips")

    Vy = V.get("Tips", ind, msng)
    try:
        RL = linalg.cholesky(Vy, lower = True)
    except linalg.LinAlgError as err:
        raise RegressionError("The tip covariance matrix is not positive \
                               definite (are there tips at distance 0?)") \
                               from err

    Xw = linalg.solve_triangular(RL, X, lower = True)
    Yw = linalg.solve_triangular(RL, Y, lower = True)
    lm = whitened_ols(Xw, Yw)
    logdetVy = 2 * float(np.sum(np.log(np.diag(RL))))
    return PhyloNetworkLinearModel(lm, V, Vy, RL, Y, X, logdetVy, ind, msng,
                                   model, lambda_)

def phylo_network_lm_lambda(X : np.ndarray,
                            Y : np.ndarray,
                            V : MatrixTopologicalOrder,
                            net : Network,
                            msng : np.ndarray = None,
                            ind : np.ndarray = None,
                            fixed_value : float = None,
                            settings : OptimizerSettings = None
                            ) -> PhyloNetworkLinearModel:
    """
    Fit a linear model under Pagel's lambda. Lambda is estimated by maximum
    likelihood in [lower_bound, up - up / 1000], with up the largest
    lambda that keeps the tip covariance valid, unless 'fixed_value' is
    given.

    Args:
        X, Y, msng, ind: see phylo_network_lm_bm.
        V (MatrixTopologicalOrder): shared path matrix of 'net'.
        net (Network): the network.
        fixed_value (float, optional): lambda, when it should not be
                                       estimated. Defaults to None.
        settings (OptimizerSettings, optional): optimizer tolerances.
    Returns:
        PhyloNetworkLinearModel: the fit, with model "lambda".
    """
    if settings is None:
        settings = DEFAULT_OPTIMIZER_SETTINGS
    if len(net.hybrid_nodes()) == 0:
        warnings.warn("The network has no hybrid node: Pagel's lambda is \
                       computed with the formulas for a tree")
    gammas = net.get_gammas()
    heights = get_heights(net)

    def loglik(lam : float) -> float:
        Vl = transform_matrix_lambda(V, lam, gammas, heights)
        return phylo_network_lm_bm(X, Y, Vl, msng, ind).loglikelihood()

    nevals = 0
    if fixed_value is None:
        up = max_lambda(heights, V)
        lam, nevals = _maximize(loglik, settings,
                                (settings.lower_bound, up - up / 1000))
    else:
        lam = fixed_value

    res = phylo_network_lm_bm(X, Y,
                              transform_matrix_lambda(V, lam, gammas,
                                                      heights),
                              msng, ind, "lambda", lam)
    res.lambda_estimated = fixed_value is None
    res.nevals = nevals
    return res

def phylo_network_lm_scaling_hybrid(X : np.ndarray,
                                    Y : np.ndarray,
                                    net : Network,
                                    msng : np.ndarray = None,
                                    ind : np.ndarray = None,
                                    fixed_value : float = None,
                                    settings : OptimizerSettings = None
                                    ) -> PhyloNetworkLinearModel:
    """
    Fit a linear model where every major hybrid gamma g is replaced by
    1 - lambda * (1 - g). Lambda is estimated by maximum likelihood, with
    no bound, unless 'fixed_value' is given. The shared path matrix is
    rebuilt for each value of lambda.

    Args:
        X, Y, msng, ind: see phylo_network_lm_bm.
        net (Network): the network.
        fixed_value (float, optional): lambda, when it should not be
                                       estimated. Defaults to None.
        settings (OptimizerSettings, optional): optimizer tolerances.
    Returns:
        PhyloNetworkLinearModel: the fit, with model "scalingHybrid".
    """
    if settings is None:
        settings = DEFAULT_OPTIMIZER_SETTINGS
    if len(net.hybrid_nodes()) == 0:
        warnings.warn("The network has no hybrid node: the hybrid scaling \
                       parameter has no effect")
    gammas = net.get_gammas()

    def loglik(lam : float) -> float:
        try:
            return phylo_network_lm_bm(X, Y,
                                       matrix_scaling_hybrid(net, lam, gammas),
                                       msng, ind).loglikelihood()
        except (RegressionError, TraversalError):
            # Not a valid covariance at this value
            return -np.inf

    nevals = 0
    if fixed_value is None:
        lam, nevals = _maximize(loglik, settings)
    else:
        lam = fixed_value

    res = phylo_network_lm_bm(X, Y, matrix_scaling_hybrid(net, lam, gammas),
                              msng, ind, "scalingHybrid", lam)
    res.lambda_estimated = fixed_value is None
    res.nevals = nevals
    return res

def phylo_network_lm(X : np.ndarray,
                     Y : np.ndarray,
                     net : Network,
                     model : str = "BM",
                     msng : np.ndarray = None,
                     ind : np.ndarray = None,
                     fixed_value : float = None,
                     start_value : float = None,
                     settings : OptimizerSettings = None,
                     **tolerances) -> PhyloNetworkLinearModel:
    """
    Phylogenetic regression of Y on X along a network.

    Args:
        X (np.ndarray): design matrix, one row per observed tip.
        Y (np.ndarray): response of the observed tips.
        net (Network): a rooted network with branch lengths and gammas.
        model (str, optional): "BM", "lambda" or "scalingHybrid".
                               Defaults to "BM".
        msng (np.ndarray, optional): True for the observed data rows.
                                     Defaults to all observed.
        ind (np.ndarray, optional): position in the network tips of each
                                    data row. Defaults to network order.
        fixed_value (float, optional): value of the transform parameter,
                                       which is then not estimated.
        start_value (float, optional): first point of the starting bracket
                                       of "scalingHybrid". The bounded search
                                       of "lambda" does not use it.
        settings (OptimizerSettings, optional): optimizer tolerances. The
            x tolerances and max_eval stop the search. ftol_rel and ftol_abs
            only decide whether a search that scipy reports as failed has
            still converged, in which case no warning is issued.
        **tolerances: ftol_rel, ftol_abs, xtol_rel, xtol_abs or max_eval,
                      overriding 'settings'.
    Raises:
        RegressionError: if the model is unknown, or if the fit fails.
    Returns:
        PhyloNetworkLinearModel: the fit.
    """
    if model not in MODELS:
        raise RegressionError(f"Unknown model '{model}', use one of {MODELS}")
    settings = _settings_with(settings, start_value, tolerances)
    V = shared_path_matrix(net)
    if model == "BM":
        return phylo_network_lm_bm(X, Y, V, msng, ind)
    if model == "lambda":
        return phylo_network_lm_lambda(X, Y, V, net, msng, ind, fixed_value,
                                       settings)
    return phylo_network_lm_scaling_hybrid(X, Y, net, msng, ind, fixed_value,
                                           settings)

def match_tips(df : pd.DataFrame, net : Network,
               no_names : bool = False) -> np.ndarray:
    """
    Position in the network tips of each row of a data frame, using its
    'tipNames' column.

    Args:
        df (pd.DataFrame): the data.
        net (Network): the network.
        no_names (bool, optional): skip the matching and assume that the
                                   rows are in network tip order.
    Raises:
        RegressionError: if the data frame has no 'tipNames' column, if the
                         network tips have no names, or if a name is
                         duplicated or not a tip of the network.
    Returns:
        np.ndarray: tip positions, None when no_names is set.
    """
    labels = net.tip_labels()
    if no_names:
        warnings.warn("As requested, the tip names are not matched: the rows \
                       of the data frame are assumed to be in the same order \
                       as the tips of the network")
        if len(df) != len(labels):
            raise RegressionError(f"The data frame has {len(df)} rows but \
                                    the network has {len(labels)} tips")
        return None
    if "tipNames" not in df.columns:
        raise RegressionError("The data frame should have a column named \
                               'tipNames' to match the rows with the tips of \
                               the network. Use no_names = True to skip the \
                               matching")
    if any(label is None or label == "" for label in labels):
        raise RegressionError("The network tips must all have names to be \
                               matched with the data")
    names = df["tipNames"].astype(str)
    duplicated = names[names.duplicated()].tolist()
    if len(duplicated) != 0:
        raise RegressionError(f"Tip names appear more than once in the data \
                                frame: {duplicated}")
    position = {label : i for i, label in enumerate(labels)}
    unknown = [name for name in names if name not in position]
    if len(unknown) != 0:
        raise RegressionError(f"Tip names of the data frame are not tips of \
                                the network: {unknown}")
    return np.array([position[name] for name in names], dtype = int)

def phylo_network_lm_df(df : pd.DataFrame,
                        response : str,
                        predictors : str | Iterable[str],
                        net : Network,
                        intercept : bool = True,
                        no_names : bool = False,
                        model : str = "BM",
                        fixed_value : float = None,
                        start_value : float = None,
                        settings : OptimizerSettings = None,
                        **tolerances) -> PhyloNetworkLinearModel:
    """
    Phylogenetic regression from a data frame. The rows are matched to the
    tips with the 'tipNames' column. Rows with a missing response or
    predictor are treated as missing tips. Non numeric predictors are coded
    with one indicator column per level but the first.

    Args:
        df (pd.DataFrame): the data.
        response (str): name of the response column.
        predictors (str | Iterable[str]): names of the predictor columns.
        net (Network): the network.
        intercept (bool, optional): include an intercept. Defaults to True.
        no_names (bool, optional): see match_tips. Defaults to False.
        model, fixed_value, start_value, settings, **tolerances: see
            phylo_network_lm.
    Raises:
        RegressionError: if the rows cannot be matched with the tips, or if
                         the fit fails.
    Returns:
        PhyloNetworkLinearModel: the fit, with its formula and data frame.
    """
    if isinstance(predictors, str):
        predictors = [predictors]
    predictors = list(predictors)
    for column in [response] + predictors:
        if column not in df.columns:
            raise RegressionError(f"No column named '{column}' in the data \
                                    frame")

    ind = match_tips(df, net, no_names)
    msng = df[[response] + predictors].notna().all(axis = 1).to_numpy()
    observed = df.loc[msng]

    if len(predictors) == 0:
        design = pd.DataFrame(index = observed.index)
    else:
        design = pd.get_dummies(observed[predictors], drop_first = True,
                                dtype = float)
    if intercept:
        design.insert(0, INTERCEPT, 1.0)
    Y = observed[response].to_numpy(dtype = float)

    res = phylo_network_lm(design.to_numpy(dtype = float), Y, net, model,
                           msng, ind, fixed_value, start_value, settings,
                           **tolerances)
    terms = (["1"] if intercept else ["0"]) + predictors
    res.formula = f"{response} ~ {' + '.join(terms)}"
    res.model_frame = df
    res.coef_names = list(design.columns)
    res.has_intercept = intercept
    return res

###################
#### ACCESSORS ####
###################

def coef(m : PhyloNetworkLinearModel) -> np.ndarray:
    return m.coef()

def nobs(m : PhyloNetworkLinearModel) -> int:
    return m.nobs()

def vcov(m : PhyloNetworkLinearModel) -> np.ndarray:
    return m.vcov()

def stderror(m : PhyloNetworkLinearModel) -> np.ndarray:
    return m.stderror()

def confint(m : PhyloNetworkLinearModel, level : float = 0.95) -> np.ndarray:
    return m.confint(level)

def coeftable(m : PhyloNetworkLinearModel,
              level : float = 0.95) -> pd.DataFrame:
    return m.coeftable(level)

def dof(m : PhyloNetworkLinearModel) -> int:
    return m.dof()

def dof_residual(m : PhyloNetworkLinearModel) -> int:
    return m.dof_residual()

def deviance(m : PhyloNetworkLinearModel) -> float:
    return m.deviance()

def residuals(m : PhyloNetworkLinearModel) -> np.ndarray:
    return m.residuals()

def response(m : PhyloNetworkLinearModel) -> np.ndarray:
    return m.response()

def predict(m : PhyloNetworkLinearModel) -> np.ndarray:
    return m.predict()

def loglikelihood(m : PhyloNetworkLinearModel) -> float:
    return m.loglikelihood()

def nulldeviance(m : PhyloNetworkLinearModel) -> float:
    return m.nulldeviance()

def nullloglikelihood(m : PhyloNetworkLinearModel) -> float:
    return m.nullloglikelihood()

def r2(m : PhyloNetworkLinearModel) -> float:
    return m.r2()

def adjr2(m : PhyloNetworkLinearModel) -> float:
    return m.adjr2()

def aic(m : PhyloNetworkLinearModel) -> float:
    return m.aic()

def aicc(m : PhyloNetworkLinearModel) -> float:
    return m.aicc()

def bic(m : PhyloNetworkLinearModel) -> float:
    return m.bic()

def sigma2_estim(m : PhyloNetworkLinearModel) -> float:
    return m.sigma2_estim()

def mu_estim(m : PhyloNetworkLinearModel) -> float:
    return m.mu_estim()

def lambda_estim(m : PhyloNetworkLinearModel) -> float:
    return m.lambda_estim()

###############
#### ANOVA ####
###############

def anova(*models : PhyloNetworkLinearModel) -> pd.DataFrame:
    """
    F tests between nested models, listed from the smallest to the largest.
    Each model is compared with the one before it. Nesting is only checked
    through the number of coefficients.

    Raises:
        RegressionError: if fewer than 2 models are given, or if the number
                         of coefficients does not strictly increase.
    Returns:
        pd.DataFrame: one row per model, with columns 'Res. Df', 'RSS',
                      'Df', 'SS', 'F' and 'Pr(>F)'. The first row only has
                      the first two.
    """
    if len(models) < 2:
        raise RegressionError("anova needs at least 2 models")
    rows = [{"Res. Df" : models[0].dof_residual(),
             "RSS" : models[0].deviance(),
             "Df" : np.nan, "SS" : np.nan, "F" : np.nan, "Pr(>F)" : np.nan}]
    for small, large in zip(models[:-1], models[1:]):
        if not len(small.coef()) < len(large.coef()):
            raise RegressionError("Models must be nested, from the smallest \
                                   to the largest")
        df1 = small.dof_residual() - large.dof_residual()
        ss = small.deviance() - large.deviance()
        df2 = large.dof_residual()
        F = (ss / df1) / (large.deviance() / df2)
        rows.append({"Res. Df" : df2, "RSS" : large.deviance(), "Df" : df1,
                     "SS" : ss, "F" : F,
                     "Pr(>F)" : float(stats.f.sf(F, df1, df2))})
    return pd.DataFrame(rows)
