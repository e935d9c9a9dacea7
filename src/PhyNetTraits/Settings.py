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

Tolerances and limits for the one dimensional optimizers used to estimate
Pagel's lambda and the hybrid scaling parameter.
"""

from __future__ import annotations
from dataclasses import dataclass, replace, fields


########################
### MODULE CONSTANTS ###
########################

@dataclass(frozen=True)
class OptimizerSettings:
    """
    Attributes:
        ftol_rel (float): relative tolerance on the log likelihood.
        ftol_abs (float): absolute tolerance on the log likelihood.
        xtol_rel (float): relative tolerance on the parameter.
        xtol_abs (float): absolute tolerance on the parameter.
        max_eval (int): maximum number of likelihood evaluations.
        start_lambda (float): starting value of the parameter.
        lower_bound (float): smallest value of lambda that is tried.
    """
    ftol_rel : float = 1e-10
    ftol_abs : float = 1e-10
    xtol_rel : float = 1e-10
    xtol_abs : float = 1e-10
    max_eval : int = 1000
    start_lambda : float = 0.5
    lower_bound : float = 1e-100

    def replace(self, **changes) -> OptimizerSettings:
        """
        Args:
            **changes: new values for any of the fields. Values that are None
                       are ignored.
        Raises:
            TypeError: if a key is not one of the fields.
        Returns:
            OptimizerSettings: a modified copy.
        """
        names = {f.name for f in fields(self)}
        for key in changes:
            if key not in names:
                raise TypeError(f"Unknown optimizer setting '{key}'")
        return replace(self, **{key : value for key, value in changes.items()
                                if value is not None})

    def converged(self, history : list[float]) -> bool:
        """
        Checks whether the last two values of an evaluation history agree
        to within the function value tolerances.

        Args:
            history (list[float]): log likelihood values, in evaluation order.
        Returns:
            bool: True if the two most recent values are within tolerance.
        """
        if len(history) < 2:
            return False
        diff = abs(history[-1] - history[-2])
        return diff <= self.ftol_abs or \
               diff <= self.ftol_rel * abs(history[-1])

DEFAULT_OPTIMIZER_SETTINGS : OptimizerSettings = OptimizerSettings()
