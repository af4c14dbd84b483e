#!/usr/bin/env python
"""
Classification of canonical symbols into states, algebraic variables and
parameters.
"""
from __future__ import absolute_import, division, print_function, unicode_literals

import logging
from collections import OrderedDict
from typing import List, Optional

from . import ast
from .errors import (
    IndependentVariableError,
    OverdeterminedSystemError,
    UnderdeterminedSystemError,
)
from .tree import FlatModel, collect_symbols

logger = logging.getLogger("cellode")


class Classification:

    def __init__(self):
        self.time = None  # type: Optional[ast.Symbol]
        self.states = []  # type: List[ast.Symbol]
        self.alg_states = []  # type: List[ast.Symbol]
        self.parameters = []  # type: List[ast.Symbol]
        self.derivative_equations = OrderedDict()  # type: OrderedDict[str, ast.Equation]
        self.algebraic_equations = OrderedDict()  # type: OrderedDict[str, ast.Equation]

    def __str__(self):
        r = ""
        r += "Classification\n"
        r += "time: " + str(self.time) + "\n"
        r += "states: " + str([s.name for s in self.states]) + "\n"
        r += "alg_states: " + str([s.name for s in self.alg_states]) + "\n"
        r += "parameters: " + str([s.name for s in self.parameters]) + "\n"
        return r


def _independent_variable(flat: FlatModel) -> Optional[ast.Symbol]:
    bvars = OrderedDict()
    for equation in flat.equations:
        bvars.update(collect_symbols(equation).bvars)
    if len(bvars) > 1:
        raise IndependentVariableError(
            "Derivatives are taken with respect to more than one variable: {}".format(
                ", ".join(bvars.keys())),
            values=list(bvars.keys()))
    return next(iter(bvars.values()), None)


def classify(flat: FlatModel) -> Classification:
    """
    A symbol is a state if it is the target of a derivative equation, an
    algebraic variable if a plain equation defines it, and a parameter if no
    equation defines it but it has an initial value. The variable derivatives
    are taken with respect to is reported as time and classified as none of
    these.

    :param flat: flattened model
    :return: classification
    """
    result = Classification()
    result.time = _independent_variable(flat)

    for equation in flat.equations:
        target = equation.target.name
        if result.time is not None and target == result.time.name:
            raise OverdeterminedSystemError(
                "Equation '{}' in component '{}' defines the independent variable '{}'".format(
                    equation, equation.component, target),
                symbol=target, component=equation.component)
        for defined in (result.derivative_equations, result.algebraic_equations):
            if target in defined:
                raise OverdeterminedSystemError(
                    "Symbol '{}' is defined more than once: '{}' (component '{}') and "
                    "'{}' (component '{}')".format(
                        target, defined[target], defined[target].component,
                        equation, equation.component),
                    symbol=target, component=equation.component)
        if equation.is_derivative:
            result.derivative_equations[target] = equation
        else:
            result.algebraic_equations[target] = equation

    for name, symbol in flat.symbols.items():
        if result.time is not None and symbol is result.time:
            continue
        elif name in result.derivative_equations:
            result.states.append(symbol)
        elif name in result.algebraic_equations:
            result.alg_states.append(symbol)
        elif name in flat.initial_values:
            result.parameters.append(symbol)
        else:
            raise UnderdeterminedSystemError(
                "Symbol '{}' (aliases: {}) has no defining equation and no initial value".format(
                    name, ", ".join(sorted(symbol.aliases))),
                symbol=name)

    for equation in flat.equations:
        for name in collect_symbols(equation.right).derivatives:
            if name not in result.derivative_equations:
                raise UnderdeterminedSystemError(
                    "Derivative of '{}' is used in component '{}' but no equation "
                    "defines it".format(name, equation.component),
                    symbol=name, component=equation.component)

    logger.info("Classified %d states, %d algebraic variables and %d parameters",
                len(result.states), len(result.alg_states), len(result.parameters))
    return result
