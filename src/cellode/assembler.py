#!/usr/bin/env python
"""
Builds a Model from a CellML document:
parse -> translate math -> resolve connections -> flatten -> classify -> assemble.
"""
from __future__ import absolute_import, division, print_function, unicode_literals

import heapq
import logging
from collections import OrderedDict
from typing import Dict, List, Union

from . import ast, mathml, parser, tree
from ._options import _merge_default_options
from .classifier import Classification, classify
from .errors import AlgebraicLoopError, UnderdeterminedSystemError
from .model import Model
from .units import UnitRegistry, default_registry

logger = logging.getLogger("cellode")


def translate_math(document: ast.Document, units: UnitRegistry = None) -> List[ast.Equation]:
    """Translate the math blocks of all components, in document order"""
    equations = []
    for component in document.components.values():
        lookup = parser.unit_lookup(document, component.name, units)
        for math in component.math:
            block, _ = mathml.translate(math, component.name, lookup)
            equations.extend(block)
    logger.info("Translated %d equations", len(equations))
    return equations


def sort_equations(classification: Classification, equations: List[ast.Equation]) -> List[ast.Equation]:
    """
    Order equations so each one comes after the equations defining the
    algebraic variables and derivatives it uses. Ties keep the given order.
    """
    index = {id(e): i for i, e in enumerate(equations)}
    dependencies = []
    for e in equations:
        refs = tree.collect_symbols(e.right)
        deps = set()
        for name in refs.symbols:
            if name in classification.algebraic_equations:
                deps.add(index[id(classification.algebraic_equations[name])])
        for name in refs.derivatives:
            deps.add(index[id(classification.derivative_equations[name])])
        dependencies.append(deps)

    dependents = [[] for _ in equations]
    n_deps = []
    for i, deps in enumerate(dependencies):
        n_deps.append(len(deps))
        for d in deps:
            dependents[d].append(i)

    ready = [i for i, n in enumerate(n_deps) if n == 0]
    heapq.heapify(ready)
    order = []
    while ready:
        i = heapq.heappop(ready)
        order.append(i)
        for j in dependents[i]:
            n_deps[j] -= 1
            if n_deps[j] == 0:
                heapq.heappush(ready, j)

    if len(order) != len(equations):
        # Drop equations that only use the loop until every one left is used by another
        remaining = set(range(len(equations))) - set(order)
        while True:
            used = {d for j in remaining for d in dependencies[j]}
            pruned = remaining & used
            if pruned == remaining:
                break
            remaining = pruned
        loop = [str(equations[i].left) for i in sorted(remaining)]
        raise AlgebraicLoopError(
            "Equations for {} depend on each other".format(", ".join(loop)),
            values=loop)
    return [equations[i] for i in order]


def _resolve_value(name: str, initial_values: Dict, seen=()) -> float:
    value = initial_values.get(name)
    if isinstance(value, ast.Symbol):
        if value.name in seen or value.name == name:
            raise UnderdeterminedSystemError(
                "Initial value of '{}' refers to itself".format(name), symbol=name)
        if value.name not in initial_values:
            raise UnderdeterminedSystemError(
                "Initial value of '{}' refers to '{}' which has no value".format(name, value.name),
                symbol=name)
        return _resolve_value(value.name, initial_values, seen + (name,))
    return value


class ModelAssembler:
    """
    Translates one CellML document to a Model.

    Errors of any stage propagate unchanged.
    """

    def __init__(self, model_txt: Union[str, bytes], units: UnitRegistry = None,
                 options: Dict = None):
        self.model_txt = model_txt
        self.units = default_registry() if units is None else units
        self.options = _merge_default_options(options)

    def build(self) -> Model:
        document = parser.parse(self.model_txt, self.units)
        equations = translate_math(document, self.units)
        aliases = tree.resolve_connections(document, self.options)
        flat = tree.flatten(document, aliases, equations, self.options)
        classification = classify(flat)
        return self.assemble(flat, classification)

    def assemble(self, flat: tree.FlatModel, classification: Classification) -> Model:
        model = Model()
        model.name = flat.name
        model.time = classification.time
        model.states = list(classification.states)
        model.alg_states = list(classification.alg_states)
        model.parameters = list(classification.parameters)
        model.symbols = OrderedDict(flat.symbols)

        if self.options['sort_equations']:
            model.equations = sort_equations(classification, flat.equations)
        else:
            model.equations = list(flat.equations)

        # States default first so references to them resolve to the same start value
        initial_values = OrderedDict(flat.initial_values)
        for s in model.states:
            if s.name not in initial_values:
                logger.warning("State %s has no initial value, using 0.0", s.name)
                initial_values[s.name] = 0.0

        for s in model.parameters:
            model._values[s.name] = float(_resolve_value(s.name, initial_values))
        for s in model.states:
            model._start[s.name] = float(_resolve_value(s.name, initial_values))

        model.check_balanced()
        logger.info("Assembled model %s", model.name)
        return model


def build(model_txt: Union[str, bytes], units: UnitRegistry = None, options: Dict = None) -> Model:
    return ModelAssembler(model_txt, units, options).build()


def build_file(file_path: str, units: UnitRegistry = None, options: Dict = None) -> Model:
    with open(file_path, 'rb') as f:
        txt = f.read()
    return build(txt, units, options)
