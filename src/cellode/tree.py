#!/usr/bin/env python
"""
Tools for tree walking, connection resolution and flattening.
"""

from __future__ import absolute_import, division, print_function, unicode_literals

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Tuple, Union

from . import ast
from ._options import _merge_default_options
from .alias_relation import AliasRelation
from .errors import (
    ConflictingInitialValueError,
    InterfaceMismatchError,
    UndeclaredVariableError,
)

logger = logging.getLogger("cellode")


class TreeListener:
    """
    Defines interface for tree listeners.
    """

    def __init__(self):
        self.context = {}

    def enterEvery(self, tree: ast.Node) -> None:
        self.context[type(tree).__name__] = tree

    def exitEvery(self, tree: ast.Node):
        self.context[type(tree).__name__] = None

    # -------------------------------------------------------------------------
    # enter ast listeners (sorted alphabetically)
    # -------------------------------------------------------------------------

    def enterComponentRef(self, tree: ast.ComponentRef) -> None:
        pass

    def enterConstant(self, tree: ast.Constant) -> None:
        pass

    def enterDerivative(self, tree: ast.Derivative) -> None:
        pass

    def enterEquation(self, tree: ast.Equation) -> None:
        pass

    def enterExpression(self, tree: ast.Expression) -> None:
        pass

    def enterPiecewise(self, tree: ast.Piecewise) -> None:
        pass

    def enterPrimary(self, tree: ast.Primary) -> None:
        pass

    def enterSymbol(self, tree: ast.Symbol) -> None:
        pass

    # -------------------------------------------------------------------------
    # exit ast listeners (sorted alphabetically)
    # -------------------------------------------------------------------------

    def exitComponentRef(self, tree: ast.ComponentRef) -> None:
        pass

    def exitConstant(self, tree: ast.Constant) -> None:
        pass

    def exitDerivative(self, tree: ast.Derivative) -> None:
        pass

    def exitEquation(self, tree: ast.Equation) -> None:
        pass

    def exitExpression(self, tree: ast.Expression) -> None:
        pass

    def exitPiecewise(self, tree: ast.Piecewise) -> None:
        pass

    def exitPrimary(self, tree: ast.Primary) -> None:
        pass

    def exitSymbol(self, tree: ast.Symbol) -> None:
        pass


class TreeWalker:
    """
    Defines methods for tree walker. Inherit from this to make your own.
    """

    def skip_child(self, tree: ast.Node, child_name: str) -> bool:
        """
        Skip certain childs in the tree walking. By default units and alias
        metadata are not part of the expression tree.
        :return: True if child needs to be skipped, False otherwise.
        """
        return child_name in ("units", "aliases")

    def order_keys(self, keys: Iterable[str]):
        return keys

    def walk(self, listener: TreeListener, tree: ast.Node) -> None:
        """
        Walks an AST tree recursively
        :param listener:
        :param tree:
        :return: None
        """
        name = tree.__class__.__name__
        if hasattr(listener, "enterEvery"):
            listener.enterEvery(tree)
        if hasattr(listener, "enter" + name):
            getattr(listener, "enter" + name)(tree)
        for child_name in self.order_keys(tree.__dict__.keys()):
            if self.skip_child(tree, child_name):
                continue
            self.handle_walk(listener, tree.__dict__[child_name])
        if hasattr(listener, "exitEvery"):
            listener.exitEvery(tree)
        if hasattr(listener, "exit" + name):
            getattr(listener, "exit" + name)(tree)

    def handle_walk(self, listener: TreeListener, tree: Union[ast.Node, dict, list]) -> None:
        """
        Handles tree walking, has to account for dictionaries and lists
        :param listener: listener that reacts to walked events
        :param tree: the tree to walk
        :return: None
        """
        if isinstance(tree, ast.Node):
            self.walk(listener, tree)
        elif isinstance(tree, dict):
            for k in tree.keys():
                self.handle_walk(listener, tree[k])
        elif isinstance(tree, (list, tuple)):
            for i in range(len(tree)):
                self.handle_walk(listener, tree[i])
        else:
            pass


class SymbolCollector(TreeListener):
    """
    Collects the symbols an expression depends on. Symbols that only appear
    under a derivative are collected separately.
    """

    def __init__(self):
        super().__init__()
        self.symbols = OrderedDict()  # type: OrderedDict[str, ast.Symbol]
        self.derivatives = OrderedDict()  # type: OrderedDict[str, ast.Symbol]
        self.bvars = OrderedDict()  # type: OrderedDict[str, ast.Symbol]
        self.in_derivative = 0

    def enterDerivative(self, tree: ast.Derivative):
        self.derivatives[tree.operand.name] = tree.operand
        self.bvars[tree.bvar.name] = tree.bvar
        self.in_derivative += 1

    def exitDerivative(self, tree: ast.Derivative):
        self.in_derivative -= 1

    def exitSymbol(self, tree: ast.Symbol):
        if not self.in_derivative:
            self.symbols[tree.name] = tree


def collect_symbols(tree: ast.Node) -> SymbolCollector:
    collector = SymbolCollector()
    TreeWalker().walk(collector, tree)
    return collector


# -----------------------------------------------------------------------------
# Connection resolution
# -----------------------------------------------------------------------------


def _lookup_variable(document: ast.Document, component: str, name: str,
                     connection: ast.Connection) -> ast.Variable:
    if component not in document.components:
        raise UndeclaredVariableError(
            "Connection (line {}) refers to unknown component '{}'".format(
                connection.line, component),
            component=component, variable=name, line=connection.line)
    variables = document.components[component].variables
    if name not in variables:
        raise UndeclaredVariableError(
            "Connection (line {}) refers to variable '{}' which is not declared "
            "in component '{}'".format(connection.line, name, component),
            component=component, variable=name, line=connection.line)
    return variables[name]


def check_interfaces(document: ast.Document, a: ast.Variable, b: ast.Variable) -> None:
    """
    Siblings connect through public interfaces; a parent connects its private
    interface to the public interface of an encapsulated child.
    """
    parent_a = document.parent(a.component)
    parent_b = document.parent(b.component)

    if a.component == b.component:
        ok = False
        relation = "the same component"
    elif parent_a == parent_b:
        ok = a.interface.public and b.interface.public
        relation = "siblings"
    elif parent_b == a.component:
        ok = a.interface.private and b.interface.public
        relation = "parent and child"
    elif parent_a == b.component:
        ok = a.interface.public and b.interface.private
        relation = "child and parent"
    else:
        ok = False
        relation = "neither siblings nor parent and child"

    if not ok:
        raise InterfaceMismatchError(
            "Cannot connect '{}' ({} interface) to '{}' ({} interface): components "
            "are {}".format(a, a.interface, b, b.interface, relation),
            component=a.component, variable=a.name, values=(a.interface, b.interface))


def resolve_connections(document: ast.Document, options: Dict = None) -> AliasRelation:
    """
    Merge connected variables into equivalence classes.

    :param document: parsed document
    :param options: translation options
    :return: alias relation over (component, variable) tuples
    """
    options = _merge_default_options(options)
    aliases = AliasRelation()
    for connection in document.connections:
        for name_1, name_2 in connection.variables:
            a = _lookup_variable(document, connection.component_1, name_1, connection)
            b = _lookup_variable(document, connection.component_2, name_2, connection)
            if options['check_interfaces']:
                check_interfaces(document, a, b)
            logger.debug("Connecting %s and %s", a, b)
            aliases.add(a.to_tuple(), b.to_tuple())
    logger.info("Resolved %d connections", len(document.connections))
    return aliases


# -----------------------------------------------------------------------------
# Flattening
# -----------------------------------------------------------------------------


class FlatModel:
    """
    Equations and initial values of a document over canonical symbols
    """

    def __init__(self):
        self.name = ""
        self.symbols = OrderedDict()  # type: OrderedDict[str, ast.Symbol]
        self.equations = []  # type: List[ast.Equation]
        self.initial_values = OrderedDict()  # type: OrderedDict[str, Union[float, ast.Symbol]]

    def __str__(self):
        r = ""
        r += "FlatModel\n"
        r += "symbols: " + str(list(self.symbols.keys())) + "\n"
        r += "equations: " + str([str(e) for e in self.equations]) + "\n"
        r += "initial values: " + str(dict(self.initial_values)) + "\n"
        return r


class ComponentRefFlattener(TreeListener):
    """
    A listener that rebuilds an expression with every component reference
    replaced by the canonical symbol of its class.
    """

    def __init__(self, symbols: Dict[Tuple[str, str], ast.Symbol]):
        super().__init__()
        self.symbols = symbols
        self.src = {}

    def exitPrimary(self, tree: ast.Primary):
        self.src[tree] = tree

    def exitConstant(self, tree: ast.Constant):
        self.src[tree] = tree

    def exitSymbol(self, tree: ast.Symbol):
        self.src[tree] = tree

    def exitComponentRef(self, tree: ast.ComponentRef):
        try:
            self.src[tree] = self.symbols[tree.to_tuple()]
        except KeyError:
            raise UndeclaredVariableError(
                "Variable '{}' is not declared in component '{}'".format(tree.name, tree.component),
                component=tree.component, variable=tree.name)

    def exitDerivative(self, tree: ast.Derivative):
        self.src[tree] = ast.Derivative(operand=self.src[tree.operand], bvar=self.src[tree.bvar])

    def exitExpression(self, tree: ast.Expression):
        self.src[tree] = ast.Expression(
            operator=tree.operator, operands=[self.src[o] for o in tree.operands])

    def exitPiecewise(self, tree: ast.Piecewise):
        self.src[tree] = ast.Piecewise(
            pieces=[[self.src[v], self.src[c]] for v, c in tree.pieces],
            otherwise=None if tree.otherwise is None else self.src[tree.otherwise])

    def exitEquation(self, tree: ast.Equation):
        self.src[tree] = ast.Equation(
            left=self.src[tree.left], right=self.src[tree.right], component=tree.component)


def flatten_component_refs(symbols: Dict[Tuple[str, str], ast.Symbol], tree: ast.Node) -> ast.Node:
    """
    Flattens component refs in a tree
    :param symbols: canonical symbol for every (component, variable)
    :param tree: original tree, left untouched
    :return: flattened tree
    """
    flattener = ComponentRefFlattener(symbols)
    TreeWalker().walk(flattener, tree)
    return flattener.src[tree]


def canonical_member(members: List[ast.Variable]) -> ast.Variable:
    """
    The member with a public interface if exactly one has one, otherwise the
    first member in document order.
    """
    public = [m for m in members if m.interface.public]
    if len(public) == 1:
        return public[0]
    return members[0]


def _canonical_names(chosen: List[ast.Variable], separator: str) -> List[str]:
    counts = {}
    for v in chosen:
        counts[v.name] = counts.get(v.name, 0) + 1
    names = []
    used = set()
    for v in chosen:
        name = v.name if counts[v.name] == 1 else v.component + separator + v.name
        unique = name
        i = 1
        while unique in used:
            unique = "{}_{}".format(name, i)
            i += 1
        used.add(unique)
        names.append(unique)
    return names


def _merge_initial_values(symbol: ast.Symbol, members: List[ast.Variable],
                          symbols: Dict[Tuple[str, str], ast.Symbol]):
    declared = []
    for m in members:
        value = m.initial_value
        if value is None:
            continue
        if isinstance(value, str):
            try:
                value = symbols[(m.component, value)]
            except KeyError:
                raise UndeclaredVariableError(
                    "Initial value of '{}' refers to variable '{}' which is not declared "
                    "in component '{}'".format(m, value, m.component),
                    component=m.component, variable=value, line=m.line)
        declared.append((m, value))

    distinct = []
    for _, value in declared:
        if not any(value is d or (isinstance(value, float) and value == d) for d in distinct):
            distinct.append(value)
    if len(distinct) > 1:
        raise ConflictingInitialValueError(
            "Conflicting initial values for '{}': {}".format(
                symbol.name, ", ".join("{} ({})".format(v, m) for m, v in declared)),
            symbol=symbol.name, values=[v for _, v in declared])
    return distinct[0] if distinct else None


def flatten(document: ast.Document, aliases: AliasRelation, equations: List[ast.Equation],
            options: Dict = None) -> FlatModel:
    """
    Give every class of connected variables one canonical symbol and rewrite
    equations and initial values in terms of those symbols.

    :param document: parsed document
    :param aliases: classes of connected variables
    :param equations: equations over component references
    :param options: translation options
    :return: flat model
    """
    options = _merge_default_options(options)
    variables = document.variables()
    by_key = OrderedDict((v.to_tuple(), v) for v in variables)
    classes = [[by_key[k] for k in keys] for keys in aliases.partition(by_key.keys())]

    chosen = [canonical_member(members) for members in classes]
    names = _canonical_names(chosen, options['name_separator'])

    flat = FlatModel()
    flat.name = document.name
    symbols = {}
    for name, canonical, members in zip(names, chosen, classes):
        symbol = ast.Symbol(
            name=name,
            units=canonical.units,
            aliases={str(m) for m in members},
            order=members[0].order,
        )
        flat.symbols[name] = symbol
        for m in members:
            symbols[m.to_tuple()] = symbol
        if len(members) > 1:
            logger.debug("Merged %s into %s", ", ".join(str(m) for m in members), name)

    for symbol, members in zip(flat.symbols.values(), classes):
        value = _merge_initial_values(symbol, members, symbols)
        if value is not None:
            flat.initial_values[symbol.name] = value

    flat.equations = [flatten_component_refs(symbols, e) for e in equations]
    logger.info("Flattened %d variables into %d symbols", len(variables), len(flat.symbols))
    return flat
