#!/usr/bin/env python
"""
MathML content markup to expression tree translation.
"""
from __future__ import absolute_import, division, print_function, unicode_literals

import logging
from typing import Callable, List, Set, Tuple

from lxml import etree

from . import ast
from .errors import MalformedDocumentError, UnsupportedOperatorError

logger = logging.getLogger("cellode")

MATHML_NS = "http://www.w3.org/1998/Math/MathML"

# Qualifier elements that annotate an <apply> rather than being operands
QUALIFIERS = ("bvar", "degree", "logbase")

# MathML operator element -> (expression operator, minimum operands, maximum operands)
OP_MAP = {
    "plus": ("+", 1, None),
    "minus": ("-", 1, 2),
    "times": ("*", 1, None),
    "divide": ("/", 2, 2),
    "power": ("^", 2, 2),
    "rem": ("fmod", 2, 2),
    "min": ("min", 1, None),
    "max": ("max", 1, None),
    "abs": ("abs", 1, 1),
    "exp": ("exp", 1, 1),
    "ln": ("log", 1, 1),
    "floor": ("floor", 1, 1),
    "ceiling": ("ceil", 1, 1),
    "sin": ("sin", 1, 1),
    "cos": ("cos", 1, 1),
    "tan": ("tan", 1, 1),
    "sec": ("sec", 1, 1),
    "csc": ("csc", 1, 1),
    "cot": ("cot", 1, 1),
    "sinh": ("sinh", 1, 1),
    "cosh": ("cosh", 1, 1),
    "tanh": ("tanh", 1, 1),
    "sech": ("sech", 1, 1),
    "csch": ("csch", 1, 1),
    "coth": ("coth", 1, 1),
    "arcsin": ("asin", 1, 1),
    "arccos": ("acos", 1, 1),
    "arctan": ("atan", 1, 1),
    "arcsinh": ("asinh", 1, 1),
    "arccosh": ("acosh", 1, 1),
    "arctanh": ("atanh", 1, 1),
    "eq": ("==", 2, None),
    "neq": ("!=", 2, 2),
    "lt": ("<", 2, None),
    "gt": (">", 2, None),
    "leq": ("<=", 2, None),
    "geq": (">=", 2, None),
    "and": ("and", 1, None),
    "or": ("or", 1, None),
    "xor": ("xor", 1, None),
    "not": ("not", 1, 1),
}


def localname(e: etree._Element) -> str:
    return etree.QName(e).localname


# noinspection PyProtectedMember,PyPep8Naming
class MathListener:
    """Converts a MathML content block of one component to equations"""

    def __init__(self, component: str, unit_lookup: Callable[[str], ast.Unit] = None):
        self.depth = 0
        self.model = {}
        self.component = component
        self.unit_lookup = unit_lookup
        self.references = set()  # type: Set[str]

    def call(self, tag_name: str, *args, **kwargs):
        """Convenience method for calling methods with walker."""
        if hasattr(self, tag_name):
            getattr(self, tag_name)(*args, **kwargs)

    # ------------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------------

    def error(self, cls, msg: str, tree: etree._Element, **context):
        return cls(
            "{} in component '{}' (line {})".format(msg, self.component, tree.sourceline),
            component=self.component, line=tree.sourceline, **context)

    def operand(self, tree: etree._Element):
        value = self.model.get(tree)
        if value is None:
            name = localname(tree)
            raise self.error(
                UnsupportedOperatorError, "Unsupported MathML element '{}'".format(name),
                tree, operator=name)
        return value

    def operands(self, tree: etree._Element) -> list:
        return [self.operand(c) for c in tree[1:] if localname(c) not in QUALIFIERS]

    def qualifier(self, tree: etree._Element, name: str):
        for c in tree[1:]:
            if localname(c) == name:
                return c
        return None

    # ------------------------------------------------------------------------
    # Listener Methods
    # ------------------------------------------------------------------------

    def enter_every_before(self, tree: etree._Element):
        self.model[tree] = None
        logger.debug("%s%s {", "   " * self.depth, localname(tree))
        self.depth += 1

    def exit_every_after(self, tree: etree._Element):
        self.depth -= 1
        if self.model[tree] is not None:
            logger.debug("%smodel: %s", "   " * self.depth, self.model[tree])
        logger.debug("%s} %s", "   " * self.depth, localname(tree))

    def exit_ci(self, tree: etree._Element):
        name = (tree.text or "").strip()
        if not name:
            raise self.error(MalformedDocumentError, "Empty <ci> element", tree)
        self.references.add(name)
        self.model[tree] = ast.ComponentRef(name=name, component=self.component)

    def exit_cn(self, tree: etree._Element):
        cn_type = tree.attrib.get("type", "real")
        text = (tree.text or "").strip()
        try:
            if cn_type in ("e-notation", "rational"):
                sep = tree[0] if len(tree) else None
                if sep is None or localname(sep) != "sep":
                    raise ValueError(text)
                sep_text = (sep.tail or "").strip()
                if cn_type == "e-notation":
                    value = float("{}e{}".format(text, sep_text))
                else:
                    denominator = float(sep_text)
                    if denominator == 0.0:
                        raise self.error(
                            MalformedDocumentError,
                            "Rational number '{}/{}' has a zero denominator".format(text, sep_text),
                            tree)
                    value = float(text) / denominator
            elif cn_type == "integer":
                value = float(int(text, int(tree.attrib.get("base", "10"))))
            elif cn_type in ("real", "double"):
                value = float(text)
            else:
                raise self.error(
                    UnsupportedOperatorError, "Unsupported <cn> type '{}'".format(cn_type),
                    tree, operator="cn")
        except (ValueError, OverflowError):
            raise self.error(MalformedDocumentError, "Invalid number '{}'".format(text), tree)

        units = None
        for key, units_name in tree.attrib.items():
            if etree.QName(key).localname == "units" and self.unit_lookup is not None:
                units = self.unit_lookup(units_name)
        self.model[tree] = ast.Primary(value=value, units=units)

    def exit_sep(self, tree: etree._Element):
        pass

    def _constant(self, tree: etree._Element):
        self.model[tree] = ast.Constant(name=localname(tree))

    exit_pi = _constant
    exit_exponentiale = _constant
    exit_true = _constant
    exit_false = _constant
    exit_infinity = _constant
    exit_notanumber = _constant

    def exit_bvar(self, tree: etree._Element):
        refs = [self.model.get(c) for c in tree if localname(c) == "ci"]
        if len(refs) != 1:
            raise self.error(MalformedDocumentError, "<bvar> must hold exactly one <ci>", tree)
        self.model[tree] = refs[0]

    def exit_degree(self, tree: etree._Element):
        if len(tree) != 1:
            raise self.error(MalformedDocumentError, "<degree> must hold exactly one element", tree)
        self.model[tree] = self.operand(tree[0])

    exit_logbase = exit_degree

    def exit_semantics(self, tree: etree._Element):
        # The first child holds the content markup, the rest are annotations
        self.model[tree] = self.operand(tree[0])

    def exit_piecewise(self, tree: etree._Element):
        pieces = []
        otherwise = None
        for c in tree:
            name = localname(c)
            if name == "piece":
                if len(c) != 2:
                    raise self.error(MalformedDocumentError, "<piece> needs a value and a condition", c)
                pieces.append([self.operand(c[0]), self.operand(c[1])])
            elif name == "otherwise":
                if len(c) != 1 or otherwise is not None:
                    raise self.error(MalformedDocumentError, "Invalid <otherwise>", c)
                otherwise = self.operand(c[0])
            else:
                raise self.error(
                    UnsupportedOperatorError, "Unsupported element '{}' in <piecewise>".format(name),
                    c, operator=name)
        self.model[tree] = ast.Piecewise(pieces=pieces, otherwise=otherwise)

    def exit_apply(self, tree: etree._Element):
        if len(tree) == 0:
            raise self.error(MalformedDocumentError, "Empty <apply>", tree)
        op = localname(tree[0])

        if op == "diff":
            self.model[tree] = self.diff(tree)
            return
        if op == "root":
            self.model[tree] = self.root(tree)
            return
        if op == "log":
            self.model[tree] = self.log(tree)
            return
        if op not in OP_MAP:
            raise self.error(
                UnsupportedOperatorError, "Unsupported MathML operator '{}'".format(op),
                tree, operator=op)

        operator, n_min, n_max = OP_MAP[op]
        operands = self.operands(tree)
        if len(operands) < n_min or (n_max is not None and len(operands) > n_max):
            raise self.error(
                MalformedDocumentError,
                "Operator '{}' applied to {} operands".format(op, len(operands)), tree)
        if operator in ("+", "*") and len(operands) == 1:
            self.model[tree] = operands[0]
        else:
            self.model[tree] = ast.Expression(operator=operator, operands=operands)

    # ------------------------------------------------------------------------
    # OPERATORS
    # ------------------------------------------------------------------------

    def diff(self, tree: etree._Element) -> ast.Derivative:
        bvar = self.qualifier(tree, "bvar")
        operands = self.operands(tree)
        if bvar is None or len(operands) != 1 or not isinstance(operands[0], ast.ComponentRef):
            raise self.error(
                MalformedDocumentError, "<diff> needs a <bvar> and a single variable", tree)
        degree = None
        for c in bvar:
            if localname(c) == "degree":
                degree = self.model[c]
        if degree is not None and not (isinstance(degree, ast.Primary) and degree.value == 1):
            raise self.error(
                UnsupportedOperatorError, "Only first order derivatives are supported",
                tree, operator="diff")
        return ast.Derivative(operand=operands[0], bvar=self.model[bvar])

    def root(self, tree: etree._Element) -> ast.Expression:
        operands = self.operands(tree)
        if len(operands) != 1:
            raise self.error(MalformedDocumentError, "<root> takes a single operand", tree)
        degree = self.qualifier(tree, "degree")
        if degree is None:
            return ast.Expression(operator="sqrt", operands=operands)
        exponent = ast.Expression(operator="/", operands=[ast.Primary(value=1.0), self.model[degree]])
        return ast.Expression(operator="^", operands=[operands[0], exponent])

    def log(self, tree: etree._Element) -> ast.Expression:
        operands = self.operands(tree)
        if len(operands) != 1:
            raise self.error(MalformedDocumentError, "<log> takes a single operand", tree)
        base = self.qualifier(tree, "logbase")
        if base is None:
            return ast.Expression(operator="log10", operands=operands)
        return ast.Expression(operator="/", operands=[
            ast.Expression(operator="log", operands=operands),
            ast.Expression(operator="log", operands=[self.model[base]]),
        ])

    def equation(self, tree: etree._Element) -> ast.Equation:
        """Convert a top level <apply><eq/> lhs rhs</apply> to an equation"""
        if localname(tree) == "semantics":
            tree = tree[0]
        if localname(tree) != "apply" or len(tree) != 3 or localname(tree[0]) != "eq":
            raise self.error(
                UnsupportedOperatorError,
                "Expected an <apply><eq/> equation, found '{}'".format(localname(tree)),
                tree, operator=localname(tree))
        left, right = self.operand(tree[1]), self.operand(tree[2])

        def is_target(e):
            return isinstance(e, (ast.ComponentRef, ast.Derivative))

        if not is_target(left) and is_target(right):
            left, right = right, left
        if not is_target(left):
            raise self.error(
                UnsupportedOperatorError,
                "Implicit equation '{} = {}' is not supported".format(left, right),
                tree, operator="eq")
        return ast.Equation(left=left, right=right, component=self.component)


# noinspection PyProtectedMember
def walk(e: etree._Element, l: MathListener) -> None:
    tag = localname(e)
    l.call('enter_every_before', e)
    l.call('enter_' + tag, e)
    for c in e:
        if isinstance(c.tag, str):
            walk(c, l)
    l.call('exit_' + tag, e)
    l.call('exit_every_after', e)


def translate(math: etree._Element, component: str,
              unit_lookup: Callable[[str], ast.Unit] = None) -> Tuple[List[ast.Equation], Set[str]]:
    """
    Translate one <math> block.

    :param math: the <math> element
    :param component: name of the owning component
    :param unit_lookup: resolves units named on <cn> elements
    :return: equations and the names of all variables they reference
    """
    listener = MathListener(component, unit_lookup)
    equations = []
    for c in math:
        if not isinstance(c.tag, str):
            continue
        walk(c, listener)
        equations.append(listener.equation(c))
    return equations, listener.references
