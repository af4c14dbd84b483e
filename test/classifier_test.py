#!/usr/bin/env python
"""
Test classification into states, algebraic variables and parameters
"""
from __future__ import absolute_import, division, print_function, unicode_literals

import os
import unittest

from cellode import assembler, parser, tree
from cellode.classifier import classify
from cellode.errors import (
    ClassificationError,
    IndependentVariableError,
    OverdeterminedSystemError,
    UnderdeterminedSystemError,
)

TEST_DIR = os.path.dirname(os.path.realpath(__file__))
MODEL_DIR = os.path.join(TEST_DIR, "models")

DERIVATIVE = "<apply><eq/><apply><diff/><bvar><ci>{bvar}</ci></bvar><ci>{x}</ci></apply>{rhs}</apply>"
ASSIGN = "<apply><eq/><ci>{x}</ci>{rhs}</apply>"


def classify_txt(variables, *equations):
    decls = "".join(
        '<variable name="{}" units="dimensionless"{}/>'.format(
            name, '' if value is None else ' initial_value="{}"'.format(value))
        for name, value in variables)
    txt = ('<model name="test" xmlns="http://www.cellml.org/cellml/1.0#">'
           '<component name="c">{}<math xmlns="http://www.w3.org/1998/Math/MathML">{}</math>'
           '</component></model>').format(decls, "".join(equations))
    document = parser.parse(txt)
    equations = assembler.translate_math(document)
    flat = tree.flatten(document, tree.resolve_connections(document), equations)
    return classify(flat)


def names(symbols):
    return [s.name for s in symbols]


class ClassifierTest(unittest.TestCase):

    def test_membrane(self):
        document = parser.parse_file(os.path.join(MODEL_DIR, "membrane.cellml"))
        equations = assembler.translate_math(document)
        flat = tree.flatten(document, tree.resolve_connections(document), equations)
        c = classify(flat)

        self.assertEqual(c.time.name, "time")
        self.assertEqual(names(c.states), ["V"])
        self.assertEqual(names(c.alg_states), ["i_leak", "i_stim"])
        self.assertEqual(names(c.parameters), ["Cm", "g_L", "E_L"])
        self.assertEqual(list(c.derivative_equations.keys()), ["V"])
        self.assertEqual(list(c.algebraic_equations.keys()), ["i_stim", "i_leak"])

    def test_partition(self):
        c = classify_txt(
            [("t", None), ("x", 1), ("y", None), ("k", 2), ("unused", 3)],
            DERIVATIVE.format(bvar="t", x="x", rhs="<ci>y</ci>"),
            ASSIGN.format(x="y", rhs="<apply><times/><ci>k</ci><ci>x</ci></apply>"))
        groups = [names(c.states), names(c.alg_states), names(c.parameters)]
        self.assertEqual(groups, [["x"], ["y"], ["k", "unused"]])
        everything = [n for group in groups for n in group]
        self.assertEqual(len(everything), len(set(everything)))
        self.assertNotIn("t", everything)

    def test_no_derivatives(self):
        c = classify_txt([("a", None), ("b", 2)], ASSIGN.format(x="a", rhs="<ci>b</ci>"))
        self.assertIsNone(c.time)
        self.assertEqual(names(c.states), [])
        self.assertEqual(names(c.alg_states), ["a"])

    def test_underdetermined(self):
        with self.assertRaises(UnderdeterminedSystemError) as cm:
            classify_txt(
                [("t", None), ("x", 1), ("z", None)],
                DERIVATIVE.format(bvar="t", x="x", rhs="<ci>z</ci>"))
        self.assertEqual(cm.exception.symbol, "z")

    def test_undefined_derivative(self):
        # der(y) is used but y has no equation of its own
        with self.assertRaises(UnderdeterminedSystemError) as cm:
            classify_txt(
                [("t", None), ("x", 1), ("y", 1)],
                DERIVATIVE.format(
                    bvar="t", x="x",
                    rhs="<apply><diff/><bvar><ci>t</ci></bvar><ci>y</ci></apply>"))
        self.assertEqual(cm.exception.symbol, "y")
        self.assertIsInstance(cm.exception, ClassificationError)

    def test_overdetermined(self):
        with self.assertRaises(OverdeterminedSystemError) as cm:
            classify_txt(
                [("a", None), ("b", 1)],
                ASSIGN.format(x="a", rhs="<ci>b</ci>"),
                ASSIGN.format(x="a", rhs="<cn>2</cn>"))
        self.assertEqual(cm.exception.symbol, "a")

        with self.assertRaises(OverdeterminedSystemError):
            classify_txt(
                [("t", None), ("x", 1)],
                DERIVATIVE.format(bvar="t", x="x", rhs="<cn>1</cn>"),
                DERIVATIVE.format(bvar="t", x="x", rhs="<cn>2</cn>"))

    def test_mixed_definitions(self):
        with self.assertRaises(OverdeterminedSystemError):
            classify_txt(
                [("t", None), ("x", 1)],
                DERIVATIVE.format(bvar="t", x="x", rhs="<cn>1</cn>"),
                ASSIGN.format(x="x", rhs="<cn>2</cn>"))

    def test_time_defined(self):
        with self.assertRaises(OverdeterminedSystemError):
            classify_txt(
                [("t", None), ("x", 1)],
                DERIVATIVE.format(bvar="t", x="x", rhs="<cn>1</cn>"),
                ASSIGN.format(x="t", rhs="<cn>2</cn>"))

    def test_two_independent_variables(self):
        with self.assertRaises(IndependentVariableError):
            classify_txt(
                [("t", None), ("s", None), ("x", 1), ("y", 1)],
                DERIVATIVE.format(bvar="t", x="x", rhs="<cn>1</cn>"),
                DERIVATIVE.format(bvar="s", x="y", rhs="<cn>1</cn>"))


if __name__ == "__main__":
    unittest.main()
