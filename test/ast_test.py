#!/usr/bin/env python
"""
Test expression and document tree nodes
"""
from __future__ import absolute_import, division, print_function, unicode_literals

import json
import unittest

from cellode import ast


class AstTest(unittest.TestCase):

    def test_invalid_arg(self):
        with self.assertRaises(KeyError):
            ast.Primary(value=1.0, colour="red")

    def test_interface(self):
        self.assertEqual(ast.Interface.from_legacy("out", "none"), ast.Interface.PUBLIC)
        self.assertEqual(ast.Interface.from_legacy("none", "in"), ast.Interface.PRIVATE)
        self.assertEqual(ast.Interface.from_legacy("in", "out"), ast.Interface.PUBLIC_AND_PRIVATE)
        self.assertEqual(ast.Interface.from_legacy("none", "none"), ast.Interface.NONE)
        self.assertEqual(ast.Interface.from_string("public"), ast.Interface.PUBLIC)
        self.assertTrue(ast.Interface.PUBLIC_AND_PRIVATE.public)
        self.assertTrue(ast.Interface.PUBLIC_AND_PRIVATE.private)
        self.assertFalse(ast.Interface.NONE.public)
        self.assertEqual(str(ast.Interface.PRIVATE), "private")
        with self.assertRaises(ValueError):
            ast.Interface.from_string("protected")

    def test_equation(self):
        x = ast.Symbol(name="x")
        k = ast.Symbol(name="k")
        t = ast.Symbol(name="time")
        rhs = ast.Expression(operator="*", operands=[ast.Expression(operator="-", operands=[k]), x])

        ode = ast.Equation(left=ast.Derivative(operand=x, bvar=t), right=rhs)
        self.assertTrue(ode.is_derivative)
        self.assertIs(ode.target, x)
        self.assertEqual(str(ode), "der(x) = (-k * x)")

        alg = ast.Equation(left=k, right=ast.Primary(value=2.0))
        self.assertFalse(alg.is_derivative)
        self.assertIs(alg.target, k)
        self.assertEqual(str(alg), "k = 2.0")

    def test_piecewise_str(self):
        t = ast.Symbol(name="t")
        tree = ast.Piecewise(
            pieces=[[ast.Primary(value=1.0),
                     ast.Expression(operator="<", operands=[t, ast.Primary(value=0.0)])]],
            otherwise=ast.Constant(name="pi"))
        self.assertEqual(str(tree), "piecewise((1.0, (t < 0.0)), pi)")

    def test_to_json(self):
        component = ast.Component(name="c")
        component.variables["v"] = ast.Variable(
            name="v", component="c", interface=ast.Interface.PUBLIC, initial_value=1.0)
        component.math = [object()]
        d = ast.Node.to_json(component)
        self.assertNotIn("math", d)
        self.assertEqual(d["variables"]["v"]["interface"], "public")
        json.dumps(d)

        symbol = ast.Symbol(name="v", aliases={"b.v", "a.v"})
        self.assertEqual(ast.Node.to_json(symbol)["aliases"], ["a.v", "b.v"])

    def test_document(self):
        document = ast.Document(name="d")
        for name in ("a", "b"):
            component = ast.Component(name=name)
            component.variables["v"] = ast.Variable(name="v", component=name)
            document.components[name] = component
        document.encapsulation["b"] = "a"
        self.assertEqual(document.parent("b"), "a")
        self.assertIsNone(document.parent("a"))
        self.assertEqual([str(v) for v in document.variables()], ["a.v", "b.v"])


if __name__ == "__main__":
    unittest.main()
