#!/usr/bin/env python
"""
Test CellML document parsing
"""
from __future__ import absolute_import, division, print_function, unicode_literals

import os
import unittest

from cellode import ast, parser
from cellode.errors import MalformedDocumentError, ParseError, UnknownUnitError

TEST_DIR = os.path.dirname(os.path.realpath(__file__))
MODEL_DIR = os.path.join(TEST_DIR, "models")

CELLML_10 = "http://www.cellml.org/cellml/1.0#"


def cellml(body, name="test", namespace=CELLML_10):
    return '<model name="{}" xmlns="{}" xmlns:cellml="{}">{}</model>'.format(
        name, namespace, namespace, body)


class ParseTest(unittest.TestCase):

    def test_decay(self):
        doc = parser.parse_file(os.path.join(MODEL_DIR, "decay.cellml"))
        self.assertEqual(doc.name, "decay")
        self.assertEqual(list(doc.components.keys()), ["X", "Y"])
        self.assertEqual(doc.connections, [])

        x = doc.components["X"]
        self.assertEqual(list(x.variables.keys()), ["time", "x", "k"])
        self.assertEqual(x.variables["x"].initial_value, 1.0)
        self.assertEqual(x.variables["k"].initial_value, 0.5)
        self.assertIsNone(x.variables["time"].initial_value)
        self.assertEqual(x.variables["k"].units.dimensions, {"second": -1})
        self.assertEqual(len(x.math), 1)
        self.assertEqual(len(doc.components["Y"].variables), 0)

    def test_membrane(self):
        doc = parser.parse_file(os.path.join(MODEL_DIR, "membrane.cellml"))
        self.assertEqual(doc.encapsulation, {"leak_current": "membrane"})
        self.assertEqual(doc.parent("leak_current"), "membrane")
        self.assertIsNone(doc.parent("environment"))

        self.assertEqual(len(doc.connections), 2)
        connection = doc.connections[1]
        self.assertEqual((connection.component_1, connection.component_2), ("membrane", "leak_current"))
        self.assertEqual(connection.variables, [("V", "V"), ("i_leak", "i_leak")])

        membrane = doc.components["membrane"]
        self.assertEqual(membrane.variables["V"].interface, ast.Interface.PUBLIC_AND_PRIVATE)
        self.assertEqual(membrane.variables["i_leak"].interface, ast.Interface.PRIVATE)
        self.assertEqual(membrane.variables["i_stim"].interface, ast.Interface.NONE)
        self.assertEqual(membrane.variables["V"].initial_value, -80.0)

        mv = membrane.variables["V"].units
        self.assertEqual(mv.name, "mV")
        self.assertAlmostEqual(mv.multiplier, 1e-3)

        current = doc.units["uA_per_cm2"]
        self.assertAlmostEqual(current.multiplier, 1e-6 / 1e-4)
        self.assertEqual(current.dimensions, {"ampere": 1, "metre": -2})

        # Variables are numbered in document order
        orders = [v.order for v in doc.variables()]
        self.assertEqual(orders, sorted(orders))

    def test_cellml_2_0(self):
        txt = cellml(
            """
            <component name="parent">
              <variable name="a" units="second" interface="public_and_private" initial_value="2"/>
            </component>
            <component name="child">
              <variable name="a" units="second" interface="public"/>
              <variable name="b" units="second" initial_value="a"/>
            </component>
            <encapsulation>
              <component_ref component="parent">
                <component_ref component="child"/>
              </component_ref>
            </encapsulation>
            <connection component_1="parent" component_2="child">
              <map_variables variable_1="a" variable_2="a"/>
            </connection>
            """,
            namespace="http://www.cellml.org/cellml/2.0#")
        doc = parser.parse(txt)
        self.assertEqual(doc.encapsulation, {"child": "parent"})
        self.assertEqual(doc.connections[0].variables, [("a", "a")])
        self.assertEqual(doc.components["child"].variables["b"].initial_value, "a")
        self.assertEqual(doc.components["parent"].variables["a"].interface,
                         ast.Interface.PUBLIC_AND_PRIVATE)

    def test_units_order_and_scope(self):
        txt = cellml(
            """
            <units name="per_mM_per_ms">
              <unit units="mM" exponent="-1"/>
              <unit units="ms" exponent="-1"/>
            </units>
            <units name="ms"><unit prefix="-3" units="second"/></units>
            <units name="mM"><unit prefix="milli" units="mole"/><unit units="litre" exponent="-1"/></units>
            <component name="c">
              <units name="ms"><unit units="second"/></units>
              <variable name="t" units="ms"/>
              <variable name="k" units="per_mM_per_ms" initial_value="1"/>
            </component>
            <component name="d">
              <variable name="t" units="ms"/>
            </component>
            """)
        doc = parser.parse(txt)
        self.assertAlmostEqual(doc.units["per_mM_per_ms"].multiplier, 1e3)
        self.assertEqual(doc.units["per_mM_per_ms"].dimensions,
                         {"mole": -1, "metre": 3, "second": -1})
        # Component units shadow model units
        self.assertAlmostEqual(doc.components["c"].variables["t"].units.multiplier, 1.0)
        self.assertAlmostEqual(doc.components["d"].variables["t"].units.multiplier, 1e-3)

    def test_base_unit(self):
        txt = cellml(
            """
            <units name="cell" base_unit="yes"/>
            <units name="per_cell"><unit units="cell" exponent="-1"/></units>
            <component name="c"><variable name="n" units="per_cell" initial_value="3"/></component>
            """)
        doc = parser.parse(txt)
        self.assertEqual(doc.units["cell"].dimensions, {"cell": 1})
        self.assertEqual(doc.components["c"].variables["n"].units.dimensions, {"cell": -1})

    def test_not_well_formed(self):
        with self.assertRaises(MalformedDocumentError):
            parser.parse("<model name='a'><component></model>")

    def test_wrong_root(self):
        with self.assertRaises(MalformedDocumentError):
            parser.parse('<model name="a"/>')
        with self.assertRaises(MalformedDocumentError):
            parser.parse('<component xmlns="{}" name="a"/>'.format(CELLML_10))

    def test_malformed_documents(self):
        bodies = {
            "import": '<import xmlns:xlink="http://www.w3.org/1999/xlink" xlink:href="other.cellml"/>',
            "missing name": '<component><variable name="a" units="second"/></component>',
            "duplicate component": '<component name="a"/><component name="a"/>',
            "duplicate variable":
                '<component name="a"><variable name="v" units="second"/>'
                '<variable name="v" units="second"/></component>',
            "bad initial value":
                '<component name="a"><variable name="v" units="second" initial_value="1 + 2"/></component>',
            "bad interface":
                '<component name="a"><variable name="v" units="second" public_interface="up"/></component>',
            "variable outside component": '<variable name="v" units="second"/>',
            "duplicate units":
                '<units name="u"><unit units="second"/></units><units name="u"><unit units="metre"/></units>',
        }
        for label, body in bodies.items():
            with self.subTest(label):
                with self.assertRaises(MalformedDocumentError):
                    parser.parse(cellml(body))

    def test_error_carries_line(self):
        txt = cellml('\n<component name="a">\n<variable units="second"/>\n</component>')
        with self.assertRaises(MalformedDocumentError) as cm:
            parser.parse(txt)
        self.assertEqual(cm.exception.line, 3)
        self.assertIn("variable", str(cm.exception))

    def test_unknown_units(self):
        with self.assertRaises(UnknownUnitError) as cm:
            parser.parse(cellml('<component name="a"><variable name="v" units="furlong"/></component>'))
        self.assertEqual(cm.exception.unit, "furlong")
        self.assertIsInstance(cm.exception, ParseError)

    def test_units_cycle(self):
        txt = cellml(
            '<units name="a"><unit units="b"/></units>'
            '<units name="b"><unit units="a"/></units>'
            '<component name="c"><variable name="v" units="a"/></component>')
        with self.assertRaises(UnknownUnitError):
            parser.parse(txt)

    def test_comments_ignored(self):
        txt = cellml('<!-- a comment --><component name="a"><!-- x --><variable name="v" units="second"/></component>')
        doc = parser.parse(txt)
        self.assertEqual(list(doc.components["a"].variables.keys()), ["v"])


if __name__ == "__main__":
    unittest.main()
