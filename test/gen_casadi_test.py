#!/usr/bin/env python
"""
Assembled model to CasADi functions.
"""
from __future__ import absolute_import, division, print_function, unicode_literals

import os
import unittest

import casadi as ca

import numpy as np

import cellode.backends.casadi.generator as gen_casadi
from cellode.assembler import build, build_file
from cellode.model import update_value

MODEL_DIR = os.path.join(os.path.dirname(os.path.realpath(__file__)), "models")


def single_component(variables, math):
    return ('<model name="test" xmlns="http://www.cellml.org/cellml/1.0#">'
            '<component name="c">{}<math xmlns="http://www.w3.org/1998/Math/MathML">{}</math>'
            '</component></model>').format(variables, math)


class GenCasadiTest(unittest.TestCase):

    def test_decay(self):
        model = build_file(os.path.join(MODEL_DIR, "decay.cellml"))
        ode = gen_casadi.generate(model)

        self.assertEqual(ode.x.shape, (1, 1))
        self.assertEqual(ode.p.shape, (1, 1))
        self.assertEqual(ode.y.shape[0], 0)
        np.testing.assert_array_equal(ode.x0, [1.0])
        np.testing.assert_array_equal(ode.p0, [0.5])

        f = ode.create_function_f_x_rhs()
        self.assertAlmostEqual(float(f(0.0, ode.x0, ode.p0)), -0.5)
        self.assertAlmostEqual(float(f(0.0, 2.0, 3.0)), -6.0)

        J = ode.create_function_f_J()
        self.assertAlmostEqual(float(J(0.0, ode.x0, ode.p0)), -0.5)

    def test_updated_values(self):
        model = build_file(os.path.join(MODEL_DIR, "decay.cellml"))
        update_value(model, "k", 2.0)
        ode = gen_casadi.generate(model)
        f = ode.create_function_f_x_rhs()
        self.assertAlmostEqual(float(f(0.0, ode.x0, ode.p0)), -2.0)

    def test_membrane(self):
        model = build_file(os.path.join(MODEL_DIR, "membrane.cellml"))
        ode = gen_casadi.generate(model)
        self.assertEqual([ode.x[i].name() for i in range(ode.x.shape[0])], ["V"])
        self.assertEqual([ode.p[i].name() for i in range(ode.p.shape[0])], ["Cm", "g_L", "E_L"])
        self.assertEqual(ode.y.shape[0], 2)

        f = ode.create_function_f_x_rhs()
        # i_leak = 0.3 * (-80 + 54.4), no stimulus at t = 0
        self.assertAlmostEqual(float(f(0.0, ode.x0, ode.p0)), 0.3 * 25.6)
        # Stimulus of -20 between 10 and 10.5 ms
        self.assertAlmostEqual(float(f(10.2, ode.x0, ode.p0)), 0.3 * 25.6 + 20.0)

        y = ode.create_function_f_y()
        i_leak, i_stim = np.array(y(10.2, ode.x0, ode.p0)).ravel()
        self.assertAlmostEqual(i_leak, -0.3 * 25.6)
        self.assertAlmostEqual(i_stim, -20.0)

    def test_functions(self):
        txt = single_component(
            '<variable name="t" units="second"/>'
            '<variable name="x" units="second" initial_value="0.5"/>'
            '<variable name="a" units="second" initial_value="4"/>',
            '<apply><eq/><apply><diff/><bvar><ci>t</ci></bvar><ci>x</ci></apply>'
            '<apply><plus/>'
            '<apply><root/><ci>a</ci></apply>'
            '<apply><log/><logbase><cn>2</cn></logbase><ci>a</ci></apply>'
            '<apply><exp/><cn>0</cn></apply>'
            '<apply><max/><ci>x</ci><cn>-1</cn><cn>0.25</cn></apply>'
            '<apply><abs/><apply><minus/><ci>t</ci></apply></apply>'
            '<apply><times/><apply><cos/><pi/></apply><cn>1</cn></apply>'
            '</apply></apply>')
        ode = gen_casadi.generate(build(txt))
        f = ode.create_function_f_x_rhs()
        # 2 + 2 + 1 + 0.5 + 3 - 1
        self.assertAlmostEqual(float(f(-3.0, ode.x0, ode.p0)), 7.5)

    def test_mx(self):
        model = build_file(os.path.join(MODEL_DIR, "decay.cellml"))
        ode = gen_casadi.generate(model, sym=ca.MX)
        self.assertIsInstance(ode.f_x_rhs, ca.MX)
        f = ode.create_function_f_x_rhs()
        self.assertAlmostEqual(float(f(0.0, 1.0, 0.5)), -0.5)


if __name__ == "__main__":
    unittest.main()
