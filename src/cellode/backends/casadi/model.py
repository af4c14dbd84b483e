"""
CasADi form of an assembled model.
"""
from typing import Union

import casadi as ca

import numpy as np

from cellode.model import Model, list_parameters, list_states

SYM = Union[ca.SX, ca.MX]


# noinspection PyPep8Naming
class OdeModel:
    """Ordinary Differential Equation Model"""

    def __init__(self, model: Model, sym: type = ca.SX):
        self.model = model  # assembled model, source of x0 and p0
        self.sym = sym  # symbol type
        self.t = sym.sym('time')  # time
        self.x = sym(0, 1)  # states (have derivatives)
        self.p = sym(0, 1)  # parameters
        self.y = sym(0, 1)  # algebraic variables
        self.f_x_rhs = sym(0, 1)  # state derivatives
        self.y_rhs = sym(0, 1)  # algebraic variables as a function of states
        self.func_opt = {}

    def __repr__(self):
        s = "\n"
        for k, v in sorted(self.__dict__.items()):
            if isinstance(v, self.sym):
                s += "{:8s}({:3d}):\t{:s}\n".format(k, v.shape[0], str(v))
        return s

    @property
    def x0(self) -> np.ndarray:
        return np.array(list(list_states(self.model).values()), dtype=float)

    @property
    def p0(self) -> np.ndarray:
        return np.array(list(list_parameters(self.model).values()), dtype=float)

    def create_function_f_x_rhs(self):
        """ODE rhs for continuous state integration"""
        return ca.Function(
            'f_x_rhs',
            [self.t, self.x, self.p],
            [self.f_x_rhs],
            ['t', 'x', 'p'], ['x_rhs'], self.func_opt)

    def create_function_f_J(self):
        """Jacobian for state integration"""
        return ca.Function(
            'J',
            [self.t, self.x, self.p],
            [ca.jacobian(self.f_x_rhs, self.x)],
            ['t', 'x', 'p'], ['J'], self.func_opt)

    def create_function_f_y(self):
        """output function"""
        return ca.Function(
            'y',
            [self.t, self.x, self.p],
            [self.y_rhs],
            ['t', 'x', 'p'], ['y'], self.func_opt)
