import functools
import logging
import math

import casadi as ca

from cellode import ast
from cellode.errors import AlgebraicLoopError, UnsupportedOperatorError
from cellode.model import Model
from cellode.tree import TreeListener, TreeWalker

from .model import OdeModel

logger = logging.getLogger("cellode")


def _reduce(f):
    return lambda *args: functools.reduce(f, args)


def _chain(f):
    """n-ary comparison a < b < c as (a < b) and (b < c)"""
    return lambda *args: functools.reduce(
        ca.logic_and, [f(a, b) for a, b in zip(args[:-1], args[1:])])


def _xor(a, b):
    return ca.logic_and(ca.logic_or(a, b), ca.logic_not(ca.logic_and(a, b)))


OP_MAP = {
    '+': _reduce(lambda x, y: x + y),
    '*': _reduce(lambda x, y: x * y),
    '/': lambda x, y: x / y,
    '^': ca.power,
    'fmod': ca.fmod,
    'min': _reduce(ca.fmin),
    'max': _reduce(ca.fmax),
    'abs': ca.fabs,
    'exp': ca.exp,
    'log': ca.log,
    'log10': ca.log10,
    'sqrt': ca.sqrt,
    'floor': ca.floor,
    'ceil': ca.ceil,
    'sin': ca.sin,
    'cos': ca.cos,
    'tan': ca.tan,
    'sec': lambda x: 1 / ca.cos(x),
    'csc': lambda x: 1 / ca.sin(x),
    'cot': lambda x: 1 / ca.tan(x),
    'sinh': ca.sinh,
    'cosh': ca.cosh,
    'tanh': ca.tanh,
    'sech': lambda x: 1 / ca.cosh(x),
    'csch': lambda x: 1 / ca.sinh(x),
    'coth': lambda x: 1 / ca.tanh(x),
    'asin': ca.asin,
    'acos': ca.acos,
    'atan': ca.atan,
    'asinh': ca.asinh,
    'acosh': ca.acosh,
    'atanh': ca.atanh,
    '==': _chain(ca.eq),
    '!=': ca.ne,
    '<': _chain(ca.lt),
    '>': _chain(ca.gt),
    '<=': _chain(ca.le),
    '>=': _chain(ca.ge),
    'and': _reduce(ca.logic_and),
    'or': _reduce(ca.logic_or),
    'xor': _reduce(_xor),
    'not': ca.logic_not,
}


# noinspection PyPep8Naming
class Generator(TreeListener):
    """Builds CasADi expressions for the right-hand sides of a model"""

    def __init__(self, model: Model, sym: type = ca.SX):
        super().__init__()
        self.src = {}
        self.model = model
        self.ode = OdeModel(model, sym)
        self.sym = sym
        self.symbols = {s.name: sym.sym(s.name) for s in model.states + model.parameters}
        if model.time is not None:
            self.symbols[model.time.name] = self.ode.t
        self.definitions = {e.target.name: e for e in model.equations}
        self.pending = set()
        self.walker = TreeWalker()

    def get_expression(self, tree: ast.Node):
        if tree not in self.src:
            self.walker.walk(self, tree)
        return self.src[tree]

    def get_symbol(self, name: str, derivative: bool = False):
        key = 'der({})'.format(name) if derivative else name
        if key in self.symbols:
            return self.symbols[key]
        if key in self.pending:
            raise AlgebraicLoopError("Expression for {} depends on itself".format(key), symbol=name)
        self.pending.add(key)
        equation = self.definitions[name]
        self.symbols[key] = self.get_expression(equation.right)
        self.pending.discard(key)
        return self.symbols[key]

    def exitPrimary(self, tree: ast.Primary):
        self.src[tree] = float(tree.value)

    def exitConstant(self, tree: ast.Constant):
        self.src[tree] = float(tree.value)

    def exitSymbol(self, tree: ast.Symbol):
        if self.context.get('Derivative') is None:
            self.src[tree] = self.get_symbol(tree.name)

    def exitDerivative(self, tree: ast.Derivative):
        self.src[tree] = self.get_symbol(tree.operand.name, derivative=True)

    def exitExpression(self, tree: ast.Expression):
        operands = [self.src[o] for o in tree.operands]
        if tree.operator == '-':
            self.src[tree] = -operands[0] if len(operands) == 1 else operands[0] - operands[1]
        elif tree.operator in OP_MAP:
            self.src[tree] = OP_MAP[tree.operator](*operands)
        else:
            raise UnsupportedOperatorError(
                "No CasADi equivalent for operator '{}'".format(tree.operator),
                operator=tree.operator)

    def exitPiecewise(self, tree: ast.Piecewise):
        expr = math.nan if tree.otherwise is None else self.src[tree.otherwise]
        for value, condition in reversed(tree.pieces):
            expr = ca.if_else(self.src[condition], self.src[value], expr)
        self.src[tree] = expr

    def generate(self) -> OdeModel:
        ode = self.ode
        ode.x = self._vertcat([self.symbols[s.name] for s in self.model.states])
        ode.p = self._vertcat([self.symbols[s.name] for s in self.model.parameters])
        ode.y = self._vertcat([self.sym.sym(s.name) for s in self.model.alg_states])
        ode.f_x_rhs = self._vertcat(
            [self.get_symbol(s.name, derivative=True) for s in self.model.states])
        ode.y_rhs = self._vertcat([self.get_symbol(s.name) for s in self.model.alg_states])
        logger.info("Generated CasADi model with %d states and %d parameters",
                    ode.x.shape[0], ode.p.shape[0])
        return ode

    def _vertcat(self, items):
        if not items:
            return self.sym(0, 1)
        return ca.vertcat(*[self.sym(e) for e in items])


def generate(model: Model, sym: type = ca.SX) -> OdeModel:
    """
    :param model: assembled model
    :param sym: CasADi symbol type, ca.SX or ca.MX
    :return: CasADi ODE model
    """
    return Generator(model, sym).generate()
