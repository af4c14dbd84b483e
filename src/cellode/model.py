"""
The assembled ODE system and accessors for its parameter and initial values.
"""
import logging
from collections import OrderedDict
from typing import List, Mapping, Tuple, Union

from . import ast
from .errors import UnknownSymbolError

logger = logging.getLogger("cellode")

SymbolOrName = Union[ast.Symbol, str]


class ValueMap(OrderedDict):
    """
    Ordered mapping of symbol name to value, owned by the caller.

    Besides canonical names, keys may be given as the ``component.variable``
    name of any variable merged into a symbol.
    """

    def __init__(self, *args, aliases: Mapping[str, str] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.aliases = dict(aliases) if aliases else {}

    def copy(self):
        return type(self)(self.items(), aliases=self.aliases)

    def key_for(self, symbol: SymbolOrName) -> str:
        name = symbol.name if isinstance(symbol, ast.Symbol) else symbol
        if name in self:
            return name
        if self.aliases.get(name) in self:
            return self.aliases[name]
        raise UnknownSymbolError("Unknown symbol '{}'".format(name), symbol=name)


class Model:

    def __init__(self):
        self.name = ""
        self.time = None  # type: ast.Symbol
        self.states = []  # type: List[ast.Symbol]
        self.alg_states = []  # type: List[ast.Symbol]
        self.parameters = []  # type: List[ast.Symbol]
        self.equations = []  # type: List[ast.Equation]
        self.symbols = OrderedDict()  # type: OrderedDict[str, ast.Symbol]
        self._start = OrderedDict()
        self._values = OrderedDict()

    def __str__(self):
        r = ""
        r += "Model " + self.name + "\n"
        r += "time: " + str(self.time) + "\n"
        r += "states: " + str(list(self._start.items())) + "\n"
        r += "alg_states: " + str([s.name for s in self.alg_states]) + "\n"
        r += "parameters: " + str(list(self._values.items())) + "\n"
        r += "equations: " + str([str(e) for e in self.equations]) + "\n"
        return r

    @property
    def aliases(self) -> Mapping[str, str]:
        """Every ``component.variable`` name mapped to its canonical name"""
        return {alias: s.name for s in self.symbols.values() for alias in s.aliases}

    def find(self, symbol: SymbolOrName) -> ast.Symbol:
        name = symbol.name if isinstance(symbol, ast.Symbol) else symbol
        if name in self.symbols:
            return self.symbols[name]
        aliases = self.aliases
        if name in aliases:
            return self.symbols[aliases[name]]
        raise UnknownSymbolError("Unknown symbol '{}'".format(name), symbol=name)

    def update_value(self, symbol: SymbolOrName, value: float) -> None:
        """Change the default value of a parameter or the initial value of a state"""
        name = self.find(symbol).name
        if name in self._start:
            self._start[name] = float(value)
        elif name in self._values:
            self._values[name] = float(value)
        else:
            raise UnknownSymbolError(
                "'{}' is neither a state nor a parameter".format(name), symbol=name)

    def equation_tuples(self) -> List[Tuple[str, bool, ast.Node]]:
        return [(e.target.name, e.is_derivative, e.right) for e in self.equations]

    def check_balanced(self) -> bool:
        n_states = len(self.states)
        n_equations = sum(1 for e in self.equations if e.is_derivative)
        if n_states == n_equations:
            logger.info("System is balanced.")
            return True
        logger.warning(
            "System is not balanced.  "
            "Number of states is {}, number of derivative equations is {}.".format(
                n_states, n_equations))
        return False


def list_states(model: Model) -> ValueMap:
    """States and their initial values, in the model's fixed order"""
    return ValueMap(((s.name, model._start[s.name]) for s in model.states), aliases=model.aliases)


def list_parameters(model: Model) -> ValueMap:
    """Parameters and their default values, in the model's fixed order"""
    return ValueMap(((s.name, model._values[s.name]) for s in model.parameters),
                    aliases=model.aliases)


def update_value(target: Union[Model, ValueMap, dict], symbol: SymbolOrName, value: float) -> None:
    """
    Set a value in place.

    :param target: a mapping from list_states/list_parameters, or a Model to
        change the values it hands out from now on
    :param symbol: canonical symbol, its name, or a member's qualified name
    :param value: new value
    """
    if isinstance(target, Model):
        target.update_value(symbol, value)
        return
    if isinstance(target, ValueMap):
        key = target.key_for(symbol)
    else:
        key = symbol.name if isinstance(symbol, ast.Symbol) else symbol
        if key not in target:
            raise UnknownSymbolError("Unknown symbol '{}'".format(key), symbol=key)
    target[key] = float(value)
