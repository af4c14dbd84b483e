#!/usr/bin/env python
"""
CellML document and expression tree definitions
"""
from __future__ import absolute_import, division, print_function, unicode_literals

import json
import math
from collections import OrderedDict
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union  # noqa: F401


class Interface(Enum):
    NONE = 0, "none"
    PUBLIC = 1, "public"
    PRIVATE = 2, "private"
    PUBLIC_AND_PRIVATE = 3, "public_and_private"

    def __new__(cls, value, name):
        member = object.__new__(cls)
        member._value_ = value
        member.fullname = name
        return member

    def __str__(self):
        return self.fullname

    @property
    def public(self) -> bool:
        return self in (Interface.PUBLIC, Interface.PUBLIC_AND_PRIVATE)

    @property
    def private(self) -> bool:
        return self in (Interface.PRIVATE, Interface.PUBLIC_AND_PRIVATE)

    @classmethod
    def from_string(cls, s: str) -> "Interface":
        for member in cls:
            if member.fullname == s:
                return member
        raise ValueError("unknown interface {!r}".format(s))

    @classmethod
    def from_legacy(cls, public: str, private: str) -> "Interface":
        """From CellML 1.x public_interface/private_interface values"""
        return {
            (False, False): cls.NONE,
            (True, False): cls.PUBLIC,
            (False, True): cls.PRIVATE,
            (True, True): cls.PUBLIC_AND_PRIVATE,
        }[(public != "none", private != "none")]


"""
Node Type Hierarchy

Document
    Unit
    Component
        Variable
    Connection

Equation
    ComponentRef / Symbol / Derivative
    Expression
        Primary
        Constant
        ComponentRef / Symbol
        Derivative
        Piecewise
"""


class Node:
    def __init__(self, **kwargs):
        self.set_args(**kwargs)

    def set_args(self, **kwargs):
        for key in kwargs.keys():
            if key not in self.__dict__.keys():
                raise KeyError("{:s} not valid arg".format(key))
            self.__dict__[key] = kwargs[key]

    def __repr__(self):
        return "{!r}".format(self.__dict__)

    def __str__(self):
        d = self.to_json(self)
        d["_type"] = self.__class__.__name__
        return json.dumps(d, indent=2, sort_keys=True)

    @classmethod
    def to_json(cls, var):
        if isinstance(var, (list, tuple)):
            res = [cls.to_json(item) for item in var]
        elif isinstance(var, dict):
            res = {key: cls.to_json(var[key]) for key in var.keys()}
        elif isinstance(var, Node):
            res = {
                key: cls.to_json(var.__dict__[key])
                for key in var.__dict__.keys()
                if key not in ("math",)
            }
        elif isinstance(var, (Interface, set, frozenset)):
            res = str(var) if isinstance(var, Interface) else sorted(var)
        else:
            res = var
        return res


# -----------------------------------------------------------------------------
# Expressions
# -----------------------------------------------------------------------------


class Primary(Node):
    def __init__(self, **kwargs):
        self.value = None  # type: Union[float, int, bool]
        self.units = None  # type: Optional[Unit]
        super().__init__(**kwargs)

    def __repr__(self):
        return "{}(value={!r})".format(type(self).__name__, self.value)

    def __str__(self):
        return repr(self.value)


class Constant(Node):
    VALUES = OrderedDict(
        [
            ("pi", math.pi),
            ("exponentiale", math.e),
            ("true", True),
            ("false", False),
            ("infinity", math.inf),
            ("notanumber", math.nan),
        ]
    )

    def __init__(self, **kwargs):
        self.name = ""  # type: str
        super().__init__(**kwargs)

    @property
    def value(self):
        return self.VALUES[self.name]

    def __repr__(self):
        return "{}(name={!r})".format(type(self).__name__, self.name)

    def __str__(self):
        return self.name


class ComponentRef(Node):
    """
    Reference to a variable by its name local to a component
    """

    def __init__(self, **kwargs):
        self.name = ""  # type: str
        self.component = ""  # type: str
        super().__init__(**kwargs)

    def __repr__(self):
        return "{}(component={!r}, name={!r})".format(
            type(self).__name__, self.component, self.name
        )

    def __str__(self):
        return self.name

    def to_tuple(self) -> Tuple[str, str]:
        return self.component, self.name


class Symbol(Node):
    """
    The canonical global symbol standing for a set of connected variables
    """

    def __init__(self, **kwargs):
        self.name = ""  # type: str
        self.units = None  # type: Optional[Unit]
        self.aliases = set()  # type: set
        self.order = 0  # type: int
        super().__init__(**kwargs)

    def __repr__(self):
        return "{}(name={!r})".format(type(self).__name__, self.name)

    def __str__(self):
        return self.name


class Derivative(Node):
    def __init__(self, **kwargs):
        self.operand = None  # type: Union[ComponentRef, Symbol]
        self.bvar = None  # type: Union[ComponentRef, Symbol]
        super().__init__(**kwargs)

    def __repr__(self):
        return "{}(operand={!r}, bvar={!r})".format(type(self).__name__, self.operand, self.bvar)

    def __str__(self):
        return "der({})".format(self.operand)


class Expression(Node):
    INFIX = ("+", "-", "*", "/", "^", "<", ">", "<=", ">=", "==", "!=", "and", "or", "xor")

    def __init__(self, **kwargs):
        self.operator = None  # type: str
        self.operands = []  # type: List[Union[Expression, Primary, Constant, ComponentRef, Symbol]]
        super().__init__(**kwargs)

    def __repr__(self):
        return "{}(operator={!r}, operands={!r})".format(
            type(self).__name__, self.operator, self.operands
        )

    def __str__(self):
        if self.operator == "-" and len(self.operands) == 1:
            return "-{}".format(self.operands[0])
        if self.operator in self.INFIX and len(self.operands) > 1:
            sep = " {} ".format(self.operator)
            return "(" + sep.join(str(o) for o in self.operands) + ")"
        return "{}({})".format(self.operator, ", ".join(str(o) for o in self.operands))


class Piecewise(Node):
    def __init__(self, **kwargs):
        self.pieces = []  # type: List[List[Node]]
        self.otherwise = None  # type: Optional[Node]
        super().__init__(**kwargs)

    def __repr__(self):
        return "{}(pieces={!r}, otherwise={!r})".format(
            type(self).__name__, self.pieces, self.otherwise
        )

    def __str__(self):
        parts = ["({}, {})".format(value, condition) for value, condition in self.pieces]
        if self.otherwise is not None:
            parts.append(str(self.otherwise))
        return "piecewise({})".format(", ".join(parts))


EXPRESSION_TYPES = (Primary, Constant, ComponentRef, Symbol, Derivative, Expression, Piecewise)


class Equation(Node):
    def __init__(self, **kwargs):
        self.left = None  # type: Union[ComponentRef, Symbol, Derivative]
        self.right = None  # type: Node
        self.component = ""  # type: str
        super().__init__(**kwargs)

    def __repr__(self):
        return "{}(left={!r}, right={!r})".format(type(self).__name__, self.left, self.right)

    def __str__(self):
        return "{} = {}".format(self.left, self.right)

    @property
    def is_derivative(self) -> bool:
        return isinstance(self.left, Derivative)

    @property
    def target(self) -> Union[ComponentRef, Symbol]:
        """The variable this equation defines"""
        if self.is_derivative:
            return self.left.operand
        return self.left


# -----------------------------------------------------------------------------
# Document
# -----------------------------------------------------------------------------


class Unit(Node):
    def __init__(self, **kwargs):
        self.name = ""  # type: str
        self.multiplier = 1.0  # type: float
        self.offset = 0.0  # type: float
        self.dimensions = {}  # type: Dict[str, float]
        super().__init__(**kwargs)

    def __repr__(self):
        return "{}(name={!r}, multiplier={!r}, dimensions={!r})".format(
            type(self).__name__, self.name, self.multiplier, self.dimensions
        )

    def __str__(self):
        return self.name


class Variable(Node):
    def __init__(self, **kwargs):
        self.name = ""  # type: str
        self.component = ""  # type: str
        self.units = None  # type: Optional[Unit]
        self.interface = Interface.NONE  # type: Interface
        self.initial_value = None  # type: Union[float, str, None]
        self.order = 0  # type: int
        self.line = None  # type: Optional[int]
        super().__init__(**kwargs)

    def __repr__(self):
        return "{}(component={!r}, name={!r})".format(
            type(self).__name__, self.component, self.name
        )

    def __str__(self):
        return "{}.{}".format(self.component, self.name)

    def to_tuple(self) -> Tuple[str, str]:
        return self.component, self.name


class Component(Node):
    def __init__(self, **kwargs):
        self.name = ""  # type: str
        self.variables = OrderedDict()  # type: OrderedDict[str, Variable]
        self.math = []  # type: list
        self.units = OrderedDict()  # type: OrderedDict[str, Unit]
        self.line = None  # type: Optional[int]
        super().__init__(**kwargs)

    def __repr__(self):
        return "{}(name={!r}, variables={!r})".format(
            type(self).__name__, self.name, list(self.variables.keys())
        )


class Connection(Node):
    def __init__(self, **kwargs):
        self.component_1 = ""  # type: str
        self.component_2 = ""  # type: str
        self.variables = []  # type: List[Tuple[str, str]]
        self.line = None  # type: Optional[int]
        super().__init__(**kwargs)

    def __repr__(self):
        return "{}(component_1={!r}, component_2={!r}, variables={!r})".format(
            type(self).__name__, self.component_1, self.component_2, self.variables
        )


class Document(Node):
    def __init__(self, **kwargs):
        self.name = ""  # type: str
        self.components = OrderedDict()  # type: OrderedDict[str, Component]
        self.connections = []  # type: List[Connection]
        self.units = OrderedDict()  # type: OrderedDict[str, Unit]
        self.encapsulation = OrderedDict()  # type: OrderedDict[str, str]
        super().__init__(**kwargs)

    def __repr__(self):
        return "{}(name={!r}, components={!r})".format(
            type(self).__name__, self.name, list(self.components.keys())
        )

    def parent(self, component: str) -> Optional[str]:
        return self.encapsulation.get(component)

    def variables(self) -> List[Variable]:
        """All variables in document traversal order"""
        return [v for c in self.components.values() for v in c.variables.values()]
