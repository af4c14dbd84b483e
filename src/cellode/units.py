#!/usr/bin/env python
"""
Predefined CellML units and resolution of user-defined units.

Units are carried through the translation as metadata (multiplier, offset
and base-unit exponents); they do not take part in any consistency check.
"""
from __future__ import absolute_import, division, print_function, unicode_literals

import logging
import types
from collections import OrderedDict, namedtuple
from typing import Dict, Mapping, Optional

from . import ast
from .errors import MalformedDocumentError, UnknownUnitError

logger = logging.getLogger("cellode")

PREFIXES = types.MappingProxyType(
    {
        "yotta": 24,
        "zetta": 21,
        "exa": 18,
        "peta": 15,
        "tera": 12,
        "giga": 9,
        "mega": 6,
        "kilo": 3,
        "hecto": 2,
        "deca": 1,
        "deka": 1,
        "deci": -1,
        "centi": -2,
        "milli": -3,
        "micro": -6,
        "nano": -9,
        "pico": -12,
        "femto": -15,
        "atto": -18,
        "zepto": -21,
        "yocto": -24,
    }
)

# name: (multiplier, offset, {base: exponent})
_STANDARD_DEFINITIONS = [
    ("ampere", 1.0, 0.0, {"ampere": 1}),
    ("candela", 1.0, 0.0, {"candela": 1}),
    ("kelvin", 1.0, 0.0, {"kelvin": 1}),
    ("kilogram", 1.0, 0.0, {"kilogram": 1}),
    ("metre", 1.0, 0.0, {"metre": 1}),
    ("meter", 1.0, 0.0, {"metre": 1}),
    ("mole", 1.0, 0.0, {"mole": 1}),
    ("second", 1.0, 0.0, {"second": 1}),
    ("dimensionless", 1.0, 0.0, {}),
    ("radian", 1.0, 0.0, {}),
    ("steradian", 1.0, 0.0, {}),
    ("becquerel", 1.0, 0.0, {"second": -1}),
    ("hertz", 1.0, 0.0, {"second": -1}),
    ("celsius", 1.0, 273.15, {"kelvin": 1}),
    ("coulomb", 1.0, 0.0, {"second": 1, "ampere": 1}),
    ("farad", 1.0, 0.0, {"metre": -2, "kilogram": -1, "second": 4, "ampere": 2}),
    ("gram", 1e-3, 0.0, {"kilogram": 1}),
    ("gray", 1.0, 0.0, {"metre": 2, "second": -2}),
    ("sievert", 1.0, 0.0, {"metre": 2, "second": -2}),
    ("henry", 1.0, 0.0, {"metre": 2, "kilogram": 1, "second": -2, "ampere": -2}),
    ("joule", 1.0, 0.0, {"metre": 2, "kilogram": 1, "second": -2}),
    ("katal", 1.0, 0.0, {"mole": 1, "second": -1}),
    ("liter", 1e-3, 0.0, {"metre": 3}),
    ("litre", 1e-3, 0.0, {"metre": 3}),
    ("lumen", 1.0, 0.0, {"candela": 1}),
    ("lux", 1.0, 0.0, {"candela": 1, "metre": -2}),
    ("newton", 1.0, 0.0, {"metre": 1, "kilogram": 1, "second": -2}),
    ("ohm", 1.0, 0.0, {"metre": 2, "kilogram": 1, "second": -3, "ampere": -2}),
    ("pascal", 1.0, 0.0, {"metre": -1, "kilogram": 1, "second": -2}),
    ("siemens", 1.0, 0.0, {"metre": -2, "kilogram": -1, "second": 3, "ampere": 2}),
    ("tesla", 1.0, 0.0, {"kilogram": 1, "second": -2, "ampere": -1}),
    ("volt", 1.0, 0.0, {"metre": 2, "kilogram": 1, "second": -3, "ampere": -1}),
    ("watt", 1.0, 0.0, {"metre": 2, "kilogram": 1, "second": -3}),
    ("weber", 1.0, 0.0, {"metre": 2, "kilogram": 1, "second": -2, "ampere": -1}),
]


# A <units> element as read from the document, before resolution.
UnitsDefinition = namedtuple("UnitsDefinition", ["name", "base_unit", "children", "line"])

# A <unit> child of a <units> element.
UnitTerm = namedtuple("UnitTerm", ["units", "prefix", "exponent", "multiplier", "offset"])


class UnitRegistry:
    """
    Lookup table of predefined units.

    The registry is read-only after construction, so one instance can be
    shared between any number of translations.
    """

    def __init__(self, units: Optional[Mapping[str, ast.Unit]] = None,
                 prefixes: Optional[Mapping[str, int]] = None):
        if units is None:
            units = OrderedDict(
                (name, ast.Unit(name=name, multiplier=m, offset=o, dimensions=dict(d)))
                for name, m, o, d in _STANDARD_DEFINITIONS)
        self._units = types.MappingProxyType(OrderedDict(units))
        self._prefixes = PREFIXES if prefixes is None else types.MappingProxyType(dict(prefixes))

    def __contains__(self, name):
        return name in self._units

    def __getitem__(self, name) -> ast.Unit:
        return self._units[name]

    def __iter__(self):
        return iter(self._units)

    def __len__(self):
        return len(self._units)

    def get(self, name, default=None):
        return self._units.get(name, default)

    @property
    def prefixes(self) -> Mapping[str, int]:
        return self._prefixes

    def extend(self, units: Mapping[str, ast.Unit]) -> "UnitRegistry":
        """Return a new registry with additional predefined units"""
        merged = OrderedDict(self._units)
        merged.update(units)
        return UnitRegistry(merged, self._prefixes)

    def prefix_power(self, prefix: str) -> int:
        """Power of ten for a prefix given by name or as an integer"""
        if prefix in self._prefixes:
            return self._prefixes[prefix]
        try:
            return int(prefix)
        except ValueError:
            raise UnknownUnitError("Unknown unit prefix '{}'".format(prefix), unit=prefix)


_default_registry = None


def default_registry() -> UnitRegistry:
    global _default_registry
    if _default_registry is None:
        _default_registry = UnitRegistry()
    return _default_registry


class UnitScope:
    """
    User-defined units visible in a model or a component.

    Definitions are resolved lazily, so they may reference each other in any
    order. Lookups fall back to the parent scope and then to the registry.
    """

    def __init__(self, registry: UnitRegistry, definitions=(), parent: "UnitScope" = None,
                 owner: str = None):
        self.registry = registry
        self.parent = parent
        self.owner = owner
        self.definitions = OrderedDict()  # type: Dict[str, UnitsDefinition]
        for d in definitions:
            if d.name in self.definitions:
                raise MalformedDocumentError(
                    "Units '{}' defined twice in {} (line {})".format(d.name, self._where(), d.line),
                    unit=d.name, line=d.line)
            self.definitions[d.name] = d
        self._resolved = OrderedDict()  # type: Dict[str, ast.Unit]
        self._resolving = set()

    def _where(self):
        return "component '{}'".format(self.owner) if self.owner else "model"

    def resolve_all(self) -> "OrderedDict[str, ast.Unit]":
        for name in self.definitions:
            self.lookup(name)
        return OrderedDict((name, self._resolved[name]) for name in self.definitions)

    def lookup(self, name: str, referrer: str = None) -> ast.Unit:
        if name in self._resolved:
            return self._resolved[name]
        if name in self.definitions:
            return self._resolve(self.definitions[name])
        if self.parent is not None:
            return self.parent.lookup(name, referrer)
        if name in self.registry:
            return self.registry[name]
        raise UnknownUnitError(
            "Unknown units '{}' referenced by {}".format(name, referrer or self._where()),
            unit=name, component=self.owner)

    def _resolve(self, definition: UnitsDefinition) -> ast.Unit:
        name = definition.name
        if name in self._resolving:
            raise UnknownUnitError(
                "Units '{}' in {} are defined in terms of themselves".format(name, self._where()),
                unit=name, component=self.owner, line=definition.line)

        if definition.base_unit:
            unit = ast.Unit(name=name, dimensions={name: 1})
            self._resolved[name] = unit
            return unit

        self._resolving.add(name)
        try:
            multiplier = 1.0
            offset = 0.0
            dimensions = OrderedDict()
            for term in definition.children:
                base = self.lookup(term.units, referrer="units '{}'".format(name))
                scale = 10.0 ** self.registry.prefix_power(term.prefix) if term.prefix else 1.0
                multiplier *= term.multiplier * (scale * base.multiplier) ** term.exponent
                for dim, exponent in base.dimensions.items():
                    dimensions[dim] = dimensions.get(dim, 0) + exponent * term.exponent
                if len(definition.children) == 1:
                    offset = term.offset + base.offset
                elif term.offset:
                    logger.warning(
                        "Ignoring offset on units '%s': only single-term units may carry one", name)
        finally:
            self._resolving.discard(name)

        unit = ast.Unit(
            name=name,
            multiplier=multiplier,
            offset=offset,
            dimensions={k: v for k, v in dimensions.items() if v != 0},
        )
        logger.debug("Resolved units %s: %r", name, unit)
        self._resolved[name] = unit
        return unit
