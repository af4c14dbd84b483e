#!/usr/bin/env python
"""
CellML document parser.

Reads components, variables, units, connections and the encapsulation
hierarchy. MathML blocks are kept as raw elements for the math translator.
"""
from __future__ import absolute_import, division, print_function, unicode_literals

import logging
import re
from collections import OrderedDict
from typing import Callable, Union

from lxml import etree

from . import ast
from .errors import MalformedDocumentError, UnknownUnitError
from .mathml import MATHML_NS, localname
from .units import UnitRegistry, UnitScope, UnitTerm, UnitsDefinition, default_registry

logger = logging.getLogger("cellode")

CELLML_NAMESPACES = (
    "http://www.cellml.org/cellml/1.0#",
    "http://www.cellml.org/cellml/1.1#",
    "http://www.cellml.org/cellml/2.0#",
)

LEGACY_INTERFACES = ("in", "out", "none")

IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class XMLParser:

    def __init__(self):
        self._parser = etree.XMLParser(
            remove_comments=True,
            remove_pis=True,
            remove_blank_text=False,
            resolve_entities=False)

    def parse(self, txt: Union[str, bytes]):
        if isinstance(txt, str):
            txt = txt.encode('utf-8')
        elif not isinstance(txt, bytes):
            raise ValueError('txt must be a str or bytes')
        try:
            return etree.fromstring(txt, self._parser)
        except etree.XMLSyntaxError as e:
            raise MalformedDocumentError(
                "Document is not well-formed XML: {}".format(e), line=e.lineno)


# noinspection PyProtectedMember,PyPep8Naming
class DocumentListener:
    """Converts a CellML element tree to an ast.Document"""

    def __init__(self, namespace: str, registry: UnitRegistry):
        self.namespace = namespace
        self.registry = registry
        self.model = {}
        self.document = None  # type: ast.Document
        self.scope_stack = []
        self.order = 0

        # Raw names, resolved once all units definitions are known
        self.units_definitions = OrderedDict([(None, [])])
        self.variable_units = []

    @property
    def scope(self):
        return self.scope_stack[-1]

    def call(self, tag_name: str, *args, **kwargs):
        """Convenience method for calling methods with walker."""
        if hasattr(self, tag_name):
            getattr(self, tag_name)(*args, **kwargs)

    # ------------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------------

    @staticmethod
    def get_attr(e, name, default):
        if name in e.attrib.keys():
            return e.attrib[name]
        else:
            return default

    @staticmethod
    def require_attr(e, name):
        if name not in e.attrib.keys():
            raise MalformedDocumentError(
                "<{}> element without '{}' attribute (line {})".format(
                    localname(e), name, e.sourceline),
                line=e.sourceline)
        return e.attrib[name]

    @staticmethod
    def get_float(e, name, default):
        value = e.attrib.get(name)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            raise MalformedDocumentError(
                "Invalid {} '{}' on <{}> (line {})".format(name, value, localname(e), e.sourceline),
                line=e.sourceline)

    def component_children(self, e, tag):
        return [c for c in e if isinstance(c.tag, str)
                and etree.QName(c).namespace == self.namespace and localname(c) == tag]

    # ------------------------------------------------------------------------
    # Listener Methods
    # ------------------------------------------------------------------------

    def enter_model(self, tree: etree._Element):
        self.document = ast.Document(name=self.require_attr(tree, 'name'))
        self.scope_stack.append(self.document)

    def exit_model(self, tree: etree._Element):
        doc = self.document
        for child, parent in doc.encapsulation.items():
            for name in (child, parent):
                if name not in doc.components:
                    raise MalformedDocumentError(
                        "Encapsulation refers to unknown component '{}'".format(name),
                        component=name)

        model_scope = UnitScope(self.registry, self.units_definitions[None])
        doc.units = model_scope.resolve_all()
        scopes = {}
        for name, component in doc.components.items():
            scopes[name] = UnitScope(
                self.registry, self.units_definitions.get(name, []), model_scope, owner=name)
            component.units = scopes[name].resolve_all()

        for variable, units_name in self.variable_units:
            variable.units = scopes[variable.component].lookup(
                units_name, referrer="variable '{}'".format(variable))
        self.scope_stack.pop()
        self.model[tree] = doc

    def enter_import(self, tree: etree._Element):
        raise MalformedDocumentError(
            "Imports are not supported (line {})".format(tree.sourceline), line=tree.sourceline)

    def enter_reaction(self, tree: etree._Element):
        raise MalformedDocumentError(
            "Reactions are not supported (line {})".format(tree.sourceline), line=tree.sourceline)

    def exit_unit(self, tree: etree._Element):
        exponent = self.get_float(tree, 'exponent', 1.0)
        self.model[tree] = UnitTerm(
            units=self.require_attr(tree, 'units'),
            prefix=self.get_attr(tree, 'prefix', None),
            exponent=int(exponent) if exponent.is_integer() else exponent,
            multiplier=self.get_float(tree, 'multiplier', 1.0),
            offset=self.get_float(tree, 'offset', 0.0),
        )

    def exit_units(self, tree: etree._Element):
        definition = UnitsDefinition(
            name=self.require_attr(tree, 'name'),
            base_unit=self.get_attr(tree, 'base_unit', 'no') == 'yes',
            children=[self.model[c] for c in self.component_children(tree, 'unit')],
            line=tree.sourceline,
        )
        if definition.base_unit and definition.children:
            raise MalformedDocumentError(
                "Base units '{}' must not have <unit> children (line {})".format(
                    definition.name, tree.sourceline),
                line=tree.sourceline)
        owner = self.scope.name if isinstance(self.scope, ast.Component) else None
        self.units_definitions.setdefault(owner, []).append(definition)
        self.model[tree] = definition

    def enter_component(self, tree: etree._Element):
        component = ast.Component(name=self.require_attr(tree, 'name'), line=tree.sourceline)
        if component.name in self.document.components:
            raise MalformedDocumentError(
                "Component '{}' defined twice (line {})".format(component.name, tree.sourceline),
                component=component.name, line=tree.sourceline)
        self.scope_stack.append(component)

    def exit_component(self, tree: etree._Element):
        component = self.scope_stack.pop()
        component.math = [
            c for c in tree
            if isinstance(c.tag, str) and etree.QName(c).namespace == MATHML_NS
            and localname(c) == 'math']
        self.document.components[component.name] = component
        self.model[tree] = component
        logger.debug("Parsed component %s with %d variables and %d math blocks",
                     component.name, len(component.variables), len(component.math))

    def exit_variable(self, tree: etree._Element):
        component = self.scope
        if not isinstance(component, ast.Component):
            raise MalformedDocumentError(
                "<variable> element outside a component (line {})".format(tree.sourceline),
                line=tree.sourceline)
        name = self.require_attr(tree, 'name')
        if name in component.variables:
            raise MalformedDocumentError(
                "Variable '{}' declared twice in component '{}' (line {})".format(
                    name, component.name, tree.sourceline),
                component=component.name, variable=name, line=tree.sourceline)

        variable = ast.Variable(
            name=name,
            component=component.name,
            interface=self.interface(tree),
            initial_value=self.initial_value(tree, component.name),
            order=self.order,
            line=tree.sourceline,
        )
        self.order += 1
        self.variable_units.append((variable, self.require_attr(tree, 'units')))
        component.variables[name] = variable
        self.model[tree] = variable

    def interface(self, tree: etree._Element) -> ast.Interface:
        if 'interface' in tree.attrib:
            try:
                return ast.Interface.from_string(tree.attrib['interface'])
            except ValueError:
                raise MalformedDocumentError(
                    "Invalid interface '{}' (line {})".format(tree.attrib['interface'], tree.sourceline),
                    line=tree.sourceline)
        public = self.get_attr(tree, 'public_interface', 'none')
        private = self.get_attr(tree, 'private_interface', 'none')
        for value in (public, private):
            if value not in LEGACY_INTERFACES:
                raise MalformedDocumentError(
                    "Invalid interface '{}' (line {})".format(value, tree.sourceline),
                    line=tree.sourceline)
        return ast.Interface.from_legacy(public, private)

    @staticmethod
    def initial_value(tree: etree._Element, component: str):
        value = tree.attrib.get('initial_value')
        if value is None:
            return None
        value = value.strip()
        try:
            return float(value)
        except ValueError:
            pass
        if IDENTIFIER.match(value):
            return value
        raise MalformedDocumentError(
            "Invalid initial value '{}' for variable '{}.{}' (line {})".format(
                value, component, tree.attrib.get('name'), tree.sourceline),
            component=component, line=tree.sourceline)

    def exit_map_components(self, tree: etree._Element):
        self.model[tree] = (self.require_attr(tree, 'component_1'),
                            self.require_attr(tree, 'component_2'))

    def exit_map_variables(self, tree: etree._Element):
        self.model[tree] = (self.require_attr(tree, 'variable_1'),
                            self.require_attr(tree, 'variable_2'))

    def exit_connection(self, tree: etree._Element):
        map_components = self.component_children(tree, 'map_components')
        if 'component_1' in tree.attrib or 'component_2' in tree.attrib:
            components = (self.require_attr(tree, 'component_1'),
                          self.require_attr(tree, 'component_2'))
        elif len(map_components) == 1:
            components = self.model[map_components[0]]
        else:
            raise MalformedDocumentError(
                "Connection without exactly one <map_components> (line {})".format(tree.sourceline),
                line=tree.sourceline)

        connection = ast.Connection(
            component_1=components[0],
            component_2=components[1],
            variables=[self.model[c] for c in self.component_children(tree, 'map_variables')],
            line=tree.sourceline,
        )
        self.document.connections.append(connection)
        self.model[tree] = connection

    def component_refs(self, tree: etree._Element, parent: str = None):
        for ref in self.component_children(tree, 'component_ref'):
            name = self.require_attr(ref, 'component')
            if parent is not None:
                if name in self.document.encapsulation:
                    raise MalformedDocumentError(
                        "Component '{}' is encapsulated twice (line {})".format(name, ref.sourceline),
                        component=name, line=ref.sourceline)
                self.document.encapsulation[name] = parent
            self.component_refs(ref, name)

    def exit_group(self, tree: etree._Element):
        relationships = [self.get_attr(r, 'relationship', None)
                         for r in self.component_children(tree, 'relationship_ref')]
        if 'encapsulation' in relationships:
            self.component_refs(tree)

    def exit_encapsulation(self, tree: etree._Element):
        self.component_refs(tree)


# noinspection PyProtectedMember
def walk(e: etree._Element, l: DocumentListener) -> None:
    tag = localname(e)
    l.call('enter_' + tag, e)
    for c in e:
        if isinstance(c.tag, str) and etree.QName(c).namespace == l.namespace:
            walk(c, l)
    l.call('exit_' + tag, e)


def unit_lookup(document: ast.Document, component: str,
                registry: UnitRegistry = None) -> Callable[[str], ast.Unit]:
    """Units lookup for a component: component units, then model units, then predefined"""
    if registry is None:
        registry = default_registry()
    scopes = (document.components[component].units, document.units, registry)

    def lookup(name: str) -> ast.Unit:
        for scope in scopes:
            if name in scope:
                return scope[name]
        raise UnknownUnitError(
            "Unknown units '{}' in component '{}'".format(name, component),
            unit=name, component=component)

    return lookup


def parse(model_txt: Union[str, bytes], units: UnitRegistry = None) -> ast.Document:
    if units is None:
        units = default_registry()
    root = XMLParser().parse(model_txt)
    namespace = etree.QName(root).namespace
    if localname(root) != 'model' or namespace not in CELLML_NAMESPACES:
        raise MalformedDocumentError(
            "Root element must be a CellML <model>, found '{}'".format(root.tag),
            line=root.sourceline)

    listener = DocumentListener(namespace, units)
    walk(root, listener)
    document = listener.model[root]
    logger.info("Parsed model %s: %d components, %d connections",
                document.name, len(document.components), len(document.connections))
    return document


def parse_file(file_path: str, units: UnitRegistry = None) -> ast.Document:
    with open(file_path, 'rb') as f:
        txt = f.read()
    return parse(txt, units)
