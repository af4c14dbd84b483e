#!/usr/bin/env python
"""
Errors raised while translating a CellML document.

Every stage raises on the first violation it finds; nothing is retried and
no partial model is ever returned.
"""
from __future__ import absolute_import, division, print_function, unicode_literals


class CellMLError(Exception):
    def __init__(self, msg, **context):
        self.msg = msg
        self.context = context
        for key, value in context.items():
            setattr(self, key, value)
        super().__init__(msg)

    def __str__(self) -> str:
        return str(self.msg)

    def __repr__(self) -> str:
        return type(self).__name__ + "(" + str(self) + ")"


# -----------------------------------------------------------------------------
# Document parser
# -----------------------------------------------------------------------------


class ParseError(CellMLError):
    pass


class MalformedDocumentError(ParseError):
    pass


class UnknownUnitError(ParseError):
    pass


class UnsupportedOperatorError(ParseError):
    pass


# -----------------------------------------------------------------------------
# Connection resolution and flattening
# -----------------------------------------------------------------------------


class ResolutionError(CellMLError):
    pass


class UndeclaredVariableError(ResolutionError):
    pass


class InterfaceMismatchError(ResolutionError):
    pass


class ConflictingInitialValueError(ResolutionError):
    pass


# -----------------------------------------------------------------------------
# Classification and assembly
# -----------------------------------------------------------------------------


class ClassificationError(CellMLError):
    pass


class UnderdeterminedSystemError(ClassificationError):
    pass


class OverdeterminedSystemError(ClassificationError):
    pass


class IndependentVariableError(ClassificationError):
    pass


class AlgebraicLoopError(ClassificationError):
    pass


class UnknownSymbolError(CellMLError, KeyError):
    pass
