#!/usr/bin/env python3
"""
Core Module
Property model, error taxonomy and node tree shared by all emitters.
"""

from .errors import (
    FbxError,
    InvalidMagicError,
    UnsupportedVersionError,
    FbxIOError,
    TextEncodingError,
    UnexpectedEofError,
    UnimplementedError,
    DataError,
    ContractViolationError,
)
from .properties import Property, PropertyType, ARRAY_DTYPES
from .node_tree import FbxNode

__all__ = [
    'FbxError',
    'InvalidMagicError',
    'UnsupportedVersionError',
    'FbxIOError',
    'TextEncodingError',
    'UnexpectedEofError',
    'UnimplementedError',
    'DataError',
    'ContractViolationError',
    'Property',
    'PropertyType',
    'ARRAY_DTYPES',
    'FbxNode',
]
