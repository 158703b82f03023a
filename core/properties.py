#!/usr/bin/env python3
"""
Properties Module
Typed property values attached to FBX nodes.

A Property is a (type, value) pair. The type is one of a closed set of
variants and fully determines how a backend encodes the value; the enum
values double as the FBX binary type codes. Array values are stored as
one-dimensional numpy arrays of a fixed dtype, so an array never mixes
element types.
"""

import numbers
import operator
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np

from .errors import DataError, TextEncodingError


class PropertyType(Enum):
    """Property variants, valued by their FBX binary type code"""
    BOOL = "C"
    I16 = "Y"
    I32 = "I"
    I64 = "L"
    F32 = "F"
    F64 = "D"
    VEC_BOOL = "b"
    VEC_I32 = "i"
    VEC_I64 = "l"
    VEC_F32 = "f"
    VEC_F64 = "d"
    STRING = "S"
    BINARY = "R"

    @property
    def is_array(self):
        return self in ARRAY_DTYPES


# Element dtype of each array variant (little-endian, as stored in binary FBX)
ARRAY_DTYPES = {
    PropertyType.VEC_BOOL: np.dtype('?'),
    PropertyType.VEC_I32: np.dtype('<i4'),
    PropertyType.VEC_I64: np.dtype('<i8'),
    PropertyType.VEC_F32: np.dtype('<f4'),
    PropertyType.VEC_F64: np.dtype('<f8'),
}

_INT_BITS = {
    PropertyType.I16: 16,
    PropertyType.I32: 32,
    PropertyType.I64: 64,
}


def _checked_int(value, prop_type):
    try:
        value = operator.index(value)
    except TypeError:
        raise DataError(f"{prop_type.name} property needs an integer, got {type(value).__name__}")
    bits = _INT_BITS[prop_type]
    low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    if not low <= value <= high:
        raise DataError(f"{value} does not fit in a {bits}-bit {prop_type.name} property")
    return value


def _checked_bool(value):
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    try:
        number = operator.index(value)
    except TypeError:
        raise DataError(f"BOOL property needs a boolean, got {type(value).__name__}")
    if number not in (0, 1):
        raise DataError(f"BOOL property needs a boolean or 0/1, got {number}")
    return bool(number)


def _checked_float(value, prop_type):
    """Convert a real number to the float width of prop_type

    Raises:
        DataError: If value is not a real number, or is finite but does not
                   fit the target width
    """
    if not isinstance(value, numbers.Real):
        raise DataError(f"{prop_type.name} property needs a real number, got {type(value).__name__}")
    try:
        wide = float(value)
    except OverflowError:
        raise DataError(f"{value} does not fit in a {prop_type.name} property")
    if prop_type is PropertyType.F64:
        return wide
    with np.errstate(over='ignore'):
        narrow = np.float32(wide)
    if np.isinf(narrow) and not np.isinf(wide):
        raise DataError(f"{value} does not fit in a {prop_type.name} property")
    return narrow


def _checked_array(values, prop_type):
    """Coerce values to the fixed dtype of an array variant

    Raises:
        DataError: If values are not one-dimensional or would not convert
                   losslessly (out-of-range integers, floats in an int array)
    """
    dtype = ARRAY_DTYPES[prop_type]
    arr = np.asarray(values)
    if arr.ndim != 1:
        raise DataError(f"{prop_type.name} property needs a flat sequence, got {arr.ndim}-D data")
    if arr.size == 0:
        return np.zeros(0, dtype=dtype)

    kind = arr.dtype.kind
    if dtype.kind == 'b':
        if kind == 'b':
            return arr.astype(dtype)
        if kind in 'iu' and np.isin(arr, (0, 1)).all():
            return arr.astype(dtype)
        raise DataError(f"{prop_type.name} property needs boolean values")

    if dtype.kind == 'i':
        if kind not in 'iub':
            raise DataError(f"{prop_type.name} property needs integer values, got {arr.dtype}")
        info = np.iinfo(dtype)
        if kind != 'b' and (arr.min() < info.min or arr.max() > info.max):
            raise DataError(f"{prop_type.name} values do not fit in {dtype.itemsize * 8} bits")
        return arr.astype(dtype)

    if kind not in 'iubf':
        raise DataError(f"{prop_type.name} property needs numeric values, got {arr.dtype}")
    with np.errstate(over='ignore'):
        converted = arr.astype(dtype)
    if kind == 'f' and (np.isinf(converted) & np.isfinite(arr)).any():
        raise DataError(f"{prop_type.name} values do not fit in {dtype.itemsize * 8}-bit floats")
    return converted


@dataclass(frozen=True, eq=False)
class Property:
    """Single typed value attached to a node

    Build instances through the named constructors (Property.i32(5),
    Property.string("Model::Cube"), ...) rather than directly; they validate
    and normalise the value for the chosen variant.

    Attributes:
        type: PropertyType variant
        value: bool, int, numpy.float32, float, str, bytes or 1-D numpy array
    """
    type: PropertyType
    value: Any

    @property
    def is_array(self):
        return self.type.is_array

    # === SCALARS ===

    @classmethod
    def bool(cls, value):
        return cls(PropertyType.BOOL, _checked_bool(value))

    @classmethod
    def i16(cls, value):
        return cls(PropertyType.I16, _checked_int(value, PropertyType.I16))

    @classmethod
    def i32(cls, value):
        return cls(PropertyType.I32, _checked_int(value, PropertyType.I32))

    @classmethod
    def i64(cls, value):
        return cls(PropertyType.I64, _checked_int(value, PropertyType.I64))

    @classmethod
    def f32(cls, value):
        return cls(PropertyType.F32, _checked_float(value, PropertyType.F32))

    @classmethod
    def f64(cls, value):
        return cls(PropertyType.F64, _checked_float(value, PropertyType.F64))

    # === ARRAYS ===

    @classmethod
    def vec_bool(cls, values):
        return cls(PropertyType.VEC_BOOL, _checked_array(values, PropertyType.VEC_BOOL))

    @classmethod
    def vec_i32(cls, values):
        return cls(PropertyType.VEC_I32, _checked_array(values, PropertyType.VEC_I32))

    @classmethod
    def vec_i64(cls, values):
        return cls(PropertyType.VEC_I64, _checked_array(values, PropertyType.VEC_I64))

    @classmethod
    def vec_f32(cls, values):
        return cls(PropertyType.VEC_F32, _checked_array(values, PropertyType.VEC_F32))

    @classmethod
    def vec_f64(cls, values):
        return cls(PropertyType.VEC_F64, _checked_array(values, PropertyType.VEC_F64))

    # === TEXT AND BLOBS ===

    @classmethod
    def string(cls, value):
        """Text property from str or UTF-8 encoded bytes

        Raises:
            TextEncodingError: If bytes are not valid UTF-8
        """
        if isinstance(value, (bytes, bytearray, memoryview)):
            try:
                value = bytes(value).decode('utf-8')
            except UnicodeDecodeError as e:
                raise TextEncodingError(e) from e
        elif not isinstance(value, str):
            raise DataError(f"STRING property needs str or bytes, got {type(value).__name__}")
        return cls(PropertyType.STRING, value)

    @classmethod
    def binary(cls, value):
        try:
            return cls(PropertyType.BINARY, bytes(memoryview(value)))
        except TypeError:
            raise DataError(f"BINARY property needs a bytes-like value, got {type(value).__name__}")

    @classmethod
    def from_code(cls, code, value):
        """Build a property from its FBX type code (e.g. 'I', 'd', 'S')

        Raises:
            DataError: If the type code is unknown
        """
        try:
            prop_type = PropertyType(code)
        except ValueError:
            raise DataError(f"Unknown property type code: {code!r}")
        return getattr(cls, _CONSTRUCTORS[prop_type])(value)


_CONSTRUCTORS = {
    PropertyType.BOOL: 'bool',
    PropertyType.I16: 'i16',
    PropertyType.I32: 'i32',
    PropertyType.I64: 'i64',
    PropertyType.F32: 'f32',
    PropertyType.F64: 'f64',
    PropertyType.VEC_BOOL: 'vec_bool',
    PropertyType.VEC_I32: 'vec_i32',
    PropertyType.VEC_I64: 'vec_i64',
    PropertyType.VEC_F32: 'vec_f32',
    PropertyType.VEC_F64: 'vec_f64',
    PropertyType.STRING: 'string',
    PropertyType.BINARY: 'binary',
}
