#!/usr/bin/env python3
"""
FBX Binary emitter

Writes the binary FBX record layout:

    header      "Kaydara FBX Binary  \\x00\\x1a\\x00" + uint32 version
    node        end_offset, property count, property bytes   (uint32, or
                uint64 from 7500 on), uint8 name length, name, properties,
                children, then a null record closing the child list
    footer      null record, footer id, padding, version, magic

A node's end_offset is only known once the node ends, so start_node writes a
zero placeholder and end_node seeks back to patch it. The sink must therefore
be seekable.
"""

import io
import struct
import zlib

from core.errors import DataError, FbxIOError, TextEncodingError
from core.properties import ARRAY_DTYPES, PropertyType
from emitters.base_emitter import BaseEmitter

HEAD_MAGIC = b"Kaydara FBX Binary\x20\x20\x00\x1a\x00"
FOOT_ID = b"\xfa\xbc\xab\x09\xd0\xc8\xd4\x66\xb1\x76\xfb\x83\x1c\xf7\x26\x7e"
FOOT_MAGIC = b"\xf8\x5a\x8c\x6a\xde\xf5\xd9\x7e\xec\xe9\x0c\xe3\x75\x8f\x29\x0b"

# Versions from here on use 64-bit record headers
WIDE_HEADER_VERSION = 7500

# Nodes that get a closing null record even without children
ALWAYS_BLOCK_SENTINEL = {"References", "AnimationStack", "AnimationLayer"}

DEFAULT_COMPRESSION_THRESHOLD = 128
DEFAULT_COMPRESSION_LEVEL = 6

_SCALAR_FORMATS = {
    PropertyType.I16: '<h',
    PropertyType.I32: '<i',
    PropertyType.I64: '<q',
    PropertyType.F32: '<f',
    PropertyType.F64: '<d',
}

_UINT32_MAX = 0xFFFFFFFF


class BinaryEmitter(BaseEmitter):
    """FBX binary writer

    v1.1.0: Full record layout with end-offset patching and zlib arrays.
    """

    def __init__(self, sink, progress_callback=None,
                 compression_threshold=DEFAULT_COMPRESSION_THRESHOLD,
                 compression_level=DEFAULT_COMPRESSION_LEVEL):
        """Initialize binary emitter

        Args:
            sink: Seekable binary file-like object
            progress_callback: Optional function to call for diagnostics
            compression_threshold: Arrays with more raw bytes than this are
                                   zlib-compressed (None disables compression)
            compression_level: zlib level used for compressed arrays
        """
        super().__init__(sink, progress_callback)
        self.compression_threshold = compression_threshold
        self.compression_level = compression_level
        self._base = 0
        # (record offset, node name) per open node
        self._end_offset_pos_stack = []

    def get_format_name(self):
        return "FBX Binary"

    @property
    def wide_headers(self):
        return self.version >= WIDE_HEADER_VERSION

    def _null_record(self):
        return b"\0" * (25 if self.wide_headers else 13)

    # === DOCUMENT ===

    def _emit_start_document(self, version):
        seekable = getattr(self.sink, 'seekable', None)
        if seekable is None or not seekable():
            raise FbxIOError(io.UnsupportedOperation("binary FBX output needs a seekable sink"), self.pos)
        try:
            self._base = self.sink.tell()
        except OSError as e:
            raise FbxIOError(e, self.pos) from e
        self._end_offset_pos_stack = []
        self._write(HEAD_MAGIC + struct.pack('<I', version))

    def _emit_end_document(self):
        self._write(self._null_record())
        self._write(FOOT_ID + b"\0" * 4)
        # Pad to a 16 byte boundary, a full 16 bytes if already aligned
        pad = ((self.pos + 15) & ~15) - self.pos
        if pad == 0:
            pad = 16
        self._write(b"\0" * pad + struct.pack('<I', self.version) + b"\0" * 120 + FOOT_MAGIC)

    # === NODES ===

    def _emit_start_node(self, name, properties, first_child):
        try:
            name_data = name.encode('utf-8')
        except UnicodeEncodeError as e:
            raise TextEncodingError(e, self.pos) from e
        if len(name_data) > 255:
            raise DataError(f"Node name is {len(name_data)} bytes, the limit is 255", self.pos)

        props_data = b"".join(self.encode_property(prop) for prop in properties)
        if not self.wide_headers and len(props_data) > _UINT32_MAX:
            raise DataError(f"Properties of {name!r} exceed 4 GiB; use version {WIDE_HEADER_VERSION}+", self.pos)

        head_fmt = '<QQQB' if self.wide_headers else '<IIIB'
        record_pos = self.pos
        header = struct.pack(head_fmt, 0, len(properties), len(props_data), len(name_data))
        self._write(header + name_data + props_data)
        self._end_offset_pos_stack.append((record_pos, name))

    def _emit_end_node(self, frame):
        record_pos, name = self._end_offset_pos_stack.pop()
        if frame.has_emitted_child or not frame.has_properties or name in ALWAYS_BLOCK_SENTINEL:
            self._write(self._null_record())
        self._patch_end_offset(record_pos, self.pos)

    def _emit_comment(self, lines):
        # Binary FBX has no comment records
        pass

    def _patch_end_offset(self, record_pos, end_offset):
        if self.wide_headers:
            data = struct.pack('<Q', end_offset)
        elif end_offset > _UINT32_MAX:
            raise DataError(f"End offset {end_offset} overflows 32 bits; use version {WIDE_HEADER_VERSION}+",
                            record_pos)
        else:
            data = struct.pack('<I', end_offset)
        try:
            self.sink.seek(self._base + record_pos)
            self.sink.write(data)
            self.sink.seek(self._base + self.pos)
        except OSError as e:
            raise FbxIOError(e, record_pos) from e

    # === PROPERTIES ===

    def encode_property(self, prop):
        """Encode one property as type code + little-endian payload

        Args:
            prop: Property to encode

        Returns:
            bytes: Encoded property
        """
        prop_type = prop.type
        value = prop.value
        code = prop_type.value.encode('ascii')

        if prop_type is PropertyType.BOOL:
            return code + (b"\x01" if value else b"\x00")

        fmt = _SCALAR_FORMATS.get(prop_type)
        if fmt is not None:
            return code + struct.pack(fmt, float(value) if fmt in ('<f', '<d') else value)

        if prop_type in (PropertyType.STRING, PropertyType.BINARY):
            if prop_type is PropertyType.STRING:
                try:
                    value = value.encode('utf-8')
                except UnicodeEncodeError as e:
                    raise TextEncodingError(e, self.pos) from e
            if len(value) > _UINT32_MAX:
                raise DataError(f"{prop_type.name} property exceeds 4 GiB", self.pos)
            return code + struct.pack('<I', len(value)) + value

        # Arrays: count, encoding (0 raw, 1 zlib), byte length, data
        data = value.astype(ARRAY_DTYPES[prop_type], copy=False).tobytes()
        encoding = 0
        if self.compression_threshold is not None and len(data) > self.compression_threshold:
            data = zlib.compress(data, self.compression_level)
            encoding = 1
        return code + struct.pack('<III', len(value), encoding, len(data)) + data
