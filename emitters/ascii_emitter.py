#!/usr/bin/env python3
"""
FBX ASCII emitter

Writes the text dialect of FBX as nested ``Name: props {  ...  }`` blocks.

Brace placement is decided late, one event at a time:
- A parent's " {" is written when its first child starts
- A node with neither properties nor children gets " {" and "}" at end_node
- A node with properties and no children is a single line, no braces

The current node's line is therefore left open until the next event decides
how it ends. Comments arriving while the line is open are queued and written
right after the line terminator, so they never change the brace decision.
"""

import base64

import numpy as np

from core.errors import TextEncodingError
from core.properties import PropertyType
from emitters.base_emitter import BaseEmitter

BOOL_TOKENS = {True: "Y", False: "T"}

_INT_TYPES = (PropertyType.I16, PropertyType.I32, PropertyType.I64)
_FLOAT_TYPES = (PropertyType.F32, PropertyType.F64)


def format_float(value):
    """Shortest decimal that reads back to the same value at its own width

    np.float32 values round-trip as float32, everything else as float64.
    Integral values drop the fraction (1.0 -> "1").
    """
    return np.format_float_positional(value, unique=True, trim='-')


def escape_string(text):
    """Escape text for a double-quoted FBX ASCII string"""
    return text.replace('"', '&quot;').replace('\n', '&lf;').replace('\r', '&cr;')


class AsciiEmitter(BaseEmitter):
    """FBX ASCII writer

    v1.1.0: Comments inside an unfinished node line are deferred instead of
    being appended to it.
    """

    def __init__(self, sink, progress_callback=None, indent="\t"):
        """Initialize ASCII emitter

        Args:
            sink: Binary file-like object; text is written as UTF-8
            progress_callback: Optional function to call for diagnostics
            indent: Indentation unit per nesting level (default: one tab)
        """
        super().__init__(sink, progress_callback)
        self.indent_unit = indent
        self._line_open = False
        self._pending_comments = []

    def get_format_name(self):
        return "FBX ASCII"

    # === DOCUMENT ===

    def _emit_start_document(self, version):
        self._line_open = False
        self._pending_comments = []
        major, minor = version // 1000, version % 1000
        minor, revision = minor // 100, minor % 100
        self._write_text(f"; FBX {major}.{minor}.{revision} project file\n")

    def _emit_end_document(self):
        pass

    # === NODES ===

    def _emit_start_node(self, name, properties, first_child):
        depth = self.depth
        # Properties are indented one level below the node itself
        tokens = [self.format_property(prop, depth + 1) for prop in properties]
        if first_child:
            self._end_line(" {\n")
        self._write_text(f"{self._indent(depth)}{name}: {', '.join(tokens)}")
        self._line_open = True

    def _emit_end_node(self, frame):
        depth = self.depth
        if not frame.has_properties and not frame.has_emitted_child:
            # Empty node
            self._end_line(" {\n")
            self._write_text(f"{self._indent(depth)}}}\n")
        elif frame.has_emitted_child:
            # Opening brace went out with the first child
            self._write_text(f"{self._indent(depth)}}}\n")
        else:
            self._end_line("\n")

    def _emit_comment(self, lines):
        depth = self.depth
        if self._line_open:
            self._pending_comments.extend((depth, line) for line in lines)
        else:
            self._write_comment_lines((depth, line) for line in lines)

    # === PROPERTIES ===

    def format_property(self, prop, prop_depth):
        """Render one property as FBX ASCII text

        Args:
            prop: Property to render
            prop_depth: Nesting depth of the node's contents; array bodies are
                        indented to this depth and closed one level up

        Returns:
            str: Encoded property token
        """
        prop_type = prop.type
        value = prop.value

        if prop_type is PropertyType.BOOL:
            return BOOL_TOKENS[value]
        if prop_type in _INT_TYPES:
            return str(value)
        if prop_type in _FLOAT_TYPES:
            return format_float(value)
        if prop_type is PropertyType.STRING:
            return f'"{escape_string(value)}"'
        if prop_type is PropertyType.BINARY:
            # TODO: fold long base64 lines the way the FBX SDK does
            return f'"{base64.b64encode(value).decode("ascii")}"'

        # Arrays
        if prop_type is PropertyType.VEC_BOOL:
            self.log("WARNING: ASCII representation of vector of boolean values may be wrong.")
            body = ",".join(BOOL_TOKENS[bool(v)] for v in value)
        elif value.dtype.kind == 'f':
            body = ",".join(format_float(v) for v in value)
        else:
            body = ",".join(str(v) for v in value.tolist())
        return (f"*{len(value)} {{\n"
                f"{self._indent(prop_depth)}a: {body}\n"
                f"{self._indent(prop_depth - 1)}}}")

    # === OUTPUT ===

    def _indent(self, depth):
        return self.indent_unit * depth

    def _end_line(self, terminator):
        self._write_text(terminator)
        self._line_open = False
        pending, self._pending_comments = self._pending_comments, []
        self._write_comment_lines(pending)

    def _write_comment_lines(self, entries):
        for depth, line in entries:
            self._write_text(f"{self._indent(depth)}{line}\n")

    def _write_text(self, text):
        try:
            data = text.encode('utf-8')
        except UnicodeEncodeError as e:
            raise TextEncodingError(e, self.pos) from e
        self._write(data)
