#!/usr/bin/env python3
"""
Base Emitter Module
Abstract base class holding the event protocol shared by all FBX backends

Callers push events (start_document, start_node, end_node, comment,
end_document) and the emitter writes output as it goes; no node tree is ever
buffered. The only cross-call state is a stack with one NodeFrame per open
node. Whether a node needs braces (ASCII) or a closing null record (binary)
is decided from that frame at end_node, and a parent's opening brace is
written when its first child starts.

This module owns everything backends have in common:
- Protocol checks (version window, node names, balanced start/end calls)
- The node stack and byte position of the sink
- Wrapping sink failures into FbxIOError
- Progress/diagnostic logging through an optional callback
"""

import operator
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from core.errors import (
    ContractViolationError,
    DataError,
    FbxIOError,
    UnimplementedError,
    UnsupportedVersionError,
)
from core.properties import Property

# Supported FBX versions: [MIN_FBX_VERSION, MAX_FBX_VERSION)
MIN_FBX_VERSION = 7000
MAX_FBX_VERSION = 8000
DEFAULT_FBX_VERSION = 7400


@dataclass
class NodeFrame:
    """Structural state of one open node

    Attributes:
        has_properties: Fixed at start_node from whether properties were given
        has_emitted_child: Set once the first child node starts
    """
    has_properties: bool
    has_emitted_child: bool = False


def split_comment_lines(text):
    """Split comment text into lines

    Splits on LF, drops one trailing CR per line and ignores the empty piece
    after a final line break.
    """
    if not text:
        return []
    lines = text.split('\n')
    if lines[-1] == '':
        lines.pop()
    return [line[:-1] if line.endswith('\r') else line for line in lines]


def is_supported_version(version):
    """Return True for an integer version in [MIN_FBX_VERSION, MAX_FBX_VERSION)"""
    if isinstance(version, bool):
        return False
    try:
        version = operator.index(version)
    except TypeError:
        return False
    return MIN_FBX_VERSION <= version < MAX_FBX_VERSION


class BaseEmitter(ABC):
    """Abstract base class for FBX emitters

    Subclasses implement the _emit_* hooks; any hook a backend does not
    override raises UnimplementedError when its operation is reached.
    """

    def __init__(self, sink, progress_callback=None):
        """Initialize emitter

        Args:
            sink: Binary file-like object receiving the encoded document
            progress_callback: Optional function to call for diagnostics
                              Signature: callback(message: str) -> None
        """
        self.sink = sink
        self.progress_callback = progress_callback
        self.version = None
        self.pos = 0
        self._stack: List[NodeFrame] = []
        self._in_document = False

    def log(self, message):
        """Send diagnostic message

        Goes to stderr, since stdout may be carrying the document itself.
        """
        if self.progress_callback:
            self.progress_callback(message)
        print(message, file=sys.stderr)

    @abstractmethod
    def get_format_name(self):
        """Return human-readable format name (e.g., "FBX ASCII")"""
        pass

    def get_file_extension(self):
        return "fbx"

    @property
    def depth(self):
        """Number of currently open nodes"""
        return len(self._stack)

    @property
    def in_document(self):
        return self._in_document

    # === EVENT PROTOCOL ===

    def start_document(self, version=DEFAULT_FBX_VERSION):
        """Begin a new document and write the backend header

        All per-document state is reset here, abandoning any document left
        open by an earlier failure. Nothing is written when the version is
        rejected.

        Args:
            version: FBX version integer, e.g. 7400 for FBX 7.4.0

        Raises:
            UnsupportedVersionError: If version is outside [7000, 8000)
        """
        if not is_supported_version(version):
            self.log(f"ERROR: Unsupported version: {version}")
            raise UnsupportedVersionError(version, self.pos)

        if self._in_document:
            self.log(f"WARNING: Abandoning unfinished document at depth {len(self._stack)}")
            self._in_document = False
        self._stack = []
        self.pos = 0
        version = operator.index(version)
        self.version = version
        self._emit_start_document(version)
        self._in_document = True

    def end_document(self):
        """Finish the document

        Raises:
            ContractViolationError: If nodes are still open
        """
        self._require_document('end_document')
        if self._stack:
            raise ContractViolationError(
                f"end_document() called with {len(self._stack)} node(s) still open", self.pos)
        self._emit_end_document()
        self._in_document = False

    def start_node(self, name, properties=()):
        """Open a node

        Args:
            name: Non-empty node name
            properties: Iterable of Property values, written in order

        Raises:
            ContractViolationError: If name is empty or no document is open
            DataError: If a property is not a Property instance
        """
        self._require_document('start_node')
        if not isinstance(name, str) or not name:
            raise ContractViolationError(f"Node name must be a non-empty string, got {name!r}", self.pos)
        properties = list(properties)
        for prop in properties:
            if not isinstance(prop, Property):
                raise DataError(f"Node {name!r}: expected Property, got {type(prop).__name__}", self.pos)

        parent = self._stack[-1] if self._stack else None
        first_child = parent is not None and not parent.has_emitted_child
        self._emit_start_node(name, properties, first_child)
        if parent is not None:
            parent.has_emitted_child = True
        self._stack.append(NodeFrame(has_properties=bool(properties)))

    def end_node(self):
        """Close the most recently opened node

        Raises:
            ContractViolationError: If no node is open
        """
        self._require_document('end_node')
        if not self._stack:
            raise ContractViolationError("end_node() called with no open node", self.pos)
        frame = self._stack.pop()
        self._emit_end_node(frame)

    def comment(self, text):
        """Write a (possibly multi-line) comment at the current depth

        Has no effect on the node stack.
        """
        self._require_document('comment')
        if not isinstance(text, str):
            raise DataError(f"Comment must be str, got {type(text).__name__}", self.pos)
        self._emit_comment(split_comment_lines(text))

    # === BACKEND HOOKS ===

    def _emit_start_document(self, version):
        self._unimplemented('start_document')

    def _emit_end_document(self):
        self._unimplemented('end_document')

    def _emit_start_node(self, name, properties, first_child):
        """Write the start of a node

        Args:
            name: Node name
            properties: List of Property values
            first_child: True if this node is the first child of its parent
        """
        self._unimplemented('start_node')

    def _emit_end_node(self, frame):
        self._unimplemented('end_node')

    def _emit_comment(self, lines):
        self._unimplemented('comment')

    # === HELPERS ===

    def _unimplemented(self, operation):
        raise UnimplementedError(
            f"{type(self).__name__}.{operation}() is unimplemented yet", self.pos)

    def _require_document(self, operation):
        if not self._in_document:
            raise ContractViolationError(f"{operation}() called outside of a document", self.pos)

    def _write(self, data):
        """Write bytes to the sink and advance the byte position"""
        try:
            self.sink.write(data)
        except OSError as e:
            raise FbxIOError(e, self.pos) from e
        self.pos += len(data)
