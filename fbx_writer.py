#!/usr/bin/env python3
"""
FBX Writer - Main Facade Module
Drives an emitter from Python code or from a prepared node tree

The emitters take raw start/end events. FbxWriter adds the conveniences a
script wants on top of that:
- Context managers that pair start/end calls (document(), node())
- Replaying FbxNode trees without recursion limits (write_node())
- One-call file output (write_fbx())

Errors from the emitter always propagate; a document whose block raised is
abandoned, no end events are emitted for it.
"""

import sys
from contextlib import contextmanager
from pathlib import Path

from emitters import DEFAULT_FBX_VERSION, create_emitter


class FbxWriter:
    """Event-stream writer for one output sink

    Example:
        writer = FbxWriter(sink)
        with writer.document(7400):
            with writer.node("Objects"):
                with writer.node("Model", Property.i64(1), Property.string("Model::Cube")):
                    writer.node_leaf("Version", Property.i32(232))
    """

    def __init__(self, sink, fmt='ascii', progress_callback=None, **options):
        """Initialize writer

        Args:
            sink: Binary file-like object (seekable for fmt='binary')
            fmt: Output format, 'ascii' or 'binary'
            progress_callback: Optional function to call for progress updates
                              Signature: callback(message: str) -> None
            **options: Backend options passed to the emitter
        """
        self.progress_callback = progress_callback
        self.emitter = create_emitter(fmt, sink, progress_callback=progress_callback, **options)

    def log(self, message):
        """Send progress updates to callback"""
        if self.progress_callback:
            self.progress_callback(message)
        print(message, file=sys.stderr)

    @contextmanager
    def document(self, version=DEFAULT_FBX_VERSION):
        """Wrap a block in start_document/end_document"""
        self.emitter.start_document(version)
        yield self
        self.emitter.end_document()

    @contextmanager
    def node(self, name, *properties):
        """Wrap a block in start_node/end_node"""
        self.emitter.start_node(name, properties)
        yield self
        self.emitter.end_node()

    def node_leaf(self, name, *properties):
        """Write a node that has no children"""
        self.emitter.start_node(name, properties)
        self.emitter.end_node()

    def comment(self, text):
        self.emitter.comment(text)

    def write_node(self, node):
        """Replay an FbxNode subtree as start/end events

        Walks the tree with an explicit stack, so depth is not bounded by
        Python's recursion limit.
        """
        pending = [iter([node])]
        while pending:
            child = next(pending[-1], None)
            if child is None:
                pending.pop()
                if pending:
                    self.emitter.end_node()
                continue
            self.emitter.start_node(child.name, child.properties)
            pending.append(iter(child.children))

    def write_document(self, nodes, version=DEFAULT_FBX_VERSION):
        """Write a complete document from top-level FbxNode list

        Returns:
            int: Number of nodes written
        """
        count = 0
        with self.document(version):
            for node in nodes:
                self.write_node(node)
                count += node.count_nodes()
        return count


def write_fbx(output_file, nodes, version=DEFAULT_FBX_VERSION, fmt='ascii', progress_callback=None, **options):
    """Write FbxNode trees to a file

    Args:
        output_file: Destination path
        nodes: Top-level FbxNode list
        version: FBX version integer (default: 7400)
        fmt: 'ascii' or 'binary'
        progress_callback: Optional function to call for progress updates
        **options: Backend options passed to the emitter

    Returns:
        Path: The written file
    """
    path = Path(output_file)
    with open(path, 'wb') as f:
        writer = FbxWriter(f, fmt, progress_callback=progress_callback, **options)
        writer.log(f"Writing: {path} ({writer.emitter.get_format_name()}, version {version})")
        count = writer.write_document(nodes, version)
    writer.log(f"  {count} node(s), {path.stat().st_size} bytes")
    return path
