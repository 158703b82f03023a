#!/usr/bin/env python3
"""
json2fbx - Command Line Version
Write an FBX file (ASCII or binary) for each JSON document given

The JSON data is a list of nodes, each a list of 4 items:

   [name, [data, ...], "type codes", [children, ...]]

"type codes" holds one FBX type code per data item:

   C  bool          Y  int16         I  int32         L  int64
   F  float32       D  float64       S  string        R  bytes (base64 text)
   b  bool array    i  int32 array   l  int64 array
   f  float32 array                  d  float64 array
"""

import argparse
import base64
import binascii
import json
import sys
from pathlib import Path

from core.errors import DataError, FbxError
from core.node_tree import FbxNode
from core.properties import Property, PropertyType
from emitters import DEFAULT_FBX_VERSION, SUPPORTED_FORMATS
from fbx_writer import write_fbx


def parse_json_rec(json_node):
    """Convert one [name, data, types, children] entry into an FbxNode

    Raises:
        DataError: If the entry is malformed or a value does not fit its type
    """
    if not isinstance(json_node, list) or len(json_node) != 4:
        raise DataError(f"Node must be a list of 4 items: {str(json_node)[:60]}")
    name, data, data_types, children = json_node
    if not isinstance(name, str) or not isinstance(data, list) or not isinstance(data_types, str) \
            or not isinstance(children, list):
        raise DataError(f"Node must be [name, [data, ...], \"types\", [children, ...]]: {name!r}")
    if len(data) != len(data_types):
        raise DataError(f"Node {name!r}: {len(data)} data item(s) but {len(data_types)} type code(s)")

    properties = []
    for value, code in zip(data, data_types):
        if code == PropertyType.BINARY.value:
            try:
                value = base64.b64decode(value, validate=True)
            except (binascii.Error, TypeError) as e:
                raise DataError(f"Node {name!r}: bad base64 data: {e}")
        properties.append(Property.from_code(code, value))

    return FbxNode(name, properties, [parse_json_rec(child) for child in children])


def parse_json(json_root):
    """Convert a JSON node list into top-level FbxNodes"""
    if not isinstance(json_root, list):
        raise DataError("JSON root must be a list of nodes")
    return [parse_json_rec(json_node) for json_node in json_root]


def json2fbx(input_file, output_file=None, version=DEFAULT_FBX_VERSION, fmt='ascii'):
    """Convert one JSON file

    Args:
        input_file: JSON source path
        output_file: FBX destination (default: input path with .fbx suffix)
        version: FBX version integer
        fmt: 'ascii' or 'binary'

    Returns:
        Path: The written file
    """
    input_path = Path(input_file)
    output_path = Path(output_file) if output_file else input_path.with_suffix('.fbx')
    with open(input_path, encoding='utf-8') as f_json:
        json_root = json.load(f_json)
    nodes = parse_json(json_root)
    try:
        return write_fbx(output_path, nodes, version=version, fmt=fmt)
    except (FbxError, ValueError):
        # Don't leave a truncated document behind
        output_path.unlink(missing_ok=True)
        raise


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='json2fbx',
        description='Write an FBX file for each JSON node-tree document',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # ASCII FBX 7.4 next to the input
  python json2fbx.py scene.json

  # Binary FBX 7.5 into another directory
  python json2fbx.py a.json b.json --format binary --version 7500 --output-dir ./out
        """
    )

    parser.add_argument('inputs', nargs='+', help='JSON input files')
    parser.add_argument('--format', '-f', choices=SUPPORTED_FORMATS, default='ascii',
                        help='Output format (default: ascii)')
    parser.add_argument('--version', '-v', type=int, default=DEFAULT_FBX_VERSION,
                        help=f'FBX version, e.g. 7400 for 7.4.0 (default: {DEFAULT_FBX_VERSION})')
    parser.add_argument('--output-dir', type=str,
                        help='Output directory (default: next to each input)')

    args = parser.parse_args(argv)

    failures = 0
    for input_file in args.inputs:
        input_path = Path(input_file)
        if not input_path.exists():
            print(f"Error: Input file not found: {input_file}", file=sys.stderr)
            failures += 1
            continue

        output_dir = Path(args.output_dir) if args.output_dir else input_path.parent
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / f"{input_path.stem}.fbx"

        try:
            json2fbx(input_path, output_path, version=args.version, fmt=args.format)
            print(f"✓ {output_path}")
        except (FbxError, ValueError, OSError) as e:
            print(f"✗ Failed to convert {input_path.name}: {e}", file=sys.stderr)
            failures += 1

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
