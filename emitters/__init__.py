#!/usr/bin/env python3
"""
Emitters Module
FBX backends sharing the start/end event interface (ASCII, Binary)
"""

from .base_emitter import (
    BaseEmitter,
    NodeFrame,
    MIN_FBX_VERSION,
    MAX_FBX_VERSION,
    DEFAULT_FBX_VERSION,
    is_supported_version,
)
from .ascii_emitter import AsciiEmitter
from .binary_emitter import BinaryEmitter

# Output format name -> emitter class
EMITTERS = {
    'ascii': AsciiEmitter,
    'binary': BinaryEmitter,
}
SUPPORTED_FORMATS = tuple(EMITTERS)


def create_emitter(fmt, sink, progress_callback=None, **options):
    """Factory function to create the emitter for an output format

    Args:
        fmt: 'ascii' or 'binary'
        sink: Binary file-like object (must be seekable for 'binary')
        progress_callback: Optional function to call for diagnostics
        **options: Backend options (indent, compression_threshold, ...)

    Returns:
        BaseEmitter: AsciiEmitter or BinaryEmitter instance

    Raises:
        ValueError: If the format is not supported
    """
    emitter_class = EMITTERS.get(str(fmt).lower())
    if emitter_class is None:
        raise ValueError(
            f"Unsupported output format: {fmt}\n"
            f"Supported formats: {', '.join(SUPPORTED_FORMATS)}"
        )
    return emitter_class(sink, progress_callback=progress_callback, **options)


__all__ = [
    'BaseEmitter',
    'NodeFrame',
    'AsciiEmitter',
    'BinaryEmitter',
    'create_emitter',
    'is_supported_version',
    'EMITTERS',
    'SUPPORTED_FORMATS',
    'MIN_FBX_VERSION',
    'MAX_FBX_VERSION',
    'DEFAULT_FBX_VERSION',
]
