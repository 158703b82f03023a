#!/usr/bin/env python3
"""
Errors Module
Exception taxonomy shared by all FBX emitters.

Every error carries the byte offset (``pos``) into the output sink where the
failure was detected, when one is known. Emitters raise these and never
retry; once an error is raised the in-progress document is abandoned.
"""

from typing import Optional


class FbxError(Exception):
    """Base class for all FBX writer errors

    Attributes:
        pos: Byte offset in the sink where the failure occurred (or None)
    """

    def __init__(self, message: str, pos: Optional[int] = None):
        super().__init__(message)
        self.pos = pos

    def __str__(self):
        message = super().__str__()
        if self.pos is None:
            return message
        return f"{message} (at byte {self.pos})"


class InvalidMagicError(FbxError):
    """Input did not start with a known FBX signature"""

    def __init__(self, pos: Optional[int] = None):
        super().__init__("Invalid FBX magic", pos)


class UnsupportedVersionError(FbxError):
    """Requested FBX version is outside the supported window"""

    def __init__(self, version, pos: Optional[int] = None):
        super().__init__(f"Unsupported FBX version: {version}", pos)
        self.version = version


class FbxIOError(FbxError):
    """Underlying sink write/seek failed"""

    def __init__(self, cause: OSError, pos: Optional[int] = None):
        super().__init__(f"I/O error: {cause}", pos)
        self.cause = cause


class TextEncodingError(FbxError):
    """Invalid UTF-8 where text was required"""

    def __init__(self, cause: UnicodeError, pos: Optional[int] = None):
        super().__init__(f"Invalid UTF-8 text: {cause}", pos)
        self.cause = cause


class UnexpectedEofError(FbxError):
    """Input ended in the middle of a record"""

    def __init__(self, pos: Optional[int] = None):
        super().__init__("Unexpected end of input", pos)


class UnimplementedError(FbxError):
    """Operation is recognized but not supported by the selected backend"""


class DataError(FbxError):
    """Value cannot be represented in the target encoding"""


class ContractViolationError(FbxError):
    """Caller broke the start/end event protocol"""
