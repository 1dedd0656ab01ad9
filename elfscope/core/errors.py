"""
ElfScope Error Taxonomy
========================

Every failure raised by :func:`elfscope.parse` derives from
:class:`ElfParseError`.  Decoding is fail-fast: the first error aborts the
whole parse and no partially constructed object escapes.
"""

from __future__ import annotations

from typing import Optional


class ElfParseError(Exception):
    """Base class for all structural decoding failures.

    Attributes:
        offset: File offset the failure relates to, when known.
    """

    kind: str = "ElfParseError"

    def __init__(self, message: str, *, offset: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.offset = offset

    def __str__(self) -> str:
        if self.offset is None:
            return f"{self.kind}: {self.message}"
        return f"{self.kind}: {self.message} (at offset 0x{self.offset:x})"


class InvalidMagic(ElfParseError):
    """The buffer does not start with the ELF magic sequence."""

    kind = "InvalidMagic"


class UnsupportedClass(ElfParseError):
    """The address-class byte is not ``ELFCLASS64``."""

    kind = "UnsupportedClass"

    def __init__(self, ei_class: int) -> None:
        super().__init__(f"unsupported ELF class {ei_class}", offset=4)
        self.ei_class = ei_class


class UnsupportedEncoding(ElfParseError):
    """The byte-order indicator is neither little- nor big-endian."""

    kind = "UnsupportedEncoding"

    def __init__(self, ei_data: int) -> None:
        super().__init__(f"unsupported data encoding {ei_data}", offset=5)
        self.ei_data = ei_data


class MalformedHeader(ElfParseError):
    """A file-header or program-header field violates a structural rule."""

    kind = "MalformedHeader"


class OutOfBounds(ElfParseError):
    """A declared region does not fit inside the buffer.

    Attributes:
        length: Number of bytes the region needs from *offset*.
        limit: Length of the buffer (or enclosing region) checked against.
    """

    kind = "OutOfBounds"

    def __init__(
        self,
        message: str,
        *,
        offset: Optional[int] = None,
        length: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> None:
        super().__init__(message, offset=offset)
        self.length = length
        self.limit = limit


class MalformedSymbolTable(ElfParseError):
    """A symbol-table section is structurally unusable."""

    kind = "MalformedSymbolTable"


class InvalidStringOffset(ElfParseError):
    """A string-table offset is past the table or has no terminator.

    Attributes:
        section_index: Index of the string-table section consulted.
        string_offset: Offset within that section that failed to resolve.
    """

    kind = "InvalidStringOffset"

    def __init__(self, section_index: int, string_offset: int, reason: str) -> None:
        super().__init__(
            f"string offset {string_offset} in section {section_index}: {reason}"
        )
        self.section_index = section_index
        self.string_offset = string_offset


class MalformedDynamicSection(ElfParseError):
    """The dynamic section's layout or string-table link is invalid."""

    kind = "MalformedDynamicSection"


class MalformedRelocationTable(ElfParseError):
    """A REL/RELA section declares an entry size it cannot hold."""

    kind = "MalformedRelocationTable"


__all__ = [
    "ElfParseError",
    "InvalidMagic",
    "UnsupportedClass",
    "UnsupportedEncoding",
    "MalformedHeader",
    "OutOfBounds",
    "MalformedSymbolTable",
    "InvalidStringOffset",
    "MalformedDynamicSection",
    "MalformedRelocationTable",
]
