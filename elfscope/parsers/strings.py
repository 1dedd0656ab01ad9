"""
String Table Resolver
======================

Resolves byte offsets within a string-table section to text.  A name is
the run of bytes from the offset up to (not including) the next NUL byte,
and must end inside the section: a string never crosses the section
boundary.
"""

from __future__ import annotations

from typing import Union

from elfscope.core.errors import InvalidStringOffset
from elfscope.core.models import SectionHeader
from elfscope.parsers.reader import EndianReader
from elfscope.parsers.tables import SectionRecord


class StringResolver:
    """Resolve names against one string-table section.

    The section's bytes are copied once on construction (bounds-checked);
    each :meth:`resolve` call is independent of every other.

    Args:
        reader: Reader over the whole buffer.
        section_index: Index of the string-table section (for errors).
        section: Header of the string-table section.
        encoding: Codec applied to the name bytes.
        errors: Codec error handler.

    Raises:
        OutOfBounds: The section's file region exceeds the buffer.
    """

    __slots__ = ("_section_index", "_table", "_encoding", "_errors")

    def __init__(
        self,
        reader: EndianReader,
        section_index: int,
        section: Union[SectionRecord, SectionHeader],
        *,
        encoding: str = "utf-8",
        errors: str = "replace",
    ) -> None:
        self._section_index = section_index
        self._encoding = encoding
        self._errors = errors
        if section.occupies_file:
            self._table = reader.slice(section.offset, section.size)
        else:
            self._table = b""

    @property
    def section_index(self) -> int:
        return self._section_index

    def __len__(self) -> int:
        return len(self._table)

    def resolve(self, offset: int) -> str:
        """Return the NUL-terminated string starting at *offset*.

        Raises:
            InvalidStringOffset: *offset* is at or past the end of the
                section, or no terminator occurs before the section ends.
        """
        if offset >= len(self._table):
            raise InvalidStringOffset(
                self._section_index,
                offset,
                f"beyond end of {len(self._table)}-byte string table",
            )
        end = self._table.find(b"\x00", offset)
        if end == -1:
            raise InvalidStringOffset(
                self._section_index, offset, "no NUL terminator before section end"
            )
        try:
            return self._table[offset:end].decode(self._encoding, self._errors)
        except UnicodeDecodeError as exc:
            raise InvalidStringOffset(
                self._section_index, offset, f"undecodable name ({exc.reason})"
            ) from exc
