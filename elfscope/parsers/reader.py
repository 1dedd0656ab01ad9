"""
Endian Reader
==============

Bounds-checked, byte-order-aware decoding of fixed-width integers and
fixed-layout records from an immutable buffer.

Records are decoded field by field with precompiled :class:`struct.Struct`
layouts; the range a read touches is checked against the buffer length
before any byte is accessed.
"""

from __future__ import annotations

import struct

from elfscope.core.errors import OutOfBounds
from elfscope.core.models import Endianness
from elfscope.parsers.constants import U64_MAX


def checked_end(offset: int, count: int, entry_size: int, limit: int) -> int:
    """Return ``offset + count * entry_size`` if it lies within *limit*.

    The arithmetic is checked against the 64-bit range the file fields
    live in as well as against *limit*.

    Raises:
        OutOfBounds: On overflow or when the region exceeds *limit*.
    """
    length = count * entry_size
    end = offset + length
    if offset < 0 or length > U64_MAX or end > U64_MAX:
        raise OutOfBounds(
            f"region of {count} x {entry_size} bytes overflows 64-bit range",
            offset=offset,
            length=length,
            limit=limit,
        )
    if end > limit:
        raise OutOfBounds(
            f"region [0x{offset:x}, 0x{end:x}) exceeds buffer of {limit} bytes",
            offset=offset,
            length=length,
            limit=limit,
        )
    return end


class EndianReader:
    """Read integers and records from *data* in a fixed byte order.

    Usage::

        reader = EndianReader(data, Endianness.LITTLE)
        e_type = reader.u16(16)
        fields = reader.unpack("IIQQQQQQ", phoff)
    """

    __slots__ = ("_data", "_endianness", "_prefix", "_cache")

    def __init__(self, data: bytes, endianness: Endianness) -> None:
        self._data = data
        self._endianness = endianness
        self._prefix = endianness.struct_prefix
        self._cache: dict[str, struct.Struct] = {}

    @property
    def endianness(self) -> Endianness:
        return self._endianness

    def __len__(self) -> int:
        return len(self._data)

    def layout(self, fmt: str) -> struct.Struct:
        """Return the compiled :class:`struct.Struct` for *fmt* in this byte order."""
        compiled = self._cache.get(fmt)
        if compiled is None:
            compiled = struct.Struct(self._prefix + fmt)
            self._cache[fmt] = compiled
        return compiled

    def unpack(self, fmt: str, offset: int) -> tuple[int, ...]:
        """Decode the record *fmt* at *offset*."""
        layout = self.layout(fmt)
        self.require(offset, layout.size)
        return layout.unpack_from(self._data, offset)

    def require(self, offset: int, length: int) -> None:
        """Raise :class:`OutOfBounds` unless ``[offset, offset+length)`` is readable."""
        checked_end(offset, 1, length, len(self._data))

    def u8(self, offset: int) -> int:
        return self.unpack("B", offset)[0]

    def u16(self, offset: int) -> int:
        return self.unpack("H", offset)[0]

    def u32(self, offset: int) -> int:
        return self.unpack("I", offset)[0]

    def u64(self, offset: int) -> int:
        return self.unpack("Q", offset)[0]

    def i64(self, offset: int) -> int:
        return self.unpack("q", offset)[0]

    def slice(self, offset: int, length: int) -> bytes:
        """Return a bounds-checked copy of ``length`` bytes at *offset*."""
        self.require(offset, length)
        return self._data[offset:offset + length]
