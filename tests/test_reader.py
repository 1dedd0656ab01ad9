"""Tests for bounds-checked, byte-order-aware reads."""

from __future__ import annotations

import pytest

from elfscope.core.errors import OutOfBounds
from elfscope.core.models import Endianness
from elfscope.parsers.constants import U64_MAX
from elfscope.parsers.reader import EndianReader, checked_end


class TestCheckedEnd:
    def test_region_inside_limit(self) -> None:
        assert checked_end(16, 3, 8, 40) == 40

    def test_region_past_limit(self) -> None:
        with pytest.raises(OutOfBounds) as info:
            checked_end(16, 4, 8, 40)
        assert info.value.offset == 16
        assert info.value.length == 32
        assert info.value.limit == 40

    def test_overflowing_region(self) -> None:
        with pytest.raises(OutOfBounds, match="overflows"):
            checked_end(U64_MAX - 8, 2, 64, 100)

    def test_huge_count(self) -> None:
        with pytest.raises(OutOfBounds):
            checked_end(0, 0xFFFF_FFFF_FFFF, 0xFFFF_FFFF, 1 << 20)

    def test_empty_region_at_end(self) -> None:
        assert checked_end(40, 0, 8, 40) == 40


class TestEndianReader:
    DATA = bytes(range(16))

    def test_little_endian(self) -> None:
        r = EndianReader(self.DATA, Endianness.LITTLE)
        assert r.u8(1) == 0x01
        assert r.u16(0) == 0x0100
        assert r.u32(0) == 0x03020100
        assert r.u64(8) == 0x0F0E0D0C0B0A0908

    def test_big_endian(self) -> None:
        r = EndianReader(self.DATA, Endianness.BIG)
        assert r.u16(0) == 0x0001
        assert r.u32(4) == 0x04050607
        assert r.u64(0) == 0x0001020304050607

    def test_signed(self) -> None:
        r = EndianReader(b"\xff" * 8, Endianness.LITTLE)
        assert r.i64(0) == -1
        assert r.u64(0) == U64_MAX

    def test_unpack_record(self) -> None:
        r = EndianReader(self.DATA, Endianness.BIG)
        assert r.unpack("HI", 0) == (0x0001, 0x02030405)

    def test_read_past_end(self) -> None:
        r = EndianReader(self.DATA, Endianness.LITTLE)
        with pytest.raises(OutOfBounds):
            r.u64(9)
        with pytest.raises(OutOfBounds):
            r.u8(16)

    def test_slice_copies_bounded_bytes(self) -> None:
        r = EndianReader(self.DATA, Endianness.LITTLE)
        assert r.slice(4, 3) == b"\x04\x05\x06"
        with pytest.raises(OutOfBounds):
            r.slice(10, 7)

    def test_layout_is_cached(self) -> None:
        r = EndianReader(self.DATA, Endianness.LITTLE)
        assert r.layout("QQ") is r.layout("QQ")
        assert r.layout("QQ").format == "<QQ"
        assert len(r) == 16
        assert r.endianness is Endianness.LITTLE
