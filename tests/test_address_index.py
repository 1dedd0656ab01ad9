"""Tests for the address-range index and the address lookups built on it."""

from __future__ import annotations

from elf_builder import ElfBuilder
from elfscope import parse
from elfscope.core.address_index import AddressRangeIndex
from elfscope.parsers import constants as c
from shared.config import ElfScopeConfig, ParserConfig


class TestAddressRangeIndex:
    def test_half_open_ranges(self) -> None:
        index = AddressRangeIndex([(0x1000, 0x2000, "a"), (0x3000, 0x3010, "b")])
        assert index.lookup(0x1000) == "a"
        assert index.lookup(0x1FFF) == "a"
        assert index.lookup(0x2000) is None
        assert index.lookup(0x300F) == "b"
        assert index.lookup(0xFFF) is None

    def test_empty_ranges_dropped(self) -> None:
        index = AddressRangeIndex([(0x10, 0x10, "empty"), (0x20, 0x10, "inverted")])
        assert len(index) == 0
        assert index.lookup(0x10) is None

    def test_overlap_prefers_registration_order(self) -> None:
        index = AddressRangeIndex([
            (0x2000, 0x3000, "inner-first"),
            (0x1000, 0x9000, "outer"),
            (0x2800, 0x2900, "innermost"),
        ])
        assert index.lookup(0x2850) == "inner-first"
        assert index.lookup(0x1500) == "outer"
        assert index.lookup_all(0x2850) == ["inner-first", "outer", "innermost"]

    def test_long_range_seen_past_shorter_ones(self) -> None:
        index = AddressRangeIndex([
            (0x0, 0x10_0000, "big"),
            (0x100, 0x200, "small1"),
            (0x300, 0x400, "small2"),
        ])
        assert index.lookup(0x5000) == "big"
        assert index.lookup(0x350) == "big"
        assert index.lookup_all(0x350) == ["big", "small2"]


class TestObjectLookups:
    def test_segment_at(self, executable: bytes) -> None:
        obj = parse(executable)
        assert obj.segment_at(0x400080).index == 0
        assert obj.segment_at(0x600050).index == 1
        assert obj.segment_at(0x600100) is None
        assert obj.segment_at(0x500000) is None

    def test_section_containing(self, executable: bytes) -> None:
        obj = parse(executable)
        assert obj.section_containing(0x4000B0).name == ".text"
        assert obj.section_containing(0x4000BF).name == ".text"
        assert obj.section_containing(0x4000C0) is None

    def test_only_load_segments_indexed(self, shared_object: bytes) -> None:
        obj = parse(shared_object)
        # PT_INTERP at 0x238 is not a loadable range
        assert obj.segment_at(0x238) is None
        assert obj.segment_at(0x2000).kind.value == "load"

    def test_non_alloc_sections_opt_in(self) -> None:
        b = ElfBuilder()
        b.add_section(".note.meta", c.SHT_NOTE, b"\x00" * 16, addr=0x7000)
        data = b.build()
        assert parse(data).section_containing(0x7004) is None
        config = ElfScopeConfig(parser=ParserConfig(index_sections_without_alloc=True))
        assert parse(data, config=config).section_containing(0x7004).name == ".note.meta"
