"""Tests for string-table resolution."""

from __future__ import annotations

import pytest

from elf_builder import ElfBuilder, StringTable, Sym
from elfscope import parse
from elfscope.core.errors import InvalidStringOffset, OutOfBounds
from elfscope.core.models import Endianness
from elfscope.parsers import constants as c
from elfscope.parsers.reader import EndianReader
from elfscope.parsers.strings import StringResolver
from elfscope.parsers.tables import SectionRecord

TABLE = b"\x00alpha\x00beta\x00caf\xc3\xa9\x00\xff\xfe\x00tail"


def _resolver(data: bytes = TABLE, *, size: int | None = None,
              sh_type: int = c.SHT_STRTAB, errors: str = "replace") -> StringResolver:
    record = SectionRecord(
        name_offset=0, type_code=sh_type, flags=0, addr=0, offset=0,
        size=len(data) if size is None else size, link=0, info=0, addralign=1, entsize=0,
    )
    return StringResolver(EndianReader(data, Endianness.LITTLE), 7, record, errors=errors)


class TestStringResolver:
    def test_offset_zero_is_empty(self) -> None:
        assert _resolver().resolve(0) == ""

    def test_names(self) -> None:
        r = _resolver()
        assert r.resolve(1) == "alpha"
        assert r.resolve(7) == "beta"
        assert r.resolve(3) == "pha"
        assert r.resolve(12) == "café"

    def test_offset_past_end(self) -> None:
        with pytest.raises(InvalidStringOffset) as info:
            _resolver().resolve(len(TABLE))
        assert info.value.section_index == 7
        assert info.value.string_offset == len(TABLE)

    def test_missing_terminator(self) -> None:
        with pytest.raises(InvalidStringOffset, match="NUL"):
            _resolver().resolve(TABLE.index(b"tail"))

    def test_string_may_not_cross_section_end(self) -> None:
        r = _resolver(TABLE + b"\x00", size=len(TABLE))
        with pytest.raises(InvalidStringOffset):
            r.resolve(TABLE.index(b"tail"))

    def test_invalid_bytes_replaced_by_default(self) -> None:
        assert _resolver().resolve(TABLE.index(b"\xff")) == "\ufffd\ufffd"

    def test_invalid_bytes_rejected_when_strict(self) -> None:
        with pytest.raises(InvalidStringOffset, match="undecodable"):
            _resolver(errors="strict").resolve(TABLE.index(b"\xff"))

    def test_table_outside_buffer(self) -> None:
        with pytest.raises(OutOfBounds):
            _resolver(size=len(TABLE) + 1)

    def test_nobits_table_is_empty(self) -> None:
        r = _resolver(sh_type=c.SHT_NOBITS, size=4096)
        assert len(r) == 0
        with pytest.raises(InvalidStringOffset):
            r.resolve(0)


def test_section_name_offset_invalid() -> None:
    b = ElfBuilder()
    sec = b.add_section(".text", c.SHT_PROGBITS, b"\xc3")
    b.sections[sec].name_offset = 0x400
    with pytest.raises(InvalidStringOffset):
        parse(b.build())


def test_symbol_name_offset_invalid() -> None:
    b = ElfBuilder()
    strings = StringTable()
    b.add_symbol_table(".symtab", [Sym("ok"), Sym("bad", name_offset=999)],
                       strtab_index=2, strings=strings)
    b.add_string_table(".strtab", strings)
    with pytest.raises(InvalidStringOffset) as info:
        parse(b.build())
    assert info.value.section_index == 2
    assert info.value.string_offset == 999
