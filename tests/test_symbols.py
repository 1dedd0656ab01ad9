"""Tests for symbol-table decoding."""

from __future__ import annotations

import pytest

from elf_builder import ElfBuilder, StringTable, Sym
from elfscope import parse
from elfscope.core.errors import MalformedSymbolTable, OutOfBounds
from elfscope.core.models import (
    SectionRef,
    SymbolBinding,
    SymbolType,
    SymbolVisibility,
)
from elfscope.parsers import constants as c


def _with_symbols(symbols: list[Sym], **fields: int) -> ElfBuilder:
    b = ElfBuilder()
    strings = StringTable()
    b.add_section(".text", c.SHT_PROGBITS, b"\x90" * 32, flags=c.SHF_ALLOC, addr=0x1000)
    b.add_symbol_table(".symtab", symbols, strtab_index=3, strings=strings, **fields)
    b.add_string_table(".strtab", strings)
    return b


class TestSymbolDecoding:
    def test_fields(self) -> None:
        obj = parse(_with_symbols([
            Sym("main", value=0x1000, size=32, other=c.STV_HIDDEN),
            Sym("data", value=0x2000, size=8, bind=c.STB_WEAK, type=c.STT_OBJECT),
        ]).build())
        null, main, data = obj.symbols()
        assert null.name == "" and null.index == 0
        assert main.name == "main"
        assert main.value == 0x1000 and main.size == 32
        assert main.binding is SymbolBinding.GLOBAL
        assert main.type is SymbolType.FUNCTION
        assert main.visibility is SymbolVisibility.HIDDEN
        assert main.section_index == 1
        assert main.section_ref is SectionRef.ORDINARY
        assert main.table_index == 2 and main.index == 1
        assert data.binding is SymbolBinding.WEAK
        assert data.type is SymbolType.OBJECT

    def test_binding_and_type_nibbles(self) -> None:
        obj = parse(_with_symbols([
            Sym("odd", bind=5, type=0xD),
            Sym("uniq", bind=c.STB_GNU_UNIQUE, type=c.STT_GNU_IFUNC),
        ]).build())
        odd, uniq = obj.symbols()[1:]
        assert odd.binding is SymbolBinding.UNKNOWN and odd.binding_code == 5
        assert odd.type is SymbolType.UNKNOWN and odd.type_code == 0xD
        assert uniq.binding is SymbolBinding.GNU_UNIQUE
        assert uniq.type is SymbolType.GNU_IFUNC

    @pytest.mark.parametrize(
        ("shndx", "ref"),
        [
            (c.SHN_UNDEF, SectionRef.UNDEFINED),
            (c.SHN_ABS, SectionRef.ABSOLUTE),
            (c.SHN_COMMON, SectionRef.COMMON),
            (c.SHN_XINDEX, SectionRef.RESERVED),
            (0xFF10, SectionRef.RESERVED),
            (1, SectionRef.ORDINARY),
        ],
    )
    def test_special_section_indices(self, shndx: int, ref: SectionRef) -> None:
        obj = parse(_with_symbols([Sym("s", shndx=shndx)]).build())
        sym = obj.symbols()[1]
        assert sym.section_ref is ref
        assert sym.section_index == shndx
        assert sym.is_defined is (ref is not SectionRef.UNDEFINED)
        if ref is not SectionRef.ORDINARY:
            assert obj.section_for_symbol(sym) is None
        else:
            assert obj.section_for_symbol(sym).name == ".text"

    def test_empty_table(self) -> None:
        b = _with_symbols([])
        b.sections[2].size = 0
        assert parse(b.build()).symbols() == ()

    def test_big_endian(self) -> None:
        b = ElfBuilder(big_endian=True)
        strings = StringTable()
        b.add_symbol_table(".symtab", [Sym("be_sym", value=0xDEADBEEF, size=4)],
                           strtab_index=2, strings=strings)
        b.add_string_table(".strtab", strings)
        sym = parse(b.build()).symbol_by_name("be_sym")
        assert sym.value == 0xDEADBEEF
        assert sym.size == 4


class TestMalformedSymbolTables:
    def test_link_out_of_range(self) -> None:
        with pytest.raises(MalformedSymbolTable, match="links string table 40"):
            parse(_with_symbols([Sym("a")], link=40).build())

    def test_link_not_a_string_table(self) -> None:
        with pytest.raises(MalformedSymbolTable, match="not a string table"):
            parse(_with_symbols([Sym("a")], link=1).build())

    def test_entry_size_mismatch(self) -> None:
        with pytest.raises(MalformedSymbolTable, match="entry size"):
            parse(_with_symbols([Sym("a")], entsize=16).build())

    def test_size_not_multiple_of_entry(self) -> None:
        b = _with_symbols([Sym("a")])
        b.sections[2].size = 2 * c.SYM64_SIZE + 5
        with pytest.raises(MalformedSymbolTable, match="not a multiple"):
            parse(b.build())

    def test_table_past_buffer(self) -> None:
        b = _with_symbols([Sym("a")])
        b.sections[2].offset = 0x10_0000
        with pytest.raises(OutOfBounds):
            parse(b.build())
