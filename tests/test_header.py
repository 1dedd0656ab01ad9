"""Tests for identification and file-header decoding."""

from __future__ import annotations

import pytest

from elf_builder import ElfBuilder
from elfscope.core.errors import (
    InvalidMagic,
    MalformedHeader,
    OutOfBounds,
    UnsupportedClass,
    UnsupportedEncoding,
)
from elfscope.core.models import Endianness, ObjectType
from elfscope.parsers import constants as c
from elfscope.parsers.header import decode_file_header, decode_identification
from elfscope.parsers.reader import EndianReader


def _decode(data: bytes, **kwargs):
    ident = decode_identification(data)
    return ident, decode_file_header(EndianReader(data, ident.endianness), **kwargs)


class TestIdentification:
    @pytest.mark.parametrize("data", [b"", b"\x7fEL", b"MZ\x90\x00", b"\x7fELG" + bytes(60)])
    def test_bad_magic(self, data: bytes) -> None:
        with pytest.raises(InvalidMagic):
            decode_identification(data)

    def test_truncated_identification(self) -> None:
        with pytest.raises(OutOfBounds):
            decode_identification(c.ELF_MAGIC + b"\x02\x01")

    def test_elf32_rejected(self) -> None:
        b = ElfBuilder()
        b.ident_overrides[c.EI_CLASS] = c.ELFCLASS32
        with pytest.raises(UnsupportedClass) as info:
            decode_identification(b.build())
        assert info.value.ei_class == c.ELFCLASS32

    def test_bad_encoding(self) -> None:
        b = ElfBuilder()
        b.ident_overrides[c.EI_DATA] = 7
        with pytest.raises(UnsupportedEncoding) as info:
            decode_identification(b.build())
        assert info.value.ei_data == 7

    def test_fields(self) -> None:
        b = ElfBuilder(osabi=3)
        b.ident_overrides[c.EI_ABIVERSION] = 2
        ident = decode_identification(b.build())
        assert ident.magic == c.ELF_MAGIC
        assert ident.elf_class == c.ELFCLASS64
        assert ident.endianness is Endianness.LITTLE
        assert ident.version == 1
        assert ident.osabi == 3
        assert ident.osabi_name == "GNU/Linux"
        assert ident.abi_version == 2


class TestFileHeader:
    @pytest.mark.parametrize("big_endian", [False, True])
    def test_values_in_both_byte_orders(self, big_endian: bool) -> None:
        b = ElfBuilder(big_endian=big_endian, e_type=c.ET_DYN, machine=c.EM_AARCH64,
                       entry=0x1234_5678_9ABC)
        ident, header = _decode(b.build())
        expected = Endianness.BIG if big_endian else Endianness.LITTLE
        assert ident.endianness is expected
        assert header.object_type is ObjectType.SHARED
        assert header.type_code == c.ET_DYN
        assert header.machine == c.EM_AARCH64
        assert header.machine_name == "AArch64"
        assert header.entry == 0x1234_5678_9ABC
        assert header.header_size == c.EHDR64_SIZE

    def test_unknown_type_keeps_raw_code(self) -> None:
        b = ElfBuilder(e_type=0xFE00)
        _, header = _decode(b.build())
        assert header.object_type is ObjectType.UNKNOWN
        assert header.type_code == 0xFE00

    def test_truncated_header(self) -> None:
        data = ElfBuilder().build()
        with pytest.raises(OutOfBounds):
            _decode(data[:63])

    def test_wrong_phentsize(self) -> None:
        b = ElfBuilder()
        b.header_overrides["e_phentsize"] = 32
        with pytest.raises(MalformedHeader, match="e_phentsize"):
            _decode(b.build())

    def test_wrong_shentsize(self) -> None:
        b = ElfBuilder()
        b.add_section(".data", c.SHT_PROGBITS, b"\x00" * 8)
        b.header_overrides["e_shentsize"] = 40
        with pytest.raises(MalformedHeader, match="e_shentsize"):
            _decode(b.build())

    def test_zero_entry_size_for_empty_table(self) -> None:
        b = ElfBuilder(e_type=c.ET_REL)
        b.add_section(".text", c.SHT_PROGBITS, b"\xc3")
        _, header = _decode(b.build())
        assert header.ph_entry_size == 0
        assert header.ph_count == 0

    def test_zero_entry_size_rejected_when_strict(self) -> None:
        b = ElfBuilder(e_type=c.ET_REL)
        b.add_section(".text", c.SHT_PROGBITS, b"\xc3")
        with pytest.raises(MalformedHeader):
            _decode(b.build(), strict_entry_sizes=True)

    def test_zero_entry_size_with_entries(self) -> None:
        b = ElfBuilder()
        b.add_segment(c.PT_NOTE, c.PF_R)
        b.header_overrides["e_phentsize"] = 0
        with pytest.raises(MalformedHeader):
            _decode(b.build())
