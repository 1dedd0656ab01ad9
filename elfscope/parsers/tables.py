"""
Header Table Parser
====================

Decodes the homogeneous program-header and section-header tables.

Both tables share one algorithm: the whole region ``offset + count *
entry_size`` is bounds-checked up front, then entries are decoded strictly
in file order.  Unrecognised type codes are kept as ``UNKNOWN`` with the
raw code attached; they never fail the parse.

Elf64_Phdr (56 bytes)::  p_type u32, p_flags u32, p_offset, p_vaddr,
                         p_paddr, p_filesz, p_memsz, p_align (u64 each)
Elf64_Shdr (64 bytes)::  sh_name u32, sh_type u32, sh_flags u64,
                         sh_addr u64, sh_offset u64, sh_size u64,
                         sh_link u32, sh_info u32, sh_addralign u64,
                         sh_entsize u64
"""

from __future__ import annotations

from typing import Callable, NamedTuple, TypeVar

from elfscope.core.errors import MalformedHeader, OutOfBounds
from elfscope.core.models import (
    FileHeader,
    ProgramHeader,
    SectionHeader,
    SectionKind,
    SegmentKind,
)
from elfscope.parsers import constants as c
from elfscope.parsers.reader import EndianReader, checked_end

_PHDR64_FIELDS = "IIQQQQQQ"
_SHDR64_FIELDS = "IIQQQQIIQQ"

T = TypeVar("T")


class SectionRecord(NamedTuple):
    """A section header as stored, before its name is resolved."""
    name_offset: int
    type_code: int
    flags: int
    addr: int
    offset: int
    size: int
    link: int
    info: int
    addralign: int
    entsize: int

    @property
    def occupies_file(self) -> bool:
        return self.type_code not in (c.SHT_NOBITS, c.SHT_NULL)


def parse_table(
    reader: EndianReader,
    offset: int,
    count: int,
    entry_size: int,
    fields: str,
    build: Callable[[int, tuple[int, ...]], T],
) -> list[T]:
    """Decode *count* fixed-size records starting at *offset*.

    Args:
        reader: Reader over the whole buffer.
        offset: File offset of the first entry.
        count: Number of entries.
        entry_size: Stride between entries.
        fields: :mod:`struct` layout of one entry (without byte order).
        build: Turns ``(index, fields)`` into a record.

    Raises:
        OutOfBounds: The table does not fit inside the buffer.
    """
    if count == 0:
        return []
    checked_end(offset, count, entry_size, len(reader))
    return [
        build(index, reader.unpack(fields, offset + index * entry_size))
        for index in range(count)
    ]


# ---------------------------------------------------------------------------
# Section headers
# ---------------------------------------------------------------------------

def read_section_record(reader: EndianReader, offset: int) -> SectionRecord:
    return SectionRecord(*reader.unpack(_SHDR64_FIELDS, offset))


def section_count(reader: EndianReader, header: FileHeader) -> int:
    """Effective number of section headers, honouring extended numbering.

    When ``e_shnum`` is zero but a table is present, the real count is
    stored in ``sh_size`` of section 0.
    """
    if header.sh_offset == 0:
        return 0
    if header.sh_count != 0:
        return header.sh_count
    return read_section_record(reader, header.sh_offset).size


def parse_section_records(reader: EndianReader, header: FileHeader) -> list[SectionRecord]:
    """Decode every section header, in file order."""
    count = section_count(reader, header)
    return parse_table(
        reader,
        header.sh_offset,
        count,
        c.SHDR64_SIZE,
        _SHDR64_FIELDS,
        lambda _index, fields: SectionRecord(*fields),
    )


def section_name_index(header: FileHeader, records: list[SectionRecord]) -> int:
    """Index of the section-name string table, or 0 when sections are unnamed.

    Raises:
        MalformedHeader: The index does not name an existing section.
    """
    index = header.sh_string_index
    if index == c.SHN_XINDEX and records:
        index = records[0].link
    if index == c.SHN_UNDEF:
        return 0
    if index >= len(records):
        raise MalformedHeader(
            f"e_shstrndx {index} is outside the {len(records)}-entry section table"
        )
    return index


def build_section_header(index: int, record: SectionRecord, name: str) -> SectionHeader:
    return SectionHeader(
        index=index,
        name=name,
        name_offset=record.name_offset,
        kind=SectionKind.from_code(record.type_code),
        type_code=record.type_code,
        flags=record.flags,
        addr=record.addr,
        offset=record.offset,
        size=record.size,
        link=record.link,
        info=record.info,
        addralign=record.addralign,
        entsize=record.entsize,
    )


# ---------------------------------------------------------------------------
# Program headers
# ---------------------------------------------------------------------------

def program_header_count(header: FileHeader, records: list[SectionRecord]) -> int:
    """Effective number of program headers (``PN_XNUM`` defers to section 0).

    A zero ``e_phoff`` means the file has no program header table.
    """
    if header.ph_offset == 0:
        return 0
    if header.ph_count == c.PN_XNUM and records:
        return records[0].info
    return header.ph_count


def parse_program_headers(
    reader: EndianReader,
    header: FileHeader,
    records: list[SectionRecord],
) -> list[ProgramHeader]:
    """Decode the program header table, preserving load order.

    Raises:
        OutOfBounds: The table or a segment's file region exceeds the buffer.
        MalformedHeader: A segment alignment is neither 0 nor a power of two.
    """
    count = program_header_count(header, records)
    limit = len(reader)

    def build(index: int, fields: tuple[int, ...]) -> ProgramHeader:
        p_type, p_flags, p_offset, p_vaddr, p_paddr, p_filesz, p_memsz, p_align = fields
        if p_align & (p_align - 1):
            raise MalformedHeader(
                f"program header {index} alignment 0x{p_align:x} is not a power of two",
                offset=header.ph_offset + index * c.PHDR64_SIZE,
            )
        if p_filesz:
            try:
                checked_end(p_offset, 1, p_filesz, limit)
            except OutOfBounds as exc:
                raise OutOfBounds(
                    f"program header {index} file region: {exc.message}",
                    offset=p_offset,
                    length=p_filesz,
                    limit=limit,
                ) from exc
        return ProgramHeader(
            index=index,
            kind=SegmentKind.from_code(p_type),
            type_code=p_type,
            flags=p_flags,
            offset=p_offset,
            vaddr=p_vaddr,
            paddr=p_paddr,
            file_size=p_filesz,
            mem_size=p_memsz,
            align=p_align,
        )

    return parse_table(
        reader, header.ph_offset, count, c.PHDR64_SIZE, _PHDR64_FIELDS, build
    )
