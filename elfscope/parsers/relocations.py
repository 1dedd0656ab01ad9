"""
Relocation Parser
==================

Decodes ``SHT_REL`` and ``SHT_RELA`` sections.  The entry layout is chosen
by the section's declared type, never guessed from its size.

Elf64_Rel  (16 bytes)::  r_offset u64, r_info u64
Elf64_Rela (24 bytes)::  r_offset u64, r_info u64, r_addend i64

``r_info`` carries the symbol-table index in its high 32 bits and the
relocation type in its low 32 bits.
"""

from __future__ import annotations

from elfscope.core.errors import MalformedRelocationTable
from elfscope.core.models import (
    RelocationEntry,
    RelocationKind,
    RelocationTable,
    SectionHeader,
)
from elfscope.parsers import constants as c
from elfscope.parsers.reader import EndianReader, checked_end

_LAYOUTS: dict[RelocationKind, tuple[str, int]] = {
    RelocationKind.REL: ("QQ", c.REL64_SIZE),
    RelocationKind.RELA: ("QQq", c.RELA64_SIZE),
}


def is_relocation_section(section: SectionHeader) -> bool:
    return section.type_code in (c.SHT_REL, c.SHT_RELA)


def parse_relocation_table(
    reader: EndianReader,
    section: SectionHeader,
    machine: int,
) -> RelocationTable:
    """Decode every entry of the REL/RELA *section*.

    Args:
        reader: Reader over the whole buffer.
        section: A section whose type is ``SHT_REL`` or ``SHT_RELA``.
        machine: ``e_machine``, used to name relocation types.

    Raises:
        MalformedRelocationTable: Wrong entry size, or a size that is not a
            whole number of entries.
        OutOfBounds: The table's file region exceeds the buffer.
    """
    kind = RelocationKind.RELA if section.type_code == c.SHT_RELA else RelocationKind.REL
    fields, structural_size = _LAYOUTS[kind]

    entry_size = section.entsize or structural_size
    if entry_size != structural_size:
        raise MalformedRelocationTable(
            f"section {section.index} ({section.name!r}) has entry size "
            f"{section.entsize}, ELF64 {kind.name} entries are {structural_size} bytes"
        )
    count, remainder = divmod(section.size, entry_size)
    if remainder:
        raise MalformedRelocationTable(
            f"section {section.index} ({section.name!r}) size {section.size} "
            f"is not a multiple of {entry_size}"
        )
    if count:
        checked_end(section.offset, count, entry_size, len(reader))

    entries: list[RelocationEntry] = []
    for index in range(count):
        values = reader.unpack(fields, section.offset + index * entry_size)
        r_offset, r_info = values[0], values[1]
        r_type = r_info & 0xFFFFFFFF
        entries.append(RelocationEntry(
            offset=r_offset,
            info=r_info,
            symbol_index=r_info >> 32,
            type_code=r_type,
            type_name=c.relocation_type_name(machine, r_type),
            addend=values[2] if kind is RelocationKind.RELA else None,
        ))

    return RelocationTable(
        section_index=section.index,
        kind=kind,
        symbol_table_index=section.link,
        target_section_index=section.info,
        entries=tuple(entries),
    )
