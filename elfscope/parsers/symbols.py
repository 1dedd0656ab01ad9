"""
Symbol Table Parser
====================

Decodes ``SHT_SYMTAB`` / ``SHT_DYNSYM`` sections and resolves each
symbol's name through the string table named by the section's
``sh_link``.

Elf64_Sym (24 bytes)::

    st_name  u32   st_info u8   st_other u8   st_shndx u16
    st_value u64   st_size u64

``st_info`` packs the binding in its high nibble and the type in its low
nibble; visibility is the low two bits of ``st_other``.
"""

from __future__ import annotations

from typing import Sequence

from elfscope.core.errors import MalformedSymbolTable
from elfscope.core.models import (
    SectionHeader,
    SectionRef,
    Symbol,
    SymbolBinding,
    SymbolType,
    SymbolVisibility,
)
from elfscope.parsers import constants as c
from elfscope.parsers.reader import EndianReader, checked_end
from elfscope.parsers.strings import StringResolver

_SYM64_FIELDS = "IBBHQQ"


class SymbolTableParser:
    """Decode every symbol of one symbol-table section.

    Usage::

        parser = SymbolTableParser(reader, sections)
        symbols = parser.parse(sections[symtab_index])

    Args:
        reader: Reader over the whole buffer.
        sections: All section headers, indexed by section number.
        encoding: Codec for symbol names.
        errors: Codec error handler for symbol names.
    """

    def __init__(
        self,
        reader: EndianReader,
        sections: Sequence[SectionHeader],
        *,
        encoding: str = "utf-8",
        errors: str = "replace",
    ) -> None:
        self._reader = reader
        self._sections = sections
        self._encoding = encoding
        self._errors = errors

    def parse(self, section: SectionHeader) -> list[Symbol]:
        """Decode *section* as a symbol table.

        The whole table is decoded or none of it is: the first name that
        fails to resolve aborts the parse.

        Raises:
            MalformedSymbolTable: Bad ``sh_link``, entry size, or a size
                that is not a whole number of entries.
            OutOfBounds: The table's file region exceeds the buffer.
            InvalidStringOffset: A symbol name does not resolve.
        """
        strtab = self._linked_string_table(section)

        if section.entsize != c.SYM64_SIZE:
            raise MalformedSymbolTable(
                f"section {section.index} ({section.name!r}) has entry size "
                f"{section.entsize}, ELF64 symbols are {c.SYM64_SIZE} bytes"
            )
        count, remainder = divmod(section.size, section.entsize)
        if remainder:
            raise MalformedSymbolTable(
                f"section {section.index} ({section.name!r}) size {section.size} "
                f"is not a multiple of {section.entsize}"
            )
        if count == 0:
            return []
        checked_end(section.offset, count, section.entsize, len(self._reader))

        resolver = StringResolver(
            self._reader,
            strtab.index,
            strtab,
            encoding=self._encoding,
            errors=self._errors,
        )

        symbols: list[Symbol] = []
        for index in range(count):
            offset = section.offset + index * section.entsize
            st_name, st_info, st_other, st_shndx, st_value, st_size = (
                self._reader.unpack(_SYM64_FIELDS, offset)
            )
            st_bind = (st_info >> 4) & 0xF
            st_type = st_info & 0xF
            symbols.append(Symbol(
                name=resolver.resolve(st_name),
                name_offset=st_name,
                value=st_value,
                size=st_size,
                binding=SymbolBinding.from_code(st_bind),
                binding_code=st_bind,
                type=SymbolType.from_code(st_type),
                type_code=st_type,
                visibility=SymbolVisibility.from_code(st_other),
                other=st_other,
                section_index=st_shndx,
                section_ref=SectionRef.from_index(st_shndx),
                table_index=section.index,
                index=index,
            ))
        return symbols

    def _linked_string_table(self, section: SectionHeader) -> SectionHeader:
        link = section.link
        if link >= len(self._sections):
            raise MalformedSymbolTable(
                f"section {section.index} ({section.name!r}) links string table "
                f"{link}, outside the {len(self._sections)}-entry section table"
            )
        strtab = self._sections[link]
        if strtab.type_code != c.SHT_STRTAB:
            raise MalformedSymbolTable(
                f"section {section.index} ({section.name!r}) links section {link} "
                f"of type {strtab.type_name}, not a string table"
            )
        return strtab
