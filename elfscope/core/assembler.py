"""
Object Assembler
=================

Builds a :class:`~elfscope.core.parsed_object.ParsedObject` from decoded
records, deriving the name and address indices once so every accessor on
the result is a constant-time (names) or logarithmic (addresses) lookup.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

from shared.config import ParserConfig

from elfscope.core.address_index import AddressRangeIndex
from elfscope.core.models import (
    DynamicEntry,
    FileHeader,
    Identification,
    ProgramHeader,
    RelocationTable,
    SectionHeader,
    SectionKind,
    SegmentKind,
    Symbol,
)
from elfscope.core.parsed_object import ParsedObject


class ObjectAssembler:
    """Derive lookup indices and freeze decoded records into a ParsedObject.

    Args:
        config: Parser settings; only ``index_sections_without_alloc`` is
            consulted here.
    """

    def __init__(self, config: Optional[ParserConfig] = None) -> None:
        self._config = config or ParserConfig()

    def assemble(
        self,
        *,
        identification: Identification,
        file_header: FileHeader,
        program_headers: Sequence[ProgramHeader],
        section_headers: Sequence[SectionHeader],
        symbol_tables: Mapping[int, Sequence[Symbol]],
        relocation_tables: Mapping[int, RelocationTable],
        dynamic_entries: Sequence[DynamicEntry],
        interpreter: Optional[str],
    ) -> ParsedObject:
        """Return the finished object.

        *symbol_tables* and *relocation_tables* are keyed by section index;
        they are re-ordered by index so file order always wins for
        duplicate names.
        """
        ordered_tables = {i: tuple(symbol_tables[i]) for i in sorted(symbol_tables)}
        symbols = tuple(s for table in ordered_tables.values() for s in table)

        return ParsedObject(
            identification=identification,
            file_header=file_header,
            program_headers=tuple(program_headers),
            section_headers=tuple(section_headers),
            symbols=symbols,
            symbols_by_table=ordered_tables,
            relocation_tables={i: relocation_tables[i] for i in sorted(relocation_tables)},
            dynamic_entries=tuple(dynamic_entries),
            interpreter=interpreter,
            sections_by_name=first_by_name((s.name, s) for s in section_headers),
            symbols_by_name=first_by_name((s.name, s) for s in symbols),
            segment_ranges=self._segment_index(program_headers),
            section_ranges=self._section_index(section_headers),
        )

    @staticmethod
    def _segment_index(
        program_headers: Sequence[ProgramHeader],
    ) -> AddressRangeIndex[ProgramHeader]:
        return AddressRangeIndex(
            (p.vaddr, p.vaddr + p.mem_size, p)
            for p in program_headers
            if p.kind is SegmentKind.LOAD and p.mem_size > 0
        )

    def _section_index(
        self, section_headers: Sequence[SectionHeader]
    ) -> AddressRangeIndex[SectionHeader]:
        if self._config.index_sections_without_alloc:
            selected = (
                s for s in section_headers
                if s.kind is not SectionKind.NULL and s.addr != 0 and s.size > 0
            )
        else:
            selected = (s for s in section_headers if s.alloc and s.size > 0)
        return AddressRangeIndex((s.addr, s.addr + s.size, s) for s in selected)


def first_by_name(pairs: Iterable[tuple[str, object]]) -> dict:
    """Map each non-empty name to the first item carrying it."""
    index: dict = {}
    for name, item in pairs:
        if name:
            index.setdefault(name, item)
    return index
