"""
Parsed Object
==============

The immutable, queryable result of decoding one ELF64 image.

A :class:`ParsedObject` owns every decoded record plus the derived lookup
indices built by :class:`~elfscope.core.assembler.ObjectAssembler`.  It
holds no reference to the input buffer, and none of its accessors can
fail: an absent optional structure (no symbol table, no dynamic section)
reads as an empty result.

Duplicate names resolve first-match-wins in file order, for both
sections and symbols.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from elfscope.core.address_index import AddressRangeIndex
from elfscope.core.models import (
    DynamicEntry,
    DynamicTag,
    FileHeader,
    Identification,
    ProgramHeader,
    RelocationEntry,
    RelocationTable,
    SectionHeader,
    SectionRef,
    Symbol,
)

SectionKey = Union[SectionHeader, int]


class ParsedObject:
    """Read-only model of a decoded ELF64 image.

    Usage::

        obj = elfscope.parse(data)
        obj.file_header().entry
        text = obj.section_by_name(".text")
        main = obj.symbol_by_name("main")
        obj.segment_at(main.value)
    """

    __slots__ = (
        "_identification",
        "_file_header",
        "_program_headers",
        "_section_headers",
        "_symbols",
        "_symbols_by_table",
        "_relocation_tables",
        "_dynamic_entries",
        "_interpreter",
        "_sections_by_name",
        "_symbols_by_name",
        "_segment_ranges",
        "_section_ranges",
    )

    def __init__(
        self,
        *,
        identification: Identification,
        file_header: FileHeader,
        program_headers: tuple[ProgramHeader, ...],
        section_headers: tuple[SectionHeader, ...],
        symbols: tuple[Symbol, ...],
        symbols_by_table: Mapping[int, tuple[Symbol, ...]],
        relocation_tables: Mapping[int, RelocationTable],
        dynamic_entries: tuple[DynamicEntry, ...],
        interpreter: Optional[str],
        sections_by_name: Mapping[str, SectionHeader],
        symbols_by_name: Mapping[str, Symbol],
        segment_ranges: AddressRangeIndex[ProgramHeader],
        section_ranges: AddressRangeIndex[SectionHeader],
    ) -> None:
        init = object.__setattr__
        init(self, "_identification", identification)
        init(self, "_file_header", file_header)
        init(self, "_program_headers", program_headers)
        init(self, "_section_headers", section_headers)
        init(self, "_symbols", symbols)
        init(self, "_symbols_by_table", MappingProxyType(dict(symbols_by_table)))
        init(self, "_relocation_tables", MappingProxyType(dict(relocation_tables)))
        init(self, "_dynamic_entries", dynamic_entries)
        init(self, "_interpreter", interpreter)
        init(self, "_sections_by_name", MappingProxyType(dict(sections_by_name)))
        init(self, "_symbols_by_name", MappingProxyType(dict(symbols_by_name)))
        init(self, "_segment_ranges", segment_ranges)
        init(self, "_section_ranges", section_ranges)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __repr__(self) -> str:
        h = self._file_header
        return (
            f"<ParsedObject {h.object_type.value} {h.machine_name} "
            f"entry=0x{h.entry:x} segments={len(self._program_headers)} "
            f"sections={len(self._section_headers)} symbols={len(self._symbols)}>"
        )

    # ------------------------------------------------------------------ #
    #  Headers
    # ------------------------------------------------------------------ #

    def identification(self) -> Identification:
        return self._identification

    def file_header(self) -> FileHeader:
        return self._file_header

    def program_headers(self) -> tuple[ProgramHeader, ...]:
        """Program headers in file (load) order."""
        return self._program_headers

    def section_headers(self) -> tuple[SectionHeader, ...]:
        """Section headers in index order, including the null section 0."""
        return self._section_headers

    def section_by_name(self, name: str) -> Optional[SectionHeader]:
        """First section (lowest index) called *name*, or ``None``."""
        return self._sections_by_name.get(name)

    def section_at(self, index: int) -> Optional[SectionHeader]:
        """Section number *index*, or ``None`` when out of range."""
        if 0 <= index < len(self._section_headers):
            return self._section_headers[index]
        return None

    def interpreter(self) -> Optional[str]:
        """Program interpreter path from ``PT_INTERP``, if any."""
        return self._interpreter

    # ------------------------------------------------------------------ #
    #  Symbols
    # ------------------------------------------------------------------ #

    def symbols(self) -> tuple[Symbol, ...]:
        """Every symbol of every symbol table, tables in section order."""
        return self._symbols

    def symbol_by_name(self, name: str) -> Optional[Symbol]:
        """First symbol called *name* in file order, or ``None``."""
        return self._symbols_by_name.get(name)

    def symbols_in(self, section: SectionKey) -> tuple[Symbol, ...]:
        """Symbols decoded from one symbol-table section."""
        return self._symbols_by_table.get(_section_index(section), ())

    def section_for_symbol(self, symbol: Symbol) -> Optional[SectionHeader]:
        """The section a symbol is defined in.

        Special indices (undefined, absolute, common and the rest of the
        reserved range) never resolve to a section.
        """
        if symbol.section_ref is not SectionRef.ORDINARY:
            return None
        return self.section_at(symbol.section_index)

    # ------------------------------------------------------------------ #
    #  Relocations
    # ------------------------------------------------------------------ #

    def relocation_sections(self) -> tuple[SectionHeader, ...]:
        """REL/RELA sections in index order."""
        return tuple(self._section_headers[i] for i in self._relocation_tables)

    def relocation_tables(self) -> tuple[RelocationTable, ...]:
        return tuple(self._relocation_tables.values())

    def relocations_for(self, section: SectionKey) -> tuple[RelocationEntry, ...]:
        """Entries of one relocation section; empty for any other section."""
        table = self._relocation_tables.get(_section_index(section))
        return table.entries if table is not None else ()

    def relocation_symbol(
        self, section: SectionKey, entry: RelocationEntry
    ) -> Optional[Symbol]:
        """The symbol *entry* refers to, through its section's linked table.

        Returns ``None`` for symbol index 0 or an index past the table.
        """
        table = self._relocation_tables.get(_section_index(section))
        if table is None or entry.symbol_index == 0:
            return None
        symbols = self._symbols_by_table.get(table.symbol_table_index, ())
        if entry.symbol_index >= len(symbols):
            return None
        return symbols[entry.symbol_index]

    # ------------------------------------------------------------------ #
    #  Dynamic section
    # ------------------------------------------------------------------ #

    def dynamic_entries(self) -> tuple[DynamicEntry, ...]:
        """Dynamic entries up to (not including) the terminator."""
        return self._dynamic_entries

    def needed_libraries(self) -> tuple[str, ...]:
        """``DT_NEEDED`` library names, in order."""
        return tuple(
            e.string for e in self._dynamic_entries
            if e.tag is DynamicTag.NEEDED and e.string is not None
        )

    def soname(self) -> Optional[str]:
        return self._dynamic_string(DynamicTag.SONAME)

    def rpath(self) -> Optional[str]:
        return self._dynamic_string(DynamicTag.RPATH)

    def runpath(self) -> Optional[str]:
        return self._dynamic_string(DynamicTag.RUNPATH)

    def _dynamic_string(self, tag: DynamicTag) -> Optional[str]:
        for entry in self._dynamic_entries:
            if entry.tag is tag:
                return entry.string
        return None

    # ------------------------------------------------------------------ #
    #  Address lookups
    # ------------------------------------------------------------------ #

    def segment_at(self, address: int) -> Optional[ProgramHeader]:
        """The first ``PT_LOAD`` segment whose memory image contains *address*."""
        return self._segment_ranges.lookup(address)

    def section_containing(self, address: int) -> Optional[SectionHeader]:
        """The first allocated section whose address range contains *address*."""
        return self._section_ranges.lookup(address)

    # ------------------------------------------------------------------ #
    #  Serialisation
    # ------------------------------------------------------------------ #

    def summary(self) -> dict[str, Any]:
        """Short JSON-ready description of the object."""
        h = self._file_header
        return {
            "type": h.object_type.value,
            "machine": h.machine_name,
            "endianness": self._identification.endianness.value,
            "entry": h.entry,
            "segments": len(self._program_headers),
            "sections": len(self._section_headers),
            "symbols": len(self._symbols),
            "relocations": sum(len(t.entries) for t in self._relocation_tables.values()),
            "dynamic_entries": len(self._dynamic_entries),
            "interpreter": self._interpreter,
            "needed": list(self.needed_libraries()),
        }

    def to_dict(self) -> dict[str, Any]:
        """Full JSON-ready snapshot of every decoded record."""
        return {
            "identification": self._identification.model_dump(mode="json"),
            "file_header": self._file_header.model_dump(mode="json"),
            "program_headers": [p.model_dump(mode="json") for p in self._program_headers],
            "section_headers": [s.model_dump(mode="json") for s in self._section_headers],
            "symbols": [s.model_dump(mode="json") for s in self._symbols],
            "relocation_tables": [
                t.model_dump(mode="json") for t in self._relocation_tables.values()
            ],
            "dynamic_entries": [d.model_dump(mode="json") for d in self._dynamic_entries],
            "interpreter": self._interpreter,
        }


def _section_index(section: SectionKey) -> int:
    return section.index if isinstance(section, SectionHeader) else section
