"""
Dynamic Section Parser
=======================

Decodes the ``SHT_DYNAMIC`` tag/value table.  Entries are read in order
until a ``DT_NULL`` terminator or the end of the section, whichever comes
first; running off the end without a terminator is tolerated.

Elf64_Dyn (16 bytes)::  d_tag i64, d_un u64

How ``d_un`` is read depends on the tag (see :data:`_TAG_TABLE`);
string-valued tags are resolved through the section's linked string
table.  Unrecognised tags are kept as ``UNKNOWN`` with the raw tag.
"""

from __future__ import annotations

from typing import NamedTuple, Optional, Sequence

from elfscope.core.errors import MalformedDynamicSection
from elfscope.core.models import (
    DynamicEntry,
    DynamicTag,
    DynamicValueKind,
    SectionHeader,
)
from elfscope.parsers import constants as c
from elfscope.parsers.reader import EndianReader, checked_end
from elfscope.parsers.strings import StringResolver

_DYN64_FIELDS = "qQ"

_I = DynamicValueKind.INTEGER
_P = DynamicValueKind.POINTER
_S = DynamicValueKind.STRING
_F = DynamicValueKind.FLAGS
_X = DynamicValueKind.IGNORED

_TAG_TABLE: dict[int, tuple[DynamicTag, DynamicValueKind]] = {
    c.DT_NEEDED: (DynamicTag.NEEDED, _S),
    c.DT_PLTRELSZ: (DynamicTag.PLTRELSZ, _I),
    c.DT_PLTGOT: (DynamicTag.PLTGOT, _P),
    c.DT_HASH: (DynamicTag.HASH, _P),
    c.DT_STRTAB: (DynamicTag.STRTAB, _P),
    c.DT_SYMTAB: (DynamicTag.SYMTAB, _P),
    c.DT_RELA: (DynamicTag.RELA, _P),
    c.DT_RELASZ: (DynamicTag.RELASZ, _I),
    c.DT_RELAENT: (DynamicTag.RELAENT, _I),
    c.DT_STRSZ: (DynamicTag.STRSZ, _I),
    c.DT_SYMENT: (DynamicTag.SYMENT, _I),
    c.DT_INIT: (DynamicTag.INIT, _P),
    c.DT_FINI: (DynamicTag.FINI, _P),
    c.DT_SONAME: (DynamicTag.SONAME, _S),
    c.DT_RPATH: (DynamicTag.RPATH, _S),
    c.DT_SYMBOLIC: (DynamicTag.SYMBOLIC, _X),
    c.DT_REL: (DynamicTag.REL, _P),
    c.DT_RELSZ: (DynamicTag.RELSZ, _I),
    c.DT_RELENT: (DynamicTag.RELENT, _I),
    c.DT_PLTREL: (DynamicTag.PLTREL, _I),
    c.DT_DEBUG: (DynamicTag.DEBUG, _P),
    c.DT_TEXTREL: (DynamicTag.TEXTREL, _X),
    c.DT_JMPREL: (DynamicTag.JMPREL, _P),
    c.DT_BIND_NOW: (DynamicTag.BIND_NOW, _X),
    c.DT_INIT_ARRAY: (DynamicTag.INIT_ARRAY, _P),
    c.DT_FINI_ARRAY: (DynamicTag.FINI_ARRAY, _P),
    c.DT_INIT_ARRAYSZ: (DynamicTag.INIT_ARRAYSZ, _I),
    c.DT_FINI_ARRAYSZ: (DynamicTag.FINI_ARRAYSZ, _I),
    c.DT_RUNPATH: (DynamicTag.RUNPATH, _S),
    c.DT_FLAGS: (DynamicTag.FLAGS, _F),
    c.DT_PREINIT_ARRAY: (DynamicTag.PREINIT_ARRAY, _P),
    c.DT_PREINIT_ARRAYSZ: (DynamicTag.PREINIT_ARRAYSZ, _I),
    c.DT_GNU_HASH: (DynamicTag.GNU_HASH, _P),
    c.DT_VERSYM: (DynamicTag.VERSYM, _P),
    c.DT_RELACOUNT: (DynamicTag.RELACOUNT, _I),
    c.DT_RELCOUNT: (DynamicTag.RELCOUNT, _I),
    c.DT_FLAGS_1: (DynamicTag.FLAGS_1, _F),
    c.DT_VERDEF: (DynamicTag.VERDEF, _P),
    c.DT_VERDEFNUM: (DynamicTag.VERDEFNUM, _I),
    c.DT_VERNEED: (DynamicTag.VERNEED, _P),
    c.DT_VERNEEDNUM: (DynamicTag.VERNEEDNUM, _I),
}


class DynamicParseResult(NamedTuple):
    entries: list[DynamicEntry]
    terminated: bool


def interpret_tag(raw_tag: int) -> tuple[DynamicTag, DynamicValueKind]:
    """Map a raw ``d_tag`` to its tag and value interpretation."""
    return _TAG_TABLE.get(raw_tag, (DynamicTag.UNKNOWN, DynamicValueKind.INTEGER))


def parse_dynamic_section(
    reader: EndianReader,
    section: SectionHeader,
    sections: Sequence[SectionHeader],
    *,
    encoding: str = "utf-8",
    errors: str = "replace",
) -> DynamicParseResult:
    """Decode the dynamic *section*.

    The ``DT_NULL`` terminator itself is not included in the result.

    Raises:
        MalformedDynamicSection: Wrong entry size, or ``sh_link`` does not
            name a string table.
        OutOfBounds: The section's file region exceeds the buffer.
        InvalidStringOffset: A string-valued entry does not resolve.
    """
    if section.entsize not in (0, c.DYN64_SIZE):
        raise MalformedDynamicSection(
            f"section {section.index} ({section.name!r}) has entry size "
            f"{section.entsize}, ELF64 dynamic entries are {c.DYN64_SIZE} bytes"
        )
    resolver = _linked_resolver(reader, section, sections, encoding, errors)

    if not section.occupies_file or section.size == 0:
        return DynamicParseResult([], False)
    checked_end(section.offset, 1, section.size, len(reader))

    entries: list[DynamicEntry] = []
    for index in range(section.size // c.DYN64_SIZE):
        raw_tag, value = reader.unpack(_DYN64_FIELDS, section.offset + index * c.DYN64_SIZE)
        if raw_tag == c.DT_NULL:
            return DynamicParseResult(entries, True)
        tag, kind = interpret_tag(raw_tag)
        string: Optional[str] = None
        if kind is DynamicValueKind.STRING and resolver is not None:
            string = resolver.resolve(value)
        entries.append(DynamicEntry(
            tag=tag,
            raw_tag=raw_tag,
            value=value,
            value_kind=kind,
            string=string,
        ))
    return DynamicParseResult(entries, False)


def _linked_resolver(
    reader: EndianReader,
    section: SectionHeader,
    sections: Sequence[SectionHeader],
    encoding: str,
    errors: str,
) -> Optional[StringResolver]:
    link = section.link
    if link == c.SHN_UNDEF:
        return None
    if link >= len(sections) or sections[link].type_code != c.SHT_STRTAB:
        raise MalformedDynamicSection(
            f"section {section.index} ({section.name!r}) links section {link}, "
            f"which is not a string table"
        )
    return StringResolver(
        reader, link, sections[link], encoding=encoding, errors=errors
    )
