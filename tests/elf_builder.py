"""
Synthetic ELF64 image builder for the test suite.

Produces small, fully controlled images in either byte order: file header,
program headers, sections with a section-name string table, symbol tables,
relocation tables and dynamic sections.  Layout after :meth:`build`:

    [ehdr][phdr table][section data ...][section header table]

Every header field can be overridden to produce malformed inputs.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Optional, Union

from elfscope.parsers import constants as c

_EHDR = "16sHHIQQQIHHHHHH"
_PHDR = "IIQQQQQQ"
_SHDR = "IIQQQQIIQQ"
_SYM = "IBBHQQ"
_REL = "QQ"
_RELA = "QQq"
_DYN = "qQ"


def _align(value: int, alignment: int = 8) -> int:
    return (value + alignment - 1) & ~(alignment - 1)


class StringTable:
    """Accumulates NUL-terminated strings; offset 0 is the empty string."""

    def __init__(self) -> None:
        self._data = bytearray(b"\x00")
        self._offsets: dict[str, int] = {"": 0}

    def add(self, text: str) -> int:
        if text not in self._offsets:
            self._offsets[text] = len(self._data)
            self._data += text.encode("utf-8") + b"\x00"
        return self._offsets[text]

    def offset(self, text: str) -> int:
        return self._offsets[text]

    def __bytes__(self) -> bytes:
        return bytes(self._data)


@dataclass
class Sym:
    name: str
    value: int = 0
    size: int = 0
    bind: int = c.STB_GLOBAL
    type: int = c.STT_FUNC
    other: int = 0
    shndx: int = 1
    name_offset: Optional[int] = None

    @property
    def info(self) -> int:
        return (self.bind << 4) | (self.type & 0xF)


@dataclass
class _Section:
    name: str
    sh_type: int
    data: Union[bytes, StringTable] = b""
    flags: int = 0
    addr: int = 0
    link: int = 0
    info: int = 0
    addralign: int = 1
    entsize: int = 0
    size: Optional[int] = None
    offset: Optional[int] = None
    name_offset: Optional[int] = None

    def payload(self) -> bytes:
        return bytes(self.data)


@dataclass
class _Segment:
    p_type: int
    flags: int
    vaddr: int = 0
    paddr: Optional[int] = None
    offset: int = 0
    filesz: int = 0
    memsz: Optional[int] = None
    align: int = 0x1000
    section: Optional[int] = None
    from_file_start: bool = False


@dataclass
class Layout:
    """File offsets chosen by the last :meth:`ElfBuilder.build`."""
    phoff: int = 0
    shoff: int = 0
    section_offsets: list[int] = field(default_factory=list)
    shstrndx: int = 0


class ElfBuilder:
    """Build an ELF64 image.

    Usage::

        b = ElfBuilder(entry=0x400080)
        text = b.add_section(".text", c.SHT_PROGBITS, b"\\x90" * 16,
                             flags=c.SHF_ALLOC | c.SHF_EXECINSTR, addr=0x4000b0)
        b.add_segment(c.PT_LOAD, c.PF_R | c.PF_X, vaddr=0x400000,
                      section=text, from_file_start=True)
        data = b.build()
    """

    def __init__(
        self,
        *,
        big_endian: bool = False,
        e_type: int = c.ET_EXEC,
        machine: int = c.EM_X86_64,
        entry: int = 0,
        osabi: int = 0,
    ) -> None:
        self.big_endian = big_endian
        self.e_type = e_type
        self.machine = machine
        self.entry = entry
        self.osabi = osabi
        self.ident_overrides: dict[int, int] = {}
        self.header_overrides: dict[str, int] = {}
        self.sections: list[_Section] = [_Section("", c.SHT_NULL)]
        self.segments: list[_Segment] = []
        self.layout = Layout()

    @property
    def prefix(self) -> str:
        return ">" if self.big_endian else "<"

    def pack(self, fmt: str, *values: int) -> bytes:
        return struct.pack(self.prefix + fmt, *values)

    # ------------------------------------------------------------------ #
    #  Sections
    # ------------------------------------------------------------------ #

    def add_section(
        self,
        name: str,
        sh_type: int,
        data: Union[bytes, StringTable] = b"",
        **fields: int,
    ) -> int:
        self.sections.append(_Section(name, sh_type, data, **fields))
        return len(self.sections) - 1

    def add_string_table(self, name: str, table: StringTable, **fields: int) -> int:
        return self.add_section(name, c.SHT_STRTAB, table, **fields)

    def add_symbol_table(
        self,
        name: str,
        symbols: list[Sym],
        *,
        strtab_index: int,
        strings: StringTable,
        dynamic: bool = False,
        **fields: int,
    ) -> int:
        """Add a symbol table; the mandatory null symbol is prepended."""
        entries = [self.pack(_SYM, 0, 0, 0, 0, 0, 0)]
        first_global = 1
        for position, sym in enumerate(symbols, 1):
            name_offset = sym.name_offset
            if name_offset is None:
                name_offset = strings.add(sym.name)
            if sym.bind == c.STB_LOCAL:
                first_global = position + 1
            entries.append(self.pack(
                _SYM, name_offset, sym.info, sym.other, sym.shndx, sym.value, sym.size
            ))
        fields.setdefault("entsize", c.SYM64_SIZE)
        fields.setdefault("link", strtab_index)
        fields.setdefault("info", first_global)
        fields.setdefault("addralign", 8)
        sh_type = c.SHT_DYNSYM if dynamic else c.SHT_SYMTAB
        return self.add_section(name, sh_type, b"".join(entries), **fields)

    def add_relocations(
        self,
        name: str,
        entries: list[tuple[int, int, int, int]],
        *,
        rela: bool = True,
        symtab_index: int = 0,
        target_index: int = 0,
        **fields: int,
    ) -> int:
        """Add a REL/RELA table from ``(offset, symbol, type, addend)`` tuples."""
        blobs = []
        for offset, symbol, r_type, addend in entries:
            info = (symbol << 32) | r_type
            if rela:
                blobs.append(self.pack(_RELA, offset, info, addend))
            else:
                blobs.append(self.pack(_REL, offset, info))
        fields.setdefault("entsize", c.RELA64_SIZE if rela else c.REL64_SIZE)
        fields.setdefault("link", symtab_index)
        fields.setdefault("info", target_index)
        fields.setdefault("addralign", 8)
        sh_type = c.SHT_RELA if rela else c.SHT_REL
        return self.add_section(name, sh_type, b"".join(blobs), **fields)

    def add_dynamic(
        self,
        name: str,
        entries: list[tuple[int, int]],
        *,
        strtab_index: int = 0,
        **fields: int,
    ) -> int:
        """Add a dynamic section; *entries* are written verbatim (include DT_NULL)."""
        blob = b"".join(self.pack(_DYN, tag, value) for tag, value in entries)
        fields.setdefault("entsize", c.DYN64_SIZE)
        fields.setdefault("link", strtab_index)
        fields.setdefault("addralign", 8)
        return self.add_section(name, c.SHT_DYNAMIC, blob, **fields)

    # ------------------------------------------------------------------ #
    #  Segments
    # ------------------------------------------------------------------ #

    def add_segment(self, p_type: int, flags: int, **fields: int) -> int:
        """Add a program header.

        ``section=<index>`` places the segment over that section's bytes;
        with ``from_file_start=True`` it instead spans from offset 0 to the
        end of that section.
        """
        self.segments.append(_Segment(p_type, flags, **fields))
        return len(self.segments) - 1

    # ------------------------------------------------------------------ #
    #  Output
    # ------------------------------------------------------------------ #

    def build(self, *, names_in: Optional[int] = None, named: bool = True) -> bytes:
        """Lay out and serialise the image.

        Args:
            names_in: Index of an existing string table to hold section
                names; by default a ``.shstrtab`` section is appended.
            named: ``False`` leaves ``e_shstrndx`` as ``SHN_UNDEF``.
        """
        sections = list(self.sections)
        shstrndx = 0
        if named and len(sections) > 1:
            if names_in is None:
                names = StringTable()
                sections.append(_Section(".shstrtab", c.SHT_STRTAB, names))
                shstrndx = len(sections) - 1
            else:
                names = sections[names_in].data
                assert isinstance(names, StringTable)
                shstrndx = names_in
            for sec in sections[1:]:
                names.add(sec.name)

        phoff = c.EHDR64_SIZE if self.segments else 0
        cursor = c.EHDR64_SIZE + len(self.segments) * c.PHDR64_SIZE

        body = bytearray()
        offsets = [0]
        for sec in sections[1:]:
            cursor = _align(cursor)
            offset = sec.offset if sec.offset is not None else cursor
            offsets.append(offset)
            if sec.sh_type == c.SHT_NOBITS:
                continue
            payload = sec.payload()
            if sec.offset is None:
                body += b"\x00" * (cursor - c.EHDR64_SIZE
                                   - len(self.segments) * c.PHDR64_SIZE - len(body))
                body += payload
                cursor += len(payload)

        shoff = _align(cursor) if len(sections) > 1 else 0
        self.layout = Layout(phoff, shoff, offsets, shstrndx)

        phdrs = b"".join(self._pack_segment(seg, sections, offsets) for seg in self.segments)
        shdrs = b"".join(
            self._pack_section(sec, offsets[i], self._name_offset(sec, sections, shstrndx))
            for i, sec in enumerate(sections)
        ) if len(sections) > 1 else b""

        header = self._pack_header(
            phoff=phoff,
            shoff=shoff,
            phnum=len(self.segments),
            shnum=len(sections) if shoff else 0,
            shstrndx=shstrndx,
        )
        image = bytearray(header + phdrs + body)
        if shoff:
            image += b"\x00" * (shoff - len(image))
            image += shdrs
        return bytes(image)

    def _name_offset(self, sec: _Section, sections: list[_Section], shstrndx: int) -> int:
        if sec.name_offset is not None:
            return sec.name_offset
        if shstrndx == 0 or not sec.name:
            return 0
        names = sections[shstrndx].data
        assert isinstance(names, StringTable)
        return names.offset(sec.name)

    def _pack_header(self, *, phoff: int, shoff: int, phnum: int, shnum: int,
                     shstrndx: int) -> bytes:
        ident = bytearray(16)
        ident[0:4] = c.ELF_MAGIC
        ident[c.EI_CLASS] = c.ELFCLASS64
        ident[c.EI_DATA] = c.ELFDATA2MSB if self.big_endian else c.ELFDATA2LSB
        ident[c.EI_VERSION] = 1
        ident[c.EI_OSABI] = self.osabi
        for index, value in self.ident_overrides.items():
            ident[index] = value

        fields = {
            "e_type": self.e_type,
            "e_machine": self.machine,
            "e_version": 1,
            "e_entry": self.entry,
            "e_phoff": phoff,
            "e_shoff": shoff,
            "e_flags": 0,
            "e_ehsize": c.EHDR64_SIZE,
            "e_phentsize": c.PHDR64_SIZE if phnum else 0,
            "e_phnum": phnum,
            "e_shentsize": c.SHDR64_SIZE if shnum else 0,
            "e_shnum": shnum,
            "e_shstrndx": shstrndx,
        }
        fields.update(self.header_overrides)
        return self.pack(_EHDR, bytes(ident), *fields.values())

    def _pack_segment(self, seg: _Segment, sections: list[_Section],
                      offsets: list[int]) -> bytes:
        offset, filesz, vaddr = seg.offset, seg.filesz, seg.vaddr
        if seg.section is not None:
            sec = sections[seg.section]
            length = 0 if sec.sh_type == c.SHT_NOBITS else len(sec.payload())
            if seg.from_file_start:
                offset, filesz = 0, offsets[seg.section] + length
            else:
                offset, filesz = offsets[seg.section], length
                vaddr = vaddr or sec.addr
        memsz = seg.memsz if seg.memsz is not None else filesz
        paddr = seg.paddr if seg.paddr is not None else vaddr
        return self.pack(_PHDR, seg.p_type, seg.flags, offset, vaddr, paddr,
                         filesz, memsz, seg.align)

    def _pack_section(self, sec: _Section, offset: int, name_offset: int) -> bytes:
        if sec.sh_type == c.SHT_NULL and not sec.name:
            return self.pack(_SHDR, 0, 0, 0, 0, 0, sec.size or 0, sec.link, sec.info, 0, 0)
        size = sec.size if sec.size is not None else len(sec.payload())
        return self.pack(_SHDR, name_offset, sec.sh_type, sec.flags, sec.addr, offset,
                         size, sec.link, sec.info, sec.addralign, sec.entsize)
