"""
ElfScope Data Models
=====================

Pydantic-based immutable record models for the decoded structure of an
ELF64 image: identification, file header, program headers, section
headers, symbols, relocations and dynamic entries.

Every enumerated field is carried twice: as a Python enum with an
``UNKNOWN`` member and as the raw integer code read from the file, so an
unrecognised code never aborts decoding and is never lost.

References:
    - TIS Committee. (1995). Executable and Linkable Format (ELF) Specification.
    - System V Application Binary Interface, Edition 4.1.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from elfscope.parsers import constants as c


_RECORD_CONFIG = ConfigDict(frozen=True, use_enum_values=False, extra="forbid")


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class BinaryFormat(str, enum.Enum):
    """Container formats known to the format dispatcher."""
    ELF = "elf"
    PE = "pe"
    MACHO = "macho"
    DEX = "dex"
    WASM = "wasm"
    UNKNOWN = "unknown"


class Endianness(str, enum.Enum):
    """Byte order selected by ``EI_DATA``."""
    LITTLE = "little"
    BIG = "big"

    @property
    def struct_prefix(self) -> str:
        """The :mod:`struct` byte-order character for this encoding."""
        return "<" if self is Endianness.LITTLE else ">"


class ObjectType(str, enum.Enum):
    """``e_type`` of the object file."""
    RELOCATABLE = "relocatable"
    EXECUTABLE = "executable"
    SHARED = "shared"
    CORE = "core"
    UNKNOWN = "unknown"

    @classmethod
    def from_code(cls, code: int) -> ObjectType:
        return _OBJECT_TYPES.get(code, cls.UNKNOWN)


class SegmentKind(str, enum.Enum):
    """``p_type`` of a program header."""
    NULL = "null"
    LOAD = "load"
    DYNAMIC = "dynamic"
    INTERP = "interp"
    NOTE = "note"
    SHLIB = "shlib"
    PHDR = "phdr"
    TLS = "tls"
    GNU_EH_FRAME = "gnu_eh_frame"
    GNU_STACK = "gnu_stack"
    GNU_RELRO = "gnu_relro"
    GNU_PROPERTY = "gnu_property"
    UNKNOWN = "unknown"

    @classmethod
    def from_code(cls, code: int) -> SegmentKind:
        return _SEGMENT_KINDS.get(code, cls.UNKNOWN)


class SegmentFlags(enum.IntFlag):
    """``p_flags`` permission bits."""
    X = c.PF_X
    W = c.PF_W
    R = c.PF_R


class SectionKind(str, enum.Enum):
    """``sh_type`` of a section header."""
    NULL = "null"
    PROGBITS = "progbits"
    SYMTAB = "symtab"
    STRTAB = "strtab"
    RELA = "rela"
    HASH = "hash"
    DYNAMIC = "dynamic"
    NOTE = "note"
    NOBITS = "nobits"
    REL = "rel"
    SHLIB = "shlib"
    DYNSYM = "dynsym"
    INIT_ARRAY = "init_array"
    FINI_ARRAY = "fini_array"
    PREINIT_ARRAY = "preinit_array"
    GROUP = "group"
    SYMTAB_SHNDX = "symtab_shndx"
    GNU_ATTRIBUTES = "gnu_attributes"
    GNU_HASH = "gnu_hash"
    GNU_VERDEF = "gnu_verdef"
    GNU_VERNEED = "gnu_verneed"
    GNU_VERSYM = "gnu_versym"
    UNKNOWN = "unknown"

    @classmethod
    def from_code(cls, code: int) -> SectionKind:
        return _SECTION_KINDS.get(code, cls.UNKNOWN)


class SectionFlags(enum.IntFlag):
    """``sh_flags`` attribute bits."""
    WRITE = c.SHF_WRITE
    ALLOC = c.SHF_ALLOC
    EXECINSTR = c.SHF_EXECINSTR
    MERGE = c.SHF_MERGE
    STRINGS = c.SHF_STRINGS
    INFO_LINK = c.SHF_INFO_LINK
    LINK_ORDER = c.SHF_LINK_ORDER
    OS_NONCONFORMING = c.SHF_OS_NONCONFORMING
    GROUP = c.SHF_GROUP
    TLS = c.SHF_TLS
    COMPRESSED = c.SHF_COMPRESSED


class SymbolBinding(str, enum.Enum):
    """High nibble of ``st_info``."""
    LOCAL = "local"
    GLOBAL = "global"
    WEAK = "weak"
    GNU_UNIQUE = "gnu_unique"
    UNKNOWN = "unknown"

    @classmethod
    def from_code(cls, code: int) -> SymbolBinding:
        return _SYMBOL_BINDINGS.get(code, cls.UNKNOWN)


class SymbolType(str, enum.Enum):
    """Low nibble of ``st_info``."""
    NONE = "none"
    OBJECT = "object"
    FUNCTION = "function"
    SECTION = "section"
    FILE = "file"
    COMMON = "common"
    TLS = "tls"
    GNU_IFUNC = "gnu_ifunc"
    UNKNOWN = "unknown"

    @classmethod
    def from_code(cls, code: int) -> SymbolType:
        return _SYMBOL_TYPES.get(code, cls.UNKNOWN)


class SymbolVisibility(str, enum.Enum):
    """Low two bits of ``st_other``."""
    DEFAULT = "default"
    INTERNAL = "internal"
    HIDDEN = "hidden"
    PROTECTED = "protected"

    @classmethod
    def from_code(cls, code: int) -> SymbolVisibility:
        return _SYMBOL_VISIBILITIES[code & 0x3]


class SectionRef(str, enum.Enum):
    """How a symbol's ``st_shndx`` should be read."""
    UNDEFINED = "undefined"
    ABSOLUTE = "absolute"
    COMMON = "common"
    ORDINARY = "ordinary"
    RESERVED = "reserved"

    @classmethod
    def from_index(cls, index: int) -> SectionRef:
        if index == c.SHN_UNDEF:
            return cls.UNDEFINED
        if index == c.SHN_ABS:
            return cls.ABSOLUTE
        if index == c.SHN_COMMON:
            return cls.COMMON
        if index >= c.SHN_LORESERVE:
            return cls.RESERVED
        return cls.ORDINARY


class RelocationKind(str, enum.Enum):
    """Entry layout of a relocation section."""
    REL = "rel"
    RELA = "rela"


class DynamicTag(str, enum.Enum):
    """``d_tag`` of a dynamic entry."""
    NULL = "NULL"
    NEEDED = "NEEDED"
    PLTRELSZ = "PLTRELSZ"
    PLTGOT = "PLTGOT"
    HASH = "HASH"
    STRTAB = "STRTAB"
    SYMTAB = "SYMTAB"
    RELA = "RELA"
    RELASZ = "RELASZ"
    RELAENT = "RELAENT"
    STRSZ = "STRSZ"
    SYMENT = "SYMENT"
    INIT = "INIT"
    FINI = "FINI"
    SONAME = "SONAME"
    RPATH = "RPATH"
    SYMBOLIC = "SYMBOLIC"
    REL = "REL"
    RELSZ = "RELSZ"
    RELENT = "RELENT"
    PLTREL = "PLTREL"
    DEBUG = "DEBUG"
    TEXTREL = "TEXTREL"
    JMPREL = "JMPREL"
    BIND_NOW = "BIND_NOW"
    INIT_ARRAY = "INIT_ARRAY"
    FINI_ARRAY = "FINI_ARRAY"
    INIT_ARRAYSZ = "INIT_ARRAYSZ"
    FINI_ARRAYSZ = "FINI_ARRAYSZ"
    RUNPATH = "RUNPATH"
    FLAGS = "FLAGS"
    PREINIT_ARRAY = "PREINIT_ARRAY"
    PREINIT_ARRAYSZ = "PREINIT_ARRAYSZ"
    GNU_HASH = "GNU_HASH"
    VERSYM = "VERSYM"
    RELACOUNT = "RELACOUNT"
    RELCOUNT = "RELCOUNT"
    FLAGS_1 = "FLAGS_1"
    VERDEF = "VERDEF"
    VERDEFNUM = "VERDEFNUM"
    VERNEED = "VERNEED"
    VERNEEDNUM = "VERNEEDNUM"
    UNKNOWN = "UNKNOWN"


class DynamicValueKind(str, enum.Enum):
    """How ``d_un`` is interpreted for a given tag."""
    INTEGER = "integer"
    POINTER = "pointer"
    STRING = "string"
    FLAGS = "flags"
    IGNORED = "ignored"


_OBJECT_TYPES: dict[int, ObjectType] = {
    c.ET_REL: ObjectType.RELOCATABLE,
    c.ET_EXEC: ObjectType.EXECUTABLE,
    c.ET_DYN: ObjectType.SHARED,
    c.ET_CORE: ObjectType.CORE,
}

_SEGMENT_KINDS: dict[int, SegmentKind] = {
    c.PT_NULL: SegmentKind.NULL,
    c.PT_LOAD: SegmentKind.LOAD,
    c.PT_DYNAMIC: SegmentKind.DYNAMIC,
    c.PT_INTERP: SegmentKind.INTERP,
    c.PT_NOTE: SegmentKind.NOTE,
    c.PT_SHLIB: SegmentKind.SHLIB,
    c.PT_PHDR: SegmentKind.PHDR,
    c.PT_TLS: SegmentKind.TLS,
    c.PT_GNU_EH_FRAME: SegmentKind.GNU_EH_FRAME,
    c.PT_GNU_STACK: SegmentKind.GNU_STACK,
    c.PT_GNU_RELRO: SegmentKind.GNU_RELRO,
    c.PT_GNU_PROPERTY: SegmentKind.GNU_PROPERTY,
}

_SECTION_KINDS: dict[int, SectionKind] = {
    c.SHT_NULL: SectionKind.NULL,
    c.SHT_PROGBITS: SectionKind.PROGBITS,
    c.SHT_SYMTAB: SectionKind.SYMTAB,
    c.SHT_STRTAB: SectionKind.STRTAB,
    c.SHT_RELA: SectionKind.RELA,
    c.SHT_HASH: SectionKind.HASH,
    c.SHT_DYNAMIC: SectionKind.DYNAMIC,
    c.SHT_NOTE: SectionKind.NOTE,
    c.SHT_NOBITS: SectionKind.NOBITS,
    c.SHT_REL: SectionKind.REL,
    c.SHT_SHLIB: SectionKind.SHLIB,
    c.SHT_DYNSYM: SectionKind.DYNSYM,
    c.SHT_INIT_ARRAY: SectionKind.INIT_ARRAY,
    c.SHT_FINI_ARRAY: SectionKind.FINI_ARRAY,
    c.SHT_PREINIT_ARRAY: SectionKind.PREINIT_ARRAY,
    c.SHT_GROUP: SectionKind.GROUP,
    c.SHT_SYMTAB_SHNDX: SectionKind.SYMTAB_SHNDX,
    c.SHT_GNU_ATTRIBUTES: SectionKind.GNU_ATTRIBUTES,
    c.SHT_GNU_HASH: SectionKind.GNU_HASH,
    c.SHT_GNU_VERDEF: SectionKind.GNU_VERDEF,
    c.SHT_GNU_VERNEED: SectionKind.GNU_VERNEED,
    c.SHT_GNU_VERSYM: SectionKind.GNU_VERSYM,
}

_SYMBOL_BINDINGS: dict[int, SymbolBinding] = {
    c.STB_LOCAL: SymbolBinding.LOCAL,
    c.STB_GLOBAL: SymbolBinding.GLOBAL,
    c.STB_WEAK: SymbolBinding.WEAK,
    c.STB_GNU_UNIQUE: SymbolBinding.GNU_UNIQUE,
}

_SYMBOL_TYPES: dict[int, SymbolType] = {
    c.STT_NOTYPE: SymbolType.NONE,
    c.STT_OBJECT: SymbolType.OBJECT,
    c.STT_FUNC: SymbolType.FUNCTION,
    c.STT_SECTION: SymbolType.SECTION,
    c.STT_FILE: SymbolType.FILE,
    c.STT_COMMON: SymbolType.COMMON,
    c.STT_TLS: SymbolType.TLS,
    c.STT_GNU_IFUNC: SymbolType.GNU_IFUNC,
}

_SYMBOL_VISIBILITIES: dict[int, SymbolVisibility] = {
    c.STV_DEFAULT: SymbolVisibility.DEFAULT,
    c.STV_INTERNAL: SymbolVisibility.INTERNAL,
    c.STV_HIDDEN: SymbolVisibility.HIDDEN,
    c.STV_PROTECTED: SymbolVisibility.PROTECTED,
}


def _flags_str(flags: int, table: tuple[tuple[int, str], ...]) -> str:
    """Render a flag bitmask as letters (``"RWX"``, ``"WAX"``)."""
    parts = [letter for bit, letter in table if flags & bit]
    return "".join(parts) if parts else "-"


# ---------------------------------------------------------------------------
# Identification and file header
# ---------------------------------------------------------------------------

class Identification(BaseModel):
    """The ``e_ident`` block.

    Attributes:
        magic: The four magic bytes (always ``b"\\x7fELF"`` once parsed).
        elf_class: ``EI_CLASS`` code (always ``ELFCLASS64`` once parsed).
        endianness: Byte order used by every multi-byte field in the file.
        version: ``EI_VERSION``.
        osabi: ``EI_OSABI`` code.
        abi_version: ``EI_ABIVERSION``.
    """
    model_config = _RECORD_CONFIG

    magic: bytes
    elf_class: int
    endianness: Endianness
    version: int
    osabi: int
    abi_version: int

    @property
    def osabi_name(self) -> str:
        return c.osabi_name(self.osabi)


class FileHeader(BaseModel):
    """The fixed-layout ELF64 file header, values exactly as declared.

    Counts are the raw ``e_phnum``/``e_shnum``/``e_shstrndx`` fields; when
    extended numbering is in use the effective values live in section 0
    and are reflected by the lengths of the decoded tables.
    """
    model_config = _RECORD_CONFIG

    object_type: ObjectType
    type_code: int
    machine: int
    version: int
    entry: int
    ph_offset: int
    sh_offset: int
    flags: int
    header_size: int
    ph_entry_size: int
    ph_count: int
    sh_entry_size: int
    sh_count: int
    sh_string_index: int

    @property
    def machine_name(self) -> str:
        return c.machine_name(self.machine)


# ---------------------------------------------------------------------------
# Program / section headers
# ---------------------------------------------------------------------------

class ProgramHeader(BaseModel):
    """A program header (segment) entry, in file order."""
    model_config = _RECORD_CONFIG

    index: int
    kind: SegmentKind
    type_code: int
    flags: int
    offset: int
    vaddr: int
    paddr: int
    file_size: int
    mem_size: int
    align: int

    @property
    def flag_set(self) -> SegmentFlags:
        return SegmentFlags(self.flags & 0x7)

    @property
    def readable(self) -> bool:
        return bool(self.flags & c.PF_R)

    @property
    def writable(self) -> bool:
        return bool(self.flags & c.PF_W)

    @property
    def executable(self) -> bool:
        return bool(self.flags & c.PF_X)

    @property
    def flags_str(self) -> str:
        return _flags_str(self.flags, ((c.PF_R, "R"), (c.PF_W, "W"), (c.PF_X, "X")))

    @property
    def type_name(self) -> str:
        if self.kind is SegmentKind.UNKNOWN:
            return f"0x{self.type_code:x}"
        return f"PT_{self.kind.name}"

    def contains_address(self, address: int) -> bool:
        return self.vaddr <= address < self.vaddr + self.mem_size


class SectionHeader(BaseModel):
    """A section header entry; index 0 is the reserved null section."""
    model_config = _RECORD_CONFIG

    index: int
    name: str
    name_offset: int
    kind: SectionKind
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
    def flag_set(self) -> SectionFlags:
        return SectionFlags(self.flags & 0xFFF)

    @property
    def alloc(self) -> bool:
        return bool(self.flags & c.SHF_ALLOC)

    @property
    def writable(self) -> bool:
        return bool(self.flags & c.SHF_WRITE)

    @property
    def executable(self) -> bool:
        return bool(self.flags & c.SHF_EXECINSTR)

    @property
    def occupies_file(self) -> bool:
        """Whether the section has bytes in the file (``SHT_NOBITS`` has none)."""
        return self.type_code not in (c.SHT_NOBITS, c.SHT_NULL)

    @property
    def flags_str(self) -> str:
        return _flags_str(
            self.flags,
            ((c.SHF_WRITE, "W"), (c.SHF_ALLOC, "A"), (c.SHF_EXECINSTR, "X"),
             (c.SHF_MERGE, "M"), (c.SHF_STRINGS, "S"), (c.SHF_INFO_LINK, "I"),
             (c.SHF_LINK_ORDER, "L"), (c.SHF_GROUP, "G"), (c.SHF_TLS, "T"),
             (c.SHF_COMPRESSED, "C")),
        )

    @property
    def type_name(self) -> str:
        if self.kind is SectionKind.UNKNOWN:
            return f"0x{self.type_code:x}"
        return f"SHT_{self.kind.name}"

    def contains_address(self, address: int) -> bool:
        return self.addr <= address < self.addr + self.size


# ---------------------------------------------------------------------------
# Symbols
# ---------------------------------------------------------------------------

class Symbol(BaseModel):
    """A resolved symbol-table entry.

    Attributes:
        name: Name resolved through the table's linked string table.
        table_index: Section index of the symbol table holding this entry.
        index: Position of the entry within its table.
        section_index: Raw ``st_shndx``; see :attr:`section_ref`.
        section_ref: Classification of ``st_shndx`` (special values are
            never treated as section cross-references).
    """
    model_config = _RECORD_CONFIG

    name: str
    name_offset: int
    value: int
    size: int
    binding: SymbolBinding
    binding_code: int
    type: SymbolType
    type_code: int
    visibility: SymbolVisibility
    other: int
    section_index: int
    section_ref: SectionRef
    table_index: int
    index: int

    @property
    def is_defined(self) -> bool:
        return self.section_ref is not SectionRef.UNDEFINED


# ---------------------------------------------------------------------------
# Relocations
# ---------------------------------------------------------------------------

class RelocationEntry(BaseModel):
    """A REL or RELA entry; :attr:`addend` is ``None`` for REL."""
    model_config = _RECORD_CONFIG

    offset: int
    info: int
    symbol_index: int
    type_code: int
    type_name: Optional[str] = None
    addend: Optional[int] = None


class RelocationTable(BaseModel):
    """All entries of one relocation section.

    Attributes:
        section_index: Index of the REL/RELA section.
        symbol_table_index: ``sh_link``, the symbol table the entries index.
        target_section_index: ``sh_info``, the section being patched
            (0 for dynamic relocations).
    """
    model_config = _RECORD_CONFIG

    section_index: int
    kind: RelocationKind
    symbol_table_index: int
    target_section_index: int
    entries: tuple[RelocationEntry, ...] = ()


# ---------------------------------------------------------------------------
# Dynamic section
# ---------------------------------------------------------------------------

class DynamicEntry(BaseModel):
    """A dynamic-section tag/value pair.

    Attributes:
        tag: Recognised tag, or ``UNKNOWN``.
        raw_tag: Signed ``d_tag`` as stored in the file.
        value: ``d_un`` as an unsigned integer.
        value_kind: Interpretation of :attr:`value` for this tag.
        string: Resolved text for string-valued tags, when a string table
            is linked.
    """
    model_config = _RECORD_CONFIG

    tag: DynamicTag
    raw_tag: int
    value: int
    value_kind: DynamicValueKind
    string: Optional[str] = None

    @property
    def is_pointer(self) -> bool:
        return self.value_kind is DynamicValueKind.POINTER

    @property
    def tag_name(self) -> str:
        if self.tag is DynamicTag.UNKNOWN:
            return f"0x{self.raw_tag & c.U64_MAX:x}"
        return f"DT_{self.tag.value}"
