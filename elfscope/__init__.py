"""
ElfScope -- ELF64 Structural Decoder
=====================================

Decodes a 64-bit ELF image held in memory into an immutable, queryable
model: file header, program and section headers, symbols, relocations and
dynamic entries, with name and address lookups on top.

Usage::

    import elfscope

    obj = elfscope.parse(data)
    obj.section_by_name(".text")
"""

from elfscope.core.engine import BinaryFormatDecoder, decoder_for, detect_format, parse
from elfscope.core.errors import (
    ElfParseError,
    InvalidMagic,
    InvalidStringOffset,
    MalformedDynamicSection,
    MalformedHeader,
    MalformedRelocationTable,
    MalformedSymbolTable,
    OutOfBounds,
    UnsupportedClass,
    UnsupportedEncoding,
)
from elfscope.core.models import (
    BinaryFormat,
    DynamicEntry,
    DynamicTag,
    DynamicValueKind,
    Endianness,
    FileHeader,
    Identification,
    ObjectType,
    ProgramHeader,
    RelocationEntry,
    RelocationKind,
    RelocationTable,
    SectionFlags,
    SectionHeader,
    SectionKind,
    SectionRef,
    SegmentFlags,
    SegmentKind,
    Symbol,
    SymbolBinding,
    SymbolType,
    SymbolVisibility,
)
from elfscope.core.parsed_object import ParsedObject

__version__ = "1.0.0"

__all__ = [
    "parse",
    "detect_format",
    "decoder_for",
    "BinaryFormatDecoder",
    "ParsedObject",
    "ElfParseError",
    "InvalidMagic",
    "UnsupportedClass",
    "UnsupportedEncoding",
    "MalformedHeader",
    "OutOfBounds",
    "MalformedSymbolTable",
    "InvalidStringOffset",
    "MalformedDynamicSection",
    "MalformedRelocationTable",
    "BinaryFormat",
    "DynamicEntry",
    "DynamicTag",
    "DynamicValueKind",
    "Endianness",
    "FileHeader",
    "Identification",
    "ObjectType",
    "ProgramHeader",
    "RelocationEntry",
    "RelocationKind",
    "RelocationTable",
    "SectionFlags",
    "SectionHeader",
    "SectionKind",
    "SectionRef",
    "SegmentFlags",
    "SegmentKind",
    "Symbol",
    "SymbolBinding",
    "SymbolType",
    "SymbolVisibility",
]
