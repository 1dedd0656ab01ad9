"""
ELF64 Header Decoder
=====================

Validates the identification bytes and decodes the fixed-layout ELF64
file header.  This is a pure function of the buffer; bounds validation of
the program/section header tables is left to :mod:`elfscope.parsers.tables`.

ELF64 header layout (offsets 16..63)::

    e_type      u16    e_machine   u16    e_version   u32
    e_entry     u64    e_phoff     u64    e_shoff     u64
    e_flags     u32    e_ehsize    u16    e_phentsize u16
    e_phnum     u16    e_shentsize u16    e_shnum     u16
    e_shstrndx  u16
"""

from __future__ import annotations

from elfscope.core.errors import (
    InvalidMagic,
    MalformedHeader,
    OutOfBounds,
    UnsupportedClass,
    UnsupportedEncoding,
)
from elfscope.core.models import Endianness, FileHeader, Identification, ObjectType
from elfscope.parsers import constants as c
from elfscope.parsers.reader import EndianReader

_EHDR64_FIELDS = "HHIQQQIHHHHHH"

_ENCODINGS: dict[int, Endianness] = {
    c.ELFDATA2LSB: Endianness.LITTLE,
    c.ELFDATA2MSB: Endianness.BIG,
}


def decode_identification(data: bytes) -> Identification:
    """Validate and decode ``e_ident``.

    Raises:
        InvalidMagic: Fewer than four bytes, or the wrong magic sequence.
        OutOfBounds: Valid magic but a truncated identification block.
        UnsupportedClass: ``EI_CLASS`` is not ``ELFCLASS64``.
        UnsupportedEncoding: ``EI_DATA`` is neither LSB nor MSB.
    """
    if len(data) < len(c.ELF_MAGIC) or data[: len(c.ELF_MAGIC)] != c.ELF_MAGIC:
        raise InvalidMagic(
            f"expected {c.ELF_MAGIC!r}, found {bytes(data[:4])!r}", offset=0
        )
    if len(data) < c.EI_NIDENT:
        raise OutOfBounds(
            f"identification block needs {c.EI_NIDENT} bytes, buffer has {len(data)}",
            offset=0,
            length=c.EI_NIDENT,
            limit=len(data),
        )

    ei_class = data[c.EI_CLASS]
    if ei_class != c.ELFCLASS64:
        raise UnsupportedClass(ei_class)

    endianness = _ENCODINGS.get(data[c.EI_DATA])
    if endianness is None:
        raise UnsupportedEncoding(data[c.EI_DATA])

    return Identification(
        magic=bytes(data[: len(c.ELF_MAGIC)]),
        elf_class=ei_class,
        endianness=endianness,
        version=data[c.EI_VERSION],
        osabi=data[c.EI_OSABI],
        abi_version=data[c.EI_ABIVERSION],
    )


def decode_file_header(
    reader: EndianReader,
    *,
    strict_entry_sizes: bool = False,
) -> FileHeader:
    """Decode the 64-bit file header that follows ``e_ident``.

    Args:
        reader: Reader over the whole buffer in the file's byte order.
        strict_entry_sizes: Also reject a zero entry size for an empty table.

    Raises:
        OutOfBounds: The buffer is shorter than the 64-byte header.
        MalformedHeader: A declared entry size differs from the ELF64 layout.
    """
    (
        e_type, e_machine, e_version, e_entry,
        e_phoff, e_shoff, e_flags, e_ehsize,
        e_phentsize, e_phnum, e_shentsize, e_shnum,
        e_shstrndx,
    ) = reader.unpack(_EHDR64_FIELDS, c.EI_NIDENT)

    _check_entry_size("e_phentsize", e_phentsize, c.PHDR64_SIZE, e_phnum, strict_entry_sizes)
    # e_shnum == 0 with a non-zero e_shoff still has a table (extended numbering).
    sh_present = e_shnum if e_shoff == 0 else max(e_shnum, 1)
    _check_entry_size("e_shentsize", e_shentsize, c.SHDR64_SIZE, sh_present, strict_entry_sizes)

    return FileHeader(
        object_type=ObjectType.from_code(e_type),
        type_code=e_type,
        machine=e_machine,
        version=e_version,
        entry=e_entry,
        ph_offset=e_phoff,
        sh_offset=e_shoff,
        flags=e_flags,
        header_size=e_ehsize,
        ph_entry_size=e_phentsize,
        ph_count=e_phnum,
        sh_entry_size=e_shentsize,
        sh_count=e_shnum,
        sh_string_index=e_shstrndx,
    )


def _check_entry_size(
    field: str, declared: int, required: int, count: int, strict: bool
) -> None:
    if declared == required:
        return
    if declared == 0 and count == 0 and not strict:
        return
    raise MalformedHeader(
        f"{field} is {declared}, ELF64 requires {required}",
        offset=c.EI_NIDENT,
    )
