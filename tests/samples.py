"""Sample images shared by the test modules: a static executable and a shared object."""

from __future__ import annotations

from elf_builder import ElfBuilder, StringTable, Sym
from elfscope.parsers import constants as c

TEXT_BYTES = b"\x48\x31\xc0\xc3" * 4
INTERP_PATH = "/lib64/ld-linux-x86-64.so.2"


def build_executable(*, big_endian: bool = False) -> tuple[ElfBuilder, bytes]:
    """Little-endian executable: entry 0x400080, LOAD RX + LOAD RW, four sections.

    Sections: null, .text, .symtab, .strtab (.strtab also holds section names).
    """
    b = ElfBuilder(big_endian=big_endian, entry=0x400080)
    strings = StringTable()
    text = b.add_section(
        ".text", c.SHT_PROGBITS, TEXT_BYTES,
        flags=c.SHF_ALLOC | c.SHF_EXECINSTR, addr=0x4000B0, addralign=16,
    )
    b.add_symbol_table(
        ".symtab",
        [
            Sym("crt1.c", bind=c.STB_LOCAL, type=c.STT_FILE, shndx=c.SHN_ABS),
            Sym("_start", value=0x4000B0, size=len(TEXT_BYTES), shndx=text),
            Sym("counter", value=0x600010, size=8, type=c.STT_OBJECT, shndx=c.SHN_ABS),
            Sym("puts", shndx=c.SHN_UNDEF, type=c.STT_NOTYPE),
        ],
        strtab_index=3,
        strings=strings,
    )
    strtab = b.add_string_table(".strtab", strings)
    assert strtab == 3
    b.add_segment(c.PT_LOAD, c.PF_R | c.PF_X, vaddr=0x400000, section=text,
                  from_file_start=True)
    b.add_segment(c.PT_LOAD, c.PF_R | c.PF_W, vaddr=0x600000, memsz=0x100)
    return b, b.build(names_in=strtab)


def build_shared_object() -> tuple[ElfBuilder, bytes]:
    """Shared object with .interp, .dynsym/.dynstr, .rela.dyn, .dynamic and .symtab."""
    b = ElfBuilder(e_type=c.ET_DYN, entry=0x1000)
    dynstr = StringTable()
    strings = StringTable()

    interp = b.add_section(
        ".interp", c.SHT_PROGBITS, INTERP_PATH.encode() + b"\x00",
        flags=c.SHF_ALLOC, addr=0x238,
    )
    dynsym = b.add_symbol_table(
        ".dynsym",
        [
            Sym("puts", shndx=c.SHN_UNDEF),
            Sym("helper", value=0x1000, size=0x10, shndx=5),
        ],
        strtab_index=3,
        strings=dynstr,
        dynamic=True,
        flags=c.SHF_ALLOC,
        addr=0x260,
    )
    b.add_string_table(".dynstr", dynstr, flags=c.SHF_ALLOC, addr=0x2C0)
    needed = dynstr.add("libc.so.6")
    soname = dynstr.add("libdemo.so")
    runpath = dynstr.add("$ORIGIN/lib")
    b.add_relocations(
        ".rela.dyn",
        [
            (0x2008, 1, 6, 0),         # R_X86_64_GLOB_DAT puts
            (0x2010, 0, 8, 0x1000),    # R_X86_64_RELATIVE
            (0x2018, 2, 0x7777, -4),   # unknown type
        ],
        symtab_index=dynsym,
        flags=c.SHF_ALLOC,
        addr=0x300,
    )
    text = b.add_section(
        ".text", c.SHT_PROGBITS, TEXT_BYTES * 2,
        flags=c.SHF_ALLOC | c.SHF_EXECINSTR, addr=0x1000, addralign=16,
    )
    assert text == 5
    dynamic = b.add_dynamic(
        ".dynamic",
        [
            (c.DT_NEEDED, needed),
            (c.DT_SONAME, soname),
            (c.DT_RUNPATH, runpath),
            (c.DT_STRTAB, 0x2C0),
            (c.DT_FLAGS, 0x8),
            (0x12345678, 0xABC),
            (c.DT_NULL, 0),
            (c.DT_NEEDED, needed),
        ],
        strtab_index=3,
        flags=c.SHF_ALLOC | c.SHF_WRITE,
        addr=0x2000,
    )
    b.add_symbol_table(
        ".symtab",
        [
            Sym("local_helper", value=0x1010, size=4, bind=c.STB_LOCAL, shndx=text),
            Sym("helper", value=0x1000, size=0x10, shndx=text),
        ],
        strtab_index=8,
        strings=strings,
    )
    b.add_string_table(".strtab", strings)
    b.add_segment(c.PT_INTERP, c.PF_R, section=interp, align=1)
    b.add_segment(c.PT_LOAD, c.PF_R | c.PF_X, vaddr=0x1000, section=text)
    b.add_segment(c.PT_LOAD, c.PF_R | c.PF_W, vaddr=0x2000, section=dynamic, memsz=0x1000)
    b.add_segment(c.PT_DYNAMIC, c.PF_R | c.PF_W, section=dynamic, align=8)
    b.add_segment(c.PT_GNU_STACK, c.PF_R | c.PF_W, align=16)
    return b, b.build()

