"""
ELF64 Decoder
==============

Runs the component pipeline for one 64-bit ELF image and hands the
decoded records to the object assembler.

Pipeline:
    1. Identification and file header
    2. Section header table and section names
    3. Program header table
    4. Symbol tables (``SHT_SYMTAB`` / ``SHT_DYNSYM``, in section order)
    5. Relocation tables (``SHT_REL`` / ``SHT_RELA``)
    6. Dynamic section (the first ``SHT_DYNAMIC``)
    7. Program interpreter (the first ``PT_INTERP``)
    8. Assembly of indices and the immutable result

Section headers are decoded before program headers because extended
numbering keeps the real program-header count in section 0.
"""

from __future__ import annotations

from typing import Optional, Sequence

from shared.config import ParserConfig
from shared.logger import ScopeLogger

from elfscope.core.assembler import ObjectAssembler
from elfscope.core.errors import MalformedHeader
from elfscope.core.models import (
    BinaryFormat,
    DynamicEntry,
    ProgramHeader,
    SectionHeader,
    SegmentKind,
    Symbol,
)
from elfscope.core.parsed_object import ParsedObject
from elfscope.parsers import constants as c
from elfscope.parsers.dynamic import parse_dynamic_section
from elfscope.parsers.header import decode_file_header, decode_identification
from elfscope.parsers.reader import EndianReader
from elfscope.parsers.relocations import is_relocation_section, parse_relocation_table
from elfscope.parsers.strings import StringResolver
from elfscope.parsers.symbols import SymbolTableParser
from elfscope.parsers.tables import (
    SectionRecord,
    build_section_header,
    parse_program_headers,
    parse_section_records,
    section_name_index,
)


class Elf64Decoder:
    """Decoder for 64-bit ELF images in either byte order.

    Usage::

        decoder = Elf64Decoder()
        if decoder.matches(data):
            obj = decoder.decode(data, config=ParserConfig(), logger=log)
    """

    name = "elf64"
    format = BinaryFormat.ELF

    def matches(self, data: bytes) -> bool:
        return data[: len(c.ELF_MAGIC)] == c.ELF_MAGIC

    def decode(
        self,
        data: bytes,
        *,
        config: ParserConfig,
        logger: ScopeLogger,
    ) -> ParsedObject:
        """Decode *data* into a :class:`ParsedObject`.

        Args:
            data: The complete image.
            config: Parser settings.
            logger: Receives per-stage DEBUG records and tolerated-anomaly
                warnings.

        Raises:
            ElfParseError: The first structural failure encountered.
        """
        with logger.operation("header"):
            identification = decode_identification(data)
            reader = EndianReader(data, identification.endianness)
            header = decode_file_header(
                reader, strict_entry_sizes=config.strict_entry_sizes
            )
            logger.debug(
                "%s %s-endian %s, entry 0x%x",
                header.object_type.value,
                identification.endianness.value,
                header.machine_name,
                header.entry,
            )

        with logger.operation("section_headers"):
            records = parse_section_records(reader, header)
            sections = self._name_sections(
                reader, records, section_name_index(header, records), config
            )
            logger.debug("Decoded %d section headers", len(sections))

        with logger.operation("program_headers"):
            segments = parse_program_headers(reader, header, records)
            logger.debug("Decoded %d program headers", len(segments))

        with logger.operation("symbols"):
            symbol_tables = self._parse_symbol_tables(reader, sections, config)
            logger.debug(
                "Decoded %d symbols from %d tables",
                sum(len(t) for t in symbol_tables.values()),
                len(symbol_tables),
            )

        with logger.operation("relocations"):
            relocation_tables = {
                s.index: parse_relocation_table(reader, s, header.machine)
                for s in sections
                if is_relocation_section(s)
            }
            logger.debug(
                "Decoded %d relocation sections", len(relocation_tables)
            )

        with logger.operation("dynamic"):
            dynamic_entries = self._parse_dynamic(reader, sections, config, logger)

        with logger.operation("interpreter"):
            interpreter = self._read_interpreter(reader, segments, config)
            if interpreter is not None:
                logger.debug("Interpreter %s", interpreter)

        with logger.operation("assemble"):
            return ObjectAssembler(config).assemble(
                identification=identification,
                file_header=header,
                program_headers=segments,
                section_headers=sections,
                symbol_tables=symbol_tables,
                relocation_tables=relocation_tables,
                dynamic_entries=dynamic_entries,
                interpreter=interpreter,
            )

    # ------------------------------------------------------------------ #
    #  Stages
    # ------------------------------------------------------------------ #

    @staticmethod
    def _name_sections(
        reader: EndianReader,
        records: Sequence[SectionRecord],
        name_index: int,
        config: ParserConfig,
    ) -> list[SectionHeader]:
        if name_index == c.SHN_UNDEF:
            return [
                build_section_header(i, record, "")
                for i, record in enumerate(records)
            ]
        names = StringResolver(
            reader,
            name_index,
            records[name_index],
            encoding=config.string_encoding,
            errors=config.string_errors,
        )
        return [
            build_section_header(i, record, names.resolve(record.name_offset))
            for i, record in enumerate(records)
        ]

    @staticmethod
    def _parse_symbol_tables(
        reader: EndianReader,
        sections: Sequence[SectionHeader],
        config: ParserConfig,
    ) -> dict[int, list[Symbol]]:
        parser = SymbolTableParser(
            reader,
            sections,
            encoding=config.string_encoding,
            errors=config.string_errors,
        )
        return {
            s.index: parser.parse(s)
            for s in sections
            if s.type_code in (c.SHT_SYMTAB, c.SHT_DYNSYM)
        }

    @staticmethod
    def _parse_dynamic(
        reader: EndianReader,
        sections: Sequence[SectionHeader],
        config: ParserConfig,
        logger: ScopeLogger,
    ) -> list[DynamicEntry]:
        dynamic = [s for s in sections if s.type_code == c.SHT_DYNAMIC]
        if not dynamic:
            return []
        if len(dynamic) > 1:
            logger.warning(
                "Ignoring %d additional dynamic sections after section %d",
                len(dynamic) - 1,
                dynamic[0].index,
            )
        result = parse_dynamic_section(
            reader,
            dynamic[0],
            sections,
            encoding=config.string_encoding,
            errors=config.string_errors,
        )
        if result.entries and not result.terminated:
            logger.warning(
                "Dynamic section %d ends without a DT_NULL terminator",
                dynamic[0].index,
            )
        logger.debug("Decoded %d dynamic entries", len(result.entries))
        return result.entries

    @staticmethod
    def _read_interpreter(
        reader: EndianReader,
        segments: Sequence[ProgramHeader],
        config: ParserConfig,
    ) -> Optional[str]:
        for segment in segments:
            if segment.kind is SegmentKind.INTERP:
                # An empty segment has no file region to read.
                if segment.file_size == 0:
                    return ""
                raw = reader.slice(segment.offset, segment.file_size)
                try:
                    return raw.split(b"\x00", 1)[0].decode(
                        config.string_encoding, config.string_errors
                    )
                except UnicodeDecodeError as exc:
                    raise MalformedHeader(
                        f"program header {segment.index} interpreter path is "
                        f"not decodable ({exc.reason})",
                        offset=segment.offset,
                    ) from exc
        return None
