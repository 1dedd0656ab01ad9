"""
ElfScope Console Output
========================

Rich-powered terminal display for decoded ELF64 objects, in the spirit of
``readelf``: an identification panel followed by program header, section
header, symbol and dynamic-entry tables.

Uses the :class:`~shared.console.ScopeConsole` abstraction for consistent
styling.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from shared.config import OutputConfig
from shared.console import ScopeConsole

from elfscope.core.models import (
    DynamicEntry,
    DynamicTag,
    DynamicValueKind,
    ObjectType,
    ProgramHeader,
    SectionHeader,
    SectionKind,
    SectionRef,
    SegmentKind,
    Symbol,
    SymbolBinding,
    SymbolType,
)
from elfscope.core.parsed_object import ParsedObject


# ---------------------------------------------------------------------------
# Colour helpers
# ---------------------------------------------------------------------------

_SEGMENT_COLOURS: dict[SegmentKind, str] = {
    SegmentKind.LOAD: "bright_green",
    SegmentKind.DYNAMIC: "bright_cyan",
    SegmentKind.INTERP: "bright_yellow",
    SegmentKind.TLS: "magenta",
    SegmentKind.UNKNOWN: "dim",
}

_BINDING_COLOURS: dict[SymbolBinding, str] = {
    SymbolBinding.GLOBAL: "bright_green",
    SymbolBinding.WEAK: "yellow",
    SymbolBinding.LOCAL: "dim",
    SymbolBinding.UNKNOWN: "red",
}


def _perm_colour(flags: str) -> str:
    """Highlight writable+executable mappings."""
    if "W" in flags and "X" in flags:
        return "bright_red"
    if "X" in flags:
        return "bright_yellow"
    return "white"


def _hex(value: int) -> str:
    return f"0x{value:x}"


# ---------------------------------------------------------------------------
# ElfConsoleOutput
# ---------------------------------------------------------------------------

class ElfConsoleOutput:
    """Rich terminal display for a :class:`ParsedObject`.

    Usage::

        output = ElfConsoleOutput()
        output.display(elfscope.parse(data))
    """

    def __init__(
        self,
        console: ScopeConsole | None = None,
        config: OutputConfig | None = None,
    ) -> None:
        """Initialise the renderer.

        Args:
            console: Optional ScopeConsole; a new one is created if omitted.
            config: Rendering options; defaults when omitted.
        """
        self._console: ScopeConsole = console or ScopeConsole()
        self._config: OutputConfig = config or OutputConfig()

    def display(self, obj: ParsedObject) -> None:
        """Render every part of *obj*."""
        self.display_header(obj)
        self.display_segments(obj.program_headers())
        self.display_sections(obj.section_headers())
        self.display_symbols(obj.symbols())
        self.display_dynamic(obj.dynamic_entries())
        self._console.divider()

    def display_header(self, obj: ParsedObject) -> None:
        ident = obj.identification()
        header = obj.file_header()
        lines: list[str] = [
            f"[bold]Type:[/bold]         {header.object_type.value}"
            + self._raw(header.object_type is ObjectType.UNKNOWN, header.type_code),
            f"[bold]Machine:[/bold]      {escape(header.machine_name)}",
            f"[bold]Byte order:[/bold]   {ident.endianness.value}-endian",
            f"[bold]OS/ABI:[/bold]       {escape(ident.osabi_name)} (ABI version {ident.abi_version})",
            f"[bold]Entry point:[/bold]  {_hex(header.entry)}",
            f"[bold]Flags:[/bold]        {_hex(header.flags)}",
        ]
        interpreter = obj.interpreter()
        if interpreter is not None:
            lines.append(f"[bold]Interpreter:[/bold]  {escape(interpreter)}")
        needed = obj.needed_libraries()
        if needed:
            lines.append(f"[bold]Needed:[/bold]       {escape(', '.join(needed))}")

        panel = Panel(
            "\n".join(lines),
            title="[bold bright_cyan]ELF64 Header[/bold bright_cyan]",
            border_style="bright_cyan",
            padding=(1, 2),
        )
        self._console.rich.print(panel)
        self._console.blank()

    def display_segments(self, segments: tuple[ProgramHeader, ...]) -> None:
        self._console.section("Program Headers")
        if not segments:
            self._console.info("No program headers.")
            self._console.blank()
            return

        tbl = self._new_table()
        tbl.add_column("#", style="dim", width=4, justify="right")
        tbl.add_column("Type", min_width=12)
        tbl.add_column("Offset", justify="right")
        tbl.add_column("VirtAddr", justify="right")
        tbl.add_column("FileSiz", justify="right")
        tbl.add_column("MemSiz", justify="right")
        tbl.add_column("Flags", width=5)
        tbl.add_column("Align", justify="right")

        for seg in segments:
            colour = _SEGMENT_COLOURS.get(seg.kind, "white")
            perm = _perm_colour(seg.flags_str)
            tbl.add_row(
                str(seg.index),
                f"[{colour}]{self._type_label(seg.type_name, seg.kind is SegmentKind.UNKNOWN)}[/{colour}]",
                _hex(seg.offset),
                _hex(seg.vaddr),
                _hex(seg.file_size),
                _hex(seg.mem_size),
                f"[{perm}]{seg.flags_str}[/{perm}]",
                _hex(seg.align),
            )

        self._console.rich.print(tbl)
        self._console.blank()

    def display_sections(self, sections: tuple[SectionHeader, ...]) -> None:
        self._console.section("Section Headers")
        if not sections:
            self._console.info("No section headers.")
            self._console.blank()
            return

        tbl = self._new_table()
        tbl.add_column("#", style="dim", width=4, justify="right")
        tbl.add_column("Name", style="bold", min_width=12)
        tbl.add_column("Type", min_width=10)
        tbl.add_column("Address", justify="right")
        tbl.add_column("Offset", justify="right")
        tbl.add_column("Size", justify="right")
        tbl.add_column("Flags")
        tbl.add_column("Link", justify="right")
        tbl.add_column("Info", justify="right")

        for sec in sections:
            tbl.add_row(
                str(sec.index),
                escape(sec.name) or "[dim]<unnamed>[/dim]",
                self._type_label(sec.type_name, sec.kind is SectionKind.UNKNOWN),
                _hex(sec.addr),
                _hex(sec.offset),
                f"{sec.size:,}",
                sec.flags_str,
                str(sec.link),
                str(sec.info),
            )

        self._console.rich.print(tbl)
        self._console.blank()

    def display_symbols(self, symbols: tuple[Symbol, ...]) -> None:
        self._console.section("Symbols")
        if not symbols:
            self._console.info("No symbols.")
            self._console.blank()
            return

        limit = self._config.max_symbols
        shown = symbols[:limit]

        tbl = self._new_table()
        tbl.add_column("Table", style="dim", justify="right", width=6)
        tbl.add_column("#", style="dim", justify="right", width=6)
        tbl.add_column("Value", justify="right")
        tbl.add_column("Size", justify="right")
        tbl.add_column("Type")
        tbl.add_column("Bind")
        tbl.add_column("Vis")
        tbl.add_column("Ndx", justify="right")
        tbl.add_column("Name", ratio=1, overflow="ellipsis", no_wrap=True)

        for sym in shown:
            colour = _BINDING_COLOURS.get(sym.binding, "white")
            tbl.add_row(
                str(sym.table_index),
                str(sym.index),
                _hex(sym.value),
                str(sym.size),
                sym.type.value + self._raw(sym.type is SymbolType.UNKNOWN, sym.type_code),
                f"[{colour}]{sym.binding.value}[/{colour}]",
                sym.visibility.value,
                self._section_ref_label(sym),
                escape(sym.name),
            )

        self._console.rich.print(tbl)
        if len(symbols) > limit:
            self._console.info(f"Showing {limit} of {len(symbols)} symbols.")
        self._console.blank()

    def display_dynamic(self, entries: tuple[DynamicEntry, ...]) -> None:
        if not entries:
            return
        self._console.section("Dynamic Section")

        tbl = self._new_table()
        tbl.add_column("Tag", min_width=16)
        tbl.add_column("Kind")
        tbl.add_column("Value", ratio=1)

        for entry in entries:
            if entry.string is not None:
                value = escape(entry.string)
            elif entry.value_kind in (DynamicValueKind.POINTER, DynamicValueKind.FLAGS):
                value = _hex(entry.value)
            else:
                value = str(entry.value)
            tbl.add_row(
                self._type_label(entry.tag_name, entry.tag is DynamicTag.UNKNOWN),
                entry.value_kind.value,
                value,
            )

        self._console.rich.print(tbl)
        self._console.blank()

    # ------------------------------------------------------------------ #
    #  Private helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _new_table() -> Table:
        return Table(
            border_style="bright_cyan",
            header_style="bold bright_magenta",
            show_lines=False,
            padding=(0, 1),
        )

    def _raw(self, unknown: bool, code: int) -> str:
        if unknown and self._config.show_unknown_raw:
            return f" ({code})"
        return ""

    def _type_label(self, name: str, unknown: bool) -> str:
        if unknown and not self._config.show_unknown_raw:
            return "unknown"
        return name

    @staticmethod
    def _section_ref_label(sym: Symbol) -> str:
        ref = sym.section_ref
        if ref is SectionRef.ORDINARY:
            return str(sym.section_index)
        if ref is SectionRef.RESERVED:
            return _hex(sym.section_index)
        return ref.value[:3].upper()
