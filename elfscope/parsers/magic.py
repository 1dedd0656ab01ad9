"""
Container Format Identification
================================

Recognises executable container formats by their leading magic bytes so
that a non-ELF input can be rejected with an error naming what it
actually is.

Each signature is compared against the buffer at its offset; the first
match in table order wins.

References:
    - Gary Kessler's File Signatures Table.
      https://www.garykessler.net/library/file_sigs.html
    - ``file(1)`` command magic database. https://github.com/file/file
"""

from __future__ import annotations

from dataclasses import dataclass

from elfscope.core.models import BinaryFormat


@dataclass(frozen=True, slots=True)
class _Signature:
    """A single container signature.

    Attributes:
        magic: Byte pattern to match.
        offset: Byte offset within the buffer where *magic* is expected.
        description: Human-readable container description.
        fmt: Normalised format the signature belongs to.
    """
    magic: bytes
    offset: int
    description: str
    fmt: BinaryFormat


_SIGNATURES: tuple[_Signature, ...] = (
    _Signature(b"\x7fELF", 0, "ELF object", BinaryFormat.ELF),
    _Signature(b"MZ", 0, "PE/MS-DOS executable", BinaryFormat.PE),
    _Signature(b"dex\n", 0, "Android DEX", BinaryFormat.DEX),
    _Signature(b"\xfe\xed\xfa\xce", 0, "Mach-O 32-bit", BinaryFormat.MACHO),
    _Signature(b"\xfe\xed\xfa\xcf", 0, "Mach-O 64-bit", BinaryFormat.MACHO),
    _Signature(b"\xce\xfa\xed\xfe", 0, "Mach-O 32-bit (reversed)", BinaryFormat.MACHO),
    _Signature(b"\xcf\xfa\xed\xfe", 0, "Mach-O 64-bit (reversed)", BinaryFormat.MACHO),
    _Signature(b"\xca\xfe\xba\xbe", 0, "Mach-O fat binary", BinaryFormat.MACHO),
    _Signature(b"\xbe\xba\xfe\xca", 0, "Mach-O fat binary (reversed)", BinaryFormat.MACHO),
    _Signature(b"\x00asm", 0, "WebAssembly module", BinaryFormat.WASM),
)


class MagicIdentifier:
    """Identify executable containers by magic signature.

    Usage::

        identifier = MagicIdentifier()
        identifier.identify(raw_bytes)          # "ELF object"
        identifier.identify_format(raw_bytes)   # BinaryFormat.ELF
    """

    def __init__(self) -> None:
        self._signatures: tuple[_Signature, ...] = _SIGNATURES

    def identify(self, data: bytes) -> str:
        """Return a description of the container, ``"Empty input"`` or
        ``"Unknown binary"``."""
        if not data:
            return "Empty input"
        signature = self._match(data)
        return signature.description if signature else "Unknown binary"

    def identify_format(self, data: bytes) -> BinaryFormat:
        """Return the normalised container format of *data*."""
        signature = self._match(data)
        return signature.fmt if signature else BinaryFormat.UNKNOWN

    def _match(self, data: bytes) -> _Signature | None:
        data_len = len(data)
        for sig in self._signatures:
            end = sig.offset + len(sig.magic)
            if end <= data_len and data[sig.offset:end] == sig.magic:
                return sig
        return None
