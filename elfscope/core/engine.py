"""
ElfScope Decoding Engine
=========================

Entry point of the library.  :func:`parse` selects a decoder for the
buffer through the :class:`BinaryFormatDecoder` capability interface and
returns the immutable :class:`ParsedObject` it produces.

Only the ELF64 decoder is registered; any other container is rejected
with :class:`InvalidMagic` naming what the buffer looks like instead.

Usage::

    import elfscope

    obj = elfscope.parse(Path("/bin/true").read_bytes())
    obj.file_header().entry
"""

from __future__ import annotations

from typing import Optional, Protocol, Union, runtime_checkable

from shared.config import ElfScopeConfig, GlobalConfig, ParserConfig
from shared.logger import ScopeLogger

from elfscope.core.errors import ElfParseError, InvalidMagic
from elfscope.core.models import BinaryFormat
from elfscope.core.parsed_object import ParsedObject
from elfscope.parsers.elf64 import Elf64Decoder
from elfscope.parsers.magic import MagicIdentifier

Buffer = Union[bytes, bytearray, memoryview]


@runtime_checkable
class BinaryFormatDecoder(Protocol):
    """Capability interface implemented by each container decoder."""

    name: str
    format: BinaryFormat

    def matches(self, data: bytes) -> bool:
        """Whether *data* belongs to this decoder's format and class."""
        ...

    def decode(
        self,
        data: bytes,
        *,
        config: ParserConfig,
        logger: ScopeLogger,
    ) -> ParsedObject:
        ...


_DECODERS: tuple[BinaryFormatDecoder, ...] = (Elf64Decoder(),)
_MAGIC = MagicIdentifier()
_default_logger: Optional[ScopeLogger] = None
_configured_logger: Optional[tuple[tuple[object, ...], ScopeLogger]] = None


def _library_logger() -> ScopeLogger:
    global _default_logger
    if _default_logger is None:
        _default_logger = ScopeLogger(
            "decoder", log_level="WARNING", console_output=False
        )
    return _default_logger


def _configured(settings: GlobalConfig) -> ScopeLogger:
    """Logger built from the ``[global]`` section, reused while it is unchanged."""
    global _configured_logger
    key = (settings.log_level, settings.log_file, settings.log_json, settings.debug)
    if _configured_logger is not None and _configured_logger[0] == key:
        return _configured_logger[1]
    if _configured_logger is not None:
        for handler in _configured_logger[1].underlying.handlers:
            handler.close()
    log = ScopeLogger.from_config("engine", settings, console_output=False)
    _configured_logger = (key, log)
    return log


def detect_format(data: Buffer) -> BinaryFormat:
    """Return the container format of *data* from its magic bytes."""
    return _MAGIC.identify_format(bytes(data[:16]))


def decoder_for(data: bytes) -> BinaryFormatDecoder:
    """Return the first registered decoder accepting *data*.

    Raises:
        InvalidMagic: No decoder recognises the buffer.
    """
    for decoder in _DECODERS:
        if decoder.matches(data):
            return decoder
    detected = _MAGIC.identify(data[:16])
    raise InvalidMagic(
        f"not an ELF image (detected: {detected}); leading bytes {data[:4]!r}",
        offset=0,
    )


def parse(
    buffer: Buffer,
    *,
    config: Optional[ElfScopeConfig] = None,
    logger: Optional[ScopeLogger] = None,
) -> ParsedObject:
    """Decode *buffer* into an immutable :class:`ParsedObject`.

    The buffer is only read; the result holds no reference to it.

    Args:
        buffer: The complete object file image.
        config: Decoder settings; defaults when omitted.
        logger: Destination for stage-level diagnostics.  When omitted,
            a supplied *config* drives the logger through its ``[global]``
            section; otherwise the library logger emits nothing below
            WARNING. Neither has a console handler.

    Returns:
        The fully decoded object.

    Raises:
        ElfParseError: Any structural failure.  Decoding is fail-fast and
            never yields a partial object.
    """
    data = buffer if isinstance(buffer, bytes) else bytes(buffer)
    settings = (config or ElfScopeConfig()).parser
    if logger is not None:
        log = logger
    elif config is not None:
        log = _configured(config.global_settings)
    else:
        log = _library_logger()

    with log.timed(f"parse {len(data)} bytes"):
        try:
            decoder = decoder_for(data)
            return decoder.decode(data, config=settings, logger=log)
        except ElfParseError as exc:
            log.debug("Parse failed with %s: %s", exc.kind, exc.message)
            raise
