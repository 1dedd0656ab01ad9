"""
ElfScope Configuration Management
==================================

Centralized configuration for the ElfScope decoder and its presentation
helpers using Python dataclasses and TOML-based persistence.

Configuration is kept separate from code (Wiggins, 2011): every knob the
decoder honours lives in one of the sections below and can be overridden
from a ``config.toml`` file.

References:
    - Wiggins, A. (2011). The Twelve-Factor App. https://12factor.net/
    - TOML v1.0.0 Specification. https://toml.io/en/v1.0.0
"""

from __future__ import annotations

import codecs
import sys
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[no-redef]


# ---------------------------------------------------------------------------
# Default configuration file path relative to the project root
# ---------------------------------------------------------------------------
_DEFAULT_CONFIG_PATH: Path = Path(__file__).resolve().parent.parent / "config.toml"


# ========================== Section Configs ================================


@dataclass(frozen=False, slots=True)
class ParserConfig:
    """Configuration for the ELF64 structural decoder.

    Attributes:
        string_encoding: Codec used to turn string-table bytes into text.
        string_errors: Codec error handler (``strict``, ``replace``,
            ``surrogateescape``, ...).
        strict_entry_sizes: Reject a zero header entry size even when the
            corresponding table is empty.
        index_sections_without_alloc: Include non-``SHF_ALLOC`` sections
            with a non-zero address in the address-range index.
    """

    string_encoding: str = "utf-8"
    string_errors: str = "replace"
    strict_entry_sizes: bool = False
    index_sections_without_alloc: bool = False

    def __post_init__(self) -> None:
        # Fail early on a typo rather than on the first decoded name.
        codecs.lookup(self.string_encoding)
        codecs.lookup_error(self.string_errors)


@dataclass(frozen=False, slots=True)
class OutputConfig:
    """Configuration for Rich console rendering of parsed objects."""

    max_symbols: int = 200
    show_unknown_raw: bool = True


# =========================== Global Settings ===============================


@dataclass(frozen=False, slots=True)
class GlobalConfig:
    """Global settings: logging verbosity and log destinations."""

    log_level: str = "WARNING"
    log_file: str | None = None
    log_json: bool = False
    debug: bool = False
    version: str = "1.0.0"


# =========================== Master Config =================================


@dataclass(frozen=False, slots=True)
class ElfScopeConfig:
    """Master configuration aggregating all sections.

    Usage:
        >>> config = ElfScopeConfig.load()                  # from default path
        >>> config = ElfScopeConfig.load("custom.toml")     # from custom path
        >>> config.parser.string_errors
        'replace'
    """

    global_settings: GlobalConfig = field(default_factory=GlobalConfig)
    parser: ParserConfig = field(default_factory=ParserConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # ------------------------------------------------------------------ #
    #  TOML Loading
    # ------------------------------------------------------------------ #

    @classmethod
    def load(cls, path: str | Path | None = None) -> ElfScopeConfig:
        """Load configuration from a TOML file.

        If *path* is ``None`` the loader looks for ``config.toml`` in the
        project root.  Missing keys fall back to dataclass defaults.

        Args:
            path: Filesystem path to a TOML configuration file.

        Returns:
            A fully-populated :class:`ElfScopeConfig` instance.

        Raises:
            FileNotFoundError: If the specified path does not exist
                *and* was explicitly provided by the caller.
        """
        config_path = Path(path) if path is not None else _DEFAULT_CONFIG_PATH

        if not config_path.exists():
            if path is not None:
                raise FileNotFoundError(
                    f"Configuration file not found: {config_path}"
                )
            return cls()

        with open(config_path, "rb") as fh:
            raw: dict[str, Any] = tomllib.load(fh)

        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ElfScopeConfig:
        """Build a configuration from an already-parsed TOML mapping."""
        return cls(
            global_settings=cls._build_section(GlobalConfig, raw.get("global", {})),
            parser=cls._build_section(ParserConfig, raw.get("parser", {})),
            output=cls._build_section(OutputConfig, raw.get("output", {})),
        )

    # ------------------------------------------------------------------ #
    #  Serialisation helpers
    # ------------------------------------------------------------------ #

    def to_dict(self) -> dict[str, Any]:
        """Serialise the entire configuration tree to a plain dictionary."""
        return asdict(self)

    # ------------------------------------------------------------------ #
    #  Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _build_section(cls: type, data: dict[str, Any]) -> Any:
        """Instantiate a dataclass *cls* using only the keys it declares.

        Unknown keys in the TOML source are silently ignored so that
        forward-compatible config files do not break older code.
        """
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}  # type: ignore[attr-defined]
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        return cls(**filtered)


# ========================= Module-level convenience ========================

def get_config(path: str | Path | None = None) -> ElfScopeConfig:
    """Module-level convenience wrapper around :meth:`ElfScopeConfig.load`.

    Caches the result so that repeated imports share one instance.
    """
    if not hasattr(get_config, "_cached") or path is not None:
        get_config._cached = ElfScopeConfig.load(path)  # type: ignore[attr-defined]
    return get_config._cached  # type: ignore[attr-defined]
