"""
ElfScope Shared Module
======================

Configuration, structured logging and console presentation shared by the
ElfScope decoder and its rendering helpers.
"""

from shared.config import ElfScopeConfig, get_config

__all__ = ["ElfScopeConfig", "get_config"]
