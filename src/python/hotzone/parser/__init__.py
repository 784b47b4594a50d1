"""Hotzone level file decoders."""

from hotzone.parser.cam import NarrativeRecord, decode_narrative
from hotzone.parser.diagnostics import Diagnostic, DiagnosticKind
from hotzone.parser.dph import decode_fixed_heightmap
from hotzone.parser.footer import LevelObject, ObjectKind
from hotzone.parser.lfl import config_value, decode_config
from hotzone.parser.slk import CompositeLevel, decode_composite, locate_binary_block

__all__ = [
    "CompositeLevel",
    "Diagnostic",
    "DiagnosticKind",
    "LevelObject",
    "NarrativeRecord",
    "ObjectKind",
    "config_value",
    "decode_composite",
    "decode_config",
    "decode_fixed_heightmap",
    "decode_narrative",
    "locate_binary_block",
]
