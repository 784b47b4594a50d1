"""Decoder for composite .slk terrain files.

An .slk file has three parts laid end to end:

1. A text header. Among other things it holds the model table
   (``models\\name.sdf <id>`` lines) and a dimension line ``256 256 <N>``
   followed by a list of N texture names, one per line.
2. A fixed binary block of 256*256 records of 6 bytes. The first two bytes of
   each record are the cell's texture index. The block also overlays byte
   planes; plane 5 (row stride 257) holds the terrain heights.
3. A text footer listing slots, citadels and placed objects (see
   hotzone.parser.footer).

There is no magic number or offset table: the binary block starts right after
the texture list, so its position depends on N and has to be found by scanning
the header text first.

Example:
    >>> level = decode_composite(Path("level1.slk").read_bytes())
    >>> print(level.height.shape)  # (256, 256)
    >>> print(f"{len(level.objects)} objects, {len(level.citadels)} citadels")
"""

import re
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from hotzone.parser.diagnostics import Diagnostic, absence
from hotzone.parser.footer import LevelObject, decode_footer

# Grid layout constants
GRID_SIZE = 256
CELL_COUNT = GRID_SIZE * GRID_SIZE
RECORD_SIZE = 6
BINARY_BLOCK_SIZE = CELL_COUNT * RECORD_SIZE

# Heights live in byte plane 5 of the binary block, padded to 257 per row
HEIGHT_LAYER = 5
HEIGHT_LAYER_WIDTH = GRID_SIZE + 1

# Header texture lists can run to over a thousand entries (~22KB)
HEADER_SCAN_LIMIT = 50_000

DIMENSION_TOKEN = str(GRID_SIZE)

_MODEL_LINE = re.compile(r"^models[\\/](.+?)\.sdf\s+([0-9]+)$", re.IGNORECASE)
_COUNT_TOKEN = re.compile(r"[0-9]+")


@dataclass
class BinaryLocation:
    """Where the binary block of an .slk file starts.

    Attributes:
        offset: Byte offset of the binary block, or None when the header has
            no dimension line.
        texture_count: Number of texture names listed in the header.
        model_names: Model ID to model name table found in the header.
        diagnostics: Fallbacks taken while scanning the header.
    """

    offset: Optional[int]
    texture_count: int = 0
    model_names: dict[int, str] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)


@dataclass
class TerrainGrid:
    """Per-cell terrain data from the binary block.

    Attributes:
        texture_index: (256, 256) uint16 texture indices, row-major.
        height: (256, 256) uint16 heights from byte plane 5.
        diagnostics: Fallbacks taken while reading the block.
    """

    texture_index: np.ndarray
    height: np.ndarray
    diagnostics: list[Diagnostic] = field(default_factory=list)


@dataclass
class CompositeLevel:
    """Everything decoded from one .slk file.

    Attributes:
        texture_index: (256, 256) uint16 texture indices.
        height: (256, 256) uint16 heights.
        objects: Slots, citadel upgrades and placed objects.
        citadels: Citadel base records.
        model_names: Model ID to model name table from the header.
        binary_offset: Byte offset of the binary block, None if not found.
        texture_count: Number of texture names in the header.
        diagnostics: Every fallback taken during the decode.
    """

    texture_index: np.ndarray
    height: np.ndarray
    objects: list[LevelObject] = field(default_factory=list)
    citadels: list[LevelObject] = field(default_factory=list)
    model_names: dict[int, str] = field(default_factory=dict)
    binary_offset: Optional[int] = None
    texture_count: int = 0
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True when any part of the file had to be substituted or skipped."""
        return bool(self.diagnostics)

    @property
    def footer_offset(self) -> Optional[int]:
        """Byte offset where the object footer starts."""
        if self.binary_offset is None:
            return None
        return self.binary_offset + BINARY_BLOCK_SIZE


def empty_grid() -> np.ndarray:
    """Return a zero-filled (256, 256) uint16 grid."""
    return np.zeros((GRID_SIZE, GRID_SIZE), dtype=np.uint16)


def parse_model_names(lines: list[str]) -> dict[int, str]:
    """Collect ``models/<name>.sdf <id>`` entries from header lines.

    Both slash conventions are accepted and matching ignores case. Later
    entries for the same ID win.
    """
    model_names: dict[int, str] = {}
    for line in lines:
        match = _MODEL_LINE.match(line.strip())
        if match:
            model_names[int(match.group(2))] = match.group(1)
    return model_names


def locate_binary_block(data: bytes) -> BinaryLocation:
    """Find the byte offset of the binary block in an .slk buffer.

    The header is read one byte per character so that text positions are
    byte positions. The first line made of exactly ``256 256 <N>`` gives the
    texture count; the block starts after that line and the N texture lines
    that follow it.

    Args:
        data: Full .slk file contents.

    Returns:
        BinaryLocation. ``offset`` is None when there is no dimension line,
        in which case the file has no usable binary section.
    """
    header = bytes(data[:HEADER_SCAN_LIMIT]).decode("latin-1")
    lines = header.split("\n")
    model_names = parse_model_names(lines)

    position = 0
    for number, line in enumerate(lines, start=1):
        line_end = position + len(line)
        tokens = line.split()
        if (
            len(tokens) == 3
            and tokens[0] == DIMENSION_TOKEN
            and tokens[1] == DIMENSION_TOKEN
            and _COUNT_TOKEN.fullmatch(tokens[2])
        ):
            return _skip_texture_list(header, line_end, int(tokens[2]), number, model_names)
        position = line_end + 1

    return BinaryLocation(
        offset=None,
        model_names=model_names,
        diagnostics=[absence(f"no '{GRID_SIZE} {GRID_SIZE} <count>' dimension line in header")],
    )


def _skip_texture_list(
    header: str, line_end: int, texture_count: int, line_number: int, model_names: dict[int, str]
) -> BinaryLocation:
    if line_end >= len(header):
        return BinaryLocation(
            offset=None,
            texture_count=texture_count,
            model_names=model_names,
            diagnostics=[absence("dimension line is not terminated", line_number)],
        )

    diagnostics: list[Diagnostic] = []
    offset = line_end + 1
    for skipped in range(texture_count):
        newline = header.find("\n", offset)
        if newline == -1:
            diagnostics.append(
                absence(
                    f"texture list ended after {skipped} of {texture_count} lines",
                    line_number,
                )
            )
            break
        offset = newline + 1

    return BinaryLocation(
        offset=offset,
        texture_count=texture_count,
        model_names=model_names,
        diagnostics=diagnostics,
    )


def _read_padded(data: bytes, start: int, size: int) -> tuple[np.ndarray, int]:
    """Read ``size`` bytes from ``start``, zero-filling past end of data.

    Returns:
        Tuple of (uint8 array of length ``size``, number of real bytes read).
    """
    chunk = bytes(data[start : start + size])
    buffer = np.zeros(size, dtype=np.uint8)
    if chunk:
        buffer[: len(chunk)] = np.frombuffer(chunk, dtype=np.uint8)
    return buffer, len(chunk)


def decode_terrain(data: bytes, offset: int) -> TerrainGrid:
    """Extract texture indices and heights from the binary block.

    Args:
        data: Full .slk file contents.
        offset: Byte offset of the binary block from locate_binary_block.

    Returns:
        TerrainGrid with both grids always shaped (256, 256). Cells whose
        source bytes lie past the end of the data are 0.
    """
    diagnostics: list[Diagnostic] = []

    block, available = _read_padded(data, offset, BINARY_BLOCK_SIZE)
    records = block.view("<u2").reshape(CELL_COUNT, RECORD_SIZE // 2)
    texture_index = records[:, 0].astype(np.uint16)

    # A cell only counts when both bytes of its index are present
    complete = 0 if available < 2 else min(CELL_COUNT, (available - 2) // RECORD_SIZE + 1)
    texture_index[complete:] = 0
    if available < BINARY_BLOCK_SIZE:
        diagnostics.append(
            absence(f"binary block truncated: {available} of {BINARY_BLOCK_SIZE} bytes")
        )

    layer_offset = offset + HEIGHT_LAYER * CELL_COUNT
    layer_size = GRID_SIZE * HEIGHT_LAYER_WIDTH
    layer, layer_available = _read_padded(data, layer_offset, layer_size)
    height = layer.reshape(GRID_SIZE, HEIGHT_LAYER_WIDTH)[:, :GRID_SIZE].astype(np.uint16)
    if layer_available < layer_size:
        diagnostics.append(
            absence(f"height layer truncated: {layer_available} of {layer_size} bytes")
        )

    return TerrainGrid(
        texture_index=texture_index.reshape(GRID_SIZE, GRID_SIZE),
        height=height,
        diagnostics=diagnostics,
    )


def decode_composite(data: bytes) -> CompositeLevel:
    """Decode a complete .slk file.

    Runs the header scan, then the binary block, then the footer. Never
    raises on malformed input: when the header has no dimension line the
    result has zeroed grids and no objects, with the reason recorded in
    ``diagnostics``.

    Args:
        data: Full .slk file contents.

    Returns:
        CompositeLevel with grids, objects and diagnostics.
    """
    location = locate_binary_block(data)
    if location.offset is None:
        return CompositeLevel(
            texture_index=empty_grid(),
            height=empty_grid(),
            model_names=location.model_names,
            texture_count=location.texture_count,
            diagnostics=list(location.diagnostics),
        )

    terrain = decode_terrain(data, location.offset)
    footer = decode_footer(data, location.offset + BINARY_BLOCK_SIZE, location.model_names)

    return CompositeLevel(
        texture_index=terrain.texture_index,
        height=terrain.height,
        objects=footer.objects,
        citadels=footer.citadels,
        model_names=location.model_names,
        binary_offset=location.offset,
        texture_count=location.texture_count,
        diagnostics=location.diagnostics + terrain.diagnostics + footer.diagnostics,
    )
