"""Decoder for .dph depth files.

A .dph file is exactly 256*256 little-endian 16-bit heights (128KB) with no
header or footer.
"""

import numpy as np

from hotzone.parser.slk import CELL_COUNT, GRID_SIZE

DPH_VALUE_SIZE = 2
DPH_FILE_SIZE = CELL_COUNT * DPH_VALUE_SIZE


def decode_fixed_heightmap(data: bytes) -> np.ndarray:
    """Decode a .dph heightmap.

    Short input is zero-padded: cells without both of their bytes are 0 and
    the result always holds 65536 values. Bytes past 128KB are ignored.

    Args:
        data: Raw .dph file contents.

    Returns:
        (256, 256) uint16 heightmap.

    Example:
        >>> heights = decode_fixed_heightmap(Path("depths/level1.dph").read_bytes())
        >>> print(heights.shape, heights.dtype)  # (256, 256) uint16
    """
    chunk = bytes(data[:DPH_FILE_SIZE])
    whole = len(chunk) // DPH_VALUE_SIZE

    heights = np.zeros(CELL_COUNT, dtype=np.uint16)
    if whole:
        heights[:whole] = np.frombuffer(chunk[: whole * DPH_VALUE_SIZE], dtype="<u2")
    return heights.reshape(GRID_SIZE, GRID_SIZE)
