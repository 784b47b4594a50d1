"""Level assembly from a GRIDS directory."""

from hotzone.level.loader import (
    FileAccess,
    LevelData,
    LevelLoadError,
    LevelLoader,
    LocalFileAccess,
)

__all__ = [
    "FileAccess",
    "LevelData",
    "LevelLoadError",
    "LevelLoader",
    "LocalFileAccess",
]
