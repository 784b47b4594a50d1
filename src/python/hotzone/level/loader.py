"""Assemble a complete level from its .lfl file and the files it links to.

A level lives in a GRIDS directory. Its .lfl config names the composite .slk
terrain file (SLK_FILE), the .cam briefing (MAP_TEXT) and the .hzs script
(SCRIPT_FILE). A standalone heightmap sits under ``depths/<name>.dph`` and the minimap image
under ``gohs/<name>.tga``.

Only the .lfl itself is required. Every other file is optional: a missing or
unreadable file is logged, recorded in LevelData.missing and the rest of the
level is still loaded.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Optional, Protocol, Union

import numpy as np

from hotzone.parser.cam import NarrativeRecord, decode_narrative
from hotzone.parser.dph import decode_fixed_heightmap
from hotzone.parser.lfl import (
    MAP_TEXT_KEY,
    SCRIPT_FILE_KEY,
    SLK_FILE_KEY,
    config_value,
    decode_config,
)
from hotzone.parser.slk import CompositeLevel, decode_composite

logger = logging.getLogger(__name__)

DEPTHS_DIR = "depths"
SCRIPT_SUFFIX = ".hzs"
DPH_SUFFIX = ".dph"
GOHS_DIR = "gohs"
TGA_SUFFIX = ".tga"

# File roles used as keys of LevelData.missing
ROLE_COMPOSITE = "slk"
ROLE_NARRATIVE = "cam"
ROLE_SCRIPT = "hzs"
ROLE_DEPTH = "dph"
ROLE_MINIMAP = "tga"


class LevelLoadError(Exception):
    """Raised when a level's .lfl config cannot be read.

    Attributes:
        path: The .lfl path that failed.
    """

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class FileAccess(Protocol):
    """Read access to the files of a GRIDS directory.

    Both methods raise FileNotFoundError or another OSError when the file is
    absent or unreadable.
    """

    def read_text(self, path: str) -> str: ...

    def read_bytes(self, path: str) -> bytes: ...


class LocalFileAccess:
    """FileAccess over a directory on the local filesystem.

    Args:
        root: Directory that relative paths are resolved against.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        # Level files use backslashes when they name subdirectories
        resolved = self.root.joinpath(*PurePosixPath(path.replace("\\", "/")).parts).resolve()
        if not resolved.is_relative_to(self.root.resolve()):
            raise FileNotFoundError(f"Path escapes level directory: {path}")
        return resolved

    def read_text(self, path: str) -> str:
        return self._resolve(path).read_bytes().decode("utf-8", errors="replace")

    def read_bytes(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()


@dataclass
class LevelData:
    """A level assembled from all of its files.

    Attributes:
        name: Level base name (the .lfl file name without suffix).
        config: Decoded .lfl config.
        narrative: Decoded briefing, if the level has one.
        composite: Decoded .slk terrain and objects, if available.
        depth_heightmap: Heights from the standalone .dph file, if found.
        script: Raw .hzs script text, if found.
        minimap: Raw bytes of the .tga minimap image, if found.
        files: Path used for each file role that the level names.
        missing: File role to error message for every file that failed.
    """

    name: str
    config: dict[str, str]
    narrative: Optional[NarrativeRecord] = None
    composite: Optional[CompositeLevel] = None
    depth_heightmap: Optional[np.ndarray] = None
    script: Optional[str] = None
    minimap: Optional[bytes] = None
    files: dict[str, str] = field(default_factory=dict)
    missing: dict[str, str] = field(default_factory=dict)

    @property
    def heightmap(self) -> Optional[np.ndarray]:
        """Terrain heights, preferring the .slk height layer over the .dph file."""
        if self.composite is not None and self.composite.binary_offset is not None:
            return self.composite.height
        return self.depth_heightmap

    @property
    def texture_index(self) -> Optional[np.ndarray]:
        if self.composite is None:
            return None
        return self.composite.texture_index


def level_base_name(lfl_name: str) -> str:
    """Strip directories and the .lfl suffix from a level file name."""
    name = PurePosixPath(lfl_name.replace("\\", "/")).name
    if name.lower().endswith(".lfl"):
        return name[: -len(".lfl")]
    return name


class LevelLoader:
    """Loads levels through a FileAccess capability.

    Example:
        >>> loader = LevelLoader(LocalFileAccess("/games/hotzone/GRIDS"))
        >>> level = loader.load("level1.lfl")
        >>> print(level.config.get("SLK_FILE"), len(level.composite.objects))
    """

    def __init__(self, access: FileAccess):
        self.access = access

    def load(self, lfl_name: str) -> LevelData:
        """Load a level and every file it links to.

        Args:
            lfl_name: Path of the .lfl file relative to the GRIDS directory.

        Returns:
            LevelData. Linked files that could not be read are listed in
            ``missing``.

        Raises:
            LevelLoadError: If the .lfl file itself cannot be read.
        """
        try:
            config = decode_config(self.access.read_text(lfl_name))
        except OSError as e:
            raise LevelLoadError(f"Cannot read level config {lfl_name}: {e}", lfl_name) from e

        name = level_base_name(lfl_name)
        level = LevelData(name=name, config=config)

        slk_name = config_value(config, SLK_FILE_KEY)
        cam_name = config_value(config, MAP_TEXT_KEY)
        script_name = config_value(config, SCRIPT_FILE_KEY) or f"{name}{SCRIPT_SUFFIX}"

        if cam_name:
            level.files[ROLE_NARRATIVE] = cam_name
            text = self._read(level, ROLE_NARRATIVE, cam_name, binary=False)
            if text is not None:
                level.narrative = decode_narrative(text)

        if slk_name:
            level.files[ROLE_COMPOSITE] = slk_name
            data = self._read(level, ROLE_COMPOSITE, slk_name, binary=True)
            if data is not None:
                level.composite = decode_composite(data)
                self._log_composite(slk_name, level.composite)

        level.files[ROLE_SCRIPT] = script_name
        level.script = self._read(level, ROLE_SCRIPT, script_name, binary=False)

        self._load_depth(level)
        self._load_minimap(level)
        return level

    def _read(
        self, level: LevelData, role: str, path: str, binary: bool
    ) -> Optional[Union[str, bytes]]:
        try:
            if binary:
                return self.access.read_bytes(path)
            return self.access.read_text(path)
        except OSError as e:
            logger.warning(f"Failed to read {role} file {path}: {e}")
            level.missing[role] = str(e)
            return None

    def _read_named(
        self, level: LevelData, role: str, directory: str, suffix: str
    ) -> Optional[bytes]:
        # Files named after the level may use its name as given or upper-cased
        candidates = [level.name, level.name.upper()]
        last_error: Optional[OSError] = None
        for base in dict.fromkeys(candidates):
            path = f"{directory}/{base}{suffix}"
            try:
                data = self.access.read_bytes(path)
            except OSError as e:
                logger.debug(f"No {role} file at {path}: {e}")
                last_error = e
                continue
            level.files[role] = path
            return data

        logger.warning(f"Failed to read {role} file for {level.name}: {last_error}")
        level.missing[role] = str(last_error)
        return None

    def _load_depth(self, level: LevelData) -> None:
        data = self._read_named(level, ROLE_DEPTH, DEPTHS_DIR, DPH_SUFFIX)
        if data is not None:
            level.depth_heightmap = decode_fixed_heightmap(data)

    def _load_minimap(self, level: LevelData) -> None:
        level.minimap = self._read_named(level, ROLE_MINIMAP, GOHS_DIR, TGA_SUFFIX)

    @staticmethod
    def _log_composite(path: str, composite: CompositeLevel) -> None:
        logger.debug(
            f"{path}: binary offset {composite.binary_offset}, "
            f"{composite.texture_count} textures, {len(composite.model_names)} model names"
        )
        if composite.binary_offset is not None:
            logger.debug(
                f"{path}: heights range {int(composite.height.min())}-{int(composite.height.max())}"
            )
        for diagnostic in composite.diagnostics:
            logger.info(f"{path}: {diagnostic.kind.value}: {diagnostic.message}")
