"""Decoder for .lfl level configuration files.

An .lfl file is a flat list of ``KEY: value`` lines naming the files that make
up a level (SLK_FILE, SCRIPT_FILE, MAP_TEXT, ...) and its environment settings.
"""

from typing import Optional

# Keys that link an .lfl to the other files of the level
SLK_FILE_KEY = "SLK_FILE"
SCRIPT_FILE_KEY = "SCRIPT_FILE"
MAP_TEXT_KEY = "MAP_TEXT"


def decode_config(text: str) -> dict[str, str]:
    """Decode ``key: value`` lines into a flat mapping.

    Lines that are blank, start with ``#`` or contain no ``:`` are skipped.
    Each remaining line is split on its first ``:``; any further colons stay
    in the value. Later duplicates overwrite earlier ones.

    Args:
        text: Raw .lfl file contents.

    Returns:
        Mapping of trimmed keys to trimmed values.

    Example:
        >>> decode_config("SLK_FILE: level1.slk\\n# comment\\nFOG_COLOR: 0:0:0")
        {'SLK_FILE': 'level1.slk', 'FOG_COLOR': '0:0:0'}
    """
    config: dict[str, str] = {}
    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or ":" not in line:
            continue
        key, value = line.split(":", 1)
        config[key.strip()] = value.strip()
    return config


def config_value(
    config: dict[str, str], key: str, default: Optional[str] = None
) -> Optional[str]:
    """Look up a config key ignoring case.

    Args:
        config: Mapping returned by decode_config.
        key: Key to look up, in any case.
        default: Value returned when the key is absent.

    Returns:
        The stored value, or ``default``. When several keys differ only in
        case, the last one in the file wins.
    """
    wanted = key.upper()
    found = default
    for stored_key, value in config.items():
        if stored_key.upper() == wanted:
            found = value
    return found
