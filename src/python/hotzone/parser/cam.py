"""Decoder for .cam briefing files.

A .cam file holds the mission briefing shown before a level: an objective,
spy information, a description and an optional campaign ranking. Sections are
delimited by marker lines such as ``OBJECTIVE_BEGIN`` / ``OBJECTIVE_END``.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

# Stray replacement character left by mis-decoded smart quotes
REPLACEMENT_CHAR = "\ufffd"

# Noise lines found at the top of some SPYINFO sections
SPYINFO_NOISE_PREFIX = "PI4"

_NUMERIC_LINE = re.compile(r"[0-9]+")


class Section(Enum):
    NONE = "none"
    RANKING = "ranking"
    OBJECTIVE = "objective"
    SPYINFO = "spyinfo"
    DESCRIPTION = "description"


MARKERS: dict[str, Section] = {
    "OBJECTIVE_BEGIN": Section.OBJECTIVE,
    "OBJECTIVE_END": Section.NONE,
    "SPYINFO_BEGIN": Section.SPYINFO,
    "SPYINFO_END": Section.NONE,
    "DESCRIPTION_BEGIN": Section.DESCRIPTION,
    "DESCRIPTION_END": Section.NONE,
    "CAMPAIGN_RANKING": Section.RANKING,
}


@dataclass
class NarrativeRecord:
    """Decoded briefing text.

    Attributes:
        ranking: Campaign ranking token, if the file has one.
        objective: Objective text, one trailing newline per source line.
        spy_info: Spy information text.
        description: Level description text.
    """

    ranking: Optional[str] = None
    objective: str = ""
    spy_info: str = ""
    description: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "ranking": self.ranking,
            "objective": self.objective,
            "spy_info": self.spy_info,
            "description": self.description,
        }


def decode_narrative(text: str) -> NarrativeRecord:
    """Decode a .cam briefing into its sections.

    Marker lines are never part of the output. Inside a multi-line section a
    digits-only line is a legacy line-count header and is dropped while the
    section is still empty. SPYINFO lines starting with ``PI4`` are dropped.

    Args:
        text: Raw .cam file contents.

    Returns:
        NarrativeRecord with the collected sections.
    """
    text = text.replace(REPLACEMENT_CHAR, "'").replace("\r", "")

    sections: dict[Section, list[str]] = {
        Section.OBJECTIVE: [],
        Section.SPYINFO: [],
        Section.DESCRIPTION: [],
    }
    ranking: Optional[str] = None
    section = Section.NONE

    for line in text.split("\n"):
        stripped = line.strip()

        if stripped in MARKERS:
            section = MARKERS[stripped]
            continue

        if section is Section.NONE:
            continue

        if section is Section.RANKING:
            # Ranking is always the single next non-blank line
            if stripped:
                ranking = stripped
                section = Section.NONE
            continue

        collected = sections[section]
        if not collected and _NUMERIC_LINE.fullmatch(stripped):
            continue
        if section is Section.SPYINFO and stripped.startswith(SPYINFO_NOISE_PREFIX):
            continue
        collected.append(line + "\n")

    return NarrativeRecord(
        ranking=ranking,
        objective="".join(sections[Section.OBJECTIVE]),
        spy_info="".join(sections[Section.SPYINFO]),
        description="".join(sections[Section.DESCRIPTION]),
    )
