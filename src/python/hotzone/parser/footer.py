"""Decoder for the object footer of .slk files.

The footer is the text that follows the fixed binary block. It lists spawn
slots, citadels (a base plus its upgrade placements) and placed objects::

    slots 2
    10 20 0
    30 40 90
    citadel 1
    base 5 5 0
    upgrades 1
    1 1 0 9
    objects 1
    33 8 125.99 80.5 12 90

The grammar is line oriented and driven by a mode. Each mode is handled by a
pure function of (state, line) returning the next state and the records the
line produced, so the grammar can be exercised one transition at a time
through advance().
"""

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Optional

from hotzone.parser.diagnostics import Diagnostic, absence, malformed

# Leading numeric prefixes; trailing junk after the number is tolerated
_FLOAT_PREFIX = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_INT_PREFIX = re.compile(r"[+-]?[0-9]+")


class ObjectKind(Enum):
    """Kind of a footer record."""

    SLOT = "SLOT"
    CITADEL_BASE = "CITADEL_BASE"
    CITADEL_UPGRADE = "CITADEL_UPGRADE"
    PLACED = "PLACED"


@dataclass(frozen=True)
class LevelObject:
    """A positioned record from the footer.

    Attributes:
        kind: What the record describes.
        x: Planar grid coordinate (nominally 0-255).
        y: Elevation. Only set for placed objects; other kinds are 0 and are
            expected to be sampled from the heightmap by the caller.
        z: Planar grid coordinate (nominally 0-255).
        rotation: Rotation in the file's native unit, 0 when absent.
        model_id: Object type ID for placed objects.
        model_name: Model name resolved from the header's model table.
    """

    kind: ObjectKind
    x: float
    y: float
    z: float
    rotation: float = 0.0
    model_id: Optional[int] = None
    model_name: Optional[str] = None

    @property
    def type_label(self) -> str:
        """Short display tag, e.g. ``SLOT`` or ``OBJ_33``."""
        if self.kind is ObjectKind.PLACED:
            return f"OBJ_{self.model_id}"
        return self.kind.value

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "type": self.type_label,
            "x": self.x,
            "y": self.y,
            "z": self.z,
            "rotation": self.rotation,
            "model_name": self.model_name,
        }


class FooterMode(Enum):
    NONE = "none"
    SLOTS = "slots"
    CITADEL_BLOCK = "citadel_block"
    CITADEL_UPGRADES = "citadel_upgrades"
    OBJECTS = "objects"


@dataclass(frozen=True)
class PendingCitadel:
    """A citadel whose base and upgrades are still being collected."""

    base: Optional[LevelObject] = None
    upgrades: tuple[LevelObject, ...] = ()


@dataclass(frozen=True)
class FooterState:
    """Parser state between two footer lines.

    Attributes:
        mode: Current grammar mode.
        remaining: Records still expected in a counted section.
        citadel: Citadel being collected, in the citadel modes.
    """

    mode: FooterMode = FooterMode.NONE
    remaining: int = 0
    citadel: Optional[PendingCitadel] = None


@dataclass(frozen=True)
class Step:
    """Result of feeding one line to the footer grammar."""

    state: FooterState
    objects: tuple[LevelObject, ...] = ()
    citadels: tuple[LevelObject, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()


@dataclass
class FooterObjects:
    """Records decoded from a footer.

    Attributes:
        objects: Slots, citadel upgrades and placed objects, in file order
            (upgrades are emitted when their citadel is flushed).
        citadels: Citadel base records.
        diagnostics: Fallbacks taken while decoding.
    """

    objects: list[LevelObject] = field(default_factory=list)
    citadels: list[LevelObject] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)


def parse_float(token: str) -> Optional[float]:
    """Parse the leading number of a token, or None if there is none."""
    match = _FLOAT_PREFIX.match(token)
    return float(match.group()) if match else None


def parse_int(token: str) -> Optional[int]:
    """Parse the leading integer of a token, or None if there is none."""
    match = _INT_PREFIX.match(token)
    return int(match.group()) if match else None


def _rotation(tokens: list[str], index: int) -> float:
    if index >= len(tokens):
        return 0.0
    return parse_float(tokens[index]) or 0.0


def _flush(citadel: Optional[PendingCitadel]) -> tuple[tuple, tuple]:
    """Split a finished citadel into (objects, citadels) output."""
    if citadel is None or citadel.base is None:
        return (), ()
    return citadel.upgrades, (citadel.base,)


def _enter_counted(
    mode: FooterMode, tokens: list[str], line: Optional[int], fallback: FooterState
) -> Step:
    count = parse_int(tokens[1]) if len(tokens) > 1 else None
    if count is None:
        return Step(fallback, diagnostics=(malformed(f"unreadable {tokens[0]} count", line),))
    if count <= 0:
        return Step(fallback)
    return Step(FooterState(mode, count))


def _advance_none(
    state: FooterState, tokens: list[str], model_names: dict[int, str], line: Optional[int]
) -> Step:
    keyword = tokens[0]
    if keyword == "slots":
        return _enter_counted(FooterMode.SLOTS, tokens, line, state)
    if keyword == "objects":
        return _enter_counted(FooterMode.OBJECTS, tokens, line, state)
    if keyword == "citadel":
        return Step(FooterState(FooterMode.CITADEL_BLOCK, 0, PendingCitadel()))
    return Step(state)


def _advance_slots(
    state: FooterState, tokens: list[str], model_names: dict[int, str], line: Optional[int]
) -> Step:
    if len(tokens) < 2:
        return Step(state)

    x = parse_float(tokens[0])
    z = parse_float(tokens[1])
    if x is None or z is None:
        return Step(state, diagnostics=(malformed("unreadable slot position", line),))

    slot = LevelObject(ObjectKind.SLOT, x, 0.0, z, _rotation(tokens, 2))
    remaining = state.remaining - 1
    if remaining <= 0:
        return Step(FooterState(), objects=(slot,))
    return Step(replace(state, remaining=remaining), objects=(slot,))


def _advance_citadel_block(
    state: FooterState, tokens: list[str], model_names: dict[int, str], line: Optional[int]
) -> Step:
    keyword = tokens[0]
    pending = state.citadel or PendingCitadel()

    if keyword == "base":
        x = parse_float(tokens[1]) if len(tokens) > 1 else None
        z = parse_float(tokens[2]) if len(tokens) > 2 else None
        if x is None or z is None:
            return Step(state, diagnostics=(malformed("unreadable citadel base position", line),))
        base = LevelObject(ObjectKind.CITADEL_BASE, x, 0.0, z, _rotation(tokens, 3))
        return Step(replace(state, citadel=replace(pending, base=base)))

    if keyword == "upgrades":
        step = _enter_counted(FooterMode.CITADEL_UPGRADES, tokens, line, state)
        if step.state.mode is FooterMode.CITADEL_UPGRADES:
            return Step(replace(step.state, citadel=pending))
        return step

    if keyword == "citadel":
        objects, citadels = _flush(pending)
        return Step(
            FooterState(FooterMode.CITADEL_BLOCK, 0, PendingCitadel()),
            objects=objects,
            citadels=citadels,
        )

    if keyword == "objects":
        objects, citadels = _flush(pending)
        step = _enter_counted(FooterMode.OBJECTS, tokens, line, FooterState())
        return Step(
            step.state, objects=objects, citadels=citadels, diagnostics=step.diagnostics
        )

    return Step(state)


def _advance_citadel_upgrades(
    state: FooterState, tokens: list[str], model_names: dict[int, str], line: Optional[int]
) -> Step:
    if tokens[0] in ("citadel", "objects"):
        # A new block started before the declared upgrade count was reached
        note = absence(
            f"citadel ended with {state.remaining} upgrade(s) outstanding", line
        )
        step = _advance_citadel_block(
            replace(state, mode=FooterMode.CITADEL_BLOCK), tokens, model_names, line
        )
        return replace(step, diagnostics=(note,) + step.diagnostics)

    if len(tokens) < 3:
        return Step(state)

    x = parse_float(tokens[0])
    z = parse_float(tokens[1])
    if x is None or z is None:
        return Step(state, diagnostics=(malformed("unreadable citadel upgrade position", line),))

    pending = state.citadel or PendingCitadel()
    upgrade = LevelObject(ObjectKind.CITADEL_UPGRADE, x, 0.0, z, _rotation(tokens, 2))
    pending = replace(pending, upgrades=pending.upgrades + (upgrade,))
    remaining = state.remaining - 1
    if remaining <= 0:
        return Step(FooterState(FooterMode.CITADEL_BLOCK, 0, pending))
    return Step(FooterState(FooterMode.CITADEL_UPGRADES, remaining, pending))


def _advance_objects(
    state: FooterState, tokens: list[str], model_names: dict[int, str], line: Optional[int]
) -> Step:
    # ID Unknown X Z Y Rotation
    if len(tokens) < 6:
        return Step(state)

    model_id = parse_int(tokens[0])
    x = parse_float(tokens[2])
    z = parse_float(tokens[3])
    y = parse_float(tokens[4])
    if model_id is None or x is None or z is None or y is None:
        return Step(state, diagnostics=(malformed("unreadable object record", line),))

    placed = LevelObject(
        ObjectKind.PLACED,
        x,
        y,
        z,
        _rotation(tokens, 5),
        model_id=model_id,
        model_name=model_names.get(model_id) or f"Unknown_{model_id}",
    )
    remaining = state.remaining - 1
    if remaining <= 0:
        return Step(FooterState(), objects=(placed,))
    return Step(replace(state, remaining=remaining), objects=(placed,))


_HANDLERS: dict[FooterMode, Callable[..., Step]] = {
    FooterMode.NONE: _advance_none,
    FooterMode.SLOTS: _advance_slots,
    FooterMode.CITADEL_BLOCK: _advance_citadel_block,
    FooterMode.CITADEL_UPGRADES: _advance_citadel_upgrades,
    FooterMode.OBJECTS: _advance_objects,
}


def advance(
    state: FooterState,
    line: str,
    model_names: Optional[dict[int, str]] = None,
    line_number: Optional[int] = None,
) -> Step:
    """Feed one footer line to the grammar.

    Args:
        state: State after the previous line.
        line: Raw footer line.
        model_names: Model ID to name table used to label placed objects.
        line_number: 1-based line number, recorded in diagnostics.

    Returns:
        Step holding the next state and any records the line produced.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return Step(state)
    handler = _HANDLERS[state.mode]
    return handler(state, stripped.split(), model_names or {}, line_number)


def decode_footer_text(
    text: str, model_names: Optional[dict[int, str]] = None
) -> FooterObjects:
    """Decode footer text into slots, citadels and placed objects.

    Lines that do not fit the current mode are ignored. A line whose numbers
    cannot be read is skipped without counting toward its section, so a
    malformed footer under-reports rather than fails.

    Args:
        text: Footer text.
        model_names: Model ID to name table from the file header.

    Returns:
        FooterObjects with the decoded records.
    """
    result = FooterObjects()
    state = FooterState()

    for number, line in enumerate(text.split("\n"), start=1):
        step = advance(state, line, model_names, number)
        state = step.state
        result.objects.extend(step.objects)
        result.citadels.extend(step.citadels)
        result.diagnostics.extend(step.diagnostics)

    objects, citadels = _flush(state.citadel)
    result.objects.extend(objects)
    result.citadels.extend(citadels)

    if state.citadel is not None and state.citadel.base is None and state.citadel.upgrades:
        result.diagnostics.append(absence("citadel without a base line was dropped"))
    if state.remaining > 0:
        result.diagnostics.append(
            absence(f"{state.mode.value} section ended with {state.remaining} record(s) missing")
        )

    return result


def decode_footer(
    data: bytes, footer_offset: int, model_names: Optional[dict[int, str]] = None
) -> FooterObjects:
    """Decode the footer that starts at ``footer_offset`` in an .slk buffer.

    Args:
        data: Full .slk file contents.
        footer_offset: Byte offset just past the binary block.
        model_names: Model ID to name table from the file header.

    Returns:
        FooterObjects, empty with a diagnostic when the file ends before the
        footer.
    """
    if footer_offset >= len(data):
        return FooterObjects(diagnostics=[absence("file ends before the object footer")])
    text = bytes(data[footer_offset:]).decode("utf-8", errors="replace")
    return decode_footer_text(text, model_names)
