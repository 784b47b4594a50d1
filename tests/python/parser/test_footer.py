"""Unit tests for the .slk object footer grammar."""

from hotzone.parser.diagnostics import DiagnosticKind
from hotzone.parser.footer import (
    FooterMode,
    FooterState,
    LevelObject,
    ObjectKind,
    PendingCitadel,
    advance,
    decode_footer,
    decode_footer_text,
    parse_float,
    parse_int,
)


def positions(objects: list[LevelObject]) -> list[tuple]:
    return [(obj.x, obj.z, obj.rotation) for obj in objects]


class TestSlots:
    """Tests for the slots section."""

    def test_two_slots(self) -> None:
        """A slots section should yield one Slot per line."""
        result = decode_footer_text("slots 2\n10 20 0\n30 40 90\n")

        assert [obj.kind for obj in result.objects] == [ObjectKind.SLOT, ObjectKind.SLOT]
        assert positions(result.objects) == [(10.0, 20.0, 0.0), (30.0, 40.0, 90.0)]
        assert all(obj.y == 0.0 for obj in result.objects)
        assert result.citadels == []
        assert result.diagnostics == []

    def test_missing_rotation_defaults_to_zero(self) -> None:
        """Slots without a readable rotation should use 0."""
        result = decode_footer_text("slots 2\n10 20\n30 40 abc\n")

        assert positions(result.objects) == [(10.0, 20.0, 0.0), (30.0, 40.0, 0.0)]

    def test_section_ends_at_count(self) -> None:
        """Lines after the declared count should not become slots."""
        result = decode_footer_text("slots 1\n1 2 3\n4 5 6\n")

        assert positions(result.objects) == [(1.0, 2.0, 3.0)]

    def test_zero_count_opens_no_section(self) -> None:
        """slots 0 should not consume the following line."""
        result = decode_footer_text("slots 0\n1 2 3\n")

        assert result.objects == []

    def test_short_lines_ignored(self) -> None:
        """Lines with fewer than two tokens should not count."""
        result = decode_footer_text("slots 1\n7\n8 9\n")

        assert positions(result.objects) == [(8.0, 9.0, 0.0)]

    def test_unreadable_count(self) -> None:
        """A slots line without a count should be reported and ignored."""
        result = decode_footer_text("slots\n1 2 3\n")

        assert result.objects == []
        assert result.diagnostics[0].kind == DiagnosticKind.MALFORMED_TOKEN


class TestMalformedCounts:
    """Malformed records are skipped without adjusting the declared count."""

    def test_malformed_line_does_not_decrement(self) -> None:
        """An unreadable slot should be skipped and the next line still counted."""
        result = decode_footer_text("slots 2\nabc 1 0\n10 20 0\n30 40 0\n")

        assert positions(result.objects) == [(10.0, 20.0, 0.0), (30.0, 40.0, 0.0)]
        assert result.diagnostics[0].kind == DiagnosticKind.MALFORMED_TOKEN
        assert result.diagnostics[0].line == 2

    def test_under_consumption_swallows_next_section(self) -> None:
        """A skipped record leaves the section open, so the next section is misread."""
        footer = "slots 2\nbad line\n10 20 0\nobjects 1\n33 8 1 2 3 4\n"
        result = decode_footer_text(footer, {33: "tank"})

        assert [obj.kind for obj in result.objects] == [ObjectKind.SLOT, ObjectKind.SLOT]
        assert positions(result.objects) == [(10.0, 20.0, 0.0), (33.0, 8.0, 1.0)]

    def test_unfinished_section_is_reported(self) -> None:
        """Ending inside a counted section should leave a diagnostic."""
        result = decode_footer_text("slots 3\n1 1 0\n")

        assert len(result.objects) == 1
        assert result.diagnostics[-1].kind == DiagnosticKind.STRUCTURAL_ABSENCE
        assert "2 record(s) missing" in result.diagnostics[-1].message


class TestCitadels:
    """Tests for citadel blocks."""

    def test_citadel_with_upgrade(self) -> None:
        """A citadel base goes to citadels; its upgrades go to objects."""
        result = decode_footer_text("citadel\nbase 5 5 0\nupgrades 1\n1 1 0 9\n")

        assert len(result.citadels) == 1
        base = result.citadels[0]
        assert base.kind == ObjectKind.CITADEL_BASE
        assert (base.x, base.y, base.z, base.rotation) == (5.0, 0.0, 5.0, 0.0)

        assert len(result.objects) == 1
        upgrade = result.objects[0]
        assert upgrade.kind == ObjectKind.CITADEL_UPGRADE
        assert (upgrade.x, upgrade.z, upgrade.rotation) == (1.0, 1.0, 0.0)
        assert all(obj.kind != ObjectKind.CITADEL_UPGRADE for obj in result.citadels)

    def test_consecutive_citadels(self) -> None:
        """A new citadel line should flush the previous one."""
        footer = (
            "citadel 1\n"
            "base 10 10 0\n"
            "upgrades 2\n"
            "11 10 0 1\n"
            "12 10 90 2\n"
            "citadel 2\n"
            "base 50 60 180\n"
            "upgrades 1\n"
            "51 60 0 1\n"
        )
        result = decode_footer_text(footer)

        assert positions(result.citadels) == [(10.0, 10.0, 0.0), (50.0, 60.0, 180.0)]
        assert positions(result.objects) == [
            (11.0, 10.0, 0.0),
            (12.0, 10.0, 90.0),
            (51.0, 60.0, 0.0),
        ]

    def test_objects_after_citadel(self) -> None:
        """An objects line should flush the citadel and start the objects section."""
        footer = "citadel 1\nbase 1 2 3\nobjects 1\n7 0 10 20 30 45\n"
        result = decode_footer_text(footer)

        assert positions(result.citadels) == [(1.0, 2.0, 3.0)]
        assert [obj.kind for obj in result.objects] == [ObjectKind.PLACED]

    def test_citadel_without_upgrades_flushed_at_end(self) -> None:
        """A pending citadel should be flushed at end of input."""
        result = decode_footer_text("citadel 1\nbase 4 5 6\n")

        assert positions(result.citadels) == [(4.0, 5.0, 6.0)]
        assert result.objects == []

    def test_citadel_without_base_dropped(self) -> None:
        """Upgrades of a citadel without a base line should be dropped."""
        result = decode_footer_text("citadel 1\nupgrades 1\n1 1 0\n")

        assert result.citadels == []
        assert result.objects == []
        assert result.diagnostics[-1].kind == DiagnosticKind.STRUCTURAL_ABSENCE

    def test_new_citadel_before_upgrades_complete(self) -> None:
        """A citadel line inside an unfinished upgrade list should flush early."""
        footer = "citadel 1\nbase 1 1 0\nupgrades 3\n2 2 0\ncitadel 2\nbase 9 9 0\n"
        result = decode_footer_text(footer)

        assert positions(result.citadels) == [(1.0, 1.0, 0.0), (9.0, 9.0, 0.0)]
        assert positions(result.objects) == [(2.0, 2.0, 0.0)]
        assert "2 upgrade(s) outstanding" in result.diagnostics[0].message

    def test_objects_before_upgrades_complete(self) -> None:
        """An objects line inside an unfinished upgrade list should flush early."""
        footer = "citadel 1\nbase 1 1 0\nupgrades 2\n2 2 0\nobjects 1\n5 0 1 2 3 4\n"
        result = decode_footer_text(footer, {5: "bunker"})

        assert len(result.citadels) == 1
        assert [obj.kind for obj in result.objects] == [
            ObjectKind.CITADEL_UPGRADE,
            ObjectKind.PLACED,
        ]
        assert result.objects[1].model_name == "bunker"

    def test_base_with_unreadable_position(self) -> None:
        """A base line without numbers should be skipped."""
        result = decode_footer_text("citadel 1\nbase x y\n")

        assert result.citadels == []
        assert result.diagnostics[0].kind == DiagnosticKind.MALFORMED_TOKEN


class TestObjects:
    """Tests for the objects section."""

    def test_placed_object_fields(self) -> None:
        """Object lines are ID, unknown, X, Z, Y, rotation."""
        result = decode_footer_text("objects 1\n33 8 125.99 80.5 12 270\n", {33: "tank"})

        obj = result.objects[0]
        assert obj.kind == ObjectKind.PLACED
        assert obj.model_id == 33
        assert (obj.x, obj.z, obj.y, obj.rotation) == (125.99, 80.5, 12.0, 270.0)
        assert obj.model_name == "tank"
        assert obj.type_label == "OBJ_33"

    def test_unknown_model_fallback(self) -> None:
        """IDs missing from the model table should get a fallback name."""
        result = decode_footer_text("objects 1\n41 0 1 2 3 0\n")

        assert result.objects[0].model_name == "Unknown_41"

    def test_short_object_lines_ignored(self) -> None:
        """Lines with fewer than six tokens should not count."""
        result = decode_footer_text("objects 1\n1 2 3 4 5\n6 0 1 2 3 4\n")

        assert [obj.model_id for obj in result.objects] == [6]

    def test_unreadable_object_skipped(self) -> None:
        """An object without a readable position should be skipped."""
        result = decode_footer_text("objects 1\n6 0 x 2 3 4\n")

        assert result.objects == []
        assert result.diagnostics[0].kind == DiagnosticKind.MALFORMED_TOKEN


class TestFooterText:
    """Tests for general footer behaviour."""

    def test_comments_and_blank_lines_skipped(self) -> None:
        """Blank and # lines should be skipped in every mode."""
        footer = "# header\n\nslots 2\n# note\n\n1 2 3\n   \n4 5 6\n"
        result = decode_footer_text(footer)

        assert positions(result.objects) == [(1.0, 2.0, 3.0), (4.0, 5.0, 6.0)]

    def test_noise_outside_sections_ignored(self) -> None:
        """Lines that do not start a section should be ignored."""
        result = decode_footer_text("claim 3\n1 2 3\nrandom words here\n")

        assert result.objects == []
        assert result.diagnostics == []

    def test_crlf_footer(self) -> None:
        """CRLF line endings should not affect decoding."""
        result = decode_footer_text("slots 1\r\n1 2 3\r\n")

        assert positions(result.objects) == [(1.0, 2.0, 3.0)]

    def test_decode_footer_offset(self) -> None:
        """decode_footer should start at the given byte offset."""
        data = b"\x00\x01binary" + b"slots 1\n3 4 5\n"
        result = decode_footer(data, 8)

        assert positions(result.objects) == [(3.0, 4.0, 5.0)]

    def test_decode_footer_past_end(self) -> None:
        """An offset at or past the end should yield a diagnostic and no records."""
        result = decode_footer(b"abc", 3)

        assert result.objects == []
        assert result.diagnostics[0].kind == DiagnosticKind.STRUCTURAL_ABSENCE


class TestAdvance:
    """Tests for single grammar transitions."""

    def test_slots_marker_enters_slots_mode(self) -> None:
        """slots N should set the mode and remaining count."""
        step = advance(FooterState(), "slots 4")

        assert step.state == FooterState(FooterMode.SLOTS, 4)
        assert step.objects == ()

    def test_citadel_marker_starts_pending_citadel(self) -> None:
        """citadel should open a block with an empty pending citadel."""
        step = advance(FooterState(), "citadel 3")

        assert step.state.mode == FooterMode.CITADEL_BLOCK
        assert step.state.citadel == PendingCitadel()

    def test_last_upgrade_returns_to_block(self) -> None:
        """Consuming the last upgrade should go back to the citadel block."""
        state = FooterState(FooterMode.CITADEL_UPGRADES, 1, PendingCitadel())
        step = advance(state, "1 2 3")

        assert step.state.mode == FooterMode.CITADEL_BLOCK
        assert len(step.state.citadel.upgrades) == 1
        assert step.objects == ()

    def test_blank_line_keeps_state(self) -> None:
        """Blank lines should not change the state."""
        state = FooterState(FooterMode.OBJECTS, 2)
        assert advance(state, "   ").state is state

    def test_state_is_not_mutated(self) -> None:
        """advance should return a new state and leave the old one intact."""
        state = FooterState(FooterMode.SLOTS, 2)
        step = advance(state, "1 2 3")

        assert state.remaining == 2
        assert step.state.remaining == 1


class TestNumberParsing:
    """Tests for tolerant number parsing."""

    def test_parse_float(self) -> None:
        """Leading numbers should be read and trailing junk ignored."""
        assert parse_float("12.5") == 12.5
        assert parse_float("-3") == -3.0
        assert parse_float(".5") == 0.5
        assert parse_float("12.5abc") == 12.5
        assert parse_float("1e2") == 100.0
        assert parse_float("abc") is None
        assert parse_float("") is None

    def test_parse_int(self) -> None:
        """Leading integers should be read."""
        assert parse_int("42") == 42
        assert parse_int("1.9") == 1
        assert parse_int("-7x") == -7
        assert parse_int("x7") is None


class TestLevelObject:
    """Tests for LevelObject dataclass."""

    def test_type_labels(self) -> None:
        """type_label should match the display tags of each kind."""
        assert LevelObject(ObjectKind.SLOT, 0, 0, 0).type_label == "SLOT"
        assert LevelObject(ObjectKind.CITADEL_BASE, 0, 0, 0).type_label == "CITADEL_BASE"
        assert LevelObject(ObjectKind.PLACED, 0, 0, 0, model_id=3).type_label == "OBJ_3"

    def test_defaults(self) -> None:
        """Rotation and model fields should default to empty values."""
        obj = LevelObject(ObjectKind.SLOT, 1.0, 0.0, 2.0)

        assert obj.rotation == 0.0
        assert obj.model_id is None
        assert obj.model_name is None

    def test_to_dict(self) -> None:
        """to_dict should expose the display fields."""
        obj = LevelObject(ObjectKind.PLACED, 1.0, 2.0, 3.0, 90.0, 7, "tower")

        assert obj.to_dict() == {
            "type": "OBJ_7",
            "x": 1.0,
            "y": 2.0,
            "z": 3.0,
            "rotation": 90.0,
            "model_name": "tower",
        }
