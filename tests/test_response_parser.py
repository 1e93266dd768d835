"""Tests for the response parser: dialogue and delta extraction never raises."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from response_parser import parse_response
from tests.helpers import npc_reply


def test_well_formed_reply():
    raw = npc_reply(
        "Ask your questions, detective.",
        new_clues=["guest-list"],
        trust_change={"harold": 2},
        npc_mood_shift={"harold": "curt"},
    )
    parsed = parse_response(raw)

    assert parsed.dialogue == "Ask your questions, detective."
    assert parsed.state_changes.new_clues == ("guest-list",)
    assert parsed.state_changes.trust_change == {"harold": 2}
    assert parsed.state_changes.npc_mood_shift == {"harold": "curt"}
    assert parsed.state_changes.location_unlock is None
    assert parsed.raw == raw


def test_malformed_json_yields_empty_delta():
    raw = '<dialogue>Get out.</dialogue><state_changes>{"new_clues": [guest-list,}</state_changes>'
    parsed = parse_response(raw)

    assert parsed.dialogue == "Get out."
    assert parsed.state_changes.is_empty


def test_non_object_json_yields_empty_delta():
    parsed = parse_response('<dialogue>Hm.</dialogue><state_changes>["guest-list"]</state_changes>')
    assert parsed.state_changes.is_empty


def test_wrong_field_types_yield_empty_delta():
    parsed = parse_response(
        '<dialogue>Hm.</dialogue><state_changes>{"trust_change": {"harold": "lots"}}</state_changes>'
    )
    assert parsed.state_changes.is_empty


def test_missing_dialogue_tags_fall_back_to_raw_text():
    raw = 'Harold stares at you.\n<state_changes>{"trust_change": {"harold": -1}}</state_changes>'
    parsed = parse_response(raw)

    assert parsed.dialogue == "Harold stares at you."
    assert parsed.state_changes.trust_change == {"harold": -1}


def test_stray_dialogue_tag_is_stripped():
    parsed = parse_response("<dialogue>Unfinished thought")
    assert parsed.dialogue == "Unfinished thought"


def test_json_fence_inside_state_block():
    raw = (
        "<dialogue>Fine.</dialogue>\n"
        '<state_changes>\n```json\n{"location_unlock": ["docks"]}\n```\n</state_changes>'
    )
    assert parse_response(raw).state_changes.location_unlock == ("docks",)


def test_missing_state_block_is_empty_delta():
    parsed = parse_response("<dialogue>Nothing to say.</dialogue>")
    assert parsed.dialogue == "Nothing to say."
    assert parsed.state_changes.is_empty


def test_plain_text_reply():
    parsed = parse_response("  Just words, no format at all.  ")
    assert parsed.dialogue == "Just words, no format at all."
    assert parsed.state_changes.is_empty
