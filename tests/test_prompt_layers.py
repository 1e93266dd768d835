"""Tests for the layered system prompt."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from case_data import GIN_JOINT_BLUES, MISSING_HEIRESS
from models import EstablishedFact
from prompt_layers import (
    LAYER_SEPARATOR,
    build_system_prompt,
    case_context,
    current_game_state,
    guardrails,
    knowledge_boundary,
    npc_personality,
    output_format,
    world_frame,
)
from reducer import EstablishFact, RecordTheory, UpdateSummary, apply_actions
from tests.helpers import gin_joint_state, heiress_state, with_discovered


def test_layers_are_joined_in_fixed_order():
    state = heiress_state()
    harold = state.npc("harold")

    prompt = build_system_prompt(MISSING_HEIRESS, state, harold)

    assert prompt.split(LAYER_SEPARATOR) == [
        world_frame(MISSING_HEIRESS),
        case_context(MISSING_HEIRESS),
        npc_personality(harold),
        knowledge_boundary(harold),
        current_game_state(state, MISSING_HEIRESS),
        output_format(),
        guardrails(MISSING_HEIRESS),
    ]


def test_knowledge_boundary_reports_locked_and_unlocked():
    layer = knowledge_boundary(heiress_state().npc("harold"))

    assert 'Clue "guest-list": UNLOCKED' in layer
    assert 'Clue "vivian-argument": UNLOCKED' in layer
    assert 'Clue "shipping-records": LOCKED (trust 30/80, 50 short)' in layer
    assert "current trust level: 30/100" in layer


def test_npc_without_boundaries():
    state = heiress_state()
    harold = state.npc("harold")
    bare = harold.__class__(
        id="extra",
        name="Extra",
        role="a bystander",
        location_id="mansion",
        personality=harold.personality,
    )
    assert "You hold no clues of your own." in knowledge_boundary(bare)


def test_personality_includes_mood_and_voice():
    harold = heiress_state().npc("harold")
    layer = npc_personality(harold)
    assert "You are playing Harold Ashworth" in layer
    assert f"CURRENT MOOD: {harold.mood}" in layer
    assert harold.personality.voice in layer


def test_game_state_layer_lists_clues_trust_and_memory():
    state = with_discovered(heiress_state(), "guest-list")
    state = apply_actions(state, [
        EstablishFact(EstablishedFact(
            id="fact-guest-list",
            content="Harold revealed the guest list",
            source_npc_id="harold",
            turn=1,
        )),
        RecordTheory(content="theory one", turn=1),
        RecordTheory(content="theory two", turn=2),
        RecordTheory(content="theory three", turn=3),
        RecordTheory(content="theory four", turn=4),
        UpdateSummary("- Turn 1: the detective asked 'hello'"),
    ])

    layer = current_game_state(state, MISSING_HEIRESS)

    assert "CLUES DISCOVERED (1/8): Party Guest List" in layer
    assert "Harold Ashworth: 30/100" in layer
    assert "LOCATION: Ashworth Mansion" in layer
    assert "Harold revealed the guest list" in layer
    assert "never contradict" in layer
    assert "theory one" not in layer
    assert "theory two" in layer and "theory four" in layer
    assert "- Turn 1: the detective asked 'hello'" in layer


def test_output_format_names_all_four_keys():
    layer = output_format()
    for key in ("new_clues", "trust_change", "npc_mood_shift", "location_unlock"):
        assert key in layer
    assert "-5 to +5" in layer
    assert "Never invent clue ids" in layer


def test_guardrails_depend_on_case_variant():
    emergent = guardrails(MISSING_HEIRESS)
    fixed = guardrails(GIN_JOINT_BLUES)

    assert "Never reveal the solution" not in emergent
    assert "Never fabricate" in emergent
    assert "Never reveal the solution" in fixed
    assert GIN_JOINT_BLUES.solution[:50] in fixed


def test_fixed_case_prompt_builds():
    state = gin_joint_state()
    prompt = build_system_prompt(GIN_JOINT_BLUES, state, state.npc("lou"))
    assert "Chicago, 1926" in prompt
    assert prompt.count(LAYER_SEPARATOR) == 6
