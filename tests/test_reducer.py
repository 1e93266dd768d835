"""Tests for the state reducer: pure transitions over frozen GameState."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import copy

from models import ChatMessage, EstablishedFact, StateChange
from reducer import (
    AddMessage,
    DiscoverClue,
    EstablishFact,
    IncrementTurn,
    IntroduceNpc,
    MoveLocation,
    RecordTheory,
    ShiftRelationship,
    SolveCase,
    UnlockLocation,
    UpdateMood,
    UpdateSummary,
    UpdateTrust,
    apply_action,
    apply_actions,
    state_change_to_actions,
)
from tests.helpers import heiress_state


def test_discover_clue_records_turn():
    state = apply_action(heiress_state(), DiscoverClue(clue_id="guest-list", turn=3))

    clue = state.clue("guest-list")
    assert clue.discovered is True
    assert clue.discovered_at_turn == 3


def test_rediscovering_keeps_first_turn():
    state = apply_actions(heiress_state(), [
        DiscoverClue(clue_id="guest-list", turn=3),
        DiscoverClue(clue_id="guest-list", turn=9),
    ])
    assert state.clue("guest-list").discovered_at_turn == 3


def test_fold_increment_discover_trust():
    state = heiress_state()
    assert state.turn == 0
    assert state.npc("harold").trust_level == 30

    state = apply_actions(state, [
        IncrementTurn(),
        DiscoverClue(clue_id="guest-list", turn=1),
        UpdateTrust(npc_id="harold", delta=3),
    ])

    assert state.turn == 1
    assert state.is_discovered("guest-list")
    assert state.npc("harold").trust_level == 33


def test_trust_stays_within_bounds():
    state = heiress_state()
    for _ in range(40):
        state = apply_action(state, UpdateTrust(npc_id="harold", delta=7))
    assert state.npc("harold").trust_level == 100

    for _ in range(40):
        state = apply_action(state, UpdateTrust(npc_id="harold", delta=-9))
    assert state.npc("harold").trust_level == 0

    for npc in state.npcs:
        assert 0 <= npc.trust_level <= 100


def test_actions_never_mutate_input():
    fact = EstablishedFact(id="f1", content="A fact", source_npc_id="harold", turn=0)
    actions = [
        DiscoverClue(clue_id="guest-list", turn=1),
        UpdateTrust(npc_id="harold", delta=5),
        UpdateMood(npc_id="harold", mood="furious"),
        IntroduceNpc(npc_id="dorothy"),
        MoveLocation(location_id="office"),
        UnlockLocation(location_id="docks"),
        AddMessage(message=ChatMessage(role="player", content="hi", turn=0)),
        UpdateSummary(summary="- something happened"),
        SolveCase(),
        IncrementTurn(),
        EstablishFact(fact=fact),
        RecordTheory(content="Harold did it", turn=0, suspect_npc_id="harold"),
        ShiftRelationship(npc_id="harold", direction="trust"),
    ]
    for action in actions:
        state = heiress_state()
        before = copy.deepcopy(state)
        after = apply_action(state, action)
        assert state == before, f"{type(action).__name__} mutated its input"
        assert after is not state


def test_unknown_action_is_a_noop():
    state = heiress_state()
    assert apply_action(state, object()) is state
    assert apply_action(state, "DISCOVER_EVERYTHING") is state


def test_move_location_marks_visited():
    state = heiress_state()
    assert state.location("office").visited is False

    state = apply_action(state, MoveLocation(location_id="office"))
    assert state.current_location_id == "office"
    assert state.location("office").visited is True
    assert state.location("mansion").visited is True


def test_unlock_location():
    state = heiress_state()
    assert state.location("docks").unlocked is False
    state = apply_action(state, UnlockLocation(location_id="docks"))
    assert state.location("docks").unlocked is True


def test_mood_and_introduction():
    state = apply_actions(heiress_state(), [
        UpdateMood(npc_id="marcus", mood="nervous"),
        IntroduceNpc(npc_id="marcus"),
    ])
    marcus = state.npc("marcus")
    assert marcus.mood == "nervous"
    assert marcus.introduced is True
    assert state.npc("harold").introduced is False


def test_messages_append_in_order():
    first = ChatMessage(role="player", content="Where were you?", turn=0)
    second = ChatMessage(role="npc", content="Home.", turn=0, npc_id="harold")
    state = apply_actions(heiress_state(), [AddMessage(first), AddMessage(second)])
    assert [m.content for m in state.chat_history] == ["Where were you?", "Home."]


def test_solve_and_summary():
    state = apply_actions(heiress_state(), [UpdateSummary("- turn 1"), SolveCase()])
    assert state.solved is True
    assert state.conversation_summary == "- turn 1"


def test_narrative_memory_grows():
    fact = EstablishedFact(id="f1", content="Vivian packed a bag", source_npc_id="dorothy", turn=2)
    state = apply_actions(heiress_state(), [
        EstablishFact(fact),
        RecordTheory(content="Marcus hid her", turn=2, suspect_npc_id="marcus"),
        RecordTheory(content="Frank took her", turn=3, suspect_npc_id="frank"),
    ])
    memory = state.narrative_memory
    assert memory.established_facts == (fact,)
    assert [t.suspect_npc_id for t in memory.player_theories] == ["marcus", "frank"]


def test_relationship_shift_moves_between_lists():
    state = apply_action(heiress_state(), ShiftRelationship(npc_id="harold", direction="trust"))
    assert state.narrative_memory.trusted_npcs == ("harold",)

    state = apply_action(state, ShiftRelationship(npc_id="harold", direction="antagonize"))
    memory = state.narrative_memory
    assert "harold" not in memory.trusted_npcs
    assert memory.antagonized_npcs == ("harold",)

    state = apply_action(state, ShiftRelationship(npc_id="harold", direction="antagonize"))
    assert state.narrative_memory.antagonized_npcs == ("harold",)


def test_state_change_to_actions_order():
    changes = StateChange(
        new_clues=("guest-list",),
        npc_mood_shift={"harold": "annoyed"},
        trust_change={"harold": 2},
        location_unlock=("docks",),
    )
    actions = state_change_to_actions(changes, turn=4)
    assert [type(a) for a in actions] == [DiscoverClue, UpdateTrust, UpdateMood, UnlockLocation]
    assert actions[0] == DiscoverClue(clue_id="guest-list", turn=4)


def test_empty_state_change_yields_no_actions():
    assert state_change_to_actions(StateChange(), turn=0) == []
