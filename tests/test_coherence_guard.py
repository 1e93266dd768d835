"""Tests for the coherence guard: oracle proposals filtered against case rules."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from case_data import MISSING_HEIRESS
from coherence_guard import validate_state_changes
from models import StateChange
from tests.helpers import heiress_state, with_discovered


def _validate(proposed, state=None, npc_id="harold"):
    state = state or heiress_state()
    return validate_state_changes(proposed, MISSING_HEIRESS, state, state.npc(npc_id))


def test_unlocked_clue_is_accepted():
    result = _validate(StateChange(new_clues=("vivian-argument",)))

    assert result.valid is True
    assert result.sanitized.new_clues == ("vivian-argument",)
    assert result.violations == []


def test_clue_above_trust_is_rejected():
    result = _validate(StateChange(new_clues=("shipping-records",)))

    assert result.valid is False
    assert result.sanitized.new_clues is None
    assert result.violations == ['Trust too low for clue "shipping-records": 30/80']


def test_trust_delta_is_capped_once():
    result = _validate(StateChange(trust_change={"harold": 15}))

    assert result.sanitized.trust_change == {"harold": 5}
    capped = [v for v in result.violations if "capped" in v]
    assert len(capped) == 1
    assert "15 -> 5" in capped[0]


def test_negative_trust_delta_is_capped():
    result = _validate(StateChange(trust_change={"harold": -20, "dorothy": -2}))

    assert result.sanitized.trust_change == {"harold": -5, "dorothy": -2}
    assert len(result.violations) == 1


def test_fabricated_clue_is_rejected():
    result = _validate(StateChange(new_clues=("secret-diary", "guest-list")))

    assert result.sanitized.new_clues == ("guest-list",)
    assert result.violations == ['Rejected fabricated clue: "secret-diary"']


def test_already_discovered_always_rejected():
    state = with_discovered(heiress_state(harold=100), "guest-list")
    result = _validate(StateChange(new_clues=("guest-list",)), state)

    assert result.sanitized.new_clues is None
    assert result.violations == ['Clue already discovered: "guest-list"']


def test_prerequisites_must_be_discovered():
    state = heiress_state(dorothy=60)
    result = _validate(StateChange(new_clues=("love-letters",)), state, npc_id="dorothy")
    assert result.sanitized.new_clues is None
    assert result.violations == ['Prerequisites not met for clue "love-letters"']

    state = with_discovered(state, "vivian-room")
    result = _validate(StateChange(new_clues=("love-letters",)), state, npc_id="dorothy")
    assert result.sanitized.new_clues == ("love-letters",)


def test_clue_order_is_preserved():
    state = heiress_state(harold=90)
    result = _validate(
        StateChange(new_clues=("vivian-argument", "made-up", "guest-list")), state
    )
    assert result.sanitized.new_clues == ("vivian-argument", "guest-list")


def test_sanitized_clues_always_exist_in_case():
    case_ids = {c.id for c in MISSING_HEIRESS.clues}
    proposals = [
        ("guest-list", "nope"),
        ("x", "y", "z"),
        ("payoff-envelope", "vivian-argument", "GUEST-LIST"),
    ]
    for new_clues in proposals:
        result = _validate(StateChange(new_clues=new_clues), heiress_state(harold=100))
        assert set(result.sanitized.new_clues or ()) <= case_ids


def test_npc_keys_resolve_by_name():
    result = _validate(StateChange(
        trust_change={"Harold Ashworth": 2, "DOROTHY MAE CARTER": 1},
        npc_mood_shift={"marcus": "defensive", "Frank Doyle": "cagey"},
    ))

    assert result.sanitized.trust_change == {"harold": 2, "dorothy": 1}
    assert result.sanitized.npc_mood_shift == {"marcus": "defensive", "frank": "cagey"}
    assert result.valid is True


def test_unknown_npc_keys_are_rejected():
    result = _validate(StateChange(
        trust_change={"The Butler": 2},
        npc_mood_shift={"ghost": "spooky"},
    ))

    assert result.sanitized.trust_change is None
    assert result.sanitized.npc_mood_shift is None
    assert result.violations == [
        'Unknown NPC for trust change: "The Butler"',
        'Unknown NPC for mood shift: "ghost"',
    ]


def test_location_unlocks_must_exist():
    result = _validate(StateChange(location_unlock=("docks", "moon-base")))

    assert result.sanitized.location_unlock == ("docks",)
    assert result.violations == ['Unknown location: "moon-base"']


def test_empty_proposal_is_valid():
    result = _validate(StateChange())
    assert result.valid is True
    assert result.sanitized.is_empty
