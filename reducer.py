"""
reducer.py
==========
Deterministic, side-effect-free state transitions.

``apply_action(state, action)`` returns a new GameState with only the fields
the action touches replaced; the input is never mutated (every record is a
frozen dataclass). Unknown actions are no-ops, not failures.

Kept free of I/O and oracle calls so it can be unit-tested in isolation and
shared by the game manager, the CLI, and any future persistence layer.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from typing import Iterable, List, Literal, Optional

from config import COHERENCE_CONFIG
from models import (
    ChatMessage,
    EstablishedFact,
    GameState,
    NarrativeMemory,
    PlayerTheory,
    StateChange,
)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DiscoverClue:
    clue_id: str
    turn:    int


@dataclass(frozen=True)
class UpdateTrust:
    npc_id: str
    delta:  int


@dataclass(frozen=True)
class UpdateMood:
    npc_id: str
    mood:   str


@dataclass(frozen=True)
class IntroduceNpc:
    npc_id: str


@dataclass(frozen=True)
class MoveLocation:
    location_id: str


@dataclass(frozen=True)
class UnlockLocation:
    location_id: str


@dataclass(frozen=True)
class AddMessage:
    message: ChatMessage


@dataclass(frozen=True)
class UpdateSummary:
    summary: str


@dataclass(frozen=True)
class SolveCase:
    pass


@dataclass(frozen=True)
class IncrementTurn:
    pass


@dataclass(frozen=True)
class EstablishFact:
    fact: EstablishedFact


@dataclass(frozen=True)
class RecordTheory:
    content:        str
    turn:           int
    suspect_npc_id: Optional[str] = None


@dataclass(frozen=True)
class ShiftRelationship:
    npc_id:    str
    direction: Literal["trust", "antagonize"]


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------

def _clamp_trust(value: int) -> int:
    return max(COHERENCE_CONFIG.trust_floor, min(COHERENCE_CONFIG.trust_ceiling, value))


def _memory(state: GameState) -> NarrativeMemory:
    return state.narrative_memory or NarrativeMemory()


def apply_action(state: GameState, action: object) -> GameState:
    """
    Apply one action and return the next state.

    Args:
        state:  Current snapshot. Not modified.
        action: One of the action dataclasses above. Anything else is ignored.

    Returns:
        A new GameState, or ``state`` itself for unknown actions.
    """
    now = time.time()

    if isinstance(action, DiscoverClue):
        # A clue flips exactly once; a repeat discovery keeps the first turn.
        return replace(
            state,
            clues=tuple(
                replace(c, discovered=True, discovered_at_turn=action.turn)
                if c.id == action.clue_id and not c.discovered
                else c
                for c in state.clues
            ),
            updated_at=now,
        )

    if isinstance(action, UpdateTrust):
        return replace(
            state,
            npcs=tuple(
                replace(n, trust_level=_clamp_trust(n.trust_level + action.delta))
                if n.id == action.npc_id
                else n
                for n in state.npcs
            ),
            updated_at=now,
        )

    if isinstance(action, UpdateMood):
        return replace(
            state,
            npcs=tuple(
                replace(n, mood=action.mood) if n.id == action.npc_id else n
                for n in state.npcs
            ),
            updated_at=now,
        )

    if isinstance(action, IntroduceNpc):
        return replace(
            state,
            npcs=tuple(
                replace(n, introduced=True) if n.id == action.npc_id else n
                for n in state.npcs
            ),
            updated_at=now,
        )

    if isinstance(action, MoveLocation):
        return replace(
            state,
            current_location_id=action.location_id,
            locations=tuple(
                replace(loc, visited=True) if loc.id == action.location_id else loc
                for loc in state.locations
            ),
            updated_at=now,
        )

    if isinstance(action, UnlockLocation):
        return replace(
            state,
            locations=tuple(
                replace(loc, unlocked=True) if loc.id == action.location_id else loc
                for loc in state.locations
            ),
            updated_at=now,
        )

    if isinstance(action, AddMessage):
        return replace(
            state,
            chat_history=state.chat_history + (action.message,),
            updated_at=now,
        )

    if isinstance(action, UpdateSummary):
        return replace(state, conversation_summary=action.summary, updated_at=now)

    if isinstance(action, SolveCase):
        return replace(state, solved=True, updated_at=now)

    if isinstance(action, IncrementTurn):
        return replace(state, turn=state.turn + 1, updated_at=now)

    if isinstance(action, EstablishFact):
        memory = _memory(state)
        return replace(
            state,
            narrative_memory=replace(
                memory,
                established_facts=memory.established_facts + (action.fact,),
            ),
            updated_at=now,
        )

    if isinstance(action, RecordTheory):
        memory = _memory(state)
        theory = PlayerTheory(
            content=action.content,
            turn=action.turn,
            suspect_npc_id=action.suspect_npc_id,
        )
        return replace(
            state,
            narrative_memory=replace(
                memory,
                player_theories=memory.player_theories + (theory,),
            ),
            updated_at=now,
        )

    if isinstance(action, ShiftRelationship):
        memory = _memory(state)
        trusted     = tuple(i for i in memory.trusted_npcs if i != action.npc_id)
        antagonized = tuple(i for i in memory.antagonized_npcs if i != action.npc_id)
        if action.direction == "trust":
            trusted += (action.npc_id,)
        else:
            antagonized += (action.npc_id,)
        return replace(
            state,
            narrative_memory=replace(
                memory,
                trusted_npcs=trusted,
                antagonized_npcs=antagonized,
            ),
            updated_at=now,
        )

    return state


def apply_actions(state: GameState, actions: Iterable[object]) -> GameState:
    """Fold ``actions`` left-to-right through apply_action."""
    for action in actions:
        state = apply_action(state, action)
    return state


# ---------------------------------------------------------------------------
# Delta → actions
# ---------------------------------------------------------------------------

def state_change_to_actions(changes: StateChange, turn: int) -> List[object]:
    """
    Convert a sanitized StateChange into reducer actions.

    Order: clue discoveries, trust, moods, then location unlocks. Only call
    this with the coherence guard's sanitized output.
    """
    actions: List[object] = []

    for clue_id in changes.new_clues or ():
        actions.append(DiscoverClue(clue_id=clue_id, turn=turn))

    for npc_id, delta in (changes.trust_change or {}).items():
        actions.append(UpdateTrust(npc_id=npc_id, delta=delta))

    for npc_id, mood in (changes.npc_mood_shift or {}).items():
        actions.append(UpdateMood(npc_id=npc_id, mood=mood))

    for location_id in changes.location_unlock or ():
        actions.append(UnlockLocation(location_id=location_id))

    return actions
