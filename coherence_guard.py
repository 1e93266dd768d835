"""
coherence_guard.py
==================
Deterministic filter between the oracle's proposed StateChange and the
reducer.

The oracle can fabricate clue ids, over-grant trust, or reveal clues the NPC
has not yet earned the trust to share. ``validate_state_changes`` keeps only
the subset of a proposal that is consistent with the case definition and the
current game state, and explains every rejection in a human-readable list.

It never raises. Violations never block a turn: callers always apply the
sanitized subset, which may be empty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from config import COHERENCE_CONFIG
from models import CaseDefinition, GameState, Npc, StateChange

logger = logging.getLogger("shadows.coherence_guard")


@dataclass(frozen=True)
class CoherenceResult:
    """
    Attributes:
        valid:      True when the proposal needed no changes at all.
        sanitized:  The safe subset, ready for state_change_to_actions().
        violations: One line per rejected or altered item.
    """

    valid:      bool
    sanitized:  StateChange
    violations: List[str] = field(default_factory=list)


class _NpcIndex:
    """
    Resolves oracle-supplied NPC keys to canonical ids.

    Oracles often write names ("Harold Ashworth") where ids ("harold") are
    expected. Exact id match wins; otherwise a case-insensitive name match.
    Built once per validation call from the current NPC list.
    """

    def __init__(self, npcs) -> None:
        self._ids    = {n.id for n in npcs}
        self._names  = {n.name.lower(): n.id for n in npcs}

    def resolve(self, key: str) -> Optional[str]:
        if key in self._ids:
            return key
        return self._names.get(key.lower())


def validate_state_changes(
    proposed: StateChange,
    case_definition: CaseDefinition,
    state: GameState,
    target_npc: Npc,
) -> CoherenceResult:
    """
    Sanitize one turn's proposed StateChange.

    Each field is validated independently:
      - new_clues:       must exist in the case, not be discovered yet, pass
                         the target NPC's knowledge boundary (if it has one
                         for that clue), and have every prerequisite
                         discovered. Original order is kept.
      - trust_change:    keys resolved to NPC ids; deltas clamped to
                         ±max_trust_delta with a "capped" violation.
      - npc_mood_shift:  keys resolved to NPC ids; moods passed through as-is.
      - location_unlock: ids must exist in the case.

    Args:
        proposed:        The parser's output for this turn.
        case_definition: The immutable case being played.
        state:           Current game state (for discovery status).
        target_npc:      The NPC the player addressed this turn, as it is in
                         ``state`` (its trust level gates clue reveals).

    Returns:
        CoherenceResult with the sanitized delta and the violation log.
    """
    violations: List[str] = []
    npc_index = _NpcIndex(state.npcs)

    # --- Clues ---
    new_clues: List[str] = []
    for clue_id in proposed.new_clues or ():
        clue_def = case_definition.clue(clue_id)
        if clue_def is None:
            violations.append(f'Rejected fabricated clue: "{clue_id}"')
            continue
        if state.is_discovered(clue_id):
            violations.append(f'Clue already discovered: "{clue_id}"')
            continue
        boundary = target_npc.boundary_for(clue_id)
        if boundary is not None and target_npc.trust_level < boundary.reveal_threshold:
            violations.append(
                f'Trust too low for clue "{clue_id}": '
                f"{target_npc.trust_level}/{boundary.reveal_threshold}"
            )
            continue
        if not all(state.is_discovered(pid) for pid in clue_def.prerequisites):
            violations.append(f'Prerequisites not met for clue "{clue_id}"')
            continue
        new_clues.append(clue_id)

    # --- Trust ---
    cap = COHERENCE_CONFIG.max_trust_delta
    trust_change: Dict[str, int] = {}
    for key, delta in (proposed.trust_change or {}).items():
        npc_id = npc_index.resolve(key)
        if npc_id is None:
            violations.append(f'Unknown NPC for trust change: "{key}"')
            continue
        capped = max(-cap, min(cap, delta))
        if capped != delta:
            violations.append(f'Trust delta capped for "{npc_id}": {delta} -> {capped}')
        trust_change[npc_id] = capped

    # --- Moods ---
    mood_shift: Dict[str, str] = {}
    for key, mood in (proposed.npc_mood_shift or {}).items():
        npc_id = npc_index.resolve(key)
        if npc_id is None:
            violations.append(f'Unknown NPC for mood shift: "{key}"')
            continue
        mood_shift[npc_id] = mood

    # --- Locations ---
    unlocks: List[str] = []
    for location_id in proposed.location_unlock or ():
        if case_definition.location(location_id) is None:
            violations.append(f'Unknown location: "{location_id}"')
            continue
        unlocks.append(location_id)

    sanitized = StateChange(
        new_clues=tuple(new_clues) or None,
        npc_mood_shift=mood_shift or None,
        trust_change=trust_change or None,
        location_unlock=tuple(unlocks) or None,
    )

    if violations:
        logger.debug(
            "Coherence guard: %d violation(s) for npc=%s", len(violations), target_npc.id
        )

    return CoherenceResult(
        valid=not violations,
        sanitized=sanitized,
        violations=violations,
    )
