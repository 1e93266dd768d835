"""
models.py
=========
Shared data models for the Shadows narrative state engine.

Contains:
  - Case content     : NpcPersonality, KnowledgeBoundary, Npc, Clue, Location,
                       ClueConnection, Suspect, and the two case variants
                       FixedSolutionCase / EmergentCase.
  - Per-game state   : ChatMessage, EstablishedFact, PlayerTheory,
                       NarrativeMemory, GameState.
  - Ephemeral values : StateChange (the oracle's proposed delta),
                       Accusation, AccusationResult.
  - Pydantic schemas : StateChangePayload and CoherenceEvaluation, used to
                       validate the JSON segments the oracle writes.

Every record is a frozen dataclass holding tuples, so a GameState can be
shared with readers while the reducer builds the next one.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, field_validator

from config import THRESHOLD_CONFIG


ChatRole = Literal["player", "npc", "narrator", "system"]


# ---------------------------------------------------------------------------
# NPCs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NpcPersonality:
    voice:           str
    speech_patterns: Tuple[str, ...] = ()
    backstory:       str = ""
    mannerisms:      Tuple[str, ...] = ()


@dataclass(frozen=True)
class NpcRelationship:
    npc_id:          str
    nature:          str
    known_by_player: bool = False


@dataclass(frozen=True)
class KnowledgeBoundary:
    """
    A per-NPC gate on one clue.

    Attributes:
        clue_id:          The clue this NPC can reveal.
        reveal_threshold: Trust level (0-100) at which the NPC will reveal it.
        deflection_hint:  How the NPC steers away while the gate is closed.
        reveal_guidance:  What the NPC may say once the gate is open.
    """

    clue_id:          str
    reveal_threshold: int
    deflection_hint:  str
    reveal_guidance:  str


@dataclass(frozen=True)
class Npc:
    """
    A character the player can talk to.

    Personality and knowledge boundaries are authored content. trust_level,
    mood and introduced change during play, but only through the reducer.
    """

    id:                  str
    name:                str
    role:                str
    location_id:         str
    personality:         NpcPersonality
    knowledge_boundaries: Tuple[KnowledgeBoundary, ...] = ()
    relationships:       Tuple[NpcRelationship, ...] = ()
    trust_level:         int  = 50
    mood:                str  = "guarded"
    introduced:          bool = False

    def boundary_for(self, clue_id: str) -> Optional[KnowledgeBoundary]:
        for boundary in self.knowledge_boundaries:
            if boundary.clue_id == clue_id:
                return boundary
        return None


# ---------------------------------------------------------------------------
# Clues and locations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Clue:
    """
    A discoverable piece of evidence.

    Attributes:
        source_id:          NPC or location id that can reveal this clue.
        trust_threshold:    Minimum trust with the source to obtain it.
        prerequisites:      Clue ids that must be discovered first.
        discovered:         Flips to True exactly once, via the reducer.
        discovered_at_turn: Turn of that flip.
    """

    id:                 str
    name:               str
    description:        str
    source_id:          str
    trust_threshold:    int = 0
    prerequisites:      Tuple[str, ...] = ()
    tags:               Tuple[str, ...] = ()
    discovered:         bool = False
    discovered_at_turn: Optional[int] = None


@dataclass(frozen=True)
class ClueConnection:
    from_clue_id: str
    to_clue_id:   str
    relationship: str


@dataclass(frozen=True)
class Location:
    id:                     str
    name:                   str
    description:            str
    atmosphere:             str = ""
    npc_ids:                Tuple[str, ...] = ()
    searchable_clue_ids:    Tuple[str, ...] = ()
    connected_location_ids: Tuple[str, ...] = ()
    visited:                bool = False
    unlocked:               bool = True


@dataclass(frozen=True)
class Suspect:
    """Possibility space for one suspect in an emergent case."""

    npc_id:               str
    possible_motives:     Tuple[str, ...] = ()
    possible_methods:     Tuple[str, ...] = ()
    supporting_clue_ids:  Tuple[str, ...] = ()
    exonerating_clue_ids: Tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Case definitions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CaseDefinitionBase:
    """
    Authored content shared by both case variants. Immutable for the
    lifetime of every game created from it.
    """

    id:               str
    title:            str
    synopsis:         str
    setting:          str
    atmosphere:       str
    npcs:             Tuple[Npc, ...]
    locations:        Tuple[Location, ...]
    clues:            Tuple[Clue, ...]
    clue_connections: Tuple[ClueConnection, ...] = ()

    def clue(self, clue_id: str) -> Optional[Clue]:
        return next((c for c in self.clues if c.id == clue_id), None)

    def location(self, location_id: str) -> Optional[Location]:
        return next((loc for loc in self.locations if loc.id == location_id), None)


@dataclass(frozen=True)
class FixedSolutionCase(CaseDefinitionBase):
    """A case with one authored truth; accusations are matched against it."""

    solution: str = ""


@dataclass(frozen=True)
class EmergentCase(CaseDefinitionBase):
    """
    A case that defines a possibility space instead of a fixed answer.

    The oracle judges whether an accusation is coherent with the evidence
    the player actually gathered, against a dynamically computed threshold.
    """

    suspects:            Tuple[Suspect, ...] = ()
    coherence_threshold: int = THRESHOLD_CONFIG.default_base
    solution:            str = ""

    def suspect(self, npc_id: str) -> Optional[Suspect]:
        return next((s for s in self.suspects if s.npc_id == npc_id), None)


CaseDefinition = Union[FixedSolutionCase, EmergentCase]


def is_emergent(case: CaseDefinition) -> bool:
    """True when accusations are judged by coherence rather than a fixed solution."""
    return isinstance(case, EmergentCase) and len(case.suspects) > 0


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChatMessage:
    role:      ChatRole
    content:   str
    turn:      int
    npc_id:    Optional[str] = None
    id:        str   = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: float = field(default_factory=time.time)


# ---------------------------------------------------------------------------
# Narrative memory
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EstablishedFact:
    id:                  str
    content:             str
    source_npc_id:       str
    turn:                int
    supporting_clue_ids: Tuple[str, ...] = ()
    contradictable:      bool = True


@dataclass(frozen=True)
class PlayerTheory:
    content:       str
    turn:          int
    suspect_npc_id: Optional[str] = None


@dataclass(frozen=True)
class NarrativeMemory:
    """
    Accumulated story context.

    established_facts and player_theories only ever grow. An NPC id lives in
    at most one of trusted_npcs / antagonized_npcs and moves between them.
    """

    established_facts: Tuple[EstablishedFact, ...] = ()
    player_theories:   Tuple[PlayerTheory, ...] = ()
    trusted_npcs:      Tuple[str, ...] = ()
    antagonized_npcs:  Tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Game state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GameState:
    """
    Immutable snapshot of one game.

    The GameManager owns the current snapshot for each game id; the reducer
    returns a new snapshot for every action and the old one is discarded.

    Attributes:
        turn:                 Never decreases.
        current_location_id:  Always one of ``locations``.
        chat_history:         Append-only.
        conversation_summary: Condensed text of messages that fell out of the
                              oracle's context window.
        solved:               Terminal once True.
    """

    game_id:              str
    case_id:              str
    turn:                 int
    current_location_id:  str
    npcs:                 Tuple[Npc, ...]
    clues:                Tuple[Clue, ...]
    locations:            Tuple[Location, ...]
    chat_history:         Tuple[ChatMessage, ...] = ()
    conversation_summary: str  = ""
    solved:               bool = False
    created_at:           float = field(default_factory=time.time)
    updated_at:           float = field(default_factory=time.time)
    narrative_memory:     Optional[NarrativeMemory] = None

    def npc(self, npc_id: str) -> Optional[Npc]:
        return next((n for n in self.npcs if n.id == npc_id), None)

    def clue(self, clue_id: str) -> Optional[Clue]:
        return next((c for c in self.clues if c.id == clue_id), None)

    def location(self, location_id: str) -> Optional[Location]:
        return next((loc for loc in self.locations if loc.id == location_id), None)

    def discovered_clues(self) -> List[Clue]:
        return [c for c in self.clues if c.discovered]

    def is_discovered(self, clue_id: str) -> bool:
        clue = self.clue(clue_id)
        return clue is not None and clue.discovered


# ---------------------------------------------------------------------------
# Proposed deltas
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StateChange:
    """
    One turn's proposed (or sanitized) mutation.

    Each field is independently optional; None means "no change of this
    kind". Never stored: the manager turns it into reducer actions at once.
    """

    new_clues:       Optional[Tuple[str, ...]] = None
    npc_mood_shift:  Optional[Dict[str, str]] = None
    trust_change:    Optional[Dict[str, int]] = None
    location_unlock: Optional[Tuple[str, ...]] = None

    @property
    def is_empty(self) -> bool:
        return not (
            self.new_clues
            or self.npc_mood_shift
            or self.trust_change
            or self.location_unlock
        )


# ---------------------------------------------------------------------------
# Accusations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Accusation:
    suspect_npc_id: str
    motive:         str
    method:         str
    reasoning:      str


@dataclass(frozen=True)
class AccusationResult:
    """Verdict on whether an accusation is coherent with the evidence."""

    coherent:            bool
    coherence_score:     int
    supporting_evidence: Tuple[str, ...] = ()
    contradictions:      Tuple[str, ...] = ()
    gaps:                Tuple[str, ...] = ()
    resolution:          Optional[str] = None


# ---------------------------------------------------------------------------
# Pydantic structured output schemas
# ---------------------------------------------------------------------------

class StateChangePayload(BaseModel):
    """
    Validated shape of the oracle's ``<state_changes>`` JSON.

    All four keys are optional; anything else the oracle adds is ignored.
    """

    new_clues:       List[str] = []
    npc_mood_shift:  Dict[str, str] = {}
    trust_change:    Dict[str, int] = {}
    location_unlock: List[str] = []

    def to_state_change(self) -> StateChange:
        return StateChange(
            new_clues=tuple(self.new_clues) or None,
            npc_mood_shift=dict(self.npc_mood_shift) or None,
            trust_change=dict(self.trust_change) or None,
            location_unlock=tuple(self.location_unlock) or None,
        )


class CoherenceEvaluation(BaseModel):
    """
    Validated shape of the oracle's ``<evaluation>`` JSON for accusations.

    Fields are coerced one at a time: a fractional or numeric-string score is
    rounded, a null or non-list list field becomes empty, a null verdict is
    False.
    """

    coherent:            bool = False
    coherence_score:     int = 0
    supporting_evidence: List[str] = []
    contradictions:      List[str] = []
    gaps:                List[str] = []
    resolution:          Optional[str] = None

    @field_validator("coherent", mode="before")
    @classmethod
    def _coerce_coherent(cls, value: object) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "1")
        return bool(value)

    @field_validator("coherence_score", mode="before")
    @classmethod
    def _coerce_score(cls, value: object) -> int:
        if isinstance(value, bool) or value is None:
            return 0
        try:
            return round(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0

    @field_validator("supporting_evidence", "contradictions", "gaps", mode="before")
    @classmethod
    def _coerce_list(cls, value: object) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value if item is not None]
        return []

    @field_validator("resolution", mode="before")
    @classmethod
    def _coerce_resolution(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        return str(value)

    def to_result(self) -> AccusationResult:
        return AccusationResult(
            coherent=self.coherent,
            coherence_score=max(0, min(100, self.coherence_score)),
            supporting_evidence=tuple(self.supporting_evidence),
            contradictions=tuple(self.contradictions),
            gaps=tuple(self.gaps),
            resolution=self.resolution,
        )
