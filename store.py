"""
store.py
========
Game-state persistence contract and its in-memory reference implementation.

The GameManager is the only writer. A store holds exactly one committed
GameState per game id; because states are immutable, handing the same object
to readers is safe.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Protocol

from errors import CaseNotFound
from models import CaseDefinition, GameState, NarrativeMemory

logger = logging.getLogger("shadows.store")


class GameStore(Protocol):
    def create(self, case_id: str) -> GameState:
        ...

    def get(self, game_id: str) -> Optional[GameState]:
        ...

    def put(self, game_id: str, state: GameState) -> None:
        ...


def new_game_state(case_definition: CaseDefinition, game_id: str) -> GameState:
    """
    Build the opening snapshot for a new game.

    NPCs, clues and locations are copied from the case as-is (they are
    frozen, so the copy is the tuple itself). The player starts at the first
    location, which is marked visited.
    """
    if not case_definition.locations:
        raise ValueError(f"Case {case_definition.id!r} defines no locations.")

    start = case_definition.locations[0]
    locations = tuple(
        replace(loc, visited=True) if loc.id == start.id else loc
        for loc in case_definition.locations
    )

    return GameState(
        game_id=game_id,
        case_id=case_definition.id,
        turn=0,
        current_location_id=start.id,
        npcs=case_definition.npcs,
        clues=case_definition.clues,
        locations=locations,
        narrative_memory=NarrativeMemory(),
    )


class InMemoryGameStore:
    """
    Non-durable store backed by a dict.

    Args:
        cases: Case registry used by create(). Typically case_data.CASES.
    """

    def __init__(self, cases: Mapping[str, CaseDefinition]) -> None:
        self._cases = cases
        self._games: Dict[str, GameState] = {}

    def create(self, case_id: str) -> GameState:
        case_definition = self._cases.get(case_id)
        if case_definition is None:
            raise CaseNotFound(case_id)

        game_id = uuid.uuid4().hex
        state = new_game_state(case_definition, game_id)
        self._games[game_id] = state
        logger.info("Game created: game_id=%s, case_id=%s", game_id, case_id)
        return state

    def get(self, game_id: str) -> Optional[GameState]:
        return self._games.get(game_id)

    def put(self, game_id: str, state: GameState) -> None:
        self._games[game_id] = state

    def list_games(self) -> List[str]:
        return list(self._games)
