"""Shared test helpers for the Shadows engine."""

import asyncio
import json
from dataclasses import replace
from typing import Callable, List, Optional, Sequence, Tuple

from case_data import CASES, GIN_JOINT_BLUES, MISSING_HEIRESS
from errors import OracleUnavailable
from game_engine import GameManager
from models import ChatMessage, GameState
from oracle import OracleMessage
from reducer import DiscoverClue, apply_actions
from store import InMemoryGameStore, new_game_state


class ScriptedOracle:
    """Oracle fake that replays canned replies in order.

    A reply that is an Exception instance is raised instead of returned.
    Every call is recorded in ``calls`` as
    (system_instructions, messages, max_tokens, temperature).
    """

    def __init__(self, *replies, delay: float = 0.0) -> None:
        self.replies = list(replies)
        self.delay = delay
        self.calls: List[Tuple[str, List[OracleMessage], int, float]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def generate(
        self,
        system_instructions: str,
        messages: Sequence[OracleMessage],
        max_tokens: int,
        temperature: float,
    ) -> str:
        self.calls.append((system_instructions, list(messages), max_tokens, temperature))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if not self.replies:
                raise OracleUnavailable("script exhausted")
            reply = self.replies.pop(0)
            if isinstance(reply, Exception):
                raise reply
            return reply
        finally:
            self.in_flight -= 1


def npc_reply(dialogue: str, **changes) -> str:
    """Format an oracle reply the way the output-format layer asks for."""
    return f"<dialogue>{dialogue}</dialogue>\n<state_changes>{json.dumps(changes)}</state_changes>"


def verdict(**fields) -> str:
    return f"<evaluation>{json.dumps(fields)}</evaluation>"


def heiress_state(**trust) -> GameState:
    """Fresh Missing Heiress state, with optional per-NPC trust overrides."""
    state = new_game_state(MISSING_HEIRESS, "test-game")
    if trust:
        state = replace(
            state,
            npcs=tuple(
                replace(n, trust_level=trust[n.id]) if n.id in trust else n
                for n in state.npcs
            ),
        )
    return state


def gin_joint_state() -> GameState:
    return new_game_state(GIN_JOINT_BLUES, "test-gin")


def with_discovered(state: GameState, *clue_ids: str, turn: int = 1) -> GameState:
    return apply_actions(state, [DiscoverClue(clue_id=c, turn=turn) for c in clue_ids])


def make_history(count: int) -> List[ChatMessage]:
    """Alternating player / npc messages with distinguishable content."""
    history = []
    for i in range(count):
        role = "player" if i % 2 == 0 else "npc"
        history.append(
            ChatMessage(
                role=role,
                content=f"message {i}",
                turn=i // 2,
                npc_id=None if role == "player" else "harold",
            )
        )
    return history


def make_manager(
    oracle: Optional[ScriptedOracle] = None,
    judge: Optional[ScriptedOracle] = None,
    oracle_factory: Optional[Callable[[], object]] = None,
    **kwargs,
) -> Tuple[GameManager, InMemoryGameStore]:
    """GameManager over an in-memory store, wired to scripted oracles."""
    store = InMemoryGameStore(CASES)
    npc_oracle = oracle or ScriptedOracle()
    judge_oracle = judge or ScriptedOracle()
    manager = GameManager(
        store,
        CASES,
        oracle_factory=oracle_factory or (lambda: npc_oracle),
        judge_factory=lambda: judge_oracle,
        **kwargs,
    )
    return manager, store
