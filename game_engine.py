"""
game_engine.py
==============
Turn orchestration for the Shadows narrative state engine.

Contains:
  GameManager — the single orchestrating class that wires the store, the
                oracle, the prompt layers, the parser, the coherence guard
                and the reducer, and exposes the turn API consumed by the
                CLI (cli.py) or any transport layer.

Public API summary:
    manager = GameManager(InMemoryGameStore(CASES))
    await manager.new_game(case_id)                        → GameState
    manager.get_state(game_id)                             → GameState
    manager.list_cases()                                   → List[CaseDefinition]
    await manager.chat(game_id, message, target_npc_id)    → ChatResult
    await manager.move(game_id, location_id)               → GameState
    await manager.accuse(game_id, npc_id, motive, method, reasoning)
                                                           → AccusationOutcome

One chat turn:
    player message → system prompt + bounded window → oracle → parse
    → coherence guard → sanitized delta → reducer actions → one store.put

Turns for the same game id are serialised with a per-id asyncio.Lock;
different games proceed concurrently. Each turn builds the next state
locally and commits it once, so an oracle failure or timeout can never leave
a half-applied turn behind.

Logging
-------
Configure log level and destination once at your entry point (see cli.py).
The logger name for this module is ``shadows.game_engine``.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from accusation_evaluator import (
    ParseFailurePolicy,
    evaluate_accusation,
    failure_feedback,
    generate_resolution,
    judge_fixed_solution,
)
from agents import AgnoGroqOracle
from case_data import CASES
from coherence_guard import validate_state_changes
from config import GAME_CONFIG, MODEL_CONFIG, ORACLE_CONFIG, THEORY_TRIGGERS
from conversation_window import build_conversation_window, summarize_trimmed_history
from errors import (
    CaseClosed,
    CaseNotFound,
    GameNotFound,
    InvalidMove,
    LocationNotFound,
    NobodyHere,
    NpcNotFound,
    OracleUnavailable,
)
from models import (
    Accusation,
    AccusationResult,
    CaseDefinition,
    ChatMessage,
    EmergentCase,
    EstablishedFact,
    GameState,
    Npc,
    StateChange,
    is_emergent,
)
from oracle import Oracle
from prompt_layers import build_system_prompt
from reducer import (
    AddMessage,
    EstablishFact,
    IncrementTurn,
    IntroduceNpc,
    MoveLocation,
    RecordTheory,
    ShiftRelationship,
    SolveCase,
    UpdateSummary,
    apply_actions,
    state_change_to_actions,
)
from response_parser import parse_response
from scoring import calculate_dynamic_threshold
from store import GameStore

logger = logging.getLogger("shadows.game_engine")


# ---------------------------------------------------------------------------
# Turn results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChatResult:
    """
    Outcome of one chat turn.

    Attributes:
        dialogue:      What the NPC said (or the placeholder line).
        state_changes: The sanitized delta that was applied.
        message:       The NPC ChatMessage appended to history.
        violations:    Everything the coherence guard rejected or altered.
    """

    dialogue:      str
    state_changes: StateChange
    message:       ChatMessage
    violations:    Tuple[str, ...] = ()


@dataclass(frozen=True)
class AccusationOutcome:
    success:             bool
    resolution:          Optional[str] = None
    feedback:            Optional[str] = None
    coherence_score:     Optional[int] = None
    threshold:           Optional[int] = None
    supporting_evidence: Tuple[str, ...] = ()
    contradictions:      Tuple[str, ...] = ()
    gaps:                Tuple[str, ...] = ()


ACCUSATION_UNAVAILABLE_FEEDBACK = (
    "The room goes quiet and nobody will meet your eye. Your case will have "
    "to wait a moment; try the accusation again."
)
FIXED_SOLUTION_FAILURE_FEEDBACK = (
    "Your accusation doesn't match the evidence. Keep investigating."
)


def utility_oracle() -> Oracle:
    return AgnoGroqOracle(model_id=MODEL_CONFIG.utility_model)


# ---------------------------------------------------------------------------
# Game manager
# ---------------------------------------------------------------------------

class GameManager:
    """
    Owns the read-modify-write cycle for every game in ``store``.

    Args:
        store:                Where committed GameStates live. Only this
                              manager writes to it.
        cases:                Case registry (id → CaseDefinition).
        oracle_factory:       Builds the oracle that voices NPCs. Called
                              lazily, so a missing API key only surfaces as
                              OracleUnavailable on the first turn.
        judge_factory:        Builds the oracle that judges accusations.
                              Defaults to the Groq utility model.
        parse_failure_policy: What to do with an unparsable verdict.
    """

    def __init__(
        self,
        store: GameStore,
        cases: Mapping[str, CaseDefinition] = CASES,
        oracle_factory: Callable[[], Oracle] = AgnoGroqOracle,
        judge_factory: Callable[[], Oracle] = utility_oracle,
        parse_failure_policy: ParseFailurePolicy = ParseFailurePolicy.ACCEPT_WITH_DEFAULT_SCORE,
    ) -> None:
        self._store = store
        self._cases = cases
        self._oracle_factory = oracle_factory
        self._judge_factory = judge_factory
        self._parse_failure_policy = parse_failure_policy

        self._oracle: Optional[Oracle] = None
        self._judge: Optional[Oracle] = None
        self._locks: Dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _lock_for(self, game_id: str) -> asyncio.Lock:
        """Per-game lock, created only for games that exist. Raises GameNotFound."""
        lock = self._locks.get(game_id)
        if lock is None:
            self.get_state(game_id)
            lock = self._locks[game_id] = asyncio.Lock()
        return lock

    def _case_for(self, state: GameState) -> CaseDefinition:
        case_definition = self._cases.get(state.case_id)
        if case_definition is None:
            raise CaseNotFound(state.case_id)
        return case_definition

    def _npc_oracle(self) -> Oracle:
        if self._oracle is None:
            self._oracle = self._oracle_factory()
        return self._oracle

    def _judge_oracle(self) -> Oracle:
        if self._judge is None:
            self._judge = self._judge_factory()
        return self._judge

    def list_cases(self) -> List[CaseDefinition]:
        return list(self._cases.values())

    def get_state(self, game_id: str) -> GameState:
        """Return the last committed state. Raises GameNotFound."""
        state = self._store.get(game_id)
        if state is None:
            raise GameNotFound(game_id)
        return state

    async def new_game(self, case_id: str) -> GameState:
        """Create a game for ``case_id``. Raises CaseNotFound."""
        if case_id not in self._cases:
            raise CaseNotFound(case_id)
        return self._store.create(case_id)

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def chat(
        self,
        game_id: str,
        message: str,
        target_npc_id: Optional[str] = None,
    ) -> ChatResult:
        """
        Run one conversation turn with an NPC.

        The target is ``target_npc_id`` if given, otherwise the first NPC at
        the current location. If the oracle is unavailable or times out, the
        NPC answers with GAME_CONFIG.placeholder_dialogue and the turn still
        commits (player message, placeholder, turn increment) with no other
        state change.

        Raises:
            GameNotFound, CaseNotFound, NpcNotFound, NobodyHere.
        """
        async with self._lock_for(game_id):
            state = self.get_state(game_id)
            case_definition = self._case_for(state)
            npc = self._resolve_target(state, target_npc_id)
            turn = state.turn

            logger.info(
                "Turn %d: game=%s, npc=%s, message_chars=%d",
                turn,
                game_id,
                npc.id,
                len(message),
            )

            player_message = ChatMessage(role="player", content=message, turn=turn)
            actions: List[object] = []

            try:
                raw = await self._ask_npc(case_definition, state, npc, message)
            except OracleUnavailable as exc:
                logger.error(
                    "Oracle unavailable for game=%s, npc=%s: %s",
                    game_id,
                    npc.id,
                    exc,
                    exc_info=True,
                )
                dialogue   = GAME_CONFIG.placeholder_dialogue.format(name=npc.name)
                sanitized  = StateChange()
                violations: Tuple[str, ...] = ()
            else:
                parsed = parse_response(raw)
                guard  = validate_state_changes(
                    parsed.state_changes, case_definition, state, npc
                )
                if guard.violations:
                    logger.warning(
                        "Coherence guard caught %d violation(s) for npc=%s: %s",
                        len(guard.violations),
                        npc.id,
                        guard.violations,
                    )
                dialogue   = parsed.dialogue
                sanitized  = guard.sanitized
                violations = tuple(guard.violations)

                if not npc.introduced:
                    actions.append(IntroduceNpc(npc_id=npc.id))
                theory_npc_id = self._detect_theory(message, state, npc.id)
                if theory_npc_id is not None:
                    actions.append(
                        RecordTheory(content=message, turn=turn, suspect_npc_id=theory_npc_id)
                    )
                actions.extend(state_change_to_actions(sanitized, turn))
                actions.extend(self._memory_actions(state, npc, sanitized, turn))

            npc_message = ChatMessage(role="npc", content=dialogue, turn=turn, npc_id=npc.id)
            actions.append(AddMessage(message=player_message))
            actions.append(AddMessage(message=npc_message))
            actions.append(IncrementTurn())

            next_state = apply_actions(state, actions)
            next_state = self._refresh_summary(next_state)
            self._store.put(game_id, next_state)

            logger.info(
                "Turn %d complete: game=%s, clues=%d, violations=%d",
                turn,
                game_id,
                len(sanitized.new_clues or ()),
                len(violations),
            )
            return ChatResult(
                dialogue=dialogue,
                state_changes=sanitized,
                message=npc_message,
                violations=violations,
            )

    def _resolve_target(self, state: GameState, target_npc_id: Optional[str]) -> Npc:
        if target_npc_id is not None:
            npc = state.npc(target_npc_id)
            if npc is None:
                raise NpcNotFound(target_npc_id)
            return npc

        for npc in state.npcs:
            if npc.location_id == state.current_location_id:
                return npc
        raise NobodyHere(state.current_location_id)

    async def _ask_npc(
        self,
        case_definition: CaseDefinition,
        state: GameState,
        npc: Npc,
        message: str,
    ) -> str:
        """One dialogue call. Every failure mode surfaces as OracleUnavailable."""
        system_prompt = build_system_prompt(case_definition, state, npc)
        window = build_conversation_window(
            state.chat_history, state.conversation_summary, message
        )
        oracle = self._npc_oracle()
        try:
            return await asyncio.wait_for(
                oracle.generate(
                    system_prompt,
                    window,
                    ORACLE_CONFIG.dialogue_max_tokens,
                    ORACLE_CONFIG.dialogue_temperature,
                ),
                timeout=GAME_CONFIG.oracle_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise OracleUnavailable(
                f"Oracle timed out after {GAME_CONFIG.oracle_timeout_seconds}s"
            ) from exc

    # ------------------------------------------------------------------
    # Narrative memory
    # ------------------------------------------------------------------

    @staticmethod
    def _detect_theory(
        message: str,
        state: GameState,
        addressed_npc_id: Optional[str] = None,
    ) -> Optional[str]:
        """
        Return the NPC id a player message voices a theory about, if any.

        Needs one of THEORY_TRIGGERS and a mention of an NPC by id or by any
        part of their name. The NPC being spoken to only counts when no other
        NPC is named; otherwise the earliest mention in the message wins.
        """
        text = message.lower()
        if not any(trigger in text for trigger in THEORY_TRIGGERS):
            return None

        mentions: List[Tuple[int, str]] = []
        for npc in state.npcs:
            words = {npc.id.lower(), *(part for part in npc.name.lower().split() if len(part) > 2)}
            positions = [
                m.start()
                for word in words
                for m in re.finditer(rf"\b{re.escape(word)}\b", text)
            ]
            if positions:
                mentions.append((min(positions), npc.id))

        if not mentions:
            return None
        others = [m for m in mentions if m[1] != addressed_npc_id]
        return min(others or mentions)[1]

    @staticmethod
    def _memory_actions(
        state: GameState,
        npc: Npc,
        sanitized: StateChange,
        turn: int,
    ) -> List[object]:
        actions: List[object] = []

        for clue_id in sanitized.new_clues or ():
            clue = state.clue(clue_id)
            if clue is None:
                continue
            actions.append(
                EstablishFact(
                    fact=EstablishedFact(
                        id=f"fact-{clue_id}",
                        content=f"{npc.name} revealed: {clue.description}",
                        source_npc_id=npc.id,
                        turn=turn,
                        supporting_clue_ids=(clue_id,),
                        contradictable=False,
                    )
                )
            )

        shift = GAME_CONFIG.relationship_shift_delta
        for npc_id, delta in (sanitized.trust_change or {}).items():
            if delta >= shift:
                actions.append(ShiftRelationship(npc_id=npc_id, direction="trust"))
            elif delta <= -shift:
                actions.append(ShiftRelationship(npc_id=npc_id, direction="antagonize"))

        return actions

    @staticmethod
    def _refresh_summary(state: GameState) -> GameState:
        names = {n.id: n.name for n in state.npcs}
        summary = summarize_trimmed_history(state.chat_history, names)
        if summary and summary != state.conversation_summary:
            return apply_actions(state, [UpdateSummary(summary=summary)])
        return state

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------

    async def move(self, game_id: str, location_id: str) -> GameState:
        """
        Travel to ``location_id`` and narrate the arrival.

        Raises:
            GameNotFound, LocationNotFound, InvalidMove (location still locked).
        """
        async with self._lock_for(game_id):
            state = self.get_state(game_id)
            destination = state.location(location_id)
            if destination is None:
                raise LocationNotFound(location_id)
            if not destination.unlocked:
                raise InvalidMove(f"{destination.name} is not accessible yet.")

            narration = f"You arrive at {destination.name}. {destination.description}"
            if destination.atmosphere:
                narration += f" {destination.atmosphere}"

            next_state = apply_actions(state, [
                MoveLocation(location_id=location_id),
                AddMessage(
                    message=ChatMessage(role="narrator", content=narration, turn=state.turn)
                ),
            ])
            next_state = self._refresh_summary(next_state)
            self._store.put(game_id, next_state)

            logger.info("Game=%s moved to location=%s", game_id, location_id)
            return next_state

    # ------------------------------------------------------------------
    # Accusation
    # ------------------------------------------------------------------

    async def accuse(
        self,
        game_id: str,
        suspect_npc_id: str,
        motive: str,
        method: str,
        reasoning: str,
    ) -> AccusationOutcome:
        """
        Adjudicate a formal accusation.

        Fixed-solution cases are judged by name match against the solution.
        Emergent cases are judged by the oracle against a dynamic threshold.
        A failed accusation leaves the game open. An unreachable judge yields
        narrative feedback and changes nothing.

        Raises:
            GameNotFound, CaseNotFound, CaseClosed.
        """
        async with self._lock_for(game_id):
            state = self.get_state(game_id)
            if state.solved:
                raise CaseClosed(f"Game {game_id} is already solved.")
            case_definition = self._case_for(state)
            accusation = Accusation(
                suspect_npc_id=suspect_npc_id,
                motive=motive,
                method=method,
                reasoning=reasoning,
            )

            logger.info(
                "Accusation: game=%s, suspect=%s, emergent=%s",
                game_id,
                suspect_npc_id,
                is_emergent(case_definition),
            )

            if is_emergent(case_definition):
                outcome, actions = await self._accuse_emergent(
                    case_definition, state, accusation
                )
            else:
                outcome, actions = self._accuse_fixed(case_definition, state, accusation)

            if actions:
                self._store.put(game_id, apply_actions(state, actions))

            logger.info(
                "Accusation result: game=%s, success=%s, score=%s, threshold=%s",
                game_id,
                outcome.success,
                outcome.coherence_score,
                outcome.threshold,
            )
            return outcome

    def _accuse_fixed(
        self,
        case_definition: CaseDefinition,
        state: GameState,
        accusation: Accusation,
    ) -> Tuple[AccusationOutcome, List[object]]:
        suspect = state.npc(accusation.suspect_npc_id)
        actions: List[object] = []
        if suspect is not None:
            actions.append(self._accusation_theory(accusation, state))

        if judge_fixed_solution(case_definition, suspect):
            actions.append(SolveCase())
            return AccusationOutcome(success=True, resolution=case_definition.solution), actions

        return AccusationOutcome(success=False, feedback=FIXED_SOLUTION_FAILURE_FEEDBACK), actions

    async def _accuse_emergent(
        self,
        case_definition: EmergentCase,
        state: GameState,
        accusation: Accusation,
    ) -> Tuple[AccusationOutcome, List[object]]:
        try:
            judge = self._judge_oracle()
            result = await asyncio.wait_for(
                evaluate_accusation(
                    accusation, case_definition, state, judge, self._parse_failure_policy
                ),
                timeout=GAME_CONFIG.oracle_timeout_seconds,
            )
        except (OracleUnavailable, asyncio.TimeoutError) as exc:
            logger.error("Accusation judge unavailable: %s", exc, exc_info=True)
            return AccusationOutcome(success=False, feedback=ACCUSATION_UNAVAILABLE_FEEDBACK), []

        threshold = calculate_dynamic_threshold(
            case_definition.coherence_threshold,
            state,
            accusation,
            case_definition.suspect(accusation.suspect_npc_id),
        )

        actions: List[object] = []
        if state.npc(accusation.suspect_npc_id) is not None:
            actions.append(self._accusation_theory(accusation, state))

        if not (result.coherent and result.coherence_score >= threshold):
            return AccusationOutcome(
                success=False,
                feedback=failure_feedback(result),
                coherence_score=result.coherence_score,
                threshold=threshold,
                supporting_evidence=result.supporting_evidence,
                contradictions=result.contradictions,
                gaps=result.gaps,
            ), actions

        resolution = await self._resolution_or_fallback(
            accusation, result, case_definition, state, judge
        )
        actions.append(SolveCase())
        return AccusationOutcome(
            success=True,
            resolution=resolution,
            coherence_score=result.coherence_score,
            threshold=threshold,
            supporting_evidence=result.supporting_evidence,
        ), actions

    async def _resolution_or_fallback(
        self,
        accusation: Accusation,
        result: AccusationResult,
        case_definition: CaseDefinition,
        state: GameState,
        judge: Oracle,
    ) -> str:
        # The verdict already stands; a failed narration must not undo it.
        try:
            return await asyncio.wait_for(
                generate_resolution(accusation, result, case_definition, state, judge),
                timeout=GAME_CONFIG.oracle_timeout_seconds,
            )
        except (OracleUnavailable, asyncio.TimeoutError) as exc:
            logger.error("Resolution narration failed: %s", exc, exc_info=True)
            return result.resolution or "The truth comes out, just as you said it would."

    @staticmethod
    def _accusation_theory(accusation: Accusation, state: GameState) -> RecordTheory:
        return RecordTheory(
            content=(
                f"Accused {accusation.suspect_npc_id}: {accusation.motive}; "
                f"{accusation.method}"
            ),
            turn=state.turn,
            suspect_npc_id=accusation.suspect_npc_id,
        )
