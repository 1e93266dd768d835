"""
accusation_evaluator.py
=======================
End-of-game adjudication.

Two modes, selected by the case variant:
  - FixedSolutionCase: the accusation succeeds iff the accused NPC's name
    appears (case-insensitively) in the authored solution.
  - EmergentCase: the oracle judges whether the accusation is coherent with
    the clues the player actually found and the facts established so far.
    The verdict is compared against scoring.calculate_dynamic_threshold().

Unparsable verdicts are handled by an explicit ParseFailurePolicy. The
default, ACCEPT_WITH_DEFAULT_SCORE, treats the accusation as coherent with a
moderate score so a formatting slip by the oracle does not fail the player;
the threshold still applies.
"""

from __future__ import annotations

import enum
import json
import logging
import re
from typing import Iterable, List, Optional

from pydantic import ValidationError

from config import ORACLE_CONFIG, THRESHOLD_CONFIG
from errors import MalformedOracleOutput
from models import (
    Accusation,
    AccusationResult,
    CaseDefinition,
    CoherenceEvaluation,
    EmergentCase,
    FixedSolutionCase,
    GameState,
    Npc,
)
from oracle import Oracle, OracleMessage

logger = logging.getLogger("shadows.accusation_evaluator")


class ParseFailurePolicy(enum.Enum):
    """What to do when the oracle's verdict cannot be parsed."""

    ACCEPT_WITH_DEFAULT_SCORE = "accept_with_default_score"
    REJECT = "reject"


# ---------------------------------------------------------------------------
# Oracle instructions
# ---------------------------------------------------------------------------

EVALUATOR_INSTRUCTIONS = """
You are a narrative coherence evaluator for a mystery game.

Your job is to assess whether a player's accusation is COHERENT with the
evidence they have gathered. This is NOT about matching a predetermined
answer; it is about narrative logic.

An accusation is coherent if:
1. The evidence supports the suspect having means, motive, and opportunity.
2. There are no major contradictions with established facts.
3. The reasoning follows logically from the clues.

Be GENEROUS with coherence. Mystery stories work when player theories become
truth. Only reject accusations that are truly unsupported or contradicted.

OUTPUT FORMAT (use exactly, nothing before or after):
<evaluation>
{
  "coherent": true,
  "coherence_score": 0,
  "supporting_evidence": ["evidence point"],
  "contradictions": ["contradiction, if any"],
  "gaps": ["gap in reasoning, if any"],
  "resolution": "If coherent, 2-3 sentences on how this accusation becomes the truth"
}
</evaluation>
coherence_score is an integer from 0 to 100.
"""

RESOLUTION_INSTRUCTIONS = """
You are a noir mystery writer crafting the final revelation scene.
Write atmospheric, satisfying conclusions that honour the player's detective
work. Stay in the period and setting. Be dramatic but not overwrought.
Return only the prose.
"""


# ---------------------------------------------------------------------------
# Fixed-solution mode
# ---------------------------------------------------------------------------

def judge_fixed_solution(case_definition: FixedSolutionCase, suspect: Optional[Npc]) -> bool:
    """True iff the accused NPC's name is a case-insensitive substring of the solution."""
    if suspect is None or not suspect.name:
        return False
    return suspect.name.lower() in case_definition.solution.lower()


# ---------------------------------------------------------------------------
# Emergent mode: prompt
# ---------------------------------------------------------------------------

def _bullets(items: Iterable[str], empty: str) -> str:
    lines = [f"- {item}" for item in items]
    return "\n".join(lines) if lines else empty


def build_evaluation_prompt(
    accusation: Accusation,
    suspect_name: str,
    case_definition: EmergentCase,
    state: GameState,
) -> str:
    clues = _bullets(
        (f"{c.name}: {c.description}" for c in state.discovered_clues()),
        "(No clues discovered)",
    )
    facts = _bullets(
        (f.content for f in state.narrative_memory.established_facts)
        if state.narrative_memory
        else (),
        "(No facts established yet)",
    )

    suspect_info = case_definition.suspect(accusation.suspect_npc_id)
    motives = ", ".join(suspect_info.possible_motives) if suspect_info else "unknown"
    methods = ", ".join(suspect_info.possible_methods) if suspect_info else "unknown"

    return (
        f"CASE: {case_definition.title}\n"
        f"SETTING: {case_definition.setting}\n\n"
        f"PLAYER'S ACCUSATION:\n"
        f"- Suspect: {suspect_name}\n"
        f"- Motive: {accusation.motive}\n"
        f"- Method: {accusation.method}\n"
        f"- Reasoning: {accusation.reasoning}\n\n"
        f"DISCOVERED CLUES:\n{clues}\n\n"
        f"ESTABLISHED FACTS (from NPC conversations):\n{facts}\n\n"
        f"SUSPECT'S POSSIBLE MOTIVES (per case design): {motives}\n"
        f"SUSPECT'S POSSIBLE METHODS (per case design): {methods}\n\n"
        "Evaluate whether this accusation is coherent with the evidence."
    )


# ---------------------------------------------------------------------------
# Emergent mode: verdict parsing
# ---------------------------------------------------------------------------

_EVALUATION_RE = re.compile(r"<evaluation>(.*?)</evaluation>", re.DOTALL)
_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
_CAMEL_RE      = re.compile(r"(?<!^)(?=[A-Z])")


def _snake_keys(data: dict) -> dict:
    """The oracle sometimes answers in camelCase; normalise to snake_case."""
    return {_CAMEL_RE.sub("_", str(k)).lower(): v for k, v in data.items()}


def _parse_verdict(content: str) -> AccusationResult:
    """
    Parse the oracle's verdict. Raises MalformedOracleOutput only when no
    JSON object can be decoded; a decoded object is coerced field by field.
    """
    match = _EVALUATION_RE.search(content) or _JSON_FENCE_RE.search(content)
    if not match:
        raise MalformedOracleOutput("no <evaluation> block in oracle output")

    try:
        data = json.loads(match.group(1).strip())
        if not isinstance(data, dict):
            raise TypeError(f"expected a JSON object, got {type(data).__name__}")
        return CoherenceEvaluation(**_snake_keys(data)).to_result()
    except (json.JSONDecodeError, TypeError, ValidationError) as exc:
        raise MalformedOracleOutput(f"unparsable evaluation block: {exc}") from exc


def parse_evaluation_response(
    content: str,
    suspect_name: str,
    policy: ParseFailurePolicy = ParseFailurePolicy.ACCEPT_WITH_DEFAULT_SCORE,
) -> AccusationResult:
    """
    Parse the oracle's verdict, applying ``policy`` when it is unparsable.

    Args:
        content:      Raw oracle output.
        suspect_name: Display name of the accused, used in fallback prose.
        policy:       ParseFailurePolicy for malformed output.

    Returns:
        AccusationResult. Never raises.
    """
    try:
        return _parse_verdict(content)
    except MalformedOracleOutput as exc:
        logger.warning(
            "Accusation verdict unparsable (%s); applying policy=%s. "
            "Raw (first 300 chars): %r",
            exc,
            policy.value,
            content[:300],
        )

    if policy is ParseFailurePolicy.REJECT:
        return AccusationResult(
            coherent=False,
            coherence_score=0,
            gaps=("The evaluation could not be read.",),
        )

    return AccusationResult(
        coherent=True,
        coherence_score=THRESHOLD_CONFIG.evaluation_fallback_score,
        supporting_evidence=("Evaluation could not be parsed; accepted by default.",),
        gaps=("Full evaluation unavailable.",),
        resolution=f"{suspect_name} was indeed responsible. The truth emerges.",
    )


# ---------------------------------------------------------------------------
# Emergent mode: oracle calls
# ---------------------------------------------------------------------------

async def evaluate_accusation(
    accusation: Accusation,
    case_definition: EmergentCase,
    state: GameState,
    oracle: Oracle,
    policy: ParseFailurePolicy = ParseFailurePolicy.ACCEPT_WITH_DEFAULT_SCORE,
) -> AccusationResult:
    """
    Ask the oracle whether ``accusation`` is coherent with the evidence.

    An accused id that is not an NPC of this game is rejected without an
    oracle call. OracleUnavailable propagates to the caller.
    """
    suspect = state.npc(accusation.suspect_npc_id)
    if suspect is None:
        return AccusationResult(
            coherent=False,
            coherence_score=0,
            contradictions=(f"Unknown suspect: {accusation.suspect_npc_id}",),
        )

    prompt = build_evaluation_prompt(accusation, suspect.name, case_definition, state)
    logger.info(
        "Evaluating accusation: suspect=%s, clues_found=%d",
        suspect.id,
        len(state.discovered_clues()),
    )

    content = await oracle.generate(
        EVALUATOR_INSTRUCTIONS,
        [OracleMessage(role="user", content=prompt)],
        ORACLE_CONFIG.evaluation_max_tokens,
        ORACLE_CONFIG.evaluation_temperature,
    )
    return parse_evaluation_response(content, suspect.name, policy)


async def generate_resolution(
    accusation: Accusation,
    result: AccusationResult,
    case_definition: CaseDefinition,
    state: GameState,
    oracle: Oracle,
) -> str:
    """Narrate the closing scene in which the accepted accusation becomes the truth."""
    suspect = state.npc(accusation.suspect_npc_id)
    evidence = _bullets(result.supporting_evidence, "- (the detective's instincts)")
    clues = ", ".join(c.name for c in state.discovered_clues()) or "none"

    prompt = (
        "Write a satisfying 3-4 paragraph narrative resolution for this mystery.\n\n"
        f"CASE: {case_definition.title}\n"
        f"SETTING: {case_definition.setting}\n"
        f"ATMOSPHERE: {case_definition.atmosphere}\n\n"
        "THE ACCUSATION (now truth):\n"
        f"- Culprit: {suspect.name if suspect else accusation.suspect_npc_id}\n"
        f"- Motive: {accusation.motive}\n"
        f"- Method: {accusation.method}\n"
        f"- Player's reasoning: {accusation.reasoning}\n\n"
        f"KEY EVIDENCE THAT SUPPORTED THIS:\n{evidence}\n\n"
        f"CLUES THE DETECTIVE FOUND: {clues}\n\n"
        "Make the player feel like a brilliant detective. Weave in the specific "
        "clues they discovered. End with a sense of closure."
    )

    content = await oracle.generate(
        RESOLUTION_INSTRUCTIONS,
        [OracleMessage(role="user", content=prompt)],
        ORACLE_CONFIG.resolution_max_tokens,
        ORACLE_CONFIG.resolution_temperature,
    )
    return content.strip()


def failure_feedback(result: AccusationResult) -> str:
    """One or two sentences telling the player why the accusation did not stick."""
    parts: List[str] = []
    if result.contradictions:
        parts.append(f"Your theory contradicts the evidence: {result.contradictions[0]}")
    if result.gaps:
        parts.append(f"There are gaps in your reasoning: {result.gaps[0]}")
    if not parts:
        parts.append("You need more evidence to support this accusation.")
    return " ".join(parts)
