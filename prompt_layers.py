"""
prompt_layers.py
================
Builds the oracle's system instructions for one NPC turn.

The prompt is an ordered concatenation of seven independent layers, each a
pure function of the case, the state and the target NPC:

    1. world_frame          — stay in period, never break character
    2. case_context         — title, synopsis, setting, atmosphere
    3. npc_personality      — voice, speech patterns, backstory, mood
    4. knowledge_boundary   — per-clue UNLOCKED / LOCKED status
    5. current_game_state   — turn, location, clues, trust, narrative memory
    6. output_format        — the <dialogue>/<state_changes> contract
    7. guardrails           — absolute constraints

Order matters: the format layer assumes the boundary layer has already told
the oracle what it may reveal. Layers are joined by LAYER_SEPARATOR so token
budgets stay predictable.
"""

from __future__ import annotations

from typing import List

from config import COHERENCE_CONFIG, GAME_CONFIG
from models import CaseDefinition, GameState, Npc, is_emergent


LAYER_SEPARATOR = "\n\n---\n\n"


# ---------------------------------------------------------------------------
# Layer 1: World frame
# ---------------------------------------------------------------------------

def world_frame(case_definition: CaseDefinition) -> str:
    return (
        f"You are a character in a mystery set in: {case_definition.setting}\n"
        "You must NEVER break character. All language, references, and knowledge "
        "must be period and setting-appropriate.\n"
        "Never reference anything that would not exist in this time and place."
    )


# ---------------------------------------------------------------------------
# Layer 2: Case context
# ---------------------------------------------------------------------------

def case_context(case_definition: CaseDefinition) -> str:
    return (
        f'CASE: "{case_definition.title}"\n'
        f"SYNOPSIS: {case_definition.synopsis}\n"
        f"SETTING: {case_definition.setting}\n"
        f"ATMOSPHERE: {case_definition.atmosphere}\n\n"
        "Maintain this atmosphere in every response."
    )


# ---------------------------------------------------------------------------
# Layer 3: NPC personality
# ---------------------------------------------------------------------------

def npc_personality(npc: Npc) -> str:
    p = npc.personality
    return (
        f"You are playing {npc.name}, {npc.role}.\n"
        f"VOICE: {p.voice}\n"
        f"SPEECH PATTERNS: {'; '.join(p.speech_patterns) or 'natural'}\n"
        f"BACKSTORY: {p.backstory or 'not specified'}\n"
        f"MANNERISMS: {'; '.join(p.mannerisms) or 'none in particular'}\n"
        f"CURRENT MOOD: {npc.mood}\n\n"
        f"Stay in character as {npc.name} at all times. "
        "Your speech should reflect your voice and patterns."
    )


# ---------------------------------------------------------------------------
# Layer 4: Knowledge boundary
# ---------------------------------------------------------------------------

def knowledge_boundary(npc: Npc) -> str:
    """
    Tell the oracle exactly which clues this NPC may reveal right now.

    This is the primary lever against premature reveals; the coherence guard
    is the backstop for when the oracle ignores it.
    """
    lines: List[str] = []
    for kb in npc.knowledge_boundaries:
        if npc.trust_level >= kb.reveal_threshold:
            status = f"UNLOCKED, you may reveal: {kb.reveal_guidance}"
        else:
            gap = kb.reveal_threshold - npc.trust_level
            status = (
                f"LOCKED (trust {npc.trust_level}/{kb.reveal_threshold}, "
                f"{gap} short), deflect with: {kb.deflection_hint}"
            )
        lines.append(f'- Clue "{kb.clue_id}": {status}')

    boundaries = "\n".join(lines) if lines else "- You hold no clues of your own."
    return (
        f"KNOWLEDGE BOUNDARIES (current trust level: {npc.trust_level}/100):\n"
        f"{boundaries}\n\n"
        "You must NEVER reveal information from LOCKED clues. Use the deflection "
        "hints to redirect.\n"
        "If the player pushes, you can hint that trust must be earned, but never "
        "reveal specifics."
    )


# ---------------------------------------------------------------------------
# Layer 5: Current game state
# ---------------------------------------------------------------------------

def _narrative_memory_block(state: GameState) -> str:
    memory = state.narrative_memory
    if memory is None:
        return ""

    parts: List[str] = []
    if memory.established_facts:
        facts = "\n".join(f"- {f.content}" for f in memory.established_facts)
        parts.append(
            "ESTABLISHED FACTS (these are true; never contradict them):\n" + facts
        )

    recent = memory.player_theories[-GAME_CONFIG.recent_theories_in_prompt:]
    if recent:
        theories = "\n".join(f"- (turn {t.turn}) {t.content}" for t in recent)
        parts.append("THE DETECTIVE'S RECENT THEORIES:\n" + theories)

    return "\n\n".join(parts)


def current_game_state(state: GameState, case_definition: CaseDefinition) -> str:
    discovered = [c.name for c in state.discovered_clues()]
    location   = state.location(state.current_location_id)
    trust      = ", ".join(f"{n.name}: {n.trust_level}/100" for n in state.npcs)

    sections = [
        f"CURRENT GAME STATE (Turn {state.turn}):\n"
        f"LOCATION: {location.name if location else 'Unknown'}\n"
        f"CLUES DISCOVERED ({len(discovered)}/{len(case_definition.clues)}): "
        f"{', '.join(discovered) or 'None'}\n"
        f"NPC TRUST LEVELS: {trust}"
    ]

    memory_block = _narrative_memory_block(state)
    if memory_block:
        sections.append(memory_block)

    if state.conversation_summary:
        sections.append(f"EARLIER CONVERSATION SUMMARY:\n{state.conversation_summary}")

    return "\n\n".join(sections)


# ---------------------------------------------------------------------------
# Layer 6: Output format contract
# ---------------------------------------------------------------------------

def output_format() -> str:
    cap = COHERENCE_CONFIG.max_trust_delta
    return (
        "FORMAT your response exactly as:\n"
        "<dialogue>[In-character response]</dialogue>\n"
        '<state_changes>{"new_clues":[],"trust_change":{},"npc_mood_shift":{},'
        '"location_unlock":[]}</state_changes>\n\n'
        "state_changes keys:\n"
        "- new_clues: ids of clues you revealed THIS turn, taken only from the "
        "UNLOCKED list above\n"
        f"- trust_change: NPC id to integer delta (-{cap} to +{cap})\n"
        "- npc_mood_shift: NPC id to a new mood word\n"
        "- location_unlock: ids of locations that became accessible\n"
        "Never invent clue ids. Omit any key that did not change."
    )


# ---------------------------------------------------------------------------
# Layer 7: Guardrails
# ---------------------------------------------------------------------------

def guardrails(case_definition: CaseDefinition) -> str:
    if is_emergent(case_definition):
        secrecy = (
            "Never fabricate clues, characters, or locations that are not part "
            "of this case."
        )
    else:
        secrecy = (
            f'Never reveal the solution ("{case_definition.solution[:50]}..."). '
            "Never fabricate clues, characters, or locations."
        )
    return (
        f"RULES: {secrecy} Stay in period. Never break character or acknowledge "
        "being an AI, a model, or a game. Keep responses under 200 words. "
        "Trust changes per turn: +1 to +3 for good interactions, -1 to -5 for "
        "bad ones."
    )


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

def build_system_prompt(
    case_definition: CaseDefinition,
    state: GameState,
    target_npc: Npc,
) -> str:
    """Assemble all seven layers, in order, into one system prompt."""
    return LAYER_SEPARATOR.join([
        world_frame(case_definition),
        case_context(case_definition),
        npc_personality(target_npc),
        knowledge_boundary(target_npc),
        current_game_state(state, case_definition),
        output_format(),
        guardrails(case_definition),
    ])
