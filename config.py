"""
config.py
=========
Central configuration module for the Shadows narrative state engine.

All tunable constants, model identifiers, coherence limits, and accusation
threshold weights live here so they can be adjusted without touching
business logic.

Usage:
    from config import MODEL_CONFIG, GAME_CONFIG, THRESHOLD_CONFIG, THEORY_TRIGGERS
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet


# ---------------------------------------------------------------------------
# Model selection
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelConfig:
    """
    Groq model identifiers used by the oracle adapter.

    Attributes:
        npc_model:     Large, high-quality model for in-character dialogue.
        utility_model: Smaller, faster model for accusation judging, where the
                       prompt carries all the facts and only a verdict is needed.
    """
    npc_model:     str = "llama-3.3-70b-versatile"
    utility_model: str = "llama-3.1-8b-instant"


# ---------------------------------------------------------------------------
# Oracle call parameters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OracleConfig:
    """
    Token budgets and sampling temperatures per kind of oracle call.

    Evaluation runs cold so that the same accusation scores consistently;
    dialogue and resolution prose run warm.
    """
    dialogue_max_tokens:     int   = 1024
    dialogue_temperature:    float = 0.8
    evaluation_max_tokens:   int   = 1024
    evaluation_temperature:  float = 0.3
    resolution_max_tokens:   int   = 512
    resolution_temperature:  float = 0.8


# ---------------------------------------------------------------------------
# Game-loop parameters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GameConfig:
    """
    Turn-loop and context-window settings.

    Attributes:
        max_history_messages:     Window cap. Beyond this many messages the
                                  oracle only sees the pinned opening pair, the
                                  most recent cap-2 messages and the summary.
        summary_max_points:       Most bullet points kept in the running
                                  conversation summary.
        summary_snippet_chars:    Characters kept from each summarised message.
        oracle_timeout_seconds:   A dialogue call slower than this is treated
                                  as OracleUnavailable.
        placeholder_dialogue:     Shown in place of NPC dialogue when the
                                  oracle cannot be reached. ``{name}`` is filled.
        relationship_shift_delta: Absolute sanitized trust delta at which an
                                  NPC moves to the trusted / antagonized list.
        recent_theories_in_prompt: Player theories echoed in the state layer.
    """
    max_history_messages:      int = 10
    summary_max_points:        int = 12
    summary_snippet_chars:     int = 80
    oracle_timeout_seconds:    float = 30.0
    placeholder_dialogue:      str = (
        "[The line went dead] {name} falls silent, distracted by something "
        "you cannot see. Try again in a moment."
    )
    relationship_shift_delta:  int = 3
    recent_theories_in_prompt: int = 3


# ---------------------------------------------------------------------------
# Coherence guard limits
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CoherenceConfig:
    """
    Hard limits the coherence guard and reducer enforce on oracle proposals.

    Attributes:
        max_trust_delta: Largest trust change (either sign) accepted per turn.
        trust_floor:     Lowest trust level an NPC can hold.
        trust_ceiling:   Highest trust level an NPC can hold.
    """
    max_trust_delta: int = 5
    trust_floor:     int = 0
    trust_ceiling:   int = 100


# ---------------------------------------------------------------------------
# Accusation threshold parameters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ThresholdConfig:
    """
    Weights for the dynamic coherence threshold.

    Points breakdown (all applied to one running value):
        - per_clue_bonus          per discovered clue
        - supporting_clue_bonus   per discovered clue supporting the accused
        + exonerating_clue_penalty per discovered clue clearing the accused
        - theory_bonus            per prior theory naming the accused,
                                  capped at theory_bonus_cap
        - stall_bonus             per full stall_block turns past stall_start,
                                  capped at stall_bonus_cap

    The result is clamped to [floor, ceiling].

    Attributes:
        default_base:           Base threshold when a case declares none.
        evaluation_fallback_score: Score assumed when the oracle's verdict
                                   cannot be parsed and the accept policy is on.
    """
    default_base:             int = 60

    per_clue_bonus:           int = 2
    supporting_clue_bonus:    int = 5
    exonerating_clue_penalty: int = 8

    theory_bonus:             int = 3
    theory_bonus_cap:         int = 10

    stall_start:              int = 15
    stall_block:              int = 5
    stall_bonus:              int = 3
    stall_bonus_cap:          int = 15

    floor:                    int = 25
    ceiling:                  int = 85

    evaluation_fallback_score: int = 60


# ---------------------------------------------------------------------------
# Scene image generation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ImageConfig:
    """
    Hugging Face text-to-image settings for scene art.

    Attributes:
        model:             Inference model id.
        width, height:     Output size in pixels (16:9).
        cache_ttl_seconds: How long a rendered prompt is reused.
        default_style:     Key into case_data.STYLE_MODIFIERS.
    """
    model:             str = "stabilityai/stable-diffusion-xl-base-1.0"
    width:             int = 1024
    height:            int = 576
    cache_ttl_seconds: int = 24 * 60 * 60
    default_style:     str = "noir"


# ---------------------------------------------------------------------------
# Singleton instances (import-ready)
# ---------------------------------------------------------------------------

MODEL_CONFIG     = ModelConfig()
ORACLE_CONFIG    = OracleConfig()
GAME_CONFIG      = GameConfig()
COHERENCE_CONFIG = CoherenceConfig()
THRESHOLD_CONFIG = ThresholdConfig()
IMAGE_CONFIG     = ImageConfig()


# ---------------------------------------------------------------------------
# Theory trigger phrases
# ---------------------------------------------------------------------------

THEORY_TRIGGERS: FrozenSet[str] = frozenset({
    "i think", "i believe", "i suspect", "my theory", "my guess",
    "did it", "killed", "murdered", "kidnapped", "responsible",
    "guilty", "behind this", "behind it", "is lying", "was lying",
})
"""
Phrases that mark a player message as voicing a theory.

A message is only recorded as a theory when it also names an NPC; the theory
then counts toward the accusation threshold for that NPC, lowering it by at
most ThresholdConfig.theory_bonus_cap.
"""
