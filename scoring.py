"""
scoring.py
==========
Deterministic, side-effect-free accusation scoring.

Extracted from the evaluator so the dynamic threshold can be unit-tested
independently and tuned by changing ThresholdConfig values in config.py
without touching any oracle or game-manager code.
"""

from __future__ import annotations

from typing import Optional

from config import THRESHOLD_CONFIG
from models import Accusation, GameState, Suspect


def calculate_dynamic_threshold(
    base_threshold: int,
    state: GameState,
    accusation: Accusation,
    suspect: Optional[Suspect] = None,
) -> int:
    """
    Compute how coherent an accusation must be to succeed, in [25, 85].

    Adjustments (all applied to the same running value):
        every discovered clue                  → -per_clue_bonus         (default: -2)
        discovered clue supporting the accused → -supporting_clue_bonus  (default: -5)
        discovered clue exonerating them       → +exonerating_clue_penalty (default: +8)
        prior theory naming the accused        → -theory_bonus each, capped at
                                                 -theory_bonus_cap (default: -3, max -10)
        turns past stall_start                 → -stall_bonus per full stall_block,
                                                 capped at -stall_bonus_cap
                                                 (default: -3 per 5 turns past 15, max -15)

    The result is clamped to [floor, ceiling]: a case can neither be cheesed
    nor made impossible.

    Args:
        base_threshold: The case's coherence_threshold (typically 55-70).
        state:          Current game state.
        accusation:     The player's accusation.
        suspect:        The Suspect entry for the accused, if the case has one.

    Returns:
        Integer threshold in [floor, ceiling].

    Examples:
        base 60, 3 clues found, nothing else → 54
        base 60, 2 clues found, both supporting the accused → 60 - 4 - 10 = 46
    """
    cfg = THRESHOLD_CONFIG
    threshold = base_threshold

    # --- Evidence volume ---
    threshold -= len(state.discovered_clues()) * cfg.per_clue_bonus

    # --- Suspect-specific evidence ---
    if suspect is not None:
        supporting = sum(1 for cid in suspect.supporting_clue_ids if state.is_discovered(cid))
        exonerating = sum(1 for cid in suspect.exonerating_clue_ids if state.is_discovered(cid))
        threshold -= supporting * cfg.supporting_clue_bonus
        threshold += exonerating * cfg.exonerating_clue_penalty

    # --- Theory consistency ---
    theories = state.narrative_memory.player_theories if state.narrative_memory else ()
    prior = sum(1 for t in theories if t.suspect_npc_id == accusation.suspect_npc_id)
    threshold -= min(prior * cfg.theory_bonus, cfg.theory_bonus_cap)

    # --- Anti-frustration ---
    if state.turn > cfg.stall_start:
        blocks = (state.turn - cfg.stall_start) // cfg.stall_block
        threshold -= min(blocks * cfg.stall_bonus, cfg.stall_bonus_cap)

    return max(cfg.floor, min(cfg.ceiling, threshold))
