"""
response_parser.py
==================
Extracts NPC dialogue and a proposed StateChange from the oracle's free text.

Expected format (see prompt_layers.output_format):

    <dialogue>In-character reply</dialogue>
    <state_changes>{"new_clues": [], "trust_change": {}, ...}</state_changes>

Parsing never raises. Malformed JSON yields an empty delta; a missing
dialogue block falls back to the whole text with the state block stripped,
trading strictness for availability with oracles that ignore the format.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from pydantic import ValidationError

from models import StateChange, StateChangePayload

logger = logging.getLogger("shadows.response_parser")

_DIALOGUE_RE      = re.compile(r"<dialogue>(.*?)</dialogue>", re.DOTALL)
_STATE_RE         = re.compile(r"<state_changes>(.*?)</state_changes>", re.DOTALL)
_DIALOGUE_TAG_RE  = re.compile(r"</?dialogue>")
_JSON_FENCE_RE    = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


@dataclass(frozen=True)
class ParsedResponse:
    dialogue:      str
    state_changes: StateChange
    raw:           str


def _parse_state_block(block: str) -> StateChange:
    """Parse the inside of a <state_changes> block; empty delta on any failure."""
    text = block.strip()
    fenced = _JSON_FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1)

    try:
        data = json.loads(text)
        if not isinstance(data, dict):
            raise TypeError(f"expected a JSON object, got {type(data).__name__}")
        return StateChangePayload(**data).to_state_change()
    except (json.JSONDecodeError, TypeError, ValidationError) as exc:
        logger.warning(
            "Malformed state_changes block ignored: %s. Block (first 200 chars): %r",
            exc,
            text[:200],
        )
        return StateChange()


def parse_response(raw: str) -> ParsedResponse:
    """
    Split raw oracle output into dialogue and proposed state changes.

    Args:
        raw: The oracle's full reply.

    Returns:
        ParsedResponse. Worst case: all of the text as dialogue, empty delta.
    """
    state_match = _STATE_RE.search(raw)
    state_changes = _parse_state_block(state_match.group(1)) if state_match else StateChange()

    dialogue_match = _DIALOGUE_RE.search(raw)
    if dialogue_match:
        dialogue = dialogue_match.group(1).strip()
    else:
        dialogue = _DIALOGUE_TAG_RE.sub("", _STATE_RE.sub("", raw)).strip()

    return ParsedResponse(dialogue=dialogue, state_changes=state_changes, raw=raw)
