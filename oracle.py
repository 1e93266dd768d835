"""
oracle.py
=========
The capability contract the engine consumes from any text generator.

The engine is vendor-agnostic: anything with an async ``generate`` of this
shape can portray NPCs and judge accusations. The production adapter lives
in agents.py (agno + Groq); tests use a scripted fake.

Implementations must raise errors.OracleUnavailable on failure rather than
returning empty text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal, Protocol, Sequence


@dataclass(frozen=True)
class OracleMessage:
    role:    Literal["user", "assistant"]
    content: str


class Oracle(Protocol):
    async def generate(
        self,
        system_instructions: str,
        messages: Sequence[OracleMessage],
        max_tokens: int,
        temperature: float,
    ) -> str:
        ...


def render_transcript(messages: Sequence[OracleMessage]) -> str:
    """
    Flatten a bounded conversation into a single prompt string.

    Everything but the final message is rendered as prior exchanges; the
    final message is the player's latest line. Used by adapters whose
    run() takes one prompt rather than a message list.
    """
    if not messages:
        return ""

    *history, latest = messages
    lines: List[str] = []
    for msg in history:
        speaker = "Player" if msg.role == "user" else "You"
        lines.append(f"{speaker}: {msg.content}")

    prefix = (
        "PREVIOUS EXCHANGES IN THIS CONVERSATION:\n" + "\n".join(lines) + "\n\n"
        if lines
        else ""
    )
    return f"{prefix}Player's latest message:\n{latest.content}"
