"""
agents.py
=========
agno + Groq implementation of the Oracle capability.

Keeping the vendor adapter here rather than inside the engine means:
  - The game manager, evaluator and tests only see the Oracle protocol.
  - Model swaps require changes in exactly one file (plus config.py ids).
  - A missing key or a vendor error is translated into OracleUnavailable in
    one place, so the manager can downgrade it to placeholder dialogue.

Built here:
  build_oracle_agent() — one agno Agent per call, carrying that call's
                         system instructions and sampling parameters
  AgnoGroqOracle       — Oracle implementation wrapping the agent
"""

from __future__ import annotations

import logging
import os
from typing import Sequence

from agno.agent import Agent
from agno.models.groq import Groq

from config import MODEL_CONFIG
from errors import OracleUnavailable
from oracle import OracleMessage, render_transcript

logger = logging.getLogger("shadows.agents")


# ---------------------------------------------------------------------------
# Agent factory
# ---------------------------------------------------------------------------

def build_oracle_agent(
    instructions: str,
    model_id: str,
    max_tokens: int,
    temperature: float,
) -> Agent:
    """
    Create a single-use agent for one oracle call.

    The agent carries no memory of its own: the bounded conversation window
    is passed in with every call, so a fresh agent per call cannot leak
    context between NPCs or between games.

    Args:
        instructions: The fully assembled system prompt for this call.
        model_id:     Groq model identifier.
        max_tokens:   Completion budget.
        temperature:  Sampling temperature.

    Returns:
        An Agent ready to receive the rendered conversation.
    """
    return Agent(
        name="Shadows Oracle",
        role="Portray one character in a noir mystery, or judge a detective's accusation.",
        model=Groq(id=model_id, max_tokens=max_tokens, temperature=temperature),
        instructions=[instructions],
        markdown=False,
    )


# ---------------------------------------------------------------------------
# Oracle implementation
# ---------------------------------------------------------------------------

class AgnoGroqOracle:
    """
    Oracle backed by a Groq-hosted model through agno.

    Raises OracleUnavailable at construction when GROQ_API_KEY is missing,
    and from generate() on any vendor failure or empty reply.
    """

    def __init__(self, model_id: str = MODEL_CONFIG.npc_model) -> None:
        if not os.environ.get("GROQ_API_KEY"):
            raise OracleUnavailable("GROQ_API_KEY environment variable is not set.")
        self.model_id = model_id

    async def generate(
        self,
        system_instructions: str,
        messages: Sequence[OracleMessage],
        max_tokens: int,
        temperature: float,
    ) -> str:
        agent  = build_oracle_agent(system_instructions, self.model_id, max_tokens, temperature)
        prompt = render_transcript(messages)

        logger.debug(
            "Oracle call: model=%s, messages=%d, prompt_chars=%d",
            self.model_id,
            len(messages),
            len(prompt),
        )

        try:
            resp = await agent.arun(prompt)
        except Exception as exc:
            raise OracleUnavailable(f"Groq call failed: {exc}") from exc

        content = resp.content if hasattr(resp, "content") else str(resp)
        if not isinstance(content, str) or not content.strip():
            raise OracleUnavailable("Groq returned an empty or non-text response.")
        return content
