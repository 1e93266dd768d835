"""
conversation_window.py
======================
Bounds the conversation history sent to the oracle.

Strategy:
  - The first two messages are always pinned verbatim; they set the tone
    and the contract of the scene.
  - Beyond GAME_CONFIG.max_history_messages, only the most recent cap-2
    messages follow the pinned pair, and the running conversation summary is
    injected up front as a synthetic exchange the NPC has acknowledged.
  - The player's current message always comes last.

The window is rebuilt from the full history on every call.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from config import GAME_CONFIG
from models import ChatMessage
from oracle import OracleMessage


SUMMARY_ACK = "[Understood, continuing from where we left off.]"


def _to_oracle(message: ChatMessage) -> OracleMessage:
    return OracleMessage(
        role="user" if message.role == "player" else "assistant",
        content=message.content,
    )


def build_conversation_window(
    chat_history: Sequence[ChatMessage],
    conversation_summary: str,
    current_message: str,
) -> List[OracleMessage]:
    """
    Build the ordered, bounded message list for one oracle call.

    Order: [summary pseudo-exchange] → [pinned opening] → [recent slice]
    → [current message].

    Args:
        chat_history:         Full history, oldest first. Should not yet
                              contain ``current_message``.
        conversation_summary: Running summary; only used once the history
                              exceeds the cap.
        current_message:      The player's message for this turn.

    Returns:
        List of OracleMessage, user/assistant roles only.
    """
    cap = GAME_CONFIG.max_history_messages
    messages: List[OracleMessage] = []

    trimmed = len(chat_history) > cap
    if trimmed and conversation_summary:
        messages.append(
            OracleMessage(
                role="user",
                content=f"[Earlier conversation summary: {conversation_summary}]",
            )
        )
        messages.append(OracleMessage(role="assistant", content=SUMMARY_ACK))

    pinned = list(chat_history[:2])
    recent = list(chat_history[-(cap - 2):]) if trimmed else list(chat_history[2:])

    messages.extend(_to_oracle(m) for m in pinned + recent)
    messages.append(OracleMessage(role="user", content=current_message))
    return messages


def trimmed_messages(chat_history: Sequence[ChatMessage]) -> List[ChatMessage]:
    """Messages that sit between the pinned pair and the recent slice."""
    cap = GAME_CONFIG.max_history_messages
    if len(chat_history) <= cap:
        return []
    return list(chat_history[2:-(cap - 2)])


def summarize_trimmed_history(
    chat_history: Sequence[ChatMessage],
    npc_names: Dict[str, str],
) -> str:
    """
    Condense the messages that no longer fit the window into bullet points.

    Deterministic and oracle-free: each trimmed message becomes one line
    naming the speaker and the first few words. Only the newest
    GAME_CONFIG.summary_max_points lines are kept.

    Args:
        chat_history: Full history, oldest first.
        npc_names:    NPC id → display name, for labelling NPC lines.

    Returns:
        The summary text, or "" when nothing has been trimmed yet.
    """
    cfg = GAME_CONFIG
    points: List[str] = []

    for msg in trimmed_messages(chat_history):
        snippet = msg.content[: cfg.summary_snippet_chars]
        if len(msg.content) > cfg.summary_snippet_chars:
            snippet += "..."
        if msg.role == "player":
            points.append(f"- Turn {msg.turn}: the detective asked '{snippet}'")
        elif msg.role == "npc":
            speaker = npc_names.get(msg.npc_id or "", "Someone")
            points.append(f"- Turn {msg.turn}: {speaker} replied '{snippet}'")
        else:
            points.append(f"- Turn {msg.turn}: {snippet}")

    return "\n".join(points[-cfg.summary_max_points:])
