"""
cli.py
======
Command-line interface for the Shadows narrative state engine.

Provides a text-based game loop for development and testing. All game logic
is delegated to GameManager; this module only handles I/O.

Usage:
    python cli.py [case_id]          (default: missing-heiress)

Commands during play:
    /cases                               — list available cases
    /npcs                                — list NPCs, their location and trust
    /talk <npc_id>                       — address a specific NPC
    /move <location_id>                  — travel to another location
    /status                              — turn, location, exits, relationships
    /clues                               — discovered clues
    /portrait <npc_id>                   — render the NPC's portrait to a PNG
    /accuse <npc_id> | motive | method | reasoning
                                         — make a formal accusation
    /quit                                — exit the game

Any other input is said to the current NPC.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Optional

from dotenv import load_dotenv

from case_data import CASES
from errors import MysteryEngineError, NotFoundError
from game_engine import GameManager
from image_service import ImageService
from store import InMemoryGameStore

DEFAULT_CASE_ID = "missing-heiress"


def _print_status(manager: GameManager, game_id: str) -> None:
    state    = manager.get_state(game_id)
    location = state.location(state.current_location_id)
    exits = [
        f"{loc.id}{'' if loc.unlocked else ' (locked)'}"
        for loc in state.locations
        if location and loc.id in location.connected_location_ids
    ]
    memory = state.narrative_memory
    print(f"  Turn        : {state.turn}")
    print(f"  Location    : {location.name if location else state.current_location_id}")
    print(f"  Exits       : {', '.join(exits) or 'none'}")
    print(f"  Clues found : {len(state.discovered_clues())}/{len(state.clues)}")
    if memory is not None:
        print(f"  Trusted     : {', '.join(memory.trusted_npcs) or '-'}")
        print(f"  Antagonized : {', '.join(memory.antagonized_npcs) or '-'}")
    print(f"  Solved      : {state.solved}")


async def run_cli(case_id: str = DEFAULT_CASE_ID) -> None:
    """
    Main CLI game loop.

    Creates a game for ``case_id``, prints the briefing, then processes
    player input until the case is solved or the player quits. A missing
    GROQ_API_KEY does not stop the loop: NPCs answer with placeholder lines.
    """
    manager = GameManager(InMemoryGameStore(CASES))
    images  = ImageService()

    try:
        state = await manager.new_game(case_id)
    except NotFoundError as exc:
        print(f"Error: {exc}. Available cases: {', '.join(CASES)}")
        return

    game_id = state.game_id
    case    = CASES[case_id]
    target_npc_id: Optional[str] = None

    # --- Case briefing banner ---
    print("\n" + "=" * 60)
    print(f"   SHADOWS: {case.title.upper()}")
    print("=" * 60)
    print(f"\nSETTING    : {case.setting}")
    print(f"ATMOSPHERE : {case.atmosphere}")
    print(f"\n{case.synopsis}")
    print("\nCommands: /npcs, /talk <id>, /move <id>, /status, /clues, /accuse, /quit")
    print("-" * 60)

    while True:
        state = manager.get_state(game_id)
        if state.solved:
            print("\nThe case is closed. Thanks for playing!")
            break

        listener   = state.npc(target_npc_id) if target_npc_id else None
        user_input = (await asyncio.to_thread(
            input,
            f"\n[Turn {state.turn}] [You → {listener.name if listener else 'whoever is here'}]: ",
        )).strip()

        if not user_input:
            continue

        lower = user_input.lower()

        try:
            # ---- Command: quit ----
            if lower in {"/quit", "quit", "exit"}:
                print("Thanks for playing!")
                break

            # ---- Command: list cases ----
            if lower == "/cases":
                for c in manager.list_cases():
                    print(f"  {c.id} – {c.title} ({c.setting})")
                continue

            # ---- Command: list NPCs ----
            if lower == "/npcs":
                for npc in state.npcs:
                    print(
                        f"  {npc.id} – {npc.name}, {npc.role} "
                        f"[at {npc.location_id}, trust {npc.trust_level}, {npc.mood}]"
                    )
                continue

            # ---- Command: status ----
            if lower == "/status":
                _print_status(manager, game_id)
                continue

            # ---- Command: clues ----
            if lower == "/clues":
                found = state.discovered_clues()
                if not found:
                    print("  No clues yet.")
                for clue in found:
                    print(f"  [turn {clue.discovered_at_turn}] {clue.name}: {clue.description}")
                continue

            # ---- Command: switch NPC ----
            if lower.startswith("/talk"):
                parts = user_input.split()
                if len(parts) < 2:
                    print("Usage: /talk <npc_id>")
                    continue
                if state.npc(parts[1]) is None:
                    print(f"Unknown NPC: {parts[1]}. Valid IDs: {[n.id for n in state.npcs]}")
                    continue
                target_npc_id = parts[1]
                print(f"Now talking to: {state.npc(target_npc_id).name}")
                continue

            # ---- Command: move ----
            if lower.startswith("/move"):
                parts = user_input.split()
                if len(parts) < 2:
                    print("Usage: /move <location_id>")
                    continue
                moved = await manager.move(game_id, parts[1])
                print(f"\n{moved.chat_history[-1].content}")
                target_npc_id = None
                continue

            # ---- Command: portrait ----
            if lower.startswith("/portrait"):
                parts = user_input.split()
                if len(parts) < 2 or state.npc(parts[1]) is None:
                    print("Usage: /portrait <npc_id>")
                    continue
                npc   = state.npc(parts[1])
                image = await images.npc_portrait(case_id, npc.id, npc.mood)
                path  = f"{npc.id}-{image.cache_key}.png"
                with open(path, "wb") as fh:
                    fh.write(image.data)
                print(f"Portrait saved to {path}")
                continue

            # ---- Command: accuse ----
            if lower.startswith("/accuse"):
                parts = [p.strip() for p in user_input[len("/accuse"):].split("|")]
                if len(parts) < 4 or not all(parts[:4]):
                    print("Usage: /accuse <npc_id> | motive | method | reasoning")
                    continue
                suspect_id, motive, method, reasoning = parts[:4]
                outcome = await manager.accuse(game_id, suspect_id, motive, method, reasoning)
                if outcome.success:
                    print(f"\n{outcome.resolution}")
                    print("\n🎉 CASE SOLVED!")
                else:
                    print(f"\n{outcome.feedback}")
                    if outcome.threshold is not None:
                        print(
                            f"  Coherence {outcome.coherence_score} / needed {outcome.threshold}"
                        )
                    print("❌ Not yet. Keep investigating.")
                continue

            # ---- Normal conversation ----
            result = await manager.chat(game_id, user_input, target_npc_id)
            speaker = manager.get_state(game_id).npc(result.message.npc_id or "")
            print(f"\n[{speaker.name if speaker else 'Someone'}]: {result.dialogue}")
            for clue_id in result.state_changes.new_clues or ():
                clue = manager.get_state(game_id).clue(clue_id)
                print(f"  ★ New clue: {clue.name if clue else clue_id}")

        except MysteryEngineError as exc:
            print(f"  {exc}")


if __name__ == "__main__":
    # Configure logging at the entry point so all shadows.* loggers emit to
    # stderr. Swap StreamHandler for a FileHandler here to redirect logs to
    # disk without touching any other module.
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    asyncio.run(run_cli(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_CASE_ID))
