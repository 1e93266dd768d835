"""
errors.py
=========
Exception taxonomy for the Shadows engine.

NotFoundError subclasses are surfaced to callers as-is. OracleUnavailable is
caught by the game manager and downgraded to narrative placeholder text.
MalformedOracleOutput never escapes the accusation evaluator; it is handled
by an explicit ParseFailurePolicy there.
"""

from __future__ import annotations


class MysteryEngineError(Exception):
    """Base class for every error raised by the engine."""


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

class NotFoundError(MysteryEngineError):
    """A referenced entity does not exist. Not retryable."""


class GameNotFound(NotFoundError):
    def __init__(self, game_id: str) -> None:
        super().__init__(f"Game not found: {game_id}")
        self.game_id = game_id


class CaseNotFound(NotFoundError):
    def __init__(self, case_id: str) -> None:
        super().__init__(f"Unknown case: {case_id}")
        self.case_id = case_id


class NpcNotFound(NotFoundError):
    def __init__(self, npc_id: str) -> None:
        super().__init__(f"NPC not found: {npc_id}")
        self.npc_id = npc_id


class LocationNotFound(NotFoundError):
    def __init__(self, location_id: str) -> None:
        super().__init__(f"Location not found: {location_id}")
        self.location_id = location_id


class NobodyHere(NotFoundError):
    """No target NPC was given and nobody is at the current location."""

    def __init__(self, location_id: str) -> None:
        super().__init__(
            f"No NPC available at {location_id}. Try moving to a location with an NPC."
        )
        self.location_id = location_id


# ---------------------------------------------------------------------------
# Oracle failures
# ---------------------------------------------------------------------------

class OracleUnavailable(MysteryEngineError):
    """Missing credentials, vendor error, empty vendor response, or timeout."""


class MalformedOracleOutput(MysteryEngineError):
    """The oracle answered, but its structured segment could not be parsed."""


class ImageUnavailable(MysteryEngineError):
    """The image backend failed or returned nothing usable."""


# ---------------------------------------------------------------------------
# Rule violations surfaced to the player
# ---------------------------------------------------------------------------

class InvalidMove(MysteryEngineError):
    """The destination exists but is not reachable yet."""


class CaseClosed(MysteryEngineError):
    """The game is already solved; no further accusations are accepted."""
