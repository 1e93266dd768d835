"""
case_data.py
============
Authored narrative content: every case the engine can run, plus the visual
anchors the image service injects into scene prompts.

Centralising story data here means you can add or swap a mystery without
touching the reducer, the guard, the prompt layers, or the game manager.

To create a new case:
    1. Build an EmergentCase (suspects + coherence threshold) or a
       FixedSolutionCase (one solution string).
    2. Give every clue a source and, where an NPC should gate it, a matching
       KnowledgeBoundary on that NPC.
    3. Register it in CASES under its id.
"""

from __future__ import annotations

from typing import Dict, List

from models import (
    CaseDefinition,
    Clue,
    ClueConnection,
    EmergentCase,
    FixedSolutionCase,
    KnowledgeBoundary,
    Location,
    Npc,
    NpcPersonality,
    NpcRelationship,
    Suspect,
)


# ---------------------------------------------------------------------------
# The Missing Heiress (emergent)
# ---------------------------------------------------------------------------

_HEIRESS_NPCS = (
    Npc(
        id="harold",
        name="Harold Ashworth",
        role="shipping magnate and Vivian's father",
        location_id="mansion",
        personality=NpcPersonality(
            voice="Clipped, cold, used to being obeyed.",
            speech_patterns=(
                "Answers questions with questions",
                "Refers to his daughter as 'the girl' when angry",
            ),
            backstory=(
                "Built Ashworth Shipping from one leaky tug. Lost his wife "
                "young and raised Vivian with money instead of warmth."
            ),
            mannerisms=("Swirls his whiskey", "Checks his pocket watch"),
        ),
        knowledge_boundaries=(
            KnowledgeBoundary(
                clue_id="guest-list",
                reveal_threshold=10,
                deflection_hint="Claims the party was 'the usual crowd'.",
                reveal_guidance="Hands over the guest list from the night Vivian vanished.",
            ),
            KnowledgeBoundary(
                clue_id="vivian-argument",
                reveal_threshold=20,
                deflection_hint="Insists every family has its quarrels.",
                reveal_guidance="Admits he and Vivian fought about her 'jazz musician'.",
            ),
            KnowledgeBoundary(
                clue_id="shipping-records",
                reveal_threshold=80,
                deflection_hint="Says the business is none of a detective's concern.",
                reveal_guidance="Concedes Warehouse 7 shipments never appear in the books.",
            ),
        ),
        relationships=(
            NpcRelationship(npc_id="dorothy", nature="employer", known_by_player=True),
            NpcRelationship(npc_id="marcus", nature="despises him"),
        ),
        trust_level=30,
        mood="irritated",
    ),
    Npc(
        id="dorothy",
        name="Dorothy Mae Carter",
        role="the Ashworth housekeeper",
        location_id="mansion",
        personality=NpcPersonality(
            voice="Soft, careful, warm under the caution.",
            speech_patterns=("Calls the player 'detective' or 'child'",),
            backstory="Raised Vivian as much as anyone did. Twenty years in service.",
            mannerisms=("Folds and refolds a dish towel",),
        ),
        knowledge_boundaries=(
            KnowledgeBoundary(
                clue_id="vivian-room",
                reveal_threshold=25,
                deflection_hint="Says Miss Vivian's room is private.",
                reveal_guidance="Lets the player into Vivian's room and points out the packed bag.",
            ),
            KnowledgeBoundary(
                clue_id="love-letters",
                reveal_threshold=50,
                deflection_hint="Says some secrets belong to the girl, not to her.",
                reveal_guidance="Retrieves the letters Vivian hid in the hatbox.",
            ),
        ),
        trust_level=40,
        mood="worried",
    ),
    Npc(
        id="marcus",
        name="Marcus Bell",
        role="trumpet player at the Blue Moon",
        location_id="blue-moon",
        personality=NpcPersonality(
            voice="Easy charm with a tremor underneath.",
            speech_patterns=("Talks in musical metaphors",),
            backstory="Met Vivian at the club. Knows her father would never allow it.",
            mannerisms=("Taps rhythms on the bar",),
        ),
        knowledge_boundaries=(
            KnowledgeBoundary(
                clue_id="marcus-alibi",
                reveal_threshold=30,
                deflection_hint="Says he was 'working' and leaves it there.",
                reveal_guidance="Explains he played two sets and the whole band can vouch for him.",
            ),
            KnowledgeBoundary(
                clue_id="warehouse-key",
                reveal_threshold=60,
                deflection_hint="Pats his jacket pocket and changes the subject.",
                reveal_guidance="Shows the Warehouse 7 key Vivian pressed into his hand.",
            ),
        ),
        trust_level=25,
        mood="nervous",
    ),
    Npc(
        id="frank",
        name="Frank Doyle",
        role="a private investigator on Harold's payroll",
        location_id="docks",
        personality=NpcPersonality(
            voice="Tired, sardonic, never quite lying.",
            speech_patterns=("Drops his g's", "Calls everyone 'pal'"),
            backstory="Ex-cop, bounced off the force for taking money he should not have.",
            mannerisms=("Lights a cigarette off the last one",),
        ),
        knowledge_boundaries=(
            KnowledgeBoundary(
                clue_id="payoff-envelope",
                reveal_threshold=45,
                deflection_hint="Says he gets paid like everybody else.",
                reveal_guidance="Admits Harold paid him to follow Vivian, and to stop.",
            ),
        ),
        trust_level=20,
        mood="wary",
    ),
)

_HEIRESS_LOCATIONS = (
    Location(
        id="mansion",
        name="Ashworth Mansion",
        description="A Spanish Colonial mansion in Bel Air, all white stucco and closed doors.",
        atmosphere="Fog off the hills; warm light behind drawn curtains.",
        npc_ids=("harold", "dorothy"),
        searchable_clue_ids=("guest-list", "vivian-room"),
        connected_location_ids=("office", "blue-moon"),
    ),
    Location(
        id="office",
        name="Harold's Study",
        description="Dark wood, a locked filing cabinet, shipping schedules everywhere.",
        atmosphere="Cigar smoke and concentrated power.",
        searchable_clue_ids=("shipping-records",),
        connected_location_ids=("mansion",),
    ),
    Location(
        id="blue-moon",
        name="The Blue Moon",
        description="A basement jazz club on Central Avenue.",
        atmosphere="Blue neon, layered smoke, music you can almost hear.",
        npc_ids=("marcus",),
        searchable_clue_ids=("marcus-alibi",),
        connected_location_ids=("mansion", "docks"),
    ),
    Location(
        id="docks",
        name="San Pedro Docks",
        description="Warehouse row at night. Warehouse 7 wears a fresh padlock.",
        atmosphere="Dense fog and isolated pools of lamplight.",
        npc_ids=("frank",),
        searchable_clue_ids=("payoff-envelope",),
        connected_location_ids=("blue-moon",),
        unlocked=False,
    ),
)

_HEIRESS_CLUES = (
    Clue(
        id="guest-list",
        name="Party Guest List",
        description="Everyone at the Ashworth party the night Vivian disappeared.",
        source_id="harold",
        trust_threshold=10,
        tags=("document",),
    ),
    Clue(
        id="vivian-argument",
        name="The Argument",
        description="Harold and Vivian fought bitterly about Marcus an hour before she vanished.",
        source_id="harold",
        trust_threshold=20,
        tags=("testimony",),
    ),
    Clue(
        id="vivian-room",
        name="Vivian's Room",
        description="A half-packed travel bag and a missing passport.",
        source_id="dorothy",
        trust_threshold=25,
        tags=("physical",),
    ),
    Clue(
        id="love-letters",
        name="Hidden Love Letters",
        description="Letters from Marcus planning to leave Los Angeles together.",
        source_id="dorothy",
        trust_threshold=50,
        prerequisites=("vivian-room",),
        tags=("document",),
    ),
    Clue(
        id="marcus-alibi",
        name="Marcus's Alibi",
        description="Marcus played both sets at the Blue Moon that night.",
        source_id="marcus",
        trust_threshold=30,
        tags=("testimony",),
    ),
    Clue(
        id="warehouse-key",
        name="Warehouse 7 Key",
        description="Vivian gave Marcus a key to her father's warehouse.",
        source_id="marcus",
        trust_threshold=60,
        prerequisites=("love-letters",),
        tags=("physical",),
    ),
    Clue(
        id="shipping-records",
        name="Doctored Shipping Records",
        description="Warehouse 7 cargo that never appears in Ashworth Shipping's books.",
        source_id="harold",
        trust_threshold=80,
        prerequisites=("guest-list",),
        tags=("document",),
    ),
    Clue(
        id="payoff-envelope",
        name="Payoff Envelope",
        description="Cash from Harold to Frank, marked 'for your silence'.",
        source_id="frank",
        trust_threshold=45,
        tags=("physical",),
    ),
)

MISSING_HEIRESS = EmergentCase(
    id="missing-heiress",
    title="The Missing Heiress",
    synopsis=(
        "Vivian Ashworth, heiress to a shipping fortune, vanished from her "
        "father's party three nights ago. Her father wants her found quietly."
    ),
    setting="Los Angeles, 1947",
    atmosphere="Noir: rain-slick streets, old money, older secrets.",
    npcs=_HEIRESS_NPCS,
    locations=_HEIRESS_LOCATIONS,
    clues=_HEIRESS_CLUES,
    clue_connections=(
        ClueConnection("vivian-argument", "love-letters", "The fight was about these letters."),
        ClueConnection("warehouse-key", "shipping-records", "The key opens the warehouse the books hide."),
    ),
    suspects=(
        Suspect(
            npc_id="harold",
            possible_motives=("protecting the smuggling operation", "controlling his daughter"),
            possible_methods=("had Frank spirit her away", "locked her in Warehouse 7"),
            supporting_clue_ids=("vivian-argument", "shipping-records", "payoff-envelope"),
            exonerating_clue_ids=(),
        ),
        Suspect(
            npc_id="marcus",
            possible_motives=("eloping", "money"),
            possible_methods=("hid her at the club",),
            supporting_clue_ids=("love-letters", "warehouse-key"),
            exonerating_clue_ids=("marcus-alibi",),
        ),
        Suspect(
            npc_id="frank",
            possible_motives=("a bigger payday",),
            possible_methods=("snatched her on Harold's orders",),
            supporting_clue_ids=("payoff-envelope",),
            exonerating_clue_ids=(),
        ),
    ),
)


# ---------------------------------------------------------------------------
# Gin Joint Blues (fixed solution)
# ---------------------------------------------------------------------------

GIN_JOINT_BLUES = FixedSolutionCase(
    id="gin-joint-blues",
    title="Gin Joint Blues",
    synopsis="The owner of a Chicago speakeasy is found dead behind his own bar.",
    setting="Chicago, 1926",
    atmosphere="Prohibition: bathtub gin, brass bands, crooked cops.",
    npcs=(
        Npc(
            id="lou",
            name="Lou Marino",
            role="the bartender",
            location_id="speakeasy",
            personality=NpcPersonality(
                voice="Fast talker, quick to laugh, quicker to lie.",
                speech_patterns=("Calls everybody 'boss'",),
                mannerisms=("Polishes the same glass",),
            ),
            knowledge_boundaries=(
                KnowledgeBoundary(
                    clue_id="ledger",
                    reveal_threshold=40,
                    deflection_hint="Says the books are the boss's business.",
                    reveal_guidance="Slides the hidden ledger across the bar.",
                ),
            ),
            trust_level=35,
            mood="jumpy",
        ),
        Npc(
            id="ruby",
            name="Ruby Kane",
            role="the singer",
            location_id="speakeasy",
            personality=NpcPersonality(voice="Smoky, amused, unafraid."),
            knowledge_boundaries=(
                KnowledgeBoundary(
                    clue_id="broken-watch",
                    reveal_threshold=20,
                    deflection_hint="Says she only watches the crowd.",
                    reveal_guidance="Mentions the dead man's watch stopped at ten past two.",
                ),
            ),
            trust_level=30,
            mood="bored",
        ),
    ),
    locations=(
        Location(
            id="speakeasy",
            name="The Velvet Door",
            description="A speakeasy behind a laundry, all velvet and cigarette burns.",
            npc_ids=("lou", "ruby"),
            searchable_clue_ids=("broken-watch",),
        ),
    ),
    clues=(
        Clue(
            id="broken-watch",
            name="Broken Watch",
            description="The victim's watch stopped at 2:10 a.m.",
            source_id="ruby",
            trust_threshold=20,
            tags=("physical",),
        ),
        Clue(
            id="ledger",
            name="Skimmed Ledger",
            description="Someone has been skimming from the till for months.",
            source_id="lou",
            trust_threshold=40,
            prerequisites=("broken-watch",),
            tags=("document",),
        ),
    ),
    solution=(
        "Lou Marino killed his boss at 2:10 a.m. when he was caught skimming "
        "the till, then staged a robbery."
    ),
)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

CASES: Dict[str, CaseDefinition] = {
    MISSING_HEIRESS.id: MISSING_HEIRESS,
    GIN_JOINT_BLUES.id: GIN_JOINT_BLUES,
}
"""
Dict mapping case id → CaseDefinition. Shared and read-only; it outlives
every game created from it.
"""


# ---------------------------------------------------------------------------
# Visual anchors for image prompts
# ---------------------------------------------------------------------------

NPC_VISUAL_ANCHORS: Dict[str, Dict[str, str]] = {
    "missing-heiress": {
        "harold": (
            "stern 60-year-old man, silver hair slicked back, charcoal pinstripe "
            "three-piece suit, gold pocket watch chain, whiskey glass in hand"
        ),
        "dorothy": (
            "dignified woman in her late 50s, greying hair in a neat bun, black "
            "housekeeper dress with white collar, weary kind eyes"
        ),
        "marcus": (
            "man in his early 30s, worn brown leather jacket over white shirt, "
            "long musician's fingers, trumpet case nearby"
        ),
        "frank": (
            "weathered man in his late 40s, rumpled tan trench coat, fedora with "
            "sweat-stained band, cigarette between his lips"
        ),
    },
}

LOCATION_VISUAL_ANCHORS: Dict[str, Dict[str, str]] = {
    "missing-heiress": {
        "mansion": "1940s Spanish Colonial mansion, white stucco, red tile roof, fog rolling in",
        "office": "dark wood study, brass desk lamp, crystal decanter, locked filing cabinet",
        "blue-moon": "basement jazz club, blue neon sign, smoke in layers, small stage with piano",
        "docks": "San Pedro warehouse pier at night, rusting cranes, Warehouse 7 padlocked, fog",
    },
}

STYLE_MODIFIERS: Dict[str, str] = {
    "noir":       "film noir, high-contrast black and white, deep shadows",
    "dramatic":   "dramatic chiaroscuro lighting, cinematic close-up",
    "mysterious": "low key lighting, partial shadow, sense of secrecy",
    "tense":      "tight framing, harsh side light, suspense",
}

BASE_IMAGE_STYLE: List[str] = ["1940s period detail", "35mm film grain"]
