"""
Deck analysis helpers: composition statistics, salt meter and opening hands.
"""

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .classifier import count_by_category
from .models import Deck, OwnedEntry


SALTY_CARDS = {
    "Winter Orb", "Static Orb", "Stasis", "Armageddon", "Ravages of War",
    "Cyclonic Rift", "Rhystic Study", "Smothering Tithe", "Dockside Extortionist",
    "Thassa's Oracle", "Ad Nauseam", "Blood Moon", "Back to Basics",
    "Vorinclex, Voice of Hunger", "Elesh Norn, Grand Cenobite", "Teferi's Protection",
    "Mana Crypt", "Jeweled Lotus", "Drannith Magistrate", "Opposition Agent",
    "Hullbreacher", "Gaddock Teeg", "Grand Arbiter Augustin IV", "Jokulhaups",
    "Obliterate", "Decree of Annihilation", "Sunder", "Humility",
    "The Tabernacle at Pendrell Vale", "Expropriate", "Time Stretch", "Nexus of Fate",
}

# (phrase in lowercase rules text, score); only the first matching phrase counts
SALTY_PHRASES = [
    ("extra turn", 0.5),
    ("destroy all lands", 1.0),
    ("players can't", 0.5),
]

OPENING_HAND_SIZE = 7


@dataclass
class DeckStatistics:
    """Composition summary of a deck."""
    categories: Dict[str, int] = field(default_factory=dict)
    land_count: int = 0
    nonland_count: int = 0
    average_cmc: float = 0.0
    salt_score: float = 0.0
    salt_level: str = "Low Sodium"
    missing_count: int = 0

    @property
    def total_cards(self) -> int:
        return self.land_count + self.nonland_count


def card_salt(entry: OwnedEntry) -> float:
    if entry.name in SALTY_CARDS:
        return 1.0
    text = entry.card.combined_text.lower() if entry.card else ""
    for phrase, score in SALTY_PHRASES:
        if phrase in text:
            return score
    return 0.0


def salt_score(cards: List[OwnedEntry]) -> float:
    return sum(card_salt(entry) for entry in cards)


def salt_level(score: float) -> str:
    """Map a salt score to its label."""
    if score == 0:
        return "Low Sodium"
    if score < 3:
        return "Seasoned"
    if score < 6:
        return "Salty"
    return "Toxic Waste"


def analyze_deck(deck: Deck) -> DeckStatistics:
    """
    Compute composition statistics for a deck.

    Args:
        deck: Deck to analyse (commander excluded from the counts)

    Returns:
        DeckStatistics for the deck's cards
    """
    lands = [c for c in deck.cards if c.is_land]
    nonlands = [c for c in deck.cards if not c.is_land]
    costed = [c.card.cmc for c in nonlands if c.card is not None]
    score = salt_score(deck.cards)

    return DeckStatistics(
        categories=count_by_category(nonlands),
        land_count=len(lands),
        nonland_count=len(nonlands),
        average_cmc=sum(costed) / len(costed) if costed else 0.0,
        salt_score=score,
        salt_level=salt_level(score),
        missing_count=len(deck.missing_cards),
    )


def draw_opening_hand(cards: List[OwnedEntry], rng: Optional[random.Random] = None,
                      size: int = OPENING_HAND_SIZE) -> List[OwnedEntry]:
    """Shuffle a copy of the deck and draw an opening hand."""
    rng = rng or random.Random()
    library = list(cards)
    rng.shuffle(library)
    return library[:size]
