"""
Heuristic functional classification of cards.

Classification looks only at the type line and the card name. Rules are held
in an ordered table and the first matching rule wins, so every card lands in
exactly one category. Cards whose names carry none of the keywords are
misclassified (usually as creature or other); that imprecision is accepted.
"""

import re
from typing import Callable, Dict, List, Tuple


RAMP = 'ramp'
DRAW = 'draw'
REMOVAL = 'removal'
CREATURE = 'creature'
OTHER = 'other'

CATEGORIES = (RAMP, DRAW, REMOVAL, CREATURE, OTHER)

RAMP_TYPES = re.compile(r'Artifact|Enchantment|Sorcery')
RAMP_NAMES = re.compile(r'sol ring|mana|ramp|cultivate|kodama|reach|signet|talisman|arcane|fellwar')

DRAW_NAMES = re.compile(r'draw|rhystic|study|mystic|remora|phyrexian arena|necropotence|sylvan library')

REMOVAL_TYPES = re.compile(r'Instant|Sorcery')
REMOVAL_NAMES = re.compile(r'destroy|exile|kill|terminate|path|swords|wrath|damnation|wipe')


def is_ramp(type_line: str, name: str) -> bool:
    return bool(RAMP_TYPES.search(type_line)) and bool(RAMP_NAMES.search(name.lower()))


def is_draw(type_line: str, name: str) -> bool:
    return bool(DRAW_NAMES.search(name.lower()))


def is_removal(type_line: str, name: str) -> bool:
    return bool(REMOVAL_TYPES.search(type_line)) and bool(REMOVAL_NAMES.search(name.lower()))


def is_creature(type_line: str, name: str) -> bool:
    return 'Creature' in type_line and 'Legendary' not in type_line


# Order matters: the first predicate that matches decides the category.
CLASSIFICATION_RULES: List[Tuple[str, Callable[[str, str], bool]]] = [
    (RAMP, is_ramp),
    (DRAW, is_draw),
    (REMOVAL, is_removal),
    (CREATURE, is_creature),
]


def classify(type_line: str, name: str) -> str:
    """
    Classify a card into one of ramp, draw, removal, creature or other.

    Args:
        type_line: The card's type line (case-sensitive matches)
        name: The card's name (matched lowercase)

    Returns:
        The category of the first matching rule, or 'other'
    """
    type_line = type_line or ''
    name = name or ''
    for category, predicate in CLASSIFICATION_RULES:
        if predicate(type_line, name):
            return category
    return OTHER


def classify_card(card) -> str:
    """Classify anything exposing type_line and name (CardRecord, OwnedEntry)."""
    return classify(card.type_line, card.name)


def count_by_category(cards) -> Dict[str, int]:
    """Count cards per category, with every category present in the result."""
    counts = {category: 0 for category in CATEGORIES}
    for card in cards:
        counts[classify_card(card)] += 1
    return counts
