"""
Candidate filtering for deck construction.

Eligibility enforces color-identity containment and the singleton rule at
selection time. The relevance filter is a stricter, text-based check that
drops cards whose rules text leans on a color outside the commander's identity.
"""

import logging
import re
from typing import Dict, Iterable, List, Optional

from .models import CardRecord, OwnedEntry


logger = logging.getLogger(__name__)

COLOR_NAMES = {
    'White': 'W',
    'Blue': 'U',
    'Black': 'B',
    'Red': 'R',
    'Green': 'G',
}

# Color words in these contexts refer to opponents' permanents, removal or
# free color choice, not to mana the card needs.
RELEVANCE_EXEMPTIONS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r'protection from',
        r'destroy',
        r'exile',
        r'opponent',
        r'choose a color',
        r'any color',
        r'landwalk',
    )
]

_COLOR_WORDS = {
    color_name: re.compile(rf'\b{color_name}\b', re.IGNORECASE)
    for color_name in COLOR_NAMES
}


def is_relevant(card: Optional[CardRecord], commander_identity: Iterable[str]) -> bool:
    """
    Check that a card's text does not depend on a color outside the identity.

    Args:
        card: Card record to check; a missing record counts as relevant
        commander_identity: Color symbols of the commander

    Returns:
        False if any off-identity color word appears without an exemption phrase
    """
    if card is None:
        return True

    identity = set(commander_identity)
    text = card.combined_text
    for color_name, symbol in COLOR_NAMES.items():
        if symbol in identity:
            continue
        if not _COLOR_WORDS[color_name].search(text):
            continue
        if any(pattern.search(text) for pattern in RELEVANCE_EXEMPTIONS):
            continue
        logger.debug(f"'{card.name}' mentions {color_name} outside identity {sorted(identity)}")
        return False
    return True


def unique_by_name(entries: Iterable[OwnedEntry]) -> List[OwnedEntry]:
    """Keep the first entry for every exact name, preserving pool order."""
    seen: Dict[str, OwnedEntry] = {}
    for entry in entries:
        if entry.name not in seen:
            seen[entry.name] = entry
    return list(seen.values())


def eligible_cards(
    owned_pool: Iterable[OwnedEntry],
    commander: CardRecord,
    strict_relevance: bool = False
) -> List[OwnedEntry]:
    """
    Reduce an owned pool to deck candidates for a commander.

    Args:
        owned_pool: Owned entries in pool order
        commander: The commander record defining the color identity
        strict_relevance: Also apply the relevance filter

    Returns:
        Deduplicated candidates in pool order
    """
    commander_name = commander.name.lower()
    identity = set(commander.color_identity)

    candidates = []
    for entry in owned_pool:
        card = entry.card
        if card is None:
            continue
        if entry.name.lower() == commander_name:
            continue
        if card.is_basic_land:
            continue
        if not card.identity_within(identity):
            continue
        if strict_relevance and not is_relevant(card, identity):
            continue
        candidates.append(entry)

    unique = unique_by_name(candidates)
    logger.info(f"Eligible cards for '{commander.name}': {len(unique)} of {len(candidates)} candidates")
    return unique


def list_commanders(owned_pool: Iterable[OwnedEntry], colors: Optional[Iterable[str]] = None) -> List[OwnedEntry]:
    """
    List owned cards that can lead a deck.

    Args:
        owned_pool: Owned entries
        colors: Optional color filter; commanders must fit inside these colors

    Returns:
        One entry per commander name, in pool order
    """
    allowed = set(colors) if colors else None
    commanders = []
    for entry in owned_pool:
        if entry.card is None or not entry.card.can_be_commander:
            continue
        if allowed is not None and not entry.card.identity_within(allowed):
            continue
        commanders.append(entry)
    return unique_by_name(commanders)
