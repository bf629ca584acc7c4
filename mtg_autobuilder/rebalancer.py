"""
Rebalancing of an existing deck toward land and total card targets.

The rebalancer only uses owned cards (plus basic lands, which are in
unlimited supply). It runs as a short state machine: compute deficits, fill
lands, fill nonlands, done.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .card_filters import is_relevant, unique_by_name
from .config import DeckBuildingConfig
from .deck_builder import basic_land_record, distribute_basic_lands
from .models import Deck, OwnedEntry, RebalanceResult, rarity_rank


COMPUTE_DEFICITS = 'compute_deficits'
FILL_LANDS = 'fill_lands'
FILL_NONLANDS = 'fill_nonlands'
DONE = 'done'


class DeckRebalancer:
    """Tops up a deck's lands and nonlands from the owned pool."""

    def __init__(self, config: Optional[DeckBuildingConfig] = None):
        self.config = config or DeckBuildingConfig()
        self.logger = logging.getLogger(__name__)
        self.state = DONE

    def rebalance(
        self,
        deck: Deck,
        owned_pool: List[OwnedEntry],
        commander_identity: Optional[Sequence[str]] = None,
        commander_name: Optional[str] = None
    ) -> RebalanceResult:
        """
        Rebalance a deck toward the land and total targets.

        Args:
            deck: Existing deck; it is never mutated
            owned_pool: Full owned collection in pool order
            commander_identity: Commander colors (defaults to the deck's commander)
            commander_name: Commander name to keep out of the 99

        Returns:
            RebalanceResult; ``deck_full`` is set and the deck returned untouched
            when no slots are available
        """
        identity = list(commander_identity if commander_identity is not None else deck.color_identity)
        if commander_name is None and deck.commander is not None:
            commander_name = deck.commander.name

        self.state = COMPUTE_DEFICITS
        land_target = self.config.rebalance_land_target
        lands_needed = max(0, land_target - deck.land_count)
        slots_available = self.config.rebalance_total_target - len(deck.cards)
        self.logger.info(
            f"Rebalancing deck: {len(deck.cards)} cards, {deck.land_count} lands; "
            f"need {lands_needed} lands, {slots_available} slots available"
        )

        if slots_available <= 0:
            self.state = DONE
            self.logger.info("Deck is full, nothing to rebalance")
            return RebalanceResult(deck=deck, deck_full=True)

        candidates = self._candidates(deck, owned_pool, identity, commander_name)

        self.state = FILL_LANDS
        lands_to_add = min(lands_needed, slots_available)
        new_lands = self._fill_lands(candidates, owned_pool, identity, lands_to_add)

        self.state = FILL_NONLANDS
        nonland_slots = slots_available - len(new_lands)
        new_nonlands = self._fill_nonlands(candidates, nonland_slots)

        self.state = DONE
        updated = Deck(
            commander=deck.commander,
            cards=list(deck.cards) + new_lands + new_nonlands,
            missing_cards=[],
        )
        self.logger.info(
            f"Deck balanced! Lands: {updated.land_count}, "
            f"Non-lands: {len(updated.cards) - updated.land_count}, "
            f"Total: {len(updated.cards) + 1} (including commander)"
        )
        return RebalanceResult(
            deck=updated,
            lands_added=len(new_lands),
            nonlands_added=len(new_nonlands),
        )

    def _candidates(
        self,
        deck: Deck,
        owned_pool: Iterable[OwnedEntry],
        identity: Sequence[str],
        commander_name: Optional[str]
    ) -> List[OwnedEntry]:
        """Owned, enriched, in-identity, relevant cards not already in the deck."""
        in_deck = set(deck.card_names)
        excluded = commander_name.lower() if commander_name else None
        candidates = []
        for entry in owned_pool:
            card = entry.card
            if card is None or entry.name in in_deck:
                continue
            if excluded is not None and entry.name.lower() == excluded:
                continue
            if not card.identity_within(identity) or not is_relevant(card, identity):
                continue
            candidates.append(entry)
        return unique_by_name(candidates)

    def _fill_lands(
        self,
        candidates: List[OwnedEntry],
        owned_pool: Iterable[OwnedEntry],
        identity: Sequence[str],
        lands_to_add: int
    ) -> List[OwnedEntry]:
        if lands_to_add <= 0:
            return []

        nonbasic_limit = lands_to_add // 2
        nonbasics = [
            entry for entry in candidates
            if 'Land' in entry.type_line and 'Basic' not in entry.type_line
        ][:nonbasic_limit]

        basic_names = distribute_basic_lands(identity, lands_to_add - len(nonbasics))
        owned_basics: Dict[str, OwnedEntry] = {}
        for entry in owned_pool:
            if entry.card is not None and entry.card.is_basic_land:
                owned_basics.setdefault(entry.name, entry)
        basics = [
            owned_basics.get(name) or OwnedEntry(name=name, card=basic_land_record(name))
            for name in basic_names
        ]

        self.logger.info(f"Adding {len(nonbasics)} nonbasic and {len(basics)} basic lands")
        return nonbasics + basics

    def _fill_nonlands(self, candidates: List[OwnedEntry], slots: int) -> List[OwnedEntry]:
        if slots <= 0:
            return []

        nonlands = [entry for entry in candidates if not entry.is_land]
        # sorted() is stable, so ties keep pool order
        nonlands = sorted(nonlands, key=lambda entry: rarity_rank(entry.card.rarity), reverse=True)
        chosen = nonlands[:slots]
        self.logger.info(f"Adding {len(chosen)}/{slots} nonland cards by rarity")
        return chosen
