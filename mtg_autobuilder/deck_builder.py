"""
Core deck building engine for auto-building Commander decks.

This module turns an owned collection and a commander name into a 99-card
list: popular staples seed the category quotas, the owned pool fills ramp,
draw, removal and creature quotas and then the remaining nonland slots,
Scryfall fillers cover any shortfall, and a land base of owned nonbasics and
evenly split basics completes the deck.
"""

import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence

from .card_cache import CardCache
from .card_filters import eligible_cards, is_relevant
from .classifier import OTHER, classify, classify_card
from .config import DeckBuildingConfig
from .models import BASIC_LAND_NAMES, AutoBuildResult, CardRecord, Deck, OwnedEntry
from .scryfall_service import ScryfallAPIError, ScryfallService


class DeckBuilderError(Exception):
    """Base class for deck building failures surfaced to callers."""
    pass


class BadRequestError(DeckBuilderError):
    """Raised when the request is unusable before any work starts."""
    pass


class CommanderNotFoundError(DeckBuilderError):
    """Raised when the commander cannot be found in the card database."""
    pass


class DeckBuildError(DeckBuilderError):
    """Raised for unexpected failures; details carry the underlying message."""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message)
        self.details = details


def identity_query(color_identity: Sequence[str]) -> str:
    """Scryfall color identity clause: colorless, or contained in the given colors."""
    if not color_identity:
        return "id:c"
    return f"id<={''.join(color_identity)}"


def distribute_basic_lands(color_identity: Sequence[str], count: int) -> List[str]:
    """
    Split a number of basic lands evenly across the commander's colors.

    Colors are visited in identity order and the first ``count % len(colors)``
    colors each receive one extra land. An empty identity yields no basics.

    Args:
        color_identity: Commander color symbols in identity order
        count: Number of basic lands to produce

    Returns:
        Basic land names, grouped by color
    """
    if not color_identity or count <= 0:
        return []

    per_color, extra = divmod(count, len(color_identity))
    lands = []
    for i, color in enumerate(color_identity):
        land_name = BASIC_LAND_NAMES.get(color)
        if not land_name:
            continue
        lands.extend([land_name] * (per_color + (1 if i < extra else 0)))
    return lands


def edhrec_url(commander_name: str) -> str:
    slug = re.sub(r'[^a-z0-9]+', '-', commander_name.lower())
    return f"https://edhrec.com/commanders/{slug}"


class AutoDeckBuilder:
    """Main deck building engine that auto-builds Commander decks."""

    def __init__(
        self,
        scryfall_service: Optional[ScryfallService] = None,
        config: Optional[DeckBuildingConfig] = None,
        card_cache: Optional[CardCache] = None
    ):
        """
        Initialize the deck builder.

        Args:
            scryfall_service: Card database client
            config: Optional configuration parameters
            card_cache: Optional memo cache that receives fetched records
        """
        self.config = config or DeckBuildingConfig()
        self.scryfall = scryfall_service or ScryfallService(
            timeout=self.config.api_timeout_seconds,
            min_request_interval=self.config.api_request_interval
        )
        self.card_cache = card_cache
        self.logger = logging.getLogger(__name__)

    def auto_build(self, commander_name: str, owned_pool: List[OwnedEntry]) -> AutoBuildResult:
        """
        Build a deck for a commander from the owned pool.

        Args:
            commander_name: Exact name of the commander card
            owned_pool: Owned collection entries in pool order

        Returns:
            AutoBuildResult with the ordered card names and suggested records

        Raises:
            BadRequestError: If the commander name is empty
            CommanderNotFoundError: If the commander lookup fails
            DeckBuildError: For any other failure
        """
        if not commander_name or not commander_name.strip():
            raise BadRequestError("Commander name is required")

        try:
            return self._build(commander_name, owned_pool)
        except DeckBuilderError:
            raise
        except Exception as e:
            self.logger.error(f"Auto-build error: {e}")
            raise DeckBuildError("Failed to build deck", details=str(e)) from e

    def _build(self, commander_name: str, owned_pool: List[OwnedEntry]) -> AutoBuildResult:
        self.logger.info(f"Building deck for: {commander_name}")
        self.logger.info(f"Collection size: {len(owned_pool)}")

        commander = self._lookup_commander(commander_name)
        colors = list(commander.color_identity)
        self.logger.info(f"Commander colors: {colors}")
        if not commander.can_be_commander:
            self.logger.warning(f"'{commander.name}' is not a legendary creature or commander planeswalker")

        eligible = eligible_cards(owned_pool, commander, strict_relevance=self.config.strict_relevance)
        owned_names = {entry.name.lower() for entry in owned_pool if entry.card is not None}

        card_names: List[str] = []
        suggested: List[CardRecord] = []

        staples = self.seed_staples(commander)
        seeded_counts = {category: 0 for category in self.config.quotas}
        for card in staples:
            card_names.append(card.name)
            category = classify(card.type_line, card.name)
            if category in seeded_counts:
                seeded_counts[category] += 1
            if card.name.lower() not in owned_names:
                suggested.append(card)
        self.logger.info(f"Added {len(staples)} staples. Seeded categories: {seeded_counts}")

        added = self.allocate_quotas(eligible, card_names, seeded_counts)
        self.logger.info(f"Added from collection: {added}")

        if len(card_names) < self.config.nonland_target:
            need = self.config.nonland_target - len(card_names)
            self.logger.info(f"Need additional: {need}")
            for card in self.suggest_fillers(commander, card_names, need):
                card_names.append(card.name)
                if card.name.lower() not in owned_names:
                    suggested.append(card)

        lands = self.build_land_base(eligible, commander, card_names)
        card_names.extend(lands)
        self.logger.info(f"Total cards: {len(card_names)}")

        if self.card_cache is not None:
            self.card_cache.put_many(suggested)

        return AutoBuildResult(
            deck_name=f"Auto-built {commander_name} deck",
            card_names=card_names,
            suggested_details=suggested,
            deck_url=edhrec_url(commander.name),
            commander=commander,
        )

    def _lookup_commander(self, commander_name: str) -> CardRecord:
        try:
            commander = self.scryfall.lookup_by_name(commander_name)
        except ScryfallAPIError as e:
            self.logger.error(f"Commander lookup failed for '{commander_name}': {e}")
            raise CommanderNotFoundError(f"Commander not found: {commander_name}") from e

        if commander is None:
            self.logger.error(f"Commander not found: {commander_name}")
            raise CommanderNotFoundError(f"Commander not found: {commander_name}")
        return commander

    def _search_or_empty(self, query: str, purpose: str) -> List[CardRecord]:
        """Run a search whose failure must not stop the build."""
        try:
            return self.scryfall.search(query, order='edhrec', direction='asc', page=1)
        except ScryfallAPIError as e:
            self.logger.warning(f"Failed to fetch {purpose}: {e}")
            return []

    def seed_staples(self, commander: CardRecord) -> List[CardRecord]:
        """
        Fetch the most popular in-identity nonland cards to seed the deck.

        Args:
            commander: Commander record

        Returns:
            Up to ``staple_count`` records; empty if the search fails
        """
        query = f"{identity_query(commander.color_identity)} legal:commander -t:land -t:basic"
        results = self._search_or_empty(query, "staples")

        staples = []
        for card in results:
            if len(staples) >= self.config.staple_count:
                break
            if card.name == commander.name:
                continue
            if not card.identity_within(commander.color_identity):
                self.logger.debug(f"Skipping staple outside identity: {card.name}")
                continue
            if not is_relevant(card, commander.color_identity):
                continue
            staples.append(card)
        return staples

    def allocate_quotas(
        self,
        eligible: List[OwnedEntry],
        card_names: List[str],
        seeded_counts: Dict[str, int]
    ) -> int:
        """
        Fill category quotas and then the remaining nonland slots from the pool.

        Categories are processed in quota order. Every pick keeps pool order,
        skips names already in ``card_names`` and stops at the nonland target.

        Args:
            eligible: Eligible owned entries in pool order
            card_names: Names chosen so far; extended in place
            seeded_counts: Per-category counts already covered by staples

        Returns:
            Number of owned cards added
        """
        nonlands = [entry for entry in eligible if not entry.is_land]
        added = 0

        for category, quota in self.config.quotas.items():
            deficit = max(0, quota - seeded_counts.get(category, 0))
            room = max(0, self.config.nonland_target - len(card_names))
            chosen = self._take(nonlands, card_names, min(deficit, room), category)
            self.logger.info(f"Selected {len(chosen)}/{deficit} {category} cards")
            added += len(chosen)

        remaining = max(0, self.config.nonland_target - len(card_names))
        chosen = self._take(nonlands, card_names, remaining, OTHER)
        self.logger.info(f"Filled {len(chosen)}/{remaining} remaining slots with other cards")
        added += len(chosen)
        return added

    def _take(self, entries: Iterable[OwnedEntry], card_names: List[str], limit: int, category: str) -> List[str]:
        if limit <= 0:
            return []
        taken = set(card_names)
        chosen = []
        for entry in entries:
            if len(chosen) >= limit:
                break
            if entry.name in taken or classify_card(entry) != category:
                continue
            chosen.append(entry.name)
            taken.add(entry.name)
            self.logger.debug(f"Selected {category}: {entry.name}")
        card_names.extend(chosen)
        return chosen

    def suggest_fillers(self, commander: CardRecord, card_names: List[str], need: int) -> List[CardRecord]:
        """
        Suggest cheap popular cards from Scryfall to cover a nonland shortfall.

        Args:
            commander: Commander record
            card_names: Names already in the deck
            need: Number of cards still missing

        Returns:
            Up to ``need`` records; empty if the search fails
        """
        if need <= 0:
            return []

        ceiling = f"{self.config.filler_price_ceiling:g}"
        query = f"{identity_query(commander.color_identity)} -t:land -t:basic legal:commander usd<={ceiling}"
        results = self._search_or_empty(query, "filler suggestions")

        taken = set(card_names)
        commander_name = commander.name.lower()
        fillers = []
        for card in results:
            if len(fillers) >= need:
                break
            if card.name.lower() == commander_name or card.name in taken:
                continue
            if not card.identity_within(commander.color_identity):
                continue
            if self.config.strict_relevance and not is_relevant(card, commander.color_identity):
                continue
            fillers.append(card)
            taken.add(card.name)

        self.logger.info(f"Suggested {len(fillers)}/{need} filler cards")
        return fillers

    def build_land_base(self, eligible: List[OwnedEntry], commander: CardRecord, card_names: List[str]) -> List[str]:
        """
        Select owned nonbasic lands (up to half the land target) and fill with basics.

        Args:
            eligible: Eligible owned entries in pool order
            commander: Commander record
            card_names: Names already in the deck

        Returns:
            Land names to append to the deck
        """
        land_target = self.config.land_target
        taken = set(card_names)

        nonbasics = []
        for entry in eligible:
            if len(nonbasics) >= land_target // 2:
                break
            type_line = entry.type_line
            if 'Land' not in type_line or 'Basic' in type_line:
                continue
            if entry.name in taken or not entry.card.identity_within(commander.color_identity):
                continue
            nonbasics.append(entry.name)
            taken.add(entry.name)

        remaining = land_target - len(nonbasics)
        basics = distribute_basic_lands(commander.color_identity, remaining)
        if not commander.color_identity:
            self.logger.warning("Colorless commander: no basic lands added")

        self.logger.info(f"Selected {len(nonbasics)} nonbasic lands and {len(basics)} basic lands")
        return nonbasics + basics


def assemble_deck(result: AutoBuildResult, owned_pool: List[OwnedEntry], deck: Optional[Deck] = None) -> Deck:
    """
    Turn an auto-build result into a Deck of owned entries plus missing cards.

    Names of resolved entries in the owned pool (case-insensitive) are added
    unless the same entry is already in the deck; other names are matched to
    their suggested records and listed as missing.

    Args:
        result: Auto-build output
        owned_pool: Owned collection entries
        deck: Optional existing deck to extend

    Returns:
        A new Deck
    """
    logger = logging.getLogger(__name__)
    deck = deck or Deck(commander=result.commander)

    by_name: Dict[str, OwnedEntry] = {}
    for entry in owned_pool:
        if entry.card is not None:
            by_name.setdefault(entry.name.lower(), entry)
    details = {card.name: card for card in result.suggested_details}

    cards = list(deck.cards)
    missing = []
    for name in result.card_names:
        entry = by_name.get(name.lower())
        if entry is not None:
            already = not entry.card.is_basic_land and any(
                c is entry or (entry.scryfall_id and c.scryfall_id == entry.scryfall_id) for c in cards
            )
            if not already:
                cards.append(entry)
        elif name in details:
            missing.append(details[name])
        elif name in BASIC_LAND_NAMES.values():
            cards.append(OwnedEntry(name=name, card=basic_land_record(name)))
        else:
            logger.warning(f"No details found for missing card: {name}")

    return Deck(commander=deck.commander or result.commander, cards=cards, missing_cards=missing)


def basic_land_record(land_name: str) -> CardRecord:
    """Minimal record for a basic land that is not in the owned pool."""
    symbol = next(s for s, n in BASIC_LAND_NAMES.items() if n == land_name)
    return CardRecord(
        id=f"basic-{land_name.lower()}",
        name=land_name,
        type_line=f"Basic Land — {land_name}",
        color_identity=(symbol,),
    )
