"""
Data models for the MTG collection auto-builder.

This module contains the core data structures shared by the selection engine,
the ingestion layer and the output code: CardRecord, OwnedEntry, Deck and the
result objects returned by the auto-build and rebalance operations.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


COLOR_SYMBOLS = ('W', 'U', 'B', 'R', 'G')

BASIC_LAND_NAMES = {
    'W': 'Plains',
    'U': 'Island',
    'B': 'Swamp',
    'R': 'Mountain',
    'G': 'Forest',
}

RARITY_RANKS = {
    'mythic': 4,
    'rare': 3,
    'uncommon': 2,
    'common': 1,
}


def rarity_rank(rarity: Optional[str]) -> int:
    """Rank a rarity string; unknown and missing rarities rank as common."""
    return RARITY_RANKS.get((rarity or '').lower(), 1)


def _parse_price(value: Any) -> Optional[float]:
    if value in (None, ''):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class CardRecord:
    """A card as described by the external card database. Immutable once fetched."""
    id: str
    name: str
    type_line: str = ''
    color_identity: Tuple[str, ...] = ()
    oracle_text: str = ''
    face_texts: Tuple[str, ...] = ()
    rarity: str = 'common'
    price_usd: Optional[float] = None
    edhrec_rank: Optional[int] = None
    mana_cost: str = ''
    cmc: float = 0.0
    set_code: str = ''
    collector_number: str = ''
    image_uri: str = ''

    @classmethod
    def from_scryfall_data(cls, data: Dict[str, Any]) -> 'CardRecord':
        """Create a CardRecord from a Scryfall API card object."""
        faces = data.get('card_faces') or []
        image_uris = data.get('image_uris') or {}
        if not image_uris and faces:
            image_uris = faces[0].get('image_uris') or {}

        type_line = data.get('type_line') or ''
        if not type_line and faces:
            type_line = ' // '.join(f.get('type_line', '') for f in faces)

        prices = data.get('prices') or {}
        return cls(
            id=data.get('id', ''),
            name=data.get('name', ''),
            type_line=type_line,
            color_identity=tuple(data.get('color_identity') or ()),
            oracle_text=data.get('oracle_text') or '',
            face_texts=tuple(f.get('oracle_text') or '' for f in faces),
            rarity=data.get('rarity') or 'common',
            price_usd=_parse_price(prices.get('usd')),
            edhrec_rank=data.get('edhrec_rank'),
            mana_cost=data.get('mana_cost') or '',
            cmc=float(data.get('cmc') or 0),
            set_code=data.get('set') or '',
            collector_number=data.get('collector_number') or '',
            image_uri=image_uris.get('normal') or image_uris.get('small') or '',
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'name': self.name,
            'type_line': self.type_line,
            'color_identity': list(self.color_identity),
            'oracle_text': self.oracle_text,
            'face_texts': list(self.face_texts),
            'rarity': self.rarity,
            'price_usd': self.price_usd,
            'edhrec_rank': self.edhrec_rank,
            'mana_cost': self.mana_cost,
            'cmc': self.cmc,
            'set': self.set_code,
            'collector_number': self.collector_number,
            'image_uri': self.image_uri,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CardRecord':
        """Create a CardRecord from a dictionary produced by to_dict."""
        return cls(
            id=data.get('id', ''),
            name=data.get('name', ''),
            type_line=data.get('type_line', ''),
            color_identity=tuple(data.get('color_identity') or ()),
            oracle_text=data.get('oracle_text') or '',
            face_texts=tuple(data.get('face_texts') or ()),
            rarity=data.get('rarity') or 'common',
            price_usd=_parse_price(data.get('price_usd')),
            edhrec_rank=data.get('edhrec_rank'),
            mana_cost=data.get('mana_cost') or '',
            cmc=float(data.get('cmc') or 0),
            set_code=data.get('set') or '',
            collector_number=data.get('collector_number') or '',
            image_uri=data.get('image_uri') or '',
        )

    @property
    def combined_text(self) -> str:
        """Oracle text of the main face followed by the text of every face."""
        parts = [self.oracle_text] + list(self.face_texts)
        return '\n'.join(p for p in parts if p)

    @property
    def is_land(self) -> bool:
        return 'Land' in self.type_line

    @property
    def is_basic_land(self) -> bool:
        return 'Basic' in self.type_line and 'Land' in self.type_line

    @property
    def can_be_commander(self) -> bool:
        """
        Check whether the card may lead a Commander deck.

        Returns:
            True for legendary creatures and for planeswalkers whose rules
            text allows them to be a commander
        """
        type_line = self.type_line.lower()
        if 'legendary' in type_line and 'creature' in type_line:
            return True
        return 'planeswalker' in type_line and 'can be your commander' in self.combined_text.lower()

    def identity_within(self, commander_identity) -> bool:
        """True if this card's color identity is a subset of the given identity."""
        return set(self.color_identity).issubset(commander_identity)


@dataclass
class OwnedEntry:
    """Represents a single line of the owned collection with its enrichment."""
    name: str
    quantity: int = 1
    scryfall_id: str = ''
    set_code: str = ''
    collector_number: str = ''
    card: Optional[CardRecord] = None

    @property
    def type_line(self) -> str:
        return self.card.type_line if self.card else ''

    @property
    def is_land(self) -> bool:
        return self.card is not None and self.card.is_land

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted JSON record shape."""
        return {
            'quantity': self.quantity,
            'scryfall_id': self.scryfall_id,
            'name': self.name,
            'set': self.set_code,
            'collector_number': self.collector_number,
            'details': self.card.to_dict() if self.card else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OwnedEntry':
        details = data.get('details')
        return cls(
            name=data.get('name', ''),
            quantity=int(data.get('quantity') or 1),
            scryfall_id=data.get('scryfall_id', ''),
            set_code=data.get('set') or '',
            collector_number=data.get('collector_number') or '',
            card=CardRecord.from_dict(details) if details else None,
        )


@dataclass
class Deck:
    """A deck in progress: commander, owned cards in the deck, and cards still to acquire."""
    commander: Optional[CardRecord] = None
    cards: List[OwnedEntry] = field(default_factory=list)
    missing_cards: List[CardRecord] = field(default_factory=list)

    @property
    def color_identity(self) -> Tuple[str, ...]:
        return self.commander.color_identity if self.commander else ()

    @property
    def card_names(self) -> List[str]:
        return [c.name for c in self.cards]

    @property
    def land_count(self) -> int:
        return sum(1 for c in self.cards if c.is_land)

    @property
    def total_cards(self) -> int:
        """Total number of cards including the commander."""
        return len(self.cards) + (1 if self.commander else 0)

    def singleton_violations(self) -> List[str]:
        """Names of non-basic cards that appear more than once."""
        seen = set()
        duplicates = []
        for entry in self.cards:
            if entry.card is not None and entry.card.is_basic_land:
                continue
            if entry.name in seen and entry.name not in duplicates:
                duplicates.append(entry.name)
            seen.add(entry.name)
        return duplicates


@dataclass
class AutoBuildResult:
    """Output of an auto-build: ordered names plus records for cards not owned."""
    deck_name: str
    card_names: List[str]
    suggested_details: List[CardRecord]
    deck_url: str
    commander: Optional[CardRecord] = None


@dataclass
class RebalanceResult:
    """Output of a rebalance pass."""
    deck: Deck
    deck_full: bool = False
    lands_added: int = 0
    nonlands_added: int = 0

    @property
    def missing_cards(self) -> List[CardRecord]:
        return self.deck.missing_cards
