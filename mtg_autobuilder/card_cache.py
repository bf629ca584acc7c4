"""
Identifier to CardRecord memoization used while enriching collections.

The cache is best-effort and non-authoritative: it only saves repeated
lookups against the card database. Entries are never evicted; a record for
a given Scryfall id never changes, so concurrent duplicate writes are harmless.
"""

import logging
from typing import Dict, Iterable, Optional, Tuple

from .models import CardRecord


class CardCache:
    """In-memory id -> CardRecord store living for the lifetime of the process."""

    def __init__(self):
        self._records: Dict[str, CardRecord] = {}
        self._printings: Dict[Tuple[str, str], CardRecord] = {}
        self.logger = logging.getLogger(__name__)

    def get(self, card_id: str) -> Optional[CardRecord]:
        return self._records.get(card_id)

    def put(self, record: CardRecord) -> None:
        if record.id:
            self._records[record.id] = record
            if record.set_code and record.collector_number:
                self._printings[(record.set_code.lower(), record.collector_number)] = record

    def put_many(self, records: Iterable[CardRecord]) -> int:
        count = 0
        for record in records:
            self.put(record)
            count += 1
        self.logger.debug(f"Cached {count} card records ({len(self._records)} total)")
        return count

    def find_printing(self, set_code: str, collector_number: str) -> Optional[CardRecord]:
        """Find a cached record by set code and collector number."""
        return self._printings.get((set_code.lower(), collector_number))

    def __contains__(self, card_id: str) -> bool:
        return card_id in self._records

    def __len__(self) -> int:
        return len(self._records)


class NullCardCache(CardCache):
    """A cache that remembers nothing, for callers that want to bypass memoization."""

    def put(self, record: CardRecord) -> None:
        return None
