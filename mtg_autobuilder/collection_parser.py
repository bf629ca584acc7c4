"""
Collection parser module for importing owned-card inventories.

This module parses CSV exports and plain-text lists of the form
``1 Sol Ring (C21) 263`` into owned entries, then enriches them with card
records resolved through the card database and the memo cache.
"""

import csv
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional

from .card_cache import CardCache
from .models import OwnedEntry
from .scryfall_service import ScryfallService


class CollectionParseError(Exception):
    """Raised when an inventory file cannot be parsed."""
    pass


TXT_LINE = re.compile(r'^(\d+)\s+(.+)\s+\(([A-Za-z0-9]+)\)\s+([A-Za-z0-9-]+)(?:\s+\*([A-Z]+)\*)?$')


class CollectionParser:
    """Handles parsing and enrichment of owned-card inventory files."""

    CARD_NAME_HEADERS = {'name', 'card name', 'card_name', 'cardname', 'card'}
    QUANTITY_HEADERS = {'quantity', 'qty', 'count', 'amount', 'copies', 'owned'}
    SCRYFALL_ID_HEADERS = {'scryfall id', 'scryfall_id', 'scryfallid', 'id'}
    SET_HEADERS = {'set code', 'set_code', 'setcode', 'set', 'edition'}
    COLLECTOR_HEADERS = {'collector number', 'collector_number', 'collectornumber', 'number', 'cn'}

    def __init__(self, scryfall_service: Optional[ScryfallService] = None, card_cache: Optional[CardCache] = None):
        """
        Initialize the collection parser.

        Args:
            scryfall_service: Card database client used for enrichment
            card_cache: Memo cache shared across imports
        """
        self.logger = logging.getLogger(__name__)
        self.scryfall = scryfall_service or ScryfallService()
        self.card_cache = card_cache if card_cache is not None else CardCache()

    def load_collection(self, path: str) -> List[OwnedEntry]:
        """
        Parse an inventory file and enrich every entry.

        Args:
            path: Path to a .csv or .txt inventory

        Returns:
            Owned entries in file order

        Raises:
            FileNotFoundError: If the file doesn't exist
            CollectionParseError: If the file can't be parsed
        """
        entries = self.parse_file(path)
        return self.enrich(entries)

    def parse_file(self, path: str) -> List[OwnedEntry]:
        inventory = Path(path)
        if not inventory.exists():
            raise FileNotFoundError(f"Inventory file not found: {path}")
        if not inventory.is_file():
            raise CollectionParseError(f"Path is not a file: {path}")

        try:
            text = inventory.read_text(encoding='utf-8')
        except UnicodeDecodeError as e:
            raise CollectionParseError(f"File encoding error: {e}")

        suffix = inventory.suffix.lower()
        if suffix == '.csv':
            return self.parse_csv(text)
        if suffix == '.txt':
            return self.parse_text(text)
        raise CollectionParseError(f"Unsupported inventory format: {inventory.suffix or '(none)'}")

    def parse_csv(self, text: str) -> List[OwnedEntry]:
        """
        Parse CSV inventory text.

        Rows need either a Scryfall id or both a set code and collector number;
        rows with neither are skipped.

        Args:
            text: CSV content including the header row

        Returns:
            Parsed entries (not yet enriched)
        """
        delimiter = self._detect_delimiter(text[:1024])
        try:
            reader = csv.DictReader(text.splitlines(), delimiter=delimiter)
            headers = reader.fieldnames or []
            columns = self._identify_columns(headers)
            if not columns.get('name') and not columns.get('scryfall_id'):
                raise CollectionParseError(f"Could not identify card columns. Available headers: {headers}")

            entries = []
            for line_number, row in enumerate(reader, start=2):
                entry = self._entry_from_row(row, columns, line_number)
                if entry is not None:
                    entries.append(entry)
        except csv.Error as e:
            raise CollectionParseError(f"CSV parsing error: {e}")

        self.logger.info(f"[CSV Import] Parsed {len(entries)} rows")
        return entries

    def parse_text(self, text: str) -> List[OwnedEntry]:
        """Parse ``<qty> <name> (<SET>) <collector#> [*F*]`` lines."""
        lines = text.splitlines()
        self.logger.info(f"[TXT Import] Found {len(lines)} lines")

        entries = []
        for line in lines:
            line = line.strip()
            if not line:
                continue
            match = TXT_LINE.match(line)
            if not match:
                self.logger.debug(f"[TXT Import] Failed to parse line: {line}")
                continue
            entries.append(OwnedEntry(
                name=match.group(2).strip(),
                quantity=int(match.group(1)),
                set_code=match.group(3).lower(),
                collector_number=match.group(4),
            ))

        self.logger.info(f"[TXT Import] Parsed {len(entries)} rows")
        return entries

    def enrich(self, entries: List[OwnedEntry]) -> List[OwnedEntry]:
        """
        Attach card records to entries, fetching whatever the cache lacks.

        Entries that cannot be resolved keep ``card=None`` and are ignored by
        deck building.

        Args:
            entries: Parsed entries

        Returns:
            New entries with card records attached where possible
        """
        missing = []
        for entry in entries:
            if entry.scryfall_id:
                if entry.scryfall_id not in self.card_cache:
                    missing.append({'id': entry.scryfall_id})
            elif self.card_cache.find_printing(entry.set_code, entry.collector_number) is None:
                missing.append({'set': entry.set_code, 'collector_number': entry.collector_number})

        self.logger.info(f"Missing identifiers: {len(missing)}")
        if missing:
            fetched = self.scryfall.lookup_batch(missing)
            self.logger.info(f"Fetched {len(fetched)} cards from Scryfall")
            self.card_cache.put_many(fetched)

        enriched = []
        unresolved = 0
        for entry in entries:
            if entry.scryfall_id:
                card = self.card_cache.get(entry.scryfall_id)
            else:
                card = self.card_cache.find_printing(entry.set_code, entry.collector_number)
            if card is None:
                unresolved += 1
            enriched.append(OwnedEntry(
                name=card.name if card and not entry.name else entry.name,
                quantity=entry.quantity,
                scryfall_id=entry.scryfall_id or (card.id if card else ''),
                set_code=entry.set_code,
                collector_number=entry.collector_number,
                card=card,
            ))

        if unresolved:
            self.logger.warning(f"{unresolved} collection entries could not be resolved")
        return enriched

    def _detect_delimiter(self, sample: str) -> str:
        """
        Detect the CSV delimiter from a sample of the file.

        Args:
            sample: Sample text from the CSV file

        Returns:
            Detected delimiter character
        """
        for delimiter in [',', ';', '\t', '|']:
            if delimiter in sample:
                lines = sample.split('\n')[:3]
                counts = [line.count(delimiter) for line in lines if line.strip()]
                if len(counts) >= 2 and len(set(counts)) == 1 and counts[0] > 0:
                    return delimiter
        return ','

    def _identify_columns(self, headers: List[str]) -> Dict[str, Optional[str]]:
        """Map logical column names to the file's own header names."""
        columns: Dict[str, Optional[str]] = {
            'name': None, 'quantity': None, 'scryfall_id': None, 'set': None, 'collector_number': None,
        }
        lookup = [
            ('scryfall_id', self.SCRYFALL_ID_HEADERS),
            ('name', self.CARD_NAME_HEADERS),
            ('quantity', self.QUANTITY_HEADERS),
            ('set', self.SET_HEADERS),
            ('collector_number', self.COLLECTOR_HEADERS),
        ]
        for header in headers:
            header_clean = (header or '').strip().lower()
            for key, aliases in lookup:
                if columns[key] is None and header_clean in aliases:
                    columns[key] = header
                    break
        return columns

    def _entry_from_row(self, row: Dict[str, str], columns: Dict[str, Optional[str]],
                        line_number: int) -> Optional[OwnedEntry]:
        def value(key: str) -> str:
            column = columns.get(key)
            return (row.get(column) or '').strip() if column else ''

        scryfall_id = value('scryfall_id')
        set_code = value('set').lower()
        collector_number = value('collector_number')
        if not scryfall_id and not (set_code and collector_number):
            self.logger.debug(f"Skipping line {line_number}: no Scryfall id or set/collector number")
            return None

        quantity_text = value('quantity') or '1'
        try:
            quantity = int(quantity_text)
        except ValueError:
            raise CollectionParseError(f"Error parsing line {line_number}: invalid quantity '{quantity_text}'")

        return OwnedEntry(
            name=value('name'),
            quantity=quantity,
            scryfall_id=scryfall_id,
            set_code=set_code,
            collector_number=collector_number,
        )
