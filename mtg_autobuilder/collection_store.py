"""Persistence of the enriched owned pool as a JSON record list."""

import json
import logging
from pathlib import Path
from typing import List, Union

from .models import OwnedEntry


class CollectionStore:
    """Reads and writes ``collection.json`` in a data directory."""

    COLLECTION_FILE = "collection.json"

    def __init__(self, data_dir: Union[str, Path]):
        self.logger = logging.getLogger(__name__)
        self.data_dir = Path(data_dir)
        self.path = self.data_dir / self.COLLECTION_FILE

    def load(self) -> List[OwnedEntry]:
        """
        Load the owned pool.

        Returns:
            Owned entries in stored order; empty if the file is missing or unreadable
        """
        if not self.path.exists():
            self.logger.info(f"No collection stored at {self.path}")
            return []

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                records = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            self.logger.error(f"Error reading collection: {e}")
            return []

        if not isinstance(records, list):
            self.logger.error(f"Error reading collection: expected a list, got {type(records).__name__}")
            return []
        return [OwnedEntry.from_dict(record) for record in records]

    def save(self, entries: List[OwnedEntry]) -> Path:
        """Write the owned pool, creating the data directory if needed."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump([entry.to_dict() for entry in entries], f, indent=2, ensure_ascii=False)
        self.logger.info(f"Saved {len(entries)} collection entries to {self.path}")
        return self.path
