"""Output manager for handling deck file generation and formatting."""

import logging
import re
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from .deck_analysis import DeckStatistics
from .models import Deck


DECK_SECTIONS = ("COMMANDER", "NONLANDS", "LANDS")
_SECTION_HEADER = re.compile(r'^([A-Z ]+?)(?: \(\d+ cards\))?:$')
_CARD_LINE = re.compile(r'^(\d+)\s+(.+)$')


class OutputManager:
    """Handles deck file output and formatting."""

    def __init__(self, output_directory: str = "."):
        """
        Initialize output manager.

        Args:
            output_directory: Directory where deck files will be written
        """
        self.logger = logging.getLogger(__name__)
        self.output_directory = Path(output_directory)
        self.output_directory.mkdir(parents=True, exist_ok=True)

    def generate_filename(self, commander: str) -> str:
        """
        Generate unique filename for deck output with timestamp handling.

        Args:
            commander: Name of the commander card

        Returns:
            Unique filename with timestamp if needed
        """
        safe_name = self._sanitize_filename(commander)
        base_filename = f"{safe_name}_deck.txt"

        if not (self.output_directory / base_filename).exists():
            return base_filename

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return f"{safe_name}_deck_{timestamp}.txt"

    def _sanitize_filename(self, name: str) -> str:
        """
        Sanitize a string to be safe for use as a filename.

        Args:
            name: Raw string to sanitize

        Returns:
            Sanitized filename-safe string
        """
        sanitized = name.lower().replace(" ", "_")
        sanitized = "".join(c for c in sanitized if c.isalnum() or c in "_-")

        if not sanitized:
            sanitized = "unknown_commander"

        return sanitized[:50]

    def format_deck_list(self, deck: Deck, statistics: Optional[DeckStatistics] = None,
                         deck_url: str = "") -> str:
        """
        Format deck list in readable text format.

        Args:
            deck: Deck to format
            statistics: Optional deck statistics to include
            deck_url: Optional EDHREC page for the commander

        Returns:
            Formatted deck list as string
        """
        commander = deck.commander.name if deck.commander else "Unknown Commander"
        lands = Counter(c.name for c in deck.cards if c.is_land)
        nonlands = Counter(c.name for c in deck.cards if not c.is_land)

        lines = []
        lines.append("=" * 60)
        lines.append(f"MTG Commander Deck: {commander}")
        lines.append("=" * 60)
        lines.append("")

        lines.append("COMMANDER:")
        lines.append(f"1 {commander}")
        lines.append("")

        lines.append(f"NONLANDS ({sum(nonlands.values())} cards):")
        for name in sorted(nonlands):
            lines.append(f"{nonlands[name]} {name}")
        lines.append("")

        lines.append(f"LANDS ({sum(lands.values())} cards):")
        for name in sorted(lands):
            lines.append(f"{lands[name]} {name}")
        lines.append("")

        lines.append("DECK SUMMARY:")
        lines.append(f"Total Cards: {deck.total_cards}")
        if deck.color_identity:
            lines.append(f"Color Identity: {', '.join(deck.color_identity)}")
        else:
            lines.append("Color Identity: Colorless")
        if deck_url:
            lines.append(f"EDHREC: {deck_url}")

        duplicates = deck.singleton_violations()
        if duplicates:
            lines.append(f"⚠ Singleton rule violations: {', '.join(duplicates)}")

        if statistics:
            lines.append("")
            lines.append("DECK STATISTICS:")
            lines.append(f"Average CMC: {statistics.average_cmc:.2f}")
            for category, count in statistics.categories.items():
                if count > 0:
                    lines.append(f"  {category.title()}: {count}")
            lines.append(f"Salt Level: {statistics.salt_level} ({statistics.salt_score:g})")
            lines.append(f"Cards to Acquire: {statistics.missing_count}")

        if deck.missing_cards:
            lines.append("")
            lines.append(f"TO ACQUIRE ({len(deck.missing_cards)} cards not in collection):")
            total_price = 0.0
            for card in deck.missing_cards:
                if card.price_usd is not None:
                    total_price += card.price_usd
                    price_str = f"${card.price_usd:.2f}"
                else:
                    price_str = "Price unavailable"
                lines.append(f"  {card.name} ({card.type_line}) - {price_str}")
            if total_price > 0:
                lines.append(f"Total estimated cost: ${total_price:.2f}")

        lines.append("")
        lines.append("Generated by MTG Collection Auto-Builder")
        lines.append(f"Generated on: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

        return "\n".join(lines)

    def write_deck_file(self, deck: Deck, filename: Optional[str] = None,
                        statistics: Optional[DeckStatistics] = None, deck_url: str = "") -> str:
        """
        Write a formatted deck list to the output directory.

        Args:
            deck: Deck to write
            filename: Optional filename (generated from the commander otherwise)
            statistics: Optional deck statistics
            deck_url: Optional EDHREC page for the commander

        Returns:
            Path of the written file
        """
        if filename is None:
            commander = deck.commander.name if deck.commander else ""
            filename = self.generate_filename(commander)

        output_path = self.output_directory / filename
        try:
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(self.format_deck_list(deck, statistics, deck_url))
        except OSError as e:
            raise OSError(f"Failed to write deck file {output_path}: {e}")

        self.logger.info(f"Deck written to {output_path}")
        return str(output_path)


def read_deck_list(path: str) -> Tuple[Optional[str], List[str]]:
    """
    Read a deck file written by OutputManager.

    Args:
        path: Path to the deck file

    Returns:
        Tuple of (commander name, card names with repeats expanded)
    """
    commander = None
    cards: List[str] = []
    section = None

    with open(path, 'r', encoding='utf-8') as f:
        for raw_line in f:
            line = raw_line.strip()
            header = _SECTION_HEADER.match(line)
            if header:
                section = header.group(1)
                continue
            if section not in DECK_SECTIONS:
                continue
            match = _CARD_LINE.match(line)
            if not match:
                continue
            count, name = int(match.group(1)), match.group(2).strip()
            if section == "COMMANDER":
                commander = name
            else:
                cards.extend([name] * count)

    return commander, cards
