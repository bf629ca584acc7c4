"""
Integration tests for the CLI.

Tests run the argument parser and the command flows end to end with the
card database mocked and all files in a temporary directory.
"""

import io
import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock, patch

from mtg_autobuilder.cli import deck_from_list, handle_user_friendly_errors, main, parse_arguments
from mtg_autobuilder.collection_parser import CollectionParseError
from mtg_autobuilder.collection_store import CollectionStore
from mtg_autobuilder.config import DeckBuildingConfig
from mtg_autobuilder.deck_builder import BadRequestError, CommanderNotFoundError, DeckBuildError
from mtg_autobuilder.models import CardRecord, Deck, OwnedEntry
from mtg_autobuilder.output_manager import OutputManager, read_deck_list
from mtg_autobuilder.scryfall_service import ScryfallAPIError


def make_card(name, type_line='Instant', identity=(), set_code='', collector_number=''):
    return CardRecord(id=f"id-{name}", name=name, type_line=type_line, color_identity=tuple(identity),
                      set_code=set_code, collector_number=collector_number)


def make_entry(name, type_line='Instant', identity=()):
    card = make_card(name, type_line, identity)
    return OwnedEntry(name=name, scryfall_id=card.id, card=card)


OMNATH = make_card('Omnath, Locus of Mana', 'Legendary Creature — Elemental', ['G'])


class TestArgumentParsing(unittest.TestCase):
    """Test cases for parse_arguments()."""

    def test_build_command(self):
        args = parse_arguments(['--strict', 'build', 'Omnath, Locus of Mana', '--rebalance'])

        self.assertEqual(args.command, 'build')
        self.assertEqual(args.commander, 'Omnath, Locus of Mana')
        self.assertTrue(args.rebalance)
        self.assertTrue(args.strict)
        self.assertFalse(args.sample_hand)
        self.assertFalse(args.no_cache)

    def test_import_command(self):
        args = parse_arguments(['import', 'cards.csv'])
        self.assertEqual(args.collection_file, 'cards.csv')

    def test_colors_are_normalized(self):
        args = parse_arguments(['commanders', '--colors', 'wb'])
        self.assertEqual(args.colors, 'WB')

    @patch('sys.stderr', new_callable=io.StringIO)
    def test_invalid_colors(self, mock_stderr):
        with self.assertRaises(SystemExit):
            parse_arguments(['commanders', '--colors', 'wx'])

    @patch('sys.stderr', new_callable=io.StringIO)
    def test_verbose_and_quiet_conflict(self, mock_stderr):
        with self.assertRaises(SystemExit):
            parse_arguments(['--verbose', '--quiet', 'commanders'])

    @patch('sys.stderr', new_callable=io.StringIO)
    def test_command_required(self, mock_stderr):
        with self.assertRaises(SystemExit):
            parse_arguments([])


class TestErrorMessages(unittest.TestCase):
    """Test cases for handle_user_friendly_errors()."""

    def test_messages(self):
        self.assertIn('File not found', handle_user_friendly_errors(FileNotFoundError('x.csv')))
        self.assertIn('collection file', handle_user_friendly_errors(CollectionParseError('bad')))
        self.assertIn('Invalid request', handle_user_friendly_errors(BadRequestError('empty')))
        self.assertIn('Commander issue', handle_user_friendly_errors(CommanderNotFoundError('nope')))
        self.assertIn('Scryfall', handle_user_friendly_errors(ScryfallAPIError('down')))
        self.assertIn('Invalid input', handle_user_friendly_errors(ValueError('bad')))

    def test_deck_build_error_details_only_when_verbose(self):
        error = DeckBuildError('Failed to build deck', details='boom')

        self.assertNotIn('boom', handle_user_friendly_errors(error))
        self.assertIn('boom', handle_user_friendly_errors(error, verbose=True))

    def test_unexpected_error(self):
        self.assertIn('--verbose', handle_user_friendly_errors(RuntimeError('x')))
        self.assertIn('x', handle_user_friendly_errors(RuntimeError('x'), verbose=True))


class TestDeckFromList(unittest.TestCase):
    """Test cases for deck_from_list()."""

    def test_rebuilds_entries(self):
        sol_ring = make_entry('Sol Ring', 'Artifact')
        deck = deck_from_list(OMNATH, ['sol ring', 'Forest', 'Missing Card'], [sol_ring])

        self.assertIs(deck.cards[0], sol_ring)
        self.assertEqual(deck.cards[1].card.id, 'basic-forest')
        self.assertEqual(len(deck.cards), 2)
        self.assertIs(deck.commander, OMNATH)


class TestMainCommands(unittest.TestCase):
    """End-to-end tests of main() with the card database mocked."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.data_dir = self.temp_dir / 'data'
        self.output_dir = self.temp_dir / 'decks'

        manager = Mock()
        manager.get_config.return_value = DeckBuildingConfig()
        manager.get_data_dir.return_value = self.data_dir
        manager.get_logs_dir.return_value = self.temp_dir / 'logs'

        self.scryfall = Mock()
        patchers = [
            patch('mtg_autobuilder.cli.ConfigManager', return_value=manager),
            patch('mtg_autobuilder.cli.ScryfallService', return_value=self.scryfall),
            patch('mtg_autobuilder.cli.setup_logging'),
            patch('sys.stdout', new_callable=io.StringIO),
            patch('sys.stderr', new_callable=io.StringIO),
        ]
        for patcher in patchers:
            patcher.start()
            self.addCleanup(patcher.stop)

        self.pool = [
            OwnedEntry(name=OMNATH.name, scryfall_id=OMNATH.id, card=OMNATH),
            make_entry('Sol Ring', 'Artifact'),
            make_entry('Cultivate', 'Sorcery', ['G']),
            make_entry('Llanowar Elves', 'Creature — Elf Druid', ['G']),
            make_entry('Krenko, Mob Boss', 'Legendary Creature — Goblin', ['R']),
        ]

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def _store_pool(self):
        CollectionStore(self.data_dir).save(self.pool)

    def test_import(self):
        collection_file = self.temp_dir / 'cards.txt'
        collection_file.write_text("1 Sol Ring (C21) 263\n", encoding='utf-8')
        self.scryfall.lookup_batch.return_value = [make_card('Sol Ring', 'Artifact', (), 'c21', '263')]

        main(['import', str(collection_file)])

        pool = CollectionStore(self.data_dir).load()
        self.assertEqual(len(pool), 1)
        self.assertEqual(pool[0].card.name, 'Sol Ring')
        self.assertEqual(pool[0].scryfall_id, 'id-Sol Ring')

    def test_commanders_without_collection(self):
        with self.assertRaises(SystemExit) as context:
            main(['commanders'])
        self.assertEqual(context.exception.code, 1)

    def test_commanders(self):
        self._store_pool()

        main(['commanders', '--colors', 'G'])

        output = sys.stdout.getvalue()
        self.assertIn('Omnath, Locus of Mana', output)
        self.assertNotIn('Krenko', output)

    def test_build(self):
        self._store_pool()
        self.scryfall.lookup_by_name.return_value = OMNATH
        self.scryfall.search.return_value = []

        main(['--quiet', '--output-dir', str(self.output_dir), 'build', 'Omnath, Locus of Mana'])

        deck_file = self.output_dir / 'omnath_locus_of_mana_deck.txt'
        self.assertTrue(deck_file.exists())
        commander, cards = read_deck_list(str(deck_file))
        self.assertEqual(commander, 'Omnath, Locus of Mana')
        self.assertEqual(cards.count('Forest'), 39)
        self.assertIn('Sol Ring', cards)
        self.assertNotIn('Krenko, Mob Boss', cards)

    def test_build_unknown_commander(self):
        self._store_pool()
        self.scryfall.lookup_by_name.return_value = None

        with self.assertRaises(SystemExit) as context:
            main(['--output-dir', str(self.output_dir), 'build', 'Not A Card'])
        self.assertEqual(context.exception.code, 1)

    def test_rebalance(self):
        self._store_pool()
        source = OutputManager(str(self.temp_dir / 'saved')).write_deck_file(
            Deck(commander=OMNATH, cards=[self.pool[1]])
        )

        main(['--quiet', '--output-dir', str(self.output_dir), 'rebalance', source])

        written = os.listdir(self.output_dir)
        self.assertEqual(len(written), 1)
        commander, cards = read_deck_list(str(self.output_dir / written[0]))
        self.assertEqual(commander, 'Omnath, Locus of Mana')
        self.assertEqual(cards.count('Forest'), 35)
        self.assertIn('Cultivate', cards)
        self.assertIn('Llanowar Elves', cards)
        self.assertEqual(len(cards), 38)
        self.scryfall.lookup_by_name.assert_not_called()


if __name__ == '__main__':
    unittest.main()
