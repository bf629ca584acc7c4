"""
Unit tests for data models.

Tests cover CardRecord construction from Scryfall data, commander
eligibility, OwnedEntry persistence and Deck bookkeeping.
"""

import unittest

from mtg_autobuilder.models import (
    CardRecord, Deck, OwnedEntry, RebalanceResult, rarity_rank,
)


class TestCardRecord(unittest.TestCase):
    """Test cases for CardRecord."""

    def test_from_scryfall_data_basic_fields(self):
        """Test parsing of a single-faced Scryfall card object."""
        data = {
            'id': 'abc-123',
            'name': 'Sol Ring',
            'type_line': 'Artifact',
            'color_identity': [],
            'oracle_text': '{T}: Add {C}{C}.',
            'rarity': 'uncommon',
            'prices': {'usd': '1.50'},
            'edhrec_rank': 1,
            'mana_cost': '{1}',
            'cmc': 1.0,
            'set': 'c21',
            'collector_number': '263',
            'image_uris': {'normal': 'https://img/sol.jpg'},
        }

        card = CardRecord.from_scryfall_data(data)

        self.assertEqual(card.id, 'abc-123')
        self.assertEqual(card.name, 'Sol Ring')
        self.assertEqual(card.color_identity, ())
        self.assertEqual(card.price_usd, 1.5)
        self.assertEqual(card.edhrec_rank, 1)
        self.assertEqual(card.set_code, 'c21')
        self.assertEqual(card.image_uri, 'https://img/sol.jpg')
        self.assertFalse(card.is_land)

    def test_from_scryfall_data_multiface(self):
        """Test that face texts and face images are picked up for double-faced cards."""
        data = {
            'id': 'dfc-1',
            'name': 'Delver of Secrets // Insectile Aberration',
            'type_line': 'Creature — Human Wizard // Creature — Human Insect',
            'color_identity': ['U'],
            'card_faces': [
                {'oracle_text': 'At the beginning of your upkeep, look at the top card.',
                 'image_uris': {'normal': 'https://img/front.jpg'}},
                {'oracle_text': 'Flying'},
            ],
            'prices': {'usd': None},
        }

        card = CardRecord.from_scryfall_data(data)

        self.assertEqual(card.face_texts[1], 'Flying')
        self.assertIn('Flying', card.combined_text)
        self.assertIn('upkeep', card.combined_text)
        self.assertEqual(card.image_uri, 'https://img/front.jpg')
        self.assertIsNone(card.price_usd)

    def test_can_be_commander(self):
        """Test commander eligibility for creatures and planeswalkers."""
        legend = CardRecord(id='1', name='Krenko, Mob Boss', type_line='Legendary Creature — Goblin Warrior')
        walker = CardRecord(
            id='2', name='Teferi, Temporal Archmage',
            type_line='Legendary Planeswalker — Teferi',
            oracle_text='Teferi, Temporal Archmage can be your commander.'
        )
        plain_walker = CardRecord(id='3', name='Jace Beleren', type_line='Legendary Planeswalker — Jace')
        creature = CardRecord(id='4', name='Grizzly Bears', type_line='Creature — Bear')

        self.assertTrue(legend.can_be_commander)
        self.assertTrue(walker.can_be_commander)
        self.assertFalse(plain_walker.can_be_commander)
        self.assertFalse(creature.can_be_commander)

    def test_identity_within(self):
        """Test color identity containment."""
        card = CardRecord(id='1', name='Azorius Signet', type_line='Artifact', color_identity=('W', 'U'))

        self.assertTrue(card.identity_within(['W', 'U', 'B', 'G']))
        self.assertFalse(card.identity_within(['W']))
        self.assertTrue(CardRecord(id='2', name='Sol Ring').identity_within([]))

    def test_land_flags(self):
        """Test land and basic land detection."""
        forest = CardRecord(id='1', name='Forest', type_line='Basic Land — Forest', color_identity=('G',))
        tower = CardRecord(id='2', name='Command Tower', type_line='Land')

        self.assertTrue(forest.is_land)
        self.assertTrue(forest.is_basic_land)
        self.assertTrue(tower.is_land)
        self.assertFalse(tower.is_basic_land)

    def test_snow_basic_is_basic_land(self):
        snow = CardRecord(id='3', name='Snow-Covered Forest', type_line='Basic Snow Land — Forest',
                          color_identity=('G',))
        self.assertTrue(snow.is_land)
        self.assertTrue(snow.is_basic_land)
        self.assertFalse(CardRecord(id='4', name='Arctic Treeline', type_line='Snow Land — Forest Plains').is_basic_land)


class TestRarityRank(unittest.TestCase):
    """Test cases for rarity ranking."""

    def test_known_rarities(self):
        self.assertEqual(rarity_rank('mythic'), 4)
        self.assertEqual(rarity_rank('rare'), 3)
        self.assertEqual(rarity_rank('uncommon'), 2)
        self.assertEqual(rarity_rank('common'), 1)

    def test_unknown_rarities_rank_as_common(self):
        self.assertEqual(rarity_rank('special'), 1)
        self.assertEqual(rarity_rank(None), 1)


class TestOwnedEntry(unittest.TestCase):
    """Test cases for OwnedEntry."""

    def test_unenriched_entry(self):
        """Test that an entry without a card record reports no type and no land."""
        entry = OwnedEntry(name='Mystery Card')
        self.assertEqual(entry.type_line, '')
        self.assertFalse(entry.is_land)

    def test_persisted_record_shape(self):
        """Test the JSON record keys and reading them back."""
        card = CardRecord(id='abc', name='Sol Ring', type_line='Artifact', set_code='c21',
                          collector_number='263', price_usd=1.5)
        entry = OwnedEntry(name='Sol Ring', quantity=2, scryfall_id='abc', set_code='c21',
                           collector_number='263', card=card)

        record = entry.to_dict()
        self.assertEqual(set(record), {'quantity', 'scryfall_id', 'name', 'set', 'collector_number', 'details'})
        self.assertEqual(record['details']['set'], 'c21')

        restored = OwnedEntry.from_dict(record)
        self.assertEqual(restored.quantity, 2)
        self.assertEqual(restored.card, card)

    def test_from_dict_without_details(self):
        entry = OwnedEntry.from_dict({'name': 'Unknown', 'quantity': 1, 'details': None})
        self.assertIsNone(entry.card)


class TestDeck(unittest.TestCase):
    """Test cases for Deck bookkeeping."""

    def setUp(self):
        self.commander = CardRecord(
            id='cmd', name='Omnath, Locus of Mana', type_line='Legendary Creature — Elemental',
            color_identity=('G',)
        )
        forest = CardRecord(id='f', name='Forest', type_line='Basic Land — Forest', color_identity=('G',))
        ring = CardRecord(id='r', name='Sol Ring', type_line='Artifact')
        self.deck = Deck(commander=self.commander, cards=[
            OwnedEntry(name='Forest', card=forest),
            OwnedEntry(name='Forest', card=forest),
            OwnedEntry(name='Sol Ring', card=ring),
        ])

    def test_counts(self):
        self.assertEqual(self.deck.color_identity, ('G',))
        self.assertEqual(self.deck.land_count, 2)
        self.assertEqual(self.deck.total_cards, 4)
        self.assertEqual(self.deck.card_names, ['Forest', 'Forest', 'Sol Ring'])

    def test_singleton_violations_ignore_basics(self):
        self.assertEqual(self.deck.singleton_violations(), [])

        ring = self.deck.cards[2]
        self.deck.cards.append(ring)
        self.assertEqual(self.deck.singleton_violations(), ['Sol Ring'])

    def test_repeated_snow_basics_are_not_violations(self):
        snow = CardRecord(id='s', name='Snow-Covered Forest', type_line='Basic Snow Land — Forest',
                          color_identity=('G',))
        self.deck.cards.extend([OwnedEntry(name='Snow-Covered Forest', card=snow)] * 3)

        self.assertEqual(self.deck.singleton_violations(), [])

    def test_empty_deck(self):
        deck = Deck()
        self.assertEqual(deck.color_identity, ())
        self.assertEqual(deck.total_cards, 0)


class TestResults(unittest.TestCase):
    """Test cases for result objects."""

    def test_rebalance_result_missing_cards(self):
        deck = Deck(missing_cards=[CardRecord(id='x', name='Sol Ring')])
        result = RebalanceResult(deck=deck)
        self.assertEqual(len(result.missing_cards), 1)
        self.assertFalse(result.deck_full)


if __name__ == '__main__':
    unittest.main()
