"""
Unit tests for the deck rebalancer.

Tests cover the full-deck short circuit, land and nonland top-ups, candidate
filtering and the rarity ordering of nonland picks.
"""

import unittest

from mtg_autobuilder.config import DeckBuildingConfig
from mtg_autobuilder.models import CardRecord, Deck, OwnedEntry
from mtg_autobuilder.rebalancer import DONE, DeckRebalancer


def make_entry(name, type_line='Instant', identity=(), rarity='common', text=''):
    card = CardRecord(id=f"id-{name}", name=name, type_line=type_line,
                      color_identity=tuple(identity), rarity=rarity, oracle_text=text)
    return OwnedEntry(name=name, scryfall_id=card.id, card=card)


SIMIC = CardRecord(id='cmd', name='Kinnan, Bonder Prodigy', type_line='Legendary Creature — Human Druid',
                   color_identity=('G', 'U'))


class TestFullDeck(unittest.TestCase):
    """Test cases for decks that cannot take more cards."""

    def test_ninety_nine_cards_is_full(self):
        cards = [make_entry(f"Card {i}") for i in range(99)]
        deck = Deck(commander=SIMIC, cards=cards)
        rebalancer = DeckRebalancer()

        result = rebalancer.rebalance(deck, [make_entry('Spare', 'Instant', ['U'])], ['G', 'U'])

        self.assertTrue(result.deck_full)
        self.assertIs(result.deck, deck)
        self.assertEqual(result.lands_added, 0)
        self.assertEqual(result.nonlands_added, 0)
        self.assertEqual(rebalancer.state, DONE)


class TestRebalance(unittest.TestCase):
    """Test cases for topping up a partial deck."""

    def setUp(self):
        self.deck_cards = [make_entry(f"Spell {i}", 'Instant', ['U']) for i in range(60)]
        self.deck_cards += [make_entry('Forest', 'Basic Land — Forest', ['G'])] * 20
        self.deck = Deck(commander=SIMIC, cards=self.deck_cards,
                         missing_cards=[CardRecord(id='m', name='Mana Crypt')])

        self.owned_forest = make_entry('Forest', 'Basic Land — Forest', ['G'])
        self.pool = [
            make_entry('Spell 0', 'Instant', ['U']),
            make_entry('Breeding Pool', 'Land — Forest Swamp', ['G', 'B']),
            make_entry('Yavimaya Coast', 'Land'),
            make_entry('Flooded Grove', 'Land'),
            make_entry('Common Trick', 'Instant', ['U'], rarity='common'),
            make_entry('Rare Ramp', 'Sorcery', ['G'], rarity='rare'),
            make_entry('Mythic Bomb', 'Creature — Hydra', ['G'], rarity='mythic'),
            make_entry('Rare Draw', 'Instant', ['U'], rarity='rare'),
            make_entry('Red Matters', 'Instant', ['U'], rarity='mythic', text='Red spells cost {1} less.'),
            make_entry('Kinnan, Bonder Prodigy', 'Legendary Creature', ['G', 'U'], rarity='mythic'),
            make_entry('Rare Draw', 'Instant', ['U'], rarity='rare'),
            OwnedEntry(name='Unresolved'),
            self.owned_forest,
        ]

    def test_lands_then_nonlands(self):
        rebalancer = DeckRebalancer()

        result = rebalancer.rebalance(self.deck, self.pool, ['G', 'U'])

        self.assertFalse(result.deck_full)
        # 15 lands needed: 2 owned nonbasics (limit 7), then 13 basics split 7/6
        self.assertEqual(result.lands_added, 15)
        added = result.deck.cards[80:]
        added_names = [e.name for e in added]
        self.assertEqual(added_names[:2], ['Yavimaya Coast', 'Flooded Grove'])
        self.assertEqual(added_names[2:15], ['Forest'] * 7 + ['Island'] * 6)
        self.assertEqual(added_names[15:], ['Mythic Bomb', 'Rare Ramp', 'Rare Draw', 'Common Trick'])
        self.assertEqual(result.nonlands_added, 4)
        self.assertEqual(result.deck.land_count, 35)
        self.assertEqual(rebalancer.state, DONE)

    def test_missing_cards_cleared_and_input_untouched(self):
        result = DeckRebalancer().rebalance(self.deck, self.pool, ['G', 'U'])

        self.assertEqual(result.missing_cards, [])
        self.assertEqual(len(self.deck.cards), 80)
        self.assertEqual(len(self.deck.missing_cards), 1)

    def test_owned_basics_are_reused(self):
        result = DeckRebalancer().rebalance(self.deck, self.pool, ['G', 'U'])

        forests = [e for e in result.deck.cards[80:] if e.name == 'Forest']
        islands = [e for e in result.deck.cards[80:] if e.name == 'Island']
        self.assertTrue(all(e is self.owned_forest for e in forests))
        self.assertEqual(islands[0].card.id, 'basic-island')

    def test_identity_defaults_to_commander(self):
        result = DeckRebalancer().rebalance(self.deck, self.pool)

        self.assertNotIn('Breeding Pool', result.deck.card_names)
        self.assertNotIn('Kinnan, Bonder Prodigy', result.deck.card_names)

    def test_slots_limit_additions(self):
        config = DeckBuildingConfig(rebalance_total_target=84)
        result = DeckRebalancer(config).rebalance(self.deck, self.pool, ['G', 'U'])

        self.assertEqual(result.lands_added, 4)
        self.assertEqual(result.nonlands_added, 0)
        self.assertEqual(len(result.deck.cards), 84)

    def test_enough_lands_only_adds_nonlands(self):
        config = DeckBuildingConfig(rebalance_land_target=20)
        result = DeckRebalancer(config).rebalance(self.deck, self.pool, ['G', 'U'])

        self.assertEqual(result.lands_added, 0)
        self.assertEqual(result.nonlands_added, 4)

    def test_commander_name_override(self):
        deck = Deck(commander=None, cards=list(self.deck_cards))
        result = DeckRebalancer().rebalance(deck, self.pool, ['G', 'U'], commander_name='Mythic Bomb')

        self.assertNotIn('Mythic Bomb', result.deck.card_names)
        self.assertIn('Kinnan, Bonder Prodigy', result.deck.card_names)


if __name__ == '__main__':
    unittest.main()
