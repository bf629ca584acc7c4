"""MTG Collection Auto-Builder

A command-line tool that auto-builds MTG Commander decks from the cards in
a user's collection, suggesting affordable staples for the gaps.
"""

__version__ = "0.1.0"
__author__ = "MTG Collection Auto-Builder"
__description__ = "Auto-build Commander decks from your card collection"
