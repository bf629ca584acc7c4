#!/usr/bin/env python3
"""
Main entry point script for MTG Collection Auto-Builder.

This script can be run directly from the command line to import a card
collection and auto-build Commander decks from it.
"""

import sys
from pathlib import Path

# Add the project directory to Python path
project_dir = Path(__file__).parent
sys.path.insert(0, str(project_dir))

from mtg_autobuilder.cli import main

if __name__ == "__main__":
    main()
