"""Command-line interface for the MTG collection auto-builder."""

import argparse
import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, List, Optional

from . import __version__
from .card_cache import CardCache, NullCardCache
from .card_filters import list_commanders
from .collection_parser import CollectionParser, CollectionParseError
from .collection_store import CollectionStore
from .config import ConfigManager, DeckBuildingConfig, apply_env_overrides
from .deck_analysis import analyze_deck, draw_opening_hand
from .deck_builder import (
    AutoDeckBuilder, BadRequestError, CommanderNotFoundError, DeckBuildError,
    assemble_deck, basic_land_record, edhrec_url,
)
from .models import BASIC_LAND_NAMES, CardRecord, Deck, OwnedEntry
from .output_manager import OutputManager, read_deck_list
from .rebalancer import DeckRebalancer
from .scryfall_service import ScryfallAPIError, ScryfallService


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Argument list (defaults to sys.argv)

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog='mtg-autobuild',
        description='Auto-build MTG Commander decks from the cards you own',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s import collection.csv
  %(prog)s commanders --colors WB
  %(prog)s build "Atraxa, Praetors' Voice" --rebalance
  %(prog)s rebalance ./decks/atraxa_praetors_voice_deck.txt
        """
    )

    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose output with detailed progress information')
    parser.add_argument('--quiet', '-q', action='store_true',
                        help='Suppress all output except errors')
    parser.add_argument('--data-dir', type=str, default=None,
                        help='Directory holding the imported collection (default: ~/.mtg_autobuilder/data)')
    parser.add_argument('--output-dir', '-o', type=str, default=None,
                        help='Directory to save generated deck files')
    parser.add_argument('--strict', action='store_true',
                        help='Apply the color relevance filter to owned cards and fillers too')
    parser.add_argument('--no-cache', action='store_true',
                        help='Disable the in-memory card record cache')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.required = True

    import_parser = subparsers.add_parser('import', help='Import a .csv or .txt collection export')
    import_parser.add_argument('collection_file', type=str, help='Path to the collection file')

    commanders_parser = subparsers.add_parser('commanders', help='List commanders in the collection')
    commanders_parser.add_argument('--colors', type=str, default=None,
                                   help='Only list commanders whose identity fits these colors (e.g. WUB)')

    build_parser = subparsers.add_parser('build', help='Auto-build a deck for a commander')
    build_parser.add_argument('commander', type=str, help='Exact name of the commander card')
    build_parser.add_argument('--rebalance', action='store_true',
                              help='Top up the built deck with owned cards afterwards')
    build_parser.add_argument('--sample-hand', action='store_true',
                              help='Draw a sample opening hand from the finished deck')

    rebalance_parser = subparsers.add_parser('rebalance', help='Rebalance a saved deck list')
    rebalance_parser.add_argument('deck_file', type=str, help='Deck file written by the build command')

    args = parser.parse_args(argv)

    if args.verbose and args.quiet:
        parser.error("--verbose and --quiet cannot be used together")

    if getattr(args, 'colors', None):
        colors = args.colors.upper()
        invalid = [c for c in colors if c not in BASIC_LAND_NAMES]
        if invalid:
            parser.error(f"--colors accepts only W, U, B, R and G (got {''.join(invalid)})")
        args.colors = colors

    return args


class ProgressIndicator:
    """Simple progress indicator for long-running operations."""

    def __init__(self, message: str, verbose: bool = False, quiet: bool = False):
        self.message = message
        self.verbose = verbose
        self.quiet = quiet
        self.start_time = None

    def __enter__(self):
        if not self.quiet:
            if self.verbose:
                print(f"[{time.strftime('%H:%M:%S')}] Starting: {self.message}")
            else:
                print(f"{self.message}...", end='', flush=True)

        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time
        if self.quiet:
            return
        if self.verbose:
            outcome = "Completed" if exc_type is None else "Failed"
            print(f"[{time.strftime('%H:%M:%S')}] {outcome}: {self.message} ({duration:.1f}s)")
        else:
            mark = "✓" if exc_type is None else "✗"
            print(f" {mark} ({duration:.1f}s)")

    def update(self, status: str):
        """Update progress status."""
        if not self.quiet and self.verbose:
            print(f"[{time.strftime('%H:%M:%S')}] {self.message}: {status}")


@contextmanager
def progress_context(message: str, verbose: bool = False, quiet: bool = False):
    """Context manager for showing progress indicators during operations."""
    with ProgressIndicator(message, verbose, quiet) as indicator:
        yield indicator


class MultilineFormatter(logging.Formatter):
    """Indents continuation lines of multiline log messages."""

    def format(self, record):
        formatted = super().format(record)
        if '\n' in formatted:
            lines = formatted.split('\n')
            return '\n'.join([lines[0]] + ['  ' + line for line in lines[1:]])
        return formatted


def setup_logging(verbose: bool = False, quiet: bool = False, logs_dir: Optional[Path] = None) -> None:
    """
    Set up logging for user information and debugging.

    Args:
        verbose: Enable verbose logging with detailed operation reporting
        quiet: Enable quiet mode (errors only)
        logs_dir: Directory for the verbose-mode log file
    """
    if quiet:
        level = logging.ERROR
        format_str = '%(levelname)s: %(message)s'
    elif verbose:
        level = logging.DEBUG
        format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    else:
        level = logging.WARNING
        format_str = '%(levelname)s: %(message)s'

    logging.basicConfig(
        level=level,
        format=format_str,
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True
    )
    for handler in logging.root.handlers:
        handler.setFormatter(MultilineFormatter(format_str, datefmt='%Y-%m-%d %H:%M:%S'))

    logging.getLogger('mtg_autobuilder').setLevel(level)

    if not verbose:
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('requests').setLevel(logging.WARNING)
        return

    try:
        log_dir = logs_dir or Path.home() / '.mtg_autobuilder' / 'logs'
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"mtg_autobuilder_{time.strftime('%Y%m%d_%H%M%S')}.log"

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(MultilineFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        logging.root.addHandler(file_handler)
        logging.info(f"Detailed logs will be saved to: {log_file}")
    except OSError as e:
        logging.warning(f"Could not set up file logging: {e}")


def load_owned_pool(store: CollectionStore) -> List[OwnedEntry]:
    """Load the stored collection, failing when nothing has been imported."""
    pool = store.load()
    if not pool:
        raise FileNotFoundError(
            f"No imported collection at {store.path}. Run the 'import' command first."
        )
    return pool


def import_collection(collection_file: str, store: CollectionStore, parser: CollectionParser,
                      verbose: bool = False, quiet: bool = False) -> List[OwnedEntry]:
    """
    Parse, enrich and persist a collection export.

    Args:
        collection_file: Path to the .csv or .txt export
        store: Destination store
        parser: Collection parser with its card database client

    Returns:
        The enriched owned pool
    """
    with progress_context("Importing collection", verbose, quiet) as progress:
        pool = parser.load_collection(collection_file)
        progress.update(f"Parsed {len(pool)} entries")
        path = store.save(pool)

    if not quiet:
        resolved = sum(1 for entry in pool if entry.card is not None)
        print(f"Imported {len(pool)} entries ({resolved} resolved) into {path}")
    return pool


def list_available_commanders(pool: List[OwnedEntry], colors: Optional[str] = None) -> List[OwnedEntry]:
    """Print the owned commanders, optionally limited to a color identity."""
    commanders = list_commanders(pool, colors)

    if not commanders:
        print("No potential commanders found in your collection.")
        print("Make sure your collection includes legendary creatures or planeswalkers that can be commanders.")
        return commanders

    print(f"Found {len(commanders)} potential commanders in your collection:")
    print("-" * 50)
    for i, entry in enumerate(commanders, 1):
        identity = ''.join(entry.card.color_identity) or 'C'
        print(f"{i:3d}. {entry.name} [{identity}]")

    print("\nTo build a deck, run:")
    print('mtg-autobuild build "<commander_name>"')
    return commanders


def print_opening_hand(deck: Deck) -> None:
    print("\nSample opening hand:")
    for entry in draw_opening_hand(deck.cards):
        print(f"  {entry.name}")


def build_commander_deck(
    commander: str,
    pool: List[OwnedEntry],
    builder: AutoDeckBuilder,
    output_manager: OutputManager,
    rebalance: bool = False,
    sample_hand: bool = False,
    verbose: bool = False,
    quiet: bool = False
) -> str:
    """
    Auto-build a deck, assemble it against the pool and write it to disk.

    Args:
        commander: Commander name
        pool: Owned collection
        builder: Auto-build engine
        output_manager: Deck file writer
        rebalance: Top up the assembled deck with owned cards
        sample_hand: Print a sample opening hand

    Returns:
        Path of the written deck file
    """
    start_time = time.time()

    with progress_context("Building deck", verbose, quiet) as progress:
        result = builder.auto_build(commander, pool)
        progress.update(f"Selected {len(result.card_names)} cards")

    deck = assemble_deck(result, pool)

    if rebalance:
        with progress_context("Rebalancing deck", verbose, quiet) as progress:
            outcome = DeckRebalancer(builder.config).rebalance(
                deck, pool, result.commander.color_identity, result.commander.name
            )
            deck = outcome.deck
            progress.update(f"Added {outcome.lands_added} lands and {outcome.nonlands_added} nonlands")

    statistics = analyze_deck(deck)
    output_path = output_manager.write_deck_file(deck, statistics=statistics, deck_url=result.deck_url)

    if not quiet:
        print(f"\n{result.deck_name} completed ({time.time() - start_time:.1f}s)")
        print(f"Deck saved to: {output_path}")
        print(f"  Cards in deck: {deck.total_cards}")
        print(f"  Lands: {statistics.land_count}")
        print(f"  Average CMC: {statistics.average_cmc:.2f}")
        print(f"  Salt Level: {statistics.salt_level}")
        if statistics.missing_count:
            print(f"  Cards to acquire: {statistics.missing_count}")
        print(f"  EDHREC: {result.deck_url}")
        if sample_hand:
            print_opening_hand(deck)

    return output_path


def deck_from_list(commander: CardRecord, card_names: List[str], pool: List[OwnedEntry]) -> Deck:
    """
    Rebuild a Deck from a list of card names using the owned pool.

    Basic lands not in the pool get a minimal record; other unknown names are
    skipped with a warning.
    """
    logger = logging.getLogger(__name__)
    by_name: Dict[str, OwnedEntry] = {}
    for entry in pool:
        if entry.card is not None:
            by_name.setdefault(entry.name.lower(), entry)

    cards = []
    for name in card_names:
        entry = by_name.get(name.lower())
        if entry is not None:
            cards.append(entry)
        elif name in BASIC_LAND_NAMES.values():
            cards.append(OwnedEntry(name=name, card=basic_land_record(name)))
        else:
            logger.warning(f"'{name}' is not in the collection, leaving it out")

    return Deck(commander=commander, cards=cards)


def rebalance_deck_file(
    deck_file: str,
    pool: List[OwnedEntry],
    scryfall: ScryfallService,
    config: DeckBuildingConfig,
    output_manager: OutputManager,
    verbose: bool = False,
    quiet: bool = False
) -> Optional[str]:
    """
    Rebalance a saved deck list against the owned pool.

    Returns:
        Path of the written deck file, or None when the deck was already full
    """
    commander_name, card_names = read_deck_list(deck_file)
    if not commander_name:
        raise ValueError(f"No commander found in deck file: {deck_file}")

    commander = next(
        (e.card for e in pool if e.card is not None and e.name.lower() == commander_name.lower()),
        None
    )
    if commander is None:
        try:
            commander = scryfall.lookup_by_name(commander_name)
        except ScryfallAPIError as e:
            raise CommanderNotFoundError(f"Could not find commander: {commander_name}") from e
        if commander is None:
            raise CommanderNotFoundError(f"Could not find commander: {commander_name}")

    deck = deck_from_list(commander, card_names, pool)

    with progress_context("Rebalancing deck", verbose, quiet) as progress:
        outcome = DeckRebalancer(config).rebalance(deck, pool, commander.color_identity, commander.name)
        progress.update(f"Added {outcome.lands_added} lands and {outcome.nonlands_added} nonlands")

    if outcome.deck_full:
        if not quiet:
            print("Deck is already full (99 cards plus commander). Nothing to rebalance.")
        return None

    output_path = output_manager.write_deck_file(
        outcome.deck, statistics=analyze_deck(outcome.deck), deck_url=edhrec_url(commander.name)
    )
    if not quiet:
        print(f"Deck balanced! Added {outcome.lands_added} lands and {outcome.nonlands_added} nonlands")
        print(f"Deck saved to: {output_path}")
    return output_path


def handle_user_friendly_errors(error: Exception, verbose: bool = False) -> str:
    """
    Convert technical errors into user-friendly error messages.

    Args:
        error: Exception to convert
        verbose: Whether to include technical details

    Returns:
        User-friendly error message
    """
    if isinstance(error, FileNotFoundError):
        return f"File not found: {error}"

    elif isinstance(error, CollectionParseError):
        return f"Could not parse your collection file: {error}"

    elif isinstance(error, BadRequestError):
        return f"Invalid request: {error}"

    elif isinstance(error, CommanderNotFoundError):
        return f"Commander issue: {error}"

    elif isinstance(error, DeckBuildError):
        if verbose and error.details:
            return f"{error}: {error.details}"
        return f"{error}. Use --verbose for more details."

    elif isinstance(error, ScryfallAPIError):
        return f"Scryfall service error: {error}"

    elif isinstance(error, ValueError):
        return f"Invalid input: {error}"

    elif isinstance(error, OSError):
        return f"File system error: {error}"

    else:
        if verbose:
            return f"Unexpected error: {error}"
        else:
            return "An unexpected error occurred. Use --verbose for more details."


def main(argv: Optional[List[str]] = None):
    """Main entry point for the auto-builder CLI."""
    args = None

    try:
        args = parse_arguments(argv)

        config_manager = ConfigManager()
        config = apply_env_overrides(config_manager.get_config())
        if args.strict:
            config.strict_relevance = True

        verbose = args.verbose or config.verbose_output
        quiet = args.quiet
        setup_logging(verbose and not quiet, quiet, config_manager.get_logs_dir())

        data_dir = Path(args.data_dir) if args.data_dir else config_manager.get_data_dir()
        store = CollectionStore(data_dir)
        card_cache = CardCache() if config.card_cache_enabled and not args.no_cache else NullCardCache()
        scryfall = ScryfallService(
            timeout=config.api_timeout_seconds,
            min_request_interval=config.api_request_interval
        )

        if not quiet:
            print(f"MTG Collection Auto-Builder v{__version__}")
            print("=" * 40)

        if args.command == 'import':
            parser = CollectionParser(scryfall_service=scryfall, card_cache=card_cache)
            import_collection(args.collection_file, store, parser, verbose, quiet)
            return

        pool = load_owned_pool(store)
        card_cache.put_many(entry.card for entry in pool if entry.card is not None)

        if args.command == 'commanders':
            list_available_commanders(pool, args.colors)
            return

        output_manager = OutputManager(args.output_dir or config.default_output_dir)

        if args.command == 'build':
            builder = AutoDeckBuilder(scryfall_service=scryfall, config=config, card_cache=card_cache)
            build_commander_deck(
                commander=args.commander,
                pool=pool,
                builder=builder,
                output_manager=output_manager,
                rebalance=args.rebalance,
                sample_hand=args.sample_hand,
                verbose=verbose,
                quiet=quiet
            )
        elif args.command == 'rebalance':
            rebalance_deck_file(args.deck_file, pool, scryfall, config, output_manager, verbose, quiet)

    except KeyboardInterrupt:
        if not (args and args.quiet):
            print("\nOperation cancelled by user")
        sys.exit(1)

    except (FileNotFoundError, ValueError, CollectionParseError, BadRequestError,
            CommanderNotFoundError) as e:
        print(f"Error: {handle_user_friendly_errors(e, args.verbose if args else False)}", file=sys.stderr)
        sys.exit(1)

    except Exception as e:
        verbose = bool(args and args.verbose)
        if verbose:
            logging.exception(f"Unexpected error: {e}")
        print(f"Error: {handle_user_friendly_errors(e, verbose)}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
