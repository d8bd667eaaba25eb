"""
Design Vault CLI.

Usage:
    python -m server.cli [--db URL] seed
    python -m server.cli [--db URL] tree
    python -m server.cli [--db URL] export [--out FILE]
    python -m server.cli [--db URL] import FILE
    python -m server.cli [--db URL] due
    python -m server.cli [--db URL] stats
    python -m server.cli [--db URL] study [--mode all|due|images]
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from server.config import Settings
from server.db.session import get_db, init_db
from server.services import category_service, item_service, progress_service, seed_service, transfer_service
from vault.errors import VaultError
from vault.models import Item, SessionStat
from vault.session import SessionPhase, StudyMode, StudySession, select_cards

logger = logging.getLogger("vault.cli")

GRADE_KEYS = {
    'a': 'again', 'again': 'again',
    'g': 'good', 'good': 'good',
    'e': 'easy', 'easy': 'easy',
}


def cmd_seed(args, settings: Settings, output_fn=print) -> int:
    """Reset categories and items to the sample data."""
    with get_db(settings) as db:
        result = seed_service.seed(db)
    output_fn(result['message'])
    return 0


def _print_nodes(nodes: List[Dict], output_fn, depth: int = 0) -> None:
    for node in nodes:
        output_fn(f"{'  ' * depth}- {node['name']} ({node['id']})")
        _print_nodes(node['children'], output_fn, depth + 1)


def cmd_tree(args, settings: Settings, output_fn=print) -> int:
    """Print the category forest."""
    with get_db(settings) as db:
        roots = category_service.build_tree(db)
    if not roots:
        output_fn("No categories.")
        return 0
    _print_nodes(roots, output_fn)
    return 0


def cmd_export(args, settings: Settings, output_fn=print) -> int:
    with get_db(settings) as db:
        bundle = transfer_service.export_items(db)
    text = json.dumps(bundle, indent=2)
    if args.out:
        Path(args.out).write_text(text, encoding='utf-8')
        output_fn(f"Exported {len(bundle['items'])} items to {args.out}")
    else:
        output_fn(text)
    return 0


def cmd_import(args, settings: Settings, output_fn=print) -> int:
    """Replace every item with the contents of an export file."""
    path = Path(args.file)
    if not path.exists():
        output_fn(f"File not found: {path}")
        return 1
    try:
        payload = json.loads(path.read_text(encoding='utf-8'))
    except json.JSONDecodeError as e:
        output_fn(f"Invalid JSON in {path}: {e}")
        return 1
    with get_db(settings) as db:
        result = transfer_service.import_items(db, payload)
    output_fn(result['message'])
    return 0


def cmd_due(args, settings: Settings, output_fn=print) -> int:
    with get_db(settings) as db:
        due = progress_service.get_due_items(db)
    if not due['dueCount']:
        output_fn("Nothing due for review.")
        return 0
    output_fn(f"\n{due['dueCount']} item(s) due for review:\n")
    for i, item in enumerate(due['items'], 1):
        if item['dueAt']:
            output_fn(f"  {i}. {item['name']}  (every {item['intervalDays']}d, due {item['dueAt']})")
        else:
            output_fn(f"  {i}. {item['name']}  (never studied)")
    return 0


def cmd_stats(args, settings: Settings, output_fn=print) -> int:
    with get_db(settings) as db:
        stats = progress_service.get_session_stats(db)
        item_count = len(item_service.list_all(db))
        grade_count = len(progress_service.list_grades(db))

    output_fn(f"\nItems:    {item_count}")
    output_fn(f"Grades:   {grade_count}")
    output_fn(f"Sessions: {stats['totalSessions']}")
    if stats['totalSessions']:
        output_fn(f"  Cards studied:    {stats['totalCards']}")
        output_fn(f"  Again/Good/Easy:  {stats['totalAgain']}/{stats['totalGood']}/{stats['totalEasy']}")
        output_fn(f"  Average accuracy: {stats['averageAccuracy'] * 100:.1f}%")
        output_fn(f"  Total accuracy:   {stats['totalAccuracy'] * 100:.1f}%")
        output_fn(f"  Coins earned:     {stats['totalCoins']}")
    return 0


def _show_card(card: Item, output_fn) -> None:
    if card.description:
        output_fn(f"  {card.description}")
    if card.cost is not None:
        output_fn(f"  Cost: {card.cost:g} {card.currency}")
    if card.dimensions:
        dims = ", ".join(f"{k}={v}" for k, v in card.dimensions.items())
        output_fn(f"  Dimensions: {dims}")
    if card.tags:
        output_fn(f"  Tags: {', '.join(card.tags)}")
    for asset in card.assets:
        output_fn(f"  Image: {asset.url}")


def _ask_grade(input_fn, output_fn) -> Optional[str]:
    """Prompt until a valid grade is given. None means quit."""
    while True:
        answer = input_fn("Grade [a]gain / [g]ood / [e]asy, q to quit: ").strip().lower()
        if answer == 'q':
            return None
        if answer in GRADE_KEYS:
            return GRADE_KEYS[answer]
        output_fn("  Please answer a, g or e.")


def run_study_session(
    settings: Settings,
    mode: str = StudyMode.ALL.value,
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
    rng=None,
) -> Optional[SessionStat]:
    """
    Run an interactive flashcard session over the vault's items.

    IO is injectable for testability. Each grade is written to the ledger as
    it is given. When the last card is graded the session summary is saved;
    if that save fails the session still counts as complete.

    Returns:
        The session summary, or None if there were no cards or the user quit.
    """
    with get_db(settings) as db:
        items = item_service.list_all(db)
        records = progress_service.list_grades(db)
    cards = select_cards(mode, items, records, rng=rng)
    if not cards:
        output_fn("No cards to study.")
        return None

    session = StudySession(coin_rewards=settings.coin_rewards)
    session.start(mode, cards)
    output_fn(f"\n{'='*60}")
    output_fn(f"STUDY SESSION ({mode}) -- {len(cards)} card(s)")
    output_fn(f"{'='*60}")

    try:
        while session.phase is SessionPhase.IN_PROGRESS:
            card = session.current_card
            progress = session.progress()
            output_fn(f"\n[{progress['cardIndex'] + 1}/{progress['total']}] {card.name} ({card.kind})")
            if input_fn("Press Enter to reveal, q to quit: ").strip().lower() == 'q':
                output_fn("Session ended early.")
                return None
            _show_card(session.reveal(), output_fn)
            grade = _ask_grade(input_fn, output_fn)
            if grade is None:
                output_fn("Session ended early.")
                return None
            record = session.grade(grade)
            with get_db(settings) as db:
                progress_service.record_grade(db, record.item_id, record.grade, record.timestamp)
    except (EOFError, KeyboardInterrupt):
        output_fn("\nSession ended.")
        return None

    stat = session.summary()
    output_fn(f"\nDone: {stat.total_cards} card(s), accuracy {stat.accuracy * 100:.1f}%, "
              f"{stat.coins_earned} coin(s) earned")
    try:
        with get_db(settings) as db:
            progress_service.record_session(db, stat)
    except (VaultError, SQLAlchemyError) as e:
        logger.warning("Could not save session stats: %s", e)
    return stat


def cmd_study(args, settings: Settings, output_fn=print) -> int:
    run_study_session(settings, mode=args.mode, output_fn=output_fn)
    return 0


COMMANDS = {
    'seed': cmd_seed,
    'tree': cmd_tree,
    'export': cmd_export,
    'import': cmd_import,
    'due': cmd_due,
    'stats': cmd_stats,
    'study': cmd_study,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Design Vault -- catalogue and spaced study",
        prog="vault",
    )
    parser.add_argument(
        '--db', default=None,
        help="Database URL (default: $DATABASE_URL or sqlite:///./vault.db)",
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('seed', help='Reset categories and items to the sample data')
    subparsers.add_parser('tree', help='Print the category tree')

    export_parser = subparsers.add_parser('export', help='Export all items as JSON')
    export_parser.add_argument('--out', default=None, help='Write to this file instead of stdout')

    import_parser = subparsers.add_parser('import', help='Replace all items from an export file')
    import_parser.add_argument('file', help='Path to an export JSON file')

    subparsers.add_parser('due', help='List items due for review')
    subparsers.add_parser('stats', help='Show study statistics')

    study_parser = subparsers.add_parser('study', help='Run an interactive flashcard session')
    study_parser.add_argument(
        '--mode', default=StudyMode.ALL.value,
        choices=[m.value for m in StudyMode],
        help='Which cards to study (default: all)',
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    settings = Settings(database_url=args.db)
    init_db(settings)
    try:
        return COMMANDS[args.command](args, settings)
    except VaultError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
