"""
Contextual Recall command line
Index tracked vault documents and review due cards
"""

import argparse
import asyncio
import sys
from datetime import datetime
from typing import List, Optional

from .core.config import Settings, get_settings
from .models.card import Card
from .models.value_objects import Rating
from .services.recall_service import RecallService
from .utils.logging import setup_logging
from .version import get_version


def _format_due(card: Card) -> str:
    if card.due_date is None:
        return "-"
    return datetime.fromtimestamp(card.due_date / 1000).strftime("%Y-%m-%d %H:%M")


def _print_cards(cards: List[Card]) -> None:
    for card in cards:
        print(f"  {card.id}  {_format_due(card)}  {card.document_path} :: {card.question}")


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    service = RecallService.from_settings(settings)
    # The reindex command runs the pass itself to report its counters
    await service.start(reindex=args.command != "reindex")

    try:
        if args.command == "reindex":
            print("🔄 Re-indexing tracked documents...")
            stats = await service.reindex_all()
            print("\n📊 Stats:")
            print(f"  Documents: {stats['documents']}")
            print(f"  Synced:    {stats['synced']}")
            print(f"  Skipped:   {stats['skipped']}")
            print(f"  Errors:    {stats['errors']}")
            print(f"  Cards:     {stats['cards']}")
            print(f"  Stale:     {stats['stale']}")

        elif args.command == "due":
            cards = await service.get_due_cards()
            print(f"📚 {len(cards)} cards due")
            _print_cards(cards)

        elif args.command == "documents":
            for path in await service.get_documents_with_cards():
                print(path)

        elif args.command == "cards":
            cards = await service.get_cards_for_document(args.path)
            print(f"📄 {args.path}: {len(cards)} cards")
            _print_cards(cards)

        elif args.command == "track":
            if await service.track_document(args.path):
                cards = await service.get_cards_for_document(args.path)
                print(f"✓ Tracking {args.path} ({len(cards)} cards)")
            else:
                print(f"Already tracked: {args.path}")

        elif args.command == "untrack":
            if await service.untrack_document(args.path):
                print(f"✓ Stopped tracking {args.path}")
            else:
                print(f"Not tracked: {args.path}")

        elif args.command == "review":
            state = await service.review_card(args.card_id, Rating(args.rating))
            if state is None:
                print(f"Card not found: {args.card_id}", file=sys.stderr)
                return 1
            next_due = datetime.fromtimestamp(state.due_date / 1000)
            print(
                f"✓ Next review in {state.interval} days "
                f"({next_due:%Y-%m-%d}), ease {state.ease:.2f}"
            )

        elif args.command == "show":
            card = await service.store.get(args.card_id)
            if card is None:
                print(f"Card not found: {args.card_id}", file=sys.stderr)
                return 1
            print(f"❓ {card.question}")
            print(f"  Document: {card.document_path}")
            print(f"  Due: {_format_due(card)}  Interval: {card.interval}  Ease: {card.ease:.2f}")
            content = await service.get_card_content(card)
            if content:
                print()
                print(content)

    finally:
        await service.stop()

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recall",
        description="Spaced repetition over the headings of Markdown notes",
    )
    parser.add_argument("--version", action="version", version=get_version())
    parser.add_argument("--vault", help="Vault directory (overrides RECALL_VAULT_PATH)")
    parser.add_argument("--data-dir", help="Data directory (overrides RECALL_DATA_DIR)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("reindex", help="Re-index all tracked documents")
    commands.add_parser("due", help="List cards due for review")
    commands.add_parser("documents", help="List documents that have cards")

    cards = commands.add_parser("cards", help="List the cards of one document")
    cards.add_argument("path")

    track = commands.add_parser("track", help="Track a document and index it")
    track.add_argument("path")

    untrack = commands.add_parser("untrack", help="Stop tracking a document")
    untrack.add_argument("path")

    review = commands.add_parser("review", help="Rate a card")
    review.add_argument("card_id")
    review.add_argument("rating", choices=["hard", "good", "easy"])

    show = commands.add_parser("show", help="Show a card and its section")
    show.add_argument("card_id")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    overrides = {}
    if args.vault:
        overrides["vault_path"] = args.vault
    if args.data_dir:
        overrides["data_dir"] = args.data_dir
    if overrides:
        settings = settings.model_copy(update=overrides)

    setup_logging(
        log_level="DEBUG" if args.verbose else settings.log_level,
        log_to_file=settings.log_to_file,
        logs_dir=settings.data_root / "logs",
        stream=sys.stderr,
    )

    return asyncio.run(_run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
