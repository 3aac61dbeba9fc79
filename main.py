"""
Dispatch engine entry point.

Runs a live chat intake against OpenAI, or inspects the ledger kept in
the JSON document store under ``DISPATCH_DATA_DIR``.

Usage:
    Live chat:       python main.py chat
    Availability:    python main.py summary --days 7
    Dashboard stats: python main.py stats
    CSV import:      python main.py import bookings.csv
    Offline demo:    python main.py console
"""

import argparse
import asyncio
import logging
from pathlib import Path

from dispatch.config import settings
from dispatch.ledger.booking_ledger import BookingLedger
from dispatch.ledger.store import JsonFileStore

logger = logging.getLogger(__name__)


def _open_ledger() -> BookingLedger:
    return BookingLedger(JsonFileStore(Path(settings.store.data_dir)))


async def _run_chat() -> None:
    """Interactive chat intake (requires OPENAI_API_KEY)."""
    from dispatch.conversation.extraction import OpenAIExtractionOracle
    from dispatch.conversation.session import ChatSession, OpenAIConversationProvider

    ledger = _open_ledger()
    session = ChatSession(ledger, OpenAIConversationProvider(), OpenAIExtractionOracle())
    print(f"[Assistant] {await session.open()}")
    while not session.closed:
        text = await asyncio.to_thread(input, "[You] ")
        if text.strip().lower() in ("quit", "exit", "q"):
            session.close()
            break
        for message in await session.send(text):
            print(f"[Assistant] {message}")

    if session.booking is not None:
        logger.info("Session %s created booking %s", session.session_id, session.booking.id)


def _run_summary(days: int) -> None:
    print(_open_ledger().availability_summary_text(days=days))


def _run_stats() -> None:
    stats = _open_ledger().stats()
    print(f"Invoiced:            {stats.invoiced:>10.2f}")
    print(f"Paid:                {stats.paid:>10.2f}")
    print(f"Outstanding:         {stats.balance:>10.2f}")
    print(f"Active technicians:  {stats.active_technicians:>10d}")
    print(f"Pending jobs:        {stats.pending_jobs:>10d}")


def _run_import(path: str) -> None:
    from dispatch.ledger.bulk_import import import_csv

    report = import_csv(_open_ledger(), path)
    print(
        f"Created {len(report.created)}, skipped {report.duplicates} duplicate(s), "
        f"rejected {len(report.rejected)}."
    )
    for row in report.rejected:
        print(f"  line {row.line}: {row.error}")


def _run_console_mode() -> None:
    """Start the offline console demo (no API keys required)."""
    from console_demo import ConsoleSession

    asyncio.run(ConsoleSession().run())


def main() -> None:
    parser = argparse.ArgumentParser(description=settings.app_name)
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("chat", help="Live chat intake")
    summary = commands.add_parser("summary", help="Print the availability digest")
    summary.add_argument("--days", type=int, default=7)
    commands.add_parser("stats", help="Print dashboard totals")
    importer = commands.add_parser("import", help="Import bookings from a CSV file")
    importer.add_argument("path")
    commands.add_parser("console", help="Offline console demo")
    args = parser.parse_args()

    if args.command == "chat":
        asyncio.run(_run_chat())
    elif args.command == "summary":
        _run_summary(args.days)
    elif args.command == "stats":
        _run_stats()
    elif args.command == "import":
        _run_import(args.path)
    else:
        _run_console_mode()


if __name__ == "__main__":
    main()
