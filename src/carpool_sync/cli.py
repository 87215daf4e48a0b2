"""Command line front-end for the carpool store.

Each subcommand opens the store (remote first, local fallback), applies
one mutation through the week/trip rules, saves, and flushes the debounced
remote write before exiting.

Messages go to stderr; reports and JSON go to stdout.
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import date
from pathlib import Path

from . import __version__
from .exceptions import (
    CarpoolValidationError,
    MalformedDocumentError,
    WeekCollisionError,
)
from .logger import setup_logging
from .session import StoreSession, open_store, resolve_config
from .sync.models import serialize
from .sync.reporter import document_report, report_to_json
from .trips import (
    add_trips,
    collect_target_names,
    delete_participant,
    delete_trip,
    find_trip,
    format_trip_day,
    rename_participant,
    toggle_payment,
)
from .weeks import (
    delete_week,
    list_weeks,
    rename_active_week,
    select_week,
    start_new_week,
)

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    print(msg, file=sys.stderr, flush=True)


def _locate(session: StoreSession, args: argparse.Namespace) -> tuple[int, int]:
    """Resolve ``DATE TYPE NAME`` arguments to trip/participant indexes."""
    doc = session.engine.document
    day = format_trip_day(date.fromisoformat(args.date))
    trip_index = find_trip(doc, day, args.type)
    if trip_index is None:
        raise CarpoolValidationError(f"Viagem {day} - {args.type} não existe.")
    names = [p.name for p in doc.active_trips[trip_index].participants]
    if args.name not in names:
        raise CarpoolValidationError(
            f'"{args.name}" não está em {day} - {args.type}.'
        )
    return trip_index, names.index(args.name)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def cmd_status(session: StoreSession, args: argparse.Namespace) -> int:
    status = await session.monitor.check()
    doc = session.engine.document
    print(f"Remote: {status}")
    print(f"Loaded from: {session.engine.loaded_from}")
    print(f"Week: {doc.current_week_name}")
    print(f"Trips: {len(doc.active_trips)}")
    print(f"Archived weeks: {len(doc.archives)}")
    return 0


async def cmd_show(session: StoreSession, args: argparse.Namespace) -> int:
    print(serialize(session.engine.document, indent=2))
    return 0


async def cmd_report(session: StoreSession, args: argparse.Namespace) -> int:
    doc = session.engine.document
    value = session.config.payment_value
    if args.json:
        print(json.dumps(report_to_json(doc, value), ensure_ascii=False, indent=2))
    else:
        print(document_report(doc, value))
    return 0


async def cmd_weeks(session: StoreSession, args: argparse.Namespace) -> int:
    for index, name in enumerate(list_weeks(session.engine.document)):
        marker = "*" if index == 0 else " "
        print(f"{marker} {name}")
    return 0


async def cmd_new_week(session: StoreSession, args: argparse.Namespace) -> int:
    archived, updated = start_new_week(session.engine.document, args.date)
    session.engine.save(updated)
    prefix = "Anterior arquivada. " if archived else ""
    _stderr_print(f'✅ {prefix}Semana "{updated.current_week_name}" iniciada.')
    return 0


async def cmd_select_week(session: StoreSession, args: argparse.Namespace) -> int:
    session.engine.save(select_week(session.engine.document, args.name))
    _stderr_print(f'✅ Semana "{args.name}" carregada.')
    return 0


async def cmd_delete_week(session: StoreSession, args: argparse.Namespace) -> int:
    if not args.yes:
        _stderr_print(
            f'Excluir permanentemente a semana "{args.name}"? Repita com --yes.'
        )
        return 1
    session.engine.save(delete_week(session.engine.document, args.name))
    _stderr_print(f'🗑️ Semana "{args.name}" excluída.')
    return 0


async def cmd_rename_week(session: StoreSession, args: argparse.Namespace) -> int:
    session.engine.save(rename_active_week(session.engine.document, args.name))
    return 0


async def cmd_add_trip(session: StoreSession, args: argparse.Namespace) -> int:
    typed = ""
    if args.names_file:
        typed = Path(args.names_file).read_text(encoding="utf-8")
    names = collect_target_names(args.name or [], typed)
    updated = add_trips(
        session.engine.document, args.date, args.type or ["Ida"], names
    )
    session.engine.save(updated)
    _stderr_print("✅ Carona(s) salva(s) com sucesso.")
    return 0


async def cmd_toggle(session: StoreSession, args: argparse.Namespace) -> int:
    trip_index, person_index = _locate(session, args)
    session.engine.save(
        toggle_payment(session.engine.document, trip_index, person_index)
    )
    return 0


async def cmd_rename(session: StoreSession, args: argparse.Namespace) -> int:
    trip_index, person_index = _locate(session, args)
    session.engine.save(
        rename_participant(
            session.engine.document, trip_index, person_index, args.new_name
        )
    )
    return 0


async def cmd_remove(session: StoreSession, args: argparse.Namespace) -> int:
    trip_index, person_index = _locate(session, args)
    session.engine.save(
        delete_participant(session.engine.document, trip_index, person_index)
    )
    return 0


async def cmd_delete_trip(session: StoreSession, args: argparse.Namespace) -> int:
    doc = session.engine.document
    day = format_trip_day(date.fromisoformat(args.date))
    trip_index = find_trip(doc, day, args.type)
    if trip_index is None:
        raise CarpoolValidationError(f"Viagem {day} - {args.type} não existe.")
    session.engine.save(delete_trip(doc, trip_index))
    return 0


async def cmd_export(session: StoreSession, args: argparse.Namespace) -> int:
    target = session.engine.export_document(Path(args.directory))
    _stderr_print(f"Backup baixado: {target}")
    return 0


async def cmd_import(session: StoreSession, args: argparse.Namespace) -> int:
    raw = Path(args.file).read_text(encoding="utf-8")
    session.engine.import_document(raw)
    _stderr_print("Dados restaurados.")
    return 0


async def cmd_reset(session: StoreSession, args: argparse.Namespace) -> int:
    if not args.yes:
        _stderr_print(
            "⚠️ PERIGO: apaga TODOS os dados locais. Repita com --yes."
        )
        return 1
    await session.engine.factory_reset()
    _stderr_print("Dados locais apagados.")
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="carpool-sync",
        description="Carpool trips and payments, stored locally and synced to a remote row",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start the week of 3 June 2024 (archives the current one)
  carpool-sync new-week 2024-06-03

  # Add outbound and return trips for a day
  carpool-sync add-trip 2024-06-03 --type Ida --type Volta --name Ana --name Bruno

  # Mark a payment and print the shareable report
  carpool-sync toggle 2024-06-03 Ida Ana
  carpool-sync report
        """,
    )
    parser.add_argument("--config", help="Path to a YAML config file")
    parser.add_argument(
        "--url",
        help="Override remote URL (takes precedence over CARPOOL_SUPABASE_URL and config files)",
    )
    parser.add_argument(
        "--key",
        help="Override remote API key (prefer CARPOOL_SUPABASE_KEY; visible in process list)",
    )
    parser.add_argument("--state-dir", help="Override local cache directory")
    parser.add_argument("--debug", action="store_true", help="Debug logging")
    parser.add_argument("--log-file", help="Also append logs to this file")
    parser.add_argument(
        "--version",
        action="version",
        version=f"carpool-sync version {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Connectivity and document summary").set_defaults(
        handler=cmd_status
    )
    sub.add_parser("show", help="Print the whole document as JSON").set_defaults(
        handler=cmd_show
    )

    p = sub.add_parser("report", help="Shareable payment status of the active week")
    p.add_argument("--json", action="store_true", help="Machine-readable output")
    p.set_defaults(handler=cmd_report)

    sub.add_parser("weeks", help="List active and archived weeks").set_defaults(
        handler=cmd_weeks
    )

    p = sub.add_parser("new-week", help="Archive the active week and start a new one")
    p.add_argument("date", help="Start date (YYYY-MM-DD)")
    p.set_defaults(handler=cmd_new_week)

    p = sub.add_parser("select-week", help="Activate a stored week")
    p.add_argument("name")
    p.set_defaults(handler=cmd_select_week)

    p = sub.add_parser("delete-week", help="Permanently delete a week")
    p.add_argument("name")
    p.add_argument("--yes", action="store_true", help="Confirm deletion")
    p.set_defaults(handler=cmd_delete_week)

    p = sub.add_parser("rename-week", help="Rename the active week")
    p.add_argument("name")
    p.set_defaults(handler=cmd_rename_week)

    p = sub.add_parser("add-trip", help="Create or update the trips of one day")
    p.add_argument("date", help="Trip date (YYYY-MM-DD)")
    p.add_argument(
        "--type", action="append", choices=["Ida", "Volta"], help="Direction (repeatable)"
    )
    p.add_argument("--name", action="append", help="Participant name (repeatable)")
    p.add_argument("--names-file", help="File with one participant name per line")
    p.set_defaults(handler=cmd_add_trip)

    for command, handler, help_text in (
        ("toggle", cmd_toggle, "Flip a participant's paid flag"),
        ("remove", cmd_remove, "Remove a participant from a trip"),
        ("rename", cmd_rename, "Rename a participant"),
    ):
        p = sub.add_parser(command, help=help_text)
        p.add_argument("date", help="Trip date (YYYY-MM-DD)")
        p.add_argument("type", choices=["Ida", "Volta"])
        p.add_argument("name")
        if command == "rename":
            p.add_argument("new_name")
        p.set_defaults(handler=handler)

    p = sub.add_parser("delete-trip", help="Delete one trip")
    p.add_argument("date", help="Trip date (YYYY-MM-DD)")
    p.add_argument("type", choices=["Ida", "Volta"])
    p.set_defaults(handler=cmd_delete_trip)

    p = sub.add_parser("export", help="Write a dated JSON backup")
    p.add_argument("directory", nargs="?", default=".")
    p.set_defaults(handler=cmd_export)

    p = sub.add_parser("import", help="Replace everything with a JSON backup")
    p.add_argument("file")
    p.set_defaults(handler=cmd_import)

    p = sub.add_parser("reset", help="Clear the local cache (remote untouched)")
    p.add_argument("--yes", action="store_true", help="Confirm reset")
    p.set_defaults(handler=cmd_reset)

    return parser


async def _dispatch(args: argparse.Namespace, config) -> int:
    async with open_store(config) as session:
        return await args.handler(session, args)


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, run one command, and return the exit code."""
    args = build_parser().parse_args(argv)

    config_overrides = {
        "config": args.config,
        "url": args.url,
        "key": args.key,
        "state_dir": args.state_dir,
        "debug": args.debug,
    }

    try:
        config, unified = resolve_config(config_overrides)
    except (ValueError, OSError) as exc:
        setup_logging(debug=args.debug, log_file=args.log_file)
        _stderr_print(f"Configuration error: {exc}")
        return 2

    setup_logging(
        debug=config.debug,
        log_file=args.log_file or unified.logging.file,
        level=unified.logging.level,
    )

    try:
        return asyncio.run(_dispatch(args, config))
    except (CarpoolValidationError, WeekCollisionError, MalformedDocumentError) as exc:
        _stderr_print(str(exc))
        return 1
    except (ValueError, OSError) as exc:
        _stderr_print(f"Error: {exc}")
        return 1


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
