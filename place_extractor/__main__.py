"""Command line entry point for the place extractor."""

import argparse
import asyncio
import sys
from collections.abc import Callable

from place_extractor.core.config import Settings, settings
from place_extractor.core.constants import DEMO_TEXT
from place_extractor.core.logging import configure_logging, get_logger
from place_extractor.export import ExportBlockedError, generate_csv, generate_tsv, write_csv
from place_extractor.extraction.candidates import extract_candidates
from place_extractor.models import Row, RowStatus
from place_extractor.places.llm import build_place_service
from place_extractor.places.service import PlaceService
from place_extractor.resolution.orchestrator import ResolutionOrchestrator, SelectionError
from place_extractor.rows.persistence import build_persistence
from place_extractor.rows.store import RowNotFoundError, RowStore

logger = get_logger().bind(module="cli")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_EXPORT_BLOCKED = 2


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        args: Optional list of arguments for testing

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="place-extractor",
        description="Extract, resolve and export Japanese place names",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_input_arguments(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "input",
            nargs="?",
            default="-",
            help="Text file to read place names from ('-' for stdin)",
        )
        sub.add_argument(
            "--demo",
            action="store_true",
            help="Use the built-in itinerary instead of reading input",
        )

    extract = subparsers.add_parser("extract", help="Show candidates without resolving")
    add_input_arguments(extract)

    run = subparsers.add_parser("run", help="Extract and resolve candidates")
    add_input_arguments(run)
    run.add_argument(
        "--workers",
        type=int,
        default=settings.RESOLUTION_CONCURRENCY,
        help="Number of concurrent resolution workers",
    )
    run.add_argument(
        "--interactive",
        "-i",
        action="store_true",
        help="Ask which match to use when a place is ambiguous",
    )

    select = subparsers.add_parser("select", help="Pick the match for an ambiguous row")
    select.add_argument("row_id")
    select.add_argument("external_id")

    subparsers.add_parser("show", help="Show the current rows")

    override = subparsers.add_parser("override", help="Set values by hand")
    override.add_argument("row_id")
    override.add_argument("--mapcode")
    override.add_argument("--telephone")
    override.add_argument("--address")

    remove = subparsers.add_parser("remove", help="Remove a row")
    remove.add_argument("row_id")

    subparsers.add_parser("restore", help="Put back the last removed row")

    subparsers.add_parser("clear", help="Remove all rows")

    export = subparsers.add_parser("export", help="Export rows as TSV or CSV")
    export.add_argument("--format", choices=["tsv", "csv"], default="tsv")
    export.add_argument(
        "--output",
        "-o",
        help="Write to this file instead of stdout",
    )
    export.add_argument(
        "--download",
        action="store_true",
        help="Write a CSV file named by EXPORT_FILENAME",
    )

    return parser.parse_args(args)


def read_input(args: argparse.Namespace) -> str:
    if args.demo:
        return DEMO_TEXT
    if args.input == "-":
        return sys.stdin.read()
    with open(args.input, encoding="utf-8") as f:
        return f.read()


def format_row(row: Row) -> str:
    """One line of the status table."""
    name = row.display_name or row.candidate.main_name
    if row.status == RowStatus.ERROR:
        detail = f"Error: {row.error_excerpt}"
    elif row.status == RowStatus.DISAMBIGUATION:
        detail = f"{len(row.pending_matches)} matches, choose one"
    else:
        mapcode = row.effective("mapcode")
        flag = " (invalid mapcode)" if row.is_mapcode_invalid else ""
        detail = " | ".join(
            [mapcode + flag, row.effective("telephone"), row.effective("address")]
        )
    return f"[{row.id:>3}] {row.status.value:<14} {name} | {detail}"


def print_rows(store: RowStore) -> None:
    for row in store:
        print(format_row(row))
    invalid = store.invalid_mapcode_rows()
    if invalid:
        print(
            f"{len(invalid)} invalid Mapcode(s), first in row {store.first_invalid_row_id()}"
        )


async def prompt_selections(
    orchestrator: ResolutionOrchestrator,
    ask: Callable[[str], str] = input,
) -> None:
    """Ask the operator to resolve every ambiguous row.

    ``ask`` blocks on the terminal, so it runs in a worker thread while
    other tasks on the loop keep going.
    """
    for row in orchestrator.store.rows:
        if row.status != RowStatus.DISAMBIGUATION:
            continue
        print(f"Which place is '{row.candidate.main_name}'?")
        for number, match in enumerate(row.pending_matches, start=1):
            print(f"  {number}. {match.name} ({match.address})")
        answer = (await asyncio.to_thread(ask, "Choice (blank to skip): ")).strip()
        if not answer.isdigit() or not 1 <= int(answer) <= len(row.pending_matches):
            continue
        chosen = row.pending_matches[int(answer) - 1]
        await orchestrator.select_match(row.id, chosen.external_id)


async def run_resolution(
    args: argparse.Namespace,
    store: RowStore,
    places: PlaceService,
) -> None:
    candidates = extract_candidates(read_input(args))
    orchestrator = ResolutionOrchestrator(store, places, concurrency=args.workers)
    await orchestrator.run(candidates)
    if args.interactive:
        await prompt_selections(orchestrator)
    print_rows(store)


async def run_selection(
    args: argparse.Namespace,
    store: RowStore,
    places: PlaceService,
) -> None:
    orchestrator = ResolutionOrchestrator(store, places)
    row = await orchestrator.select_match(args.row_id, args.external_id)
    if row is not None:
        print(format_row(row))


def export_rows(args: argparse.Namespace, store: RowStore, config: Settings) -> int:
    try:
        if args.download:
            write_csv(store.rows, args.output or config.EXPORT_FILENAME)
            return EXIT_OK
        if args.output and args.format == "csv":
            write_csv(store.rows, args.output)
            return EXIT_OK
        output = generate_csv(store.rows) if args.format == "csv" else generate_tsv(store.rows)
    except ExportBlockedError as e:
        print(str(e), file=sys.stderr)
        return EXIT_EXPORT_BLOCKED

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output)
    else:
        print(output)
    return EXIT_OK


def main(
    argv: list[str] | None = None,
    config: Settings = settings,
    store: RowStore | None = None,
    places: PlaceService | None = None,
) -> int:
    """Run a command and return its exit code."""
    args = parse_args(argv)
    configure_logging(
        testing=not config.JSON_LOGS,
        level="debug" if args.verbose else config.LOG_LEVEL,
    )

    if args.command == "extract":
        for candidate in extract_candidates(read_input(args)):
            hint = f" ({candidate.hint_city})" if candidate.hint_city else ""
            print(f"{candidate.position}\t{candidate.main_name}{hint}")
        return EXIT_OK

    if store is None:
        store = RowStore(build_persistence(config))
    try:
        if places is None and args.command in ("run", "select"):
            places = build_place_service(config)
        if args.command == "run":
            asyncio.run(run_resolution(args, store, places))
        elif args.command == "select":
            asyncio.run(run_selection(args, store, places))
        elif args.command == "show":
            print_rows(store)
        elif args.command == "override":
            overrides = {
                field: getattr(args, field)
                for field in ("mapcode", "telephone", "address")
                if getattr(args, field) is not None
            }
            print(format_row(store.apply_overrides(args.row_id, **overrides)))
        elif args.command == "remove":
            if store.remove(args.row_id) is None:
                raise RowNotFoundError(args.row_id)
        elif args.command == "restore":
            row = store.restore()
            if row is None:
                print("Error: nothing to restore", file=sys.stderr)
                return EXIT_ERROR
            print(format_row(row))
        elif args.command == "clear":
            store.clear()
        elif args.command == "export":
            return export_rows(args, store, config)
    except (RowNotFoundError, SelectionError, ValueError) as e:
        logger.error("Command failed", command=args.command, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
