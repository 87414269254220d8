"""CLI entry point for netreach.

Runs the registered probe families against a host and renders the graded
results as a Rich table or as JSON.
"""

import argparse
import json
import logging
import re
import sys
from typing import List

from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from netreach.config import configure, load_settings
from netreach.errors import ConfigurationError
from netreach.probes.registry import FAMILIES
from netreach.runtime import run_probes, summarize
from netreach.schemas import Grade, ProbeResult

console = Console()

GRADE_STYLES = {
    Grade.good: "green",
    Grade.bad: "red",
    Grade.skipped: "yellow",
}


def setup_logging(verbose: bool) -> None:
    """Route library logging through Rich; debug level when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def format_output(result: ProbeResult) -> str:
    """Render a probe's output for a table cell."""
    output = result.output
    if output is None:
        return ""
    if isinstance(output, dict):
        return "\n".join(
            f"{addr}: {'yes' if hit else 'no'}" for addr, hit in output.items()
        )
    if isinstance(output, (list, tuple)):
        return "\n".join(str(item) for item in output)
    return str(output)


def render_results(host: str, results: List[ProbeResult]) -> None:
    table = Table(title=f"netreach: {host}", show_lines=True)
    table.add_column("Family", style="dim")
    table.add_column("Probe", style="cyan")
    table.add_column("Grade")
    table.add_column("Output")
    table.add_column("Error", style="red")

    for result in results:
        style = GRADE_STYLES[result.grade]
        table.add_row(
            result.family or "",
            result.probe_name or "",
            f"[{style}]{result.grade.value}[/{style}]",
            format_output(result),
            str(result.error) if result.error is not None else "",
        )

    console.print(table)
    counts = summarize(results)
    console.print(
        f"[green]{counts['Good']} good[/green]  "
        f"[red]{counts['Bad']} bad[/red]  "
        f"[yellow]{counts['Skipped']} skipped[/yellow]"
    )


def run_list(args: argparse.Namespace) -> int:
    """Print every registered family and probe."""
    table = Table(title="Registered probes")
    table.add_column("Family", style="dim")
    table.add_column("Probe", style="cyan")
    table.add_column("Description")

    for family_name in sorted(FAMILIES):
        fam = FAMILIES[family_name]
        for probe_name in fam.names():
            table.add_row(family_name, probe_name, fam[probe_name].description)

    console.print(table)
    return 0


def run_scan(args: argparse.Namespace) -> int:
    """Execute the selected probes against a host."""
    setup_logging(args.verbose)

    try:
        settings = load_settings(args.env_file)
    except ValidationError as e:
        console.print(f"[red]ERROR: Invalid configuration:[/red]\n{e}")
        return 2
    except ConfigurationError as e:
        console.print(f"[red]ERROR: {e}[/red]")
        return 2
    configure(settings)

    try:
        results = run_probes(
            args.host,
            family_pattern=args.family,
            probe_pattern=args.probe,
            workers=args.workers,
        )
    except re.error as e:
        console.print(f"[red]ERROR: Invalid filter pattern: {e}[/red]")
        return 2

    if not results:
        console.print("[yellow]No probes matched the given filters[/yellow]")
        return 2

    if args.json:
        print(json.dumps([result.to_dict() for result in results], indent=2, default=str))
    else:
        render_results(args.host, results)

    return 1 if any(result.grade == Grade.bad for result in results) else 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="netreach",
        description="netreach: network-layer reachability probes (DNS, CloudFlare, TCP, TLS)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run every probe against a host
  netreach scan example.com:443

  # Only the dial probes, as JSON
  netreach scan example.com:443 --probe Dial --json

  # List the registered probes
  netreach list
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("list", help="List registered probe families and probes")

    scan_parser = subparsers.add_parser(
        "scan",
        help="Run probes against a host",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    scan_parser.add_argument(
        "host",
        help="Target as host:port (the port is ignored by DNS-only probes)"
    )

    scan_parser.add_argument(
        "--family",
        type=str,
        default=None,
        metavar="REGEX",
        help="Only run families whose name matches REGEX"
    )

    scan_parser.add_argument(
        "--probe",
        type=str,
        default=None,
        metavar="REGEX",
        help="Only run probes whose name matches REGEX"
    )

    scan_parser.add_argument(
        "--workers",
        type=int,
        default=4,
        metavar="N",
        help="Number of probes to run in parallel (default: 4)"
    )

    scan_parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON instead of a table"
    )

    scan_parser.add_argument(
        "--env-file",
        type=str,
        default=None,
        metavar="PATH",
        help="Load NETREACH_* settings from this file (default: ./.env if present)"
    )

    scan_parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show debug logging"
    )

    args = parser.parse_args(argv)

    # Show help if no command provided
    if not args.command:
        parser.print_help()
        return 0

    if args.command == "list":
        return run_list(args)

    if args.command == "scan":
        return run_scan(args)

    return 0


if __name__ == "__main__":
    sys.exit(main())
