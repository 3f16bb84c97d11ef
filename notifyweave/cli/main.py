"""
NotifyWeave CLI — post-build notification weaver.

Commands:
    notifyweave weave <module>    — Rewrite setters in place
    notifyweave inspect <module>  — List the planned notifications

Exit codes:
    0 — success (including "nothing to weave")
    1 — a fatal declaration or an unresolvable reference
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from ..config import WeaverConfig
from ..errors import WeavingError
from ..scanning.scanner import WeavePlan
from .pipeline import WeaveResult, plan_weaver, run_weaver


# =============================================================================
# OUTPUT FORMATTING
# =============================================================================

def format_name(name: Optional[str]) -> str:
    return "null" if name is None else f'"{name}"'


def format_plan_row(plan: WeavePlan) -> str:
    """Format a single woven property for display."""
    names = ", ".join(format_name(n) for n in plan.names)
    source = "implicit" if plan.implicit else "marker"
    return f"{plan.location} -> {plan.target.name}({names}) [{source}]"


def format_summary(result: WeaveResult) -> list[str]:
    return [
        f"  Types scanned:    {result.types_scanned}",
        f"  Notifier types:   {result.notifier_types}",
        f"  Properties woven: {len(result.woven)}",
        f"  Notifications:    {result.notification_count}",
    ]


def build_config(args: argparse.Namespace) -> WeaverConfig:
    return WeaverConfig(
        debug=getattr(args, "debug", False),
        search_dirs=tuple(Path(d) for d in (getattr(args, "search_dir", None) or [])),
    )


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# =============================================================================
# CLI COMMANDS
# =============================================================================

def cmd_weave(args: argparse.Namespace) -> int:
    """Weave notifications into a module image."""
    try:
        result = run_weaver(args.module, build_config(args))
    except (WeavingError, OSError) as e:
        print("ERROR: Weaving failed")
        print(f"Reason: {e}")
        return 1

    print(f"Module: {result.module_name} ({result.module_path})")
    for line in format_summary(result):
        print(line)
    print()

    if result.saved:
        print("Module rewritten.")
    else:
        print("Nothing to weave; module unchanged.")
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    """Show the notifications that would be woven."""
    try:
        result = plan_weaver(args.module, build_config(args))
    except (WeavingError, OSError) as e:
        print("ERROR: Inspection failed")
        print(f"Reason: {e}")
        return 1

    print(f"Module: {result.module_name} ({result.module_path})")
    print("=" * 50)

    if not result.woven:
        print("No properties would be woven.")
        return 0

    for plan in result.woven:
        print(format_plan_row(plan))

    print()
    for line in format_summary(result):
        print(line)
    return 0


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="notifyweave",
        description="NotifyWeave — weave change notifications into property setters",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log resolution and weaving decisions",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
    )

    # Weave command
    weave_parser = subparsers.add_parser(
        "weave",
        help="Weave notifications into a module image",
    )
    weave_parser.add_argument("module", help="Path to the module image")
    weave_parser.add_argument(
        "--debug",
        action="store_true",
        help="Also read and rewrite the companion debug-symbol file",
    )
    weave_parser.add_argument(
        "--search-dir",
        action="append",
        metavar="DIR",
        help="Extra directory to search for referenced modules (repeatable)",
    )
    weave_parser.set_defaults(func=cmd_weave)

    # Inspect command
    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Show what would be woven, without writing",
    )
    inspect_parser.add_argument("module", help="Path to the module image")
    inspect_parser.add_argument(
        "--search-dir",
        action="append",
        metavar="DIR",
        help="Extra directory to search for referenced modules (repeatable)",
    )
    inspect_parser.set_defaults(func=cmd_inspect)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
