"""
formflow - inspection CLI for form schemas.

A developer tool around the engines: it only loads files, calls the
engines and prints results. No engine logic lives here.

Commands:
  formflow lint SCHEMA                      Navigation + computed-field checks
  formflow walk SCHEMA --data FILE          Follow next-step decisions from the first step
  formflow compute SCHEMA --data FILE       Evaluate every computed field

Exit codes: 0 success, 1 lint errors or a failed command.
"""

import argparse
import json
import sys
from typing import List, Optional

from rich.console import Console

from .computed import ComputedFieldEngine
from .errors import FormFlowError
from .rules import TransitionEngine
from .schema import lint_schema, load_document, load_schema
from .utils.cli_display import build_compute_table, build_lint_table, build_walk_table
from .utils.logger import setup_logger

console = Console()


def setup_argparse(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="formflow",
        description="formflow - inspect multi-step form schemas",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  formflow lint forms/onboarding.yml
  formflow walk forms/onboarding.yml --data applicant.json
  formflow walk forms/onboarding.yml --data applicant.json --start intro --end review
  formflow compute forms/quote.yml --data order.yml --json
        """,
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Quiet mode: errors only")
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Verbose mode: DEBUG logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    lint_parser = subparsers.add_parser("lint", help="Check navigation and computed fields")
    lint_parser.add_argument("schema", help="Schema file (.yml/.yaml/.json)")
    lint_parser.add_argument("--json", action="store_true", dest="json_output", help="Output results as JSON")

    walk_parser = subparsers.add_parser("walk", help="Follow next-step decisions")
    walk_parser.add_argument("schema", help="Schema file (.yml/.yaml/.json)")
    walk_parser.add_argument("--data", required=True, help="Data file (.yml/.yaml/.json)")
    walk_parser.add_argument("--start", help="Start step (default: first step)")
    walk_parser.add_argument("--end", help="Stop at this step; fail if not reached")
    walk_parser.add_argument("--max-steps", type=int, default=None, help="Transitions to follow at most")
    walk_parser.add_argument("--json", action="store_true", dest="json_output", help="Output results as JSON")

    compute_parser = subparsers.add_parser("compute", help="Evaluate computed fields")
    compute_parser.add_argument("schema", help="Schema file (.yml/.yaml/.json)")
    compute_parser.add_argument("--data", required=True, help="Data file (.yml/.yaml/.json)")
    compute_parser.add_argument("--json", action="store_true", dest="json_output", help="Output results as JSON")

    return parser.parse_args(argv)


def _load_data(path: str) -> dict:
    data = load_document(path)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FormFlowError(f"Data root in {path} must be a mapping, got {type(data).__name__}")
    return data


# =============================================================================
# Handlers
# =============================================================================

def handle_lint(args) -> int:
    """Handle `lint` subcommand."""
    schema = load_schema(args.schema)
    result = lint_schema(schema)

    if args.json_output:
        output = {
            "status": "pass" if result.ok else "fail",
            "errors": [vars(issue) for issue in result.errors],
            "warnings": [vars(issue) for issue in result.warnings],
        }
        print(json.dumps(output, indent=2, default=str))
        return 0 if result.ok else 1

    console.print(build_lint_table(result, title=f"Lint: {schema.id or args.schema}"))
    console.print(
        f"\n[dim]{len(result.errors)} error(s), {len(result.warnings)} warning(s)[/]"
    )
    return 0 if result.ok else 1


def handle_walk(args) -> int:
    """Handle `walk` subcommand."""
    schema = load_schema(args.schema)
    data = _load_data(args.data)
    if not schema.steps:
        console.print("[bold red]FAIL Schema has no steps[/]")
        return 1

    engine = TransitionEngine()
    start = args.start or schema.steps[0].id
    max_steps = args.max_steps if args.max_steps is not None else engine.config.max_path_steps

    if args.end:
        path = engine.get_transition_path(schema, start, args.end, data, max_steps=max_steps)
        reached = bool(path)
    else:
        path = [start]
        current = start
        while len(path) - 1 < max_steps:
            current = engine.get_next_step(schema, current, data)
            if current is None:
                break
            path.append(current)
        reached = current is None

    if args.json_output:
        output = {
            "status": "pass" if reached else "fail",
            "path": path,
            "history": [entry.to_dict() for entry in engine.get_transition_history()],
        }
        print(json.dumps(output, indent=2, default=str))
        return 0 if reached else 1

    if args.end and not reached:
        console.print(
            f"[bold red]FAIL No path {start} -> {args.end} within {max_steps} steps[/]"
        )
        return 1

    console.print(build_walk_table(path, engine.get_transition_history()))
    if not reached:
        console.print(f"[yellow]Stopped after {max_steps} steps (possible loop)[/]")
        return 1
    return 0


def handle_compute(args) -> int:
    """Handle `compute` subcommand."""
    schema = load_schema(args.schema)
    data = _load_data(args.data)

    engine = ComputedFieldEngine()
    engine.register_computed_fields(schema.computed)
    results = engine.evaluate_all(list(schema.computed), data)
    failed = [r for r in results if r.error is not None]

    if args.json_output:
        output = {
            "status": "pass" if not failed else "fail",
            "results": [r.to_dict() for r in results],
            "data": data,
        }
        print(json.dumps(output, indent=2, default=str))
        return 0 if not failed else 1

    console.print(build_compute_table(results))
    if failed:
        console.print(f"\n[yellow]{len(failed)} field(s) fell back[/]")
        return 1
    return 0


HANDLERS = {
    "lint": handle_lint,
    "walk": handle_walk,
    "compute": handle_compute,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = setup_argparse(argv)

    if args.quiet:
        setup_logger(log_level="ERROR")
    elif args.verbose:
        setup_logger(log_level="DEBUG")

    handler = HANDLERS.get(args.command)
    if handler is None:
        console.print("[yellow]No command given. Run 'formflow --help' for usage.[/]")
        return 1

    try:
        return handler(args)
    except (FormFlowError, FileNotFoundError) as e:
        console.print(f"[bold red]FAIL {e}[/]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
