"""
CLI Display Helpers - rich tables for the formflow inspection commands.

Stateless and CLI-only: builders take engine results and return rich
renderables. Nothing here evaluates rules or touches data.

Usage:
    from formflow.utils.cli_display import build_lint_table
    console.print(build_lint_table(result))
"""

from typing import Any, Dict, List, Sequence

from rich.table import Table


# =============================================================================
# Status labels
# =============================================================================

STATUS_STYLES: Dict[str, str] = {
    "error": "bold red",
    "warning": "yellow",
    "ok": "green",
    "fallback": "yellow",
}


def status_label(status: str) -> str:
    """Wrap a status word in its rich markup style."""
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status.upper()}[/]"


def format_value(value: Any, max_len: int = 60) -> str:
    """Short printable form of a data value."""
    text = repr(value)
    if len(text) > max_len:
        text = text[: max_len - 3] + "..."
    return text


# =============================================================================
# Table builders
# =============================================================================

def build_lint_table(result: Any, title: str = "Schema Lint") -> Table:
    """Table of lint findings (NavigationLintResult)."""
    table = Table(title=title, show_lines=False)
    table.add_column("Level", width=9)
    table.add_column("Code", style="cyan")
    table.add_column("Location", style="dim")
    table.add_column("Message")

    for issue in result.errors:
        table.add_row(status_label("error"), issue.keyword, issue.path, issue.message)
    for issue in result.warnings:
        table.add_row(status_label("warning"), issue.keyword, issue.path, issue.message)
    if not result.errors and not result.warnings:
        table.add_row(status_label("ok"), "-", "-", "No issues found")
    return table


def build_walk_table(path: Sequence[str], history: Sequence[Any], title: str = "Navigation Path") -> Table:
    """Table of visited steps and how each transition was chosen."""
    table = Table(title=title)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Step", style="bold")
    table.add_column("Via")

    kinds: List[str] = [entry.type.value for entry in history]
    for index, step_id in enumerate(path):
        via = kinds[index - 1] if 0 < index <= len(kinds) else ("start" if index == 0 else "-")
        table.add_row(str(index), step_id, via)
    return table


def build_compute_table(results: Sequence[Any], title: str = "Computed Fields") -> Table:
    """Table of ComputedFieldResult rows in evaluation order."""
    table = Table(title=title)
    table.add_column("Path", style="bold")
    table.add_column("Value")
    table.add_column("Depends On", style="dim")
    table.add_column("Status", width=10)

    for result in results:
        status = "ok" if result.error is None else "fallback"
        table.add_row(
            result.path,
            format_value(result.value),
            ", ".join(result.dependencies) or "-",
            status_label(status),
        )
    return table


__all__ = [
    "STATUS_STYLES",
    "status_label",
    "format_value",
    "build_lint_table",
    "build_walk_table",
    "build_compute_table",
]
