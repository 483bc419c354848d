"""
Summary rendering for a completed pre-flight run.
"""

from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from .models import StatusKind, StatusLine, parse_status_line, strip_ansi

if TYPE_CHECKING:
    from .checker import PreflightResult

KIND_STYLES = {
    StatusKind.PASS: "green",
    StatusKind.WARN: "yellow",
    StatusKind.FAIL: "red",
    StatusKind.SKIP: "blue",
}


def status_text(line: StatusLine, indent: int = 0) -> Text:
    """A status line with its tag coloured by kind."""
    text = Text(" " * indent)
    text.append(f"[{line.kind.value}]", style=KIND_STYLES[line.kind])
    text.append(f" {line.message}")
    return text


def live_text(raw: str) -> Text:
    """A raw output line as streamed in verbose mode."""
    parsed = parse_status_line(raw)
    if parsed is not None:
        return status_text(parsed)
    if raw.startswith("[INFO]"):
        return Text(strip_ansi(raw), style="cyan")
    return Text(strip_ansi(raw))


def render_summary(result: "PreflightResult", console: Console) -> None:
    """
    Print the per-check summary and the aggregate banner.

    Args:
        result: Completed run
        console: Rich console for output
    """
    console.print()
    console.print(Panel.fit(
        "[bold]SysCheck Summary Table[/bold]",
        border_style="blue",
    ))

    for check in result.results:
        console.print(Text(f"{check.icon}  {check.label}", style="bold"))
        for line in check.display_lines:
            console.print(status_text(line, indent=4))
        console.print()

    failed = len(result.failed_checks)
    if failed:
        console.print(Text(f"========== [FAIL] {failed} checks failed ==========", style="bold red"))
    else:
        console.print(Text("========== [PASS] All checks passed ==========", style="bold green"))
