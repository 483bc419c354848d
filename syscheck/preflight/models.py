"""
Pre-flight Check Models

Status line protocol shared by the orchestrator and every check.
A finding is one line of text, ``[KIND] message``; any other line is
decorative and ignored when results are aggregated.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")
STATUS_LINE = re.compile(r"^\[(PASS|WARN|FAIL|SKIP)\]\s?(.*)$")

NO_OUTPUT_MESSAGE = "No output for this section."


class StatusKind(str, Enum):
    """Kinds of reported findings."""
    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"
    SKIP = "SKIP"


@dataclass(frozen=True)
class StatusLine:
    """One reported finding."""
    kind: StatusKind
    message: str

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE.sub("", text)


def parse_status_line(line: str) -> Optional[StatusLine]:
    """Parse one line; None if it carries no status tag."""
    match = STATUS_LINE.match(strip_ansi(line).rstrip())
    if not match:
        return None
    return StatusLine(StatusKind(match.group(1)), match.group(2))


def parse_status_lines(text: str) -> List[StatusLine]:
    """All status-tagged lines of a check's output, in emission order."""
    lines = []
    for raw in text.splitlines():
        parsed = parse_status_line(raw)
        if parsed is not None:
            lines.append(parsed)
    return lines


@dataclass
class CheckResult:
    """Outcome of running one check."""
    check_id: str
    label: str
    icon: str = ""
    lines: List[StatusLine] = field(default_factory=list)
    output: str = ""
    exit_code: int = 0

    @classmethod
    def from_output(
        cls,
        check_id: str,
        label: str,
        icon: str,
        output: str,
        exit_code: int = 0,
    ) -> "CheckResult":
        return cls(
            check_id=check_id,
            label=label,
            icon=icon,
            lines=parse_status_lines(output),
            output=output,
            exit_code=exit_code,
        )

    @property
    def has_failures(self) -> bool:
        return any(line.kind == StatusKind.FAIL for line in self.lines)

    @property
    def display_lines(self) -> List[StatusLine]:
        """Lines to render; a silent check shows a single synthesized SKIP."""
        if self.lines:
            return list(self.lines)
        return [StatusLine(StatusKind.SKIP, NO_OUTPUT_MESSAGE)]

    def count(self, kind: StatusKind) -> int:
        return sum(1 for line in self.lines if line.kind == kind)

    def __str__(self) -> str:
        status = "FAIL" if self.has_failures else "PASS"
        return f"[{status}] {self.label}: {len(self.lines)} finding(s)"


class StatusWriter:
    """
    Output channel handed to built-in checks.

    Every call produces whole lines of text in the same wire format an
    external check prints on stdout, so both kinds of check are
    aggregated identically.
    """

    def __init__(self, on_line: Optional[Callable[[str], None]] = None):
        """
        Args:
            on_line: Called with each line as it is produced (live streaming)
        """
        self._lines: List[str] = []
        self._on_line = on_line
        self.counts: Dict[StatusKind, int] = {kind: 0 for kind in StatusKind}

    def _write(self, line: str) -> None:
        self._lines.append(line)
        if self._on_line is not None:
            self._on_line(line)

    def emit(self, kind: StatusKind, message: str) -> None:
        self.counts[kind] += 1
        self._write(str(StatusLine(kind, message)))

    def pass_(self, message: str) -> None:
        self.emit(StatusKind.PASS, message)

    def warn(self, message: str) -> None:
        self.emit(StatusKind.WARN, message)

    def fail(self, message: str) -> None:
        self.emit(StatusKind.FAIL, message)

    def skip(self, message: str) -> None:
        self.emit(StatusKind.SKIP, message)

    def info(self, message: str) -> None:
        """Informational line; shown live but never aggregated."""
        self._write(f"[INFO] {message}")

    def echo(self, text: str = "") -> None:
        """Decorative text, possibly multi-line."""
        for line in (text.splitlines() or [""]):
            # keep command output from masquerading as a finding
            if parse_status_line(line) is not None:
                line = f"  {line}"
            self._write(line)

    @property
    def failed(self) -> bool:
        return self.counts[StatusKind.FAIL] > 0

    def getvalue(self) -> str:
        return "\n".join(self._lines)
