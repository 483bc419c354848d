"""
Pre-flight Checker

Main orchestrator for pre-flight validation checks.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from rich.console import Console

from ..config import RunContext
from .models import CheckResult, StatusKind, StatusLine, StatusWriter
from .registry import CheckDescriptor, default_checks
from .summary import live_text

logger = logging.getLogger(__name__)


@dataclass
class PreflightResult:
    """Complete pre-flight check results, in declared check order."""
    results: List[CheckResult]

    @property
    def passed(self) -> bool:
        """True unless at least one FAIL line was reported anywhere."""
        return not any(r.has_failures for r in self.results)

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1

    @property
    def failed_checks(self) -> List[CheckResult]:
        """Checks that reported at least one FAIL line."""
        return [r for r in self.results if r.has_failures]

    @property
    def counts(self) -> Dict[StatusKind, int]:
        """Number of reported lines per kind across the whole run."""
        return {kind: sum(r.count(kind) for r in self.results) for kind in StatusKind}

    def summary(self) -> str:
        """Get summary string."""
        counts = self.counts
        status = "FAILED" if not self.passed else "PASSED"
        return (
            f"{status}: {len(self.results)} checks "
            f"({counts[StatusKind.PASS]} pass, {counts[StatusKind.WARN]} warn, "
            f"{counts[StatusKind.FAIL]} fail, {counts[StatusKind.SKIP]} skip)"
        )


class PreflightChecker:
    """
    Orchestrates pre-flight validation checks.

    Runs each check in declared order against one immutable run context,
    captures its output and turns it into a CheckResult. A failing or
    broken check never stops the run.
    """

    def __init__(
        self,
        context: RunContext,
        checks: Optional[List[CheckDescriptor]] = None,
        verbose: bool = False,
        console: Optional[Console] = None,
    ):
        """
        Initialize the checker.

        Args:
            context: Run context shared by all checks
            checks: Descriptors to run, defaults to every built-in check
            verbose: Stream raw check output live while it is produced
            console: Rich console for live output
        """
        self.context = context
        self.checks = checks if checks is not None else default_checks()
        self.verbose = verbose
        self.console = console or Console()

    def run_all(self, on_start: Optional[Callable[[int, int, CheckDescriptor], None]] = None) -> PreflightResult:
        """
        Run all checks in order.

        Args:
            on_start: Called as ``on_start(step, total, descriptor)`` before each check

        Returns:
            PreflightResult with one CheckResult per descriptor
        """
        results = []
        total = len(self.checks)

        for step, descriptor in enumerate(self.checks, start=1):
            if on_start is not None:
                on_start(step, total, descriptor)
            results.append(self.run_check(descriptor))

        return PreflightResult(results=results)

    def run_check(self, descriptor: CheckDescriptor) -> CheckResult:
        """
        Run a single check.

        Args:
            descriptor: The check to run

        Returns:
            CheckResult; a missing or unrunnable check yields a single SKIP
        """
        logger.debug("[%s] About to run %s -> %s", datetime.now().isoformat(), descriptor.id, descriptor.target)

        if descriptor.is_external:
            result = self._run_external(descriptor)
        else:
            result = self._run_builtin(descriptor)

        logger.debug("Output from %s:\n%s", descriptor.id, result.output)
        return result

    def _not_found(self, descriptor: CheckDescriptor) -> CheckResult:
        logger.debug("%s not found or not executable", descriptor.target)
        line = StatusLine(StatusKind.SKIP, f"{descriptor.target} not found or not executable.")
        return CheckResult(
            check_id=descriptor.id,
            label=descriptor.label,
            icon=descriptor.icon,
            lines=[line],
            output=str(line),
        )

    def _stream(self, line: str) -> None:
        self.console.print(live_text(line))

    def _run_builtin(self, descriptor: CheckDescriptor) -> CheckResult:
        func = descriptor.resolve()
        if func is None:
            return self._not_found(descriptor)

        writer = StatusWriter(on_line=self._stream if self.verbose else None)
        try:
            func(self.context, writer)
        except Exception as e:
            logger.debug("Unhandled error in %s", descriptor.id, exc_info=True)
            writer.fail(f"Unexpected error in {descriptor.label.lower()} check: {e}")

        return CheckResult.from_output(
            check_id=descriptor.id,
            label=descriptor.label,
            icon=descriptor.icon,
            output=writer.getvalue(),
            exit_code=1 if writer.failed else 0,
        )

    def _run_external(self, descriptor: CheckDescriptor) -> CheckResult:
        if not descriptor.is_runnable_file():
            return self._not_found(descriptor)

        env = dict(os.environ)
        env.update(self.context.to_env())
        logger.debug("Environment: %s", self.context.to_env())

        lines = []
        try:
            with subprocess.Popen(
                [str(descriptor.target)],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                env=env,
            ) as proc:
                for raw in proc.stdout:
                    line = raw.rstrip("\n")
                    lines.append(line)
                    if self.verbose:
                        self._stream(line)
                exit_code = proc.wait()
        except OSError as e:
            logger.debug("Cannot execute %s: %s", descriptor.target, e)
            return self._not_found(descriptor)

        return CheckResult.from_output(
            check_id=descriptor.id,
            label=descriptor.label,
            icon=descriptor.icon,
            output="\n".join(lines),
            exit_code=exit_code,
        )
