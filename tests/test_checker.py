"""
Tests for the pre-flight orchestrator.
"""

import io
import os
import stat

import pytest
from rich.console import Console

from syscheck.preflight.checker import PreflightChecker, PreflightResult
from syscheck.preflight.models import CheckResult, StatusKind, StatusLine
from syscheck.preflight.registry import CheckDescriptor, discover_external_checks


def builtin(name: str) -> CheckDescriptor:
    return CheckDescriptor(id=name, label=name.upper(), icon="*", target=f"helpers:{name}")


def make_script(directory, name: str, body: str, executable: bool = True):
    path = directory / name
    path.write_text("#!/bin/sh\n" + body)
    if executable:
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


class TestBuiltinChecks:
    """Test running in-process checks."""

    def test_lines_are_captured(self, make_context):
        checker = PreflightChecker(make_context("k3s"), checks=[builtin("passing_check")])
        result = checker.run_check(builtin("passing_check"))

        assert result.lines == [StatusLine(StatusKind.PASS, "environment is k3s")]
        assert "decorative banner" in result.output
        assert result.exit_code == 0

    def test_failure_sets_exit_code(self, make_context):
        result = PreflightChecker(make_context("k3s")).run_check(builtin("failing_check"))
        assert result.has_failures
        assert result.exit_code == 1

    def test_unexpected_exception_becomes_fail(self, make_context):
        result = PreflightChecker(make_context("k3s")).run_check(builtin("exploding_check"))

        assert [l.kind for l in result.lines] == [StatusKind.PASS, StatusKind.FAIL]
        assert result.lines[-1].message == "Unexpected error in exploding_check check: boom"

    @pytest.mark.parametrize("target", [
        "syscheck.preflight.checks.does_not_exist:run",
        "helpers:no_such_check",
        "helpers:NOT_CALLABLE",
    ])
    def test_unresolvable_target_is_single_skip(self, make_context, target):
        descriptor = CheckDescriptor("x", "X", "", target)
        result = PreflightChecker(make_context("k3s")).run_check(descriptor)

        assert result.lines == [StatusLine(StatusKind.SKIP, f"{target} not found or not executable.")]
        assert not result.has_failures

    def test_verbose_streams_live(self, make_context):
        buffer = io.StringIO()
        console = Console(file=buffer, width=120)
        checker = PreflightChecker(make_context("k3s"), verbose=True, console=console)
        checker.run_check(builtin("warning_check"))

        streamed = buffer.getvalue()
        assert "[INFO] informational only" in streamed
        assert "[WARN] advisory finding" in streamed


class TestExternalChecks:
    """Test running check executables."""

    def test_output_and_environment(self, tmp_path, make_context):
        make_script(tmp_path, "check_env", 'echo "banner"\necho "[PASS] env=$ENVIRONMENT ns=$TARGET_NAMESPACE"\necho "[WARN] to stderr" >&2\n')
        descriptor = discover_external_checks(tmp_path)[0]

        result = PreflightChecker(make_context("k3s")).run_check(descriptor)

        assert [str(l) for l in result.lines] == ["[PASS] env=k3s ns=default", "[WARN] to stderr"]
        assert result.exit_code == 0

    def test_exit_code_is_kept(self, tmp_path, make_context):
        make_script(tmp_path, "check_exit", 'echo "[FAIL] broken"\nexit 3\n')
        result = PreflightChecker(make_context("k3s")).run_check(discover_external_checks(tmp_path)[0])
        assert result.exit_code == 3
        assert result.has_failures

    def test_not_executable_is_single_skip(self, tmp_path, make_context):
        path = make_script(tmp_path, "check_plain", 'echo "[FAIL] never runs"\n', executable=False)
        if os.access(path, os.X_OK):
            pytest.skip("filesystem does not honour the executable bit")

        result = PreflightChecker(make_context("k3s")).run_check(discover_external_checks(tmp_path)[0])

        assert result.lines == [StatusLine(StatusKind.SKIP, f"{path.resolve()} not found or not executable.")]

    def test_missing_file_is_single_skip(self, tmp_path, make_context):
        descriptor = CheckDescriptor("external:gone", "GONE", "", tmp_path / "check_gone")
        result = PreflightChecker(make_context("k3s")).run_check(descriptor)
        assert [l.kind for l in result.lines] == [StatusKind.SKIP]


class TestRunAll:
    """Test sequencing and aggregation."""

    def test_results_keep_declared_order(self, make_context):
        names = ["warning_check", "passing_check", "silent_check"]
        result = PreflightChecker(make_context("k3s"), checks=[builtin(n) for n in names]).run_all()
        assert [r.check_id for r in result.results] == names

    def test_on_start_reports_steps(self, make_context):
        seen = []
        checks = [builtin("passing_check"), builtin("warning_check")]
        PreflightChecker(make_context("k3s"), checks=checks).run_all(
            on_start=lambda step, total, d: seen.append((step, total, d.id))
        )
        assert seen == [(1, 2, "passing_check"), (2, 2, "warning_check")]

    def test_failing_check_does_not_stop_the_run(self, make_context):
        checks = [builtin("exploding_check"), builtin("passing_check")]
        result = PreflightChecker(make_context("k3s"), checks=checks).run_all()
        assert len(result.results) == 2
        assert not result.results[1].has_failures

    @pytest.mark.parametrize("names, exit_code", [
        (["passing_check", "warning_check", "silent_check"], 0),
        (["passing_check", "failing_check"], 1),
        (["exploding_check"], 1),
        ([], 0),
    ])
    def test_exit_code_iff_any_fail(self, make_context, names, exit_code):
        result = PreflightChecker(make_context("k3s"), checks=[builtin(n) for n in names]).run_all()
        assert result.exit_code == exit_code
        assert result.passed == (exit_code == 0)

    def test_counts_and_failed_checks(self):
        result = PreflightResult(results=[
            CheckResult.from_output("a", "A", "", "[PASS] x\n[WARN] y"),
            CheckResult.from_output("b", "B", "", "[FAIL] z\n[FAIL] w"),
        ])
        assert result.counts[StatusKind.FAIL] == 2
        assert result.counts[StatusKind.WARN] == 1
        assert [r.check_id for r in result.failed_checks] == ["b"]
        assert result.summary().startswith("FAILED: 2 checks")
