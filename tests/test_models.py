"""
Tests for the status line protocol.
"""

from syscheck.preflight.models import (
    NO_OUTPUT_MESSAGE,
    CheckResult,
    StatusKind,
    StatusLine,
    StatusWriter,
    parse_status_line,
    parse_status_lines,
)


class TestParseStatusLine:
    """Test recognition of tagged lines."""

    def test_plain_tag(self):
        line = parse_status_line("[PASS] kubectl version 1.29.3")
        assert line == StatusLine(StatusKind.PASS, "kubectl version 1.29.3")

    def test_ansi_colours_are_stripped(self):
        line = parse_status_line("\x1b[0;31m[FAIL]\x1b[0m Cannot connect to https://get.k3s.io")
        assert line.kind == StatusKind.FAIL
        assert line.message == "Cannot connect to https://get.k3s.io"

    def test_info_is_decorative(self):
        assert parse_status_line("[INFO] Gatekeeper constraints API not detected.") is None

    def test_tag_must_start_the_line(self):
        assert parse_status_line("    [PASS] indented") is None
        assert parse_status_line("result: [FAIL] nope") is None

    def test_unknown_tag(self):
        assert parse_status_line("[DEBUG] noise") is None

    def test_str_round_trips(self):
        line = StatusLine(StatusKind.SKIP, "not applicable")
        assert str(line) == "[SKIP] not applicable"
        assert parse_status_line(str(line)) == line


class TestParseStatusLines:
    """Test extraction from full check output."""

    def test_keeps_emission_order_and_drops_decoration(self):
        output = "\n".join([
            "==========",
            "[WARN] first",
            "some table row",
            "[PASS] second",
            "[INFO] ignored",
            "[FAIL] third",
        ])
        lines = parse_status_lines(output)
        assert [l.kind for l in lines] == [StatusKind.WARN, StatusKind.PASS, StatusKind.FAIL]
        assert [l.message for l in lines] == ["first", "second", "third"]

    def test_empty_output(self):
        assert parse_status_lines("") == []


class TestCheckResult:
    """Test per-check aggregation."""

    def test_has_failures(self):
        result = CheckResult.from_output("x", "X", "", "[PASS] a\n[FAIL] b")
        assert result.has_failures
        assert result.count(StatusKind.PASS) == 1

    def test_warnings_are_not_failures(self):
        result = CheckResult.from_output("x", "X", "", "[WARN] a\n[SKIP] b")
        assert not result.has_failures

    def test_silent_check_displays_synthesized_skip(self):
        result = CheckResult.from_output("x", "X", "", "banner only")
        assert result.lines == []
        assert result.display_lines == [StatusLine(StatusKind.SKIP, NO_OUTPUT_MESSAGE)]
        assert not result.has_failures


class TestStatusWriter:
    """Test the in-process status channel."""

    def test_emits_wire_format(self):
        out = StatusWriter()
        out.pass_("ok")
        out.warn("careful")
        out.fail("broken")
        out.skip("n/a")
        assert out.getvalue() == "[PASS] ok\n[WARN] careful\n[FAIL] broken\n[SKIP] n/a"
        assert out.failed
        assert out.counts[StatusKind.WARN] == 1

    def test_info_and_echo_are_not_counted(self):
        out = StatusWriter()
        out.info("hello")
        out.echo("line one\nline two")
        assert not out.failed
        assert sum(out.counts.values()) == 0
        assert parse_status_lines(out.getvalue()) == []

    def test_echo_cannot_forge_a_finding(self):
        out = StatusWriter()
        out.echo("[FAIL] this came from kubectl describe")
        assert parse_status_lines(out.getvalue()) == []

    def test_live_callback_sees_every_line(self):
        seen = []
        out = StatusWriter(on_line=seen.append)
        out.echo("a\nb")
        out.pass_("c")
        assert seen == ["a", "b", "[PASS] c"]
