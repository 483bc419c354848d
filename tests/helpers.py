"""
Builders, command mocking and assertions shared by the test modules.
"""

import json
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Pattern, Union
from unittest.mock import MagicMock

from syscheck.preflight.models import StatusKind, StatusWriter, parse_status_lines


# =============================================================================
# Command Mocking Infrastructure
# =============================================================================

@dataclass
class CommandResponse:
    """A mocked command response."""
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0
    missing: bool = False

    @classmethod
    def json(cls, payload: Any) -> "CommandResponse":
        return cls(stdout=json.dumps(payload))

    @classmethod
    def items(cls, items: List[Any]) -> "CommandResponse":
        return cls.json({"items": items})

    @classmethod
    def error(cls, stderr: str = "error", returncode: int = 1) -> "CommandResponse":
        return cls(stderr=stderr, returncode=returncode)

    @classmethod
    def not_installed(cls) -> "CommandResponse":
        """The executable is absent; subprocess.run raises FileNotFoundError."""
        return cls(missing=True)

    def to_completed_process(self) -> MagicMock:
        result = MagicMock()
        result.stdout = self.stdout
        result.stderr = self.stderr
        result.returncode = self.returncode
        return result


@dataclass
class CommandCall:
    """Record of a command made during testing."""
    command: List[str]
    command_str: str
    input: Optional[str] = None
    matched_pattern: Optional[str] = None


class CommandMocker:
    """
    Mock subprocess.run with pattern-matched responses.

    Patterns are substrings (or compiled regexes) matched against the full
    command line (plus any stdin). Higher priority wins; among equal
    priorities the first registered wins. Unmatched commands fail with
    exit code 1.

    Usage:
        def test_nodes(commands):
            commands.register("get nodes", CommandResponse.items([...]))
            ...
            assert commands.was_called_with("get nodes")
    """

    def __init__(self):
        self._responses: List[tuple] = []
        self._call_history: List[CommandCall] = []
        self._default_response = CommandResponse(
            stderr="Error: mock not configured for this command",
            returncode=1,
        )

    def register(
        self,
        pattern: Union[str, Pattern],
        response: CommandResponse,
        priority: int = 0,
    ) -> "CommandMocker":
        self._responses.append((pattern, response, priority))
        self._responses.sort(key=lambda x: x[2], reverse=True)
        return self

    def set_default_response(self, response: CommandResponse) -> "CommandMocker":
        self._default_response = response
        return self

    def mock_run(self, cmd: List[str], capture_output: bool = True, text: bool = True, timeout=None, input=None, **kwargs):
        cmd_str = " ".join(cmd)
        # manifests piped to stdin are matchable too
        haystack = cmd_str if input is None else f"{cmd_str}\n{input}"
        response = self._default_response
        matched = None

        for pattern, resp, _ in self._responses:
            if isinstance(pattern, str):
                if pattern in haystack:
                    matched, response = pattern, resp
                    break
            elif pattern.search(haystack):
                matched, response = pattern.pattern, resp
                break

        self._call_history.append(CommandCall(cmd, cmd_str, input, matched))
        if response.missing:
            raise FileNotFoundError(cmd[0])
        return response.to_completed_process()

    @property
    def calls(self) -> List[CommandCall]:
        return self._call_history

    def was_called_with(self, pattern: str) -> bool:
        return any(pattern in call.command_str for call in self._call_history)

    def get_calls_matching(self, pattern: str) -> List[CommandCall]:
        return [c for c in self._call_history if pattern in c.command_str]



# =============================================================================
# Status assertions
# =============================================================================

def kinds(out: StatusWriter) -> List[StatusKind]:
    """Kinds of the status lines a writer produced, in order."""
    return [line.kind for line in parse_status_lines(out.getvalue())]


def messages(out: StatusWriter, kind: StatusKind) -> List[str]:
    return [line.message for line in parse_status_lines(out.getvalue()) if line.kind == kind]


# =============================================================================
# Kubernetes object builders
# =============================================================================

def node(name: str, labels: Optional[dict] = None, taints: Iterable[dict] = (), ip: str = "10.0.0.1") -> dict:
    return {
        "metadata": {"name": name, "labels": labels or {}},
        "spec": {"taints": list(taints)},
        "status": {"addresses": [{"type": "InternalIP", "address": ip}]},
    }


def network_policy(namespace: str, name: str, spec: dict) -> dict:
    return {"metadata": {"namespace": namespace, "name": name}, "spec": spec}


# =============================================================================
# Sample built-in checks (resolved by the orchestrator as helpers:<name>)
# =============================================================================

def passing_check(context, out):
    out.echo("decorative banner")
    out.pass_(f"environment is {context.environment.value}")


def warning_check(context, out):
    out.info("informational only")
    out.warn("advisory finding")


def failing_check(context, out):
    out.pass_("first probe ok")
    out.fail("second probe failed")


def silent_check(context, out):
    out.echo("nothing but decoration")


def exploding_check(context, out):
    out.pass_("got this far")
    raise RuntimeError("boom")


NOT_CALLABLE = "just a string"
