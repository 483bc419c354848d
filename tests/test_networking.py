"""
Tests for the external endpoint reachability check.
"""

import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from helpers import CommandResponse, kinds, messages
from syscheck.config.defaults import REQUIRED_ENDPOINTS
from syscheck.preflight.checks import networking
from syscheck.preflight.checks.networking import head_request
from syscheck.preflight.models import StatusKind


class TestHeadRequest:
    """Test the host-side HEAD probe."""

    def test_success(self):
        response = MagicMock()
        with patch("urllib.request.urlopen", return_value=response) as urlopen:
            assert head_request("https://get.k3s.io", timeout=3)
        request = urlopen.call_args[0][0]
        assert request.get_method() == "HEAD"
        assert urlopen.call_args[1]["timeout"] == 3

    def test_http_error_counts_as_reachable(self):
        error = urllib.error.HTTPError("https://stackgres.io", 403, "Forbidden", {}, None)
        with patch("urllib.request.urlopen", side_effect=error):
            assert head_request("https://stackgres.io", timeout=3)

    @pytest.mark.parametrize("error", [
        urllib.error.URLError("Name or service not known"),
        TimeoutError("timed out"),
        ConnectionRefusedError(),
    ])
    def test_connection_errors_are_unreachable(self, error):
        with patch("urllib.request.urlopen", side_effect=error):
            assert not head_request("https://stackgres.io", timeout=3)


class TestHostProbes:
    """K3s probes run from this host."""

    def test_all_reachable(self, commands, make_context, writer, monkeypatch):
        monkeypatch.setattr(networking, "head_request", lambda url, timeout: True)

        networking.run(make_context("k3s"), writer)

        passes = messages(writer, StatusKind.PASS)
        assert len(passes) == len(REQUIRED_ENDPOINTS) + 1
        assert "Able to connect to https://webinstall.dev/k9s" in passes
        assert passes[-1] == "All external endpoints reachable."
        assert commands.calls == []

    def test_one_unreachable(self, commands, make_context, writer, monkeypatch):
        monkeypatch.setattr(networking, "head_request", lambda url, timeout: "rancher" not in url)

        networking.run(make_context("k3s"), writer)

        assert messages(writer, StatusKind.FAIL) == [
            "Cannot connect to https://rpm.rancher.io",
            "One or more external endpoints were not reachable.",
        ]

    def test_timeout_is_passed_through(self, commands, make_context, writer, monkeypatch):
        seen = []
        monkeypatch.setattr(networking, "head_request", lambda url, timeout: seen.append(timeout) or True)

        networking.run(make_context("k3s", endpoint_timeout=11), writer)

        assert set(seen) == {11}


class TestInClusterProbes:
    """AKS/EKS probes run from a temporary pod."""

    def _pod_ready(self, commands):
        commands.register("apply -f -", CommandResponse(stdout="pod/net-check created"))
        commands.register("wait --for=condition=Ready", CommandResponse(stdout="condition met"))
        commands.register("delete pod net-check", CommandResponse())

    def test_all_reachable(self, commands, make_context, writer):
        self._pod_ready(commands)
        commands.register("exec net-check -- curl", CommandResponse())

        networking.run(make_context("aks"), writer)

        passes = messages(writer, StatusKind.PASS)
        assert "Able to connect to https://stackgres.io (in-cluster)" in passes
        assert passes[-1] == "All external endpoints reachable."
        assert len(commands.get_calls_matching("exec net-check")) == len(REQUIRED_ENDPOINTS)
        assert commands.was_called_with("-n default delete pod net-check")

    def test_curl_failure(self, commands, make_context, writer):
        self._pod_ready(commands)
        commands.register("https://get.k3s.io", CommandResponse.error("Could not resolve host"), priority=1)
        commands.register("exec net-check -- curl", CommandResponse())

        networking.run(make_context("eks"), writer)

        assert "Cannot connect to https://get.k3s.io (in-cluster)" in messages(writer, StatusKind.FAIL)
        assert kinds(writer)[-1] == StatusKind.FAIL

    def test_pod_not_ready(self, commands, make_context, writer):
        commands.register("apply -f -", CommandResponse(stdout="pod/net-check created"))

        networking.run(make_context("aks", target_namespace="dryviq"), writer)

        assert messages(writer, StatusKind.FAIL) == [
            "Diagnostic pod net-check did not start correctly in namespace dryviq.",
            "One or more external endpoints were not reachable.",
        ]
        assert not commands.was_called_with("exec")
        assert commands.was_called_with("-n dryviq delete pod net-check")

    def test_pod_is_deleted_when_probe_raises(self, commands, make_context, writer):
        self._pod_ready(commands)
        commands.register("exec net-check", CommandResponse())

        with patch.object(networking, "_probe_all", side_effect=KeyboardInterrupt):
            with pytest.raises(KeyboardInterrupt):
                networking.run(make_context("aks"), writer)

        assert commands.was_called_with("delete pod net-check")
