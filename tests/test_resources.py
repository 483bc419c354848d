"""
Tests for temporary cluster resources.
"""

import pytest

from helpers import CommandResponse
from syscheck.tools import CommandFailedError, Kubectl, ProbeLifecycle, ProbeState, temporary_pod
from syscheck.tools.manifests import sleeper_pod


@pytest.fixture
def kubectl():
    return Kubectl("test-ctx")


class TestProbeLifecycle:
    """The namespace is released on every exit path."""

    def test_normal_exit(self, commands, kubectl):
        commands.set_default_response(CommandResponse())

        with ProbeLifecycle(kubectl, "probe-ns") as probe:
            assert probe.state == ProbeState.NAMESPACE_CREATED
            probe.advance(ProbeState.PODS_SUBMITTED)

        assert probe.state == ProbeState.DONE
        assert commands.was_called_with("kubectl --context test-ctx create namespace probe-ns")
        assert commands.was_called_with("delete namespace probe-ns --ignore-not-found --wait=false")

    @pytest.mark.parametrize("error", [RuntimeError, KeyboardInterrupt, SystemExit])
    def test_cleanup_on_exception(self, commands, kubectl, error):
        commands.set_default_response(CommandResponse())

        with pytest.raises(error):
            with ProbeLifecycle(kubectl, "probe-ns") as probe:
                raise error()

        assert probe.state == ProbeState.DONE
        assert commands.was_called_with("delete namespace probe-ns")

    def test_existing_namespace_is_tolerated(self, commands, kubectl):
        commands.register("create namespace", CommandResponse.error('namespaces "probe-ns" AlreadyExists'))
        commands.register("delete namespace", CommandResponse())

        with ProbeLifecycle(kubectl, "probe-ns") as probe:
            assert probe.state == ProbeState.NAMESPACE_CREATED

    def test_waits_for_terminating_namespace(self, commands, kubectl):
        commands.register("get namespace probe-ns", CommandResponse.json({"status": {"phase": "Terminating"}}))
        commands.register("wait --for=delete", CommandResponse())
        commands.register("create namespace", CommandResponse())
        commands.register("delete namespace", CommandResponse())

        with ProbeLifecycle(kubectl, "probe-ns", deletion_timeout=30) as probe:
            assert probe.state == ProbeState.NAMESPACE_CREATED

        issued = [call.command_str for call in commands.calls]
        wait = issued.index("kubectl --context test-ctx wait --for=delete namespace/probe-ns --timeout=30s")
        create = issued.index("kubectl --context test-ctx create namespace probe-ns")
        assert wait < create

    def test_active_namespace_is_not_awaited(self, commands, kubectl):
        commands.register("get namespace probe-ns", CommandResponse.json({"status": {"phase": "Active"}}))
        commands.register("create namespace", CommandResponse.error('namespaces "probe-ns" AlreadyExists'))
        commands.register("delete namespace", CommandResponse())

        with ProbeLifecycle(kubectl, "probe-ns"):
            pass

        assert not commands.was_called_with("wait --for=delete")

    def test_namespace_still_being_deleted_fails(self, commands, kubectl):
        commands.register("get namespace probe-ns", CommandResponse.json({"status": {"phase": "Terminating"}}))
        commands.register("wait --for=delete", CommandResponse.error("timed out waiting for the condition"))
        commands.register("create namespace", CommandResponse.error(
            'Error from server (AlreadyExists): object is being deleted: namespaces "probe-ns" already exists'
        ))
        commands.register("delete namespace", CommandResponse())

        with pytest.raises(CommandFailedError, match="being deleted"):
            with ProbeLifecycle(kubectl, "probe-ns"):
                pytest.fail("body must not run")

        assert commands.was_called_with("delete namespace probe-ns")

    def test_create_failure_still_cleans_up(self, commands, kubectl):
        commands.register("create namespace", CommandResponse.error("forbidden"))

        with pytest.raises(CommandFailedError, match="forbidden"):
            with ProbeLifecycle(kubectl, "probe-ns"):
                pass

        assert commands.was_called_with("delete namespace probe-ns")

    def test_failed_delete_is_not_raised(self, commands, kubectl):
        commands.register("create namespace", CommandResponse())
        commands.register("delete namespace", CommandResponse.error("connection refused"))

        with ProbeLifecycle(kubectl, "probe-ns") as probe:
            pass

        assert probe.state == ProbeState.DONE


class TestTemporaryPod:
    """The pod is deleted even when the body raises."""

    def test_yields_name_and_deletes(self, commands, kubectl):
        commands.set_default_response(CommandResponse())

        with temporary_pod(kubectl, "ns", sleeper_pod("probe", "busybox:1.36")) as name:
            assert name == "probe"

        assert commands.was_called_with("-n ns apply -f -")
        assert commands.was_called_with("-n ns delete pod probe")

    def test_deleted_after_error(self, commands, kubectl):
        commands.set_default_response(CommandResponse())

        with pytest.raises(ValueError):
            with temporary_pod(kubectl, "ns", sleeper_pod("probe", "busybox:1.36")):
                raise ValueError("probe failed")

        assert commands.was_called_with("-n ns delete pod probe")

    def test_apply_failure_still_deletes(self, commands, kubectl):
        commands.register("apply", CommandResponse.error("quota exceeded"))

        with pytest.raises(CommandFailedError):
            with temporary_pod(kubectl, "ns", sleeper_pod("probe", "busybox:1.36")):
                pytest.fail("body must not run")

        assert commands.was_called_with("delete pod probe")
