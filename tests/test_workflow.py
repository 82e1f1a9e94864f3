"""Tests for the node update and power workflows."""

from unittest.mock import Mock

import pytest

from csm_client.exceptions import (
    ConfirmationDeclined,
    NotFoundError,
    PartialApplyError,
    UpstreamError,
    ValidationError,
)
from csm_client.models import PowerAction
from csm_client.services import CAPMCService
from csm_client.workflow import (
    NodePowerWorkflow,
    NodeUpdateRequest,
    NodeUpdateWorkflow,
    PowerCommand,
    RunState,
)
from csm_client.workflow.power import PowerCycleController

from tests.helpers import (
    NODE,
    FixedConfirmation,
    call_names,
    make_config,
    make_fake_client,
    make_group,
)


def _request(**overrides) -> NodeUpdateRequest:
    fields = {
        "nodes": [NODE],
        "hsm_group": "nodes-hsm1",
        "boot_image_configuration": "compute-v3",
        "desired_configuration": "compute-v3",
    }
    fields.update(overrides)
    return NodeUpdateRequest(**fields)


class TestNodeUpdateWorkflow:
    """Test the update node workflow end to end against fake services."""

    def test_image_change_reboots_into_new_image(self):
        client = make_fake_client(current_image="img-111", target_image="img-222")
        confirmation = FixedConfirmation(True)

        result = NodeUpdateWorkflow(client, confirmation).run(_request())

        assert result.state == RunState.DONE
        assert result.needs_restart is True
        assert result.current_image_id == "img-111"
        assert result.target_image_id == "img-222"
        assert confirmation.calls[0][0] == [NODE]

        patched = client.bss.patch_boot_parameters.call_args.args[0]
        assert patched.hosts == [NODE]
        assert patched.macs is None
        assert patched.kernel == "s3://boot-images/img-222/kernel"
        assert patched.initrd == "s3://boot-images/img-222/initrd"
        assert "s3://boot-images/img-222/rootfs:etag-img-222" in patched.params
        assert "img-111" not in patched.params

        assignment = client.cfs.update_desired_configuration.call_args.args[0]
        assert assignment.nodes == [NODE]
        assert assignment.configuration == "compute-v3"
        assert assignment.apply_now is False
        assert result.apply_now is False

        shutdown = client.capmc.shutdown.call_args.args[0]
        start = client.capmc.start.call_args.args[0]
        assert shutdown.action == PowerAction.SHUTDOWN
        assert shutdown.synchronous is True
        assert shutdown.nodes == [NODE]
        assert start.action == PowerAction.START
        assert start.nodes == [NODE]

        names = call_names(client)
        assert names.index("bss.patch_boot_parameters") < names.index("cfs.update_desired_configuration")
        assert names.index("cfs.update_desired_configuration") < names.index("capmc.shutdown")
        assert names.index("capmc.shutdown") < names.index("capmc.start")

    def test_same_image_skips_confirmation_and_power(self):
        client = make_fake_client(current_image="img-111", target_image="img-111")
        confirmation = FixedConfirmation(True)

        result = NodeUpdateWorkflow(client, confirmation).run(_request())

        assert result.needs_restart is False
        assert result.apply_now is True
        assert result.power_operations == []
        assert confirmation.calls == []
        client.bss.patch_boot_parameters.assert_not_called()
        assert client.capmc.mock_calls == []
        assignment = client.cfs.update_desired_configuration.call_args.args[0]
        assert assignment.apply_now is True

    def test_apply_now_is_inverse_of_restart(self):
        for current, target in (("img-111", "img-222"), ("img-222", "img-222")):
            client = make_fake_client(current_image=current, target_image=target)

            result = NodeUpdateWorkflow(client, FixedConfirmation(True)).run(_request())

            assignment = client.cfs.update_desired_configuration.call_args.args[0]
            assert assignment.apply_now is (not result.needs_restart)

    def test_node_outside_group_stops_before_any_resolution(self):
        client = make_fake_client()
        client.hsm.get_group.return_value = make_group("nodes-hsm1", ["a", "b", "c"])
        workflow = NodeUpdateWorkflow(client, FixedConfirmation(True))

        with pytest.raises(ValidationError) as exc_info:
            workflow.run(_request(nodes=["a", "d"]))

        assert exc_info.value.nodes == ["d"]
        assert workflow.state == RunState.ABORTED
        for service in (client.cfs, client.ims, client.bos, client.bss, client.capmc):
            assert service.mock_calls == []

    def test_nonexistent_configuration(self):
        client = make_fake_client()
        client.cfs.get_configurations.return_value = []
        workflow = NodeUpdateWorkflow(client, FixedConfirmation(True))

        with pytest.raises(NotFoundError, match="nonexistent-cfg"):
            workflow.run(_request(desired_configuration="nonexistent-cfg"))

        assert workflow.state == RunState.ABORTED
        client.bss.patch_boot_parameters.assert_not_called()

    def test_declined_confirmation_writes_nothing(self):
        client = make_fake_client()
        workflow = NodeUpdateWorkflow(client, FixedConfirmation(False))

        with pytest.raises(ConfirmationDeclined):
            workflow.run(_request())

        assert workflow.state == RunState.ABORTED
        client.bss.patch_boot_parameters.assert_not_called()
        client.cfs.update_desired_configuration.assert_not_called()
        assert client.capmc.mock_calls == []

    def test_explicit_boot_image(self):
        client = make_fake_client(current_image="img-111")

        result = NodeUpdateWorkflow(client, FixedConfirmation(True)).run(
            _request(boot_image_configuration=None, boot_image_id="img-444", desired_configuration=None)
        )

        assert result.target_image_id == "img-444"
        assert result.desired_configuration is None
        client.ims.get_image.assert_called_once_with("img-444")
        client.ims.find_images_by_name.assert_not_called()
        client.cfs.update_desired_configuration.assert_not_called()
        client.capmc.start.assert_called_once()

    def test_desired_configuration_only(self):
        client = make_fake_client()

        result = NodeUpdateWorkflow(client, FixedConfirmation(False)).run(
            _request(boot_image_configuration=None)
        )

        assert result.needs_restart is False
        assert result.apply_now is True
        assert client.bss.mock_calls == []
        assert client.ims.mock_calls == []

    def test_nothing_to_update(self):
        client = make_fake_client()

        with pytest.raises(ValidationError):
            NodeUpdateWorkflow(client, FixedConfirmation(True)).run(
                _request(boot_image_configuration=None, desired_configuration=None)
            )

        assert client.hsm.mock_calls == []

    def test_read_failure_is_plain_upstream_error(self):
        client = make_fake_client()
        client.bss.get_boot_parameters.side_effect = UpstreamError(
            "bss returned HTTP 500", status_code=500
        )
        workflow = NodeUpdateWorkflow(client, FixedConfirmation(True))

        with pytest.raises(UpstreamError) as exc_info:
            workflow.run(_request())

        assert not isinstance(exc_info.value, PartialApplyError)
        assert workflow.state == RunState.FAILED

    def test_shutdown_failure_reports_committed_writes(self):
        client = make_fake_client()
        client.capmc.shutdown.side_effect = UpstreamError(
            "CAPMC shutdown failed", detail="x1000c0s0b0n0: NodeBMC unreachable"
        )
        workflow = NodeUpdateWorkflow(client, FixedConfirmation(True))

        with pytest.raises(PartialApplyError) as exc_info:
            workflow.run(_request())

        error = exc_info.value
        assert "NodeBMC unreachable" in str(error)
        assert error.committed == [
            "boot parameters: boot image img-222",
            "desired configuration: compute-v3 (apply now: False)",
        ]
        client.capmc.start.assert_not_called()
        assert workflow.state == RunState.FAILED

    def test_start_failure_reports_shutdown(self):
        client = make_fake_client()
        client.capmc.start.side_effect = UpstreamError("CAPMC start failed")

        with pytest.raises(PartialApplyError) as exc_info:
            NodeUpdateWorkflow(client, FixedConfirmation(True)).run(_request())

        assert "power: shutdown" in exc_info.value.committed

    def test_shutdown_wait_timeout_reports_shutdown_in_effect(self):
        client = make_fake_client()
        http = Mock()
        http.config = make_config(power_off_timeout=0.0)
        http.post.side_effect = [{"e": 0}, {"e": 0, "on": [NODE]}]
        client.capmc = CAPMCService(http, sleep=lambda seconds: None)

        with pytest.raises(PartialApplyError) as exc_info:
            NodeUpdateWorkflow(client, FixedConfirmation(True)).run(_request())

        assert exc_info.value.committed == [
            "boot parameters: boot image img-222",
            "desired configuration: compute-v3 (apply now: False)",
            "power: shutdown",
        ]
        paths = [call.args[0] for call in http.post.call_args_list]
        assert paths == ["/capmc/capmc/v1/xname_off", "/capmc/capmc/v1/get_xname_status"]

    def test_image_resolution_without_image_request(self):
        workflow = NodeUpdateWorkflow(make_fake_client(), FixedConfirmation(True))

        with pytest.raises(ValidationError):
            workflow._resolve_image(NodeUpdateRequest(nodes=[NODE]))


class TestNodePowerWorkflow:
    """Test apply node on/off/reset."""

    def test_power_on_needs_no_confirmation(self):
        client = make_fake_client()
        confirmation = FixedConfirmation(False)

        result = NodePowerWorkflow(client, confirmation).run(PowerCommand.ON, [NODE])

        assert result.state == RunState.DONE
        assert confirmation.calls == []
        assert call_names(client.capmc) == ["start"]

    def test_power_off_declined(self):
        client = make_fake_client()

        with pytest.raises(ConfirmationDeclined):
            NodePowerWorkflow(client, FixedConfirmation(False)).run(
                PowerCommand.OFF, [NODE], hsm_group="nodes-hsm1"
            )

        assert client.capmc.mock_calls == []

    def test_reset_is_shutdown_then_start(self):
        client = make_fake_client()

        result = NodePowerWorkflow(client, FixedConfirmation(True)).run(
            PowerCommand.RESET, [NODE], reason="kernel update", force=True
        )

        assert call_names(client.capmc) == ["shutdown", "wait_until_off", "start"]
        shutdown = client.capmc.shutdown.call_args.args[0]
        assert shutdown.force is True
        assert shutdown.reason == "kernel update"
        assert [effect.description for effect in result.committed] == ["shutdown", "start"]

    def test_power_off_wait_failure_reports_shutdown(self):
        client = make_fake_client()
        http = Mock()
        http.config = make_config(power_off_timeout=0.0)
        http.post.side_effect = [{"e": 0}, {"e": 0, "undefined": [NODE]}]
        client.capmc = CAPMCService(http, sleep=lambda seconds: None)
        workflow = NodePowerWorkflow(client, FixedConfirmation(True))

        with pytest.raises(PartialApplyError) as exc_info:
            workflow.run(PowerCommand.OFF, [NODE])

        assert exc_info.value.committed == ["power: shutdown"]
        assert workflow.state == RunState.FAILED


class TestPowerCycleController:
    """Test shutdown/start ordering."""

    def test_failed_shutdown_never_starts(self):
        capmc = Mock()
        capmc.shutdown.side_effect = UpstreamError("CAPMC shutdown failed")
        controller = PowerCycleController(capmc)

        with pytest.raises(UpstreamError):
            controller.power_cycle([NODE])

        capmc.start.assert_not_called()
        assert controller.issued == []

    def test_shutdown_recorded_before_wait(self):
        capmc = Mock()
        capmc.wait_until_off.side_effect = UpstreamError("Timed out waiting for nodes to power off")
        controller = PowerCycleController(capmc)

        with pytest.raises(UpstreamError):
            controller.power_cycle([NODE])

        capmc.shutdown.assert_called_once()
        assert capmc.shutdown.call_args.kwargs == {"wait": False}
        assert [operation.action for operation in controller.issued] == [PowerAction.SHUTDOWN]
        capmc.start.assert_not_called()
