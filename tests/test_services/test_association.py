"""Tests for the EIP association controller."""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from eipctl.core.exceptions import (
    ConflictError,
    ConvergenceTimeoutError,
    GatewayError,
    InvalidParameterError,
    InvalidStatusError,
    NotFoundError,
)
from eipctl.models.eip import EipAddress
from eipctl.models.enums import AssociationState, CanonicalStatus
from eipctl.services.association import AssociationController


@pytest.fixture
def bound_world(gateway):
    """EIP E1 bound to port P1 of instance I1."""
    gateway.add_port("P1", device_id="I1")
    return gateway.add_eip("E1", status="ACTIVE", port_id="P1")


class TestAssociate:
    """Tests for AssociationController.associate."""

    def test_associate_binds_instance_port(self, gateway, controller):
        """The resolved port is bound exactly once and recorded locally."""
        gateway.add_port("P1", device_id="I1")
        eip = gateway.add_eip("E1")

        result = controller.associate(eip, "I1")

        assert result is eip
        assert eip.port_id == "P1"
        assert gateway.calls_to("update_eip_port") == [("E1", "P1")]
        assert eip.get_status() is CanonicalStatus.READY

    def test_associate_is_idempotent(self, gateway, controller):
        """A second associate to the same instance is a no-op."""
        gateway.add_port("P1", device_id="I1")
        eip = gateway.add_eip("E1")

        controller.associate(eip, "I1")
        controller.associate(eip, "I1")

        assert eip.port_id == "P1"
        assert gateway.calls_to("update_eip_port") == [("E1", "P1")]

    def test_associate_conflicting_port(self, gateway, controller):
        """An EIP bound elsewhere is never silently rebound."""
        gateway.add_port("P2", device_id="I2")
        eip = gateway.add_eip("E1", status="ACTIVE", port_id="P1")

        with pytest.raises(ConflictError) as exc_info:
            controller.associate(eip, "I2")

        assert eip.port_id == "P1"
        assert gateway.calls_to("update_eip_port") == []
        assert exc_info.value.context == {
            "eip_id": "E1",
            "port_id": "P1",
            "requested_port_id": "P2",
            "instance_id": "I2",
        }

    def test_associate_instance_without_port(self, gateway, controller):
        """Port resolution failures propagate before any bind request."""
        eip = gateway.add_eip("E1")

        with pytest.raises(NotFoundError):
            controller.associate(eip, "I-none")

        assert eip.port_id == ""
        assert gateway.calls_to("update_eip_port") == []

    def test_associate_waits_through_binding(self, gateway, controller):
        """Polling continues while the EIP is still binding."""
        gateway.add_port("P1", device_id="I1")
        eip = gateway.add_eip("E1")
        gateway.script_statuses("E1", "BINDING", "NOTIFYING", "ACTIVE")

        controller.associate(eip, "I1")

        assert eip.port_id == "P1"
        assert eip.raw_status == "ACTIVE"
        assert len(gateway.calls_to("get_eip")) == 3

    @patch("eipctl.utils.wait.time.sleep")
    def test_associate_poll_schedule(self, mock_sleep, gateway):
        """First read after the delay, then one read per interval."""
        gateway.add_port("P1", device_id="I1")
        eip = gateway.add_eip("E1")
        gateway.script_statuses("E1", "BINDING", "BINDING", "ACTIVE")
        controller = AssociationController(
            gateway, poll_delay=10, poll_interval=10, poll_timeout=180
        )

        controller.associate(eip, "I1")

        assert [c.args[0] for c in mock_sleep.call_args_list] == [10, 10, 10]

    @patch("eipctl.utils.wait.time")
    def test_associate_timeout(self, mock_time, gateway):
        """Never reaching READY within the bound is a timeout."""
        mock_time.monotonic.side_effect = [0.0, 10.0, 100.0, 190.0]
        gateway.add_port("P1", device_id="I1")
        eip = gateway.add_eip("E1")
        gateway.script_statuses("E1", "BINDING")
        controller = AssociationController(
            gateway, poll_delay=10, poll_interval=10, poll_timeout=180
        )

        with pytest.raises(ConvergenceTimeoutError) as exc_info:
            controller.associate(eip, "I1")

        assert isinstance(exc_info.value, TimeoutError)
        assert exc_info.value.context["eip_id"] == "E1"
        assert exc_info.value.context["port_id"] == "P1"
        assert exc_info.value.context["instance_id"] == "I1"
        assert len(gateway.calls_to("get_eip")) == 3
        assert gateway.calls_to("update_eip_port") == [("E1", "P1")]
        assert eip.raw_status == "BINDING"

    def test_associate_bind_error_fails_fast(self, gateway, controller):
        """A BIND_ERROR status aborts polling immediately."""
        gateway.add_port("P1", device_id="I1")
        eip = gateway.add_eip("E1")
        gateway.script_statuses("E1", "BINDING", "BIND_ERROR", "ACTIVE")

        with pytest.raises(InvalidStatusError) as exc_info:
            controller.associate(eip, "I1")

        assert exc_info.value.context["status"] == CanonicalStatus.ALLOCATE_FAILED
        assert len(gateway.calls_to("get_eip")) == 2

    def test_associate_gateway_error_is_wrapped(self, gateway, controller):
        """Bind failures are re-raised with the identifiers involved."""
        gateway.add_port("P1", device_id="I1")
        eip = gateway.add_eip("E1")
        original = GatewayError("quota exceeded", operation="update_eip_port")
        gateway.failures["update_eip_port"] = original

        with pytest.raises(GatewayError) as exc_info:
            controller.associate(eip, "I1")

        error = exc_info.value
        assert error.__cause__ is original
        assert error.operation == "update_eip_port"
        assert error.context["eip_id"] == "E1"
        assert error.context["port_id"] == "P1"
        assert error.context["instance_id"] == "I1"
        assert "quota exceeded" in str(error)
        assert eip.port_id == ""
        assert gateway.calls_to("get_eip") == []

    def test_associate_refresh_failure_propagates(self, gateway, controller):
        """A failed status read is not retried."""
        gateway.add_port("P1", device_id="I1")
        eip = gateway.add_eip("E1")
        gateway.failures["get_eip"] = GatewayError("read timeout", operation="get_eip")

        with pytest.raises(GatewayError):
            controller.associate(eip, "I1")

        assert len(gateway.calls_to("get_eip")) == 1
        assert eip.port_id == ""

    def test_associate_binds_unbound_entity(self, gateway, controller):
        """An entity built outside the gateway is bound to the controller's."""
        gateway.add_port("P1", device_id="I1")
        gateway.add_eip("E1")
        eip = EipAddress(id="E1", status="DOWN")

        controller.associate(eip, "I1")

        assert eip.is_bound
        assert eip.port_id == "P1"

    def test_associate_deleted_eip(self, gateway, controller):
        """Deallocated EIPs accept no further operations."""
        gateway.add_port("P1", device_id="I1")
        eip = gateway.add_eip("E1")
        eip.delete()

        with pytest.raises(NotFoundError):
            controller.associate(eip, "I1")

        assert gateway.calls_to("list_ports") == []


class TestAssociationState:
    """Tests for AssociationController.association_state."""

    def test_state_from_port_id(self, gateway, controller, bound_world):
        """Idle state is derived from port_id alone."""
        assert controller.association_state(bound_world) is AssociationState.ASSOCIATED

        unbound = gateway.add_eip("E2", status="ACTIVE")
        assert controller.association_state(unbound) is AssociationState.UNASSOCIATED

    def test_state_while_in_flight(self, gateway, controller):
        """Operations report ASSOCIATING / DISSOCIATING while running."""
        gateway.add_port("P1", device_id="I1")
        eip = gateway.add_eip("E1")
        seen = []
        gateway.on_update_port = lambda eip_id, port_id: seen.append(
            controller.association_state(eip)
        )

        controller.associate(eip, "I1")
        controller.dissociate(eip, "I1")

        assert seen == [AssociationState.ASSOCIATING, AssociationState.DISSOCIATING]
        assert controller.association_state(eip) is AssociationState.UNASSOCIATED


class TestDissociate:
    """Tests for AssociationController.dissociate."""

    def test_dissociate_unassociated_is_noop(self, gateway, controller):
        """An EIP without a port dissociates without touching the cloud."""
        eip = gateway.add_eip("E1")

        result = controller.dissociate(eip, "I1")

        assert result is eip
        assert gateway.calls == []

    def test_dissociate_unbinds(self, gateway, controller, bound_world):
        """The port is cleared remotely, then locally."""
        controller.dissociate(bound_world, "I1")

        assert bound_world.port_id == ""
        assert gateway.calls_to("update_eip_port") == [("E1", None)]
        assert bound_world.get_status() is CanonicalStatus.READY

    def test_dissociate_infers_owner_from_port(self, gateway, controller, bound_world):
        """Without an instance, the owner of the known port is used."""
        controller.dissociate(bound_world)

        assert bound_world.port_id == ""
        assert gateway.calls_to("update_eip_port") == [("E1", None)]

    def test_dissociate_conflict(self, gateway, controller):
        """Unbinding an EIP owned by another instance is refused."""
        gateway.add_port("P1", device_id="inst-A")
        eip = gateway.add_eip("E1", status="ACTIVE", port_id="P1")

        with pytest.raises(ConflictError) as exc_info:
            controller.dissociate(eip, "inst-B")

        assert eip.port_id == "P1"
        assert gateway.calls_to("update_eip_port") == []
        assert exc_info.value.context["remote_instance_id"] == "inst-A"
        assert exc_info.value.context["instance_id"] == "inst-B"

    def test_dissociate_down_is_already_unbound(self, gateway, controller, bound_world):
        """A live DOWN status short-circuits before the ownership check."""
        gateway.eips["E1"].update(status="DOWN", port_id=None)

        controller.dissociate(bound_world, "someone-else")

        assert bound_world.port_id == ""
        assert bound_world.raw_status == "DOWN"
        assert gateway.calls_to("update_eip_port") == []
        assert gateway.calls_to("get_port") == []

    @pytest.mark.parametrize("live_status", ["BINDING", "ACTIVE"])
    def test_dissociate_portless_live_record_conflicts(
        self, gateway, controller, bound_world, live_status
    ):
        """A live record without a port is owned by nobody, not by the caller."""
        gateway.eips["E1"].update(status=live_status, port_id=None)

        with pytest.raises(ConflictError) as exc_info:
            controller.dissociate(bound_world, "I1")

        assert bound_world.port_id == "P1"
        assert gateway.calls_to("update_eip_port") == []
        assert gateway.calls_to("get_port") == []
        assert exc_info.value.context["remote_instance_id"] == ""
        assert exc_info.value.context["instance_id"] == "I1"

    def test_dissociate_timeout(self, gateway, controller, bound_world):
        """Never reaching READY after unbinding is a timeout."""
        gateway.script_statuses("E1", "ACTIVE", "NOTIFYING")
        controller.poll_timeout = 0.0

        with pytest.raises(ConvergenceTimeoutError) as exc_info:
            controller.dissociate(bound_world, "I1")

        assert exc_info.value.context["eip_id"] == "E1"
        assert gateway.calls_to("update_eip_port") == [("E1", None)]

    @patch("eipctl.utils.wait.time.sleep")
    def test_dissociate_polls_without_delay(self, mock_sleep, gateway, bound_world):
        """The first read after unbinding is immediate."""
        controller = AssociationController(
            gateway, poll_delay=10, poll_interval=10, poll_timeout=180
        )

        controller.dissociate(bound_world, "I1")

        mock_sleep.assert_not_called()

    def test_dissociate_missing_eip(self, gateway, controller, bound_world):
        """An EIP deleted remotely surfaces NotFoundError unchanged."""
        del gateway.eips["E1"]

        with pytest.raises(NotFoundError):
            controller.dissociate(bound_world, "I1")

        assert bound_world.port_id == "P1"


class TestChangeBandwidth:
    """Tests for AssociationController.change_bandwidth."""

    def test_change_bandwidth(self, gateway, controller):
        """The resize is delegated without polling."""
        gateway.add_bandwidth("bw-1", size=5)
        eip = gateway.add_eip("E1", bandwidth_id="bw-1")

        controller.change_bandwidth(eip, 20)

        assert gateway.calls_to("update_bandwidth") == [("bw-1", 20)]
        assert gateway.calls_to("get_eip") == []
        assert eip.bandwidth_size == 20

    def test_change_bandwidth_error(self, gateway, controller):
        """Gateway failures propagate with context."""
        eip = gateway.add_eip("E1", bandwidth_id="bw-1")
        gateway.failures["update_bandwidth"] = GatewayError(
            "invalid size", operation="update_bandwidth"
        )

        with pytest.raises(GatewayError) as exc_info:
            controller.change_bandwidth(eip, 300)

        assert exc_info.value.context["bandwidth_id"] == "bw-1"
        assert exc_info.value.context["size"] == 300
        assert eip.bandwidth_size == 5

    def test_change_bandwidth_rejects_non_positive(self, gateway, controller):
        """Sizes below 1 Mbps never reach the gateway."""
        eip = gateway.add_eip("E1", bandwidth_id="bw-1")

        with pytest.raises(InvalidParameterError) as exc_info:
            controller.change_bandwidth(eip, 0)

        assert isinstance(exc_info.value, ValueError)
        assert exc_info.value.context["eip_id"] == "E1"
        assert exc_info.value.context["bandwidth_id"] == "bw-1"
        assert exc_info.value.context["size"] == 0
        assert isinstance(exc_info.value.__cause__, ValidationError)
        assert gateway.calls_to("update_bandwidth") == []
