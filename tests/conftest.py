"""Pytest configuration and fixtures."""

import itertools
from typing import Any, Callable, Dict, List, Optional

import pytest
from opentelemetry import trace

from eipctl.core.exceptions import NotFoundError
from eipctl.models.bandwidth import Bandwidth
from eipctl.models.eip import EipAddress
from eipctl.models.port import Port
from eipctl.services.association import AssociationController
from eipctl.utils.context import clear_context
from eipctl.utils.telemetry import setup_telemetry


class FakeGateway:
    """In-memory cloud gateway.

    EIP records are stored as vendor-shaped dicts. ``script_statuses`` queues
    raw statuses returned by successive ``get_eip`` calls; the last one
    repeats. ``failures`` maps an operation name to the exception it raises.
    """

    def __init__(self):
        self.eips: Dict[str, Dict[str, Any]] = {}
        self.ports: Dict[str, Port] = {}
        self.bandwidths: Dict[str, Bandwidth] = {}
        self.scripts: Dict[str, List[str]] = {}
        self.failures: Dict[str, Exception] = {}
        self.calls: List[tuple] = []
        self.on_update_port: Optional[Callable[[str, Optional[str]], None]] = None
        self._ids = itertools.count(1)

    def _call(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, *args))
        if operation in self.failures:
            raise self.failures[operation]

    def calls_to(self, operation: str) -> List[tuple]:
        return [call[1:] for call in self.calls if call[0] == operation]

    # Fixture helpers

    def add_eip(
        self,
        eip_id: str = "E1",
        status: str = "DOWN",
        port_id: Optional[str] = None,
        bandwidth_id: str = "bw-1",
        **fields: Any,
    ) -> EipAddress:
        self.eips[eip_id] = {
            "id": eip_id,
            "status": status,
            "port_id": port_id,
            "public_ip_address": "203.0.113.10",
            "private_ip_address": "",
            "bandwidth_id": bandwidth_id,
            "bandwidth_size": 5,
            "bandwidth_share_type": "PER",
            "create_time": "2024-02-02 12:00:00",
            "type": "5_bgp",
            **fields,
        }
        return EipAddress.model_validate(self.eips[eip_id]).bind(self)

    def add_port(
        self, port_id: str, device_id: str, device_owner: str = "compute:az1"
    ) -> Port:
        port = Port(id=port_id, device_id=device_id, device_owner=device_owner)
        self.ports[port_id] = port
        return port

    def add_bandwidth(
        self, bandwidth_id: str = "bw-1", charge_mode: str = "traffic", size: int = 5
    ) -> Bandwidth:
        bandwidth = Bandwidth(id=bandwidth_id, charge_mode=charge_mode, size=size)
        self.bandwidths[bandwidth_id] = bandwidth
        return bandwidth

    def script_statuses(self, eip_id: str, *statuses: str) -> None:
        self.scripts[eip_id] = list(statuses)

    # Gateway contract

    def create_eip(self, body: Dict[str, Any]) -> EipAddress:
        self._call("create_eip", body)
        eip_id = f"eip-{next(self._ids)}"
        bandwidth = body["bandwidth"]
        bandwidth_id = f"bw-{eip_id}"
        self.add_bandwidth(bandwidth_id, bandwidth["charge_mode"], bandwidth["size"])
        return self.add_eip(
            eip_id,
            status="DOWN",
            bandwidth_id=bandwidth_id,
            bandwidth_size=bandwidth["size"],
            bandwidth_name=bandwidth["name"],
            type=body["publicip"]["type"],
            enterprise_project_id=body.get("enterprise_project_id", ""),
        )

    def get_eip(self, eip_id: str) -> EipAddress:
        self._call("get_eip", eip_id)
        if eip_id not in self.eips:
            raise NotFoundError(f"get_eip: {eip_id} not found", eip_id=eip_id)
        record = self.eips[eip_id]
        script = self.scripts.get(eip_id)
        if script:
            record["status"] = script.pop(0) if len(script) > 1 else script[0]
        return EipAddress.model_validate(record)

    def delete_eip(self, eip_id: str) -> None:
        self._call("delete_eip", eip_id)
        if self.eips.pop(eip_id, None) is None:
            raise NotFoundError(f"delete_eip: {eip_id} not found", eip_id=eip_id)

    def update_eip_port(self, eip_id: str, port_id: Optional[str]) -> None:
        self._call("update_eip_port", eip_id, port_id)
        if self.on_update_port is not None:
            self.on_update_port(eip_id, port_id)
        record = self.eips[eip_id]
        record["port_id"] = port_id
        record["status"] = "ACTIVE" if port_id else "DOWN"

    def update_bandwidth(self, bandwidth_id: str, size_mbps: int) -> None:
        self._call("update_bandwidth", bandwidth_id, size_mbps)
        self.bandwidths[bandwidth_id] = self.bandwidths[bandwidth_id].model_copy(
            update={"size": size_mbps}
        )

    def get_bandwidth(self, bandwidth_id: str) -> Bandwidth:
        self._call("get_bandwidth", bandwidth_id)
        if bandwidth_id not in self.bandwidths:
            raise NotFoundError(
                f"get_bandwidth: {bandwidth_id} not found", bandwidth_id=bandwidth_id
            )
        return self.bandwidths[bandwidth_id]

    def list_ports(self, device_id: str) -> List[Port]:
        self._call("list_ports", device_id)
        return [p for p in self.ports.values() if p.device_id == device_id]

    def get_port(self, port_id: str) -> Port:
        self._call("get_port", port_id)
        if port_id not in self.ports:
            raise NotFoundError(f"get_port: {port_id} not found", port_id=port_id)
        return self.ports[port_id]


@pytest.fixture
def gateway() -> FakeGateway:
    """Empty in-memory gateway."""
    return FakeGateway()


@pytest.fixture
def controller(gateway: FakeGateway) -> AssociationController:
    """Controller that polls without sleeping."""
    return AssociationController(
        gateway, poll_delay=0.0, poll_interval=0.0, poll_timeout=1.0
    )


@pytest.fixture(autouse=True)
def reset_context():
    """Keep logging context from leaking between tests."""
    clear_context()
    yield
    clear_context()


@pytest.fixture(scope="session", autouse=True)
def tracer_provider():
    """Install an SDK tracer provider so spans record during tests.

    The provider is shut down after all tests so the span processor's
    background thread exits before pytest closes stdout/stderr.
    """
    setup_telemetry()
    yield

    tracer_provider = trace.get_tracer_provider()
    if hasattr(tracer_provider, "shutdown"):
        tracer_provider.shutdown()
