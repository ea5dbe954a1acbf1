"""Contract the EIP control loop expects from a cloud gateway."""

from typing import Any, Dict, List, Optional, Protocol

from eipctl.models.bandwidth import Bandwidth
from eipctl.models.eip import EipAddress
from eipctl.models.port import Port


class Gateway(Protocol):
    """Cloud VPC gateway.

    Implementations raise ``NotFoundError`` for unknown identities and
    ``GatewayError`` for any other failure. Retries, if any, belong here and
    never in the control loop.
    """

    def create_eip(self, body: Dict[str, Any]) -> EipAddress: ...

    def get_eip(self, eip_id: str) -> EipAddress: ...

    def delete_eip(self, eip_id: str) -> None: ...

    def update_eip_port(self, eip_id: str, port_id: Optional[str]) -> None:
        """Bind ``eip_id`` to ``port_id``; ``None`` clears the binding."""
        ...

    def update_bandwidth(self, bandwidth_id: str, size_mbps: int) -> None: ...

    def get_bandwidth(self, bandwidth_id: str) -> Bandwidth: ...

    def list_ports(self, device_id: str) -> List[Port]: ...

    def get_port(self, port_id: str) -> Port: ...
