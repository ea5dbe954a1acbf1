"""Resolution and classification of the ports EIPs are bound to."""

from typing import Optional, TYPE_CHECKING

from eipctl.core.exceptions import NotFoundError
from eipctl.models.enums import AssociationType
from eipctl.models.port import Port
from eipctl.utils.logger import get_logger
from eipctl.utils.telemetry import add_span_attributes, get_tracer

if TYPE_CHECKING:
    from eipctl.clients.base import Gateway

logger = get_logger(__name__)
tracer = get_tracer()

LOADBALANCER_OWNERS = frozenset({"neutron:LOADBALANCER", "neutron:LOADBALANCERV2"})
NAT_GATEWAY_OWNERS = frozenset({"network:nat_gateway"})


def resolve_instance_port(gateway: "Gateway", instance_id: str) -> Port:
    """
    Find the network port attached to an instance.

    Instances are assumed to have exactly one active network interface: the
    first port reported by the gateway is used and any others are ignored.
    Multi-NIC instances are a known limitation; a warning is logged when
    more than one port is found.

    Args:
        gateway: Cloud gateway
        instance_id: Instance identifier

    Returns:
        The instance's port

    Raises:
        NotFoundError: If the instance has no ports
    """
    with tracer.start_as_current_span("eip.resolve_instance_port"):
        add_span_attributes(**{"instance.id": instance_id})

        ports = gateway.list_ports(instance_id)
        if not ports:
            logger.error(
                "Instance has no network port",
                extra={"instance_id": instance_id},
            )
            raise NotFoundError(
                f"instance {instance_id} has no network port",
                instance_id=instance_id,
            )

        if len(ports) > 1:
            logger.warning(
                "Instance has multiple ports, using the first one",
                extra={
                    "instance_id": instance_id,
                    "port_id": ports[0].id,
                    "ignored_ports": [p.id for p in ports[1:]],
                },
            )

        add_span_attributes(**{"port.id": ports[0].id})
        return ports[0]


def get_port(gateway: "Gateway", port_id: str) -> Port:
    """Fetch a single port by ID. ``NotFoundError`` propagates."""
    with tracer.start_as_current_span("eip.get_port"):
        add_span_attributes(**{"port.id": port_id})
        return gateway.get_port(port_id)


def classify_association_type(
    port: Port, eip_id: Optional[str] = None
) -> AssociationType:
    """Classify the resource owning a port. Unknown owners are servers."""
    if port.device_owner in LOADBALANCER_OWNERS:
        return AssociationType.LOADBALANCER
    if port.device_owner in NAT_GATEWAY_OWNERS:
        return AssociationType.NAT_GATEWAY

    logger.info(
        "EIP associate type resolved to server",
        extra={
            "eip_id": eip_id,
            "port_id": port.id,
            "device_owner": port.device_owner,
        },
    )
    return AssociationType.SERVER
