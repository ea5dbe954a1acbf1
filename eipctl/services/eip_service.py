"""EIP management service."""

from typing import Optional, TYPE_CHECKING

from pydantic import ValidationError

from eipctl.core.exceptions import InvalidParameterError
from eipctl.models.bandwidth import Bandwidth
from eipctl.models.eip import EipAddress
from eipctl.models.enums import ChargeType
from eipctl.schemas.eip import EipAllocateRequest
from eipctl.services.association import AssociationController
from eipctl.services.port_resolver import resolve_instance_port
from eipctl.utils.context import operation_context
from eipctl.utils.logger import get_logger
from eipctl.utils.telemetry import get_tracer, add_span_attributes

if TYPE_CHECKING:
    from eipctl.clients.base import Gateway

logger = get_logger(__name__)
tracer = get_tracer()


class EipService:
    """Region-level EIP operations addressed by identifier."""

    def __init__(
        self,
        gateway: "Gateway",
        controller: Optional[AssociationController] = None,
    ):
        """
        Initialize service.

        Args:
            gateway: Cloud gateway
            controller: Association controller, built from ``gateway`` if omitted
        """
        self.gateway = gateway
        self.controller = controller or AssociationController(gateway)

    def allocate_eip(
        self,
        name: str,
        bw_mbps: int,
        charge_type: ChargeType,
        bgp_type: str,
        project_id: Optional[str] = None,
    ) -> EipAddress:
        """
        Allocate a new EIP with its own bandwidth.

        Args:
            name: Bandwidth name
            bw_mbps: Bandwidth size in Mbps
            charge_type: Internet charge type
            bgp_type: Public IP type, e.g. '5_bgp'
            project_id: Optional enterprise project

        Returns:
            The allocated EIP, bound to the gateway

        Raises:
            InvalidParameterError: If ``bgp_type`` is empty or ``bw_mbps`` < 1
            GatewayError: If allocation fails
        """
        try:
            request = EipAllocateRequest(
                name=name,
                bw_mbps=bw_mbps,
                charge_type=charge_type,
                bgp_type=bgp_type,
                project_id=project_id,
            )
        except ValidationError as e:
            raise InvalidParameterError(
                f"invalid allocation request: {e}",
                bgp_type=bgp_type,
                bw_mbps=bw_mbps,
            ) from e

        with tracer.start_as_current_span("service.eip.allocate"), operation_context(
            "eip.allocate"
        ):
            add_span_attributes(
                **{
                    "eip.bgp_type": request.bgp_type,
                    "bandwidth.size": request.bw_mbps,
                    "bandwidth.charge_mode": request.charge_type.value,
                }
            )
            logger.info(
                "Allocating EIP",
                extra={
                    "bandwidth_name": request.name,
                    "bw_mbps": request.bw_mbps,
                    "charge_type": request.charge_type.value,
                    "bgp_type": request.bgp_type,
                    "project_id": request.project_id,
                },
            )

            eip = self.gateway.create_eip(request.to_body())
            if not eip.is_bound:
                eip.bind(self.gateway)

            logger.info(
                "EIP allocated",
                extra={"eip_id": eip.id, "ip": eip.public_ip_address},
            )
            return eip

    def get_eip(self, eip_id: str) -> EipAddress:
        """Fetch an EIP. ``NotFoundError`` propagates for unknown IDs."""
        eip = self.gateway.get_eip(eip_id)
        if not eip.is_bound:
            eip.bind(self.gateway)
        return eip

    def deallocate_eip(self, eip_id: str) -> None:
        with tracer.start_as_current_span("service.eip.deallocate"), operation_context(
            "eip.deallocate", eip_id=eip_id
        ):
            add_span_attributes(**{"eip.id": eip_id})
            logger.info("Deallocating EIP", extra={"eip_id": eip_id})
            self.gateway.delete_eip(eip_id)

    def get_instance_port_id(self, instance_id: str) -> str:
        """ID of the single port attached to an instance."""
        return resolve_instance_port(self.gateway, instance_id).id

    def associate_eip(self, eip_id: str, instance_id: str) -> EipAddress:
        """Fetch an EIP and bind it to an instance."""
        return self.controller.associate(self.get_eip(eip_id), instance_id)

    def dissociate_eip(self, eip_id: str, instance_id: str) -> EipAddress:
        """Fetch an EIP and unbind it from an instance."""
        return self.controller.dissociate(self.get_eip(eip_id), instance_id)

    def update_eip_bandwidth(self, bandwidth_id: str, size_mbps: int) -> None:
        logger.info(
            "Updating bandwidth",
            extra={"bandwidth_id": bandwidth_id, "size": size_mbps},
        )
        self.gateway.update_bandwidth(bandwidth_id, size_mbps)

    def get_eip_bandwidth(self, bandwidth_id: str) -> Bandwidth:
        return self.gateway.get_bandwidth(bandwidth_id)
