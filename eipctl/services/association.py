"""EIP association control loop.

Binds and unbinds EIPs to instance ports, rejects conflicting bindings and
polls the cloud until the EIP reports a ready status again.

Operations on the same EIP must be serialized by the caller (see
``AssociationDispatcher``): the conflict check and the bind request are not
atomic against the cloud.
"""

from typing import Dict, Optional, TYPE_CHECKING

from pydantic import ValidationError

from eipctl.config import settings
from eipctl.core.exceptions import (
    ConflictError,
    ConvergenceTimeoutError,
    GatewayError,
    InvalidParameterError,
    InvalidStatusError,
    NotFoundError,
)
from eipctl.models.enums import AssociationState, CanonicalStatus
from eipctl.schemas.eip import EipBandwidthUpdate
from eipctl.services.port_resolver import get_port, resolve_instance_port
from eipctl.utils.context import operation_context
from eipctl.utils.logger import get_logger
from eipctl.utils.telemetry import get_tracer, add_span_attributes, add_span_event
from eipctl.utils.wait import wait_status

if TYPE_CHECKING:
    from eipctl.clients.base import Gateway
    from eipctl.models.eip import EipAddress

logger = get_logger(__name__)
tracer = get_tracer()

# Raw status the publicip API reports for an EIP bound to nothing.
UNBOUND_RAW_STATUS = "DOWN"


class AssociationController:
    """Associate and dissociate EIPs, waiting for the cloud to converge."""

    def __init__(
        self,
        gateway: "Gateway",
        poll_delay: Optional[float] = None,
        poll_interval: Optional[float] = None,
        poll_timeout: Optional[float] = None,
    ):
        """
        Initialize controller.

        Args:
            gateway: Cloud gateway shared with the resolvers
            poll_delay: Seconds before the first status read after a bind
            poll_interval: Seconds between status reads
            poll_timeout: Seconds allowed for convergence
        """
        self.gateway = gateway
        self.poll_delay = settings.EIP_POLL_DELAY if poll_delay is None else poll_delay
        self.poll_interval = (
            settings.EIP_POLL_INTERVAL if poll_interval is None else poll_interval
        )
        self.poll_timeout = (
            settings.EIP_POLL_TIMEOUT if poll_timeout is None else poll_timeout
        )
        self._in_flight: Dict[str, AssociationState] = {}

    def association_state(self, eip: "EipAddress") -> AssociationState:
        """Association state of ``eip`` as seen by this controller."""
        state = self._in_flight.get(eip.id)
        if state is not None:
            return state
        if eip.port_id:
            return AssociationState.ASSOCIATED
        return AssociationState.UNASSOCIATED

    def _prepare(self, eip: "EipAddress") -> None:
        if eip.is_deleted:
            raise NotFoundError(f"eip {eip.id} has been deallocated", eip_id=eip.id)
        if not eip.is_bound:
            eip.bind(self.gateway)

    def _update_port(
        self, eip: "EipAddress", port_id: Optional[str], instance_id: str
    ) -> None:
        action = "bind" if port_id else "unbind"
        try:
            self.gateway.update_eip_port(eip.id, port_id)
        except GatewayError as e:
            logger.error(
                f"EIP {action} request failed",
                extra={
                    "eip_id": eip.id,
                    "port_id": port_id,
                    "instance_id": instance_id,
                    "error": str(e),
                },
            )
            raise GatewayError(
                f"{action} eip {eip.id} (port {port_id}, instance {instance_id}): {e.detail}",
                operation=e.operation or "update_eip_port",
                eip_id=eip.id,
                port_id=port_id,
                instance_id=instance_id,
            ) from e

        add_span_event(f"eip.{action}_requested", {"port.id": port_id or ""})

    def _wait_ready(
        self,
        eip: "EipAddress",
        delay: float,
        port_id: Optional[str],
        instance_id: str,
    ) -> None:
        try:
            wait_status(
                eip.refresh,
                eip.get_status,
                CanonicalStatus.READY,
                delay=delay,
                interval=self.poll_interval,
                timeout=self.poll_timeout,
                is_failure=lambda status: CanonicalStatus(status).is_failure,
                description=f"eip {eip.id}",
            )
        except (ConvergenceTimeoutError, InvalidStatusError) as e:
            e.context.update(eip_id=eip.id, instance_id=instance_id)
            if port_id:
                e.context["port_id"] = port_id
            logger.error(
                "EIP did not converge",
                extra={
                    "eip_id": eip.id,
                    "port_id": port_id,
                    "instance_id": instance_id,
                    "raw_status": eip.raw_status,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            raise

    def associate(self, eip: "EipAddress", instance_id: str) -> "EipAddress":
        """
        Bind an EIP to the port of an instance.

        Idempotent when the EIP is already bound to that port. The bind
        request is issued at most once; only the status read is repeated.

        Args:
            eip: EIP to bind
            instance_id: Target instance

        Returns:
            The same EIP with ``port_id`` updated

        Raises:
            NotFoundError: If the instance has no port
            ConflictError: If the EIP is bound to a different port
            ConvergenceTimeoutError: If the EIP is not ready in time
            InvalidStatusError: If the cloud reports a bind failure
            GatewayError: If a gateway call fails
        """
        with tracer.start_as_current_span("service.eip.associate"), operation_context(
            "eip.associate", eip_id=eip.id, instance_id=instance_id
        ):
            self._prepare(eip)
            add_span_attributes(**{"eip.id": eip.id, "instance.id": instance_id})

            logger.info(
                "Associating EIP",
                extra={
                    "eip_id": eip.id,
                    "instance_id": instance_id,
                    "current_port_id": eip.port_id,
                },
            )

            port = resolve_instance_port(self.gateway, instance_id)

            if eip.port_id:
                if eip.port_id == port.id:
                    logger.info(
                        "EIP already associated with instance port",
                        extra={"eip_id": eip.id, "port_id": port.id},
                    )
                    return eip

                logger.error(
                    "EIP already associated with another port",
                    extra={
                        "eip_id": eip.id,
                        "port_id": eip.port_id,
                        "requested_port_id": port.id,
                        "instance_id": instance_id,
                    },
                )
                raise ConflictError(
                    f"eip {eip.id} already associated with port {eip.port_id}",
                    eip_id=eip.id,
                    port_id=eip.port_id,
                    requested_port_id=port.id,
                    instance_id=instance_id,
                )

            self._in_flight[eip.id] = AssociationState.ASSOCIATING
            try:
                self._update_port(eip, port.id, instance_id)
                self._wait_ready(eip, self.poll_delay, port.id, instance_id)
            finally:
                self._in_flight.pop(eip.id, None)

            eip.set_port_id(port.id)
            add_span_event("eip.associated", {"port.id": port.id})

            logger.info(
                "EIP associated successfully",
                extra={
                    "eip_id": eip.id,
                    "port_id": port.id,
                    "instance_id": instance_id,
                    "ip": eip.public_ip_address,
                },
            )
            return eip

    def _owning_instance(self, eip: "EipAddress") -> str:
        try:
            return get_port(self.gateway, eip.port_id).device_id
        except GatewayError as e:
            raise GatewayError(
                f"get port {eip.port_id} of eip {eip.id}: {e.detail}",
                operation=e.operation or "get_port",
                eip_id=eip.id,
                port_id=eip.port_id,
            ) from e

    def dissociate(
        self, eip: "EipAddress", instance_id: Optional[str] = None
    ) -> "EipAddress":
        """
        Unbind an EIP from the instance it is associated with.

        Idempotent when the EIP has no port. The live binding must belong to
        ``instance_id``; when omitted, the owner of the locally known port
        is assumed.

        Args:
            eip: EIP to unbind
            instance_id: Instance the caller believes owns the binding

        Returns:
            The same EIP with ``port_id`` cleared

        Raises:
            ConflictError: If the live binding belongs to another instance,
                or the live record is not DOWN but carries no port
            ConvergenceTimeoutError: If the EIP is not ready in time
            NotFoundError: If the EIP or its port no longer exists
            GatewayError: If a gateway call fails
        """
        with tracer.start_as_current_span("service.eip.dissociate"), operation_context(
            "eip.dissociate", eip_id=eip.id, instance_id=instance_id
        ):
            self._prepare(eip)
            add_span_attributes(**{"eip.id": eip.id, "port.id": eip.port_id})

            if not eip.port_id:
                logger.info("EIP is not associated", extra={"eip_id": eip.id})
                return eip

            if instance_id is None:
                instance_id = self._owning_instance(eip)
            add_span_attributes(**{"instance.id": instance_id})

            logger.info(
                "Dissociating EIP",
                extra={
                    "eip_id": eip.id,
                    "port_id": eip.port_id,
                    "instance_id": instance_id,
                },
            )

            live = self.gateway.get_eip(eip.id)

            # A DOWN EIP is already unbound. This shortcut runs before the
            # ownership check below, so a stale read here is not caught.
            if live.raw_status == UNBOUND_RAW_STATUS:
                if live.port_id:
                    logger.warning(
                        "EIP reported DOWN while still referencing a port",
                        extra={"eip_id": eip.id, "port_id": live.port_id},
                    )
                logger.info("EIP already dissociated", extra={"eip_id": eip.id})
                eip.merge(live)
                return eip

            # A live record without a port is owned by nobody, which never
            # matches the caller: another actor may be mid-bind.
            remote_instance_id = ""
            if live.port_id:
                remote_instance_id = get_port(self.gateway, live.port_id).device_id
            if remote_instance_id != instance_id:
                logger.error(
                    "EIP associated with another instance",
                    extra={
                        "eip_id": eip.id,
                        "port_id": live.port_id,
                        "instance_id": instance_id,
                        "remote_instance_id": remote_instance_id,
                    },
                )
                raise ConflictError(
                    f"eip {eip.id} associated with another instance {remote_instance_id}",
                    eip_id=eip.id,
                    port_id=live.port_id,
                    instance_id=instance_id,
                    remote_instance_id=remote_instance_id,
                )

            self._in_flight[eip.id] = AssociationState.DISSOCIATING
            try:
                self._update_port(eip, None, instance_id)
                self._wait_ready(eip, 0.0, live.port_id, instance_id)
            finally:
                self._in_flight.pop(eip.id, None)

            eip.set_port_id("")
            add_span_event("eip.dissociated", {"instance.id": instance_id})

            logger.info(
                "EIP dissociated successfully",
                extra={"eip_id": eip.id, "instance_id": instance_id},
            )
            return eip

    def change_bandwidth(self, eip: "EipAddress", size_mbps: int) -> "EipAddress":
        """
        Resize the bandwidth behind an EIP.

        The resize is synchronous on the cloud side, so nothing is polled.

        Raises:
            InvalidParameterError: If ``size_mbps`` is not positive
            GatewayError: If the update fails
        """
        with tracer.start_as_current_span("service.eip.change_bandwidth"), operation_context(
            "eip.change_bandwidth", eip_id=eip.id
        ):
            self._prepare(eip)
            try:
                update = EipBandwidthUpdate(size_mbps=size_mbps)
            except ValidationError as e:
                raise InvalidParameterError(
                    f"invalid bandwidth size {size_mbps} for eip {eip.id}",
                    eip_id=eip.id,
                    bandwidth_id=eip.bandwidth_id,
                    size=size_mbps,
                ) from e
            add_span_attributes(
                **{
                    "eip.id": eip.id,
                    "bandwidth.id": eip.bandwidth_id,
                    "bandwidth.size": update.size_mbps,
                }
            )

            logger.info(
                "Changing EIP bandwidth",
                extra={
                    "eip_id": eip.id,
                    "bandwidth_id": eip.bandwidth_id,
                    "from_mbps": eip.bandwidth_size,
                    "to_mbps": update.size_mbps,
                },
            )

            try:
                self.gateway.update_bandwidth(eip.bandwidth_id, update.size_mbps)
            except GatewayError as e:
                raise GatewayError(
                    f"change bandwidth {eip.bandwidth_id} of eip {eip.id}: {e.detail}",
                    operation=e.operation or "update_bandwidth",
                    eip_id=eip.id,
                    bandwidth_id=eip.bandwidth_id,
                    size=update.size_mbps,
                ) from e

            eip.bandwidth_size = update.size_mbps
            return eip
