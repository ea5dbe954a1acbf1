"""Elastic IP entity: in-memory projection of a remote EIP."""

from datetime import datetime
from typing import Any, Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from eipctl.core.exceptions import EipError, NotFoundError
from eipctl.models.enums import (
    AssociationType,
    BillingType,
    CanonicalStatus,
    ChargeType,
    EipMode,
)
from eipctl.models.port import Port
from eipctl.utils.logger import get_logger

if TYPE_CHECKING:
    from eipctl.clients.base import Gateway

logger = get_logger(__name__)


class Profile(BaseModel):
    """Prepaid order profile. Present only on prepaid EIPs."""

    model_config = ConfigDict(extra="ignore")

    user_id: str = ""
    product_id: str = ""
    region_id: str = ""
    order_id: str = ""


class EipAddress(BaseModel):
    """Elastic IP address.

    ``port_id`` is the only source of truth for association state: an empty
    value means unassociated, anything else names the single bound port.
    The entity is refreshed on demand from the gateway it is bound to; the
    resolved port is cached for convenience only and dropped on refresh.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(frozen=True)
    raw_status: str = Field(default="", alias="status")
    profile: Optional[Profile] = None
    type: str = Field(default="", description="BGP type, e.g. '5_bgp'")
    public_ip_address: str = ""
    private_ip_address: str = ""
    tenant_id: str = ""
    created_at: Optional[datetime] = Field(
        default=None, alias="create_time", frozen=True
    )
    bandwidth_id: str = ""
    bandwidth_share_type: str = ""
    bandwidth_size: int = Field(default=0, description="Bandwidth in Mbps")
    bandwidth_name: str = ""
    enterprise_project_id: str = ""
    ip_version: int = 4
    port_id: str = ""

    _gateway: Any = PrivateAttr(default=None)
    _port: Optional[Port] = PrivateAttr(default=None)
    _deleted: bool = PrivateAttr(default=False)

    @field_validator(
        "raw_status",
        "type",
        "public_ip_address",
        "private_ip_address",
        "tenant_id",
        "bandwidth_id",
        "bandwidth_share_type",
        "bandwidth_name",
        "enterprise_project_id",
        "port_id",
        mode="before",
    )
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    # Gateway binding

    def bind(self, gateway: "Gateway") -> "EipAddress":
        """Attach the gateway used for refreshes and remote operations."""
        self._gateway = gateway
        return self

    @property
    def gateway(self) -> "Gateway":
        if self._deleted:
            raise NotFoundError(
                f"eip {self.id} has been deallocated", eip_id=self.id
            )
        if self._gateway is None:
            raise EipError(f"eip {self.id} is not bound to a gateway", eip_id=self.id)
        return self._gateway

    @property
    def is_bound(self) -> bool:
        return self._gateway is not None

    @property
    def is_deleted(self) -> bool:
        return self._deleted

    def set_port_id(self, port_id: str) -> None:
        """Record a confirmed association change and drop the cached port."""
        self.port_id = port_id or ""
        self._port = None

    # Lifecycle

    def merge(self, fresh: "EipAddress") -> None:
        """Copy every mutable field from a freshly fetched record."""
        for name, field in type(self).model_fields.items():
            if field.frozen:
                continue
            setattr(self, name, getattr(fresh, name))
        self._port = None

    def refresh(self) -> None:
        """Re-fetch the EIP from the gateway and merge it."""
        self.merge(self.gateway.get_eip(self.id))

    def delete(self) -> None:
        """Deallocate the EIP. No remote operation is valid afterwards."""
        self.gateway.delete_eip(self.id)
        self._deleted = True
        self._port = None
        logger.info("EIP deallocated", extra={"eip_id": self.id})

    def associate(self, instance_id: str) -> None:
        from eipctl.services.association import AssociationController

        AssociationController(self.gateway).associate(self, instance_id)

    def dissociate(self, instance_id: Optional[str] = None) -> None:
        from eipctl.services.association import AssociationController

        AssociationController(self.gateway).dissociate(self, instance_id)

    def change_bandwidth(self, size_mbps: int) -> None:
        from eipctl.services.association import AssociationController

        AssociationController(self.gateway).change_bandwidth(self, size_mbps)

    # Accessors

    def get_id(self) -> str:
        return self.id

    def get_global_id(self) -> str:
        return self.id

    def get_name(self) -> str:
        return self.bandwidth_name or self.public_ip_address

    def get_status(self) -> CanonicalStatus:
        from eipctl.services.status import normalize_status

        return normalize_status(self.raw_status)

    def get_ip_addr(self) -> str:
        return self.public_ip_address

    def get_mode(self) -> EipMode:
        return EipMode.STANDALONE_EIP

    def is_emulated(self) -> bool:
        return False

    def get_network_id(self) -> str:
        return ""

    def get_project_id(self) -> str:
        return self.enterprise_project_id

    def get_bandwidth(self) -> int:
        """Bandwidth size in Mbps."""
        return self.bandwidth_size

    def get_created_at(self) -> Optional[datetime]:
        return self.created_at

    def get_expired_at(self) -> Optional[datetime]:
        return None

    def get_billing_type(self) -> BillingType:
        if self.profile is None:
            return BillingType.POSTPAID
        return BillingType.PREPAID

    def get_internet_charge_type(self) -> ChargeType:
        from eipctl.services.bandwidth_resolver import get_internet_charge_type

        return get_internet_charge_type(self.gateway, self)

    def get_port(self) -> Optional[Port]:
        """Port the EIP is bound to, or None if unbound or unresolvable."""
        from eipctl.services.port_resolver import get_port

        if not self.port_id:
            return None
        if self._port is not None and self._port.id == self.port_id:
            return self._port

        try:
            self._port = get_port(self.gateway, self.port_id)
        except EipError as e:
            logger.warning(
                "Failed to resolve EIP port",
                extra={"eip_id": self.id, "port_id": self.port_id, "error": str(e)},
            )
            return None
        return self._port

    def get_association_type(self) -> Optional[AssociationType]:
        from eipctl.services.port_resolver import classify_association_type, get_port

        if not self.port_id:
            return None
        try:
            port = get_port(self.gateway, self.port_id)
        except EipError as e:
            logger.error(
                "Failed to get EIP port",
                extra={"eip_id": self.id, "port_id": self.port_id, "error": str(e)},
            )
            return None
        return classify_association_type(port, eip_id=self.id)

    def get_association_external_id(self) -> str:
        """ID of the device owning the bound port.

        The cloud only exposes the binding as a port, so the device has to be
        looked up through it.
        """
        port = self.get_port()
        return port.device_id if port is not None else ""
