"""Enumerations shared by the EIP models and services."""

from enum import Enum


class CanonicalStatus(str, Enum):
    """Normalized EIP status, independent of vendor status strings."""

    READY = "ready"
    ALLOCATING = "allocate"
    ALLOCATE_FAILED = "allocate_fail"
    DEALLOCATING = "deallocate"
    UNKNOWN = "unknown"

    @property
    def is_failure(self) -> bool:
        return self is CanonicalStatus.ALLOCATE_FAILED


class AssociationType(str, Enum):
    """Kind of resource owning the port an EIP is bound to."""

    LOADBALANCER = "elb"
    NAT_GATEWAY = "natgateway"
    SERVER = "server"


class ChargeType(str, Enum):
    """Internet charge type of the bandwidth behind an EIP."""

    BY_TRAFFIC = "traffic"
    BY_BANDWIDTH = "bandwidth"


class BillingType(str, Enum):
    """Billing type of an EIP."""

    PREPAID = "prepaid"
    POSTPAID = "postpaid"


class AssociationState(str, Enum):
    """Association state of an EIP as seen by the controller."""

    UNASSOCIATED = "unassociated"
    ASSOCIATING = "associating"
    ASSOCIATED = "associated"
    DISSOCIATING = "dissociating"


class EipMode(str, Enum):
    """Addressing mode of an EIP."""

    STANDALONE_EIP = "elastic_ip"
