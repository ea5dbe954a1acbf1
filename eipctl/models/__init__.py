"""EIP domain models package."""

from eipctl.models.enums import (
    AssociationState,
    AssociationType,
    BillingType,
    CanonicalStatus,
    ChargeType,
    EipMode,
)
from eipctl.models.port import Port
from eipctl.models.bandwidth import Bandwidth, PublicipInfo
from eipctl.models.eip import EipAddress, Profile

__all__ = [
    "AssociationState",
    "AssociationType",
    "BillingType",
    "CanonicalStatus",
    "ChargeType",
    "EipMode",
    "Port",
    "Bandwidth",
    "PublicipInfo",
    "EipAddress",
    "Profile",
]
