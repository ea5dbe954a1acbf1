"""Vendor EIP status normalization."""

from typing import Dict, Optional

from eipctl.models.enums import CanonicalStatus

# Vendor lifecycle strings reported by the VPC publicip API.
_STATUS_MAP: Dict[str, CanonicalStatus] = {
    "ACTIVE": CanonicalStatus.READY,
    "DOWN": CanonicalStatus.READY,
    "ELB": CanonicalStatus.READY,
    "PENDING_CREATE": CanonicalStatus.ALLOCATING,
    "NOTIFYING": CanonicalStatus.ALLOCATING,
    "BINDING": CanonicalStatus.ALLOCATING,
    "BIND_ERROR": CanonicalStatus.ALLOCATE_FAILED,
    "PENDING_DELETE": CanonicalStatus.DEALLOCATING,
    "NOTIFY_DELETE": CanonicalStatus.DEALLOCATING,
}


def normalize_status(raw_status: Optional[str]) -> CanonicalStatus:
    """Map a vendor status string to a canonical status.

    Unrecognized values map to ``CanonicalStatus.UNKNOWN`` so new vendor
    states never break callers.
    """
    if not raw_status:
        return CanonicalStatus.UNKNOWN
    return _STATUS_MAP.get(raw_status, CanonicalStatus.UNKNOWN)
