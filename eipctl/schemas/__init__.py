"""Schemas package for request validation."""

from eipctl.schemas.eip import EipAllocateRequest, EipBandwidthUpdate

__all__ = [
    "EipAllocateRequest",
    "EipBandwidthUpdate",
]
