"""Internet charge type resolution for EIP bandwidths."""

from typing import TYPE_CHECKING

from eipctl.models.enums import ChargeType
from eipctl.utils.logger import get_logger

if TYPE_CHECKING:
    from eipctl.clients.base import Gateway
    from eipctl.models.eip import EipAddress

logger = get_logger(__name__)


def get_internet_charge_type(gateway: "Gateway", eip: "EipAddress") -> ChargeType:
    """
    Resolve how the bandwidth behind an EIP is charged.

    Any failure to fetch the bandwidth falls back to ``BY_TRAFFIC`` so a
    billing lookup never blocks a read path.

    Args:
        gateway: Cloud gateway
        eip: EIP whose ``bandwidth_id`` is resolved

    Returns:
        ``BY_BANDWIDTH`` unless the bandwidth is charged by traffic
    """
    try:
        bandwidth = gateway.get_bandwidth(eip.bandwidth_id)
    except Exception as e:
        logger.warning(
            "Failed to get EIP bandwidth, assuming traffic charge",
            extra={
                "eip_id": eip.id,
                "bandwidth_id": eip.bandwidth_id,
                "error": str(e),
                "error_type": type(e).__name__,
            },
        )
        return ChargeType.BY_TRAFFIC

    if bandwidth.charge_mode != ChargeType.BY_TRAFFIC.value:
        return ChargeType.BY_BANDWIDTH
    return ChargeType.BY_TRAFFIC
