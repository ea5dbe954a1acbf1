"""EIP control services."""

# Note: Imports are intentionally not done here to avoid circular import issues.
# Import services directly from their modules:
#   from eipctl.services.association import AssociationController
#   from eipctl.services.eip_service import EipService

__all__ = [
    "AssociationController",
    "AssociationDispatcher",
    "EipService",
    "normalize_status",
    "resolve_instance_port",
    "classify_association_type",
    "get_internet_charge_type",
]
