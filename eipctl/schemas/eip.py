"""EIP schemas for request validation."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from eipctl.models.enums import ChargeType


class EipAllocateRequest(BaseModel):
    """Schema for allocating a new EIP."""

    name: str = Field(default="", max_length=64, description="Bandwidth name")
    bw_mbps: int = Field(ge=1, description="Bandwidth size in Mbps")
    charge_type: ChargeType = Field(
        default=ChargeType.BY_TRAFFIC, description="Internet charge type"
    )
    bgp_type: str = Field(description="Public IP type", examples=["5_bgp", "5_sbgp"])
    project_id: Optional[str] = Field(
        default=None, description="Enterprise project ID"
    )

    @field_validator("bgp_type")
    @classmethod
    def validate_bgp_type(cls, v: str) -> str:
        """BGP type is mandatory for the publicip API."""
        if not v or not v.strip():
            raise ValueError("bgp type should not be empty")
        return v

    def to_body(self) -> Dict[str, Any]:
        """Render the vendor request body."""
        body: Dict[str, Any] = {
            "publicip": {
                "type": self.bgp_type,
                "ip_version": 4,
            },
            "bandwidth": {
                "name": self.name,
                "size": self.bw_mbps,
                "share_type": "PER",
                "charge_mode": self.charge_type.value,
            },
        }
        if self.project_id:
            body["enterprise_project_id"] = self.project_id
        return body


class EipBandwidthUpdate(BaseModel):
    """Schema for resizing an EIP bandwidth."""

    size_mbps: int = Field(ge=1, description="New bandwidth size in Mbps")
