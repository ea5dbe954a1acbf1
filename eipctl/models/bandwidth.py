"""Bandwidth model (read-only view of a remote bandwidth allocation)."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PublicipInfo(BaseModel):
    """EIP attached to a bandwidth."""

    model_config = ConfigDict(extra="ignore")

    publicip_id: str = ""
    publicip_address: str = ""
    publicip_type: str = ""
    ip_version: int = 4


class Bandwidth(BaseModel):
    """Bandwidth allocation referenced by one or more EIPs."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    size: int = Field(default=0, description="Size in Mbps")
    share_type: str = ""
    charge_mode: str = Field(default="", description="'traffic' or 'bandwidth'")
    bandwidth_type: str = ""
    billing_info: Optional[str] = None
    enterprise_project_id: str = ""
    tenant_id: str = ""
    publicip_info: List[PublicipInfo] = Field(default_factory=list)
