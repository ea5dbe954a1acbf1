"""Network port model (read-only view of a remote port)."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Port(BaseModel):
    """Virtual network interface attached to a server, ELB or NAT gateway."""

    model_config = ConfigDict(extra="ignore")

    id: str
    device_id: str = Field(default="", description="Owning resource ID")
    device_owner: str = Field(
        default="", description="Owner type tag, e.g. 'compute:az1' or 'network:nat_gateway'"
    )
    status: str = ""
    network_id: str = ""
    mac_address: str = ""

    @field_validator(
        "device_id", "device_owner", "status", "network_id", "mac_address", mode="before"
    )
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v
