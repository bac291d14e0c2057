"""Tunnel inventory models.

These mirror the records returned by the control plane. All of them are
frozen: a listing is a snapshot for the lifetime of one command.
"""

import base64
import uuid
from datetime import datetime
from enum import Enum
from ipaddress import IPv4Address, IPv6Address
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

TUNNEL_SECRET_LENGTH = 32


class Connection(BaseModel):
    """One edge-network connection held by a connector."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, description="Connection ID")
    colo_name: str = Field(description="Edge location holding the connection")
    origin_ip: IPv4Address | IPv6Address = Field(description="Origin address")
    opened_at: datetime | None = Field(default=None, description="Open timestamp")
    is_pending_reconnect: bool = Field(
        default=False, description="Recently disconnected and being retried"
    )


class Tunnel(BaseModel):
    """A named, UUID-identified tunnel."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    name: str
    created_at: datetime
    deleted_at: datetime | None = None
    connections: list[Connection] = Field(default_factory=list)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class Connector(BaseModel):
    """A running tunnel agent and the connections it holds."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    run_at: datetime
    version: str = ""
    arch: str = ""
    features: list[str] = Field(default_factory=list)
    connections: list[Connection] = Field(default_factory=list)


class TunnelInfo(BaseModel):
    """Tunnel details together with its active connectors."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    name: str
    created_at: datetime
    connectors: list[Connector] = Field(default_factory=list)


class Credentials(BaseModel):
    """Secret and identity bundle needed to run a tunnel.

    Serialized with the field names the tunnel agent expects on disk. The
    secret is base64-encoded in JSON form.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    account_tag: str = Field(alias="AccountTag")
    tunnel_secret: bytes = Field(alias="TunnelSecret")
    tunnel_id: uuid.UUID = Field(alias="TunnelID")
    tunnel_name: str = Field(default="", alias="TunnelName")

    @field_validator("tunnel_secret", mode="before")
    @classmethod
    def decode_secret(cls, v: Any) -> Any:
        """Accept the base64 form used in credentials files."""
        if isinstance(v, str):
            return base64.b64decode(v, validate=True)
        return v

    @field_serializer("tunnel_secret", when_used="json")
    def encode_secret(self, v: bytes) -> str:
        return base64.b64encode(v).decode("ascii")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class Change(str, Enum):
    """What a route request did to an existing resource."""

    NEW = "new"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class DNSRoute(BaseModel):
    """Route a hostname to a tunnel with a CNAME record."""

    model_config = ConfigDict(frozen=True)

    type: Literal["dns"] = "dns"
    hostname: str
    overwrite_existing: bool = False


class LBRoute(BaseModel):
    """Add a tunnel as an origin in a load balancer pool."""

    model_config = ConfigDict(frozen=True)

    type: Literal["lb"] = "lb"
    hostname: str
    pool_name: str


Route = Annotated[DNSRoute | LBRoute, Field(discriminator="type")]


class DNSRouteResult(BaseModel):
    """Outcome of applying a DNSRoute."""

    model_config = ConfigDict(frozen=True)

    type: Literal["dns"] = "dns"
    hostname: str
    change: Change


class LBRouteResult(BaseModel):
    """Outcome of applying an LBRoute."""

    model_config = ConfigDict(frozen=True)

    type: Literal["lb"] = "lb"
    hostname: str
    pool_name: str
    load_balancer_change: Change
    pool_change: Change


RouteResult = Annotated[DNSRouteResult | LBRouteResult, Field(discriminator="type")]
