"""
WireGuard Mesh Network Models

Pydantic models describing a mesh: peers, the pairwise connections between
them and the optional-override pairs used by both.

Models are frozen; a change to the network produces a new snapshot.
"""

from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from wgmesh.config import CONNECTION_SEPARATOR


class Mobility(str, Enum):
    """Whether a peer has a fixed, dialable endpoint"""
    STATIC = "static"
    ROAMING = "roaming"


class EnabledValue(BaseModel):
    """
    Optional override pair

    When ``enabled`` is false the value is ignored and the matching
    config line is omitted.
    """
    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(
        default=False,
        description="Whether the override is rendered",
    )
    value: Union[int, str] = Field(
        default="",
        description="Override value, an int for numeric fields",
    )


class Scripts(BaseModel):
    """wg-quick hook commands"""
    model_config = ConfigDict(frozen=True)

    pre_up: EnabledValue = Field(default_factory=EnabledValue)
    post_up: EnabledValue = Field(default_factory=EnabledValue)
    pre_down: EnabledValue = Field(default_factory=EnabledValue)
    post_down: EnabledValue = Field(default_factory=EnabledValue)


SCRIPT_KEYS = ("pre_up", "post_up", "pre_down", "post_down")


class ConnectionId(BaseModel):
    """
    Canonical, order-independent key for an unordered peer pair

    The lexicographically greater peer id is always stored in ``a``, so
    ``ConnectionId(a=x, b=y) == ConnectionId(a=y, b=x)``.
    """
    model_config = ConfigDict(frozen=True)

    a: str = Field(..., description="Lexicographically greater peer id")
    b: str = Field(..., description="Lexicographically lesser peer id")

    @model_validator(mode="before")
    @classmethod
    def canonicalize(cls, data: Any) -> Any:
        """Accept the ``"<a>*<b>"`` wire form and order the pair"""
        if isinstance(data, str):
            parts = data.split(CONNECTION_SEPARATOR)
            if len(parts) != 2:
                raise ValueError(
                    f"connection id must contain exactly one '{CONNECTION_SEPARATOR}'"
                )
            data = {"a": parts[0], "b": parts[1]}

        if isinstance(data, dict) and "a" in data and "b" in data:
            first, second = str(data["a"]), str(data["b"])
            for peer_id in (first, second):
                if CONNECTION_SEPARATOR in peer_id:
                    raise ValueError(
                        f"peer id '{peer_id}' contains separator '{CONNECTION_SEPARATOR}'"
                    )
            if first < second:
                first, second = second, first
            data = {"a": first, "b": second}
        return data

    @classmethod
    def of(cls, peer_id_a: str, peer_id_b: str) -> "ConnectionId":
        return cls(a=peer_id_a, b=peer_id_b)

    def contains(self, peer_id: str) -> bool:
        return peer_id in (self.a, self.b)

    def other(self, peer_id: str) -> str:
        """Return the peer on the opposite side of ``peer_id``"""
        if peer_id == self.a:
            return self.b
        if peer_id == self.b:
            return self.a
        raise KeyError(peer_id)

    def peers(self) -> Tuple[str, str]:
        return self.a, self.b

    def __str__(self) -> str:
        return f"{self.a}{CONNECTION_SEPARATOR}{self.b}"


class Peer(BaseModel):
    """
    Mesh Peer

    A VPN endpoint of the mesh. Static peers expose ``endpoint``,
    roaming peers do not.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="UUID-v4 primary key, immutable once created",
    )
    name: str = Field(
        ...,
        description="Human label, also used for config file names",
    )
    address: str = Field(
        ...,
        description="IPv4 address inside the network subnet (e.g., 10.0.0.2)",
    )
    mobility: Mobility = Field(
        default=Mobility.ROAMING,
        description="static peers have a dialable endpoint, roaming peers do not",
    )
    endpoint: str = Field(
        default="",
        description="host:port the peer listens on (e.g., 203.0.113.1:51820)",
    )
    private_key: str = Field(
        default="",
        description="WireGuard private key, opaque here",
    )
    public_key: str = Field(
        default="",
        description="WireGuard public key, opaque here",
    )
    dns: EnabledValue = Field(
        default_factory=EnabledValue,
        description="Comma-separated resolver list override",
    )
    mtu: EnabledValue = Field(
        default_factory=EnabledValue,
        description="Interface MTU override",
    )
    persistent_keepalive: EnabledValue = Field(
        default_factory=EnabledValue,
        description="Keepalive period override in seconds",
    )
    scripts: Scripts = Field(
        default_factory=Scripts,
        description="PreUp/PostUp/PreDown/PostDown hooks",
    )

    @property
    def is_static(self) -> bool:
        return self.mobility == Mobility.STATIC

    @property
    def listen_port(self) -> Optional[str]:
        """Port part of the endpoint, or None for roaming peers"""
        if not self.is_static or ":" not in self.endpoint:
            return None
        return self.endpoint.rsplit(":", 1)[1]


class Connection(BaseModel):
    """
    Link between two peers

    ``allowed_ips_a_to_b`` is what peer ``a`` routes through peer ``b``;
    ``allowed_ips_b_to_a`` the reverse.
    """
    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(
        default=True,
        description="Disabled connections are left out of rendered configs",
    )
    pre_shared_key: str = Field(
        default="",
        description="WireGuard preshared key, opaque here",
    )
    allowed_ips_a_to_b: str = Field(
        default="",
        description="Comma-separated CIDR blocks peer a routes through peer b",
    )
    allowed_ips_b_to_a: str = Field(
        default="",
        description="Comma-separated CIDR blocks peer b routes through peer a",
    )
    persistent_keepalive: EnabledValue = Field(
        default_factory=EnabledValue,
        description="Keepalive period override in seconds",
    )


class Network(BaseModel):
    """
    Mesh Network Snapshot

    Peers keyed by id and connections keyed by canonical ConnectionId.
    """
    model_config = ConfigDict(frozen=True)

    identifier: str = Field(
        ...,
        description="Stable name of the mesh",
    )
    subnet: str = Field(
        ...,
        description="CIDR address space for peers (e.g., 10.0.0.0/24)",
    )
    peers: Dict[str, Peer] = Field(
        default_factory=dict,
        description="Peer id -> Peer",
    )
    connections: Dict[ConnectionId, Connection] = Field(
        default_factory=dict,
        description="Canonical connection id -> Connection",
    )

    @model_validator(mode="before")
    @classmethod
    def parse_connection_keys(cls, data: Any) -> Any:
        """Convert ``"<a>*<b>"`` connection keys into ConnectionIds"""
        if isinstance(data, dict) and isinstance(data.get("connections"), dict):
            data = dict(data)
            connections: Dict[ConnectionId, Any] = {}
            for key, value in data["connections"].items():
                if not isinstance(key, ConnectionId):
                    key = ConnectionId.model_validate(key)
                if key in connections:
                    raise ValueError(f"duplicate connection {key}")
                connections[key] = value
            data["connections"] = connections
        return data

    @field_serializer("connections")
    def serialize_connections(self, connections: Dict[ConnectionId, Connection]) -> Dict[str, Any]:
        return {str(key): value.model_dump() for key, value in connections.items()}

    def connections_of(self, peer_id: str) -> Iterator[Tuple[ConnectionId, Connection]]:
        """Yield every connection with ``peer_id`` on either side"""
        for connection_id, connection in self.connections.items():
            if connection_id.contains(peer_id):
                yield connection_id, connection
