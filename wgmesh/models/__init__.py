"""
Mesh network models

Pydantic models for peers, connections and the network snapshot.
"""

from wgmesh.models.network import (
    Mobility,
    EnabledValue,
    Scripts,
    SCRIPT_KEYS,
    ConnectionId,
    Peer,
    Connection,
    Network,
)

__all__ = [
    "Mobility",
    "EnabledValue",
    "Scripts",
    "SCRIPT_KEYS",
    "ConnectionId",
    "Peer",
    "Connection",
    "Network",
]
