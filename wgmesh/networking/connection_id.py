"""
Connection Identifier

Canonical, order-independent keys for peer pairs. The connections mapping
of a network is keyed by these ids, so both argument orders must collapse
to the same key.
"""

from typing import Tuple

from wgmesh.config import CONNECTION_SEPARATOR
from wgmesh.models.network import ConnectionId


def canonical_id(peer_id_a: str, peer_id_b: str) -> str:
    """
    Build the wire form of a connection id

    The greater of the two ids is placed first.

    Args:
        peer_id_a: Either peer id
        peer_id_b: The other peer id

    Returns:
        ``"<greater>*<lesser>"``
    """
    if peer_id_a > peer_id_b:
        return f"{peer_id_a}{CONNECTION_SEPARATOR}{peer_id_b}"
    return f"{peer_id_b}{CONNECTION_SEPARATOR}{peer_id_a}"


def peers_of(connection_id: str) -> Tuple[str, str]:
    """
    Split a connection id back into its two peer ids

    Args:
        connection_id: Wire form produced by canonical_id

    Returns:
        (greater id, lesser id)

    Raises:
        ValueError: If the id does not contain exactly one separator
    """
    parts = connection_id.split(CONNECTION_SEPARATOR)
    if len(parts) != 2:
        raise ValueError(f"Malformed connection id: {connection_id!r}")
    return parts[0], parts[1]


def connection_key(peer_id_a: str, peer_id_b: str) -> ConnectionId:
    """Typed counterpart of canonical_id for indexing Network.connections"""
    return ConnectionId.of(peer_id_a, peer_id_b)
