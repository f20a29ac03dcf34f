"""
WireGuard Peer Configuration Generator

Renders a peer's effective configuration as a wg-quick compatible INI
document: one [Interface] section for the peer itself and one [Peer]
section per enabled connection.

Optional directives whose override is disabled are left out entirely.
"""

import logging
import re
from typing import List, Tuple

from wgmesh import config
from wgmesh.models.network import Connection, ConnectionId, Network, Peer

logger = logging.getLogger(__name__)

FILENAME_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_=+.-]")
FILENAME_MAX_LENGTH = 32


class WireGuardConfigError(Exception):
    """Base exception for config generation."""
    pass


class PeerNotFoundError(WireGuardConfigError):
    """Raised when a peer id is absent from the network."""

    def __init__(self, peer_id: str, network_identifier: str):
        self.peer_id = peer_id
        self.network_identifier = network_identifier
        super().__init__(f"Peer {peer_id} not found in network {network_identifier}")


def _get_peer(network: Network, peer_id: str) -> Peer:
    peer = network.peers.get(peer_id)
    if peer is None:
        raise PeerNotFoundError(peer_id, network.identifier)
    return peer


def _interface_section(peer: Peer, stripped: bool) -> List[str]:
    lines = [
        f"# Peer: {peer.name} ({peer.id})",
        "[Interface]",
        f"PrivateKey = {peer.private_key}",
    ]
    if not stripped:
        lines.append(f"Address = {peer.address}/{config.INTERFACE_PREFIX}")

    listen_port = peer.listen_port
    if listen_port is not None:
        lines.append(f"ListenPort = {listen_port}")

    if stripped:
        return lines

    if peer.dns.enabled:
        lines.append(f"DNS = {peer.dns.value}")
    if peer.mtu.enabled:
        lines.append(f"MTU = {peer.mtu.value}")

    hooks = (
        ("PreUp", peer.scripts.pre_up),
        ("PostUp", peer.scripts.post_up),
        ("PreDown", peer.scripts.pre_down),
        ("PostDown", peer.scripts.post_down),
    )
    for directive, hook in hooks:
        if hook.enabled:
            lines.append(f"{directive} = {hook.value}")
    return lines


def _peer_section(
    peer_id: str,
    other: Peer,
    connection_id: ConnectionId,
    connection: Connection,
) -> List[str]:
    # The side occupying ``a`` routes allowed_ips_a_to_b through the other peer
    if connection_id.a == peer_id:
        allowed_ips = connection.allowed_ips_a_to_b
    else:
        allowed_ips = connection.allowed_ips_b_to_a

    lines = [
        f"# Peer: {other.name} ({other.id})",
        "[Peer]",
        f"PublicKey = {other.public_key}",
        f"PresharedKey = {connection.pre_shared_key}",
        f"AllowedIPs = {allowed_ips}",
    ]
    if connection.persistent_keepalive.enabled:
        lines.append(f"PersistentKeepalive = {connection.persistent_keepalive.value}")
    if other.is_static and other.endpoint:
        lines.append(f"Endpoint = {other.endpoint}")
    return lines


def linked_peers(
    network: Network,
    peer_id: str,
    sort_peers: bool = False,
) -> List[Tuple[ConnectionId, Connection, Peer]]:
    """
    Enabled connections of ``peer_id`` together with the peer on the other side

    Args:
        network: Network snapshot
        peer_id: Peer whose connections are wanted
        sort_peers: Order by the other peer's id instead of mapping order

    Returns:
        List of (connection id, connection, other peer)

    Raises:
        PeerNotFoundError: If a connection references an unknown peer
    """
    linked = []
    for connection_id, connection in network.connections_of(peer_id):
        if not connection.enabled:
            continue
        other = _get_peer(network, connection_id.other(peer_id))
        linked.append((connection_id, connection, other))

    if sort_peers:
        linked.sort(key=lambda item: item[2].id)
    return linked


def render_peer_config(
    network: Network,
    peer_id: str,
    sort_peers: bool = False,
    stripped: bool = False,
) -> str:
    """
    Render the wg-quick configuration of one peer

    Args:
        network: Network snapshot
        peer_id: Peer whose point of view is rendered
        sort_peers: Emit [Peer] sections ordered by the other peer's id
        stripped: Leave out wg-quick only directives (Address, DNS, MTU,
            hooks), as accepted by ``wg setconf``

    Returns:
        Config file contents

    Raises:
        PeerNotFoundError: If ``peer_id`` or a linked peer is missing
    """
    peer = _get_peer(network, peer_id)

    header = [
        f"# auto-generated using {config.GENERATOR_NAME} ({config.GENERATOR_VERSION})",
        f"# network identifier: {network.identifier}",
    ]
    sections = [header, _interface_section(peer, stripped)]

    linked = linked_peers(network, peer_id, sort_peers=sort_peers)
    for connection_id, connection, other in linked:
        sections.append(_peer_section(peer_id, other, connection_id, connection))

    logger.info(
        f"Rendered config for peer {peer_id} in network {network.identifier} "
        f"with {len(linked)} linked peers"
    )
    return "\n\n".join("\n".join(lines) for lines in sections) + "\n"


def peer_config_filename(network: Network, peer_id: str) -> str:
    """
    File name for a peer's downloadable config

    The peer name is reduced to ``[a-zA-Z0-9_=+.-]``: other characters turn
    into ``-``, runs of ``-`` collapse, a trailing ``-`` is dropped and the
    result is cut to 32 characters.

    Returns:
        ``<network identifier>-<sanitized name>.conf``
    """
    peer = _get_peer(network, peer_id)
    name = FILENAME_UNSAFE_CHARS.sub("-", peer.name)
    name = re.sub(r"-{2,}", "-", name)
    name = re.sub(r"-$", "", name)
    return f"{network.identifier}-{name[:FILENAME_MAX_LENGTH]}.conf"
