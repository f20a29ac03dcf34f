"""
Address Allocator

Picks the next unused IPv4 address inside a network's subnet for a new peer.

Addresses whose last octet is 0 or 255 are never handed out, regardless of
the prefix length. The scan is address-ascending, so the result is
reproducible for a given set of taken addresses.
"""

import logging
from ipaddress import AddressValueError, IPv4Address
from typing import Iterable, Optional, Set, Tuple

from wgmesh.models.network import Network

logger = logging.getLogger(__name__)


def ipv4_to_int(address: str) -> Optional[int]:
    """Parse a dotted quad into its 32-bit value, None if malformed"""
    try:
        return int(IPv4Address(address))
    except AddressValueError:
        return None


def int_to_ipv4(value: int) -> str:
    return str(IPv4Address(value & 0xFFFFFFFF))


def prefix_to_mask(prefix: int) -> int:
    """
    Convert a prefix length into a 32-bit netmask

    Args:
        prefix: Prefix length, 0-32

    Returns:
        Netmask, e.g. 24 -> 0xFFFFFF00
    """
    if prefix <= 0:
        return 0
    return (0xFFFFFFFF << (32 - prefix)) & 0xFFFFFFFF


def parse_subnet(subnet: str) -> Optional[Tuple[int, int]]:
    """
    Split ``a.b.c.d/n`` into (base address, prefix length)

    Returns:
        Tuple of ints, or None when the subnet is malformed
    """
    if "/" not in subnet:
        return None
    base_str, prefix_str = subnet.split("/", 1)
    base = ipv4_to_int(base_str)
    if base is None or not (prefix_str.isascii() and prefix_str.isdigit()):
        return None
    prefix = int(prefix_str)
    if prefix > 32:
        return None
    return base, prefix


def taken_addresses(network: Network) -> Set[str]:
    """Addresses already assigned to peers of ``network``"""
    return {peer.address for peer in network.peers.values()}


def next_available_address(
    network: Network,
    reserved: Optional[Iterable[str]] = None,
) -> Optional[str]:
    """
    Find the lowest free address in the network subnet

    Args:
        network: Network snapshot whose peers hold the taken addresses
        reserved: Extra addresses to treat as taken (e.g. pending leases)

    Returns:
        IPv4 address string, or None if the subnet is exhausted or malformed
    """
    parsed = parse_subnet(network.subnet)
    if parsed is None:
        logger.warning(f"Cannot allocate from malformed subnet {network.subnet!r}")
        return None
    base, prefix = parsed

    taken = taken_addresses(network)
    if reserved:
        taken.update(reserved)

    start = base & prefix_to_mask(prefix)
    for offset in range(2 ** (32 - prefix)):
        candidate = int_to_ipv4(start + offset)
        if candidate.endswith(".0") or candidate.endswith(".255"):
            continue
        if candidate in taken:
            continue
        logger.info(f"Allocated address {candidate} in network {network.identifier}")
        return candidate

    logger.warning(
        f"Subnet {network.subnet} exhausted: {len(taken)} addresses taken "
        f"in network {network.identifier}"
    )
    return None
