"""
Mesh Networking Package

Address allocation, connection ids, field validation and wg-quick config
rendering for WireGuard mesh networks.
"""

from wgmesh.networking.address_allocator import (
    next_available_address,
    taken_addresses,
)

from wgmesh.networking.connection_id import (
    canonical_id,
    peers_of,
    connection_key,
)

from wgmesh.networking.field_validator import (
    StringField,
    ToggleField,
    CompositeField,
    ValidationResult,
    ValidationContext,
    FIELD_RULES,
    validate,
    validate_peer,
    validate_connection,
)

from wgmesh.networking.wireguard_config import (
    WireGuardConfigError,
    PeerNotFoundError,
    render_peer_config,
    peer_config_filename,
)

__all__ = [
    "next_available_address",
    "taken_addresses",
    "canonical_id",
    "peers_of",
    "connection_key",
    "StringField",
    "ToggleField",
    "CompositeField",
    "ValidationResult",
    "ValidationContext",
    "FIELD_RULES",
    "validate",
    "validate_peer",
    "validate_connection",
    "WireGuardConfigError",
    "PeerNotFoundError",
    "render_peer_config",
    "peer_config_filename",
]
