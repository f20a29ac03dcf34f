"""
Network Patch Service

Applies a validated change-set to a network snapshot and returns the next
snapshot. Storing the result is left to the caller.
"""

import logging
from typing import Any, Dict, Union

from pydantic import BaseModel, ValidationError

from wgmesh.models.network import SCRIPT_KEYS, ConnectionId, Network
from wgmesh.services.change_tracker import ChangeSet

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = {"id", "peerId", "peer_id"}


class ChangeSetError(Exception):
    """Raised when a change-set cannot be applied."""
    pass


class UnknownTargetError(ChangeSetError):
    """Raised when the peer or connection to patch does not exist."""

    def __init__(self, kind: str, target_id: str):
        self.kind = kind
        self.target_id = target_id
        super().__init__(f"{kind} {target_id} not found")


def _patched(item: BaseModel, changes: Dict[str, Any]) -> BaseModel:
    """Copy ``item`` with ``changes`` merged in; scripts merge per hook"""
    data = item.model_dump()
    for field, value in changes.items():
        if field in IMMUTABLE_FIELDS:
            raise ChangeSetError(f"field {field} cannot be changed")
        if field in SCRIPT_KEYS and "scripts" in data:
            data["scripts"][field] = value
        elif field == "scripts" and isinstance(value, dict):
            data["scripts"].update(
                {hook: script for hook, script in value.items() if script is not None}
            )
        elif field in data:
            data[field] = value
        else:
            raise ChangeSetError(f"unknown field {field} for {type(item).__name__}")
    try:
        return type(item).model_validate(data)
    except ValidationError as e:
        raise ChangeSetError(f"invalid value for {type(item).__name__}: {e}") from e


def _check_applicable(change_set: ChangeSet, target: str) -> None:
    if change_set.has_errors():
        failing = sorted(field for field, message in change_set.errors.items() if message)
        logger.warning(f"Rejected change-set for {target}: invalid fields {failing}")
        raise ChangeSetError(f"change-set for {target} has invalid fields: {', '.join(failing)}")


def apply_peer_changes(network: Network, peer_id: str, change_set: ChangeSet) -> Network:
    """
    Produce the next snapshot with a peer's pending changes applied

    Args:
        network: Current snapshot
        peer_id: Peer the change-set belongs to
        change_set: Output of the change tracker

    Returns:
        New Network; ``network`` is left untouched

    Raises:
        UnknownTargetError: If the peer does not exist
        ChangeSetError: If the change-set still has errors or names an
            unknown or immutable field, or a value the model rejects
    """
    peer = network.peers.get(peer_id)
    if peer is None:
        raise UnknownTargetError("peer", peer_id)
    _check_applicable(change_set, f"peer {peer_id}")

    changes = change_set.pending_changes()
    if not changes:
        return network

    peers = dict(network.peers)
    peers[peer_id] = _patched(peer, changes)
    logger.info(f"Applied {len(changes)} changes to peer {peer_id}")
    return network.model_copy(update={"peers": peers})


def apply_connection_changes(
    network: Network,
    connection_id: Union[str, ConnectionId],
    change_set: ChangeSet,
) -> Network:
    """
    Produce the next snapshot with a connection's pending changes applied

    Raises:
        UnknownTargetError: If the connection does not exist
        ChangeSetError: If the change-set still has errors or names an
            unknown field, or a value the model rejects
    """
    key = connection_id
    if not isinstance(key, ConnectionId):
        key = ConnectionId.model_validate(key)
    connection = network.connections.get(key)
    if connection is None:
        raise UnknownTargetError("connection", str(key))
    _check_applicable(change_set, f"connection {key}")

    changes = change_set.pending_changes()
    if not changes:
        return network

    connections = dict(network.connections)
    connections[key] = _patched(connection, changes)
    logger.info(f"Applied {len(changes)} changes to connection {key}")
    return network.model_copy(update={"connections": connections})
