"""
Mesh services

Edit tracking and change-set application on top of the networking core.
"""

from wgmesh.services.change_tracker import (
    ChangeSet,
    FieldState,
    FieldHighlight,
    field_highlights,
    track_edit,
    apply_edit,
)

from wgmesh.services.network_patch_service import (
    ChangeSetError,
    UnknownTargetError,
    apply_peer_changes,
    apply_connection_changes,
)

__all__ = [
    "ChangeSet",
    "FieldState",
    "FieldHighlight",
    "field_highlights",
    "track_edit",
    "apply_edit",
    "ChangeSetError",
    "UnknownTargetError",
    "apply_peer_changes",
    "apply_connection_changes",
]
