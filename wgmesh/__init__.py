"""
WireGuard mesh configuration engine.

Peer/connection data model, address allocation, field validation,
wg-quick config rendering and edit tracking.
"""

from wgmesh.config import __version__

__all__ = ["__version__"]
