"""
Runtime settings for the mesh configuration engine.

Values are read from the environment once at import time.
"""

import os

__version__ = "0.1.0"

GENERATOR_NAME = os.getenv("WGMESH_GENERATOR_NAME", "wgmesh")
GENERATOR_VERSION = os.getenv("WGMESH_VERSION", __version__)

# Prefix length written on the [Interface] Address line
INTERFACE_PREFIX = int(os.getenv("WGMESH_INTERFACE_PREFIX", "24"))

# Part of the wire format, never configurable
CONNECTION_SEPARATOR = "*"
