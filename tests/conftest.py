"""
Pytest configuration and shared fixtures
"""

import pytest
import sys
from pathlib import Path

# Add repository root to Python path
repo_path = Path(__file__).parent.parent
sys.path.insert(0, str(repo_path))

from wgmesh.models.network import (  # noqa: E402
    Connection,
    ConnectionId,
    EnabledValue,
    Mobility,
    Network,
    Peer,
)

# PEER_A sorts after PEER_B, so it occupies the ``a`` side of their connection
PEER_A = "f47ac10b-58cc-4372-a567-0e02b2c3d479"
PEER_B = "16fd2706-8baf-433b-82eb-8c7fada847da"
PEER_C = "9c5b94b1-35ad-49bb-b118-8e8fc24abf80"


@pytest.fixture(scope="session")
def test_subnet():
    """Test subnet for peer allocation"""
    return "10.0.0.0/24"


@pytest.fixture
def static_peer():
    """Static peer reachable at 1.2.3.4:51820"""
    return Peer(
        id=PEER_A,
        name="hub",
        address="10.0.0.1",
        mobility=Mobility.STATIC,
        endpoint="1.2.3.4:51820",
        private_key="hub-private-key",
        public_key="hub-public-key",
    )


@pytest.fixture
def roaming_peer():
    """Roaming laptop peer"""
    return Peer(
        id=PEER_B,
        name="laptop",
        address="10.0.0.2",
        mobility=Mobility.ROAMING,
        private_key="laptop-private-key",
        public_key="laptop-public-key",
    )


@pytest.fixture
def connection():
    """Enabled connection between PEER_A and PEER_B"""
    return Connection(
        enabled=True,
        pre_shared_key="psk-a-b",
        allowed_ips_a_to_b="10.0.0.2/32",
        allowed_ips_b_to_a="10.0.0.0/24",
        persistent_keepalive=EnabledValue(enabled=True, value=25),
    )


@pytest.fixture
def network(test_subnet, static_peer, roaming_peer, connection):
    """Two-peer network with one enabled connection"""
    return Network(
        identifier="wg-test",
        subnet=test_subnet,
        peers={PEER_A: static_peer, PEER_B: roaming_peer},
        connections={ConnectionId.of(PEER_A, PEER_B): connection},
    )
