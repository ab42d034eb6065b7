"""
Root conftest.py - Global fixtures and configuration for all test layers.

Test Layers:
    - unit/       : Unit tests (pure functions, no I/O)
    - component/  : Component tests (in-memory repositories, mocked clients)
"""
import logging
import os
import sys
from uuid import UUID, uuid4

import pytest

# Set testing environment BEFORE any imports
os.environ.setdefault("ENV", "testing")
os.environ.setdefault("NATS_ENABLED", "false")

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from core.context import Actor


# =============================================================================
# Identity Fixtures
# =============================================================================

@pytest.fixture
def tenant_id() -> UUID:
    """Tenant shared by everything a single test creates"""
    return uuid4()


@pytest.fixture
def actor(tenant_id: UUID) -> Actor:
    """Administrator acting within the test tenant"""
    return Actor(user_id=uuid4(), tenant_id=tenant_id, name="Test Admin")


@pytest.fixture
def other_tenant_actor() -> Actor:
    """Actor from an unrelated tenant"""
    return Actor(user_id=uuid4(), tenant_id=uuid4(), name="Other Tenant Admin")


# =============================================================================
# Pytest Hooks
# =============================================================================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "unit: Unit tests (no I/O)")
    config.addinivalue_line("markers", "component: Component tests (mocked dependencies)")


def pytest_collection_modifyitems(config, items):
    """Auto-mark tests based on their directory"""
    for item in items:
        path = str(item.fspath)
        if "/unit/" in path:
            item.add_marker(pytest.mark.unit)
        elif "/component/" in path:
            item.add_marker(pytest.mark.component)


@pytest.fixture(autouse=True)
def test_logger(request):
    """Log test start and end"""
    logger = logging.getLogger("tests")
    logger.debug(f"Starting: {request.node.name}")
    yield logger
    logger.debug(f"Finished: {request.node.name}")
