"""
Component Test Layer Configuration

Structure:
    tests/component/
    ├── campaign/     CampaignService, CampaignOperations, repository SQL mapping
    ├── certificate/  CertificateService, CertificateOperations, repository SQL mapping
    └── mocks/        Shared mock implementations

Usage:
    pytest tests/component -v
    pytest tests/component/certificate -v
"""
import os
import sys
from pathlib import Path

import pytest

# Set testing environment BEFORE any imports
os.environ["ENV"] = "testing"
os.environ["NATS_ENABLED"] = "false"

# Add project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

# Load test environment variables
from dotenv import load_dotenv

project_root = Path(__file__).parent.parent.parent
test_env_file = project_root / "tests" / "config" / ".env.test"
if test_env_file.exists():
    load_dotenv(test_env_file, override=True)

from core.config import LifecycleConfig
from tests.component.mocks import MockEventBus, MockUserDirectory


# =============================================================================
# Event Bus Mocks
# =============================================================================

@pytest.fixture
def mock_event_bus() -> MockEventBus:
    """Mock NATS event bus"""
    return MockEventBus()


# =============================================================================
# Service Client Mocks
# =============================================================================

@pytest.fixture
def mock_user_directory() -> MockUserDirectory:
    """In-memory account_service profile lookup"""
    return MockUserDirectory()


# =============================================================================
# Config
# =============================================================================

@pytest.fixture
def lifecycle_config() -> LifecycleConfig:
    """Defaults only; never reads the environment"""
    return LifecycleConfig()
