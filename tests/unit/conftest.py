"""
Unit Test Layer Configuration

Structure:
    tests/unit/
    ├── campaign/     Models, transition table, aggregation
    ├── certificate/  Models and token format
    └── core/         JSON codec, operation results, configuration

Usage:
    pytest tests/unit -v                 # All unit tests
    pytest tests/unit/campaign -v        # One service
"""
import os
import sys

import pytest

# Add project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from tests.contracts.campaign.data_contract import CampaignTestDataFactory


@pytest.fixture
def campaign_factory() -> CampaignTestDataFactory:
    return CampaignTestDataFactory()
