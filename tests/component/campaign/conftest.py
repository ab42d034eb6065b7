"""
Component Test Fixtures for Campaign Service

Wires CampaignService over the in-memory campaign repository.
"""

import pytest

from microservices.campaign_service.campaign_service import CampaignService
from microservices.campaign_service.operations import CampaignOperations
from tests.component.mocks import MockCampaignRepository
from tests.contracts.campaign.data_contract import (
    Campaign,
    CampaignStatus,
    CampaignTestDataFactory,
)


# ====================
# Fixtures
# ====================


@pytest.fixture
def factory() -> CampaignTestDataFactory:
    return CampaignTestDataFactory()


@pytest.fixture
def mock_repository() -> MockCampaignRepository:
    return MockCampaignRepository()


@pytest.fixture
def campaign_service(mock_repository, mock_user_directory, mock_event_bus, lifecycle_config) -> CampaignService:
    return CampaignService(
        repository=mock_repository,
        user_directory=mock_user_directory,
        event_bus=mock_event_bus,
        config=lifecycle_config,
    )


@pytest.fixture
def campaign_operations(campaign_service) -> CampaignOperations:
    return CampaignOperations(campaign_service)


@pytest.fixture
def active_campaign(factory, mock_repository, mock_user_directory, tenant_id) -> Campaign:
    """Active campaign whose managers and targets exist in the directory"""
    campaign = factory.make_campaign(
        tenant_id,
        status=CampaignStatus.ACTIVE,
        managers=factory.make_user_ids(2),
        targets=factory.make_user_ids(4),
    )
    mock_user_directory.add_users(campaign.assigned_managers | campaign.target_user_ids)
    return mock_repository.seed_campaign(campaign)
