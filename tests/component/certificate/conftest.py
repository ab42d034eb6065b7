"""
Component Test Fixtures for Certificate Service

Wires CertificateService over the in-memory certificate repository, with the
in-memory campaign repository acting as the campaign reader.
"""

import pytest

from microservices.certificate_service.certificate_service import CertificateService
from microservices.certificate_service.operations import CertificateOperations
from tests.component.mocks import MockCampaignRepository, MockCertificateRepository
from tests.contracts.campaign.data_contract import (
    Campaign,
    CampaignStatus,
    CampaignTestDataFactory,
)
from tests.contracts.certificate.data_contract import CertificateTestDataFactory


# ====================
# Fixtures
# ====================


@pytest.fixture
def factory() -> CertificateTestDataFactory:
    return CertificateTestDataFactory()


@pytest.fixture
def campaign_factory() -> CampaignTestDataFactory:
    return CampaignTestDataFactory()


@pytest.fixture
def mock_repository() -> MockCertificateRepository:
    return MockCertificateRepository()


@pytest.fixture
def mock_campaigns() -> MockCampaignRepository:
    return MockCampaignRepository()


@pytest.fixture
def certificate_service(
    mock_repository, mock_campaigns, mock_user_directory, mock_event_bus, lifecycle_config
) -> CertificateService:
    return CertificateService(
        repository=mock_repository,
        campaign_reader=mock_campaigns,
        user_directory=mock_user_directory,
        event_bus=mock_event_bus,
        config=lifecycle_config,
    )


@pytest.fixture
def certificate_operations(certificate_service) -> CertificateOperations:
    return CertificateOperations(certificate_service)


@pytest.fixture
def completed_campaign(campaign_factory, mock_campaigns, mock_user_directory, tenant_id) -> Campaign:
    """Completed campaign whose managers exist in the directory"""
    campaign = campaign_factory.make_campaign(
        tenant_id,
        status=CampaignStatus.COMPLETED,
        managers=campaign_factory.make_user_ids(2),
        targets=campaign_factory.make_user_ids(4),
        title="Q3 Access Review",
    )
    for manager_id in campaign.assigned_managers:
        mock_user_directory.add_user(manager_id, first_name="Grace", last_name="Hopper")
    return mock_campaigns.seed_campaign(campaign)
