"""
Component Test Mocks

Shared mock implementations for component testing.
These mocks replace real I/O dependencies (PostgreSQL, NATS, account_service).
"""

from .campaign_mock import MockCampaignRepository
from .certificate_mock import MockCertificateRepository
from .directory_mock import MockUserDirectory
from .nats_mock import MockEventBus

__all__ = [
    'MockCampaignRepository',
    'MockCertificateRepository',
    'MockEventBus',
    'MockUserDirectory',
]
