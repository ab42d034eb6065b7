"""
Certificate Service Factory

Factory for creating certificate service instances with proper dependency injection.
"""

import logging
from typing import Optional

from core.config import LifecycleConfig, get_settings
from core.logger import setup_service_logger
from core.nats_client import NATSEventBus, get_event_bus
from core.postgres_client import PostgresClient
from microservices.campaign_service.campaign_repository import CampaignRepository
from microservices.campaign_service.clients import AccountClient

from .certificate_repository import CertificateRepository
from .certificate_service import CertificateService
from .operations import CertificateOperations

logger = logging.getLogger(__name__)


class CertificateServiceFactory:
    """Factory for creating certificate service components"""

    def __init__(self, config: Optional[LifecycleConfig] = None):
        self.config = config or get_settings()
        self._db: Optional[PostgresClient] = None
        self._repository: Optional[CertificateRepository] = None
        self._campaign_reader: Optional[CampaignRepository] = None
        self._service: Optional[CertificateService] = None
        self._operations: Optional[CertificateOperations] = None
        self._nats_client: Optional[NATSEventBus] = None
        self._account_client: Optional[AccountClient] = None

    async def initialize(self) -> None:
        """Initialize all components"""
        setup_service_logger("certificate_service", config=self.config.logging)
        logger.info("Initializing Certificate Service components...")

        self._db = PostgresClient("certificate_service", self.config.infra)
        self._repository = CertificateRepository(self._db)
        await self._repository.initialize()

        # Campaign tables are read through the same pool
        self._campaign_reader = CampaignRepository(self._db)
        await self._campaign_reader.initialize()

        self._nats_client = await get_event_bus("certificate_service", self.config.infra)
        self._account_client = AccountClient(self.config.services)

        self._service = CertificateService(
            repository=self._repository,
            campaign_reader=self._campaign_reader,
            user_directory=self._account_client,
            event_bus=self._nats_client,
            config=self.config,
        )
        self._operations = CertificateOperations(self._service)

        logger.info("Certificate Service components initialized")

    async def close(self) -> None:
        """Close all components"""
        logger.info("Closing Certificate Service components...")

        if self._nats_client:
            await self._nats_client.close()

        if self._account_client:
            await self._account_client.close()

        if self._repository:
            await self._repository.close()

        logger.info("Certificate Service components closed")

    @property
    def repository(self) -> CertificateRepository:
        """Get certificate repository"""
        if not self._repository:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._repository

    @property
    def service(self) -> CertificateService:
        """Get certificate service"""
        if not self._service:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._service

    @property
    def operations(self) -> CertificateOperations:
        """Get structured-result operations"""
        if not self._operations:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._operations

    @property
    def nats_client(self) -> Optional[NATSEventBus]:
        return self._nats_client


# Global factory instance
_factory: Optional[CertificateServiceFactory] = None


async def get_factory() -> CertificateServiceFactory:
    """Get or create factory instance"""
    global _factory
    if _factory is None:
        _factory = CertificateServiceFactory()
        await _factory.initialize()
    return _factory


async def close_factory() -> None:
    """Close factory instance"""
    global _factory
    if _factory:
        await _factory.close()
        _factory = None


__all__ = [
    "CertificateServiceFactory",
    "get_factory",
    "close_factory",
]
