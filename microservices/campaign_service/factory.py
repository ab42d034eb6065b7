"""
Campaign Service Factory

Factory for creating campaign service instances with proper dependency injection.
"""

import logging
from typing import Optional

from core.config import LifecycleConfig, get_settings
from core.logger import setup_service_logger
from core.nats_client import NATSEventBus, get_event_bus
from core.postgres_client import PostgresClient

from .campaign_repository import CampaignRepository
from .campaign_service import CampaignService
from .clients.account_client import AccountClient
from .operations import CampaignOperations

logger = logging.getLogger(__name__)


class CampaignServiceFactory:
    """Factory for creating campaign service components"""

    def __init__(self, config: Optional[LifecycleConfig] = None):
        self.config = config or get_settings()
        self._db: Optional[PostgresClient] = None
        self._repository: Optional[CampaignRepository] = None
        self._service: Optional[CampaignService] = None
        self._operations: Optional[CampaignOperations] = None
        self._nats_client: Optional[NATSEventBus] = None
        self._account_client: Optional[AccountClient] = None

    async def initialize(self) -> None:
        """Initialize all components"""
        setup_service_logger("campaign_service", config=self.config.logging)
        logger.info("Initializing Campaign Service components...")

        self._db = PostgresClient("campaign_service", self.config.infra)
        self._repository = CampaignRepository(self._db)
        await self._repository.initialize()

        self._nats_client = await get_event_bus("campaign_service", self.config.infra)
        self._account_client = AccountClient(self.config.services)

        self._service = CampaignService(
            repository=self._repository,
            user_directory=self._account_client,
            event_bus=self._nats_client,
            config=self.config,
        )
        self._operations = CampaignOperations(self._service)

        logger.info("Campaign Service components initialized")

    async def close(self) -> None:
        """Close all components"""
        logger.info("Closing Campaign Service components...")

        if self._nats_client:
            await self._nats_client.close()

        if self._account_client:
            await self._account_client.close()

        if self._repository:
            await self._repository.close()

        logger.info("Campaign Service components closed")

    @property
    def repository(self) -> CampaignRepository:
        """Get campaign repository"""
        if not self._repository:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._repository

    @property
    def service(self) -> CampaignService:
        """Get campaign service"""
        if not self._service:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._service

    @property
    def operations(self) -> CampaignOperations:
        """Get structured-result operations"""
        if not self._operations:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._operations

    @property
    def nats_client(self) -> Optional[NATSEventBus]:
        return self._nats_client

    @property
    def account_client(self) -> AccountClient:
        if not self._account_client:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._account_client


# Global factory instance
_factory: Optional[CampaignServiceFactory] = None


async def get_factory() -> CampaignServiceFactory:
    """Get or create factory instance"""
    global _factory
    if _factory is None:
        _factory = CampaignServiceFactory()
        await _factory.initialize()
    return _factory


async def close_factory() -> None:
    """Close factory instance"""
    global _factory
    if _factory:
        await _factory.close()
        _factory = None


__all__ = [
    "CampaignServiceFactory",
    "get_factory",
    "close_factory",
]
