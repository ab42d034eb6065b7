"""
Account Service Client

Client for calling account_service to resolve users referenced by campaigns,
groups and certificates.
"""

import logging
from typing import Optional
from uuid import UUID

import httpx

from core.config import ServiceConfig
from core.service_client_base import BaseServiceClient

from ..models import UserProfile

logger = logging.getLogger(__name__)


class AccountClient(BaseServiceClient):
    """Client for account_service"""

    service_name = "account_service"

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        config = config or ServiceConfig.from_env()
        super().__init__(
            base_url=config.account_service_url,
            timeout=config.request_timeout,
            transport=transport,
        )

    async def get_user(self, user_id: UUID) -> Optional[UserProfile]:
        """
        Get a user's profile.

        Returns None when account_service reports the user as missing;
        transport and server errors propagate to the caller.
        """
        response = await self.get(f"/api/v1/accounts/profile/{user_id}")

        if response.status_code == 404:
            logger.warning(f"User not found: {user_id}")
            return None
        response.raise_for_status()

        data = response.json()
        return UserProfile(
            user_id=data.get("user_id", user_id),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            name=data.get("name"),
            email=data.get("email"),
            is_active=data.get("is_active", True),
        )

    async def user_exists(self, user_id: UUID) -> bool:
        """True if the user exists and is active"""
        profile = await self.get_user(user_id)
        return profile is not None and profile.is_active


__all__ = ["AccountClient"]
