"""
Base Service Client for Internal Microservice Communication

Base class for peer service clients: owns the httpx.AsyncClient, base URL
and timeout.
"""

import httpx
import logging
from typing import Optional, Dict, Any
from abc import ABC

logger = logging.getLogger(__name__)


class BaseServiceClient(ABC):
    """
    Microservice client base.

    Example:
        class AccountClient(BaseServiceClient):
            service_name = "account_service"

            async def get_user(self, user_id: str):
                response = await self.get(f"/api/v1/accounts/profile/{user_id}")
                return response.json()
    """

    service_name: str = None

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not self.service_name:
            raise ValueError(f"{self.__class__.__name__} must define 'service_name'")

        self.base_url = base_url.rstrip('/')
        self.client = httpx.AsyncClient(
            timeout=timeout,
            headers={
                "Content-Type": "application/json",
                "User-Agent": f"isA-Internal-Client/{self.service_name}",
            },
            transport=transport,
        )

        logger.debug(f"Initialized {self.service_name} client: {self.base_url}")

    async def close(self):
        await self.client.aclose()
        logger.debug(f"Closed {self.service_name} client")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """GET request"""
        url = f"{self.base_url}{path}"
        return await self.client.get(url, params=params, headers=headers)

    async def health_check(self) -> bool:
        try:
            response = await self.get("/health")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"{self.service_name} health check failed: {e}")
            return False


__all__ = ["BaseServiceClient"]
