#!/usr/bin/env python3
"""Service configuration for peer services

The lifecycle services resolve users through account_service.
"""
import os
from dataclasses import dataclass

def _float(val: str, default: float) -> float:
    try:
        return float(val) if val else default
    except ValueError:
        return default


@dataclass
class ServiceConfig:
    """Peer service endpoints"""

    # account_service - user existence and profile lookup
    account_service_url: str = "http://localhost:8202"

    request_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> 'ServiceConfig':
        """Load service configuration from environment variables"""
        return cls(
            account_service_url=os.getenv("ACCOUNT_SERVICE_URL", "http://localhost:8202"),
            request_timeout=_float(os.getenv("SERVICE_REQUEST_TIMEOUT", "30"), 30.0),
        )
