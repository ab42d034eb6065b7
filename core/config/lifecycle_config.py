#!/usr/bin/env python3
"""Campaign and certificate lifecycle settings"""
import os
from dataclasses import dataclass, field

from .infra_config import InfraConfig
from .logging_config import LoggingConfig
from .service_config import ServiceConfig

def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


@dataclass
class LifecycleConfig:
    """Top-level settings for the campaign and certificate services"""

    # Attempts at minting a verification token before giving up
    certificate_token_retries: int = 3

    # Recent-activity feed sizing for campaign statistics
    recent_activity_limit: int = 10
    recent_activity_per_source: int = 5

    infra: InfraConfig = field(default_factory=InfraConfig)
    services: ServiceConfig = field(default_factory=ServiceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> 'LifecycleConfig':
        """Load lifecycle config from environment variables"""
        return cls(
            certificate_token_retries=_int(os.getenv("CERTIFICATE_TOKEN_RETRIES", "3"), 3),
            recent_activity_limit=_int(os.getenv("RECENT_ACTIVITY_LIMIT", "10"), 10),
            recent_activity_per_source=_int(os.getenv("RECENT_ACTIVITY_PER_SOURCE", "5"), 5),
            infra=InfraConfig.from_env(),
            services=ServiceConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )
