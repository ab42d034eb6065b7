#!/usr/bin/env python3
"""
Core Module for the lifecycle microservices

Shared infrastructure used by campaign_service and certificate_service.

COMPONENTS:
    - config/: dataclass configuration loaded from environment (+ .env files)
    - logger.py: service logging setup
    - json_codec.py: id-set and JSON map codecs for TEXT columns
    - context.py: explicit acting identity
    - operation_result.py: structured success/failure results
    - postgres_client.py: asyncpg pool wrapper
    - nats_client.py: NATS JetStream event bus
    - service_client_base.py: httpx base client for peer services
"""

__version__ = "1.0.0"
