#!/usr/bin/env python3
"""Modular configuration system for the lifecycle services

Configuration hierarchy:
- infra_config: PostgreSQL and NATS endpoints
- service_config: Peer services (account_service)
- logging_config: Logging configuration
- lifecycle_config: Campaign/certificate settings, aggregates the above
"""
import os
from dotenv import load_dotenv
from .logging_config import LoggingConfig
from .infra_config import InfraConfig
from .service_config import ServiceConfig
from .lifecycle_config import LifecycleConfig

# Load environment file based on ENV
env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
env_files = {
    "development": "deployment/environments/dev.env",
    "dev": "deployment/environments/dev.env",
    "testing": "deployment/environments/test.env",
    "test": "deployment/environments/test.env",
    "staging": "deployment/environments/staging.env",
    "production": "deployment/environments/production.env",
}
env_file = env_files.get(env, "deployment/environments/dev.env")
load_dotenv(env_file, override=False)

# Create global settings instance
settings = LifecycleConfig.from_env()

def get_settings() -> LifecycleConfig:
    """Get global settings instance"""
    return settings

def reload_settings() -> LifecycleConfig:
    """Reload settings from environment"""
    global settings
    settings = LifecycleConfig.from_env()
    return settings

__all__ = [
    'LifecycleConfig',
    'get_settings',
    'reload_settings',
    'settings',
    'LoggingConfig',
    'InfraConfig',
    'ServiceConfig',
]
