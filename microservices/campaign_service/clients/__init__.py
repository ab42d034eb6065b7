"""
Campaign Service Clients

Clients for calling other microservices.
"""

from .account_client import AccountClient

__all__ = [
    "AccountClient",
]
