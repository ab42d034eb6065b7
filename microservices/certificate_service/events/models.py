"""
Certificate Event Data Models

Event type definitions and payloads for certificate service events.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class CertificateEventType(str, Enum):
    """Events published by certificate_service"""
    GENERATED = "certificate.generated"
    REGENERATED = "certificate.regenerated"
    UPDATED = "certificate.updated"
    REVOKED = "certificate.revoked"
    VERIFIED = "certificate.verified"
    DELETED = "certificate.deleted"


class CertificateEventData(BaseModel):
    """Payload shared by certificate events"""
    certificate_id: UUID
    tenant_id: UUID
    campaign_id: Optional[UUID] = None
    recipient_id: UUID
    status: str
    actor_id: Optional[UUID] = None
    occurred_at: datetime
    reason: Optional[str] = None


__all__ = ["CertificateEventType", "CertificateEventData"]
