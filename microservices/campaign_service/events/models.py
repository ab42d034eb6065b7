"""
Campaign Event Data Models

Event type definitions and payloads for campaign service events.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


# =============================================================================
# Event Type Definitions
# =============================================================================


class CampaignEventType(str, Enum):
    """
    Events published by campaign_service.

    Other services should reference these when subscribing.
    """
    CREATED = "campaign.created"
    UPDATED = "campaign.updated"
    STARTED = "campaign.started"
    PAUSED = "campaign.paused"
    RESUMED = "campaign.resumed"
    COMPLETED = "campaign.completed"
    CANCELLED = "campaign.cancelled"
    DELETED = "campaign.deleted"

    EVALUATION_SUBMITTED = "campaign.evaluation.submitted"


# =============================================================================
# Event Data Models
# =============================================================================


class CampaignLifecycleEventData(BaseModel):
    """Payload for campaign create/update/transition events"""
    campaign_id: UUID
    tenant_id: UUID
    title: str
    status: str
    actor_id: UUID
    occurred_at: datetime
    reason: Optional[str] = None


class EvaluationSubmittedEventData(BaseModel):
    """Payload for campaign.evaluation.submitted"""
    evaluation_id: UUID
    campaign_id: UUID
    tenant_id: UUID
    group_id: Optional[UUID] = None
    evaluated_user_id: UUID
    evaluator_id: UUID
    submitted_at: datetime


__all__ = [
    "CampaignEventType",
    "CampaignLifecycleEventData",
    "EvaluationSubmittedEventData",
]
