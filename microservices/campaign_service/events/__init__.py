"""
Campaign Service Events

Event types and payloads published by campaign service.
"""

from .models import (
    CampaignEventType,
    CampaignLifecycleEventData,
    EvaluationSubmittedEventData,
)

__all__ = [
    "CampaignEventType",
    "CampaignLifecycleEventData",
    "EvaluationSubmittedEventData",
]
