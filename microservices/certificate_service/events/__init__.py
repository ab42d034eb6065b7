"""
Certificate Service Events

Event types and payloads published by certificate service.
"""

from .models import CertificateEventData, CertificateEventType

__all__ = ["CertificateEventType", "CertificateEventData"]
