"""
Certificate Service

Campaign completion certificates providing:
- Issuance bound to one (campaign, recipient) pair with a verification token
- Regeneration, administrative updates and revocation
- Public token verification with a verification counter
- Certificate templates with one default per (tenant, type)
"""

__version__ = "1.0.0"
__service__ = "certificate_service"
