"""
Campaign Service

Evaluation campaign management providing:
- Campaign lifecycle (draft, start, pause, resume, complete, cancel)
- Manager groups distributing target users
- Evaluation collection, one per (campaign, evaluated user, evaluator)
- Progress rollups per group and per manager
- Tenant-wide campaign statistics
"""

__version__ = "1.0.0"
__service__ = "campaign_service"
