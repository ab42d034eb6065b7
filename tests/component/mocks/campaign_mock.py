"""
Campaign Repository Mock for Component Testing

In-memory CampaignRepositoryProtocol that enforces the same unique indexes
as the PostgreSQL schema. Reads yield to the event loop so concurrent
service calls interleave the way they do against a real pool.
"""

import asyncio
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from core.postgres_client import UniqueConstraintViolation
from microservices.campaign_service.models import (
    Campaign,
    CampaignEvaluation,
    CampaignGroup,
    CampaignStatus,
    CampaignType,
)


class MockCampaignRepository:
    """In-memory CampaignRepositoryProtocol implementation for component testing"""

    def __init__(self):
        self.campaigns: Dict[UUID, Campaign] = {}
        self.groups: Dict[UUID, CampaignGroup] = {}
        self.evaluations: Dict[UUID, CampaignEvaluation] = {}
        self.fail_next_save: Optional[Exception] = None

    async def initialize(self):
        pass

    async def close(self):
        pass

    # Campaigns

    async def save_campaign(self, campaign: Campaign) -> Campaign:
        self._raise_pending()
        if self._title_taken(campaign.tenant_id, campaign.title, campaign.campaign_id):
            raise UniqueConstraintViolation("uq_campaigns_tenant_title")
        self.campaigns[campaign.campaign_id] = campaign.model_copy(deep=True)
        return campaign.model_copy(deep=True)

    async def update_campaign(self, campaign: Campaign) -> Campaign:
        if not campaign.is_deleted and self._title_taken(campaign.tenant_id, campaign.title, campaign.campaign_id):
            raise UniqueConstraintViolation("uq_campaigns_tenant_title")
        self.campaigns[campaign.campaign_id] = campaign.model_copy(deep=True)
        return campaign.model_copy(deep=True)

    async def get_campaign(
        self, tenant_id: UUID, campaign_id: UUID, include_deleted: bool = False
    ) -> Optional[Campaign]:
        await asyncio.sleep(0)
        campaign = self.campaigns.get(campaign_id)
        if not campaign or campaign.tenant_id != tenant_id:
            return None
        if campaign.is_deleted and not include_deleted:
            return None
        return campaign.model_copy(deep=True)

    async def list_campaigns(
        self,
        tenant_id: UUID,
        status: Optional[CampaignStatus] = None,
        campaign_type: Optional[CampaignType] = None,
        start_date_from: Optional[datetime] = None,
        start_date_to: Optional[datetime] = None,
        include_deleted: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Campaign]:
        results = [c for c in self.campaigns.values() if c.tenant_id == tenant_id]
        if not include_deleted:
            results = [c for c in results if not c.is_deleted]
        if status:
            results = [c for c in results if c.status == status]
        if campaign_type:
            results = [c for c in results if c.campaign_type == campaign_type]
        if start_date_from:
            results = [c for c in results if c.start_date >= start_date_from]
        if start_date_to:
            results = [c for c in results if c.start_date <= start_date_to]
        results.sort(key=lambda c: c.created_at, reverse=True)
        return [c.model_copy(deep=True) for c in results[offset:offset + limit]]

    async def list_campaigns_by_manager(self, tenant_id: UUID, manager_id: UUID) -> List[Campaign]:
        return [c for c in await self.list_campaigns(tenant_id) if manager_id in c.assigned_managers]

    async def list_campaigns_by_target(self, tenant_id: UUID, user_id: UUID) -> List[Campaign]:
        return [c for c in await self.list_campaigns(tenant_id) if user_id in c.target_user_ids]

    async def list_campaigns_created_between(
        self,
        tenant_id: UUID,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> List[Campaign]:
        return [
            c for c in await self.list_campaigns(tenant_id, limit=10_000)
            if (from_date is None or c.created_at >= from_date)
            and (to_date is None or c.created_at <= to_date)
        ]

    async def campaign_title_exists(
        self, tenant_id: UUID, title: str, exclude_id: Optional[UUID] = None
    ) -> bool:
        return self._title_taken(tenant_id, title, exclude_id)

    def _title_taken(self, tenant_id: UUID, title: str, exclude_id: Optional[UUID]) -> bool:
        return any(
            c.tenant_id == tenant_id
            and c.title.lower() == title.lower()
            and not c.is_deleted
            and c.campaign_id != exclude_id
            for c in self.campaigns.values()
        )

    # Groups

    async def save_group(self, group: CampaignGroup) -> CampaignGroup:
        if await self.group_name_exists(group.tenant_id, group.name, exclude_id=group.group_id):
            raise UniqueConstraintViolation("uq_campaign_groups_tenant_name")
        self.groups[group.group_id] = group.model_copy(deep=True)
        return group.model_copy(deep=True)

    async def update_group(self, group: CampaignGroup) -> CampaignGroup:
        self.groups[group.group_id] = group.model_copy(deep=True)
        return group.model_copy(deep=True)

    async def get_group(self, tenant_id: UUID, group_id: UUID) -> Optional[CampaignGroup]:
        group = self.groups.get(group_id)
        if not group or group.tenant_id != tenant_id or group.is_deleted:
            return None
        return group.model_copy(deep=True)

    async def list_groups(
        self,
        tenant_id: UUID,
        campaign_id: Optional[UUID] = None,
        search_term: Optional[str] = None,
    ) -> List[CampaignGroup]:
        results = [g for g in self.groups.values() if g.tenant_id == tenant_id and not g.is_deleted]
        if campaign_id:
            results = [g for g in results if g.campaign_id == campaign_id]
        if search_term:
            term = search_term.lower()
            results = [
                g for g in results
                if term in g.name.lower() or term in (g.description or "").lower()
            ]
        results.sort(key=lambda g: g.created_at)
        return [g.model_copy(deep=True) for g in results]

    async def group_name_exists(
        self, tenant_id: UUID, name: str, exclude_id: Optional[UUID] = None
    ) -> bool:
        return any(
            g.tenant_id == tenant_id
            and g.name.lower() == name.lower()
            and not g.is_deleted
            and g.group_id != exclude_id
            for g in self.groups.values()
        )

    # Evaluations

    async def save_evaluation(self, evaluation: CampaignEvaluation) -> CampaignEvaluation:
        self._raise_pending()
        key = (evaluation.campaign_id, evaluation.evaluated_user_id, evaluation.evaluator_id)
        if any(
            (e.campaign_id, e.evaluated_user_id, e.evaluator_id) == key
            for e in self.evaluations.values()
        ):
            raise UniqueConstraintViolation("uq_campaign_evaluations_campaign_user_evaluator")
        self.evaluations[evaluation.evaluation_id] = evaluation.model_copy(deep=True)
        return evaluation.model_copy(deep=True)

    async def get_evaluation(self, tenant_id: UUID, evaluation_id: UUID) -> Optional[CampaignEvaluation]:
        evaluation = self.evaluations.get(evaluation_id)
        if not evaluation or evaluation.tenant_id != tenant_id:
            return None
        return evaluation.model_copy(deep=True)

    async def list_evaluations(
        self,
        tenant_id: UUID,
        campaign_id: Optional[UUID] = None,
        evaluated_user_id: Optional[UUID] = None,
        evaluator_id: Optional[UUID] = None,
        is_completed: Optional[bool] = None,
    ) -> List[CampaignEvaluation]:
        results = [e for e in self.evaluations.values() if e.tenant_id == tenant_id]
        if campaign_id is not None:
            results = [e for e in results if e.campaign_id == campaign_id]
        if evaluated_user_id is not None:
            results = [e for e in results if e.evaluated_user_id == evaluated_user_id]
        if evaluator_id is not None:
            results = [e for e in results if e.evaluator_id == evaluator_id]
        if is_completed is not None:
            results = [e for e in results if e.is_completed == is_completed]
        return [e.model_copy(deep=True) for e in results]

    async def list_evaluations_created_between(
        self,
        tenant_id: UUID,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> List[CampaignEvaluation]:
        return [
            e for e in await self.list_evaluations(tenant_id)
            if (from_date is None or e.created_at >= from_date)
            and (to_date is None or e.created_at <= to_date)
        ]

    async def evaluation_exists(self, campaign_id: UUID, evaluated_user_id: UUID, evaluator_id: UUID) -> bool:
        # Yield so concurrent submissions can both pass the pre-check
        await asyncio.sleep(0)
        return any(
            e.campaign_id == campaign_id
            and e.evaluated_user_id == evaluated_user_id
            and e.evaluator_id == evaluator_id
            for e in self.evaluations.values()
        )

    # Test helpers

    def seed_campaign(self, campaign: Campaign) -> Campaign:
        self.campaigns[campaign.campaign_id] = campaign.model_copy(deep=True)
        return campaign

    def seed_group(self, group: CampaignGroup) -> CampaignGroup:
        self.groups[group.group_id] = group.model_copy(deep=True)
        return group

    def seed_evaluation(self, evaluation: CampaignEvaluation) -> CampaignEvaluation:
        self.evaluations[evaluation.evaluation_id] = evaluation.model_copy(deep=True)
        return evaluation

    def _raise_pending(self):
        if self.fail_next_save:
            error, self.fail_next_save = self.fail_next_save, None
            raise error

