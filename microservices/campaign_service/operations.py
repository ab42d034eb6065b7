"""
Campaign Operations

Caller-facing entry points. Each operation runs the matching CampaignService
call and returns an OperationResult: domain errors become coded failures,
anything unanticipated is logged and reported generically.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from core.context import Actor
from core.operation_result import OperationResult, run_operation

from .campaign_service import CampaignService
from .models import (
    Campaign,
    CampaignCreateRequest,
    CampaignEvaluation,
    CampaignGroup,
    CampaignGroupCreateRequest,
    CampaignGroupUpdateRequest,
    CampaignProgress,
    CampaignStatistics,
    CampaignStatus,
    CampaignType,
    CampaignUpdateRequest,
    EvaluationSubmitRequest,
)
from .protocols import CampaignServiceError


class CampaignOperations:
    """Structured-result facade over CampaignService"""

    def __init__(self, service: CampaignService):
        self.service = service

    async def _run(self, name: str, call) -> OperationResult:
        return await run_operation(name, call, CampaignServiceError)

    # Campaigns

    async def create_campaign(self, request: CampaignCreateRequest, actor: Actor) -> OperationResult[UUID]:
        async def call():
            campaign = await self.service.create_campaign(request, actor)
            return campaign.campaign_id
        return await self._run("CreateCampaign", call)

    async def update_campaign(
        self, campaign_id: UUID, request: CampaignUpdateRequest, actor: Actor
    ) -> OperationResult[Campaign]:
        return await self._run(
            "UpdateCampaign", lambda: self.service.update_campaign(campaign_id, request, actor)
        )

    async def delete_campaign(self, campaign_id: UUID, actor: Actor) -> OperationResult[bool]:
        return await self._run("DeleteCampaign", lambda: self.service.delete_campaign(campaign_id, actor))

    async def get_campaign(self, campaign_id: UUID, tenant_id: UUID) -> OperationResult[Campaign]:
        return await self._run("GetCampaign", lambda: self.service.get_campaign(campaign_id, tenant_id))

    async def get_campaigns(
        self,
        tenant_id: UUID,
        status: Optional[CampaignStatus] = None,
        campaign_type: Optional[CampaignType] = None,
        start_date_from: Optional[datetime] = None,
        start_date_to: Optional[datetime] = None,
        include_deleted: bool = False,
    ) -> OperationResult[List[Campaign]]:
        return await self._run(
            "GetCampaigns",
            lambda: self.service.list_campaigns(
                tenant_id,
                status=status,
                campaign_type=campaign_type,
                start_date_from=start_date_from,
                start_date_to=start_date_to,
                include_deleted=include_deleted,
            ),
        )

    async def get_my_campaigns(self, actor: Actor) -> OperationResult[List[Campaign]]:
        return await self._run(
            "GetMyCampaigns", lambda: self.service.get_manager_campaigns(actor.tenant_id, actor.user_id)
        )

    async def get_my_campaign_targets(self, actor: Actor) -> OperationResult[List[Campaign]]:
        return await self._run(
            "GetMyCampaignTargets", lambda: self.service.get_target_campaigns(actor.tenant_id, actor.user_id)
        )

    # Lifecycle

    async def start_campaign(self, campaign_id: UUID, actor: Actor) -> OperationResult[Campaign]:
        return await self._run("StartCampaign", lambda: self.service.start_campaign(campaign_id, actor))

    async def pause_campaign(self, campaign_id: UUID, actor: Actor) -> OperationResult[Campaign]:
        return await self._run("PauseCampaign", lambda: self.service.pause_campaign(campaign_id, actor))

    async def resume_campaign(self, campaign_id: UUID, actor: Actor) -> OperationResult[Campaign]:
        return await self._run("ResumeCampaign", lambda: self.service.resume_campaign(campaign_id, actor))

    async def complete_campaign(self, campaign_id: UUID, actor: Actor) -> OperationResult[Campaign]:
        return await self._run("CompleteCampaign", lambda: self.service.complete_campaign(campaign_id, actor))

    async def cancel_campaign(
        self, campaign_id: UUID, actor: Actor, reason: Optional[str] = None
    ) -> OperationResult[bool]:
        return await self._run(
            "CancelCampaign", lambda: self.service.cancel_campaign(campaign_id, actor, reason=reason)
        )

    # Groups

    async def create_campaign_group(
        self, request: CampaignGroupCreateRequest, actor: Actor
    ) -> OperationResult[CampaignGroup]:
        return await self._run("CreateCampaignGroup", lambda: self.service.create_group(request, actor))

    async def update_campaign_group(
        self, group_id: UUID, request: CampaignGroupUpdateRequest, actor: Actor
    ) -> OperationResult[CampaignGroup]:
        return await self._run(
            "UpdateCampaignGroup", lambda: self.service.update_group(group_id, request, actor)
        )

    async def delete_campaign_group(self, group_id: UUID, actor: Actor) -> OperationResult[bool]:
        return await self._run("DeleteCampaignGroup", lambda: self.service.delete_group(group_id, actor))

    async def get_campaign_group(self, group_id: UUID, tenant_id: UUID) -> OperationResult[CampaignGroup]:
        return await self._run("GetCampaignGroup", lambda: self.service.get_group(group_id, tenant_id))

    async def get_campaign_groups(
        self,
        tenant_id: UUID,
        campaign_id: Optional[UUID] = None,
        search_term: Optional[str] = None,
    ) -> OperationResult[List[CampaignGroup]]:
        return await self._run(
            "GetCampaignGroups",
            lambda: self.service.list_groups(tenant_id, campaign_id=campaign_id, search_term=search_term),
        )

    # Evaluations

    async def submit_evaluation(self, request: EvaluationSubmitRequest, actor: Actor) -> OperationResult[UUID]:
        async def call():
            evaluation = await self.service.submit_evaluation(request, actor)
            return evaluation.evaluation_id
        return await self._run("SubmitEvaluation", call)

    async def get_evaluation(self, evaluation_id: UUID, tenant_id: UUID) -> OperationResult[CampaignEvaluation]:
        return await self._run(
            "GetEvaluation", lambda: self.service.get_evaluation(evaluation_id, tenant_id)
        )

    async def get_campaign_evaluations(
        self,
        campaign_id: UUID,
        tenant_id: UUID,
        evaluated_user_id: Optional[UUID] = None,
        is_completed: Optional[bool] = None,
    ) -> OperationResult[List[CampaignEvaluation]]:
        return await self._run(
            "GetCampaignEvaluations",
            lambda: self.service.list_campaign_evaluations(
                campaign_id,
                tenant_id,
                evaluated_user_id=evaluated_user_id,
                is_completed=is_completed,
            ),
        )

    # Read side

    async def get_campaign_progress(self, campaign_id: UUID, tenant_id: UUID) -> OperationResult[CampaignProgress]:
        return await self._run(
            "GetCampaignProgress", lambda: self.service.get_campaign_progress(campaign_id, tenant_id)
        )

    async def get_campaign_statistics(
        self,
        tenant_id: UUID,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> OperationResult[CampaignStatistics]:
        return await self._run(
            "GetCampaignStatistics",
            lambda: self.service.get_campaign_statistics(tenant_id, from_date=from_date, to_date=to_date),
        )


__all__ = ["CampaignOperations"]
