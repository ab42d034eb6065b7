"""
Campaign Service Business Logic

Implements the campaign lifecycle state machine, manager groups, evaluation
collection with per-(campaign, evaluated user, evaluator) uniqueness, and the
progress/statistics read side.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel

from core.config import LifecycleConfig
from core.context import Actor
from core.nats_client import Event, ServiceSource
from core.postgres_client import UniqueConstraintViolation

from .aggregation import compute_campaign_progress, compute_campaign_statistics
from .events.models import (
    CampaignEventType,
    CampaignLifecycleEventData,
    EvaluationSubmittedEventData,
)
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
from .protocols import (
    CampaignGroupNameExistsError,
    CampaignGroupNotFoundError,
    CampaignNameExistsError,
    CampaignNotFoundError,
    CampaignRepositoryProtocol,
    CampaignValidationError,
    DuplicateEvaluationError,
    EvaluationNotFoundError,
    EventBusProtocol,
    InvalidCampaignStateError,
    ManagerNotFoundError,
    UserDirectoryProtocol,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)


class CampaignTransition(str, Enum):
    """Explicit lifecycle commands"""
    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    COMPLETE = "complete"
    CANCEL = "cancel"


# transition -> (allowed source states, target state, rejection message)
TRANSITION_RULES: Dict[CampaignTransition, Tuple[FrozenSet[CampaignStatus], CampaignStatus, str]] = {
    CampaignTransition.START: (
        frozenset({CampaignStatus.DRAFT}),
        CampaignStatus.ACTIVE,
        "Only draft campaigns can be started",
    ),
    CampaignTransition.PAUSE: (
        frozenset({CampaignStatus.ACTIVE}),
        CampaignStatus.PAUSED,
        "Only active campaigns can be paused",
    ),
    CampaignTransition.RESUME: (
        frozenset({CampaignStatus.PAUSED}),
        CampaignStatus.ACTIVE,
        "Only paused campaigns can be resumed",
    ),
    CampaignTransition.COMPLETE: (
        frozenset({CampaignStatus.ACTIVE}),
        CampaignStatus.COMPLETED,
        "Only active campaigns can be completed",
    ),
    CampaignTransition.CANCEL: (
        frozenset({CampaignStatus.DRAFT, CampaignStatus.ACTIVE, CampaignStatus.PAUSED}),
        CampaignStatus.CANCELLED,
        "Cannot cancel completed or already cancelled campaigns",
    ),
}

TRANSITION_EVENTS = {
    CampaignTransition.START: CampaignEventType.STARTED,
    CampaignTransition.PAUSE: CampaignEventType.PAUSED,
    CampaignTransition.RESUME: CampaignEventType.RESUMED,
    CampaignTransition.COMPLETE: CampaignEventType.COMPLETED,
    CampaignTransition.CANCEL: CampaignEventType.CANCELLED,
}


def allowed_transitions(status: CampaignStatus) -> List[CampaignTransition]:
    """Transitions permitted from a status, in declaration order"""
    return [t for t, (sources, _, _) in TRANSITION_RULES.items() if status in sources]


def apply_transition(
    campaign: Campaign,
    transition: CampaignTransition,
    actor_id: UUID,
    now: Optional[datetime] = None,
) -> Campaign:
    """
    Mutate campaign for a lifecycle command.

    Start stamps actual_start_date and Complete stamps actual_end_date.
    Raises InvalidCampaignStateError without touching the campaign when the
    current status is not an allowed source.
    """
    sources, target, message = TRANSITION_RULES[transition]
    if campaign.status not in sources:
        raise InvalidCampaignStateError(message, campaign.status)

    now = now or datetime.now(timezone.utc)
    campaign.status = target
    if transition == CampaignTransition.START:
        campaign.actual_start_date = now
    elif transition == CampaignTransition.COMPLETE:
        campaign.actual_end_date = now
    campaign.updated_at = now
    campaign.updated_by = actor_id
    return campaign


class CampaignService:
    """Campaign service business logic layer"""

    def __init__(
        self,
        repository: CampaignRepositoryProtocol,
        user_directory: UserDirectoryProtocol,
        event_bus: Optional[EventBusProtocol] = None,
        config: Optional[LifecycleConfig] = None,
    ):
        self.repository = repository
        self.user_directory = user_directory
        self.event_bus = event_bus
        self.config = config or LifecycleConfig()

    # ====================
    # Campaign CRUD
    # ====================

    async def create_campaign(self, request: CampaignCreateRequest, actor: Actor) -> Campaign:
        """
        Create a campaign in Draft.

        Title must be unique within the tenant and every manager must resolve
        to an active user.
        """
        await self._ensure_title_available(actor.tenant_id, request.title)
        await self._ensure_managers_exist(request.manager_ids)

        now = datetime.now(timezone.utc)
        campaign = Campaign(
            tenant_id=actor.tenant_id,
            title=request.title,
            description=request.description,
            campaign_type=request.campaign_type,
            status=CampaignStatus.DRAFT,
            start_date=request.start_date,
            end_date=request.end_date,
            assigned_managers=set(request.manager_ids),
            target_user_ids=set(request.target_user_ids),
            created_by_user_id=actor.user_id,
            created_at=now,
            updated_at=now,
            created_by=actor.user_id,
            updated_by=actor.user_id,
        )

        try:
            campaign = await self.repository.save_campaign(campaign)
        except UniqueConstraintViolation:
            raise CampaignNameExistsError("Campaign name already exists")

        await self._publish_event(CampaignEventType.CREATED, self._lifecycle_data(campaign, actor, now))

        logger.info(f"Campaign created: {campaign.campaign_id} by {actor.user_id}")
        return campaign

    async def get_campaign(self, campaign_id: UUID, tenant_id: UUID) -> Campaign:
        """Get campaign by ID; other tenants' campaigns are reported as missing"""
        campaign = await self.repository.get_campaign(tenant_id, campaign_id)
        if not campaign:
            raise CampaignNotFoundError("Campaign not found")
        return campaign

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
        return await self.repository.list_campaigns(
            tenant_id,
            status=status,
            campaign_type=campaign_type,
            start_date_from=start_date_from,
            start_date_to=start_date_to,
            include_deleted=include_deleted,
            limit=limit,
            offset=offset,
        )

    async def get_manager_campaigns(self, tenant_id: UUID, manager_id: UUID) -> List[Campaign]:
        """Campaigns the user manages"""
        return await self.repository.list_campaigns_by_manager(tenant_id, manager_id)

    async def get_target_campaigns(self, tenant_id: UUID, user_id: UUID) -> List[Campaign]:
        """Campaigns in which the user is evaluated"""
        return await self.repository.list_campaigns_by_target(tenant_id, user_id)

    async def update_campaign(
        self,
        campaign_id: UUID,
        request: CampaignUpdateRequest,
        actor: Actor,
    ) -> Campaign:
        """
        Partially update a campaign.

        Allowed in any status. Title uniqueness excludes the campaign itself.
        """
        campaign = await self.get_campaign(campaign_id, actor.tenant_id)

        if request.title is not None and request.title != campaign.title:
            await self._ensure_title_available(actor.tenant_id, request.title, exclude_id=campaign_id)
        if request.manager_ids is not None:
            await self._ensure_managers_exist(request.manager_ids)

        start_date = request.start_date or campaign.start_date
        end_date = request.end_date or campaign.end_date
        if end_date <= start_date:
            raise CampaignValidationError("End date must be after start date", "end_date")

        if request.title is not None:
            campaign.title = request.title
        if request.description is not None:
            campaign.description = request.description
        if request.campaign_type is not None:
            campaign.campaign_type = request.campaign_type
        if request.manager_ids is not None:
            campaign.assigned_managers = set(request.manager_ids)
        if request.target_user_ids is not None:
            campaign.target_user_ids = set(request.target_user_ids)
        if request.is_active is not None:
            campaign.is_active = request.is_active
        campaign.start_date = start_date
        campaign.end_date = end_date

        now = datetime.now(timezone.utc)
        campaign.updated_at = now
        campaign.updated_by = actor.user_id

        try:
            campaign = await self.repository.update_campaign(campaign)
        except UniqueConstraintViolation:
            raise CampaignNameExistsError("Campaign name already exists")

        await self._publish_event(CampaignEventType.UPDATED, self._lifecycle_data(campaign, actor, now))
        logger.info(f"Campaign updated: {campaign_id}")
        return campaign

    async def delete_campaign(self, campaign_id: UUID, actor: Actor) -> bool:
        """Soft delete"""
        campaign = await self.get_campaign(campaign_id, actor.tenant_id)

        now = datetime.now(timezone.utc)
        campaign.is_deleted = True
        campaign.deleted_at = now
        campaign.deleted_by = actor.user_id
        campaign.updated_at = now
        campaign.updated_by = actor.user_id
        await self.repository.update_campaign(campaign)

        await self._publish_event(CampaignEventType.DELETED, self._lifecycle_data(campaign, actor, now))
        logger.info(f"Campaign deleted: {campaign_id}")
        return True

    # ====================
    # Lifecycle
    # ====================

    async def start_campaign(self, campaign_id: UUID, actor: Actor) -> Campaign:
        return await self._transition(campaign_id, CampaignTransition.START, actor)

    async def pause_campaign(self, campaign_id: UUID, actor: Actor) -> Campaign:
        return await self._transition(campaign_id, CampaignTransition.PAUSE, actor)

    async def resume_campaign(self, campaign_id: UUID, actor: Actor) -> Campaign:
        return await self._transition(campaign_id, CampaignTransition.RESUME, actor)

    async def complete_campaign(self, campaign_id: UUID, actor: Actor) -> Campaign:
        return await self._transition(campaign_id, CampaignTransition.COMPLETE, actor)

    async def cancel_campaign(
        self,
        campaign_id: UUID,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> bool:
        await self._transition(campaign_id, CampaignTransition.CANCEL, actor, reason=reason)
        return True

    async def _transition(
        self,
        campaign_id: UUID,
        transition: CampaignTransition,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> Campaign:
        campaign = await self.get_campaign(campaign_id, actor.tenant_id)
        previous = campaign.status

        now = datetime.now(timezone.utc)
        apply_transition(campaign, transition, actor.user_id, now)
        campaign = await self.repository.update_campaign(campaign)

        await self._publish_event(
            TRANSITION_EVENTS[transition],
            self._lifecycle_data(campaign, actor, now, reason=reason),
        )
        logger.info(
            f"Campaign {campaign_id} {transition.value}: {previous.value} -> {campaign.status.value}"
        )
        return campaign

    # ====================
    # Groups
    # ====================

    async def create_group(self, request: CampaignGroupCreateRequest, actor: Actor) -> CampaignGroup:
        """
        Create a manager group, standalone or bound to a campaign.

        The manager defaults to the acting user.
        """
        if request.campaign_id is not None:
            await self.get_campaign(request.campaign_id, actor.tenant_id)

        if await self.repository.group_name_exists(actor.tenant_id, request.name):
            raise CampaignGroupNameExistsError("Campaign group name already exists")

        manager_id = request.manager_id or actor.user_id
        await self._ensure_managers_exist([manager_id])
        await self._ensure_users_exist(request.target_user_ids)

        now = datetime.now(timezone.utc)
        group = CampaignGroup(
            tenant_id=actor.tenant_id,
            campaign_id=request.campaign_id,
            name=request.name,
            description=request.description,
            manager_id=manager_id,
            target_user_ids=set(request.target_user_ids),
            created_at=now,
            updated_at=now,
            created_by=actor.user_id,
            updated_by=actor.user_id,
        )

        try:
            group = await self.repository.save_group(group)
        except UniqueConstraintViolation:
            raise CampaignGroupNameExistsError("Campaign group name already exists")

        logger.info(f"Campaign group created: {group.group_id} (campaign={group.campaign_id})")
        return group

    async def get_group(self, group_id: UUID, tenant_id: UUID) -> CampaignGroup:
        group = await self.repository.get_group(tenant_id, group_id)
        if not group:
            raise CampaignGroupNotFoundError("Campaign group not found")
        return group

    async def list_groups(
        self,
        tenant_id: UUID,
        campaign_id: Optional[UUID] = None,
        search_term: Optional[str] = None,
    ) -> List[CampaignGroup]:
        return await self.repository.list_groups(tenant_id, campaign_id=campaign_id, search_term=search_term)

    async def update_group(
        self,
        group_id: UUID,
        request: CampaignGroupUpdateRequest,
        actor: Actor,
    ) -> CampaignGroup:
        group = await self.get_group(group_id, actor.tenant_id)

        if request.name is not None and request.name != group.name:
            if await self.repository.group_name_exists(actor.tenant_id, request.name, exclude_id=group_id):
                raise CampaignGroupNameExistsError("Campaign group name already exists")
            group.name = request.name
        if request.description is not None:
            group.description = request.description
        if request.manager_id is not None:
            await self._ensure_managers_exist([request.manager_id])
            group.manager_id = request.manager_id
        if request.target_user_ids is not None:
            await self._ensure_users_exist(request.target_user_ids)
            group.target_user_ids = set(request.target_user_ids)
        if request.is_active is not None:
            group.is_active = request.is_active

        group.updated_at = datetime.now(timezone.utc)
        group.updated_by = actor.user_id

        try:
            group = await self.repository.update_group(group)
        except UniqueConstraintViolation:
            raise CampaignGroupNameExistsError("Campaign group name already exists")

        logger.info(f"Campaign group updated: {group_id}")
        return group

    async def delete_group(self, group_id: UUID, actor: Actor) -> bool:
        """Soft delete"""
        group = await self.get_group(group_id, actor.tenant_id)

        now = datetime.now(timezone.utc)
        group.is_deleted = True
        group.deleted_at = now
        group.deleted_by = actor.user_id
        group.updated_at = now
        group.updated_by = actor.user_id
        await self.repository.update_group(group)

        logger.info(f"Campaign group deleted: {group_id}")
        return True

    # ====================
    # Evaluations
    # ====================

    async def submit_evaluation(self, request: EvaluationSubmitRequest, actor: Actor) -> CampaignEvaluation:
        """
        Record a completed evaluation.

        At most one evaluation exists per (campaign, evaluated user, evaluator);
        a second submission is rejected rather than overwriting the first.
        """
        campaign = await self.get_campaign(request.campaign_id, actor.tenant_id)

        if campaign.status != CampaignStatus.ACTIVE:
            raise InvalidCampaignStateError(
                "Evaluations can only be submitted for active campaigns",
                campaign.status,
            )
        if request.evaluated_user_id not in campaign.target_user_ids:
            raise CampaignValidationError(
                f"User with ID {request.evaluated_user_id} is not a target of this campaign",
                "evaluated_user_id",
            )

        evaluator_id = request.evaluator_id or actor.user_id

        if await self.repository.evaluation_exists(campaign.campaign_id, request.evaluated_user_id, evaluator_id):
            raise DuplicateEvaluationError("Evaluation already submitted for this user by this evaluator")

        group_id = await self._resolve_group_id(campaign, request, evaluator_id, actor.tenant_id)

        now = datetime.now(timezone.utc)
        evaluation = CampaignEvaluation(
            tenant_id=actor.tenant_id,
            campaign_id=campaign.campaign_id,
            group_id=group_id,
            evaluated_user_id=request.evaluated_user_id,
            evaluator_id=evaluator_id,
            role_evaluations=request.role_evaluations,
            claim_evaluations=request.claim_evaluations,
            feedback=request.feedback,
            is_completed=True,
            submitted_at=now,
            created_at=now,
            updated_at=now,
            created_by=actor.user_id,
        )

        try:
            evaluation = await self.repository.save_evaluation(evaluation)
        except UniqueConstraintViolation:
            raise DuplicateEvaluationError("Evaluation already submitted for this user by this evaluator")

        await self._publish_event(
            CampaignEventType.EVALUATION_SUBMITTED,
            EvaluationSubmittedEventData(
                evaluation_id=evaluation.evaluation_id,
                campaign_id=evaluation.campaign_id,
                tenant_id=evaluation.tenant_id,
                group_id=evaluation.group_id,
                evaluated_user_id=evaluation.evaluated_user_id,
                evaluator_id=evaluation.evaluator_id,
                submitted_at=now,
            ),
        )
        logger.info(
            f"Evaluation {evaluation.evaluation_id} submitted for campaign {campaign.campaign_id} "
            f"by {evaluator_id}"
        )
        return evaluation

    async def get_evaluation(self, evaluation_id: UUID, tenant_id: UUID) -> CampaignEvaluation:
        evaluation = await self.repository.get_evaluation(tenant_id, evaluation_id)
        if not evaluation:
            raise EvaluationNotFoundError("Evaluation not found")
        return evaluation

    async def list_campaign_evaluations(
        self,
        campaign_id: UUID,
        tenant_id: UUID,
        evaluated_user_id: Optional[UUID] = None,
        is_completed: Optional[bool] = None,
    ) -> List[CampaignEvaluation]:
        await self.get_campaign(campaign_id, tenant_id)
        return await self.repository.list_evaluations(
            tenant_id,
            campaign_id=campaign_id,
            evaluated_user_id=evaluated_user_id,
            is_completed=is_completed,
        )

    async def _resolve_group_id(
        self,
        campaign: Campaign,
        request: EvaluationSubmitRequest,
        evaluator_id: UUID,
        tenant_id: UUID,
    ) -> Optional[UUID]:
        """Explicit group if valid, else the campaign group holding the user (evaluator's own first)"""
        if request.group_id is not None:
            group = await self.get_group(request.group_id, tenant_id)
            if group.campaign_id != campaign.campaign_id:
                raise CampaignValidationError("Group does not belong to this campaign", "group_id")
            return group.group_id

        groups = await self.repository.list_groups(tenant_id, campaign_id=campaign.campaign_id)
        candidates = [g for g in groups if request.evaluated_user_id in g.target_user_ids]
        if not candidates:
            return None
        for group in candidates:
            if group.manager_id == evaluator_id:
                return group.group_id
        return candidates[0].group_id

    # ====================
    # Progress & Statistics
    # ====================

    async def get_campaign_progress(
        self,
        campaign_id: UUID,
        tenant_id: UUID,
        now: Optional[datetime] = None,
    ) -> CampaignProgress:
        campaign = await self.get_campaign(campaign_id, tenant_id)
        groups = await self.repository.list_groups(tenant_id, campaign_id=campaign_id)
        evaluations = await self.repository.list_evaluations(tenant_id, campaign_id=campaign_id)
        return compute_campaign_progress(campaign, groups, evaluations, now=now)

    async def get_campaign_statistics(
        self,
        tenant_id: UUID,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> CampaignStatistics:
        """Tenant statistics, optionally windowed on created_at"""
        campaigns = await self.repository.list_campaigns_created_between(tenant_id, from_date, to_date)
        evaluations = await self.repository.list_evaluations_created_between(tenant_id, from_date, to_date)
        return compute_campaign_statistics(
            campaigns,
            evaluations,
            recent_activity_limit=self.config.recent_activity_limit,
            recent_activity_per_source=self.config.recent_activity_per_source,
        )

    # ====================
    # Validation Helpers
    # ====================

    async def _ensure_title_available(
        self,
        tenant_id: UUID,
        title: str,
        exclude_id: Optional[UUID] = None,
    ) -> None:
        if await self.repository.campaign_title_exists(tenant_id, title, exclude_id=exclude_id):
            raise CampaignNameExistsError("Campaign name already exists")

    async def _ensure_managers_exist(self, manager_ids: Iterable[UUID]) -> None:
        for manager_id in sorted(manager_ids, key=str):
            if not await self.user_directory.user_exists(manager_id):
                raise ManagerNotFoundError(manager_id)

    async def _ensure_users_exist(self, user_ids: Iterable[UUID]) -> None:
        for user_id in sorted(user_ids, key=str):
            if not await self.user_directory.user_exists(user_id):
                raise UserNotFoundError(user_id)

    # ====================
    # Event Publishing
    # ====================

    @staticmethod
    def _lifecycle_data(
        campaign: Campaign,
        actor: Actor,
        occurred_at: datetime,
        reason: Optional[str] = None,
    ) -> CampaignLifecycleEventData:
        return CampaignLifecycleEventData(
            campaign_id=campaign.campaign_id,
            tenant_id=campaign.tenant_id,
            title=campaign.title,
            status=campaign.status.value,
            actor_id=actor.user_id,
            occurred_at=occurred_at,
            reason=reason,
        )

    async def _publish_event(self, event_type: CampaignEventType, data: BaseModel) -> None:
        """Publish event to event bus; failures never fail the operation"""
        if not self.event_bus:
            logger.debug(f"Event bus not configured, skipping event: {event_type.value}")
            return

        try:
            event = Event(
                event_type=event_type,
                source=ServiceSource.CAMPAIGN_SERVICE,
                data=data.model_dump(mode="json"),
            )
            await self.event_bus.publish_event(event)
            logger.debug(f"Published event: {event_type.value}")
        except Exception as e:
            logger.error(f"Failed to publish event {event_type.value}: {e}")


__all__ = [
    "CampaignService",
    "CampaignTransition",
    "TRANSITION_RULES",
    "allowed_transitions",
    "apply_transition",
]
