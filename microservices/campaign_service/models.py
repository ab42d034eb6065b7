"""
Campaign Service Data Models

Pydantic models for campaigns, manager groups, evaluations and the
read-side progress/statistics views.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, Set
from uuid import UUID, uuid4

from pydantic import AfterValidator, BaseModel, Field, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC; stored timestamps are always aware"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


# =============================================================================
# ENUMS
# =============================================================================

class CampaignType(str, Enum):
    """Campaign purpose"""
    PERFORMANCE = "performance"
    TRAINING = "training"
    EVALUATION = "evaluation"
    DEVELOPMENT = "development"


class CampaignStatus(str, Enum):
    """Campaign lifecycle status"""
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ActivityType(str, Enum):
    """Recent-activity feed entry kind"""
    CREATED = "created"
    EVALUATION_SUBMITTED = "evaluation_submitted"


# =============================================================================
# BASE
# =============================================================================

class BaseContract(BaseModel):
    """Base model with common configuration"""
    model_config = {"from_attributes": True}


class AuditFields(BaseContract):
    """Creation, update and soft-delete stamps"""
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[UUID] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    created_by: Optional[UUID] = None
    updated_by: Optional[UUID] = None


# =============================================================================
# ENTITIES
# =============================================================================

class Campaign(AuditFields):
    """Evaluation campaign"""
    campaign_id: UUID = Field(default_factory=uuid4)
    tenant_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)

    campaign_type: CampaignType
    status: CampaignStatus = Field(default=CampaignStatus.DRAFT)

    # Planned window
    start_date: datetime
    end_date: datetime

    # Observed window
    actual_start_date: Optional[datetime] = None
    actual_end_date: Optional[datetime] = None

    # Membership
    assigned_managers: Set[UUID] = Field(default_factory=set)
    target_user_ids: Set[UUID] = Field(default_factory=set)

    is_active: bool = True
    created_by_user_id: Optional[UUID] = None

    def add_manager(self, user_id: UUID) -> bool:
        """Add a manager; returns False if already assigned"""
        if user_id in self.assigned_managers:
            return False
        self.assigned_managers.add(user_id)
        return True

    def remove_manager(self, user_id: UUID) -> bool:
        if user_id not in self.assigned_managers:
            return False
        self.assigned_managers.discard(user_id)
        return True

    def add_target(self, user_id: UUID) -> bool:
        """Add a target user; returns False if already targeted"""
        if user_id in self.target_user_ids:
            return False
        self.target_user_ids.add(user_id)
        return True

    def remove_target(self, user_id: UUID) -> bool:
        if user_id not in self.target_user_ids:
            return False
        self.target_user_ids.discard(user_id)
        return True


class CampaignGroup(AuditFields):
    """Manager-owned subset of target users, optionally bound to a campaign"""
    group_id: UUID = Field(default_factory=uuid4)
    tenant_id: UUID
    campaign_id: Optional[UUID] = None
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    manager_id: UUID
    target_user_ids: Set[UUID] = Field(default_factory=set)
    is_active: bool = True

    def add_target(self, user_id: UUID) -> bool:
        if user_id in self.target_user_ids:
            return False
        self.target_user_ids.add(user_id)
        return True

    def remove_target(self, user_id: UUID) -> bool:
        if user_id not in self.target_user_ids:
            return False
        self.target_user_ids.discard(user_id)
        return True


class CampaignEvaluation(BaseContract):
    """One evaluator's assessment of one target user within a campaign"""
    evaluation_id: UUID = Field(default_factory=uuid4)
    tenant_id: UUID
    campaign_id: UUID
    group_id: Optional[UUID] = None
    evaluated_user_id: UUID
    evaluator_id: UUID
    role_evaluations: Dict[str, Any] = Field(default_factory=dict)
    claim_evaluations: Dict[str, Any] = Field(default_factory=dict)
    feedback: Optional[str] = Field(None, max_length=4000)
    is_completed: bool = False
    submitted_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    created_by: Optional[UUID] = None


class UserProfile(BaseContract):
    """User snapshot returned by account_service"""
    user_id: UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    is_active: bool = True

    @property
    def full_name(self) -> str:
        joined = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return joined or (self.name or "")


# =============================================================================
# REQUESTS
# =============================================================================

class CampaignCreateRequest(BaseContract):
    """Campaign creation request"""
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    campaign_type: CampaignType
    start_date: UtcDatetime
    end_date: UtcDatetime
    manager_ids: Set[UUID] = Field(..., min_length=1)
    target_user_ids: Set[UUID] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_dates(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class CampaignUpdateRequest(BaseContract):
    """Campaign partial update request"""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    campaign_type: Optional[CampaignType] = None
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    manager_ids: Optional[Set[UUID]] = Field(None, min_length=1)
    target_user_ids: Optional[Set[UUID]] = Field(None, min_length=1)
    is_active: Optional[bool] = None


class CampaignGroupCreateRequest(BaseContract):
    """Group creation request; manager defaults to the acting user"""
    campaign_id: Optional[UUID] = None
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    manager_id: Optional[UUID] = None
    target_user_ids: Set[UUID] = Field(default_factory=set)


class CampaignGroupUpdateRequest(BaseContract):
    """Group partial update request"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    manager_id: Optional[UUID] = None
    target_user_ids: Optional[Set[UUID]] = None
    is_active: Optional[bool] = None


class EvaluationSubmitRequest(BaseContract):
    """Evaluation submission; evaluator defaults to the acting user"""
    campaign_id: UUID
    evaluated_user_id: UUID
    evaluator_id: Optional[UUID] = None
    group_id: Optional[UUID] = None
    role_evaluations: Dict[str, Any] = Field(default_factory=dict)
    claim_evaluations: Dict[str, Any] = Field(default_factory=dict)
    feedback: Optional[str] = Field(None, max_length=4000)


# =============================================================================
# READ MODELS
# =============================================================================

class GroupProgress(BaseContract):
    """Completion of one group"""
    group_id: UUID
    group_name: str
    manager_id: UUID
    total_targets: int
    completed_evaluations: int
    pending_evaluations: int
    progress_percentage: Decimal


class ManagerProgress(BaseContract):
    """Completion across all groups owned by one manager"""
    manager_id: UUID
    total_assigned_targets: int
    completed_evaluations: int
    pending_evaluations: int
    progress_percentage: Decimal
    groups_assigned: int


class CampaignProgress(BaseContract):
    """Campaign-wide completion rollup"""
    campaign_id: UUID
    campaign_title: str
    total_targets: int
    completed_evaluations: int
    pending_evaluations: int
    progress_percentage: Decimal
    days_remaining: int
    group_progress: List[GroupProgress] = Field(default_factory=list)
    manager_progress: List[ManagerProgress] = Field(default_factory=list)


class RecentActivity(BaseContract):
    """Entry of the statistics activity feed"""
    activity_id: UUID
    campaign_id: UUID
    campaign_title: str
    activity_type: ActivityType
    user_id: Optional[UUID] = None
    description: str
    activity_date: datetime


class CampaignStatistics(BaseContract):
    """Tenant-wide campaign statistics"""
    total_campaigns: int = 0
    active_campaigns: int = 0
    completed_campaigns: int = 0
    draft_campaigns: int = 0
    paused_campaigns: int = 0
    cancelled_campaigns: int = 0
    total_evaluations: int = 0
    completed_evaluations: int = 0
    pending_evaluations: int = 0
    overall_progress_percentage: Decimal = Decimal("0")
    average_completion_time: float = 0.0
    most_active_campaign_type: Optional[CampaignType] = None
    recent_activity: List[RecentActivity] = Field(default_factory=list)


__all__ = [
    "CampaignType",
    "CampaignStatus",
    "ActivityType",
    "BaseContract",
    "AuditFields",
    "UtcDatetime",
    "Campaign",
    "CampaignGroup",
    "CampaignEvaluation",
    "UserProfile",
    "CampaignCreateRequest",
    "CampaignUpdateRequest",
    "CampaignGroupCreateRequest",
    "CampaignGroupUpdateRequest",
    "EvaluationSubmitRequest",
    "GroupProgress",
    "ManagerProgress",
    "CampaignProgress",
    "RecentActivity",
    "CampaignStatistics",
]
