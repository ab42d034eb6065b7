"""
Campaign Service Protocols

Defines interfaces for dependency injection and testing.
Following the protocol-based architecture pattern.
"""

from datetime import datetime
from typing import Any, List, Optional, Protocol
from uuid import UUID

from core.operation_result import ErrorCode

from .models import (
    Campaign,
    CampaignEvaluation,
    CampaignGroup,
    CampaignStatus,
    CampaignType,
    UserProfile,
)


# ====================
# Repository Protocol
# ====================


class CampaignRepositoryProtocol(Protocol):
    """Protocol for campaign, group and evaluation persistence"""

    async def initialize(self) -> None:
        """Create tables and indexes if missing"""
        ...

    # Campaigns

    async def save_campaign(self, campaign: Campaign) -> Campaign:
        """Insert a new campaign"""
        ...

    async def update_campaign(self, campaign: Campaign) -> Campaign:
        """Persist every mutable field of an existing campaign"""
        ...

    async def get_campaign(
        self, tenant_id: UUID, campaign_id: UUID, include_deleted: bool = False
    ) -> Optional[Campaign]:
        """Get campaign within a tenant"""
        ...

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
        """List campaigns matching filters, newest first"""
        ...

    async def list_campaigns_by_manager(self, tenant_id: UUID, manager_id: UUID) -> List[Campaign]:
        """Campaigns whose manager set contains the user"""
        ...

    async def list_campaigns_by_target(self, tenant_id: UUID, user_id: UUID) -> List[Campaign]:
        """Campaigns whose target set contains the user"""
        ...

    async def list_campaigns_created_between(
        self,
        tenant_id: UUID,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> List[Campaign]:
        """All non-deleted campaigns, optionally windowed on created_at"""
        ...

    async def campaign_title_exists(
        self, tenant_id: UUID, title: str, exclude_id: Optional[UUID] = None
    ) -> bool:
        """Case-insensitive title check among non-deleted campaigns"""
        ...

    # Groups

    async def save_group(self, group: CampaignGroup) -> CampaignGroup:
        ...

    async def update_group(self, group: CampaignGroup) -> CampaignGroup:
        ...

    async def get_group(self, tenant_id: UUID, group_id: UUID) -> Optional[CampaignGroup]:
        ...

    async def list_groups(
        self,
        tenant_id: UUID,
        campaign_id: Optional[UUID] = None,
        search_term: Optional[str] = None,
    ) -> List[CampaignGroup]:
        """Non-deleted groups; search matches name or description"""
        ...

    async def group_name_exists(
        self, tenant_id: UUID, name: str, exclude_id: Optional[UUID] = None
    ) -> bool:
        ...

    # Evaluations

    async def save_evaluation(self, evaluation: CampaignEvaluation) -> CampaignEvaluation:
        """Insert an evaluation; raises UniqueConstraintViolation on a duplicate triple"""
        ...

    async def get_evaluation(self, tenant_id: UUID, evaluation_id: UUID) -> Optional[CampaignEvaluation]:
        ...

    async def list_evaluations(
        self,
        tenant_id: UUID,
        campaign_id: Optional[UUID] = None,
        evaluated_user_id: Optional[UUID] = None,
        evaluator_id: Optional[UUID] = None,
        is_completed: Optional[bool] = None,
    ) -> List[CampaignEvaluation]:
        ...

    async def list_evaluations_created_between(
        self,
        tenant_id: UUID,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> List[CampaignEvaluation]:
        ...

    async def evaluation_exists(
        self, campaign_id: UUID, evaluated_user_id: UUID, evaluator_id: UUID
    ) -> bool:
        ...


# ====================
# Client Protocols
# ====================


class UserDirectoryProtocol(Protocol):
    """Protocol for user lookups (account_service)"""

    async def user_exists(self, user_id: UUID) -> bool:
        """True if the user exists and is active"""
        ...

    async def get_user(self, user_id: UUID) -> Optional[UserProfile]:
        ...


class EventBusProtocol(Protocol):
    """Protocol for event publishing"""

    async def publish_event(self, event: Any) -> bool:
        ...


# ====================
# Exceptions
# ====================


class CampaignServiceError(Exception):
    """Base exception for campaign service errors"""

    error_code: ErrorCode = ErrorCode.UNEXPECTED

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CampaignNotFoundError(CampaignServiceError):
    """Raised when campaign is not found in the caller's tenant"""
    error_code = ErrorCode.NOT_FOUND


class CampaignGroupNotFoundError(CampaignServiceError):
    """Raised when group is not found"""
    error_code = ErrorCode.NOT_FOUND


class EvaluationNotFoundError(CampaignServiceError):
    """Raised when evaluation is not found"""
    error_code = ErrorCode.NOT_FOUND


class InvalidCampaignStateError(CampaignServiceError):
    """Raised when campaign is in invalid state for operation"""
    error_code = ErrorCode.INVALID_STATE

    def __init__(self, message: str, current_status: Optional[CampaignStatus] = None):
        super().__init__(message)
        self.current_status = current_status


class CampaignNameExistsError(CampaignServiceError):
    """Raised when a campaign title is already used in the tenant"""
    error_code = ErrorCode.CONFLICT


class CampaignGroupNameExistsError(CampaignServiceError):
    """Raised when a group name is already used in the tenant"""
    error_code = ErrorCode.CONFLICT


class DuplicateEvaluationError(CampaignServiceError):
    """Raised when the evaluator already evaluated the user in this campaign"""
    error_code = ErrorCode.CONFLICT


class CampaignValidationError(CampaignServiceError):
    """Raised when campaign validation fails"""
    error_code = ErrorCode.VALIDATION_FAILURE

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ManagerNotFoundError(CampaignValidationError):
    """Raised when a referenced manager does not resolve to an active user"""

    def __init__(self, manager_id: UUID):
        super().__init__(f"Manager with ID {manager_id} not found", "manager_ids")
        self.manager_id = manager_id


class UserNotFoundError(CampaignValidationError):
    """Raised when a referenced user does not resolve to an active user"""

    def __init__(self, user_id: UUID, field: str = "target_user_ids"):
        super().__init__(f"User with ID {user_id} not found", field)
        self.user_id = user_id


__all__ = [
    "CampaignRepositoryProtocol",
    "UserDirectoryProtocol",
    "EventBusProtocol",
    "CampaignServiceError",
    "CampaignNotFoundError",
    "CampaignGroupNotFoundError",
    "EvaluationNotFoundError",
    "InvalidCampaignStateError",
    "CampaignNameExistsError",
    "CampaignGroupNameExistsError",
    "DuplicateEvaluationError",
    "CampaignValidationError",
    "ManagerNotFoundError",
    "UserNotFoundError",
]
