"""
Certificate Service Protocols

Defines interfaces for dependency injection and testing.
Following the protocol-based architecture pattern.
"""

from datetime import datetime
from typing import Any, List, Optional, Protocol
from uuid import UUID

from core.operation_result import ErrorCode
from microservices.campaign_service.models import (
    Campaign,
    CampaignEvaluation,
    CampaignGroup,
    UserProfile,
)

from .models import (
    Certificate,
    CertificateStatus,
    CertificateTemplate,
    CertificateType,
)

# Unique index names; the service tells token races from duplicate issuance by these
TOKEN_CONSTRAINT = "uq_certificates_verification_token"
CAMPAIGN_RECIPIENT_CONSTRAINT = "uq_certificates_campaign_recipient"
TEMPLATE_NAME_CONSTRAINT = "uq_certificate_templates_tenant_name"
TEMPLATE_DEFAULT_CONSTRAINT = "uq_certificate_templates_tenant_type_default"


# ====================
# Repository Protocols
# ====================


class CertificateRepositoryProtocol(Protocol):
    """Protocol for certificate and template persistence"""

    async def initialize(self) -> None:
        ...

    async def save_certificate(self, certificate: Certificate) -> Certificate:
        """Insert; raises UniqueConstraintViolation naming the violated index"""
        ...

    async def update_certificate(self, certificate: Certificate) -> Optional[Certificate]:
        """Write unless the stored row is already revoked; None when it is"""
        ...

    async def soft_delete_certificate(
        self, tenant_id: UUID, certificate_id: UUID, deleted_by: UUID, deleted_at: datetime
    ) -> bool:
        ...

    async def get_certificate(self, tenant_id: UUID, certificate_id: UUID) -> Optional[Certificate]:
        ...

    async def get_by_campaign_and_recipient(
        self, tenant_id: UUID, campaign_id: UUID, recipient_id: UUID
    ) -> Optional[Certificate]:
        ...

    async def list_certificates(
        self,
        tenant_id: UUID,
        campaign_id: Optional[UUID] = None,
        recipient_id: Optional[UUID] = None,
        status: Optional[CertificateStatus] = None,
        certificate_type: Optional[CertificateType] = None,
        issued_from: Optional[datetime] = None,
        issued_to: Optional[datetime] = None,
        include_revoked: bool = False,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> List[Certificate]:
        ...

    async def record_verification(self, token: str, verified_at: datetime) -> Optional[Certificate]:
        """Atomically increment verification_count for an exact token match"""
        ...

    async def save_template(
        self, template: CertificateTemplate, replace_default: bool = False
    ) -> CertificateTemplate:
        """Insert; replace_default clears the type's current default in the same transaction"""
        ...

    async def update_template(
        self, template: CertificateTemplate, replace_default: bool = False
    ) -> CertificateTemplate:
        ...

    async def get_template(self, tenant_id: UUID, template_id: UUID) -> Optional[CertificateTemplate]:
        ...

    async def list_templates(
        self,
        tenant_id: UUID,
        certificate_type: Optional[CertificateType] = None,
        active_only: bool = True,
    ) -> List[CertificateTemplate]:
        ...

    async def get_default_template(
        self, tenant_id: UUID, certificate_type: CertificateType
    ) -> Optional[CertificateTemplate]:
        ...

    async def template_name_exists(
        self, tenant_id: UUID, name: str, exclude_id: Optional[UUID] = None
    ) -> bool:
        ...


class CampaignReaderProtocol(Protocol):
    """Read access to campaigns, satisfied by CampaignRepository"""

    async def get_campaign(
        self, tenant_id: UUID, campaign_id: UUID, include_deleted: bool = False
    ) -> Optional[Campaign]:
        ...

    async def list_groups(
        self,
        tenant_id: UUID,
        campaign_id: Optional[UUID] = None,
        search_term: Optional[str] = None,
    ) -> List[CampaignGroup]:
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


class UserDirectoryProtocol(Protocol):
    async def get_user(self, user_id: UUID) -> Optional[UserProfile]:
        ...


class EventBusProtocol(Protocol):
    async def publish_event(self, event: Any) -> bool:
        ...


# ====================
# Exceptions
# ====================


class CertificateServiceError(Exception):
    """Base exception for certificate service errors"""

    error_code: ErrorCode = ErrorCode.UNEXPECTED

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CertificateNotFoundError(CertificateServiceError):
    error_code = ErrorCode.NOT_FOUND


class TemplateNotFoundError(CertificateServiceError):
    error_code = ErrorCode.NOT_FOUND


class CertificateCampaignNotFoundError(CertificateServiceError):
    """Campaign referenced by an issuance request does not exist in the tenant"""
    error_code = ErrorCode.NOT_FOUND


class RecipientNotFoundError(CertificateServiceError):
    error_code = ErrorCode.NOT_FOUND


class InvalidVerificationTokenError(CertificateServiceError):
    error_code = ErrorCode.NOT_FOUND


class CertificateAlreadyExistsError(CertificateServiceError):
    error_code = ErrorCode.CONFLICT


class CertificateAlreadyRevokedError(CertificateServiceError):
    error_code = ErrorCode.CONFLICT


class TemplateConflictError(CertificateServiceError):
    error_code = ErrorCode.CONFLICT


class InvalidCertificateStateError(CertificateServiceError):
    """Raised when certificate is in invalid state for operation"""
    error_code = ErrorCode.INVALID_STATE

    def __init__(self, message: str, current_status: Optional[CertificateStatus] = None):
        super().__init__(message)
        self.current_status = current_status


class TokenGenerationError(CertificateServiceError):
    """Every minted token collided with an existing one"""


__all__ = [
    "TOKEN_CONSTRAINT",
    "CAMPAIGN_RECIPIENT_CONSTRAINT",
    "TEMPLATE_NAME_CONSTRAINT",
    "TEMPLATE_DEFAULT_CONSTRAINT",
    "CertificateRepositoryProtocol",
    "CampaignReaderProtocol",
    "UserDirectoryProtocol",
    "EventBusProtocol",
    "CertificateServiceError",
    "CertificateNotFoundError",
    "TemplateNotFoundError",
    "CertificateCampaignNotFoundError",
    "RecipientNotFoundError",
    "InvalidVerificationTokenError",
    "CertificateAlreadyExistsError",
    "CertificateAlreadyRevokedError",
    "TemplateConflictError",
    "InvalidCertificateStateError",
    "TokenGenerationError",
]
