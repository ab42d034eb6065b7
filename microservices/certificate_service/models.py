"""
Certificate Service Data Models

Pydantic models for certificates, templates and verification views.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import Field

from microservices.campaign_service.models import AuditFields, BaseContract, UtcDatetime

# Keys used inside Certificate.metadata
METADATA_CUSTOM_MESSAGE = "customMessage"
METADATA_ADMIN_NOTES = "adminNotes"
METADATA_REVOCATION_REASON = "revocationReason"


# =============================================================================
# ENUMS
# =============================================================================

class CertificateStatus(str, Enum):
    """Certificate status; REVOKED is terminal"""
    GENERATED = "generated"
    VALID = "valid"
    SENT = "sent"
    DOWNLOADED = "downloaded"
    REVOKED = "revoked"


class CertificateType(str, Enum):
    """What the certificate attests"""
    CAMPAIGN_COMPLETION = "campaign_completion"
    ROLE_AUDIT_COMPLETION = "role_audit_completion"
    CLAIMS_AUDIT_COMPLETION = "claims_audit_completion"
    PERFORMANCE_REVIEW_COMPLETION = "performance_review_completion"
    COMPLIANCE_COMPLETION = "compliance_completion"


# =============================================================================
# ENTITIES
# =============================================================================

class Certificate(AuditFields):
    """Issued certificate"""
    certificate_id: UUID = Field(default_factory=uuid4)
    tenant_id: UUID
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = Field(None, max_length=2000)

    # Recipient snapshot
    recipient_id: UUID
    recipient_name: str = ""
    recipient_email: Optional[str] = None

    # Issuer snapshot
    issuer_id: UUID
    issuer_name: str = ""

    issued_date: datetime
    expiry_date: Optional[datetime] = None

    verification_token: str = Field(..., min_length=1, max_length=64)
    status: CertificateStatus = Field(default=CertificateStatus.GENERATED)
    certificate_type: CertificateType = Field(default=CertificateType.CAMPAIGN_COMPLETION)

    campaign_id: Optional[UUID] = None
    template_id: Optional[UUID] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    verification_count: int = 0
    verified_at: Optional[datetime] = None

    revoked_at: Optional[datetime] = None
    revoked_by: Optional[UUID] = None
    revoked_reason: Optional[str] = None

    @property
    def is_revoked(self) -> bool:
        return self.status == CertificateStatus.REVOKED

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expiry_date is None:
            return False
        return self.expiry_date < (now or datetime.now(timezone.utc))


class CertificateTemplate(AuditFields):
    """Certificate layout template"""
    template_id: UUID = Field(default_factory=uuid4)
    tenant_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    template_content: str = ""
    variables: Dict[str, Any] = Field(default_factory=dict)
    styles: Dict[str, Any] = Field(default_factory=dict)
    certificate_type: CertificateType
    is_default: bool = False
    is_active: bool = True


# =============================================================================
# REQUESTS
# =============================================================================

class CertificateGenerateRequest(BaseContract):
    """Issue a certificate to one recipient of a campaign"""
    campaign_id: UUID
    recipient_id: UUID
    custom_message: Optional[str] = Field(None, max_length=2000)
    expiry_date: Optional[UtcDatetime] = None


class BatchCertificateRequest(BaseContract):
    """Issue certificates to several recipients of one campaign"""
    campaign_id: UUID
    recipient_ids: List[UUID] = Field(..., min_length=1)
    custom_message: Optional[str] = Field(None, max_length=2000)
    expiry_date: Optional[UtcDatetime] = None


class CertificateUpdateRequest(BaseContract):
    """Administrative update; revocation goes through revoke only"""
    status: Optional[CertificateStatus] = None
    custom_message: Optional[str] = Field(None, max_length=2000)
    admin_notes: Optional[str] = Field(None, max_length=2000)
    expiry_date: Optional[UtcDatetime] = None


class TemplateCreateRequest(BaseContract):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    template_content: str = ""
    variables: Dict[str, Any] = Field(default_factory=dict)
    styles: Dict[str, Any] = Field(default_factory=dict)
    certificate_type: CertificateType
    is_default: bool = False
    is_active: bool = True


class TemplateUpdateRequest(BaseContract):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    template_content: Optional[str] = None
    variables: Optional[Dict[str, Any]] = None
    styles: Optional[Dict[str, Any]] = None
    certificate_type: Optional[CertificateType] = None
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None


# =============================================================================
# READ MODELS
# =============================================================================

class CertificateVerification(BaseContract):
    """Public result of a token lookup"""
    is_valid: bool
    verification_token: str
    verification_date: datetime
    certificate_id: UUID
    title: str
    recipient_name: str
    issuer_name: str
    issued_date: datetime
    expiry_date: Optional[datetime] = None
    status: CertificateStatus
    certificate_type: CertificateType
    campaign_title: Optional[str] = None
    custom_message: Optional[str] = None
    is_revoked: bool
    is_expired: bool
    verification_count: int


class BatchGenerationFailure(BaseContract):
    recipient_id: UUID
    reason: str


class BatchGenerationResult(BaseContract):
    """Per-recipient outcome of batch issuance"""
    campaign_id: UUID
    generated: List[Certificate] = Field(default_factory=list)
    failures: List[BatchGenerationFailure] = Field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.generated)

    @property
    def failure_count(self) -> int:
        return len(self.failures)


class EligibleManager(BaseContract):
    """Campaign manager with completion figures for certificate decisions"""
    manager_id: UUID
    manager_name: Optional[str] = None
    total_evaluations: int
    completed_evaluations: int
    completion_percentage: Decimal
    has_certificate: bool


class CertificateStatistics(BaseContract):
    total_certificates: int = 0
    active_certificates: int = 0
    revoked_certificates: int = 0
    expired_certificates: int = 0
    total_verifications: int = 0
    certificates_by_type: Dict[str, int] = Field(default_factory=dict)


__all__ = [
    "METADATA_CUSTOM_MESSAGE",
    "METADATA_ADMIN_NOTES",
    "METADATA_REVOCATION_REASON",
    "CertificateStatus",
    "CertificateType",
    "Certificate",
    "CertificateTemplate",
    "CertificateGenerateRequest",
    "BatchCertificateRequest",
    "CertificateUpdateRequest",
    "TemplateCreateRequest",
    "TemplateUpdateRequest",
    "CertificateVerification",
    "BatchGenerationFailure",
    "BatchGenerationResult",
    "EligibleManager",
    "CertificateStatistics",
]
