"""
Certificate Repository Mock for Component Testing

In-memory CertificateRepositoryProtocol enforcing the token, campaign/recipient,
template-name and default-template unique indexes by name.
"""

import asyncio
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from core.postgres_client import UniqueConstraintViolation
from microservices.certificate_service.models import (
    Certificate,
    CertificateStatus,
    CertificateTemplate,
    CertificateType,
)
from microservices.certificate_service.protocols import (
    CAMPAIGN_RECIPIENT_CONSTRAINT,
    TEMPLATE_DEFAULT_CONSTRAINT,
    TEMPLATE_NAME_CONSTRAINT,
    TOKEN_CONSTRAINT,
)


class MockCertificateRepository:
    """In-memory certificate and template store"""

    def __init__(self):
        self.certificates: Dict[UUID, Certificate] = {}
        self.templates: Dict[UUID, CertificateTemplate] = {}
        self.save_attempts = 0

    async def initialize(self):
        pass

    # Certificates

    async def save_certificate(self, certificate: Certificate) -> Certificate:
        self.save_attempts += 1
        self._check_certificate_indexes(certificate)
        self.certificates[certificate.certificate_id] = certificate.model_copy(deep=True)
        return certificate.model_copy(deep=True)

    async def update_certificate(self, certificate: Certificate) -> Optional[Certificate]:
        stored = self.certificates[certificate.certificate_id]
        # WHERE status <> 'revoked'
        if stored.status == CertificateStatus.REVOKED:
            return None
        self._check_certificate_indexes(certificate)
        updated = certificate.model_copy(deep=True, update={
            "verification_count": stored.verification_count,
            "verified_at": stored.verified_at,
            "is_deleted": stored.is_deleted,
            "deleted_at": stored.deleted_at,
            "deleted_by": stored.deleted_by,
        })
        self.certificates[certificate.certificate_id] = updated
        return updated.model_copy(deep=True)

    async def soft_delete_certificate(
        self, tenant_id: UUID, certificate_id: UUID, deleted_by: UUID, deleted_at: datetime
    ) -> bool:
        certificate = self.certificates.get(certificate_id)
        if not certificate or certificate.tenant_id != tenant_id or certificate.is_deleted:
            return False
        certificate.is_deleted = True
        certificate.deleted_at = deleted_at
        certificate.deleted_by = deleted_by
        certificate.updated_at = deleted_at
        certificate.updated_by = deleted_by
        return True

    async def get_certificate(self, tenant_id: UUID, certificate_id: UUID) -> Optional[Certificate]:
        # Yield so a concurrent writer can commit between load and write
        await asyncio.sleep(0)
        certificate = self.certificates.get(certificate_id)
        if not certificate or certificate.tenant_id != tenant_id or certificate.is_deleted:
            return None
        return certificate.model_copy(deep=True)

    async def get_by_campaign_and_recipient(
        self, tenant_id: UUID, campaign_id: UUID, recipient_id: UUID
    ) -> Optional[Certificate]:
        # Yield so concurrent issuance can race past the pre-check
        await asyncio.sleep(0)
        for certificate in self.certificates.values():
            if (
                certificate.tenant_id == tenant_id
                and certificate.campaign_id == campaign_id
                and certificate.recipient_id == recipient_id
                and not certificate.is_deleted
            ):
                return certificate.model_copy(deep=True)
        return None

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
        results = [
            c for c in self.certificates.values()
            if c.tenant_id == tenant_id and not c.is_deleted
        ]
        if not include_revoked and status != CertificateStatus.REVOKED:
            results = [c for c in results if c.status != CertificateStatus.REVOKED]
        if campaign_id is not None:
            results = [c for c in results if c.campaign_id == campaign_id]
        if recipient_id is not None:
            results = [c for c in results if c.recipient_id == recipient_id]
        if status is not None:
            results = [c for c in results if c.status == status]
        if certificate_type is not None:
            results = [c for c in results if c.certificate_type == certificate_type]
        if issued_from:
            results = [c for c in results if c.issued_date >= issued_from]
        if issued_to:
            results = [c for c in results if c.issued_date <= issued_to]
        results.sort(key=lambda c: c.issued_date, reverse=True)
        if limit is not None:
            results = results[offset:offset + limit]
        return [c.model_copy(deep=True) for c in results]

    async def record_verification(self, token: str, verified_at: datetime) -> Optional[Certificate]:
        await asyncio.sleep(0)
        # Increment and read back without yielding, like UPDATE ... RETURNING
        for certificate in self.certificates.values():
            if certificate.verification_token == token and not certificate.is_deleted:
                certificate.verification_count += 1
                certificate.verified_at = verified_at
                return certificate.model_copy(deep=True)
        return None

    def _check_certificate_indexes(self, certificate: Certificate) -> None:
        for other in self.certificates.values():
            if other.certificate_id == certificate.certificate_id:
                continue
            if other.verification_token == certificate.verification_token:
                raise UniqueConstraintViolation(TOKEN_CONSTRAINT)
            if (
                not other.is_deleted
                and not certificate.is_deleted
                and other.campaign_id == certificate.campaign_id
                and other.recipient_id == certificate.recipient_id
            ):
                raise UniqueConstraintViolation(CAMPAIGN_RECIPIENT_CONSTRAINT)

    # Templates

    async def save_template(
        self, template: CertificateTemplate, replace_default: bool = False
    ) -> CertificateTemplate:
        return self._write_template(template, replace_default)

    async def update_template(
        self, template: CertificateTemplate, replace_default: bool = False
    ) -> CertificateTemplate:
        return self._write_template(template, replace_default)

    def _write_template(self, template: CertificateTemplate, replace_default: bool) -> CertificateTemplate:
        """Clear the old default and write as one unit; a violation rolls both back"""
        cleared = [
            other for other in self.templates.values()
            if replace_default
            and other.tenant_id == template.tenant_id
            and other.certificate_type == template.certificate_type
            and other.is_default
            and other.template_id != template.template_id
        ]
        for other in cleared:
            other.is_default = False
        try:
            self._check_template_indexes(template)
        except UniqueConstraintViolation:
            for other in cleared:
                other.is_default = True
            raise
        self.templates[template.template_id] = template.model_copy(deep=True)
        return template.model_copy(deep=True)

    async def get_template(self, tenant_id: UUID, template_id: UUID) -> Optional[CertificateTemplate]:
        template = self.templates.get(template_id)
        if not template or template.tenant_id != tenant_id or template.is_deleted:
            return None
        return template.model_copy(deep=True)

    async def list_templates(
        self,
        tenant_id: UUID,
        certificate_type: Optional[CertificateType] = None,
        active_only: bool = True,
    ) -> List[CertificateTemplate]:
        results = [t for t in self.templates.values() if t.tenant_id == tenant_id and not t.is_deleted]
        if certificate_type:
            results = [t for t in results if t.certificate_type == certificate_type]
        if active_only:
            results = [t for t in results if t.is_active]
        results.sort(key=lambda t: (not t.is_default, t.name))
        return [t.model_copy(deep=True) for t in results]

    async def get_default_template(
        self, tenant_id: UUID, certificate_type: CertificateType
    ) -> Optional[CertificateTemplate]:
        for template in self.templates.values():
            if (
                template.tenant_id == tenant_id
                and template.certificate_type == certificate_type
                and template.is_default
                and template.is_active
                and not template.is_deleted
            ):
                return template.model_copy(deep=True)
        return None

    async def template_name_exists(
        self, tenant_id: UUID, name: str, exclude_id: Optional[UUID] = None
    ) -> bool:
        return any(
            t.tenant_id == tenant_id
            and t.name.lower() == name.lower()
            and not t.is_deleted
            and t.template_id != exclude_id
            for t in self.templates.values()
        )

    def _check_template_indexes(self, template: CertificateTemplate) -> None:
        for other in self.templates.values():
            if other.template_id == template.template_id or other.is_deleted or other.tenant_id != template.tenant_id:
                continue
            if other.name.lower() == template.name.lower():
                raise UniqueConstraintViolation(TEMPLATE_NAME_CONSTRAINT)
            if template.is_default and other.is_default and other.certificate_type == template.certificate_type:
                raise UniqueConstraintViolation(TEMPLATE_DEFAULT_CONSTRAINT)

    # Test helpers

    def seed_certificate(self, certificate: Certificate) -> Certificate:
        self.certificates[certificate.certificate_id] = certificate.model_copy(deep=True)
        return certificate
